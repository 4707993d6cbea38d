"""Typer CLI for ocelconv: convert, merge and validate OCEL event logs."""

from __future__ import annotations

import logging
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ocelconv.codecs.base import EncodeOptions, OcelFormat
from ocelconv.errors import MergeConflict, OcelError, ValidationError
from ocelconv.files import find_ocel_files, format_for_path, output_path, read_log, write_log
from ocelconv.integrity.references import check_references, remove_unknown_object_references
from ocelconv.merging.engine import merge_with_report
from ocelconv.models.ocel import OcelLog

app = typer.Typer(
    name="ocelconv",
    help="Convert and merge object-centric event logs between JSON, XML and the embedded store.",
    no_args_is_help=True,
)
console = Console()

OutputFormatOpt = Annotated[
    OcelFormat, typer.Option("--output-format", "--of", help="Output format of the conversion")
]
InputFormatOpt = Annotated[
    OcelFormat | None,
    typer.Option("--input-format", "--if", help="Only include files of this format"),
]
IndentedOpt = Annotated[
    bool, typer.Option("--indented", help="Indent output files for readability")
]
ValidateOpt = Annotated[
    bool, typer.Option("--validate", help="Validate logs before writing them")
]
RepairOpt = Annotated[
    bool,
    typer.Option("--remove-unknown-refs", help="Drop references to objects missing from the log"),
]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("-v", "--verbose", help="Show debug logging")] = False,
) -> None:
    """Convert and merge OCEL event logs."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _prepare(log: OcelLog, repair: bool) -> OcelLog:
    if repair:
        return remove_unknown_object_references(log)
    return log


def _convert_all(
    files: list[Path],
    out_dir: Path | None,
    output_format: OcelFormat,
    options: EncodeOptions,
    repair: bool,
) -> None:
    """Convert each file on its own; one failure does not stop the others."""
    console.print(f"Found [bold]{len(files)}[/bold] matching file(s).")
    failures: list[tuple[Path, str]] = []
    for path in files:
        target = output_path(path, out_dir if out_dir is not None else path.parent, output_format)
        if target.resolve() == path.resolve():
            console.print(f"[yellow]Skipping {path}: the output would overwrite the input file.[/yellow]")
            continue
        try:
            log = _prepare(read_log(path), repair)
            write_log(log, target, output_format, options)
        except (OcelError, OSError, ValueError) as exc:
            failures.append((path, str(exc)))
            console.print(f"[red]Failed to convert {path}: {exc}[/red]")
            continue
        console.print(f"[green]Wrote[/green] {target}")

    if failures:
        console.print(f"[red]{len(failures)} of {len(files)} file(s) failed.[/red]")
        raise typer.Exit(1)


def _merge_all(
    files: list[Path],
    out: Path,
    output_format: OcelFormat | None,
    options: EncodeOptions,
    repair: bool,
) -> None:
    try:
        fmt = output_format or format_for_path(out)
    except ValueError as exc:
        console.print(f"[red]{exc}. Pass --output-format explicitly.[/red]")
        raise typer.Exit(1) from exc

    logs: list[OcelLog] = []
    failed = False
    for path in files:
        try:
            logs.append(read_log(path))
        except (OcelError, OSError, ValueError) as exc:
            console.print(f"[red]Failed to read {path}: {exc}[/red]")
            failed = True
    if failed:
        console.print("[red]Merge aborted: not every input could be read.[/red]")
        raise typer.Exit(1)

    try:
        report = merge_with_report(logs)
    except MergeConflict as exc:
        console.print(f"[red]Found {len(exc.conflicts)} merge conflict(s):[/red]")
        for conflict in exc.conflicts:
            console.print(f"  - {conflict}")
        raise typer.Exit(1) from exc

    merged = _prepare(report.log, repair)
    try:
        write_log(merged, out, fmt, options)
    except ValidationError as exc:
        console.print(f"[red]Found {len(exc.violations)} validation error(s):[/red]")
        for violation in exc.violations:
            console.print(f"  - {violation}")
        raise typer.Exit(1) from exc
    except (OcelError, OSError) as exc:
        console.print(f"[red]Failed to write {out}: {exc}[/red]")
        raise typer.Exit(1) from exc

    console.print()
    table = Table(title="Merge Summary")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Input logs", str(report.inputs))
    table.add_row("Events", str(len(merged.events)))
    table.add_row("Objects", str(len(merged.objects)))
    table.add_row("Event overrides", str(len(report.overrides)))
    table.add_row("Unknown object references", str(len(check_references(merged))))
    console.print(table)
    console.print(f"[green]Merged log:[/green] {out}")


@app.command("convert-dir")
def convert_dir(
    directory: Annotated[Path, typer.Argument(help="Directory containing OCEL files")],
    out_dir: Annotated[Path, typer.Option("--out-dir", "-o", help="Output directory")],
    output_format: OutputFormatOpt,
    input_format: InputFormatOpt = None,
    indented: IndentedOpt = False,
    validate: ValidateOpt = False,
    remove_unknown_refs: RepairOpt = False,
) -> None:
    """Convert every OCEL file in a directory."""
    try:
        files = find_ocel_files(directory, input_format)
    except FileNotFoundError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1) from exc
    options = EncodeOptions(pretty=indented, validate=validate)
    _convert_all(files, out_dir, output_format, options, remove_unknown_refs)


@app.command("convert-files")
def convert_files(
    files: Annotated[list[Path], typer.Argument(help="OCEL files to convert")],
    output_format: OutputFormatOpt,
    out_dir: Annotated[
        Path | None, typer.Option("--out-dir", "-o", help="Output directory (default: next to input)")
    ] = None,
    indented: IndentedOpt = False,
    validate: ValidateOpt = False,
    remove_unknown_refs: RepairOpt = False,
) -> None:
    """Convert one or more OCEL files."""
    options = EncodeOptions(pretty=indented, validate=validate)
    _convert_all(files, out_dir, output_format, options, remove_unknown_refs)


@app.command("merge-dir")
def merge_dir(
    directory: Annotated[Path, typer.Argument(help="Directory containing OCEL files")],
    out: Annotated[Path, typer.Option("--out", "-o", help="Merged output file")],
    output_format: Annotated[
        OcelFormat | None,
        typer.Option("--output-format", "--of", help="Output format (default: from --out extension)"),
    ] = None,
    input_format: InputFormatOpt = None,
    indented: IndentedOpt = False,
    validate: ValidateOpt = False,
    remove_unknown_refs: RepairOpt = False,
) -> None:
    """Convert and merge every OCEL file in a directory into a single file.

    Files are merged in file-name order.
    """
    try:
        files = find_ocel_files(directory, input_format)
    except FileNotFoundError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1) from exc
    options = EncodeOptions(pretty=indented, validate=validate)
    _merge_all(files, out, output_format, options, remove_unknown_refs)


@app.command("merge-files")
def merge_files(
    files: Annotated[list[Path], typer.Argument(help="OCEL files to merge, in merge order")],
    out: Annotated[Path, typer.Option("--out", "-o", help="Merged output file")],
    output_format: Annotated[
        OcelFormat | None,
        typer.Option("--output-format", "--of", help="Output format (default: from --out extension)"),
    ] = None,
    indented: IndentedOpt = False,
    validate: ValidateOpt = False,
    remove_unknown_refs: RepairOpt = False,
) -> None:
    """Convert and merge one or more OCEL files into a single file."""
    options = EncodeOptions(pretty=indented, validate=validate)
    _merge_all(files, out, output_format, options, remove_unknown_refs)


@app.command()
def validate(
    path: Annotated[Path, typer.Argument(help="Path to a .jsonocel or .xmlocel file")],
) -> None:
    """Validate an OCEL file against its schema and declared attribute kinds."""
    if not path.exists():
        console.print(f"[red]File not found: {path}[/red]")
        raise typer.Exit(1)

    console.print(f"Validating [bold]{path}[/bold]...")
    try:
        read_log(path, validate=True)
    except ValidationError as exc:
        console.print(f"[red]Found {len(exc.violations)} validation error(s):[/red]")
        for err in exc.violations:
            console.print(f"  - {err}")
        raise typer.Exit(1) from exc
    except (OcelError, ValueError) as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1) from exc
    console.print("[green]Valid OCEL log.[/green]")


@app.command("version")
def version_cmd() -> None:
    """Print the version of ocelconv."""
    try:
        console.print(version("ocelconv"))
    except PackageNotFoundError:
        console.print("unknown")
