"""File-level glue: extension ↔ format mapping, directory scans, reading and writing.

The codecs never look at file names. This module decides the format from
the extension and makes sure no partially written output file is left
behind when encoding fails.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from ocelconv.codecs.base import EncodeOptions, OcelFormat
from ocelconv.codecs.registry import CODEC_REGISTRY, get_codec
from ocelconv.codecs.store_codec import StoreCodec
from ocelconv.models.ocel import OcelLog

logger = logging.getLogger(__name__)

EXTENSION_FORMATS: dict[str, OcelFormat] = {
    ext: fmt for fmt, cls in CODEC_REGISTRY.items() for ext in cls().extensions
}


def format_for_path(path: Path) -> OcelFormat:
    """Return the format implied by a file's extension."""
    fmt = EXTENSION_FORMATS.get(path.suffix.lower())
    if fmt is None:
        raise ValueError(
            f"'{path.name}' is not of any supported format ({', '.join(EXTENSION_FORMATS)})"
        )
    return fmt


def file_extension(fmt: OcelFormat) -> str:
    """Preferred extension for files of the given format."""
    return get_codec(fmt).extensions[0]


def find_ocel_files(directory: Path, fmt: OcelFormat | None = None) -> list[Path]:
    """List OCEL files in a directory (not recursive), optionally of one format only.

    Raises FileNotFoundError if the directory does not exist.
    """
    if not directory.is_dir():
        raise FileNotFoundError(f"Directory not found: {directory}")
    files = sorted(p for p in directory.iterdir() if p.is_file() and p.suffix.lower() in EXTENSION_FORMATS)
    if fmt is not None:
        files = [p for p in files if EXTENSION_FORMATS[p.suffix.lower()] is fmt]
    return files


def output_path(input_path: Path, out_dir: Path, fmt: OcelFormat) -> Path:
    """Path of the converted file: same stem, new extension, in out_dir."""
    return out_dir / (input_path.stem + file_extension(fmt))


def read_log(path: Path, *, validate: bool = False) -> OcelLog:
    """Read a log, choosing the codec from the file extension.

    Store files are opened read-only instead of being loaded into memory first.
    """
    fmt = format_for_path(path)
    logger.debug("Reading %s as %s", path, fmt.value)
    if fmt is OcelFormat.STORE:
        return StoreCodec().read(path)
    return get_codec(fmt).decode(path.read_bytes(), validate=validate)


def write_log(
    log: OcelLog,
    path: Path,
    fmt: OcelFormat,
    options: EncodeOptions | None = None,
) -> None:
    """Write a log in the given format.

    Byte formats are encoded completely in memory and then moved into place,
    so a failed encode never leaves a partial file behind.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    logger.debug("Writing %s as %s", path, fmt.value)
    if fmt is OcelFormat.STORE:
        StoreCodec().write(log, path)
        return

    data = get_codec(fmt).encode(log, options)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
