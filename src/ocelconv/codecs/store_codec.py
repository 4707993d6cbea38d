"""Embedded document store backed by a SQLite file (.db / .litedb).

The store holds two record collections and one header record:

    events(id TEXT PRIMARY KEY, document TEXT)
    objects(id TEXT PRIMARY KEY, document TEXT)
    declarations(id INTEGER PRIMARY KEY CHECK (id = 1), document TEXT)

Each document is the JSON dump of the pydantic model itself, so nested
list and map values are stored as the value model and never re-parsed
from literal text. Insertion order is kept through SQLite's rowid.

Writers hold an exclusive transaction for the whole write; readers open the
file read-only and may run concurrently.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from pydantic import BaseModel, Field

from ocelconv.codecs.base import BaseCodec, EncodeOptions, OcelFormat
from ocelconv.errors import DecodeError, EncodeError
from ocelconv.models.ocel import OcelEvent, OcelLog, OcelObject
from ocelconv.models.values import OcelValue, ValueKind

logger = logging.getLogger(__name__)

_TABLES = (
    "CREATE TABLE events (id TEXT PRIMARY KEY, document TEXT NOT NULL)",
    "CREATE TABLE objects (id TEXT PRIMARY KEY, document TEXT NOT NULL)",
    "CREATE TABLE declarations (id INTEGER PRIMARY KEY CHECK (id = 1), document TEXT NOT NULL)",
)


class _Header(BaseModel):
    """Contents of the single declarations record."""

    event_attribute_declarations: dict[str, ValueKind] = Field(default_factory=dict)
    object_attribute_declarations: dict[str, ValueKind] = Field(default_factory=dict)
    global_attributes: dict[str, OcelValue] = Field(default_factory=dict)


def _write(conn: sqlite3.Connection, log: OcelLog) -> None:
    """Replace the store's contents with the log inside one exclusive transaction."""
    conn.execute("BEGIN EXCLUSIVE")
    try:
        for table in ("events", "objects", "declarations"):
            conn.execute(f"DROP TABLE IF EXISTS {table}")
        for statement in _TABLES:
            conn.execute(statement)
        conn.executemany(
            "INSERT INTO events (id, document) VALUES (?, ?)",
            ((event.id, event.model_dump_json()) for event in log.events.values()),
        )
        conn.executemany(
            "INSERT INTO objects (id, document) VALUES (?, ?)",
            ((obj.id, obj.model_dump_json()) for obj in log.objects.values()),
        )
        header = _Header(
            event_attribute_declarations=log.event_attribute_declarations,
            object_attribute_declarations=log.object_attribute_declarations,
            global_attributes=log.global_attributes,
        )
        conn.execute(
            "INSERT INTO declarations (id, document) VALUES (1, ?)", (header.model_dump_json(),)
        )
        conn.execute("COMMIT")
    except BaseException:
        if conn.in_transaction:
            conn.execute("ROLLBACK")
        raise


def _read(conn: sqlite3.Connection) -> OcelLog:
    try:
        row = conn.execute("SELECT document FROM declarations WHERE id = 1").fetchone()
        if row is None:
            raise DecodeError("Store has no declarations record")
        header = _Header.model_validate_json(row[0])
        events = [
            OcelEvent.model_validate_json(document)
            for (document,) in conn.execute("SELECT document FROM events ORDER BY rowid")
        ]
        objects = [
            OcelObject.model_validate_json(document)
            for (document,) in conn.execute("SELECT document FROM objects ORDER BY rowid")
        ]
        return OcelLog.from_items(
            events,
            objects,
            event_attribute_declarations=header.event_attribute_declarations,
            object_attribute_declarations=header.object_attribute_declarations,
            global_attributes=header.global_attributes,
        )
    except sqlite3.Error as exc:
        raise DecodeError(f"Cannot read store: {exc}") from exc
    except ValueError as exc:
        raise DecodeError(f"Malformed store record: {exc}") from exc


class StoreCodec(BaseCodec):
    """Reads and writes logs in the embedded SQLite document store."""

    def __init__(self, timeout: float = 5.0) -> None:
        self.timeout = timeout  # seconds to wait for a competing writer

    @property
    def format(self) -> OcelFormat:
        return OcelFormat.STORE

    @property
    def extensions(self) -> tuple[str, ...]:
        return (".db", ".litedb")

    def decode(self, data: bytes, *, validate: bool = False) -> OcelLog:
        if validate:
            logger.debug("Validation is not applied to the store format")
        conn = sqlite3.connect(":memory:")
        try:
            conn.deserialize(data)
            return _read(conn)
        except sqlite3.Error as exc:
            raise DecodeError(f"Not a valid store image: {exc}") from exc
        finally:
            conn.close()

    def encode(self, log: OcelLog, options: EncodeOptions | None = None) -> bytes:
        if options is not None and options.validate:
            logger.debug("Validation is not applied to the store format")
        conn = sqlite3.connect(":memory:", isolation_level=None)
        try:
            _write(conn, log)
            return conn.serialize()
        except sqlite3.Error as exc:
            raise EncodeError(f"Cannot build store image: {exc}") from exc
        finally:
            conn.close()

    def read(self, path: Path | str) -> OcelLog:
        """Open a store file read-only and decode it."""
        path = Path(path)
        if not path.exists():
            raise DecodeError(f"Store not found: {path}")
        try:
            conn = sqlite3.connect(f"{path.resolve().as_uri()}?mode=ro", uri=True, timeout=self.timeout)
        except sqlite3.Error as exc:
            raise DecodeError(f"Cannot open store {path}: {exc}") from exc
        try:
            log = _read(conn)
        finally:
            conn.close()
        logger.debug("Read store %s: %d events, %d objects", path, len(log.events), len(log.objects))
        return log

    def write(self, log: OcelLog, path: Path | str) -> None:
        """Write the log to a store file, replacing its previous contents.

        The write is all-or-nothing: on failure an existing store keeps its
        old contents and a newly created file is removed.
        """
        path = Path(path)
        created = not path.exists()
        try:
            conn = sqlite3.connect(path, isolation_level=None, timeout=self.timeout)
        except sqlite3.Error as exc:
            raise EncodeError(f"Cannot open store {path}: {exc}") from exc

        failed = True
        try:
            _write(conn, log)
            failed = False
        except sqlite3.Error as exc:
            raise EncodeError(f"Cannot write store {path}: {exc}") from exc
        finally:
            conn.close()
            if failed and created:
                path.unlink(missing_ok=True)
        logger.debug("Wrote store %s: %d events, %d objects", path, len(log.events), len(log.objects))
