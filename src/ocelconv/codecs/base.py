"""Abstract base class and shared options for the log codecs."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

from ocelconv.models.ocel import OcelLog


class OcelFormat(str, Enum):
    """Physical encodings a log can be read from or written to."""

    JSON = "json"
    XML = "xml"
    STORE = "store"


@dataclass(frozen=True)
class EncodeOptions:
    """Options accepted by every encoder."""

    pretty: bool = False  # indented, human-readable output
    validate: bool = False  # fail closed on schema violations


class BaseCodec(ABC):
    """Turns raw bytes into an OcelLog and back for one format."""

    @property
    @abstractmethod
    def format(self) -> OcelFormat:
        """The format this codec handles."""

    @property
    @abstractmethod
    def extensions(self) -> tuple[str, ...]:
        """File extensions used for this format, preferred one first."""

    @abstractmethod
    def decode(self, data: bytes, *, validate: bool = False) -> OcelLog:
        """Decode a complete log.

        Raises DecodeError on malformed input and ValidationError when
        validation is requested and fails.
        """

    @abstractmethod
    def encode(self, log: OcelLog, options: EncodeOptions | None = None) -> bytes:
        """Encode a complete log.

        Raises EncodeError when the log cannot be written and ValidationError
        when validation is requested and fails.
        """
