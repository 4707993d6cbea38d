"""Maps OcelFormat → codec and exposes format-explicit decode/encode."""

from __future__ import annotations

from ocelconv.codecs.base import BaseCodec, EncodeOptions, OcelFormat
from ocelconv.codecs.json_codec import JsonCodec
from ocelconv.codecs.store_codec import StoreCodec
from ocelconv.codecs.xml_codec import XmlCodec
from ocelconv.models.ocel import OcelLog

CODEC_REGISTRY: dict[OcelFormat, type[BaseCodec]] = {
    OcelFormat.JSON: JsonCodec,
    OcelFormat.XML: XmlCodec,
    OcelFormat.STORE: StoreCodec,
}


def get_codec(fmt: OcelFormat | str) -> BaseCodec:
    """Get an instance of the codec for the given format."""
    try:
        fmt = OcelFormat(fmt)
    except ValueError:
        raise ValueError(
            f"Unknown format '{fmt}'. Available: {[f.value for f in CODEC_REGISTRY]}"
        ) from None
    return CODEC_REGISTRY[fmt]()


def decode(fmt: OcelFormat | str, data: bytes, *, validate: bool = False) -> OcelLog:
    """Decode bytes of a known format into a log."""
    return get_codec(fmt).decode(data, validate=validate)


def encode(fmt: OcelFormat | str, log: OcelLog, options: EncodeOptions | None = None) -> bytes:
    """Encode a log into bytes of the given format."""
    return get_codec(fmt).encode(log, options)
