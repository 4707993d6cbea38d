"""Round trips through every codec, and conversions between them."""

from collections.abc import Callable

import pytest

from ocelconv.codecs.base import EncodeOptions, OcelFormat
from ocelconv.codecs.registry import CODEC_REGISTRY, decode, encode, get_codec
from ocelconv.models.ocel import OcelLog

ALL_FORMATS = list(OcelFormat)


class TestRegistry:
    def test_every_format_has_a_codec(self) -> None:
        assert set(CODEC_REGISTRY) == set(OcelFormat)
        for fmt in OcelFormat:
            assert get_codec(fmt).format is fmt

    def test_lookup_by_name(self) -> None:
        assert get_codec("xml").format is OcelFormat.XML

    def test_unknown_format(self) -> None:
        with pytest.raises(ValueError, match="Unknown format 'yaml'"):
            get_codec("yaml")

    def test_extensions_are_unique(self) -> None:
        extensions = [ext for cls in CODEC_REGISTRY.values() for ext in cls().extensions]
        assert len(extensions) == len(set(extensions))


@pytest.mark.parametrize("fmt", ALL_FORMATS)
class TestRoundtrip:
    def test_sample_log(self, fmt: OcelFormat, sample_log: OcelLog) -> None:
        assert decode(fmt, encode(fmt, sample_log)) == sample_log

    def test_random_logs(self, fmt: OcelFormat, random_log_factory: Callable[..., OcelLog]) -> None:
        for seed in (1, 2, 3):
            log = random_log_factory(seed)
            assert decode(fmt, encode(fmt, log)) == log, f"seed {seed}"

    def test_pretty_output_decodes_the_same(self, fmt: OcelFormat, sample_log: OcelLog) -> None:
        data = encode(fmt, sample_log, EncodeOptions(pretty=True))
        assert decode(fmt, data) == sample_log

    def test_validated_roundtrip(self, fmt: OcelFormat, sample_log: OcelLog) -> None:
        data = encode(fmt, sample_log, EncodeOptions(validate=True))
        assert decode(fmt, data, validate=True) == sample_log

    def test_empty_log(self, fmt: OcelFormat) -> None:
        assert decode(fmt, encode(fmt, OcelLog())) == OcelLog()


class TestConversionChain:
    def test_json_xml_store_json(self, random_log_factory: Callable[..., OcelLog]) -> None:
        log = random_log_factory(42)
        data = encode(OcelFormat.JSON, log)
        for source, target in [
            (OcelFormat.JSON, OcelFormat.XML),
            (OcelFormat.XML, OcelFormat.STORE),
            (OcelFormat.STORE, OcelFormat.JSON),
        ]:
            data = encode(target, decode(source, data))
        assert decode(OcelFormat.JSON, data) == log

    def test_json_to_xml_fills_in_declarations(self, sample_log: OcelLog) -> None:
        bare = sample_log.model_copy(update={
            "event_attribute_declarations": {},
            "object_attribute_declarations": {},
        })
        from_json = decode(OcelFormat.JSON, encode(OcelFormat.JSON, bare))
        via_xml = decode(OcelFormat.XML, encode(OcelFormat.XML, from_json))
        assert via_xml == sample_log
