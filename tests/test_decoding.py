from datetime import datetime, timezone

import pytest

from quotawatch.decoding import (
    clamp_percent,
    datetime_from_iso,
    datetime_from_millis,
    decode_bool,
    decode_float,
    decode_int,
    decode_str,
    normalize_percent,
    require_float,
    require_int,
    section,
)
from quotawatch.errors import DecodingError
from quotawatch.models import ProviderIdentifier


class TestDecodeFloat:
    @pytest.mark.parametrize(
        "value,expected",
        [(1.5, 1.5), (3, 3.0), ("2.25", 2.25), (" 7 ", 7.0), (True, 1.0)],
    )
    def test_accepted(self, value: "object", expected: "float") -> "None":
        assert decode_float(value) == expected

    @pytest.mark.parametrize("value", [None, "abc", "", [], {}, float("nan"), "inf"])
    def test_rejected(self, value: "object") -> "None":
        assert decode_float(value) is None

    def test_integer_beyond_float_range(self) -> "None":
        assert decode_float(10**400) is None
        assert decode_float(str(10**400)) is None


class TestDecodeInt:
    @pytest.mark.parametrize(
        "value,expected",
        [(1500, 1500), ("1500", 1500), (1500.0, 1500), ("-3821", -3821), ("12.9", 12)],
    )
    def test_accepted(self, value: "object", expected: "int") -> "None":
        assert decode_int(value) == expected

    def test_rejected(self) -> "None":
        assert decode_int("lots") is None
        assert decode_int(None) is None


def test_decode_str() -> "None":
    assert decode_str("pro") == "pro"
    assert decode_str("") is None
    assert decode_str(3) == "3"
    assert decode_str(False) is None


def test_decode_bool() -> "None":
    assert decode_bool(True) is True
    assert decode_bool("false") is False
    assert decode_bool(0) is False
    assert decode_bool("1") is True
    assert decode_bool(None) is None


def test_section() -> "None":
    assert section({"data": {"a": 1}}, "data") == {"a": 1}
    assert section({"data": [1, 2]}, "data") == {}
    assert section(None, "data") == {}


def test_require_helpers_raise_decoding_error() -> "None":
    with pytest.raises(DecodingError) as excinfo:
        require_float({"x": "?"}, "x", ProviderIdentifier.COPILOT)
    assert excinfo.value.provider is ProviderIdentifier.COPILOT

    with pytest.raises(DecodingError):
        require_int({}, "entitlement", ProviderIdentifier.COPILOT)

    assert require_int({"entitlement": "300"}, "entitlement", ProviderIdentifier.COPILOT) == 300


class TestPercent:
    def test_normalize_fraction(self) -> "None":
        assert normalize_percent(0.42) == pytest.approx(42.0)

    def test_normalize_is_idempotent_for_percentages(self) -> "None":
        assert normalize_percent(42.0) == 42.0
        assert normalize_percent(normalize_percent(0.42)) == pytest.approx(42.0)

    def test_normalize_boundary(self) -> "None":
        assert normalize_percent(1.0) == 100.0

    def test_clamp(self) -> "None":
        assert clamp_percent(-5.0) == 0.0
        assert clamp_percent(250.0) == 100.0
        assert clamp_percent(33.3) == 33.3


class TestTimestamps:
    def test_from_millis(self) -> "None":
        assert datetime_from_millis(1769817600000) == datetime(2026, 1, 31, tzinfo=timezone.utc)
        assert datetime_from_millis("1769817600000") == datetime(
            2026, 1, 31, tzinfo=timezone.utc
        )

    def test_from_millis_missing(self) -> "None":
        assert datetime_from_millis(None) is None
        assert datetime_from_millis(0) is None

    def test_from_iso(self) -> "None":
        expected = datetime(2026, 2, 28, tzinfo=timezone.utc)
        assert datetime_from_iso("2026-02-28T00:00:00.000Z") == expected
        assert datetime_from_iso("2026-02-28T00:00:00") == expected
        assert datetime_from_iso("2026-02-28T01:00:00+01:00") == expected

    def test_from_iso_invalid(self) -> "None":
        assert datetime_from_iso("next tuesday") is None
        assert datetime_from_iso(12) is None
