"""Tests for lenient value coercion and timestamp parsing."""

from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

from ordermonitor.model.coercion import parse_timestamp, to_bool, to_float, to_int, to_optional_str, to_str

DEFAULT = datetime(2000, 1, 1, tzinfo=UTC)


class TestNumbers:
    def test_numeric_strings_are_parsed(self):
        assert to_float("12.5") == 12.5
        assert to_float(" 1,200 ") == 1200.0
        assert to_int("42") == 42
        assert to_int("3.9") == 3

    def test_garbage_falls_back_to_zero(self):
        assert to_float("abc") == 0.0
        assert to_float(None) == 0.0
        assert to_int([1, 2]) == 0
        assert to_int({"a": 1}) == 0

    def test_nan_and_infinity_fall_back(self):
        assert to_float(float("nan")) == 0.0
        assert to_float("inf") == 0.0

    def test_booleans_count_as_numbers(self):
        assert to_int(True) == 1
        assert to_float(False) == 0.0

    def test_custom_default(self):
        assert to_int("x", default=-1) == -1


class TestStrings:
    def test_none_and_containers_become_default(self):
        assert to_str(None) == ""
        assert to_str({"a": 1}) == ""
        assert to_str([1]) == ""

    def test_integral_floats_lose_their_fraction(self):
        assert to_str(901234567.0) == "901234567"

    def test_strings_are_stripped(self):
        assert to_str("  Tran B ") == "Tran B"

    def test_optional_str(self):
        assert to_optional_str("   ") is None
        assert to_optional_str(" a@b.vn ") == "a@b.vn"


class TestBooleans:
    def test_truthy_spellings(self):
        assert to_bool("yes") is True
        assert to_bool("1") is True
        assert to_bool(1) is True

    def test_falsy_spellings(self):
        assert to_bool("false") is False
        assert to_bool(0) is False

    def test_unknown_uses_default(self):
        assert to_bool("maybe") is False
        assert to_bool("maybe", default=True) is True


class TestParseTimestamp:
    def test_backend_format(self):
        assert parse_timestamp("2025-03-01 09:05:00", DEFAULT) == datetime(2025, 3, 1, 9, 5, tzinfo=UTC)

    def test_day_first_format(self):
        assert parse_timestamp("01/03/2025 09:05", DEFAULT) == datetime(2025, 3, 1, 9, 5, tzinfo=UTC)

    def test_iso_with_offset(self):
        parsed = parse_timestamp("2025-03-01T09:05:00+07:00", DEFAULT)
        assert parsed == datetime(2025, 3, 1, 2, 5, tzinfo=UTC)

    def test_epoch_seconds_and_millis(self):
        expected = datetime.fromtimestamp(1740819900, UTC)
        assert parse_timestamp(1740819900, DEFAULT) == expected
        assert parse_timestamp(1740819900000, DEFAULT) == expected

    def test_naive_values_use_the_given_timezone(self):
        parsed = parse_timestamp("2025-03-01 09:05:00", DEFAULT, tz=ZoneInfo("Asia/Ho_Chi_Minh"))
        assert parsed.utcoffset() == timedelta(hours=7)

    def test_aware_datetime_passes_through(self):
        value = datetime(2025, 3, 1, tzinfo=UTC)
        assert parse_timestamp(value, DEFAULT) is value

    def test_failures_fall_back_to_default(self):
        assert parse_timestamp("not a date", DEFAULT) == DEFAULT
        assert parse_timestamp("", DEFAULT) == DEFAULT
        assert parse_timestamp(None, DEFAULT) == DEFAULT
        assert parse_timestamp({"at": 1}, DEFAULT) == DEFAULT
