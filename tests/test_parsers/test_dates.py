"""Tests for transaction date parsing."""

from datetime import date

import pytest

from ledger_import.parsers.dates import DateParseError, parse_date


class TestParseDate:
    def test_day_first_slash(self):
        assert parse_date("15/03/2024") == date(2024, 3, 15)

    def test_iso(self):
        assert parse_date("2024-03-15") == date(2024, 3, 15)

    def test_month_first_slash(self):
        assert parse_date("03/15/2024") == date(2024, 3, 15)

    def test_dotted(self):
        assert parse_date("15.03.2024") == date(2024, 3, 15)

    def test_iso_slash(self):
        assert parse_date("2024/03/15") == date(2024, 3, 15)

    def test_two_digit_year(self):
        assert parse_date("15/03/24") == date(2024, 3, 15)

    def test_time_part_ignored(self):
        assert parse_date("15/03/2024 14:02:11") == date(2024, 3, 15)

    def test_surrounding_whitespace(self):
        assert parse_date("  2024-03-15 ") == date(2024, 3, 15)

    def test_same_reading_in_every_format_is_not_ambiguous(self):
        assert parse_date("01/01/2024") == date(2024, 1, 1)


class TestAmbiguity:
    def test_day_and_month_both_valid(self):
        with pytest.raises(DateParseError) as exc_info:
            parse_date("03/04/2024")
        assert exc_info.value.ambiguous is True
        assert set(exc_info.value.candidates) == {date(2024, 4, 3), date(2024, 3, 4)}
        assert "Ambiguous date" in str(exc_info.value)

    def test_single_format_resolves_ambiguity(self):
        assert parse_date("03/04/2024", ["%m/%d/%Y"]) == date(2024, 3, 4)
        assert parse_date("03/04/2024", ["%d/%m/%Y"]) == date(2024, 4, 3)


class TestUnrecognized:
    @pytest.mark.parametrize("value", ["", None, "yesterday", "32/13/2024", "2024-02-30"])
    def test_raises(self, value):
        with pytest.raises(DateParseError) as exc_info:
            parse_date(value)
        assert exc_info.value.ambiguous is False

    def test_is_a_value_error(self):
        with pytest.raises(ValueError, match="Unrecognized date 'nope'"):
            parse_date("nope")

    def test_format_list_restricts_readings(self):
        with pytest.raises(DateParseError):
            parse_date("2024-03-15", ["%d/%m/%Y"])
