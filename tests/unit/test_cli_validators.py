"""
Unit tests for CLI input validators.
"""

from datetime import date, timedelta

import pytest
import typer

from farewatch.cli.validators import (
    airport_code_callback,
    cron_callback,
    date_callback,
    validate_airport_code,
    validate_cron_expression,
    validate_date_string,
)


class TestAirportCodeValidator:
    """Tests for airport code validation."""

    def test_valid_codes_are_uppercased(self):
        assert validate_airport_code("LHR") == "LHR"
        assert validate_airport_code("bkk") == "BKK"
        assert validate_airport_code(" dXb ") == "DXB"

    def test_empty_code(self):
        with pytest.raises(typer.BadParameter, match="cannot be empty"):
            validate_airport_code("")

    @pytest.mark.parametrize("code", ["LH", "LHRX", "A"])
    def test_wrong_length(self, code):
        with pytest.raises(typer.BadParameter, match="exactly 3 characters"):
            validate_airport_code(code)

    def test_non_letters(self):
        with pytest.raises(typer.BadParameter, match="only letters"):
            validate_airport_code("L1R")


class TestDateValidator:
    """Tests for date string validation."""

    def test_future_date(self):
        future = (date.today() + timedelta(days=30)).isoformat()
        assert validate_date_string(future) == future

    def test_today_is_allowed(self):
        today = date.today().isoformat()
        assert validate_date_string(today) == today

    def test_past_date_rejected(self):
        past = (date.today() - timedelta(days=1)).isoformat()
        with pytest.raises(typer.BadParameter, match="in the past"):
            validate_date_string(past)

    def test_past_date_allowed_when_requested(self):
        assert validate_date_string("2020-01-01", allow_past=True) == "2020-01-01"

    @pytest.mark.parametrize("value", ["01-06-2025", "2025/06/01", "2025-13-01", "tomorrow"])
    def test_bad_format(self, value):
        with pytest.raises(typer.BadParameter, match="Expected YYYY-MM-DD"):
            validate_date_string(value, allow_past=True)

    def test_none_passes_through(self):
        assert validate_date_string(None) is None


class TestCronValidator:
    """Tests for cron expression validation."""

    def test_valid_expression(self):
        assert validate_cron_expression(" 0 9 * * 1,4 ") == "0 9 * * 1,4"

    @pytest.mark.parametrize("value", ["", "0 9 * *", "0 9 * * * *", "61 * * * *", "every day"])
    def test_invalid_expression(self, value):
        with pytest.raises(typer.BadParameter, match="Invalid cron expression"):
            validate_cron_expression(value)


class TestCallbacks:
    """Tests for Typer callback wrappers."""

    def test_none_values(self):
        assert airport_code_callback(None) is None
        assert date_callback(None) is None
        assert cron_callback(None) is None

    def test_callbacks_validate(self):
        assert airport_code_callback("lhr") == "LHR"
        assert cron_callback("*/15 * * * *") == "*/15 * * * *"
        with pytest.raises(typer.BadParameter):
            date_callback("2020-01-01")
