"""
Unit tests for cron expression evaluation.
"""

from datetime import datetime, timedelta

import pytest

from farewatch.utils.cron import (
    CRON_PRESETS,
    FALLBACK_INTERVAL,
    describe_cron_schedule,
    is_valid_cron,
    next_run_time,
)


class TestIsValidCron:
    """Tests for is_valid_cron function."""

    @pytest.mark.parametrize(
        "expression",
        ["0 9 * * *", "*/15 * * * *", "0 9,18 * * *", "0 9 * * 1,4", "30 7 1 1 *"],
    )
    def test_valid_expressions(self, expression):
        assert is_valid_cron(expression) is True

    @pytest.mark.parametrize(
        "expression",
        ["", "bad", "0 9 * *", "0 9 * * * *", "60 * * * *", "0 25 * * *", None],
    )
    def test_invalid_expressions(self, expression):
        assert is_valid_cron(expression) is False

    def test_presets_are_valid(self):
        """Every preset offered to users must parse."""
        for preset in CRON_PRESETS:
            assert is_valid_cron(preset.value), preset.label


class TestNextRunTime:
    """Tests for next_run_time function."""

    def test_next_match_later_same_day(self):
        assert next_run_time("0 9 * * *", datetime(2025, 1, 10, 8, 0)) == datetime(2025, 1, 10, 9, 0)

    def test_result_is_strictly_after_instant(self):
        """An instant that matches exactly moves on to the following match."""
        assert next_run_time("0 9 * * *", datetime(2025, 1, 10, 9, 0)) == datetime(2025, 1, 11, 9, 0)

    def test_seconds_past_match_move_to_next(self):
        assert next_run_time("0 9 * * *", datetime(2025, 1, 10, 9, 0, 30)) == datetime(2025, 1, 11, 9, 0)

    def test_seconds_before_match(self):
        assert next_run_time("0 9 * * *", datetime(2025, 1, 10, 8, 59, 30)) == datetime(2025, 1, 10, 9, 0)

    def test_step_expression(self):
        assert next_run_time("*/15 * * * *", datetime(2025, 1, 10, 10, 7)) == datetime(2025, 1, 10, 10, 15)

    def test_weekday_expression(self):
        # 2025-01-10 is a Friday; next Monday is the 13th
        assert next_run_time("0 9 * * 1", datetime(2025, 1, 10, 12, 0)) == datetime(2025, 1, 13, 9, 0)

    def test_day_of_month_or_weekday(self):
        """Restricted day-of-month and day-of-week match when either does."""
        # Monday the 13th comes before the 15th
        assert next_run_time("0 9 15 * 1", datetime(2025, 1, 10, 12, 0)) == datetime(2025, 1, 13, 9, 0)
        assert next_run_time("0 9 15 * 1", datetime(2025, 1, 13, 9, 0)) == datetime(2025, 1, 15, 9, 0)

    @pytest.mark.parametrize("expression", ["bad", "", "0 9 * *", "99 * * * *"])
    def test_invalid_expression_falls_back_to_24_hours(self, expression):
        instant = datetime(2025, 1, 10, 12, 34, 56)
        assert next_run_time(expression, instant) == instant + FALLBACK_INTERVAL
        assert FALLBACK_INTERVAL == timedelta(hours=24)

    def test_always_after_instant(self):
        instant = datetime(2025, 3, 1, 0, 0)
        for preset in CRON_PRESETS:
            assert next_run_time(preset.value, instant) > instant


class TestDescribeCronSchedule:
    """Tests for describe_cron_schedule function."""

    def test_known_expressions(self):
        assert describe_cron_schedule("0 9 * * *") == "Daily at 9:00 AM"
        assert describe_cron_schedule("0 */6 * * *") == "Every 6 hours"
        assert describe_cron_schedule("0 9 * * 1,4") == "Every Monday and Thursday at 9:00 AM"

    def test_daily_at_time(self):
        assert describe_cron_schedule("30 7 * * *") == "Daily at 7:30"

    def test_multiple_hours(self):
        assert describe_cron_schedule("5 8,20 * * *") == "Daily at 8:05 and 20:05"

    def test_hourly(self):
        assert describe_cron_schedule("15 * * * *") == "Every hour at minute 15"

    def test_step_hours(self):
        assert describe_cron_schedule("0 */3 * * *") == "Every 3 hours"

    def test_unparseable_expression_returned_unchanged(self):
        assert describe_cron_schedule("bad") == "bad"
