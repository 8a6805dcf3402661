"""
Unit tests for the tracking cycle.
"""

from unittest.mock import AsyncMock, Mock

import pytest

from farewatch.providers.exceptions import GatewayConfigurationError
from farewatch.services.alert_evaluator import AlertCheckResult, PriceAlertEvaluator
from farewatch.services.task_scheduler import TaskExecutionResult, TaskScheduler
from farewatch.services.tracking_cycle import (
    CycleReport,
    TrackingCycle,
    summarize_alerts,
    summarize_tasks,
)
from farewatch.utils.work_queue import NoDelay


def task_result(task_id, **kwargs):
    kwargs.setdefault("success", True)
    return TaskExecutionResult(task_id=task_id, **kwargs)


class TestSummaries:
    """Tests for summarize_tasks and summarize_alerts."""

    def test_summarize_tasks(self):
        results = [
            task_result(1, current_price=450, price_change=-50, is_new_low=True),
            task_result(2, current_price=480, price_change=-20, hit_target=True, is_new_low=True),
            task_result(3, current_price=520, price_change=20),
            task_result(4, no_results=True),
            TaskExecutionResult.failed(5, "Too many requests", "RATE_LIMITED"),
        ]

        assert summarize_tasks(results) == {
            "total": 5,
            "successful": 4,
            "failed": 1,
            "price_drops": 2,
            "new_lows": 2,
            "targets_hit": 1,
        }

    def test_summarize_alerts(self):
        results = [
            AlertCheckResult(1, success=True, triggered=True),
            AlertCheckResult(2, success=True),
            AlertCheckResult(3, success=False, error="timeout"),
        ]

        assert summarize_alerts(results) == {"total": 3, "successful": 2, "failed": 1, "triggered": 1}

    def test_empty(self):
        assert summarize_tasks([])["total"] == 0
        assert summarize_alerts([])["triggered"] == 0


class TestCycleReport:
    """Tests for CycleReport.to_dict."""

    def test_to_dict(self):
        report = CycleReport(
            task_results=[task_result(1, current_price=450, price_change=0.0, is_new_low=True)],
            alert_results=[AlertCheckResult(7, success=True)],
            duration_seconds=1.234,
        )

        data = report.to_dict()

        assert data["success"] is True
        assert data["duration_seconds"] == 1.23
        assert data["tasks"]["summary"]["new_lows"] == 1
        assert data["tasks"]["results"][0]["task_id"] == 1
        assert data["alerts"]["results"][0]["alert_id"] == 7


class TestTrackingCycle:
    """Tests for TrackingCycle.run."""

    async def test_tasks_run_before_alerts(
        self, session_factory, gateway, clock, add_task, add_alert, make_offer, offers_result
    ):
        await add_task()
        await add_alert(target_price=400.0)
        gateway.script("LHR", "BKK", offers_result(make_offer(450)))
        cycle = TrackingCycle(
            TaskScheduler(session_factory, gateway, clock=clock, delay_policy=NoDelay()),
            PriceAlertEvaluator(session_factory, gateway, clock=clock, delay_policy=NoDelay()),
        )

        report = await cycle.run()

        assert len(report.task_results) == 1
        assert len(report.alert_results) == 1
        assert gateway.requests[0].max_results != 1
        assert gateway.requests[1].max_results == 1
        assert report.alert_results[0].triggered is False

    async def test_configuration_error_skips_alerts(self):
        scheduler = Mock()
        scheduler.run_due_tasks = AsyncMock(
            side_effect=GatewayConfigurationError("missing credentials", provider_name="fake")
        )
        evaluator = Mock()
        evaluator.check_all_alerts = AsyncMock()

        with pytest.raises(GatewayConfigurationError):
            await TrackingCycle(scheduler, evaluator).run()

        evaluator.check_all_alerts.assert_not_awaited()

    async def test_from_settings_shares_collaborators(self, session_factory, gateway, clock):
        dispatcher = Mock()
        dispatcher.aclose = AsyncMock()

        cycle = TrackingCycle.from_settings(
            Mock(), session_factory, gateway=gateway, dispatcher=dispatcher, clock=clock
        )

        assert cycle.scheduler.gateway is gateway
        assert cycle.alert_evaluator.gateway is gateway
        assert cycle.scheduler.dispatcher is dispatcher
        assert cycle.alert_evaluator.clock is clock

        await cycle.aclose()
        dispatcher.aclose.assert_awaited_once()
