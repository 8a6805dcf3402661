"""
Unit tests for price alert evaluation.
"""

from datetime import date, datetime, timedelta
from unittest.mock import AsyncMock, Mock

import pytest
from sqlalchemy import select

from farewatch.models.price_alert import PriceAlert
from farewatch.notifications.messages import NotificationType
from farewatch.notifications.notification_service import NotificationDispatcher
from farewatch.providers.exceptions import GatewayConfigurationError, ProviderTimeoutError
from farewatch.providers.schemas import SearchResult
from farewatch.services.alert_evaluator import PriceAlertEvaluator
from farewatch.utils.work_queue import NoDelay

from helpers import NOW


@pytest.fixture
def dispatcher():
    dispatcher = Mock(spec=NotificationDispatcher)
    dispatcher.notify_all = AsyncMock(return_value=[])
    return dispatcher


@pytest.fixture
def evaluator(session_factory, gateway, dispatcher, clock):
    return PriceAlertEvaluator(session_factory, gateway, dispatcher, clock=clock, delay_policy=NoDelay())


async def all_alerts(session_factory):
    async with session_factory() as db:
        return {a.id: a for a in (await db.execute(select(PriceAlert))).scalars().all()}


class TestPendingAlerts:
    """Tests for PriceAlertEvaluator.pending_alerts."""

    async def test_selection(self, evaluator, add_alert):
        pending = await add_alert()
        await add_alert(triggered=True)
        await add_alert(active=False)
        await add_alert(expires_at=NOW - timedelta(minutes=1))
        await add_alert(expires_at=NOW)

        assert [a.id for a in await evaluator.pending_alerts()] == [pending.id]


class TestCheckAllAlerts:
    """Tests for PriceAlertEvaluator.check_all_alerts."""

    async def test_target_reached_triggers_alert(
        self, evaluator, add_alert, gateway, make_offer, offers_result, dispatcher, session_factory
    ):
        alert = await add_alert(target_price=500.0)
        gateway.script(
            "LHR", "BKK", offers_result(make_offer(480, airlines=("TG", "BA"), offer_id="offer-9"))
        )

        results = await evaluator.check_all_alerts()

        assert len(results) == 1
        assert results[0].triggered is True
        assert results[0].current_price == 480
        assert results[0].target_price == 500

        stored = (await all_alerts(session_factory))[alert.id]
        assert stored.triggered is True
        assert stored.notified_at == NOW
        assert stored.current_price == 480
        assert stored.flight_offer_id == "offer-9"
        assert stored.airlines == ["TG", "BA"]

        payload = dispatcher.notify_all.await_args.args[0]
        assert payload.type == NotificationType.ALERT_TRIGGERED
        assert payload.alert_id == alert.id
        assert payload.price_target == 500
        assert payload.departure_date == "2025-06-01"

    async def test_price_equal_to_target_triggers(
        self, evaluator, add_alert, gateway, make_offer, offers_result
    ):
        await add_alert(target_price=500.0)
        gateway.script("LHR", "BKK", offers_result(make_offer(500)))

        assert (await evaluator.check_all_alerts())[0].triggered is True

    async def test_price_above_target_only_records_price(
        self, evaluator, add_alert, gateway, make_offer, offers_result, dispatcher, session_factory
    ):
        alert = await add_alert(target_price=500.0)
        gateway.script("LHR", "BKK", offers_result(make_offer(540)))

        results = await evaluator.check_all_alerts()

        assert results[0].success is True
        assert results[0].triggered is False
        dispatcher.notify_all.assert_not_awaited()
        stored = (await all_alerts(session_factory))[alert.id]
        assert stored.current_price == 540
        assert stored.triggered is False
        assert stored.notified_at is None

    async def test_triggered_alert_is_not_checked_again(
        self, evaluator, add_alert, gateway, make_offer, offers_result, dispatcher
    ):
        await add_alert(target_price=500.0)
        gateway.script("LHR", "BKK", offers_result(make_offer(450)))

        await evaluator.check_all_alerts()
        second = await evaluator.check_all_alerts()

        assert second == []
        assert len(gateway.requests) == 1
        dispatcher.notify_all.assert_awaited_once()

    async def test_searches_cheapest_single_offer(self, evaluator, add_alert, gateway):
        await add_alert(return_date=date(2025, 6, 15))

        await evaluator.check_all_alerts()

        request = gateway.requests[0]
        assert request.max_results == 1
        assert request.departure_date == date(2025, 6, 1)
        assert request.return_date == date(2025, 6, 15)

    async def test_expired_alert_is_deleted_without_search(
        self, evaluator, add_alert, gateway, session_factory
    ):
        """An alert that expired yesterday is removed before anyone prices it."""
        expired = await add_alert(expires_at=NOW - timedelta(days=1))

        results = await evaluator.check_all_alerts()

        assert results == []
        assert gateway.requests == []
        assert expired.id not in await all_alerts(session_factory)

    async def test_failures_are_isolated(
        self, evaluator, add_alert, gateway, make_offer, offers_result, session_factory
    ):
        first = await add_alert()
        second = await add_alert(target_price=600.0)
        gateway.script(
            "LHR", "BKK",
            ProviderTimeoutError("Flight search timed out", provider_name="fake"),
            offers_result(make_offer(550)),
        )

        results = await evaluator.check_all_alerts()

        assert [(r.alert_id, r.success, r.triggered) for r in results] == [
            (first.id, False, False),
            (second.id, True, True),
        ]
        assert results[0].error_code == "TIMEOUT"
        assert (await all_alerts(session_factory))[first.id].current_price is None

    async def test_no_flights_found(self, evaluator, add_alert, gateway):
        await add_alert()
        gateway.script("LHR", "BKK", SearchResult())

        result = (await evaluator.check_all_alerts())[0]

        assert result.success is True
        assert result.triggered is False
        assert result.error == "No flights found"

    async def test_unexpected_error_does_not_stop_batch(
        self, evaluator, add_alert, gateway, make_offer, offers_result, dispatcher, session_factory
    ):
        first = await add_alert(target_price=500.0)
        second = await add_alert(target_price=600.0)
        expired = await add_alert(expires_at=NOW - timedelta(days=1))
        gateway.script("LHR", "BKK", offers_result(make_offer(450)), offers_result(make_offer(550)))
        dispatcher.notify_all.side_effect = [RuntimeError("template missing"), []]

        results = await evaluator.check_all_alerts()

        assert [(r.alert_id, r.success) for r in results] == [(first.id, False), (second.id, True)]
        assert results[0].error_code == "INTERNAL_ERROR"
        assert results[0].error == "template missing"
        assert results[1].triggered is True
        assert expired.id not in await all_alerts(session_factory)

    async def test_malformed_gateway_payload_is_recorded(
        self, evaluator, add_alert, gateway, session_factory
    ):
        alert = await add_alert()
        expired = await add_alert(expires_at=NOW - timedelta(days=1))
        gateway.script("LHR", "BKK", ValueError("Expecting value: line 1 column 1"))

        results = await evaluator.check_all_alerts()

        assert results[0].alert_id == alert.id
        assert results[0].success is False
        assert results[0].error_code == "UNKNOWN"
        assert expired.id not in await all_alerts(session_factory)

    async def test_configuration_error_propagates(self, evaluator, add_alert, gateway, session_factory):
        await add_alert()
        expired = await add_alert(expires_at=NOW - timedelta(days=1))
        gateway.script("LHR", "BKK", GatewayConfigurationError("missing credentials", provider_name="fake"))

        with pytest.raises(GatewayConfigurationError):
            await evaluator.check_all_alerts()

        assert expired.id not in await all_alerts(session_factory)


class TestCheckAlert:
    """Tests for PriceAlertEvaluator.check_alert."""

    async def test_unknown_alert(self, evaluator):
        result = await evaluator.check_alert(404)

        assert result.success is False
        assert result.error == "Alert 404 not found"

    async def test_without_dispatcher(
        self, session_factory, gateway, clock, add_alert, make_offer, offers_result
    ):
        evaluator = PriceAlertEvaluator(session_factory, gateway, clock=clock, delay_policy=NoDelay())
        alert = await add_alert()
        gateway.script("LHR", "BKK", offers_result(make_offer(300)))

        result = await evaluator.check_alert(alert.id)

        assert result.triggered is True
        assert result.notifications == []


class TestDeleteExpired:
    """Tests for PriceAlertEvaluator.delete_expired."""

    async def test_deletes_expired_regardless_of_state(self, evaluator, add_alert, session_factory):
        yesterday = NOW - timedelta(days=1)
        await add_alert(expires_at=yesterday)
        await add_alert(expires_at=yesterday, triggered=True)
        await add_alert(expires_at=yesterday, active=False)
        kept = await add_alert(expires_at=datetime(2025, 6, 1))

        assert await evaluator.delete_expired() == 3
        assert list(await all_alerts(session_factory)) == [kept.id]

    async def test_nothing_to_delete(self, evaluator, add_alert):
        await add_alert()
        assert await evaluator.delete_expired() == 0
