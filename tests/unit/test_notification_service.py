"""
Unit tests for the notification policy and dispatcher.
"""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest
from sqlalchemy import select

from farewatch.exceptions import NotificationException
from farewatch.models.notification import NotificationRecord
from farewatch.notifications.messages import AlertPayload, Channel, NotificationType
from farewatch.notifications.notification_service import (
    CHANNEL_SETUP_HINTS,
    NotificationDispatcher,
    build_task_payload,
    mask_email,
    resolve_channels,
    should_notify,
)
from farewatch.services.task_scheduler import TaskExecutionResult


def result(**overrides):
    values = dict(task_id=1, success=True, current_price=450.0, price_change_percent=0)
    values.update(overrides)
    return TaskExecutionResult(**values)


@pytest.fixture
def payload():
    return AlertPayload(
        type=NotificationType.NEW_LOW,
        title="Summer in Bangkok",
        origin="LHR",
        destination="BKK",
        departure_date="2025-06-01",
        current_price=450.0,
        previous_price=500.0,
        is_new_low=True,
    )


@pytest.fixture
def email_notifier():
    notifier = Mock()
    notifier.is_configured = True
    notifier.send_price_alert = AsyncMock(return_value=True)
    return notifier


@pytest.fixture
def telegram_notifier():
    notifier = Mock()
    notifier.is_configured = True
    notifier.send_price_alert = AsyncMock(return_value=None)
    notifier.aclose = AsyncMock()
    return notifier


@pytest.fixture
def dispatcher(email_notifier, telegram_notifier, session_factory, clock):
    return NotificationDispatcher(
        email_notifier=email_notifier,
        telegram_notifier=telegram_notifier,
        session_factory=session_factory,
        clock=clock,
        timeout=1.0,
        enabled=True,
    )


async def stored_records(session_factory):
    async with session_factory() as db:
        return list((await db.execute(select(NotificationRecord))).scalars().all())


class TestShouldNotify:
    """Tests for the notification policy."""

    def test_target_hit_wins(self):
        assert should_notify(result(hit_target=True, is_new_low=True, price_change_percent=-10)) == (
            NotificationType.PRICE_TARGET
        )

    def test_new_low(self):
        assert should_notify(result(is_new_low=True, price_change_percent=-10)) == NotificationType.NEW_LOW

    def test_drop_of_five_percent(self):
        assert should_notify(result(price_change_percent=-5)) == NotificationType.PRICE_DROP

    def test_small_drop_is_silent(self):
        assert should_notify(result(price_change_percent=-4)) is None
        assert should_notify(result(price_change_percent=-2)) is None

    def test_rise_is_silent(self):
        assert should_notify(result(price_change_percent=12)) is None

    def test_failed_or_empty_result_is_silent(self):
        assert should_notify(TaskExecutionResult.failed(1, "boom", "RATE_LIMITED")) is None
        assert should_notify(result(current_price=None, is_new_low=True)) is None


class TestBuildTaskPayload:
    """Tests for build_task_payload function."""

    def test_payload_uses_resolved_dates(self, make_offer):
        task = Mock(
            id=7, origin="LHR", destination="BKK", lowest_price=480.0, price_target=490.0
        )
        task.name = "Summer in Bangkok"
        execution = result(
            current_price=480.0,
            previous_price=500.0,
            is_new_low=True,
            hit_target=True,
            best_offer=make_offer(480, airlines=("TG",), currency="EUR"),
        )

        payload = build_task_payload(
            task, execution, NotificationType.PRICE_TARGET, departure_date="2025-02-09"
        )

        assert payload.type == NotificationType.PRICE_TARGET
        assert payload.title == "Summer in Bangkok"
        assert payload.departure_date == "2025-02-09"
        assert payload.return_date is None
        assert payload.currency == "EUR"
        assert payload.airlines == ["TG"]
        assert payload.task_id == 7
        assert payload.price_target == 490.0


class TestNotificationDispatcher:
    """Tests for NotificationDispatcher."""

    async def test_notify_all_delivers_on_every_channel(
        self, dispatcher, payload, email_notifier, telegram_notifier, session_factory, clock
    ):
        deliveries = await dispatcher.notify_all(payload)

        assert [(d.channel, d.delivered) for d in deliveries] == [
            (Channel.EMAIL, True),
            (Channel.TELEGRAM, True),
        ]
        email_notifier.send_price_alert.assert_awaited_once_with(payload)
        telegram_notifier.send_price_alert.assert_awaited_once_with(payload)

        records = await stored_records(session_factory)
        assert sorted(r.channel for r in records) == ["EMAIL", "TELEGRAM"]
        assert all(r.type == "NEW_LOW" for r in records)
        assert all(r.sent_at == clock.now() for r in records)
        assert records[0].payload["message"] == "LHR → BKK reached new low price: $450"

    async def test_channels_fail_independently(
        self, dispatcher, payload, email_notifier, session_factory
    ):
        email_notifier.send_price_alert.return_value = False

        deliveries = {d.channel: d for d in await dispatcher.notify_all(payload)}

        assert deliveries[Channel.EMAIL].delivered is False
        assert deliveries[Channel.EMAIL].error == "Email delivery failed"
        assert deliveries[Channel.TELEGRAM].delivered is True
        assert [r.channel for r in await stored_records(session_factory)] == ["TELEGRAM"]

    async def test_telegram_error_is_reported(self, dispatcher, payload, telegram_notifier):
        telegram_notifier.send_price_alert.side_effect = NotificationException("Telegram API error: chat not found")

        delivery = await dispatcher.notify(Channel.TELEGRAM, payload)

        assert delivery.delivered is False
        assert delivery.error == "Telegram API error: chat not found"

    async def test_unexpected_error_is_reported(self, dispatcher, payload, telegram_notifier):
        telegram_notifier.send_price_alert.side_effect = RuntimeError("boom")

        delivery = await dispatcher.notify(Channel.TELEGRAM, payload)

        assert delivery.delivered is False
        assert delivery.error == "boom"

    async def test_timeout(self, dispatcher, payload, telegram_notifier):
        async def slow(_payload):
            await asyncio.sleep(5)

        telegram_notifier.send_price_alert.side_effect = slow
        dispatcher.timeout = 0.01

        delivery = await dispatcher.notify(Channel.TELEGRAM, payload)

        assert delivery.delivered is False
        assert delivery.error.startswith("Timed out")

    async def test_unconfigured_channel_is_skipped(self, dispatcher, payload, email_notifier):
        email_notifier.is_configured = False

        deliveries = await dispatcher.notify_all(payload)
        assert [d.channel for d in deliveries] == [Channel.TELEGRAM]

        skipped = await dispatcher.notify(Channel.EMAIL, payload)
        assert skipped.skipped is True
        assert skipped.delivered is False
        email_notifier.send_price_alert.assert_not_awaited()

    async def test_disabled_dispatcher_sends_nothing(
        self, dispatcher, payload, email_notifier, telegram_notifier
    ):
        dispatcher.enabled = False

        assert await dispatcher.notify_all(payload) == []
        assert (await dispatcher.notify(Channel.EMAIL, payload)).skipped is True
        email_notifier.send_price_alert.assert_not_awaited()
        telegram_notifier.send_price_alert.assert_not_awaited()

    async def test_no_channels(self, payload, clock):
        dispatcher = NotificationDispatcher(clock=clock, enabled=True)

        assert dispatcher.configured_channels == []
        assert await dispatcher.notify_all(payload) == []

    async def test_explicit_channel_subset(self, dispatcher, payload, email_notifier):
        deliveries = await dispatcher.notify_all(payload, channels=[Channel.TELEGRAM])

        assert [d.channel for d in deliveries] == [Channel.TELEGRAM]
        email_notifier.send_price_alert.assert_not_awaited()

    async def test_without_session_factory_nothing_is_recorded(
        self, email_notifier, telegram_notifier, payload, clock
    ):
        dispatcher = NotificationDispatcher(email_notifier, telegram_notifier, clock=clock, enabled=True)

        deliveries = await dispatcher.notify_all(payload)

        assert all(d.delivered for d in deliveries)

    async def test_aclose_closes_telegram(self, dispatcher, telegram_notifier):
        await dispatcher.aclose()
        telegram_notifier.aclose.assert_awaited_once()


class TestSendTest:
    """Tests for test messages sent to check channel setup."""

    @pytest.fixture(autouse=True)
    def telegram_test_message(self, telegram_notifier):
        telegram_notifier.send_test_message = AsyncMock(return_value=None)

    async def test_every_channel_gets_a_test_message(
        self, dispatcher, email_notifier, telegram_notifier, session_factory
    ):
        results = await dispatcher.send_test()

        assert [(r.channel, r.delivered) for r in results] == [
            (Channel.EMAIL, True),
            (Channel.TELEGRAM, True),
        ]
        sample = email_notifier.send_price_alert.await_args.args[0]
        assert sample.title == "Test Notification"
        assert (sample.origin, sample.destination) == ("JFK", "LHR")
        assert sample.hit_target is True
        telegram_notifier.send_test_message.assert_awaited_once()
        telegram_notifier.send_price_alert.assert_not_awaited()
        assert await stored_records(session_factory) == []

    async def test_single_channel(self, dispatcher, email_notifier):
        results = await dispatcher.send_test(resolve_channels("telegram"))

        assert [r.channel for r in results] == [Channel.TELEGRAM]
        email_notifier.send_price_alert.assert_not_awaited()

    async def test_unconfigured_channel_names_missing_settings(self, dispatcher, telegram_notifier):
        telegram_notifier.is_configured = False

        results = await dispatcher.send_test()

        assert results[0].delivered is True
        assert results[1].delivered is False
        assert results[1].error == CHANNEL_SETUP_HINTS[Channel.TELEGRAM]
        telegram_notifier.send_test_message.assert_not_awaited()

    async def test_failure_is_reported(self, dispatcher, telegram_notifier):
        telegram_notifier.send_test_message.side_effect = NotificationException(
            "Telegram API error: chat not found"
        )

        results = await dispatcher.send_test([Channel.TELEGRAM])

        assert results[0].delivered is False
        assert results[0].error == "Telegram API error: chat not found"

    async def test_runs_even_when_alerts_are_disabled(self, email_notifier, telegram_notifier, clock):
        dispatcher = NotificationDispatcher(email_notifier, telegram_notifier, clock=clock, enabled=False)

        results = await dispatcher.send_test([Channel.EMAIL])

        assert results[0].delivered is True


class TestChannelStatus:
    """Tests for channel configuration reporting."""

    def test_masks_destinations(self, dispatcher, email_notifier, telegram_notifier):
        email_notifier.user_email = "traveller@example.com"
        telegram_notifier.chat_id = "123456789"

        status = dispatcher.channel_status()

        assert status == {
            "email": {"configured": True, "recipient": "t***r@example.com"},
            "telegram": {"configured": True, "chat_id": "...6789"},
        }

    def test_without_notifiers(self, clock):
        status = NotificationDispatcher(clock=clock).channel_status()

        assert status["email"] == {"configured": False, "recipient": None}
        assert status["telegram"] == {"configured": False, "chat_id": None}


@pytest.mark.parametrize("email,expected", [
    ("traveller@example.com", "t***r@example.com"),
    ("me@example.com", "***@example.com"),
    ("not-an-email", "not-an-email"),
])
def test_mask_email(email, expected):
    assert mask_email(email) == expected


class TestResolveChannels:
    """Tests for resolve_channels."""

    @pytest.mark.parametrize("name,expected", [
        ("email", [Channel.EMAIL]),
        ("Telegram", [Channel.TELEGRAM]),
        ("all", [Channel.EMAIL, Channel.TELEGRAM]),
    ])
    def test_known_names(self, name, expected):
        assert resolve_channels(name) == expected

    def test_unknown_name(self):
        with pytest.raises(ValueError):
            resolve_channels("sms")
