"""
Unit tests for notification payloads and message rendering.
"""

import pytest

from farewatch.notifications.messages import (
    AlertPayload,
    NotificationType,
    build_notification_message,
    build_subject,
    build_telegram_message,
)


@pytest.fixture
def payload():
    def _payload(**overrides):
        values = dict(
            type=NotificationType.PRICE_DROP,
            title="Summer in Bangkok",
            origin="LHR",
            destination="BKK",
            departure_date="2025-06-01",
            current_price=450.0,
            previous_price=500.0,
            lowest_price=470.0,
            price_target=460.0,
            airlines=["BA", "TG"],
        )
        values.update(overrides)
        return AlertPayload(**values)

    return _payload


class TestAlertPayload:
    """Tests for AlertPayload properties."""

    def test_route(self, payload):
        assert payload().route == "LHR → BKK"

    def test_price_drop(self, payload):
        assert payload().price_drop == 50
        assert payload(previous_price=None).price_drop is None
        assert payload(previous_price=400.0).price_drop is None

    def test_dates(self, payload):
        assert payload().dates == "2025-06-01 (One way)"
        assert payload(return_date="2025-06-15").dates == "2025-06-01 - 2025-06-15"

    def test_to_record(self, payload):
        record = payload(type=NotificationType.NEW_LOW).to_record()

        assert record["price"] == 450.0
        assert record["previous_price"] == 500.0
        assert record["lowest_price"] == 470.0
        assert record["price_target"] == 460.0
        assert record["origin"] == "LHR"
        assert record["destination"] == "BKK"
        assert record["airlines"] == ["BA", "TG"]
        assert record["message"] == "LHR → BKK reached new low price: $450"


class TestBuildNotificationMessage:
    """Tests for build_notification_message function."""

    def test_price_target(self, payload):
        message = build_notification_message(payload(type=NotificationType.PRICE_TARGET))
        assert message == "LHR → BKK hit price target of $460 - now $450"

    def test_new_low(self, payload):
        message = build_notification_message(payload(type=NotificationType.NEW_LOW, current_price=449.5))
        assert message == "LHR → BKK reached new low price: $450"

    def test_price_drop(self, payload):
        message = build_notification_message(payload(type=NotificationType.PRICE_DROP))
        assert message == "LHR → BKK dropped $50 to $450"

    def test_alert_triggered(self, payload):
        message = build_notification_message(payload(type=NotificationType.ALERT_TRIGGERED))
        assert message == "LHR → BKK is now $450 (target $460)"


class TestBuildSubject:
    """Tests for build_subject function."""

    def test_target_hit(self, payload):
        assert build_subject(payload(hit_target=True)) == "Price Alert: LHR → BKK hit your target of $460!"

    def test_new_low(self, payload):
        assert build_subject(payload(is_new_low=True)) == "New Low Price: LHR → BKK is now $450"

    def test_drop(self, payload):
        assert build_subject(payload()) == "Price Drop: LHR → BKK down $50 to $450"

    def test_update(self, payload):
        assert build_subject(payload(previous_price=None)) == "Price Update: LHR → BKK - $450"


class TestBuildTelegramMessage:
    """Tests for build_telegram_message function."""

    def test_target_hit_header(self, payload):
        message = build_telegram_message(payload(hit_target=True))
        assert message.startswith("🎯 <b>TARGET PRICE HIT!</b>")
        assert "✅ Target: $460" in message

    def test_drop_details(self, payload):
        message = build_telegram_message(payload())

        assert message.startswith("💰 <b>PRICE DROP!</b>")
        assert "💵 <b>$450</b> USD" in message
        assert "Was $500 (Save $50)" in message
        assert "⏳ Target: $460" in message
        assert "📅 2025-06-01 (One way)" in message
        assert "🛫 BA, TG" in message

    def test_lowest_shown_only_when_below_current(self, payload):
        assert "Lowest seen" not in build_telegram_message(payload())
        assert "Lowest seen: $400" in build_telegram_message(payload(lowest_price=400.0))

    def test_title_is_escaped(self, payload):
        message = build_telegram_message(payload(title="Mum & Dad <3"))
        assert "<b>Mum &amp; Dad &lt;3</b>" in message
