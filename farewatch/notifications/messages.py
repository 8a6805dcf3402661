"""
Price alert payloads and the text rendered from them.

The same payload feeds every channel: email renders it through a Jinja2
template, Telegram through ``build_telegram_message`` and the audit log
stores ``to_record``.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from farewatch.utils.price_utils import round_half_up


class NotificationType(str, Enum):
    PRICE_TARGET = "PRICE_TARGET"
    NEW_LOW = "NEW_LOW"
    PRICE_DROP = "PRICE_DROP"
    ALERT_TRIGGERED = "ALERT_TRIGGERED"


class Channel(str, Enum):
    EMAIL = "EMAIL"
    TELEGRAM = "TELEGRAM"


@dataclass
class AlertPayload:
    """Everything a channel needs to describe one price event."""

    type: NotificationType
    title: str
    origin: str
    destination: str
    departure_date: str
    current_price: float
    currency: str = "USD"
    return_date: Optional[str] = None
    previous_price: Optional[float] = None
    lowest_price: Optional[float] = None
    price_target: Optional[float] = None
    airlines: List[str] = field(default_factory=list)
    is_new_low: bool = False
    hit_target: bool = False
    task_id: Optional[int] = None
    alert_id: Optional[int] = None

    @property
    def route(self) -> str:
        return f"{self.origin} → {self.destination}"

    @property
    def price_drop(self) -> Optional[int]:
        """Whole-unit drop from the previous price, when the price fell."""
        if self.previous_price is None or self.current_price >= self.previous_price:
            return None
        return int(round_half_up(self.previous_price - self.current_price))

    @property
    def dates(self) -> str:
        if self.return_date:
            return f"{self.departure_date} - {self.return_date}"
        return f"{self.departure_date} (One way)"

    def to_record(self) -> Dict[str, Any]:
        """JSON payload stored in the notification audit log."""
        return {
            "price": self.current_price,
            "previous_price": self.previous_price,
            "lowest_price": self.lowest_price,
            "price_target": self.price_target,
            "message": build_notification_message(self),
            "origin": self.origin,
            "destination": self.destination,
            "airlines": list(self.airlines),
        }


def _money(value: float) -> str:
    return f"${int(round_half_up(value))}"


def _target(value: Optional[float]) -> str:
    if value is None:
        return "-"
    return f"${value:g}"


def build_notification_message(payload: AlertPayload) -> str:
    """One-line summary used in the audit log and the API."""
    price = _money(payload.current_price)

    if payload.type == NotificationType.PRICE_TARGET:
        return f"{payload.route} hit price target of {_target(payload.price_target)} - now {price}"
    if payload.type == NotificationType.NEW_LOW:
        return f"{payload.route} reached new low price: {price}"
    if payload.type == NotificationType.PRICE_DROP:
        return f"{payload.route} dropped ${payload.price_drop or 0} to {price}"
    return f"{payload.route} is now {price} (target {_target(payload.price_target)})"


def build_subject(payload: AlertPayload) -> str:
    """Email subject line."""
    price = _money(payload.current_price)

    if payload.hit_target:
        return f"Price Alert: {payload.route} hit your target of {_target(payload.price_target)}!"
    if payload.is_new_low:
        return f"New Low Price: {payload.route} is now {price}"
    if payload.price_drop:
        return f"Price Drop: {payload.route} down ${payload.price_drop} to {price}"
    return f"Price Update: {payload.route} - {price}"


def build_telegram_message(payload: AlertPayload) -> str:
    """HTML-formatted Telegram message (``parse_mode=HTML``)."""
    if payload.hit_target:
        header = "🎯 <b>TARGET PRICE HIT!</b>"
    elif payload.is_new_low:
        header = "📉 <b>NEW LOW PRICE!</b>"
    elif payload.price_drop:
        header = "💰 <b>PRICE DROP!</b>"
    else:
        header = "✈️ <b>Price Update</b>"

    parts = [
        header,
        "",
        f"<b>{_escape(payload.title)}</b>",
        payload.route,
        "",
        f"💵 <b>{_money(payload.current_price)}</b> {payload.currency}",
    ]

    if payload.price_drop:
        parts.append(
            f"📊 Was {_money(payload.previous_price)} (Save ${payload.price_drop})"
        )
    if payload.lowest_price is not None and payload.lowest_price < payload.current_price:
        parts.append(f"📉 Lowest seen: {_money(payload.lowest_price)}")
    if payload.price_target is not None:
        status = "✅" if payload.hit_target else "⏳"
        parts.append(f"{status} Target: {_target(payload.price_target)}")

    parts.append("")
    parts.append(f"📅 {payload.dates}")
    if payload.airlines:
        parts.append(f"🛫 {', '.join(payload.airlines)}")

    return "\n".join(parts)


def _escape(text: str) -> str:
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
