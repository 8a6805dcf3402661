"""
Telegram Bot API notifier.

Messages go to a single configured chat through ``sendMessage`` with HTML
formatting.
"""

import logging
from typing import Optional

import httpx

from farewatch.config import Settings
from farewatch.exceptions import NotificationException
from farewatch.notifications.messages import AlertPayload, build_telegram_message

logger = logging.getLogger(__name__)

TELEGRAM_API_BASE = "https://api.telegram.org"


class TelegramNotifier:
    """Sends messages through a Telegram bot."""

    def __init__(
        self,
        bot_token: Optional[str],
        chat_id: Optional[str],
        timeout: float = 15.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.timeout = timeout
        self._client = http_client
        self._owns_client = http_client is None

    @classmethod
    def from_settings(cls, settings: Settings) -> "TelegramNotifier":
        return cls(
            bot_token=settings.telegram_bot_token,
            chat_id=settings.telegram_chat_id,
            timeout=settings.notification_timeout_seconds,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.bot_token and self.chat_id)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def send_message(self, text: str, parse_mode: str = "HTML") -> None:
        """
        Post ``text`` to the configured chat.

        Raises:
            NotificationException: Not configured, transport failure, or the
                Bot API answered ``ok: false``
        """
        if not self.is_configured:
            raise NotificationException("Telegram not configured")

        url = f"{TELEGRAM_API_BASE}/bot{self.bot_token}/sendMessage"
        try:
            response = await self._get_client().post(
                url,
                json={
                    "chat_id": self.chat_id,
                    "text": text,
                    "parse_mode": parse_mode,
                    "disable_web_page_preview": True,
                },
            )
        except httpx.HTTPError as e:
            raise NotificationException(f"Telegram request failed: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.status_code != 200 or not data.get("ok"):
            description = data.get("description") or f"HTTP {response.status_code}"
            raise NotificationException(f"Telegram API error: {description}")

        logger.info(f"Telegram message sent to chat {self.chat_id}")

    async def send_price_alert(self, payload: AlertPayload) -> None:
        await self.send_message(build_telegram_message(payload))

    async def send_test_message(self) -> None:
        await self.send_message(
            "✅ <b>FareWatch connected!</b>\n\nYou will receive price alerts here."
        )
