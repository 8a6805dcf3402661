"""
Price alert notifications for FareWatch (email and Telegram).
"""

from farewatch.notifications.email_sender import EmailNotifier, create_email_notifier
from farewatch.notifications.messages import AlertPayload, Channel, NotificationType
from farewatch.notifications.notification_service import (
    DeliveryResult,
    NotificationDispatcher,
    should_notify,
)
from farewatch.notifications.telegram import TelegramNotifier

__all__ = [
    "AlertPayload",
    "Channel",
    "DeliveryResult",
    "EmailNotifier",
    "NotificationDispatcher",
    "NotificationType",
    "TelegramNotifier",
    "create_email_notifier",
    "should_notify",
]
