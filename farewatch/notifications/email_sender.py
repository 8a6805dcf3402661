"""
Email notification system with HTML templates.
Sends price alerts for scheduled tasks and standalone price alerts.
"""

import asyncio
import logging
import smtplib
from datetime import date, datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from farewatch.config import Settings
from farewatch.notifications.messages import (
    AlertPayload,
    build_notification_message,
    build_subject,
)
from farewatch.utils.price_utils import format_price

logger = logging.getLogger(__name__)


class EmailNotifier:
    """Email notification system with HTML template support."""

    def __init__(self, settings: Settings, user_email: Optional[str] = None):
        """
        Initialize email notifier.

        Args:
            settings: Application settings with SMTP configuration
            user_email: Default recipient email address (defaults to NOTIFICATION_EMAIL)
        """
        self.smtp_host = settings.smtp_host
        self.smtp_port = settings.smtp_port
        self.smtp_user = settings.smtp_user
        self.smtp_password = settings.smtp_password
        self.from_email = settings.smtp_from_email
        self.from_name = settings.smtp_from_name
        self.user_email = user_email or settings.notification_email

        templates_dir = Path(__file__).parent / "templates"

        self.template_env = Environment(
            loader=FileSystemLoader(str(templates_dir)),
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )

        self.template_env.filters["format_date"] = self._format_date
        self.template_env.filters["format_price"] = format_price

    def _format_date(self, value) -> str:
        """Format a date or ISO date string for display."""
        if isinstance(value, str):
            try:
                value = date.fromisoformat(value)
            except ValueError:
                return value
        return value.strftime("%B %d, %Y")

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_user and self.smtp_password and self.user_email)

    def render_price_alert(self, payload: AlertPayload) -> str:
        """Render the price alert template to HTML."""
        template = self.template_env.get_template("price_alert.html")
        return template.render(
            alert=payload,
            summary=build_notification_message(payload),
            generated_at=datetime.now(),
        )

    async def send_price_alert(self, payload: AlertPayload, to_email: Optional[str] = None) -> bool:
        """
        Send a price alert email.

        Args:
            payload: Price event to describe
            to_email: Recipient email (defaults to user_email)

        Returns:
            True if email sent successfully, False otherwise
        """
        recipient = to_email or self.user_email
        if not recipient:
            logger.error("No recipient email provided for price alert")
            return False

        html_content = self.render_price_alert(payload)
        text_content = build_notification_message(payload)

        # smtplib blocks; keep the event loop free while the message goes out.
        return await asyncio.to_thread(
            self.send_email,
            to_email=recipient,
            subject=build_subject(payload),
            html_body=html_content,
            text_body=text_content,
        )

    def send_email(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: Optional[str] = None,
    ) -> bool:
        """
        Send HTML email via SMTP.

        Args:
            to_email: Recipient email address
            subject: Email subject
            html_body: HTML content
            text_body: Plain text fallback (optional)

        Returns:
            True if email sent successfully, False otherwise
        """
        if not self.smtp_user or not self.smtp_password:
            logger.warning("SMTP credentials not configured, skipping email send")
            return False

        try:
            msg = MIMEMultipart("alternative")
            msg["Subject"] = subject
            msg["From"] = f"{self.from_name} <{self.from_email}>"
            msg["To"] = to_email

            if text_body:
                msg.attach(MIMEText(text_body, "plain", "utf-8"))
            msg.attach(MIMEText(html_body, "html", "utf-8"))

            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=30) as server:
                server.starttls()
                server.login(self.smtp_user, self.smtp_password)
                server.send_message(msg)

            logger.info(f"Email sent successfully to {to_email}: {subject}")
            return True

        except smtplib.SMTPAuthenticationError as e:
            logger.error(
                f"SMTP authentication failed: {e}\n"
                f"Server: {self.smtp_host}:{self.smtp_port}\n"
                f"User: {self.smtp_user}\n"
                f"To fix:\n"
                f"  1. Verify SMTP_USER and SMTP_PASSWORD in .env\n"
                f"  2. For Gmail, use an app-specific password",
                exc_info=True,
            )
            return False
        except (smtplib.SMTPException, OSError) as e:
            logger.error(
                f"SMTP error while sending email to {to_email}: {e}\n"
                f"Server: {self.smtp_host}:{self.smtp_port}\n"
                f"Subject: {subject}\n"
                f"Verify SMTP_HOST and SMTP_PORT in .env",
                exc_info=True,
            )
            return False


def create_email_notifier(settings: Settings, user_email: Optional[str] = None) -> EmailNotifier:
    """Factory function to create an EmailNotifier."""
    return EmailNotifier(settings, user_email)
