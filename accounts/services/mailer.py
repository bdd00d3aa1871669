"""Outgoing email over SMTP."""

import logging
import smtplib
from email.message import EmailMessage

from accounts.config import Settings, get_settings
from accounts.errors import DeliveryError

logger = logging.getLogger(__name__)


class Mailer:
    """Sends HTML email through the configured SMTP server."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    @property
    def is_configured(self) -> bool:
        return self.settings.smtp_configured

    def send(self, to_address: str, subject: str, html_body: str) -> None:
        """Send an email.

        Raises:
            DeliveryError: SMTP is not configured or the server refused the
                message.
        """
        if not self.is_configured:
            logger.error(f"SMTP not configured, cannot send '{subject}'")
            raise DeliveryError("Email delivery is not configured")

        sender = self.settings.mail_from or self.settings.smtp_username
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = sender
        msg["To"] = to_address
        msg.set_content("This message requires an HTML-capable email client.")
        msg.add_alternative(html_body, subtype="html")

        try:
            with smtplib.SMTP_SSL(
                self.settings.smtp_host,
                self.settings.smtp_port,
                timeout=self.settings.smtp_timeout_seconds,
            ) as smtp:
                smtp.login(self.settings.smtp_username, self.settings.smtp_password)
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send '{subject}' to {to_address}: {e}")
            raise DeliveryError() from e

        logger.info(f"Sent '{subject}' to {to_address}")


def get_mailer() -> Mailer:
    """Get a mailer instance."""
    return Mailer(get_settings())
