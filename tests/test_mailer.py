"""Tests for SMTP email delivery."""

import smtplib
from unittest.mock import MagicMock, patch

import pytest

from accounts.config import Settings
from accounts.errors import DeliveryError
from accounts.services.mailer import Mailer


@pytest.fixture
def settings():
    return Settings(
        smtp_host="smtp.example.com",
        smtp_port=465,
        smtp_username="noreply@example.com",
        smtp_password="app-password",
    )


def test_send_html_email(settings):
    with patch("accounts.services.mailer.smtplib.SMTP_SSL") as mock_smtp:
        smtp = MagicMock()
        mock_smtp.return_value.__enter__.return_value = smtp

        Mailer(settings).send("user@example.com", "Password Reset OTP", "<p>123456</p>")

    mock_smtp.assert_called_once_with("smtp.example.com", 465, timeout=10.0)
    smtp.login.assert_called_once_with("noreply@example.com", "app-password")
    message = smtp.send_message.call_args.args[0]
    assert message["To"] == "user@example.com"
    assert message["From"] == "noreply@example.com"
    assert message["Subject"] == "Password Reset OTP"
    html_part = message.get_body(preferencelist=("html",))
    assert "<p>123456</p>" in html_part.get_content()


def test_mail_from_overrides_sender(settings):
    settings.mail_from = "Accounts <accounts@example.com>"
    with patch("accounts.services.mailer.smtplib.SMTP_SSL") as mock_smtp:
        smtp = MagicMock()
        mock_smtp.return_value.__enter__.return_value = smtp
        Mailer(settings).send("user@example.com", "Hi", "<p>Hi</p>")

    assert smtp.send_message.call_args.args[0]["From"] == "Accounts <accounts@example.com>"


def test_smtp_failure_raises_delivery_error(settings):
    with patch("accounts.services.mailer.smtplib.SMTP_SSL") as mock_smtp:
        smtp = MagicMock()
        smtp.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad credentials")
        mock_smtp.return_value.__enter__.return_value = smtp

        with pytest.raises(DeliveryError):
            Mailer(settings).send("user@example.com", "Hi", "<p>Hi</p>")


def test_connection_failure_raises_delivery_error(settings):
    with patch("accounts.services.mailer.smtplib.SMTP_SSL", side_effect=OSError("refused")):
        with pytest.raises(DeliveryError):
            Mailer(settings).send("user@example.com", "Hi", "<p>Hi</p>")


def test_unconfigured_mailer_raises():
    mailer = Mailer(Settings(smtp_host=None, smtp_username=None, smtp_password=None))
    assert not mailer.is_configured
    with pytest.raises(DeliveryError, match="not configured"):
        mailer.send("user@example.com", "Hi", "<p>Hi</p>")
