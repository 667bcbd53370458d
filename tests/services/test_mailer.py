# mypy: ignore-errors
# tests/services/test_mailer.py
"""E-mail delivery over SMTP."""

import logging
from unittest.mock import MagicMock

from commflock.core.settings import Settings
from commflock.services import mailer
from commflock.services.mailer import RESET_SUBJECT, EmailSender


def _settings(**overrides) -> Settings:
    values = {"SECRET_KEY": "x", "PUBLIC_BASE_URL": "https://flock.example"}
    values.update(overrides)
    return Settings(**values)


def test_unconfigured_sender_logs_link(caplog) -> None:
    sender = EmailSender(_settings())
    with caplog.at_level(logging.WARNING, logger="commflock.services.mailer"):
        url = sender.send_password_reset("bob@example.com", "bob", "abc123")
    assert url == "https://flock.example/reset-password?token=abc123"
    assert "abc123" in caplog.text


def test_ssl_delivery(monkeypatch) -> None:
    smtp_ssl = MagicMock()
    monkeypatch.setattr(mailer.smtplib, "SMTP_SSL", smtp_ssl)
    sender = EmailSender(
        _settings(SMTP_HOST="smtp.example", SMTP_USER="mailer", SMTP_PASSWORD="pw")
    )

    sender.send_password_reset("bob@example.com", "bob", "abc123")

    server = smtp_ssl.return_value.__enter__.return_value
    server.login.assert_called_once_with("mailer", "pw")
    message = server.send_message.call_args.args[0]
    assert message["To"] == "bob@example.com"
    assert message["Subject"] == RESET_SUBJECT
    assert "token=abc123" in message.get_content()


def test_starttls_delivery(monkeypatch) -> None:
    smtp = MagicMock()
    monkeypatch.setattr(mailer.smtplib, "SMTP", smtp)
    sender = EmailSender(
        _settings(
            SMTP_HOST="smtp.example",
            SMTP_PORT=587,
            SMTP_USER="mailer",
            SMTP_PASSWORD="pw",
            SMTP_SECURITY="starttls",
            SMTP_FROM="noreply@flock.example",
        )
    )

    sender.send("carol@example.com", "Hello", "Body")

    smtp.assert_called_once_with("smtp.example", 587, timeout=20.0)
    server = smtp.return_value.__enter__.return_value
    server.starttls.assert_called_once()
    assert server.send_message.call_args.args[0]["From"] == "noreply@flock.example"
