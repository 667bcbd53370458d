"""Outbound e-mail delivery over SMTP."""
from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage

from commflock.core.settings import Settings, settings

logger = logging.getLogger(__name__)

RESET_SUBJECT = "Reset your CommFlock password"


class EmailSender:
    """Send transactional mail; without SMTP settings messages are only logged."""

    def __init__(self, config: Settings | None = None) -> None:
        self._settings = config or settings

    def send(self, to_email: str, subject: str, body: str) -> None:
        """Deliver a plain-text message.

        Raises:
            smtplib.SMTPException: If the SMTP server rejects the message
        """
        cfg = self._settings
        if not cfg.smtp_configured:
            logger.warning("SMTP not configured; message to %s not sent", to_email)
            return

        msg = EmailMessage()
        msg["From"] = cfg.smtp_from or cfg.smtp_user
        msg["To"] = to_email
        msg["Subject"] = subject
        msg.set_content(body)

        security = cfg.smtp_security.lower()
        if security in {"ssl", "smtps"}:
            with smtplib.SMTP_SSL(
                cfg.smtp_host, cfg.smtp_port, timeout=cfg.smtp_timeout_seconds
            ) as server:
                server.login(cfg.smtp_user, cfg.smtp_password)
                server.send_message(msg)
            return

        with smtplib.SMTP(cfg.smtp_host, cfg.smtp_port, timeout=cfg.smtp_timeout_seconds) as server:
            server.ehlo()
            if security in {"starttls", "tls"}:
                server.starttls()
                server.ehlo()
            server.login(cfg.smtp_user, cfg.smtp_password)
            server.send_message(msg)

    def send_password_reset(self, to_email: str, username: str, token: str) -> str:
        """Send the reset link for ``token`` and return the link."""
        reset_url = f"{self._settings.public_base_url}/reset-password?token={token}"
        if not self._settings.smtp_configured:
            logger.warning("Email service not configured. Password reset link: %s", reset_url)
            return reset_url

        minutes = self._settings.password_reset_ttl_minutes
        body = (
            f"Hi {username},\n\n"
            "We received a request to reset your password.\n"
            "Open the link below to choose a new one:\n\n"
            f"{reset_url}\n\n"
            f"This link expires in {minutes} minutes. "
            "If you didn't request a password reset, please ignore this email.\n"
        )
        self.send(to_email, RESET_SUBJECT, body)
        return reset_url


def get_email_sender() -> EmailSender:
    """Return an e-mail sender bound to the global settings."""
    return EmailSender()
