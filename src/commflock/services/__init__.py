# src/commflock/services/__init__.py
"""Business logic services for the CommFlock application."""

from .mailer import EmailSender, get_email_sender
from .payments import charge_simulated
from .rate_limit import LimitTier, RateLimiter, get_rate_limiter

__all__ = [
    "EmailSender",
    "LimitTier",
    "RateLimiter",
    "charge_simulated",
    "get_email_sender",
    "get_rate_limiter",
]
