"""Sliding-window rate limiting keyed by client identifier."""

from __future__ import annotations

import logging
import time
import uuid
from collections import deque
from dataclasses import dataclass
from enum import Enum
from threading import Lock

import redis

from commflock.core.settings import Settings, settings

logger = logging.getLogger(__name__)

SWEEP_INTERVAL_SECONDS = 60


class LimitTier(str, Enum):
    """Named limits applied to groups of endpoints."""

    STRICT = "strict"  # signup, password reset requests
    AUTH = "auth"  # login, password reset completion
    API = "api"  # general writes


@dataclass(frozen=True)
class RateLimitRule:
    tier: LimitTier
    limit: int
    window_seconds: int


@dataclass(frozen=True)
class RateLimitResult:
    success: bool
    limit: int
    remaining: int
    reset: float  # epoch seconds when the oldest counted request leaves the window

    def headers(self) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(int(self.reset * 1000)),
        }


def rule_for(tier: LimitTier, config: Settings | None = None) -> RateLimitRule:
    """Return the configured rule for ``tier``."""
    cfg = config or settings
    if tier is LimitTier.STRICT:
        return RateLimitRule(tier, cfg.rate_limit_strict_requests, cfg.rate_limit_strict_window_seconds)
    if tier is LimitTier.AUTH:
        return RateLimitRule(tier, cfg.rate_limit_auth_requests, cfg.rate_limit_auth_window_seconds)
    return RateLimitRule(tier, cfg.rate_limit_api_requests, cfg.rate_limit_api_window_seconds)


class RateLimiter:
    """Sliding-window log limiter.

    Backed by Redis sorted sets when a URL is configured; otherwise (or after
    a Redis failure) an in-process window guarded by a lock is used.
    """

    def __init__(self, redis_url: str | None = None, *, enabled: bool = True) -> None:
        self.enabled = enabled
        self._redis: redis.Redis | None = redis.from_url(redis_url) if redis_url else None
        self._windows: dict[str, deque[float]] = {}
        self._spans: dict[str, int] = {}
        self._last_sweep = 0.0
        self._lock = Lock()

    def check(self, identifier: str, rule: RateLimitRule) -> RateLimitResult:
        """Count one request for ``identifier`` and report whether it is admitted."""
        now = time.time()
        if not self.enabled:
            return RateLimitResult(True, rule.limit, rule.limit, now + rule.window_seconds)

        key = f"ratelimit:{rule.tier.value}:{identifier}"
        if self._redis is not None:
            try:
                return self._check_redis(key, rule, now)
            except redis.RedisError as exc:
                logger.warning("Rate limiter falling back to in-process window: %s", exc)
                self._redis = None
        return self._check_local(key, rule, now)

    def _check_redis(self, key: str, rule: RateLimitRule, now: float) -> RateLimitResult:
        assert self._redis is not None
        member = f"{now}:{uuid.uuid4().hex}"
        # One MULTI block; the count includes this request.
        pipe = self._redis.pipeline(transaction=True)
        pipe.zremrangebyscore(key, 0, now - rule.window_seconds)
        pipe.zadd(key, {member: now})
        pipe.zcard(key)
        pipe.zrange(key, 0, 0, withscores=True)
        pipe.expire(key, rule.window_seconds)
        _, _, count, oldest, _ = pipe.execute()

        reset = (oldest[0][1] if oldest else now) + rule.window_seconds
        if count > rule.limit:
            self._redis.zrem(key, member)
            return RateLimitResult(False, rule.limit, 0, reset)
        return RateLimitResult(True, rule.limit, rule.limit - count, reset)

    def _check_local(self, key: str, rule: RateLimitRule, now: float) -> RateLimitResult:
        with self._lock:
            self._sweep(now)
            window = self._windows.setdefault(key, deque())
            self._spans[key] = rule.window_seconds
            self._prune(window, now - rule.window_seconds)
            reset = (window[0] if window else now) + rule.window_seconds
            if len(window) >= rule.limit:
                return RateLimitResult(False, rule.limit, 0, reset)
            window.append(now)
            return RateLimitResult(True, rule.limit, rule.limit - len(window), reset)

    @staticmethod
    def _prune(window: deque[float], window_start: float) -> None:
        while window and window[0] <= window_start:
            window.popleft()

    def _sweep(self, now: float) -> None:
        """Drop windows whose entries have all expired; caller holds the lock."""
        if now - self._last_sweep < SWEEP_INTERVAL_SECONDS:
            return
        self._last_sweep = now
        for key in list(self._windows):
            window = self._windows[key]
            self._prune(window, now - self._spans.get(key, 0))
            if not window:
                del self._windows[key]
                self._spans.pop(key, None)

    def tracked_identifiers(self) -> int:
        """Return how many in-process windows are currently held."""
        with self._lock:
            return len(self._windows)

    def reset(self) -> None:
        """Forget every in-process window."""
        with self._lock:
            self._windows.clear()
            self._spans.clear()


_LIMITER: RateLimiter | None = None


def get_rate_limiter() -> RateLimiter:
    """Return the process-wide limiter, creating it on first use."""
    global _LIMITER
    if _LIMITER is None:
        _LIMITER = RateLimiter(settings.redis_url, enabled=settings.rate_limit_enabled)
    return _LIMITER
