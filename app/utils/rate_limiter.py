"""
Rate Limiting

FLOW OVERVIEW
- RateLimiter.check(key, limit, window_ms) → RateLimitResult
  • Fixed window per key: the first hit opens a window of window_ms; hits past
    `limit` inside it are rejected until reset_at.
  • Expired windows are pruned every PRUNE_EVERY checks.
- RateLimiter.enforce(route, limit, window_ms) → (allowed, error_response)
  • Keys on "<route>:<client ip>" for the current request and records the
    rejection metric; error_response is a ready 429 with Retry-After.

The counter map is process-local and unsynchronised; counts reset on restart
and are not shared across instances.
"""

import math
import time
import logging
from dataclasses import dataclass
from functools import wraps
from typing import Dict, Optional, Tuple
from flask import Response, jsonify
from .api_utils import get_client_ip
from .prom_metrics import observe_rate_limited


@dataclass
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: int  # epoch milliseconds
    limit: int

    def retry_after(self, now_ms: Optional[int] = None) -> int:
        """Seconds until the window resets, never less than 1"""
        if now_ms is None:
            now_ms = int(time.time() * 1000)
        return max(1, math.ceil((self.reset_at - now_ms) / 1000))


@dataclass
class _Window:
    count: int
    reset_at: int


class RateLimiter:
    """In-memory fixed-window limiter."""

    PRUNE_EVERY = 200

    def __init__(self, clock=None):
        self.logger = logging.getLogger(__name__)
        self._clock = clock or (lambda: int(time.time() * 1000))
        self._windows: Dict[str, _Window] = {}
        self._checks = 0

    def now_ms(self) -> int:
        return self._clock()

    def check(self, key: str, limit: int, window_ms: int) -> RateLimitResult:
        """
        Count one request against `key`.

        Args:
            key: Composite key, e.g. "lead:203.0.113.9"
            limit: Requests allowed per window
            window_ms: Window length in milliseconds

        Returns:
            RateLimitResult; `allowed` is False once the window is exhausted
        """
        now = self.now_ms()
        self._maybe_prune(now)

        window = self._windows.get(key)
        if window is None or window.reset_at <= now:
            window = _Window(count=0, reset_at=now + window_ms)
            self._windows[key] = window

        if window.count >= limit:
            return RateLimitResult(False, 0, window.reset_at, limit)

        window.count += 1
        return RateLimitResult(True, limit - window.count, window.reset_at, limit)

    def enforce(self, route: str, limit: int, window_ms: int,
                message: str = 'Too many requests. Please try again later.') -> Tuple[bool, Optional[Response]]:
        """
        Check the current request's client against a route budget.

        Returns:
            Tuple of (is_allowed, error_response)
        """
        client_ip = get_client_ip()
        result = self.check(f"{route}:{client_ip}", limit, window_ms)
        if result.allowed:
            return True, None

        retry_after = result.retry_after(self.now_ms())
        self.logger.warning(f"Rate limit exceeded for {route}:{client_ip}; retry in {retry_after}s")
        observe_rate_limited(route)
        response = jsonify({'error': message})
        response.status_code = 429
        response.headers['Retry-After'] = str(retry_after)
        return False, response

    def reset(self) -> None:
        self._windows.clear()
        self._checks = 0

    def _maybe_prune(self, now: int) -> None:
        self._checks += 1
        if self._checks % self.PRUNE_EVERY:
            return
        expired = [key for key, window in self._windows.items() if window.reset_at <= now]
        for key in expired:
            del self._windows[key]


# Global instance
rate_limiter = RateLimiter()


def rate_limit(route: str, limit: int, window_ms: int, message: str = None):
    """Decorator form of RateLimiter.enforce for view functions"""
    def decorator(view):
        @wraps(view)
        def wrapped(*args, **kwargs):
            kwargs_message = {'message': message} if message else {}
            allowed, error_response = rate_limiter.enforce(route, limit, window_ms, **kwargs_message)
            if not allowed:
                return error_response
            return view(*args, **kwargs)
        return wrapped
    return decorator
