"""
In-memory rate limiting.

Usage:
    from .rate_limit import login_limiter, pretest_limiter

    # brute force protection of login
    allowed, wait_time = login_limiter.check(ip_address)
    login_limiter.record_failure(ip_address)
    login_limiter.clear(ip_address)

    # fixed window quota of an action
    allowed, wait_time = pretest_limiter.hit(username, 'add_record')
"""

import time
from threading import Lock
from typing import Callable, Dict, Hashable, Optional, Tuple

from config import (
    PRETEST_RATE_LIMIT_MAX,
    PRETEST_RATE_LIMIT_PERIOD,
    RATE_LIMIT_ENABLED,
    RATE_LIMIT_LOCKOUT_SECONDS,
    RATE_LIMIT_MAX_ATTEMPTS,
)

__all__ = (
    'RateLimiter',
    'FixedWindowLimiter',
    'login_limiter',
    'pretest_limiter',
)


class RateLimiter:
    """
    Lock a key out after too many failures.

    For production with multiple workers, consider using a shared store instead.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._attempts = {}  # {key: (failure_count, lockout_until)}
        self._lock = Lock()
        self._clock = clock
        self.max_attempts = RATE_LIMIT_MAX_ATTEMPTS
        self.lockout_duration = RATE_LIMIT_LOCKOUT_SECONDS
        self.enabled = RATE_LIMIT_ENABLED

    def check(self, key: str) -> Tuple[bool, float]:
        """
        Returns:
            tuple: (allowed, seconds until the lockout expires)
        """
        if not self.enabled:
            return True, 0
        with self._lock:
            failures, lockout_until = self._attempts.get(key, (0, None))
            if lockout_until is None:
                return True, 0
            now = self._clock()
            if now >= lockout_until:
                self._attempts[key] = (0, None)
                return True, 0
            return False, lockout_until - now

    def record_failure(self, key: str) -> None:
        if not self.enabled:
            return
        with self._lock:
            failures, lockout_until = self._attempts.get(key, (0, None))
            # already locked out
            if lockout_until and self._clock() < lockout_until:
                return
            failures += 1
            if failures >= self.max_attempts:
                lockout_until = self._clock() + self.lockout_duration
            else:
                lockout_until = None
            self._attempts[key] = (failures, lockout_until)

    def clear(self, key: Optional[str] = None) -> None:
        with self._lock:
            if key is None:
                self._attempts.clear()
            else:
                self._attempts.pop(key, None)


class FixedWindowLimiter:
    """
    Allow at most `max_hits` hits of an (subject, action) pair per
    `period` seconds. The window starts at the first hit.
    """

    def __init__(
        self,
        period: float,
        max_hits: int,
        enabled: bool = RATE_LIMIT_ENABLED,
        clock: Callable[[], float] = time.time,
    ):
        self.period = period
        self.max_hits = max_hits
        self.enabled = enabled
        self._clock = clock
        self._lock = Lock()
        self._windows: Dict[Tuple[Hashable, str], Tuple[float, int]] = {}

    def hit(self, subject: Hashable, action: str) -> Tuple[bool, float]:
        """
        Count one hit if the quota allows it.

        Returns:
            tuple: (allowed, seconds until the window resets if rejected)
        """
        if not self.enabled:
            return True, 0
        key = (subject, action)
        with self._lock:
            now = self._clock()
            start, count = self._windows.get(key, (now, 0))
            if now - start >= self.period:
                start, count = now, 0
            if count >= self.max_hits:
                return False, start + self.period - now
            self._windows[key] = (start, count + 1)
            return True, 0

    def clear(
        self,
        subject: Optional[Hashable] = None,
        action: Optional[str] = None,
    ) -> None:
        with self._lock:
            if subject is None:
                self._windows.clear()
            else:
                self._windows.pop((subject, action), None)


# Global instances for use across the application
login_limiter = RateLimiter()
pretest_limiter = FixedWindowLimiter(
    PRETEST_RATE_LIMIT_PERIOD,
    PRETEST_RATE_LIMIT_MAX,
)
