"""Sliding-window rate limiter.

Each limiter keeps, per key, the timestamps (ms since epoch) of admitted
attempts. A check prunes timestamps that fell out of the window, then
admits and records the attempt if fewer than ``max_attempts`` remain.
Rejected attempts are not recorded, so hammering a locked key does not
extend the lockout.

Limiters are plain instances (one per policy) created in the app lifespan
and injected into routes; see :func:`build_rate_limiters`.
"""

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)

MINUTE_MS = 60 * 1000


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    retry_after_ms: int | None = None

    @property
    def retry_after_seconds(self) -> int:
        """Retry delay rounded up to whole seconds (for Retry-After headers)."""
        if not self.retry_after_ms:
            return 0
        return -(-self.retry_after_ms // 1000)


@dataclass(frozen=True)
class RateLimitPolicy:
    max_attempts: int
    window_ms: int


SIGN_IN_POLICY = RateLimitPolicy(max_attempts=5, window_ms=15 * MINUTE_MS)
SIGN_UP_POLICY = RateLimitPolicy(max_attempts=10, window_ms=60 * MINUTE_MS)
GLOBAL_PASSWORD_POLICY = RateLimitPolicy(max_attempts=10, window_ms=15 * MINUTE_MS)
SYNC_TRIGGER_POLICY = RateLimitPolicy(max_attempts=10, window_ms=15 * MINUTE_MS)

# The single-password login shares one bucket across every client.
GLOBAL_PASSWORD_KEY = "global"


def _now_ms() -> int:
    return int(time.time() * 1000)


def normalize_email(email: str) -> str:
    """Canonical rate-limit key for an email address."""
    return email.strip().lower()


class RateLimiter:
    """In-memory sliding-window limiter, safe to share across threads."""

    def __init__(self, clock: Callable[[], int] | None = None):
        """
        Args:
            clock: Returns the current time in ms since epoch. Injectable
                   so tests can move time without sleeping.
        """
        self._clock = clock or _now_ms
        self._attempts: dict[str, deque[int]] = {}
        self._lock = threading.Lock()

    def check_limit(self, key: str, max_attempts: int, window_ms: int) -> RateLimitResult:
        """Admit or reject one attempt for ``key``.

        Returns:
            ``RateLimitResult(allowed=True)`` when admitted (and recorded),
            otherwise ``allowed=False`` with the ms until the oldest
            recorded attempt leaves the window.
        """
        with self._lock:
            now = self._clock()
            cutoff = now - window_ms
            attempts = self._attempts.get(key)
            if attempts is None:
                attempts = deque()
                self._attempts[key] = attempts

            while attempts and attempts[0] <= cutoff:
                attempts.popleft()

            if len(attempts) < max_attempts:
                attempts.append(now)
                return RateLimitResult(allowed=True)

            retry_after_ms = attempts[0] + window_ms - now
        logger.warning("Rate limit exceeded for key %r (retry in %dms)", key, retry_after_ms)
        return RateLimitResult(allowed=False, retry_after_ms=retry_after_ms)

    def check(self, key: str, policy: RateLimitPolicy) -> RateLimitResult:
        """:meth:`check_limit` with the limits taken from ``policy``."""
        return self.check_limit(key, policy.max_attempts, policy.window_ms)

    def reset(self, key: str | None = None) -> None:
        """Forget one key, or every key when ``key`` is None."""
        with self._lock:
            if key is None:
                self._attempts.clear()
            else:
                self._attempts.pop(key, None)

    @property
    def size(self) -> int:
        """Number of keys currently tracked."""
        with self._lock:
            return len(self._attempts)


@dataclass
class RateLimiters:
    """One limiter per policy, held on ``app.state.rate_limiters``."""

    sign_in: RateLimiter
    sign_up: RateLimiter
    global_password: RateLimiter
    sync_trigger: RateLimiter

    def check_sign_in(self, email: str) -> RateLimitResult:
        return self.sign_in.check(normalize_email(email), SIGN_IN_POLICY)

    def check_sign_up(self, email: str) -> RateLimitResult:
        return self.sign_up.check(normalize_email(email), SIGN_UP_POLICY)

    def check_global_password(self) -> RateLimitResult:
        return self.global_password.check(GLOBAL_PASSWORD_KEY, GLOBAL_PASSWORD_POLICY)

    def check_sync_trigger(self, client_key: str) -> RateLimitResult:
        return self.sync_trigger.check(client_key, SYNC_TRIGGER_POLICY)


def build_rate_limiters(clock: Callable[[], int] | None = None) -> RateLimiters:
    """Create a fresh set of limiters sharing one clock."""
    return RateLimiters(
        sign_in=RateLimiter(clock),
        sign_up=RateLimiter(clock),
        global_password=RateLimiter(clock),
        sync_trigger=RateLimiter(clock),
    )
