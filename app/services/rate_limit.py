"""Bounded retry for throttled GitHub calls"""

import logging
import time
from datetime import datetime, timezone
from typing import Callable, Mapping, Optional, Tuple, TypeVar

from app.services.errors import RateLimitError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# GitHub asks clients to wait at least a minute on a secondary limit without headers.
DEFAULT_THROTTLE_WAIT_SECONDS = 60.0


class ThrottleInfo:
    """Throttling metadata carried by a failed response."""

    def __init__(self, status_code: Optional[int], headers: Mapping[str, str], message: str = ""):
        self.status_code = status_code
        self.headers = {str(k).lower(): str(v) for k, v in (headers or {}).items()}
        self.message = message or ""

    @property
    def is_throttled(self) -> bool:
        if self.status_code == 429:
            return True
        if self.status_code != 403:
            return False
        # 403 is also GitHub's "permission denied"; require a rate-limit marker.
        return (
            self.headers.get("x-ratelimit-remaining") == "0"
            or "retry-after" in self.headers
            or "rate limit" in self.message.lower()
        )


def compute_wait(info: ThrottleInfo, now: float) -> Tuple[float, Optional[float]]:
    """Return (wait_seconds, reset_epoch) from retry-after or x-ratelimit-reset."""
    retry_after = info.headers.get("retry-after")
    if retry_after is not None:
        try:
            wait = float(retry_after)
            return wait, now + wait
        except ValueError:
            pass

    reset = info.headers.get("x-ratelimit-reset")
    if reset is not None:
        try:
            reset_epoch = float(reset)
            return reset_epoch - now, reset_epoch
        except ValueError:
            pass

    return DEFAULT_THROTTLE_WAIT_SECONDS, now + DEFAULT_THROTTLE_WAIT_SECONDS


def _epoch_to_utc_naive(epoch: Optional[float]) -> Optional[datetime]:
    if epoch is None:
        return None
    return datetime.fromtimestamp(epoch, tz=timezone.utc).replace(tzinfo=None)


class RateLimitGuard:
    """Wraps one outbound call: on throttling wait and retry once, else raise RateLimitError.

    ``throttle_of`` maps an exception to its ThrottleInfo, or None when the
    exception is not an HTTP failure; such exceptions propagate untouched.
    """

    def __init__(
        self,
        throttle_of: Callable[[BaseException], Optional[ThrottleInfo]],
        *,
        max_wait_seconds: float = 60.0,
        margin_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
    ):
        self.throttle_of = throttle_of
        self.max_wait_seconds = max_wait_seconds
        self.margin_seconds = margin_seconds
        self.sleep = sleep
        self.clock = clock

    def _throttled(self, exc: BaseException) -> Optional[ThrottleInfo]:
        info = self.throttle_of(exc)
        if info is None or not info.is_throttled:
            return None
        return info

    def call(self, fn: Callable[[], T], *, description: str = "GitHub call") -> T:
        try:
            return fn()
        except Exception as e:
            info = self._throttled(e)
            if info is None:
                raise
            wait, reset_epoch = compute_wait(info, self.clock())
            if wait > self.max_wait_seconds:
                logger.error(f"{description}: rate limited for {wait:.0f}s, giving up")
                raise RateLimitError(_epoch_to_utc_naive(reset_epoch), wait) from e

        delay = max(wait, 0.0) + self.margin_seconds
        logger.warning(f"{description}: rate limited, retrying in {delay:.1f}s")
        self.sleep(delay)

        try:
            return fn()
        except Exception as e:
            info = self._throttled(e)
            if info is None:
                raise
            wait, reset_epoch = compute_wait(info, self.clock())
            logger.error(f"{description}: still rate limited after retry")
            raise RateLimitError(_epoch_to_utc_naive(reset_epoch), wait) from e
