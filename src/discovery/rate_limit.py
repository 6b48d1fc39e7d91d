"""Rate-limit snapshots and the wait computed before retrying a limited call."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Mapping, Optional

from .config import RATE_LIMIT_WINDOW_SEC


def _header_int(headers: Mapping[str, str], name: str) -> int:
    value = headers.get(name)
    if value is None:
        return 0
    try:
        return int(str(value).strip())
    except ValueError:
        return 0


@dataclass(frozen=True)
class RateLimit:
    """Call budget reported by one API response; `reset` is epoch seconds."""

    limit: int
    remaining: int
    reset: int

    @classmethod
    def from_headers(cls, headers: Optional[Mapping[str, str]]) -> "RateLimit":
        headers = headers or {}
        return cls(
            limit=_header_int(headers, "X-RateLimit-Limit"),
            remaining=_header_int(headers, "X-RateLimit-Remaining"),
            reset=_header_int(headers, "X-RateLimit-Reset"),
        )


def time_to_retry(rate: RateLimit, now: Optional[float] = None) -> float:
    """Seconds to wait so the remaining budget is spread over the window left.

    A reset instant in the past or more than one window ahead means the clock
    is off, so the window is assumed to have just started with the full limit.
    """
    now = time.time() if now is None else now
    time_to_reset = rate.reset - now
    remaining = rate.remaining
    if time_to_reset < 0 or time_to_reset > RATE_LIMIT_WINDOW_SEC:
        time_to_reset = RATE_LIMIT_WINDOW_SEC
        remaining = rate.limit

    return time_to_reset / (max(remaining, 0) + 1)


__all__ = ["RateLimit", "time_to_retry"]
