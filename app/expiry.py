"""
Clock and expiry policy shared by every store.

All instants are integer epoch milliseconds.
"""
import time
from typing import Callable, Optional

import config

Clock = Callable[[], int]

MS_PER_SECOND = 1000


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * MS_PER_SECOND)


def default_ttl_ms() -> int:
    return config.MESSAGE_TTL_SECONDS * MS_PER_SECOND


def resolve_expiration(created_at: int, explicit: Optional[int] = None,
                       ttl_ms: Optional[int] = None) -> int:
    """
    Map a creation instant and an optional caller-supplied expiry to an
    absolute expiration instant.

    An explicit value is honoured only when it lies in the future; anything
    else falls back to ``created_at + ttl``.
    """
    if explicit is not None and explicit > created_at:
        return explicit
    if ttl_ms is None:
        ttl_ms = default_ttl_ms()
    return created_at + ttl_ms


def is_expired(expiration_time: Optional[int], now: int) -> bool:
    """A record without an expiration never expires."""
    if expiration_time is None:
        return False
    return expiration_time <= now
