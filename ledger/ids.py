"""
Identifier Generator

IDs are plain strings: a fixed-width base36 millisecond timestamp followed
by a base36 random suffix. Because both parts are fixed width, sorting IDs
as strings sorts them by creation time.

DESIGN DECISION: No uniqueness lookup against storage.
Collisions are ruled out by construction: the timestamp prefix separates
milliseconds, and within one millisecond the random part is incremented
instead of redrawn, so IDs from one process are strictly increasing.
"""

import secrets
import threading
import time

_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
_TIME_WIDTH = 9     # 36**9 ms is roughly 3000 years
_RANDOM_WIDTH = 10  # 36**10 > 2**51
_RANDOM_BITS = 50
_RANDOM_LIMIT = 36 ** _RANDOM_WIDTH

_lock = threading.Lock()
_last_ms = -1
_last_random = 0


def _encode(value: int, width: int) -> str:
    """Encode a non-negative integer as zero-padded base36."""
    chars = []
    while value:
        value, rem = divmod(value, 36)
        chars.append(_ALPHABET[rem])
    return "".join(reversed(chars)).rjust(width, "0")


def generate_id() -> str:
    """Return a new time-ordered unique identifier."""
    global _last_ms, _last_random

    now_ms = time.time_ns() // 1_000_000
    with _lock:
        if now_ms > _last_ms:
            _last_ms = now_ms
            _last_random = secrets.randbits(_RANDOM_BITS)
        else:
            # Same millisecond, or the wall clock stepped back.
            _last_random += 1
            if _last_random >= _RANDOM_LIMIT:
                _last_ms += 1
                _last_random = secrets.randbits(_RANDOM_BITS)
        return _encode(_last_ms, _TIME_WIDTH) + _encode(_last_random, _RANDOM_WIDTH)


def id_timestamp_ms(identifier: str) -> int:
    """Recover the millisecond timestamp embedded in an identifier."""
    return int(identifier[:_TIME_WIDTH], 36)
