"""Client order id generation."""

import itertools
import re
import secrets
from typing import Callable, Optional

from ..utils.time import current_time_ms

MAX_CLIENT_ORDER_ID_LENGTH = 36

_DISALLOWED = re.compile(r"[^A-Za-z0-9_.:/-]")
_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"
_RANDOM_WIDTH = 4

_sequence = itertools.count()


def to_base36(value: int) -> str:
    """Lowercase base-36 rendering of a non-negative integer."""
    if value < 0:
        raise ValueError("value must be non-negative")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


def create_client_order_id(
    prefix: str = "bot",
    time_source: Optional[Callable[[], int]] = None,
) -> str:
    """
    Create a client order id of the form {prefix}_{epochMs}_{base36}.

    The base-36 suffix is a process-wide sequence number followed by a fixed
    width random tail, so two ids from the same process never collide even
    within one millisecond. Characters outside the exchange's allowed set are
    stripped from the prefix, and the prefix is shortened to keep the id
    within 36 characters.

    Args:
        prefix: Caller tag, e.g. "bot"
        time_source: Millisecond clock, defaults to wall-clock time

    Returns:
        Client order id
    """
    clean_prefix = _DISALLOWED.sub("", prefix)
    if not clean_prefix:
        raise ValueError(f"Client order id prefix has no allowed characters: {prefix!r}")

    epoch_ms = (time_source or current_time_ms)()
    tail = to_base36(secrets.randbelow(36 ** _RANDOM_WIDTH)).rjust(_RANDOM_WIDTH, "0")
    suffix = f"{to_base36(next(_sequence))}{tail}"

    body = f"_{epoch_ms}_{suffix}"
    room = MAX_CLIENT_ORDER_ID_LENGTH - len(body)
    if room < 1:
        raise ValueError("Client order id would exceed the maximum length")

    return f"{clean_prefix[:room]}{body}"
