"""Human readable retry delays for client-facing messages."""

from __future__ import annotations

import math


def format_retry_time(ms: float) -> str:
    """Format a retry delay for display.

    Args:
        ms: Delay in milliseconds (as returned by ``get_retry_after``).

    Returns:
        ``"now"`` for non-positive delays, whole seconds (rounded up) below a
        minute, otherwise whole minutes (rounded up).

    Examples:
        >>> format_retry_time(0)
        'now'
        >>> format_retry_time(800)
        '1 second'
        >>> format_retry_time(61_000)
        '2 minutes'
    """

    if ms <= 0:
        return "now"

    seconds = math.ceil(ms / 1000)
    if seconds < 60:
        return f"{seconds} second{'' if seconds == 1 else 's'}"

    minutes = math.ceil(seconds / 60)
    return f"{minutes} minute{'' if minutes == 1 else 's'}"
