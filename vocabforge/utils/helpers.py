"""Utility functions."""

import time
from datetime import datetime, timezone

MS_PER_MINUTE = 60_000
MS_PER_DAY = 86_400_000


def now_ms() -> int:
    """Current wall-clock time as epoch milliseconds."""
    return int(time.time() * 1000)


def day_index(timestamp_ms: int) -> int:
    """Local calendar day number for a timestamp (for streak counting)."""
    moment = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).astimezone()
    return moment.date().toordinal()
