"""
Epoch-millisecond helpers shared by the monitor, the stores and the API
"""

import time
from datetime import datetime, timezone
from typing import Optional


def utc_now_ms() -> int:
    return int(time.time() * 1000)


def datetime_from_ms(epoch_ms: int) -> datetime:
    return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc)


def format_epoch_ms(epoch_ms: Optional[int]) -> Optional[str]:
    """ISO-8601 UTC string with millisecond precision; 0/None become None"""
    if not epoch_ms:
        return None
    return datetime_from_ms(epoch_ms).isoformat(timespec="milliseconds").replace("+00:00", "Z")
