"""
Liveness classification from a last-contact timestamp
"""

import math
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Liveness:
    is_online: bool
    minutes_since_seen: int


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def classify(last_seen: datetime, now: datetime, threshold_minutes: float) -> Liveness:
    """
    Online iff the node was seen no more than ``threshold_minutes`` ago.

    The comparison uses the exact elapsed time (a node seen exactly at the
    threshold is online); the reported minutes are rounded for display.
    Both datetimes must be timezone-aware.
    """
    elapsed_minutes = (now - last_seen).total_seconds() / 60
    return Liveness(
        is_online=elapsed_minutes <= threshold_minutes,
        minutes_since_seen=round_half_up(elapsed_minutes),
    )
