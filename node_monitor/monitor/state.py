"""
Per-node status as a tagged variant.

``Unknown`` means the node was never recorded, ``Online`` carries no
timestamps, and ``Offline`` carries the start of the outage episode and the
time of the most recent alert for it. The persisted JSON form is
``{"state": "ONLINE"|"OFFLINE"|null, "alertTs": ms, "firstDownTs": ms}`` with
0 standing for "absent".
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Union


class NodeState(str, Enum):
    ONLINE = "ONLINE"
    OFFLINE = "OFFLINE"


@dataclass(frozen=True)
class Unknown:
    pass


@dataclass(frozen=True)
class Online:
    pass


@dataclass(frozen=True)
class Offline:
    since: int  # epoch ms; 0 only when decoded from a damaged record
    last_alert_at: int  # epoch ms


NodeStatus = Union[Unknown, Online, Offline]


def status_to_record(status: NodeStatus) -> Dict[str, Any]:
    if isinstance(status, Offline):
        return {"state": NodeState.OFFLINE.value, "alertTs": status.last_alert_at, "firstDownTs": status.since}
    if isinstance(status, Online):
        return {"state": NodeState.ONLINE.value, "alertTs": 0, "firstDownTs": 0}
    return {"state": None, "alertTs": 0, "firstDownTs": 0}


def status_from_record(record: Dict[str, Any]) -> NodeStatus:
    """
    Decode a stored record.

    Raises:
        ValueError: if the record is not a mapping or names an unknown state
    """
    if not isinstance(record, dict):
        raise ValueError(f"Status record must be an object, got {type(record).__name__}")

    state = record.get("state")
    if state is None:
        return Unknown()
    if state == NodeState.ONLINE.value:
        return Online()
    if state == NodeState.OFFLINE.value:
        return Offline(
            since=int(record.get("firstDownTs") or 0),
            last_alert_at=int(record.get("alertTs") or 0),
        )
    raise ValueError(f"Unknown node state {state!r}")
