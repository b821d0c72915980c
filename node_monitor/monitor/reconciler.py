"""
Node status reconciliation.

``reconcile`` is a pure function: given what was observed this poll and what
was stored after the previous one, it decides which alert to send (if any),
what the new status is, and whether that status must be written back. The
caller performs the I/O.

    prior    observed   alert          new status              write
    Unknown  online     -              Online                  yes
    Unknown  offline    OFFLINE        Offline(now, now)       yes
    Online   online     -              Online                  no
    Online   offline    OFFLINE        Offline(now, now)       yes
    Offline  offline    - / REMINDER   unchanged / alert=now   no / yes
    Offline  online     RECOVERED      Online                  yes

Reminders are spaced from the previous alert, not from the start of the
outage; outage durations are always measured from ``Offline.since``.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from node_monitor.monitor.classifier import round_half_up
from node_monitor.monitor.observation import NodeObservation
from node_monitor.monitor.state import NodeStatus, Offline, Online, Unknown

MS_PER_MINUTE = 60 * 1000


class AlertKind(str, Enum):
    OFFLINE = "OFFLINE"
    STILL_OFFLINE = "STILL_OFFLINE"
    RECOVERED = "RECOVERED"


@dataclass(frozen=True)
class AlertIntent:
    kind: AlertKind
    node_name: str
    last_seen: str
    minutes_since_seen: int
    outage_ms: int = 0
    outage_known: bool = True

    @property
    def outage_minutes(self) -> int:
        return round_half_up(self.outage_ms / MS_PER_MINUTE)


@dataclass(frozen=True)
class Decision:
    alert: Optional[AlertIntent]
    status: NodeStatus
    should_persist: bool


def _alert(kind: AlertKind, observation: NodeObservation, outage_ms: int = 0, outage_known: bool = True) -> AlertIntent:
    return AlertIntent(
        kind=kind,
        node_name=observation.short_name,
        last_seen=observation.last_seen,
        minutes_since_seen=observation.minutes_since_seen,
        outage_ms=outage_ms,
        outage_known=outage_known,
    )


def reconcile(
    observation: NodeObservation,
    prior: NodeStatus,
    now: int,
    reminder_interval_minutes: int,
) -> Decision:
    """
    Decide the alert and the next status for one node.

    Args:
        observation: the node as seen in this poll
        prior: the stored status (Unknown if none)
        now: current time, epoch milliseconds
        reminder_interval_minutes: minimum spacing between alerts while down

    Returns:
        Decision with the alert to send, the new status and whether to write it
    """
    if observation.is_online:
        if isinstance(prior, Offline):
            outage_ms = now - (prior.since or now)
            return Decision(
                alert=_alert(AlertKind.RECOVERED, observation, outage_ms, outage_known=bool(prior.since)),
                status=Online(),
                should_persist=True,
            )
        if isinstance(prior, Unknown):
            return Decision(alert=None, status=Online(), should_persist=True)
        return Decision(alert=None, status=prior, should_persist=False)

    if not isinstance(prior, Offline):
        return Decision(
            alert=_alert(AlertKind.OFFLINE, observation),
            status=Offline(since=now, last_alert_at=now),
            should_persist=True,
        )

    if now - prior.last_alert_at < reminder_interval_minutes * MS_PER_MINUTE:
        return Decision(alert=None, status=prior, should_persist=False)

    since = prior.since or now
    return Decision(
        alert=_alert(AlertKind.STILL_OFFLINE, observation, now - since),
        status=Offline(since=since, last_alert_at=now),
        should_persist=True,
    )
