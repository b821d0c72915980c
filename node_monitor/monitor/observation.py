"""
One node as observed in a single poll of the tailnet
"""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class NodeObservation:
    node_id: str
    name: str
    last_seen: str
    is_online: bool
    minutes_since_seen: int
    tags: List[str] = field(default_factory=list)
    hostname: Optional[str] = None
    os: Optional[str] = None
    address: Optional[str] = None

    @property
    def short_name(self) -> str:
        """Display name up to the first dot (MagicDNS names are FQDNs)"""
        return self.name.split(".")[0]
