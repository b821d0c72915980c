"""
Tag-based selection of the nodes to monitor
"""

from typing import Iterable, List, Sequence

from node_monitor.monitor.observation import NodeObservation


def is_monitored(node: NodeObservation, monitor_tags: Sequence[str]) -> bool:
    """True when no tags are configured or the node carries any of them"""
    if not monitor_tags:
        return True
    return any(tag in monitor_tags for tag in node.tags)


def filter_monitored(nodes: Iterable[NodeObservation], monitor_tags: Sequence[str]) -> List[NodeObservation]:
    return [node for node in nodes if is_monitored(node, monitor_tags)]
