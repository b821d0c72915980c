"""
Status store adapter: one JSON status record per node, keyed
``node:<node_id>:<short_name>``.
"""

import json
from dataclasses import dataclass
from typing import List, Optional, Tuple

import structlog

from node_monitor.core.exceptions import StoreError
from node_monitor.monitor.state import NodeStatus, Unknown, status_from_record, status_to_record
from node_monitor.storage.kv_store import KeyValueStore

logger = structlog.get_logger(__name__)

KEY_PREFIX = "node"


def node_key(node_id: str, short_name: str) -> str:
    return f"{KEY_PREFIX}:{node_id}:{short_name}"


def parse_node_key(key: str) -> Optional[Tuple[str, str]]:
    """Return (node_id, short_name), or None for keys of another shape"""
    parts = key.split(":")
    if len(parts) != 3 or parts[0] != KEY_PREFIX:
        return None
    return parts[1], parts[2]


@dataclass(frozen=True)
class StoredStatus:
    node_id: str
    short_name: str
    record: dict


class StatusStore:
    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    def get(self, node_id: str, short_name: str) -> NodeStatus:
        """
        Load the status for a node; Unknown when nothing is stored.

        Raises:
            StoreError: if the backend fails or the stored value cannot be decoded
        """
        key = node_key(node_id, short_name)
        raw = self.kv.get(key)
        if raw is None:
            return Unknown()
        try:
            return status_from_record(json.loads(raw))
        except (ValueError, TypeError, OverflowError) as e:
            raise StoreError(f"Corrupt status record at {key}: {e}") from e

    def put(self, node_id: str, short_name: str, status: NodeStatus) -> None:
        key = node_key(node_id, short_name)
        record = status_to_record(status)
        self.kv.put(key, json.dumps(record))
        logger.debug("Status record written", kv_key=key, record=record)

    def list_all(self) -> List[StoredStatus]:
        """
        Every well-formed record in the store, unordered.

        Keys of an unexpected shape and values that are not JSON objects are
        skipped with a warning. Backend failures propagate as StoreError.
        """
        entries = []
        for key in self.kv.list_keys(f"{KEY_PREFIX}:"):
            parsed = parse_node_key(key)
            if parsed is None:
                logger.warning("Skipping key with unexpected format", kv_key=key)
                continue

            raw = self.kv.get(key)
            if raw is None:
                continue
            try:
                record = json.loads(raw)
                if not isinstance(record, dict):
                    raise ValueError("record is not an object")
            except ValueError as e:
                logger.error("Error processing status entry", kv_key=key, value=raw, error=str(e))
                continue

            node_id, short_name = parsed
            entries.append(StoredStatus(node_id=node_id, short_name=short_name, record=record))
        return entries
