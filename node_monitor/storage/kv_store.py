"""
Key-value store capability used by the status store and the token cache.

Two backends are provided: ``SqlKeyValueStore`` persists to the ``kv_entries``
table through SQLAlchemy, ``InMemoryKeyValueStore`` keeps values in a dict and
is used by tests and by ``STORE_BACKEND=memory``. Both raise ``StoreError`` for
backend failures and treat expired entries as absent.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Tuple

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from node_monitor.core.exceptions import StoreError
from node_monitor.models.kv_entry import KVEntry

logger = structlog.get_logger(__name__)

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _is_expired(expires_at: Optional[datetime], now: datetime) -> bool:
    if expires_at is None:
        return False
    if expires_at.tzinfo is None:
        # SQLite drops tzinfo; values are always written in UTC
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return expires_at <= now


class KeyValueStore(ABC):
    """Minimal get/put/list capability over string values"""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def put(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        ...

    @abstractmethod
    def list_keys(self, prefix: str = "") -> List[str]:
        ...


class InMemoryKeyValueStore(KeyValueStore):
    def __init__(self, clock: Clock = _utc_now):
        self._clock = clock
        self._entries: Dict[str, Tuple[str, Optional[datetime]]] = {}

    def get(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if _is_expired(expires_at, self._clock()):
            del self._entries[key]
            return None
        return value

    def put(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        expires_at = self._clock() + timedelta(seconds=ttl_seconds) if ttl_seconds else None
        self._entries[key] = (value, expires_at)

    def list_keys(self, prefix: str = "") -> List[str]:
        now = self._clock()
        return [
            key for key, (_, expires_at) in self._entries.items()
            if key.startswith(prefix) and not _is_expired(expires_at, now)
        ]


class SqlKeyValueStore(KeyValueStore):
    """One namespace of the kv_entries table"""

    def __init__(self, namespace: str, session_factory: sessionmaker, clock: Clock = _utc_now):
        self.namespace = namespace
        self._session_factory = session_factory
        self._clock = clock

    def get(self, key: str) -> Optional[str]:
        try:
            with self._session_factory() as session:
                entry = session.get(KVEntry, (self.namespace, key))
                if entry is None or _is_expired(entry.expires_at, self._clock()):
                    return None
                return entry.value
        except SQLAlchemyError as e:
            logger.error("KV read failed", namespace=self.namespace, kv_key=key, error=str(e))
            raise StoreError(f"Failed to read {key}: {e}") from e

    def put(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        expires_at = self._clock() + timedelta(seconds=ttl_seconds) if ttl_seconds else None
        try:
            with self._session_factory() as session:
                session.merge(KVEntry(
                    namespace=self.namespace,
                    key=key,
                    value=value,
                    expires_at=expires_at
                ))
                session.commit()
        except SQLAlchemyError as e:
            logger.error("KV write failed", namespace=self.namespace, kv_key=key, error=str(e))
            raise StoreError(f"Failed to write {key}: {e}") from e

    def list_keys(self, prefix: str = "") -> List[str]:
        try:
            with self._session_factory() as session:
                query = session.query(KVEntry.key, KVEntry.expires_at).filter(
                    KVEntry.namespace == self.namespace
                )
                if prefix:
                    query = query.filter(KVEntry.key.startswith(prefix, autoescape=True))
                rows = query.all()
        except SQLAlchemyError as e:
            logger.error("KV list failed", namespace=self.namespace, error=str(e))
            raise StoreError(f"Failed to list keys: {e}") from e

        now = self._clock()
        return [key for key, expires_at in rows if not _is_expired(expires_at, now)]
