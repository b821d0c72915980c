"""
Key-value entry model backing the status store and the token cache
"""

from sqlalchemy import Column, String, DateTime, Text
from sqlalchemy.sql import func
from node_monitor.database.connection import Base

class KVEntry(Base):
    """One value per (namespace, key); expires_at is optional"""

    __tablename__ = "kv_entries"

    namespace = Column(String(100), primary_key=True)
    key = Column(String(512), primary_key=True)
    value = Column(Text, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=True, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<KVEntry(namespace={self.namespace}, key={self.key})>"
