"""
Node status query endpoint
"""

import hmac
from functools import lru_cache
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
import structlog

from node_monitor.core.config import Settings, load_settings
from node_monitor.core.exceptions import ConfigurationError, StoreError
from node_monitor.core.timeutils import format_epoch_ms
from node_monitor.schemas.node_status import NodeStatusEntry, NodeStatusListResponse, NodeStatusView
from node_monitor.storage.status_store import StatusStore

logger = structlog.get_logger(__name__)
router = APIRouter()

def get_settings() -> Settings:
    """Validate configuration on every request"""
    try:
        return load_settings()
    except ConfigurationError as e:
        logger.error("Configuration error", error=str(e))
        raise HTTPException(status_code=500, detail=f"Monitor not configured: {e}")

@lru_cache()
def _status_store_for(store_backend: str) -> StatusStore:
    from node_monitor.collectors.status_collector import build_kv_stores

    status_kv, _ = build_kv_stores(Settings(store_backend=store_backend))
    return StatusStore(status_kv)

def get_status_store(settings: Settings = Depends(get_settings)) -> StatusStore:
    from node_monitor.collectors.status_collector import require_persistent_backend

    try:
        require_persistent_backend(settings)
        return _status_store_for(settings.store_backend)
    except ConfigurationError as e:
        raise HTTPException(status_code=500, detail=f"Monitor not configured: {e}")

def verify_access_token(
    x_auth_token: Optional[str] = Header(None, alias="X-Auth-Token"),
    settings: Settings = Depends(get_settings)
):
    """Require X-Auth-Token when API_ACCESS_TOKEN is configured"""
    expected = settings.api_access_token
    if expected and not hmac.compare_digest((x_auth_token or "").encode(), expected.encode()):
        raise HTTPException(status_code=401, detail="Unauthorized")

def _display_ts(value):
    """Numeric epoch ms to ISO-8601; 0 becomes None, other values pass through"""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return format_epoch_ms(int(value))
    return value

@router.get("/", response_model=NodeStatusListResponse, dependencies=[Depends(verify_access_token)])
async def list_node_statuses(store: StatusStore = Depends(get_status_store)):
    """Snapshot of every stored node status, unordered"""
    try:
        stored = store.list_all()
    except StoreError as e:
        logger.error("Failed to retrieve statuses", error=str(e))
        raise HTTPException(status_code=500, detail=f"Failed to retrieve statuses: {e}")

    entries = []
    for item in stored:
        try:
            view = NodeStatusView(
                state=item.record.get("state"),
                alert_ts=_display_ts(item.record.get("alertTs")),
                first_down_ts=_display_ts(item.record.get("firstDownTs")),
            )
        except (ValueError, OverflowError, OSError) as e:
            logger.error("Error processing status entry", node_id=item.node_id, error=str(e))
            continue
        entries.append(NodeStatusEntry(node_id=item.node_id, short_name=item.short_name, status=view))

    return NodeStatusListResponse(success=True, data=entries)
