"""
Node status Pydantic schemas
"""

from pydantic import BaseModel, Field
from typing import List, Optional

class NodeStatusView(BaseModel):
    """Stored status with timestamps in display form"""
    state: Optional[str] = Field(None, description="ONLINE, OFFLINE or null")
    alert_ts: Optional[str] = Field(None, alias="alertTs", description="Last alert time, ISO-8601")
    first_down_ts: Optional[str] = Field(None, alias="firstDownTs", description="Outage start, ISO-8601")

    class Config:
        populate_by_name = True

class NodeStatusEntry(BaseModel):
    """One stored node"""
    node_id: str = Field(..., alias="nodeId")
    short_name: str = Field(..., alias="shortName")
    status: NodeStatusView

    class Config:
        populate_by_name = True

class NodeStatusListResponse(BaseModel):
    """Schema for the status query response"""
    success: bool = True
    data: List[NodeStatusEntry]
