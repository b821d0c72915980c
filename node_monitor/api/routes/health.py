"""
Health check endpoints
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import text
from node_monitor import __version__
from node_monitor.database.connection import get_database
import structlog

logger = structlog.get_logger(__name__)
router = APIRouter()

SERVICE_NAME = "Tailnet Node Monitor API"

@router.get("/health")
async def health_check():
    """Basic health check"""
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": __version__
    }

@router.get("/health/detailed")
async def detailed_health_check(db: Session = Depends(get_database)):
    """Detailed health check with database connectivity"""
    try:
        # Test database connection
        db.execute(text("SELECT 1"))
        db_status = "connected"
    except Exception as e:
        logger.error("Database health check failed", error=str(e))
        db_status = "disconnected"

    return {
        "status": "healthy" if db_status == "connected" else "unhealthy",
        "database": db_status,
        "service": SERVICE_NAME,
        "version": __version__
    }
