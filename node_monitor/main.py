"""
Tailnet Node Monitor - FastAPI Application
Serves the stored node statuses and health checks
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import uvicorn
import structlog
from contextlib import asynccontextmanager

from node_monitor import __version__
from node_monitor.api.routes import health, nodes
from node_monitor.core.config import settings
from node_monitor.core.logging import configure_logging

configure_logging(settings.log_level)

logger = structlog.get_logger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info("Starting Tailnet Node Monitor API")
    # Startup
    yield
    # Shutdown
    logger.info("Shutting down Tailnet Node Monitor API")

# Create FastAPI application
app = FastAPI(
    title="Tailnet Node Monitor API",
    description="Current online/offline status of monitored Tailscale nodes",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET"],
    allow_headers=["X-Auth-Token"],
)

# Include routers
app.include_router(health.router, prefix="/api/v1", tags=["health"])
app.include_router(nodes.router, tags=["nodes"])

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request, exc):
    """Render HTTP errors in the {success, error} envelope"""
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail},
        headers=getattr(exc, "headers", None)
    )

@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler"""
    logger.error("Unhandled exception", exc_info=exc, path=request.url.path)
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "Internal server error"}
    )

if __name__ == "__main__":
    uvicorn.run(
        "node_monitor.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        log_level="info"
    )
