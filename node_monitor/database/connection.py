"""
Database connection and session management
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool
import structlog
from node_monitor.core.config import settings

logger = structlog.get_logger(__name__)

def build_engine(database_url: str, echo: bool = False) -> Engine:
    """Create an engine; in-memory SQLite shares one connection across threads"""
    if database_url == "sqlite://" or database_url.endswith(":memory:"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=echo
        )
    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_recycle=300,
        echo=echo
    )

# Create database engine
engine = build_engine(settings.database_url, echo=settings.debug)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Create base class for models
Base = declarative_base()

def get_database() -> Session:
    """Get database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def init_database(bind: Engine = None):
    """Initialize database tables"""
    try:
        # Import all models to ensure they are registered
        from node_monitor.models import kv_entry  # noqa

        # Create all tables
        Base.metadata.create_all(bind=bind or engine)
        logger.info("Database tables created successfully")
    except Exception as e:
        logger.error("Failed to initialize database", error=str(e))
        raise
