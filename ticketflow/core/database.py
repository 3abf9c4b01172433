# ticketflow/core/database.py
"""Database engine and session management"""
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, Session

from ticketflow.core.config import DATABASE_URL
from ticketflow.core.logger import get_logger
from ticketflow.models import Base

logger = get_logger(__name__)

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

# Create engine
engine = create_engine(DATABASE_URL, echo=False, pool_pre_ping=True, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Session:
    """Dependency injection for FastAPI"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Create all tables in database"""
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables initialized")
        return True
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        return False


def test_connection():
    """Test database connectivity"""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            logger.info("Database connection successful")
            return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False
