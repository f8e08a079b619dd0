from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from quiz_engine.config import settings
import logging

logger = logging.getLogger(__name__)

def build_engine(database_url: str):
    """Create the SQLAlchemy engine for the configured database"""
    if database_url.startswith("sqlite"):
        # Request handlers and the sweeper thread share the SQLite file
        return create_engine(database_url, connect_args={"check_same_thread": False})

    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=5,
        pool_timeout=30,
    )

engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

def get_db():
    """Request-scoped database session"""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

def init_db(bind=None):
    """Create all tables"""
    # Register models on Base.metadata before create_all
    import quiz_engine.models  # noqa: F401

    target = bind or engine
    Base.metadata.create_all(bind=target)
    logger.info(f"Database tables ensured on {target.url.render_as_string(hide_password=True)}")
