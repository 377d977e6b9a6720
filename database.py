from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import sessionmaker
from config import settings
from models import Base
import logging

logger = logging.getLogger(__name__)

_engine = None
_SessionLocal = None

def get_db_connection():
    """Create (once) and return the database engine."""
    global _engine
    if _engine is None:
        if not settings.DATABASE_URL:
            raise ValueError("DATABASE_URL environment variable not set")
        _engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True)
    return _engine

def get_session_factory() -> sessionmaker:
    """Session factory used for work that outlives a request (stage sync)."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=get_db_connection())
    return _SessionLocal

def get_db():
    """Dependency to get database session."""
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()

def verify_tables_exist(engine=None):
    """Ensure required tables exist, create if missing."""
    engine = engine or get_db_connection()
    existing_tables = set(inspect(engine).get_table_names())

    missing = [name for name in Base.metadata.tables if name not in existing_tables]
    if not missing:
        logger.info("All tables present")
        return []

    for name in missing:
        logger.info(f"Creating missing table: {name}")
    Base.metadata.create_all(bind=engine)
    return missing
