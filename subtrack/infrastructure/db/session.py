"""
Engine, session factory and the per-request session dependency
"""
import psycopg
from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker, Session

from subtrack.config import get_settings


class Base(DeclarativeBase):
    pass


_engine = None
_SessionLocal = None


def get_engine():
    """Process-wide engine built from settings.DATABASE_URL"""
    global _engine
    if _engine is None:
        url = get_settings().get_sqlalchemy_url()
        connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
        _engine = create_engine(url, pool_pre_ping=True, connect_args=connect_args)
    return _engine


def get_session_factory():
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(bind=get_engine(), autoflush=False, autocommit=False)
    return _SessionLocal


def get_db() -> Session:
    """
    One session per request; uncommitted changes are rolled back when the
    handler raises.
    """
    db = get_session_factory()()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def check_db_connection() -> None:
    """Raises psycopg.OperationalError when PostgreSQL is unreachable."""
    with psycopg.connect(get_settings().DATABASE_URL, connect_timeout=3) as conn:
        conn.execute("SELECT 1")
