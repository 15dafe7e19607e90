"""Database session management.

Pipelines open one short session per step through ``get_session_context``;
the API gets a request-scoped session from ``get_session``.
"""

from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from newsreel_engine.config import settings
from newsreel_engine.db.models import Base

engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,
    pool_size=5,
    max_overflow=10,
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine,
)


def get_session() -> Generator[Session, None, None]:
    """Get a database session (for FastAPI dependency injection)."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@contextmanager
def get_session_context() -> Generator[Session, None, None]:
    """Session scope for one pipeline step: commit on success, roll back on error."""
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def missing_tables(bind: Engine) -> list[str]:
    """Pipeline tables the connected database does not have yet."""
    existing = set(inspect(bind).get_table_names())
    return sorted(set(Base.metadata.tables) - existing)


def init_db(bind: Engine | None = None) -> None:
    """Verify connectivity and that the migrations have been applied.

    Raises:
        RuntimeError: when pipeline tables are missing
    """
    bind = bind or engine
    with bind.connect() as conn:
        conn.execute(text("SELECT 1"))
    missing = missing_tables(bind)
    if missing:
        raise RuntimeError(
            f"Database is missing tables {', '.join(missing)}; run `alembic upgrade head`"
        )
