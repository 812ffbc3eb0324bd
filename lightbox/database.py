from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker, declarative_base
from lightbox.config import settings
import logging
import os

logger = logging.getLogger(__name__)

# Safety check: Prevent accidental production database usage in tests
if os.getenv("TESTING") == "true" and not settings.DATABASE_URL.startswith("sqlite"):
    import warnings
    warnings.warn(
        f"Tests are configured but DATABASE_URL points to non-SQLite: {settings.DATABASE_URL[:50]}...\n"
        "Set DATABASE_URL=sqlite:///:memory: before importing lightbox modules.",
        RuntimeWarning,
        stacklevel=2
    )

# SQLite needs check_same_thread, PostgreSQL doesn't
if settings.DATABASE_URL.startswith("sqlite"):
    from sqlalchemy.pool import NullPool
    connect_args = {"check_same_thread": False}
    # SQLite doesn't support max_overflow, pool_timeout, pool_recycle, or pool_pre_ping
    engine_kwargs = {
        "connect_args": connect_args,
        "poolclass": NullPool,
        "echo": False,
    }
else:
    connect_args = {
        "connect_timeout": 10,
    }
    engine_kwargs = {
        "connect_args": connect_args,
        "pool_size": 20,
        "max_overflow": 10,
        "pool_pre_ping": True,
        "pool_recycle": 3600,
        "pool_timeout": 30,
        "echo": False,
    }

engine = create_engine(settings.DATABASE_URL, **engine_kwargs)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection."""
    if type(dbapi_connection).__module__.startswith("sqlite3"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA busy_timeout=5000")
        cursor.close()


def install_sqlite_pragmas(target_engine) -> None:
    if target_engine.dialect.name == "sqlite" and not event.contains(
        target_engine, "connect", enable_sqlite_foreign_keys
    ):
        event.listen(target_engine, "connect", enable_sqlite_foreign_keys)


install_sqlite_pragmas(engine)


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """
    Scope a unit of work: commit on normal exit, roll back and re-raise otherwise.

    Nested use joins the enclosing unit of work; only the outermost scope
    commits or rolls back.
    """
    if db.info.get("in_transaction"):
        yield db
        return

    db.info["in_transaction"] = True
    try:
        yield db
        db.commit()
    except Exception as exc:
        logger.warning(f"Rolling back transaction: {exc!r}")
        db.rollback()
        raise
    finally:
        db.info.pop("in_transaction", None)
