"""Alembic environment for the establishment and reference-table schema.

Reads DATABASE_URL through the application settings, so migrations and the
API always target the same database. On PostgreSQL concurrent upgrades are
serialized with an advisory lock.
"""

from __future__ import annotations

import logging
import sys
import time
from logging.config import fileConfig
from pathlib import Path

from sqlalchemy import Connection, create_engine, text

# Ensure parent directory (api/) is in Python path for module imports
sys.path.insert(0, str(Path(__file__).parent.parent))

# Import models so they register with Base.metadata
import models  # noqa: F401
from alembic import context
from core.config import get_settings
from core.database import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Use SQLAlchemy model metadata for autogenerate
target_metadata = Base.metadata

# Advisory lock key derived from app name hash for uniqueness
_ADVISORY_LOCK_KEY = 518240937  # hash("saude-para-todos-migrations") % (2**31)

# Lock acquisition timeout (seconds) - prevents indefinite blocking
_LOCK_TIMEOUT_SECONDS = 120


def _get_sync_database_url() -> str:
    """Get a synchronous database URL for migrations.

    asyncpg URLs are rewritten to psycopg2; SQLite URLs drop the aiosqlite
    driver.
    """
    url = get_settings().database_url
    if "+asyncpg" in url:
        url = url.replace("+asyncpg", "+psycopg2")
    elif "+aiosqlite" in url:
        url = url.replace("+aiosqlite", "")
    return url


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode."""
    url = _get_sync_database_url()
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def _run_migrations(connection: Connection) -> None:
    logger = logging.getLogger("alembic")
    dialect_name = getattr(connection.dialect, "name", "")

    # For PostgreSQL with multiple workers, we need to serialize migrations.
    # We use a session-level advisory lock with a timeout to prevent deadlocks.
    lock_acquired = False
    if dialect_name == "postgresql":
        # Try to acquire lock with timeout (prevents indefinite blocking)
        # pg_try_advisory_lock returns immediately, we poll with timeout
        start_time = time.time()
        while time.time() - start_time < _LOCK_TIMEOUT_SECONDS:
            result = connection.execute(
                text("SELECT pg_try_advisory_lock(:key)"),
                {"key": _ADVISORY_LOCK_KEY},
            )
            acquired = result.scalar()
            result.close()
            if acquired:
                lock_acquired = True
                # Commit the lock acquisition so Alembic starts clean
                connection.commit()
                logger.info("Acquired migration advisory lock")
                break
            # Another process has the lock, wait and retry
            logger.debug("Waiting for migration lock...")
            time.sleep(2)
        else:
            raise RuntimeError(
                f"Failed to acquire migration lock within {_LOCK_TIMEOUT_SECONDS}s. "
                "Another process may be stuck holding the lock."
            )

    migration_error = None
    try:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            render_as_batch=True,
        )

        with context.begin_transaction():
            context.run_migrations()
    except Exception as e:
        migration_error = e
        # Check if this is a "table already exists" error - another worker may have
        # already run migrations even though we had the lock (race at startup)
        error_str = str(e).lower()
        if "already exists" in error_str or "duplicate" in error_str:
            # Migrations were already applied by another process, this is OK
            logger.info("Migrations already applied by another process, continuing...")
            migration_error = None  # Don't re-raise this error
        else:
            # For other errors, rollback the failed transaction
            try:
                connection.rollback()
            except Exception as rollback_error:
                logger.warning("migration.rollback.failed: %s", rollback_error)
    finally:
        # Always release the advisory lock for PostgreSQL
        if lock_acquired:
            try:
                result = connection.execute(
                    text("SELECT pg_advisory_unlock(:key)"),
                    {"key": _ADVISORY_LOCK_KEY},
                )
                result.close()
                logger.info("Released migration advisory lock")
            except Exception as unlock_error:
                # Log but don't raise - lock released when session ends anyway
                logger.warning("advisory.lock.release.failed: %s", unlock_error)

    # Re-raise the migration error if it wasn't a "table already exists" error
    if migration_error is not None:
        raise migration_error


def run_migrations_online() -> None:
    """Run migrations over a synchronous (psycopg2) connection."""
    url = _get_sync_database_url()
    engine = create_engine(url)

    with engine.connect() as connection:
        _run_migrations(connection)


def run() -> None:
    if context.is_offline_mode():
        run_migrations_offline()
    else:
        run_migrations_online()


run()
