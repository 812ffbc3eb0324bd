import os
from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool

from alembic import context
from lightbox.database import Base, install_sqlite_pragmas
from lightbox import models  # noqa: F401 - images, galleries and users on Base.metadata
from lightbox.config import settings

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _database_url() -> str:
    """DATABASE_URL from the environment wins over settings/.env; quotes are stripped."""
    url = os.getenv("DATABASE_URL") or settings.DATABASE_URL
    return url.strip().strip('"').strip("'")


def _is_sqlite(url: str) -> bool:
    # SQLite cannot ALTER most constraints in place; batch mode rebuilds the table
    return url.startswith("sqlite")


def run_migrations_offline() -> None:
    url = _database_url()
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=_is_sqlite(url),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    url = _database_url()
    section = config.get_section(config.config_ini_section, {})
    section["sqlalchemy.url"] = url
    connectable = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)
    # gallery_images relies on ON DELETE CASCADE
    install_sqlite_pragmas(connectable)

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=_is_sqlite(url),
            compare_type=True,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
