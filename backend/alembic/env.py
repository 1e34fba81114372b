"""Alembic environment: uses sitebook's Base and database_url; SQLite and PostgreSQL.
Paths are resolved with pathlib so the working directory does not matter."""
from pathlib import Path
import sys

from logging.config import fileConfig

from alembic import context

# backend/ on sys.path so `sitebook` imports without installing the package
_script_dir = Path(__file__).resolve().parent
_project_root = _script_dir.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from sitebook.config import settings
from sitebook.database import Base, normalize_database_url
from sitebook import models  # noqa: F401

config = context.config
if config.config_file_name is not None:
    config_path = Path(config.config_file_name).resolve()
    if config_path.exists():
        fileConfig(str(config_path))

# Alembic runs synchronously: asyncpg -> psycopg2, aiosqlite -> sqlite
# relative SQLite paths become absolute against backend/
target_metadata = Base.metadata
db_url = normalize_database_url(settings.database_url)
if db_url.startswith("sqlite+aiosqlite"):
    sync_url = db_url.replace("sqlite+aiosqlite", "sqlite", 1)
elif db_url.startswith("postgresql+asyncpg"):
    sync_url = db_url.replace("postgresql+asyncpg", "postgresql+psycopg2", 1)
else:
    sync_url = db_url
if sync_url.startswith("sqlite:///./"):
    rel = sync_url.replace("sqlite:///./", "").strip()
    sync_url = "sqlite:///" + (_project_root / rel).resolve().as_posix()
config.set_main_option("sqlalchemy.url", sync_url)


def run_migrations_offline() -> None:
    """Offline: emit SQL only"""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=url.startswith("sqlite"),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    from sqlalchemy import create_engine
    url = config.get_main_option("sqlalchemy.url")
    connectable = create_engine(url)
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=connection.dialect.name == "sqlite",
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
