"""
Alembic environment.

Migrations run synchronously against the same SQLite file the async
engine uses (the "+aiosqlite" driver suffix is dropped).
"""
from alembic import context
from sqlalchemy import create_engine, pool

from config import settings
from database.models import Base


target_metadata = Base.metadata


def get_sync_url() -> str:
    return f"sqlite:///{settings.DATABASE_PATH}"


def run_migrations_offline() -> None:
    context.configure(
        url=get_sync_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = create_engine(get_sync_url(), poolclass=pool.NullPool)
    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
