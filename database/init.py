"""
Schema management through Alembic.

The API server applies pending migrations at startup; the scheduler does
the same before its first cycle.
"""
from alembic import command
from alembic.config import Config
from loguru import logger

from config import settings


def _alembic_config() -> Config:
    config = Config(str(settings.BASE_DIR / "alembic.ini"))
    config.set_main_option("script_location", str(settings.BASE_DIR / "migrations"))
    return config


def run_migrations(revision: str = "head") -> None:
    """Upgrade the key store schema to `revision`."""
    command.upgrade(_alembic_config(), revision)
    logger.info(f"[Database] Migrations applied up to {revision}")
