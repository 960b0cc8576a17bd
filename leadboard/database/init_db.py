"""Bring the configured database up to the latest schema revision."""

from __future__ import annotations

import logging
from pathlib import Path

from alembic import command
from alembic.config import Config as AlembicConfig
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory

from leadboard.core.logging_config import configure_logging
import leadboard.database.db as db_module

logger = logging.getLogger(__name__)

# Shipped inside the package so installed copies can migrate too.
MIGRATIONS_DIR = Path(__file__).resolve().parents[1] / "migrations"


def build_alembic_config(database_url: str) -> AlembicConfig:
    cfg = AlembicConfig()
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    # ConfigParser interpolation treats "%" as special.
    cfg.set_main_option("sqlalchemy.url", database_url.replace("%", "%%"))
    return cfg


def head_revision() -> str | None:
    script = ScriptDirectory.from_config(build_alembic_config(db_module.get_active_database_url()))
    return script.get_current_head()


def current_revision() -> str | None:
    """Revision stamped in the active database, or None for an unmigrated one."""
    with db_module.get_engine().connect() as connection:
        return MigrationContext.configure(connection).get_current_revision()


def init_db(database_url: str | None = None) -> None:
    configure_logging()
    active_url = database_url or db_module.get_active_database_url()
    command.upgrade(build_alembic_config(active_url), "head")
    logger.info(
        "database.schema.upgraded",
        extra={"event": "database.schema.upgraded", "database_url_scheme": active_url.split("://", 1)[0]},
    )


if __name__ == "__main__":
    init_db()
