"""Process bootstrap: logging, schema upgrade and fail-fast readiness checks."""

from __future__ import annotations

import logging

from leadboard.core.config import get_config
from leadboard.core.logging_config import configure_logging
from leadboard.database.db import get_active_database_url, verify_database_connection
from leadboard.database.init_db import current_revision, head_revision, init_db

logger = logging.getLogger(__name__)


def validate_startup_config() -> None:
    """Check that the pipeline database is reachable and migrated.

    An unreachable database is fatal when DB_CONNECTIVITY_REQUIRED is set
    (the production default) and a warning otherwise. A reachable database
    whose schema is behind the latest migration is always fatal.
    """
    config = get_config()
    active_database_url = get_active_database_url()
    scheme = active_database_url.split("://", 1)[0]

    if not verify_database_connection():
        if config.DB_CONNECTIVITY_REQUIRED:
            raise RuntimeError("Database connectivity check failed.")
        logger.warning(
            "startup.database.connectivity_optional_failed",
            extra={"event": "startup.database.connectivity_optional_failed"},
        )
    else:
        stamped, expected = current_revision(), head_revision()
        if stamped != expected:
            logger.error(
                "startup.schema.outdated",
                extra={"event": "startup.schema.outdated", "error_code": "schema_outdated"},
            )
            raise RuntimeError(
                f"Database schema is at {stamped or 'no revision'}, expected {expected}; run the schema upgrade."
            )

    if config.is_production and scheme == "sqlite":
        logger.warning(
            "startup.production.sqlite_detected",
            extra={"event": "startup.production.sqlite_detected"},
        )

    logger.info(
        "startup.config.validated",
        extra={"event": "startup.config.validated", "env": config.ENV, "database_url_scheme": scheme},
    )


def bootstrap(upgrade_schema: bool = False) -> None:
    """Initialize logging, optionally migrate, then validate readiness."""
    configure_logging()
    if upgrade_schema:
        init_db()
    validate_startup_config()


def main() -> None:
    bootstrap(upgrade_schema=True)


if __name__ == "__main__":
    main()
