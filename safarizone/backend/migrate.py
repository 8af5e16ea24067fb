"""Create the zone map tables in PostgreSQL."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from safarizone.backend.config import load_settings
from safarizone.backend.serve import configure_logging

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).with_name("db_schema.sql")


def apply_schema(conn: Any, schema_sql: str) -> None:
    """Run the schema script on an open connection and commit it."""
    with conn.cursor() as cur:
        cur.execute(schema_sql)
    conn.commit()


def main() -> None:
    settings = load_settings()
    if not settings.database_url:
        raise RuntimeError("SAFARI_DATABASE_URL is required for migration")
    configure_logging(settings)

    import psycopg

    schema_sql = SCHEMA_PATH.read_text(encoding="utf-8")
    with psycopg.connect(settings.database_url) as conn:
        apply_schema(conn, schema_sql)
    logger.info("Applied Safari Zone schema from %s", SCHEMA_PATH.name)


if __name__ == "__main__":
    main()
