from __future__ import annotations

import logging
import os
import sys
from datetime import datetime
from pathlib import Path

import psycopg

from tenantkit.logging import setup_logging
from tenantkit.settings import get_settings

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(
    os.environ.get("MIGRATIONS_DIR", Path(__file__).resolve().parent / "migrations")
)
SCHEMA_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS schema_migrations (
  version    text PRIMARY KEY,
  applied_at timestamptz NOT NULL DEFAULT now()
);
"""


def list_migrations(directory: Path = MIGRATIONS_DIR) -> list[Path]:
    if not directory.exists():
        raise FileNotFoundError(f"migrations dir not found: {directory}")
    return sorted(directory.glob("*.sql"))


def pending_migrations(applied: set[str], directory: Path = MIGRATIONS_DIR) -> list[Path]:
    return [p for p in list_migrations(directory) if p.stem not in applied]


def applied_versions(conn: psycopg.Connection) -> dict[str, datetime]:
    with conn.cursor() as cur:
        cur.execute(SCHEMA_TABLE_SQL)
        cur.execute("SELECT version, applied_at FROM schema_migrations ORDER BY version;")
        return {version: at for version, at in cur.fetchall()}


def apply_one(conn: psycopg.Connection, path: Path) -> None:
    with conn.transaction():
        with conn.cursor() as cur:
            cur.execute(path.read_text(encoding="utf-8"))
            cur.execute(
                "INSERT INTO schema_migrations (version) VALUES (%s);", (path.stem,)
            )
    logger.info("migration applied", extra={"version": path.stem})


def cmd_up() -> int:
    with psycopg.connect(get_settings().database_url, autocommit=True) as conn:
        to_run = pending_migrations(set(applied_versions(conn)))
        if not to_run:
            logger.info("no pending migrations")
            return 0
        for path in to_run:
            try:
                apply_one(conn, path)
            except psycopg.Error as e:
                logger.error(
                    "migration failed", extra={"version": path.stem, "error": str(e)}
                )
                return 1
    return 0


def cmd_status() -> int:
    with psycopg.connect(get_settings().database_url, autocommit=True) as conn:
        applied = applied_versions(conn)
    for version, at in applied.items():
        print(f"applied  {version} @ {at.isoformat()}")
    for path in pending_migrations(set(applied)):
        print(f"pending  {path.stem}")
    return 0


def main(argv: list[str]) -> int:
    setup_logging(get_settings().log_level)
    commands = {"up": cmd_up, "status": cmd_status}
    if len(argv) < 2 or argv[1] not in commands:
        print(
            "usage: python -m tenantkit.infrastructure.db.migrate [up|status]",
            file=sys.stderr,
        )
        return 2
    return commands[argv[1]]()


if __name__ == "__main__":
    raise SystemExit(main(sys.argv))
