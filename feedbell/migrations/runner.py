"""Schema migrations for the channel link and notified item tables."""

from __future__ import annotations

import logging
from pathlib import Path

import asyncpg

logger = logging.getLogger(__name__)

VERSIONS_DIR = Path(__file__).resolve().parent / "versions"

# Arbitrary key for pg_advisory_xact_lock so two bot processes starting at the
# same time do not apply the same file twice.
_LOCK_KEY = 0x6665_6564


class MigrationRunner:
    """Apply ``versions/NNN_name.sql`` files once, in filename order.

    Applied versions are recorded in ``schema_migrations``.
    """

    TRACKING_TABLE = "schema_migrations"

    def __init__(self, pool: asyncpg.Pool, versions_dir: Path | None = None) -> None:
        self.pool = pool
        self.versions_dir = versions_dir or VERSIONS_DIR

    def discover(self) -> list[Path]:
        return sorted(self.versions_dir.glob("*.sql"))

    async def run_pending(self) -> list[str]:
        """Apply every migration not yet recorded; return the new versions."""
        async with self.pool.acquire() as conn:
            await conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {self.TRACKING_TABLE} (
                    version    TEXT PRIMARY KEY,
                    applied_at TIMESTAMPTZ DEFAULT NOW()
                )
                """
            )
            rows = await conn.fetch(f"SELECT version FROM {self.TRACKING_TABLE}")  # noqa: S608
            applied = {row["version"] for row in rows}

            newly_applied: list[str] = []
            for sql_path in self.discover():
                version = sql_path.stem
                if version in applied:
                    continue

                logger.info("Applying migration: %s", version)
                async with conn.transaction():
                    await conn.execute("SELECT pg_advisory_xact_lock($1)", _LOCK_KEY)
                    await conn.execute(sql_path.read_text(encoding="utf-8"))
                    await conn.execute(
                        f"INSERT INTO {self.TRACKING_TABLE} (version) VALUES ($1) "
                        "ON CONFLICT (version) DO NOTHING",
                        version,
                    )
                newly_applied.append(version)

        if newly_applied:
            logger.info("Applied %d migration(s): %s", len(newly_applied), ", ".join(newly_applied))
        else:
            logger.info("Database is up to date, no pending migrations")
        return newly_applied
