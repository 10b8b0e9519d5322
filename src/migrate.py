"""
Database migration runner for asyncpg.

Applies forward-only SQL migrations from the migrations/ directory.
Each migration runs in its own transaction for atomicity. The SHA-256 of
every applied file is recorded so later edits to it can be spotted.
"""

import hashlib
import logging
import re
from pathlib import Path
from typing import Dict, List, Tuple

import asyncpg

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent / "migrations"

MIGRATION_PATTERN = re.compile(r"^(\d{3})_.+\.sql$")


async def ensure_migration_table(conn: asyncpg.Connection) -> None:
    """Create the schema_migrations tracking table if it doesn't exist."""
    await conn.execute("""
        CREATE TABLE IF NOT EXISTS schema_migrations (
            id SERIAL PRIMARY KEY,
            version VARCHAR(255) NOT NULL UNIQUE,
            filename VARCHAR(255) NOT NULL,
            checksum VARCHAR(64),
            applied_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
        """)


def discover_migrations() -> List[Tuple[str, str, Path]]:
    """
    Discover migration files in the migrations directory.

    Returns:
        Sorted list of (version, filename, path) tuples.

    Raises:
        FileNotFoundError: If the migrations directory doesn't exist.
    """
    if not MIGRATIONS_DIR.is_dir():
        raise FileNotFoundError(f"Migrations directory not found: {MIGRATIONS_DIR}")

    migrations = []
    for entry in sorted(MIGRATIONS_DIR.iterdir()):
        match = MIGRATION_PATTERN.match(entry.name)
        if match and entry.is_file():
            migrations.append((match.group(1), entry.name, entry))

    return migrations


def checksum(sql: str) -> str:
    """SHA-256 hex digest of a migration's SQL text."""
    return hashlib.sha256(sql.encode("utf-8")).hexdigest()


async def get_applied_migrations(conn: asyncpg.Connection) -> Dict[str, str]:
    """Map each applied migration version to its recorded checksum."""
    rows = await conn.fetch("SELECT version, checksum FROM schema_migrations")
    return {row["version"]: row["checksum"] for row in rows}


async def apply_migration(
    pool: asyncpg.Pool, version: str, filename: str, path: Path
) -> None:
    """
    Apply a single migration in its own transaction.

    Args:
        pool: asyncpg connection pool.
        version: Migration version string (e.g. "001").
        filename: Migration filename for audit trail.
        path: Full path to the SQL file.
    """
    sql = path.read_text(encoding="utf-8")

    async with pool.acquire() as conn:
        async with conn.transaction():
            await conn.execute(sql)
            await conn.execute(
                "INSERT INTO schema_migrations (version, filename, checksum) "
                "VALUES ($1, $2, $3)",
                version,
                filename,
                checksum(sql),
            )

    logger.info(f"Applied migration {filename}")


def warn_on_modified(
    migrations: List[Tuple[str, str, Path]], applied: Dict[str, str]
) -> List[str]:
    """
    Log a warning for every applied migration whose file has changed.

    Returns:
        Filenames of the modified migrations.
    """
    modified = []
    for version, filename, path in migrations:
        recorded = applied.get(version)
        if not recorded:
            continue
        if checksum(path.read_text(encoding="utf-8")) != recorded:
            logger.warning(
                f"Migration {filename} was modified after being applied; "
                "changes will not be re-run"
            )
            modified.append(filename)
    return modified


async def run_migrations(pool: asyncpg.Pool) -> int:
    """
    Discover and apply all pending migrations in order.

    Args:
        pool: An asyncpg connection pool (must already be connected).

    Returns:
        Number of migrations applied.

    Raises:
        FileNotFoundError: If the migrations directory is missing.
        asyncpg.PostgresError: If a migration fails (it is rolled back;
            previously applied migrations remain).
    """
    async with pool.acquire() as conn:
        await ensure_migration_table(conn)

    all_migrations = discover_migrations()
    if not all_migrations:
        logger.info("No migration files found")
        return 0

    async with pool.acquire() as conn:
        applied = await get_applied_migrations(conn)

    warn_on_modified(all_migrations, applied)

    pending = [(v, name, path) for v, name, path in all_migrations if v not in applied]

    if not pending:
        logger.info("Database schema is up to date")
        return 0

    logger.info(f"Applying {len(pending)} pending migration(s)")

    for version, filename, path in pending:
        await apply_migration(pool, version, filename, path)

    logger.info(f"Successfully applied {len(pending)} migration(s)")
    return len(pending)
