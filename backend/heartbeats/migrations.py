"""Versioned schema migrations for heartbeats and its archive mirror.

Migrations are applied in order, once each, and recorded in
``schema_migrations``. A migration that touches a ``heartbeats`` column must
carry the matching ``heartbeats_archive`` change and reinstall the capture
trigger in the same migration (see ``archive``).
"""
import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection

from .archive import capture_trigger_ddl

logger = logging.getLogger(__name__)

# Live columns captured on delete, as of each archive revision
CAPTURE_COLUMNS_V2 = (
    "unique_id",
    "first_seen",
    "last_seen",
    "part_num",
    "fw_version",
    "sw_version",
    "country",
)
CAPTURE_COLUMNS_V4 = (
    "unique_id",
    "first_seen",
    "last_seen",
    "part_num",
    "fw_version",
    "sw_version",
    "ciq_version",
    "country",
    "lang",
    "feat",
)


@dataclass(frozen=True)
class Migration:
    """A schema change; ``statements`` renders it for a dialect name."""

    version: int
    name: str
    statements: Callable[[str], List[str]]


def _create_heartbeats(dialect: str) -> List[str]:
    # text columns carry simple length checks
    return [
        """
        CREATE TABLE IF NOT EXISTS heartbeats (
            unique_id TEXT PRIMARY KEY,
            first_seen BIGINT NOT NULL,
            last_seen BIGINT NOT NULL,
            part_num TEXT NOT NULL CHECK (length(part_num) <= 32),
            fw_version TEXT CHECK (length(fw_version) <= 16),
            sw_version TEXT CHECK (length(sw_version) <= 16),
            country TEXT CHECK (length(country) <= 8)
        )
        """,
        "CREATE INDEX IF NOT EXISTS idx_heartbeats_first_seen ON heartbeats (first_seen)",
        "CREATE INDEX IF NOT EXISTS idx_heartbeats_last_seen ON heartbeats (last_seen)",
    ]


def _create_archive(dialect: str) -> List[str]:
    if dialect == "postgresql":
        archive_id = "archive_id BIGSERIAL PRIMARY KEY"
    else:
        archive_id = "archive_id INTEGER PRIMARY KEY AUTOINCREMENT"
    return [
        f"""
        CREATE TABLE IF NOT EXISTS heartbeats_archive (
            {archive_id},
            unique_id TEXT,
            first_seen BIGINT,
            last_seen BIGINT,
            part_num TEXT,
            fw_version TEXT,
            sw_version TEXT,
            country TEXT,
            deleted_at BIGINT
        )
        """,
        *capture_trigger_ddl(dialect, CAPTURE_COLUMNS_V2),
    ]


def _add_ciq_lang_feat(dialect: str) -> List[str]:
    return [
        "ALTER TABLE heartbeats ADD COLUMN ciq_version TEXT CHECK (length(ciq_version) <= 16)",
        "ALTER TABLE heartbeats ADD COLUMN lang TEXT CHECK (length(lang) <= 16)",
        "ALTER TABLE heartbeats ADD COLUMN feat TEXT CHECK (length(feat) <= 256)",
    ]


def _archive_ciq_lang_feat(dialect: str) -> List[str]:
    # Widen in place; archived rows are kept
    return [
        "ALTER TABLE heartbeats_archive ADD COLUMN ciq_version TEXT",
        "ALTER TABLE heartbeats_archive ADD COLUMN lang TEXT",
        "ALTER TABLE heartbeats_archive ADD COLUMN feat TEXT",
        *capture_trigger_ddl(dialect, CAPTURE_COLUMNS_V4),
    ]


MIGRATIONS = [
    Migration(1, "create heartbeats", _create_heartbeats),
    Migration(2, "archive heartbeats on delete", _create_archive),
    Migration(3, "add heartbeats ciq_version, lang, feat", _add_ciq_lang_feat),
    Migration(4, "capture ciq_version, lang, feat in archive", _archive_ciq_lang_feat),
]

LATEST_VERSION = MIGRATIONS[-1].version


async def _applied_versions(conn: AsyncConnection) -> set:
    await conn.execute(text(
        "CREATE TABLE IF NOT EXISTS schema_migrations ("
        "version INTEGER PRIMARY KEY, name TEXT NOT NULL, applied_at BIGINT NOT NULL)"
    ))
    result = await conn.execute(text("SELECT version FROM schema_migrations"))
    return {row[0] for row in result}


async def current_version(conn: AsyncConnection) -> int:
    """Highest applied migration version, 0 for an empty database."""
    applied = await _applied_versions(conn)
    return max(applied, default=0)


async def run_migrations(conn: AsyncConnection, target: Optional[int] = None) -> List[int]:
    """Apply pending migrations up to ``target`` (all by default).

    Runs on the caller's connection/transaction and returns the versions
    applied, in order.
    """
    applied = await _applied_versions(conn)
    dialect = conn.dialect.name
    done = []

    for migration in MIGRATIONS:
        if target is not None and migration.version > target:
            break
        if migration.version in applied:
            continue

        logger.info(f"Applying migration {migration.version}: {migration.name}")
        for statement in migration.statements(dialect):
            await conn.exec_driver_sql(statement)

        await conn.execute(
            text(
                "INSERT INTO schema_migrations (version, name, applied_at) "
                "VALUES (:version, :name, :applied_at)"
            ),
            {"version": migration.version, "name": migration.name, "applied_at": int(time.time())},
        )
        done.append(migration.version)

    return done
