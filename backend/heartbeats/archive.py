"""Archive mirror - on-delete capture of heartbeats into heartbeats_archive.

Every row deleted from ``heartbeats`` is copied into ``heartbeats_archive`` by a
database trigger, in the same statement as the delete. The trigger only copies
the columns it was written with, so the live table, the archive table and the
capture mapping have to change together:

    Any migration that adds, removes or changes a ``heartbeats`` column must,
    in the same migration, make the same change to ``heartbeats_archive`` and
    recreate the trigger with ``capture_trigger_ddl``.

Nothing enforces this at runtime. If it is skipped, deletes keep working but
the new column's values are dropped from the archive without error.
``find_archive_drift`` reports that condition and ``init_db`` logs it.
"""
import re
from dataclasses import dataclass, field
from typing import List, Sequence

from sqlalchemy import inspect, text
from sqlalchemy.ext.asyncio import AsyncConnection

LIVE_TABLE = "heartbeats"
ARCHIVE_TABLE = "heartbeats_archive"
TRIGGER_NAME = "tr_heartbeats_delete_to_archive"
TRIGGER_FUNCTION = "heartbeats_delete_to_archive"

_OLD_COLUMN_RE = re.compile(r"\bOLD\.(\w+)", re.IGNORECASE)


def capture_trigger_ddl(dialect: str, columns: Sequence[str]) -> List[str]:
    """Statements that (re)install the on-delete capture for ``columns``.

    ``deleted_at`` is stamped with the database clock at capture time.
    """
    column_list = ", ".join(columns)
    old_values = ", ".join(f"OLD.{name}" for name in columns)

    if dialect == "postgresql":
        return [
            f"""
            CREATE OR REPLACE FUNCTION {TRIGGER_FUNCTION}() RETURNS trigger AS $$
            BEGIN
                INSERT INTO {ARCHIVE_TABLE} ({column_list}, deleted_at)
                VALUES ({old_values}, CAST(EXTRACT(EPOCH FROM now()) AS BIGINT));
                RETURN OLD;
            END;
            $$ LANGUAGE plpgsql
            """,
            f"DROP TRIGGER IF EXISTS {TRIGGER_NAME} ON {LIVE_TABLE}",
            f"""
            CREATE TRIGGER {TRIGGER_NAME}
            AFTER DELETE ON {LIVE_TABLE}
            FOR EACH ROW EXECUTE FUNCTION {TRIGGER_FUNCTION}()
            """,
        ]

    return [
        f"DROP TRIGGER IF EXISTS {TRIGGER_NAME}",
        f"""
        CREATE TRIGGER {TRIGGER_NAME}
        AFTER DELETE ON {LIVE_TABLE}
        BEGIN
            INSERT INTO {ARCHIVE_TABLE} ({column_list}, deleted_at)
            VALUES ({old_values}, CAST(strftime('%s', 'now') AS INTEGER));
        END
        """,
    ]


@dataclass(frozen=True)
class ArchiveDrift:
    """Live columns the archive would not preserve on delete."""

    missing_from_archive: List[str] = field(default_factory=list)
    missing_from_capture: List[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.missing_from_archive or self.missing_from_capture)


def _column_names(sync_conn, table: str) -> List[str]:
    inspector = inspect(sync_conn)
    if not inspector.has_table(table):
        return []
    return [column["name"] for column in inspector.get_columns(table)]


async def installed_capture_columns(conn: AsyncConnection) -> List[str]:
    """Columns copied by the currently installed trigger, in capture order."""
    if conn.dialect.name == "postgresql":
        result = await conn.execute(
            text("SELECT prosrc FROM pg_proc WHERE proname = :name"),
            {"name": TRIGGER_FUNCTION},
        )
    else:
        result = await conn.execute(
            text("SELECT sql FROM sqlite_master WHERE type = 'trigger' AND name = :name"),
            {"name": TRIGGER_NAME},
        )
    body = result.scalar()
    if not body:
        return []
    return [name.lower() for name in _OLD_COLUMN_RE.findall(body)]


async def find_archive_drift(conn: AsyncConnection) -> ArchiveDrift:
    """Compare heartbeats against heartbeats_archive and the installed trigger.

    Returns an empty (falsy) ``ArchiveDrift`` when every live column is both
    present in the archive and copied by the trigger, or when the live table
    does not exist yet.
    """
    live = await conn.run_sync(_column_names, LIVE_TABLE)
    if not live:
        return ArchiveDrift()

    archived = await conn.run_sync(_column_names, ARCHIVE_TABLE)
    captured = await installed_capture_columns(conn)

    return ArchiveDrift(
        missing_from_archive=[name for name in live if name not in archived],
        missing_from_capture=[name for name in live if name not in captured],
    )
