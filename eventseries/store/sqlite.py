"""SQLite-backed series store."""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Optional, Union

import aiosqlite

from ..series.models import Event, ModifiedOccurrence
from .base import SeriesStore, SeriesStoreError, earliest_local_date

logger = logging.getLogger(__name__)

UTC = timezone.utc


def _utc_key(dt: datetime) -> str:
    """Sortable UTC string used for range queries; naive datetimes count as UTC."""
    normalized = dt.replace(tzinfo=UTC) if dt.tzinfo is None else dt.astimezone(UTC)
    return normalized.strftime("%Y-%m-%dT%H:%M:%S")


class SQLiteSeriesStore(SeriesStore):
    """Manages SQLite storage of events, instances and modified occurrences.

    Each event is stored as a JSON payload next to the handful of columns
    the queries need. ``parent_event_id`` is a plain indexed column, and
    modified occurrences reference their instance with a cascading foreign
    key so deleting an instance drops its entry.
    """

    def __init__(self, database_path: Union[Path, str]):
        """Initialize SQLite series store.

        Args:
            database_path: Path to SQLite database file
        """
        self.database_path = Path(database_path)
        self.database_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialized = False
        self._initialization_lock: Optional[asyncio.Lock] = None

        logger.info(f"Series store initialized (lazy): {self.database_path}")

    async def initialize(self) -> None:
        await self._ensure_initialized()

    async def _ensure_initialized(self) -> None:
        if self._initialized:
            return

        # Use a lock to prevent concurrent initialization
        if self._initialization_lock is None:
            self._initialization_lock = asyncio.Lock()

        async with self._initialization_lock:
            if self._initialized:
                return
            try:
                await self._create_schema()
            except aiosqlite.Error as e:
                logger.exception("Failed to initialize series database")
                raise SeriesStoreError(f"Failed to initialize database: {e}") from e
            self._initialized = True

    async def _create_schema(self) -> None:
        async with aiosqlite.connect(str(self.database_path)) as db:
            # WAL lets readers proceed while a materialization writes
            await db.execute("PRAGMA journal_mode=WAL")
            await db.execute("PRAGMA synchronous=NORMAL")

            await db.execute(
                """
                CREATE TABLE IF NOT EXISTS events (
                    id TEXT PRIMARY KEY,
                    is_template INTEGER NOT NULL DEFAULT 0,
                    parent_event_id TEXT,
                    original_start_date TEXT,
                    start_utc TEXT NOT NULL,
                    end_utc TEXT NOT NULL,
                    rule_end_date TEXT,
                    payload TEXT NOT NULL,
                    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
                )
            """
            )

            # Instances are looked up by series; no in-memory back pointer exists
            await db.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_events_parent
                ON events(parent_event_id, original_start_date)
            """
            )

            await db.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_events_range
                ON events(is_template, start_utc, end_utc)
            """
            )

            await db.execute(
                """
                CREATE TABLE IF NOT EXISTS modified_occurrences (
                    parent_event_id TEXT NOT NULL,
                    occurrence_date TEXT NOT NULL,
                    event_id TEXT NOT NULL,
                    PRIMARY KEY (parent_event_id, occurrence_date),
                    FOREIGN KEY (event_id) REFERENCES events(id) ON DELETE CASCADE
                )
            """
            )

            await db.execute(
                """
                CREATE TRIGGER IF NOT EXISTS update_events_timestamp
                AFTER UPDATE ON events
                BEGIN
                    UPDATE events SET updated_at = CURRENT_TIMESTAMP
                    WHERE id = NEW.id;
                END
            """
            )

            await db.commit()
            logger.info("Series database schema initialized successfully")

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[aiosqlite.Connection]:
        await self._ensure_initialized()
        async with aiosqlite.connect(str(self.database_path)) as db:
            db.row_factory = aiosqlite.Row
            await db.execute("PRAGMA foreign_keys=ON")
            yield db

    @staticmethod
    def _row_values(event: Event) -> tuple:
        rule = event.recurrence_rule
        return (
            event.id,
            int(event.is_series_template),
            event.parent_event_id,
            event.original_start_date.isoformat() if event.original_start_date else None,
            _utc_key(event.start),
            _utc_key(event.end),
            rule.end_date.isoformat() if rule is not None and rule.end_date else None,
            event.model_dump_json(),
        )

    @staticmethod
    def _to_events(rows: list) -> list[Event]:
        return [Event.model_validate_json(row["payload"]) for row in rows]

    async def get_event(self, event_id: str) -> Optional[Event]:
        try:
            async with self._connection() as db:
                cursor = await db.execute("SELECT payload FROM events WHERE id = ?", (event_id,))
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            logger.exception(f"Failed to get event by ID: {event_id}")
            raise SeriesStoreError(f"Failed to get event: {e}", event_id) from e
        return Event.model_validate_json(row["payload"]) if row else None

    async def save_event(self, event: Event) -> None:
        try:
            async with self._connection() as db:
                await db.execute(
                    """
                    INSERT INTO events (
                        id, is_template, parent_event_id, original_start_date,
                        start_utc, end_utc, rule_end_date, payload
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        is_template = excluded.is_template,
                        parent_event_id = excluded.parent_event_id,
                        original_start_date = excluded.original_start_date,
                        start_utc = excluded.start_utc,
                        end_utc = excluded.end_utc,
                        rule_end_date = excluded.rule_end_date,
                        payload = excluded.payload
                """,
                    self._row_values(event),
                )
                await db.commit()
        except aiosqlite.Error as e:
            logger.exception(f"Failed to save event: {event.id}")
            raise SeriesStoreError(f"Failed to save event: {e}", event.id) from e
        logger.debug(f"Saved event {event.id}")

    async def insert_if_absent(self, event: Event) -> bool:
        try:
            async with self._connection() as db:
                cursor = await db.execute(
                    """
                    INSERT OR IGNORE INTO events (
                        id, is_template, parent_event_id, original_start_date,
                        start_utc, end_utc, rule_end_date, payload
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                    self._row_values(event),
                )
                await db.commit()
                return cursor.rowcount == 1
        except aiosqlite.Error as e:
            logger.exception(f"Failed to insert event: {event.id}")
            raise SeriesStoreError(f"Failed to insert event: {e}", event.id) from e

    async def delete_event(self, event_id: str) -> bool:
        try:
            async with self._connection() as db:
                cursor = await db.execute("DELETE FROM events WHERE id = ?", (event_id,))
                await db.commit()
                deleted = cursor.rowcount > 0
        except aiosqlite.Error as e:
            logger.exception(f"Failed to delete event: {event_id}")
            raise SeriesStoreError(f"Failed to delete event: {e}", event_id) from e
        logger.debug(f"Deleted event {event_id}: {deleted}")
        return deleted

    async def find_instances(self, parent_event_id: str) -> list[Event]:
        try:
            async with self._connection() as db:
                cursor = await db.execute(
                    "SELECT payload FROM events WHERE parent_event_id = ? ORDER BY start_utc",
                    (parent_event_id,),
                )
                rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            logger.exception(f"Failed to find instances of {parent_event_id}")
            raise SeriesStoreError(f"Failed to find instances: {e}", parent_event_id) from e
        return self._to_events(rows)

    async def find_events_in_range(self, window_start: datetime, window_end: datetime) -> list[Event]:
        start_key = _utc_key(window_start)
        end_key = _utc_key(window_end)
        logger.debug(f"Range query - events WHERE start <= {end_key} AND end >= {start_key}")

        try:
            async with self._connection() as db:
                cursor = await db.execute(
                    """
                    SELECT payload FROM events
                    WHERE is_template = 0 AND start_utc <= ? AND end_utc >= ?
                    ORDER BY start_utc
                """,
                    (end_key, start_key),
                )
                rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            logger.exception("Failed to get events by date range")
            raise SeriesStoreError(f"Failed to get events by date range: {e}") from e
        return self._to_events(rows)

    async def find_series_templates(self, window_start: datetime, window_end: datetime) -> list[Event]:
        try:
            async with self._connection() as db:
                cursor = await db.execute(
                    """
                    SELECT payload FROM events
                    WHERE is_template = 1 AND start_utc <= ?
                      AND (rule_end_date IS NULL OR rule_end_date >= ?)
                    ORDER BY start_utc
                """,
                    (_utc_key(window_end), earliest_local_date(window_start).isoformat()),
                )
                rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            logger.exception("Failed to find series templates")
            raise SeriesStoreError(f"Failed to find series templates: {e}") from e
        return self._to_events(rows)

    async def get_modified_occurrences(self, parent_event_id: str) -> list[ModifiedOccurrence]:
        try:
            async with self._connection() as db:
                cursor = await db.execute(
                    """
                    SELECT parent_event_id, occurrence_date, event_id FROM modified_occurrences
                    WHERE parent_event_id = ? ORDER BY occurrence_date
                """,
                    (parent_event_id,),
                )
                rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            logger.exception(f"Failed to get modified occurrences of {parent_event_id}")
            raise SeriesStoreError(f"Failed to get modified occurrences: {e}", parent_event_id) from e
        return [
            ModifiedOccurrence(
                parent_event_id=row["parent_event_id"],
                occurrence_date=date.fromisoformat(row["occurrence_date"]),
                event_id=row["event_id"],
            )
            for row in rows
        ]

    async def save_modified_occurrence(self, modified: ModifiedOccurrence) -> None:
        try:
            async with self._connection() as db:
                await db.execute(
                    """
                    INSERT OR REPLACE INTO modified_occurrences (
                        parent_event_id, occurrence_date, event_id
                    ) VALUES (?, ?, ?)
                """,
                    (
                        modified.parent_event_id,
                        modified.occurrence_date.isoformat(),
                        modified.event_id,
                    ),
                )
                await db.commit()
        except aiosqlite.Error as e:
            logger.exception(f"Failed to save modified occurrence for {modified.event_id}")
            raise SeriesStoreError(
                f"Failed to save modified occurrence: {e}", modified.event_id
            ) from e

    async def delete_modified_occurrence(self, parent_event_id: str, occurrence_date: date) -> bool:
        try:
            async with self._connection() as db:
                cursor = await db.execute(
                    """
                    DELETE FROM modified_occurrences
                    WHERE parent_event_id = ? AND occurrence_date = ?
                """,
                    (parent_event_id, occurrence_date.isoformat()),
                )
                await db.commit()
                return cursor.rowcount > 0
        except aiosqlite.Error as e:
            logger.exception(f"Failed to delete modified occurrence of {parent_event_id}")
            raise SeriesStoreError(
                f"Failed to delete modified occurrence: {e}", parent_event_id
            ) from e
