"""
CacheStore - one shared row per calendar day holding the serialized DailyPayload.
"""
import logging
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional, Sequence, Set

import aiosqlite
from pydantic import ValidationError

from core.entities import DailyPayload
from core.errors import CacheStoreError
from services.database import Database

logger = logging.getLogger(__name__)


_UPSERT = """
    INSERT INTO daily_cache (date, payload, is_complete, fetched_at, updated_at)
    VALUES (?, ?, ?, ?, ?)
    ON CONFLICT(date) DO UPDATE SET
        payload = excluded.payload,
        is_complete = excluded.is_complete,
        fetched_at = excluded.fetched_at,
        updated_at = excluded.updated_at
    WHERE daily_cache.is_complete = 0 OR ? = 1
"""


class CacheStore:
    """
    Date-keyed read-through store for daily payloads.

    A row complete for the configured categories is never replaced: the
    first complete writer for a date wins and later writers get that row
    back from upsert. Incomplete rows (deadline cut a category short, or
    the catalogue gained a category since the row was written) may be
    replaced by a later build.
    """

    def __init__(self, database: Database):
        self.db = database

    @staticmethod
    def _decode(row) -> DailyPayload:
        try:
            return DailyPayload.model_validate_json(row["payload"])
        except ValidationError as e:
            raise CacheStoreError(f"Corrupt cache row for {row['date']}: {e}") from e

    async def get(self, day: str) -> Optional[DailyPayload]:
        """Pure read of the cached payload for a date, None when absent."""
        try:
            row = await self.db.fetchone(
                "SELECT date, payload FROM daily_cache WHERE date = ?",
                (day,),
            )
        except aiosqlite.Error as e:
            raise CacheStoreError(f"Cache read failed for {day}: {e}") from e

        return self._decode(row) if row else None

    def _is_stale(self, row, keys: List[str]) -> bool:
        """Whether a stored row misses any of keys despite its complete flag."""
        try:
            return not self._decode(row).is_complete_for(keys)
        except CacheStoreError as e:
            logger.warning(f"Replacing unreadable cache row: {e}")
            return True

    async def upsert(
        self,
        payload: DailyPayload,
        category_keys: Optional[Sequence[str]] = None,
    ) -> DailyPayload:
        """
        Insert or update the row for payload.date and return the stored row,
        which may differ from payload when another writer completed first.

        Completeness is judged against category_keys (the payload's own
        categories when omitted), both for the stored flag and for whether
        an existing row may be replaced.
        """
        keys = list(category_keys) if category_keys is not None else list(payload.briefs_by_category)
        now = datetime.now(timezone.utc).isoformat()
        try:
            async with self.db.connect() as conn:
                # Check and write under one write lock
                await conn.execute("BEGIN IMMEDIATE")
                cursor = await conn.execute(
                    "SELECT date, payload, is_complete FROM daily_cache WHERE date = ?",
                    (payload.date,),
                )
                existing = await cursor.fetchone()
                stale = existing is not None and bool(existing["is_complete"]) and self._is_stale(existing, keys)
                if stale:
                    logger.info(f"Cache row for {payload.date} lacks configured categories, replacing it")

                await conn.execute(
                    _UPSERT,
                    (
                        payload.date,
                        payload.model_dump_json(),
                        int(payload.is_complete_for(keys)),
                        payload.fetched_at.isoformat(),
                        now,
                        int(stale),
                    ),
                )
                cursor = await conn.execute(
                    "SELECT date, payload FROM daily_cache WHERE date = ?",
                    (payload.date,),
                )
                row = await cursor.fetchone()
                await conn.commit()
        except aiosqlite.Error as e:
            raise CacheStoreError(f"Cache write failed for {payload.date}: {e}") from e

        if row is None:
            raise CacheStoreError(f"Cache row for {payload.date} missing after upsert")

        stored = self._decode(row)
        if stored != payload:
            logger.info(f"Cache row for {payload.date} already completed by another writer, returning stored row")
        return stored

    async def recent(self, days: int = 7, today: Optional[date] = None) -> List[DailyPayload]:
        """Cached payloads of the last N days (today included), newest first."""
        today = today or date.today()
        since = (today - timedelta(days=days - 1)).isoformat()
        try:
            rows = await self.db.fetchall(
                "SELECT date, payload FROM daily_cache WHERE date >= ? AND date <= ? ORDER BY date DESC",
                (since, today.isoformat()),
            )
        except aiosqlite.Error as e:
            raise CacheStoreError(f"Cache history read failed: {e}") from e

        return [self._decode(row) for row in rows]

    async def recent_source_urls(self, days: int = 14, today: Optional[date] = None) -> Set[str]:
        """URLs of top sources served on the N days before today."""
        today = today or date.today()
        payloads = await self.recent(days + 1, today=today)
        return {
            source.url
            for payload in payloads
            if payload.date != today.isoformat()
            for brief in payload.briefs_by_category.values()
            for source in brief.top_sources
            if source.url
        }
