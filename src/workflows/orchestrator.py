"""
Daily brief orchestrator: cache-or-compute for one calendar day.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from core.entities import CategoryBrief, DailyPayload
from core.errors import DayNotCachedError, FutureDateError
from ingestion.source_factory import create_adapters_from_config
from processing.summarizer import BriefSynthesizer
from services.cache_store import CacheStore
from services.config import AppConfig
from services.database import Database
from services.llm import create_llm_client
from services.single_flight import SingleFlight
from workflows.base import BriefPipeline
from workflows.pipeline_factory import create_pipelines_from_config

logger = logging.getLogger(__name__)


class DailyBriefOrchestrator:
    """
    MISS -> BUILDING -> DONE per day key.

    A complete cached payload is returned as is. Otherwise one build runs
    per day (concurrent callers share it), every category is represented
    in the result, and the row returned is the one the cache holds after
    the upsert.
    """

    def __init__(
        self,
        pipelines: List[BriefPipeline],
        cache: CacheStore,
        *,
        deadline: float = 120.0,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.pipelines = pipelines
        self.cache = cache
        self.deadline = deadline
        self.clock = clock
        self.category_keys = [p.category.key for p in pipelines]
        self._flight: SingleFlight[DailyPayload] = SingleFlight()

    def today(self) -> str:
        return self.clock().date().isoformat()

    async def get_or_build_today(self) -> DailyPayload:
        return await self.get_or_build(self.today())

    async def get_or_build(self, day: str) -> DailyPayload:
        """
        Only today is ever built. A past day is served from the cache as
        stored; a future day is refused.
        """
        today = self.today()
        if day > today:
            raise FutureDateError(f"{day} is after today ({today})")

        if day < today:
            cached = await self.cache.get(day)
            if cached is None:
                raise DayNotCachedError(f"No briefs were cached for {day}")
            logger.info(f"Serving cached briefs for past day {day}")
            return cached

        cached = await self._complete_cached(day)
        if cached is not None:
            return cached

        return await self._flight.do(day, lambda: self._build_and_store(day))

    async def _complete_cached(self, day: str) -> Optional[DailyPayload]:
        cached = await self.cache.get(day)
        if cached is not None and cached.is_complete_for(self.category_keys):
            logger.info(f"Cache hit for {day}")
            return cached
        return None

    async def _build_and_store(self, day: str) -> DailyPayload:
        # A flight for this day may have completed between our read and now
        cached = await self._complete_cached(day)
        if cached is not None:
            return cached

        logger.info(f"Cache miss for {day}, building briefs for {len(self.pipelines)} categories")
        payload = await self.build(day)
        stored = await self.cache.upsert(payload, self.category_keys)

        if not stored.is_complete_for(self.category_keys):
            logger.warning(f"Payload for {day} stored incomplete, next request will rebuild")
        return stored

    async def build(self, day: str) -> DailyPayload:
        """
        Run every category concurrently under the build deadline. Categories
        that fail or do not finish in time get an incomplete brief.
        """
        fetched_at = self.clock().astimezone(timezone.utc)
        tasks = {
            p.category.key: asyncio.ensure_future(p.run(fetched_at))
            for p in self.pipelines
        }

        if tasks:
            _, pending = await asyncio.wait(tasks.values(), timeout=self.deadline)
            for task in pending:
                task.cancel()
            if pending:
                logger.warning(f"Build deadline of {self.deadline}s hit with {len(pending)} categories unfinished")
                await asyncio.gather(*pending, return_exceptions=True)

        briefs: Dict[str, CategoryBrief] = {}
        for pipeline in self.pipelines:
            key = pipeline.category.key
            task = tasks[key]
            if task.cancelled():
                briefs[key] = CategoryBrief.empty(pipeline.category.name, fetched_at, status="incomplete")
            elif task.exception() is not None:
                logger.error(f"[{key}] pipeline failed: {task.exception()!r}")
                briefs[key] = CategoryBrief.empty(pipeline.category.name, fetched_at, status="incomplete")
            else:
                briefs[key] = task.result()

        return DailyPayload(date=day, briefs_by_category=briefs, fetched_at=fetched_at)


def build_orchestrator(config: AppConfig, database: Database) -> DailyBriefOrchestrator:
    """Wire adapters, LLM client, synthesizer and pipelines from configuration."""
    synthesizer = BriefSynthesizer(
        create_llm_client(config),
        top_sources_limit=config.TOP_SOURCES_LIMIT,
        digest_item_limit=config.llm.digest_item_limit,
        snippet_length=config.llm.snippet_length,
    )
    cache = CacheStore(database)
    pipelines = create_pipelines_from_config(
        config,
        create_adapters_from_config(config, cache=cache),
        synthesizer,
    )
    return DailyBriefOrchestrator(
        pipelines,
        cache,
        deadline=config.BUILD_DEADLINE_SECONDS,
    )
