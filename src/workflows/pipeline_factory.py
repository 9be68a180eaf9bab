"""
Pipeline Factory - Creates one pipeline per configured category.
"""
import asyncio
import logging
from datetime import datetime
from typing import List

from core.categories import CategoryConfig
from core.entities import CategoryBrief
from ingestion.base import RawItem, SourceAdapter
from processing.deduplicator import dedupe
from processing.ranker import rank
from processing.summarizer import BriefSynthesizer
from services.config import AppConfig
from workflows.base import BriefPipeline

logger = logging.getLogger(__name__)


class CategoryPipeline(BriefPipeline):
    """
    Fans out to every adapter concurrently, merges their items in adapter
    (priority) order, then dedupes, ranks and synthesizes.
    """

    def __init__(
        self,
        category: CategoryConfig,
        adapters: List[SourceAdapter],
        synthesizer: BriefSynthesizer,
        dedup_prefix_length: int = 60,
    ):
        self.category = category
        self.adapters = adapters
        self.synthesizer = synthesizer
        self.dedup_prefix_length = dedup_prefix_length

    async def collect(self) -> List[RawItem]:
        results = await asyncio.gather(*(adapter.fetch(self.category) for adapter in self.adapters))

        items: List[RawItem] = []
        for adapter, result in zip(self.adapters, results):
            for error in result.errors:
                logger.warning(f"[{self.name}] {error}")
            logger.info(f"[{self.name}] {adapter.name}: {len(result.items)} items")
            items.extend(result.items)

        if not items and results and all(result.failed for result in results):
            logger.warning(f"[{self.name}] every source failed")

        return items

    async def run(self, fetched_at: datetime) -> CategoryBrief:
        items = await self.collect()
        unique = dedupe(items, prefix_length=self.dedup_prefix_length)
        ranked = rank(unique)

        logger.info(f"[{self.name}] {len(items)} fetched, {len(unique)} unique")
        return await self.synthesizer.synthesize(self.category, ranked, fetched_at=fetched_at)


def create_pipelines_from_config(
    config: AppConfig,
    adapters: List[SourceAdapter],
    synthesizer: BriefSynthesizer,
) -> List[BriefPipeline]:
    """
    Factory function to create one pipeline per configured category.

    Args:
        config: Application configuration with the category catalogue
        adapters: Shared source adapters, in priority order
        synthesizer: Shared BriefSynthesizer instance

    Returns:
        List of CategoryPipeline instances in category order
    """
    pipelines: List[BriefPipeline] = []

    for category in config.categories.values():
        pipelines.append(
            CategoryPipeline(
                category=category,
                adapters=adapters,
                synthesizer=synthesizer,
                dedup_prefix_length=config.DEDUP_PREFIX_LENGTH,
            )
        )
        logger.info(f"Created pipeline: {category.key}")

    return pipelines
