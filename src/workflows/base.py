"""
Contains base class for category pipelines
"""
from abc import ABC, abstractmethod
from datetime import datetime

from core.categories import CategoryConfig
from core.entities import CategoryBrief


class BriefPipeline(ABC):
    """
    Orchestrates ingestion → dedup → ranking → synthesis
    for a single category.
    """

    category: CategoryConfig

    @property
    def name(self) -> str:
        return self.category.key

    @abstractmethod
    async def run(self, fetched_at: datetime) -> CategoryBrief:
        """
        Execute the category pipeline and return its brief.
        Source and LLM failures must not escape; an empty day is a
        starved brief, not an error.
        """
        raise NotImplementedError
