"""
Base classes for Ingestion
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Sequence

import httpx
from pydantic import BaseModel, ConfigDict, Field

from core.categories import CategoryConfig

logger = logging.getLogger(__name__)

# Failures a strategy may hit while talking to an upstream. Anything here
# moves the adapter on to its next strategy.
STRATEGY_ERRORS = (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError)


class RawItem(BaseModel):
    """
    One upstream post/story normalized into the common shape.
    """
    model_config = ConfigDict(frozen=True)

    title: str = ""
    snippet: str = ""
    url: str = ""
    source_name: str
    author: str = "Unknown"
    engagement_score: int = Field(default=0, ge=0)
    published_at: Optional[datetime] = None

    @property
    def headline(self) -> str:
        return self.title or self.snippet


class FetchResult(BaseModel):
    """
    Items from one adapter plus non-fatal errors hit along the way.
    """
    items: List[RawItem] = []
    errors: List[str] = []

    @property
    def failed(self) -> bool:
        return not self.items and bool(self.errors)


class FetchStrategy(ABC):
    """
    One way of asking a provider for items matching a query.
    Raises on transport errors, bad status or malformed payloads.
    """

    name: str

    @abstractmethod
    async def try_fetch(self, client: httpx.AsyncClient, query: str) -> List[RawItem]:
        raise NotImplementedError


class SourceAdapter(ABC):
    """
    Base interface for all upstream sources.
    """

    name: str

    def __init__(
        self,
        *,
        timeout: float = 20.0,
        request_timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self.request_timeout = request_timeout
        self.transport = transport

    async def fetch(self, category: CategoryConfig) -> FetchResult:
        """
        Fetch items for a category within this adapter's timeout.
        Must NEVER raise: failures come back as an empty result with errors.
        """
        try:
            return await asyncio.wait_for(self._fetch(category), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"[{category.key}] {self.name} timed out after {self.timeout}s")
            return FetchResult(errors=[f"{self.name}: timed out after {self.timeout}s"])
        except Exception as e:
            logger.exception(f"[{category.key}] {self.name} failed: {e}")
            return FetchResult(errors=[f"{self.name}: {e!r}"])

    def client(self, **kwargs) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.request_timeout,
            transport=self.transport,
            **kwargs,
        )

    @abstractmethod
    async def _fetch(self, category: CategoryConfig) -> FetchResult:
        raise NotImplementedError


class StrategyAdapter(SourceAdapter):
    """
    Adapter that runs an ordered strategy chain per query.

    Queries are fetched concurrently and merged in query order. For each
    query the strategies are tried in sequence until one returns items.
    """

    def queries_for(self, category: CategoryConfig) -> List[str]:
        return list(category.terms_for(self.name))

    def client_headers(self) -> dict:
        return {}

    @abstractmethod
    async def strategies(self, client: httpx.AsyncClient, errors: List[str]) -> Sequence[FetchStrategy]:
        raise NotImplementedError

    async def _fetch(self, category: CategoryConfig) -> FetchResult:
        queries = self.queries_for(category)
        if not queries:
            return FetchResult()

        errors: List[str] = []

        async with self.client(headers=self.client_headers()) as client:
            chain = await self.strategies(client, errors)
            if not chain:
                return FetchResult(errors=errors)

            per_query = await asyncio.gather(
                *(self._run_chain(client, chain, query, errors) for query in queries)
            )

        items = [item for batch in per_query for item in batch]
        logger.info(f"[{category.key}] {self.name}: {len(items)} items from {len(queries)} queries")
        return FetchResult(items=items, errors=errors)

    async def _run_chain(
        self,
        client: httpx.AsyncClient,
        chain: Sequence[FetchStrategy],
        query: str,
        errors: List[str],
    ) -> List[RawItem]:
        for strategy in chain:
            try:
                items = await strategy.try_fetch(client, query)
            except STRATEGY_ERRORS as e:
                logger.warning(f"{self.name}/{strategy.name} failed for {query!r}: {e!r}")
                errors.append(f"{self.name}/{strategy.name} {query!r}: {e!r}")
                continue

            if items:
                return items
            logger.debug(f"{self.name}/{strategy.name} returned nothing for {query!r}")

        return []
