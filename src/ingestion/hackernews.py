"""
Ingest stories from Hacker News
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Iterable, List, Sequence

import httpx

from core.scoring import hackernews_engagement
from ingestion.base import FetchStrategy, RawItem, StrategyAdapter

ALGOLIA_URL = "https://hn.algolia.com/api/v1/search"
FIREBASE_URL = "https://hacker-news.firebaseio.com/v0"
ITEM_URL = "https://news.ycombinator.com/item?id={}"

KEYWORD_SEPARATOR = " OR "


def keyword_match(text: str, keywords: Iterable[str]) -> bool:
    text = text.lower()
    return any(k.lower() in text for k in keywords)


class AlgoliaSearchStrategy(FetchStrategy):
    """Keyword search over stories from the last `window_hours`."""

    name = "algolia"

    def __init__(self, limit: int = 15, window_hours: int = 48):
        self.limit = limit
        self.window_hours = window_hours

    async def try_fetch(self, client: httpx.AsyncClient, query: str) -> List[RawItem]:
        since = int(time.time()) - self.window_hours * 3600
        resp = await client.get(
            ALGOLIA_URL,
            params={
                "query": query,
                "tags": "story",
                "hitsPerPage": self.limit,
                "numericFilters": f"created_at_i>{since}",
            },
        )
        resp.raise_for_status()

        items: List[RawItem] = []
        for hit in resp.json()["hits"]:
            title = hit.get("title") or ""
            if not title:
                continue
            items.append(
                RawItem(
                    title=title,
                    snippet="",
                    url=hit.get("url") or ITEM_URL.format(hit.get("objectID")),
                    source_name="Hacker News",
                    author=hit.get("author") or "Unknown",
                    engagement_score=hackernews_engagement(hit.get("points")),
                    published_at=hit.get("created_at"),
                )
            )
        return items


class TopStoriesStrategy(FetchStrategy):
    """Scan current top stories and keep those whose title mentions a keyword."""

    name = "topstories"

    def __init__(self, scan_limit: int = 60, window_hours: int = 48):
        self.scan_limit = scan_limit
        self.window_hours = window_hours

    async def _story(self, client: httpx.AsyncClient, sid: int) -> dict | None:
        try:
            story = await client.get(f"{FIREBASE_URL}/item/{sid}.json")
        except httpx.HTTPError:
            return None
        if story.status_code != 200:
            return None
        try:
            return story.json()
        except ValueError:
            return None

    async def try_fetch(self, client: httpx.AsyncClient, query: str) -> List[RawItem]:
        keywords = [k for k in query.split(KEYWORD_SEPARATOR) if k]
        cutoff = time.time() - self.window_hours * 3600

        resp = await client.get(f"{FIREBASE_URL}/topstories.json")
        resp.raise_for_status()
        story_ids = resp.json()[:self.scan_limit]

        stories = await asyncio.gather(*(self._story(client, sid) for sid in story_ids))

        items: List[RawItem] = []
        for data in stories:
            if not isinstance(data, dict) or data.get("type") != "story":
                continue

            title = data.get("title") or ""
            if not title or not keyword_match(title, keywords):
                continue

            published = data.get("time", 0)
            if published < cutoff:
                continue

            items.append(
                RawItem(
                    title=title,
                    snippet="",
                    url=data.get("url") or ITEM_URL.format(data.get("id")),
                    source_name="Hacker News",
                    author=data.get("by") or "Unknown",
                    engagement_score=hackernews_engagement(data.get("score")),
                    published_at=datetime.fromtimestamp(published, tz=timezone.utc),
                )
            )
        return items


class HackerNewsAdapter(StrategyAdapter):
    """
    One search per category built from its first three keywords.
    """

    name = "hackernews"

    def __init__(self, limit: int = 15, **kwargs):
        super().__init__(**kwargs)
        self.limit = limit

    def queries_for(self, category) -> List[str]:
        keywords = list(category.terms_for(self.name))[:3]
        return [KEYWORD_SEPARATOR.join(keywords)] if keywords else []

    async def strategies(self, client: httpx.AsyncClient, errors: List[str]) -> Sequence[FetchStrategy]:
        return [
            AlgoliaSearchStrategy(limit=self.limit),
            TopStoriesStrategy(),
        ]
