import httpx
from datetime import datetime, timezone
from typing import List, Sequence

from core.scoring import reddit_engagement
from ingestion.base import FetchStrategy, RawItem, StrategyAdapter

BASE_URL = "https://www.reddit.com"


def _parse_listing(data: dict, subreddit: str) -> List[RawItem]:
    items: List[RawItem] = []

    for post in data["data"]["children"]:
        d = post["data"]
        if d.get("stickied"):
            continue

        title = d.get("title") or ""
        selftext = d.get("selftext") or ""
        if not title and not selftext:
            continue

        url = d.get("url") or ""
        if not url.startswith(BASE_URL):
            url = f"{BASE_URL}{d.get('permalink', '')}"

        items.append(
            RawItem(
                title=title,
                snippet=selftext[:600],
                url=url,
                source_name=f"Reddit r/{subreddit}",
                author=f"u/{d.get('author') or 'unknown'}",
                engagement_score=reddit_engagement(d.get("score")),
                published_at=datetime.fromtimestamp(d.get("created_utc") or 0, tz=timezone.utc),
            )
        )

    return items


class ListingStrategy(FetchStrategy):
    """One subreddit listing (hot, new, ...)."""

    def __init__(self, listing: str, limit: int = 15, params: dict | None = None):
        self.name = listing
        self.listing = listing
        self.limit = limit
        self.params = params or {}

    async def try_fetch(self, client: httpx.AsyncClient, query: str) -> List[RawItem]:
        resp = await client.get(
            f"{BASE_URL}/r/{query}/{self.listing}.json",
            params={"limit": self.limit, **self.params},
        )
        resp.raise_for_status()
        return _parse_listing(resp.json(), query)


class RedditAdapter(StrategyAdapter):
    """
    Subreddit listings; each configured term is a subreddit name.
    Hot posts of the day first, newest posts when hot is unavailable.
    """

    name = "reddit"

    def __init__(self, user_agent: str = "daily-briefs/1.0 (news aggregator)", limit: int = 15, **kwargs):
        super().__init__(**kwargs)
        self.user_agent = user_agent
        self.limit = limit

    def client_headers(self) -> dict:
        return {"User-Agent": self.user_agent}

    async def strategies(self, client: httpx.AsyncClient, errors: List[str]) -> Sequence[FetchStrategy]:
        return [
            ListingStrategy("hot", limit=self.limit, params={"t": "day"}),
            ListingStrategy("new", limit=self.limit),
        ]
