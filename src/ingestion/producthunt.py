"""
Get top launches from Product Hunt
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Callable, List, Optional, Sequence

import httpx

from core.categories import CategoryConfig
from core.errors import CacheStoreError
from core.scoring import producthunt_engagement
from ingestion.base import STRATEGY_ERRORS, FetchResult, FetchStrategy, RawItem, StrategyAdapter

if TYPE_CHECKING:
    from services.cache_store import CacheStore

logger = logging.getLogger(__name__)

TOKEN_URL = "https://api.producthunt.com/v2/oauth/token"
GRAPHQL_URL = "https://api.producthunt.com/v2/api/graphql"
REDIRECT_URI = "urn:ietf:wg:oauth:2.0:oob"

TOP_POSTS_QUERY = """
query TopPosts($postedAfter: DateTime, $first: Int, $topic: String) {
  posts(order: VOTES, postedAfter: $postedAfter, first: $first, topic: $topic) {
    edges {
      node {
        id
        name
        tagline
        description
        url
        votesCount
        website
        createdAt
        thumbnail { url }
        topics { edges { node { name } } }
      }
    }
  }
}
"""


def filter_recently_shown(
    items: List[RawItem],
    seen_urls: set,
    repeat_votes: int = 500,
    min_fresh: int = 5,
) -> List[RawItem]:
    """
    Drop launches already served in the lookback window unless they are
    big enough to repeat. Too few fresh launches keeps the whole pool.
    """
    fresh = [i for i in items if i.url not in seen_urls or i.engagement_score > repeat_votes]
    if len(fresh) < min_fresh:
        logger.info(f"Only {len(fresh)} fresh launches, keeping all {len(items)}")
        return items
    return fresh


class TopPostsStrategy(FetchStrategy):
    """GraphQL posts ordered by votes, posted within the last two days."""

    name = "graphql_top_posts"

    def __init__(
        self,
        token: str,
        limit: int = 20,
        window_days: int = 2,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.token = token
        self.limit = limit
        self.window_days = window_days
        self.clock = clock

    def posted_after(self) -> str:
        since = (self.clock() - timedelta(days=self.window_days)).date()
        return f"{since.isoformat()}T00:00:00Z"

    async def try_fetch(self, client: httpx.AsyncClient, query: str) -> List[RawItem]:
        resp = await client.post(
            GRAPHQL_URL,
            json={
                "query": TOP_POSTS_QUERY,
                "variables": {"postedAfter": self.posted_after(), "first": self.limit, "topic": query},
            },
            headers={"Authorization": f"Bearer {self.token}"},
        )
        resp.raise_for_status()
        data = resp.json()

        if data.get("errors"):
            raise ValueError(f"GraphQL errors: {data['errors']}")

        items: List[RawItem] = []
        for edge in data["data"]["posts"]["edges"]:
            node = edge.get("node") or {}
            name = node.get("name")
            if not name:
                continue

            tagline = node.get("tagline") or ""

            items.append(
                RawItem(
                    title=f"{name}: {tagline}" if tagline else name,
                    snippet=(node.get("description") or tagline)[:300],
                    url=node.get("url") or node.get("website") or "",
                    source_name="Product Hunt",
                    author="Product Hunt",
                    engagement_score=producthunt_engagement(node.get("votesCount")),
                    published_at=node.get("createdAt"),
                )
            )
        return items


class ProductHuntAdapter(StrategyAdapter):
    """
    Top launches per topic slug. Client-credentials token from the app's
    key and secret; launches served in the last two weeks are skipped
    unless they pass the repeat vote threshold.
    """

    name = "producthunt"

    def __init__(
        self,
        *,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        history: Optional["CacheStore"] = None,
        limit: int = 20,
        repeat_window_days: int = 14,
        repeat_votes: int = 500,
        min_fresh: int = 5,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.client_id = client_id
        self.client_secret = client_secret
        self.history = history
        self.limit = limit
        self.repeat_window_days = repeat_window_days
        self.repeat_votes = repeat_votes
        self.min_fresh = min_fresh

    async def _access_token(self, client: httpx.AsyncClient, errors: List[str]) -> Optional[str]:
        try:
            resp = await client.post(
                TOKEN_URL,
                json={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "redirect_uri": REDIRECT_URI,
                    "grant_type": "client_credentials",
                },
            )
            if resp.status_code == 200:
                token = resp.json().get("access_token")
                if token:
                    return token
            errors.append(f"producthunt: token exchange returned {resp.status_code}")
            logger.error(f"Product Hunt token failed {resp.status_code}: {resp.text[:200]}")
        except STRATEGY_ERRORS as e:
            errors.append(f"producthunt: token exchange failed: {e!r}")
            logger.error(f"Product Hunt token error: {e!r}")
        return None

    async def strategies(self, client: httpx.AsyncClient, errors: List[str]) -> Sequence[FetchStrategy]:
        if not (self.client_id and self.client_secret):
            logger.warning("No Product Hunt credentials, skipping Product Hunt")
            errors.append("producthunt: no credentials configured")
            return []

        token = await self._access_token(client, errors)
        if not token:
            return []
        return [TopPostsStrategy(token, limit=self.limit)]

    async def _fetch(self, category: CategoryConfig) -> FetchResult:
        result = await super()._fetch(category)
        if not result.items or self.history is None:
            return result

        errors = list(result.errors)
        try:
            seen = await self.history.recent_source_urls(self.repeat_window_days)
        except CacheStoreError as e:
            logger.warning(f"[{category.key}] Product Hunt history unavailable: {e}")
            errors.append(f"producthunt: history unavailable: {e}")
            return FetchResult(items=result.items, errors=errors)

        items = filter_recently_shown(result.items, seen, self.repeat_votes, self.min_fresh)
        return FetchResult(items=items, errors=errors)
