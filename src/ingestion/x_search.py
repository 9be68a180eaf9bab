"""
Search recent posts on X
"""
import logging
import re
from datetime import datetime
from typing import List, Optional, Sequence

import httpx

from core.scoring import x_engagement
from ingestion.base import STRATEGY_ERRORS, FetchStrategy, RawItem, StrategyAdapter

logger = logging.getLogger(__name__)

API_URL = "https://api.twitter.com"
TRAILING_LINK = re.compile(r"\s*https://t\.co/\S+$")


def _clean_text(text: Optional[str]) -> str:
    return TRAILING_LINK.sub("", text or "").strip()


def _parse_v1_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.strptime(value, "%a %b %d %H:%M:%S %z %Y")
    except ValueError:
        return None


class RecentSearchStrategy(FetchStrategy):
    """v2 recent search, ranked by relevancy, with author expansion."""

    name = "v2_recent"

    def __init__(self, token: str, limit: int = 15):
        self.token = token
        self.limit = limit

    async def try_fetch(self, client: httpx.AsyncClient, query: str) -> List[RawItem]:
        resp = await client.get(
            f"{API_URL}/2/tweets/search/recent",
            params={
                "query": query,
                "max_results": self.limit,
                "sort_order": "relevancy",
                "tweet.fields": "created_at,author_id,public_metrics,text",
                "expansions": "author_id",
                "user.fields": "name,username",
            },
            headers={"Authorization": f"Bearer {self.token}"},
        )
        resp.raise_for_status()
        data = resp.json()

        users = {u["id"]: u for u in (data.get("includes") or {}).get("users", [])}
        items: List[RawItem] = []

        for post in data.get("data") or []:
            text = _clean_text(post.get("text"))
            if not text:
                continue
            author = users.get(post.get("author_id"))
            metrics = post.get("public_metrics") or {}
            username = author["username"] if author else "x"

            items.append(
                RawItem(
                    title="",
                    snippet=text,
                    url=f"https://x.com/{username}/status/{post['id']}",
                    source_name="X",
                    author=f"@{author['username']} ({author.get('name', '')})" if author else "Unknown",
                    engagement_score=x_engagement(metrics.get("like_count"), metrics.get("retweet_count")),
                    published_at=post.get("created_at"),
                )
            )
        return items


class PopularSearchStrategy(FetchStrategy):
    """v1.1 standard search restricted to popular posts."""

    name = "v1_popular"

    def __init__(self, token: str, limit: int = 15):
        self.token = token
        self.limit = limit

    async def try_fetch(self, client: httpx.AsyncClient, query: str) -> List[RawItem]:
        resp = await client.get(
            f"{API_URL}/1.1/search/tweets.json",
            params={"q": query, "result_type": "popular", "count": self.limit},
            headers={"Authorization": f"Bearer {self.token}"},
        )
        resp.raise_for_status()

        items: List[RawItem] = []
        for post in resp.json().get("statuses") or []:
            text = _clean_text(post.get("text"))
            if not text:
                continue
            user = post.get("user") or {}
            screen_name = user.get("screen_name") or "unknown"

            items.append(
                RawItem(
                    title="",
                    snippet=text,
                    url=f"https://twitter.com/{screen_name}/status/{post.get('id_str')}",
                    source_name="X",
                    author=f"@{screen_name} ({user.get('name', '')})",
                    engagement_score=x_engagement(post.get("favorite_count"), post.get("retweet_count")),
                    published_at=_parse_v1_time(post.get("created_at")),
                )
            )
        return items


class XSearchAdapter(StrategyAdapter):
    """
    Social post search. App-only OAuth2 token from consumer credentials,
    falling back to a static bearer token.
    """

    name = "x"

    def __init__(
        self,
        *,
        bearer_token: Optional[str] = None,
        consumer_key: Optional[str] = None,
        consumer_secret: Optional[str] = None,
        limit: int = 15,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.bearer_token = bearer_token
        self.consumer_key = consumer_key
        self.consumer_secret = consumer_secret
        self.limit = limit

    async def _access_token(self, client: httpx.AsyncClient, errors: List[str]) -> Optional[str]:
        if not (self.consumer_key and self.consumer_secret):
            return self.bearer_token

        try:
            resp = await client.post(
                f"{API_URL}/2/oauth2/token",
                data={"grant_type": "client_credentials"},
                auth=(self.consumer_key, self.consumer_secret),
            )
            if resp.status_code == 200:
                token = resp.json().get("access_token")
                if token:
                    return token
            errors.append(f"x: OAuth token exchange returned {resp.status_code}")
            logger.error(f"X OAuth failed {resp.status_code}: {resp.text[:200]}")
        except STRATEGY_ERRORS as e:
            errors.append(f"x: OAuth token exchange failed: {e!r}")
            logger.error(f"X OAuth error: {e!r}")

        return self.bearer_token

    async def strategies(self, client: httpx.AsyncClient, errors: List[str]) -> Sequence[FetchStrategy]:
        token = await self._access_token(client, errors)
        if not token:
            logger.warning("No X access token available, skipping X")
            errors.append("x: no access token configured")
            return []

        return [
            RecentSearchStrategy(token, limit=self.limit),
            PopularSearchStrategy(token, limit=self.limit),
        ]
