"""
Tests for ingestion adapters - strategy chains over faked upstreams
"""
import json
import time

import httpx
import pytest

from conftest import StaticAdapter
from core.errors import CacheStoreError
from ingestion.base import StrategyAdapter
from ingestion.hackernews import HackerNewsAdapter
from ingestion.producthunt import ProductHuntAdapter
from ingestion.reddit import RedditAdapter
from ingestion.x_search import XSearchAdapter


def _listing(*posts):
    return {"data": {"children": [{"data": p} for p in posts]}}


def _post(title, score=10, **extra):
    data = {
        "title": title,
        "selftext": "",
        "url": f"https://example.com/{title.replace(' ', '-')}",
        "permalink": f"/r/x/comments/{title.replace(' ', '_')}",
        "author": "poster",
        "score": score,
        "created_utc": time.time() - 600,
    }
    data.update(extra)
    return data


class TestRedditAdapter:

    @pytest.mark.asyncio
    async def test_hot_then_new_fallback(self, category):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.path)
            if request.url.path == "/r/technology/hot.json":
                return httpx.Response(503)
            if request.url.path == "/r/technology/new.json":
                return httpx.Response(200, json=_listing(_post("fresh post", score=3)))
            if request.url.path == "/r/programming/hot.json":
                return httpx.Response(200, json=_listing(_post("hot post", score=99)))
            return httpx.Response(404)

        adapter = RedditAdapter(transport=httpx.MockTransport(handler))
        result = await adapter.fetch(category)

        assert [i.title for i in result.items] == ["fresh post", "hot post"]
        assert result.items[0].source_name == "Reddit r/technology"
        assert result.items[0].author == "u/poster"
        assert result.items[1].engagement_score == 99
        assert "/r/programming/new.json" not in seen
        assert any("hot" in e for e in result.errors)

    @pytest.mark.asyncio
    async def test_skips_stickied_and_empty(self, category):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=_listing(
                _post("Weekly megathread", stickied=True),
                _post("", selftext=""),
                _post("real post", score=-4),
            ))

        result = await RedditAdapter(transport=httpx.MockTransport(handler)).fetch(category)

        assert [i.title for i in result.items] == ["real post", "real post"]
        assert result.items[0].engagement_score == 0

    @pytest.mark.asyncio
    async def test_self_post_url_uses_permalink(self, category):
        def handler(request: httpx.Request) -> httpx.Response:
            post = _post("ask reddit", url="", selftext="body text " * 100)
            return httpx.Response(200, json=_listing(post))

        result = await RedditAdapter(transport=httpx.MockTransport(handler)).fetch(category)

        item = result.items[0]
        assert item.url.startswith("https://www.reddit.com/r/x/comments/")
        assert len(item.snippet) == 600

    @pytest.mark.asyncio
    async def test_malformed_payload_is_empty_not_raised(self, category):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"unexpected": True})

        result = await RedditAdapter(transport=httpx.MockTransport(handler)).fetch(category)

        assert result.items == []
        assert result.failed
        assert len(result.errors) == 4

    @pytest.mark.asyncio
    async def test_sends_user_agent(self, category):
        agents = set()

        def handler(request: httpx.Request) -> httpx.Response:
            agents.add(request.headers["User-Agent"])
            return httpx.Response(200, json=_listing(_post("p")))

        adapter = RedditAdapter(user_agent="briefs-test/0.1", transport=httpx.MockTransport(handler))
        await adapter.fetch(category)

        assert agents == {"briefs-test/0.1"}


V2_RESPONSE = {
    "data": [
        {
            "id": "111",
            "text": "Big launch today https://t.co/abc123",
            "author_id": "u1",
            "created_at": "2026-10-19T05:00:00.000Z",
            "public_metrics": {"like_count": 10, "retweet_count": 5},
        },
        {"id": "112", "text": "https://t.co/only", "author_id": "u1", "public_metrics": {}},
    ],
    "includes": {"users": [{"id": "u1", "username": "dev", "name": "Dev Person"}]},
}

V1_RESPONSE = {
    "statuses": [
        {
            "id_str": "222",
            "text": "Popular post",
            "created_at": "Mon Oct 19 05:00:00 +0000 2026",
            "favorite_count": 7,
            "retweet_count": 1,
            "user": {"screen_name": "pop", "name": "Popular"},
        }
    ]
}


class TestXSearchAdapter:

    @pytest.mark.asyncio
    async def test_oauth_token_and_v2(self, category):
        auth_headers = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/2/oauth2/token":
                assert request.headers["Authorization"].startswith("Basic ")
                return httpx.Response(200, json={"access_token": "app-token"})
            auth_headers.append(request.headers["Authorization"])
            if request.url.path == "/2/tweets/search/recent":
                assert request.url.params["max_results"] == "15"
                return httpx.Response(200, json=V2_RESPONSE)
            return httpx.Response(404)

        adapter = XSearchAdapter(
            consumer_key="key",
            consumer_secret="secret",
            bearer_token="static",
            transport=httpx.MockTransport(handler),
        )
        result = await adapter.fetch(category)

        assert auth_headers == ["Bearer app-token"]
        assert len(result.items) == 1
        item = result.items[0]
        assert item.snippet == "Big launch today"
        assert item.title == ""
        assert item.url == "https://x.com/dev/status/111"
        assert item.author == "@dev (Dev Person)"
        assert item.engagement_score == 20
        assert item.source_name == "X"

    @pytest.mark.asyncio
    async def test_bearer_fallback_and_v1_popular(self, category):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/2/oauth2/token":
                return httpx.Response(403, json={"error": "forbidden"})
            if request.url.path == "/2/tweets/search/recent":
                return httpx.Response(429)
            if request.url.path == "/1.1/search/tweets.json":
                assert request.headers["Authorization"] == "Bearer static"
                return httpx.Response(200, json=V1_RESPONSE)
            return httpx.Response(404)

        adapter = XSearchAdapter(
            consumer_key="key",
            consumer_secret="secret",
            bearer_token="static",
            transport=httpx.MockTransport(handler),
        )
        result = await adapter.fetch(category)

        assert len(result.items) == 1
        item = result.items[0]
        assert item.url == "https://twitter.com/pop/status/222"
        assert item.engagement_score == 9
        assert item.published_at.year == 2026
        assert any("OAuth" in e for e in result.errors)
        assert any("v2_recent" in e for e in result.errors)

    @pytest.mark.asyncio
    async def test_no_credentials(self, category):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(500)

        result = await XSearchAdapter(transport=httpx.MockTransport(handler)).fetch(category)

        assert result.items == []
        assert result.errors == ["x: no access token configured"]
        assert calls == []


class TestHackerNewsAdapter:

    def test_query_joins_first_three_keywords(self, category):
        assert HackerNewsAdapter().queries_for(category) == ["ai OR llm OR startup"]

    @pytest.mark.asyncio
    async def test_algolia_search(self, category):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.host == "hn.algolia.com"
            assert request.url.params["tags"] == "story"
            assert request.url.params["numericFilters"].startswith("created_at_i>")
            return httpx.Response(200, json={"hits": [
                {"title": "Show HN: tiny LLM", "url": "https://tiny.dev", "author": "pg",
                 "points": 321, "objectID": "1", "created_at": "2026-10-19T05:00:00.000Z"},
                {"title": "Ask HN: startup advice", "url": None, "author": "sama",
                 "points": None, "objectID": "2"},
                {"title": None, "objectID": "3"},
            ]})

        result = await HackerNewsAdapter(transport=httpx.MockTransport(handler)).fetch(category)

        assert [i.title for i in result.items] == ["Show HN: tiny LLM", "Ask HN: startup advice"]
        assert result.items[0].engagement_score == 321
        assert result.items[1].url == "https://news.ycombinator.com/item?id=2"
        assert result.items[1].engagement_score == 0

    @pytest.mark.asyncio
    async def test_topstories_fallback(self, category):
        now = int(time.time())
        stories = {
            1: {"id": 1, "type": "story", "title": "New LLM benchmark released", "by": "a",
                "score": 50, "time": now - 3600, "url": "https://bench.dev"},
            2: {"id": 2, "type": "comment", "text": "llm llm", "time": now},
            3: {"id": 3, "type": "story", "title": "Gardening tips for spring", "score": 5, "time": now},
            4: {"id": 4, "type": "story", "title": "Old startup story", "score": 500, "time": now - 5 * 86400},
        }

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "hn.algolia.com":
                return httpx.Response(500)
            if request.url.path == "/v0/topstories.json":
                return httpx.Response(200, json=[1, 2, 3, 4])
            sid = int(request.url.path.rsplit("/", 1)[-1].split(".")[0])
            return httpx.Response(200, json=stories[sid])

        result = await HackerNewsAdapter(transport=httpx.MockTransport(handler)).fetch(category)

        assert [i.title for i in result.items] == ["New LLM benchmark released"]
        assert result.items[0].engagement_score == 50
        assert any("algolia" in e for e in result.errors)

    @pytest.mark.asyncio
    async def test_topstories_skips_unreadable_items(self, category):
        now = int(time.time())
        good = {"id": 1, "type": "story", "title": "LLM inference on a phone", "by": "a",
                "score": 80, "time": now - 600, "url": "https://phone.dev"}

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "hn.algolia.com":
                return httpx.Response(500)
            if request.url.path == "/v0/topstories.json":
                return httpx.Response(200, json=[1, 2, 3])
            if request.url.path == "/v0/item/2.json":
                return httpx.Response(200, text="<html>rate limited</html>")
            if request.url.path == "/v0/item/3.json":
                return httpx.Response(200, json="deleted")
            return httpx.Response(200, json=good)

        result = await HackerNewsAdapter(transport=httpx.MockTransport(handler)).fetch(category)

        assert [i.title for i in result.items] == ["LLM inference on a phone"]
        assert not any("topstories" in e for e in result.errors)


def _launch(pid, name, votes, tagline="Ship faster"):
    return {"node": {
        "id": str(pid),
        "name": name,
        "tagline": tagline,
        "description": f"{name} does a thing",
        "url": f"https://www.producthunt.com/posts/{name.lower()}",
        "votesCount": votes,
        "website": f"https://{name.lower()}.app",
        "createdAt": "2026-10-18T07:00:00Z",
        "thumbnail": {"url": "https://ph-files/thumb.png"},
        "topics": {"edges": [{"node": {"name": "Artificial Intelligence"}}]},
    }}


def _ph_handler(launches, seen_requests=None):
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if seen_requests is not None:
            seen_requests.append((request, body))
        if request.url.path == "/v2/oauth/token":
            return httpx.Response(200, json={"access_token": "ph-token"})
        if request.url.path == "/v2/api/graphql":
            return httpx.Response(200, json={"data": {"posts": {"edges": launches}}})
        return httpx.Response(404)
    return handler


class RecentHistory:
    def __init__(self, urls=(), fail=False):
        self.urls = set(urls)
        self.fail = fail

    async def recent_source_urls(self, days=14):
        if self.fail:
            raise CacheStoreError("database is locked")
        return self.urls


class TestProductHuntAdapter:

    @pytest.mark.asyncio
    async def test_token_exchange_and_top_posts(self, category):
        requests = []
        adapter = ProductHuntAdapter(
            client_id="id",
            client_secret="secret",
            transport=httpx.MockTransport(_ph_handler([_launch(1, "Rocket", 321)], requests)),
        )

        result = await adapter.fetch(category)

        (_, token_body), (query_req, query_body) = requests
        assert token_body == {
            "client_id": "id",
            "client_secret": "secret",
            "redirect_uri": "urn:ietf:wg:oauth:2.0:oob",
            "grant_type": "client_credentials",
        }
        assert query_req.headers["Authorization"] == "Bearer ph-token"
        assert "order: VOTES" in query_body["query"]
        assert query_body["variables"]["topic"] == "artificial-intelligence"
        assert query_body["variables"]["first"] == 20
        assert query_body["variables"]["postedAfter"].endswith("T00:00:00Z")

        (item,) = result.items
        assert item.title == "Rocket: Ship faster"
        assert item.snippet == "Rocket does a thing"
        assert item.url == "https://www.producthunt.com/posts/rocket"
        assert item.source_name == "Product Hunt"
        assert item.engagement_score == 321
        assert result.errors == []

    @pytest.mark.asyncio
    async def test_no_credentials(self, category):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(500)

        result = await ProductHuntAdapter(transport=httpx.MockTransport(handler)).fetch(category)

        assert result.items == []
        assert result.errors == ["producthunt: no credentials configured"]
        assert calls == []

    @pytest.mark.asyncio
    async def test_graphql_errors_are_recorded(self, category):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/v2/oauth/token":
                return httpx.Response(200, json={"access_token": "ph-token"})
            return httpx.Response(200, json={"data": None, "errors": [{"message": "rate limited"}]})

        adapter = ProductHuntAdapter(client_id="id", client_secret="secret",
                                     transport=httpx.MockTransport(handler))
        result = await adapter.fetch(category)

        assert result.items == []
        assert any("graphql_top_posts" in e and "rate limited" in e for e in result.errors)

    @pytest.mark.asyncio
    async def test_token_failure_is_recorded(self, category):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"error": "invalid_client"})

        adapter = ProductHuntAdapter(client_id="id", client_secret="wrong",
                                     transport=httpx.MockTransport(handler))
        result = await adapter.fetch(category)

        assert result.items == []
        assert result.errors == ["producthunt: token exchange returned 401"]

    @pytest.mark.asyncio
    async def test_recent_launches_skipped_unless_over_repeat_votes(self, category):
        launches = [_launch(i, f"Fresh{i}", 100 + i) for i in range(5)]
        launches += [_launch(10, "Shown", 300), _launch(11, "Huge", 900)]
        history = RecentHistory({
            "https://www.producthunt.com/posts/shown",
            "https://www.producthunt.com/posts/huge",
        })
        adapter = ProductHuntAdapter(client_id="id", client_secret="secret", history=history,
                                     transport=httpx.MockTransport(_ph_handler(launches)))

        result = await adapter.fetch(category)

        names = [i.title.split(":")[0] for i in result.items]
        assert "Shown" not in names
        assert "Huge" in names
        assert len(names) == 6

    @pytest.mark.asyncio
    async def test_too_few_fresh_launches_keeps_whole_pool(self, category):
        launches = [_launch(1, "Alpha", 50), _launch(2, "Beta", 40), _launch(3, "Gamma", 30)]
        history = RecentHistory({"https://www.producthunt.com/posts/alpha"})
        adapter = ProductHuntAdapter(client_id="id", client_secret="secret", history=history,
                                     transport=httpx.MockTransport(_ph_handler(launches)))

        result = await adapter.fetch(category)

        assert len(result.items) == 3

    @pytest.mark.asyncio
    async def test_history_failure_keeps_items(self, category):
        adapter = ProductHuntAdapter(client_id="id", client_secret="secret", history=RecentHistory(fail=True),
                                     transport=httpx.MockTransport(_ph_handler([_launch(1, "Rocket", 9)])))

        result = await adapter.fetch(category)

        assert len(result.items) == 1
        assert any("history unavailable" in e for e in result.errors)


class TestSourceAdapterContract:

    @pytest.mark.asyncio
    async def test_timeout_becomes_empty_result(self, category):
        adapter = StaticAdapter("slow", delay=1.0, timeout=0.05)
        result = await adapter.fetch(category)

        assert result.items == []
        assert "timed out" in result.errors[0]

    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_empty_result(self, category):
        adapter = StaticAdapter("broken", exc=RuntimeError("boom"))
        result = await adapter.fetch(category)

        assert result.items == []
        assert "boom" in result.errors[0]

    @pytest.mark.asyncio
    async def test_transport_error_is_recorded(self, category):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        result = await HackerNewsAdapter(transport=httpx.MockTransport(handler)).fetch(category)

        assert result.items == []
        assert len(result.errors) == 2

    def test_strategy_adapter_requires_strategies(self):
        class NoStrategies(StrategyAdapter):
            name = "incomplete"

        with pytest.raises(TypeError):
            NoStrategies()
