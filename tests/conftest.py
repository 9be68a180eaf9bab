"""
Pytest configuration and common fixtures for all tests
"""
import asyncio
import os
import sys
from typing import List, Optional

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'src')))

from core.categories import CategoryConfig
from core.errors import LLMError
from ingestion.base import FetchResult, RawItem, SourceAdapter
from services.database import Database
from services.llm import LLMClient


def make_item(title="", snippet="", source="Hacker News", score=0, url=None, author="someone") -> RawItem:
    return RawItem(
        title=title,
        snippet=snippet,
        url=url or "https://example.com/" + (title or snippet)[:30].replace(" ", "-"),
        source_name=source,
        author=author,
        engagement_score=score,
    )


class StaticAdapter(SourceAdapter):
    """Adapter returning canned items, counting calls."""

    def __init__(self, name: str, items: Optional[List[RawItem]] = None, *,
                 errors: Optional[List[str]] = None, delay: float = 0.0, exc: Optional[Exception] = None,
                 **kwargs):
        super().__init__(**kwargs)
        self.name = name
        self.items = items or []
        self.errors = errors or []
        self.delay = delay
        self.exc = exc
        self.calls = 0

    async def _fetch(self, category: CategoryConfig) -> FetchResult:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.exc:
            raise self.exc
        return FetchResult(items=list(self.items), errors=list(self.errors))


class FakeLLM(LLMClient):
    """LLM returning a canned response, or raising LLMError."""

    name = "fake"

    def __init__(self, response: str = "", fail: bool = False):
        self.response = response
        self.fail = fail
        self.calls = []

    async def complete_json(self, system: str, user: str) -> str:
        self.calls.append((system, user))
        if self.fail:
            raise LLMError("provider down")
        return self.response


@pytest.fixture
def category():
    return CategoryConfig(
        key="general",
        name="General Tech",
        focus="General technology news",
        queries={
            "x": ("llm -is:retweet",),
            "reddit": ("technology", "programming"),
            "hackernews": ("ai", "llm", "startup", "gpu"),
            "producthunt": ("artificial-intelligence",),
        },
    )


@pytest.fixture
def database(tmp_path):
    return Database(str(tmp_path / "data" / "test.db"))
