import logging
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import ValidationError

from core.categories import CategoryConfig
from core.entities import CategoryBrief, SourceRef
from core.errors import LLMError
from core.schemas import BriefDraft
from ingestion.base import RawItem
from processing.json_extract import extract_json_object
from services.llm import LLMClient

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a concise tech news briefing writer.
Topic focus: {focus}

Using ONLY the items provided, write:
- summary: one paragraph of 2-4 sentences on what matters today
- highlights: up to 5 short bullet strings, most important first

Return ONLY a JSON object: {{"summary": "...", "highlights": ["..."]}}"""


def top_sources(items: List[RawItem], limit: int = 10) -> List[SourceRef]:
    return [
        SourceRef(
            title=item.title or item.snippet[:100],
            url=item.url,
            source_name=item.source_name,
            author=item.author,
        )
        for item in items[:limit]
    ]


def extractive_summary(category: CategoryConfig, items: List[RawItem]) -> str:
    parts = [item.title or item.snippet[:80] for item in items[:3]]
    return f"Today in {category.name}: " + ". ".join(parts) + "..."


def extractive_highlights(items: List[RawItem]) -> List[str]:
    return [
        f"{i}. {item.title or item.snippet[:120]} [{item.source_name}]"
        for i, item in enumerate(items[:5], start=1)
    ]


class BriefSynthesizer:
    """
    Turns a ranked item list into a CategoryBrief.

    With an LLM client, one completion per call; any LLM or parse failure
    falls back to the deterministic extractive brief. Without one, the
    brief is always extractive. top_sources never depends on the LLM.
    """

    def __init__(
        self,
        llm: Optional[LLMClient] = None,
        *,
        top_sources_limit: int = 10,
        digest_item_limit: int = 20,
        snippet_length: int = 300,
    ):
        self.llm = llm
        self.top_sources_limit = top_sources_limit
        self.digest_item_limit = digest_item_limit
        self.snippet_length = snippet_length

    def build_digest(self, items: List[RawItem]) -> str:
        lines = []
        for i, item in enumerate(items[:self.digest_item_limit], start=1):
            snippet = item.snippet[:self.snippet_length].replace("\n", " ").strip()
            lines.append(f"[{i}] ({item.source_name}) {item.title}: {snippet} - {item.url}")
        return "\n".join(lines)

    def extractive_brief(
        self,
        category: CategoryConfig,
        items: List[RawItem],
        fetched_at: datetime,
    ) -> CategoryBrief:
        return CategoryBrief(
            name=category.name,
            summary=extractive_summary(category, items),
            highlights=extractive_highlights(items),
            top_sources=top_sources(items, self.top_sources_limit),
            fetched_at=fetched_at,
        )

    async def _draft(self, category: CategoryConfig, items: List[RawItem]) -> Optional[BriefDraft]:
        system = SYSTEM_PROMPT.format(focus=category.focus)
        user = f"Today's items for {category.name}:\n\n{self.build_digest(items)}"

        try:
            content = await self.llm.complete_json(system, user)
        except LLMError as e:
            logger.warning(f"[{category.key}] LLM synthesis failed, using extractive brief: {e}")
            return None

        data = extract_json_object(content)
        if data is None:
            logger.warning(f"[{category.key}] LLM returned unparseable output, using extractive brief")
            return None

        try:
            draft = BriefDraft.model_validate(data)
        except ValidationError as e:
            logger.warning(f"[{category.key}] LLM output failed validation: {e}")
            return None

        if not draft.summary:
            logger.warning(f"[{category.key}] LLM returned an empty summary, using extractive brief")
            return None
        return draft

    async def synthesize(
        self,
        category: CategoryConfig,
        items: List[RawItem],
        fetched_at: Optional[datetime] = None,
    ) -> CategoryBrief:
        """
        Build the brief for one category from ranked, deduplicated items.
        Never raises for upstream LLM problems.
        """
        fetched_at = fetched_at or datetime.now(timezone.utc)

        if not items:
            logger.info(f"[{category.key}] no items, brief is starved")
            return CategoryBrief.empty(category.name, fetched_at, status="starved")

        if self.llm is None:
            return self.extractive_brief(category, items, fetched_at)

        draft = await self._draft(category, items)
        if draft is None:
            return self.extractive_brief(category, items, fetched_at)

        logger.info(f"[{category.key}] LLM brief with {len(draft.highlights)} highlights")
        return CategoryBrief(
            name=category.name,
            summary=draft.summary,
            highlights=draft.highlights or extractive_highlights(items),
            top_sources=top_sources(items, self.top_sources_limit),
            fetched_at=fetched_at,
        )
