from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Literal

from pydantic import BaseModel, ConfigDict, Field


BriefStatus = Literal["ready", "starved", "incomplete"]


class SourceRef(BaseModel):
    """
    Citation for one item that survived dedup and ranking.
    """
    model_config = ConfigDict(frozen=True)

    title: str
    url: str
    source_name: str
    author: str


class CategoryBrief(BaseModel):
    """
    Synthesized brief for one category on one day.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    summary: str = ""
    highlights: List[str] = Field(default_factory=list, max_length=5)
    top_sources: List[SourceRef] = Field(default_factory=list)
    fetched_at: datetime
    status: BriefStatus = "ready"

    @classmethod
    def empty(cls, name: str, fetched_at: datetime, status: BriefStatus) -> "CategoryBrief":
        return cls(name=name, fetched_at=fetched_at, status=status)


class DailyPayload(BaseModel):
    """
    The unit of caching: every category's brief for one calendar day.
    """
    model_config = ConfigDict(frozen=True)

    date: str
    briefs_by_category: Dict[str, CategoryBrief]
    fetched_at: datetime

    def is_complete_for(self, category_keys: List[str]) -> bool:
        """
        True when every configured category is present and finished a full
        fetch attempt (a starved category counts as finished).
        """
        for key in category_keys:
            brief = self.briefs_by_category.get(key)
            if brief is None or brief.status == "incomplete":
                return False
            if brief.status == "ready" and not brief.summary:
                return False
        return True

    @property
    def is_complete(self) -> bool:
        return self.is_complete_for(list(self.briefs_by_category))
