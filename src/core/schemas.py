"""
Schemas for structured LLM output
"""
from typing import List

from pydantic import BaseModel, field_validator


class BriefDraft(BaseModel):
    """
    JSON object the LLM is asked to return for a category brief.
    """
    summary: str
    highlights: List[str] = []

    @field_validator("summary", mode="before")
    @classmethod
    def _coerce_summary(cls, value):
        return "" if value is None else str(value).strip()

    @field_validator("highlights", mode="before")
    @classmethod
    def _coerce_highlights(cls, value):
        if not isinstance(value, list):
            return []
        cleaned = [str(h).strip() for h in value if h is not None and str(h).strip()]
        return cleaned[:5]
