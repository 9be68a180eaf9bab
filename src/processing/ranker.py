from typing import List

from ingestion.base import RawItem


def rank(items: List[RawItem]) -> List[RawItem]:
    """
    Descending by engagement score. sorted() is stable, so ties keep
    their input order.
    """
    return sorted(items, key=lambda item: -item.engagement_score)
