from typing import Dict, List

from ingestion.base import RawItem

DEFAULT_PREFIX_LENGTH = 60


def fingerprint(item: RawItem, prefix_length: int = DEFAULT_PREFIX_LENGTH) -> str:
    """
    Lowercased fixed-length prefix of the title, or of the snippet when
    the item has no title.
    """
    return (item.title or item.snippet)[:prefix_length].lower()


def dedupe(items: List[RawItem], prefix_length: int = DEFAULT_PREFIX_LENGTH) -> List[RawItem]:
    """
    Keep the first item seen for each fingerprint, in input order.
    """
    seen: Dict[str, RawItem] = {}

    for item in items:
        key = fingerprint(item, prefix_length)
        if key not in seen:
            seen[key] = item

    return list(seen.values())
