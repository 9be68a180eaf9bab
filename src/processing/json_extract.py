import json
import logging
import re
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

FENCE_PATTERN = re.compile(r'^```(?:json)?\s*\n?(.*?)\n?```$', re.DOTALL)
OBJECT_PATTERN = re.compile(r'\{.*\}', re.DOTALL)


def _strip_fences(content: str) -> str:
    """
    Extract JSON from LLM response, stripping markdown code blocks if present.
    """
    content = content.strip()

    match = FENCE_PATTERN.match(content)
    if match:
        return match.group(1).strip()

    return content


def extract_json_object(content: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Parse a JSON object out of untrusted model output.

    Tries the whole (fence-stripped) text first, then the outermost
    {...} span. Returns None when nothing parses to an object.
    """
    if not content:
        return None

    text = _strip_fences(content)
    candidates = [text]

    span = OBJECT_PATTERN.search(text)
    if span and span.group(0) != text:
        candidates.append(span.group(0))

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed

    logger.debug(f"No JSON object found in model output: {content[:200]!r}")
    return None
