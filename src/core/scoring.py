"""
Per-provider engagement formulas.

Each formula maps the popularity signals one provider exposes onto a
non-negative integer that grows with engagement. Scores are compared across
providers as-is.
"""


def _count(value) -> int:
    try:
        return max(int(value or 0), 0)
    except (TypeError, ValueError):
        return 0


def x_engagement(likes, reposts) -> int:
    """Likes plus reposts weighted double."""
    return _count(likes) + 2 * _count(reposts)


def reddit_engagement(score) -> int:
    """Net upvote score, floored at zero."""
    return _count(score)


def hackernews_engagement(points) -> int:
    return _count(points)


def producthunt_engagement(votes) -> int:
    return _count(votes)
