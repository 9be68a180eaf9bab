"""
Error types raised across package boundaries.

Source and LLM failures are recovered where they happen and never leave the
pipeline; these types cover what does reach the HTTP boundary.
"""


class BriefError(Exception):
    """Base class for daily brief errors."""


class ConfigError(BriefError):
    """Configuration is missing or invalid."""


class CacheStoreError(BriefError):
    """The daily cache could not be read or written."""


class AuthError(BriefError):
    """Missing or invalid bearer credential."""


class LLMError(BriefError):
    """The LLM provider failed or returned nothing usable."""


class FutureDateError(BriefError):
    """Briefs were requested for a day that has not started yet."""


class DayNotCachedError(BriefError):
    """Briefs were requested for a past day that has no cached row."""
