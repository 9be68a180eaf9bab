"""
Source Factory - Creates ingestion adapters from configuration.
"""
import logging
from typing import TYPE_CHECKING, List, Optional

from ingestion.base import SourceAdapter
from ingestion.hackernews import HackerNewsAdapter
from ingestion.producthunt import ProductHuntAdapter
from ingestion.reddit import RedditAdapter
from ingestion.x_search import XSearchAdapter
from services.config import AppConfig, SourceConfig, get_enabled_sources

if TYPE_CHECKING:
    from services.cache_store import CacheStore

logger = logging.getLogger(__name__)


def create_source_adapter(
    source_config: SourceConfig,
    config: AppConfig,
    cache: Optional["CacheStore"] = None,
) -> SourceAdapter:
    """
    Create a source adapter from configuration.

    Args:
        source_config: Configuration for the source
        config: Application config supplying timeouts and credentials
        cache: Cache store whose history lets adapters skip repeats

    Returns:
        Configured SourceAdapter instance

    Raises:
        ValueError: If source type is unknown
    """
    source_type = source_config.type.lower()
    timeouts = {
        "timeout": config.SOURCE_TIMEOUT_SECONDS,
        "request_timeout": config.REQUEST_TIMEOUT_SECONDS,
    }

    if source_type == "x":
        return XSearchAdapter(
            bearer_token=config.secrets.X_BEARER_TOKEN,
            consumer_key=config.secrets.X_CONSUMER_KEY,
            consumer_secret=config.secrets.X_CONSUMER_SECRET,
            limit=source_config.limit,
            **timeouts,
        )

    elif source_type == "reddit":
        return RedditAdapter(
            user_agent=config.secrets.REDDIT_USER_AGENT,
            limit=source_config.limit,
            **timeouts,
        )

    elif source_type == "hackernews":
        return HackerNewsAdapter(limit=source_config.limit, **timeouts)

    elif source_type == "producthunt":
        return ProductHuntAdapter(
            client_id=config.secrets.PH_CLIENT_ID,
            client_secret=config.secrets.PH_CLIENT_SECRET,
            history=cache,
            limit=source_config.limit,
            **timeouts,
        )

    else:
        raise ValueError(f"Unknown source type: {source_type}")


def create_adapters_from_config(config: AppConfig, cache: Optional["CacheStore"] = None) -> List[SourceAdapter]:
    """
    Create all enabled source adapters, in configured priority order.

    Args:
        config: Application configuration with sources
        cache: Optional cache store shared with history-aware adapters

    Returns:
        List of configured SourceAdapter instances
    """
    adapters = []

    for source_config in get_enabled_sources(config):
        try:
            adapter = create_source_adapter(source_config, config, cache)
            adapters.append(adapter)
            logger.info(f"Created {source_config.type} adapter")
        except Exception as e:
            logger.error(f"Failed to create adapter for {source_config.type}: {e}")

    return adapters
