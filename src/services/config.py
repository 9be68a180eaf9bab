"""
Loads and handles config from config.yml
Provider credentials (OPENAI_API_KEY, X_*) are loaded from .env for security
"""
import logging
import os
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, ValidationError

from core.categories import DEFAULT_CATEGORIES, CategoryConfig
from core.errors import ConfigError

logger = logging.getLogger(__name__)


class SourceConfig(BaseModel):
    """Configuration for a single upstream source."""
    model_config = ConfigDict(frozen=True)

    type: str  # x, reddit, hackernews, producthunt
    enabled: bool = True
    limit: int = 15


class LLMConfig(BaseModel):
    """Configuration for brief synthesis."""
    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    provider: str = "openai"  # openai, ollama
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-4o-mini"
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "llama3.1:8b"
    temperature: float = 0.4
    max_tokens: int = 800
    timeout_seconds: float = 30.0
    digest_item_limit: int = 20
    snippet_length: int = 300


class Secrets(BaseModel):
    model_config = ConfigDict(frozen=True)

    OPENAI_API_KEY: Optional[str] = None
    X_BEARER_TOKEN: Optional[str] = None
    X_CONSUMER_KEY: Optional[str] = None
    X_CONSUMER_SECRET: Optional[str] = None
    PH_CLIENT_ID: Optional[str] = None
    PH_CLIENT_SECRET: Optional[str] = None
    REDDIT_USER_AGENT: str = "daily-briefs/1.0 (news aggregator)"


class AppConfig(BaseModel):
    """
    Complete, immutable application configuration.
    Built once at startup and passed explicitly to every component.
    """
    model_config = ConfigDict(frozen=True)

    DATABASE_PATH: str = "data/app.db"
    OUTPUT_DIR: str = "output"

    SOURCE_TIMEOUT_SECONDS: float = 20.0
    REQUEST_TIMEOUT_SECONDS: float = 10.0
    BUILD_DEADLINE_SECONDS: float = 120.0
    DEDUP_PREFIX_LENGTH: int = 60
    TOP_SOURCES_LIMIT: int = 10
    SCHEDULE_HOUR: int = 6

    llm: LLMConfig = LLMConfig()
    sources: List[SourceConfig] = [
        SourceConfig(type="x"),
        SourceConfig(type="reddit"),
        SourceConfig(type="hackernews"),
        SourceConfig(type="producthunt", limit=20),
    ]
    categories: Dict[str, CategoryConfig] = DEFAULT_CATEGORIES
    secrets: Secrets = Secrets()

    @property
    def category_keys(self) -> List[str]:
        return list(self.categories)


def _bool(value: str | bool) -> bool:
    """Convert string or bool to boolean."""
    if isinstance(value, bool):
        return value
    return str(value).lower() in ("1", "true", "yes", "on")


def _get_config_path() -> Optional[str]:
    """Get the path to config.yml, handling different working directories."""
    explicit = os.getenv("DAILY_BRIEFS_CONFIG")
    if explicit:
        return explicit

    if os.path.exists('resources/config.yml'):
        return 'resources/config.yml'

    project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    config_path = os.path.join(project_root, 'resources', 'config.yml')
    if os.path.exists(config_path):
        return config_path

    return None


def _parse_sources(data: List[Dict[str, Any]]) -> List[SourceConfig]:
    """Parse source list from YAML data."""
    sources = []
    for src in data:
        sources.append(SourceConfig(
            type=str(src.get("type", "")).lower(),
            enabled=_bool(src.get("enabled", True)),
            limit=int(src.get("limit", 15)),
        ))
    return sources


def _parse_categories(data: Dict[str, Any]) -> Dict[str, CategoryConfig]:
    """Parse category catalogue from YAML data, keyed by category key."""
    categories: Dict[str, CategoryConfig] = {}
    for key, cat in data.items():
        queries = {
            source_type: tuple(terms or [])
            for source_type, terms in (cat.get("queries") or {}).items()
        }
        categories[key] = CategoryConfig(
            key=key,
            name=cat.get("name", key.title()),
            focus=cat.get("focus", ""),
            queries=queries,
        )
    return categories


def _load_secrets() -> Secrets:
    return Secrets(
        OPENAI_API_KEY=os.getenv("OPENAI_API_KEY") or None,
        X_BEARER_TOKEN=os.getenv("X_BEARER_TOKEN") or None,
        X_CONSUMER_KEY=os.getenv("X_CONSUMER_KEY") or None,
        X_CONSUMER_SECRET=os.getenv("X_CONSUMER_SECRET") or None,
        PH_CLIENT_ID=os.getenv("PH_CLIENT_ID") or None,
        PH_CLIENT_SECRET=os.getenv("PH_CLIENT_SECRET") or None,
        REDDIT_USER_AGENT=os.getenv("REDDIT_USER_AGENT") or Secrets().REDDIT_USER_AGENT,
    )


def load_config(config_path: Optional[str] = None) -> AppConfig:
    """Load configuration from config.yml and provider credentials from .env."""
    load_dotenv()

    config_path = config_path or _get_config_path()
    config: Dict[str, Any] = {}

    if config_path:
        try:
            with open(config_path, 'r', encoding='utf-8') as file:
                config = yaml.safe_load(file) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read config file {config_path}: {e}") from e
    else:
        logger.warning("No resources/config.yml found, using built-in defaults")

    defaults = AppConfig()

    try:
        return AppConfig(
            DATABASE_PATH=config.get("DATABASE_PATH", defaults.DATABASE_PATH),
            OUTPUT_DIR=config.get("OUTPUT_DIR", defaults.OUTPUT_DIR),
            SOURCE_TIMEOUT_SECONDS=float(config.get("SOURCE_TIMEOUT_SECONDS", defaults.SOURCE_TIMEOUT_SECONDS)),
            REQUEST_TIMEOUT_SECONDS=float(config.get("REQUEST_TIMEOUT_SECONDS", defaults.REQUEST_TIMEOUT_SECONDS)),
            BUILD_DEADLINE_SECONDS=float(config.get("BUILD_DEADLINE_SECONDS", defaults.BUILD_DEADLINE_SECONDS)),
            DEDUP_PREFIX_LENGTH=int(config.get("DEDUP_PREFIX_LENGTH", defaults.DEDUP_PREFIX_LENGTH)),
            TOP_SOURCES_LIMIT=int(config.get("TOP_SOURCES_LIMIT", defaults.TOP_SOURCES_LIMIT)),
            SCHEDULE_HOUR=int(config.get("SCHEDULE_HOUR", defaults.SCHEDULE_HOUR)),
            llm=LLMConfig(**config.get("llm", {})),
            sources=_parse_sources(config["sources"]) if "sources" in config else defaults.sources,
            categories=_parse_categories(config["categories"]) if config.get("categories") else DEFAULT_CATEGORIES,
            secrets=_load_secrets(),
        )
    except (ValidationError, TypeError, ValueError, AttributeError) as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def get_enabled_sources(config: AppConfig) -> List[SourceConfig]:
    """Get only enabled sources, in configured priority order."""
    return [src for src in config.sources if src.enabled]
