"""
Tests for services/config.py - YAML + environment configuration
"""
import pytest

from core.categories import DEFAULT_CATEGORIES
from core.errors import ConfigError
from services.config import AppConfig, get_enabled_sources, load_config

SECRET_VARS = (
    "OPENAI_API_KEY", "X_BEARER_TOKEN", "X_CONSUMER_KEY", "X_CONSUMER_SECRET",
    "PH_CLIENT_ID", "PH_CLIENT_SECRET", "REDDIT_USER_AGENT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in SECRET_VARS:
        monkeypatch.delenv(var, raising=False)
    # load_dotenv must not pick up a developer's .env
    monkeypatch.setattr("services.config.load_dotenv", lambda *a, **k: False)


class TestLoadConfig:

    def test_defaults(self):
        config = AppConfig()

        assert config.DEDUP_PREFIX_LENGTH == 60
        assert config.TOP_SOURCES_LIMIT == 10
        assert [s.type for s in config.sources] == ["x", "reddit", "hackernews", "producthunt"]
        assert config.category_keys == list(DEFAULT_CATEGORIES)
        assert len(config.category_keys) == 6

    def test_yaml_values_and_secrets(self, tmp_path, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        monkeypatch.setenv("X_BEARER_TOKEN", "bearer")
        path = tmp_path / "config.yml"
        path.write_text(
            "BUILD_DEADLINE_SECONDS: 30\n"
            "llm:\n"
            "  provider: ollama\n"
            "  temperature: 0.1\n"
            "sources:\n"
            "  - type: HackerNews\n"
            "  - type: reddit\n"
            "    enabled: 'false'\n"
            "categories:\n"
            "  space:\n"
            "    name: Space\n"
            "    focus: launches\n"
            "    queries:\n"
            "      hackernews: [spacex, nasa]\n",
            encoding="utf-8",
        )

        config = load_config(str(path))

        assert config.BUILD_DEADLINE_SECONDS == 30.0
        assert config.llm.provider == "ollama"
        assert config.llm.temperature == 0.1
        assert config.llm.max_tokens == 800
        assert [s.type for s in get_enabled_sources(config)] == ["hackernews"]
        assert config.category_keys == ["space"]
        assert config.categories["space"].terms_for("hackernews") == ("spacex", "nasa")
        assert config.categories["space"].terms_for("x") == ()
        assert config.secrets.OPENAI_API_KEY == "sk-test"
        assert config.secrets.X_BEARER_TOKEN == "bearer"
        assert config.secrets.X_CONSUMER_KEY is None

    def test_config_is_frozen(self):
        config = AppConfig()
        with pytest.raises(Exception):
            config.TOP_SOURCES_LIMIT = 3

    def test_invalid_yaml_raises_config_error(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("sources: [unclosed\n", encoding="utf-8")

        with pytest.raises(ConfigError):
            load_config(str(path))

    def test_invalid_value_raises_config_error(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("TOP_SOURCES_LIMIT: many\n", encoding="utf-8")

        with pytest.raises(ConfigError):
            load_config(str(path))
