"""
Tests de la configuration (variables d'environnement et singletons).
"""

import pytest

from epubtrans.config import (
    DEFAULT_API_URL,
    DEFAULT_MODEL,
    ConfigBase,
    Logger_Level,
    TemplateNames,
    TranslatorConfig,
    lock_config,
)
from epubtrans.errors import ConfigError

ENV_VARS = (
    "API_KEY",
    "OPENAI_API_KEY",
    "API_URL",
    "MODEL",
    "TEMPERATURE",
    "MAX_TOKENS",
    "TRANSLATION_GUIDELINES",
    "TRANSLATION_DOMAIN",
)


@pytest.fixture
def clean_env(monkeypatch):
    """Environnement sans variables epubtrans ni fichier .env."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("epubtrans.config.load_dotenv", lambda: False)
    return monkeypatch


class TestTranslatorConfig:
    def test_missing_api_key(self, clean_env):
        with pytest.raises(ConfigError):
            TranslatorConfig.from_env()

    def test_defaults(self, clean_env):
        clean_env.setenv("API_KEY", "sk-test")

        config = TranslatorConfig.from_env()

        assert config.api_key == "sk-test"
        assert config.base_url == DEFAULT_API_URL
        assert config.model == DEFAULT_MODEL
        assert config.domain == "technical"
        assert config.guidelines is None
        assert config.max_retries == 3
        assert config.cache_ttl == 900.0

    def test_openai_api_key_fallback(self, clean_env):
        clean_env.setenv("OPENAI_API_KEY", "sk-openai")

        assert TranslatorConfig.from_env().api_key == "sk-openai"

    def test_values_from_environment(self, clean_env):
        clean_env.setenv("API_KEY", "sk-test")
        clean_env.setenv("API_URL", "https://api.deepseek.com")
        clean_env.setenv("MODEL", "deepseek-chat")
        clean_env.setenv("TEMPERATURE", "0.7")
        clean_env.setenv("MAX_TOKENS", "2048")
        clean_env.setenv("TRANSLATION_DOMAIN", "psychology")

        config = TranslatorConfig.from_env()

        assert config.base_url == "https://api.deepseek.com"
        assert config.model == "deepseek-chat"
        assert config.temperature == 0.7
        assert config.max_tokens == 2048
        assert config.domain == "psychology"

    def test_overrides_take_precedence(self, clean_env):
        clean_env.setenv("API_KEY", "sk-env")
        clean_env.setenv("MODEL", "deepseek-chat")

        config = TranslatorConfig.from_env(api_key="sk-arg", model="gpt-4o", retry_delay=0.0)

        assert config.api_key == "sk-arg"
        assert config.model == "gpt-4o"
        assert config.retry_delay == 0.0

    def test_invalid_number(self, clean_env):
        clean_env.setenv("API_KEY", "sk-test")
        clean_env.setenv("MAX_TOKENS", "beaucoup")

        with pytest.raises(ConfigError):
            TranslatorConfig.from_env()


class TestConfigBase:
    def test_singleton_per_subclass(self):
        class First(ConfigBase):
            value = 1

        class Second(ConfigBase):
            value = 2

        assert First() is First()
        assert First() is not Second()

    def test_locked_config_rejects_changes(self):
        class Settings(ConfigBase):
            value = 1

        settings = Settings()
        settings.value = 2
        settings.lock()

        with pytest.raises(AttributeError):
            settings.value = 3
        assert Settings().value == 2

    def test_lock_is_idempotent(self):
        class Settings(ConfigBase):
            value = 1

        settings = Settings()
        settings.lock()
        settings.lock()

        with pytest.raises(AttributeError):
            settings.value = 2

    def test_lock_config_twice(self):
        """Deux appels successifs (ex. deux main() dans le même processus)."""
        lock_config()
        lock_config()

        assert Logger_Level()._locked
        assert TemplateNames()._locked
        with pytest.raises(AttributeError):
            Logger_Level().level = 0
