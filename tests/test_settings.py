"""Tests for environment configuration."""

import pytest

from settings import DEFAULT_PORT, ConfigError, load_settings, log_level, operator_language

ENV = {
    "BOT_TOKEN": "123456:TOKEN",
    "RU_OPERATOR_ID": "1001",
    "EN_OPERATOR_ID": "1002",
}


class TestLoadSettings:
    def test_minimal_env(self):
        settings = load_settings(ENV)
        assert settings.bot_token == "123456:TOKEN"
        assert settings.operators == {"ru": 1001, "en": 1002}
        assert settings.operator_ids == {1001, 1002}
        assert settings.webhook_url is None
        assert settings.port == DEFAULT_PORT

    def test_optional_values(self):
        settings = load_settings({
            **ENV,
            "WEBHOOK_URL": "https://example.com",
            "WEBHOOK_PATH": "/tg",
            "WEBHOOK_SECRET": "s3cret",
            "PORT": "8443",
            "TICKET_CACHE_SIZE": "50",
        })
        assert settings.webhook_url == "https://example.com"
        assert settings.webhook_path == "/tg"
        assert settings.webhook_secret == "s3cret"
        assert settings.port == 8443
        assert settings.ticket_cache_size == 50

    def test_missing_required_values_all_reported(self):
        with pytest.raises(ConfigError) as exc:
            load_settings({})
        message = str(exc.value)
        assert "BOT_TOKEN" in message
        assert "RU_OPERATOR_ID" in message
        assert "EN_OPERATOR_ID" in message

    def test_blank_value_counts_as_missing(self):
        with pytest.raises(ConfigError, match="EN_OPERATOR_ID"):
            load_settings({**ENV, "EN_OPERATOR_ID": "  "})

    def test_non_numeric_operator_id(self):
        with pytest.raises(ConfigError, match="RU_OPERATOR_ID"):
            load_settings({**ENV, "RU_OPERATOR_ID": "@someone"})

    def test_bad_port(self):
        with pytest.raises(ConfigError, match="PORT"):
            load_settings({**ENV, "PORT": "http"})

    def test_cache_size_must_be_positive(self):
        with pytest.raises(ConfigError, match="TICKET_CACHE_SIZE"):
            load_settings({**ENV, "TICKET_CACHE_SIZE": "0"})

    def test_webhook_url_without_scheme(self):
        with pytest.raises(ConfigError, match="WEBHOOK_URL"):
            load_settings({**ENV, "WEBHOOK_URL": "bot.example.com"})

    def test_webhook_url_with_other_scheme(self):
        with pytest.raises(ConfigError, match="WEBHOOK_URL"):
            load_settings({**ENV, "WEBHOOK_URL": "ftp://bot.example.com/tg"})

    def test_unknown_log_level(self):
        with pytest.raises(ConfigError, match="LOG_LEVEL"):
            load_settings({**ENV, "LOG_LEVEL": "verbose"})

    def test_log_level_case_insensitive(self):
        load_settings({**ENV, "LOG_LEVEL": "debug"})


class TestOperatorLanguage:
    def test_known_operator(self):
        assert operator_language({"ru": 1001, "en": 1002}, 1002) == "en"

    def test_non_operator(self):
        assert operator_language({"ru": 1001, "en": 1002}, 42) is None


class TestLogLevel:
    def test_default(self):
        assert log_level({}) == "INFO"

    def test_valid_level(self):
        assert log_level({"LOG_LEVEL": " warning "}) == "WARNING"

    def test_unknown_level_falls_back(self):
        assert log_level({"LOG_LEVEL": "verbose"}) == "INFO"
