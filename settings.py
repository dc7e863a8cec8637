import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from urllib.parse import urlsplit


# =========================
# LANGUAGES
# =========================
LANGUAGES = ("ru", "en")

DEFAULT_PORT = 10000
DEFAULT_TICKET_CACHE_SIZE = 10_000
DEFAULT_LOG_LEVEL = "INFO"


class ConfigError(Exception):
    """Required configuration is missing or malformed."""


@dataclass(frozen=True)
class Settings:
    bot_token: str
    # language -> operator telegram id
    operators: dict[str, int] = field(default_factory=dict)
    webhook_url: str | None = None
    webhook_path: str | None = None
    webhook_secret: str | None = None
    port: int = DEFAULT_PORT
    ticket_cache_size: int = DEFAULT_TICKET_CACHE_SIZE

    @property
    def operator_ids(self) -> set[int]:
        return set(self.operators.values())


def _get(env: Mapping[str, str], name: str) -> str:
    return (env.get(name) or "").strip()


def _parse_int(env: Mapping[str, str], name: str, default: int, errors: list[str]) -> int:
    raw = _get(env, name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        errors.append(f"{name} must be an integer, got {raw!r}")
        return default


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """
    Build Settings from environment variables.

    Every problem is collected before raising, so a single ConfigError
    names all missing or malformed values at once.
    """
    if env is None:
        env = os.environ

    errors: list[str] = []

    token = _get(env, "BOT_TOKEN")
    if not token:
        errors.append("BOT_TOKEN is missing")

    operators: dict[str, int] = {}
    for lang in LANGUAGES:
        name = f"{lang.upper()}_OPERATOR_ID"
        raw = _get(env, name)
        if not raw:
            errors.append(f"{name} is missing")
            continue
        try:
            operators[lang] = int(raw)
        except ValueError:
            errors.append(f"{name} must be a numeric Telegram user id, got {raw!r}")

    webhook_url = _get(env, "WEBHOOK_URL") or None
    if webhook_url:
        parts = urlsplit(webhook_url)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            errors.append(f"WEBHOOK_URL must be an absolute http(s) URL, got {webhook_url!r}")

    port = _parse_int(env, "PORT", DEFAULT_PORT, errors)
    cache_size = _parse_int(env, "TICKET_CACHE_SIZE", DEFAULT_TICKET_CACHE_SIZE, errors)
    if cache_size <= 0:
        errors.append("TICKET_CACHE_SIZE must be positive")

    level = _get(env, "LOG_LEVEL").upper()
    if level and not _is_log_level(level):
        errors.append(f"LOG_LEVEL must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL, got {level!r}")

    if errors:
        raise ConfigError("; ".join(errors))

    return Settings(
        bot_token=token,
        operators=operators,
        webhook_url=webhook_url,
        webhook_path=_get(env, "WEBHOOK_PATH") or None,
        webhook_secret=_get(env, "WEBHOOK_SECRET") or None,
        port=port,
        ticket_cache_size=cache_size,
    )


def _is_log_level(name: str) -> bool:
    return isinstance(logging.getLevelName(name), int)


def log_level(env: Mapping[str, str] | None = None) -> str:
    """LOG_LEVEL if it names a logging level, INFO otherwise."""
    if env is None:
        env = os.environ
    level = _get(env, "LOG_LEVEL").upper()
    return level if level and _is_log_level(level) else DEFAULT_LOG_LEVEL


def operator_language(operators: Mapping[str, int], user_id: int) -> str | None:
    """Language bound to an operator, or None for everyone else."""
    for lang, operator_id in operators.items():
        if operator_id == user_id:
            return lang
    return None
