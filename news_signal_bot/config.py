"""Configuration management for News Signal Bot."""

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from . import constants
from .logging_config import create_execution_logger


class ConfigError(ValueError):
    """Raised when required configuration is missing or malformed."""


@dataclass
class TelegramConfig:
    """Configuration for Telegram Bot API."""

    bot_token: str
    admin_chat_id: str
    target_channels: dict[str, list[str]] = field(default_factory=dict)
    parse_mode: str = constants.TELEGRAM_PARSE_MODE
    timeout: int = constants.DEFAULT_HTTP_TIMEOUT
    max_message_length: int = constants.MAX_MESSAGE_LENGTH
    max_caption_length: int = constants.MAX_TELEGRAM_CAPTION_LENGTH
    photo_retry_attempts: int = constants.MAX_PHOTO_RETRIES
    photo_retry_delay: float = constants.PHOTO_RETRY_DELAY


@dataclass
class AnalysisConfig:
    """Configuration for the LLM analysis service."""

    provider: str = constants.PROVIDER_GEMINI
    gemini_api_key: str = ""
    gemini_model: str = constants.DEFAULT_GEMINI_MODEL
    bedrock_model_id: str = constants.DEFAULT_BEDROCK_MODEL_ID
    aws_region: str = constants.DEFAULT_AWS_REGION
    max_tokens: int = 2048
    timeout: int = constants.DEFAULT_ANALYSIS_TIMEOUT
    retry_attempts: int = constants.DEFAULT_RETRY_ATTEMPTS
    retry_delay: float = constants.DEFAULT_RETRY_DELAY
    prompt_file: str | None = None


@dataclass
class Config:
    """Process-wide, read-only configuration."""

    telegram: TelegramConfig
    analysis: AnalysisConfig
    news_sources: dict[str, str]
    http_timeout: int = constants.DEFAULT_HTTP_TIMEOUT
    content_preview_limit: int = constants.CONTENT_PREVIEW_LIMIT
    min_summary_length: int = constants.MIN_SUMMARY_LENGTH
    since_hours: int = constants.SINCE_HOURS
    log_level: str = "INFO"

    @property
    def target_channels(self) -> dict[str, list[str]]:
        return self.telegram.target_channels


def load_config(env_file: str | None = None) -> Config:
    """Load configuration from a .env file and the process environment.

    Values already present in the environment win over the .env file.

    Args:
        env_file: Optional path to a .env file (defaults to ./.env)

    Returns:
        Populated Config

    Raises:
        ConfigError: If a required value is absent or malformed
    """
    if env_file and not Path(env_file).exists():
        raise ConfigError(f"Env file not found: {env_file}")
    load_dotenv(env_file or ".env", override=False)

    provider = os.getenv("ANALYSIS_PROVIDER", constants.PROVIDER_GEMINI).strip().lower()
    if provider not in (constants.PROVIDER_GEMINI, constants.PROVIDER_BEDROCK):
        raise ConfigError(
            f"ANALYSIS_PROVIDER must be '{constants.PROVIDER_GEMINI}' or "
            f"'{constants.PROVIDER_BEDROCK}', got '{provider}'"
        )

    bot_token = _require("TELEGRAM_API_KEY")
    admin_chat_id = _require("TELEGRAM_CHAT_ID")
    news_sources = parse_news_sources(_require("NEWS_SOURCES"))
    target_channels = parse_target_channels(_require("TARGET_CHANNELS"))
    gemini_api_key = (
        _require("GEMINI_API_KEY")
        if provider == constants.PROVIDER_GEMINI
        else os.getenv("GEMINI_API_KEY", "")
    )

    http_timeout = get_env_int("API_TIMEOUT", constants.DEFAULT_HTTP_TIMEOUT)

    telegram = TelegramConfig(
        bot_token=bot_token,
        admin_chat_id=admin_chat_id,
        target_channels=target_channels,
        timeout=http_timeout,
        max_message_length=get_env_int(
            "MAX_MESSAGE_LENGTH", constants.MAX_MESSAGE_LENGTH
        ),
        photo_retry_attempts=get_env_int(
            "PHOTO_RETRY_ATTEMPTS", constants.MAX_PHOTO_RETRIES
        ),
        photo_retry_delay=get_env_float(
            "PHOTO_RETRY_DELAY", constants.PHOTO_RETRY_DELAY
        ),
    )

    analysis = AnalysisConfig(
        provider=provider,
        gemini_api_key=gemini_api_key,
        gemini_model=os.getenv("GEMINI_MODEL") or constants.DEFAULT_GEMINI_MODEL,
        bedrock_model_id=os.getenv("BEDROCK_MODEL_ID")
        or constants.DEFAULT_BEDROCK_MODEL_ID,
        aws_region=os.getenv("AWS_REGION")
        or os.getenv("AWS_DEFAULT_REGION")
        or constants.DEFAULT_AWS_REGION,
        timeout=get_env_int("ANALYSIS_TIMEOUT", constants.DEFAULT_ANALYSIS_TIMEOUT),
        retry_attempts=get_env_int(
            "ANALYSIS_RETRY_ATTEMPTS", constants.DEFAULT_RETRY_ATTEMPTS
        ),
        retry_delay=get_env_float(
            "ANALYSIS_RETRY_DELAY", constants.DEFAULT_RETRY_DELAY
        ),
        prompt_file=os.getenv("PROMPT_FILE") or None,
    )

    return Config(
        telegram=telegram,
        analysis=analysis,
        news_sources=news_sources,
        http_timeout=http_timeout,
        content_preview_limit=get_env_int(
            "CONTENT_PREVIEW_LIMIT", constants.CONTENT_PREVIEW_LIMIT
        ),
        min_summary_length=get_env_int(
            "MIN_SUMMARY_LENGTH", constants.MIN_SUMMARY_LENGTH
        ),
        since_hours=get_env_int("SINCE_HOURS", constants.SINCE_HOURS),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
    )


def _require(key: str) -> str:
    value = os.getenv(key, "").strip()
    if not value:
        raise ConfigError(f"{key} is not set")
    return value


def get_env_int(key: str, default: int) -> int:
    """Read a positive integer override, falling back to the default."""
    raw = os.getenv(key, "").strip()
    if not raw:
        return default

    try:
        value = int(raw)
    except ValueError:
        value = 0

    if value <= 0:
        create_execution_logger("config").warning(
            f"Invalid value for {key}: {raw!r}, using default: {default}"
        )
        return default
    return value


def get_env_float(key: str, default: float) -> float:
    """Read a non-negative float override, falling back to the default."""
    raw = os.getenv(key, "").strip()
    if not raw:
        return default

    try:
        value = float(raw)
    except ValueError:
        value = -1.0

    if value < 0:
        create_execution_logger("config").warning(
            f"Invalid value for {key}: {raw!r}, using default: {default}"
        )
        return default
    return value


def _split_pairs(raw: str) -> list[tuple[str, str]]:
    # "name:value" pairs separated by commas; values may contain ':' (URLs)
    pairs = []
    for chunk in raw.split(","):
        name, sep, value = chunk.partition(":")
        name, value = name.strip(), value.strip()
        if sep and name and value:
            pairs.append((name, value))
    return pairs


def parse_news_sources(raw: str) -> dict[str, str]:
    """Parse NEWS_SOURCES ("Name1:https://url1,Name2:https://url2").

    Raises:
        ConfigError: If no valid pair is found
    """
    sources = dict(_split_pairs(raw))
    if not sources:
        raise ConfigError("No valid news sources found in NEWS_SOURCES")
    return sources


def parse_target_channels(raw: str) -> dict[str, list[str]]:
    """Parse TARGET_CHANNELS ("Name1:@channel,Name2:-100123").

    A source name may repeat to deliver to more than one channel.

    Raises:
        ConfigError: If no valid pair is found
    """
    channels: dict[str, list[str]] = {}
    for name, channel in _split_pairs(raw):
        bucket = channels.setdefault(name, [])
        if channel not in bucket:
            bucket.append(channel)

    if not channels:
        raise ConfigError("No valid target channels found in TARGET_CHANNELS")
    return channels
