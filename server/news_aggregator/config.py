"""
News Aggregator Configuration

Centralized configuration. All environment variables MUST be read here;
no os.getenv() calls elsewhere. Every credential is optional so that
--mock runs work without a .env file; a provider without its key simply
contributes nothing.
"""
from __future__ import annotations

import os
from dataclasses import dataclass


class ConfigurationError(Exception):
    """Raised when configuration is invalid."""
    pass


def _optional_env(name: str, default: str = "") -> str:
    """Get an optional environment variable with a default."""
    return os.environ.get(name, default)


def _optional_env_int(name: str, default: int) -> int:
    """Get an optional integer environment variable with a default."""
    value = os.environ.get(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"Invalid integer value for {name}: {value}")


def _optional_env_float(name: str, default: float) -> float:
    """Get an optional float environment variable with a default."""
    value = os.environ.get(name)
    if not value:
        return default
    try:
        parsed = float(value)
    except ValueError:
        raise ConfigurationError(f"Invalid number for {name}: {value}")
    if parsed <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return parsed


def _optional_env_bool(name: str, default: bool) -> bool:
    """Get an optional boolean environment variable with a default."""
    value = os.environ.get(name)
    if not value:
        return default
    return value.lower() in ("true", "1", "yes")


def _optional_env_list(name: str) -> tuple[str, ...]:
    """Get a comma-separated environment variable as a tuple of entries."""
    value = os.environ.get(name, "")
    return tuple(part.strip() for part in value.split(",") if part.strip())


@dataclass(frozen=True)
class ProviderConfig:
    """News provider credentials and endpoints."""
    cryptocompare_api_key: str = ""
    cryptopanic_auth_token: str = ""
    coingecko_api_key: str = ""
    coingecko_news_enabled: bool = False
    request_timeout_s: float = 8.0
    aggregate_timeout_s: float = 10.0


@dataclass(frozen=True)
class ClassifierConfig:
    """Groq sentiment classifier configuration."""
    groq_api_key: str = ""
    model: str = "llama-3.1-8b-instant"
    timeout_s: float = 5.0

    @property
    def enabled(self) -> bool:
        return bool(self.groq_api_key)


@dataclass(frozen=True)
class MarketConfig:
    """CoinGecko market data configuration."""
    base_url: str = "https://api.coingecko.com/api/v3"
    api_key: str = ""
    timeout_s: float = 5.0
    default_symbol: str = "bitcoin"


@dataclass(frozen=True)
class CacheConfig:
    """Per-kind cache lifetimes in seconds."""
    news_ttl_s: float = 60.0
    sentiment_ttl_s: float = 300.0
    market_ttl_s: float = 30.0
    price_history_ttl_s: float = 30.0


@dataclass(frozen=True)
class RateLimitConfig:
    """Outbound throttling: max_requests per window_s."""
    max_requests: int = 10
    window_s: float = 60.0


@dataclass(frozen=True)
class SchedulerConfig:
    """Polling intervals."""
    news_interval_s: float = 60.0
    market_interval_s: float = 30.0


@dataclass(frozen=True)
class TelegramConfig:
    """Telegram keyword-alert delivery."""
    bot_token: str = ""
    chat_id: str = ""
    keywords: tuple[str, ...] = ()

    @property
    def enabled(self) -> bool:
        return bool(self.bot_token and self.chat_id)


@dataclass(frozen=True)
class Settings:
    """Root configuration container."""
    providers: ProviderConfig = ProviderConfig()
    classifier: ClassifierConfig = ClassifierConfig()
    market: MarketConfig = MarketConfig()
    cache: CacheConfig = CacheConfig()
    rate_limit: RateLimitConfig = RateLimitConfig()
    scheduler: SchedulerConfig = SchedulerConfig()
    telegram: TelegramConfig = TelegramConfig()
    log_level: str = "INFO"


def load_settings() -> Settings:
    """Load all settings from environment variables."""
    if _optional_env_int("RATE_LIMIT_MAX_REQUESTS", 10) < 1:
        raise ConfigurationError("RATE_LIMIT_MAX_REQUESTS must be at least 1")

    providers = ProviderConfig(
        cryptocompare_api_key=_optional_env("CRYPTOCOMPARE_API_KEY"),
        cryptopanic_auth_token=_optional_env("CRYPTOPANIC_AUTH_TOKEN"),
        coingecko_api_key=_optional_env("COINGECKO_API_KEY"),
        coingecko_news_enabled=_optional_env_bool("COINGECKO_NEWS_ENABLED", False),
        request_timeout_s=_optional_env_float("PROVIDER_TIMEOUT_SECONDS", 8.0),
        aggregate_timeout_s=_optional_env_float("AGGREGATE_TIMEOUT_SECONDS", 10.0),
    )

    classifier = ClassifierConfig(
        groq_api_key=_optional_env("GROQ_API_KEY"),
        model=_optional_env("GROQ_MODEL", "llama-3.1-8b-instant"),
    )

    market = MarketConfig(
        base_url=_optional_env("COINGECKO_BASE_URL", "https://api.coingecko.com/api/v3"),
        api_key=_optional_env("COINGECKO_API_KEY"),
        default_symbol=_optional_env("MARKET_SYMBOL", "bitcoin"),
    )

    cache = CacheConfig(
        news_ttl_s=_optional_env_float("NEWS_CACHE_TTL_SECONDS", 60.0),
        sentiment_ttl_s=_optional_env_float("SENTIMENT_CACHE_TTL_SECONDS", 300.0),
        market_ttl_s=_optional_env_float("MARKET_CACHE_TTL_SECONDS", 30.0),
        price_history_ttl_s=_optional_env_float("PRICE_HISTORY_CACHE_TTL_SECONDS", 30.0),
    )

    rate_limit = RateLimitConfig(
        max_requests=_optional_env_int("RATE_LIMIT_MAX_REQUESTS", 10),
        window_s=_optional_env_float("RATE_LIMIT_WINDOW_SECONDS", 60.0),
    )

    scheduler = SchedulerConfig(
        news_interval_s=_optional_env_float("NEWS_REFRESH_SECONDS", 60.0),
        market_interval_s=_optional_env_float("MARKET_REFRESH_SECONDS", 30.0),
    )

    telegram = TelegramConfig(
        bot_token=_optional_env("TELEGRAM_BOT_TOKEN"),
        chat_id=_optional_env("TELEGRAM_CHAT_ID"),
        keywords=_optional_env_list("ALERT_KEYWORDS"),
    )

    return Settings(
        providers=providers,
        classifier=classifier,
        market=market,
        cache=cache,
        rate_limit=rate_limit,
        scheduler=scheduler,
        telegram=telegram,
        log_level=_optional_env("LOG_LEVEL", "INFO").upper(),
    )
