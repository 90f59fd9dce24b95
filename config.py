"""Configuration management with environment variable support."""

import logging
import os
import secrets
from dataclasses import dataclass, field
from decimal import Decimal

from core.rules import TableRules


def _parse_cors_origins() -> list[str]:
    """Parse CORS_ORIGINS environment variable."""
    origins = os.getenv("CORS_ORIGINS", "http://localhost:8000")
    return [o.strip() for o in origins.split(",") if o.strip()]


def _table_rules_from_env() -> TableRules:
    """Build table rules from environment variables."""
    return TableRules(
        min_bet=int(os.getenv("MIN_BET", "1")),
        max_bet=int(os.getenv("MAX_BET", "1000")),
        starting_balance=Decimal(os.getenv("DEFAULT_PLAYER_BALANCE", "1000")),
        num_decks=int(os.getenv("NUM_DECKS", "1")),
        player_name=os.getenv("PLAYER_NAME", "Player"),
        dealer_poll_interval=float(os.getenv("DEALER_POLL_INTERVAL", "2.0")),
        dealer_poll_max_attempts=int(os.getenv("DEALER_POLL_MAX_ATTEMPTS", "30")),
    )


@dataclass(frozen=True)
class AuthorityConfig:
    """Remote game authority connection settings."""

    base_url: str = field(
        default_factory=lambda: os.getenv("BLACKJACK_API_URL", "http://localhost:8080")
    )
    timeout: float = field(
        default_factory=lambda: float(os.getenv("BLACKJACK_API_TIMEOUT", "30"))
    )
    retry_attempts: int = field(
        default_factory=lambda: int(os.getenv("BLACKJACK_API_RETRY_ATTEMPTS", "3"))
    )
    retry_delay: float = field(
        default_factory=lambda: float(os.getenv("BLACKJACK_API_RETRY_DELAY", "1.0"))
    )

    def __post_init__(self) -> None:
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.retry_attempts < 0:
            raise ValueError("retry_attempts must be >= 0")
        if self.retry_delay < 0:
            raise ValueError("retry_delay must be >= 0")


@dataclass(frozen=True)
class LoggingConfig:
    """Logging configuration."""

    level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "info").upper())
    format: str = "%(asctime)s [%(name)s] %(levelname)s %(message)s"

    def apply(self) -> None:
        """Configure the root logger."""
        logging.basicConfig(level=getattr(logging, self.level, logging.INFO), format=self.format)


@dataclass(frozen=True)
class CORSConfig:
    """CORS configuration."""

    allowed_origins: list[str] = field(default_factory=_parse_cors_origins)
    allow_credentials: bool = True
    allow_methods: list[str] = field(default_factory=lambda: ["*"])
    allow_headers: list[str] = field(default_factory=lambda: ["*"])


@dataclass(frozen=True)
class RateLimitConfig:
    """Rate limiting configuration."""

    enabled: bool = field(
        default_factory=lambda: os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
    )
    requests_per_minute: int = field(
        default_factory=lambda: int(os.getenv("RATE_LIMIT_RPM", "100"))
    )


@dataclass(frozen=True)
class SecurityConfig:
    """Security configuration."""

    secret_key: str = field(
        default_factory=lambda: os.getenv("SECRET_KEY", secrets.token_urlsafe(32))
    )


@dataclass(frozen=True)
class AppConfig:
    """Application configuration."""

    app_name: str = "Blackjack Client"
    app_version: str = field(default_factory=lambda: os.getenv("APP_VERSION", "0.1.0"))
    debug: bool = field(default_factory=lambda: os.getenv("DEBUG", "false").lower() == "true")
    session_ttl: int = 3600  # Session timeout in seconds

    authority: AuthorityConfig = field(default_factory=AuthorityConfig)
    game: TableRules = field(default_factory=_table_rules_from_env)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    cors: CORSConfig = field(default_factory=CORSConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    security: SecurityConfig = field(default_factory=SecurityConfig)


# Global configuration instance
config = AppConfig()
