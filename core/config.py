"""
Configuration Management Module

This module handles loading, validating, and providing access to client configuration
from environment variables (.env file).

Uses Pydantic Settings for automatic validation and type conversion.

Key Features:
- Loads configuration from .env file
- Provides type-safe access to configuration values
- Holds the request pacing budget (normal and cooldown requests per second)
- Handles optional credentials (public endpoints need none)

Usage:
    from core.config import settings

    # Access configuration values
    print(settings.cryptocom_base_url)
    print(settings.normal_requests_per_second)
"""

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """
    Client Settings

    This class defines all configuration parameters for the REST clients.
    Values are automatically loaded from environment variables or .env file.

    Attributes:
        cryptocom_base_url: Base URL for the JSON-RPC style API (v2)
        cryptocom_v1_base_url: Base URL for the form-encoded API (v1)
        cryptocom_api_key: API key (optional, not needed for public endpoints)
        cryptocom_secret_key: Secret key (optional, not needed for public endpoints)
        normal_requests_per_second: Default pacing ceiling
        cooldown_requests_per_second: Pacing ceiling used right after a 429
        request_timeout: Overall timeout for HTTP requests in seconds
        max_rate_limit_retries: Bound on 429 retries (None retries forever)
        log_level: Logging level
    """

    # ============================================
    # Exchange API Configuration
    # ============================================

    cryptocom_base_url: str = Field(
        default="https://api.crypto.com/v2/",
        description="JSON-RPC API base URL (must end with a slash)"
    )

    cryptocom_v1_base_url: str = Field(
        default="https://api.crypto.com/v1/",
        description="Form-encoded API base URL (must end with a slash)"
    )

    cryptocom_api_key: str = Field(
        default="",
        description="API key (optional for public endpoints)"
    )

    cryptocom_secret_key: str = Field(
        default="",
        description="Secret key (optional for public endpoints)"
    )

    # ============================================
    # Rate Limiting & Performance
    # ============================================

    normal_requests_per_second: float = Field(
        default=100.0,
        description="Requests per second when no per-call rate is given"
    )

    cooldown_requests_per_second: float = Field(
        default=0.01666666667,
        description="Requests per second for the first request after a 429 (1 req/minute)"
    )

    request_timeout: int = Field(
        default=30,
        description="HTTP request timeout in seconds"
    )

    max_rate_limit_retries: Optional[int] = Field(
        default=None,
        description="Maximum retries after HTTP 429 (empty = retry until success)"
    )

    # ============================================
    # Application Configuration
    # ============================================

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # ============================================
    # Pydantic Settings Configuration
    # ============================================

    model_config = SettingsConfigDict(
        # Look for .env file in the project root
        env_file=".env",
        # Ignore extra fields in .env that aren't defined here
        extra="ignore",
        # Case-insensitive environment variable matching
        case_sensitive=False
    )

    @property
    def has_credentials(self) -> bool:
        """
        Check if both API key and secret are configured.

        Returns:
            True if private endpoints can be signed, False otherwise
        """
        return bool(self.cryptocom_api_key and self.cryptocom_secret_key)


# ============================================
# Global Settings Instance
# ============================================

settings = Settings()


# ============================================
# Configuration Validation
# ============================================

def validate_configuration(config: Optional[Settings] = None) -> None:
    """
    Validate critical configuration settings.

    Args:
        config: Settings to check (defaults to the global instance)

    Raises:
        ValueError: If configuration is missing or invalid
    """
    # logging.py imports config.py, so we can't import at module level
    from core.logging import logger

    if config is None:
        config = settings

    for name in ("cryptocom_base_url", "cryptocom_v1_base_url"):
        url = getattr(config, name)
        if not url.startswith(("http://", "https://")):
            raise ValueError(f"{name.upper()} must be an http(s) URL, got '{url}'")

    if config.normal_requests_per_second <= 0:
        raise ValueError(
            f"NORMAL_REQUESTS_PER_SECOND must be positive, got {config.normal_requests_per_second}"
        )

    if config.cooldown_requests_per_second <= 0:
        raise ValueError(
            f"COOLDOWN_REQUESTS_PER_SECOND must be positive, got {config.cooldown_requests_per_second}"
        )

    if config.cooldown_requests_per_second >= config.normal_requests_per_second:
        raise ValueError(
            "COOLDOWN_REQUESTS_PER_SECOND must be lower than NORMAL_REQUESTS_PER_SECOND "
            f"({config.cooldown_requests_per_second} >= {config.normal_requests_per_second})"
        )

    if config.request_timeout <= 0:
        raise ValueError(f"REQUEST_TIMEOUT must be positive, got {config.request_timeout}")

    if config.max_rate_limit_retries is not None and config.max_rate_limit_retries < 0:
        raise ValueError(
            f"MAX_RATE_LIMIT_RETRIES cannot be negative, got {config.max_rate_limit_retries}"
        )

    valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    if config.log_level.upper() not in valid_log_levels:
        raise ValueError(
            f"Invalid LOG_LEVEL: '{config.log_level}'. "
            f"Must be one of: {', '.join(valid_log_levels)}"
        )

    logger.info("Configuration validated successfully")
    logger.info(f"API (v2): {config.cryptocom_base_url}")
    logger.info(f"API (v1): {config.cryptocom_v1_base_url}")
    logger.info(
        f"Pacing: {config.normal_requests_per_second} req/s "
        f"(cooldown {config.cooldown_requests_per_second} req/s)"
    )
    retries = "unbounded" if config.max_rate_limit_retries is None else config.max_rate_limit_retries
    logger.info(f"Rate limit retries: {retries}")
    logger.info(f"Credentials: {'configured' if config.has_credentials else 'not configured'}")
