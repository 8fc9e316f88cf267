"""
Configuration Module for the eGovSA Auth Core

This module defines the configuration system for the auth core, using Pydantic for settings
validation. Values are loaded from environment variables with defaults suitable for local
development against a self-hosted provider stack.

The Settings class is the central configuration point. Components never read the
environment themselves; they receive the settings (or the values they need) when the auth
context is assembled.

Key configuration areas include:
- Auth provider and REST backend endpoints
- Database and secure storage connections
- Encryption of the device-local secure store
- Network timeouts
- Monitoring and observability
"""

import base64
import logging
from typing import Final, Optional

from cryptography.fernet import Fernet
from pydantic import AliasChoices, Field, PostgresDsn, RedisDsn, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings for the auth core.

    Environment variables are automatically mapped to settings fields, with aliases provided
    for the variable names the mobile app already uses. For example, the provider URL can be
    set with either PROVIDER_URL or SUPABASE_URL.
    """

    model_config = SettingsConfigDict(arbitrary_types_allowed=True)

    debug: bool = False
    """
    Enable debug mode for verbose logging.
    Set with DEBUG=true environment variable.
    """

    # Auth provider and backend endpoints
    provider_url: str = Field(
        "http://localhost:54321",
        validation_alias=AliasChoices("provider_url", "supabase_url"),
    )
    """
    Base URL of the hosted auth provider. The auth API lives under /auth/v1.
    Set with PROVIDER_URL or SUPABASE_URL environment variables.
    """

    provider_anon_key: str = Field(
        "",
        validation_alias=AliasChoices("provider_anon_key", "supabase_anon_key"),
    )
    """
    Public (anon) API key sent with every provider request.
    Set with PROVIDER_ANON_KEY or SUPABASE_ANON_KEY environment variables.
    """

    api_url: str = Field(
        "http://localhost:8080",
        validation_alias=AliasChoices("api_url", "expo_public_api_url"),
    )
    """
    Base URL of the eGovSA REST backend.
    Set with API_URL or EXPO_PUBLIC_API_URL environment variables.
    """

    network_timeout: float = 10.0
    """
    Upper bound in seconds for every provider, backend and database call.
    Set with NETWORK_TIMEOUT environment variable.
    Default: 10
    """

    # Database and secure storage connections
    pg_dsn: PostgresDsn = Field(
        "postgresql+asyncpg://postgres:password@db/postgres",
        validation_alias=AliasChoices("pg_dsn", "database_url"),
    )  # type: ignore
    """
    PostgreSQL connection string for the profiles table.
    Set with PG_DSN or DATABASE_URL environment variables.
    """

    redis_dsn: RedisDsn = Field(
        "redis://localhost:6379/2",
        validation_alias=AliasChoices("redis_dsn", "redis_url"),
    )  # type: ignore
    """
    Redis connection string backing the device-local secure store.
    Set with REDIS_DSN or REDIS_URL environment variables.
    """

    secure_store_namespace: str = "egovsa:secure_store"
    """
    Redis hash holding the secure store entries.
    Set with SECURE_STORE_NAMESPACE environment variable.
    """

    encryption_key: Fernet = Fernet(Fernet.generate_key())
    """
    Fernet symmetric key encrypting every secure store value.
    Can be set to a Fernet object or base64-encoded key string.
    Set with ENCRYPTION_KEY environment variable.
    """

    # Monitoring and error reporting
    sentry_dsn: Optional[str] = None
    """
    Sentry DSN for error reporting. Optional, no error reporting if not set.
    Set with SENTRY_DSN environment variable.
    """

    metrics_backend: str = "none"
    """
    Metrics backend, either 'telegraf' or 'none'.
    Set with METRICS_BACKEND environment variable.
    """

    statsd_host: str = Field(alias="TELEGRAF_HOST", default="telegraf")
    """
    StatsD/Telegraf host for metrics collection.
    Set with TELEGRAF_HOST environment variable.
    """

    statsd_port: int = Field(alias="TELEGRAF_PORT", default=8125)
    """
    StatsD/Telegraf port for metrics collection.
    Set with TELEGRAF_PORT environment variable.
    """

    statsd_prefix: str = "egovsa.auth"
    """Prefix for all StatsD metrics from this package."""

    @field_validator("encryption_key", mode="before")
    @classmethod
    def decode_encryption_key(cls, v) -> Fernet:
        """
        Validate and process the encryption_key setting.

        This validator accepts either:
        - An existing Fernet object (for programmatic configuration)
        - A base64-encoded string containing a Fernet key

        Raises:
            ValueError: If the input is neither a Fernet object nor a valid base64 key
        """
        if isinstance(v, Fernet):
            return v
        elif isinstance(v, str):
            key_data = base64.b64decode(v)
            return Fernet(key_data)
        raise ValueError(
            "encryption_key must be a Fernet object or a base64-encoded key string"
        )


# Secure store keys
USER_EMAIL_KEY: Final = "userEmail"
"""Secure store key for the email cached at registration."""

USER_PIN_KEY: Final = "userPin"
"""Secure store key for the PIN surrogate."""

PROVIDER_SESSION_KEY: Final = "providerSession"
"""Secure store key for the provider session persisted between launches."""

PIN_LENGTH: Final = 4
"""Number of digits in a PIN."""
