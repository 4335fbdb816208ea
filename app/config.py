"""
Application Configuration - Pydantic Settings for type-safe config.

NO DICTIONARIES - All configuration is strongly typed.
FAIL FAST - Critical config is validated at startup.

Credential blobs are deliberately NOT validated here: a missing or malformed
service account is reported as a ConfigurationFault when a client is first built.
"""

import sys

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when critical configuration is missing or invalid."""

    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_title: str = "Entitlement Verification API"
    api_version: str = "0.1.0"
    api_description: str = "Verifies subscription purchase tokens and records entitlements"

    # Profile Store - Firebase service account (raw JSON or base64 encoded JSON)
    FIREBASE_SERVICE_ACCOUNT_JSON: str = ""
    profile_collection: str = "profile"

    # Subscription Authority - Google Play service account (raw JSON or base64 encoded JSON)
    PLAY_SERVICE_ACCOUNT_JSON: str = ""
    play_api_version: str = "v2"  # v2 = subscriptionsv2.get, v1 = subscriptions.get

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"  # json or console

    # Observability - Metrics
    metrics_enabled: bool = True

    # Observability - Tracing
    tracing_enabled: bool = True
    otlp_endpoint: str = "http://otel-collector:4317"
    otlp_insecure: bool = True
    service_name: str = "entitlement-api"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_critical_config(self) -> "Settings":
        """
        FAIL FAST: Validate critical configuration at startup.

        The app MUST NOT start with settings that would silently misbehave.
        """
        errors: list[str] = []

        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            errors.append(f"LOG_LEVEL must be a standard level name, got: {self.log_level}")

        if self.log_format not in ("json", "console"):
            errors.append(f"LOG_FORMAT must be 'json' or 'console', got: {self.log_format}")

        if self.play_api_version not in ("v1", "v2"):
            errors.append(f"PLAY_API_VERSION must be 'v1' or 'v2', got: {self.play_api_version}")

        if not self.profile_collection:
            errors.append("PROFILE_COLLECTION is required but empty")

        if errors:
            error_msg = "\n".join(
                [
                    "",
                    "=" * 60,
                    "CRITICAL CONFIGURATION ERROR - APPLICATION CANNOT START",
                    "=" * 60,
                    *[f"  ✗ {e}" for e in errors],
                    "=" * 60,
                    "",
                ]
            )
            print(error_msg, file=sys.stderr)
            raise ConfigurationError(error_msg)

        return self

    @property
    def credentials_configured(self) -> bool:
        """Whether both service account blobs are present (not necessarily valid)."""
        return bool(self.FIREBASE_SERVICE_ACCOUNT_JSON and self.PLAY_SERVICE_ACCOUNT_JSON)


# Global settings instance - validates at import time
settings = Settings()


def get_settings() -> Settings:
    """Get application settings instance."""
    return settings
