# src/config/settings.py - v2
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for deployment-specific settings: seed credentials,
network timeouts, default provider selection, call log and logging.
Endpoints, models and generation parameters are fixed per adapter.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Provider credentials (seed values for the credential source) ===
    openai_api_key: str = ""
    claude_api_key: str = ""
    gemini_api_key: str = ""
    credentials_file: Path | None = None

    # === Network ===
    request_timeout_s: float = 30.0
    resource_timeout_s: float = 60.0

    # === Dispatch ===
    default_providers: str = "claude,openai,gemini"

    # === Tracking ===
    call_log_path: Path | None = None

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 5

    # --- Validators ---

    @field_validator("request_timeout_s", "resource_timeout_s")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeouts must be > 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Cross-field consistency rules."""
        errors: list[str] = []

        if self.request_timeout_s > self.resource_timeout_s:
            errors.append("REQUEST_TIMEOUT_S must be <= RESOURCE_TIMEOUT_S")

        from polyglot.core.models import get_provider

        for name in self.default_providers_list:
            try:
                get_provider(name)
            except KeyError:
                errors.append(f"DEFAULT_PROVIDERS contains unknown provider {name!r}")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def default_providers_list(self) -> list[str]:
        """Parse comma-separated default providers."""
        return [p.strip() for p in self.default_providers.split(",") if p.strip()]

    def api_key_for(self, credential_key: str) -> str:
        """Seed value for a credential key ("" when unset)."""
        return getattr(self, credential_key, "") or ""


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
