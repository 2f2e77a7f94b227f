"""
lamcheck Configuration System
==============================

Central configuration using Pydantic Settings. Supports:
- Environment variables (LAM_ prefix)
- .env file loading
- YAML config file overrides

The configuration is an immutable value: it is constructed once at
startup and passed explicitly to every component. No component reads
the process environment on its own.

Numeric settings are clamped rather than rejected, so a typo in an
environment variable degrades to a safe bound instead of aborting.

Usage:
    from lamcheck.config import get_config
    cfg = get_config()                      # loads from env / .env
    cfg = get_config("configs/local.yaml")  # loads with YAML overrides
"""

from __future__ import annotations

import re
import secrets
from typing import Any, Optional

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from lamcheck.errors import ConfigurationError
from lamcheck.utils import clamp_int, compute_hash, normalize_url

DEFAULT_API_URL = "http://127.0.0.1:8080/v1"

# Poll intervals are fixed; only the overall deadlines are configurable.
HEALTH_POLL_INTERVAL_S = 0.2
ENRICHMENT_POLL_INTERVAL_S = 0.15

# (default, min, max) for every clamped integer setting
_INT_BOUNDS: dict[str, tuple[int, int, int]] = {
    "demo_tenant_id": (1, 1, 2_000_000_000),
    "demo_http_timeout_ms": (15_000, 1_000, 120_000),
    "demo_enrich_wait_ms": (30_000, 1_000, 300_000),
    "demo_health_wait_ms": (60_000, 1_000, 600_000),
    "demo_context_limit": (8, 1, 50),
    "demo_max_chars": (1_200, 200, 20_000),
}

_VERSION_SUFFIX = re.compile(r"/v1$")


class LamCheckConfig(BaseSettings):
    """
    Root configuration for a lamcheck run.

    Loads from environment variables (LAM_ prefix) and .env file.

    Example:
        export LAM_API_URL=http://localhost:8080/v1
        export LAM_ADMIN_TOKEN=dev-admin
        export LAM_DEMO_ENRICH_WAIT_MS=60000
    """
    model_config = SettingsConfigDict(
        env_prefix="LAM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # ── Endpoints ──────────────────────────────────────────────────
    api_url: str = Field(default=DEFAULT_API_URL, description="Versioned API base URL")
    base_url: str = Field(
        default="",
        description="Unversioned base URL for /health (derived from api_url if empty)"
    )

    # ── Credentials & scope ────────────────────────────────────────
    admin_token: str = Field(default="", description="Admin bearer used only to mint a demo key")
    demo_tenant_id: int = Field(default=1, validate_default=True, description="Tenant for the minted key")
    demo_namespace: str = Field(default="default", description="Namespace for the minted key")
    demo_scope_user: str = Field(
        default="auto",
        validate_default=True,
        description="Scope user for the minted key; 'auto' generates demo-<hex>"
    )

    # ── Timeouts & limits ──────────────────────────────────────────
    demo_http_timeout_ms: int = Field(default=15_000, validate_default=True, description="Per-request timeout")
    demo_enrich_wait_ms: int = Field(default=30_000, validate_default=True, description="Enrichment deadline")
    demo_health_wait_ms: int = Field(default=60_000, validate_default=True, description="Readiness deadline")
    demo_context_limit: int = Field(default=8, validate_default=True, description="Passages per context call")
    demo_max_chars: int = Field(default=1_200, validate_default=True, description="Context character budget")

    # ── Logging ────────────────────────────────────────────────────
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="text", description="Log format: 'json' or 'text'")

    @field_validator(
        "demo_tenant_id",
        "demo_http_timeout_ms",
        "demo_enrich_wait_ms",
        "demo_health_wait_ms",
        "demo_context_limit",
        "demo_max_chars",
        mode="before",
    )
    @classmethod
    def _clamp(cls, value: Any, info: ValidationInfo) -> int:
        default, lo, hi = _INT_BOUNDS[info.field_name]
        return clamp_int(value, default, lo, hi)

    @field_validator("api_url", "base_url", mode="before")
    @classmethod
    def _normalize_url(cls, value: Any) -> str:
        return normalize_url(value)

    @field_validator("admin_token", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> str:
        return str(value or "").strip()

    @field_validator("demo_scope_user", mode="before")
    @classmethod
    def _resolve_scope_user(cls, value: Any) -> str:
        value = str(value or "").strip()
        if not value or value.lower() == "auto":
            return f"demo-{secrets.token_hex(4)}"
        return value

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, value: str) -> str:
        if value not in ("text", "json"):
            raise ValueError(f"log_format must be 'text' or 'json', got {value!r}")
        return value

    # ── Derived values ─────────────────────────────────────────────
    @property
    def health_base_url(self) -> str:
        """Base URL that serves /health."""
        if self.base_url:
            return self.base_url
        return _VERSION_SUFFIX.sub("", self.api_url)

    @property
    def http_timeout_s(self) -> float:
        return self.demo_http_timeout_ms / 1000.0

    @property
    def enrich_wait_s(self) -> float:
        return self.demo_enrich_wait_ms / 1000.0

    @property
    def health_wait_s(self) -> float:
        return self.demo_health_wait_ms / 1000.0

    def require_admin_token(self) -> str:
        """
        Return the admin credential or fail before any network call.

        Raises:
            ConfigurationError: If LAM_ADMIN_TOKEN is unset or blank.
        """
        if not self.admin_token:
            raise ConfigurationError(
                "Missing LAM_ADMIN_TOKEN (needed to mint a demo API key via /admin/keys)"
            )
        return self.admin_token

    def config_hash(self) -> str:
        """
        Produce a deterministic SHA-256 hash of the configuration.

        Stamped on every verification certificate. The admin credential
        is excluded so the hash can be shared.
        """
        config_dict = self.model_dump(mode="json", exclude={"admin_token"})
        return compute_hash(config_dict, length=16)


# ── Config Loading ─────────────────────────────────────────────────
def get_config(yaml_path: Optional[str] = None) -> LamCheckConfig:
    """
    Load lamcheck configuration.

    Priority (highest to lowest):
        1. YAML config file (if provided)
        2. Environment variables (LAM_ prefix)
        3. .env file
        4. Default values

    Args:
        yaml_path: Optional path to a YAML config file for overrides.
            Keys are field names (``api_url``, ``demo_tenant_id``, ...).

    Returns:
        Fully resolved, immutable LamCheckConfig instance.

    Raises:
        ConfigurationError: The YAML file is missing, unreadable, or not a mapping.
    """
    if yaml_path:
        import yaml
        try:
            with open(yaml_path) as f:
                overrides = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Cannot load config file {yaml_path}: {e}") from e
        if not isinstance(overrides, dict):
            raise ConfigurationError(f"Config file {yaml_path} must hold a mapping of settings")
        return LamCheckConfig(**overrides)
    return LamCheckConfig()
