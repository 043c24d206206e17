"""Configuration with JSON file, secrets.yml, and env variable support.

Load order (later overrides earlier):

1. ``config.json`` - non-secret settings
2. ``secrets.yml`` - the Notion session token and similar values
3. Environment variables - runtime overrides (``NOTION_TOKEN``,
   ``NOTION_API_BASE_URL``, ``API_PORT``, ...)
"""

import json
import os
from pathlib import Path
from typing import Annotated, Any

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from notion_file_proxy.security.host_allowlist import (
    DEFAULT_ALLOWED_HOSTS,
    normalize_allowed_hosts,
)
from notion_file_proxy.services.notion_client import DEFAULT_API_BASE_URL

REDIRECT_CACHE_CONTROL = "public, s-maxage=3300, stale-while-revalidate=86400"
STREAM_CACHE_CONTROL = "public, s-maxage=300, stale-while-revalidate=3600"


def _flatten_secrets_mapping(secrets: dict) -> dict:
    """Flatten nested secrets into ProxyConfig keys.

    ``notion: {token: ...}`` becomes ``notion_token``; top-level scalars are
    kept as they are.
    """
    flat: dict[str, Any] = {}
    for section, values in secrets.items():
        if isinstance(values, dict):
            for key, value in values.items():
                flat[f"{section}_{key}"] = value
        else:
            flat[section] = values
    return flat


def _load_secrets(secrets_path: Path) -> dict:
    """Load and flatten secrets from a YAML file; missing file means no secrets."""
    if not secrets_path.exists():
        return {}

    with open(secrets_path, encoding="utf-8") as f:
        secrets = yaml.safe_load(f) or {}

    if not isinstance(secrets, dict):
        return {}

    return _flatten_secrets_mapping(secrets)


class ProxyConfig(BaseSettings):
    """Process-wide, immutable-after-start configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Notion
    notion_api_base_url: str = Field(default=DEFAULT_API_BASE_URL)
    notion_token: str | None = Field(
        default=None,
        description=(
            "token_v2 cookie of a logged-in Notion session. Required for private "
            "workspaces and for re-signing file URLs."
        ),
    )
    notion_active_user: str | None = Field(default=None)

    # Upstream access
    allowed_hosts: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_ALLOWED_HOSTS),
        description="Hosts (and their subdomains) the proxy may redirect to or fetch from.",
    )
    upstream_timeout_seconds: float = Field(default=30.0, gt=0)

    # Response caching
    redirect_cache_control: str = Field(default=REDIRECT_CACHE_CONTROL)
    stream_cache_control: str = Field(default=STREAM_CACHE_CONTROL)

    # Optional JSON API for rewriting record maps
    record_map_api_enabled: bool = Field(default=True)

    # API settings
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=3000)

    # Logging
    log_level: str = Field(default="INFO")
    error_log_file_enabled: bool = Field(default=False)
    error_log_file_path: str = Field(default="./logs/errors.log")
    error_log_level: str = Field(default="WARNING")
    error_log_max_bytes: int = Field(default=10_485_760)
    error_log_backup_count: int = Field(default=5)

    @field_validator("allowed_hosts", mode="before")
    @classmethod
    def _split_allowed_hosts(cls, value: Any) -> Any:
        # Env vars may hold a JSON list or "amazonaws.com,notion.so".
        if isinstance(value, str):
            if value.strip().startswith("["):
                return json.loads(value)
            return [part for part in value.split(",") if part.strip()]
        return value

    @field_validator("allowed_hosts")
    @classmethod
    def _normalize_allowed_hosts(cls, value: list[str]) -> list[str]:
        hosts = list(normalize_allowed_hosts(value))
        if not hosts:
            raise ValueError("allowed_hosts must contain at least one host")
        return hosts

    @field_validator("notion_token", "notion_active_user")
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        return value or None

    @classmethod
    def from_json_file(
        cls,
        config_path: str = "config.json",
        secrets_path: str = "secrets.yml",
    ) -> "ProxyConfig":
        """Load config from JSON + secrets.yml with env var overrides.

        Args:
            config_path: Path to JSON config file.
            secrets_path: Path to secrets YAML file.

        Returns:
            Configured ProxyConfig instance.
        """
        config_data: dict[str, Any] = {}

        json_path = Path(config_path)
        if json_path.exists():
            with open(json_path, encoding="utf-8") as f:
                loaded = json.load(f)
            if isinstance(loaded, dict):
                config_data = loaded

        config_data.update(_load_secrets(Path(secrets_path)))

        # Init kwargs beat env vars in pydantic-settings, so drop file values
        # that the environment overrides.
        for key in [k for k in config_data if k.upper() in os.environ]:
            del config_data[key]

        return cls(**config_data)
