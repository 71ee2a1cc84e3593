"""Application settings — Pydantic-based configuration with YAML and env var support.

Configuration is loaded from (in order of precedence):
  1. YAML config file (if specified)
  2. Environment variables (DOCMAPPER_ prefix)
  3. Default values
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings


class EngineSettings(BaseModel):
    """Search engine connection configuration."""

    adapter: str = Field(default="opensearch", description="Engine adapter: opensearch, elasticsearch, memory")
    hosts: list[str] = Field(default_factory=list, description="Engine node URLs")
    base_index: str = Field(default="documents", description="Prefix of every index (<base_index>__<kind>)")
    username: str | None = Field(default=None, description="Authentication username")
    password: str | None = Field(default=None, description="Authentication password")
    api_key: str | None = Field(default=None, description="API key authentication")
    verify_certs: bool = Field(default=True, description="Verify TLS certificates")
    extra: dict[str, Any] = Field(default_factory=dict, description="Adapter-specific client options")

    @field_validator("hosts", mode="before")
    @classmethod
    def _parse_hosts(cls, v: Any) -> list[str]:
        """Parse hosts from JSON string (env var) or list."""
        if isinstance(v, str):
            import json

            try:
                parsed = json.loads(v)
                if isinstance(parsed, list):
                    return [str(h) for h in parsed]
            except (json.JSONDecodeError, TypeError):
                pass
            # Single host as plain string
            return [v] if v else []
        return list(v)

    def adapter_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for the adapter constructor."""
        kwargs: dict[str, Any] = {
            "username": self.username,
            "password": self.password,
            "api_key": self.api_key,
            "verify_certs": self.verify_certs,
            **self.extra,
        }
        if self.hosts:
            kwargs["hosts"] = self.hosts
        return kwargs


class RetrySettings(BaseModel):
    """Retry behavior for remote document fetches."""

    max_attempts: int = Field(default=3, ge=1, description="Get-by-id attempts before giving up")
    backoff_seconds: float = Field(default=1.0, ge=0, description="Backoff unit; attempt i waits unit * i * (i + 1)")


class IndexSchemaConfig(BaseModel):
    """Mapping and optional settings for one document kind."""

    mappings: dict[str, Any] = Field(description="Index mapping definition")
    settings: dict[str, Any] | None = Field(default=None, description="Index settings")


class ObservabilitySettings(BaseModel):
    """Observability configuration."""

    log_level: str = Field(default="info", description="Log level: debug, info, warning, error")
    log_format: str = Field(default="json", description="Log format: json, console")


class Settings(BaseSettings):
    """Root application settings.

    Configuration is loaded from environment variables with the DOCMAPPER_ prefix.
    Nested settings use double underscores: DOCMAPPER_ENGINE__BASE_INDEX=catalog

    Example:
        DOCMAPPER_ENGINE__ADAPTER=elasticsearch
        DOCMAPPER_ENGINE__HOSTS='["http://es1:9200", "http://es2:9200"]'
        DOCMAPPER_RETRY__MAX_ATTEMPTS=5
    """

    model_config = {
        "env_prefix": "DOCMAPPER_",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }

    engine: EngineSettings = Field(default_factory=EngineSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    schemas: dict[str, IndexSchemaConfig] = Field(default_factory=dict, description="Index schemas per kind")
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    @classmethod
    def from_yaml(cls, path: str | Path) -> Settings:
        """Load settings from a YAML configuration file.

        Values from the YAML file take precedence over environment variables;
        anything the file leaves out falls back to the environment.

        Args:
            path: Path to the YAML config file.

        Returns:
            Populated Settings instance.
        """
        import yaml  # type: ignore[import-untyped]

        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)
