"""Process settings for the gatekeeper, loaded from YAML with pydantic.

Example ``gatekeeper.yaml``::

    config_path: ~/.automator-mcp/security.json
    audit:
      enabled: true
      log_path: ~/.automator-mcp/audit.jsonl
    rate_limits:
      execute_script: 10

Every key is optional.  ``rate_limits`` entries override the built-in
per-kind ceilings; kinds not listed keep their defaults.
"""
from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator

from automator_gatekeeper.store.config import DEFAULT_CONFIG_PATH

DEFAULT_AUDIT_PATH: Path = Path.home() / ".automator-mcp" / "audit.jsonl"


class AuditSettings(BaseModel):
    """Persistence of the audit trail."""

    model_config = {"extra": "allow"}

    enabled: bool = Field(default=False)
    log_path: Path = Field(default=DEFAULT_AUDIT_PATH)

    @field_validator("log_path")
    @classmethod
    def expand_user(cls, value: Path) -> Path:
        return value.expanduser()


class GatekeeperSettings(BaseModel):
    """Top-level settings.  All sections fall back to defaults."""

    model_config = {"extra": "allow"}

    config_path: Path = Field(default=DEFAULT_CONFIG_PATH)
    audit: AuditSettings = Field(default_factory=AuditSettings)
    rate_limits: dict[str, int] = Field(default_factory=dict)

    @field_validator("config_path")
    @classmethod
    def expand_user(cls, value: Path) -> Path:
        return value.expanduser()

    @field_validator("rate_limits")
    @classmethod
    def validate_rate_limits(cls, values: dict[str, int]) -> dict[str, int]:
        for kind, limit in values.items():
            if limit < 0:
                raise ValueError(f"Rate limit for '{kind}' must be >= 0, got {limit}")
        return values


class SettingsLoader:
    """Loads and validates gatekeeper settings."""

    def load(self, settings_path: Path) -> GatekeeperSettings:
        """Load settings from a YAML file.

        Raises
        ------
        FileNotFoundError:
            When the file does not exist.
        ValueError:
            When the content fails validation.
        """
        if not settings_path.exists():
            raise FileNotFoundError(f"Gatekeeper settings not found: {settings_path}")

        with settings_path.open("r", encoding="utf-8") as fh:
            raw: dict[str, object] = yaml.safe_load(fh) or {}

        return GatekeeperSettings.model_validate(raw)

    def load_string(self, yaml_content: str) -> GatekeeperSettings:
        """Load settings from a YAML string."""
        raw: dict[str, object] = yaml.safe_load(yaml_content) or {}
        return GatekeeperSettings.model_validate(raw)

    def defaults(self) -> GatekeeperSettings:
        """Return settings with every default applied."""
        return GatekeeperSettings()
