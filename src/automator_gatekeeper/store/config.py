"""Security configuration schema and on-disk codec.

The persisted file is a single record::

    {
      "whitelist": ["boss@example.com"],
      "blacklist": ["ex@example.com"],
      "permissions": {
        "email": {"enabled": true, "requireConfirmation": true,
                  "allowedDomains": [], "maxPerDay": 10},
        "file_system": {"enabled": true, "allowedPaths": [...],
                        "forbiddenPaths": [...]},
        "applications": {"enabled": true, "allowedApps": [...],
                         "forbiddenApps": [...]}
      }
    }

Field names on disk are camelCase; Python attributes are snake_case and
either spelling is accepted when loading.  ``permissions`` may also be the
legacy list of ``[category, config]`` pairs.

Files ending in ``.yaml`` or ``.yml`` are read and written with PyYAML;
every other suffix is JSON.
"""
from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
from enum import Enum
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, field_serializer, field_validator

from automator_gatekeeper.errors import ConfigLoadError, ConfigSaveError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH: Path = Path.home() / ".automator-mcp" / "security.json"

_YAML_SUFFIXES: frozenset[str] = frozenset([".yaml", ".yml"])


class PermissionCategory(str, Enum):
    """Policy categories recognised by the evaluator."""

    EMAIL = "email"
    FILE_SYSTEM = "file_system"
    APPLICATIONS = "applications"
    SCRIPT = "script"


def _home_dirs(*names: str) -> list[str]:
    home = Path.home()
    return [str(home / name) for name in names]


class EmailPermissions(BaseModel):
    """Settings for outbound email."""

    model_config = {"populate_by_name": True, "extra": "ignore"}

    enabled: bool = Field(default=True)
    require_confirmation: bool = Field(default=True, alias="requireConfirmation")
    allowed_domains: list[str] = Field(default_factory=list, alias="allowedDomains")
    max_per_day: int = Field(default=10, ge=0, alias="maxPerDay")


class FileSystemPermissions(BaseModel):
    """Settings for file operations.  Both lists are plain string prefixes."""

    model_config = {"populate_by_name": True, "extra": "ignore"}

    enabled: bool = Field(default=True)
    allowed_paths: list[str] = Field(
        default_factory=lambda: _home_dirs("Desktop", "Documents", "Downloads"),
        alias="allowedPaths",
    )
    forbidden_paths: list[str] = Field(
        default_factory=lambda: [*_home_dirs(".ssh", ".gnupg"), "/System", "/Library"],
        alias="forbiddenPaths",
    )


class ApplicationPermissions(BaseModel):
    """Settings for launching and controlling applications."""

    model_config = {"populate_by_name": True, "extra": "ignore"}

    enabled: bool = Field(default=True)
    allowed_apps: list[str] = Field(
        default_factory=lambda: ["Finder", "Safari", "Mail", "Calendar", "Notes", "Preview"],
        alias="allowedApps",
    )
    forbidden_apps: list[str] = Field(
        default_factory=lambda: ["System Preferences", "Terminal", "Activity Monitor"],
        alias="forbiddenApps",
    )


CategoryConfig = EmailPermissions | FileSystemPermissions | ApplicationPermissions


class CategoryPermissions(BaseModel):
    """Per-category settings.  Categories missing from a file get defaults."""

    model_config = {"extra": "ignore"}

    email: EmailPermissions = Field(default_factory=EmailPermissions)
    file_system: FileSystemPermissions = Field(default_factory=FileSystemPermissions)
    applications: ApplicationPermissions = Field(default_factory=ApplicationPermissions)


class SecurityConfig(BaseModel):
    """Top-level persisted security configuration."""

    model_config = {"extra": "ignore"}

    whitelist: set[str] = Field(default_factory=set)
    blacklist: set[str] = Field(default_factory=set)
    permissions: CategoryPermissions = Field(default_factory=CategoryPermissions)

    @field_validator("whitelist", "blacklist", mode="before")
    @classmethod
    def _none_as_empty(cls, value: object) -> object:
        return [] if value is None else value

    @field_validator("permissions", mode="before")
    @classmethod
    def _accept_pair_list(cls, value: object) -> object:
        if value is None:
            return {}
        if isinstance(value, list):
            try:
                return {str(name): settings for name, settings in value}
            except (TypeError, ValueError) as exc:
                raise ValueError(f"permissions list must hold [category, config] pairs: {exc}") from exc
        return value

    @field_serializer("whitelist", "blacklist")
    def _sorted_items(self, value: set[str]) -> list[str]:
        return sorted(value)

    def to_document(self) -> dict[str, object]:
        """Return the JSON/YAML-ready representation written to disk."""
        return self.model_dump(mode="json", by_alias=True)


def default_config() -> SecurityConfig:
    """Return the built-in defaults installed when no config is on disk."""
    return SecurityConfig()


def _is_yaml(path: Path) -> bool:
    return path.suffix.lower() in _YAML_SUFFIXES


def read_config(config_path: Path) -> SecurityConfig:
    """Parse and validate a persisted security config.

    Raises
    ------
    ConfigLoadError
        If the file cannot be read, is not UTF-8 JSON/YAML, or fails
        schema validation.
    """
    try:
        data = config_path.read_bytes()
    except OSError as exc:
        raise ConfigLoadError(f"Failed to read config: {exc}", config_path) from exc

    try:
        text = data.decode("utf-8")
        raw = yaml.safe_load(text) if _is_yaml(config_path) else json.loads(text)
    except (UnicodeDecodeError, yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigLoadError(f"Failed to parse config: {exc}", config_path) from exc

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigLoadError("Security config must be a mapping.", config_path)

    try:
        return SecurityConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigLoadError(f"Invalid security config: {exc}", config_path) from exc


def write_config(config_path: Path, config: SecurityConfig) -> None:
    """Serialise ``config`` to ``config_path``, creating parent directories.

    The document is written to a temporary file in the same directory and
    moved into place, so readers see either the old or the new file.

    Raises
    ------
    ConfigSaveError
        If the file or its parent directory cannot be written.
    """
    document = config.to_document()
    if _is_yaml(config_path):
        text = yaml.safe_dump(document, default_flow_style=False, sort_keys=False, allow_unicode=True)
    else:
        text = json.dumps(document, indent=2) + "\n"

    try:
        _atomic_write(config_path, text)
    except OSError as exc:
        raise ConfigSaveError(f"Failed to write config: {exc}", config_path) from exc
    logger.info("Saved security config to %s", config_path)


def _atomic_write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(text)
        os.replace(tmp_name, path)
    finally:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(tmp_name)
