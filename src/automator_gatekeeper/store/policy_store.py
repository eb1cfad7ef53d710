"""Policy store: the current permission configuration and its persistence.

Two implementations share one interface:

- :class:`PolicyStore` keeps everything in memory.  ``save()`` records a
  snapshot that a later ``load()`` restores, which is enough for tests and
  embedded use.
- :class:`FilePolicyStore` persists to a JSON or YAML file.

Every whitelist/blacklist mutation is applied in memory first and then
saved.  Mutations and saves are serialised by a separate save lock, so
snapshots reach storage in mutation order while readers only wait for
the in-memory update.  A failed save raises
:class:`~automator_gatekeeper.errors.ConfigSaveError` but does not roll
the mutation back.

Example
-------
>>> store = PolicyStore()
>>> store.mutate_blacklist("ex@example.com")
True
>>> "ex@example.com" in store.blacklist()
True
"""
from __future__ import annotations

import logging
import threading
from enum import Enum
from pathlib import Path

from automator_gatekeeper.errors import ConfigLoadError
from automator_gatekeeper.store.config import (
    DEFAULT_CONFIG_PATH,
    CategoryConfig,
    PermissionCategory,
    SecurityConfig,
    default_config,
    read_config,
    write_config,
)

logger = logging.getLogger(__name__)


class ListMutation(str, Enum):
    """Whether a whitelist/blacklist mutation adds or removes an item."""

    ADD = "add"
    REMOVE = "remove"


class PolicyStore:
    """In-memory policy store.

    Parameters
    ----------
    config:
        Initial configuration.  Built-in defaults are used when omitted.
    """

    def __init__(self, config: SecurityConfig | None = None) -> None:
        self._lock = threading.RLock()
        self._save_lock = threading.Lock()
        self._config: SecurityConfig = (
            config.model_copy(deep=True) if config is not None else default_config()
        )
        self._saved: SecurityConfig | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def load(self) -> SecurityConfig:
        """Replace the current configuration with the persisted one.

        A missing or unreadable persisted config is not an error: the
        built-in defaults are installed instead.

        Returns
        -------
        SecurityConfig
            A copy of the configuration now in effect.
        """
        try:
            loaded = self._read()
        except ConfigLoadError as exc:
            logger.warning("Ignoring unreadable security config, using defaults: %s", exc)
            loaded = None

        with self._lock:
            if loaded is None:
                logger.info("No persisted security config at %s; installing defaults", self.location)
                self._config = default_config()
            else:
                self._config = loaded
            return self._config.model_copy(deep=True)

    def save(self) -> None:
        """Persist whitelist, blacklist and category settings.

        Raises
        ------
        ConfigSaveError
            If the backing storage could not be written.
        """
        with self._save_lock:
            self._write(self.snapshot())

    # ------------------------------------------------------------------
    # Read API
    # ------------------------------------------------------------------

    def get(self, category: PermissionCategory | str) -> CategoryConfig:
        """Return a copy of the settings for ``category``.

        Raises
        ------
        KeyError
            For ``script`` (its rules are built in) or an unknown category.
        """
        name = _category_name(category)
        with self._lock:
            settings = getattr(self._config.permissions, name)
            return settings.model_copy(deep=True)

    def snapshot(self) -> SecurityConfig:
        """Return a deep copy of the full configuration."""
        with self._lock:
            return self._config.model_copy(deep=True)

    def whitelist(self) -> frozenset[str]:
        """Current whitelist entries."""
        with self._lock:
            return frozenset(self._config.whitelist)

    def blacklist(self) -> frozenset[str]:
        """Current blacklist entries."""
        with self._lock:
            return frozenset(self._config.blacklist)

    @property
    def location(self) -> str:
        """Human-readable description of where the config is persisted."""
        return "<memory>"

    # ------------------------------------------------------------------
    # Write API
    # ------------------------------------------------------------------

    def set(self, category: PermissionCategory | str, settings: CategoryConfig) -> None:
        """Replace the settings for ``category`` and save.

        Raises
        ------
        TypeError
            If ``settings`` is not the model type for ``category``.
        ConfigSaveError
            If persisting fails.  The new settings stay in effect.
        """
        name = _category_name(category)
        with self._save_lock:
            with self._lock:
                current = getattr(self._config.permissions, name)
                if type(settings) is not type(current):
                    raise TypeError(
                        f"{name} settings must be {type(current).__name__}, "
                        f"got {type(settings).__name__}"
                    )
                setattr(self._config.permissions, name, settings.model_copy(deep=True))
            self._write(self.snapshot())

    def mutate_whitelist(self, item: str, mutation: ListMutation = ListMutation.ADD) -> bool:
        """Add or remove ``item`` from the whitelist, then save.

        Returns
        -------
        bool
            ``True`` when the in-memory set changed.
        """
        with self._save_lock:
            with self._lock:
                changed = _apply(self._config.whitelist, item, mutation)
            logger.info("Whitelist %s %r (changed=%s)", ListMutation(mutation).value, item, changed)
            self._write(self.snapshot())
        return changed

    def mutate_blacklist(self, item: str, mutation: ListMutation = ListMutation.ADD) -> bool:
        """Add or remove ``item`` from the blacklist, then save.

        Returns
        -------
        bool
            ``True`` when the in-memory set changed.
        """
        with self._save_lock:
            with self._lock:
                changed = _apply(self._config.blacklist, item, mutation)
            logger.info("Blacklist %s %r (changed=%s)", ListMutation(mutation).value, item, changed)
            self._write(self.snapshot())
        return changed

    # ------------------------------------------------------------------
    # Storage hooks
    # ------------------------------------------------------------------

    def _read(self) -> SecurityConfig | None:
        """Return the persisted configuration, or ``None`` when there is none."""
        if self._saved is None:
            return None
        return self._saved.model_copy(deep=True)

    def _write(self, config: SecurityConfig) -> None:
        self._saved = config


class FilePolicyStore(PolicyStore):
    """Policy store persisted to a JSON or YAML file.

    Parameters
    ----------
    config_path:
        Location of the security config.  Defaults to
        ``~/.automator-mcp/security.json``.
    """

    def __init__(self, config_path: Path | str | None = None) -> None:
        super().__init__()
        self._config_path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH

    @property
    def config_path(self) -> Path:
        """The file backing this store."""
        return self._config_path

    @property
    def location(self) -> str:
        return str(self._config_path)

    def _read(self) -> SecurityConfig | None:
        if not self._config_path.exists():
            return None
        return read_config(self._config_path)

    def _write(self, config: SecurityConfig) -> None:
        write_config(self._config_path, config)


def _category_name(category: PermissionCategory | str) -> str:
    try:
        name = PermissionCategory(category).value
    except ValueError as exc:
        raise KeyError(f"Unknown permission category: {category!r}") from exc
    if name == PermissionCategory.SCRIPT.value:
        raise KeyError("The script category has no configurable settings")
    return name


def _apply(items: set[str], item: str, mutation: ListMutation) -> bool:
    if ListMutation(mutation) is ListMutation.ADD:
        if item in items:
            return False
        items.add(item)
        return True
    if item not in items:
        return False
    items.discard(item)
    return True
