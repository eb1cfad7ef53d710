"""Permission configuration: schema, persistence and the policy store."""
from __future__ import annotations

from automator_gatekeeper.store.config import (
    DEFAULT_CONFIG_PATH,
    ApplicationPermissions,
    CategoryPermissions,
    EmailPermissions,
    FileSystemPermissions,
    PermissionCategory,
    SecurityConfig,
    default_config,
    read_config,
    write_config,
)
from automator_gatekeeper.store.policy_store import FilePolicyStore, ListMutation, PolicyStore

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "ApplicationPermissions",
    "CategoryPermissions",
    "EmailPermissions",
    "FilePolicyStore",
    "FileSystemPermissions",
    "ListMutation",
    "PermissionCategory",
    "PolicyStore",
    "SecurityConfig",
    "default_config",
    "read_config",
    "write_config",
]
