"""automator-gatekeeper: permission gate for desktop automation requests.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import automator_gatekeeper as gate
>>> gatekeeper = gate.Gatekeeper()
>>> decision = gatekeeper.check_permission("execute_script", {"script": "rm -rf /"})
>>> decision.allowed
False
>>> decision.reason
'Script contains dangerous commands'
"""
from __future__ import annotations

__version__: str = "0.1.0"

from automator_gatekeeper.gatekeeper import Gatekeeper

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------
from automator_gatekeeper.errors import (
    AuditEntryFinalizedError,
    ConfigLoadError,
    ConfigSaveError,
    DenialCode,
    GatekeeperError,
    PermissionDenied,
    RateLimitExceeded,
)

# ---------------------------------------------------------------------------
# Policy store
# ---------------------------------------------------------------------------
from automator_gatekeeper.store.config import (
    ApplicationPermissions,
    EmailPermissions,
    FileSystemPermissions,
    PermissionCategory,
    SecurityConfig,
)
from automator_gatekeeper.store.policy_store import FilePolicyStore, ListMutation, PolicyStore

# ---------------------------------------------------------------------------
# Rate limiting
# ---------------------------------------------------------------------------
from automator_gatekeeper.limits.rate_limiter import RateLimiter

# ---------------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------------
from automator_gatekeeper.audit.log import AuditEntry, AuditFilter, AuditLog, AuditOutcome
from automator_gatekeeper.audit.writer import AuditWriter
from automator_gatekeeper.audit.exporter import AuditExporter, ExportFormat

# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------
from automator_gatekeeper.policies.evaluator import ActionKind, Decision, PolicyEvaluator

# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------
from automator_gatekeeper.settings import GatekeeperSettings, SettingsLoader

__all__ = [
    "__version__",
    # Facade
    "Gatekeeper",
    # Errors
    "AuditEntryFinalizedError",
    "ConfigLoadError",
    "ConfigSaveError",
    "DenialCode",
    "GatekeeperError",
    "PermissionDenied",
    "RateLimitExceeded",
    # Policy store
    "ApplicationPermissions",
    "EmailPermissions",
    "FilePolicyStore",
    "FileSystemPermissions",
    "ListMutation",
    "PermissionCategory",
    "PolicyStore",
    "SecurityConfig",
    # Rate limiting
    "RateLimiter",
    # Audit
    "AuditEntry",
    "AuditExporter",
    "AuditFilter",
    "AuditLog",
    "AuditOutcome",
    "AuditWriter",
    "ExportFormat",
    # Evaluation
    "ActionKind",
    "Decision",
    "PolicyEvaluator",
    # Settings
    "GatekeeperSettings",
    "SettingsLoader",
]
