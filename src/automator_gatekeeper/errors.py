"""Exception taxonomy for the automator gatekeeper.

Every error raised by this package derives from :class:`GatekeeperError`
so callers can catch the whole family in one clause.  Policy denials are
normally returned as :class:`~automator_gatekeeper.policies.evaluator.Decision`
objects; :class:`PermissionDenied` is only raised by
:meth:`~automator_gatekeeper.gatekeeper.Gatekeeper.enforce`.
"""
from __future__ import annotations

from enum import Enum
from pathlib import Path


class DenialCode(str, Enum):
    """Machine-readable reason attached to every denial decision."""

    CATEGORY_DISABLED = "category_disabled"
    BLACKLISTED = "blacklisted"
    NOT_WHITELISTED = "not_whitelisted"
    DOMAIN_NOT_ALLOWED = "domain_not_allowed"
    PATH_FORBIDDEN = "path_forbidden"
    PATH_NOT_ALLOWED = "path_not_allowed"
    APPLICATION_FORBIDDEN = "application_forbidden"
    APPLICATION_NOT_ALLOWED = "application_not_allowed"
    DANGEROUS_SCRIPT = "dangerous_script"
    MALFORMED_REQUEST = "malformed_request"


class GatekeeperError(Exception):
    """Base class for all gatekeeper errors."""


class ConfigLoadError(GatekeeperError):
    """Raised when a persisted security config cannot be read or parsed.

    The policy store treats this as "no prior configuration" and installs
    defaults; it only escapes from the low-level reader.

    Attributes
    ----------
    config_path:
        The path of the offending file, if known.
    """

    def __init__(self, message: str, config_path: Path | str | None = None) -> None:
        self.config_path = config_path
        prefix = f"[{config_path}] " if config_path else ""
        super().__init__(f"{prefix}{message}")


class ConfigSaveError(GatekeeperError):
    """Raised when the security config could not be written.

    The in-memory mutation that triggered the save is kept.

    Attributes
    ----------
    config_path:
        Destination that failed to write.
    """

    def __init__(self, message: str, config_path: Path | str | None = None) -> None:
        self.config_path = config_path
        prefix = f"[{config_path}] " if config_path else ""
        super().__init__(f"{prefix}{message}")


class RateLimitExceeded(GatekeeperError):
    """Raised when an action kind has used up its daily quota.

    Attributes
    ----------
    action:
        The action kind that was rejected.
    limit:
        The daily ceiling that applies to ``action``.
    """

    def __init__(self, action: str, limit: int) -> None:
        self.action = action
        self.limit = limit
        super().__init__(f"Rate limit exceeded for {action} ({limit} per day)")


class PermissionDenied(GatekeeperError):
    """Raised by ``Gatekeeper.enforce`` when a request is denied by policy.

    Attributes
    ----------
    action:
        The requested action kind.
    reason:
        Human-readable explanation suitable for an operator or agent.
    code:
        The :class:`DenialCode` of the rule that denied the request.
    """

    def __init__(self, action: str, reason: str, code: DenialCode) -> None:
        self.action = action
        self.reason = reason
        self.code = code
        super().__init__(f"Permission denied for {action}: {reason}")


class AuditEntryFinalizedError(GatekeeperError):
    """Raised when an audit entry's outcome is set a second time."""

    def __init__(self, entry_id: int) -> None:
        self.entry_id = entry_id
        super().__init__(f"Audit entry {entry_id} has already been finalized")


__all__ = [
    "AuditEntryFinalizedError",
    "ConfigLoadError",
    "ConfigSaveError",
    "DenialCode",
    "GatekeeperError",
    "PermissionDenied",
    "RateLimitExceeded",
]
