"""Policy evaluator: turns an action request into a :class:`Decision`.

Rules per action kind:

- ``send_email``: category enabled, then blacklist, whitelist, and
  allowed domains.  First-time recipients are flagged for confirmation
  when the email category requires it.
- ``file_operation``: forbidden path prefixes win over allowed ones.
- ``run_application``: forbidden apps win over the allow list.
- ``execute_script``: the body is matched against a fixed set of
  dangerous patterns.  This check cannot be switched off.
- anything else is allowed but flagged for confirmation.

The evaluator never executes anything and never raises for a bad
payload; a request missing its key field is denied as malformed.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum

from automator_gatekeeper.audit.log import AuditEntry, AuditLog
from automator_gatekeeper.errors import DenialCode
from automator_gatekeeper.store.config import PermissionCategory
from automator_gatekeeper.store.policy_store import PolicyStore

logger = logging.getLogger(__name__)


class ActionKind(str, Enum):
    """Action kinds with dedicated rules."""

    SEND_EMAIL = "send_email"
    FILE_OPERATION = "file_operation"
    RUN_APPLICATION = "run_application"
    EXECUTE_SCRIPT = "execute_script"


DANGEROUS_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("recursive delete from root", re.compile(r"rm\s+-rf\s+/")),
    ("privilege escalation", re.compile(r"sudo")),
    ("credential change", re.compile(r"passwd")),
    ("remote shell", re.compile(r"ssh\s+")),
    ("download piped to shell", re.compile(r"curl.*\|.*sh")),
    ("raw device write", re.compile(r">/dev/sda")),
    ("raw disk copy", re.compile(r"dd\s+if=")),
    ("filesystem format", re.compile(r"mkfs")),
)

DANGEROUS_SCRIPT_REASON = "Script contains dangerous commands"


@dataclass(frozen=True)
class Decision:
    """Outcome of evaluating one action request.

    Attributes
    ----------
    allowed:
        Whether the action may proceed.
    requires_confirmation:
        The action is allowed but must wait for a human to confirm it.
    message:
        Text to show the human when confirmation is required.
    reason:
        Why the action was denied.  Always set when ``allowed`` is False.
    code:
        Machine-readable counterpart of ``reason``.
    """

    allowed: bool
    requires_confirmation: bool = False
    message: str | None = None
    reason: str | None = None
    code: DenialCode | None = None

    def __post_init__(self) -> None:
        if not self.allowed and not self.reason:
            raise ValueError("A denial decision must carry a reason")
        if self.requires_confirmation and not self.allowed:
            raise ValueError("Only allowed decisions can require confirmation")

    @classmethod
    def allow(cls) -> Decision:
        return cls(allowed=True)

    @classmethod
    def confirm(cls, message: str) -> Decision:
        return cls(allowed=True, requires_confirmation=True, message=message)

    @classmethod
    def deny(cls, reason: str, code: DenialCode) -> Decision:
        return cls(allowed=False, reason=reason, code=code)

    def to_dict(self) -> dict[str, object]:
        """Serialise to a JSON-ready dict, omitting unset optional fields."""
        result: dict[str, object] = {"allowed": self.allowed}
        if self.requires_confirmation:
            result["requires_confirmation"] = True
            result["message"] = self.message
        if self.reason is not None:
            result["reason"] = self.reason
        if self.code is not None:
            result["code"] = self.code.value
        return result


class PolicyEvaluator:
    """Applies category rules to action requests.

    Parameters
    ----------
    store:
        Source of category settings and the global whitelist/blacklist.
    audit_log:
        Consulted for recipient history when deciding whether an email
        needs confirmation.
    """

    def __init__(self, store: PolicyStore, audit_log: AuditLog) -> None:
        self._store = store
        self._audit_log = audit_log

    def evaluate(self, action: str, details: dict[str, object]) -> Decision:
        """Return the decision for ``action`` with payload ``details``."""
        match action:
            case ActionKind.SEND_EMAIL.value:
                decision = self._check_email(details)
            case ActionKind.FILE_OPERATION.value:
                decision = self._check_file(details)
            case ActionKind.RUN_APPLICATION.value:
                decision = self._check_application(details)
            case ActionKind.EXECUTE_SCRIPT.value:
                decision = self._check_script(details)
            case _:
                decision = Decision.confirm(f"Unknown action {action}. Please confirm.")

        if decision.allowed:
            logger.debug("ALLOW %s (requires_confirmation=%s)", action, decision.requires_confirmation)
        else:
            logger.warning("DENY %s [%s]: %s", action, decision.code.value, decision.reason)  # type: ignore[union-attr]
        return decision

    # ------------------------------------------------------------------
    # Category rules
    # ------------------------------------------------------------------

    def _check_email(self, details: dict[str, object]) -> Decision:
        settings = self._store.get(PermissionCategory.EMAIL)
        if not settings.enabled:
            return Decision.deny("Email sending is disabled", DenialCode.CATEGORY_DISABLED)

        recipient = details.get("to")
        if not isinstance(recipient, str) or not recipient:
            return Decision.deny("Email request has no recipient", DenialCode.MALFORMED_REQUEST)

        if recipient in self._store.blacklist():
            return Decision.deny(f"Email to {recipient} is blocked", DenialCode.BLACKLISTED)

        whitelist = self._store.whitelist()
        if whitelist and recipient not in whitelist:
            return Decision.deny(f"Email to {recipient} is not whitelisted", DenialCode.NOT_WHITELISTED)

        if settings.allowed_domains:
            # Domain is the segment after the first "@".
            domain = recipient.split("@")[1] if "@" in recipient else ""
            if domain not in settings.allowed_domains:
                return Decision.deny(f"Domain {domain} is not allowed", DenialCode.DOMAIN_NOT_ALLOWED)

        if settings.require_confirmation and not self._has_emailed_before(recipient):
            return Decision.confirm(f"First time emailing {recipient}. Please confirm.")

        return Decision.allow()

    def _check_file(self, details: dict[str, object]) -> Decision:
        settings = self._store.get(PermissionCategory.FILE_SYSTEM)
        if not settings.enabled:
            return Decision.deny("File operations are disabled", DenialCode.CATEGORY_DISABLED)

        path = details.get("path")
        if not isinstance(path, str) or not path:
            return Decision.deny("File operation has no path", DenialCode.MALFORMED_REQUEST)

        for forbidden in settings.forbidden_paths:
            if path.startswith(forbidden):
                return Decision.deny(
                    f"Access to {path} is forbidden (under {forbidden})", DenialCode.PATH_FORBIDDEN
                )

        if settings.allowed_paths and not any(path.startswith(p) for p in settings.allowed_paths):
            return Decision.deny(
                f"Path {path} is not in allowed directories", DenialCode.PATH_NOT_ALLOWED
            )

        return Decision.allow()

    def _check_application(self, details: dict[str, object]) -> Decision:
        settings = self._store.get(PermissionCategory.APPLICATIONS)
        if not settings.enabled:
            return Decision.deny("Application control is disabled", DenialCode.CATEGORY_DISABLED)

        app_name = details.get("application")
        if not isinstance(app_name, str) or not app_name:
            return Decision.deny("Application request has no application name", DenialCode.MALFORMED_REQUEST)

        if app_name in settings.forbidden_apps:
            return Decision.deny(f"Application {app_name} is forbidden", DenialCode.APPLICATION_FORBIDDEN)

        if settings.allowed_apps and app_name not in settings.allowed_apps:
            return Decision.deny(
                f"Application {app_name} is not whitelisted", DenialCode.APPLICATION_NOT_ALLOWED
            )

        return Decision.allow()

    def _check_script(self, details: dict[str, object]) -> Decision:
        script = details.get("script")
        if not isinstance(script, str):
            return Decision.deny("Script request has no script body", DenialCode.MALFORMED_REQUEST)

        for label, pattern in DANGEROUS_PATTERNS:
            if pattern.search(script):
                logger.warning("Script matched dangerous pattern %r (%s)", pattern.pattern, label)
                return Decision.deny(DANGEROUS_SCRIPT_REASON, DenialCode.DANGEROUS_SCRIPT)

        return Decision.allow()

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def _has_emailed_before(self, recipient: str) -> bool:
        def same_recipient(entry: AuditEntry) -> bool:
            return entry.details.get("to") == recipient

        return self._audit_log.has_prior_approval(ActionKind.SEND_EMAIL.value, same_recipient)
