"""Gatekeeper facade: the single entry point for permission checks.

Callers ask before they act::

    gatekeeper = Gatekeeper()
    decision = gatekeeper.check_permission("send_email", {"to": "a@x.com", "subject": "hi"})
    if decision.requires_confirmation:
        ask_the_human(decision.message)

Every call leaves exactly one finalized audit entry, whether the request
was allowed, denied, or rejected by the rate limiter.  The rate limit is
consumed before policy evaluation, so denied requests count against the
daily quota.
"""
from __future__ import annotations

import logging
from enum import Enum

from automator_gatekeeper.audit.log import AuditEntry, AuditFilter, AuditLog
from automator_gatekeeper.audit.writer import AuditWriter
from automator_gatekeeper.errors import PermissionDenied, RateLimitExceeded
from automator_gatekeeper.limits.rate_limiter import DEFAULT_LIMITS, RateLimiter
from automator_gatekeeper.policies.evaluator import ActionKind, Decision, PolicyEvaluator
from automator_gatekeeper.settings import GatekeeperSettings
from automator_gatekeeper.store.config import PermissionCategory
from automator_gatekeeper.store.policy_store import FilePolicyStore, ListMutation, PolicyStore

logger = logging.getLogger(__name__)


class Gatekeeper:
    """Coordinates the policy store, rate limiter, audit log and evaluator.

    Parameters
    ----------
    store:
        Permission configuration.  An in-memory store with defaults when
        omitted.
    rate_limiter:
        Daily quota per action kind.
    audit_log:
        Trail of every decision.
    """

    def __init__(
        self,
        store: PolicyStore | None = None,
        rate_limiter: RateLimiter | None = None,
        audit_log: AuditLog | None = None,
    ) -> None:
        self._store = store if store is not None else PolicyStore()
        self._rate_limiter = rate_limiter if rate_limiter is not None else RateLimiter()
        self._audit_log = audit_log if audit_log is not None else AuditLog()
        self._evaluator = PolicyEvaluator(self._store, self._audit_log)

    @classmethod
    def from_settings(cls, settings: GatekeeperSettings) -> Gatekeeper:
        """Build a gatekeeper backed by files named in ``settings``.

        The security config is loaded immediately; a missing or corrupt
        file installs defaults.
        """
        store = FilePolicyStore(settings.config_path)
        store.load()
        writer = AuditWriter(settings.audit.log_path) if settings.audit.enabled else None
        limiter = RateLimiter(limits={**DEFAULT_LIMITS, **settings.rate_limits})
        return cls(store=store, rate_limiter=limiter, audit_log=AuditLog(writer=writer))

    # ------------------------------------------------------------------
    # Permission checks
    # ------------------------------------------------------------------

    def check_permission(self, action: str, details: dict[str, object] | None = None) -> Decision:
        """Decide whether ``action`` may run with payload ``details``.

        Returns
        -------
        Decision
            ``allowed`` is False for a policy denial, with a reason.

        Raises
        ------
        RateLimitExceeded
            If the action kind has used up today's quota.  The attempt is
            audited as denied and the evaluator is not consulted.
        """
        kind = action.value if isinstance(action, Enum) else str(action)
        payload = dict(details or {})
        handle = self._audit_log.begin(kind, payload)

        if not self._rate_limiter.try_consume(kind, ceiling=self._ceiling_for(kind)):
            self._audit_log.finalize(handle, False)
            raise RateLimitExceeded(kind, self._effective_limit(kind))

        try:
            decision = self._evaluator.evaluate(kind, payload)
        except Exception:
            self._audit_log.finalize(handle, False)
            raise

        self._audit_log.finalize(handle, decision.allowed)
        return decision

    def enforce(self, action: str, details: dict[str, object] | None = None) -> Decision:
        """Like :meth:`check_permission` but raise on denial.

        Raises
        ------
        PermissionDenied
            If policy denies the request.
        RateLimitExceeded
            If the action kind has used up today's quota.
        """
        decision = self.check_permission(action, details)
        kind = action.value if isinstance(action, Enum) else str(action)
        if not decision.allowed:
            raise PermissionDenied(kind, decision.reason or "denied", decision.code)  # type: ignore[arg-type]
        if decision.requires_confirmation:
            logger.warning("Confirmation required for %s: %s", kind, decision.message)
        return decision

    # ------------------------------------------------------------------
    # List management
    # ------------------------------------------------------------------

    def add_to_whitelist(self, item: str) -> bool:
        """Whitelist ``item`` and persist.  Raises ``ConfigSaveError`` on write failure."""
        return self._store.mutate_whitelist(item, ListMutation.ADD)

    def remove_from_whitelist(self, item: str) -> bool:
        return self._store.mutate_whitelist(item, ListMutation.REMOVE)

    def add_to_blacklist(self, item: str) -> bool:
        """Blacklist ``item`` and persist.  Raises ``ConfigSaveError`` on write failure."""
        return self._store.mutate_blacklist(item, ListMutation.ADD)

    def remove_from_blacklist(self, item: str) -> bool:
        return self._store.mutate_blacklist(item, ListMutation.REMOVE)

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def get_audit_log(self, criteria: AuditFilter | None = None) -> list[AuditEntry]:
        """Return audit entries matching ``criteria`` in request order."""
        return self._audit_log.query(criteria)

    def remaining_quota(self, action: str) -> int:
        """Return how many more ``action`` requests fit under today's ceiling.

        For ``send_email`` this honours ``maxPerDay`` from the email settings.
        """
        kind = action.value if isinstance(action, Enum) else str(action)
        return self._rate_limiter.remaining(kind, ceiling=self._ceiling_for(kind))

    @property
    def store(self) -> PolicyStore:
        return self._store

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._rate_limiter

    @property
    def audit_log(self) -> AuditLog:
        return self._audit_log

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _ceiling_for(self, kind: str) -> int | None:
        # maxPerDay can only tighten the built-in email ceiling.
        if kind == ActionKind.SEND_EMAIL.value:
            return self._store.get(PermissionCategory.EMAIL).max_per_day  # type: ignore[union-attr]
        return None

    def _effective_limit(self, kind: str) -> int:
        limit = self._rate_limiter.limit_for(kind)
        ceiling = self._ceiling_for(kind)
        return limit if ceiling is None else min(limit, ceiling)
