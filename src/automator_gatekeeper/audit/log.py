"""In-memory, append-only audit trail of permission decisions.

Each ``check_permission`` call opens one entry with :meth:`AuditLog.begin`
(outcome pending) and closes it with :meth:`AuditLog.finalize`.  Entries
are never removed and their outcome is set exactly once.

The trail doubles as a lookup source: :meth:`AuditLog.has_prior_approval`
answers questions such as "has this recipient been emailed and allowed
before?".  It is a linear scan today; callers only depend on the method,
so an index can be added behind it.

Example
-------
>>> audit = AuditLog()
>>> handle = audit.begin("send_email", {"to": "a@x.com"})
>>> audit.finalize(handle, True).outcome
<AuditOutcome.ALLOWED: 'allowed'>
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Callable

from automator_gatekeeper.errors import AuditEntryFinalizedError

if TYPE_CHECKING:
    from automator_gatekeeper.audit.writer import AuditWriter

logger = logging.getLogger(__name__)

AuditHandle = int


class AuditOutcome(str, Enum):
    """Tri-state outcome of an audit entry."""

    PENDING = "pending"
    ALLOWED = "allowed"
    DENIED = "denied"


@dataclass
class AuditEntry:
    """One permission request and, once known, its outcome.

    Attributes
    ----------
    entry_id:
        Sequential identifier, starting at 1.  Also the entry's handle.
    timestamp:
        Local, timezone-aware time the request was received.
    action:
        The requested action kind.
    details:
        The request payload as supplied by the caller.
    allowed:
        ``None`` while pending, then ``True`` or ``False``.
    """

    entry_id: int
    timestamp: datetime
    action: str
    details: dict[str, object] = field(default_factory=dict)
    allowed: bool | None = None

    @property
    def outcome(self) -> AuditOutcome:
        """The entry's outcome as an :class:`AuditOutcome`."""
        if self.allowed is None:
            return AuditOutcome.PENDING
        return AuditOutcome.ALLOWED if self.allowed else AuditOutcome.DENIED

    def to_dict(self) -> dict[str, object]:
        """Serialise this entry to a JSON-ready dict."""
        return {
            "entry_id": self.entry_id,
            "timestamp": self.timestamp.isoformat(),
            "action": self.action,
            "details": self.details,
            "allowed": self.allowed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> AuditEntry:
        """Rebuild an entry from :meth:`to_dict` output."""
        ts_raw = data["timestamp"]
        timestamp = datetime.fromisoformat(ts_raw) if isinstance(ts_raw, str) else ts_raw
        allowed = data.get("allowed")
        return cls(
            entry_id=int(data["entry_id"]),  # type: ignore[arg-type]
            timestamp=timestamp,  # type: ignore[arg-type]
            action=str(data["action"]),
            details=dict(data.get("details") or {}),  # type: ignore[arg-type]
            allowed=None if allowed is None else bool(allowed),
        )


@dataclass(frozen=True)
class AuditFilter:
    """Criteria for :meth:`AuditLog.query`.  Unset fields match everything.

    Naive datetimes are interpreted as local time.
    """

    action: str | None = None
    min_timestamp: datetime | None = None
    max_timestamp: datetime | None = None
    outcome: AuditOutcome | None = None

    def matches(self, entry: AuditEntry) -> bool:
        if self.action is not None and entry.action != self.action:
            return False
        if self.outcome is not None and entry.outcome is not AuditOutcome(self.outcome):
            return False
        if self.min_timestamp is not None and entry.timestamp < _aware(self.min_timestamp):
            return False
        if self.max_timestamp is not None and entry.timestamp > _aware(self.max_timestamp):
            return False
        return True


class AuditLog:
    """Thread-safe, append-only audit trail.

    Parameters
    ----------
    writer:
        Optional :class:`~automator_gatekeeper.audit.writer.AuditWriter`.
        When supplied, every finalized entry is also appended to its
        JSONL file.  A write failure is logged and the in-memory entry
        stays authoritative.
    clock:
        Returns the current time.  Defaults to local, timezone-aware now.
    """

    def __init__(
        self,
        writer: AuditWriter | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._writer = writer
        self._clock = clock or _local_now
        self._entries: list[AuditEntry] = []
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Write API
    # ------------------------------------------------------------------

    def begin(self, action: str, details: dict[str, object] | None = None) -> AuditHandle:
        """Append a pending entry and return its handle."""
        with self._lock:
            entry = AuditEntry(
                entry_id=len(self._entries) + 1,
                timestamp=_aware(self._clock()),
                action=action,
                details=dict(details or {}),
            )
            self._entries.append(entry)
        return entry.entry_id

    def finalize(self, handle: AuditHandle, allowed: bool) -> AuditEntry:
        """Record the outcome of the entry identified by ``handle``.

        Raises
        ------
        KeyError
            If ``handle`` does not identify an entry in this log.
        AuditEntryFinalizedError
            If the entry already has an outcome.
        """
        with self._lock:
            if not 1 <= handle <= len(self._entries):
                raise KeyError(f"No audit entry with id {handle}")
            entry = self._entries[handle - 1]
            if entry.allowed is not None:
                raise AuditEntryFinalizedError(handle)
            entry.allowed = bool(allowed)
            finalized = _copy(entry)

        if self._writer is not None:
            try:
                self._writer.write(finalized)
            except OSError:
                logger.exception(
                    "Failed to persist audit entry %d; keeping it in memory only", finalized.entry_id
                )
        return finalized

    # ------------------------------------------------------------------
    # Read API
    # ------------------------------------------------------------------

    def query(self, criteria: AuditFilter | None = None) -> list[AuditEntry]:
        """Return copies of matching entries in append order."""
        criteria = criteria or AuditFilter()
        with self._lock:
            return [_copy(e) for e in self._entries if criteria.matches(e)]

    def has_prior_approval(self, action: str, match: Callable[[AuditEntry], bool]) -> bool:
        """Return ``True`` if an allowed entry for ``action`` satisfies ``match``.

        Pending and denied entries never count.
        """
        with self._lock:
            candidates = [
                e for e in self._entries if e.action == action and e.allowed is True
            ]
        return any(match(e) for e in candidates)

    def get(self, handle: AuditHandle) -> AuditEntry:
        """Return a copy of a single entry.

        Raises
        ------
        KeyError
            If ``handle`` does not identify an entry in this log.
        """
        with self._lock:
            if not 1 <= handle <= len(self._entries):
                raise KeyError(f"No audit entry with id {handle}")
            return _copy(self._entries[handle - 1])

    def count(self) -> int:
        """Return the number of entries recorded so far."""
        with self._lock:
            return len(self._entries)

    def summary(self) -> dict[str, object]:
        """Return entry counts by action kind and by outcome."""
        action_counts: dict[str, int] = {}
        outcome_counts: dict[str, int] = {}
        with self._lock:
            for entry in self._entries:
                action_counts[entry.action] = action_counts.get(entry.action, 0) + 1
                key = entry.outcome.value
                outcome_counts[key] = outcome_counts.get(key, 0) + 1
            total = len(self._entries)
        return {
            "total_entries": total,
            "action_counts": action_counts,
            "outcome_counts": outcome_counts,
        }

    @property
    def writer(self) -> AuditWriter | None:
        """The JSONL writer finalized entries are persisted to, if any."""
        return self._writer


def _local_now() -> datetime:
    return datetime.now().astimezone()


def _aware(ts: datetime) -> datetime:
    return ts if ts.tzinfo is not None else ts.astimezone()


def _copy(entry: AuditEntry) -> AuditEntry:
    return replace(entry, details=dict(entry.details))
