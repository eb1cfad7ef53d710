"""Audit trail of permission decisions, with optional JSONL persistence."""
from __future__ import annotations

from automator_gatekeeper.audit.exporter import AuditExporter, ExportFormat
from automator_gatekeeper.audit.log import (
    AuditEntry,
    AuditFilter,
    AuditHandle,
    AuditLog,
    AuditOutcome,
)
from automator_gatekeeper.audit.writer import AuditWriter

__all__ = [
    "AuditEntry",
    "AuditExporter",
    "AuditFilter",
    "AuditHandle",
    "AuditLog",
    "AuditOutcome",
    "AuditWriter",
    "ExportFormat",
]
