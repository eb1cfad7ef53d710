"""Export of audit entries for offline review.

The exporter reads from either a live :class:`AuditLog` or a persisted
:class:`AuditWriter` file, narrows the entries with an optional
:class:`AuditFilter`, and writes one row per entry.

Example::

    exporter = AuditExporter(gatekeeper.audit_log)
    exporter.export(Path("denied.csv"), criteria=AuditFilter(outcome=AuditOutcome.DENIED))
"""
from __future__ import annotations

import csv
import json
import logging
from enum import Enum
from pathlib import Path

from automator_gatekeeper.audit.log import AuditEntry, AuditFilter, AuditLog
from automator_gatekeeper.audit.writer import AuditWriter

logger = logging.getLogger(__name__)


class ExportFormat(str, Enum):
    """Output formats understood by :meth:`AuditExporter.export`."""

    CSV = "csv"
    JSON = "json"
    JSONL = "jsonl"


CSV_COLUMNS: tuple[str, ...] = (
    "entry_id",
    "timestamp",
    "action",
    "outcome",
    "details",
    "session_id",
)


class AuditExporter:
    """Writes audit entries to CSV, a JSON array or JSONL.

    Parameters
    ----------
    source:
        The in-memory log of the running gatekeeper, or the writer whose
        JSONL file should be exported.
    """

    def __init__(self, source: AuditLog | AuditWriter) -> None:
        self._source = source

    def rows(self, criteria: AuditFilter | None = None) -> list[dict[str, object]]:
        """Return one flat row per matching entry, oldest first.

        Rows from a writer keep the ``session_id`` stamped on each record;
        rows from a live log have ``session_id`` set to ``None``.
        """
        criteria = criteria or AuditFilter()
        if isinstance(self._source, AuditLog):
            return [_row(entry, None) for entry in self._source.query(criteria)]

        rows: list[dict[str, object]] = []
        for record in self._source.read_all():
            try:
                entry = AuditEntry.from_dict(record)
            except (KeyError, TypeError, ValueError):
                logger.warning("Skipping audit record that is not an entry: %r", record)
                continue
            if criteria.matches(entry):
                session_id = record.get("session_id")
                rows.append(_row(entry, None if session_id is None else str(session_id)))
        return rows

    def export(
        self,
        output_path: Path,
        fmt: ExportFormat | str = ExportFormat.CSV,
        criteria: AuditFilter | None = None,
    ) -> int:
        """Write matching entries to ``output_path`` and return how many.

        Raises
        ------
        ValueError
            If ``fmt`` is not a known :class:`ExportFormat`.
        """
        output_format = ExportFormat(fmt)
        rows = self.rows(criteria)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        match output_format:
            case ExportFormat.CSV:
                with output_path.open("w", newline="", encoding="utf-8") as fh:
                    writer = csv.DictWriter(fh, fieldnames=CSV_COLUMNS)
                    writer.writeheader()
                    for row in rows:
                        writer.writerow({**row, "details": json.dumps(row["details"], default=str)})
            case ExportFormat.JSON:
                with output_path.open("w", encoding="utf-8") as fh:
                    json.dump(rows, fh, indent=2, default=str)
                    fh.write("\n")
            case ExportFormat.JSONL:
                with output_path.open("w", encoding="utf-8") as fh:
                    for row in rows:
                        fh.write(json.dumps(row, default=str) + "\n")

        logger.info("Exported %d audit entries to %s (%s)", len(rows), output_path, output_format.value)
        return len(rows)


def _row(entry: AuditEntry, session_id: str | None) -> dict[str, object]:
    return {
        "entry_id": entry.entry_id,
        "timestamp": entry.timestamp.isoformat(),
        "action": entry.action,
        "outcome": entry.outcome.value,
        "details": entry.details,
        "session_id": session_id,
    }
