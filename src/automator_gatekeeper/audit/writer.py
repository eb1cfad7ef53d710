"""Append-only JSONL persistence for finalized audit entries.

Each finalized :class:`~automator_gatekeeper.audit.log.AuditEntry` is
written as one JSON line stamped with a session identifier, so several
processes can share one file and still be told apart.

Example
-------
>>> from pathlib import Path
>>> writer = AuditWriter(Path("/tmp/gatekeeper-audit.jsonl"))
>>> writer.count()
0
"""
from __future__ import annotations

import json
import logging
import threading
import uuid
from pathlib import Path
from typing import TYPE_CHECKING, Iterator

if TYPE_CHECKING:
    from automator_gatekeeper.audit.log import AuditEntry

logger = logging.getLogger(__name__)


class AuditWriter:
    """Thread-safe JSONL audit file.

    Parameters
    ----------
    log_path:
        Path to the ``.jsonl`` file.  Parent directories are created on
        first write.
    session_id:
        Identifier stamped on every record.  A random UUID when omitted.
    """

    def __init__(self, log_path: Path, session_id: str | None = None) -> None:
        self._log_path = Path(log_path)
        self._session_id: str = session_id or str(uuid.uuid4())
        self._lock = threading.Lock()

    def write(self, entry: AuditEntry) -> None:
        """Append ``entry`` as a single JSON line."""
        record: dict[str, object] = {"session_id": self._session_id, **entry.to_dict()}
        line = json.dumps(record, default=str) + "\n"
        with self._lock:
            self._log_path.parent.mkdir(parents=True, exist_ok=True)
            with self._log_path.open("a", encoding="utf-8") as fh:
                fh.write(line)

    def read_all(self) -> list[dict[str, object]]:
        """Return every record in file order; empty when the file is absent."""
        return list(self._iter_records())

    def last_n(self, n: int) -> list[dict[str, object]]:
        """Return the ``n`` most recent records."""
        if n <= 0:
            return []
        return self.read_all()[-n:]

    def count(self) -> int:
        """Return the number of readable records."""
        return sum(1 for _ in self._iter_records())

    def _iter_records(self) -> Iterator[dict[str, object]]:
        if not self._log_path.exists():
            return
        with self._lock:
            with self._log_path.open("r", encoding="utf-8") as fh:
                for lineno, line in enumerate(fh, start=1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        yield json.loads(line)
                    except json.JSONDecodeError:
                        logger.warning("Skipping malformed audit line %d in %s", lineno, self._log_path)

    @property
    def log_path(self) -> Path:
        """The filesystem path of the audit file."""
        return self._log_path

    @property
    def session_id(self) -> str:
        """The session identifier stamped on every record."""
        return self._session_id
