"""Append-only JSONL log of permission decisions.

Each record carries a UTC ISO-8601 timestamp, a session identifier, the
subject, the permission checked and the outcome with the patterns that
produced it.

Thread-safety is achieved with a threading.Lock so the logger is safe to
call from multiple threads within the same process.

Example
-------
>>> from pathlib import Path
>>> log = DecisionLogger(Path("/tmp/decisions.jsonl"))
>>> log.record("alice", decision)
>>> log.query({"subject_id": "alice", "allowed": False})
[...]
"""
from __future__ import annotations

import json
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

from aumos_gatekeeper.permissions.resolver import Decision


class DecisionLogger:
    """Append-only JSONL decision logger.

    Parameters
    ----------
    log_path:
        Path to the ``.jsonl`` file. Parent directories are created on
        first write.
    session_id:
        Optional identifier stamped on every record. A random UUID is
        generated if not supplied.
    """

    def __init__(
        self,
        log_path: Path,
        session_id: str | None = None,
    ) -> None:
        self._log_path = Path(log_path)
        self._session_id: str = session_id or str(uuid.uuid4())
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Write API
    # ------------------------------------------------------------------

    def record(self, subject_id: str, decision: Decision) -> None:
        """Append one ``permission_check`` record for *decision*."""
        entry: dict[str, object] = {
            "timestamp": datetime.now(tz=timezone.utc).isoformat(),
            "session_id": self._session_id,
            "event": "permission_check",
            "subject_id": subject_id,
            **decision.to_dict(),
        }
        with self._lock:
            self._log_path.parent.mkdir(parents=True, exist_ok=True)
            with self._log_path.open("a", encoding="utf-8") as fh:
                fh.write(json.dumps(entry, default=str) + "\n")

    # ------------------------------------------------------------------
    # Read API
    # ------------------------------------------------------------------

    def read_all(self) -> list[dict[str, object]]:
        """Return all records in chronological order (empty if no file)."""
        return list(self._iter_records())

    def query(self, filters: dict[str, object]) -> list[dict[str, object]]:
        """Return records whose top-level fields equal every filter value."""
        return [
            record
            for record in self._iter_records()
            if all(record.get(k) == v for k, v in filters.items())
        ]

    def count(self) -> int:
        """Return the total number of records."""
        return sum(1 for _ in self._iter_records())

    def last_n(self, n: int) -> list[dict[str, object]]:
        """Return the ``n`` most recent records."""
        if n <= 0:
            return []
        return list(self._iter_records())[-n:]

    def _iter_records(self) -> Iterator[dict[str, object]]:
        if not self._log_path.exists():
            return
        with self._lock:
            with self._log_path.open("r", encoding="utf-8") as fh:
                lines = fh.readlines()
        for line in lines:
            line = line.strip()
            if not line:
                continue
            try:
                yield json.loads(line)
            except json.JSONDecodeError:
                continue  # Partial trailing write.

    @property
    def log_path(self) -> Path:
        """The filesystem path of the decision log."""
        return self._log_path

    @property
    def session_id(self) -> str:
        """The session identifier stamped on every record."""
        return self._session_id
