"""Append-only audit journal of rejected transactions."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

import orjson

from txledger.ledger.events import TransactionEvent
from txledger.ledger.state import Outcome


class RejectionJournal:
    """Collect rejected events and append them as JSON lines on ``flush``.

    Entries stay in memory until ``flush`` is called, so a run that fails
    part way through leaves the journal file untouched.
    """

    def __init__(self, journal_path: str) -> None:
        self.journal_path = Path(journal_path)
        self._pending: list[dict] = []
        self._written = 0

    @property
    def pending(self) -> int:
        return len(self._pending)

    @property
    def written(self) -> int:
        return self._written

    def handle_outcome(self, event: TransactionEvent, outcome: Outcome) -> None:
        if outcome.accepted:
            return
        self._pending.append(
            {
                "event": event.to_dict(),
                "reason": outcome.reason.value if outcome.reason else None,
                "recorded": outcome.recorded,
            }
        )

    def flush(self) -> int:
        """Append pending entries to the journal file and return how many were written."""
        if not self._pending:
            return 0
        self.journal_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.journal_path, "ab") as handle:
            for record in self._pending:
                handle.write(orjson.dumps(record) + b"\n")
        flushed = len(self._pending)
        self._written += flushed
        self._pending.clear()
        return flushed

    def iter_records(self) -> Iterable[dict]:
        """Iterate all journal records."""
        if not self.journal_path.exists():
            return iter(())

        def _iter() -> Iterable[dict]:
            with open(self.journal_path, "rb") as handle:
                for line in handle:
                    if not line.strip():
                        continue
                    yield orjson.loads(line)

        return _iter()
