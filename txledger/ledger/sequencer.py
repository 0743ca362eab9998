"""Arrival-order sequencing for transaction events."""

from __future__ import annotations

from typing import Iterable, Iterator

from txledger.ledger.events import TransactionEvent


class EventSequencer:
    """Stamp events with a monotonically increasing sequence number.

    Sequences live only for the duration of a run; nothing is persisted.
    """

    def __init__(self, start: int = 0) -> None:
        self._sequence = start

    def last_sequence(self) -> int:
        """Return the last sequence handed out."""
        return self._sequence

    def stamp(self, event: TransactionEvent) -> TransactionEvent:
        self._sequence += 1
        return event.with_sequence(self._sequence)

    def sequence(self, events: Iterable[TransactionEvent]) -> Iterator[TransactionEvent]:
        """Lazily stamp a stream of events in the order they arrive."""
        for event in events:
            yield self.stamp(event)
