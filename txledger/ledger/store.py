"""Account ledger store that routes events to their owning ledger."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Callable

import structlog

from txledger.ledger.events import TransactionEvent
from txledger.ledger.state import AccountLedger, AccountSnapshot, LedgerStateMachine, Outcome

OutcomeHandler = Callable[[TransactionEvent, Outcome], None]


class LedgerStore:
    """Owns the ``account_id -> AccountLedger`` mapping for one writer."""

    def __init__(self, machine: LedgerStateMachine | None = None) -> None:
        self._ledgers: dict[int, AccountLedger] = {}
        self._machine = machine or LedgerStateMachine()
        self._handlers: list[OutcomeHandler] = []
        self._log = structlog.get_logger(__name__)

    def register(self, handler: OutcomeHandler) -> None:
        """Register a handler notified after every ingested event."""
        self._handlers.append(handler)

    def ingest(self, event: TransactionEvent) -> Outcome:
        """Apply one event to its account, creating the ledger on first sight."""
        ledger = self._ledgers.get(event.account_id)
        if ledger is None:
            ledger = AccountLedger(account_id=event.account_id)
            self._ledgers[event.account_id] = ledger
            self._log.debug("account_created", account_id=event.account_id)
        outcome = self._machine.apply(ledger, event)
        self._dispatch(event, outcome)
        return outcome

    def route(self, event: TransactionEvent) -> bool:
        """Apply one event and report whether it was accepted."""
        return self.ingest(event).accepted

    def _dispatch(self, event: TransactionEvent, outcome: Outcome) -> None:
        for handler in self._handlers:
            try:
                handler(event, outcome)
            except Exception:
                self._log.exception(
                    "outcome_handler_failed",
                    handler=getattr(handler, "__name__", repr(handler)),
                    account_id=event.account_id,
                    tx_id=event.tx_id,
                    sequence=event.sequence,
                )

    def get(self, account_id: int) -> AccountLedger | None:
        return self._ledgers.get(account_id)

    def snapshot(self) -> list[AccountSnapshot]:
        """Return the current balances of every account, in no particular order."""
        return [ledger.snapshot() for ledger in self._ledgers.values()]

    def __contains__(self, account_id: object) -> bool:
        return account_id in self._ledgers

    def __iter__(self) -> Iterator[AccountLedger]:
        return iter(self._ledgers.values())

    def __len__(self) -> int:
        return len(self._ledgers)
