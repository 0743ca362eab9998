"""Per-account ledger state and the transition rules applied to it."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, localcontext
from enum import Enum
from typing import Callable

import structlog

from txledger.ledger.events import ZERO, TransactionEvent, TransactionKind, ledger_context

log = structlog.get_logger(__name__)


class TxStage(str, Enum):
    """Lifecycle stage of a posted transaction."""

    POSTED = "posted"
    DISPUTED = "disputed"
    RESOLVED = "resolved"
    CHARGED_BACK = "charged_back"

    @property
    def is_final(self) -> bool:
        return self in (TxStage.RESOLVED, TxStage.CHARGED_BACK)


_NEXT_STAGES: dict[TxStage, frozenset[TxStage]] = {
    TxStage.POSTED: frozenset({TxStage.DISPUTED}),
    TxStage.DISPUTED: frozenset({TxStage.RESOLVED, TxStage.CHARGED_BACK}),
    TxStage.RESOLVED: frozenset(),
    TxStage.CHARGED_BACK: frozenset(),
}


class RejectReason(str, Enum):
    """Why an event was dropped instead of applied."""

    INSUFFICIENT_FUNDS = "insufficient_funds"
    DUPLICATE_TRANSACTION = "duplicate_transaction"
    ACCOUNT_LOCKED = "account_locked"
    UNKNOWN_TRANSACTION = "unknown_transaction"
    ALREADY_DISPUTED = "already_disputed"
    NOT_DISPUTED = "not_disputed"
    ALREADY_FINALIZED = "already_finalized"
    INCONSISTENT_HISTORY = "inconsistent_history"


@dataclass(frozen=True)
class Outcome:
    """Result of offering one event to a ledger.

    ``recorded`` is set when the event entered the transaction history, which
    also happens for a withdrawal rejected on insufficient funds.
    """

    accepted: bool
    reason: RejectReason | None = None
    recorded: bool = False

    @classmethod
    def rejected(cls, reason: RejectReason, recorded: bool = False) -> "Outcome":
        return cls(accepted=False, reason=reason, recorded=recorded)


ACCEPTED = Outcome(accepted=True, recorded=True)


@dataclass
class TxHistory:
    """Append-only record of every event accepted for one transaction id."""

    posted: TransactionEvent
    stage: TxStage = TxStage.POSTED
    events: tuple[TransactionEvent, ...] = ()

    def __post_init__(self) -> None:
        if not self.events:
            self.events = (self.posted,)

    def __len__(self) -> int:
        return len(self.events)

    def advance(self, event: TransactionEvent, stage: TxStage) -> None:
        if stage not in _NEXT_STAGES[self.stage]:
            raise ValueError(f"illegal transition {self.stage.value} -> {stage.value}")
        self.events = self.events + (event,)
        self.stage = stage


@dataclass(frozen=True)
class AccountSnapshot:
    account_id: int
    available: Decimal
    held: Decimal
    total: Decimal
    locked: bool


@dataclass
class AccountLedger:
    account_id: int
    available: Decimal = ZERO
    held: Decimal = ZERO
    locked: bool = False
    history: dict[int, TxHistory] = field(default_factory=dict)
    last_sequence: int = 0

    @property
    def total(self) -> Decimal:
        with localcontext(ledger_context(exact=True)):
            return self.available + self.held

    def snapshot(self) -> AccountSnapshot:
        return AccountSnapshot(
            account_id=self.account_id,
            available=self.available,
            held=self.held,
            total=self.total,
            locked=self.locked,
        )


Handler = Callable[[AccountLedger, TransactionEvent], Outcome]


class LedgerStateMachine:
    """Decides whether an event is valid for a ledger and applies it.

    Semantic rejections never raise. They are logged with enough context to
    audit and the event is dropped without touching balances.
    """

    def __init__(self) -> None:
        self._handlers: dict[TransactionKind, Handler] = {
            TransactionKind.DEPOSIT: self._handle_deposit,
            TransactionKind.WITHDRAWAL: self._handle_withdrawal,
            TransactionKind.DISPUTE: self._handle_dispute,
            TransactionKind.RESOLVE: self._handle_resolve,
            TransactionKind.CHARGEBACK: self._handle_chargeback,
        }

    @property
    def handled_kinds(self) -> frozenset[TransactionKind]:
        return frozenset(self._handlers)

    def apply(self, ledger: AccountLedger, event: TransactionEvent) -> Outcome:
        if event.account_id != ledger.account_id:
            raise ValueError(
                f"event for account {event.account_id} routed to ledger {ledger.account_id}"
            )
        handler = self._handlers.get(event.kind)
        if handler is None:
            raise AssertionError(f"no handler for transaction kind {event.kind!r}")
        with localcontext(ledger_context(exact=True)):
            outcome = handler(ledger, event)
        ledger.last_sequence = max(ledger.last_sequence, event.sequence)
        self._report(event, outcome)
        return outcome

    @staticmethod
    def _report(event: TransactionEvent, outcome: Outcome) -> None:
        context = {
            "kind": event.kind.value,
            "account_id": event.account_id,
            "tx_id": event.tx_id,
            "sequence": event.sequence,
        }
        if outcome.accepted:
            log.debug("transaction_applied", **context)
        elif outcome.reason is RejectReason.INCONSISTENT_HISTORY:
            log.error("transaction_inconsistent", reason=outcome.reason.value, **context)
        else:
            log.warning(
                "transaction_rejected",
                reason=outcome.reason.value if outcome.reason else None,
                recorded=outcome.recorded,
                **context,
            )

    def _handle_deposit(self, ledger: AccountLedger, event: TransactionEvent) -> Outcome:
        if event.tx_id in ledger.history:
            return Outcome.rejected(RejectReason.DUPLICATE_TRANSACTION)
        ledger.available += event.amount
        ledger.history[event.tx_id] = TxHistory(posted=event)
        return ACCEPTED

    def _handle_withdrawal(self, ledger: AccountLedger, event: TransactionEvent) -> Outcome:
        if ledger.locked:
            return Outcome.rejected(RejectReason.ACCOUNT_LOCKED)
        if event.tx_id in ledger.history:
            return Outcome.rejected(RejectReason.DUPLICATE_TRANSACTION)
        # Kept as a posted reference even when unfunded so it can be disputed later.
        ledger.history[event.tx_id] = TxHistory(posted=event)
        if event.amount <= ledger.available:
            ledger.available -= event.amount
            return ACCEPTED
        return Outcome.rejected(RejectReason.INSUFFICIENT_FUNDS, recorded=True)

    def _handle_dispute(self, ledger: AccountLedger, event: TransactionEvent) -> Outcome:
        if ledger.locked:
            return Outcome.rejected(RejectReason.ACCOUNT_LOCKED)
        entry = ledger.history.get(event.tx_id)
        if entry is None:
            return Outcome.rejected(RejectReason.UNKNOWN_TRANSACTION)
        if entry.stage is TxStage.DISPUTED:
            return Outcome.rejected(RejectReason.ALREADY_DISPUTED)
        if entry.stage.is_final:
            return Outcome.rejected(RejectReason.ALREADY_FINALIZED)

        prior = entry.posted
        if prior.kind is TransactionKind.WITHDRAWAL:
            # Funds already left the account; hold the amount at risk of reversal.
            ledger.held += prior.amount
        elif prior.kind is TransactionKind.DEPOSIT:
            ledger.available -= prior.amount
            ledger.held += prior.amount
        else:
            return Outcome.rejected(RejectReason.INCONSISTENT_HISTORY)
        entry.advance(event, TxStage.DISPUTED)
        return ACCEPTED

    def _handle_resolve(self, ledger: AccountLedger, event: TransactionEvent) -> Outcome:
        return self._settle(ledger, event, TxStage.RESOLVED)

    def _handle_chargeback(self, ledger: AccountLedger, event: TransactionEvent) -> Outcome:
        return self._settle(ledger, event, TxStage.CHARGED_BACK)

    def _settle(self, ledger: AccountLedger, event: TransactionEvent, stage: TxStage) -> Outcome:
        if ledger.locked:
            return Outcome.rejected(RejectReason.ACCOUNT_LOCKED)
        entry = ledger.history.get(event.tx_id)
        if entry is None:
            return Outcome.rejected(RejectReason.UNKNOWN_TRANSACTION)
        if entry.stage is TxStage.POSTED:
            return Outcome.rejected(RejectReason.NOT_DISPUTED)
        if entry.stage.is_final:
            return Outcome.rejected(RejectReason.ALREADY_FINALIZED)

        prior = entry.posted
        if not prior.kind.is_posting:
            return Outcome.rejected(RejectReason.INCONSISTENT_HISTORY)
        ledger.held -= prior.amount
        if stage is TxStage.RESOLVED:
            ledger.available += prior.amount
        else:
            ledger.locked = True
        entry.advance(event, stage)
        return ACCEPTED


_default_machine = LedgerStateMachine()


def apply_event(ledger: AccountLedger, event: TransactionEvent) -> Outcome:
    """Apply one event with the shared state machine."""
    return _default_machine.apply(ledger, event)
