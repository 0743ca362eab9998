"""Account ledger core: events, state machine and stores."""

from txledger.ledger.events import TransactionEvent, TransactionKind, new_event, normalize_amount
from txledger.ledger.sequencer import EventSequencer
from txledger.ledger.sharding import ShardedLedgerStore
from txledger.ledger.state import (
    AccountLedger,
    AccountSnapshot,
    LedgerStateMachine,
    Outcome,
    RejectReason,
    TxHistory,
    TxStage,
    apply_event,
)
from txledger.ledger.store import LedgerStore

__all__ = [
    "AccountLedger",
    "AccountSnapshot",
    "EventSequencer",
    "LedgerStateMachine",
    "LedgerStore",
    "Outcome",
    "RejectReason",
    "ShardedLedgerStore",
    "TransactionEvent",
    "TransactionKind",
    "TxHistory",
    "TxStage",
    "apply_event",
    "new_event",
    "normalize_amount",
]
