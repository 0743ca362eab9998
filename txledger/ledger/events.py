"""Transaction event definitions and amount helpers."""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import (
    ROUND_HALF_EVEN,
    Context,
    Decimal,
    DivisionByZero,
    Inexact,
    InvalidOperation,
    Overflow,
    localcontext,
)
from enum import Enum
from typing import Any

AMOUNT_SCALE = 4
# Wide enough that sums of capped amounts never round.
DECIMAL_PRECISION = 60
MAX_AMOUNT = Decimal(10) ** 20


def ledger_context(exact: bool = False) -> Context:
    """Decimal context for ledger amounts.

    With ``exact`` set, any rounding raises ``decimal.Inexact`` instead of
    silently dropping digits.
    """
    traps = [InvalidOperation, DivisionByZero, Overflow]
    if exact:
        traps.append(Inexact)
    return Context(prec=DECIMAL_PRECISION, rounding=ROUND_HALF_EVEN, traps=traps)


def quantum(scale: int = AMOUNT_SCALE) -> Decimal:
    """Return the smallest representable step for the given scale."""
    return Decimal(1).scaleb(-scale)


ZERO = Decimal(0).quantize(quantum())


def normalize_amount(
    value: Decimal | str | int | None,
    scale: int = AMOUNT_SCALE,
    rounding: str = ROUND_HALF_EVEN,
) -> Decimal:
    """Round an amount to a fixed number of fractional digits.

    Absent or blank values normalize to zero.
    """
    if value is None:
        return Decimal(0).quantize(quantum(scale))
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return Decimal(0).quantize(quantum(scale))
    with localcontext(ledger_context()):
        return Decimal(value).quantize(quantum(scale), rounding=rounding)


class TransactionKind(str, Enum):
    """All supported transaction kinds."""

    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    DISPUTE = "dispute"
    RESOLVE = "resolve"
    CHARGEBACK = "chargeback"

    @property
    def is_posting(self) -> bool:
        return self in POSTING_KINDS


POSTING_KINDS = frozenset({TransactionKind.DEPOSIT, TransactionKind.WITHDRAWAL})


@dataclass(frozen=True)
class TransactionEvent:
    """Immutable transaction event, one per input row."""

    kind: TransactionKind
    account_id: int
    tx_id: int
    amount: Decimal = ZERO
    sequence: int = 0

    def with_sequence(self, sequence: int) -> "TransactionEvent":
        return replace(self, sequence=sequence)

    def to_dict(self) -> dict[str, Any]:
        """Serialize event to a JSON-compatible dict."""
        return {
            "kind": self.kind.value,
            "account_id": self.account_id,
            "tx_id": self.tx_id,
            "amount": str(self.amount) if self.kind.is_posting else None,
            "sequence": self.sequence,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TransactionEvent":
        """Deserialize event from a dict."""
        return cls(
            kind=TransactionKind(data["kind"]),
            account_id=int(data["account_id"]),
            tx_id=int(data["tx_id"]),
            amount=normalize_amount(data.get("amount")),
            sequence=int(data.get("sequence", 0)),
        )


def new_event(
    kind: TransactionKind | str,
    account_id: int,
    tx_id: int,
    amount: Decimal | str | int | None = None,
    sequence: int = 0,
) -> TransactionEvent:
    """Create an event with its amount normalized to the ledger scale."""
    kind = TransactionKind(kind)
    return TransactionEvent(
        kind=kind,
        account_id=account_id,
        tx_id=tx_id,
        amount=normalize_amount(amount) if kind.is_posting else ZERO,
        sequence=sequence,
    )
