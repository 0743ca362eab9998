from decimal import ROUND_DOWN, Decimal

import pytest

from txledger.ledger.events import (
    TransactionEvent,
    TransactionKind,
    new_event,
    normalize_amount,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, "0.0000"),
        ("", "0.0000"),
        ("   ", "0.0000"),
        ("3", "3.0000"),
        (" 1.23456 ", "1.2346"),
        ("0.00005", "0.0000"),
        ("0.00015", "0.0002"),
        (Decimal("7.1"), "7.1000"),
        (2, "2.0000"),
    ],
)
def test_normalize_amount(raw, expected: str) -> None:
    assert str(normalize_amount(raw)) == expected


def test_normalize_amount_scale_and_rounding() -> None:
    assert str(normalize_amount("1.239", scale=2, rounding=ROUND_DOWN)) == "1.23"


def test_new_event_drops_amount_for_dispute_family() -> None:
    event = new_event("resolve", 1, 2, "5.0")
    assert event.kind is TransactionKind.RESOLVE
    assert event.amount == Decimal("0")
    assert not event.kind.is_posting
    assert new_event(TransactionKind.DEPOSIT, 1, 2, "5").kind.is_posting


def test_events_are_immutable() -> None:
    event = new_event(TransactionKind.DEPOSIT, 1, 2, "5")
    with pytest.raises(AttributeError):
        event.amount = Decimal("6")
    stamped = event.with_sequence(9)
    assert stamped.sequence == 9
    assert event.sequence == 0


def test_dict_round_trip_keeps_scale() -> None:
    event = new_event(TransactionKind.WITHDRAWAL, 3, 4, "1.5", sequence=2)
    data = event.to_dict()
    assert data["amount"] == "1.5000"
    assert TransactionEvent.from_dict(data) == event
    assert new_event(TransactionKind.DISPUTE, 3, 4).to_dict()["amount"] is None


def test_normalize_amount_keeps_all_digits_of_wide_values() -> None:
    assert str(normalize_amount("123456789012345678901234567890.12345")) == "123456789012345678901234567890.1234"
