from decimal import Decimal

import pytest

from txledger.config.settings import InputConfig, LedgerConfig
from txledger.io.reader import (
    EventParseError,
    InputNotFoundError,
    iter_events,
    load_events,
    parse_row,
    validate_input,
)
from txledger.ledger import TransactionKind


def test_validate_input(write_csv) -> None:
    path = write_csv(["type,client,tx,amount"])
    assert validate_input(path) == path
    with pytest.raises(InputNotFoundError):
        validate_input(None)
    with pytest.raises(InputNotFoundError):
        validate_input("this is not a filepath at all!")
    with pytest.raises(InputNotFoundError):
        validate_input(path.parent)


def test_load_events_parses_rows(write_csv) -> None:
    path = write_csv(
        [
            "type, client, tx, amount",
            "deposit, 1, 1, 1.0",
            "deposit, 2, 2, 2.0",
            "withdrawal, 1, 4, 1.5",
            "dispute, 1, 1,",
            "resolve, 1, 1",
            "chargeback,2,2,",
        ]
    )
    events = load_events(path)
    assert [event.kind for event in events] == [
        TransactionKind.DEPOSIT,
        TransactionKind.DEPOSIT,
        TransactionKind.WITHDRAWAL,
        TransactionKind.DISPUTE,
        TransactionKind.RESOLVE,
        TransactionKind.CHARGEBACK,
    ]
    assert events[2].account_id == 1
    assert events[2].tx_id == 4
    assert events[2].amount == Decimal("1.5")
    assert str(events[2].amount) == "1.5000"
    assert events[3].amount == Decimal("0")
    assert all(event.sequence == 0 for event in events)


def test_amounts_are_rounded_to_four_places(write_csv) -> None:
    path = write_csv(
        [
            "type,client,tx,amount",
            "deposit,1,1,2.74275",
            "deposit,1,2,2.74285",
            "deposit,1,3,0.123456",
            "deposit,1,4,",
        ]
    )
    amounts = [str(event.amount) for event in load_events(path)]
    assert amounts == ["2.7428", "2.7428", "0.1235", "0.0000"]


def test_rounding_mode_is_configurable(write_csv) -> None:
    path = write_csv(["type,client,tx,amount", "deposit,1,1,2.74275"])
    events = load_events(path, ledger_config=LedgerConfig(rounding="ROUND_DOWN"))
    assert str(events[0].amount) == "2.7427"


def test_dispute_amount_column_is_ignored(write_csv) -> None:
    path = write_csv(["type,client,tx,amount", "dispute,1,1,not-a-number"])
    assert load_events(path)[0].amount == Decimal("0")


def test_custom_delimiter(write_csv) -> None:
    path = write_csv(["type;client;tx;amount", "deposit;3;7;4.2"])
    event = load_events(path, InputConfig(delimiter=";"))[0]
    assert (event.account_id, event.tx_id, event.amount) == (3, 7, Decimal("4.2"))


def test_type_is_case_insensitive(write_csv) -> None:
    path = write_csv(["Type,Client,Tx,Amount", "DEPOSIT,1,1,1"])
    assert load_events(path)[0].kind is TransactionKind.DEPOSIT


@pytest.mark.parametrize(
    "row, message",
    [
        ("transfer,1,1,1.0", "unknown transaction type"),
        ("deposit,x,1,1.0", "client is not an integer"),
        ("deposit,70000,1,1.0", "client out of range"),
        ("deposit,-1,1,1.0", "client out of range"),
        ("deposit,1,4294967296,1.0", "tx out of range"),
        ("deposit,1,,1.0", "missing tx"),
        ("deposit,1,1,abc", "amount is not a decimal"),
        ("withdrawal,1,1,NaN", "amount is not finite"),
        ("deposit,1,1,999999999999999999999999.9999", "amount exceeds"),
        ("withdrawal,1,1,-100000000000000000000", "amount exceeds"),
        ("deposit,1,1,99999999999999999999.99995", "amount exceeds"),
        ("deposit", "missing client"),
    ],
)
def test_malformed_rows_are_fatal(write_csv, row: str, message: str) -> None:
    path = write_csv(["type,client,tx,amount", "deposit,1,1,1.0", row])
    with pytest.raises(EventParseError, match=message) as excinfo:
        load_events(path)
    assert excinfo.value.line == 3


def test_largest_amount_is_accepted(write_csv) -> None:
    path = write_csv(["type,client,tx,amount", "deposit,1,1,99999999999999999999.9999"])
    assert str(load_events(path)[0].amount) == "99999999999999999999.9999"


def test_oversized_csv_field_is_fatal(write_csv) -> None:
    path = write_csv(["type,client,tx,amount", "deposit,1,1,1.0", "deposit,1,2," + "9" * 200_000])
    events = iter_events(path)
    assert next(events).tx_id == 1
    with pytest.raises(EventParseError, match="malformed csv") as excinfo:
        next(events)
    assert excinfo.value.line == 3


def test_missing_header_columns_are_fatal(write_csv) -> None:
    path = write_csv(["kind,client,amount", "deposit,1,1.0"])
    with pytest.raises(EventParseError, match="missing columns: type, tx"):
        load_events(path)


def test_iter_events_is_lazy(write_csv) -> None:
    path = write_csv(["type,client,tx,amount", "deposit,1,1,1.0", "bogus,1,1,1"])
    events = iter_events(path)
    first = next(events)
    assert first.kind is TransactionKind.DEPOSIT
    with pytest.raises(EventParseError):
        next(events)


def test_parse_row_defaults() -> None:
    event = parse_row({"type": "withdrawal", "client": "2", "tx": "3", "amount": None}, line=2)
    assert event.kind is TransactionKind.WITHDRAWAL
    assert event.amount == Decimal("0")
