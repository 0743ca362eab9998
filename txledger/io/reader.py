"""Delimited-file event source.

Turns rows shaped like ``type,client,tx,amount`` into validated
:class:`TransactionEvent` values. Anything that cannot be parsed is fatal for
the run: the ledger core only ever sees well-formed events.
"""

from __future__ import annotations

import csv
from collections.abc import Iterator
from decimal import Decimal, InvalidOperation
from pathlib import Path

from txledger.config.settings import InputConfig, LedgerConfig
from txledger.ledger.events import MAX_AMOUNT, TransactionEvent, TransactionKind, normalize_amount

REQUIRED_COLUMNS = ("type", "client", "tx")
MAX_ACCOUNT_ID = 2**16 - 1
MAX_TX_ID = 2**32 - 1


class InputNotFoundError(FileNotFoundError):
    """Raised when the transaction file does not exist."""


class EventParseError(ValueError):
    """Raised for a row that cannot be turned into an event."""

    def __init__(self, line: int, message: str) -> None:
        super().__init__(f"line {line}: {message}")
        self.line = line


def validate_input(path: str | Path | None) -> Path:
    """Return the input path if it points at an existing file."""
    if path is None or str(path) == "":
        raise InputNotFoundError("Input must be a path to a file that exists on the filesystem.")
    candidate = Path(path)
    if not candidate.is_file():
        raise InputNotFoundError(f"Input file not found: {candidate}")
    return candidate


def _parse_id(raw: str | None, column: str, upper: int, line: int) -> int:
    if raw is None or not raw.strip():
        raise EventParseError(line, f"missing {column}")
    try:
        value = int(raw.strip())
    except ValueError:
        raise EventParseError(line, f"{column} is not an integer: {raw!r}") from None
    if not 0 <= value <= upper:
        raise EventParseError(line, f"{column} out of range: {value}")
    return value


def _parse_amount(raw: str | None, line: int, scale: int, rounding: str) -> Decimal:
    text = (raw or "").strip()
    if not text:
        return normalize_amount(None, scale=scale)
    try:
        value = Decimal(text)
    except InvalidOperation:
        raise EventParseError(line, f"amount is not a decimal: {text[:40]!r}") from None
    if not value.is_finite():
        raise EventParseError(line, f"amount is not finite: {text!r}")
    if value.copy_abs() >= MAX_AMOUNT:
        raise EventParseError(line, f"amount exceeds {MAX_AMOUNT:,}: {text[:40]!r}")
    amount = normalize_amount(value, scale=scale, rounding=rounding)
    if amount.copy_abs() >= MAX_AMOUNT:
        raise EventParseError(line, f"amount exceeds {MAX_AMOUNT:,}: {text[:40]!r}")
    return amount


def parse_row(
    row: dict[str | None, str | None],
    line: int,
    ledger_config: LedgerConfig | None = None,
) -> TransactionEvent:
    """Parse one CSV record. Amounts of dispute-family rows are ignored."""
    ledger_config = ledger_config or LedgerConfig()
    raw_kind = (row.get("type") or "").strip().lower()
    try:
        kind = TransactionKind(raw_kind)
    except ValueError:
        raise EventParseError(line, f"unknown transaction type: {raw_kind!r}") from None
    account_id = _parse_id(row.get("client"), "client", MAX_ACCOUNT_ID, line)
    tx_id = _parse_id(row.get("tx"), "tx", MAX_TX_ID, line)
    amount = normalize_amount(None, scale=ledger_config.amount_scale)
    if kind.is_posting:
        amount = _parse_amount(
            row.get("amount"), line, ledger_config.amount_scale, ledger_config.rounding
        )
    return TransactionEvent(kind=kind, account_id=account_id, tx_id=tx_id, amount=amount)


def iter_events(
    path: str | Path,
    input_config: InputConfig | None = None,
    ledger_config: LedgerConfig | None = None,
) -> Iterator[TransactionEvent]:
    """Stream events from a transaction file in file order."""
    input_config = input_config or InputConfig()
    source = validate_input(path)
    with open(source, newline="", encoding=input_config.encoding) as handle:
        reader = csv.DictReader(
            handle,
            delimiter=input_config.delimiter,
            skipinitialspace=input_config.trim_whitespace,
        )
        try:
            fieldnames = [name.strip().lower() for name in reader.fieldnames or []]
            missing = [column for column in REQUIRED_COLUMNS if column not in fieldnames]
            if missing:
                raise EventParseError(1, f"missing columns: {', '.join(missing)}")
            reader.fieldnames = fieldnames
            for row in reader:
                yield parse_row(row, reader.line_num, ledger_config)
        except csv.Error as exc:
            raise EventParseError(max(reader.line_num, 1), f"malformed csv: {exc}") from exc


def load_events(
    path: str | Path,
    input_config: InputConfig | None = None,
    ledger_config: LedgerConfig | None = None,
) -> list[TransactionEvent]:
    """Load all events into memory."""
    return list(iter_events(path, input_config, ledger_config))
