"""Account table projection."""

from __future__ import annotations

import csv
from decimal import Decimal, localcontext
from typing import Iterable, TextIO

from txledger.config.settings import OutputConfig
from txledger.ledger.events import AMOUNT_SCALE, ledger_context, quantum
from txledger.ledger.state import AccountSnapshot

FIELDNAMES = ["client", "available", "held", "total", "locked"]


def format_amount(value: Decimal, scale: int = AMOUNT_SCALE) -> str:
    with localcontext(ledger_context()):
        return str(value.quantize(quantum(scale)))


def to_row(snapshot: AccountSnapshot, scale: int = AMOUNT_SCALE) -> dict[str, str | int]:
    return {
        "client": snapshot.account_id,
        "available": format_amount(snapshot.available, scale),
        "held": format_amount(snapshot.held, scale),
        "total": format_amount(snapshot.total, scale),
        "locked": "true" if snapshot.locked else "false",
    }


def write_accounts(
    snapshots: Iterable[AccountSnapshot],
    stream: TextIO,
    output_config: OutputConfig | None = None,
    scale: int = AMOUNT_SCALE,
) -> int:
    """Write one row per account and return the number of rows written."""
    output_config = output_config or OutputConfig()
    if output_config.sort_accounts:
        snapshots = sorted(snapshots, key=lambda snap: snap.account_id)
    writer = csv.DictWriter(
        stream,
        fieldnames=FIELDNAMES,
        delimiter=output_config.delimiter,
        lineterminator="\n",
    )
    writer.writeheader()
    rows = 0
    for snapshot in snapshots:
        writer.writerow(to_row(snapshot, scale))
        rows += 1
    return rows
