import csv
import io
from decimal import Decimal

from txledger.config.settings import OutputConfig
from txledger.io.writer import FIELDNAMES, format_amount, write_accounts
from txledger.ledger import AccountSnapshot


def _snap(account_id: int, available: str, held: str, locked: bool = False) -> AccountSnapshot:
    available_d, held_d = Decimal(available), Decimal(held)
    return AccountSnapshot(
        account_id=account_id,
        available=available_d,
        held=held_d,
        total=available_d + held_d,
        locked=locked,
    )


def test_format_amount_pads_to_scale() -> None:
    assert format_amount(Decimal("2")) == "2.0000"
    assert format_amount(Decimal("-10.5")) == "-10.5000"
    assert format_amount(Decimal("1.5"), scale=2) == "1.50"


def test_format_amount_beyond_default_precision() -> None:
    assert format_amount(Decimal("1000000000000000000000005")) == "1000000000000000000000005.0000"


def test_write_accounts_sorted_by_client() -> None:
    stream = io.StringIO()
    rows = write_accounts([_snap(2, "5", "0"), _snap(1, "1.5", "0.25", locked=True)], stream)
    assert rows == 2
    assert stream.getvalue().splitlines() == [
        "client,available,held,total,locked",
        "1,1.5000,0.2500,1.7500,true",
        "2,5.0000,0.0000,5.0000,false",
    ]


def test_write_accounts_unsorted_keeps_input_order() -> None:
    stream = io.StringIO()
    write_accounts(
        [_snap(2, "5", "0"), _snap(1, "1", "0")],
        stream,
        OutputConfig(sort_accounts=False),
    )
    parsed = list(csv.DictReader(io.StringIO(stream.getvalue())))
    assert [row["client"] for row in parsed] == ["2", "1"]
    assert list(parsed[0]) == FIELDNAMES


def test_write_accounts_empty_still_has_header() -> None:
    stream = io.StringIO()
    assert write_accounts([], stream) == 0
    assert stream.getvalue() == "client,available,held,total,locked\n"
