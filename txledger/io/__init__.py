"""Event source and account table adapters."""

from txledger.io.reader import (
    EventParseError,
    InputNotFoundError,
    iter_events,
    load_events,
    validate_input,
)
from txledger.io.writer import write_accounts

__all__ = [
    "EventParseError",
    "InputNotFoundError",
    "iter_events",
    "load_events",
    "validate_input",
    "write_accounts",
]
