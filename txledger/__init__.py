"""Transaction ledger: final account balances from a chronological event log."""

__version__ = "0.1.0"
