"""Monitoring utilities."""

from txledger.monitoring.journal import RejectionJournal
from txledger.monitoring.logging import configure_logging
from txledger.monitoring.metrics import Metrics

__all__ = [
    "configure_logging",
    "Metrics",
    "RejectionJournal",
]
