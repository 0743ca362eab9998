"""Prometheus metrics definitions."""

from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Gauge, write_to_textfile

from txledger.ledger.events import TransactionEvent
from txledger.ledger.state import Outcome


class Metrics:
    """Count ingested events for a batch run.

    Each instance owns its registry, so several runs in one process do not
    collide on metric names.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry or CollectorRegistry()
        self.events_total = Counter(
            "txledger_events_total",
            "Events ingested by kind and outcome",
            ["kind", "outcome"],
            registry=self.registry,
        )
        self.rejections_total = Counter(
            "txledger_rejections_total",
            "Rejected events by reason",
            ["reason"],
            registry=self.registry,
        )
        self.last_event_sequence = Gauge(
            "txledger_last_event_sequence",
            "Last ingested event sequence number",
            registry=self.registry,
        )
        self.accounts_tracked = Gauge(
            "txledger_accounts_tracked",
            "Number of account ledgers",
            registry=self.registry,
        )

    def handle_outcome(self, event: TransactionEvent, outcome: Outcome) -> None:
        label = "accepted" if outcome.accepted else "rejected"
        self.events_total.labels(kind=event.kind.value, outcome=label).inc()
        if outcome.reason is not None:
            self.rejections_total.labels(reason=outcome.reason.value).inc()
        self.last_event_sequence.set(event.sequence)

    def sample(self, name: str, labels: dict[str, str] | None = None) -> float:
        value = self.registry.get_sample_value(name, labels or {})
        return value or 0.0

    def write_textfile(self, path: str) -> None:
        """Write the registry in the Prometheus text format for textfile collectors."""
        write_to_textfile(path, self.registry)
