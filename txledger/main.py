"""Command line entrypoint: transactions file in, account table out."""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO

import structlog

from txledger.config.settings import Settings, load_settings
from txledger.io import EventParseError, InputNotFoundError, iter_events, validate_input, write_accounts
from txledger.ledger import EventSequencer, Outcome, ShardedLedgerStore, TransactionEvent
from txledger.monitoring import Metrics, RejectionJournal, configure_logging

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RunSummary:
    events: int
    accepted: int
    rejected: int
    accounts: int


def process(
    input_path: str | Path,
    settings: Settings,
    stream: TextIO,
) -> RunSummary:
    """Apply every event in ``input_path`` and write the final balances to ``stream``.

    Nothing is written, to ``stream`` or to the rejection journal, unless the
    whole file was processed.
    """
    source = validate_input(input_path)
    store = ShardedLedgerStore(
        shard_count=settings.ledger.shard_count,
        queue_size=settings.ledger.shard_queue_size,
    )
    metrics = Metrics()
    store.register(metrics.handle_outcome)
    tally: Counter[str] = Counter()

    def _count(event: TransactionEvent, outcome: Outcome) -> None:
        tally["accepted" if outcome.accepted else "rejected"] += 1

    store.register(_count)
    journal = None
    if settings.storage.journal_path:
        journal = RejectionJournal(settings.storage.journal_path)
        store.register(journal.handle_outcome)

    sequencer = EventSequencer()
    events = sequencer.sequence(iter_events(source, settings.input, settings.ledger))
    if store.shard_count > 1:
        asyncio.run(store.run(events))
    else:
        for event in events:
            store.ingest(event)

    write_accounts(store.snapshot(), stream, settings.output, settings.ledger.amount_scale)
    if journal is not None:
        journal.flush()
    metrics.accounts_tracked.set(len(store))
    if settings.monitoring.metrics_textfile:
        metrics.write_textfile(settings.monitoring.metrics_textfile)

    summary = RunSummary(
        events=sequencer.last_sequence(),
        accepted=tally["accepted"],
        rejected=tally["rejected"],
        accounts=len(store),
    )
    log.info(
        "processing_complete",
        input=str(source),
        events=summary.events,
        accepted=summary.accepted,
        rejected=summary.rejected,
        accounts=summary.accounts,
    )
    return summary


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="txledger",
        description="Compute final account balances from a chronological transactions CSV.",
    )
    parser.add_argument(
        "transactions",
        help="CSV file containing a chronological list of client transactions",
    )
    parser.add_argument("--config", default=None, help="Path to txledger.yaml")
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override monitoring.log_level",
    )
    parser.add_argument(
        "--shards",
        type=int,
        default=None,
        help="Process accounts across N independent shards",
    )
    parser.add_argument(
        "--journal",
        default=None,
        help="Append rejected events to this JSONL file once the whole input has been processed",
    )
    parser.add_argument(
        "--no-sort",
        action="store_true",
        help="Emit accounts in ledger order instead of sorted by client id",
    )
    return parser


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    if args.log_level:
        settings.monitoring.log_level = args.log_level
    if args.shards is not None:
        if args.shards < 1:
            raise ValueError(f"--shards must be >= 1, got {args.shards}")
        settings.ledger.shard_count = args.shards
    if args.journal:
        settings.storage.journal_path = args.journal
    if args.no_sort:
        settings.output.sort_accounts = False
    return settings


def main(argv: list[str] | None = None, stream: TextIO | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = load_settings(args.config)
    try:
        apply_overrides(settings, args)
    except ValueError as exc:
        parser.error(str(exc))
    configure_logging(settings.monitoring.log_level, settings.storage.logs_path, settings.monitoring)

    try:
        process(args.transactions, settings, stream or sys.stdout)
    except (InputNotFoundError, EventParseError, UnicodeDecodeError, OSError) as exc:
        log.error("processing_failed", input=args.transactions, error=str(exc))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
