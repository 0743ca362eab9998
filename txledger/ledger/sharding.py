"""Account-sharded ledger store.

Accounts never interact, so the store can be split by ``account_id`` into
independent shards. Each shard owns a plain :class:`LedgerStore` and consumes
its own ordered queue, which keeps per-account ordering intact while shards
progress independently of each other.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Iterator
from itertools import chain

import structlog

from txledger.ledger.events import TransactionEvent
from txledger.ledger.state import AccountLedger, AccountSnapshot, Outcome
from txledger.ledger.store import LedgerStore, OutcomeHandler

log = structlog.get_logger(__name__)


class ShardedLedgerStore:
    """Route events to ``account_id % shard_count`` shards."""

    def __init__(self, shard_count: int = 1, queue_size: int = 1024) -> None:
        if shard_count < 1:
            raise ValueError(f"shard_count must be >= 1, got {shard_count}")
        if queue_size < 1:
            raise ValueError(f"queue_size must be >= 1, got {queue_size}")
        self._shards = [LedgerStore() for _ in range(shard_count)]
        self._queue_size = queue_size

    @property
    def shard_count(self) -> int:
        return len(self._shards)

    def shard_for(self, account_id: int) -> int:
        return account_id % len(self._shards)

    def shard(self, index: int) -> LedgerStore:
        return self._shards[index]

    def register(self, handler: OutcomeHandler) -> None:
        for shard in self._shards:
            shard.register(handler)

    def ingest(self, event: TransactionEvent) -> Outcome:
        return self._shards[self.shard_for(event.account_id)].ingest(event)

    def route(self, event: TransactionEvent) -> bool:
        return self.ingest(event).accepted

    def get(self, account_id: int) -> AccountLedger | None:
        return self._shards[self.shard_for(account_id)].get(account_id)

    def snapshot(self) -> list[AccountSnapshot]:
        return [snap for shard in self._shards for snap in shard.snapshot()]

    def __iter__(self) -> Iterator[AccountLedger]:
        return chain.from_iterable(self._shards)

    def __len__(self) -> int:
        return sum(len(shard) for shard in self._shards)

    async def run(self, events: Iterable[TransactionEvent]) -> int:
        """Feed a stream through one queue and one worker task per shard.

        Returns the number of events dispatched. A failure in the source or in a
        worker cancels the remaining workers and propagates.
        """
        queues: list[asyncio.Queue[TransactionEvent | None]] = [
            asyncio.Queue(maxsize=self._queue_size) for _ in self._shards
        ]
        workers = [
            asyncio.create_task(self._drain(index, queue))
            for index, queue in enumerate(queues)
        ]
        dispatched = 0
        try:
            for event in events:
                index = self.shard_for(event.account_id)
                await queues[index].put(event)
                dispatched += 1
            for queue in queues:
                await queue.put(None)
            await asyncio.gather(*workers)
        except BaseException:
            for worker in workers:
                worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)
            raise
        log.debug("shards_drained", shards=len(self._shards), events=dispatched)
        return dispatched

    async def _drain(self, index: int, queue: asyncio.Queue[TransactionEvent | None]) -> None:
        shard = self._shards[index]
        failure: Exception | None = None
        while True:
            event = await queue.get()
            try:
                if event is None:
                    break
                if failure is None:
                    try:
                        shard.ingest(event)
                    except Exception as exc:
                        # Keep consuming so the producer never blocks on a full queue.
                        failure = exc
                        log.exception("shard_worker_failed", shard=index, sequence=event.sequence)
            finally:
                queue.task_done()
        if failure is not None:
            raise failure
