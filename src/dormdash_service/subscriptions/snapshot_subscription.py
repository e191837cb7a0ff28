"""Live subscriptions over DynamoDB queries.

DynamoDB has no client-side snapshot listeners, so a subscription polls its
query and emits the full result set whenever it differs from the last one it
emitted. Consumers must treat every snapshot as the complete current state.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SnapshotSubscription(Generic[T]):
    """Lazy, restartable stream of full query snapshots.

    Iterating starts polling; each new iteration starts again from a fresh
    first snapshot. close() ends every running iteration at its next
    suspension point and must be called when the consumer goes away.
    """

    def __init__(
        self,
        fetch: Callable[[], list[T] | None],
        poll_interval_seconds: float = 2.0,
        max_snapshots: int | None = None,
        name: str = "subscription",
    ) -> None:
        """Initialize the subscription.

        Args:
            fetch: Blocking query returning the full current result set, or None on failure
            poll_interval_seconds: Delay between polls
            max_snapshots: Stop after this many snapshots (None for unbounded)
            name: Label used in log messages
        """
        self.fetch = fetch
        self.poll_interval_seconds = poll_interval_seconds
        self.max_snapshots = max_snapshots
        self.name = name
        self._closed = asyncio.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def close(self) -> None:
        if not self._closed.is_set():
            logger.debug(f"Closing {self.name}")
            self._closed.set()

    async def __aenter__(self) -> "SnapshotSubscription[T]":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()

    def __aiter__(self) -> AsyncIterator[list[T]]:
        return self._snapshots()

    async def _snapshots(self) -> AsyncIterator[list[T]]:
        previous: list[T] | None = None
        delivered = 0

        while not self.closed:
            # The query is blocking boto3 I/O, keep it off the event loop
            snapshot = await asyncio.to_thread(self.fetch)

            if self.closed:
                return

            if snapshot is None:
                # A failed fetch is not an empty result; keep the last snapshot and poll again
                logger.warning(f"Fetch failed for {self.name}, keeping last snapshot")

            elif snapshot != previous:
                previous = snapshot
                delivered += 1
                yield snapshot

                if self.max_snapshots is not None and delivered >= self.max_snapshots:
                    return

            try:
                await asyncio.wait_for(self._closed.wait(), timeout=self.poll_interval_seconds)
            except asyncio.TimeoutError:
                continue
