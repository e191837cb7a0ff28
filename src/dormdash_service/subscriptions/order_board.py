"""Reducers that keep classified order buckets in step with a subscription."""

import logging
from collections.abc import AsyncIterator, Callable
from typing import Generic, TypeVar

from dormdash_service.models.order_models import Order
from dormdash_service.subscriptions.snapshot_subscription import SnapshotSubscription

logger = logging.getLogger(__name__)

B = TypeVar("B")


class OrderBoard(Generic[B]):
    """Derived order buckets fed by a live order subscription.

    Each snapshot replaces the buckets wholesale; nothing is merged with the
    previous state.
    """

    def __init__(
        self,
        subscription: SnapshotSubscription[Order],
        classify: Callable[[list[Order]], B],
    ) -> None:
        """Initialize the board.

        Args:
            subscription: Source of full order snapshots
            classify: Pure function turning a snapshot into buckets
        """
        self.subscription = subscription
        self.classify = classify
        self.current: B | None = None
        self.snapshots_seen = 0

    def apply(self, snapshot: list[Order]) -> B:
        """Replace the current buckets with those derived from snapshot."""
        self.current = self.classify(snapshot)
        self.snapshots_seen += 1
        return self.current

    async def follow(self) -> AsyncIterator[B]:
        """Yield fresh buckets for every snapshot until the subscription closes."""
        async for snapshot in self.subscription:
            yield self.apply(snapshot)

        logger.debug(f"{self.subscription.name} finished after {self.snapshots_seen} snapshots")

    def close(self) -> None:
        self.subscription.close()
