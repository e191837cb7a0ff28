"""Partition order snapshots into display buckets.

Both functions are pure: they hold no state and produce the same buckets in
the same order for the same set of orders, whatever order the input is in.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime

from dormdash_service.models.order_models import Order, OrderStatus


@dataclass
class StudentOrderBuckets:
    """Orders as shown in the student app.

    Attributes:
        active: Received, Preparing and Ready orders
        past: Completed, Cancelled and Rejected orders
    """

    active: list[Order] = field(default_factory=list)
    past: list[Order] = field(default_factory=list)


@dataclass
class VendorOrderBuckets:
    """Orders as shown on the vendor dashboard.

    Attributes:
        received: New orders awaiting accept or reject
        preparing: Accepted orders being cooked
        ready: Orders waiting for pickup
        history: Completed, Cancelled and Rejected orders
    """

    received: list[Order] = field(default_factory=list)
    preparing: list[Order] = field(default_factory=list)
    ready: list[Order] = field(default_factory=list)
    history: list[Order] = field(default_factory=list)


def epoch_seconds(timestamp: datetime | None) -> float:
    """Numeric sort value of a timestamp; missing timestamps sort as 0."""
    return timestamp.timestamp() if timestamp is not None else 0.0


def _newest_first(orders: list[Order], timestamp: Callable[[Order], datetime | None]) -> list[Order]:
    # Order id breaks ties so equal timestamps still sort deterministically
    return sorted(orders, key=lambda o: (-epoch_seconds(timestamp(o)), o.order_id))


def _by_created(order: Order) -> datetime | None:
    return order.created_at


def _by_updated(order: Order) -> datetime | None:
    return order.updated_at


def classify_student_orders(orders: Iterable[Order]) -> StudentOrderBuckets:
    """Split a student's orders into active and past, newest first by creation time."""
    active: list[Order] = []
    past: list[Order] = []

    for order in orders:
        if order.status.is_active:
            active.append(order)
        else:
            past.append(order)

    return StudentOrderBuckets(
        active=_newest_first(active, _by_created),
        past=_newest_first(past, _by_created),
    )


def classify_vendor_orders(orders: Iterable[Order]) -> VendorOrderBuckets:
    """Split a vendor's orders by status.

    Active buckets are sorted newest first by creation time, history newest
    first by last update.
    """
    buckets: dict[OrderStatus, list[Order]] = {
        OrderStatus.RECEIVED: [],
        OrderStatus.PREPARING: [],
        OrderStatus.READY: [],
    }
    history: list[Order] = []

    for order in orders:
        if order.status in buckets:
            buckets[order.status].append(order)
        else:
            history.append(order)

    return VendorOrderBuckets(
        received=_newest_first(buckets[OrderStatus.RECEIVED], _by_created),
        preparing=_newest_first(buckets[OrderStatus.PREPARING], _by_created),
        ready=_newest_first(buckets[OrderStatus.READY], _by_created),
        history=_newest_first(history, _by_updated),
    )
