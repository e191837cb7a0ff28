"""Custom metrics for the ordering service."""

from opentelemetry import metrics

# Get meter for ordering service
meter = metrics.get_meter("dormdash-svc")

orders_placed_counter = meter.create_counter(
    name="orders_placed_total",
    description="Total number of orders placed by vendor",
    unit="1",
)

order_transition_counter = meter.create_counter(
    name="order_status_transitions_total",
    description="Total number of order status changes by source and target status",
    unit="1",
)

order_items_counter = meter.create_counter(
    name="order_items_total",
    description="Total number of distinct items across placed orders",
    unit="1",
)

ratings_submitted_counter = meter.create_counter(
    name="ratings_submitted_total",
    description="Total number of accepted order ratings",
    unit="1",
)

# Optimistic transaction retries caused by concurrent writers
transaction_conflict_counter = meter.create_counter(
    name="transaction_conflicts_total",
    description="Total number of optimistic transaction conflicts by table",
    unit="1",
)

active_sessions = meter.create_up_down_counter(
    name="active_sessions",
    description="Current number of signed-in sessions",
    unit="1",
)

generation_response_time = meter.create_histogram(
    name="text_generation_response_time_seconds",
    description="Response time for text generation calls",
    unit="s",
)


def record_order_placed(vendor_id: str, item_count: int) -> None:
    """Record a placed order.

    Args:
        vendor_id: Vendor the order was placed with
        item_count: Number of items in the order
    """
    orders_placed_counter.add(1, {"vendor_id": vendor_id})
    order_items_counter.add(item_count, {"vendor_id": vendor_id})


def record_status_transition(from_status: str, to_status: str) -> None:
    """Record an order status change.

    Args:
        from_status: Status before the change
        to_status: Status after the change
    """
    order_transition_counter.add(1, {"from_status": from_status, "to_status": to_status})


def record_rating_submitted(rating: int) -> None:
    ratings_submitted_counter.add(1, {"rating": rating})


def record_transaction_conflict(table: str) -> None:
    """Record a conflicting concurrent write detected by a transaction.

    Args:
        table: Logical table the transaction ran against
    """
    transaction_conflict_counter.add(1, {"table": table})


def record_session_change(change: int) -> None:
    """Record sessions opening (positive) or closing (negative)."""
    active_sessions.add(change)


def record_generation_call(model: str, duration_seconds: float) -> None:
    """Record a text generation call.

    Args:
        model: Model that served the call
        duration_seconds: Duration in seconds
    """
    generation_response_time.record(duration_seconds, {"model": model})
