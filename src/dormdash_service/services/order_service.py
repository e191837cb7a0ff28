"""Order service for checkout, order tracking and status changes."""

import logging
import random
import uuid
from datetime import UTC, datetime

from dormdash_service.models.account_models import AccountRole, AuthSession
from dormdash_service.models.order_models import (
    STUDENT_TARGETS,
    VENDOR_TARGETS,
    Order,
    OrderLineItem,
    OrderStatus,
    can_transition,
)
from dormdash_service.models.result_models import ErrorKind, ServiceResult
from dormdash_service.observability import traced
from dormdash_service.observability.metrics import record_order_placed, record_status_transition
from dormdash_service.repositories.order_repositories import OrderRepository
from dormdash_service.services.order_classifier import (
    StudentOrderBuckets,
    VendorOrderBuckets,
    classify_student_orders,
    classify_vendor_orders,
)
from dormdash_service.session.app_context import AppContext
from dormdash_service.subscriptions.order_board import OrderBoard
from dormdash_service.subscriptions.snapshot_subscription import SnapshotSubscription

logger = logging.getLogger(__name__)


def generate_order_number() -> int:
    """Random 4-digit number shown to the student at pickup."""
    return random.randint(1000, 9999)


class OrderService:
    """Service for placing orders and moving them through their lifecycle.

    Status changes are validated against the order state machine and the
    caller's role before being written, and the write itself only applies if
    the order still has the status the change was validated against.
    """

    def __init__(self, order_repository: OrderRepository) -> None:
        """Initialize the OrderService.

        Args:
            order_repository: Repository for order records
        """
        self.order_repository = order_repository

    @traced("place_order")
    async def place_order(self, context: AppContext) -> ServiceResult[Order]:
        """Check out the session's cart as a new order.

        Args:
            context: Context of the signed-in student

        Returns:
            ServiceResult with the saved order
        """
        cart = context.cart

        if context.session.role != AccountRole.STUDENT:
            return ServiceResult.fail(ErrorKind.AUTHORIZATION, "Please login to place an order.")

        if cart.is_empty():
            return ServiceResult.fail(ErrorKind.VALIDATION, "Please add items to your cart.")

        if not cart.is_single_vendor():
            logger.warning(
                f"Cart of {context.session.uid} mixes vendors, ordering from {cart.vendor_id}"
            )

        now = datetime.now(UTC)
        order = Order(
            order_id=f"ord_{uuid.uuid4().hex[:16]}",
            student_id=context.session.uid,
            vendor_id=cart.vendor_id,
            vendor_name=cart.vendor_name,
            items=[
                OrderLineItem(
                    item_id=item.id, name=item.name, quantity=item.quantity, price=item.price
                )
                for item in cart.items
            ],
            total_amount=cart.grand_total(),
            status=OrderStatus.RECEIVED,
            order_number=generate_order_number(),
            created_at=now,
            updated_at=now,
        )

        if not self.order_repository.save_order(order):
            return ServiceResult.fail(ErrorKind.REMOTE, "Failed to place order. Please try again.")

        cart.clear()
        record_order_placed(order.vendor_id, len(order.items))
        logger.info(f"Order {order.order_id} placed with vendor {order.vendor_id}")

        return ServiceResult.ok(order)

    async def get_student_orders(self, student_id: str) -> ServiceResult[StudentOrderBuckets]:
        """Fetch and classify a student's orders."""
        orders = self.order_repository.list_orders_for_student(student_id)
        if orders is None:
            return ServiceResult.fail(ErrorKind.REMOTE, "Failed to load your orders.")
        return ServiceResult.ok(classify_student_orders(orders))

    async def get_vendor_orders(self, vendor_id: str) -> ServiceResult[VendorOrderBuckets]:
        """Fetch and classify a vendor's orders."""
        orders = self.order_repository.list_orders_for_vendor(vendor_id)
        if orders is None:
            return ServiceResult.fail(ErrorKind.REMOTE, "Failed to load orders.")
        return ServiceResult.ok(classify_vendor_orders(orders))

    def subscribe_student_orders(
        self,
        student_id: str,
        poll_interval_seconds: float = 2.0,
        max_snapshots: int | None = None,
    ) -> OrderBoard[StudentOrderBuckets]:
        """Live student order buckets, refreshed from full order snapshots.

        The caller owns the returned board and must close it.
        """
        subscription = SnapshotSubscription(
            lambda: self.order_repository.list_orders_for_student(student_id),
            poll_interval_seconds=poll_interval_seconds,
            max_snapshots=max_snapshots,
            name=f"student-orders:{student_id}",
        )
        return OrderBoard(subscription, classify_student_orders)

    def subscribe_vendor_orders(
        self,
        vendor_id: str,
        poll_interval_seconds: float = 2.0,
        max_snapshots: int | None = None,
    ) -> OrderBoard[VendorOrderBuckets]:
        """Live vendor dashboard buckets, refreshed from full order snapshots.

        The caller owns the returned board and must close it.
        """
        subscription = SnapshotSubscription(
            lambda: self.order_repository.list_orders_for_vendor(vendor_id),
            poll_interval_seconds=poll_interval_seconds,
            max_snapshots=max_snapshots,
            name=f"vendor-orders:{vendor_id}",
        )
        return OrderBoard(subscription, classify_vendor_orders)

    async def count_student_orders(self, student_id: str) -> ServiceResult[int]:
        count = self.order_repository.count_orders_for_student(student_id)
        if count is None:
            return ServiceResult.fail(ErrorKind.REMOTE, "Failed to load order count.")
        return ServiceResult.ok(count)

    @traced("transition_order")
    async def transition(
        self, session: AuthSession, order_id: str, target: OrderStatus
    ) -> ServiceResult[Order]:
        """Move an order to a new status on behalf of the signed-in user.

        Vendors may accept, reject and mark ready their own orders; students
        may cancel and confirm pickup of their own orders.

        Args:
            session: Session of the acting user
            order_id: Order to change
            target: Requested status

        Returns:
            ServiceResult with the updated order
        """
        order = self.order_repository.get_order(order_id)
        if order is None:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, f"Order {order_id} not found")

        if session.role == AccountRole.VENDOR:
            allowed = target in VENDOR_TARGETS and order.vendor_id == session.uid
        else:
            allowed = target in STUDENT_TARGETS and order.student_id == session.uid

        if not allowed:
            return ServiceResult.fail(
                ErrorKind.AUTHORIZATION, "You are not allowed to change this order."
            )

        if not can_transition(order.status, target):
            return ServiceResult.fail(
                ErrorKind.VALIDATION,
                f"Cannot move order from {order.status.value} to {target.value}.",
            )

        now = datetime.now(UTC)
        if not self.order_repository.update_status(order_id, order.status, target, now):
            latest = self.order_repository.get_order(order_id)
            if latest is not None and latest.status != order.status:
                return ServiceResult.fail(
                    ErrorKind.CONFLICT,
                    f"Order is now {latest.status.value}. Please refresh and try again.",
                )
            return ServiceResult.fail(ErrorKind.REMOTE, "Failed to update order status")

        record_status_transition(order.status.value, target.value)
        logger.info(f"Order {order_id} moved from {order.status.value} to {target.value}")

        return ServiceResult.ok(order.model_copy(update={"status": target, "updated_at": now}))

    async def accept_order(self, session: AuthSession, order_id: str) -> ServiceResult[Order]:
        return await self.transition(session, order_id, OrderStatus.PREPARING)

    async def reject_order(self, session: AuthSession, order_id: str) -> ServiceResult[Order]:
        return await self.transition(session, order_id, OrderStatus.REJECTED)

    async def mark_ready(self, session: AuthSession, order_id: str) -> ServiceResult[Order]:
        return await self.transition(session, order_id, OrderStatus.READY)

    async def confirm_pickup(self, session: AuthSession, order_id: str) -> ServiceResult[Order]:
        return await self.transition(session, order_id, OrderStatus.COMPLETED)

    async def cancel_order(self, session: AuthSession, order_id: str) -> ServiceResult[Order]:
        return await self.transition(session, order_id, OrderStatus.CANCELLED)
