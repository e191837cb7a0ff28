"""Order models and the order status state machine.

Orders are stored in DynamoDB with order_id as partition key and looked up by
vendor or student through the vendor_id-index and student_id-index GSIs.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class OrderStatus(str, Enum):
    """Lifecycle status of an order."""

    RECEIVED = "Received"
    PREPARING = "Preparing"
    READY = "Ready"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    REJECTED = "Rejected"

    @classmethod
    def parse(cls, value: Any) -> "OrderStatus":
        """Parse a stored status value.

        Unrecognized or missing values fall back to RECEIVED.
        """
        try:
            return cls(value)
        except ValueError:
            return cls.RECEIVED

    @property
    def is_active(self) -> bool:
        return self in ACTIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return not ALLOWED_TRANSITIONS[self]


ACTIVE_STATUSES = frozenset({OrderStatus.RECEIVED, OrderStatus.PREPARING, OrderStatus.READY})

ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.RECEIVED: frozenset(
        {OrderStatus.PREPARING, OrderStatus.CANCELLED, OrderStatus.REJECTED}
    ),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY}),
    OrderStatus.READY: frozenset({OrderStatus.COMPLETED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.REJECTED: frozenset(),
}

# Which role may move an order into each target status
VENDOR_TARGETS = frozenset({OrderStatus.PREPARING, OrderStatus.READY, OrderStatus.REJECTED})
STUDENT_TARGETS = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED})


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    """Check whether an order may move from current to target status."""
    return target in ALLOWED_TRANSITIONS[current]


def _parse_timestamp(value: Any) -> datetime | None:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


class OrderLineItem(BaseModel):
    """A single line of an order, copied from the cart at checkout."""

    item_id: str = Field(..., description="Menu item identifier")
    name: str = Field(..., description="Menu item name at time of order")
    quantity: int = Field(..., description="Ordered quantity", gt=0)
    price: Decimal = Field(..., description="Unit price at time of order", ge=0)

    def to_dynamodb_item(self) -> dict[str, Any]:
        return {
            "item_id": self.item_id,
            "name": self.name,
            "quantity": self.quantity,
            "price": self.price,
        }

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "OrderLineItem":
        return cls(
            item_id=item.get("item_id", ""),
            name=item.get("name", ""),
            quantity=int(item.get("quantity", 1)),
            price=Decimal(str(item.get("price", 0))),
        )


class Order(BaseModel):
    """An order placed by a student with a single vendor."""

    order_id: str = Field(..., description="Unique order identifier")
    student_id: str = Field(..., description="Student who placed the order")
    vendor_id: str = Field(..., description="Vendor fulfilling the order")
    vendor_name: str = Field(..., description="Vendor display name at time of order")
    vendor_image: str | None = Field(None, description="Vendor image URL at time of order")
    items: list[OrderLineItem] = Field(default_factory=list, description="Ordered lines")
    total_amount: Decimal = Field(..., description="Bill total including tax", ge=0)
    status: OrderStatus = Field(default=OrderStatus.RECEIVED, description="Lifecycle status")
    order_number: int = Field(..., description="Short number shown at pickup", ge=0)
    created_at: datetime | None = Field(None, description="Order creation timestamp")
    updated_at: datetime | None = Field(None, description="Last status change timestamp")
    rating: int | None = Field(None, description="Student rating, 1 to 5", ge=1, le=5)

    @field_validator("rating", mode="before")
    @classmethod
    def normalize_rating(cls, v: Any) -> Any:
        """Treat a stored zero rating as no rating."""
        if v in (0, None, ""):
            return None
        return int(v)

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert to DynamoDB item format.

        Returns:
            dict: DynamoDB-compatible representation
        """
        item: dict[str, Any] = {
            "order_id": self.order_id,
            "student_id": self.student_id,
            "vendor_id": self.vendor_id,
            "vendor_name": self.vendor_name,
            "items": [line.to_dynamodb_item() for line in self.items],
            "total_amount": self.total_amount,
            "status": self.status.value,
            "order_number": self.order_number,
        }

        if self.vendor_image:
            item["vendor_image"] = self.vendor_image

        if self.created_at is not None:
            item["created_at"] = self.created_at.isoformat()

        if self.updated_at is not None:
            item["updated_at"] = self.updated_at.isoformat()

        if self.rating is not None:
            item["rating"] = self.rating

        return item

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "Order":
        """Create Order from DynamoDB item.

        Missing attributes get the same defaults the apps display.

        Args:
            item: DynamoDB item dictionary

        Returns:
            Order: Parsed model instance
        """
        return cls(
            order_id=item["order_id"],
            student_id=item.get("student_id", ""),
            vendor_id=item.get("vendor_id", ""),
            vendor_name=item.get("vendor_name") or "Unknown Vendor",
            vendor_image=item.get("vendor_image"),
            items=[OrderLineItem.from_dynamodb_item(line) for line in item.get("items", [])],
            total_amount=Decimal(str(item.get("total_amount", 0))),
            status=OrderStatus.parse(item.get("status")),
            order_number=int(item.get("order_number", 0)),
            created_at=_parse_timestamp(item.get("created_at")),
            updated_at=_parse_timestamp(item.get("updated_at")),
            rating=item.get("rating"),
        )


class Review(BaseModel):
    """A rating left by a student for a completed order.

    Stored in DynamoDB with review_id as partition key.
    """

    review_id: str = Field(..., description="Unique review identifier")
    order_id: str = Field(..., description="Rated order")
    vendor_id: str = Field(..., description="Vendor that fulfilled the order")
    student_id: str = Field(..., description="Student who left the rating")
    rating: int = Field(..., description="Rating value", ge=1, le=5)
    created_at: datetime = Field(..., description="Review timestamp")

    def to_dynamodb_item(self) -> dict[str, Any]:
        return {
            "review_id": self.review_id,
            "order_id": self.order_id,
            "vendor_id": self.vendor_id,
            "student_id": self.student_id,
            "rating": self.rating,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "Review":
        return cls(
            review_id=item["review_id"],
            order_id=item["order_id"],
            vendor_id=item["vendor_id"],
            student_id=item["student_id"],
            rating=int(item["rating"]),
            created_at=datetime.fromisoformat(item["created_at"]),
        )
