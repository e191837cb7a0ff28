"""Shared pytest fixtures and configuration for all tests."""

import os

# Keep entry points from building the real application during collection
os.environ.setdefault("ENVIRONMENT", "test")

from collections.abc import Callable  # noqa: E402
from datetime import UTC, datetime  # noqa: E402
from decimal import Decimal  # noqa: E402
from typing import Any  # noqa: E402

import pytest  # noqa: E402

from dormdash_service.models.account_models import AccountRole, AuthSession  # noqa: E402
from dormdash_service.models.cart_models import CartItem  # noqa: E402
from dormdash_service.models.order_models import Order, OrderLineItem, OrderStatus  # noqa: E402
from dormdash_service.models.vendor_models import MenuItem, Vendor  # noqa: E402


@pytest.fixture
def mock_student_id() -> str:
    """Fixture providing a standard test student ID."""
    return "stu_123"


@pytest.fixture
def mock_vendor_id() -> str:
    """Fixture providing a standard test vendor ID."""
    return "ven_456"


@pytest.fixture
def student_session(mock_student_id: str) -> AuthSession:
    """Fixture providing a signed-in student session."""
    return AuthSession(
        session_token="student-token",
        uid=mock_student_id,
        email="student@campus.edu",
        role=AccountRole.STUDENT,
        id_token="id-token",
        created_at=datetime(2024, 3, 1, 9, 0, tzinfo=UTC),
    )


@pytest.fixture
def vendor_session(mock_vendor_id: str) -> AuthSession:
    """Fixture providing a signed-in vendor session."""
    return AuthSession(
        session_token="vendor-token",
        uid=mock_vendor_id,
        email="owner@canteen.com",
        role=AccountRole.VENDOR,
        id_token="id-token",
        created_at=datetime(2024, 3, 1, 9, 0, tzinfo=UTC),
    )


@pytest.fixture
def cart_items(mock_vendor_id: str) -> list[CartItem]:
    """Fixture providing two cart items from the same vendor."""
    return [
        CartItem(
            id="item_1",
            name="Paneer Roll",
            price=Decimal("100"),
            vendor_id=mock_vendor_id,
            vendor_name="Night Canteen",
            is_veg=True,
        ),
        CartItem(
            id="item_2",
            name="Cold Coffee",
            price=Decimal("50"),
            vendor_id=mock_vendor_id,
            vendor_name="Night Canteen",
            is_veg=True,
        ),
    ]


@pytest.fixture
def sample_vendor(mock_vendor_id: str) -> Vendor:
    """Fixture providing an active vendor with no ratings yet."""
    return Vendor(
        vendor_id=mock_vendor_id,
        email="owner@canteen.com",
        owner_name="Asha Rao",
        restaurant_name="Night Canteen",
        description="Rolls, maggi and shakes",
        category="Fast Food",
        location="Hostel 4",
    )


@pytest.fixture
def sample_menu_items(mock_vendor_id: str) -> list[MenuItem]:
    """Fixture providing a small menu."""
    return [
        MenuItem(item_id="item_1", vendor_id=mock_vendor_id, name="Paneer Roll", price=Decimal("100")),
        MenuItem(item_id="item_2", vendor_id=mock_vendor_id, name="Cold Coffee", price=Decimal("50")),
    ]


@pytest.fixture
def make_order(mock_student_id: str, mock_vendor_id: str) -> Callable[..., Order]:
    """Fixture providing a factory for orders with sensible defaults."""

    def factory(order_id: str = "ord_1", **overrides: Any) -> Order:
        data: dict[str, Any] = {
            "order_id": order_id,
            "student_id": mock_student_id,
            "vendor_id": mock_vendor_id,
            "vendor_name": "Night Canteen",
            "items": [
                OrderLineItem(item_id="item_1", name="Paneer Roll", quantity=2, price=Decimal("100"))
            ],
            "total_amount": Decimal("210"),
            "status": OrderStatus.RECEIVED,
            "order_number": 4821,
            "created_at": datetime(2024, 3, 1, 12, 0, tzinfo=UTC),
            "updated_at": datetime(2024, 3, 1, 12, 0, tzinfo=UTC),
        }
        data.update(overrides)
        return Order(**data)

    return factory
