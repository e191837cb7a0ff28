"""Vendor service for vendor browsing, dashboard settings, menu management and analytics."""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from dormdash_service.models.cart_models import CartItem
from dormdash_service.models.order_models import Order, OrderStatus
from dormdash_service.models.result_models import ErrorKind, ServiceResult
from dormdash_service.models.vendor_models import MenuItem, Vendor
from dormdash_service.observability import traced
from dormdash_service.repositories.order_repositories import OrderRepository
from dormdash_service.repositories.vendor_repositories import MenuItemRepository, VendorRepository
from dormdash_service.services.order_classifier import epoch_seconds
from dormdash_service.services.rating_service import round_rating

logger = logging.getLogger(__name__)

ALL_CATEGORIES = "All"


@dataclass
class VendorMenu:
    """A vendor together with its menu."""

    vendor: Vendor
    items: list[MenuItem] = field(default_factory=list)


@dataclass
class VendorAnalytics:
    """Rating and revenue summary shown on the vendor analytics page.

    Attributes:
        rated_orders: Completed orders that carry a rating, newest first
        average_rating: Mean of those ratings, rounded to one decimal
        total_ratings: Number of rated orders
        revenue_today: Sum of completed orders created since midnight of now
    """

    rated_orders: list[Order]
    average_rating: Decimal
    total_ratings: int
    revenue_today: Decimal


def matches_browse_filter(vendor: Vendor, category: str | None, search: str | None) -> bool:
    """Check a vendor against the student home-screen filters.

    Category matches the vendor category or appears in its description;
    search matches the restaurant name or the description. Both are
    case-insensitive.
    """
    if category and category != ALL_CATEGORIES:
        needle = category.lower()
        if needle not in vendor.category.lower() and needle not in vendor.description.lower():
            return False

    if search:
        needle = search.strip().lower()
        if needle not in vendor.restaurant_name.lower() and needle not in vendor.description.lower():
            return False

    return True


class VendorService:
    """Service for vendor-facing and vendor-browsing operations."""

    def __init__(
        self,
        vendor_repository: VendorRepository,
        menu_item_repository: MenuItemRepository,
        order_repository: OrderRepository,
    ) -> None:
        """Initialize the VendorService.

        Args:
            vendor_repository: Repository for vendor profiles
            menu_item_repository: Repository for menu items
            order_repository: Repository for orders (analytics)
        """
        self.vendor_repository = vendor_repository
        self.menu_item_repository = menu_item_repository
        self.order_repository = order_repository

    async def list_active_vendors(
        self, category: str | None = None, search: str | None = None
    ) -> list[Vendor]:
        """List the vendors currently taking orders.

        Args:
            category: Category filter, "All" or None for no filter
            search: Free-text search on name and description

        Returns:
            Matching active vendors sorted by restaurant name
        """
        vendors = [
            vendor
            for vendor in self.vendor_repository.list_vendors()
            if vendor.is_active and matches_browse_filter(vendor, category, search)
        ]
        return sorted(vendors, key=lambda v: (v.restaurant_name.lower(), v.vendor_id))

    async def get_vendor(self, vendor_id: str) -> ServiceResult[Vendor]:
        vendor = self.vendor_repository.get_vendor(vendor_id)
        if vendor is None:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, f"Vendor {vendor_id} not found")
        return ServiceResult.ok(vendor)

    async def get_vendor_menu(self, vendor_id: str) -> ServiceResult[VendorMenu]:
        """Fetch a vendor profile and its menu for the vendor screen.

        Args:
            vendor_id: Vendor identifier

        Returns:
            ServiceResult with the vendor and its menu items
        """
        vendor = self.vendor_repository.get_vendor(vendor_id)
        if vendor is None:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, f"Vendor {vendor_id} not found")

        items = self.menu_item_repository.list_menu_items(vendor_id)
        if items is None:
            return ServiceResult.fail(ErrorKind.REMOTE, "Failed to load menu")

        return ServiceResult.ok(VendorMenu(vendor=vendor, items=items))

    async def resolve_cart_item(self, vendor_id: str, item_id: str) -> ServiceResult[CartItem]:
        """Build a cart line from the stored menu item.

        Name and price always come from the menu, so a client cannot choose
        what it pays.

        Args:
            vendor_id: Vendor selling the item
            item_id: Menu item identifier

        Returns:
            ServiceResult with a single-quantity CartItem
        """
        vendor = self.vendor_repository.get_vendor(vendor_id)
        if vendor is None:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, f"Vendor {vendor_id} not found")

        if not vendor.is_active:
            return ServiceResult.fail(
                ErrorKind.VALIDATION, f"{vendor.restaurant_name} is not taking orders right now."
            )

        item = self.menu_item_repository.get_menu_item(vendor_id, item_id)
        if item is None:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, f"Menu item {item_id} not found")

        if not item.is_available:
            return ServiceResult.fail(ErrorKind.VALIDATION, f"{item.name} is currently unavailable.")

        return ServiceResult.ok(
            CartItem(
                id=item.item_id,
                name=item.name,
                price=item.price,
                vendor_id=vendor_id,
                vendor_name=vendor.restaurant_name,
                is_veg=item.is_veg,
                image_url=item.image_url or None,
            )
        )

    @traced("set_vendor_active")
    async def set_active(self, vendor_id: str, is_active: bool) -> ServiceResult[bool]:
        """Open or close the vendor for new orders."""
        if not self.vendor_repository.update_fields(vendor_id, {"is_active": is_active}):
            return ServiceResult.fail(ErrorKind.REMOTE, "Failed to update status")

        logger.info(f"Vendor {vendor_id} is now {'active' if is_active else 'inactive'}")
        return ServiceResult.ok(is_active)

    async def toggle_active(self, vendor_id: str) -> ServiceResult[bool]:
        vendor = self.vendor_repository.get_vendor(vendor_id)
        if vendor is None:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, f"Vendor {vendor_id} not found")
        return await self.set_active(vendor_id, not vendor.is_active)

    @traced("update_vendor_settings")
    async def update_settings(
        self,
        vendor_id: str,
        restaurant_name: str | None = None,
        image_url: str | None = None,
    ) -> ServiceResult[Vendor]:
        """Update the restaurant name and image shown to students.

        Args:
            vendor_id: Vendor identifier
            restaurant_name: New display name, None to keep the current one
            image_url: Public URL returned by the image host, None to keep

        Returns:
            ServiceResult with the updated vendor
        """
        updates: dict[str, Any] = {}

        if restaurant_name is not None:
            if not restaurant_name.strip():
                return ServiceResult.fail(ErrorKind.VALIDATION, "Restaurant name cannot be empty")
            updates["restaurant_name"] = restaurant_name.strip()

        if image_url is not None:
            updates["image_url"] = image_url.strip()

        if not updates:
            return ServiceResult.fail(ErrorKind.VALIDATION, "Nothing to update")

        if not self.vendor_repository.update_fields(vendor_id, updates):
            return ServiceResult.fail(ErrorKind.REMOTE, "Failed to save settings")

        vendor = self.vendor_repository.get_vendor(vendor_id)
        if vendor is None:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, f"Vendor {vendor_id} not found")

        return ServiceResult.ok(vendor)

    async def list_menu_items(self, vendor_id: str) -> ServiceResult[list[MenuItem]]:
        items = self.menu_item_repository.list_menu_items(vendor_id)
        if items is None:
            return ServiceResult.fail(ErrorKind.REMOTE, "Failed to load menu")
        return ServiceResult.ok(items)

    @traced("add_menu_item")
    async def add_menu_item(self, vendor_id: str, data: dict[str, Any]) -> ServiceResult[MenuItem]:
        """Add an item to the vendor's menu.

        Args:
            vendor_id: Owning vendor
            data: Item fields; name and price are required

        Returns:
            ServiceResult with the saved item
        """
        error = _validate_menu_fields(data)
        if error:
            return ServiceResult.fail(ErrorKind.VALIDATION, error)

        item = MenuItem(
            item_id=f"item_{uuid.uuid4().hex[:12]}",
            vendor_id=vendor_id,
            updated_at=datetime.now(UTC),
            **_menu_fields(data),
        )

        if not self.menu_item_repository.save_menu_item(item):
            return ServiceResult.fail(ErrorKind.REMOTE, "Failed to save item")

        logger.info(f"Added menu item {item.item_id} for vendor {vendor_id}")
        return ServiceResult.ok(item)

    @traced("update_menu_item")
    async def update_menu_item(
        self, vendor_id: str, item_id: str, data: dict[str, Any]
    ) -> ServiceResult[MenuItem]:
        existing = self.menu_item_repository.get_menu_item(vendor_id, item_id)
        if existing is None:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, f"Menu item {item_id} not found")

        merged = {**existing.model_dump(exclude={"item_id", "vendor_id", "updated_at"}), **data}
        error = _validate_menu_fields(merged)
        if error:
            return ServiceResult.fail(ErrorKind.VALIDATION, error)

        item = MenuItem(
            item_id=item_id,
            vendor_id=vendor_id,
            updated_at=datetime.now(UTC),
            **_menu_fields(merged),
        )

        if not self.menu_item_repository.save_menu_item(item):
            return ServiceResult.fail(ErrorKind.REMOTE, "Failed to save item")

        return ServiceResult.ok(item)

    async def delete_menu_item(self, vendor_id: str, item_id: str) -> ServiceResult[str]:
        if not self.menu_item_repository.delete_menu_item(vendor_id, item_id):
            return ServiceResult.fail(ErrorKind.REMOTE, "Failed to delete item")

        logger.info(f"Deleted menu item {item_id} for vendor {vendor_id}")
        return ServiceResult.ok(item_id)

    @traced("vendor_analytics")
    async def get_analytics(
        self, vendor_id: str, now: datetime | None = None
    ) -> ServiceResult[VendorAnalytics]:
        """Summarize ratings and today's revenue from completed orders.

        Args:
            vendor_id: Vendor identifier
            now: Reference time for "today" (defaults to the current UTC time)

        Returns:
            ServiceResult with the VendorAnalytics for the vendor
        """
        now = now or datetime.now(UTC)
        day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)

        completed = self.order_repository.list_orders_for_vendor(
            vendor_id, status=OrderStatus.COMPLETED
        )
        if completed is None:
            return ServiceResult.fail(ErrorKind.REMOTE, "Failed to load analytics.")

        rated = [order for order in completed if order.rating is not None]
        rated.sort(key=lambda o: (-epoch_seconds(o.created_at), o.order_id))

        total = sum((Decimal(order.rating or 0) for order in rated), Decimal("0"))
        average = round_rating(total / len(rated)) if rated else Decimal("0.0")

        revenue_today = sum(
            (
                order.total_amount
                for order in completed
                if epoch_seconds(order.created_at) >= day_start.timestamp()
            ),
            Decimal("0"),
        )

        return ServiceResult.ok(
            VendorAnalytics(
                rated_orders=rated,
                average_rating=average,
                total_ratings=len(rated),
                revenue_today=revenue_today,
            )
        )


MENU_FIELDS = (
    "name",
    "price",
    "description",
    "category",
    "is_veg",
    "is_available",
    "prep_time",
    "image_url",
)


def _menu_fields(data: dict[str, Any]) -> dict[str, Any]:
    fields = {key: data[key] for key in MENU_FIELDS if data.get(key) is not None}
    fields["name"] = str(fields["name"]).strip()
    fields["price"] = Decimal(str(fields["price"]))
    return fields


def _validate_menu_fields(data: dict[str, Any]) -> str | None:
    name = data.get("name")
    price = data.get("price")

    if not name or not str(name).strip() or price in (None, ""):
        return "Name and price are required"

    try:
        if Decimal(str(price)) < 0:
            return "Price cannot be negative"
    except ArithmeticError:
        return "Price must be a number"

    return None
