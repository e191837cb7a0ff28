"""Vendor and menu data models.

Vendors are stored in DynamoDB with vendor_id as partition key. Menu items live
in their own table keyed by (vendor_id, item_id).
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field


class Vendor(BaseModel):
    """A campus restaurant or kitchen that owns a menu and receives orders."""

    vendor_id: str = Field(..., description="Vendor identifier (the vendor's account uid)")
    email: str = Field(default="", description="Business email")
    owner_name: str = Field(default="", description="Owner full name")
    phone_number: str = Field(default="", description="Contact number")
    restaurant_name: str = Field(..., description="Display name")
    description: str = Field(default="", description="Short description")
    image_url: str = Field(default="", description="Public URL of the vendor image")
    rating: Decimal = Field(default=Decimal("0"), description="Running average rating", ge=0)
    total_reviews: int = Field(default=0, description="Number of ratings received", ge=0)
    is_active: bool = Field(default=True, description="Whether the vendor takes orders")
    location: str = Field(default="", description="Campus location")
    category: str = Field(default="", description="Food category")
    opening_time: str = Field(default="09:00 AM", description="Opening time")
    closing_time: str = Field(default="10:00 PM", description="Closing time")
    total_orders: int = Field(default=0, description="Orders received", ge=0)
    created_at: datetime | None = Field(None, description="Account creation timestamp")
    version: int = Field(default=0, description="Optimistic concurrency counter", ge=0)

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert to DynamoDB item format.

        Returns:
            dict: DynamoDB-compatible representation
        """
        item: dict[str, Any] = {
            "vendor_id": self.vendor_id,
            "email": self.email,
            "owner_name": self.owner_name,
            "phone_number": self.phone_number,
            "restaurant_name": self.restaurant_name,
            "description": self.description,
            "image_url": self.image_url,
            "rating": self.rating,
            "total_reviews": self.total_reviews,
            "is_active": self.is_active,
            "location": self.location,
            "category": self.category,
            "opening_time": self.opening_time,
            "closing_time": self.closing_time,
            "total_orders": self.total_orders,
            "version": self.version,
        }

        if self.created_at is not None:
            item["created_at"] = self.created_at.isoformat()

        return item

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "Vendor":
        """Create Vendor from DynamoDB item.

        Args:
            item: DynamoDB item dictionary

        Returns:
            Vendor: Parsed model instance
        """
        data: dict[str, Any] = {
            "vendor_id": item["vendor_id"],
            "email": item.get("email", ""),
            "owner_name": item.get("owner_name", ""),
            "phone_number": item.get("phone_number", ""),
            "restaurant_name": item.get("restaurant_name") or "Unknown",
            "description": item.get("description", ""),
            "image_url": item.get("image_url", ""),
            "rating": Decimal(str(item.get("rating", 0))),
            "total_reviews": int(item.get("total_reviews", 0)),
            "is_active": item.get("is_active", True) is not False,
            "location": item.get("location", ""),
            "category": item.get("category", ""),
            "opening_time": item.get("opening_time", "09:00 AM"),
            "closing_time": item.get("closing_time", "10:00 PM"),
            "total_orders": int(item.get("total_orders", 0)),
            "version": int(item.get("version", 0)),
        }

        if item.get("created_at"):
            data["created_at"] = datetime.fromisoformat(item["created_at"])

        return cls(**data)


class MenuItem(BaseModel):
    """Menu item offered by a vendor."""

    item_id: str = Field(..., description="Unique identifier for the menu item")
    vendor_id: str = Field(..., description="Vendor this item belongs to")
    name: str = Field(..., description="Item name")
    price: Decimal = Field(..., description="Item price", ge=0)
    description: str = Field(default="", description="Item description")
    category: str = Field(default="Main Course", description="Menu section")
    is_veg: bool = Field(default=True, description="Vegetarian flag")
    is_available: bool = Field(default=True, description="Whether item can be ordered")
    prep_time: int = Field(default=15, description="Preparation time in minutes", ge=0)
    image_url: str = Field(default="", description="URL to item image")
    updated_at: datetime | None = Field(None, description="Last edit timestamp")

    def to_dynamodb_item(self) -> dict[str, Any]:
        item: dict[str, Any] = {
            "vendor_id": self.vendor_id,
            "item_id": self.item_id,
            "name": self.name,
            "price": self.price,
            "description": self.description,
            "category": self.category,
            "is_veg": self.is_veg,
            "is_available": self.is_available,
            "prep_time": self.prep_time,
            "image_url": self.image_url,
        }

        if self.updated_at is not None:
            item["updated_at"] = self.updated_at.isoformat()

        return item

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "MenuItem":
        data: dict[str, Any] = {
            "item_id": item["item_id"],
            "vendor_id": item["vendor_id"],
            "name": item.get("name", ""),
            "price": Decimal(str(item.get("price", 0))),
            "description": item.get("description", ""),
            "category": item.get("category", "Main Course"),
            "is_veg": item.get("is_veg", True) is not False,
            "is_available": item.get("is_available", True) is not False,
            "prep_time": int(item.get("prep_time", 15)),
            "image_url": item.get("image_url", ""),
        }

        if item.get("updated_at"):
            data["updated_at"] = datetime.fromisoformat(item["updated_at"])

        return cls(**data)
