"""Cart models.

The cart is held in memory for a signed-in session and is never persisted.
"""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class CartItem(BaseModel):
    """A menu item in the cart."""

    model_config = ConfigDict(json_encoders={Decimal: str})

    id: str = Field(..., description="Menu item identifier")
    name: str = Field(..., description="Item name")
    price: Decimal = Field(..., description="Unit price", ge=0)
    quantity: int = Field(default=1, description="Quantity in cart", gt=0)
    vendor_id: str = Field(..., description="Vendor the item belongs to")
    vendor_name: str = Field(..., description="Vendor display name")
    is_veg: bool | None = Field(None, description="Vegetarian flag")
    image_url: str | None = Field(None, description="URL to item image")


class CartTotals(BaseModel):
    """Checkout summary for the cart."""

    subtotal: Decimal
    tax: Decimal
    total: Decimal
