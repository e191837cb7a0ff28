"""In-memory cart for a signed-in student session."""

from decimal import ROUND_HALF_UP, Decimal

from dormdash_service.models.cart_models import CartItem, CartTotals

DEFAULT_TAX_RATE = Decimal("0.05")


class Cart:
    """Ordered collection of cart items.

    Items are keyed by menu item id and keep their insertion order. All
    operations are pure in-memory updates; nothing here talks to the network.
    A cart is expected to hold items from a single vendor, but this is not
    enforced (see is_single_vendor).
    """

    def __init__(self, tax_rate: Decimal = DEFAULT_TAX_RATE) -> None:
        """Initialize an empty cart.

        Args:
            tax_rate: Fraction of the subtotal charged as tax
        """
        self.tax_rate = tax_rate
        self._items: dict[str, CartItem] = {}

    @property
    def items(self) -> list[CartItem]:
        return list(self._items.values())

    def is_empty(self) -> bool:
        return not self._items

    def add(self, item: CartItem) -> CartItem:
        """Add one unit of an item.

        An item already in the cart has its quantity incremented by one;
        otherwise it is appended with quantity 1 whatever quantity it carries.

        Returns:
            CartItem: The entry as stored after the change
        """
        existing = self._items.get(item.id)
        if existing is not None:
            updated = existing.model_copy(update={"quantity": existing.quantity + 1})
        else:
            updated = item.model_copy(update={"quantity": 1})

        self._items[item.id] = updated
        return updated

    def remove(self, item_id: str) -> None:
        self._items.pop(item_id, None)

    def set_quantity(self, item_id: str, quantity: int) -> None:
        """Replace the quantity of an item; zero or less removes it."""
        if quantity <= 0:
            self.remove(item_id)
            return

        existing = self._items.get(item_id)
        if existing is not None:
            self._items[item_id] = existing.model_copy(update={"quantity": quantity})

    def clear(self) -> None:
        self._items.clear()

    def quantity_of(self, item_id: str) -> int:
        existing = self._items.get(item_id)
        return existing.quantity if existing else 0

    def item_count(self) -> int:
        return sum(item.quantity for item in self._items.values())

    @property
    def vendor_id(self) -> str:
        return next(iter(self._items.values())).vendor_id if self._items else ""

    @property
    def vendor_name(self) -> str:
        return next(iter(self._items.values())).vendor_name if self._items else ""

    def is_single_vendor(self) -> bool:
        return len({item.vendor_id for item in self._items.values()}) <= 1

    def total(self) -> Decimal:
        """Sum of price times quantity over the cart, unrounded."""
        return sum(
            (item.price * item.quantity for item in self._items.values()), Decimal("0")
        )

    def tax(self) -> Decimal:
        """Tax on the subtotal, rounded half up to whole currency units."""
        return (self.total() * self.tax_rate).quantize(Decimal("1"), rounding=ROUND_HALF_UP)

    def grand_total(self) -> Decimal:
        return self.total() + self.tax()

    def summary(self) -> CartTotals:
        return CartTotals(subtotal=self.total(), tax=self.tax(), total=self.grand_total())
