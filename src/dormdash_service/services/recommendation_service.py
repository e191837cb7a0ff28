"""Recommendation service: conversational food suggestions from menus and order history."""

import logging
from dataclasses import dataclass

from dormdash_service.models.order_models import Order
from dormdash_service.models.result_models import ErrorKind, ServiceResult
from dormdash_service.models.vendor_models import MenuItem, Vendor
from dormdash_service.observability import traced
from dormdash_service.repositories.order_repositories import OrderRepository
from dormdash_service.repositories.vendor_repositories import MenuItemRepository, VendorRepository
from dormdash_service.services.generative_client import GenerativeTextClient

logger = logging.getLogger(__name__)

HISTORY_SIZE = 5
FALLBACK_REPLY = "I'm having trouble connecting. Please check your internet."

PROMPT_TEMPLATE = """You are a smart food delivery assistant for a university campus.

--- DATA SOURCE ---

{menu_context}

{history_context}

--- END DATA SOURCE ---

USER QUESTION: "{question}"

INSTRUCTIONS:
1. If the user asks for recommendations, prioritize restaurants and foods they have ordered before based on the USER'S PAST ORDERS section.
2. If they ask for something new, suggest items they HAVEN'T ordered yet.
3. If the user asks how to order, explain: "Browse the home screen, select a restaurant, and checkout!"
4. When mentioning a restaurant, use its EXACT name from the database.
5. Keep it friendly and personalized.

RESPONSE:"""


@dataclass
class Recommendation:
    """Assistant reply, optionally linked to a vendor it mentions."""

    text: str
    vendor_id: str | None = None
    vendor_name: str | None = None


def build_menu_context(menus: list[tuple[Vendor, list[MenuItem]]]) -> str:
    lines = ["RESTAURANT DATABASE (Available now):"]
    for vendor, items in menus:
        lines.append("")
        lines.append(f"--- RESTAURANT: {vendor.restaurant_name} ---")
        lines.append(f"Description: {vendor.description}")
        lines.append("MENU ITEMS:")
        lines.extend(f"- {item.name} ({item.price} INR)" for item in items)
    return "\n".join(lines)


def build_history_context(orders: list[Order]) -> str:
    if not orders:
        return "USER HISTORY: No past orders yet."

    lines = ["USER'S PAST ORDERS (Use this to recommend):"]
    for order in orders:
        names = ", ".join(line.name for line in order.items)
        lines.append(
            f"- Ordered from {order.vendor_name}: {names} (Status: {order.status.value})"
        )
    return "\n".join(lines)


def find_mentioned_vendor(text: str, vendors: list[Vendor]) -> Vendor | None:
    """Find the vendor whose name appears earliest in text.

    Matching is case-insensitive. When two names start at the same position
    the longer one wins.
    """
    lowered = text.lower()
    best: tuple[int, int] | None = None
    found: Vendor | None = None

    for vendor in vendors:
        name = vendor.restaurant_name.strip().lower()
        if not name:
            continue

        position = lowered.find(name)
        if position < 0:
            continue

        rank = (position, -len(name))
        if best is None or rank < best:
            best = rank
            found = vendor

    return found


class RecommendationService:
    """Service answering free-form food questions for a student.

    Every vendor and its menu, plus the student's most recent orders, are
    sent as context with the question in a single generation call.
    """

    def __init__(
        self,
        vendor_repository: VendorRepository,
        menu_item_repository: MenuItemRepository,
        order_repository: OrderRepository,
        text_client: GenerativeTextClient | None,
    ) -> None:
        """Initialize the RecommendationService.

        Args:
            vendor_repository: Repository for vendors
            menu_item_repository: Repository for menu items
            order_repository: Repository for order history
            text_client: Text generation client (None when not configured)
        """
        self.vendor_repository = vendor_repository
        self.menu_item_repository = menu_item_repository
        self.order_repository = order_repository
        self.text_client = text_client

    def build_prompt(self, student_id: str, question: str) -> tuple[str, list[Vendor]]:
        """Assemble the prompt and the vendor list used to link the reply."""
        vendors = self.vendor_repository.list_vendors()
        menus = [
            (vendor, self.menu_item_repository.list_menu_items(vendor.vendor_id) or [])
            for vendor in vendors
        ]
        # Order history only enriches the prompt, so a failed read leaves it empty
        history = self.order_repository.list_orders_for_student(student_id, limit=HISTORY_SIZE) or []

        prompt = PROMPT_TEMPLATE.format(
            menu_context=build_menu_context(menus),
            history_context=build_history_context(history),
            question=question,
        )
        return prompt, vendors

    @traced("recommend")
    async def recommend(self, student_id: str, question: str) -> ServiceResult[Recommendation]:
        """Answer a student's question with menu-aware suggestions.

        Args:
            student_id: Student asking
            question: Free-form question

        Returns:
            ServiceResult with the reply; a failed generation call still
            succeeds with a fallback reply
        """
        question = question.strip()
        if not question:
            return ServiceResult.fail(ErrorKind.VALIDATION, "Please enter a question.")

        if self.text_client is None:
            logger.warning("Text generation is not configured, returning fallback reply")
            return ServiceResult.ok(Recommendation(text=FALLBACK_REPLY))

        prompt, vendors = self.build_prompt(student_id, question)
        text = await self.text_client.generate(prompt)

        if text is None:
            return ServiceResult.ok(Recommendation(text=FALLBACK_REPLY))

        vendor = find_mentioned_vendor(text, vendors)
        if vendor is None:
            return ServiceResult.ok(Recommendation(text=text))

        return ServiceResult.ok(
            Recommendation(
                text=text, vendor_id=vendor.vendor_id, vendor_name=vendor.restaurant_name
            )
        )
