"""FastAPI application for the student app and vendor dashboard."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any, TypeVar

from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from dormdash_service.auth.auth_service import AuthService
from dormdash_service.auth.session_dependencies import (
    get_app_context,
    require_student,
    require_vendor,
)
from dormdash_service.models.account_models import AccountRole
from dormdash_service.models.cart_models import CartItem
from dormdash_service.models.order_models import Order
from dormdash_service.models.result_models import ErrorKind, ServiceResult
from dormdash_service.models.vendor_models import MenuItem, Vendor
from dormdash_service.services.cart import Cart
from dormdash_service.services.order_classifier import StudentOrderBuckets, VendorOrderBuckets
from dormdash_service.services.order_service import OrderService
from dormdash_service.services.rating_service import RatingService
from dormdash_service.services.recommendation_service import RecommendationService
from dormdash_service.services.vendor_service import VendorService
from dormdash_service.session.app_context import AppContext, SessionRegistry
from dormdash_service.subscriptions.order_board import OrderBoard

logger = logging.getLogger(__name__)

T = TypeVar("T")

ERROR_STATUS_CODES: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.AUTHORIZATION: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.REMOTE: 502,
}


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str


class StudentSignUpRequest(BaseModel):
    name: str = ""
    email: str = ""
    password: str = ""
    phone_number: str = ""
    college: str = ""


class VendorSignUpRequest(BaseModel):
    email: str = ""
    password: str = ""
    owner_name: str = ""
    restaurant_name: str = ""
    phone_number: str = ""
    location: str = ""


class SignInRequest(BaseModel):
    email: str = ""
    password: str = ""
    role: AccountRole = AccountRole.STUDENT


class SessionResponse(BaseModel):
    """Signed-in session returned to the client."""

    session_token: str
    uid: str
    email: str
    role: AccountRole


class CartResponse(BaseModel):
    """Cart contents with checkout totals."""

    items: list[CartItem]
    item_count: int
    subtotal: Decimal
    tax: Decimal
    total: Decimal


class AddToCartRequest(BaseModel):
    """Menu item to add; price and name are read from the menu."""

    vendor_id: str
    item_id: str


class QuantityRequest(BaseModel):
    quantity: int


class StudentOrdersResponse(BaseModel):
    active: list[Order]
    past: list[Order]


class VendorOrdersResponse(BaseModel):
    received: list[Order]
    preparing: list[Order]
    ready: list[Order]
    history: list[Order]


class OrderCountResponse(BaseModel):
    count: int


class RatingRequest(BaseModel):
    rating: int


class RatingResponse(BaseModel):
    """Accepted rating with the vendor's updated aggregate."""

    order_id: str
    vendor_id: str
    rating: int
    vendor_rating: Decimal
    total_reviews: int


class VendorMenuResponse(BaseModel):
    vendor: Vendor
    items: list[MenuItem]


class VendorStatusRequest(BaseModel):
    """Availability change; omit is_active to toggle."""

    is_active: bool | None = None


class VendorStatusResponse(BaseModel):
    is_active: bool


class VendorSettingsRequest(BaseModel):
    restaurant_name: str | None = None
    image_url: str | None = None


class MenuItemRequest(BaseModel):
    """Menu item fields; omitted fields keep their current value on update."""

    name: str | None = None
    price: Decimal | None = None
    description: str | None = None
    category: str | None = None
    is_veg: bool | None = None
    is_available: bool | None = None
    prep_time: int | None = Field(None, ge=0)
    image_url: str | None = None


class AnalyticsResponse(BaseModel):
    rated_orders: list[Order]
    average_rating: Decimal
    total_ratings: int
    revenue_today: Decimal


class RecommendationRequest(BaseModel):
    question: str = ""


class RecommendationResponse(BaseModel):
    text: str
    vendor_id: str | None = None
    vendor_name: str | None = None


def unwrap(result: ServiceResult[T]) -> T:
    """Return a successful result's value or raise the matching HTTP error.

    Raises:
        HTTPException: Status code chosen by the result's error kind
    """
    if result.success:
        return result.value  # type: ignore[return-value]

    status_code = ERROR_STATUS_CODES.get(result.error_kind or ErrorKind.REMOTE, 500)
    raise HTTPException(status_code=status_code, detail=result.error_message)


def session_response(context: AppContext) -> SessionResponse:
    session = context.session
    return SessionResponse(
        session_token=session.session_token, uid=session.uid, email=session.email, role=session.role
    )


def cart_response(cart: Cart) -> CartResponse:
    totals = cart.summary()
    return CartResponse(
        items=cart.items,
        item_count=cart.item_count(),
        subtotal=totals.subtotal,
        tax=totals.tax,
        total=totals.total,
    )


def student_orders_response(buckets: StudentOrderBuckets) -> StudentOrdersResponse:
    return StudentOrdersResponse(active=buckets.active, past=buckets.past)


def vendor_orders_response(buckets: VendorOrderBuckets) -> VendorOrdersResponse:
    return VendorOrdersResponse(
        received=buckets.received,
        preparing=buckets.preparing,
        ready=buckets.ready,
        history=buckets.history,
    )


def stream_board(
    context: AppContext, board: OrderBoard[Any], to_response: Any
) -> StreamingResponse:
    """Stream an order board as newline-delimited JSON.

    The board's subscription is tracked on the session so sign-out ends the
    stream, and it is closed when the client goes away.
    """
    context.track(board)

    async def lines() -> AsyncIterator[str]:
        try:
            async for buckets in board.follow():
                yield to_response(buckets).model_dump_json() + "\n"
        finally:
            board.close()
            context.untrack(board)

    return StreamingResponse(lines(), media_type="application/x-ndjson")


def create_app(
    auth_service: AuthService,
    order_service: OrderService,
    vendor_service: VendorService,
    rating_service: RatingService,
    recommendation_service: RecommendationService,
    sessions: SessionRegistry,
    stream_poll_seconds: float = 2.0,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        auth_service: Service for sign-up, sign-in and sign-out
        order_service: Service for checkout and order status changes
        vendor_service: Service for vendor browsing and dashboard management
        rating_service: Service for order ratings
        recommendation_service: Service for assistant recommendations
        sessions: Registry of open sessions, closed on shutdown
        stream_poll_seconds: Poll interval of live order streams

    Returns:
        Configured FastAPI application
    """

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        yield
        logger.info(f"Shutting down, closing {len(sessions)} open sessions")
        sessions.close_all()

    app = FastAPI(
        title="DormDash Ordering API",
        description="Campus food ordering for students and vendors",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Store services in app state for access in route handlers and dependencies
    app.state.auth_service = auth_service
    app.state.order_service = order_service
    app.state.vendor_service = vendor_service
    app.state.rating_service = rating_service
    app.state.recommendation_service = recommendation_service
    app.state.sessions = sessions

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> HealthResponse:
        """Health check endpoint.

        Returns:
            Health status indicating service is running
        """
        return HealthResponse(status="healthy")

    # Auth

    @app.post("/auth/students/signup", response_model=SessionResponse, status_code=201, tags=["Auth"])
    async def sign_up_student(request: StudentSignUpRequest) -> SessionResponse:
        context = unwrap(
            await auth_service.sign_up_student(
                name=request.name,
                email=request.email,
                password=request.password,
                phone_number=request.phone_number,
                college=request.college,
            )
        )
        return session_response(context)

    @app.post("/auth/vendors/signup", response_model=SessionResponse, status_code=201, tags=["Auth"])
    async def sign_up_vendor(request: VendorSignUpRequest) -> SessionResponse:
        context = unwrap(
            await auth_service.sign_up_vendor(
                email=request.email,
                password=request.password,
                owner_name=request.owner_name,
                restaurant_name=request.restaurant_name,
                phone_number=request.phone_number,
                location=request.location,
            )
        )
        return session_response(context)

    @app.post("/auth/signin", response_model=SessionResponse, tags=["Auth"])
    async def sign_in(request: SignInRequest) -> SessionResponse:
        context = unwrap(await auth_service.sign_in(request.email, request.password, request.role))
        return session_response(context)

    @app.post("/auth/signout", status_code=204, tags=["Auth"])
    async def sign_out(context: AppContext = Depends(get_app_context)) -> None:
        auth_service.sign_out(context.session.session_token)

    @app.get("/auth/session", response_model=SessionResponse, tags=["Auth"])
    async def current_session(context: AppContext = Depends(get_app_context)) -> SessionResponse:
        return session_response(context)

    # Vendor browsing

    @app.get("/vendors", response_model=list[Vendor], tags=["Vendors"])
    async def list_vendors(category: str | None = None, search: str | None = None) -> list[Vendor]:
        """List active vendors, optionally filtered by category and search text."""
        return await vendor_service.list_active_vendors(category=category, search=search)

    @app.get("/vendors/{vendor_id}", response_model=VendorMenuResponse, tags=["Vendors"])
    async def get_vendor_menu(vendor_id: str) -> VendorMenuResponse:
        menu = unwrap(await vendor_service.get_vendor_menu(vendor_id))
        return VendorMenuResponse(vendor=menu.vendor, items=menu.items)

    # Cart

    @app.get("/cart", response_model=CartResponse, tags=["Cart"])
    async def get_cart(context: AppContext = Depends(require_student)) -> CartResponse:
        return cart_response(context.cart)

    @app.post("/cart/items", response_model=CartResponse, tags=["Cart"])
    async def add_to_cart(
        request: AddToCartRequest, context: AppContext = Depends(require_student)
    ) -> CartResponse:
        item = unwrap(await vendor_service.resolve_cart_item(request.vendor_id, request.item_id))
        context.cart.add(item)
        return cart_response(context.cart)

    @app.put("/cart/items/{item_id}", response_model=CartResponse, tags=["Cart"])
    async def set_cart_quantity(
        item_id: str, request: QuantityRequest, context: AppContext = Depends(require_student)
    ) -> CartResponse:
        context.cart.set_quantity(item_id, request.quantity)
        return cart_response(context.cart)

    @app.delete("/cart/items/{item_id}", response_model=CartResponse, tags=["Cart"])
    async def remove_from_cart(
        item_id: str, context: AppContext = Depends(require_student)
    ) -> CartResponse:
        context.cart.remove(item_id)
        return cart_response(context.cart)

    @app.delete("/cart", response_model=CartResponse, tags=["Cart"])
    async def clear_cart(context: AppContext = Depends(require_student)) -> CartResponse:
        context.cart.clear()
        return cart_response(context.cart)

    # Student orders

    @app.post("/orders", response_model=Order, status_code=201, tags=["Orders"])
    async def place_order(context: AppContext = Depends(require_student)) -> Order:
        """Check out the caller's cart."""
        return unwrap(await order_service.place_order(context))

    @app.get("/orders", response_model=StudentOrdersResponse, tags=["Orders"])
    async def get_student_orders(
        context: AppContext = Depends(require_student),
    ) -> StudentOrdersResponse:
        buckets = unwrap(await order_service.get_student_orders(context.session.uid))
        return student_orders_response(buckets)

    @app.get("/orders/count", response_model=OrderCountResponse, tags=["Orders"])
    async def count_orders(context: AppContext = Depends(require_student)) -> OrderCountResponse:
        return OrderCountResponse(
            count=unwrap(await order_service.count_student_orders(context.session.uid))
        )

    @app.get("/orders/stream", tags=["Orders"])
    async def stream_student_orders(
        max_snapshots: int | None = None,
        context: AppContext = Depends(require_student),
    ) -> StreamingResponse:
        """Stream the caller's order buckets every time their orders change."""
        board = order_service.subscribe_student_orders(
            context.session.uid, stream_poll_seconds, max_snapshots
        )
        return stream_board(context, board, student_orders_response)

    @app.post("/orders/{order_id}/cancel", response_model=Order, tags=["Orders"])
    async def cancel_order(order_id: str, context: AppContext = Depends(require_student)) -> Order:
        return unwrap(await order_service.cancel_order(context.session, order_id))

    @app.post("/orders/{order_id}/pickup", response_model=Order, tags=["Orders"])
    async def confirm_pickup(order_id: str, context: AppContext = Depends(require_student)) -> Order:
        return unwrap(await order_service.confirm_pickup(context.session, order_id))

    @app.post("/orders/{order_id}/rating", response_model=RatingResponse, tags=["Orders"])
    async def rate_order(
        order_id: str, request: RatingRequest, context: AppContext = Depends(require_student)
    ) -> RatingResponse:
        """Rate a completed order and update the vendor's average."""
        outcome = unwrap(
            await rating_service.submit_rating(context.session, order_id, request.rating)
        )
        return RatingResponse(
            order_id=outcome.order_id,
            vendor_id=outcome.vendor_id,
            rating=outcome.rating,
            vendor_rating=outcome.vendor_rating,
            total_reviews=outcome.total_reviews,
        )

    # Vendor dashboard

    @app.get("/dashboard/profile", response_model=Vendor, tags=["Dashboard"])
    async def get_profile(context: AppContext = Depends(require_vendor)) -> Vendor:
        return unwrap(await vendor_service.get_vendor(context.session.uid))

    @app.get("/dashboard/orders", response_model=VendorOrdersResponse, tags=["Dashboard"])
    async def get_vendor_orders(
        context: AppContext = Depends(require_vendor),
    ) -> VendorOrdersResponse:
        buckets = unwrap(await order_service.get_vendor_orders(context.session.uid))
        return vendor_orders_response(buckets)

    @app.get("/dashboard/orders/stream", tags=["Dashboard"])
    async def stream_vendor_orders(
        max_snapshots: int | None = None,
        context: AppContext = Depends(require_vendor),
    ) -> StreamingResponse:
        """Stream the dashboard buckets every time the vendor's orders change."""
        board = order_service.subscribe_vendor_orders(
            context.session.uid, stream_poll_seconds, max_snapshots
        )
        return stream_board(context, board, vendor_orders_response)

    @app.post("/dashboard/orders/{order_id}/accept", response_model=Order, tags=["Dashboard"])
    async def accept_order(order_id: str, context: AppContext = Depends(require_vendor)) -> Order:
        return unwrap(await order_service.accept_order(context.session, order_id))

    @app.post("/dashboard/orders/{order_id}/reject", response_model=Order, tags=["Dashboard"])
    async def reject_order(order_id: str, context: AppContext = Depends(require_vendor)) -> Order:
        return unwrap(await order_service.reject_order(context.session, order_id))

    @app.post("/dashboard/orders/{order_id}/ready", response_model=Order, tags=["Dashboard"])
    async def mark_ready(order_id: str, context: AppContext = Depends(require_vendor)) -> Order:
        return unwrap(await order_service.mark_ready(context.session, order_id))

    @app.put("/dashboard/status", response_model=VendorStatusResponse, tags=["Dashboard"])
    async def set_status(
        request: VendorStatusRequest, context: AppContext = Depends(require_vendor)
    ) -> VendorStatusResponse:
        vendor_id = context.session.uid
        if request.is_active is None:
            result = await vendor_service.toggle_active(vendor_id)
        else:
            result = await vendor_service.set_active(vendor_id, request.is_active)
        return VendorStatusResponse(is_active=unwrap(result))

    @app.put("/dashboard/settings", response_model=Vendor, tags=["Dashboard"])
    async def update_settings(
        request: VendorSettingsRequest, context: AppContext = Depends(require_vendor)
    ) -> Vendor:
        return unwrap(
            await vendor_service.update_settings(
                context.session.uid,
                restaurant_name=request.restaurant_name,
                image_url=request.image_url,
            )
        )

    @app.get("/dashboard/menu", response_model=list[MenuItem], tags=["Dashboard"])
    async def list_menu(context: AppContext = Depends(require_vendor)) -> list[MenuItem]:
        return unwrap(await vendor_service.list_menu_items(context.session.uid))

    @app.post("/dashboard/menu", response_model=MenuItem, status_code=201, tags=["Dashboard"])
    async def add_menu_item(
        request: MenuItemRequest, context: AppContext = Depends(require_vendor)
    ) -> MenuItem:
        return unwrap(
            await vendor_service.add_menu_item(
                context.session.uid, request.model_dump(exclude_none=True)
            )
        )

    @app.put("/dashboard/menu/{item_id}", response_model=MenuItem, tags=["Dashboard"])
    async def update_menu_item(
        item_id: str, request: MenuItemRequest, context: AppContext = Depends(require_vendor)
    ) -> MenuItem:
        return unwrap(
            await vendor_service.update_menu_item(
                context.session.uid, item_id, request.model_dump(exclude_none=True)
            )
        )

    @app.delete("/dashboard/menu/{item_id}", status_code=204, tags=["Dashboard"])
    async def delete_menu_item(item_id: str, context: AppContext = Depends(require_vendor)) -> None:
        unwrap(await vendor_service.delete_menu_item(context.session.uid, item_id))

    @app.get("/dashboard/analytics", response_model=AnalyticsResponse, tags=["Dashboard"])
    async def get_analytics(context: AppContext = Depends(require_vendor)) -> AnalyticsResponse:
        analytics = unwrap(await vendor_service.get_analytics(context.session.uid))
        return AnalyticsResponse(
            rated_orders=analytics.rated_orders,
            average_rating=analytics.average_rating,
            total_ratings=analytics.total_ratings,
            revenue_today=analytics.revenue_today,
        )

    # Assistant

    @app.post(
        "/assistant/recommendations", response_model=RecommendationResponse, tags=["Assistant"]
    )
    async def recommend(
        request: RecommendationRequest, context: AppContext = Depends(require_student)
    ) -> RecommendationResponse:
        """Ask the food assistant for suggestions based on menus and past orders."""
        recommendation = unwrap(
            await recommendation_service.recommend(context.session.uid, request.question)
        )
        return RecommendationResponse(
            text=recommendation.text,
            vendor_id=recommendation.vendor_id,
            vendor_name=recommendation.vendor_name,
        )

    return app
