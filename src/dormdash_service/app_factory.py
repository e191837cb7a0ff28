"""Shared application factory for the local server and the Lambda handler.

Dependencies are created once and cached at module level, so a warm Lambda
container reuses its DynamoDB resource, open sessions and FastAPI app across
invocations.
"""

import logging
import os
from decimal import Decimal
from typing import Any

import boto3
from fastapi import FastAPI

from dormdash_service.auth.auth_service import AuthService
from dormdash_service.auth.identity_client import DEFAULT_BASE_URL, IdentityClient
from dormdash_service.handlers.api_handler import create_app
from dormdash_service.observability import configure_logging, setup_observability
from dormdash_service.repositories.order_repositories import OrderRepository, ReviewRepository
from dormdash_service.repositories.vendor_repositories import (
    MenuItemRepository,
    StudentRepository,
    VendorRepository,
)
from dormdash_service.services.generative_client import DEFAULT_MODEL, GenerativeTextClient
from dormdash_service.services.order_service import OrderService
from dormdash_service.services.rating_service import RatingService
from dormdash_service.services.recommendation_service import RecommendationService
from dormdash_service.services.vendor_service import VendorService
from dormdash_service.session.app_context import SessionRegistry

logger = logging.getLogger(__name__)

# Module-level caches for container reuse
_dynamodb_resource: Any | None = None
_fastapi_app: FastAPI | None = None


def get_dynamodb_resource() -> Any:
    """Create or retrieve cached DynamoDB resource.

    Returns:
        Boto3 DynamoDB resource configured for environment
    """
    global _dynamodb_resource

    if _dynamodb_resource is not None:
        return _dynamodb_resource

    endpoint_url = os.getenv("DYNAMODB_ENDPOINT")
    region = os.getenv("AWS_REGION", "us-east-1")

    if endpoint_url:
        # Local DynamoDB - use environment variables
        logger.info(f"Using local DynamoDB at {endpoint_url}")
        _dynamodb_resource = boto3.resource(
            "dynamodb",
            endpoint_url=endpoint_url,
            region_name=region,
            aws_access_key_id=os.getenv("AWS_ACCESS_KEY_ID"),
            aws_secret_access_key=os.getenv("AWS_SECRET_ACCESS_KEY"),
        )
    else:
        logger.info(f"Using AWS DynamoDB in region {region}")
        _dynamodb_resource = boto3.resource("dynamodb", region_name=region)

    return _dynamodb_resource


def create_text_client() -> GenerativeTextClient | None:
    """Create the text generation client if an API key is configured."""
    api_key = os.getenv("GENERATIVE_API_KEY")
    if not api_key:
        logger.warning("GENERATIVE_API_KEY not configured, recommendations will use the fallback reply")
        return None

    return GenerativeTextClient(api_key=api_key, model=os.getenv("GENERATIVE_MODEL", DEFAULT_MODEL))


def create_application() -> FastAPI:
    """Create and configure the FastAPI application with all dependencies.

    This factory function:
    1. Configures logging
    2. Creates the DynamoDB resource and repositories
    3. Creates the identity and text generation clients
    4. Creates services and the session registry
    5. Creates the FastAPI app and sets up observability

    Returns:
        Configured FastAPI application instance

    Raises:
        ValueError: If IDENTITY_API_KEY is not set
    """
    configure_logging(os.getenv("LOG_LEVEL", "INFO"))
    logger.info("Initializing DormDash ordering service...")

    dynamodb_resource = get_dynamodb_resource()

    orders_table = os.getenv("DYNAMODB_ORDERS_TABLE", "dormdash-orders")
    vendors_table = os.getenv("DYNAMODB_VENDORS_TABLE", "dormdash-vendors")
    menu_items_table = os.getenv("DYNAMODB_MENU_ITEMS_TABLE", "dormdash-menu-items")
    students_table = os.getenv("DYNAMODB_STUDENTS_TABLE", "dormdash-students")
    reviews_table = os.getenv("DYNAMODB_REVIEWS_TABLE", "dormdash-reviews")

    order_repository = OrderRepository(dynamodb_resource=dynamodb_resource, table_name=orders_table)
    review_repository = ReviewRepository(
        dynamodb_resource=dynamodb_resource, table_name=reviews_table
    )
    vendor_repository = VendorRepository(
        dynamodb_resource=dynamodb_resource, table_name=vendors_table
    )
    menu_item_repository = MenuItemRepository(
        dynamodb_resource=dynamodb_resource, table_name=menu_items_table
    )
    student_repository = StudentRepository(
        dynamodb_resource=dynamodb_resource, table_name=students_table
    )

    logger.info(
        f"Repositories configured - orders: {orders_table}, vendors: {vendors_table}, "
        f"menu items: {menu_items_table}, students: {students_table}, reviews: {reviews_table}"
    )

    identity_api_key = os.getenv("IDENTITY_API_KEY")
    if not identity_api_key:
        raise ValueError("IDENTITY_API_KEY must be set in environment")

    identity_client = IdentityClient(
        api_key=identity_api_key, base_url=os.getenv("IDENTITY_BASE_URL", DEFAULT_BASE_URL)
    )

    sessions = SessionRegistry(tax_rate=Decimal(os.getenv("CART_TAX_RATE", "0.05")))

    auth_service = AuthService(
        identity_client=identity_client,
        student_repository=student_repository,
        vendor_repository=vendor_repository,
        sessions=sessions,
    )
    order_service = OrderService(order_repository=order_repository)
    vendor_service = VendorService(
        vendor_repository=vendor_repository,
        menu_item_repository=menu_item_repository,
        order_repository=order_repository,
    )
    rating_service = RatingService(
        order_repository=order_repository,
        review_repository=review_repository,
        vendor_repository=vendor_repository,
        max_transaction_attempts=int(os.getenv("RATING_TRANSACTION_MAX_ATTEMPTS", "5")),
    )
    recommendation_service = RecommendationService(
        vendor_repository=vendor_repository,
        menu_item_repository=menu_item_repository,
        order_repository=order_repository,
        text_client=create_text_client(),
    )

    logger.info("Services initialized")

    app = create_app(
        auth_service=auth_service,
        order_service=order_service,
        vendor_service=vendor_service,
        rating_service=rating_service,
        recommendation_service=recommendation_service,
        sessions=sessions,
        stream_poll_seconds=float(os.getenv("ORDER_STREAM_POLL_SECONDS", "2")),
    )

    setup_observability(app, enable_exporters=os.getenv("ENVIRONMENT") != "test")

    logger.info("DormDash ordering service initialized successfully")
    return app


def get_fastapi_app() -> FastAPI:
    """Create or retrieve cached FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    global _fastapi_app

    if _fastapi_app is not None:
        return _fastapi_app

    _fastapi_app = create_application()
    return _fastapi_app
