"""Unit tests for the shared application factory."""

import os
from decimal import Decimal
from unittest.mock import MagicMock, Mock, patch

import pytest
from fastapi import FastAPI

import dormdash_service.app_factory as factory
from dormdash_service.app_factory import (
    create_application,
    create_text_client,
    get_dynamodb_resource,
    get_fastapi_app,
)
from dormdash_service.services.generative_client import GenerativeTextClient


@pytest.mark.unit
class TestGetDynamoDBResource:
    """Tests for get_dynamodb_resource function."""

    def teardown_method(self) -> None:
        """Clear cached resources after each test."""
        factory._dynamodb_resource = None

    @patch.dict(os.environ, {"DYNAMODB_ENDPOINT": "", "AWS_REGION": "ap-south-1"}, clear=True)
    @patch("dormdash_service.app_factory.boto3.resource")
    def test_creates_aws_resource_when_no_endpoint(self, mock_boto3_resource: Mock) -> None:
        result = get_dynamodb_resource()

        mock_boto3_resource.assert_called_once_with("dynamodb", region_name="ap-south-1")
        assert result == mock_boto3_resource.return_value

    @patch.dict(
        os.environ,
        {
            "DYNAMODB_ENDPOINT": "http://localhost:8000",
            "AWS_ACCESS_KEY_ID": "test-key",
            "AWS_SECRET_ACCESS_KEY": "test-secret",
        },
        clear=True,
    )
    @patch("dormdash_service.app_factory.boto3.resource")
    def test_creates_local_resource_when_endpoint_provided(self, mock_boto3_resource: Mock) -> None:
        get_dynamodb_resource()

        mock_boto3_resource.assert_called_once_with(
            "dynamodb",
            endpoint_url="http://localhost:8000",
            region_name="us-east-1",
            aws_access_key_id="test-key",
            aws_secret_access_key="test-secret",
        )

    @patch.dict(os.environ, {}, clear=True)
    @patch("dormdash_service.app_factory.boto3.resource")
    def test_caches_resource_for_reuse(self, mock_boto3_resource: Mock) -> None:
        first = get_dynamodb_resource()
        second = get_dynamodb_resource()

        assert first is second
        mock_boto3_resource.assert_called_once()


@pytest.mark.unit
class TestCreateTextClient:
    """Tests for create_text_client function."""

    @patch.dict(os.environ, {}, clear=True)
    def test_returns_none_without_api_key(self) -> None:
        assert create_text_client() is None

    @patch.dict(os.environ, {"GENERATIVE_API_KEY": "gen-key", "GENERATIVE_MODEL": "gemini-pro"}, clear=True)
    def test_creates_client(self) -> None:
        client = create_text_client()

        assert isinstance(client, GenerativeTextClient)
        assert client.api_key == "gen-key"
        assert client.model == "gemini-pro"


@pytest.mark.unit
class TestCreateApplication:
    """Tests for create_application function."""

    @patch("dormdash_service.app_factory.setup_observability")
    @patch("dormdash_service.app_factory.configure_logging")
    @patch("dormdash_service.app_factory.get_dynamodb_resource")
    @patch("dormdash_service.app_factory.OrderRepository")
    @patch("dormdash_service.app_factory.RatingService")
    @patch("dormdash_service.app_factory.SessionRegistry")
    @patch("dormdash_service.app_factory.create_app")
    @patch.dict(
        os.environ,
        {
            "LOG_LEVEL": "DEBUG",
            "ENVIRONMENT": "dev",
            "IDENTITY_API_KEY": "web-key",
            "DYNAMODB_ORDERS_TABLE": "test-orders",
            "CART_TAX_RATE": "0.18",
            "RATING_TRANSACTION_MAX_ATTEMPTS": "7",
            "ORDER_STREAM_POLL_SECONDS": "0.5",
        },
        clear=True,
    )
    def test_creates_application_with_all_dependencies(
        self,
        mock_create_app: Mock,
        mock_session_registry: Mock,
        mock_rating_service: Mock,
        mock_order_repo: Mock,
        mock_get_dynamodb: Mock,
        mock_configure_logging: Mock,
        mock_setup_observability: Mock,
    ) -> None:
        mock_dynamodb = MagicMock()
        mock_get_dynamodb.return_value = mock_dynamodb
        mock_app = MagicMock(spec=FastAPI)
        mock_create_app.return_value = mock_app

        result = create_application()

        assert result == mock_app
        mock_configure_logging.assert_called_once_with("DEBUG")
        mock_order_repo.assert_called_once_with(dynamodb_resource=mock_dynamodb, table_name="test-orders")
        mock_session_registry.assert_called_once_with(tax_rate=Decimal("0.18"))
        assert mock_rating_service.call_args.kwargs["max_transaction_attempts"] == 7

        kwargs = mock_create_app.call_args.kwargs
        assert kwargs["sessions"] == mock_session_registry.return_value
        assert kwargs["stream_poll_seconds"] == 0.5
        assert kwargs["recommendation_service"].text_client is None
        mock_setup_observability.assert_called_once_with(mock_app, enable_exporters=True)

    @patch("dormdash_service.app_factory.configure_logging")
    @patch("dormdash_service.app_factory.get_dynamodb_resource")
    @patch.dict(os.environ, {"IDENTITY_API_KEY": ""}, clear=True)
    def test_raises_error_when_identity_key_missing(
        self, mock_get_dynamodb: Mock, mock_configure_logging: Mock
    ) -> None:
        mock_get_dynamodb.return_value = MagicMock()

        with pytest.raises(ValueError, match="IDENTITY_API_KEY must be set"):
            create_application()

    @patch("dormdash_service.app_factory.setup_observability")
    @patch("dormdash_service.app_factory.configure_logging")
    @patch("dormdash_service.app_factory.get_dynamodb_resource")
    @patch.dict(os.environ, {"IDENTITY_API_KEY": "web-key", "ENVIRONMENT": "test"}, clear=True)
    def test_builds_real_app_without_exporters_in_test(
        self,
        mock_get_dynamodb: Mock,
        mock_configure_logging: Mock,
        mock_setup_observability: Mock,
    ) -> None:
        mock_get_dynamodb.return_value = MagicMock()

        app = create_application()

        assert isinstance(app, FastAPI)
        assert app.state.sessions.tax_rate == Decimal("0.05")
        mock_setup_observability.assert_called_once_with(app, enable_exporters=False)


@pytest.mark.unit
class TestGetFastapiApp:
    """Tests for get_fastapi_app caching."""

    def teardown_method(self) -> None:
        factory._fastapi_app = None

    @patch("dormdash_service.app_factory.create_application")
    def test_caches_app(self, mock_create_application: Mock) -> None:
        first = get_fastapi_app()
        second = get_fastapi_app()

        assert first is second
        mock_create_application.assert_called_once()
