"""Unit tests for IdentityClient."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from dormdash_service.auth.identity_client import IdentityClient
from dormdash_service.models.result_models import ErrorKind


def _error_response(status_code: int, message: str) -> httpx.Response:
    request = httpx.Request("POST", "https://id.test.com/v1/accounts:signUp")
    return httpx.Response(status_code, json={"error": {"code": status_code, "message": message}}, request=request)


@pytest.mark.unit
class TestIdentityClient:
    """Test suite for IdentityClient."""

    @pytest.fixture
    def client(self) -> IdentityClient:
        return IdentityClient(api_key="web-key", base_url="https://id.test.com")

    @pytest.mark.asyncio
    async def test_sign_up_success(self, client: IdentityClient) -> None:
        mock_response = MagicMock()
        mock_response.json.return_value = {
            "localId": "uid_1",
            "email": "ravi@campus.edu",
            "idToken": "id-token",
            "refreshToken": "refresh-token",
        }
        mock_post = AsyncMock(return_value=mock_response)

        with patch("httpx.AsyncClient.post", mock_post):
            result = await client.sign_up("ravi@campus.edu", "secret1")

        assert result.success
        assert result.value.uid == "uid_1"
        assert result.value.id_token == "id-token"
        args, kwargs = mock_post.call_args
        assert args[0] == "https://id.test.com/v1/accounts:signUp"
        assert kwargs["params"] == {"key": "web-key"}
        assert kwargs["json"] == {
            "email": "ravi@campus.edu",
            "password": "secret1",
            "returnSecureToken": True,
        }

    @pytest.mark.asyncio
    async def test_sign_in_uses_password_endpoint(self, client: IdentityClient) -> None:
        mock_response = MagicMock()
        mock_response.json.return_value = {"localId": "uid_1", "idToken": "t"}
        mock_post = AsyncMock(return_value=mock_response)

        with patch("httpx.AsyncClient.post", mock_post):
            result = await client.sign_in("ravi@campus.edu", "secret1")

        assert result.value.email == "ravi@campus.edu"
        assert mock_post.call_args[0][0] == "https://id.test.com/v1/accounts:signInWithPassword"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("message", "kind", "text"),
        [
            ("EMAIL_EXISTS", ErrorKind.VALIDATION, "An account with this email already exists."),
            (
                "WEAK_PASSWORD : Password should be at least 6 characters",
                ErrorKind.VALIDATION,
                "Password should be at least 6 characters.",
            ),
            ("INVALID_LOGIN_CREDENTIALS", ErrorKind.UNAUTHENTICATED, "Invalid email or password."),
            ("USER_DISABLED", ErrorKind.AUTHORIZATION, "This account has been disabled."),
            ("SOMETHING_NEW", ErrorKind.REMOTE, "Authentication failed. Please try again."),
        ],
    )
    async def test_provider_errors_are_mapped(
        self, client: IdentityClient, message: str, kind: ErrorKind, text: str
    ) -> None:
        with patch(
            "httpx.AsyncClient.post",
            new_callable=AsyncMock,
            return_value=_error_response(400, message),
        ):
            result = await client.sign_up("ravi@campus.edu", "secret1")

        assert not result.success
        assert result.error_kind == kind
        assert result.error_message == text

    @pytest.mark.asyncio
    async def test_network_error(self, client: IdentityClient) -> None:
        with patch(
            "httpx.AsyncClient.post",
            new_callable=AsyncMock,
            side_effect=httpx.RequestError("Connection failed", request=MagicMock()),
        ):
            result = await client.sign_in("ravi@campus.edu", "secret1")

        assert result.error_kind == ErrorKind.REMOTE

    @pytest.mark.asyncio
    async def test_non_json_success_body(self, client: IdentityClient) -> None:
        request = httpx.Request("POST", "https://id.test.com/v1/accounts:signInWithPassword")
        html = httpx.Response(200, text="<html>maintenance</html>", request=request)

        with patch("httpx.AsyncClient.post", new_callable=AsyncMock, return_value=html):
            result = await client.sign_in("ravi@campus.edu", "secret1")

        assert not result.success
        assert result.error_kind == ErrorKind.REMOTE
        assert result.error_message == "Authentication failed. Please try again."

    @pytest.mark.asyncio
    async def test_success_body_without_account_id(self, client: IdentityClient) -> None:
        mock_response = MagicMock()
        mock_response.json.return_value = {"email": "ravi@campus.edu", "idToken": "t"}

        with patch("httpx.AsyncClient.post", new_callable=AsyncMock, return_value=mock_response):
            result = await client.sign_up("ravi@campus.edu", "secret1")

        assert not result.success
        assert result.error_kind == ErrorKind.REMOTE
