"""Client for the hosted identity provider's email/password REST API."""

import logging
from typing import Any

import httpx

from dormdash_service.models.account_models import IdentityAccount
from dormdash_service.models.result_models import ErrorKind, ServiceResult

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://identitytoolkit.googleapis.com"

# Provider error codes mapped to user-facing failures
PROVIDER_ERRORS: dict[str, tuple[ErrorKind, str]] = {
    "EMAIL_EXISTS": (ErrorKind.VALIDATION, "An account with this email already exists."),
    "INVALID_EMAIL": (ErrorKind.VALIDATION, "Please enter a valid email address."),
    "WEAK_PASSWORD": (ErrorKind.VALIDATION, "Password should be at least 6 characters."),
    "MISSING_PASSWORD": (ErrorKind.VALIDATION, "Please enter a password."),
    "EMAIL_NOT_FOUND": (ErrorKind.UNAUTHENTICATED, "Invalid email or password."),
    "INVALID_PASSWORD": (ErrorKind.UNAUTHENTICATED, "Invalid email or password."),
    "INVALID_LOGIN_CREDENTIALS": (ErrorKind.UNAUTHENTICATED, "Invalid email or password."),
    "USER_DISABLED": (ErrorKind.AUTHORIZATION, "This account has been disabled."),
    "TOO_MANY_ATTEMPTS_TRY_LATER": (
        ErrorKind.REMOTE,
        "Too many attempts. Please try again later.",
    ),
}


def _provider_error_code(response: httpx.Response) -> str:
    try:
        message = response.json().get("error", {}).get("message", "")
    except ValueError:
        return ""
    # Messages look like "WEAK_PASSWORD : Password should be at least 6 characters"
    return str(message).split(" ")[0].strip()


class IdentityClient:
    """HTTP client for email/password sign-up and sign-in.

    Talks to the accounts:signUp and accounts:signInWithPassword endpoints
    and turns provider errors into failed ServiceResults.
    """

    def __init__(self, api_key: str, base_url: str = DEFAULT_BASE_URL) -> None:
        """Initialize the identity client.

        Args:
            api_key: Web API key of the identity project
            base_url: Base URL of the identity REST API
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")

    async def sign_up(self, email: str, password: str) -> ServiceResult[IdentityAccount]:
        """Create an email/password account.

        Args:
            email: Account email
            password: Account password

        Returns:
            ServiceResult with the new, signed-in account
        """
        return await self._call("accounts:signUp", email, password)

    async def sign_in(self, email: str, password: str) -> ServiceResult[IdentityAccount]:
        """Sign in with email and password.

        Args:
            email: Account email
            password: Account password

        Returns:
            ServiceResult with the signed-in account
        """
        return await self._call("accounts:signInWithPassword", email, password)

    async def _call(
        self, endpoint: str, email: str, password: str
    ) -> ServiceResult[IdentityAccount]:
        url = f"{self.base_url}/v1/{endpoint}"
        payload = {"email": email, "password": password, "returnSecureToken": True}

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(url, params={"key": self.api_key}, json=payload)
                response.raise_for_status()
                data: dict[str, Any] = response.json()

            account = IdentityAccount(
                uid=data["localId"],
                email=data.get("email", email),
                id_token=data.get("idToken", ""),
                refresh_token=data.get("refreshToken"),
            )

        except httpx.HTTPStatusError as e:
            code = _provider_error_code(e.response)
            logger.warning(f"Identity provider rejected {endpoint} for {email}: {code or e}")
            kind, message = PROVIDER_ERRORS.get(
                code, (ErrorKind.REMOTE, "Authentication failed. Please try again.")
            )
            return ServiceResult.fail(kind, message)

        except httpx.RequestError as e:
            logger.error(f"Identity provider unreachable for {endpoint}: {e}")
            return ServiceResult.fail(
                ErrorKind.REMOTE, "Authentication failed. Please try again."
            )

        except (ValueError, KeyError, TypeError) as e:
            # 2xx body that is not JSON or carries no account id
            logger.error(f"Identity provider returned an unusable {endpoint} response: {e!r}")
            return ServiceResult.fail(
                ErrorKind.REMOTE, "Authentication failed. Please try again."
            )

        return ServiceResult.ok(account)
