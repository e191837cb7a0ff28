"""Sign-up, sign-in and sign-out for the student and vendor apps."""

import logging
from datetime import UTC, datetime

from dormdash_service.auth.identity_client import IdentityClient
from dormdash_service.models.account_models import AccountRole, IdentityAccount, Student
from dormdash_service.models.result_models import ErrorKind, ServiceResult
from dormdash_service.models.vendor_models import Vendor
from dormdash_service.observability import traced
from dormdash_service.repositories.vendor_repositories import StudentRepository, VendorRepository
from dormdash_service.session.app_context import AppContext, SessionRegistry

logger = logging.getLogger(__name__)


def _filled(*values: str | None) -> bool:
    return all(value and value.strip() for value in values)


class AuthService:
    """Service for account lifecycle and sessions.

    Credentials are checked by the identity provider; a session is only
    opened once the matching student or vendor profile exists.
    """

    def __init__(
        self,
        identity_client: IdentityClient,
        student_repository: StudentRepository,
        vendor_repository: VendorRepository,
        sessions: SessionRegistry,
    ) -> None:
        """Initialize the AuthService.

        Args:
            identity_client: Client for the identity provider
            student_repository: Repository for student profiles
            vendor_repository: Repository for vendor profiles
            sessions: Registry holding open sessions
        """
        self.identity_client = identity_client
        self.student_repository = student_repository
        self.vendor_repository = vendor_repository
        self.sessions = sessions

    @traced("student_sign_up")
    async def sign_up_student(
        self,
        name: str,
        email: str,
        password: str,
        phone_number: str,
        college: str,
    ) -> ServiceResult[AppContext]:
        """Create a student account and profile, then sign in.

        Returns:
            ServiceResult with the new session's context
        """
        if not _filled(name, email, password, phone_number, college):
            return ServiceResult.fail(ErrorKind.VALIDATION, "Please fill in all fields.")

        created = await self.identity_client.sign_up(email.strip(), password)
        if not created.success or created.value is None:
            return ServiceResult.fail(
                created.error_kind or ErrorKind.REMOTE, created.error_message or "Signup failed"
            )

        account = created.value
        student = Student(
            student_id=account.uid,
            name=name.strip(),
            email=account.email,
            phone_number=phone_number.strip(),
            college=college.strip(),
            created_at=datetime.now(UTC),
        )
        if not self.student_repository.save_student(student):
            return ServiceResult.fail(ErrorKind.REMOTE, "Signup failed. Please try again.")

        logger.info(f"Registered student {account.uid}")
        return ServiceResult.ok(self.sessions.open(account, AccountRole.STUDENT))

    @traced("vendor_sign_up")
    async def sign_up_vendor(
        self,
        email: str,
        password: str,
        owner_name: str,
        restaurant_name: str,
        phone_number: str = "",
        location: str = "",
    ) -> ServiceResult[AppContext]:
        """Create a vendor account with a default profile, then sign in.

        Returns:
            ServiceResult with the new session's context
        """
        if not _filled(email, password, owner_name, restaurant_name):
            return ServiceResult.fail(ErrorKind.VALIDATION, "Please fill all required fields")

        created = await self.identity_client.sign_up(email.strip(), password)
        if not created.success or created.value is None:
            return ServiceResult.fail(
                created.error_kind or ErrorKind.REMOTE, created.error_message or "Signup failed"
            )

        account = created.value
        vendor = Vendor(
            vendor_id=account.uid,
            email=account.email,
            owner_name=owner_name.strip(),
            phone_number=phone_number.strip(),
            restaurant_name=restaurant_name.strip(),
            location=location.strip(),
            created_at=datetime.now(UTC),
        )
        if not self.vendor_repository.save_vendor(vendor):
            return ServiceResult.fail(ErrorKind.REMOTE, "Signup failed. Please try again.")

        logger.info(f"Registered vendor {account.uid}")
        return ServiceResult.ok(self.sessions.open(account, AccountRole.VENDOR))

    @traced("sign_in")
    async def sign_in(
        self, email: str, password: str, role: AccountRole
    ) -> ServiceResult[AppContext]:
        """Sign in to the student or vendor app.

        The account must have a profile for the requested role; otherwise no
        session is opened. A failed profile lookup is reported as a remote
        error, never as a missing profile.

        Args:
            email: Account email
            password: Account password
            role: App being signed in to

        Returns:
            ServiceResult with the session's context
        """
        if not _filled(email, password):
            return ServiceResult.fail(
                ErrorKind.VALIDATION, "Please fill in both email and password."
            )

        signed_in = await self.identity_client.sign_in(email.strip(), password)
        if not signed_in.success or signed_in.value is None:
            return ServiceResult.fail(
                signed_in.error_kind or ErrorKind.REMOTE, signed_in.error_message or "Login failed"
            )

        account = signed_in.value
        has_profile = self._has_profile(account, role)
        if has_profile is None:
            return ServiceResult.fail(
                ErrorKind.REMOTE, "Could not load your profile. Please try again."
            )

        if not has_profile:
            logger.warning(f"Account {account.uid} has no {role.value} profile, sign-in refused")
            return ServiceResult.fail(
                ErrorKind.AUTHORIZATION, f"This account is not registered as a {role.value}."
            )

        return ServiceResult.ok(self.sessions.open(account, role))

    def _has_profile(self, account: IdentityAccount, role: AccountRole) -> bool | None:
        if role == AccountRole.STUDENT:
            return self.student_repository.has_student(account.uid)
        return self.vendor_repository.has_vendor(account.uid)

    def sign_out(self, session_token: str) -> bool:
        """Close a session, tearing down its subscriptions and cart."""
        return self.sessions.close(session_token)

    def current_session(self, session_token: str | None) -> AppContext | None:
        if not session_token:
            return None
        return self.sessions.get(session_token)
