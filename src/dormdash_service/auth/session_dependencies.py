"""FastAPI dependencies for session authentication.

Provides dependency functions resolving the X-Session-Token header to the
caller's AppContext.
"""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request

from dormdash_service.models.account_models import AccountRole
from dormdash_service.session.app_context import AppContext, SessionRegistry


def resolve_session(
    x_session_token: str | None,
    sessions: SessionRegistry,
) -> AppContext:
    """Resolve a session token to its context.

    Args:
        x_session_token: Token from the X-Session-Token header
        sessions: Registry of open sessions

    Returns:
        AppContext: Context of the signed-in caller

    Raises:
        HTTPException: 401 if the token is missing or unknown
    """
    if not x_session_token:
        raise HTTPException(status_code=401, detail="Missing session token")

    context = sessions.get(x_session_token)
    if context is None:
        raise HTTPException(status_code=401, detail="Invalid or expired session")

    return context


def get_app_context(
    request: Request,
    x_session_token: Annotated[str | None, Header()] = None,
) -> AppContext:
    """FastAPI dependency for any signed-in caller."""
    return resolve_session(x_session_token, request.app.state.sessions)


def require_student(context: Annotated[AppContext, Depends(get_app_context)]) -> AppContext:
    """FastAPI dependency for student-only endpoints.

    Raises:
        HTTPException: 403 if the caller is signed in as a vendor
    """
    if context.session.role != AccountRole.STUDENT:
        raise HTTPException(status_code=403, detail="Student account required")
    return context


def require_vendor(context: Annotated[AppContext, Depends(get_app_context)]) -> AppContext:
    """FastAPI dependency for vendor dashboard endpoints.

    Raises:
        HTTPException: 403 if the caller is signed in as a student
    """
    if context.session.role != AccountRole.VENDOR:
        raise HTTPException(status_code=403, detail="Vendor account required")
    return context
