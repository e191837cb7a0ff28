"""Per-session application context and the registry that owns them.

A context bundles everything a signed-in client holds: its session, its cart
and its live subscriptions. It is created on sign-in and torn down on sign-out;
the registry itself lives for the whole process and closes every context on
shutdown.

Contexts exist only in this process, so a deployment must route every request
of a session to the same process (the single uvicorn server).
"""

import logging
import secrets
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from dormdash_service.models.account_models import AccountRole, AuthSession, IdentityAccount
from dormdash_service.observability.metrics import record_session_change
from dormdash_service.services.cart import DEFAULT_TAX_RATE, Cart

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """State owned by one signed-in session.

    Attributes:
        session: The signed-in session
        cart: In-memory cart (only used by student sessions)
        subscriptions: Live subscriptions to close on teardown
    """

    session: AuthSession
    cart: Cart
    subscriptions: list[Any] = field(default_factory=list)
    closed: bool = False

    def track(self, subscription: Any) -> Any:
        """Register a subscription (anything with close()) for teardown."""
        self.subscriptions.append(subscription)
        return subscription

    def untrack(self, subscription: Any) -> None:
        if subscription in self.subscriptions:
            self.subscriptions.remove(subscription)

    def close(self) -> None:
        """Tear down: close every live subscription and empty the cart."""
        if self.closed:
            return

        for subscription in self.subscriptions:
            subscription.close()

        self.subscriptions.clear()
        self.cart.clear()
        self.closed = True


class SessionRegistry:
    """Owns the contexts of all signed-in sessions, keyed by session token."""

    def __init__(self, tax_rate: Decimal = DEFAULT_TAX_RATE) -> None:
        """Initialize an empty registry.

        Args:
            tax_rate: Tax rate for carts of new sessions
        """
        self.tax_rate = tax_rate
        self._contexts: dict[str, AppContext] = {}

    def __len__(self) -> int:
        return len(self._contexts)

    def open(self, account: IdentityAccount, role: AccountRole) -> AppContext:
        """Open a session for a signed-in account.

        Args:
            account: Account returned by the identity provider
            role: App the account signed in to

        Returns:
            AppContext: The new session's context
        """
        session = AuthSession(
            session_token=secrets.token_urlsafe(32),
            uid=account.uid,
            email=account.email,
            role=role,
            id_token=account.id_token,
            created_at=datetime.now(UTC),
        )
        context = AppContext(session=session, cart=Cart(tax_rate=self.tax_rate))
        self._contexts[session.session_token] = context
        record_session_change(1)

        logger.info(f"Opened {role.value} session for {account.uid}")
        return context

    def get(self, session_token: str) -> AppContext | None:
        return self._contexts.get(session_token)

    def close(self, session_token: str) -> bool:
        """Close a session and tear down its context.

        Returns:
            bool: True if a session was closed, False if the token was unknown
        """
        context = self._contexts.pop(session_token, None)
        if context is None:
            return False

        context.close()
        record_session_change(-1)

        logger.info(f"Closed session for {context.session.uid}")
        return True

    def close_all(self) -> None:
        """Close every open session (process shutdown)."""
        for token in list(self._contexts):
            self.close(token)
