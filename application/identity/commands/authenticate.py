"""Authenticate and resume-session commands."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from domain.identity.core.demo_accounts import (
    find_demo_by_id,
    is_demo_id,
    match_demo_credentials,
)
from domain.identity.core.entities.identity import Identity
from domain.identity.core.exceptions.identity_errors import (
    AccountStateError,
    AuthenticationError,
    ConnectivityError,
)
from domain.identity.core.ports.identity_store import IIdentityStore
from domain.identity.core.value_objects.email import Email
from infrastructure.security.password_hasher import PasswordHasher

from application.identity.commands.support import demo_accounts_available

logger = logging.getLogger(__name__)

SESSION_EXPIRED = "Session expired. Please sign in again."


@dataclass(frozen=True)
class AuthenticatedIdentity:
    """Login outcome. ``session_id`` is None for demo identities."""

    identity: Identity
    session_id: Optional[str] = None


@dataclass
class AuthenticateCommand:
    """Verify credentials and open a session.

    Demo identities are tried first (when available), then the selected
    store. Account-state gating applies to both.

    Examples:
        >>> command = AuthenticateCommand(store, PasswordHasher())
        >>> result = await command.execute("demo@mealtracker.com", "demo123")
        >>> result.identity.is_demo
        True
    """

    store: IIdentityStore
    hasher: PasswordHasher
    durable: bool = True

    async def execute(self, identifier: str, secret: str) -> AuthenticatedIdentity:
        """Execute authentication.

        Args:
            identifier: Email as typed by the user
            secret: Password

        Returns:
            AuthenticatedIdentity (identity never carries a secret)

        Raises:
            AuthenticationError: Unknown identifier or wrong secret
            AccountStateError: Valid credentials, inactive or suspended account
            ConnectivityError: Store failure during lookup
        """
        if await demo_accounts_available(self.store, self.durable):
            demo = match_demo_credentials(identifier, secret)
            if demo is not None:
                demo.ensure_can_hold_session()
                logger.info(
                    "Demo login",
                    extra={"identity_id": str(demo.identity_id), "role": demo.role.value},
                )
                return AuthenticatedIdentity(identity=demo)

        try:
            email = Email(identifier)
        except ValueError:
            raise AuthenticationError() from None

        identity = await self.store.find_by_email(email.value)
        if identity is None:
            logger.info("Login failed: unknown identifier")
            raise AuthenticationError()

        secret_hash = await self.store.get_secret_hash(str(identity.identity_id))
        if not self.hasher.verify(secret, secret_hash):
            logger.info(
                "Login failed: wrong secret",
                extra={"identity_id": str(identity.identity_id)},
            )
            raise AuthenticationError()

        try:
            identity.ensure_can_hold_session()
        except AccountStateError as e:
            logger.info(
                "Login refused by account state",
                extra={"identity_id": str(identity.identity_id), "reason": e.reason},
            )
            raise

        identity_id = str(identity.identity_id)
        try:
            await self.store.touch_last_login(identity_id, datetime.now(timezone.utc))
        except ConnectivityError as e:
            logger.warning(
                "Failed to record last login",
                extra={"identity_id": identity_id, "error": str(e)},
            )

        session_id = await self.store.open_session(identity_id)
        current = await self._recheck(identity_id, session_id)
        logger.info(
            "Login succeeded",
            extra={"identity_id": identity_id, "backend": self.store.backend_name},
        )
        return AuthenticatedIdentity(identity=current, session_id=session_id)

    async def _recheck(self, identity_id: str, session_id: str) -> Identity:
        """Re-read and re-gate the identity once its session is open.

        A suspension or deletion that landed after the first read closes the
        new session. One that lands later invalidates it itself.
        """
        current = await self.store.find_by_id(identity_id)
        if current is None:
            await self.store.close_session(session_id)
            logger.info("Login failed: identity removed during login")
            raise AuthenticationError()

        reason = current.gating_reason
        if reason is None:
            return current

        await self.store.close_session(session_id)
        logger.info(
            "Login refused: account state changed during login",
            extra={"identity_id": identity_id, "reason": reason},
        )
        raise AccountStateError(reason)


@dataclass
class ResumeSessionCommand:
    """Re-establish a session from a stored identity id and session id.

    The authoritative record is re-read and gated again, so an identity
    suspended or deactivated since the last login cannot resume. Real
    accounts also need the exact session id handed out at login, still
    open; demo identities have no session rows.
    """

    store: IIdentityStore
    durable: bool = True

    async def execute(self, identity_id: str, session_id: Optional[str] = None) -> Identity:
        """
        Raises:
            AuthenticationError: Unknown identity or session no longer valid
            AccountStateError: Identity inactive or suspended
        """
        if is_demo_id(identity_id):
            demo = find_demo_by_id(identity_id)
            if demo is None or not await demo_accounts_available(self.store, self.durable):
                raise AuthenticationError(SESSION_EXPIRED)
            return demo

        identity = await self.store.find_by_id(identity_id)
        if identity is None:
            raise AuthenticationError(SESSION_EXPIRED)

        try:
            identity.ensure_can_hold_session()
        except AccountStateError:
            await self.store.invalidate_sessions(identity_id)
            raise

        if session_id is None or not await self.store.has_session(identity_id, session_id):
            raise AuthenticationError(SESSION_EXPIRED)

        return identity
