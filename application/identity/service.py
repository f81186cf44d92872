"""Identity service facade.

Public entry point of the identity core. Every operation returns an
OperationResult; domain errors never cross this boundary. Unexpected
failures are logged with their traceback and reported as
ConnectivityError results.

Usage:
    from application.identity.service import IdentityService

    service = await IdentityService.create()
    result = await service.login("demo@mealtracker.com", "demo123")
    if result.ok:
        print(service.current_identity.role)
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, TypeVar, Union

from domain.identity.authorization import permissions
from domain.identity.core.entities.identity import Identity
from domain.identity.core.entities.subscription_event import SubscriptionEvent
from domain.identity.core.exceptions.identity_errors import (
    AccountStateError,
    AuthenticationError,
    AuthorizationError,
    ConnectivityError,
    IdentityDomainError,
)
from domain.identity.core.ports.identity_store import IIdentityStore
from domain.identity.core.value_objects.enums import (
    AccountStatus,
    RegistrationPolicy,
    Role,
    SubscriptionStatus,
)
from domain.shared.result import OperationResult
from infrastructure.config import get_registration_policy
from infrastructure.persistence.factory import get_identity_store
from infrastructure.security.password_hasher import PasswordHasher

from application.identity.commands.authenticate import AuthenticateCommand
from application.identity.commands.change_role import ChangeRoleCommand
from application.identity.commands.change_status import ChangeStatusCommand
from application.identity.commands.create_superadmin import CreateSuperadminCommand
from application.identity.commands.delete_account import DeleteAccountCommand
from application.identity.commands.reactivate_identity import (
    DEFAULT_REACTIVATION_REASON,
    ReactivateIdentityCommand,
)
from application.identity.commands.signup import SignupCommand
from application.identity.commands.suspend_identity import SuspendIdentityCommand
from application.identity.commands.update_profile import UpdateProfileCommand
from application.identity.queries.get_identity import GetIdentityQuery
from application.identity.queries.list_identities import ListIdentitiesQuery, SystemStatsQuery
from application.identity.queries.subscription_history import (
    DEFAULT_HISTORY_LIMIT,
    SubscriptionHistoryQuery,
)
from application.identity.session.messages import (
    BackendSelected,
    ErrorRaised,
    IdentityUpdated,
    LoggedOut,
    LoginSucceeded,
    SettingsLoaded,
)
from application.identity.session.session_store import SessionListener, SessionStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class IdentityService:
    """Facade over the session store and identity commands.

    Example:
        >>> service = IdentityService(InMemoryIdentityStore(), durable=False)
        >>> await service.start()
        >>> (await service.check_superadmin_exists()).value
        False
    """

    def __init__(
        self,
        store: IIdentityStore,
        durable: bool = True,
        fallback: bool = False,
        hasher: Optional[PasswordHasher] = None,
        policy: Optional[RegistrationPolicy] = None,
    ) -> None:
        self._store = store
        self._durable = durable
        self._fallback = fallback
        self._hasher = hasher or PasswordHasher()
        self._policy = policy or get_registration_policy()
        self._session = SessionStore(store, durable=durable)

    @classmethod
    async def create(
        cls,
        hasher: Optional[PasswordHasher] = None,
        policy: Optional[RegistrationPolicy] = None,
    ) -> "IdentityService":
        """Build the service on the process-wide store selection."""
        selection = await get_identity_store()
        service = cls(
            selection.store,
            durable=selection.durable,
            fallback=selection.fallback,
            hasher=hasher,
            policy=policy,
        )
        await service.start()
        return service

    async def start(self) -> None:
        """Publish the backend choice and load settings (best-effort)."""
        await self._session.dispatch(
            BackendSelected(
                self._store.backend_name, durable=self._durable, fallback=self._fallback
            )
        )
        await self._reload_settings()

    # ------------------------------------------------------------------
    # Session state
    # ------------------------------------------------------------------

    @property
    def session(self) -> SessionStore:
        return self._session

    @property
    def current_identity(self) -> Optional[Identity]:
        return self._session.current_identity

    @property
    def is_authenticated(self) -> bool:
        return self._session.state.is_authenticated

    @property
    def backend_name(self) -> str:
        return self._store.backend_name

    @property
    def demo_accounts_available(self) -> bool:
        return not self._durable or self._session.state.settings.demo_accounts_enabled

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Listen to session messages; returns an unsubscribe function."""
        return self._session.subscribe(listener)

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    async def login(self, identifier: str, secret: str) -> OperationResult[Identity]:
        async def action() -> Identity:
            async with self._session.serialized():
                command = AuthenticateCommand(self._store, self._hasher, durable=self._durable)
                outcome = await command.execute(identifier, secret)
                await self._session.dispatch(LoginSucceeded(outcome.identity, outcome.session_id))
                return outcome.identity

        return await self._run("login", action)

    async def logout(self) -> OperationResult[None]:
        """Sign out and close the current session so it cannot be resumed."""

        async def action() -> None:
            async with self._session.serialized():
                session_id = self._session.state.session_id
                if session_id is not None:
                    try:
                        await self._store.close_session(session_id)
                    except ConnectivityError as e:
                        logger.warning(
                            "Failed to close session on logout",
                            extra={"backend": self._store.backend_name, "error": str(e)},
                        )
                await self._session.dispatch(LoggedOut(reason="logout"))

        return await self._run("logout", action)

    async def resume_session(
        self, identity_id: str, session_id: Optional[str] = None
    ) -> OperationResult[Identity]:
        return await self._run(
            "resume_session", lambda: self._session.resume(identity_id, session_id)
        )

    async def signup(self, profile_data: Mapping[str, Any]) -> OperationResult[Identity]:
        """Register a user and sign them in."""

        async def action() -> Identity:
            async with self._session.serialized():
                command = SignupCommand(self._store, self._hasher, policy=self._policy)
                identity = await command.execute(profile_data)
                await self._sign_in(identity)
                return identity

        return await self._run("signup", action)

    async def create_superadmin(self, profile_data: Mapping[str, Any]) -> OperationResult[Identity]:
        """Bootstrap the superadmin and sign it in."""

        async def action() -> Identity:
            async with self._session.serialized():
                identity = await CreateSuperadminCommand(self._store, self._hasher).execute(
                    profile_data
                )
                await self._reload_settings()
                await self._sign_in(identity)
                return identity

        return await self._run("create_superadmin", action)

    async def check_superadmin_exists(self) -> OperationResult[bool]:
        async def action() -> bool:
            exists = await GetIdentityQuery(self._store, durable=self._durable).superadmin_exists()
            await self._reload_settings()
            return exists

        return await self._run("check_superadmin_exists", action)

    # ------------------------------------------------------------------
    # Account lifecycle
    # ------------------------------------------------------------------

    async def update_profile(self, patch: Mapping[str, Any]) -> OperationResult[Identity]:
        async def action() -> Identity:
            async with self._session.serialized():
                current = self._require_current()
                try:
                    identity = await UpdateProfileCommand(self._store).execute(
                        str(current.identity_id), patch
                    )
                except AccountStateError as e:
                    await self._session.dispatch(LoggedOut(reason=e.reason))
                    raise
                await self._session.dispatch(IdentityUpdated(identity))
                return identity

        return await self._run("update_profile", action)

    async def delete_account(self, identity_id: str) -> OperationResult[None]:
        """Delete ``identity_id``: self-deletion, or manage_users for others."""

        async def action() -> None:
            async with self._session.serialized():
                actor = self._require_current()
                await DeleteAccountCommand(self._store).execute(identity_id, actor=actor)
                if str(actor.identity_id) == identity_id:
                    await self._session.dispatch(LoggedOut(reason="deleted"))
                await self._reload_settings()

        return await self._run("delete_account", action)

    async def suspend_user(
        self, actor_id: str, target_id: str, reason: str
    ) -> OperationResult[Identity]:
        async def action() -> Identity:
            async with self._session.serialized():
                actor = await self._resolve_actor(actor_id)
                identity = await SuspendIdentityCommand(self._store).execute(
                    actor, target_id, reason
                )
                await self._after_target_change(identity)
                return identity

        return await self._run("suspend_user", action)

    async def reactivate_user(
        self, actor_id: str, target_id: str, reason: str = DEFAULT_REACTIVATION_REASON
    ) -> OperationResult[Identity]:
        async def action() -> Identity:
            async with self._session.serialized():
                actor = await self._resolve_actor(actor_id)
                identity = await ReactivateIdentityCommand(self._store).execute(
                    actor, target_id, reason
                )
                await self._after_target_change(identity)
                return identity

        return await self._run("reactivate_user", action)

    async def change_role(
        self, actor_id: str, target_id: str, role: Union[Role, str]
    ) -> OperationResult[Identity]:
        async def action() -> Identity:
            async with self._session.serialized():
                actor = await self._resolve_actor(actor_id)
                identity = await ChangeRoleCommand(self._store).execute(actor, target_id, role)
                await self._after_target_change(identity)
                return identity

        return await self._run("change_role", action)

    async def change_status(
        self, actor_id: str, target_id: str, status: Union[AccountStatus, str]
    ) -> OperationResult[Identity]:
        async def action() -> Identity:
            async with self._session.serialized():
                actor = await self._resolve_actor(actor_id)
                identity = await ChangeStatusCommand(self._store).execute(actor, target_id, status)
                await self._after_target_change(identity)
                return identity

        return await self._run("change_status", action)

    # ------------------------------------------------------------------
    # Administrative queries
    # ------------------------------------------------------------------

    async def list_identities(
        self,
        actor_id: Optional[str] = None,
        search: Optional[str] = None,
        role: Optional[Union[Role, str]] = None,
        subscription_status: Optional[Union[SubscriptionStatus, str]] = None,
    ) -> OperationResult[List[Identity]]:
        async def action() -> List[Identity]:
            actor = await self._resolve_actor(actor_id)
            return await ListIdentitiesQuery(self._store).execute(
                actor, search=search, role=role, subscription_status=subscription_status
            )

        return await self._run("list_identities", action)

    async def system_stats(self, actor_id: Optional[str] = None) -> OperationResult[Dict[str, int]]:
        async def action() -> Dict[str, int]:
            actor = await self._resolve_actor(actor_id)
            return await SystemStatsQuery(self._store).execute(actor)

        return await self._run("system_stats", action)

    async def subscription_history(
        self,
        actor_id: Optional[str] = None,
        user_id: Optional[str] = None,
        limit: Optional[int] = DEFAULT_HISTORY_LIMIT,
    ) -> OperationResult[List[SubscriptionEvent]]:
        async def action() -> List[SubscriptionEvent]:
            actor = await self._resolve_actor(actor_id)
            return await SubscriptionHistoryQuery(self._store).execute(
                actor, user_id=user_id, limit=limit
            )

        return await self._run("subscription_history", action)

    # ------------------------------------------------------------------
    # Permission checks (sync, current identity)
    # ------------------------------------------------------------------

    def has_role(self, role: Union[Role, str]) -> bool:
        return permissions.has_role(self.current_identity, role)

    def has_permission(self, token: str) -> bool:
        return permissions.has_permission(self.current_identity, token)

    def can_access_premium_features(self) -> bool:
        return permissions.can_access_premium_features(self.current_identity)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _run(self, operation: str, action: Callable[[], Awaitable[T]]) -> OperationResult[T]:
        try:
            return OperationResult.success(await action())
        except IdentityDomainError as e:
            logger.info(
                "Identity operation failed",
                extra={"operation": operation, "code": e.code, "error": e.message},
            )
            await self._report(e)
            return OperationResult.failure(e)
        except Exception as e:
            logger.error(
                "Unexpected error in identity operation",
                extra={"operation": operation, "backend": self._store.backend_name},
                exc_info=True,
            )
            error = ConnectivityError(f"{operation} failed: {e}")
            await self._report(error)
            return OperationResult.failure(error)

    async def _report(self, error: IdentityDomainError) -> None:
        await self._session.dispatch(ErrorRaised(error))

    def _require_current(self) -> Identity:
        current = self._session.current_identity
        if current is None:
            raise AuthenticationError("Not authenticated")
        return current

    async def _resolve_actor(self, actor_id: Optional[str]) -> Identity:
        """Actor for an administrative operation.

        The session copy is used when the actor is the current identity;
        otherwise the authoritative record is read. The actor must itself be
        allowed to hold a session.
        """
        current = self._session.current_identity
        if actor_id is None:
            actor = self._require_current()
        elif current is not None and str(current.identity_id) == actor_id:
            actor = current
        else:
            found = await GetIdentityQuery(self._store, durable=self._durable).by_id(actor_id)
            if found is None:
                raise AuthorizationError(actor_id, "known identity")
            actor = found
        actor.ensure_can_hold_session()
        return actor

    async def _after_target_change(self, identity: Identity) -> None:
        current = self._session.current_identity
        if current is None or current.identity_id != identity.identity_id:
            return
        if identity.can_hold_session:
            await self._session.dispatch(IdentityUpdated(identity))
        else:
            await self._session.dispatch(LoggedOut(reason=identity.gating_reason))

    async def _sign_in(self, identity: Identity) -> None:
        session_id = await self._store.open_session(str(identity.identity_id))
        await self._session.dispatch(LoginSucceeded(identity, session_id))

    async def _reload_settings(self) -> None:
        try:
            settings = await self._store.read_settings()
        except ConnectivityError as e:
            logger.warning(
                "Settings unavailable, keeping defaults",
                extra={"backend": self._store.backend_name, "error": str(e)},
            )
            return
        await self._session.dispatch(SettingsLoaded(settings))
