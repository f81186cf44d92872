"""Session store.

Holds the current identity of this process and related flags. State only
changes through messages (see ``messages.py``); listeners are notified
after each change, in subscription order.

Identity-mutating operations run inside ``serialized()`` so they apply in
submission order even when issued concurrently.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from typing import AsyncIterator, Awaitable, Callable, List, Optional

from domain.identity.core.entities.identity import Identity
from domain.identity.core.exceptions.identity_errors import (
    AccountStateError,
    IdentityDomainError,
)
from domain.identity.core.ports.identity_store import IIdentityStore
from domain.identity.core.value_objects.system_settings import SystemSettings

from application.identity.commands.authenticate import ResumeSessionCommand
from application.identity.session.messages import (
    BackendSelected,
    ErrorRaised,
    IdentityUpdated,
    LoggedOut,
    LoginSucceeded,
    SessionMessage,
    SettingsLoaded,
)

logger = logging.getLogger(__name__)

SessionListener = Callable[[SessionMessage], Awaitable[None]]


@dataclass(frozen=True)
class SessionState:
    """Snapshot of the session."""

    identity: Optional[Identity] = None
    session_id: Optional[str] = None
    settings: SystemSettings = field(default_factory=SystemSettings.defaults)
    backend: Optional[str] = None
    durable: bool = False
    fallback: bool = False
    error: Optional[IdentityDomainError] = None

    @property
    def is_authenticated(self) -> bool:
        return self.identity is not None


def reduce(state: SessionState, message: SessionMessage) -> SessionState:
    """Next state for ``message``. Pure."""
    if isinstance(message, LoginSucceeded):
        return replace(state, identity=message.identity, session_id=message.session_id, error=None)
    if isinstance(message, LoggedOut):
        return replace(state, identity=None, session_id=None)
    if isinstance(message, SettingsLoaded):
        return replace(state, settings=message.settings)
    if isinstance(message, IdentityUpdated):
        current = state.identity
        if current is None or current.identity_id != message.identity.identity_id:
            return state
        return replace(state, identity=message.identity)
    if isinstance(message, BackendSelected):
        return replace(
            state, backend=message.backend, durable=message.durable, fallback=message.fallback
        )
    if isinstance(message, ErrorRaised):
        return replace(state, error=message.error)
    raise TypeError(f"Unknown session message: {type(message).__name__}")


class SessionStore:
    """Current-identity holder for one process.

    Example:
        >>> session = SessionStore(store, durable=True)
        >>> await session.dispatch(LoginSucceeded(identity))
        >>> session.state.is_authenticated
        True
    """

    def __init__(self, store: IIdentityStore, durable: bool = True) -> None:
        self._store = store
        self._durable = durable
        self._state = SessionState()
        self._listeners: List[SessionListener] = []
        self._lock = asyncio.Lock()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def current_identity(self) -> Optional[Identity]:
        return self._state.identity

    @asynccontextmanager
    async def serialized(self) -> AsyncIterator[None]:
        """Run the enclosed identity mutation exclusively."""
        async with self._lock:
            yield

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a listener; returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def dispatch(self, message: SessionMessage) -> SessionState:
        """Apply ``message`` and notify listeners.

        A failing listener is logged and does not stop the others.
        """
        self._state = reduce(self._state, message)
        logger.debug(
            "Session message applied", extra={"session_message": type(message).__name__}
        )

        for listener in list(self._listeners):
            try:
                await listener(message)
            except Exception as e:
                logger.error(
                    "Session listener failed",
                    extra={
                        "session_message": type(message).__name__,
                        "listener": getattr(listener, "__name__", repr(listener)),
                        "error": str(e),
                    },
                    exc_info=True,
                )
        return self._state

    async def resume(self, identity_id: str, session_id: Optional[str] = None) -> Identity:
        """Re-establish the session for ``identity_id``.

        The stored record is gated again; an inactive or suspended identity
        ends up logged out.

        Raises:
            AuthenticationError: Unknown identity or expired session
            AccountStateError: Identity inactive or suspended
        """
        async with self.serialized():
            command = ResumeSessionCommand(self._store, durable=self._durable)
            try:
                identity = await command.execute(identity_id, session_id)
            except AccountStateError as e:
                await self.dispatch(LoggedOut(reason=e.reason))
                raise
            await self.dispatch(LoginSucceeded(identity, session_id))
            return identity
