"""Identity store port (interface)."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, List, Optional

from domain.identity.core.entities.identity import Identity
from domain.identity.core.entities.subscription_event import SubscriptionEvent
from domain.identity.core.value_objects.enums import Role
from domain.identity.core.value_objects.system_settings import SystemSettings


class IIdentityStore(ABC):
    """Persistence adapter for identities, settings and the audit log.

    Both the durable (MongoDB) and the ephemeral (in-memory) backends
    implement this contract with identical shape, so no caller ever branches
    on the backend type.

    Implementations must:
    - store emails normalized and reject duplicates with ConflictError
    - return detached copies (callers cannot mutate stored state)
    - keep the subscription log append-only
    - implement compare_and_set_setting atomically

    Examples:
        >>> store = InMemoryIdentityStore()
        >>> await store.initialize()
        >>> await store.insert(identity, secret_hash)
        >>> found = await store.find_by_email("a@b.com")
    """

    #: Human readable backend name used in logs and session state.
    backend_name: str = "abstract"

    # ------------------------------------------------------------------
    # Connectivity
    # ------------------------------------------------------------------

    @abstractmethod
    async def ping(self) -> None:
        """Lightweight heartbeat read.

        Raises:
            ConnectivityError: If the backend cannot be reached
        """
        pass

    @abstractmethod
    async def initialize(self) -> None:
        """Create default settings (and indexes where supported) if absent."""
        pass

    # ------------------------------------------------------------------
    # Identities
    # ------------------------------------------------------------------

    @abstractmethod
    async def find_by_email(self, email: str) -> Optional[Identity]:
        """Find identity by email (normalized before lookup).

        Returns:
            Identity copy if found, None otherwise
        """
        pass

    @abstractmethod
    async def find_by_id(self, identity_id: str) -> Optional[Identity]:
        """Find identity by id.

        Returns:
            Identity copy if found, None otherwise
        """
        pass

    @abstractmethod
    async def insert(self, identity: Identity, secret_hash: str) -> None:
        """Insert a new identity with its password hash.

        Raises:
            ConflictError: Email already used ("email_exists"), or a second
                superadmin rejected by the storage layer ("superadmin_exists")
        """
        pass

    @abstractmethod
    async def update(self, identity: Identity) -> None:
        """Replace the stored record (secret and last_login untouched).

        Raises:
            NotFoundError: If the identity does not exist
        """
        pass

    @abstractmethod
    async def update_if_unchanged(self, identity: Identity, expected: Identity) -> bool:
        """Replace the stored record only if its account state is still ``expected``'s.

        Account state is role, status and subscription_status. Used by every
        command that changes an identity after reading it, so a stale read
        can never undo a suspension or deactivation.

        Returns:
            True if written, False if the record changed meanwhile or is gone

        Raises:
            ConflictError: Email already used by another identity
        """
        pass

    @abstractmethod
    async def touch_last_login(self, identity_id: str, at: datetime) -> None:
        """Set ``last_login`` only. Unknown ids are ignored."""
        pass

    @abstractmethod
    async def delete(self, identity_id: str) -> bool:
        """Delete identity and its secret.

        Returns:
            True if a record was removed, False if it did not exist
        """
        pass

    @abstractmethod
    async def list_by_role(self, role: Role) -> List[Identity]:
        """All identities holding ``role``."""
        pass

    @abstractmethod
    async def list_all(self) -> List[Identity]:
        """All identities, newest first."""
        pass

    @abstractmethod
    async def get_secret_hash(self, identity_id: str) -> Optional[str]:
        """Stored password hash, never exposed outside the authenticator."""
        pass

    @abstractmethod
    async def delete_dependent_records(self, identity_id: str) -> int:
        """Delete data owned by the identity (meals, favorites).

        Returns:
            Number of removed records
        """
        pass

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    @abstractmethod
    async def read_settings(self) -> SystemSettings:
        pass

    @abstractmethod
    async def write_setting(self, key: str, value: Any) -> None:
        pass

    @abstractmethod
    async def compare_and_set_setting(self, key: str, expected: Any, value: Any) -> bool:
        """Atomically set ``key`` to ``value`` only if it currently equals ``expected``.

        Returns:
            True if the write happened, False if the current value differed
        """
        pass

    # ------------------------------------------------------------------
    # Subscription audit log
    # ------------------------------------------------------------------

    @abstractmethod
    async def append_subscription_event(self, event: SubscriptionEvent) -> None:
        pass

    @abstractmethod
    async def list_subscription_events(
        self, user_id: Optional[str] = None, limit: Optional[int] = None
    ) -> List[SubscriptionEvent]:
        """Audit rows, newest first, optionally for one identity."""
        pass

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    @abstractmethod
    async def open_session(self, identity_id: str) -> str:
        """Register an active session for the identity.

        Returns:
            Session id
        """
        pass

    @abstractmethod
    async def invalidate_sessions(self, identity_id: str) -> int:
        """Terminate every active session of the identity.

        Returns:
            Number of terminated sessions
        """
        pass

    @abstractmethod
    async def has_active_session(self, identity_id: str) -> bool:
        pass

    @abstractmethod
    async def has_session(self, identity_id: str, session_id: str) -> bool:
        """Whether ``session_id`` is an open session of ``identity_id``."""
        pass

    @abstractmethod
    async def close_session(self, session_id: str) -> bool:
        """End one session.

        Returns:
            True if the session was open
        """
        pass

    async def close(self) -> None:
        """Release backend resources (no-op by default)."""
        return None
