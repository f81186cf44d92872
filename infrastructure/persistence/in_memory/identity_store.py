"""In-memory implementation of IIdentityStore.

Ephemeral fallback backend: used when the durable store is unreachable and
in tests. Data is lost when the process stops.
"""

import asyncio
import logging
import uuid
from copy import deepcopy
from datetime import datetime
from typing import Any, Dict, List, Optional, Set, Tuple

from domain.identity.core.entities.identity import Identity
from domain.identity.core.entities.subscription_event import SubscriptionEvent
from domain.identity.core.exceptions.identity_errors import ConflictError, NotFoundError
from domain.identity.core.ports.identity_store import IIdentityStore
from domain.identity.core.value_objects.email import Email
from domain.identity.core.value_objects.enums import AccountStatus, Role, SubscriptionStatus
from domain.identity.core.value_objects.system_settings import (
    DEFAULT_SETTINGS,
    SystemSettings,
)

logger = logging.getLogger(__name__)

DEPENDENT_COLLECTIONS = ("meals", "favorites")


class InMemoryIdentityStore(IIdentityStore):
    """
    In-memory identity store.

    Uses dictionaries keyed by identity id. Every read returns a deep copy
    so callers cannot mutate stored state. Writes that must be atomic
    (insert uniqueness checks, compare-and-set) run under an asyncio.Lock.

    Examples:
        >>> store = InMemoryIdentityStore()
        >>> await store.initialize()
        >>> await store.insert(identity, "hash")
        >>> (await store.find_by_email("A@B.com")).identity_id == identity.identity_id
        True
    """

    backend_name = "inmemory"

    def __init__(self) -> None:
        """Initialize empty storage."""
        self._identities: Dict[str, Identity] = {}
        self._secrets: Dict[str, str] = {}
        self._settings: Dict[str, Any] = {}
        self._events: List[SubscriptionEvent] = []
        self._sessions: Dict[str, Set[str]] = {}
        self._dependents: Dict[str, Dict[str, List[Dict[str, Any]]]] = {
            name: {} for name in DEPENDENT_COLLECTIONS
        }
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Connectivity
    # ------------------------------------------------------------------

    async def ping(self) -> None:
        """Always reachable."""
        return None

    async def initialize(self) -> None:
        async with self._lock:
            for key, value in DEFAULT_SETTINGS.items():
                self._settings.setdefault(key, value)

    # ------------------------------------------------------------------
    # Identities
    # ------------------------------------------------------------------

    async def find_by_email(self, email: str) -> Optional[Identity]:
        normalized = Email.normalize(email)
        for identity in self._identities.values():
            if identity.email.value == normalized:
                return deepcopy(identity)
        return None

    async def find_by_id(self, identity_id: str) -> Optional[Identity]:
        identity = self._identities.get(identity_id)
        return deepcopy(identity) if identity else None

    async def insert(self, identity: Identity, secret_hash: str) -> None:
        async with self._lock:
            key = str(identity.identity_id)
            if any(
                existing.email == identity.email for existing in self._identities.values()
            ):
                raise ConflictError("email_exists")
            if identity.role == Role.SUPERADMIN and any(
                existing.role == Role.SUPERADMIN for existing in self._identities.values()
            ):
                raise ConflictError("superadmin_exists")
            if key in self._identities:
                raise ConflictError("identity_exists")

            self._identities[key] = deepcopy(identity)
            self._secrets[key] = secret_hash

        logger.debug("Identity inserted", extra={"identity_id": key, "backend": self.backend_name})

    async def update(self, identity: Identity) -> None:
        key = str(identity.identity_id)
        async with self._lock:
            if key not in self._identities:
                raise NotFoundError(key)
            self._replace(key, identity)

    async def update_if_unchanged(self, identity: Identity, expected: Identity) -> bool:
        key = str(identity.identity_id)
        async with self._lock:
            stored = self._identities.get(key)
            if stored is None or _account_state(stored) != _account_state(expected):
                return False
            self._replace(key, identity)
            return True

    async def touch_last_login(self, identity_id: str, at: datetime) -> None:
        async with self._lock:
            stored = self._identities.get(identity_id)
            if stored is not None:
                stored.last_login = at

    def _replace(self, key: str, identity: Identity) -> None:
        """Store ``identity`` keeping the stored last_login. Caller holds the lock."""
        if any(
            existing.email == identity.email and existing_id != key
            for existing_id, existing in self._identities.items()
        ):
            raise ConflictError("email_exists")
        replacement = deepcopy(identity)
        replacement.last_login = self._identities[key].last_login
        self._identities[key] = replacement

    async def delete(self, identity_id: str) -> bool:
        async with self._lock:
            removed = self._identities.pop(identity_id, None)
            self._secrets.pop(identity_id, None)
        return removed is not None

    async def list_by_role(self, role: Role) -> List[Identity]:
        return [deepcopy(i) for i in self._identities.values() if i.role == role]

    async def list_all(self) -> List[Identity]:
        identities = sorted(self._identities.values(), key=lambda i: i.created_at, reverse=True)
        return [deepcopy(i) for i in identities]

    async def get_secret_hash(self, identity_id: str) -> Optional[str]:
        return self._secrets.get(identity_id)

    # ------------------------------------------------------------------
    # Dependent data
    # ------------------------------------------------------------------

    def add_dependent_record(
        self, identity_id: str, collection: str, record: Dict[str, Any]
    ) -> None:
        """Attach a record owned by ``identity_id`` (meals, favorites).

        Collaborators outside the identity core own this data; the store
        only needs it to honour cascading deletion.
        """
        if collection not in self._dependents:
            raise ValueError(f"Unknown dependent collection: {collection}")
        self._dependents[collection].setdefault(identity_id, []).append(dict(record))

    def count_dependent_records(self, identity_id: str) -> int:
        return sum(len(records.get(identity_id, [])) for records in self._dependents.values())

    async def delete_dependent_records(self, identity_id: str) -> int:
        removed = 0
        async with self._lock:
            for records in self._dependents.values():
                removed += len(records.pop(identity_id, []))
        return removed

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    async def read_settings(self) -> SystemSettings:
        return SystemSettings.from_mapping(self._settings)

    async def write_setting(self, key: str, value: Any) -> None:
        async with self._lock:
            self._settings[key] = value

    async def compare_and_set_setting(self, key: str, expected: Any, value: Any) -> bool:
        async with self._lock:
            current = self._settings.get(key, DEFAULT_SETTINGS.get(key))
            if current != expected:
                return False
            self._settings[key] = value
            return True

    # ------------------------------------------------------------------
    # Subscription audit log
    # ------------------------------------------------------------------

    async def append_subscription_event(self, event: SubscriptionEvent) -> None:
        self._events.append(event)

    async def list_subscription_events(
        self, user_id: Optional[str] = None, limit: Optional[int] = None
    ) -> List[SubscriptionEvent]:
        events = [e for e in self._events if user_id is None or e.user_id == user_id]
        events = list(reversed(events))
        return events[:limit] if limit else events

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def open_session(self, identity_id: str) -> str:
        session_id = str(uuid.uuid4())
        self._sessions.setdefault(identity_id, set()).add(session_id)
        return session_id

    async def invalidate_sessions(self, identity_id: str) -> int:
        return len(self._sessions.pop(identity_id, set()))

    async def has_active_session(self, identity_id: str) -> bool:
        return bool(self._sessions.get(identity_id))

    async def has_session(self, identity_id: str, session_id: str) -> bool:
        return session_id in self._sessions.get(identity_id, set())

    async def close_session(self, session_id: str) -> bool:
        for identity_id, sessions in list(self._sessions.items()):
            if session_id in sessions:
                sessions.discard(session_id)
                if not sessions:
                    del self._sessions[identity_id]
                return True
        return False

    # ------------------------------------------------------------------
    # Test helpers
    # ------------------------------------------------------------------

    def clear(self) -> None:
        """Clear all state. Useful for test cleanup."""
        self._identities.clear()
        self._secrets.clear()
        self._settings.clear()
        self._events.clear()
        self._sessions.clear()
        for records in self._dependents.values():
            records.clear()

    def count(self) -> int:
        """Number of stored identities."""
        return len(self._identities)


def _account_state(identity: Identity) -> Tuple[Role, AccountStatus, SubscriptionStatus]:
    return identity.role, identity.status, identity.subscription_status
