"""Shared test fixtures.

Loads .env (if present) and provides an initialized in-memory identity
store, a fast password hasher and helpers to seed identities.
"""

from pathlib import Path
from typing import Any, Awaitable, Callable

import pytest
import pytest_asyncio
from dotenv import load_dotenv

from domain.identity.core.entities.identity import Identity
from domain.identity.core.value_objects.email import Email
from domain.identity.core.value_objects.enums import Role
from infrastructure.persistence.factory import reset_identity_store
from infrastructure.persistence.in_memory.identity_store import InMemoryIdentityStore
from infrastructure.security.password_hasher import PasswordHasher

# Load .env first (default environment variables)
env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)

DEFAULT_PASSWORD = "secret123"


@pytest_asyncio.fixture
async def store() -> InMemoryIdentityStore:
    """Initialized in-memory store with default settings."""
    store = InMemoryIdentityStore()
    await store.initialize()
    return store


@pytest.fixture
def hasher() -> PasswordHasher:
    """Hasher with few iterations to keep tests fast."""
    return PasswordHasher(iterations=1000)


@pytest.fixture
def register(
    store: InMemoryIdentityStore, hasher: PasswordHasher
) -> Callable[..., Awaitable[Identity]]:
    """Insert an identity directly into the store.

    Bypasses commands, so a superadmin seeded this way does not set the
    ``superadmin_exists`` flag.
    """

    async def _register(
        email: str,
        password: str = DEFAULT_PASSWORD,
        role: Role = Role.USER,
        **profile: Any,
    ) -> Identity:
        name = profile.pop("name", "")
        identity = Identity.register(Email(email), name=name, role=role, profile=profile)
        await store.insert(identity, hasher.hash(password))
        return identity

    return _register


@pytest.fixture(autouse=True)
def _reset_store_selection():
    """Every test starts without a cached store selection."""
    reset_identity_store()
    yield
    reset_identity_store()
