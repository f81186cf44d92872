"""In-memory persistence implementations."""

from infrastructure.persistence.in_memory.identity_store import InMemoryIdentityStore

__all__ = [
    "InMemoryIdentityStore",
]
