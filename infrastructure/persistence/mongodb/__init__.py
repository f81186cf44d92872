"""MongoDB repository implementations."""

from .base import MongoBaseRepository
from .identity_store import MongoIdentityStore

__all__ = [
    "MongoBaseRepository",
    "MongoIdentityStore",
]
