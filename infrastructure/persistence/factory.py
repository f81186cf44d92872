"""Identity store factory.

Selects the identity store once per process lifetime.
Strategy (IDENTITY_BACKEND):
- "auto" (default): MongoDB if MONGODB_URI is set and reachable, else in-memory
- "mongodb": MongoDB expected; falls back to in-memory (logged as error)
- "inmemory": in-memory only, no probing

A backend that fails later is never re-selected: individual operations
fail instead.

Usage:
    from infrastructure.persistence.factory import get_identity_store

    selection = await get_identity_store()
    store = selection.store
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from domain.identity.core.exceptions.identity_errors import ConnectivityError
from domain.identity.core.ports.identity_store import IIdentityStore
from infrastructure.config import get_identity_backend, get_mongodb_uri
from infrastructure.persistence.connectivity import ConnectivityProber, ProbeResult
from infrastructure.persistence.in_memory.identity_store import InMemoryIdentityStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoreSelection:
    """Selected store plus how it was chosen."""

    store: IIdentityStore
    probe: Optional[ProbeResult] = None
    fallback: bool = False

    @property
    def durable(self) -> bool:
        return not isinstance(self.store, InMemoryIdentityStore)


def create_mongo_store() -> IIdentityStore:
    """Build the MongoDB store (no I/O until first call).

    Raises:
        ValueError: If MONGODB_URI is not set
    """
    from infrastructure.persistence.mongodb.identity_store import MongoIdentityStore

    if not get_mongodb_uri():
        raise ValueError(
            "IDENTITY_BACKEND=mongodb but MONGODB_URI not set. "
            "Set MONGODB_URI in .env or use IDENTITY_BACKEND=inmemory"
        )
    return MongoIdentityStore()


async def _initialize(store: IIdentityStore) -> None:
    try:
        await store.initialize()
    except ConnectivityError as e:
        logger.warning(
            "Identity store initialization incomplete",
            extra={"backend": store.backend_name, "error": str(e)},
        )


async def select_identity_store(
    durable: Optional[IIdentityStore] = None,
    prober: Optional[ConnectivityProber] = None,
) -> StoreSelection:
    """Probe the durable backend and pick the store.

    Args:
        durable: Durable store to probe (built from config if None)
        prober: Prober to use (default ConnectivityProber(durable))

    Returns:
        StoreSelection with an initialized store
    """
    mode = get_identity_backend()

    if durable is None:
        if mode == "inmemory" or (mode == "auto" and not get_mongodb_uri()):
            store = InMemoryIdentityStore()
            await _initialize(store)
            logger.info("Identity backend selected", extra={"backend": store.backend_name})
            return StoreSelection(store=store)
        durable = create_mongo_store()

    probe = await (prober or ConnectivityProber(durable)).probe()
    if probe.reachable:
        await _initialize(durable)
        logger.info(
            "Identity backend selected",
            extra={"backend": durable.backend_name, "partial": probe.partial},
        )
        return StoreSelection(store=durable, probe=probe)

    fallback = InMemoryIdentityStore()
    await _initialize(fallback)
    log = logger.error if mode == "mongodb" else logger.warning
    log(
        "Durable identity backend unreachable, using in-memory fallback",
        extra={"backend": durable.backend_name, "attempts": probe.attempts},
    )
    await durable.close()
    return StoreSelection(store=fallback, probe=probe, fallback=True)


# Singleton selection (lazy initialization)
_selection: Optional[StoreSelection] = None
_selection_lock: Optional[asyncio.Lock] = None


async def get_identity_store() -> StoreSelection:
    """Get the process-wide store selection.

    Concurrent first callers share one probe sequence.
    """
    global _selection, _selection_lock
    if _selection is not None:
        return _selection
    if _selection_lock is None:
        _selection_lock = asyncio.Lock()
    async with _selection_lock:
        if _selection is None:
            _selection = await select_identity_store()
    return _selection


def reset_identity_store() -> None:
    """Reset the singleton selection.

    Useful for testing to force re-selection with different env vars.
    """
    global _selection, _selection_lock
    _selection = None
    _selection_lock = None
