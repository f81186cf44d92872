"""Helpers shared by identity commands and queries."""

import logging

from domain.identity.core.demo_accounts import is_demo_id
from domain.identity.core.entities.identity import Identity
from domain.identity.core.exceptions.identity_errors import (
    AuthorizationError,
    ConflictError,
    ConnectivityError,
    ImmutableAccountError,
    NotFoundError,
)
from domain.identity.core.ports.identity_store import IIdentityStore
from domain.identity.core.value_objects.enums import Role
from domain.identity.subscription.state_machine import Transition

logger = logging.getLogger(__name__)


async def load_target(store: IIdentityStore, identity_id: str) -> Identity:
    """Load the identity an administrative command acts on.

    Raises:
        ImmutableAccountError: Target is a demo identity
        NotFoundError: No such identity in the store
    """
    if is_demo_id(identity_id):
        raise ImmutableAccountError(identity_id)
    identity = await store.find_by_id(identity_id)
    if identity is None:
        raise NotFoundError(identity_id)
    return identity


async def demo_accounts_available(store: IIdentityStore, durable: bool) -> bool:
    """Demo identities are usable on the fallback backend, or when enabled.

    An unreadable settings record on a durable backend disables them.
    """
    if not durable:
        return True
    try:
        settings = await store.read_settings()
    except ConnectivityError as e:
        logger.warning(
            "Settings unavailable, demo accounts disabled",
            extra={"backend": store.backend_name, "error": str(e)},
        )
        return False
    return settings.demo_accounts_enabled


def refuse_superadmin_lockout(actor: Identity, target: Identity, operation: str) -> None:
    """The superadmin may not suspend or deactivate its own account.

    Raises:
        AuthorizationError: ``target`` is the acting superadmin
    """
    if target.role == Role.SUPERADMIN and target.identity_id == actor.identity_id:
        raise AuthorizationError(
            str(actor.identity_id),
            operation,
            message=f"The superadmin account cannot {operation} itself",
        )


async def save_if_unchanged(store: IIdentityStore, identity: Identity, expected: Identity) -> None:
    """Write ``identity`` unless its account state moved on since ``expected`` was read.

    Raises:
        ConflictError: "concurrent_update" when the stored record changed
    """
    if not await store.update_if_unchanged(identity, expected):
        logger.info(
            "Stale identity write refused",
            extra={"identity_id": str(identity.identity_id), "backend": store.backend_name},
        )
        raise ConflictError("concurrent_update")


async def apply_transition(
    store: IIdentityStore, previous: Identity, transition: Transition
) -> None:
    """Persist a subscription transition and its audit event.

    The identity write is conditional on ``previous``; the event is
    appended only by the writer that won. If the append fails the identity
    is written back to ``previous`` and the error re-raised.

    Raises:
        ConflictError: Another operation changed the identity first
    """
    await save_if_unchanged(store, transition.identity, previous)
    try:
        await store.append_subscription_event(transition.event)
    except Exception:
        logger.error(
            "Audit append failed, reverting transition",
            extra={
                "identity_id": str(previous.identity_id),
                "action": transition.event.action.value,
            },
            exc_info=True,
        )
        try:
            await store.update_if_unchanged(previous, transition.identity)
        except Exception:
            logger.error(
                "Failed to revert transition",
                extra={"identity_id": str(previous.identity_id)},
                exc_info=True,
            )
        raise
