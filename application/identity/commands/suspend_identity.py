"""Suspend identity command."""

import logging
from dataclasses import dataclass, field

from domain.identity.authorization.permissions import SUSPEND_USERS, require_permission
from domain.identity.core.entities.identity import Identity
from domain.identity.core.ports.identity_store import IIdentityStore
from domain.identity.subscription.state_machine import SubscriptionStateMachine

from application.identity.commands.support import (
    apply_transition,
    load_target,
    refuse_superadmin_lockout,
)

logger = logging.getLogger(__name__)


@dataclass
class SuspendIdentityCommand:
    """Suspend an identity for payment reasons.

    The target becomes inactive, its subscription suspended and its payment
    overdue. Exactly one audit event is appended and all its sessions are
    invalidated.

    Examples:
        >>> command = SuspendIdentityCommand(store)
        >>> suspended = await command.execute(root, "user-1", "Card declined")
        >>> suspended.subscription_status.value
        'suspended'
    """

    store: IIdentityStore
    machine: SubscriptionStateMachine = field(default_factory=SubscriptionStateMachine)

    async def execute(self, actor: Identity, target_id: str, reason: str) -> Identity:
        """Execute suspension.

        Args:
            actor: Identity performing the operation
            target_id: Identity to suspend
            reason: Free-text reason recorded in the audit log

        Returns:
            Updated target identity

        Raises:
            AuthorizationError: Actor lacks suspend_users (checked before any I/O), or
                the superadmin targets itself
            ImmutableAccountError: Demo target
            NotFoundError: Target doesn't exist
            InvalidTransitionError: Target already suspended
            ConflictError: Target changed by another operation meanwhile
        """
        require_permission(actor, SUSPEND_USERS)

        target = await load_target(self.store, target_id)
        refuse_superadmin_lockout(actor, target, "suspend")
        transition = self.machine.suspend(target, str(actor.identity_id), reason)

        await apply_transition(self.store, target, transition)
        await self.store.invalidate_sessions(target_id)

        logger.info(
            "Identity suspended",
            extra={
                "identity_id": target_id,
                "performed_by": str(actor.identity_id),
                "old_status": transition.event.old_status.value,
            },
        )
        return transition.identity
