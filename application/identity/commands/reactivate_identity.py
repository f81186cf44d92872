"""Reactivate identity command."""

import logging
from dataclasses import dataclass, field

from domain.identity.authorization.permissions import SUSPEND_USERS, require_permission
from domain.identity.core.entities.identity import Identity
from domain.identity.core.ports.identity_store import IIdentityStore
from domain.identity.subscription.state_machine import SubscriptionStateMachine

from application.identity.commands.support import apply_transition, load_target

logger = logging.getLogger(__name__)

DEFAULT_REACTIVATION_REASON = "Payment received"


@dataclass
class ReactivateIdentityCommand:
    """Bring a suspended identity back to the free tier (audited)."""

    store: IIdentityStore
    machine: SubscriptionStateMachine = field(default_factory=SubscriptionStateMachine)

    async def execute(
        self, actor: Identity, target_id: str, reason: str = DEFAULT_REACTIVATION_REASON
    ) -> Identity:
        """
        Raises:
            AuthorizationError: Actor lacks suspend_users
            ImmutableAccountError: Demo target
            NotFoundError: Target doesn't exist
            InvalidTransitionError: Target is not suspended
            ConflictError: Target changed by another operation meanwhile
        """
        require_permission(actor, SUSPEND_USERS)

        target = await load_target(self.store, target_id)
        transition = self.machine.reactivate(target, str(actor.identity_id), reason)

        await apply_transition(self.store, target, transition)

        logger.info(
            "Identity reactivated",
            extra={"identity_id": target_id, "performed_by": str(actor.identity_id)},
        )
        return transition.identity
