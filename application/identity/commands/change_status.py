"""Change account status command."""

import logging
from dataclasses import dataclass
from typing import Union

from domain.identity.authorization.permissions import MANAGE_USERS, require_permission
from domain.identity.core.entities.identity import Identity
from domain.identity.core.exceptions.identity_errors import (
    AuthorizationError,
    InvalidTransitionError,
    ValidationError,
)
from domain.identity.core.ports.identity_store import IIdentityStore
from domain.identity.core.value_objects.enums import (
    AccountStatus,
    Role,
    SubscriptionStatus,
)

from application.identity.commands.support import (
    load_target,
    refuse_superadmin_lockout,
    save_if_unchanged,
)

logger = logging.getLogger(__name__)


@dataclass
class ChangeStatusCommand:
    """Activate or deactivate an identity.

    A suspended identity can only leave suspension through reactivation.
    Deactivation invalidates the target's sessions.
    """

    store: IIdentityStore

    async def execute(
        self, actor: Identity, target_id: str, status: Union[AccountStatus, str]
    ) -> Identity:
        """
        Raises:
            AuthorizationError: Actor lacks manage_users, targets the superadmin, or
                is the superadmin deactivating itself
            ValidationError: Unknown status
            ImmutableAccountError: Demo target
            NotFoundError: Target doesn't exist
            InvalidTransitionError: Activating a suspended identity
            ConflictError: Target changed by another operation meanwhile
        """
        require_permission(actor, MANAGE_USERS)
        try:
            new_status = AccountStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown status: {status}", field="status") from None

        target = await load_target(self.store, target_id)
        if target.role == Role.SUPERADMIN and actor.role != Role.SUPERADMIN:
            raise AuthorizationError(str(actor.identity_id), f"role:{Role.SUPERADMIN.value}")
        if (
            new_status == AccountStatus.ACTIVE
            and target.subscription_status == SubscriptionStatus.SUSPENDED
        ):
            raise InvalidTransitionError(
                SubscriptionStatus.SUSPENDED.value, AccountStatus.ACTIVE.value
            )

        if new_status == AccountStatus.INACTIVE:
            refuse_superadmin_lockout(actor, target, "deactivate")

        updated = target.copy()
        updated.change_status(new_status)
        await save_if_unchanged(self.store, updated, target)
        if new_status == AccountStatus.INACTIVE:
            await self.store.invalidate_sessions(target_id)

        logger.info(
            "Account status changed",
            extra={
                "identity_id": target_id,
                "status": new_status.value,
                "performed_by": str(actor.identity_id),
            },
        )
        return updated
