"""Delete account command."""

import logging
from dataclasses import dataclass
from typing import Optional

from domain.identity.authorization.permissions import MANAGE_USERS, require_permission
from domain.identity.core.demo_accounts import is_demo_id
from domain.identity.core.entities.identity import Identity
from domain.identity.core.exceptions.identity_errors import (
    AuthorizationError,
    ImmutableAccountError,
    NotFoundError,
)
from domain.identity.core.ports.identity_store import IIdentityStore
from domain.identity.core.value_objects.enums import AccountStatus, Role
from domain.identity.core.value_objects.system_settings import SUPERADMIN_EXISTS

logger = logging.getLogger(__name__)


@dataclass
class DeleteAccountCommand:
    """Cascading account deletion.

    Order:
    1. dependent records (meals, favorites)
    2. tombstone: identity marked inactive
    3. identity record
    4. sessions
    5. ``superadmin_exists`` cleared if the superadmin was deleted

    A failure part-way leaves at worst an inactive identity without data,
    never an active one. Re-running the command completes the deletion.
    """

    store: IIdentityStore

    async def execute(self, identity_id: str, actor: Optional[Identity] = None) -> None:
        """Execute deletion.

        Args:
            identity_id: Identity to delete
            actor: Requesting identity; deleting someone else requires
                manage_users, and only the superadmin may delete itself

        Raises:
            AuthorizationError: Actor may not delete the target
            ImmutableAccountError: Demo identity
            NotFoundError: Identity doesn't exist
            ConnectivityError: Store failure (deletion partially applied)
        """
        deleting_other = actor is not None and str(actor.identity_id) != identity_id
        if deleting_other:
            require_permission(actor, MANAGE_USERS)

        if is_demo_id(identity_id):
            raise ImmutableAccountError(identity_id)

        identity = await self.store.find_by_id(identity_id)
        if identity is None:
            raise NotFoundError(identity_id)
        identity.ensure_mutable()
        if deleting_other and identity.role == Role.SUPERADMIN:
            raise AuthorizationError(str(actor.identity_id), f"role:{Role.SUPERADMIN.value}")

        removed = await self.store.delete_dependent_records(identity_id)

        if identity.status != AccountStatus.INACTIVE:
            await self.store.update(identity.copy(status=AccountStatus.INACTIVE))

        await self.store.delete(identity_id)
        await self.store.invalidate_sessions(identity_id)

        if identity.role == Role.SUPERADMIN:
            await self.store.compare_and_set_setting(SUPERADMIN_EXISTS, True, False)

        logger.info(
            "Account deleted",
            extra={
                "identity_id": identity_id,
                "role": identity.role.value,
                "dependent_records": removed,
                "performed_by": str(actor.identity_id) if actor else identity_id,
            },
        )
