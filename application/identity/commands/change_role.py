"""Change role command."""

import logging
from dataclasses import dataclass
from typing import Union

from domain.identity.authorization.permissions import MANAGE_USERS, require_permission
from domain.identity.core.entities.identity import Identity
from domain.identity.core.exceptions.identity_errors import (
    AuthorizationError,
    ValidationError,
)
from domain.identity.core.ports.identity_store import IIdentityStore
from domain.identity.core.value_objects.enums import Role

from application.identity.commands.support import load_target, save_if_unchanged

logger = logging.getLogger(__name__)


@dataclass
class ChangeRoleCommand:
    """Change the role of a non-superadmin identity.

    The superadmin role is owned by the bootstrap guard: it can be neither
    granted nor revoked here.
    """

    store: IIdentityStore

    async def execute(
        self, actor: Identity, target_id: str, new_role: Union[Role, str]
    ) -> Identity:
        """
        Raises:
            AuthorizationError: Actor lacks manage_users, or superadmin involved
            ValidationError: Unknown role
            ImmutableAccountError: Demo target
            NotFoundError: Target doesn't exist
            ConflictError: Target changed by another operation meanwhile
        """
        require_permission(actor, MANAGE_USERS)
        try:
            role = Role(new_role)
        except ValueError:
            raise ValidationError(f"Unknown role: {new_role}", field="role") from None
        if role == Role.SUPERADMIN:
            raise AuthorizationError(str(actor.identity_id), "bootstrap")

        target = await load_target(self.store, target_id)
        if target.role == Role.SUPERADMIN:
            raise AuthorizationError(str(actor.identity_id), "bootstrap")

        updated = target.copy()
        updated.change_role(role)
        await save_if_unchanged(self.store, updated, target)

        logger.info(
            "Role changed",
            extra={
                "identity_id": target_id,
                "old_role": target.role.value,
                "new_role": role.value,
                "performed_by": str(actor.identity_id),
            },
        )
        return updated
