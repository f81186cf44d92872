"""Update profile command."""

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from domain.identity.core.demo_accounts import is_demo_id
from domain.identity.core.entities.identity import Identity
from domain.identity.core.exceptions.identity_errors import (
    ImmutableAccountError,
    NotFoundError,
)
from domain.identity.core.ports.identity_store import IIdentityStore

from application.identity.commands.support import save_if_unchanged
from application.identity.schemas import ProfilePatch, parse_input

logger = logging.getLogger(__name__)


@dataclass
class UpdateProfileCommand:
    """Merge profile attributes into the stored identity.

    Only name, age, weight, height, activity_level, goal, daily_goal and
    target_weight can change here; role, status, subscription, payment,
    email and id go through their own commands.
    """

    store: IIdentityStore

    async def execute(self, identity_id: str, patch: Mapping[str, Any]) -> Identity:
        """
        Raises:
            ImmutableAccountError: Demo identity
            ValidationError: Patch contains a non-profile key or a bad value
            NotFoundError: Identity doesn't exist
            AccountStateError: Identity inactive or suspended
            ConflictError: Account state changed by another operation meanwhile
        """
        if is_demo_id(identity_id):
            raise ImmutableAccountError(identity_id)

        changes = parse_input(ProfilePatch, patch).profile()

        identity = await self.store.find_by_id(identity_id)
        if identity is None:
            raise NotFoundError(identity_id)
        identity.ensure_can_hold_session()

        if not changes:
            return identity

        updated = identity.copy()
        updated.update_profile(changes)
        await save_if_unchanged(self.store, updated, identity)

        logger.info(
            "Profile updated",
            extra={"identity_id": identity_id, "fields": sorted(changes)},
        )
        return updated
