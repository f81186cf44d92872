"""Create superadmin command (bootstrap guard)."""

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from domain.identity.core.demo_accounts import is_demo_email
from domain.identity.core.entities.identity import Identity
from domain.identity.core.exceptions.identity_errors import ConflictError
from domain.identity.core.ports.identity_store import IIdentityStore
from domain.identity.core.value_objects.email import Email
from domain.identity.core.value_objects.enums import Role
from domain.identity.core.value_objects.system_settings import (
    DEMO_ACCOUNTS_ENABLED,
    SUPERADMIN_EXISTS,
)
from infrastructure.security.password_hasher import PasswordHasher

from application.identity.schemas import SuperadminData, parse_input

logger = logging.getLogger(__name__)


@dataclass
class CreateSuperadminCommand:
    """One-time creation of the single superadmin.

    The slot is claimed with a compare-and-set on ``superadmin_exists``
    before the identity is inserted; the store's uniqueness constraint on
    the superadmin role backs it up. Demo accounts are disabled as soon as
    the slot is claimed and re-enabled only if the bootstrap is rolled back.
    N concurrent calls yield exactly one success, the others fail with
    ConflictError("superadmin_exists").

    Examples:
        >>> command = CreateSuperadminCommand(store, PasswordHasher())
        >>> root = await command.execute({"email": "root@example.com", "password": "Sup3rSecure!"})
        >>> root.role.value
        'superadmin'
    """

    store: IIdentityStore
    hasher: PasswordHasher

    async def execute(self, data: Mapping[str, Any]) -> Identity:
        """Execute bootstrap.

        Raises:
            ValidationError: Malformed input (password under 8 characters)
            ConflictError: A superadmin exists or email already used
        """
        payload = parse_input(SuperadminData, data)

        settings = await self.store.read_settings()
        if settings.superadmin_exists or await self.store.list_by_role(Role.SUPERADMIN):
            raise ConflictError("superadmin_exists")
        if is_demo_email(payload.email):
            raise ConflictError("email_exists")

        claimed = await self.store.compare_and_set_setting(SUPERADMIN_EXISTS, False, True)
        if not claimed:
            logger.info("Superadmin bootstrap lost the race")
            raise ConflictError("superadmin_exists")

        identity = Identity.register(
            Email(payload.email),
            name=payload.name or "",
            role=Role.SUPERADMIN,
            profile=payload.profile(),
        )
        try:
            await self.store.write_setting(DEMO_ACCOUNTS_ENABLED, False)
            await self.store.insert(identity, self.hasher.hash(payload.password))
        except ConflictError as e:
            # An existing superadmin row means the claim was correct.
            if e.reason != "superadmin_exists":
                await self._release_claim(settings.demo_accounts_enabled)
            raise
        except Exception:
            await self._release_claim(settings.demo_accounts_enabled)
            raise

        logger.info(
            "Superadmin created",
            extra={"identity_id": str(identity.identity_id), "backend": self.store.backend_name},
        )
        return identity

    async def _release_claim(self, demo_accounts_enabled: bool) -> None:
        """Undo the claim: restore the demo flag, then free the slot."""
        try:
            await self.store.write_setting(DEMO_ACCOUNTS_ENABLED, demo_accounts_enabled)
        except Exception:
            logger.error("Failed to restore demo accounts flag", exc_info=True)
        try:
            await self.store.compare_and_set_setting(SUPERADMIN_EXISTS, True, False)
        except Exception:
            logger.error("Failed to release superadmin claim", exc_info=True)
