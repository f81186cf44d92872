"""Signup command."""

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from domain.identity.core.demo_accounts import is_demo_email
from domain.identity.core.entities.identity import Identity
from domain.identity.core.exceptions.identity_errors import (
    ConflictError,
    RegistrationClosedError,
)
from domain.identity.core.ports.identity_store import IIdentityStore
from domain.identity.core.value_objects.email import Email
from domain.identity.core.value_objects.enums import RegistrationPolicy
from infrastructure.security.password_hasher import PasswordHasher

from application.identity.schemas import SignupData, parse_input

logger = logging.getLogger(__name__)


@dataclass
class SignupCommand:
    """Self-registration of a plain user.

    The new identity is always role user, active, free tier.

    Examples:
        >>> command = SignupCommand(store, PasswordHasher())
        >>> identity = await command.execute({"email": "ann@example.com", "password": "secret1"})
        >>> identity.role.value
        'user'
    """

    store: IIdentityStore
    hasher: PasswordHasher
    policy: RegistrationPolicy = RegistrationPolicy.OPEN

    async def execute(self, data: Mapping[str, Any]) -> Identity:
        """Execute signup.

        Args:
            data: email, password and optional profile attributes

        Returns:
            Created identity

        Raises:
            ValidationError: Malformed input
            RegistrationClosedError: Refused by registration policy
            ConflictError: Email already used (store or demo identity)
        """
        signup = parse_input(SignupData, data)

        await self._check_policy()

        if is_demo_email(signup.email):
            raise ConflictError("email_exists")
        if await self.store.find_by_email(signup.email) is not None:
            raise ConflictError("email_exists")

        identity = Identity.register(
            Email(signup.email),
            name=signup.name or "",
            profile=signup.profile(),
        )
        await self.store.insert(identity, self.hasher.hash(signup.password))

        logger.info(
            "Identity registered",
            extra={"identity_id": str(identity.identity_id), "backend": self.store.backend_name},
        )
        return identity

    async def _check_policy(self) -> None:
        if self.policy == RegistrationPolicy.OPEN:
            return
        if self.policy == RegistrationPolicy.AFTER_BOOTSTRAP:
            settings = await self.store.read_settings()
            if settings.superadmin_exists:
                return
        logger.info("Signup refused by policy", extra={"policy": self.policy.value})
        raise RegistrationClosedError(self.policy.value)
