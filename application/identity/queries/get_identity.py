"""Get identity query."""

from dataclasses import dataclass
from typing import Optional

from domain.identity.core.demo_accounts import find_demo_by_id, is_demo_id
from domain.identity.core.entities.identity import Identity
from domain.identity.core.ports.identity_store import IIdentityStore
from domain.identity.core.value_objects.enums import Role

from application.identity.commands.support import demo_accounts_available


@dataclass
class GetIdentityQuery:
    """Read-only identity lookups.

    Examples:
        >>> query = GetIdentityQuery(store)
        >>> identity = await query.by_id("demo-admin-001")
        >>> identity.is_demo
        True
    """

    store: IIdentityStore
    durable: bool = True

    async def by_id(self, identity_id: str) -> Optional[Identity]:
        """Identity by id, demo identities included while they are available."""
        if is_demo_id(identity_id):
            if await demo_accounts_available(self.store, self.durable):
                return find_demo_by_id(identity_id)
            return None
        return await self.store.find_by_id(identity_id)

    async def by_email(self, email: str) -> Optional[Identity]:
        return await self.store.find_by_email(email)

    async def superadmin_exists(self) -> bool:
        """Whether the bootstrap already happened.

        The settings flag is authoritative; a stored superadmin row counts
        too, so a lost flag never reopens the bootstrap.
        """
        settings = await self.store.read_settings()
        if settings.superadmin_exists:
            return True
        return bool(await self.store.list_by_role(Role.SUPERADMIN))
