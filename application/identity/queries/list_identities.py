"""Administrative identity listing and statistics."""

from dataclasses import dataclass
from typing import Dict, List, Optional, Union

from domain.identity.authorization.permissions import (
    MANAGE_USERS,
    VIEW_ANALYTICS,
    require_permission,
)
from domain.identity.core.entities.identity import Identity
from domain.identity.core.ports.identity_store import IIdentityStore
from domain.identity.core.value_objects.enums import (
    AccountStatus,
    Role,
    SubscriptionStatus,
)


@dataclass
class ListIdentitiesQuery:
    """Filtered identity listing for the admin panels (newest first)."""

    store: IIdentityStore

    async def execute(
        self,
        actor: Identity,
        search: Optional[str] = None,
        role: Optional[Union[Role, str]] = None,
        subscription_status: Optional[Union[SubscriptionStatus, str]] = None,
    ) -> List[Identity]:
        """
        Args:
            actor: Requesting identity (needs manage_users)
            search: Case-insensitive match on name or email
            role: Exact role filter
            subscription_status: Exact subscription filter

        Raises:
            AuthorizationError: Actor lacks manage_users
        """
        require_permission(actor, MANAGE_USERS)

        identities = await self.store.list_all()

        if search:
            needle = search.strip().lower()
            identities = [
                i
                for i in identities
                if needle in (i.name or "").lower() or needle in i.email.value
            ]
        if role is not None:
            identities = [i for i in identities if i.role.value == getattr(role, "value", role)]
        if subscription_status is not None:
            wanted = getattr(subscription_status, "value", subscription_status)
            identities = [i for i in identities if i.subscription_status.value == wanted]

        return identities


@dataclass
class SystemStatsQuery:
    """Totals shown on the superadmin dashboard."""

    store: IIdentityStore

    async def execute(self, actor: Identity) -> Dict[str, int]:
        """
        Returns:
            dict with total_users, active_users, premium_users,
            suspended_users, staff_users

        Raises:
            AuthorizationError: Actor lacks view_analytics
        """
        require_permission(actor, VIEW_ANALYTICS)

        identities = await self.store.list_all()
        return {
            "total_users": len(identities),
            "active_users": sum(1 for i in identities if i.status == AccountStatus.ACTIVE),
            "premium_users": sum(
                1 for i in identities if i.subscription_status == SubscriptionStatus.PREMIUM
            ),
            "suspended_users": sum(
                1 for i in identities if i.subscription_status == SubscriptionStatus.SUSPENDED
            ),
            "staff_users": sum(1 for i in identities if i.role.is_staff),
        }
