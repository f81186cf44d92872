"""Subscription history query."""

from dataclasses import dataclass
from typing import List, Optional

from domain.identity.authorization.permissions import SUSPEND_USERS, require_permission
from domain.identity.core.entities.identity import Identity
from domain.identity.core.entities.subscription_event import SubscriptionEvent
from domain.identity.core.ports.identity_store import IIdentityStore

DEFAULT_HISTORY_LIMIT = 100


@dataclass
class SubscriptionHistoryQuery:
    """Suspension / reactivation audit log, newest first."""

    store: IIdentityStore

    async def execute(
        self,
        actor: Identity,
        user_id: Optional[str] = None,
        limit: Optional[int] = DEFAULT_HISTORY_LIMIT,
    ) -> List[SubscriptionEvent]:
        """
        Raises:
            AuthorizationError: Actor lacks suspend_users
        """
        require_permission(actor, SUSPEND_USERS)
        return await self.store.list_subscription_events(user_id=user_id, limit=limit)
