"""SubscriptionEvent audit record."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict
import uuid

from domain.identity.core.value_objects.enums import (
    SubscriptionAction,
    SubscriptionStatus,
)


@dataclass(frozen=True)
class SubscriptionEvent:
    """Append-only record of a suspend/reactivate transition.

    Created by the subscription state machine, never mutated or deleted.

    Attributes:
        user_id: Identity whose subscription changed
        action: suspended | reactivated
        old_status: subscription_status before the transition
        new_status: subscription_status after the transition
        reason: Free text supplied by the actor
        performed_by: Identity id of the actor
        timestamp: When the transition happened
        event_id: Unique id of the audit row

    Examples:
        >>> event = SubscriptionEvent(
        ...     user_id="u-1",
        ...     action=SubscriptionAction.SUSPENDED,
        ...     old_status=SubscriptionStatus.FREE,
        ...     new_status=SubscriptionStatus.SUSPENDED,
        ...     reason="payment overdue",
        ...     performed_by="root",
        ... )
        >>> event.new_status.value
        'suspended'
    """

    user_id: str
    action: SubscriptionAction
    old_status: SubscriptionStatus
    new_status: SubscriptionStatus
    reason: str
    performed_by: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "user_id": self.user_id,
            "action": self.action.value,
            "old_status": self.old_status.value,
            "new_status": self.new_status.value,
            "reason": self.reason,
            "performed_by": self.performed_by,
            "timestamp": self.timestamp.isoformat(),
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "SubscriptionEvent":
        timestamp = data["timestamp"]
        if isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp)
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return SubscriptionEvent(
            user_id=data["user_id"],
            action=SubscriptionAction(data["action"]),
            old_status=SubscriptionStatus(data["old_status"]),
            new_status=SubscriptionStatus(data["new_status"]),
            reason=data.get("reason", ""),
            performed_by=data["performed_by"],
            timestamp=timestamp,
            event_id=data["event_id"],
        )
