"""Subscription state machine.

Transitions of ``subscription_status``::

    free <-> premium                 (plan change, policy driven)
    {free, premium} -> suspended     (suspend, audited)
    suspended -> free                (reactivate, audited)

Suspended is entered and left only through ``suspend`` / ``reactivate``.
Each of those returns the updated identity copy and exactly one
SubscriptionEvent; the caller persists both.
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet

from domain.identity.core.entities.identity import Identity, utcnow
from domain.identity.core.entities.subscription_event import SubscriptionEvent
from domain.identity.core.exceptions.identity_errors import InvalidTransitionError
from domain.identity.core.value_objects.enums import (
    AccountStatus,
    PaymentStatus,
    SubscriptionAction,
    SubscriptionStatus,
)

ALLOWED_TRANSITIONS: Dict[SubscriptionStatus, FrozenSet[SubscriptionStatus]] = {
    SubscriptionStatus.FREE: frozenset({SubscriptionStatus.PREMIUM, SubscriptionStatus.SUSPENDED}),
    SubscriptionStatus.PREMIUM: frozenset({SubscriptionStatus.FREE, SubscriptionStatus.SUSPENDED}),
    SubscriptionStatus.SUSPENDED: frozenset({SubscriptionStatus.FREE}),
}


@dataclass(frozen=True)
class Transition:
    """Result of an audited transition."""

    identity: Identity
    event: SubscriptionEvent


class SubscriptionStateMachine:
    """Pure transition logic; persistence is the caller's job.

    Examples:
        >>> machine = SubscriptionStateMachine()
        >>> result = machine.suspend(user, performed_by="root", reason="overdue")
        >>> result.identity.subscription_status.value
        'suspended'
        >>> result.event.old_status.value
        'free'
    """

    @staticmethod
    def can_transition(current: SubscriptionStatus, target: SubscriptionStatus) -> bool:
        return target in ALLOWED_TRANSITIONS.get(current, frozenset())

    def _check(self, current: SubscriptionStatus, target: SubscriptionStatus) -> None:
        if not self.can_transition(current, target):
            raise InvalidTransitionError(current.value, target.value)

    def suspend(self, identity: Identity, performed_by: str, reason: str) -> Transition:
        """Suspend a free or premium identity.

        Sets subscription suspended, payment overdue, status inactive.

        Raises:
            ImmutableAccountError: Demo identity
            InvalidTransitionError: Already suspended
        """
        identity.ensure_mutable()
        old_status = identity.subscription_status
        self._check(old_status, SubscriptionStatus.SUSPENDED)

        now = utcnow()
        updated = identity.copy(
            subscription_status=SubscriptionStatus.SUSPENDED,
            payment_status=PaymentStatus.OVERDUE,
            status=AccountStatus.INACTIVE,
            updated_at=now,
        )
        event = SubscriptionEvent(
            user_id=str(identity.identity_id),
            action=SubscriptionAction.SUSPENDED,
            old_status=old_status,
            new_status=SubscriptionStatus.SUSPENDED,
            reason=reason,
            performed_by=performed_by,
            timestamp=now,
        )
        return Transition(identity=updated, event=event)

    def reactivate(self, identity: Identity, performed_by: str, reason: str) -> Transition:
        """Bring a suspended identity back to the free tier.

        Sets subscription free, payment none, status active.

        Raises:
            ImmutableAccountError: Demo identity
            InvalidTransitionError: Identity is not suspended
        """
        identity.ensure_mutable()
        old_status = identity.subscription_status
        if old_status != SubscriptionStatus.SUSPENDED:
            raise InvalidTransitionError(old_status.value, SubscriptionStatus.FREE.value)

        now = utcnow()
        updated = identity.copy(
            subscription_status=SubscriptionStatus.FREE,
            payment_status=PaymentStatus.NONE,
            status=AccountStatus.ACTIVE,
            updated_at=now,
        )
        event = SubscriptionEvent(
            user_id=str(identity.identity_id),
            action=SubscriptionAction.REACTIVATED,
            old_status=old_status,
            new_status=SubscriptionStatus.FREE,
            reason=reason,
            performed_by=performed_by,
            timestamp=now,
        )
        return Transition(identity=updated, event=event)

    def change_plan(self, identity: Identity, target: SubscriptionStatus) -> Identity:
        """Move between free and premium (not audited).

        Raises:
            InvalidTransitionError: Target is suspended or source is suspended
        """
        identity.ensure_mutable()
        if SubscriptionStatus.SUSPENDED in (identity.subscription_status, target):
            raise InvalidTransitionError(identity.subscription_status.value, target.value)
        if identity.subscription_status == target:
            return identity.copy()

        payment = PaymentStatus.PAID if target == SubscriptionStatus.PREMIUM else PaymentStatus.NONE
        return identity.copy(
            subscription_status=target, payment_status=payment, updated_at=utcnow()
        )
