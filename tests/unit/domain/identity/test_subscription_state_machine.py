"""Unit tests for the subscription state machine."""

import pytest
from freezegun import freeze_time

from domain.identity.core.entities.identity import Identity
from domain.identity.core.exceptions.identity_errors import (
    ImmutableAccountError,
    InvalidTransitionError,
)
from domain.identity.core.value_objects.email import Email
from domain.identity.core.value_objects.enums import (
    AccountStatus,
    PaymentStatus,
    SubscriptionAction,
    SubscriptionStatus,
)
from domain.identity.subscription.state_machine import SubscriptionStateMachine


@pytest.fixture
def machine():
    return SubscriptionStateMachine()


@pytest.fixture
def user():
    return Identity.register(Email("user@example.com"), name="User")


class TestSuspend:
    """Test suspend transition."""

    @freeze_time("2025-02-01 10:00:00")
    def test_suspend_free_user(self, machine, user):
        result = machine.suspend(user, performed_by="root-1", reason="Card declined")

        assert result.identity.subscription_status == SubscriptionStatus.SUSPENDED
        assert result.identity.payment_status == PaymentStatus.OVERDUE
        assert result.identity.status == AccountStatus.INACTIVE
        assert result.event.action == SubscriptionAction.SUSPENDED
        assert result.event.old_status == SubscriptionStatus.FREE
        assert result.event.new_status == SubscriptionStatus.SUSPENDED
        assert result.event.performed_by == "root-1"
        assert result.event.reason == "Card declined"
        assert result.event.user_id == str(user.identity_id)
        assert result.event.timestamp == result.identity.updated_at

    def test_suspend_premium_records_previous_status(self, machine, user):
        premium = user.copy(subscription_status=SubscriptionStatus.PREMIUM)

        result = machine.suspend(premium, performed_by="root-1", reason="Chargeback")

        assert result.event.old_status == SubscriptionStatus.PREMIUM

    def test_suspend_does_not_mutate_input(self, machine, user):
        machine.suspend(user, performed_by="root-1", reason="x")

        assert user.subscription_status == SubscriptionStatus.FREE
        assert user.status == AccountStatus.ACTIVE

    def test_suspend_twice_is_invalid(self, machine, user):
        suspended = machine.suspend(user, performed_by="root-1", reason="x").identity

        with pytest.raises(InvalidTransitionError):
            machine.suspend(suspended, performed_by="root-1", reason="again")

    def test_suspend_demo_is_immutable(self, machine, user):
        with pytest.raises(ImmutableAccountError):
            machine.suspend(user.copy(is_demo=True), performed_by="root-1", reason="x")


class TestReactivate:
    """Test reactivate transition."""

    def test_reactivate_suspended(self, machine, user):
        suspended = machine.suspend(user, performed_by="root-1", reason="x").identity

        result = machine.reactivate(suspended, performed_by="root-1", reason="Paid")

        assert result.identity.subscription_status == SubscriptionStatus.FREE
        assert result.identity.payment_status == PaymentStatus.NONE
        assert result.identity.status == AccountStatus.ACTIVE
        assert result.event.action == SubscriptionAction.REACTIVATED
        assert result.event.old_status == SubscriptionStatus.SUSPENDED
        assert result.event.new_status == SubscriptionStatus.FREE

    def test_reactivate_not_suspended_is_invalid(self, machine, user):
        with pytest.raises(InvalidTransitionError) as exc_info:
            machine.reactivate(user, performed_by="root-1", reason="x")

        assert exc_info.value.current == "free"


class TestChangePlan:
    """Test free <-> premium plan changes."""

    def test_free_to_premium(self, machine, user):
        premium = machine.change_plan(user, SubscriptionStatus.PREMIUM)

        assert premium.subscription_status == SubscriptionStatus.PREMIUM
        assert premium.payment_status == PaymentStatus.PAID

    def test_premium_to_free(self, machine, user):
        premium = machine.change_plan(user, SubscriptionStatus.PREMIUM)

        free = machine.change_plan(premium, SubscriptionStatus.FREE)

        assert free.subscription_status == SubscriptionStatus.FREE
        assert free.payment_status == PaymentStatus.NONE

    def test_plan_change_cannot_enter_or_leave_suspension(self, machine, user):
        with pytest.raises(InvalidTransitionError):
            machine.change_plan(user, SubscriptionStatus.SUSPENDED)

        suspended = machine.suspend(user, performed_by="root-1", reason="x").identity
        with pytest.raises(InvalidTransitionError):
            machine.change_plan(suspended, SubscriptionStatus.PREMIUM)

    @pytest.mark.parametrize(
        "current,target,allowed",
        [
            (SubscriptionStatus.FREE, SubscriptionStatus.PREMIUM, True),
            (SubscriptionStatus.PREMIUM, SubscriptionStatus.SUSPENDED, True),
            (SubscriptionStatus.SUSPENDED, SubscriptionStatus.FREE, True),
            (SubscriptionStatus.SUSPENDED, SubscriptionStatus.PREMIUM, False),
            (SubscriptionStatus.FREE, SubscriptionStatus.FREE, False),
        ],
    )
    def test_can_transition(self, current, target, allowed):
        assert SubscriptionStateMachine.can_transition(current, target) is allowed
