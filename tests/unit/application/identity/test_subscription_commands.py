"""Tests for suspend and reactivate commands."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from application.identity.commands.reactivate_identity import ReactivateIdentityCommand
from application.identity.commands.suspend_identity import SuspendIdentityCommand
from domain.identity.core.demo_accounts import find_demo_by_id
from domain.identity.core.exceptions.identity_errors import (
    AuthorizationError,
    ConflictError,
    ConnectivityError,
    ImmutableAccountError,
    InvalidTransitionError,
    NotFoundError,
)
from domain.identity.core.value_objects.enums import (
    AccountStatus,
    PaymentStatus,
    Role,
    SubscriptionAction,
    SubscriptionStatus,
)


@pytest.fixture
def suspend(store):
    return SuspendIdentityCommand(store)


@pytest.fixture
def reactivate(store):
    return ReactivateIdentityCommand(store)


@pytest.mark.asyncio
class TestSuspend:
    """Suspension by the superadmin."""

    async def test_suspend_user(self, suspend, register, store):
        root = await register("root@example.com", role=Role.SUPERADMIN)
        ann = await register("ann@example.com")
        await store.open_session(str(ann.identity_id))

        suspended = await suspend.execute(root, str(ann.identity_id), "Card declined")

        assert suspended.subscription_status == SubscriptionStatus.SUSPENDED
        assert suspended.payment_status == PaymentStatus.OVERDUE
        assert suspended.status == AccountStatus.INACTIVE

        stored = await store.find_by_id(str(ann.identity_id))
        assert stored.subscription_status == SubscriptionStatus.SUSPENDED
        assert not await store.has_active_session(str(ann.identity_id))

        events = await store.list_subscription_events(user_id=str(ann.identity_id))
        assert len(events) == 1
        assert events[0].action == SubscriptionAction.SUSPENDED
        assert events[0].old_status == SubscriptionStatus.FREE
        assert events[0].new_status == SubscriptionStatus.SUSPENDED
        assert events[0].performed_by == str(root.identity_id)
        assert events[0].reason == "Card declined"

    async def test_demo_superadmin_can_suspend(self, suspend, register):
        ann = await register("ann@example.com")

        suspended = await suspend.execute(
            find_demo_by_id("demo-superadmin-001"), str(ann.identity_id), "test"
        )

        assert suspended.subscription_status == SubscriptionStatus.SUSPENDED

    @pytest.mark.parametrize("role", [Role.ADMIN, Role.MODERATOR, Role.USER])
    async def test_non_superadmin_refused_before_io(self, suspend, register, store, role):
        actor = await register(f"{role.value}@example.com", role=role)
        ann = await register("ann@example.com")
        store.find_by_id = AsyncMock(wraps=store.find_by_id)
        store.append_subscription_event = AsyncMock(wraps=store.append_subscription_event)

        with pytest.raises(AuthorizationError) as exc_info:
            await suspend.execute(actor, str(ann.identity_id), "x")

        assert exc_info.value.required == "suspend_users"
        store.find_by_id.assert_not_awaited()
        store.append_subscription_event.assert_not_awaited()
        assert await store.list_subscription_events() == []

    async def test_unknown_target(self, suspend, register):
        root = await register("root@example.com", role=Role.SUPERADMIN)

        with pytest.raises(NotFoundError):
            await suspend.execute(root, "missing", "x")

    async def test_demo_target_immutable(self, suspend, register, store):
        root = await register("root@example.com", role=Role.SUPERADMIN)

        with pytest.raises(ImmutableAccountError):
            await suspend.execute(root, "demo-user-001", "x")

        assert await store.list_subscription_events() == []

    async def test_already_suspended(self, suspend, register, store):
        root = await register("root@example.com", role=Role.SUPERADMIN)
        ann = await register("ann@example.com")
        await suspend.execute(root, str(ann.identity_id), "first")

        with pytest.raises(InvalidTransitionError):
            await suspend.execute(root, str(ann.identity_id), "second")

        assert len(await store.list_subscription_events()) == 1

    async def test_superadmin_cannot_suspend_itself(self, suspend, register, store):
        root = await register("root@example.com", role=Role.SUPERADMIN)

        with pytest.raises(AuthorizationError) as exc_info:
            await suspend.execute(root, str(root.identity_id), "x")

        assert exc_info.value.message == "The superadmin account cannot suspend itself"
        stored = await store.find_by_id(str(root.identity_id))
        assert stored.subscription_status == SubscriptionStatus.FREE
        assert await store.list_subscription_events() == []

    async def test_stale_read_loses_the_race(self, suspend, register, store):
        root = await register("root@example.com", role=Role.SUPERADMIN)
        ann = await register("ann@example.com")
        snapshot = await store.find_by_id(str(ann.identity_id))
        await suspend.execute(root, str(ann.identity_id), "first")
        store.find_by_id = AsyncMock(return_value=snapshot)

        with pytest.raises(ConflictError) as exc_info:
            await suspend.execute(root, str(ann.identity_id), "second")

        assert exc_info.value.reason == "concurrent_update"
        events = await store.list_subscription_events()
        assert [e.reason for e in events] == ["first"]

    async def test_concurrent_suspensions_record_one_event(self, register, store):
        root = await register("root@example.com", role=Role.SUPERADMIN)
        ann = await register("ann@example.com")

        results = await asyncio.gather(
            *[
                SuspendIdentityCommand(store).execute(root, str(ann.identity_id), "x")
                for _ in range(3)
            ],
            return_exceptions=True,
        )

        assert sum(1 for r in results if not isinstance(r, Exception)) == 1
        assert all(
            isinstance(r, (ConflictError, InvalidTransitionError))
            for r in results
            if isinstance(r, Exception)
        )
        assert len(await store.list_subscription_events()) == 1

    async def test_failed_audit_append_reverts_transition(self, suspend, register, store):
        root = await register("root@example.com", role=Role.SUPERADMIN)
        ann = await register("ann@example.com")
        store.append_subscription_event = AsyncMock(side_effect=ConnectivityError("down"))

        with pytest.raises(ConnectivityError):
            await suspend.execute(root, str(ann.identity_id), "x")

        stored = await store.find_by_id(str(ann.identity_id))
        assert stored.subscription_status == SubscriptionStatus.FREE
        assert stored.status == AccountStatus.ACTIVE
        assert await store.list_subscription_events() == []


@pytest.mark.asyncio
class TestReactivate:
    """Reactivation by the superadmin."""

    async def test_suspend_then_reactivate(self, suspend, reactivate, register, store):
        root = await register("root@example.com", role=Role.SUPERADMIN)
        ann = await register("ann@example.com")
        await store.update(ann.copy(subscription_status=SubscriptionStatus.PREMIUM))

        await suspend.execute(root, str(ann.identity_id), "Chargeback")
        restored = await reactivate.execute(root, str(ann.identity_id))

        assert restored.subscription_status == SubscriptionStatus.FREE
        assert restored.payment_status == PaymentStatus.NONE
        assert restored.status == AccountStatus.ACTIVE

        events = await store.list_subscription_events(user_id=str(ann.identity_id))
        assert [e.action for e in events] == [
            SubscriptionAction.REACTIVATED,
            SubscriptionAction.SUSPENDED,
        ]
        assert events[1].old_status == SubscriptionStatus.PREMIUM
        assert events[0].old_status == SubscriptionStatus.SUSPENDED
        assert events[0].new_status == SubscriptionStatus.FREE
        assert events[0].reason == "Payment received"

    async def test_reactivate_not_suspended(self, reactivate, register):
        root = await register("root@example.com", role=Role.SUPERADMIN)
        ann = await register("ann@example.com")

        with pytest.raises(InvalidTransitionError):
            await reactivate.execute(root, str(ann.identity_id), "x")

    async def test_admin_cannot_reactivate(self, reactivate, register):
        admin = await register("admin@example.com", role=Role.ADMIN)
        ann = await register("ann@example.com")

        with pytest.raises(AuthorizationError):
            await reactivate.execute(admin, str(ann.identity_id), "x")

    async def test_stale_reactivation_refused(self, suspend, reactivate, register, store):
        root = await register("root@example.com", role=Role.SUPERADMIN)
        ann = await register("ann@example.com")
        await suspend.execute(root, str(ann.identity_id), "Overdue")
        snapshot = await store.find_by_id(str(ann.identity_id))
        await reactivate.execute(root, str(ann.identity_id))
        store.find_by_id = AsyncMock(return_value=snapshot)

        with pytest.raises(ConflictError):
            await reactivate.execute(root, str(ann.identity_id))

        assert len(await store.list_subscription_events(user_id=str(ann.identity_id))) == 2
