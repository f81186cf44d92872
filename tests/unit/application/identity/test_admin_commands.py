"""Tests for change role and change status commands."""

from unittest.mock import AsyncMock

import pytest

from application.identity.commands.change_role import ChangeRoleCommand
from application.identity.commands.change_status import ChangeStatusCommand
from application.identity.commands.suspend_identity import SuspendIdentityCommand
from domain.identity.core.demo_accounts import find_demo_by_id
from domain.identity.core.exceptions.identity_errors import (
    AuthorizationError,
    ConflictError,
    ImmutableAccountError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from domain.identity.core.value_objects.enums import AccountStatus, Role, SubscriptionStatus


@pytest.mark.asyncio
class TestChangeRole:
    """Role management by admins."""

    async def test_admin_promotes_user_to_moderator(self, store, register):
        admin = await register("admin@example.com", role=Role.ADMIN)
        ann = await register("ann@example.com")

        updated = await ChangeRoleCommand(store).execute(admin, str(ann.identity_id), "moderator")

        assert updated.role == Role.MODERATOR
        assert (await store.find_by_id(str(ann.identity_id))).role == Role.MODERATOR

    async def test_cannot_grant_superadmin(self, store, register):
        root = await register("root@example.com", role=Role.SUPERADMIN)
        ann = await register("ann@example.com")

        with pytest.raises(AuthorizationError):
            await ChangeRoleCommand(store).execute(root, str(ann.identity_id), Role.SUPERADMIN)

    async def test_cannot_revoke_superadmin(self, store, register):
        admin = await register("admin@example.com", role=Role.ADMIN)
        root = await register("root@example.com", role=Role.SUPERADMIN)

        with pytest.raises(AuthorizationError):
            await ChangeRoleCommand(store).execute(admin, str(root.identity_id), Role.USER)

    async def test_moderator_cannot_manage_users(self, store, register):
        moderator = await register("mod@example.com", role=Role.MODERATOR)
        ann = await register("ann@example.com")

        with pytest.raises(AuthorizationError) as exc_info:
            await ChangeRoleCommand(store).execute(moderator, str(ann.identity_id), Role.ADMIN)

        assert exc_info.value.required == "manage_users"

    async def test_demo_target_immutable(self, store):
        admin = find_demo_by_id("demo-admin-001")

        with pytest.raises(ImmutableAccountError):
            await ChangeRoleCommand(store).execute(admin, "demo-user-001", Role.MODERATOR)

    async def test_unknown_role(self, store, register):
        admin = await register("admin@example.com", role=Role.ADMIN)
        ann = await register("ann@example.com")

        with pytest.raises(ValidationError):
            await ChangeRoleCommand(store).execute(admin, str(ann.identity_id), "owner")


    async def test_role_change_after_suspension_refused(self, store, register):
        root = await register("root@example.com", role=Role.SUPERADMIN)
        ann = await register("ann@example.com")
        find_by_id = store.find_by_id
        snapshot = await find_by_id(str(ann.identity_id))
        await SuspendIdentityCommand(store).execute(root, str(ann.identity_id), "Overdue")
        store.find_by_id = AsyncMock(return_value=snapshot)

        with pytest.raises(ConflictError):
            await ChangeRoleCommand(store).execute(root, str(ann.identity_id), "moderator")

        stored = await find_by_id(str(ann.identity_id))
        assert stored.role == Role.USER
        assert stored.subscription_status == SubscriptionStatus.SUSPENDED


@pytest.mark.asyncio
class TestChangeStatus:
    """Activation / deactivation by admins."""

    async def test_deactivate_invalidates_sessions(self, store, register):
        admin = await register("admin@example.com", role=Role.ADMIN)
        ann = await register("ann@example.com")
        await store.open_session(str(ann.identity_id))

        updated = await ChangeStatusCommand(store).execute(
            admin, str(ann.identity_id), AccountStatus.INACTIVE
        )

        assert updated.status == AccountStatus.INACTIVE
        assert not await store.has_active_session(str(ann.identity_id))

    async def test_reactivate_inactive_account(self, store, register):
        admin = await register("admin@example.com", role=Role.ADMIN)
        ann = await register("ann@example.com")
        command = ChangeStatusCommand(store)
        await command.execute(admin, str(ann.identity_id), "inactive")

        updated = await command.execute(admin, str(ann.identity_id), "active")

        assert updated.status == AccountStatus.ACTIVE

    async def test_activating_suspended_identity_refused(self, store, register):
        root = await register("root@example.com", role=Role.SUPERADMIN)
        ann = await register("ann@example.com")
        await SuspendIdentityCommand(store).execute(root, str(ann.identity_id), "x")

        with pytest.raises(InvalidTransitionError):
            await ChangeStatusCommand(store).execute(root, str(ann.identity_id), "active")

        assert (await store.find_by_id(str(ann.identity_id))).status == AccountStatus.INACTIVE

    async def test_admin_cannot_deactivate_superadmin(self, store, register):
        admin = await register("admin@example.com", role=Role.ADMIN)
        root = await register("root@example.com", role=Role.SUPERADMIN)

        with pytest.raises(AuthorizationError):
            await ChangeStatusCommand(store).execute(admin, str(root.identity_id), "inactive")

    async def test_unknown_target(self, store, register):
        admin = await register("admin@example.com", role=Role.ADMIN)

        with pytest.raises(NotFoundError):
            await ChangeStatusCommand(store).execute(admin, "missing", "inactive")

    async def test_unknown_status(self, store, register):
        admin = await register("admin@example.com", role=Role.ADMIN)

        with pytest.raises(ValidationError):
            await ChangeStatusCommand(store).execute(admin, "missing", "deleted")

    async def test_superadmin_cannot_deactivate_itself(self, store, register):
        root = await register("root@example.com", role=Role.SUPERADMIN)

        with pytest.raises(AuthorizationError) as exc_info:
            await ChangeStatusCommand(store).execute(root, str(root.identity_id), "inactive")

        assert exc_info.value.message == "The superadmin account cannot deactivate itself"
        assert (await store.find_by_id(str(root.identity_id))).status == AccountStatus.ACTIVE

    async def test_superadmin_deactivates_another_admin(self, store, register):
        root = await register("root@example.com", role=Role.SUPERADMIN)
        admin = await register("admin@example.com", role=Role.ADMIN)

        updated = await ChangeStatusCommand(store).execute(
            root, str(admin.identity_id), "inactive"
        )

        assert updated.status == AccountStatus.INACTIVE

    async def test_deactivation_after_suspension_refused(self, store, register):
        root = await register("root@example.com", role=Role.SUPERADMIN)
        admin = await register("admin@example.com", role=Role.ADMIN)
        ann = await register("ann@example.com")
        find_by_id = store.find_by_id
        snapshot = await find_by_id(str(ann.identity_id))
        await SuspendIdentityCommand(store).execute(root, str(ann.identity_id), "Overdue")
        store.find_by_id = AsyncMock(return_value=snapshot)

        with pytest.raises(ConflictError):
            await ChangeStatusCommand(store).execute(admin, str(ann.identity_id), "inactive")

        stored = await find_by_id(str(ann.identity_id))
        assert stored.subscription_status == SubscriptionStatus.SUSPENDED
