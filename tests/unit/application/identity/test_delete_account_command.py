"""Tests for cascading account deletion."""

from unittest.mock import AsyncMock

import pytest

from application.identity.commands.create_superadmin import CreateSuperadminCommand
from application.identity.commands.delete_account import DeleteAccountCommand
from domain.identity.core.exceptions.identity_errors import (
    AuthorizationError,
    ConnectivityError,
    ImmutableAccountError,
    NotFoundError,
)
from domain.identity.core.value_objects.enums import AccountStatus, Role


@pytest.fixture
def command(store):
    return DeleteAccountCommand(store)


@pytest.mark.asyncio
class TestDeleteAccount:
    """Account deletion."""

    async def test_delete_cascades(self, command, register, store):
        ann = await register("ann@example.com")
        ann_id = str(ann.identity_id)
        store.add_dependent_record(ann_id, "meals", {"name": "Pasta"})
        store.add_dependent_record(ann_id, "favorites", {"name": "Salad"})
        await store.open_session(ann_id)

        await command.execute(ann_id)

        assert await store.find_by_id(ann_id) is None
        assert await store.get_secret_hash(ann_id) is None
        assert store.count_dependent_records(ann_id) == 0
        assert not await store.has_active_session(ann_id)

    async def test_deleted_email_can_register_again(self, command, register, store):
        ann = await register("ann@example.com")

        await command.execute(str(ann.identity_id))

        await register("ann@example.com")
        assert store.count() == 1

    async def test_demo_identity_immutable(self, command):
        with pytest.raises(ImmutableAccountError):
            await command.execute("demo-admin-001")

    async def test_unknown_identity(self, command):
        with pytest.raises(NotFoundError):
            await command.execute("missing")

    async def test_dependents_removed_before_identity(self, command, register, store):
        ann = await register("ann@example.com")
        ann_id = str(ann.identity_id)
        store.add_dependent_record(ann_id, "meals", {"name": "Pasta"})
        store.delete = AsyncMock(side_effect=ConnectivityError("delete failed"))

        with pytest.raises(ConnectivityError):
            await command.execute(ann_id)

        # Partial failure leaves an inactive identity without data.
        remaining = await store.find_by_id(ann_id)
        assert remaining.status == AccountStatus.INACTIVE
        assert store.count_dependent_records(ann_id) == 0

    async def test_deleting_superadmin_reopens_bootstrap(self, command, store, hasher):
        root = await CreateSuperadminCommand(store, hasher).execute(
            {"email": "root@example.com", "password": "Sup3rSecure!"}
        )

        await command.execute(str(root.identity_id), actor=root)

        settings = await store.read_settings()
        assert settings.superadmin_exists is False
        assert settings.demo_accounts_enabled is False


@pytest.mark.asyncio
class TestDeleteAuthorization:
    """Deleting someone else's account."""

    async def test_admin_deletes_user(self, command, register, store):
        admin = await register("admin@example.com", role=Role.ADMIN)
        ann = await register("ann@example.com")

        await command.execute(str(ann.identity_id), actor=admin)

        assert await store.find_by_id(str(ann.identity_id)) is None

    async def test_user_cannot_delete_others(self, command, register, store):
        bob = await register("bob@example.com")
        ann = await register("ann@example.com")

        with pytest.raises(AuthorizationError):
            await command.execute(str(ann.identity_id), actor=bob)

        assert await store.find_by_id(str(ann.identity_id)) is not None

    async def test_admin_cannot_delete_superadmin(self, command, register, store):
        admin = await register("admin@example.com", role=Role.ADMIN)
        root = await register("root@example.com", role=Role.SUPERADMIN)

        with pytest.raises(AuthorizationError):
            await command.execute(str(root.identity_id), actor=admin)

        assert await store.find_by_id(str(root.identity_id)) is not None
