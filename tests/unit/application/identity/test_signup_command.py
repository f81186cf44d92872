"""Tests for signup command."""

import pytest

from application.identity.commands.create_superadmin import CreateSuperadminCommand
from application.identity.commands.signup import SignupCommand
from domain.identity.core.exceptions.identity_errors import (
    ConflictError,
    RegistrationClosedError,
    ValidationError,
)
from domain.identity.core.value_objects.enums import (
    AccountStatus,
    PaymentStatus,
    RegistrationPolicy,
    Role,
    SubscriptionStatus,
)


@pytest.fixture
def command(store, hasher):
    return SignupCommand(store, hasher)


def signup_data(**overrides):
    data = {"email": "ann@example.com", "password": "secret123", "name": "Ann"}
    data.update(overrides)
    return data


@pytest.mark.asyncio
class TestSignup:
    """Self-registration."""

    async def test_signup_creates_plain_user(self, command, store, hasher):
        identity = await command.execute(signup_data(age=34, weight=61.5, goal="lose"))

        assert identity.role == Role.USER
        assert identity.status == AccountStatus.ACTIVE
        assert identity.subscription_status == SubscriptionStatus.FREE
        assert identity.payment_status == PaymentStatus.NONE
        assert identity.age == 34
        assert identity.goal == "lose"

        secret_hash = await store.get_secret_hash(str(identity.identity_id))
        assert hasher.verify("secret123", secret_hash)
        assert "secret123" not in secret_hash

    async def test_signup_normalizes_email(self, command):
        identity = await command.execute(signup_data(email="  Ann@Example.COM "))

        assert identity.email.value == "ann@example.com"

    async def test_signup_ignores_role_escalation(self, command):
        identity = await command.execute(signup_data(role="superadmin", status="inactive"))

        assert identity.role == Role.USER
        assert identity.status == AccountStatus.ACTIVE

    async def test_duplicate_email(self, command):
        await command.execute(signup_data())

        with pytest.raises(ConflictError) as exc_info:
            await command.execute(signup_data(email="ANN@example.com"))

        assert exc_info.value.reason == "email_exists"

    async def test_demo_email_is_taken(self, command, store):
        with pytest.raises(ConflictError):
            await command.execute(signup_data(email="demo@mealtracker.com"))

        assert store.count() == 0

    @pytest.mark.parametrize(
        "overrides,field",
        [
            ({"email": "not-an-email"}, "email"),
            ({"password": "123"}, "password"),
            ({"age": -1}, "age"),
            ({"daily_goal": 0}, "daily_goal"),
        ],
    )
    async def test_invalid_input(self, command, store, overrides, field):
        with pytest.raises(ValidationError) as exc_info:
            await command.execute(signup_data(**overrides))

        assert exc_info.value.field == field
        assert store.count() == 0

    async def test_missing_password(self, command):
        with pytest.raises(ValidationError) as exc_info:
            await command.execute({"email": "ann@example.com"})

        assert exc_info.value.field == "password"


@pytest.mark.asyncio
class TestRegistrationPolicy:
    """Deployment-configured signup policy."""

    async def test_closed_refuses(self, store, hasher):
        command = SignupCommand(store, hasher, policy=RegistrationPolicy.CLOSED)

        with pytest.raises(RegistrationClosedError):
            await command.execute(signup_data())

        assert store.count() == 0

    async def test_after_bootstrap_refuses_before_superadmin(self, store, hasher):
        command = SignupCommand(store, hasher, policy=RegistrationPolicy.AFTER_BOOTSTRAP)

        with pytest.raises(RegistrationClosedError) as exc_info:
            await command.execute(signup_data())

        assert exc_info.value.policy == "after_bootstrap"

    async def test_after_bootstrap_allows_once_superadmin_exists(self, store, hasher):
        await CreateSuperadminCommand(store, hasher).execute(
            {"email": "root@example.com", "password": "Sup3rSecure!"}
        )
        command = SignupCommand(store, hasher, policy=RegistrationPolicy.AFTER_BOOTSTRAP)

        identity = await command.execute(signup_data())

        assert identity.role == Role.USER
