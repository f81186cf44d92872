"""Unit tests for identity value objects."""

import pytest

from domain.identity.core.value_objects.email import Email
from domain.identity.core.value_objects.enums import Role
from domain.identity.core.value_objects.identity_id import IdentityId
from domain.identity.core.value_objects.system_settings import SystemSettings


class TestEmail:
    """Test Email value object."""

    def test_normalizes_case_and_whitespace(self):
        assert Email("  Root@Example.COM ").value == "root@example.com"

    def test_equal_ignoring_case(self):
        assert Email("a@example.com") == Email("A@EXAMPLE.com")

    def test_domain(self):
        assert Email("a@example.com").domain == "example.com"

    @pytest.mark.parametrize("raw", ["", "   ", "no-at-sign", "a@b", "a b@example.com"])
    def test_rejects_malformed(self, raw):
        with pytest.raises(ValueError):
            Email(raw)

    def test_normalize_does_not_validate(self):
        assert Email.normalize(" Not An Email ") == "not an email"


class TestIdentityId:
    """Test IdentityId value object."""

    def test_accepts_demo_style_ids(self):
        assert str(IdentityId("demo-user-001")) == "demo-user-001"

    def test_generate_is_uuid(self):
        assert len(IdentityId.generate().value) == 36

    @pytest.mark.parametrize("raw", ["", "  ", "x" * 129])
    def test_rejects_invalid(self, raw):
        with pytest.raises(ValueError):
            IdentityId(raw)


class TestRole:
    """Test Role enum."""

    def test_staff_roles(self):
        assert Role.SUPERADMIN.is_staff
        assert Role.ADMIN.is_staff
        assert Role.MODERATOR.is_staff
        assert not Role.USER.is_staff

    def test_unknown_role_rejected(self):
        with pytest.raises(ValueError):
            Role("owner")


class TestSystemSettings:
    """Test SystemSettings snapshot."""

    def test_defaults(self):
        settings = SystemSettings.defaults()

        assert settings.superadmin_exists is False
        assert settings.demo_accounts_enabled is True

    def test_from_mapping_fills_missing_keys(self):
        settings = SystemSettings.from_mapping({"superadmin_exists": True})

        assert settings.superadmin_exists is True
        assert settings.demo_accounts_enabled is True

    def test_from_mapping_coerces_string_booleans(self):
        settings = SystemSettings.from_mapping(
            {"superadmin_exists": "true", "demo_accounts_enabled": "False"}
        )

        assert settings.superadmin_exists is True
        assert settings.demo_accounts_enabled is False

    def test_get_unknown_key(self):
        assert SystemSettings.defaults().get("missing", 42) == 42
