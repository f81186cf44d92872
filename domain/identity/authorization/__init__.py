"""Role & permission resolution."""

from domain.identity.authorization.permissions import (
    can_access_premium_features,
    has_permission,
    has_role,
    permissions_for,
    require_permission,
    require_role,
)

__all__ = [
    "can_access_premium_features",
    "has_permission",
    "has_role",
    "permissions_for",
    "require_permission",
    "require_role",
]
