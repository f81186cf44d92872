"""Role & permission resolver.

Static role -> capability table. Pure functions, no I/O. Every privileged
command calls ``require_permission`` / ``require_role`` before touching the
store.
"""

from datetime import datetime, timezone
from typing import Dict, FrozenSet, Optional, Union

from domain.identity.core.entities.identity import Identity
from domain.identity.core.exceptions.identity_errors import AuthorizationError
from domain.identity.core.value_objects.enums import Role, SubscriptionStatus

MANAGE_USERS = "manage_users"
VIEW_ANALYTICS = "view_analytics"
MANAGE_CONTENT = "manage_content"
SYSTEM_SETTINGS = "system_settings"
SUSPEND_USERS = "suspend_users"
VIEW_OWN_DATA = "view_own_data"
MANAGE_OWN_PROFILE = "manage_own_profile"

ALL_PERMISSIONS: FrozenSet[str] = frozenset(
    {
        MANAGE_USERS,
        VIEW_ANALYTICS,
        MANAGE_CONTENT,
        SYSTEM_SETTINGS,
        SUSPEND_USERS,
        VIEW_OWN_DATA,
        MANAGE_OWN_PROFILE,
    }
)

# Superadmin is a wildcard and is not listed here.
ROLE_PERMISSIONS: Dict[Role, FrozenSet[str]] = {
    Role.ADMIN: frozenset({MANAGE_USERS, VIEW_ANALYTICS, MANAGE_CONTENT, SYSTEM_SETTINGS}),
    Role.MODERATOR: frozenset({MANAGE_CONTENT, VIEW_ANALYTICS}),
    Role.USER: frozenset({VIEW_OWN_DATA, MANAGE_OWN_PROFILE}),
}

_PREMIUM_ROLES = (Role.SUPERADMIN, Role.ADMIN)


def _as_role(role: Union[Role, str]) -> Optional[Role]:
    try:
        return Role(role)
    except ValueError:
        return None


def permissions_for(role: Union[Role, str]) -> FrozenSet[str]:
    """Capability tokens granted to ``role``.

    Examples:
        >>> sorted(permissions_for("moderator"))
        ['manage_content', 'view_analytics']
    """
    resolved = _as_role(role)
    if resolved is None:
        return frozenset()
    if resolved == Role.SUPERADMIN:
        return ALL_PERMISSIONS
    return ROLE_PERMISSIONS[resolved]


def has_permission(identity: Optional[Identity], token: str) -> bool:
    """Whether ``identity`` holds ``token``.

    Superadmin answers True for any token, including unknown ones.

    Examples:
        >>> has_permission(None, "manage_users")
        False
    """
    if identity is None:
        return False
    if identity.role == Role.SUPERADMIN:
        return True
    return token in ROLE_PERMISSIONS.get(identity.role, frozenset())


def has_role(identity: Optional[Identity], role: Union[Role, str]) -> bool:
    """Exact role match (no hierarchy)."""
    if identity is None:
        return False
    resolved = _as_role(role)
    return resolved is not None and identity.role == resolved


def require_permission(identity: Optional[Identity], token: str) -> Identity:
    """Raises AuthorizationError unless ``identity`` holds ``token``."""
    if identity is None or not has_permission(identity, token):
        raise AuthorizationError(str(identity.identity_id) if identity else None, token)
    return identity


def require_role(identity: Optional[Identity], role: Union[Role, str]) -> Identity:
    """Raises AuthorizationError unless ``identity`` has exactly ``role``."""
    if identity is None or not has_role(identity, role):
        raise AuthorizationError(
            str(identity.identity_id) if identity else None, f"role:{getattr(role, 'value', role)}"
        )
    return identity


def can_access_premium_features(
    identity: Optional[Identity], now: Optional[datetime] = None
) -> bool:
    """Premium feature gate.

    Superadmin and admin always pass. Free and premium subscriptions pass
    unless ``subscription_end_date`` is in the past. Suspended never passes.
    """
    if identity is None:
        return False
    if identity.role in _PREMIUM_ROLES:
        return True
    if identity.subscription_status not in (
        SubscriptionStatus.PREMIUM,
        SubscriptionStatus.FREE,
    ):
        return False
    if identity.subscription_end_date is None:
        return True
    current = now or datetime.now(timezone.utc)
    return identity.subscription_end_date > current
