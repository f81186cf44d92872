"""Identity entity - aggregate root."""

from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from domain.identity.core.value_objects.identity_id import IdentityId
from domain.identity.core.value_objects.email import Email
from domain.identity.core.value_objects.enums import (
    AccountStatus,
    PaymentStatus,
    Role,
    SubscriptionStatus,
)
from domain.identity.core.exceptions.identity_errors import (
    AccountStateError,
    ImmutableAccountError,
    ValidationError,
)

# Fields a user may change about themselves. Everything else goes through
# privileged commands.
PROFILE_FIELDS = frozenset(
    {
        "name",
        "age",
        "weight",
        "height",
        "activity_level",
        "goal",
        "daily_goal",
        "target_weight",
    }
)


def utcnow() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(timezone.utc)


@dataclass
class Identity:
    """Identity aggregate root.

    Represents an account of the system. The authoritative record lives in
    the identity store; a session only ever holds a copy.

    Invariants:
    - email is normalized and unique among non-demo identities
    - role is a closed enum; only the bootstrap guard creates superadmins
    - demo identities are immutable (``is_demo`` flag, never inferred)
    - the secret is never part of the entity

    Examples:
        >>> identity = Identity.register(Email("a@b.com"), name="Ann")
        >>> identity.role
        <Role.USER: 'user'>
        >>> identity.can_hold_session
        True
    """

    identity_id: IdentityId
    email: Email
    name: str
    role: Role = Role.USER
    status: AccountStatus = AccountStatus.ACTIVE
    subscription_status: SubscriptionStatus = SubscriptionStatus.FREE
    payment_status: PaymentStatus = PaymentStatus.NONE
    age: Optional[int] = None
    weight: Optional[float] = None
    height: Optional[float] = None
    activity_level: Optional[str] = None
    goal: Optional[str] = None
    daily_goal: Optional[int] = None
    target_weight: Optional[float] = None
    subscription_end_date: Optional[datetime] = None
    is_demo: bool = False
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    last_login: Optional[datetime] = None

    @staticmethod
    def register(
        email: Email,
        name: str,
        role: Role = Role.USER,
        profile: Optional[Mapping[str, Any]] = None,
    ) -> "Identity":
        """Factory method for a brand new account.

        Args:
            email: Normalized email
            name: Display name (falls back to the email local part)
            role: Initial role (USER for signup, SUPERADMIN for bootstrap)
            profile: Optional profile attributes (see PROFILE_FIELDS)

        Returns:
            New active Identity
        """
        now = utcnow()
        identity = Identity(
            identity_id=IdentityId.generate(),
            email=email,
            name=name or email.value.split("@", 1)[0],
            role=role,
            created_at=now,
            updated_at=now,
        )
        if profile:
            identity._merge_profile(profile)
        if role == Role.SUPERADMIN:
            identity.subscription_status = SubscriptionStatus.PREMIUM
            identity.payment_status = PaymentStatus.PAID
        return identity

    # ------------------------------------------------------------------
    # State queries
    # ------------------------------------------------------------------

    @property
    def gating_reason(self) -> Optional[str]:
        """Why this identity may not hold a session, or None."""
        if self.status == AccountStatus.INACTIVE:
            return "inactive"
        if self.subscription_status == SubscriptionStatus.SUSPENDED:
            return "suspended"
        return None

    @property
    def can_hold_session(self) -> bool:
        return self.gating_reason is None

    def ensure_can_hold_session(self) -> None:
        """Account-state gating applied at login and session resume.

        Raises:
            AccountStateError: If inactive or suspended
        """
        reason = self.gating_reason
        if reason is not None:
            raise AccountStateError(reason)

    def ensure_mutable(self) -> None:
        """Raises ImmutableAccountError for demo identities."""
        if self.is_demo:
            raise ImmutableAccountError(str(self.identity_id))

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def update_profile(self, patch: Mapping[str, Any]) -> None:
        """Merge profile fields.

        Args:
            patch: Field -> value mapping restricted to PROFILE_FIELDS

        Raises:
            ImmutableAccountError: Demo identity
            ValidationError: Patch touches a non-profile field
        """
        self.ensure_mutable()
        forbidden = sorted(set(patch) - PROFILE_FIELDS)
        if forbidden:
            raise ValidationError(
                f"Fields cannot be changed through profile update: {', '.join(forbidden)}",
                field=forbidden[0],
            )
        self._merge_profile(patch)
        self.updated_at = utcnow()

    def change_role(self, role: Role) -> None:
        self.ensure_mutable()
        self.role = role
        self.updated_at = utcnow()

    def change_status(self, status: AccountStatus) -> None:
        self.ensure_mutable()
        self.status = status
        self.updated_at = utcnow()

    def _merge_profile(self, profile: Mapping[str, Any]) -> None:
        for key, value in profile.items():
            if key in PROFILE_FIELDS:
                setattr(self, key, value)

    # ------------------------------------------------------------------
    # Copies & serialization
    # ------------------------------------------------------------------

    def copy(self, **changes: Any) -> "Identity":
        """Detached copy, optionally with changed fields."""
        return replace(self, **changes)

    def to_public_dict(self) -> Dict[str, Any]:
        """Plain representation for collaborators (never contains a secret)."""
        data: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, (IdentityId, Email, Enum)):
                value = value.value
            elif isinstance(value, datetime):
                value = value.isoformat()
            data[f.name] = value
        return data

    def __eq__(self, other: object) -> bool:
        """Equality based on identity_id (aggregate identity)."""
        if not isinstance(other, Identity):
            return False
        return self.identity_id == other.identity_id

    def __hash__(self) -> int:
        return hash(self.identity_id)
