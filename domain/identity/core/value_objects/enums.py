"""Closed enumerations for identity attributes."""

from enum import Enum


class Role(str, Enum):
    """Identity role.

    Role is a closed set; comparisons go through the permission resolver,
    never through raw strings.
    """

    SUPERADMIN = "superadmin"
    ADMIN = "admin"
    MODERATOR = "moderator"
    USER = "user"

    @property
    def is_staff(self) -> bool:
        """Staff roles are counted separately in system statistics."""
        return self in (Role.SUPERADMIN, Role.ADMIN, Role.MODERATOR)


class AccountStatus(str, Enum):
    """Whether the account may log in at all."""

    ACTIVE = "active"
    INACTIVE = "inactive"


class SubscriptionStatus(str, Enum):
    """Subscription tier, or suspended."""

    FREE = "free"
    PREMIUM = "premium"
    SUSPENDED = "suspended"


class PaymentStatus(str, Enum):
    """Payment state that accompanies the subscription tier."""

    NONE = "none"
    PAID = "paid"
    OVERDUE = "overdue"


class SubscriptionAction(str, Enum):
    """Audited subscription transitions."""

    SUSPENDED = "suspended"
    REACTIVATED = "reactivated"


class RegistrationPolicy(str, Enum):
    """Deployment policy for self-registration.

    - OPEN: signup always allowed
    - AFTER_BOOTSTRAP: signup refused until a superadmin exists
    - CLOSED: signup always refused
    """

    OPEN = "open"
    AFTER_BOOTSTRAP = "after_bootstrap"
    CLOSED = "closed"
