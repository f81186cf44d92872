"""Built-in demo identities.

One fixed identity per role, never persisted. They are available while the
durable backend is unreachable or while ``demo_accounts_enabled`` is set.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
import hmac
from typing import Dict, List, Optional

from domain.identity.core.entities.identity import Identity
from domain.identity.core.value_objects.email import Email
from domain.identity.core.value_objects.identity_id import IdentityId
from domain.identity.core.value_objects.enums import (
    PaymentStatus,
    Role,
    SubscriptionStatus,
)

# Fixed so copies of demo identities compare and serialize identically.
_DEMO_CREATED_AT = datetime(2025, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class DemoAccount:
    """Demo identity template plus its clear-text demo password."""

    identity_id: str
    email: str
    password: str
    name: str
    role: Role
    subscription_status: SubscriptionStatus
    payment_status: PaymentStatus
    age: int
    weight: float
    height: float
    activity_level: str
    goal: str
    daily_goal: int

    def to_identity(self) -> Identity:
        """Fresh Identity copy (callers may not mutate the template)."""
        return Identity(
            identity_id=IdentityId(self.identity_id),
            email=Email(self.email),
            name=self.name,
            role=self.role,
            subscription_status=self.subscription_status,
            payment_status=self.payment_status,
            age=self.age,
            weight=self.weight,
            height=self.height,
            activity_level=self.activity_level,
            goal=self.goal,
            daily_goal=self.daily_goal,
            is_demo=True,
            created_at=_DEMO_CREATED_AT,
            updated_at=_DEMO_CREATED_AT,
        )


DEMO_ACCOUNTS: tuple = (
    DemoAccount(
        identity_id="demo-superadmin-001",
        email="superadmin@mealtracker.com",
        password="super123",
        name="Superadmin Demo",
        role=Role.SUPERADMIN,
        subscription_status=SubscriptionStatus.PREMIUM,
        payment_status=PaymentStatus.PAID,
        age=35,
        weight=80,
        height=180,
        activity_level="active",
        goal="maintain",
        daily_goal=2400,
    ),
    DemoAccount(
        identity_id="demo-admin-001",
        email="admin@mealtracker.com",
        password="admin123",
        name="Admin Demo",
        role=Role.ADMIN,
        subscription_status=SubscriptionStatus.PREMIUM,
        payment_status=PaymentStatus.PAID,
        age=30,
        weight=75,
        height=175,
        activity_level="moderate",
        goal="maintain",
        daily_goal=2200,
    ),
    DemoAccount(
        identity_id="demo-mod-001",
        email="mod@mealtracker.com",
        password="mod123",
        name="Moderator Demo",
        role=Role.MODERATOR,
        subscription_status=SubscriptionStatus.FREE,
        payment_status=PaymentStatus.NONE,
        age=28,
        weight=68,
        height=168,
        activity_level="active",
        goal="lose",
        daily_goal=1800,
    ),
    DemoAccount(
        identity_id="demo-user-001",
        email="demo@mealtracker.com",
        password="demo123",
        name="Demo User",
        role=Role.USER,
        subscription_status=SubscriptionStatus.FREE,
        payment_status=PaymentStatus.NONE,
        age=25,
        weight=70,
        height=170,
        activity_level="moderate",
        goal="maintain",
        daily_goal=2000,
    ),
)

_BY_ID: Dict[str, DemoAccount] = {account.identity_id: account for account in DEMO_ACCOUNTS}
_BY_EMAIL: Dict[str, DemoAccount] = {account.email: account for account in DEMO_ACCOUNTS}


def match_demo_credentials(identifier: str, secret: str) -> Optional[Identity]:
    """Demo identity whose email and password match exactly.

    Identifier comparison is plain string equality (no normalization), the
    password comparison is case-sensitive.
    """
    account = _BY_EMAIL.get(identifier)
    if account is None:
        return None
    if not hmac.compare_digest(account.password.encode(), secret.encode()):
        return None
    return account.to_identity()


def find_demo_by_id(identity_id: str) -> Optional[Identity]:
    account = _BY_ID.get(identity_id)
    return account.to_identity() if account else None


def is_demo_id(identity_id: str) -> bool:
    return identity_id in _BY_ID


def is_demo_email(email: str) -> bool:
    return Email.normalize(email) in _BY_EMAIL


def list_demo_identities() -> List[Identity]:
    return [account.to_identity() for account in DEMO_ACCOUNTS]
