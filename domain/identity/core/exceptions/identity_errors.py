"""Identity domain exceptions."""

from typing import Optional


class IdentityDomainError(Exception):
    """Base exception for Identity domain errors.

    Every subclass carries a stable ``code`` so callers can branch on the
    error kind without string matching, and a user-facing ``message``.
    """

    code = "identity_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class AuthenticationError(IdentityDomainError):
    """Credentials do not match any identity."""

    code = "authentication_failed"

    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message)


class AccountStateError(IdentityDomainError):
    """Credentials are valid but the account may not hold a session."""

    code = "account_state"

    MESSAGES = {
        "inactive": "Account is inactive. Please contact administrator.",
        "suspended": "Account suspended due to payment issues. Please contact support.",
    }

    def __init__(self, reason: str):
        """Initialize with the gating reason.

        Args:
            reason: "inactive" or "suspended"
        """
        self.reason = reason
        super().__init__(self.MESSAGES.get(reason, f"Account cannot be used: {reason}"))


class AuthorizationError(IdentityDomainError):
    """Actor lacks the role or permission for a privileged operation."""

    code = "authorization_failed"

    def __init__(self, actor_id: Optional[str], required: str, message: Optional[str] = None):
        """Initialize with actor and the missing capability.

        Args:
            actor_id: Identity that attempted the operation (None if anonymous)
            required: Permission token or role that was required
            message: User-facing text replacing the generic one
        """
        self.actor_id = actor_id
        self.required = required
        super().__init__(
            message
            or f"Not authorized: '{required}' required (actor: {actor_id or 'anonymous'})"
        )


class ConflictError(IdentityDomainError):
    """Uniqueness violation (duplicate email, second superadmin) or a lost concurrent update."""

    code = "conflict"

    MESSAGES = {
        "email_exists": "An account with this email already exists",
        "superadmin_exists": "A superadmin account already exists",
        "concurrent_update": "The account was changed by another operation. Please try again.",
    }

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(self.MESSAGES.get(reason, f"Conflict: {reason}"))


class ImmutableAccountError(IdentityDomainError):
    """Attempted mutation or deletion of a demo identity."""

    code = "immutable_account"

    def __init__(self, identity_id: str):
        self.identity_id = identity_id
        super().__init__(
            "Demo accounts cannot be modified or deleted. "
            "This is for demonstration purposes only."
        )


class NotFoundError(IdentityDomainError):
    """Target identity does not exist."""

    code = "not_found"

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(f"Identity not found: {identifier}")


class ConnectivityError(IdentityDomainError):
    """Durable backend unreachable or failed mid-operation."""

    code = "connectivity"

    def __init__(self, message: str = "Storage backend unreachable"):
        super().__init__(message)


class ValidationError(IdentityDomainError):
    """Input data is malformed or touches forbidden fields."""

    code = "validation"

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class InvalidTransitionError(IdentityDomainError):
    """Subscription or status transition not allowed by the state machine."""

    code = "invalid_transition"

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Invalid transition: {current} -> {target}")


class RegistrationClosedError(IdentityDomainError):
    """Self-registration refused by deployment policy."""

    code = "registration_closed"

    def __init__(self, policy: str):
        self.policy = policy
        super().__init__(f"Registration is currently disabled (policy: {policy})")
