"""Email value object."""

from dataclasses import dataclass
import re

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass(frozen=True)
class Email:
    """Case-normalized email address.

    Emails are the login identifier, so they are stored trimmed and lower
    cased. Two emails differing only in case are the same identity.

    Examples:
        >>> Email("  Root@X.com ").value
        'root@x.com'

        >>> Email("root@x.com") == Email("ROOT@x.com")
        True

    Raises:
        ValueError: If the address is empty or malformed
    """

    value: str

    def __post_init__(self) -> None:
        """Normalize and validate."""
        if not isinstance(self.value, str):
            raise ValueError(f"Email must be a string, got {type(self.value).__name__}")

        normalized = self.value.strip().lower()
        if not normalized:
            raise ValueError("Email cannot be empty")

        if len(normalized) > 254:
            raise ValueError(f"Email too long ({len(normalized)} chars)")

        if not _EMAIL_PATTERN.match(normalized):
            raise ValueError(f"Invalid email format: {self.value}")

        # frozen dataclass: bypass __setattr__ to store normalized form
        object.__setattr__(self, "value", normalized)

    @staticmethod
    def normalize(raw: str) -> str:
        """Normalize a raw identifier without validating it."""
        return raw.strip().lower()

    @property
    def domain(self) -> str:
        """Domain part of the address."""
        return self.value.split("@", 1)[1]

    def __str__(self) -> str:
        return self.value
