"""IdentityId value object."""

from dataclasses import dataclass
import uuid


@dataclass(frozen=True)
class IdentityId:
    """Identity identifier value object.

    Real accounts get a random UUID4, demo accounts use fixed readable ids
    (e.g. ``demo-admin-001``), so any non-blank string is accepted.

    Examples:
        >>> identity_id = IdentityId("demo-user-001")
        >>> identity_id.value
        'demo-user-001'

        >>> len(str(IdentityId.generate()))
        36
    """

    value: str

    def __post_init__(self) -> None:
        """Validate identifier is not blank."""
        if not isinstance(self.value, str) or not self.value.strip():
            raise ValueError(f"Invalid identity id: {self.value!r}")

        if len(self.value) > 128:
            raise ValueError(
                f"Identity id too long ({len(self.value)} chars). Maximum 128 characters allowed"
            )

    @staticmethod
    def generate() -> "IdentityId":
        """Generate a new random IdentityId.

        Returns:
            New IdentityId with random UUID v4
        """
        return IdentityId(str(uuid.uuid4()))

    def __str__(self) -> str:
        """String representation returns the raw value."""
        return self.value

    def __repr__(self) -> str:
        """Developer-friendly representation."""
        return f"IdentityId('{self.value}')"
