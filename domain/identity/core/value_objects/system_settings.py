"""SystemSettings value object."""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping

SUPERADMIN_EXISTS = "superadmin_exists"
DEMO_ACCOUNTS_ENABLED = "demo_accounts_enabled"

DEFAULT_SETTINGS: Dict[str, Any] = {
    SUPERADMIN_EXISTS: False,
    DEMO_ACCOUNTS_ENABLED: True,
}


@dataclass(frozen=True)
class SystemSettings:
    """Snapshot of the system-wide settings singleton.

    The backing store keeps an unordered key -> value map. This object is a
    read-only view of it; writes go through the identity store.

    Examples:
        >>> settings = SystemSettings.from_mapping({"superadmin_exists": True})
        >>> settings.superadmin_exists
        True
        >>> settings.demo_accounts_enabled
        True
    """

    values: Mapping[str, Any] = field(default_factory=dict)

    @staticmethod
    def defaults() -> "SystemSettings":
        """Settings written on first backend initialization."""
        return SystemSettings(values=dict(DEFAULT_SETTINGS))

    @staticmethod
    def from_mapping(raw: Mapping[str, Any]) -> "SystemSettings":
        """Build a snapshot, filling missing keys with defaults."""
        merged = dict(DEFAULT_SETTINGS)
        merged.update({key: _coerce(value) for key, value in raw.items()})
        return SystemSettings(values=merged)

    @property
    def superadmin_exists(self) -> bool:
        return bool(self.values.get(SUPERADMIN_EXISTS, False))

    @property
    def demo_accounts_enabled(self) -> bool:
        return bool(self.values.get(DEMO_ACCOUNTS_ENABLED, True))

    def get(self, key: str, default: Any = None) -> Any:
        return self.values.get(key, default)


def _coerce(value: Any) -> Any:
    """Stored booleans may come back as "true"/"false" strings."""
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower() == "true"
    return value
