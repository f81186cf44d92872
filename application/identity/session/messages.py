"""Session messages.

Every change of session state is one of these messages, processed one at a
time by SessionStore and forwarded to subscribers.
"""

from dataclasses import dataclass
from typing import Optional, Union

from domain.identity.core.entities.identity import Identity
from domain.identity.core.exceptions.identity_errors import IdentityDomainError
from domain.identity.core.value_objects.system_settings import SystemSettings


@dataclass(frozen=True)
class LoginSucceeded:
    identity: Identity
    session_id: Optional[str] = None


@dataclass(frozen=True)
class LoggedOut:
    reason: Optional[str] = None


@dataclass(frozen=True)
class SettingsLoaded:
    settings: SystemSettings


@dataclass(frozen=True)
class IdentityUpdated:
    """Fresh copy of an identity; applied only if it is the current one."""

    identity: Identity


@dataclass(frozen=True)
class BackendSelected:
    backend: str
    durable: bool
    fallback: bool = False


@dataclass(frozen=True)
class ErrorRaised:
    error: IdentityDomainError


SessionMessage = Union[
    LoginSucceeded,
    LoggedOut,
    SettingsLoaded,
    IdentityUpdated,
    BackendSelected,
    ErrorRaised,
]
