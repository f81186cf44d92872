"""Input models for identity commands.

Validated with pydantic; validation failures are converted to the domain
ValidationError so callers only ever see identity errors.
"""

from typing import Any, Dict, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from domain.identity.core.exceptions.identity_errors import ValidationError
from domain.identity.core.value_objects.email import Email

TModel = TypeVar("TModel", bound=BaseModel)


class ProfileFields(BaseModel):
    """Physical attributes and goals shared by every input model."""

    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = Field(default=None, max_length=120)
    age: Optional[int] = Field(default=None, ge=1, le=130)
    weight: Optional[float] = Field(default=None, gt=0, le=700)
    height: Optional[float] = Field(default=None, gt=0, le=300)
    activity_level: Optional[str] = Field(default=None, max_length=40)
    goal: Optional[str] = Field(default=None, max_length=40)
    daily_goal: Optional[int] = Field(default=None, gt=0, le=20000)
    target_weight: Optional[float] = Field(default=None, gt=0, le=700)

    def profile(self) -> Dict[str, Any]:
        """Profile attributes that were actually provided."""
        return self.model_dump(include=set(ProfileFields.model_fields), exclude_none=True)


class SignupData(ProfileFields):
    """Self-registration input.

    Unknown keys (including ``role``) are ignored: signup always yields a
    plain user.
    """

    email: str
    password: str = Field(min_length=6)

    @field_validator("email")
    @classmethod
    def valid_email(cls, v: str) -> str:
        return Email(v).value


class SuperadminData(SignupData):
    """Bootstrap input; stricter password rule."""

    password: str = Field(min_length=8)


class ProfilePatch(ProfileFields):
    """Partial profile update; any non-profile key is rejected."""

    model_config = ConfigDict(extra="forbid")


def parse_input(model: Type[TModel], data: Mapping[str, Any]) -> TModel:
    """Validate ``data`` against ``model``.

    Raises:
        ValidationError: First validation problem, with the offending field
    """
    try:
        return model.model_validate(dict(data))
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or None
        if first.get("type") == "extra_forbidden":
            message = f"Field cannot be changed through profile update: {field}"
        else:
            message = f"Invalid value for {field}: {first.get('msg')}"
        raise ValidationError(message, field=field) from None
