from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class APIMessage(BaseModel):
    message: str = Field(..., description="Human readable message")


class UserClaim(BaseModel):
    """Identity carried by a verified bearer token."""

    id: int
    username: str


# =========================
# Auth
# =========================

class RegisterRequest(BaseModel):
    username: Optional[str] = Field(None, description="Unique username")
    email: Optional[EmailStr] = Field(None, description="Unique email address")
    password: Optional[str] = Field(None, description="Plaintext password")

    blank_as_missing = field_validator("username", "email", "password", mode="before")(_blank_to_none)


class RegisterResponse(BaseModel):
    message: str
    userId: int


class LoginRequest(BaseModel):
    email: Optional[EmailStr] = Field(None, description="User email address")
    password: Optional[str] = Field(None, description="Password")

    blank_as_missing = field_validator("email", "password", mode="before")(_blank_to_none)


class UserSummary(BaseModel):
    id: int
    username: str
    email: str


class LoginResponse(BaseModel):
    message: str
    token: str = Field(..., description="JWT access token")
    user: UserSummary


# =========================
# Family members
# =========================

class Member(BaseModel):
    id: int
    user_id: int
    name: str
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    photo_url: Optional[str] = None
    bio: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MemberCreate(BaseModel):
    name: Optional[str] = Field(None, description="Display name (required, non-empty)")
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    photo_url: Optional[str] = None
    bio: Optional[str] = None

    blank_as_null = field_validator("date_of_birth", "gender", "photo_url", "bio", mode="before")(_blank_to_none)


class MemberUpdate(BaseModel):
    """
    Partial update. Only fields present in the request body are applied
    (see ``model_fields_set``); a present-but-empty optional field clears it.
    """

    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    photo_url: Optional[str] = None
    bio: Optional[str] = None

    blank_as_null = field_validator("date_of_birth", "gender", "photo_url", "bio", mode="before")(_blank_to_none)

    def changes(self) -> dict:
        """Column -> value for every field the caller supplied."""
        return {
            field: getattr(self, field)
            for field in self.model_fields_set
            if field in type(self).model_fields
        }

    def is_empty(self) -> bool:
        """True when the body had no keys at all, known or unknown."""
        return not self.model_fields_set and not self.model_extra


class MemberResponse(BaseModel):
    message: str
    member: Member
