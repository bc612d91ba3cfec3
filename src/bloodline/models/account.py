from datetime import datetime, timezone
from typing import Literal, get_args
from urllib.parse import quote_plus

from pydantic import BaseModel, ConfigDict, EmailStr, Field


Role = Literal["donor", "volunteer", "admin"]
AccountStatus = Literal["active", "blocked"]

ROLES: tuple[str, ...] = get_args(Role)
ACCOUNT_STATUSES: tuple[str, ...] = get_args(AccountStatus)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def default_avatar(name: str) -> str:
    return f"https://ui-avatars.com/api/?name={quote_plus(name)}&background=dc2626&color=fff"


class SessionClaim(BaseModel):
    """Identity proven by a session token. Never carries role or status."""
    email: EmailStr
    name: str | None = None


class Account(BaseModel):
    model_config = ConfigDict(extra="ignore")

    email: EmailStr
    name: str
    role: Role = "donor"
    status: AccountStatus = "active"

    avatar: str | None = None
    blood_group: str | None = None
    district: str | None = None
    upazila: str | None = None

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime | None = None

    @property
    def is_blocked(self) -> bool:
        return self.status == "blocked"

    def same_email(self, email: str | None) -> bool:
        return email is not None and normalize_email(self.email) == normalize_email(email)


class Registration(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    email: EmailStr
    name: str = Field(min_length=1)
    blood_group: str = Field(min_length=1)
    district: str = Field(min_length=1)
    upazila: str = Field(min_length=1)
    avatar: str | None = None


class ProfileUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    name: str = Field(min_length=1)
    blood_group: str = Field(min_length=1)
    district: str = Field(min_length=1)
    upazila: str = Field(min_length=1)
    avatar: str | None = None
