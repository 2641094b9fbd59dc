from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, ValidationError, computed_field, field_validator

from alumninet.core.choices import ANY


ModerationStatus = Literal["pending", "approved", "rejected"]

# 目录分页上限：偏移量必须能作为数据库整数参数
MAX_DIRECTORY_PAGE = 10_000

_LINK_RE = re.compile(r"^https?://", re.IGNORECASE)


def max_graduation_year() -> int:
    return datetime.now(timezone.utc).year + 10


class ProfileOut(BaseModel):
    user_id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    phone: Optional[str] = None
    degree: Optional[str] = None
    branch: Optional[str] = None
    graduation_year: Optional[int] = None
    company: Optional[str] = None
    job_role: Optional[str] = None
    location: Optional[str] = None
    linkedin: Optional[str] = None
    avatar_url: Optional[str] = None
    onboarded: bool = False
    moderation_status: ModerationStatus = "pending"
    moderation_reason: Optional[str] = None

    @property
    def is_approved(self) -> bool:
        return self.moderation_status == "approved"


class LoginForm(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class SignUpForm(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)


class OnboardingForm(BaseModel):
    """Onboarding submission.

    Optional text fields default to ``""`` so a partially filled form can
    always be rendered back; required-ness is enforced by the validators.
    """

    full_name: str = ""
    phone: str = ""
    degree: str = ""
    branch: str = ""
    graduation_year: int
    company: str = ""
    job_role: str = ""
    location: str = ""
    linkedin: str = ""
    avatar_url: str = ""
    consent_terms: bool = False
    consent_privacy: bool = False

    @field_validator(
        "full_name", "phone", "degree", "branch", "company", "job_role", "location",
        "linkedin", "avatar_url",
        mode="before",
    )
    @classmethod
    def strip_text(cls, value):
        if value is None:
            return ""
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("full_name")
    @classmethod
    def require_name(cls, value: str) -> str:
        if not value:
            raise ValueError("Full name is required")
        return value

    @field_validator("degree", "branch")
    @classmethod
    def require_choice(cls, value: str) -> str:
        if not value or value.lower() == ANY:
            raise ValueError("This field is required")
        return value

    @field_validator("graduation_year", mode="before")
    @classmethod
    def coerce_year(cls, value):
        if isinstance(value, str):
            value = value.strip()
            if not re.fullmatch(r"-?\d+", value):
                raise ValueError("Invalid year")
            return int(value)
        return value

    @field_validator("graduation_year")
    @classmethod
    def check_year_range(cls, value: int) -> int:
        if value < 1900:
            raise ValueError("Invalid year")
        if value > max_graduation_year():
            raise ValueError("Too far in future")
        return value

    @field_validator("linkedin")
    @classmethod
    def check_link(cls, value: str) -> str:
        if value and not _LINK_RE.match(value):
            raise ValueError("Link must start with http:// or https://")
        return value

    @field_validator("consent_terms", "consent_privacy")
    @classmethod
    def require_consent(cls, value: bool) -> bool:
        if not value:
            raise ValueError("You must accept to continue")
        return value


def form_errors(exc: ValidationError) -> dict[str, str]:
    """Flatten a pydantic error into ``{field: message}`` for templates."""
    errors: dict[str, str] = {}
    for item in exc.errors():
        loc = item.get("loc") or ("__all__",)
        field = str(loc[0])
        message = str(item.get("msg", "Invalid value"))
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.setdefault(field, message)
    return errors


class DirectoryFilters(BaseModel):
    q: str = ""
    degree: str = ANY
    branch: str = ANY
    year: str = ""
    page: int = Field(1, ge=1, le=MAX_DIRECTORY_PAGE)


class DirectoryRow(BaseModel):
    id: str
    full_name: Optional[str] = None
    graduation_year: Optional[int] = None
    degree: Optional[str] = None
    branch: Optional[str] = None
    company: Optional[str] = None
    job_role: Optional[str] = None
    location: Optional[str] = None
    linkedin: Optional[str] = None
    avatar_url: Optional[str] = None


class DirectoryResult(BaseModel):
    rows: List[DirectoryRow] = Field(default_factory=list)
    count: int = 0
    page: int = 1
    page_size: int = 20

    @computed_field
    @property
    def total_pages(self) -> int:
        if self.count <= 0:
            return 1
        return -(-self.count // self.page_size)

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages
