"""Schemas for Students module."""

from datetime import date, datetime
from typing import Any

from pydantic import AliasChoices, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from src.modules.students.models import EducationLevel
from src.shared.schemas.base import BaseSchema


# Profile fields the single-field edit endpoint may touch. Financial fields
# (balance, payment_status, discount) belong to the balance engine.
EDITABLE_FIELDS: frozenset[str] = frozenset(
    {
        "last_name",
        "first_name",
        "middle_name",
        "passport_number",
        "birth_date",
        "phone1",
        "phone2",
        "email",
        "address",
        "education_level",
        "language_certificate",
        "tariff",
        "university1",
        "university2",
        "additional_notes",
        "status",
        "hear_about_us",
    }
)

NAME_FIELDS: frozenset[str] = frozenset({"last_name", "first_name", "middle_name"})

# Stored upper-cased, as the registration form submits them
UPPERCASE_FIELDS: frozenset[str] = frozenset(
    {"last_name", "first_name", "middle_name", "hear_about_us", "language_certificate", "tariff"}
)


def _upper(v: str | None) -> str | None:
    if v is None:
        return None
    return v.strip().upper()


class StudentCreate(BaseSchema):
    """Registration form submission."""

    # The registration form posts camelCase keys (lastName, educationLevel, ...)
    model_config = ConfigDict(alias_generator=to_camel)

    last_name: str = Field(..., min_length=1, max_length=100)
    first_name: str = Field(..., min_length=1, max_length=100)
    middle_name: str | None = Field(None, max_length=100)
    passport_number: str | None = Field(None, max_length=20)
    birth_date: date | None = None
    hear_about_us: str | None = Field(None, max_length=100)

    phone1: str | None = Field(None, max_length=20)
    phone2: str | None = Field(None, max_length=20)
    email: str = Field(..., min_length=3, max_length=255)
    address: str | None = None

    education_level: EducationLevel
    language_certificate: str | None = Field(None, max_length=50)
    tariff: str | None = Field(None, max_length=20)
    university1: str | None = Field(None, max_length=200)
    university2: str | None = Field(None, max_length=200)
    additional_notes: str | None = None

    status: str = Field("pending", max_length=50)
    timestamp: str | None = None
    # Pre-computed by older clients; derived from the tariff when omitted
    balance: int | None = None

    @field_validator("last_name", "first_name", "email", mode="before")
    @classmethod
    def strip_required(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator(*sorted(UPPERCASE_FIELDS))
    @classmethod
    def uppercase(cls, v: str | None) -> str | None:
        return _upper(v)

    @field_validator("education_level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        if "@" not in v:
            raise ValueError("Email must contain '@'")
        return v


class StudentFieldUpdate(BaseSchema):
    """Single-field edit: {field, value}."""

    field: str = Field(..., min_length=1)
    value: Any = None
    updated_by: str | None = None


class StudentResponse(BaseSchema):
    """Student as shown in lists and detail pages."""

    id: int
    student_code: str
    full_name: str
    last_name: str
    first_name: str
    middle_name: str | None
    passport_number: str | None
    birth_date: date | None
    hear_about_us: str | None
    phone1: str | None
    phone2: str | None
    email: str
    address: str | None
    education_level: str
    language_certificate: str | None
    tariff: str | None
    university1: str | None
    university2: str | None
    additional_notes: str | None
    status: str
    timestamp: str | None = None
    balance: int
    payment_status: str
    discount: int
    created_at: datetime
    updated_at: datetime


class StudentExportRequest(BaseSchema):
    student_ids: list[int] = Field(
        default_factory=list,
        validation_alias=AliasChoices("student_ids", "studentIds"),
    )


class StatusRecalculationResult(BaseSchema):
    updated_students: int
