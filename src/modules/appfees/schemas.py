"""Schemas for application-fee batch records."""

from datetime import date, datetime

from pydantic import Field, field_validator

from src.shared.schemas.base import BaseSchema


class BatchStudentDetail(BaseSchema):
    student_id: str | int
    full_name: str | None = None


class AppFeeBatchCreate(BaseSchema):
    """Fees handed over to a university for several students at once."""

    university: str = Field(..., min_length=1)
    student_ids: list[str | int] = Field(..., min_length=1)
    student_details: list[BatchStudentDetail] | None = None
    payed_to: str = Field(..., min_length=1)
    amount: int = Field(..., gt=0)
    responsible: str = Field(..., min_length=1)
    payment_method: str = Field(..., min_length=1, max_length=50)
    notes: str | None = None

    @field_validator("university", "payed_to", "responsible", "payment_method", mode="before")
    @classmethod
    def strip(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v


class AppFeeBatchFilters(BaseSchema):
    university: str | None = None
    responsible: str | None = None
    payed_to: str | None = None
    payment_status: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    limit: int = 50
    offset: int = 0


class AppFeeBatchResponse(BaseSchema):
    id: int
    transaction_id: str
    university: str
    student_ids: list[str | int]
    student_details: list[BatchStudentDetail] | None
    payed_to: str
    amount: int
    responsible: str
    student_count: int
    payment_method: str
    payment_status: str
    notes: str | None
    created_at: datetime
    updated_at: datetime
