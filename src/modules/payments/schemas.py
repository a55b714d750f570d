"""Pydantic schemas for Payments module."""

from datetime import datetime
from typing import Literal

from pydantic import Field, field_validator, model_validator

from src.modules.payments.models import PaymentType
from src.shared.schemas.base import BaseSchema

NOT_APPLICABLE = "N/A"


class LedgerEventCreate(BaseSchema):
    """Payment or discount submitted from the student's payment page.

    Payments need a positive amount, a method and who received the money.
    Discounts accept 0 (removes the active discount) and default the method
    and receiver to "N/A".
    """

    amount: int
    description: str = Field(..., min_length=1)
    payment_type: PaymentType = PaymentType.PAYMENT
    payment_method: str | None = Field(None, max_length=50)
    received_by: str | None = Field(None, max_length=200)

    @field_validator("payment_type")
    @classmethod
    def not_app_fee(cls, v: PaymentType) -> PaymentType:
        if v == PaymentType.APP_FEE:
            raise ValueError("Application fees are recorded via /appfee")
        return v

    @field_validator("description", "payment_method", "received_by", mode="before")
    @classmethod
    def strip(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v

    @model_validator(mode="after")
    def check_by_type(self):
        if self.payment_type == PaymentType.DISCOUNT:
            if self.amount < 0:
                raise ValueError("Valid amount is required")
            self.payment_method = self.payment_method or NOT_APPLICABLE
            self.received_by = self.received_by or NOT_APPLICABLE
            return self
        if self.amount <= 0:
            raise ValueError("Valid amount is required")
        if not self.payment_method:
            raise ValueError("Payment method is required")
        if not self.received_by:
            raise ValueError("Received by is required")
        return self


class AppFeeCreate(BaseSchema):
    """Application fee collected for one of the student's two universities."""

    amount: int = Field(..., gt=0, description="Fee amount (must be positive)")
    university: Literal["1", "2"]
    payment_method: str = Field(..., min_length=1, max_length=50)
    received_by: str = Field(..., min_length=1, max_length=200)

    @field_validator("university", mode="before")
    @classmethod
    def slot_as_string(cls, v):
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @property
    def slot(self) -> int:
        return int(self.university)


class LedgerEntryResponse(BaseSchema):
    """Ledger entry with balance snapshots."""

    id: int
    student_id: int
    amount: int
    discount_amount: int
    payment_type: str
    description: str | None
    previous_balance: int
    new_balance: int
    payment_method: str | None
    received_by: str | None
    created_at: datetime


class LedgerEventResult(BaseSchema):
    """Result of a payment, discount or application fee."""

    # None when a zero discount only removed the active one
    payment: LedgerEntryResponse | None
    new_balance: int
    payment_status: str
    university: str | None = None
    replayed: bool = False


class StudentAppFees(BaseSchema):
    """Latest application fee recorded per chosen university."""

    id: int
    student_code: str
    full_name: str
    tariff: str | None
    university1: str | None
    university2: str | None
    fee1: int
    fee2: int
