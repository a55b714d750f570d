"""Payment ledger models."""

from datetime import datetime
from enum import StrEnum

from sqlalchemy import (
    BigInteger,
    DateTime,
    Index,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database.base import Base, BigIntPK


class PaymentType(StrEnum):
    """Kind of ledger entry."""

    PAYMENT = "payment"
    DISCOUNT = "discount"
    APP_FEE = "app_fee"


class LedgerOperation(StrEnum):
    """Mutations that accept an idempotency key."""

    PAYMENT = "payment"
    DISCOUNT = "discount"
    APP_FEE = "app_fee"


class PaymentHistory(Base):
    """
    One financial event for a student, with balance snapshots.

    Payments carry ``amount``; discounts carry ``discount_amount`` (amount is 0);
    application fees carry ``amount`` but leave the balance untouched.
    ``student_id`` is not a foreign key: deleting a student leaves
    its history rows in place.
    """

    __tablename__ = "payment_history"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)

    student_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)

    amount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    discount_amount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    payment_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PaymentType.PAYMENT.value
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    previous_balance: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    new_balance: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    payment_method: Mapped[str | None] = mapped_column(String(50), nullable=True)
    received_by: Mapped[str | None] = mapped_column(String(200), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )

    __table_args__ = (
        Index("ix_payment_history_student_type", "student_id", "payment_type"),
    )


class IdempotencyRecord(Base):
    """Last-seen client token per student and operation, with the result it produced."""

    __tablename__ = "idempotency_keys"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    student_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    operation: Mapped[str] = mapped_column(String(20), nullable=False)
    key: Mapped[str] = mapped_column(String(100), nullable=False)

    entry_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    new_balance: Mapped[int] = mapped_column(BigInteger, nullable=False)
    payment_status: Mapped[str] = mapped_column(String(20), nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("student_id", "operation", name="uq_idempotency_student_operation"),
    )
