"""Application-fee batch records."""

from datetime import datetime
from enum import StrEnum

from sqlalchemy import JSON, BigInteger, DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database.base import Base, BigIntPK


class BatchPaymentStatus(StrEnum):
    COMPLETED = "COMPLETED"


DEFAULT_BATCH_METHOD = "CASH"


class AppFeeBatch(Base):
    """
    One hand-over of application fees to a university for a group of students.

    Independent of the per-student ledger: recording or deleting a batch never
    changes a balance. Records are never updated in place.
    """

    __tablename__ = "appfee_history"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    transaction_id: Mapped[str] = mapped_column(
        String(50), unique=True, nullable=False
    )  # APPFEE_{epoch_ms}_{random6}

    university: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    student_ids: Mapped[list] = mapped_column(JSON, nullable=False)
    student_details: Mapped[list | None] = mapped_column(JSON, nullable=True)
    student_count: Mapped[int] = mapped_column(Integer, nullable=False)

    payed_to: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    responsible: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    payment_method: Mapped[str] = mapped_column(
        String(50), nullable=False, default=DEFAULT_BATCH_METHOD
    )
    payment_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=BatchPaymentStatus.COMPLETED.value, index=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
