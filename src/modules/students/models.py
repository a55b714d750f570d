"""Student model."""

from datetime import date, datetime
from enum import StrEnum

from sqlalchemy import BigInteger, Date, DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database.base import Base, BigIntPK


class EducationLevel(StrEnum):
    """Education level the student applies for."""

    COLLEGE = "COLLEGE"
    BACHELOR = "BACHELOR"
    MASTERS = "MASTERS"

    @property
    def code_prefix(self) -> str:
        """Prefix of student codes issued for this level."""
        return LEVEL_PREFIXES[self]


LEVEL_PREFIXES: dict[EducationLevel, str] = {
    EducationLevel.COLLEGE: "CS",
    EducationLevel.BACHELOR: "BS",
    EducationLevel.MASTERS: "MS",
}


class PaymentStatusLabel(StrEnum):
    """Named payment-status labels. Other "{n}%" values are also possible."""

    UNPAID = "UNPAID"
    FULL = "FULL"


class Student(Base):
    """Registered applicant with a denormalized financial cache."""

    __tablename__ = "students"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    student_code: Mapped[str] = mapped_column(
        String(20), nullable=False, unique=True, index=True
    )  # CS1, BS12, MS3

    # Personal info
    full_name: Mapped[str] = mapped_column(String(320), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    middle_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    passport_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    birth_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    hear_about_us: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Contact info
    phone1: Mapped[str | None] = mapped_column(String(20), nullable=True)
    phone2: Mapped[str | None] = mapped_column(String(20), nullable=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Education
    education_level: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    language_certificate: Mapped[str | None] = mapped_column(String(50), nullable=True)
    tariff: Mapped[str | None] = mapped_column(String(20), nullable=True)
    university1: Mapped[str | None] = mapped_column(String(200), nullable=True)
    university2: Mapped[str | None] = mapped_column(String(200), nullable=True)

    additional_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="pending")
    # Client-side submission time
    timestamp: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Financial cache, written only by the balance engine
    balance: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    payment_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PaymentStatusLabel.UNPAID.value
    )
    discount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    def compose_full_name(self) -> str:
        """Full name as shown in lists: LAST FIRST MIDDLE."""
        return f"{self.last_name or ''} {self.first_name or ''} {self.middle_name or ''}".strip()

    def university_for_slot(self, slot: int) -> str | None:
        return self.university1 if slot == 1 else self.university2
