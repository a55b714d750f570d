from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database.base import Base


class StudentCodeSequence(Base):
    """Last issued student code number per education-level prefix."""

    __tablename__ = "student_code_sequences"

    prefix: Mapped[str] = mapped_column(String(10), primary_key=True)
    last_number: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
