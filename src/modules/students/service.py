"""Service for Students module."""

from datetime import date, datetime, timezone
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from src.core.audit.service import AuditAction, AuditService
from src.core.documents.number_generator import StudentCodeGenerator, parse_code_number
from src.core.exceptions import DuplicateError, NotFoundError, ValidationError
from src.modules.payments.balance import payment_status_for
from src.modules.payments.models import PaymentHistory, PaymentType
from src.modules.students.models import EducationLevel, Student
from src.modules.students.schemas import (
    EDITABLE_FIELDS,
    NAME_FIELDS,
    UPPERCASE_FIELDS,
    StudentCreate,
    StudentFieldUpdate,
)
from src.modules.tariffs.catalog import TariffCatalog, tariff_catalog

# Fields that may not be blanked out by an edit
REQUIRED_FIELDS = frozenset({"last_name", "first_name", "email", "education_level"})


def _live_discount():
    """Discount currently on the ledger for the outer Student row."""
    latest = (
        select(PaymentHistory.discount_amount)
        .where(
            PaymentHistory.student_id == Student.id,
            PaymentHistory.payment_type == PaymentType.DISCOUNT.value,
        )
        .order_by(PaymentHistory.created_at.desc(), PaymentHistory.id.desc())
        .limit(1)
        .correlate(Student)
        .scalar_subquery()
    )
    return func.coalesce(latest, 0).label("live_discount")


class StudentService:
    """Service for managing student records."""

    def __init__(self, db: AsyncSession, catalog: TariffCatalog = tariff_catalog):
        self.db = db
        self.catalog = catalog
        self.audit = AuditService(db)

    async def create_student(self, data: StudentCreate, actor: str | None = None) -> Student:
        """
        Register a student.

        The code is issued per education level (CS1, BS1, MS1...). The balance
        starts at minus the tariff's debt unless the caller already computed one.
        """
        await self._ensure_email_free(data.email)

        generator = StudentCodeGenerator(self.db)
        student_code = await generator.generate(
            data.education_level.code_prefix, seed_loader=self._highest_code_number
        )

        if data.balance is not None:
            balance = data.balance
        else:
            balance = self.catalog.initial_balance(data.tariff)
        payment_status = payment_status_for(balance, self.catalog.original_debt(data.tariff))

        student = Student(
            student_code=student_code,
            last_name=data.last_name,
            first_name=data.first_name,
            middle_name=data.middle_name,
            passport_number=data.passport_number,
            birth_date=data.birth_date,
            hear_about_us=data.hear_about_us,
            phone1=data.phone1,
            phone2=data.phone2,
            email=data.email,
            address=data.address,
            education_level=data.education_level.value,
            language_certificate=data.language_certificate,
            tariff=data.tariff,
            university1=data.university1,
            university2=data.university2,
            additional_notes=data.additional_notes,
            status=data.status,
            timestamp=data.timestamp,
            balance=balance,
            payment_status=payment_status,
            discount=0,
        )
        student.full_name = student.compose_full_name()
        self.db.add(student)
        await self.db.flush()

        await self.audit.log(
            action=AuditAction.STUDENT_CREATE,
            entity_type="Student",
            entity_id=student.id,
            entity_identifier=student_code,
            actor=actor,
            new_values={
                "full_name": student.full_name,
                "education_level": student.education_level,
                "tariff": student.tariff,
                "balance": balance,
            },
        )

        await self.db.commit()
        await self.db.refresh(student)
        return student

    async def get_student_by_id(self, student_id: int) -> Student:
        """Get student by ID with the discount currently on the ledger."""
        result = await self.db.execute(
            select(Student, _live_discount()).where(Student.id == student_id)
        )
        row = result.one_or_none()
        if row is None:
            raise NotFoundError("Student", student_id)
        student, live_discount = row
        set_committed_value(student, "discount", int(live_discount))
        return student

    async def list_students(self, search: str | None = None) -> list[Student]:
        """All students, newest first, with the discount currently on the ledger."""
        query = select(Student, _live_discount()).order_by(
            Student.created_at.desc(), Student.id.desc()
        )
        if search:
            search_term = f"%{search}%"
            query = query.where(
                or_(
                    Student.full_name.ilike(search_term),
                    Student.student_code.ilike(search_term),
                    Student.email.ilike(search_term),
                    Student.phone1.ilike(search_term),
                    Student.passport_number.ilike(search_term),
                )
            )

        result = await self.db.execute(query)
        students = []
        for student, live_discount in result.all():
            set_committed_value(student, "discount", int(live_discount))
            students.append(student)
        return students

    async def list_by_ids(self, student_ids: list[int]) -> list[Student]:
        result = await self.db.execute(
            select(Student)
            .where(Student.id.in_(student_ids))
            .order_by(Student.created_at.desc(), Student.id.desc())
        )
        return list(result.scalars().all())

    async def update_field(
        self, student_id: int, data: StudentFieldUpdate
    ) -> Student:
        """
        Change one profile field.

        Only fields in ``EDITABLE_FIELDS`` are accepted; the financial cache is
        never touched here. Editing a name part recomputes ``full_name``.
        """
        if data.field not in EDITABLE_FIELDS:
            raise ValidationError(f"Field '{data.field}' cannot be updated", field=data.field)

        result = await self.db.execute(select(Student).where(Student.id == student_id))
        student = result.scalar_one_or_none()
        if not student:
            raise NotFoundError("Student", student_id)

        value = self._coerce(data.field, data.value)
        if data.field == "email" and value != student.email:
            await self._ensure_email_free(value, exclude_id=student_id)

        old_values = {data.field: _jsonable(getattr(student, data.field))}
        new_values = {data.field: _jsonable(value)}

        setattr(student, data.field, value)
        if data.field in NAME_FIELDS:
            old_values["full_name"] = student.full_name
            student.full_name = student.compose_full_name()
            new_values["full_name"] = student.full_name
        student.updated_at = datetime.now(timezone.utc)

        await self.audit.log(
            action=AuditAction.STUDENT_UPDATE,
            entity_type="Student",
            entity_id=student.id,
            entity_identifier=student.student_code,
            actor=data.updated_by,
            old_values=old_values,
            new_values=new_values,
        )

        await self.db.commit()
        return await self.get_student_by_id(student_id)

    async def delete_student(self, student_id: int, actor: str | None = None) -> None:
        """Hard delete. Ledger entries of the student are kept."""
        result = await self.db.execute(select(Student).where(Student.id == student_id))
        student = result.scalar_one_or_none()
        if not student:
            raise NotFoundError("Student", student_id)

        await self.audit.log(
            action=AuditAction.STUDENT_DELETE,
            entity_type="Student",
            entity_id=student.id,
            entity_identifier=student.student_code,
            actor=actor,
            old_values={
                "full_name": student.full_name,
                "email": student.email,
                "balance": student.balance,
            },
        )
        await self.db.delete(student)
        await self.db.commit()

    async def recalculate_statuses(self, actor: str | None = None) -> int:
        """Recompute payment_status of every student from balance and tariff."""
        result = await self.db.execute(select(Student).with_for_update())
        students = list(result.scalars().all())

        changed = 0
        for student in students:
            debt = self.catalog.original_debt(student.tariff)
            status = payment_status_for(student.balance, debt)
            if status != student.payment_status:
                changed += 1
            student.payment_status = status

        if students:
            await self.audit.log(
                action=AuditAction.STATUS_RECALCULATE,
                entity_type="Student",
                entity_id=0,
                actor=actor,
                new_values={"processed": len(students), "changed": changed},
            )
        await self.db.commit()
        return len(students)

    # --- Helpers ---

    async def _ensure_email_free(self, email: str, exclude_id: int | None = None) -> None:
        query = select(Student.id).where(Student.email == email)
        if exclude_id is not None:
            query = query.where(Student.id != exclude_id)
        existing = await self.db.execute(query)
        if existing.scalar_one_or_none() is not None:
            raise DuplicateError("Student", "email", email)

    async def _highest_code_number(self, prefix: str) -> int:
        """Highest number already used by codes with this prefix."""
        result = await self.db.execute(
            select(Student.student_code).where(Student.student_code.like(f"{prefix}%"))
        )
        return max((parse_code_number(code, prefix) for code in result.scalars()), default=0)

    @staticmethod
    def _coerce(field: str, value: Any) -> Any:
        """Normalise a raw edit value for the column it targets."""
        if isinstance(value, str):
            value = value.strip()
        if value == "":
            value = None
        if value is None:
            if field in REQUIRED_FIELDS:
                raise ValidationError(f"Field '{field}' cannot be empty", field=field)
            return None

        if field == "birth_date":
            if isinstance(value, date):
                return value
            try:
                return date.fromisoformat(str(value)[:10])
            except ValueError:
                raise ValidationError("Birth date must be YYYY-MM-DD", field=field)

        value = str(value)
        if field == "education_level":
            try:
                return EducationLevel(value.upper()).value
            except ValueError:
                raise ValidationError(
                    "Education level must be COLLEGE, BACHELOR or MASTERS", field=field
                )
        if field == "email" and "@" not in value:
            raise ValidationError("Email must contain '@'", field=field)
        if field in UPPERCASE_FIELDS:
            return value.upper()
        return value


def _jsonable(value: Any) -> Any:
    if isinstance(value, date):
        return value.isoformat()
    return value
