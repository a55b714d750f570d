"""Service for Payments module."""

from dataclasses import dataclass

from sqlalchemy import String, delete, func, literal, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import NotFoundError, ValidationError
from src.modules.payments import balance as engine
from src.modules.payments.models import (
    IdempotencyRecord,
    LedgerOperation,
    PaymentHistory,
    PaymentType,
)
from src.modules.payments.schemas import AppFeeCreate, LedgerEventCreate
from src.modules.students.models import Student
from src.modules.tariffs.catalog import TariffCatalog, tariff_catalog

APP_FEE_PREFIX = "Application fee for "


def app_fee_target(university_name: str | None, slot: int) -> str:
    """University shown for an application fee, "University N" when the slot is empty."""
    return university_name or f"University {slot}"


@dataclass
class LedgerOutcome:
    """What one ledger mutation produced, plus what the notifier needs."""

    entry: PaymentHistory | None
    new_balance: int
    payment_status: str
    student_code: str
    student_name: str
    university: str | None = None
    replayed: bool = False


class PaymentService:
    """
    Balance engine with its transaction boundary.

    Every mutation locks the student row, reads the ledger, lets the pure
    rules in ``balance`` compute the outcome, then writes one ledger entry and
    the student's financial cache before committing.
    """

    def __init__(self, db: AsyncSession, catalog: TariffCatalog = tariff_catalog):
        self.db = db
        self.catalog = catalog

    # --- Mutations ---

    async def apply_payment(
        self,
        student_id: int,
        data: LedgerEventCreate,
        idempotency_key: str | None = None,
    ) -> LedgerOutcome:
        """Add a payment: balance goes up by amount, status is recomputed."""
        if data.amount <= 0:
            raise ValidationError("Valid amount is required", field="amount")

        student = await self._lock_student(student_id)
        replay = await self._replay(student, LedgerOperation.PAYMENT, idempotency_key)
        if replay:
            return replay

        debt = self.catalog.original_debt(student.tariff)
        change = engine.apply_payment(student.balance, data.amount, debt)

        entry = PaymentHistory(
            student_id=student.id,
            amount=data.amount,
            discount_amount=0,
            payment_type=PaymentType.PAYMENT.value,
            description=data.description,
            previous_balance=change.previous_balance,
            new_balance=change.new_balance,
            payment_method=data.payment_method,
            received_by=data.received_by,
        )
        self.db.add(entry)
        student.balance = change.new_balance
        student.payment_status = change.payment_status
        await self.db.flush()

        await self._remember(student.id, LedgerOperation.PAYMENT, idempotency_key, entry.id, change)
        return await self._finish(student, entry, change)

    async def apply_discount(
        self,
        student_id: int,
        data: LedgerEventCreate,
        idempotency_key: str | None = None,
    ) -> LedgerOutcome:
        """
        Replace the active discount with ``data.amount``.

        The existing discount entry is removed and the balance is rebuilt from
        the tariff debt and the payments on record. A zero amount only removes
        the discount and writes no new entry.
        """
        if data.amount < 0:
            raise ValidationError("Valid amount is required", field="amount")

        student = await self._lock_student(student_id)
        replay = await self._replay(student, LedgerOperation.DISCOUNT, idempotency_key)
        if replay:
            return replay

        await self.db.execute(
            delete(PaymentHistory).where(
                PaymentHistory.student_id == student.id,
                PaymentHistory.payment_type == PaymentType.DISCOUNT.value,
            )
        )

        debt = self.catalog.original_debt(student.tariff)
        total_payments = await self.sum_by_kind(student.id, PaymentType.PAYMENT)
        change = engine.apply_discount(student.balance, data.amount, debt, total_payments)

        entry = None
        if data.amount > 0:
            entry = PaymentHistory(
                student_id=student.id,
                amount=0,
                discount_amount=data.amount,
                payment_type=PaymentType.DISCOUNT.value,
                description=data.description,
                previous_balance=change.previous_balance,
                new_balance=change.new_balance,
                payment_method=data.payment_method,
                received_by=data.received_by,
            )
            self.db.add(entry)

        student.balance = change.new_balance
        student.payment_status = change.payment_status
        student.discount = data.amount
        await self.db.flush()

        await self._remember(
            student.id,
            LedgerOperation.DISCOUNT,
            idempotency_key,
            entry.id if entry else None,
            change,
        )
        return await self._finish(student, entry, change)

    async def apply_application_fee(
        self,
        student_id: int,
        data: AppFeeCreate,
        idempotency_key: str | None = None,
    ) -> LedgerOutcome:
        """Record an application fee. Balance and status are left untouched."""
        if data.amount <= 0:
            raise ValidationError("Valid amount is required", field="amount")
        if data.slot not in (1, 2):
            raise ValidationError("University selection (1 or 2) is required", field="university")

        student = await self._lock_student(student_id)
        replay = await self._replay(student, LedgerOperation.APP_FEE, idempotency_key)
        if replay:
            replay.university = app_fee_target(student.university_for_slot(data.slot), data.slot)
            return replay

        university = app_fee_target(student.university_for_slot(data.slot), data.slot)
        change = engine.apply_application_fee(student.balance, student.payment_status)

        entry = PaymentHistory(
            student_id=student.id,
            amount=data.amount,
            discount_amount=0,
            payment_type=PaymentType.APP_FEE.value,
            description=f"{APP_FEE_PREFIX}{university}",
            previous_balance=change.previous_balance,
            new_balance=change.new_balance,
            payment_method=data.payment_method,
            received_by=data.received_by,
        )
        self.db.add(entry)
        await self.db.flush()

        await self._remember(student.id, LedgerOperation.APP_FEE, idempotency_key, entry.id, change)
        outcome = await self._finish(student, entry, change)
        outcome.university = university
        return outcome

    # --- Queries ---

    async def list_entries(self, student_id: int) -> list[PaymentHistory]:
        """Ledger of a student, newest first. Fails when the student is unknown."""
        await self._get_student(student_id)
        result = await self.db.execute(
            select(PaymentHistory)
            .where(PaymentHistory.student_id == student_id)
            .order_by(PaymentHistory.created_at.desc(), PaymentHistory.id.desc())
        )
        return list(result.scalars().all())

    async def sum_by_kind(self, student_id: int, kind: PaymentType) -> int:
        """Total of one kind of entry. Discounts sum ``discount_amount``."""
        column = (
            PaymentHistory.discount_amount
            if kind == PaymentType.DISCOUNT
            else PaymentHistory.amount
        )
        result = await self.db.execute(
            select(func.coalesce(func.sum(column), 0)).where(
                PaymentHistory.student_id == student_id,
                PaymentHistory.payment_type == kind.value,
            )
        )
        return int(result.scalar_one())

    async def list_application_fees(self) -> list[dict]:
        """Every student with the latest fee recorded for each chosen university."""

        def latest_fee(university_column, slot: int):
            description = literal(APP_FEE_PREFIX, String) + func.coalesce(
                func.nullif(university_column, ""), f"University {slot}"
            )
            latest = (
                select(PaymentHistory.amount)
                .where(
                    PaymentHistory.student_id == Student.id,
                    PaymentHistory.payment_type == PaymentType.APP_FEE.value,
                    PaymentHistory.description == description,
                )
                .order_by(PaymentHistory.created_at.desc(), PaymentHistory.id.desc())
                .limit(1)
                .correlate(Student)
                .scalar_subquery()
            )
            return func.coalesce(latest, 0)

        result = await self.db.execute(
            select(
                Student.id,
                Student.student_code,
                Student.full_name,
                Student.tariff,
                Student.university1,
                Student.university2,
                latest_fee(Student.university1, 1).label("fee1"),
                latest_fee(Student.university2, 2).label("fee2"),
            ).order_by(Student.created_at.desc(), Student.id.desc())
        )
        return [dict(row._mapping) for row in result.all()]

    # --- Helpers ---

    async def _get_student(self, student_id: int) -> Student:
        student = await self.db.get(Student, student_id)
        if not student:
            raise NotFoundError("Student", student_id)
        return student

    async def _lock_student(self, student_id: int) -> Student:
        """Load the student row under SELECT ... FOR UPDATE."""
        result = await self.db.execute(
            select(Student)
            .where(Student.id == student_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        student = result.scalar_one_or_none()
        if not student:
            raise NotFoundError("Student", student_id)
        return student

    async def _replay(
        self,
        student: Student,
        operation: LedgerOperation,
        key: str | None,
    ) -> LedgerOutcome | None:
        """Stored outcome when ``key`` repeats the last one seen for this operation."""
        if not key:
            return None
        record = await self._idempotency_record(student.id, operation)
        if record is None or record.key != key:
            return None

        entry = None
        if record.entry_id is not None:
            entry = await self.db.get(PaymentHistory, record.entry_id)
        return LedgerOutcome(
            entry=entry,
            new_balance=record.new_balance,
            payment_status=record.payment_status,
            student_code=student.student_code,
            student_name=student.full_name,
            replayed=True,
        )

    async def _remember(
        self,
        student_id: int,
        operation: LedgerOperation,
        key: str | None,
        entry_id: int | None,
        change: engine.BalanceChange,
    ) -> None:
        if not key:
            return
        record = await self._idempotency_record(student_id, operation)
        if record is None:
            record = IdempotencyRecord(student_id=student_id, operation=operation.value)
            self.db.add(record)
        record.key = key
        record.entry_id = entry_id
        record.new_balance = change.new_balance
        record.payment_status = change.payment_status
        await self.db.flush()

    async def _idempotency_record(
        self, student_id: int, operation: LedgerOperation
    ) -> IdempotencyRecord | None:
        result = await self.db.execute(
            select(IdempotencyRecord).where(
                IdempotencyRecord.student_id == student_id,
                IdempotencyRecord.operation == operation.value,
            )
        )
        return result.scalar_one_or_none()

    async def _finish(
        self,
        student: Student,
        entry: PaymentHistory | None,
        change: engine.BalanceChange,
    ) -> LedgerOutcome:
        outcome = LedgerOutcome(
            entry=entry,
            new_balance=change.new_balance,
            payment_status=change.payment_status,
            student_code=student.student_code,
            student_name=student.full_name,
        )
        await self.db.commit()
        if entry is not None:
            await self.db.refresh(entry)
        return outcome
