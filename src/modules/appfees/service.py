"""Service for application-fee batch records."""

import secrets
import string
import time
from datetime import datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.audit.service import AuditAction, AuditService
from src.core.exceptions import NotFoundError, ValidationError
from src.modules.appfees.models import AppFeeBatch, BatchPaymentStatus
from src.modules.appfees.schemas import AppFeeBatchCreate, AppFeeBatchFilters

_TOKEN_ALPHABET = string.ascii_lowercase + string.digits


def generate_transaction_id() -> str:
    """APPFEE_{epoch milliseconds}_{6 random base36 chars}."""
    suffix = "".join(secrets.choice(_TOKEN_ALPHABET) for _ in range(6))
    return f"APPFEE_{int(time.time() * 1000)}_{suffix}"


class AppFeeBatchService:
    """Records and lists application-fee hand-overs."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    async def record_batch(self, data: AppFeeBatchCreate) -> AppFeeBatch:
        if not data.student_ids:
            raise ValidationError("At least one student is required", field="student_ids")

        details = None
        if data.student_details is not None:
            details = [d.model_dump() for d in data.student_details]

        batch = AppFeeBatch(
            transaction_id=generate_transaction_id(),
            university=data.university,
            student_ids=list(data.student_ids),
            student_details=details,
            student_count=len(data.student_ids),
            payed_to=data.payed_to,
            amount=data.amount,
            responsible=data.responsible,
            payment_method=data.payment_method,
            payment_status=BatchPaymentStatus.COMPLETED.value,
            notes=data.notes,
        )
        self.db.add(batch)
        await self.db.flush()

        await self.audit.log(
            action=AuditAction.APPFEE_BATCH_RECORD,
            entity_type="AppFeeBatch",
            entity_id=batch.id,
            entity_identifier=batch.transaction_id,
            actor=data.responsible,
            new_values={
                "university": data.university,
                "student_count": batch.student_count,
                "amount": data.amount,
            },
        )

        await self.db.commit()
        await self.db.refresh(batch)
        return batch

    async def list_batches(
        self, filters: AppFeeBatchFilters
    ) -> tuple[list[AppFeeBatch], int]:
        """Newest first. Text filters are case-insensitive substrings."""
        query = select(AppFeeBatch)

        if filters.university:
            query = query.where(AppFeeBatch.university.ilike(f"%{filters.university}%"))
        if filters.responsible:
            query = query.where(AppFeeBatch.responsible.ilike(f"%{filters.responsible}%"))
        if filters.payed_to:
            query = query.where(AppFeeBatch.payed_to.ilike(f"%{filters.payed_to}%"))
        if filters.payment_status:
            query = query.where(AppFeeBatch.payment_status == filters.payment_status)
        if filters.start_date:
            query = query.where(
                AppFeeBatch.created_at >= datetime.combine(filters.start_date, datetime.min.time())
            )
        if filters.end_date:
            # Whole end day included
            next_day = datetime.combine(filters.end_date + timedelta(days=1), datetime.min.time())
            query = query.where(AppFeeBatch.created_at < next_day)

        # Count total
        count_query = select(func.count()).select_from(query.subquery())
        total_result = await self.db.execute(count_query)
        total = total_result.scalar() or 0

        query = (
            query.order_by(AppFeeBatch.created_at.desc(), AppFeeBatch.id.desc())
            .offset(filters.offset)
            .limit(filters.limit)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def delete_batch(self, batch_id: int, actor: str | None = None) -> None:
        batch = await self.db.get(AppFeeBatch, batch_id)
        if not batch:
            raise NotFoundError("Record", batch_id)

        await self.audit.log(
            action=AuditAction.APPFEE_BATCH_DELETE,
            entity_type="AppFeeBatch",
            entity_id=batch.id,
            entity_identifier=batch.transaction_id,
            actor=actor,
            old_values={
                "university": batch.university,
                "student_ids": batch.student_ids,
                "amount": batch.amount,
            },
        )
        await self.db.delete(batch)
        await self.db.commit()
