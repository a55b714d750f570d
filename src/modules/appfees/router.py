"""API endpoints for application-fee batch records."""

from datetime import date

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database.session import get_db
from src.integrations.sheets import SheetsNotifier, get_notifier
from src.integrations.sheets.schemas import BatchPaymentNotice, BatchStudent
from src.modules.appfees.schemas import (
    AppFeeBatchCreate,
    AppFeeBatchFilters,
    AppFeeBatchResponse,
)
from src.modules.appfees.service import AppFeeBatchService
from src.shared.schemas.base import ApiResponse, OffsetPaginatedResponse

router = APIRouter(prefix="/appfee", tags=["Application fees"])


@router.post(
    "/record",
    response_model=ApiResponse[AppFeeBatchResponse],
    status_code=status.HTTP_201_CREATED,
)
async def record_batch(
    data: AppFeeBatchCreate,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    notifier: SheetsNotifier = Depends(get_notifier),
):
    """Record application fees handed over for a group of students."""
    batch = await AppFeeBatchService(db).record_batch(data)
    background_tasks.add_task(
        notifier.notify_batch_payment,
        BatchPaymentNotice(
            student_ids=batch.student_ids,
            students=[
                BatchStudent(student_id=d.student_id, full_name=d.full_name)
                for d in data.student_details or []
            ],
            amount=batch.amount,
            payed_to=batch.payed_to,
            payment_method=batch.payment_method,
            responsible=batch.responsible,
            university=batch.university,
        ),
    )
    return ApiResponse(
        data=AppFeeBatchResponse.model_validate(batch),
        message="Appfee record created successfully",
    )


@router.get(
    "/history",
    response_model=ApiResponse[OffsetPaginatedResponse[AppFeeBatchResponse]],
)
async def list_history(
    university: str | None = Query(None),
    responsible: str | None = Query(None),
    payed_to: str | None = Query(None),
    payment_status: str | None = Query(None),
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    """Batch records, newest first, with filters and limit/offset paging."""
    filters = AppFeeBatchFilters(
        university=university,
        responsible=responsible,
        payed_to=payed_to,
        payment_status=payment_status,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )
    batches, total = await AppFeeBatchService(db).list_batches(filters)
    return ApiResponse(
        data=OffsetPaginatedResponse.create(
            items=[AppFeeBatchResponse.model_validate(b) for b in batches],
            total=total,
            limit=limit,
            offset=offset,
        )
    )


@router.delete(
    "/history/{record_id}",
    response_model=ApiResponse[None],
)
async def delete_history_record(
    record_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Delete one batch record."""
    await AppFeeBatchService(db).delete_batch(record_id)
    return ApiResponse(data=None, message="Record deleted successfully")
