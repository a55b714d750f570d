"""API endpoints for Payments module."""

from fastapi import APIRouter, BackgroundTasks, Depends, Header, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database.session import get_db
from src.integrations.sheets import SheetsNotifier, get_notifier
from src.integrations.sheets.schemas import AppFeeNotice, PaymentNotice
from src.modules.payments.models import PaymentType
from src.modules.payments.schemas import (
    AppFeeCreate,
    LedgerEntryResponse,
    LedgerEventCreate,
    LedgerEventResult,
    StudentAppFees,
)
from src.modules.payments.service import LedgerOutcome, PaymentService
from src.modules.tariffs.catalog import TariffCatalog, get_tariff_catalog
from src.shared.schemas.base import ApiResponse

router = APIRouter(prefix="/students", tags=["Payments"])


def _result(outcome: LedgerOutcome) -> LedgerEventResult:
    return LedgerEventResult(
        payment=(
            LedgerEntryResponse.model_validate(outcome.entry) if outcome.entry else None
        ),
        new_balance=outcome.new_balance,
        payment_status=outcome.payment_status,
        university=outcome.university,
        replayed=outcome.replayed,
    )


@router.get(
    "/appfees",
    response_model=ApiResponse[list[StudentAppFees]],
)
async def list_application_fees(db: AsyncSession = Depends(get_db)):
    """Latest application fee per student and chosen university."""
    rows = await PaymentService(db).list_application_fees()
    return ApiResponse(data=[StudentAppFees.model_validate(row) for row in rows])


@router.get(
    "/{student_id}/payments",
    response_model=ApiResponse[list[LedgerEntryResponse]],
)
async def list_payments(student_id: int, db: AsyncSession = Depends(get_db)):
    """Payment history of a student, newest first."""
    entries = await PaymentService(db).list_entries(student_id)
    return ApiResponse(data=[LedgerEntryResponse.model_validate(e) for e in entries])


@router.post(
    "/{student_id}/payments",
    response_model=ApiResponse[LedgerEventResult],
    status_code=status.HTTP_201_CREATED,
)
async def create_payment(
    student_id: int,
    data: LedgerEventCreate,
    background_tasks: BackgroundTasks,
    idempotency_key: str | None = Header(None, alias="Idempotency-Key", max_length=100),
    db: AsyncSession = Depends(get_db),
    catalog: TariffCatalog = Depends(get_tariff_catalog),
    notifier: SheetsNotifier = Depends(get_notifier),
):
    """Add a payment or replace the student's discount."""
    service = PaymentService(db, catalog)
    if data.payment_type == PaymentType.DISCOUNT:
        outcome = await service.apply_discount(student_id, data, idempotency_key)
        message = "Discount applied successfully"
    else:
        outcome = await service.apply_payment(student_id, data, idempotency_key)
        message = "Payment added successfully"
        if not outcome.replayed:
            background_tasks.add_task(
                notifier.notify_payment,
                PaymentNotice(
                    student_code=outcome.student_code,
                    student_name=outcome.student_name,
                    amount=data.amount,
                    payment_method=data.payment_method,
                    received_by=data.received_by,
                ),
            )
    return ApiResponse(data=_result(outcome), message=message)


@router.post(
    "/{student_id}/appfee",
    response_model=ApiResponse[LedgerEventResult],
    status_code=status.HTTP_201_CREATED,
)
async def record_application_fee(
    student_id: int,
    data: AppFeeCreate,
    background_tasks: BackgroundTasks,
    idempotency_key: str | None = Header(None, alias="Idempotency-Key", max_length=100),
    db: AsyncSession = Depends(get_db),
    notifier: SheetsNotifier = Depends(get_notifier),
):
    """Record an application fee for university 1 or 2."""
    outcome = await PaymentService(db).apply_application_fee(student_id, data, idempotency_key)
    if not outcome.replayed:
        background_tasks.add_task(
            notifier.notify_app_fee,
            AppFeeNotice(
                student_code=outcome.student_code,
                student_name=outcome.student_name,
                amount=data.amount,
                payment_method=data.payment_method,
                received_by=data.received_by,
                university=outcome.university,
            ),
        )
    return ApiResponse(data=_result(outcome), message="Application fee recorded successfully")
