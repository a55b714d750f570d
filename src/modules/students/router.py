"""API endpoints for Students module."""

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database.session import get_db
from src.core.exceptions import ValidationError
from src.integrations.sheets import SheetsNotifier, get_notifier
from src.integrations.sheets.schemas import RegistrationNotice
from src.modules.students.excel_export import (
    XLSX_MEDIA_TYPE,
    export_filename,
    export_students,
)
from src.modules.students.models import Student
from src.modules.students.schemas import (
    StatusRecalculationResult,
    StudentCreate,
    StudentExportRequest,
    StudentFieldUpdate,
    StudentResponse,
)
from src.modules.students.service import StudentService
from src.modules.tariffs.catalog import TariffCatalog, get_tariff_catalog
from src.shared.schemas.base import ApiResponse

router = APIRouter(prefix="/students", tags=["Students"])


def _registration_notice(student: Student) -> RegistrationNotice:
    return RegistrationNotice(
        student_code=student.student_code,
        full_name=student.full_name,
        phone1=student.phone1,
        phone2=student.phone2,
        email=student.email,
        education_level=student.education_level,
        university1=student.university1,
        university2=student.university2,
        tariff=student.tariff,
        language_certificate=student.language_certificate,
        hear_about_us=student.hear_about_us,
        passport_number=student.passport_number,
        birth_date=student.birth_date.isoformat() if student.birth_date else None,
        address=student.address,
        additional_notes=student.additional_notes,
    )


@router.post(
    "",
    response_model=ApiResponse[StudentResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_student(
    data: StudentCreate,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    catalog: TariffCatalog = Depends(get_tariff_catalog),
    notifier: SheetsNotifier = Depends(get_notifier),
):
    """Register a student. The student code is assigned by the server."""
    service = StudentService(db, catalog)
    student = await service.create_student(data)
    background_tasks.add_task(notifier.notify_registration, _registration_notice(student))
    return ApiResponse(
        success=True,
        message="Student registered successfully",
        data=StudentResponse.model_validate(student),
    )


@router.get(
    "",
    response_model=ApiResponse[list[StudentResponse]],
)
async def list_students(
    search: str | None = Query(None, description="Name, code, email, phone or passport"),
    db: AsyncSession = Depends(get_db),
):
    """List students, newest first."""
    service = StudentService(db)
    students = await service.list_students(search=search)
    return ApiResponse(
        success=True,
        data=[StudentResponse.model_validate(s) for s in students],
    )


@router.post("/export")
async def export_selected_students(
    data: StudentExportRequest,
    db: AsyncSession = Depends(get_db),
):
    """Download the selected students as an XLSX workbook."""
    if not data.student_ids:
        raise ValidationError("No student IDs provided", field="student_ids")
    service = StudentService(db)
    students = await service.list_by_ids(data.student_ids)
    content = export_students(students)
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )


@router.post(
    "/recalculate-status",
    response_model=ApiResponse[StatusRecalculationResult],
)
async def recalculate_payment_statuses(
    db: AsyncSession = Depends(get_db),
    catalog: TariffCatalog = Depends(get_tariff_catalog),
):
    """Recompute every student's payment status from balance and tariff."""
    service = StudentService(db, catalog)
    count = await service.recalculate_statuses()
    return ApiResponse(
        success=True,
        message=f"Successfully recalculated payment status for {count} students",
        data=StatusRecalculationResult(updated_students=count),
    )


@router.get(
    "/{student_id}",
    response_model=ApiResponse[StudentResponse],
)
async def get_student(
    student_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Get student by ID."""
    service = StudentService(db)
    student = await service.get_student_by_id(student_id)
    return ApiResponse(
        success=True,
        data=StudentResponse.model_validate(student),
    )


@router.put(
    "/{student_id}",
    response_model=ApiResponse[StudentResponse],
)
async def update_student_field(
    student_id: int,
    data: StudentFieldUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Update a single profile field."""
    service = StudentService(db)
    student = await service.update_field(student_id, data)
    return ApiResponse(
        success=True,
        message="Student updated successfully",
        data=StudentResponse.model_validate(student),
    )


@router.delete(
    "/{student_id}",
    response_model=ApiResponse[None],
)
async def delete_student(
    student_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Delete a student. Payment history is kept."""
    service = StudentService(db)
    await service.delete_student(student_id)
    return ApiResponse(success=True, message="Student deleted successfully", data=None)
