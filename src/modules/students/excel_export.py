"""Export selected students to Excel (XLSX)."""

from datetime import date
from io import BytesIO
from typing import Any

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from src.modules.students.models import Student

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

# (header, column width)
COLUMNS: list[tuple[str, int]] = [
    ("Student ID", 10),
    ("Full Name", 20),
    ("Passport Number", 15),
    ("Birth Date", 12),
    ("Phone 1", 15),
    ("Phone 2", 15),
    ("Email", 25),
    ("Address", 30),
    ("Education Level", 15),
    ("Language Certificate", 20),
]


def _row(student: Student) -> list[Any]:
    return [
        student.student_code or f"#{student.id}",
        student.full_name,
        student.passport_number,
        student.birth_date.isoformat() if student.birth_date else "",
        student.phone1 or "",
        student.phone2 or "",
        student.email,
        student.address,
        student.education_level,
        student.language_certificate,
    ]


def export_students(students: list[Student]) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Students"

    for col, (header, width) in enumerate(COLUMNS, start=1):
        ws.cell(row=1, column=col, value=header).font = Font(bold=True)
        ws.column_dimensions[get_column_letter(col)].width = width

    for i, student in enumerate(students, start=2):
        for j, value in enumerate(_row(student), start=1):
            ws.cell(row=i, column=j, value=value)

    buf = BytesIO()
    wb.save(buf)
    return buf.getvalue()


def export_filename(today: date | None = None) -> str:
    today = today or date.today()
    return f"students_export_{today.isoformat()}.xlsx"
