#!/usr/bin/env python3
"""
Fill the database with demo registrations so lists, the payment page and the
dashboard have something to show.

Students get emails ``student{N}@example.com``; scripts/delete_demo_students.py
removes exactly those. Data is generated from a fixed seed, so two runs on
empty databases produce the same students.

Usage:
    python scripts/seed_demo_data.py --dry-run            # print, no writes
    python scripts/seed_demo_data.py --confirm            # write 30 students
    python scripts/seed_demo_data.py --confirm --count 50 --with-payments

Requirements: migrations applied (alembic upgrade head), database reachable.
"""

import asyncio
import random
import sys
from datetime import date, timedelta
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import settings
from src.core.database.session import async_session
from src.modules.payments.schemas import LedgerEventCreate
from src.modules.payments.service import PaymentService
from src.modules.students.models import EducationLevel, Student
from src.modules.students.schemas import StudentCreate
from src.modules.students.service import StudentService
from src.modules.tariffs.catalog import Tariff, tariff_catalog

UNIVERSITIES = {
    EducationLevel.COLLEGE: ["SeoJeong", "Daewon", "Kunjang", "DIST", "Chungbuk", "Jangan"],
    EducationLevel.MASTERS: [
        "Kangwon - E VISA",
        "SunMoon - E VISA",
        "AnYang - E VISA",
        "Woosuk - E VISA",
        "Sejong",
        "Gachon",
        "BUFS",
    ],
    EducationLevel.BACHELOR: [
        "Busan University of Foreign Studies (BUFS)",
        "Chung-Ang University",
        "Dong-A University",
        "Hanyang University",
        "Inha University",
        "Konkuk University",
        "Korea University",
        "Kyung Hee University",
        "Seoul National University (SNU)",
        "Sungkyunkwan University (SKKU)",
        "Yonsei University",
    ],
}
LANGUAGE_CERTIFICATES = ["IELTS Expected", "IELTS 5.5", "IELTS 6.0", "IELTS 6.5", "TOPIK 2", "TOPIK 3", "TOPIK 4"]
REFERRAL_SOURCES = ["Instagram", "Friends", "Topik Center", "Seoul Study", "Other"]
PIPELINE_STATUSES = ["pending", "Next semester", "Elchixona", "Visa", "Passed"]
FIRST_NAMES = ["Ali", "Vali", "Jasur", "Aziz", "Bekzod", "Dilshod", "Sardor", "Shahzod", "Diyor", "Ulugbek"]
LAST_NAMES = ["Toshpulatov", "Abdurazzakov", "Karimov", "Islomov", "Saidov", "Rakhimov", "Yusupov", "Nazarov"]
RECEIVERS = ["Dilnoza", "Madina", "Office"]


def _phone(rng: random.Random) -> str:
    digits = f"9{rng.randint(10_000_000, 99_999_999)}"
    return f"{digits[:2]}-{digits[2:5]}-{digits[5:7]}-{digits[7:]}"


def build_students(count: int, seed: int = 2024) -> list[StudentCreate]:
    rng = random.Random(seed)
    students = []
    for i in range(1, count + 1):
        level = rng.choice(list(EducationLevel))
        universities = UNIVERSITIES[level]
        students.append(
            StudentCreate(
                last_name=rng.choice(LAST_NAMES),
                first_name=rng.choice(FIRST_NAMES),
                middle_name=f"{rng.choice(FIRST_NAMES)} o'g'li",
                passport_number=f"AB{rng.randint(1_000_000, 9_999_999)}",
                birth_date=date(1995, 1, 1) + timedelta(days=rng.randint(0, 15 * 365)),
                hear_about_us=rng.choice(REFERRAL_SOURCES),
                phone1=_phone(rng),
                phone2=_phone(rng),
                email=f"student{i}@example.com",
                address=f"Random street {i}, Tashkent",
                education_level=level,
                language_certificate=rng.choice(LANGUAGE_CERTIFICATES),
                tariff=rng.choice(list(Tariff)).value,
                university1=rng.choice(universities),
                university2=rng.choice(universities),
                status=rng.choice(PIPELINE_STATUSES),
            )
        )
    return students


async def seed_students(session: AsyncSession, students: list[StudentCreate]) -> list[Student]:
    existing = set(
        (await session.execute(select(Student.email).where(Student.email.like("student%@example.com"))))
        .scalars()
        .all()
    )
    service = StudentService(session)
    created = []
    for data in students:
        if data.email in existing:
            print(f"  skip {data.email} (already registered)")
            continue
        student = await service.create_student(data, actor="seed")
        created.append(student)
        print(f"  {student.student_code:<6} {student.full_name} ({student.tariff})")
    return created


async def seed_payments(session: AsyncSession, students: list[Student], seed: int = 2024) -> None:
    """Pay a random share of each student's debt in one or two installments."""
    rng = random.Random(seed)
    service = PaymentService(session)
    for student in students:
        debt = tariff_catalog.original_debt(student.tariff)
        share = rng.choice([0, 0, 25, 50, 50, 75, 100])
        if not share:
            continue
        total = debt * share // 100
        installments = [total] if share < 50 else [total // 2, total - total // 2]
        for n, amount in enumerate(installments, start=1):
            outcome = await service.apply_payment(
                student.id,
                LedgerEventCreate(
                    amount=amount,
                    description=f"Tuition installment {n}",
                    payment_method=rng.choice(["CASH", "CARD", "TRANSFER"]),
                    received_by=rng.choice(RECEIVERS),
                ),
            )
        print(f"  {student.student_code:<6} paid {total:,} -> {outcome.payment_status}")


async def main() -> None:
    import argparse
    parser = argparse.ArgumentParser(description="Seed database with demo students")
    parser.add_argument("--dry-run", action="store_true", help="Print, do not write")
    parser.add_argument("--confirm", action="store_true", help="Write to the database")
    parser.add_argument("--count", type=int, default=30, help="Number of students")
    parser.add_argument("--with-payments", action="store_true", help="Also record tuition payments")
    args = parser.parse_args()
    if not args.dry_run and not args.confirm:
        print("Use --dry-run or --confirm")
        sys.exit(1)

    print("Database:", settings.database_url.split("@")[-1] if "@" in settings.database_url else "?")
    print("Mode:", "DRY-RUN" if args.dry_run else "CONFIRM")

    students = build_students(args.count)
    if args.dry_run:
        for data in students:
            print(f"  {data.education_level.code_prefix}? {data.last_name} {data.first_name} <{data.email}>")
        print(f"\n[DRY-RUN] {len(students)} students, nothing written.")
        return

    async with async_session() as session:
        print("\nStudents:")
        created = await seed_students(session, students)
        if args.with_payments and created:
            print("\nPayments:")
            await seed_payments(session, created)
    print(f"\nDone. {len(created)} students created.")


if __name__ == "__main__":
    asyncio.run(main())
