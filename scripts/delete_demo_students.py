#!/usr/bin/env python3
"""
Remove the demo students created by scripts/seed_demo_data.py
(emails ``student{N}@example.com``) together with their payment history.

WARNING: this deletes data. Take a database backup before running it
against anything other than a local database.

Usage:
    python scripts/delete_demo_students.py --dry-run  # show counts only
    python scripts/delete_demo_students.py --confirm  # delete
"""

import asyncio
import sys
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import settings
from src.core.database.session import async_session
from src.modules.payments.models import IdempotencyRecord, PaymentHistory
from src.modules.students.models import Student

DEMO_EMAIL_PATTERN = "student%@example.com"


def _demo_ids():
    return select(Student.id).where(Student.email.like(DEMO_EMAIL_PATTERN))


async def count_records(session: AsyncSession) -> dict:
    """Count the rows that would be removed."""
    counts = {}

    result = await session.execute(
        select(func.count()).select_from(Student).where(Student.email.like(DEMO_EMAIL_PATTERN))
    )
    counts["students"] = result.scalar_one()

    result = await session.execute(
        select(func.count())
        .select_from(PaymentHistory)
        .where(PaymentHistory.student_id.in_(_demo_ids()))
    )
    counts["payment_history"] = result.scalar_one()

    return counts


async def delete_demo_students(session: AsyncSession) -> None:
    # Ledger rows are not cascaded from students, remove them first
    await session.execute(
        delete(PaymentHistory).where(PaymentHistory.student_id.in_(_demo_ids()))
    )
    await session.execute(
        delete(IdempotencyRecord).where(IdempotencyRecord.student_id.in_(_demo_ids()))
    )
    await session.execute(delete(Student).where(Student.email.like(DEMO_EMAIL_PATTERN)))


async def main() -> None:
    import argparse
    parser = argparse.ArgumentParser(description="Delete demo students")
    parser.add_argument("--dry-run", action="store_true", help="Show counts, delete nothing")
    parser.add_argument("--confirm", action="store_true", help="Delete")
    args = parser.parse_args()
    if not args.dry_run and not args.confirm:
        print("Use --dry-run or --confirm")
        sys.exit(1)

    print("Database:", settings.database_url.split("@")[-1] if "@" in settings.database_url else "?")

    async with async_session() as session:
        counts = await count_records(session)
        for table, n in counts.items():
            print(f"  {table}: {n}")

        if args.dry_run:
            print("\n[DRY-RUN] Nothing deleted.")
            return

        await delete_demo_students(session)
        await session.commit()
        print(f"\nDeleted {counts['students']} demo students.")


if __name__ == "__main__":
    asyncio.run(main())
