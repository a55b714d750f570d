"""Service for dashboard statistics."""

from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.modules.dashboard.schemas import DashboardStats, GroupStat
from src.modules.students.models import Student
from src.shared.utils.money import percent_of

RECENT_DAYS = 7


class DashboardService:
    """Aggregates student counts for the main page."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_stats(self) -> DashboardStats:
        total = await self._count()
        since = datetime.now(timezone.utc) - timedelta(days=RECENT_DAYS)
        recent = await self._count(Student.created_at >= since)

        return DashboardStats(
            total_students=total,
            recent_registrations=recent,
            # Education level is measured against every student
            education_stats=await self._group_by(Student.education_level, denominator=total),
            tariff_stats=await self._group_by(Student.tariff),
            language_stats=await self._group_by(Student.language_certificate),
            referral_stats=await self._group_by(Student.hear_about_us),
        )

    async def _count(self, *conditions) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(Student).where(*conditions)
        )
        return result.scalar() or 0

    async def _group_by(self, column, denominator: int | None = None) -> list[GroupStat]:
        """
        Count students per non-empty value of ``column``, most common first.

        Percentages are taken against ``denominator`` or, when omitted, against
        the students that have a value for the column.
        """
        filled = (column.is_not(None), column != "")
        count = func.count().label("count")
        result = await self.db.execute(
            select(column, count)
            .where(*filled)
            .group_by(column)
            .order_by(count.desc(), column)
        )
        rows = result.all()

        if denominator is None:
            denominator = sum(n for _, n in rows)

        return [
            GroupStat(
                value=value,
                count=n,
                percentage=percent_of(n, denominator),
            )
            for value, n in rows
        ]
