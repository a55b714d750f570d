"""Schemas for dashboard API."""

from src.shared.schemas.base import BaseSchema


class GroupStat(BaseSchema):
    """Students sharing one attribute value."""

    value: str
    count: int
    percentage: int  # 0-100, rounded half up


class DashboardStats(BaseSchema):
    total_students: int = 0
    recent_registrations: int = 0  # created in the last 7 days
    education_stats: list[GroupStat] = []
    tariff_stats: list[GroupStat] = []
    language_stats: list[GroupStat] = []
    referral_stats: list[GroupStat] = []
