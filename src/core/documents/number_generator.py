from collections.abc import Awaitable, Callable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.documents.models import StudentCodeSequence

SeedLoader = Callable[[str], Awaitable[int]]


class StudentCodeGenerator:
    """
    Generates sequential student codes in format: PREFIXN

    Examples:
        CS1
        BS42
        MS7
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def generate(self, prefix: str, seed_loader: SeedLoader | None = None) -> str:
        """
        Generate the next code for the given prefix.

        Uses SELECT FOR UPDATE to ensure uniqueness in concurrent scenarios.
        When the prefix has no sequence yet, ``seed_loader`` returns the highest
        number already in use so codes created before the sequence existed are
        never reissued.
        """
        stmt = (
            select(StudentCodeSequence)
            .where(StudentCodeSequence.prefix == prefix)
            .with_for_update()
        )
        result = await self.session.execute(stmt)
        sequence = result.scalar_one_or_none()

        if sequence is None:
            start = await seed_loader(prefix) if seed_loader else 0
            sequence = StudentCodeSequence(prefix=prefix, last_number=start)
            self.session.add(sequence)
            await self.session.flush()

            # Re-fetch with lock
            result = await self.session.execute(stmt)
            sequence = result.scalar_one()

        sequence.last_number += 1
        await self.session.flush()

        return f"{prefix}{sequence.last_number}"


def parse_code_number(code: str | None, prefix: str) -> int:
    """Numeric part of a student code, 0 when it does not belong to prefix."""
    if not code or not code.startswith(prefix):
        return 0
    tail = code[len(prefix):]
    return int(tail) if tail.isdigit() else 0
