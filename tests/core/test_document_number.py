from sqlalchemy.ext.asyncio import AsyncSession

from src.core.documents.number_generator import StudentCodeGenerator, parse_code_number


class TestStudentCodeGenerator:
    """Tests for student code generator."""

    async def test_generate_first_code(self, db_session: AsyncSession):
        code = await StudentCodeGenerator(db_session).generate("BS")
        assert code == "BS1"

    async def test_generate_sequential_codes(self, db_session: AsyncSession):
        generator = StudentCodeGenerator(db_session)
        codes = [await generator.generate("CS") for _ in range(3)]
        assert codes == ["CS1", "CS2", "CS3"]

    async def test_different_prefixes(self, db_session: AsyncSession):
        """Each education level has its own sequence."""
        generator = StudentCodeGenerator(db_session)
        bs = await generator.generate("BS")
        ms = await generator.generate("MS")
        bs2 = await generator.generate("BS")

        assert bs == "BS1"
        assert ms == "MS1"
        assert bs2 == "BS2"

    async def test_seed_loader_continues_existing_numbering(self, db_session: AsyncSession):
        async def highest(prefix: str) -> int:
            return 41

        generator = StudentCodeGenerator(db_session)
        assert await generator.generate("MS", seed_loader=highest) == "MS42"
        # Seed is only read when the sequence is created
        assert await generator.generate("MS", seed_loader=highest) == "MS43"


class TestParseCodeNumber:
    def test_matching_prefix(self):
        assert parse_code_number("BS12", "BS") == 12

    def test_other_prefix_or_garbage(self):
        assert parse_code_number("CS12", "BS") == 0
        assert parse_code_number("BSX", "BS") == 0
        assert parse_code_number(None, "BS") == 0
