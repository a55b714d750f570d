from decimal import Decimal

from src.shared.utils.money import percent_of, round_half_up


class TestRoundHalfUp:
    """Tests for round_half_up function."""

    def test_halves_go_up(self):
        assert round_half_up(68.5) == 69
        assert round_half_up(49.5) == 50
        assert round_half_up(0.5) == 1

    def test_below_half_goes_down(self):
        assert round_half_up(49.49) == 49
        assert round_half_up(68.86) == 69
        assert round_half_up(0.4) == 0

    def test_from_decimal_and_string(self):
        assert round_half_up(Decimal("24.5")) == 25
        assert round_half_up("74.49") == 74

    def test_from_int(self):
        assert round_half_up(100) == 100
        assert round_half_up(0) == 0


class TestPercentOf:
    """Tests for percent_of function."""

    def test_exact_half(self):
        assert percent_of(2_650_000, 5_300_000) == 50

    def test_rounds_half_up(self):
        # 3,650,000 / 5,300,000 = 68.87%
        assert percent_of(3_650_000, 5_300_000) == 69
        assert percent_of(1, 8) == 13  # 12.5%

    def test_zero_whole(self):
        assert percent_of(5, 0) == 0

    def test_full(self):
        assert percent_of(7, 7) == 100
