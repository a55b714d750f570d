"""Tariff catalog: tariff code -> total tuition debt."""

from enum import StrEnum
from types import MappingProxyType
from typing import Mapping


class Tariff(StrEnum):
    """Known pricing plans."""

    STANDART = "STANDART"
    PREMIUM = "PREMIUM"
    VISA_PLUS = "VISA PLUS"
    ONE_FOIZ = "1FOIZ"


DEFAULT_TARIFF = Tariff.STANDART

TARIFF_DEBTS: Mapping[str, int] = MappingProxyType(
    {
        Tariff.STANDART.value: 5_300_000,
        Tariff.PREMIUM.value: 15_000_000,
        Tariff.VISA_PLUS.value: 65_000_000,
        Tariff.ONE_FOIZ.value: 2_000_000,
    }
)


class TariffCatalog:
    """Read-only lookup shared by every caller that needs a tariff's debt.

    Unknown, empty or missing codes resolve to the STANDART amount.
    """

    def __init__(
        self,
        debts: Mapping[str, int] = TARIFF_DEBTS,
        default: str = DEFAULT_TARIFF.value,
    ):
        self._debts = debts
        self._default_debt = debts[default]

    def original_debt(self, tariff_code: str | None) -> int:
        if not tariff_code:
            return self._default_debt
        return self._debts.get(tariff_code, self._default_debt)

    def initial_balance(self, tariff_code: str | None) -> int:
        """Balance of a freshly registered student (nothing paid yet)."""
        return -self.original_debt(tariff_code)

    def items(self) -> list[tuple[str, int]]:
        return list(self._debts.items())


tariff_catalog = TariffCatalog()


def get_tariff_catalog() -> TariffCatalog:
    """Dependency returning the shared catalog."""
    return tariff_catalog
