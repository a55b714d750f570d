"""
Balance engine: pure rules turning ledger events into a balance and a
payment-status label.

Balance convention: negative = still owed, zero or positive = paid off or in
credit. A student's balance always equals
``-(original_debt - active_discount - total_payments)``.
"""

from dataclasses import dataclass

from src.modules.students.models import PaymentStatusLabel
from src.shared.utils.money import percent_of

# Named buckets, checked highest first
STATUS_BUCKETS: tuple[int, ...] = (75, 50, 45, 25)


@dataclass(frozen=True)
class BalanceChange:
    """Outcome of one ledger event for the student's financial cache."""

    previous_balance: int
    new_balance: int
    payment_status: str


def paid_percentage(balance: int, original_debt: int) -> int:
    """Share of the original debt already covered, rounded half up."""
    paid = original_debt - abs(balance)
    return percent_of(paid, original_debt)


def payment_status_for(balance: int, original_debt: int) -> str:
    """
    Label for a balance under a tariff.

    FULL once nothing is owed. Otherwise the highest named bucket reached
    (75%, 50%, 45%, 25%); below 25% the literal percentage ("12%"), and UNPAID
    when nothing has been paid. The label set is open-ended.
    """
    if balance >= 0:
        return PaymentStatusLabel.FULL.value

    pct = paid_percentage(balance, original_debt)
    for bucket in STATUS_BUCKETS:
        if pct >= bucket:
            return f"{bucket}%"
    if pct > 0:
        return f"{pct}%"
    return PaymentStatusLabel.UNPAID.value


def balance_from_ledger(original_debt: int, discount: int, total_payments: int) -> int:
    """Balance reconstructed from scratch; discounts replace, never accumulate."""
    return -(original_debt - max(discount, 0) - total_payments)


def apply_payment(current_balance: int, amount: int, original_debt: int) -> BalanceChange:
    new_balance = current_balance + amount
    return BalanceChange(
        previous_balance=current_balance,
        new_balance=new_balance,
        payment_status=payment_status_for(new_balance, original_debt),
    )


def apply_discount(
    current_balance: int,
    discount: int,
    original_debt: int,
    total_payments: int,
) -> BalanceChange:
    """Recompute the balance with ``discount`` as the only active discount (0 removes it)."""
    new_balance = balance_from_ledger(original_debt, discount, total_payments)
    return BalanceChange(
        previous_balance=current_balance,
        new_balance=new_balance,
        payment_status=payment_status_for(new_balance, original_debt),
    )


def apply_application_fee(current_balance: int, current_status: str) -> BalanceChange:
    """Application fees are a side ledger: balance and status pass through."""
    return BalanceChange(
        previous_balance=current_balance,
        new_balance=current_balance,
        payment_status=current_status,
    )
