"""Interest accrual and debt lifecycle rules.

Everything here is pure: pass ``now`` explicitly for deterministic results,
or leave it out to use the wall clock. Amounts are never rounded here;
rounding to cents happens when values are persisted or displayed.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal

from devedores.models import Debt, DebtStatus
from devedores.utils import parse_datetime, round_currency, to_decimal, utcnow

DAYS_PER_MONTH = 30
_ONE_DAY_US = timedelta(days=1) // timedelta(microseconds=1)


@dataclass(frozen=True)
class DebtEvaluation:
    """Interest figures for a debt as of a given instant."""

    status: DebtStatus
    months_overdue: int
    corrected_amount: Decimal


@dataclass(frozen=True)
class InterestChange:
    """Recomputed interest fields for one open debt."""

    debt_id: str
    status: DebtStatus
    adjusted_amount: Decimal


def _ceil_div(numerator: int, denominator: int) -> int:
    return -(-numerator // denominator)


def months_overdue(due_date: datetime | date | str, now: datetime | None = None) -> int:
    """Months a debt is past due, using a flat 30-day month.

    Zero when ``now`` is not after the due date. Otherwise the elapsed time
    is rounded up to whole days, then the days are rounded up to 30-day
    months: 1 day and 30 days are both 1 month, 31 days is 2.
    """
    due = parse_datetime(due_date)
    current = parse_datetime(now or utcnow())
    if current <= due:
        return 0
    elapsed_us = (current - due) // timedelta(microseconds=1)
    days = _ceil_div(elapsed_us, _ONE_DAY_US)
    return _ceil_div(days, DAYS_PER_MONTH)


def compounded_amount(principal: Decimal, monthly_rate: Decimal, months: int) -> Decimal:
    """Principal compounded monthly: ``principal * (1 + rate/100) ** months``."""
    rate = to_decimal(monthly_rate) / 100
    return to_decimal(principal) * (1 + rate) ** months


def simple_amount(principal: Decimal, monthly_rate: Decimal, months: int) -> Decimal:
    """Principal with simple interest: ``principal * (1 + rate/100 * months)``."""
    rate = to_decimal(monthly_rate) / 100
    return to_decimal(principal) * (1 + rate * months)


def corrected_amount(
    principal: Decimal,
    due_date: datetime | date | str,
    monthly_rate: Decimal,
    grace_months: int,
    now: datetime | None = None,
) -> Decimal:
    """Balance owed as of ``now``.

    No interest accrues while the debt is at most ``grace_months`` overdue
    (inclusive); the principal is returned unchanged. Past that, interest
    compounds over the months beyond the grace period.
    """
    overdue = months_overdue(due_date, now)
    if overdue <= grace_months:
        return principal
    return compounded_amount(principal, monthly_rate, overdue - grace_months)


def debt_status(due_date: datetime | date | str, now: datetime | None = None) -> DebtStatus:
    """``OVERDUE`` once the due date has passed, else ``PENDING``.

    Never returns ``PAID``; callers must skip paid debts before asking.
    """
    current = parse_datetime(now or utcnow())
    return DebtStatus.OVERDUE if current > parse_datetime(due_date) else DebtStatus.PENDING


def evaluate_debt(debt: Debt, now: datetime | None = None) -> DebtEvaluation:
    """Compute status, months overdue and corrected amount for a debt.

    A paid debt keeps its frozen ``adjusted_amount`` and ``PAID`` status.
    """
    current = now or utcnow()
    overdue = months_overdue(debt.due_date, current)
    if debt.is_paid:
        return DebtEvaluation(DebtStatus.PAID, overdue, debt.adjusted_amount)
    return DebtEvaluation(
        status=debt_status(debt.due_date, current),
        months_overdue=overdue,
        corrected_amount=corrected_amount(
            debt.amount, debt.due_date, debt.monthly_rate, debt.grace_months, current
        ),
    )


def interest_change(debt: Debt, now: datetime | None = None) -> InterestChange | None:
    """Fields to write for an open debt, or None if nothing changed."""
    if debt.is_paid:
        return None
    evaluation = evaluate_debt(debt, now)
    adjusted = round_currency(evaluation.corrected_amount)
    if evaluation.status == debt.status and adjusted == debt.adjusted_amount:
        return None
    return InterestChange(debt.debt_id, evaluation.status, adjusted)
