"""Stand-alone interest calculator."""

from dataclasses import dataclass
from decimal import Decimal

from devedores.exceptions import CalculationError
from devedores.interest.engine import compounded_amount, simple_amount
from devedores.models import InterestType
from devedores.utils import to_decimal

MAX_RATE = Decimal("100")


@dataclass(frozen=True)
class InterestCalculation:
    """Result of an interest calculation."""

    initial_amount: Decimal
    months: int
    rate: Decimal
    kind: InterestType
    final_amount: Decimal
    interest: Decimal


def calculate_interest(
    initial_amount: Decimal | int | str,
    months: int,
    rate: Decimal | int | str,
    kind: InterestType | str = InterestType.COMPOUND,
) -> InterestCalculation:
    """Project a balance forward with simple or compound monthly interest.

    Parameters
    ----------
    initial_amount : Decimal | int | str
        Starting balance; must be positive.
    months : int
        Number of months; must be positive.
    rate : Decimal | int | str
        Monthly rate in percent, in (0, 100].
    kind : InterestType | str
        ``simples`` or ``composto``.

    Raises
    ------
    CalculationError
        When any input is out of range.
    """
    initial = to_decimal(initial_amount)
    monthly_rate = to_decimal(rate)
    try:
        interest_type = InterestType(kind)
    except ValueError as e:
        raise CalculationError(f"Unknown interest type: {kind!r}") from e

    if initial <= 0:
        raise CalculationError("Initial amount must be greater than zero")
    if months <= 0:
        raise CalculationError("Number of months must be greater than zero")
    if monthly_rate <= 0 or monthly_rate > MAX_RATE:
        raise CalculationError("Interest rate must be between 0.01% and 100%")

    if interest_type == InterestType.SIMPLE:
        final = simple_amount(initial, monthly_rate, months)
    else:
        final = compounded_amount(initial, monthly_rate, months)

    return InterestCalculation(
        initial_amount=initial,
        months=months,
        rate=monthly_rate,
        kind=interest_type,
        final_amount=final,
        interest=final - initial,
    )
