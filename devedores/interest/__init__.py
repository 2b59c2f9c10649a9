"""Interest accrual engine, sweep, calculator and collection messages."""

from devedores.interest.calculator import InterestCalculation, calculate_interest
from devedores.interest.engine import (
    DebtEvaluation,
    InterestChange,
    compounded_amount,
    corrected_amount,
    debt_status,
    evaluate_debt,
    months_overdue,
    simple_amount,
)
from devedores.interest.messages import build_collection_message
from devedores.interest.sweep import sweep

__all__ = [
    "DebtEvaluation",
    "InterestCalculation",
    "InterestChange",
    "build_collection_message",
    "calculate_interest",
    "compounded_amount",
    "corrected_amount",
    "debt_status",
    "evaluate_debt",
    "months_overdue",
    "simple_amount",
    "sweep",
]
