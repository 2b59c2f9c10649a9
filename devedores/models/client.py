"""Client, debt and payment models."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from devedores.models.enums import DebtStatus


@dataclass
class Debt:
    """A debt owed by one client.

    ``adjusted_amount`` holds the principal plus interest as of the last
    interest sweep. Once ``status`` is ``PAID`` it is frozen.
    """

    debt_id: str
    client_id: str
    amount: Decimal  # Principal
    due_date: datetime
    issued_at: datetime
    description: str
    status: DebtStatus
    monthly_rate: Decimal  # Percent per month (3 means 3%)
    grace_months: int  # Months after due date before interest accrues
    adjusted_amount: Decimal
    created_at: datetime
    updated_at: datetime

    @property
    def is_paid(self) -> bool:
        return self.status == DebtStatus.PAID


@dataclass
class Payment:
    """A payment received from a client against one of their debts."""

    payment_id: str
    client_id: str
    debt_id: str
    amount: Decimal
    paid_on: datetime
    created_at: datetime
    updated_at: datetime
    note: str | None = None


@dataclass
class Client:
    """Debtor owning its debts and payments."""

    client_id: str
    name: str
    tax_id: str  # CPF
    phone: str
    created_at: datetime
    updated_at: datetime
    email: str | None = None
    address: str | None = None
    debts: list[Debt] = field(default_factory=list)
    payments: list[Payment] = field(default_factory=list)
