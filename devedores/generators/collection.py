"""Sample clients, debts and payments for demos and manual testing."""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Iterator

from devedores.generators.base import BaseGenerator
from devedores.interest.sweep import sweep
from devedores.logging import get_logger
from devedores.models import Client, Debt
from devedores.store.records import RecordStore
from devedores.utils import round_currency, utcnow

logger = get_logger(__name__)


class CollectionGenerator(BaseGenerator):
    """Generate synthetic collection data for a :class:`RecordStore`."""

    DESCRIPTIONS = [
        "Compra de materiais",
        "Serviços prestados",
        "Empréstimo pessoal",
        "Produtos diversos",
        "Financiamento",
        "Mensalidade atrasada",
        "Conserto de equipamento",
        "Venda a prazo",
    ]

    # Days relative to now; negative values are already past due
    DUE_OFFSET_RANGE = (-150, 45)
    AMOUNT_RANGE = (100, 5000)
    RATES = [Decimal("1.5"), Decimal("2"), Decimal("3"), Decimal("5")]
    RATE_WEIGHTS = [0.15, 0.20, 0.50, 0.15]

    def __init__(
        self,
        seed: int | None = None,
        debts_per_client: tuple[int, int] = (0, 3),
        paid_ratio: float = 0.25,
    ) -> None:
        super().__init__(seed)
        self.debts_per_client = debts_per_client
        self.paid_ratio = paid_ratio

    def client_fields(self) -> dict[str, Any]:
        """Keyword arguments for :meth:`RecordStore.create_client`."""
        fields: dict[str, Any] = {
            "name": self.fake.name(),
            "tax_id": self.fake.cpf(),
            "phone": self.fake.cellphone_number(),
        }
        # Optional contact data on part of the clients
        if self.rng.random() < 0.6:
            fields["email"] = self.fake.email()
        if self.rng.random() < 0.4:
            fields["address"] = self.fake.address().replace("\n", ", ")
        return fields

    def debt_fields(self, now: datetime) -> dict[str, Any]:
        """Keyword arguments for :meth:`RecordStore.create_debt`, minus the client id."""
        due_offset = self.rng.randint(*self.DUE_OFFSET_RANGE)
        due_date = now + timedelta(days=due_offset)
        issued_at = due_date - timedelta(days=self.rng.choice([15, 30, 45, 60]))
        amount = round_currency(Decimal(str(self.rng.uniform(*self.AMOUNT_RANGE))))
        return {
            "amount": amount,
            "due_date": due_date,
            "issued_at": issued_at,
            "description": self.rng.choice(self.DESCRIPTIONS),
            "monthly_rate": self.rng.choices(self.RATES, weights=self.RATE_WEIGHTS, k=1)[0],
            "grace_months": self.rng.choice([0, 1, 2, 2, 3]),
        }

    def generate_debts(self, now: datetime) -> Iterator[dict[str, Any]]:
        """Yield debt fields for one client."""
        for _ in range(self.rng.randint(*self.debts_per_client)):
            yield self.debt_fields(now)

    def populate(self, store: RecordStore, num_clients: int, now: datetime | None = None) -> dict[str, int]:
        """Create ``num_clients`` clients with debts and payments in ``store``.

        Debts get status and balances from an interest sweep, then a share
        of them is settled: marked paid with a payment for the full balance.

        Returns
        -------
        dict[str, int]
            Counts of clients, debts and payments in the store afterwards.
        """
        current = now or utcnow()
        to_settle: list[tuple[Client, Debt]] = []

        for _ in range(num_clients):
            client = store.create_client(**self.client_fields())
            for fields in self.generate_debts(current):
                debt = store.create_debt(client.client_id, **fields)
                if debt is not None and self.rng.random() < self.paid_ratio:
                    to_settle.append((client, debt))

        sweep(store, current)

        for client, debt in to_settle:
            settled = store.mark_debt_paid(debt.debt_id)
            if settled is None:
                continue
            store.create_payment(
                client.client_id,
                debt.debt_id,
                settled.adjusted_amount,
                paid_on=current - timedelta(days=self.rng.randint(0, 10)),
                note="Pagamento integral",
            )

        summary = store.summary()
        logger.info("Sample data generated", extra=summary)
        return summary


def populate(
    store: RecordStore,
    num_clients: int = 5,
    seed: int | None = None,
    now: datetime | None = None,
) -> dict[str, int]:
    """Fill ``store`` with sample data. See :meth:`CollectionGenerator.populate`."""
    return CollectionGenerator(seed=seed).populate(store, num_clients, now)
