"""Local-first record store with referential integrity."""

import copy
import re
import threading
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Iterable

from devedores.exceptions import ImmutableFieldError, InvalidEntityStateError, StorageWriteError
from devedores.interest.engine import InterestChange, debt_status
from devedores.logging import get_logger
from devedores.models import Client, Debt, DebtStatus, Document, Payment
from devedores.storage.persistence import PersistenceAdapter
from devedores.storage.serialization import DEFAULT_GRACE_MONTHS, DEFAULT_MONTHLY_RATE
from devedores.utils import parse_datetime, to_decimal

logger = get_logger(__name__)

MutationListener = Callable[[str], None]

CLIENT_PATCHABLE = frozenset({"name", "tax_id", "phone", "email", "address"})
DEBT_PATCHABLE = frozenset(
    {"amount", "due_date", "issued_at", "description", "status", "monthly_rate", "grace_months", "adjusted_amount"}
)
# Fields that a paid (terminal) debt refuses to change
DEBT_FROZEN_WHEN_PAID = frozenset({"status", "amount", "adjusted_amount"})

_NON_DIGITS = re.compile(r"\D")


def _digits(value: str | None) -> str:
    return _NON_DIGITS.sub("", value or "")


def _new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class RecordStore:
    """Single source of truth for clients and the debts/payments they own.

    Every mutation writes the whole document through the persistence
    adapter before returning, then notifies subscribers. Debts and payments
    are stored nested inside their client; a secondary index maps their
    ids to the owning client id.
    """

    persistence: PersistenceAdapter
    clock: Callable[[], datetime] | None = None
    default_monthly_rate: Decimal = DEFAULT_MONTHLY_RATE
    default_grace_months: int = DEFAULT_GRACE_MONTHS

    _document: Document = field(init=False)
    _clients: dict[str, Client] = field(init=False, default_factory=dict)
    _debt_owner: dict[str, str] = field(init=False, default_factory=dict)
    _payment_owner: dict[str, str] = field(init=False, default_factory=dict)
    _listeners: list[MutationListener] = field(init=False, default_factory=list)
    _lock: threading.RLock = field(init=False, default_factory=threading.RLock)
    _clock: Callable[[], datetime] = field(init=False)

    def __post_init__(self) -> None:
        self._clock = self.clock if self.clock is not None else self.persistence.clock
        self._document = self.persistence.load()
        self._rebuild_index()

    # --- Document-level operations ---

    @property
    def last_updated(self) -> datetime:
        return self._document.settings.last_updated

    def snapshot(self) -> Document:
        """Return a deep copy of the current document."""
        with self._lock:
            return copy.deepcopy(self._document)

    def reload(self) -> None:
        """Re-read the document from the persistence medium."""
        with self._lock:
            self._document = self.persistence.load()
            self._rebuild_index()

    def replace(self, document: Document, expected_last_updated: datetime | None = None) -> bool:
        """Swap in a whole document, keeping its ``last_updated`` stamp.

        Used when the sync file wins reconciliation. Subscribers are not
        notified, so this does not trigger another sync.

        Parameters
        ----------
        document : Document
            Document to adopt.
        expected_last_updated : datetime | None
            When given, the replacement is refused if the local document
            was modified after this stamp was read.

        Returns
        -------
        bool
            True when the document was replaced.
        """
        with self._lock:
            if expected_last_updated is not None and self.last_updated != expected_last_updated:
                logger.warning("Local data changed during sync, keeping local changes")
                return False
            adopted = copy.deepcopy(document)
            self.persistence.save(adopted, touch=False)
            self._document = adopted
            self._rebuild_index()
        logger.info("Local data replaced from sync file", extra=adopted.summary())
        return True

    def subscribe(self, listener: MutationListener) -> None:
        """Register a callback run after every successful mutation."""
        self._listeners.append(listener)

    def unsubscribe(self, listener: MutationListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def summary(self) -> dict[str, int]:
        with self._lock:
            return self._document.summary()

    # --- Clients ---

    def create_client(
        self,
        name: str,
        tax_id: str,
        phone: str,
        email: str | None = None,
        address: str | None = None,
    ) -> Client:
        """Create a client with no debts or payments."""
        now = self._now()
        client = Client(
            client_id=_new_id(),
            name=name,
            tax_id=tax_id,
            phone=phone,
            email=email,
            address=address,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._document.clients.append(client)
            self._clients[client.client_id] = client
            self._commit()
        logger.info("Client created", extra={"client_id": client.client_id})
        self._notify("client.created")
        return client

    def get_client(self, client_id: str) -> Client | None:
        with self._lock:
            return self._clients.get(client_id)

    def list_clients(self) -> list[Client]:
        with self._lock:
            return list(self._document.clients)

    def update_client(self, client_id: str, /, **patch: Any) -> Client | None:
        """Merge ``patch`` into a client; None if the client does not exist.

        Raises
        ------
        ImmutableFieldError
            When the patch names the id, creation stamp or owned lists.
        """
        self._check_patch(patch, CLIENT_PATCHABLE, "client")
        with self._lock:
            client = self._clients.get(client_id)
            if client is None:
                return None
            for key, value in patch.items():
                setattr(client, key, value)
            client.updated_at = self._now()
            self._commit()
        logger.info("Client updated", extra={"client_id": client_id})
        self._notify("client.updated")
        return client

    def remove_client(self, client_id: str) -> bool:
        """Remove a client together with its debts and payments."""
        with self._lock:
            client = self._clients.get(client_id)
            if client is None:
                return False
            self._document.clients.remove(client)
            self._rebuild_index()
            self._commit()
        logger.info("Client removed", extra={"client_id": client_id, "debts": len(client.debts)})
        self._notify("client.removed")
        return True

    def search(self, term: str) -> list[Client]:
        """Find clients by name, email, tax id or phone.

        Name and email match as case-insensitive substrings. Tax id and
        phone match on digits only, and only when the term has digits.
        """
        needle = term.strip().lower()
        needle_digits = _digits(term)
        with self._lock:
            return [
                client
                for client in self._document.clients
                if needle in client.name.lower()
                or (client.email is not None and needle in client.email.lower())
                or (needle_digits and needle_digits in _digits(client.tax_id))
                or (needle_digits and needle_digits in _digits(client.phone))
            ]

    # --- Debts ---

    def create_debt(
        self,
        client_id: str,
        amount: Decimal | int | str,
        due_date: datetime | date | str,
        description: str = "",
        monthly_rate: Decimal | int | str | None = None,
        grace_months: int | None = None,
        issued_at: datetime | date | str | None = None,
    ) -> Debt | None:
        """Create a debt for an existing client; None if the client is missing.

        The debt starts ``OVERDUE`` when its due date has already passed,
        otherwise ``PENDING``. ``adjusted_amount`` starts at the principal.

        Raises
        ------
        InvalidEntityStateError
            When the amount is not positive or the rate/grace is negative.
        """
        principal = to_decimal(amount)
        rate = to_decimal(self.default_monthly_rate if monthly_rate is None else monthly_rate)
        if grace_months is None:
            grace_months = self.default_grace_months
        self._validate_debt_terms(principal, rate, grace_months)
        now = self._now()
        due = parse_datetime(due_date)

        with self._lock:
            client = self._clients.get(client_id)
            if client is None:
                logger.error("Client not found for new debt", extra={"client_id": client_id})
                return None
            debt = Debt(
                debt_id=_new_id(),
                client_id=client_id,
                amount=principal,
                due_date=due,
                issued_at=parse_datetime(issued_at) if issued_at is not None else now,
                description=description,
                status=debt_status(due, now),
                monthly_rate=rate,
                grace_months=grace_months,
                adjusted_amount=principal,
                created_at=now,
                updated_at=now,
            )
            client.debts.append(debt)
            self._debt_owner[debt.debt_id] = client_id
            self._commit()
        logger.info(
            "Debt created",
            extra={"debt_id": debt.debt_id, "client_id": client_id, "amount": str(principal)},
        )
        self._notify("debt.created")
        return debt

    def get_debt(self, debt_id: str) -> Debt | None:
        with self._lock:
            return self._find_debt(debt_id)

    def list_debts(self) -> list[Debt]:
        with self._lock:
            return [debt for client in self._document.clients for debt in client.debts]

    def debts_for_client(self, client_id: str) -> list[Debt]:
        with self._lock:
            client = self._clients.get(client_id)
            return list(client.debts) if client else []

    def update_debt(self, debt_id: str, /, **patch: Any) -> Debt | None:
        """Merge ``patch`` into a debt; None if the debt does not exist.

        Raises
        ------
        ImmutableFieldError
            When the patch names the id, owner or creation stamp.
        InvalidEntityStateError
            When a paid debt would change status or amounts, or the new
            terms are invalid.
        """
        self._check_patch(patch, DEBT_PATCHABLE, "debt")
        patch = self._coerce_debt_patch(patch)
        with self._lock:
            debt = self._find_debt(debt_id)
            if debt is None:
                logger.error("Debt not found for update", extra={"debt_id": debt_id})
                return None
            if debt.is_paid:
                frozen = {
                    key for key in DEBT_FROZEN_WHEN_PAID & patch.keys() if patch[key] != getattr(debt, key)
                }
                if frozen:
                    raise InvalidEntityStateError(
                        f"Debt {debt_id} is paid; cannot change {', '.join(sorted(frozen))}"
                    )
            self._validate_debt_terms(
                patch.get("amount", debt.amount),
                patch.get("monthly_rate", debt.monthly_rate),
                patch.get("grace_months", debt.grace_months),
            )
            if "amount" in patch and "adjusted_amount" not in patch and patch["amount"] != debt.amount:
                patch["adjusted_amount"] = patch["amount"]
            adjusted = patch.get("adjusted_amount", debt.adjusted_amount)
            if adjusted < patch.get("amount", debt.amount):
                raise InvalidEntityStateError("adjusted_amount cannot be lower than the principal")
            for key, value in patch.items():
                setattr(debt, key, value)
            debt.updated_at = self._now()
            self._commit()
        logger.info("Debt updated", extra={"debt_id": debt_id, "fields": sorted(patch)})
        self._notify("debt.updated")
        return debt

    def mark_debt_paid(self, debt_id: str) -> Debt | None:
        """Move a debt to the terminal ``PAID`` state, freezing its balance."""
        with self._lock:
            debt = self._find_debt(debt_id)
            if debt is None:
                return None
            if debt.is_paid:
                return debt
            debt.status = DebtStatus.PAID
            debt.updated_at = self._now()
            self._commit()
        logger.info("Debt marked as paid", extra={"debt_id": debt_id, "amount": str(debt.adjusted_amount)})
        self._notify("debt.paid")
        return debt

    def remove_debt(self, debt_id: str) -> bool:
        """Remove a debt. Payments referencing it stay with the client."""
        with self._lock:
            client = self._owner_of_debt(debt_id)
            if client is None:
                logger.error("Debt not found for removal", extra={"debt_id": debt_id})
                return False
            client.debts = [debt for debt in client.debts if debt.debt_id != debt_id]
            del self._debt_owner[debt_id]
            self._commit()
        logger.info("Debt removed", extra={"debt_id": debt_id})
        self._notify("debt.removed")
        return True

    def apply_interest(self, changes: Iterable[InterestChange]) -> int:
        """Write recomputed status/balances for open debts in one save.

        Paid or missing debts are skipped. Returns the number of debts
        that actually changed.
        """
        changed = 0
        with self._lock:
            now = self._now()
            for change in changes:
                debt = self._find_debt(change.debt_id)
                if debt is None or debt.is_paid:
                    continue
                if debt.status == change.status and debt.adjusted_amount == change.adjusted_amount:
                    continue
                debt.status = change.status
                debt.adjusted_amount = max(change.adjusted_amount, debt.amount)
                debt.updated_at = now
                changed += 1
            if changed:
                self._commit()
        if changed:
            logger.info("Interest applied", extra={"debts": changed})
            self._notify("debt.interest")
        return changed

    # --- Payments ---

    def create_payment(
        self,
        client_id: str,
        debt_id: str,
        amount: Decimal | int | str,
        paid_on: datetime | date | str | None = None,
        note: str | None = None,
    ) -> Payment | None:
        """Record a payment; None if the client is missing or the debt isn't theirs."""
        value = to_decimal(amount)
        if value <= 0:
            raise InvalidEntityStateError("Payment amount must be positive")
        now = self._now()
        with self._lock:
            client = self._clients.get(client_id)
            if client is None or self._debt_owner.get(debt_id) != client_id:
                logger.error(
                    "Client or debt not found for payment",
                    extra={"client_id": client_id, "debt_id": debt_id},
                )
                return None
            payment = Payment(
                payment_id=_new_id(),
                client_id=client_id,
                debt_id=debt_id,
                amount=value,
                paid_on=parse_datetime(paid_on) if paid_on is not None else now,
                note=note,
                created_at=now,
                updated_at=now,
            )
            client.payments.append(payment)
            self._payment_owner[payment.payment_id] = client_id
            self._commit()
        logger.info("Payment recorded", extra={"payment_id": payment.payment_id, "debt_id": debt_id})
        self._notify("payment.created")
        return payment

    def remove_payment(self, payment_id: str) -> bool:
        with self._lock:
            client_id = self._payment_owner.get(payment_id)
            if client_id is None:
                return False
            client = self._clients[client_id]
            client.payments = [p for p in client.payments if p.payment_id != payment_id]
            del self._payment_owner[payment_id]
            self._commit()
        logger.info("Payment removed", extra={"payment_id": payment_id})
        self._notify("payment.removed")
        return True

    def list_payments(self) -> list[Payment]:
        with self._lock:
            return [payment for client in self._document.clients for payment in client.payments]

    def payments_for_client(self, client_id: str) -> list[Payment]:
        with self._lock:
            client = self._clients.get(client_id)
            return list(client.payments) if client else []

    def payments_for_debt(self, debt_id: str) -> list[Payment]:
        with self._lock:
            client_id = self._debt_owner.get(debt_id)
            candidates = [self._clients[client_id]] if client_id else self._document.clients
            return [p for client in candidates for p in client.payments if p.debt_id == debt_id]

    # --- Internals ---

    def _now(self) -> datetime:
        return self._clock()

    def _commit(self) -> None:
        try:
            self.persistence.save(self._document)
        except StorageWriteError:
            # Roll the in-memory document back to what the medium holds.
            self._document = self.persistence.load()
            self._rebuild_index()
            raise

    def _notify(self, event: str) -> None:
        for listener in list(self._listeners):
            listener(event)

    def _rebuild_index(self) -> None:
        self._clients = {client.client_id: client for client in self._document.clients}
        self._debt_owner = {
            debt.debt_id: client.client_id for client in self._document.clients for debt in client.debts
        }
        self._payment_owner = {
            payment.payment_id: client.client_id
            for client in self._document.clients
            for payment in client.payments
        }

    def _owner_of_debt(self, debt_id: str) -> Client | None:
        client_id = self._debt_owner.get(debt_id)
        return self._clients.get(client_id) if client_id else None

    def _find_debt(self, debt_id: str) -> Debt | None:
        client = self._owner_of_debt(debt_id)
        if client is None:
            return None
        return next((debt for debt in client.debts if debt.debt_id == debt_id), None)

    @staticmethod
    def _check_patch(patch: dict[str, Any], allowed: frozenset[str], entity: str) -> None:
        rejected = set(patch) - allowed
        if rejected:
            raise ImmutableFieldError(f"Cannot patch {entity} field(s): {', '.join(sorted(rejected))}")

    @staticmethod
    def _coerce_debt_patch(patch: dict[str, Any]) -> dict[str, Any]:
        coerced = dict(patch)
        for key in ("amount", "monthly_rate", "adjusted_amount"):
            if key in coerced:
                coerced[key] = to_decimal(coerced[key])
        for key in ("due_date", "issued_at"):
            if key in coerced:
                coerced[key] = parse_datetime(coerced[key])
        if "status" in coerced:
            coerced["status"] = DebtStatus(coerced["status"])
        return coerced

    @staticmethod
    def _validate_debt_terms(amount: Decimal, monthly_rate: Decimal, grace_months: int) -> None:
        if amount <= 0:
            raise InvalidEntityStateError("Debt amount must be positive")
        if monthly_rate < 0:
            raise InvalidEntityStateError("Monthly rate cannot be negative")
        if grace_months < 0:
            raise InvalidEntityStateError("Grace months cannot be negative")
