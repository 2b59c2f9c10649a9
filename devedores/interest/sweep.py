"""Periodic recomputation of stored debt status and balances."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from devedores.interest.engine import interest_change
from devedores.logging import get_logger
from devedores.utils import utcnow

if TYPE_CHECKING:
    from devedores.store.records import RecordStore

logger = get_logger(__name__)


def sweep(store: RecordStore, now: datetime | None = None) -> int:
    """Rewrite status and ``adjusted_amount`` of every open debt.

    Paid debts are left untouched. Only debts whose values changed are
    written, in a single save.

    Parameters
    ----------
    store : RecordStore
        Store holding the debts.
    now : datetime | None
        Evaluation instant; defaults to the wall clock.

    Returns
    -------
    int
        Number of debts updated.
    """
    current = now or utcnow()
    changes = [
        change
        for change in (interest_change(debt, current) for debt in store.list_debts())
        if change is not None
    ]
    if not changes:
        logger.debug("Interest sweep found nothing to update")
        return 0
    return store.apply_interest(changes)
