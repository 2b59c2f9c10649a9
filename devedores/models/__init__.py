"""Domain models for the local-first collection store."""

from devedores.models.client import Client, Debt, Payment
from devedores.models.document import DOCUMENT_VERSION, Document, Settings
from devedores.models.enums import DebtStatus, InterestType, PermissionState, ReconcileOutcome
from devedores.models.sync import SyncStatus

__all__ = [
    "Client",
    "DOCUMENT_VERSION",
    "Debt",
    "DebtStatus",
    "Document",
    "InterestType",
    "Payment",
    "PermissionState",
    "ReconcileOutcome",
    "Settings",
    "SyncStatus",
]
