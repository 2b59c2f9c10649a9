"""Enumeration types for collection entities."""

from enum import Enum


class DebtStatus(str, Enum):
    PENDING = "pendente"
    PAID = "pago"
    OVERDUE = "vencido"


class InterestType(str, Enum):
    SIMPLE = "simples"
    COMPOUND = "composto"


class PermissionState(str, Enum):
    GRANTED = "granted"
    PROMPT = "prompt"
    DENIED = "denied"


class ReconcileOutcome(str, Enum):
    FILE_CREATED = "FILE_CREATED"
    LOCAL_WINS = "LOCAL_WINS"
    FILE_WINS = "FILE_WINS"
    IN_SYNC = "IN_SYNC"
