"""Top-level persisted document."""

from dataclasses import dataclass, field
from datetime import datetime

from devedores.models.client import Client

DOCUMENT_VERSION = "1.0.0"


@dataclass
class Settings:
    """Configuration block stamped on every local write."""

    last_updated: datetime
    version: str = DOCUMENT_VERSION
    owner: str = ""


@dataclass
class Document:
    """Whole local-first dataset: every client with its debts and payments."""

    settings: Settings
    clients: list[Client] = field(default_factory=list)

    @classmethod
    def empty(cls, now: datetime, version: str = DOCUMENT_VERSION, owner: str = "") -> "Document":
        """Create the default document seeded when nothing is stored."""
        return cls(settings=Settings(last_updated=now, version=version, owner=owner))

    def total_debts(self) -> int:
        return sum(len(client.debts) for client in self.clients)

    def summary(self) -> dict[str, int]:
        """Return summary counts of all entities."""
        return {
            "clients": len(self.clients),
            "debts": self.total_debts(),
            "payments": sum(len(client.payments) for client in self.clients),
        }
