"""Record store for clients, debts and payments."""

from devedores.store.records import RecordStore

__all__ = ["RecordStore"]
