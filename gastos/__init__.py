"""Core logic for the expense log: records, store, aggregation and exports."""

from .config import Settings
from .exceptions import (
    PersistenceError,
    PersistenceReadError,
    PersistenceWriteError,
    ValidationError,
)
from .models import ExpenseDraft, ExpenseRecord
from .storage import JSONFileStorage, KeyValueStorage, MemoryStorage
from .store import ExpenseStore

__all__ = [
    "ExpenseDraft",
    "ExpenseRecord",
    "ExpenseStore",
    "JSONFileStorage",
    "KeyValueStorage",
    "MemoryStorage",
    "PersistenceError",
    "PersistenceReadError",
    "PersistenceWriteError",
    "Settings",
    "ValidationError",
]
