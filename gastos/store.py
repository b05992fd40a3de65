"""Record store: the in-memory expense list and its persistence."""

from __future__ import annotations

import json
import logging
import threading
import time
from typing import Any, Callable, Dict, List, Mapping, Optional

from .exceptions import PersistenceError, PersistenceReadError, PersistenceWriteError
from .models import ExpenseRecord
from .storage import KeyValueStorage
from .validators import validate_expense_payload

logger = logging.getLogger(__name__)

DEFAULT_KEY = "expenses"

Listener = Callable[[List[ExpenseRecord]], None]


def now_millis() -> int:
    return time.time_ns() // 1_000_000


class ExpenseStore:
    """Holds the ordered expense list and mirrors it to a key-value storage.

    Every mutation re-persists the whole list when ``autosave`` is on. Write
    failures propagate as :class:`PersistenceWriteError`; the in-memory change
    is kept so the caller can retry with :meth:`save`.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        key: str = DEFAULT_KEY,
        *,
        clock: Optional[Callable[[], int]] = None,
        autosave: bool = True,
    ) -> None:
        self._storage = storage
        self._key = key
        self._clock = clock or now_millis
        self._autosave = autosave
        self._lock = threading.RLock()
        self._listeners: List[Listener] = []
        self._records: List[ExpenseRecord] = []
        self.load()  # Hydrate in-memory list from persistence on construction.

    # Public API -----------------------------------------------------------
    def load(self) -> List[ExpenseRecord]:
        """Replace the in-memory list with the persisted one; fall back to empty."""
        with self._lock:
            try:
                self._records = self._read()
            except PersistenceReadError as exc:
                logger.warning("Could not load expenses from %r, starting empty: %s", self._key, exc)
                self._records = []
            return list(self._records)

    def add(self, payload: Mapping[str, Any]) -> List[ExpenseRecord]:
        data = validate_expense_payload(payload)
        with self._lock:
            record = ExpenseRecord(id=self._next_id(), **data)
            self._records.append(record)
            self._changed()
            return list(self._records)

    def remove(self, record_id: int) -> List[ExpenseRecord]:
        with self._lock:
            for index, record in enumerate(self._records):
                if record.id == record_id:
                    del self._records[index]
                    self._changed()
                    break
            return list(self._records)

    def list(self) -> List[ExpenseRecord]:
        with self._lock:
            return list(self._records)

    def get(self, record_id: int) -> Optional[ExpenseRecord]:
        with self._lock:
            for record in self._records:
                if record.id == record_id:
                    return record
            return None

    def persist(self, records: List[ExpenseRecord]) -> None:
        """Overwrite the stored blob with ``records``."""
        blob = json.dumps([record.to_dict() for record in records], ensure_ascii=False)
        with self._lock:
            try:
                self._storage.set(self._key, blob)
            except PersistenceWriteError:
                logger.error("Saving %d expenses to %r failed", len(records), self._key)
                raise
            except Exception as exc:
                logger.error("Saving %d expenses to %r failed: %s", len(records), self._key, exc)
                raise PersistenceWriteError("Unexpected error while saving expenses") from exc
        logger.debug("Saved %d expenses to %r", len(records), self._key)

    def save(self) -> None:
        """Explicitly persist the current list."""
        with self._lock:
            self.persist(self._records)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for change notifications; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # Internal helpers -----------------------------------------------------
    def _read(self) -> List[ExpenseRecord]:
        try:
            blob = self._storage.get(self._key)
        except PersistenceError as exc:
            raise PersistenceReadError(str(exc)) from exc
        except Exception as exc:
            raise PersistenceReadError("Unexpected error while loading expenses") from exc
        if blob is None:
            return []
        try:
            payload = json.loads(blob)
        except json.JSONDecodeError as exc:
            raise PersistenceReadError(f"Corrupted JSON data under {self._key!r}") from exc
        if not isinstance(payload, list):
            raise PersistenceReadError(f"Expected list payload under {self._key!r}")

        records: List[ExpenseRecord] = []
        seen = set()
        for entry in payload:
            try:
                record = ExpenseRecord.from_dict(entry)
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping malformed expense entry %r: %s", entry, exc)
                continue
            if record.id in seen:
                logger.warning("Skipping duplicate expense id %s", record.id)
                continue
            seen.add(record.id)
            records.append(record)
        return records

    def _next_id(self) -> int:
        candidate = int(self._clock())
        if self._records:
            newest = max(record.id for record in self._records)
            if candidate <= newest:
                candidate = newest + 1
        return candidate

    def _changed(self) -> None:
        snapshot = list(self._records)
        for listener in list(self._listeners):
            listener(snapshot)
        if self._autosave:
            self.persist(snapshot)


def records_to_dicts(records: List[ExpenseRecord]) -> List[Dict[str, Any]]:
    return [record.to_dict() for record in records]
