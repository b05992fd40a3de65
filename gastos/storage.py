"""Key-value persistence collaborators for the expense store."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, Optional, Protocol

from .exceptions import PersistenceReadError, PersistenceWriteError

KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]{1,64}$")


class KeyValueStorage(Protocol):
    """The only capability the store needs: get and set a text blob by key."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...


class JSONFileStorage:
    """File-backed key-value storage, one ``<key>.json`` file per key, crash-safe writes."""

    def __init__(self, base_path: Path) -> None:
        self._base_path = base_path
        self._base_path.mkdir(parents=True, exist_ok=True)

    def get(self, key: str) -> Optional[str]:
        path = self._path_for(key)
        if not path.exists():
            return None
        try:
            with path.open("r", encoding="utf-8") as handle:
                return handle.read()
        except OSError as exc:
            raise PersistenceReadError(f"Unable to read from {path}") from exc

    def set(self, key: str, value: str) -> None:
        path = self._path_for(key)
        temp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            with temp_path.open("w", encoding="utf-8") as handle:
                handle.write(value)
                handle.flush()
            # Atomic on POSIX; readers see either the old or the new blob.
            temp_path.replace(path)
        except OSError as exc:
            raise PersistenceWriteError(f"Unable to write to {path}") from exc

    def _path_for(self, key: str) -> Path:
        if not KEY_PATTERN.fullmatch(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self._base_path / f"{key}.json"


class MemoryStorage:
    """In-process storage used for tests and throwaway sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value
