"""Environment-driven settings for the expense log."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Tuple

from .store import DEFAULT_KEY


def _flag(raw: Optional[str], default: bool) -> bool:
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    env: str = "prod"
    allowed_origins: Tuple[str, ...] = ()
    data_dir: Path = Path("data")
    storage_key: str = DEFAULT_KEY
    autosave: bool = True

    @property
    def is_dev(self) -> bool:
        return self.env in {"dev", "development"}

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        origins = env.get("GASTOS_ALLOWED_ORIGINS") or ""
        return cls(
            env=env.get("GASTOS_ENV", "prod").strip().lower(),
            allowed_origins=tuple(origin.strip() for origin in origins.split(",") if origin.strip()),
            data_dir=Path(env.get("GASTOS_DATA_DIR") or "data"),
            storage_key=env.get("GASTOS_STORAGE_KEY") or DEFAULT_KEY,
            autosave=_flag(env.get("GASTOS_AUTOSAVE"), True),
        )
