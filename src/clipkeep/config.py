import os
import threading
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from clipkeep.errors import ConfigError

DATA_DIR = Path(os.environ.get("CLIPKEEP_DATA_DIR", Path.home() / ".local" / "share" / "clipkeep"))
DB_PATH = DATA_DIR / "clipkeep.db"
LOG_PATH = DATA_DIR / "clipkeep.log"

POLL_INTERVAL = 0.5  # seconds between clipboard checks
CLEANUP_INTERVAL = 3600.0  # seconds between retention passes
MAX_TEXT_SIZE = 1024 * 1024  # 1 MiB text limit
PREVIEW_LENGTH = 200  # characters kept in the stored preview
LIST_PREVIEW_LENGTH = 60  # characters shown per line in terminal listings
SORT_ORDERS = ("accessed", "copied")


def _parse_display_count() -> int:
    raw = os.environ.get("CLIPKEEP_DISPLAY_COUNT")
    if raw is None:
        return 10
    try:
        value = int(raw)
    except ValueError:
        return 10
    return max(5, min(50, value))


DISPLAY_COUNT = _parse_display_count()

_TRUE_WORDS = {"true", "1", "yes", "on"}
_FALSE_WORDS = {"false", "0", "no", "off"}


def _coerce_positive_int(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{name} must be a positive integer, got {value!r}")
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            raise ConfigError(f"{name} must be a positive integer, got {value!r}") from None
    if not isinstance(value, int) or value < 1:
        raise ConfigError(f"{name} must be a positive integer, got {value!r}")
    return value


def _coerce_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    raise ConfigError(f"{name} must be a boolean, got {value!r}")


def _coerce_sort_order(name: str, value: Any) -> str:
    if isinstance(value, str) and value.strip().lower() in SORT_ORDERS:
        return value.strip().lower()
    raise ConfigError(f"{name} must be one of {', '.join(SORT_ORDERS)}, got {value!r}")


_COERCERS = {
    "polling_interval_ms": _coerce_positive_int,
    "max_items": _coerce_positive_int,
    "max_age_days": _coerce_positive_int,
    "monitoring_enabled": _coerce_bool,
    "allow_passwords": _coerce_bool,
    "sort_by": _coerce_sort_order,
}


@dataclass
class Settings:
    """Live runtime settings shared by the monitor and its workers.

    Readers always see the current values; nothing caches them. ``update``
    validates the whole batch before applying any of it, so a malformed value
    leaves every previous value in place.
    """

    polling_interval_ms: int = int(POLL_INTERVAL * 1000)
    max_items: int = 100
    max_age_days: int = 7
    monitoring_enabled: bool = True
    allow_passwords: bool = False
    sort_by: str = "accessed"
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @property
    def polling_interval(self) -> float:
        """Polling interval in seconds."""
        return self.polling_interval_ms / 1000

    def update(self, values: dict[str, Any]) -> None:
        validated = {}
        for name, value in values.items():
            coerce = _COERCERS.get(name)
            if coerce is None:
                raise ConfigError(f"unknown setting {name!r}")
            validated[name] = coerce(name, value)

        with self._lock:
            for name, value in validated.items():
                setattr(self, name, value)

    def to_dict(self) -> dict[str, Any]:
        with self._lock:
            return {f.name: getattr(self, f.name) for f in fields(self) if not f.name.startswith("_")}

    @classmethod
    def from_dict(cls, values: dict[str, Any]) -> "Settings":
        settings = cls()
        settings.update(values)
        return settings
