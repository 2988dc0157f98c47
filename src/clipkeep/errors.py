"""Error types raised by clipkeep."""


class ClipkeepError(Exception):
    """Base class for all clipkeep errors."""


class ReadError(ClipkeepError):
    """The clipboard could not be read or holds no text."""


class WriteError(ClipkeepError):
    """The clipboard could not be written."""


class StorageError(ClipkeepError):
    """A history database operation failed."""


class PatternError(ClipkeepError):
    """A search pattern is not a valid regular expression."""


class ConfigError(ClipkeepError):
    """A configuration value is unknown or malformed."""


class MonitorError(ClipkeepError):
    """The clipboard monitor was used in an invalid lifecycle state."""


class EntryNotFoundError(ClipkeepError, KeyError):
    """No history entry exists with the requested id."""

    def __init__(self, entry_id: str):
        super().__init__(entry_id)
        self.entry_id = entry_id

    def __str__(self) -> str:
        return f"no clipboard entry with id {self.entry_id!r}"
