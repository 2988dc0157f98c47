from clipkeep.utils import compute_hash


class ChangeDetector:
    """Tracks the fingerprint of the last clipboard snapshot seen.

    The last-seen fingerprint moves on every observation, whether or not the
    content ends up stored, so a filtered snapshot sitting on the clipboard is
    not reprocessed on every poll.
    """

    def __init__(self, last_seen: str | None = None):
        self._last_seen = last_seen

    @staticmethod
    def fingerprint(content: str) -> str:
        return compute_hash(content)

    @staticmethod
    def has_changed(current: str, last_seen: str | None) -> bool:
        return current != last_seen

    @property
    def last_seen(self) -> str | None:
        return self._last_seen

    def observe(self, content: str) -> tuple[str, bool]:
        """Record ``content`` as seen and report whether it differs from before."""
        current = self.fingerprint(content)
        changed = self.has_changed(current, self._last_seen)
        self._last_seen = current
        return current, changed

    def sync(self, content: str) -> None:
        self._last_seen = self.fingerprint(content)

    def reset(self) -> None:
        self._last_seen = None
