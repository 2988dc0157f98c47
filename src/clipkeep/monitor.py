import logging
import threading
from collections.abc import Callable
from datetime import datetime
from typing import Any

from clipkeep.classify import detect_content_type, should_skip
from clipkeep.clipboard import PasteboardClipboard, PyperclipClipboard
from clipkeep.config import CLEANUP_INTERVAL, DISPLAY_COUNT, PREVIEW_LENGTH, Settings
from clipkeep.detector import ChangeDetector
from clipkeep.errors import EntryNotFoundError, MonitorError, ReadError
from clipkeep.models import ClipboardEntry, ContentType, new_entry_id
from clipkeep.retention import RetentionPolicy, RetentionResult
from clipkeep.storage import StorageManager
from clipkeep.utils import truncate_preview, truncate_text

logger = logging.getLogger(__name__)


class PeriodicWorker:
    """Calls ``action`` on a background thread every ``interval()`` seconds.

    The interval is re-read before each wait. Runs never overlap since the
    thread executes them one after another, and an error in one run is logged
    without ending the loop.
    """

    def __init__(self, name: str, action: Callable[[], Any], interval: Callable[[], float]):
        self.name = name
        self._action = action
        self._interval = interval
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()

    def request_stop(self) -> None:
        self._stop.set()

    def join(self) -> None:
        thread = self._thread
        # A worker stopped from inside its own action cannot wait for itself.
        if thread is None or thread is threading.current_thread():
            return
        thread.join()

    def stop(self) -> None:
        self.request_stop()
        self.join()

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        while not self._stop.wait(self._interval()):
            try:
                self._action()
            except Exception:
                logger.exception("Error in %s", self.name)


class ClipboardMonitor:
    def __init__(
        self,
        storage: StorageManager,
        clipboard: PasteboardClipboard | PyperclipClipboard,
        settings: Settings | None = None,
        on_change: Callable[[], None] | None = None,
        policy: RetentionPolicy | None = None,
        cleanup_interval: float = CLEANUP_INTERVAL,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._storage = storage
        self._clipboard = clipboard
        self._settings = settings or Settings()
        self._on_change = on_change
        self._policy = policy or RetentionPolicy()
        self._clock = clock
        self._detector = ChangeDetector()
        self._tick_lock = threading.Lock()
        self._lifecycle_lock = threading.Lock()
        self._running = False
        self._poller = PeriodicWorker("clipkeep-poller", self._poll, lambda: self._settings.polling_interval)
        self._cleaner = PeriodicWorker("clipkeep-cleanup", self.run_cleanup, lambda: cleanup_interval)

    @property
    def settings(self) -> Settings:
        return self._settings

    def start(self) -> None:
        with self._lifecycle_lock:
            if self._running:
                raise MonitorError("clipboard monitor is already running")
            # A previous stop may still be waiting on its workers.
            self._poller.join()
            self._cleaner.join()
            self._establish_baseline()
            self._poller.start()
            self._cleaner.start()
            self._running = True
        logger.info("Clipboard monitor started (polling every %.3fs)", self._settings.polling_interval)

    def stop(self) -> None:
        with self._lifecycle_lock:
            if not self._running:
                return
            self._running = False
            self._poller.request_stop()
            self._cleaner.request_stop()
        self._poller.join()
        self._cleaner.join()
        logger.info("Clipboard monitor stopped")

    def is_running(self) -> bool:
        return self._running

    def _establish_baseline(self) -> None:
        # Whatever is on the clipboard at startup is not a new copy.
        try:
            self._detector.sync(self._clipboard.read_text())
        except ReadError:
            self._detector.reset()

    def _poll(self) -> None:
        if self._settings.monitoring_enabled:
            self.check_clipboard()

    def check_clipboard(self) -> bool:
        """Run one poll tick. Returns True when the history changed."""
        with self._tick_lock:
            try:
                content = self._clipboard.read_text()
            except ReadError as exc:
                logger.debug("Clipboard unreadable this tick: %s", exc)
                return False

            content_hash, changed = self._detector.observe(content)
            if not changed:
                return False

            if should_skip(content, allow_password_like=self._settings.allow_passwords):
                logger.debug("Skipped clipboard content (%d chars)", len(content))
                return False

            self._record(content, content_hash)

        if self._on_change:
            self._on_change()
        return True

    def _record(self, content: str, content_hash: str) -> None:
        now = self._clock()
        with self._storage.transaction():
            existing = self._storage.find_by_hash(content_hash)
            if existing:
                self._storage.update_last_accessed(existing.id, now)
                logger.debug("Clipboard content matches entry %s, refreshed", existing.id)
                return

            entry = ClipboardEntry(
                id=new_entry_id(),
                content_type=detect_content_type(content),
                text_content=content,
                preview=truncate_preview(content, PREVIEW_LENGTH),
                content_hash=content_hash,
                created_at=now,
            )
            self._storage.add_entry(entry)

        logger.info("New clipboard entry saved: %s (type: %s)", truncate_text(content, 50), entry.content_type.value)

    def run_cleanup(self) -> RetentionResult:
        """Apply the retention limits currently configured."""
        logger.debug("Running clipboard cleanup")
        result = self._policy.cleanup(
            self._storage,
            self._settings.max_items,
            self._settings.max_age_days,
            now=self._clock(),
        )
        if result.total and self._on_change:
            self._on_change()
        return result

    def update_settings(self, values: dict[str, Any]) -> None:
        self._settings.update(values)
        self._storage.save_settings(self._settings.to_dict())

    def get_recent(
        self,
        limit: int = DISPLAY_COUNT,
        offset: int = 0,
        content_type: ContentType | None = None,
    ) -> list[ClipboardEntry]:
        return self._storage.list_by_recency(limit, offset, content_type, sort_by=self._settings.sort_by)

    def search(self, query: str, use_regex: bool = False, limit: int = DISPLAY_COUNT, offset: int = 0) -> list[ClipboardEntry]:
        if not query:
            return self.get_recent(limit, offset)
        if use_regex:
            return self._storage.search_pattern(query, limit, offset, sort_by=self._settings.sort_by)
        return self._storage.search_text(query, limit, offset, sort_by=self._settings.sort_by)

    def get_entry(self, entry_id: str) -> ClipboardEntry | None:
        return self._storage.get_entry(entry_id)

    def get_pinned(self) -> list[ClipboardEntry]:
        return self._storage.get_pinned()

    def count(self) -> int:
        return self._storage.count()

    def pin(self, entry_id: str, pinned: bool = True) -> bool:
        return self._storage.set_pinned(entry_id, pinned)

    def delete(self, entry_id: str) -> bool:
        return self._storage.delete_entry(entry_id)

    def clear_all(self, preserve_pinned: bool = True) -> int:
        return self._storage.clear_all(preserve_pinned)

    def clear_by_type(self, content_type: ContentType, preserve_pinned: bool = True) -> int:
        return self._storage.clear_by_type(content_type, preserve_pinned)

    def recall_to_clipboard(self, entry_id: str) -> ClipboardEntry:
        """Put a stored entry back on the clipboard and mark it as accessed."""
        entry = self._storage.get_entry(entry_id)
        if entry is None:
            raise EntryNotFoundError(entry_id)

        with self._tick_lock:
            self._clipboard.write_text(entry.text_content)
            # Our own write is not a new copy.
            self._detector.sync(entry.text_content)

        entry.last_accessed = self._clock()
        self._storage.update_last_accessed(entry.id, entry.last_accessed)
        if self._on_change:
            self._on_change()
        return entry
