import argparse
import logging
import signal
import sys
import threading

from clipkeep.clipboard import get_system_clipboard
from clipkeep.config import DB_PATH, DISPLAY_COUNT, LIST_PREVIEW_LENGTH, LOG_PATH, Settings
from clipkeep.errors import ClipkeepError, ConfigError, EntryNotFoundError
from clipkeep.models import ClipboardEntry, ContentType
from clipkeep.monitor import ClipboardMonitor
from clipkeep.storage import StorageManager
from clipkeep.utils import ensure_dirs, truncate_text

logger = logging.getLogger(__name__)


def load_settings(storage: StorageManager) -> Settings:
    """Build settings from the stored values, keeping defaults if they are bad."""
    try:
        return Settings.from_dict(storage.load_settings())
    except ConfigError as exc:
        logger.warning("Ignoring stored settings: %s", exc)
        return Settings()


def open_monitor(storage: StorageManager) -> ClipboardMonitor:
    return ClipboardMonitor(storage, get_system_clipboard(), settings=load_settings(storage))


def format_entry(entry: ClipboardEntry) -> str:
    pin = "*" if entry.pinned else " "
    when = entry.last_accessed.strftime("%Y-%m-%d %H:%M")
    preview = truncate_text(entry.preview, LIST_PREVIEW_LENGTH)
    return f"{entry.id} {pin} {entry.content_type.value:<5} {when}  {preview}"


def print_entries(entries: list[ClipboardEntry]) -> int:
    if not entries:
        print("(No clipboard history)")
        return 0
    for entry in entries:
        print(format_entry(entry))
    return 0


def parse_assignments(pairs: list[str]) -> dict[str, str]:
    values = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ConfigError(f"expected key=value, got {pair!r}")
        values[key.strip()] = value
    return values


def run_app() -> int:
    """Run the clipboard monitor in the foreground until interrupted."""
    ensure_dirs()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(LOG_PATH),
            logging.StreamHandler(sys.stderr),
        ],
    )

    done = threading.Event()
    signal.signal(signal.SIGTERM, lambda *_: done.set())

    with StorageManager(DB_PATH) as storage:
        monitor = open_monitor(storage)
        monitor.start()
        try:
            done.wait()
        except KeyboardInterrupt:
            pass
        finally:
            monitor.stop()
    return 0


def run_command(args: argparse.Namespace, monitor: ClipboardMonitor) -> int:
    if args.command == "recent":
        content_type = ContentType(args.type) if args.type else None
        return print_entries(monitor.get_recent(args.limit, args.offset, content_type))

    if args.command == "pinned":
        return print_entries(monitor.get_pinned())

    if args.command == "search":
        return print_entries(monitor.search(args.query, use_regex=args.regex, limit=args.limit, offset=args.offset))

    if args.command == "show":
        entry = monitor.get_entry(args.id)
        if entry is None:
            raise EntryNotFoundError(args.id)
        print(entry.text_content)
        return 0

    if args.command in ("pin", "unpin"):
        if not monitor.pin(args.id, args.command == "pin"):
            raise EntryNotFoundError(args.id)
        print("Pinned." if args.command == "pin" else "Unpinned.")
        return 0

    if args.command == "delete":
        if not monitor.delete(args.id):
            raise EntryNotFoundError(args.id)
        print("Deleted.")
        return 0

    if args.command == "copy":
        entry = monitor.recall_to_clipboard(args.id)
        print(f"Copied to clipboard: {truncate_text(entry.preview, LIST_PREVIEW_LENGTH)}")
        return 0

    if args.command == "clear":
        preserve = not args.include_pinned
        if args.type:
            deleted = monitor.clear_by_type(ContentType(args.type), preserve_pinned=preserve)
        else:
            deleted = monitor.clear_all(preserve_pinned=preserve)
        print(f"Deleted {deleted} entries.")
        return 0

    if args.command == "cleanup":
        result = monitor.run_cleanup()
        print(f"Evicted {result.total} entries ({result.aged_out} by age, {result.over_limit} by count).")
        print(f"{monitor.count()} entries remain.")
        return 0

    if args.command == "config":
        if args.assignments:
            monitor.update_settings(parse_assignments(args.assignments))
        for key, value in monitor.settings.to_dict().items():
            print(f"{key}={value}")
        return 0

    raise ValueError(f"unknown command {args.command!r}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clipkeep",
        description="clipkeep - clipboard history manager",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  clipkeep                       # Run the monitor in the foreground
  clipkeep recent --limit 20     # List recent entries
  clipkeep search --regex '\\d{4}'
  clipkeep config max_items=200 allow_passwords=false
""",
    )
    sub = parser.add_subparsers(dest="command")
    types = [t.value for t in ContentType]

    sub.add_parser("run", help="Run the clipboard monitor in the foreground")

    recent = sub.add_parser("recent", help="List recent entries")
    recent.add_argument("--limit", type=int, default=DISPLAY_COUNT)
    recent.add_argument("--offset", type=int, default=0)
    recent.add_argument("--type", choices=types)

    sub.add_parser("pinned", help="List pinned entries")

    search = sub.add_parser("search", help="Search entries by substring or regex")
    search.add_argument("query")
    search.add_argument("--regex", action="store_true", help="Treat the query as a regular expression")
    search.add_argument("--limit", type=int, default=DISPLAY_COUNT)
    search.add_argument("--offset", type=int, default=0)

    for name, help_text in (
        ("show", "Print the full content of an entry"),
        ("pin", "Pin an entry so it is never evicted"),
        ("unpin", "Unpin an entry"),
        ("delete", "Delete an entry"),
        ("copy", "Copy an entry back to the clipboard"),
    ):
        sub.add_parser(name, help=help_text).add_argument("id")

    clear = sub.add_parser("clear", help="Delete history entries")
    clear.add_argument("--type", choices=types)
    clear.add_argument("--include-pinned", action="store_true", help="Also delete pinned entries")

    sub.add_parser("cleanup", help="Apply the retention limits now")

    config = sub.add_parser("config", help="Show or change settings")
    config.add_argument("assignments", nargs="*", metavar="key=value")

    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    if args.command in (None, "run"):
        sys.exit(run_app())

    ensure_dirs()
    try:
        with StorageManager(DB_PATH) as storage:
            code = run_command(args, open_monitor(storage))
    except ClipkeepError as exc:
        print(f"clipkeep: {exc}", file=sys.stderr)
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
