"""System clipboard access.

The monitor only needs ``read_text()`` and ``write_text()``; both raise
:class:`ReadError` / :class:`WriteError` instead of leaking backend errors.
"""

import sys

import pyperclip

from clipkeep.errors import ReadError, WriteError


class PasteboardClipboard:
    """The macOS general pasteboard, through AppKit."""

    def __init__(self):
        from AppKit import NSPasteboard, NSPasteboardTypeString

        self._pasteboard = NSPasteboard.generalPasteboard()
        self._string_type = NSPasteboardTypeString

    def read_text(self) -> str:
        types = self._pasteboard.types()
        if types is None or self._string_type not in types:
            raise ReadError("pasteboard holds no text")
        text = self._pasteboard.stringForType_(self._string_type)
        if text is None:
            raise ReadError("pasteboard text is unavailable")
        return str(text)

    def write_text(self, text: str) -> None:
        self._pasteboard.clearContents()
        if not self._pasteboard.setString_forType_(text, self._string_type):
            raise WriteError("pasteboard rejected the text")


class PyperclipClipboard:
    """Any clipboard pyperclip can drive (xclip, wl-clipboard, Windows)."""

    def read_text(self) -> str:
        try:
            text = pyperclip.paste()
        except pyperclip.PyperclipException as exc:
            raise ReadError(str(exc)) from exc
        if text is None:
            raise ReadError("clipboard holds no text")
        return text

    def write_text(self, text: str) -> None:
        try:
            pyperclip.copy(text)
        except pyperclip.PyperclipException as exc:
            raise WriteError(str(exc)) from exc


def get_system_clipboard() -> PasteboardClipboard | PyperclipClipboard:
    if sys.platform == "darwin":
        return PasteboardClipboard()
    return PyperclipClipboard()
