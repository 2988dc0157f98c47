import hashlib

from clipkeep.config import DATA_DIR


def compute_hash(data: str | bytes) -> str:
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest()


def truncate_text(text: str, max_len: int) -> str:
    """Collapse whitespace onto one line and cut to ``max_len`` characters.

    Used for log lines and terminal listings, never for stored previews.
    """
    single_line = " ".join(text.split())
    if len(single_line) <= max_len:
        return single_line
    return single_line[: max_len - 3] + "..."


def truncate_preview(text: str, max_length: int) -> str:
    """Shorten ``text`` for the stored preview, preferring a word break.

    The break point is the later of the last space or newline inside the first
    ``max_length`` characters. It is used only when it falls past the middle,
    otherwise the text is cut hard at ``max_length``. The ellipsis is appended
    after the cut, so the result may be up to three characters longer than
    ``max_length``.
    """
    if len(text) <= max_length:
        return text

    truncated = text[:max_length]
    break_point = max(truncated.rfind(" "), truncated.rfind("\n"))
    if break_point > max_length // 2:
        return text[:break_point] + "..."
    return truncated + "..."


def ensure_dirs() -> None:
    DATA_DIR.mkdir(parents=True, exist_ok=True)
