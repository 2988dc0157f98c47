"""Content classification: noise filtering, password detection and content types."""

import re
from collections.abc import Callable
from typing import NamedTuple

from clipkeep.config import MAX_TEXT_SIZE
from clipkeep.models import ContentType

MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_LENGTH = 128

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".bmp", ".webp", ".tiff", ".svg")

# Shapes that are never passwords
URL_RE = re.compile(r"^https?://|^ftp://|^www\.")
FILE_PATH_RE = re.compile(r"^[a-zA-Z]:[\\/]|^/[^/]|^\./|^\.\./|^~/")
EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
FUNCTION_CALL_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*\.[a-zA-Z_][a-zA-Z0-9_]*\(.*\)$")  # robotgo.Start()
METHOD_CALL_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*\(\)$")  # start()
PROPERTY_ACCESS_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*\.[a-zA-Z_][a-zA-Z0-9_]*$")  # os.path
FILE_EXTENSION_RE = re.compile(r"\.[a-zA-Z0-9]{2,4}$")

# Shapes of generated secrets
BASE64_RE = re.compile(r"^[A-Za-z0-9+/]*={0,2}$")
API_KEY_RE = re.compile(r"^[A-Za-z0-9_-]{32,}$")

HEX_RE = re.compile(r"^[0-9a-fA-F]+$")

COMMON_NON_PASSWORDS = frozenset(
    word.lower()
    for word in (
        "undefined", "function", "console.log", "document", "window",
        "localStorage", "sessionStorage", "className", "getElementById",
        "querySelector", "addEventListener", "preventDefault", "stopPropagation",
        "Promise.resolve", "JSON.stringify", "JSON.parse", "parseInt",
        "parseFloat", "toString", "valueOf", "hasOwnProperty", "iOS", "Android",
    )
)

PROGRAMMING_PATTERNS = (
    # JavaScript/TypeScript
    ".then(", ".catch(", ".finally(", "async/await", "promise",
    # Method chaining
    ".map(", ".filter(", ".reduce(", ".forEach(",
    # Common object properties
    ".length", ".prototype", ".constructor",
    # CSS/HTML
    "px", "em", "rem", "rgb(", "rgba(",
    "window", "document",
)

SPECIAL_CHARS = frozenset("!@#$%^&*()_+-=[]{}|;:,.<>?/~`")

_WHITESPACE = frozenset(" \t\n\r")
_CAMEL_CASE_BREAKERS = frozenset("/.@-+")


class PasswordRule(NamedTuple):
    """One step of the password heuristic.

    When ``matches`` is true for the stripped content, ``verdict`` is the
    answer and no later rule is consulted.
    """

    name: str
    matches: Callable[[str], bool]
    verdict: bool


def _length_out_of_range(content: str) -> bool:
    return not MIN_PASSWORD_LENGTH <= len(content) <= MAX_PASSWORD_LENGTH


def _contains_whitespace(content: str) -> bool:
    return any(ch in _WHITESPACE for ch in content)


def _is_function_call(content: str) -> bool:
    return bool(FUNCTION_CALL_RE.match(content) or METHOD_CALL_RE.match(content))


def _is_base64(content: str) -> bool:
    return len(content) > 20 and len(content) % 4 == 0 and bool(BASE64_RE.match(content))


def _is_api_key(content: str) -> bool:
    return len(content) > 32 and bool(API_KEY_RE.match(content))


def _is_common_identifier(content: str) -> bool:
    return content.lower() in COMMON_NON_PASSWORDS


def _is_programming_pattern(content: str) -> bool:
    lowered = content.lower()
    if any(pattern.lower() in lowered for pattern in PROGRAMMING_PATTERNS):
        return True
    # hex color code
    return len(content) == 6 and bool(HEX_RE.match(content))


def character_classes(content: str) -> int:
    """Count how many of upper, lower, digit and special characters occur."""
    return sum((
        any(ch.isupper() for ch in content),
        any(ch.islower() for ch in content),
        any(ch.isdigit() for ch in content),
        any(ch in SPECIAL_CHARS for ch in content),
    ))


def _is_low_complexity(content: str) -> bool:
    return character_classes(content) < 3


def _is_repeated_char(content: str) -> bool:
    return len(set(content)) == 1


def _looks_like_camel_case(content: str) -> bool:
    if not content[0].isalpha():
        return False
    if any(ch in _CAMEL_CASE_BREAKERS for ch in content):
        return False
    if not all(ch.isalpha() or ch.isdigit() for ch in content):
        return False
    letters = sum(1 for ch in content if ch.isalpha())
    has_upper = any(ch.isupper() for ch in content)
    return has_upper and letters * 2 > len(content)


def has_repeated_run(content: str, run_length: int = 3) -> bool:
    """Return True if some character repeats ``run_length`` times in a row."""
    count = 1
    for prev, ch in zip(content, content[1:]):
        count = count + 1 if ch == prev else 1
        if count >= run_length:
            return True
    return False


# Evaluated in order; the first match decides. Content that matches nothing
# is password-like.
PASSWORD_RULES: list[PasswordRule] = [
    PasswordRule("length_out_of_range", _length_out_of_range, False),
    PasswordRule("contains_whitespace", _contains_whitespace, False),
    PasswordRule("url", lambda c: bool(URL_RE.match(c)), False),
    PasswordRule("file_path", lambda c: bool(FILE_PATH_RE.match(c)), False),
    PasswordRule("email", lambda c: bool(EMAIL_RE.match(c)), False),
    PasswordRule("function_call", _is_function_call, False),
    PasswordRule("property_access", lambda c: bool(PROPERTY_ACCESS_RE.match(c)), False),
    PasswordRule("file_extension", lambda c: bool(FILE_EXTENSION_RE.search(c)), False),
    PasswordRule("base64", _is_base64, True),
    PasswordRule("api_key", _is_api_key, True),
    PasswordRule("common_identifier", _is_common_identifier, False),
    PasswordRule("programming_pattern", _is_programming_pattern, False),
    PasswordRule("low_complexity", _is_low_complexity, False),
    PasswordRule("repeated_char", _is_repeated_char, False),
    PasswordRule("camel_case", _looks_like_camel_case, False),
    PasswordRule("repeated_run", has_repeated_run, False),
]


def first_matching_rule(content: str) -> PasswordRule | None:
    """Return the rule that decides ``content``, or None if none matches."""
    content = content.strip()
    for rule in PASSWORD_RULES:
        if rule.matches(content):
            return rule
    return None


def looks_like_password(content: str) -> bool:
    """Guess whether ``content`` is a password, token or similar secret.

    Conservative by construction: code, URLs, paths and identifiers are
    excluded before any complexity check, so a missed secret is more likely
    than a false alarm on ordinary text.
    """
    rule = first_matching_rule(content)
    if rule is None:
        return True
    return rule.verdict


def should_skip(content: str, allow_password_like: bool = False) -> bool:
    """Decide whether clipboard content should stay out of the history."""
    if not content.strip():
        return True

    if len(content.encode("utf-8")) > MAX_TEXT_SIZE:
        return True

    if not allow_password_like and looks_like_password(content):
        return True

    return False


def is_image_reference(content: str) -> bool:
    return content.lower().endswith(IMAGE_EXTENSIONS)


def looks_like_file_path(content: str) -> bool:
    return (
        content.startswith("/")
        or content.startswith("~/")
        or ":\\" in content
        or content.startswith("file://")
    )


def looks_like_url(content: str) -> bool:
    return content.startswith(("http://", "https://", "ftp://"))


def detect_content_type(content: str) -> ContentType:
    content = content.strip()

    if looks_like_file_path(content):
        if is_image_reference(content):
            return ContentType.IMAGE
        return ContentType.FILE

    if looks_like_url(content) and is_image_reference(content):
        return ContentType.IMAGE

    return ContentType.TEXT
