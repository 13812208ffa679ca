"""Text sanitization shared by extraction and embedding."""
import re

# C0 controls and DEL, keeping tab, newline and carriage return
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
# Lone surrogates (e.g. from broken PDF text layers) are not encodable as UTF-8
_SURROGATES = re.compile("[\ud800-\udfff]")
_WHITESPACE_RUN = re.compile(r"\s+")


def sanitize(text: str) -> str:
    """
    Remove control characters and unpaired surrogates, collapse whitespace, trim.

    Idempotent: ``sanitize(sanitize(t)) == sanitize(t)``.

    Args:
        text: Raw text, possibly None or empty

    Returns:
        Cleaned single-line text
    """
    if not text:
        return ""

    cleaned = _CONTROL_CHARS.sub("", text)
    cleaned = _SURROGATES.sub("", cleaned)
    cleaned = _WHITESPACE_RUN.sub(" ", cleaned)
    return cleaned.strip()
