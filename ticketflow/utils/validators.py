# ticketflow/utils/validators.py
import re
from typing import Optional

# Anything outside word characters, whitespace and - . , ! ? ( ) & @ # $ %
_UNSAFE_SUBJECT_CHARS = re.compile(r"[^\w\s\-.,!?()&@#$%]", re.ASCII)
# Whole words of 8+ letters (any case) are dropped from subjects
_LONG_WORDS = re.compile(r"\b[a-z]{8,}\b", re.IGNORECASE | re.ASCII)
_WHITESPACE = re.compile(r"\s+")


def sanitize_subject(raw: str) -> str:
    """Clean a user supplied subject line."""
    cleaned = raw.strip()
    cleaned = _UNSAFE_SUBJECT_CHARS.sub("", cleaned)
    cleaned = _LONG_WORDS.sub("", cleaned)
    cleaned = _WHITESPACE.sub(" ", cleaned)
    return cleaned.strip()


def build_subject(subject: str, category: Optional[str], subcategory: Optional[str]) -> str:
    """Prefix the cleaned subject with [category - subcategory] when both are given."""
    cleaned = sanitize_subject(subject)
    if category and subcategory:
        return f"[{category} - {subcategory}] {cleaned}"
    return cleaned


def editable_subject(stored: Optional[str]) -> str:
    """Strip the [category - subcategory] prefix from a stored subject."""
    subject = stored or ""
    if subject.startswith("[") and "]" in subject:
        return subject[subject.index("]") + 1:].strip()
    return subject


def escape_like(text: str, escape: str = "\\") -> str:
    """Escape LIKE wildcards so the text matches literally."""
    return (
        text.replace(escape, escape * 2)
        .replace("%", f"{escape}%")
        .replace("_", f"{escape}_")
    )
