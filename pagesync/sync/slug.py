"""Slug helpers."""

import re
import secrets
import unicodedata

FALLBACK_SLUG = "untitled"
MAX_NUMBERED_SUFFIX = 100


def slugify(text: str) -> str:
    """Lowercase ASCII slug: accents stripped, non-alphanumeric runs become '-'."""
    t = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    t = re.sub(r"[^a-zA-Z0-9]+", "-", t).strip("-").lower()
    return t or FALLBACK_SLUG


def numbered_candidates(base: str) -> list[str]:
    """Conflict candidates tried after ``base``: base-2 .. base-100."""
    return [f"{base}-{i}" for i in range(2, MAX_NUMBERED_SUFFIX + 1)]


def random_suffix_slug(base: str) -> str:
    """Last-resort slug with a 6 character random suffix."""
    return f"{base}-{secrets.token_hex(3)}"
