import hashlib
import re
import unicodedata

_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)
_NON_SLUG = re.compile(r"[^a-z0-9]+")
_WHITESPACE = re.compile(r"\s+")


def sha256_text(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def normalize_text(text: str | None) -> str:
    if not text:
        return ""
    return " ".join(text.split())


def strip_code_fences(text: str) -> str:
    return _FENCE.sub("", text or "").strip()


def slugify(value: str, max_length: int = 120) -> str:
    """ASCII slug: lowercase, hyphen separated, non-latin characters dropped."""
    ascii_value = unicodedata.normalize("NFKD", value or "").encode("ascii", "ignore").decode("ascii")
    slug = _NON_SLUG.sub("-", ascii_value.lower()).strip("-")
    return slug[:max_length].rstrip("-")


def localized_slug(value: str, max_length: int = 200) -> str:
    """Hyphenate whitespace but keep non-Latin characters."""
    slug = _WHITESPACE.sub("-", (value or "").strip().lower())
    return slug[:max_length].strip("-")
