import re

# Unicode word characters (CJK included), whitespace and hyphens survive
_SLUG_STRIP = re.compile(r"[^\w\s-]")
_WHITESPACE = re.compile(r"\s+")
_DASHES = re.compile(r"-+")

DEFAULT_SLUG = "post"


def clean_text(text: str) -> str:
    return ' '.join(text.split())


def cut_text(text: str, max_length: int) -> str:
    """Hard cut with no ellipsis."""
    return text[:max_length]


def generate_slug(text: str) -> str:
    slug = _SLUG_STRIP.sub("", text.lower().strip())
    slug = _WHITESPACE.sub("-", slug)
    slug = _DASHES.sub("-", slug).strip("-")
    return slug or DEFAULT_SLUG
