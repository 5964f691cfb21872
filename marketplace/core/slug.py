import re

_INVALID_CHARS = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE = re.compile(r"\s+")
_HYPHENS = re.compile(r"-+")
_SLUG = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


def generate_slug(name: str) -> str:
    """Turn a display name into a URL slug ("Men's & Boys' Wear!!" -> "mens-boys-wear").

    Uniqueness is not guaranteed here; the category gateway checks it on write.
    """
    slug = name.lower()
    slug = _INVALID_CHARS.sub("", slug)
    slug = _WHITESPACE.sub("-", slug.strip())
    slug = _HYPHENS.sub("-", slug)
    return slug.strip("-")


def is_valid_slug(slug: str) -> bool:
    return bool(_SLUG.match(slug))
