"""
Slug generation for directory entries.

All data backends, the slug index and the redirect layer share slugify().
"""

from __future__ import annotations

import re

# Word characters are ASCII only so slugs match the ones already published.
_DISALLOWED_RE = re.compile(r"[^a-z0-9_\s-]")
_WHITESPACE_RE = re.compile(r"\s+")
_REPEATED_HYPHEN_RE = re.compile(r"-{2,}")


def slugify(name) -> str:
    """
    Convert an entity display name into a URL slug.

    Examples:
        "Powell's Books"      -> "powells-books"
        "  The  Book -- Nook" -> "the-book-nook"

    Args:
        name: Display name. Anything that is not a non-empty string yields "".

    Returns:
        str: Slug containing only [a-z0-9_-], without leading/trailing hyphens.
    """
    if not name or not isinstance(name, str):
        return ""
    s = name.lower()
    s = _DISALLOWED_RE.sub("", s)
    s = _WHITESPACE_RE.sub("-", s)
    s = _REPEATED_HYPHEN_RE.sub("-", s)
    return s.strip("-")


def canonical_entity_path(kind: str, name) -> str:
    """Return '/<kind>/<slug>' for an entity name, or '' when the name has no slug."""
    slug = slugify(name)
    if not slug:
        return ""
    return f"/{kind}/{slug}"


def place_name_from_slug(slug: str) -> str:
    """Turn 'new-york' into 'New York'."""
    if not slug:
        return ""
    words = [w for w in slug.split("-") if w]
    return " ".join(w[:1].upper() + w[1:] for w in words)
