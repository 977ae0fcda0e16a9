"""
Locator resolver: map a raw URL token to a directory entity.

Resolution order:
1. Purely numeric tokens are legacy ids and bypass the index.
2. Exact slug match.
3. For hyphenated tokens, progressively drop trailing segments
   ("powells-books-portland" -> "powells-books" -> "powells") and take the
   first, i.e. longest, prefix the index knows.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from bookshop_directory.canonical_index import CanonicalIndex

MATCH_NUMERIC = 'numeric'
MATCH_EXACT = 'exact'
MATCH_FUZZY = 'fuzzy'

_NUMERIC_RE = re.compile(r"[0-9]+")


@dataclass(frozen=True)
class Resolution:
    entity_id: int
    matched_slug: Optional[str]
    match: str

    @property
    def is_numeric(self) -> bool:
        return self.match == MATCH_NUMERIC


def is_numeric_token(token) -> bool:
    return isinstance(token, str) and _NUMERIC_RE.fullmatch(token) is not None


def resolve(index: Optional[CanonicalIndex], raw_token) -> Optional[Resolution]:
    """
    Resolve a path token against the canonical index.

    Args:
        index: Current index snapshot, or None while it is not built yet
        raw_token: Path segment as requested (e.g. 'powells-books-portland', '42')

    Returns:
        Resolution or None when nothing matches. Numeric tokens are returned
        with match='numeric' and matched_slug=None; the caller looks the id up.
    """
    if not raw_token or not isinstance(raw_token, str):
        return None

    if is_numeric_token(raw_token):
        return Resolution(entity_id=int(raw_token), matched_slug=None, match=MATCH_NUMERIC)

    if index is None:
        return None

    entity_id = index.lookup(raw_token)
    if entity_id is not None:
        return Resolution(entity_id=entity_id, matched_slug=raw_token, match=MATCH_EXACT)

    # Single-word tokens never fuzzy match.
    if '-' not in raw_token:
        return None

    parts = raw_token.split('-')
    for i in range(len(parts) - 1, 0, -1):
        prefix = '-'.join(parts[:i])
        if not prefix:
            continue
        entity_id = index.lookup(prefix)
        if entity_id is not None:
            return Resolution(entity_id=entity_id, matched_slug=prefix, match=MATCH_FUZZY)

    return None
