"""
Region (state/province) normalization for canonical directory URLs.

Single source of truth:
- REGION_NAME_TO_CODE: normalized region name -> region code (e.g. "new-york" -> "NY")

Region codes/names are reused from Config.REGION_NAMES.
"""

from __future__ import annotations

import re
from typing import Dict, Optional

from bookshop_directory.config import Config

_SEPARATOR_RE = re.compile(r"[\s-]+")


def _name_key(name: str) -> str:
    return _SEPARATOR_RE.sub("-", name.strip().lower()).strip("-")


# Normalized name -> region code mapping (derived from the region name source of truth).
REGION_NAME_TO_CODE: Dict[str, str] = {
    _name_key(region_name): region_code
    for region_code, region_name in Config.REGION_NAMES.items()
}

# Reverse mapping for convenience.
REGION_CODE_TO_SLUG: Dict[str, str] = {code: key for key, code in REGION_NAME_TO_CODE.items()}

if len(REGION_NAME_TO_CODE) != len(Config.REGION_NAMES):
    raise ValueError("Region name collision detected; normalized names must be unique.")


def normalize_region(token) -> str:
    """
    Normalize a free-form region token to its short code.

    "ca", "CA", "california", "New-York", "new york" -> "CA"/"NY".
    Two-character tokens are treated as codes already. Unknown names are
    returned upper-cased so callers can still build a usable URL.
    """
    if not token or not isinstance(token, str):
        return ""
    if len(token) == 2:
        return token.upper()
    return REGION_NAME_TO_CODE.get(_name_key(token), token.upper())


def region_name_from_code(region_code: str) -> Optional[str]:
    if not region_code:
        return None
    return Config.REGION_NAMES.get(region_code.strip().upper())


def region_slug_from_code(region_code: str) -> Optional[str]:
    if not region_code:
        return None
    return REGION_CODE_TO_SLUG.get(region_code.strip().upper())
