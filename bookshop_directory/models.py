"""
Directory entity as seen by the locator.

Rows come from several backends (spreadsheet exports, Supabase REST, JSON
fixtures) with slightly different column names; Entity.from_row maps them all
onto one shape.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Tuple

_TRUE_STRINGS = {'true', 'yes', 'y', '1', 'live'}


def _first(row: Mapping[str, Any], *keys, default=None):
    for key in keys:
        value = row.get(key)
        if value is not None:
            return value
    return default


def _parse_live(value) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return False


def _parse_feature_ids(value) -> Tuple[int, ...]:
    if value is None or value == '':
        return ()
    if isinstance(value, str):
        value = value.split(',')
    ids = []
    for item in value:
        try:
            ids.append(int(str(item).strip()))
        except (TypeError, ValueError):
            continue
    return tuple(ids)


@dataclass(frozen=True)
class Entity:
    id: int
    name: str
    region: str = ''
    locality: str = ''
    live: bool = True
    county: Optional[str] = None
    feature_ids: Tuple[int, ...] = field(default_factory=tuple)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Entity":
        """
        Build an Entity from a raw data-store row.

        Accepts snake_case and camelCase columns, 'state'/'region' and
        'city'/'locality' aliases, and spreadsheet-style 'live' values.

        Raises:
            ValueError: If the row has no usable integer id.
        """
        raw_id = row.get('id')
        try:
            entity_id = int(raw_id)
        except (TypeError, ValueError):
            raise ValueError(f"Row has no valid id: {raw_id!r}")

        county = _first(row, 'county')

        return cls(
            id=entity_id,
            name=str(_first(row, 'name', default='')),
            region=str(_first(row, 'region', 'state', default='')),
            locality=str(_first(row, 'locality', 'city', default='')),
            live=_parse_live(_first(row, 'live', default=False)),
            county=str(county) if county is not None else None,
            feature_ids=_parse_feature_ids(_first(row, 'feature_ids', 'featureIds')),
        )

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'region': self.region,
            'locality': self.locality,
            'county': self.county,
            'live': self.live,
            'feature_ids': list(self.feature_ids),
        }
