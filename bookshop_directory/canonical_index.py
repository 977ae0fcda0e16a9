"""
Canonical slug index: slug -> entity id for every live entity.

An index is an immutable snapshot of one entity listing. It is never patched;
a data refresh builds a new one and CanonicalIndexManager publishes it with a
single reference assignment, so concurrent readers see either the old or the
new snapshot and never a half-built one.
"""

from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Callable, Iterable, Mapping, Optional, Union

from bookshop_directory.models import Entity
from bookshop_directory.slugs import slugify

logger = logging.getLogger(__name__)


class CanonicalIndex:
    """Read-only slug -> entity id mapping built from one entity snapshot."""

    def __init__(self, slug_to_id: Mapping[str, int], collisions: int = 0, built_at: Optional[datetime] = None):
        self._slug_to_id = MappingProxyType(dict(slug_to_id))
        self.collisions = collisions
        self.built_at = built_at or datetime.now(timezone.utc)

    @classmethod
    def build(cls, entities: Iterable[Union[Entity, Mapping]]) -> "CanonicalIndex":
        """
        Build an index from a full entity listing.

        Only live entities are indexed, and names with no slug are skipped with
        a warning. When two live entities share a slug the one processed last
        owns it; the collision is logged, not raised.

        Args:
            entities: Entity objects or raw data-store rows

        Returns:
            CanonicalIndex: New snapshot
        """
        slug_to_id = {}
        collisions = 0
        for entity in entities:
            if isinstance(entity, Mapping):
                entity = Entity.from_row(entity)
            if not entity.live:
                continue
            slug = slugify(entity.name)
            if not slug:
                logger.warning(f"Entity {entity.id} name {entity.name!r} produces an empty slug; not indexed")
                continue
            previous_id = slug_to_id.get(slug)
            if previous_id is not None and previous_id != entity.id:
                collisions += 1
                logger.debug(f"Duplicate slug '{slug}': id {previous_id} replaced by id {entity.id} ('{entity.name}')")
            slug_to_id[slug] = entity.id

        if collisions:
            logger.info(f"Found {collisions} duplicate slugs; the last entity with each slug is used")
        logger.info(f"Built canonical index with {len(slug_to_id)} slugs")
        return cls(slug_to_id, collisions=collisions)

    def lookup(self, slug: str) -> Optional[int]:
        return self._slug_to_id.get(slug)

    def slugs(self):
        return self._slug_to_id.keys()

    def __len__(self):
        return len(self._slug_to_id)

    def __contains__(self, slug):
        return slug in self._slug_to_id

    def __repr__(self):
        return f"<CanonicalIndex slugs={len(self)} built_at={self.built_at.isoformat()}>"


def build_index(entities) -> CanonicalIndex:
    return CanonicalIndex.build(entities)


def lookup(index: Optional[CanonicalIndex], slug: str) -> Optional[int]:
    """Look a slug up; an index that has not been built yet finds nothing."""
    if index is None or not isinstance(slug, str):
        return None
    return index.lookup(slug)


class CanonicalIndexManager:
    """
    Owns the current CanonicalIndex for an application.

    Readers use `current` without locking. Rebuilds are serialised so two
    refreshes cannot interleave, and each one publishes its snapshot in a
    single assignment.
    """

    def __init__(self, retry_seconds: float = 60, clock: Callable[[], float] = time.monotonic):
        """
        Args:
            retry_seconds: After a failed on-demand build, ensure_built() reports
                "not ready" without touching the store for this long
            clock: Monotonic time source
        """
        self._index: Optional[CanonicalIndex] = None
        self._build_lock = threading.Lock()
        self._first_build_lock = threading.Lock()
        self.retry_seconds = retry_seconds
        self._clock = clock
        self._last_failure: Optional[float] = None
        self.build_count = 0
        self.last_error: Optional[str] = None

    @property
    def current(self) -> Optional[CanonicalIndex]:
        return self._index

    @property
    def is_ready(self) -> bool:
        return self._index is not None

    def rebuild(self, entities) -> CanonicalIndex:
        """Build a new snapshot from `entities` and publish it."""
        with self._build_lock:
            index = CanonicalIndex.build(entities)
            self._index = index
            self.build_count += 1
            self.last_error = None
            self._last_failure = None
        return index

    def refresh(self, store) -> CanonicalIndex:
        """
        Rebuild from a data store's full listing.

        Raises:
            Whatever store.list_entities() raises; the previous snapshot stays published.
        """
        try:
            entities = store.list_entities()
        except Exception as e:
            self.last_error = str(e)
            logger.error(f"Error loading entities for canonical index: {e}", exc_info=True)
            raise
        return self.rebuild(entities)

    def ensure_built(self, store) -> Optional[CanonicalIndex]:
        """
        Build on first use.

        Only one caller builds; concurrent callers get None (not ready) instead
        of waiting. After a failure the store is left alone for retry_seconds.
        """
        if self._index is not None:
            return self._index
        if self._last_failure is not None and self._clock() - self._last_failure < self.retry_seconds:
            return None
        if not self._first_build_lock.acquire(blocking=False):
            return None
        try:
            if self._index is not None:
                return self._index
            try:
                return self.refresh(store)
            except Exception:
                self._last_failure = self._clock()
                logger.warning(f"Canonical index not built; next attempt in {self.retry_seconds} seconds")
                return None
        finally:
            self._first_build_lock.release()

    def status(self) -> dict:
        index = self._index
        return {
            'ready': index is not None,
            'size': len(index) if index is not None else 0,
            'collisions': index.collisions if index is not None else 0,
            'built_at': index.built_at.isoformat() if index is not None else None,
            'build_count': self.build_count,
            'last_error': self.last_error,
        }
