"""
Data store collaborators.

The locator only needs two reads from the store that owns directory entries:
the full listing (to build the canonical index) and a lookup by numeric id
(to turn a legacy id URL into its canonical slug). Every backend hands back
Entity objects built by the same Entity.from_row, so slugs are computed
identically whichever backend is active.
"""
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path

import requests

from bookshop_directory.cache_manager import SnapshotCache
from bookshop_directory.config import Config
from bookshop_directory.models import Entity
from bookshop_directory.slugs import slugify

logger = logging.getLogger(__name__)


class EntityStoreError(Exception):
    """Raised when a backend cannot produce entity data."""


def rows_to_entities(rows, source='store'):
    """Convert raw rows to Entity objects, skipping rows without a usable id."""
    entities = []
    skipped = 0
    for row in rows:
        try:
            entities.append(Entity.from_row(row))
        except (ValueError, AttributeError) as e:
            skipped += 1
            logger.warning(f"Skipping invalid row from {source}: {e}")
    if skipped:
        logger.warning(f"Skipped {skipped} invalid rows from {source}")
    return entities


class EntityStore(ABC):
    """Read interface the locator consumes."""

    @abstractmethod
    def list_entities(self):
        """Full current snapshot of live and non-live entities."""

    def get_entity_by_id(self, entity_id):
        for entity in self.list_entities():
            if entity.id == entity_id:
                return entity
        return None

    def find_live_by_slug(self, slug):
        """
        Uncached slug lookup by scanning the listing.

        Used while the canonical index is not built yet. Follows the same
        collision policy as the index: the last live entity with the slug wins.
        """
        found = None
        for entity in self.list_entities():
            if entity.live and slugify(entity.name) == slug:
                found = entity
        return found

    def invalidate_cache(self):
        """Drop any cached listing; backends without a cache have nothing to do."""
        return False


class InMemoryEntityStore(EntityStore):
    """Entities held in process memory (tests, fixtures, small deployments)."""

    def __init__(self, entities=None):
        self._entities = []
        self.replace(entities or [])

    def replace(self, entities):
        items = list(entities)
        if items and not isinstance(items[0], Entity):
            items = rows_to_entities(items, source='memory')
        self._entities = items

    def list_entities(self):
        return list(self._entities)

    def get_entity_by_id(self, entity_id):
        for entity in self._entities:
            if entity.id == entity_id:
                return entity
        return None


class JsonFileEntityStore(EntityStore):
    """Entities exported to a JSON file containing an array of rows."""

    def __init__(self, path):
        self.path = Path(path)

    def _load_rows(self):
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                rows = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error reading entities file {self.path}: {e}", exc_info=True)
            raise EntityStoreError(f"Cannot read entities file {self.path}") from e

        if not isinstance(rows, list):
            logger.error(f"Entities file {self.path} does not contain a JSON array")
            raise EntityStoreError(f"Entities file {self.path} must contain a JSON array")
        return rows

    def list_entities(self):
        entities = rows_to_entities(self._load_rows(), source=str(self.path))
        logger.info(f"Loaded {len(entities)} entities from {self.path}")
        return entities


class RestEntityStore(EntityStore):
    """Entities served by a Supabase-style REST endpoint."""

    SELECT_COLUMNS = 'id,name,city,state,county,live,feature_ids'

    def __init__(self, base_url, api_key='', table='bookstores', timeout=10, page_size=1000, use_cache=True):
        if not base_url:
            raise ValueError("RestEntityStore requires a base URL")
        self.base_url = base_url
        self.api_key = api_key
        self.table = table
        self.timeout = timeout
        self.page_size = page_size
        self.use_cache = use_cache

    @property
    def url(self):
        return Config.get_rest_table_url(self.base_url, self.table)

    @property
    def source_key(self):
        return f"rest_{self.table}"

    def _headers(self):
        headers = {'Content-Type': 'application/json'}
        if self.api_key:
            headers['apikey'] = self.api_key
            headers['Authorization'] = f"Bearer {self.api_key}"
        return headers

    def _get(self, params):
        """
        GET the table endpoint.

        Returns:
            list: Rows from the response body

        Raises:
            EntityStoreError: On timeout, HTTP error or unexpected body
        """
        try:
            logger.info(f"API Call: GET {self.url} with params {params}")
            response = requests.get(self.url, params=params, headers=self._headers(), timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.Timeout as e:
            logger.error(f"Timeout fetching entities from {self.url}")
            raise EntityStoreError(f"Timeout fetching entities from {self.url}") from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Error fetching entities: {e}")
            raise EntityStoreError(f"Error fetching entities: {e}") from e
        except ValueError as e:
            logger.error(f"Invalid JSON from {self.url}: {e}")
            raise EntityStoreError(f"Invalid JSON from {self.url}") from e

        if not isinstance(data, list):
            logger.error(f"Unexpected response format from {self.url}: {type(data).__name__}")
            raise EntityStoreError(f"Unexpected response format from {self.url}")
        logger.info(f"API Response: Status {response.status_code}, Rows: {len(data)}")
        return data

    def _fetch_all_rows(self):
        rows = []
        offset = 0
        # Handle pagination
        while True:
            page = self._get({
                'select': self.SELECT_COLUMNS,
                'order': 'id.asc',
                'offset': offset,
                'limit': self.page_size,
            })
            rows.extend(page)
            if len(page) < self.page_size:
                break
            offset += self.page_size
        logger.info(f"API Response: Total rows fetched: {len(rows)}")
        return rows

    def list_entities(self):
        rows = SnapshotCache.get_cached_rows(self.source_key) if self.use_cache else None
        if rows is None:
            rows = self._fetch_all_rows()
            if self.use_cache:
                SnapshotCache.cache_rows(self.source_key, rows)
        return rows_to_entities(rows, source=self.url)

    def get_entity_by_id(self, entity_id):
        rows = self._get({
            'select': self.SELECT_COLUMNS,
            'id': f"eq.{int(entity_id)}",
            'limit': 1,
        })
        entities = rows_to_entities(rows, source=self.url)
        return entities[0] if entities else None

    def invalidate_cache(self):
        return SnapshotCache.invalidate(self.source_key)


def create_entity_store(config):
    """
    Create the data store configured by DATA_BACKEND.

    Args:
        config: Flask config mapping

    Returns:
        EntityStore: Configured backend

    Raises:
        ValueError: For an unknown backend name
    """
    backend = (config.get('DATA_BACKEND') or 'memory').lower()
    if backend == 'memory':
        return InMemoryEntityStore()
    if backend == 'json':
        return JsonFileEntityStore(config.get('ENTITIES_FILE', Config.ENTITIES_FILE))
    if backend == 'rest':
        return RestEntityStore(
            base_url=config.get('DATA_API_BASE_URL'),
            api_key=config.get('DATA_API_KEY', ''),
            table=config.get('DATA_API_TABLE', Config.DATA_API_TABLE),
            timeout=config.get('DATA_API_TIMEOUT', Config.DATA_API_TIMEOUT),
            page_size=config.get('DATA_API_PAGE_SIZE', Config.DATA_API_PAGE_SIZE),
        )
    raise ValueError(f"Unknown DATA_BACKEND: {backend}")
