"""
Snapshot cache for entity listings fetched from remote data stores.
Uses file-based JSON caching (NOT database).

Cache files are stored as one persistent file per source: {source_key}.json
Files are updated in place when the cache expires, so a restart can rebuild the
canonical index without waiting on the remote store.
"""
import json
import os
import re
from datetime import datetime, timedelta
from pathlib import Path
import logging
from flask import current_app

logger = logging.getLogger(__name__)

_UNSAFE_KEY_RE = re.compile(r'[^A-Za-z0-9_.-]+')


class SnapshotCache:
    """
    Manages file-based caching for full entity listings.

    Uses one persistent cache file per source, updated in place when expired.
    """

    # Anchored to the project root, not the process CWD.
    PROJECT_ROOT = Path(__file__).resolve().parent.parent
    CACHE_DIR = PROJECT_ROOT / 'data' / 'cache'

    @staticmethod
    def _get_cache_expiry_minutes():
        """Get snapshot expiry minutes from config, with fallback."""
        try:
            if current_app:
                return current_app.config.get('SNAPSHOT_CACHE_MINUTES', 30)
        except RuntimeError:
            # Not in Flask app context, use defaults
            pass

        from bookshop_directory.config import Config
        return Config.SNAPSHOT_CACHE_MINUTES

    @staticmethod
    def _get_cache_file(source_key):
        """
        Get cache file path for a data source.

        Args:
            source_key: Identifier of the remote source (e.g., 'rest_bookstores')

        Returns:
            Path: Path to cache file
        """
        SnapshotCache.CACHE_DIR.mkdir(parents=True, exist_ok=True)
        safe_key = _UNSAFE_KEY_RE.sub('_', source_key) or 'snapshot'
        return SnapshotCache.CACHE_DIR / f"{safe_key}.json"

    @staticmethod
    def get_cached_rows(source_key):
        """
        Retrieve cached entity rows if valid.

        Args:
            source_key: Identifier of the remote source

        Returns:
            list: Cached rows if valid, None otherwise
        """
        cache_file = SnapshotCache._get_cache_file(source_key)

        if not cache_file.exists():
            logger.debug(f"Snapshot cache miss (file not found) for {source_key}")
            return None

        try:
            with open(cache_file, 'r', encoding='utf-8') as f:
                data = json.load(f)

            expires_at = datetime.fromisoformat(data['expires_at'])
            if datetime.now() < expires_at:
                logger.debug(f"Snapshot cache hit for {source_key} ({len(data['rows'])} rows)")
                return data['rows']
            else:
                logger.debug(f"Snapshot cache expired for {source_key}, will refresh from source")
                return None
        except (json.JSONDecodeError, KeyError, ValueError, TypeError) as e:
            logger.error(f"Error reading snapshot cache file {cache_file}: {e}")
            # Corrupted cache file - remove it so it can be recreated
            try:
                cache_file.unlink()
                logger.debug(f"Removed corrupted snapshot cache file {cache_file}")
            except OSError as delete_error:
                logger.error(f"Error removing corrupted snapshot cache file {cache_file}: {delete_error}")
            return None
        except OSError as e:
            logger.error(f"Unexpected error reading snapshot cache file {cache_file}: {e}")
            return None

    @staticmethod
    def cache_rows(source_key, rows, expiry_minutes=None):
        """
        Cache entity rows with expiry. Updates the existing cache file in place.

        Uses atomic file write (temp file then rename).

        Args:
            source_key: Identifier of the remote source
            rows: List of raw entity rows (JSON-serialisable dicts)
            expiry_minutes: Cache expiry in minutes (defaults to config value)

        Returns:
            bool: True if cache was written successfully, False otherwise
        """
        cache_file = SnapshotCache._get_cache_file(source_key)

        if expiry_minutes is None:
            expiry_minutes = SnapshotCache._get_cache_expiry_minutes()

        data = {
            'rows': rows,
            'fetched_at': datetime.now().isoformat(),
            'expires_at': (datetime.now() + timedelta(minutes=expiry_minutes)).isoformat()
        }

        temp_file = cache_file.with_suffix('.json.tmp')

        try:
            with open(temp_file, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)

            os.replace(temp_file, cache_file)

            logger.info(f"Snapshot cache refresh: {len(rows)} rows written for {source_key}")
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Error writing snapshot cache file {cache_file}: {e}")
            try:
                if temp_file.exists():
                    temp_file.unlink()
            except OSError:
                pass
            return False

    @staticmethod
    def invalidate(source_key):
        """Drop the cached snapshot for a source so the next read goes to the store."""
        cache_file = SnapshotCache._get_cache_file(source_key)
        try:
            if cache_file.exists():
                cache_file.unlink()
                logger.info(f"Invalidated snapshot cache for {source_key}")
                return True
        except OSError as e:
            logger.error(f"Error invalidating snapshot cache file {cache_file}: {e}")
        return False

    @staticmethod
    def clear_old_cache(days=1):
        """
        Remove snapshot files not updated within the given number of days.

        Args:
            days: Number of days to keep cache files (default: 1)
        """
        if not SnapshotCache.CACHE_DIR.exists():
            return

        cutoff = datetime.now() - timedelta(days=days)
        deleted_count = 0

        for cache_file in SnapshotCache.CACHE_DIR.glob('*.json'):
            try:
                if datetime.fromtimestamp(cache_file.stat().st_mtime) < cutoff:
                    cache_file.unlink()
                    deleted_count += 1
            except OSError as e:
                logger.error(f"Error deleting snapshot cache file {cache_file}: {e}")

        if deleted_count > 0:
            logger.info(f"Cleaned up {deleted_count} old snapshot cache files")
