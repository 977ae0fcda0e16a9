"""
Canonical index refresh scheduling.

- First build runs on a daemon thread, not on the request path
- Periodic rebuilds from the data store, backing off while the store is failing
- Manual refresh for admins, throttled by INDEX_MANUAL_REFRESH_MIN_SECONDS
- A failed refresh keeps the previously published index
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)

REFRESHED = 'refreshed'
THROTTLED = 'throttled'
FAILED = 'failed'


class IndexRefreshJob:
    """Keeps a CanonicalIndexManager in step with an EntityStore."""

    BACKOFF_FACTOR = 1.5

    def __init__(self,
                 manager,
                 store,
                 refresh_minutes: int = 30,
                 max_refresh_minutes: int = 24 * 60,
                 manual_min_seconds: int = 300,
                 periodic: bool = True,
                 clock: Callable[[], float] = time.monotonic):
        self.manager = manager
        self.store = store
        self.refresh_minutes = refresh_minutes
        self.max_refresh_minutes = max_refresh_minutes
        self.manual_min_seconds = manual_min_seconds
        # False when rebuilds are manual only (INDEX_BUILD_MODE=off)
        self.periodic = periodic
        self._clock = clock
        self._timer: Optional[threading.Timer] = None
        self._timer_lock = threading.Lock()
        self._stopped = False
        self.consecutive_failures = 0
        self.last_refresh: Optional[float] = None

    @classmethod
    def from_config(cls, config, manager, store, periodic=True) -> "IndexRefreshJob":
        return cls(
            manager,
            store,
            refresh_minutes=config.get('INDEX_REFRESH_MINUTES', 30),
            max_refresh_minutes=config.get('INDEX_REFRESH_MAX_MINUTES', 24 * 60),
            manual_min_seconds=config.get('INDEX_MANUAL_REFRESH_MIN_SECONDS', 300),
            periodic=periodic,
        )

    def run_once(self) -> bool:
        """
        Rebuild the index from the store once.

        Returns:
            bool: True if a new index was published, False if the refresh failed
        """
        try:
            index = self.manager.refresh(self.store)
        except Exception as e:
            self.consecutive_failures += 1
            logger.error(f"Canonical index refresh failed ({self.consecutive_failures} consecutive): {e}")
            return False

        self.consecutive_failures = 0
        self.last_refresh = self._clock()
        logger.info(f"Canonical index refreshed: {len(index)} slugs")
        return True

    def next_interval_seconds(self) -> float:
        """Seconds until the next periodic refresh, backing off after repeated failures."""
        interval = self.refresh_minutes * 60
        if self.consecutive_failures > 1:
            backoff = interval * self.BACKOFF_FACTOR ** (self.consecutive_failures - 1)
            interval = min(backoff, self.max_refresh_minutes * 60)
        return interval

    def schedule_next(self) -> Optional[threading.Timer]:
        if self._stopped or not self.periodic or self.refresh_minutes <= 0:
            return None

        interval = self.next_interval_seconds()
        with self._timer_lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(interval, self._periodic_refresh)
            self._timer.daemon = True
            self._timer.start()
        logger.info(f"Next canonical index refresh scheduled in {round(interval / 60)} minutes")
        return self._timer

    def _periodic_refresh(self):
        self.run_once()
        self.schedule_next()

    def start_background_build(self) -> threading.Thread:
        """Build the first index off the request path, then start the periodic schedule."""
        thread = threading.Thread(target=self._periodic_refresh, name='canonical-index-build', daemon=True)
        thread.start()
        return thread

    def manual_refresh(self) -> str:
        """
        Refresh now on an admin's request.

        Returns:
            str: REFRESHED, THROTTLED (too soon after the last refresh) or FAILED
        """
        if self.last_refresh is not None:
            elapsed = self._clock() - self.last_refresh
            if elapsed < self.manual_min_seconds:
                logger.info(f"Manual index refresh skipped - last refresh was {round(elapsed)} seconds ago")
                return THROTTLED

        logger.info("Starting manual canonical index refresh...")
        self.store.invalidate_cache()
        if not self.run_once():
            return FAILED
        # Restart the periodic schedule from now.
        self.schedule_next()
        return REFRESHED

    def stop(self):
        self._stopped = True
        with self._timer_lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
