"""Refresh controller re-running ingestion and swapping the event store."""
import logging
import threading
from datetime import datetime
from typing import Any, Dict, Optional

from processor.event_normalizer import EventNormalizer
from processor.models import RefreshState, RefreshStatus
from scraper.open_data_feed import OpenDataFeedScraper
from storage.event_store import EventStore

logger = logging.getLogger(__name__)


class RefreshController:
    """Runs fetch -> normalize -> replace and tracks status for health checks."""

    def __init__(
        self,
        scraper: OpenDataFeedScraper,
        normalizer: EventNormalizer,
        store: EventStore
    ):
        self.scraper = scraper
        self.normalizer = normalizer
        self.store = store
        self._status_lock = threading.Lock()
        self._in_flight = 0
        self._is_fallback = False
        self._last_fetch_time: Optional[datetime] = None
        self._last_error: Optional[str] = None

    def refresh(self) -> RefreshStatus:
        """
        Re-ingest events synchronously.

        Unexpected failures are logged and recorded; the store keeps its
        previous generation and the controller returns to idle.

        Returns:
            RefreshStatus after the run
        """
        with self._status_lock:
            self._in_flight += 1

        try:
            result = self.scraper.fetch_raw_events()
            events = self.normalizer.normalize_events(result.records)
            self.store.replace(events)
            with self._status_lock:
                self._is_fallback = result.is_fallback
                self._last_fetch_time = datetime.now()
                self._last_error = result.error
            logger.info(
                f"Refresh complete",
                extra={
                    'events_loaded': len(events),
                    'data_source': 'fallback' if result.is_fallback else 'live'
                }
            )
        except Exception as e:
            logger.error(
                f"Refresh failed: {str(e)}",
                extra={'error_type': type(e).__name__},
                exc_info=True
            )
            with self._status_lock:
                self._last_error = f"{type(e).__name__}: {e}"
        finally:
            with self._status_lock:
                self._in_flight -= 1

        return self.status()

    def trigger_refresh(self) -> Dict[str, Any]:
        """
        Start a refresh in the background and return immediately.

        On AWS Lambda the execution environment is frozen once the handler
        returns, so this background refresh may stall until the next
        invocation. The scheduled EventBridge event, which refreshes
        synchronously, is the reliable way to refresh there.

        Returns:
            {"triggered": True}
        """
        thread = threading.Thread(
            target=self.refresh,
            name='events-refresh',
            daemon=True
        )
        thread.start()
        return {'triggered': True}

    @property
    def state(self) -> RefreshState:
        return RefreshState.FETCHING if self._in_flight else RefreshState.IDLE

    def status(self) -> RefreshStatus:
        """Return the current refresh status."""
        with self._status_lock:
            return RefreshStatus(
                event_count=len(self.store),
                is_fallback=self._is_fallback,
                last_fetch_time=self._last_fetch_time,
                state=self.state,
                last_error=self._last_error,
                generation=self.store.generation
            )
