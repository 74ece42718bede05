"""Query and refresh operations exposed to request handlers."""
import logging
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from processor import query_engine
from processor.event_normalizer import EventNormalizer
from processor.exceptions import EventNotFound
from processor.models import Event, EventFilters
from scraper.fallback_dataset import FallbackDataset
from scraper.open_data_feed import OpenDataFeedScraper
from service.config import Settings
from service.refresh_controller import RefreshController
from storage.event_store import EventStore

logger = logging.getLogger(__name__)


class EventsService:
    """Facade over the event store, query engine and refresh controller."""

    def __init__(
        self,
        store: EventStore,
        controller: RefreshController,
        autocomplete_limit: int = query_engine.DEFAULT_AUTOCOMPLETE_LIMIT
    ):
        self.store = store
        self.controller = controller
        self.autocomplete_limit = autocomplete_limit

    @classmethod
    def from_settings(cls, settings: Settings) -> 'EventsService':
        """
        Wire up scraper, normalizer, store and controller from settings.

        Args:
            settings: Runtime settings

        Returns:
            EventsService with an empty store (call ``refresh_now`` to load)
        """
        fallback = FallbackDataset(
            path=settings.fallback_path,
            s3_uri=settings.fallback_s3_uri
        )
        scraper = OpenDataFeedScraper(
            feed_url=settings.feed_url,
            fallback=fallback,
            limit=settings.feed_limit,
            timeout=settings.feed_timeout_seconds
        )
        store = EventStore()
        controller = RefreshController(scraper, EventNormalizer(), store)
        return cls(store, controller, autocomplete_limit=settings.autocomplete_limit)

    def query_events(
        self,
        filters: Union[EventFilters, Mapping[str, Any], None] = None,
        today: Optional[date] = None
    ) -> List[Event]:
        """
        Filter the current generation.

        Args:
            filters: EventFilters or a mapping of request parameters
            today: Reference date for the date window

        Returns:
            Matching events in store order
        """
        if not isinstance(filters, EventFilters):
            filters = EventFilters.from_params(filters)
        return query_engine.query_events(self.store.current(), filters, today=today)

    def get_event(self, event_id: Any) -> Event:
        """
        Look up one event.

        Args:
            event_id: Event id (int or numeric string)

        Returns:
            The Event

        Raises:
            EventNotFound: If no event has that id in the current generation
        """
        try:
            key = int(event_id)
        except (TypeError, ValueError):
            raise EventNotFound(event_id)

        event = self.store.get(key)
        if event is None:
            raise EventNotFound(event_id)
        return event

    def list_categories(self) -> List[str]:
        return query_engine.distinct_categories(self.store.current())

    def list_areas(self) -> List[str]:
        return query_engine.distinct_areas(self.store.current())

    def autocomplete(
        self,
        query: Optional[str],
        limit: Optional[int] = None,
        kinds: Sequence[str] = ('event',)
    ) -> Dict[str, List[Dict[str, str]]]:
        """Grouped suggestions for a partial query."""
        return query_engine.autocomplete(
            self.store.current(),
            query,
            limit=self.autocomplete_limit if limit is None else limit,
            kinds=kinds
        )

    def refresh(self) -> Dict[str, Any]:
        """
        Trigger a background refresh without waiting for it.

        Not reliable on AWS Lambda, where the environment freezes after the
        handler returns. Use the scheduled refresh (``refresh_now``) there.
        """
        logger.info("Background refresh triggered")
        return self.controller.trigger_refresh()

    def refresh_now(self) -> Dict[str, Any]:
        """Run a refresh synchronously and return the resulting status."""
        return self.controller.refresh().to_dict()

    def health(self) -> Dict[str, Any]:
        """
        Report store size and data source.

        Returns:
            Dict with status, eventsLoaded, dataSource and lastFetchTime
        """
        status = self.controller.status()
        return {
            'status': 'OK',
            'eventsLoaded': status.event_count,
            'dataSource': 'fallback' if status.is_fallback else 'live',
            'lastFetchTime': (
                status.last_fetch_time.isoformat() if status.last_fetch_time else None
            ),
            'lastError': status.last_error
        }
