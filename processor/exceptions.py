"""Error types for event ingestion and lookup."""


class EventsError(Exception):
    """Base class for event aggregation errors."""


class FeedError(EventsError):
    """Remote feed could not supply usable records."""


class FeedUnreachable(FeedError):
    """Network error, timeout or non-2xx response from the feed."""


class FeedMalformed(FeedError):
    """Feed responded but the body is not a JSON array."""


class FallbackUnavailable(EventsError):
    """Fallback dataset is missing or corrupt."""


class EventNotFound(EventsError, LookupError):
    """No event with the requested id in the current generation."""

    def __init__(self, event_id):
        self.event_id = event_id
        super().__init__(f"Event not found: {event_id}")
