"""In-memory event store holding one generation of normalized events."""
import logging
import threading
from typing import Dict, Iterable, Optional, Tuple

from processor.models import Event

logger = logging.getLogger(__name__)


class EventStore:
    """
    Read-mostly holder of the current event generation.

    Readers get an immutable tuple snapshot. ``replace`` builds the new
    snapshot and id index first, then publishes both in a single assignment.
    """

    def __init__(self, events: Iterable[Event] = ()):
        self._lock = threading.Lock()
        self._state: Tuple[int, Tuple[Event, ...], Dict[int, Event]] = (0, (), {})
        events = tuple(events)
        if events:
            self.replace(events)

    def current(self) -> Tuple[Event, ...]:
        """Return the current generation as an immutable snapshot."""
        return self._state[1]

    def get(self, event_id: int) -> Optional[Event]:
        """
        Look up an event by id in the current generation.

        Args:
            event_id: 1-based event id

        Returns:
            Event or None if the id is unknown
        """
        return self._state[2].get(event_id)

    @property
    def generation(self) -> int:
        return self._state[0]

    def replace(self, events: Iterable[Event]) -> int:
        """
        Atomically swap in a new generation of events.

        Args:
            events: Complete new event set

        Returns:
            The new generation number
        """
        snapshot = tuple(events)
        index = {event.id: event for event in snapshot}
        if len(index) != len(snapshot):
            logger.warning(
                f"Duplicate event ids in new generation: "
                f"{len(snapshot) - len(index)} shadowed"
            )

        with self._lock:
            generation = self._state[0] + 1
            self._state = (generation, snapshot, index)

        logger.info(f"Published event generation {generation} with {len(snapshot)} events")
        return generation

    def __len__(self) -> int:
        return len(self._state[1])
