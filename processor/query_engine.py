"""Filtering, facet extraction and autocomplete over normalized events.

Every function here is pure: it takes a sequence of events and returns a new
list (or mapping) without touching the event store.
"""
import logging
from datetime import date, datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

from processor.models import Event, EventFilters

logger = logging.getLogger(__name__)

ALL_SENTINEL = 'all'
DATE_WINDOWS = ('today', 'week', 'month')
MIN_AUTOCOMPLETE_LENGTH = 2
DEFAULT_AUTOCOMPLETE_LIMIT = 10

# Two defaults differing in year, month and day
_FILL_DEFAULTS = (datetime(2000, 1, 1), datetime(2001, 2, 2))

# kind -> (group label, projection of an event onto candidate texts)
SUGGESTION_KINDS: Dict[str, Tuple[str, Callable[[Event], List[str]]]] = {
    'event': ('Events', lambda event: [event.name]),
    'category': ('Categories', lambda event: event.category_list()),
    'area': ('Areas', lambda event: [event.area]),
    'organization': ('Organizations', lambda event: [event.organization]),
}


def _is_noop(value: Optional[str]) -> bool:
    return not value or not value.strip() or value.strip().lower() == ALL_SENTINEL


def _contains(haystack: Optional[str], needle: str) -> bool:
    return bool(haystack) and needle in str(haystack).lower()


def filter_by_category(events: Sequence[Event], category: Optional[str]) -> List[Event]:
    """
    Keep events with any category containing ``category`` (case-insensitive).

    Args:
        events: Events to filter
        category: Category substring; empty or "all" disables the filter

    Returns:
        New list of matching events
    """
    if _is_noop(category):
        return list(events)
    needle = category.strip().lower()
    return [
        event for event in events
        if any(_contains(cat, needle) for cat in event.category_list())
    ]


def filter_by_area(events: Sequence[Event], area: Optional[str]) -> List[Event]:
    """Keep events whose area contains ``area`` (case-insensitive)."""
    if _is_noop(area):
        return list(events)
    needle = area.strip().lower()
    return [event for event in events if _contains(event.area, needle)]


def filter_by_search(events: Sequence[Event], term: Optional[str]) -> List[Event]:
    """
    Free-text search across name, description, categories, area and organization.

    Args:
        events: Events to filter
        term: Search term; empty disables the filter

    Returns:
        New list of matching events
    """
    if not term or not term.strip():
        return list(events)
    needle = term.strip().lower()

    def matches(event: Event) -> bool:
        fields = [event.name, event.description, event.area, event.organization]
        fields.extend(event.category_list())
        return any(_contains(value, needle) for value in fields)

    return [event for event in events if matches(event)]


def parse_event_date(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an event date string into a naive local datetime.

    Values that do not name a full calendar date (a bare time, weekday,
    day number or month) are treated as unparseable.

    Args:
        value: ISO-8601 or source-native date string

    Returns:
        datetime, or None when the value is missing or unparseable
    """
    if not value or not str(value).strip():
        return None
    try:
        parsed = date_parser.parse(str(value), default=_FILL_DEFAULTS[0])
        check = date_parser.parse(str(value), default=_FILL_DEFAULTS[1])
    except (ValueError, OverflowError, TypeError):
        return None

    # Any date part filled in from the default means the value had no full date
    if parsed.date() != check.date():
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def filter_by_date_window(
    events: Sequence[Event],
    window: Optional[str],
    today: Optional[date] = None
) -> List[Event]:
    """
    Keep events starting inside a date window relative to today.

    Events with a missing or unparseable start date are always kept.

    Args:
        events: Events to filter
        window: One of "today", "week" or "month"; empty or "all" disables
        today: Reference date (defaults to the local current date)

    Returns:
        New list of matching events
    """
    if _is_noop(window):
        return list(events)
    window = window.strip().lower()
    if window not in DATE_WINDOWS:
        logger.warning(f"Ignoring unknown date filter: {window}")
        return list(events)

    day = today or date.today()
    start = datetime(day.year, day.month, day.day)
    if window == 'week':
        end = start + timedelta(days=7)
    else:
        end = start + relativedelta(months=1)

    def in_window(event: Event) -> bool:
        event_date = parse_event_date(event.start_date)
        if event_date is None:
            return True
        if window == 'today':
            return event_date.date() == start.date()
        return start <= event_date <= end

    return [event for event in events if in_window(event)]


def query_events(
    events: Sequence[Event],
    filters: Optional[EventFilters] = None,
    today: Optional[date] = None
) -> List[Event]:
    """
    Apply all filters (logical AND) to a snapshot of events.

    Args:
        events: Snapshot of events
        filters: Filter values (None means no filtering)
        today: Reference date for the date window

    Returns:
        New list of events matching every filter
    """
    filters = filters or EventFilters()
    result = filter_by_category(events, filters.category)
    result = filter_by_area(result, filters.area)
    result = filter_by_search(result, filters.search)
    return filter_by_date_window(result, filters.date_filter, today=today)


def _distinct_sorted(values: Iterable[Optional[str]]) -> List[str]:
    distinct = set()
    for value in values:
        if value is None:
            continue
        value = str(value).strip()
        if value:
            distinct.add(value)
    return sorted(distinct)


def distinct_categories(events: Sequence[Event]) -> List[str]:
    """Sorted, de-duplicated, trimmed category values."""
    return _distinct_sorted(
        cat for event in events for cat in event.category_list()
    )


def distinct_areas(events: Sequence[Event]) -> List[str]:
    """Sorted, de-duplicated, trimmed area values."""
    return _distinct_sorted(event.area for event in events)


def autocomplete(
    events: Sequence[Event],
    query: Optional[str],
    limit: int = DEFAULT_AUTOCOMPLETE_LIMIT,
    kinds: Sequence[str] = ('event',)
) -> Dict[str, List[Dict[str, str]]]:
    """
    Build grouped autocomplete suggestions.

    Each kind scans events in order and suggests every distinct text that
    contains the query (first occurrence wins). Suggestions of all kinds are
    concatenated, truncated to ``limit``, then grouped by label.

    Args:
        events: Snapshot of events
        query: Text typed so far; fewer than two characters yields nothing
        limit: Maximum number of suggestions across all groups
        kinds: Suggestion kinds to include, in output order

    Returns:
        Mapping of group label to a list of {"text", "type"} dicts
    """
    if not query or len(query.strip()) < MIN_AUTOCOMPLETE_LENGTH or limit < 1:
        return {}
    needle = query.strip().lower()

    suggestions = []
    for kind in kinds:
        if kind not in SUGGESTION_KINDS:
            logger.warning(f"Ignoring unknown suggestion kind: {kind}")
            continue
        label, project = SUGGESTION_KINDS[kind]
        seen = set()
        for event in events:
            for text in project(event):
                if not text or text in seen or needle not in text.lower():
                    continue
                seen.add(text)
                suggestions.append({'text': text, 'type': kind, 'group': label})

    grouped: Dict[str, List[Dict[str, str]]] = {}
    for suggestion in suggestions[:limit]:
        label = suggestion.pop('group')
        grouped.setdefault(label, []).append(suggestion)
    return grouped
