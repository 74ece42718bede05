"""Normalizer mapping raw feed records onto the canonical Event."""
import logging
from enum import Enum
from typing import Any, Iterable, List, Mapping, Tuple, Union

from processor.models import Event

logger = logging.getLogger(__name__)


class RecordShape(Enum):
    """Source record variants understood by the normalizer."""
    WRAPPED = 'wrapped'
    FEED = 'feed'
    LEGACY = 'legacy'


ENVELOPE_KEYS = ('calEvent', 'event')
LEGACY_MARKERS = ('EventName', 'CategoryList', 'DateBeginShow')


def decode_record(raw: Any) -> Tuple[RecordShape, Mapping[str, Any]]:
    """
    Classify a raw record and return the mapping its fields live in.

    Args:
        raw: Raw record as parsed from JSON or the legacy XML export

    Returns:
        Tuple of (shape, body). Non-mapping input decodes to an empty FEED body.
    """
    if not isinstance(raw, Mapping):
        return RecordShape.FEED, {}

    for key in ENVELOPE_KEYS:
        inner = raw.get(key)
        if isinstance(inner, Mapping):
            return RecordShape.WRAPPED, inner

    if any(marker in raw for marker in LEGACY_MARKERS):
        return RecordShape.LEGACY, raw

    return RecordShape.FEED, raw


def _text(value: Any) -> str:
    """Render a scalar or list of fragments as one string."""
    if value is None:
        return ''
    if isinstance(value, (list, tuple)):
        return ' '.join(_text(part) for part in value if part is not None).strip()
    if isinstance(value, Mapping):
        return ''
    return str(value)


def _first(body: Mapping[str, Any], *keys: str) -> str:
    """Return the first non-empty field among keys, as text."""
    for key in keys:
        value = _text(body.get(key))
        if value:
            return value
    return ''


def _format_amount(value: Any) -> str:
    """Render a cost amount as a currency string."""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    if text.startswith('$'):
        return text
    return f"${text}"


def _present(value: Any) -> bool:
    return value is not None and value != ''


def resolve_location(body: Mapping[str, Any]) -> Tuple[str, str]:
    """
    Resolve (address, area) from the first entry of ``locations``.

    Args:
        body: Decoded feed record

    Returns:
        Tuple of (address, area), empty strings when absent
    """
    locations = body.get('locations')
    if isinstance(locations, list) and locations and isinstance(locations[0], Mapping):
        location = locations[0]
        return (
            _text(location.get('address')),
            _first(location, 'locationName', 'name')
        )
    return '', ''


def resolve_categories(body: Mapping[str, Any]) -> str:
    """
    Resolve categories as a comma-joined string.

    Tagged ``category`` objects win over the flat ``categoryString``.
    """
    tags = body.get('category')
    if isinstance(tags, list) and tags:
        names = [
            _text(tag.get('name')) if isinstance(tag, Mapping) else _text(tag)
            for tag in tags
        ]
        return ', '.join(names)
    return _text(body.get('categoryString'))


def resolve_cost(body: Mapping[str, Any]) -> str:
    """
    Resolve the cost label.

    Only an explicit ``freeEvent`` of "No" lets the ``cost`` field through;
    any other value forces "Free".

    Args:
        body: Decoded feed record

    Returns:
        "Free", a currency string such as "$25" or "$10 - $20", a verbatim
        scalar cost, or "Paid" when no amount is resolvable
    """
    free_flag = _text(body.get('freeEvent')).strip().lower()
    if free_flag != 'no':
        return 'Free'

    cost = body.get('cost')
    if isinstance(cost, Mapping):
        for key in ('ga', 'adult'):
            if _present(cost.get(key)):
                return _format_amount(cost[key])
        if _present(cost.get('from')) and _present(cost.get('to')):
            return f"{_format_amount(cost['from'])} - {_format_amount(cost['to'])}"
        return 'Paid'
    if _present(cost) and not isinstance(cost, (list, tuple)):
        return str(cost)
    return 'Paid'


def resolve_dates(body: Mapping[str, Any]) -> Tuple[str, str]:
    """
    Resolve (start_date, end_date).

    The first entry of ``dates`` wins; otherwise top-level ``startDateTime``
    then ``startDate`` (and likewise for the end).
    """
    dates = body.get('dates')
    if isinstance(dates, list) and dates and isinstance(dates[0], Mapping):
        first = dates[0]
        start = _text(first.get('startDateTime'))
        end = _text(first.get('endDateTime'))
        if start or end:
            return start, end
    return (
        _first(body, 'startDateTime', 'startDate'),
        _first(body, 'endDateTime', 'endDate')
    )


def resolve_contacts(body: Mapping[str, Any]) -> Tuple[str, str, str]:
    """Resolve (phone, email, website), event-level before organization-level."""
    return (
        _first(body, 'eventPhone', 'phone', 'orgPhone'),
        _first(body, 'eventEmail', 'email', 'orgEmail'),
        _first(body, 'eventWebsite', 'website', 'orgWebsite')
    )


def resolve_image(value: Any) -> str:
    if isinstance(value, Mapping):
        return _text(value.get('url'))
    return _text(value)


def resolve_legacy_categories(value: Any) -> Union[str, List[str]]:
    """Keep legacy CategoryList as a string or list of strings."""
    if isinstance(value, (list, tuple)):
        return [_text(item) for item in value]
    return _text(value)


class EventNormalizer:
    """Maps heterogeneous raw records into canonical Event objects."""

    def normalize_events(self, raw_records: Iterable[Any]) -> List[Event]:
        """
        Normalize a batch of raw records in ingestion order.

        Args:
            raw_records: Raw records from the scraper

        Returns:
            List of Event objects with ids 1..n
        """
        events = [
            self.normalize(raw, ordinal)
            for ordinal, raw in enumerate(raw_records)
        ]
        logger.info(f"Normalized {len(events)} events")
        return events

    def normalize(self, raw: Any, ordinal: int) -> Event:
        """
        Normalize a single raw record.

        Args:
            raw: Raw record in any supported shape
            ordinal: Zero-based position of the record in its batch

        Returns:
            Event with id ``ordinal + 1``
        """
        shape, body = decode_record(raw)
        if shape is RecordShape.LEGACY:
            return self._normalize_legacy(raw, body, ordinal)
        return self._normalize_feed(raw, body, ordinal)

    def _normalize_feed(self, raw: Any, body: Mapping[str, Any], ordinal: int) -> Event:
        address, area = resolve_location(body)
        start_date, end_date = resolve_dates(body)
        phone, email, website = resolve_contacts(body)

        return Event(
            id=ordinal + 1,
            name=_first(body, 'eventName', 'name'),
            description=_text(body.get('description')),
            start_date=start_date,
            end_date=end_date,
            start_time=_text(body.get('startTime')),
            end_time=_text(body.get('endTime')),
            area=area,
            categories=resolve_categories(body),
            address=address,
            phone=phone,
            email=email,
            website=website,
            cost=resolve_cost(body),
            organization=_first(body, 'orgName', 'organization'),
            image_url=resolve_image(body.get('image')),
            original_record=raw
        )

    def _normalize_legacy(self, raw: Any, body: Mapping[str, Any], ordinal: int) -> Event:
        return Event(
            id=ordinal + 1,
            name=_text(body.get('EventName')),
            description=_text(body.get('LongDesc')),
            start_date=_text(body.get('DateBeginShow')),
            end_date=_text(body.get('DateEndShow')),
            start_time=_text(body.get('TimeBegin')),
            end_time=_text(body.get('TimeEnd')),
            area=_text(body.get('Area')),
            categories=resolve_legacy_categories(body.get('CategoryList')),
            address=_text(body.get('Address')),
            phone=_text(body.get('Phone')),
            email=_text(body.get('Email')),
            website=_text(body.get('Website')),
            cost=_text(body.get('Admission')),
            organization=_text(body.get('PresentedByOrgName')),
            image_url=resolve_image(body.get('Image')),
            original_record=raw
        )
