"""Data models for event ingestion and querying."""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union


@dataclass
class Event:
    """Canonical, normalized event."""
    id: int
    name: str = ''
    description: str = ''
    start_date: str = ''
    end_date: str = ''
    start_time: str = ''
    end_time: str = ''
    area: str = ''
    categories: Union[str, List[str]] = ''
    address: str = ''
    phone: str = ''
    email: str = ''
    website: str = ''
    cost: str = ''
    organization: str = ''
    image_url: str = ''
    original_record: Any = None

    def category_list(self) -> List[str]:
        """
        Coerce categories to a list.

        Returns:
            List of category strings (a scalar becomes a singleton list)
        """
        if isinstance(self.categories, (list, tuple)):
            return [str(cat) for cat in self.categories if cat is not None]
        if self.categories:
            return [self.categories]
        return []

    def to_dict(self) -> Dict[str, Any]:
        """Render the event in its camelCase wire form."""
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'startDate': self.start_date,
            'endDate': self.end_date,
            'startTime': self.start_time,
            'endTime': self.end_time,
            'area': self.area,
            'categories': self.categories,
            'address': self.address,
            'phone': self.phone,
            'email': self.email,
            'website': self.website,
            'cost': self.cost,
            'organization': self.organization,
            'imageUrl': self.image_url,
            'originalRecord': self.original_record
        }


@dataclass
class FetchResult:
    """Raw records returned by the feed scraper."""
    records: List[Any]
    is_fallback: bool
    error: Optional[str] = None


class RefreshState(Enum):
    """Refresh controller states."""
    IDLE = 'idle'
    FETCHING = 'fetching'


@dataclass
class RefreshStatus:
    """Snapshot of the refresh controller for health reporting."""
    event_count: int
    is_fallback: bool
    last_fetch_time: Optional[datetime]
    state: RefreshState = RefreshState.IDLE
    last_error: Optional[str] = None
    generation: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'eventCount': self.event_count,
            'isFallback': self.is_fallback,
            'lastFetchTime': (
                self.last_fetch_time.isoformat() if self.last_fetch_time else None
            ),
            'state': self.state.value,
            'lastError': self.last_error,
            'generation': self.generation
        }


@dataclass
class EventFilters:
    """Filter values accepted by the query engine."""
    category: Optional[str] = None
    area: Optional[str] = None
    search: Optional[str] = None
    date_filter: Optional[str] = None

    @classmethod
    def from_params(cls, params: Optional[Mapping[str, Any]]) -> 'EventFilters':
        """
        Build filters from request parameters.

        Accepts both snake_case names and the wire name ``dateFilter``.

        Args:
            params: Mapping of parameter names to values (may be None)

        Returns:
            EventFilters instance
        """
        params = params or {}
        return cls(
            category=params.get('category'),
            area=params.get('area'),
            search=params.get('search'),
            date_filter=params.get('dateFilter', params.get('date_filter'))
        )
