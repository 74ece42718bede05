"""AWS Lambda handler serving the open-data events API."""
import json
import logging
import re
import time
from typing import Any, Dict, Optional

from processor.exceptions import EventNotFound
from service.config import Settings
from service.events_service import EventsService

# LogRecord attributes that are not user-supplied ``extra`` fields
_RESERVED_LOG_ATTRS = set(vars(logging.makeLogRecord({}))) | {'message', 'asctime'}

_EVENT_PATH = re.compile(r'^/api/events/(?P<event_id>[^/]+)/?$')

_service: Optional[EventsService] = None


class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON, including ``extra`` fields."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        for key, value in vars(record).items():
            if key not in _RESERVED_LOG_ATTRS and key not in log_data:
                log_data[key] = value

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # Create new handler with JSON formatter
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    # Set log level
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def get_service() -> EventsService:
    """
    Return the container-wide service, loading events on first use.

    Returns:
        EventsService with a populated store
    """
    global _service
    if _service is None:
        settings = Settings.from_env()
        setup_logging(settings.log_level)
        # Load events once per container
        service = EventsService.from_settings(settings)
        service.refresh_now()
        _service = service
    return _service


def _response(status_code: int, body: Any) -> Dict[str, Any]:
    return {
        'statusCode': status_code,
        'headers': {
            'Content-Type': 'application/json',
            'Access-Control-Allow-Origin': '*'
        },
        'body': json.dumps(body, default=str)
    }


def _int_param(params: Dict[str, str], name: str) -> Optional[int]:
    raw = params.get(name)
    if raw is None or raw == '':
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def route_request(service: EventsService, method: str, path: str,
                  params: Dict[str, str]) -> Dict[str, Any]:
    """
    Dispatch one API request.

    Args:
        service: Events service
        method: HTTP method
        path: Request path, e.g. /api/events/3
        params: Query string parameters

    Returns:
        API Gateway proxy response
    """
    path = path.rstrip('/') or '/'

    if method == 'GET' and path == '/api/events':
        events = service.query_events(params)
        return _response(200, [event.to_dict() for event in events])

    match = _EVENT_PATH.match(path)
    if method == 'GET' and match:
        try:
            event = service.get_event(match.group('event_id'))
        except EventNotFound:
            return _response(404, {'error': 'Event not found'})
        return _response(200, event.to_dict())

    if method == 'GET' and path == '/api/categories':
        return _response(200, service.list_categories())

    if method == 'GET' and path == '/api/areas':
        return _response(200, service.list_areas())

    if method == 'GET' and path == '/api/autocomplete':
        suggestions = service.autocomplete(
            params.get('query', ''),
            limit=_int_param(params, 'limit')
        )
        return _response(200, suggestions)

    if method == 'POST' and path == '/api/refresh':
        return _response(202, service.refresh())

    if method == 'GET' and path == '/api/health':
        return _response(200, service.health())

    return _response(404, {'error': 'Not found'})


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler.

    Handles API Gateway proxy requests and scheduled EventBridge refreshes.

    Args:
        event: API Gateway proxy event or EventBridge event payload
        context: Lambda context object

    Returns:
        API Gateway proxy response dict
    """
    logger = logging.getLogger(__name__)
    start_time = time.time()

    try:
        service = get_service()

        # Scheduled EventBridge refresh
        if event.get('source') == 'aws.events':
            logger.info("Scheduled refresh started")
            status = service.refresh_now()
            logger.info(
                f"Scheduled refresh completed",
                extra={
                    'duration_seconds': round(time.time() - start_time, 2),
                    'events_loaded': status['eventCount']
                }
            )
            return _response(200, status)

        method = (event.get('httpMethod') or 'GET').upper()
        path = event.get('path') or '/'
        params = event.get('queryStringParameters') or {}

        # API Gateway proxy request
        response = route_request(service, method, path, params)
        logger.info(
            f"{method} {path}",
            extra={
                'status_code': response['statusCode'],
                'duration_seconds': round(time.time() - start_time, 2)
            }
        )
        return response

    except Exception as e:
        duration = time.time() - start_time
        logger.error(
            f"Request failed: {str(e)}",
            extra={
                'duration_seconds': round(duration, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )
        return _response(500, {
            'message': 'Request failed',
            'error': str(e),
            'error_type': type(e).__name__
        })
