"""Scraper for the municipal open-data events feed."""
import json
import logging
import threading
from typing import Any, Dict, List

import requests

from processor.exceptions import FeedError, FeedMalformed, FeedUnreachable
from processor.models import FetchResult
from scraper.fallback_dataset import FallbackDataset

logger = logging.getLogger(__name__)


class OpenDataFeedScraper:
    """Fetches raw event records, substituting the fallback dataset on failure."""

    DEFAULT_LIMIT = 500
    DEFAULT_TIMEOUT = 15

    def __init__(
        self,
        feed_url: str,
        fallback: FallbackDataset,
        limit: int = DEFAULT_LIMIT,
        timeout: int = DEFAULT_TIMEOUT
    ):
        """
        Initialize the feed scraper.

        Args:
            feed_url: URL of the JSON events feed
            fallback: Dataset used when the feed cannot be used
            limit: Maximum number of records requested from the feed
            timeout: Overall fetch deadline in seconds (default: 15)
        """
        self.feed_url = feed_url
        self.fallback = fallback
        self.limit = limit
        self.timeout = timeout

    def fetch_raw_events(self) -> FetchResult:
        """
        Fetch raw event records from the feed.

        Feed errors are never raised; the fallback dataset is returned instead.

        Returns:
            FetchResult with the records and whether they came from the fallback
        """
        try:
            records = self._fetch_feed()
        except FeedError as e:
            logger.warning(
                f"Feed unavailable ({type(e).__name__}): {e}. Using fallback dataset"
            )
            return FetchResult(
                records=self.fallback.load(),
                is_fallback=True,
                error=f"{type(e).__name__}: {e}"
            )

        logger.info(f"Fetched {len(records)} raw records from feed")
        return FetchResult(records=records, is_fallback=False)

    def _fetch_feed(self) -> List[Any]:
        """
        Issue one request to the feed, bounded by an overall deadline.

        The download runs on a worker thread. If it has not finished when
        ``timeout`` seconds have passed, the response is closed and the fetch
        is abandoned.

        Returns:
            List of raw records

        Raises:
            FeedUnreachable: On transport errors, timeouts or non-2xx responses
            FeedMalformed: If the body is not a JSON array
        """
        if not self.feed_url:
            raise FeedUnreachable("No feed URL configured")

        logger.info(f"Fetching events feed from {self.feed_url} (limit {self.limit})")
        # Download on a worker thread
        outcome: Dict[str, Any] = {}
        finished = threading.Event()

        def download():
            try:
                outcome['body'] = self._download(outcome)
            except Exception as e:
                outcome['error'] = e
            finally:
                finished.set()

        worker = threading.Thread(target=download, name='events-feed', daemon=True)
        worker.start()

        # Wait for the whole response, not just each socket read
        if not finished.wait(self.timeout):
            response = outcome.get('response')
            if response is not None:
                response.close()
            raise FeedUnreachable(f"Feed did not complete within {self.timeout}s")

        # Re-raise worker failures here
        if 'error' in outcome:
            raise outcome['error']

        try:
            payload = json.loads(outcome['body'])
        except ValueError as e:
            raise FeedMalformed(f"Response is not JSON: {e}") from e

        if not isinstance(payload, list):
            raise FeedMalformed(
                f"Expected a JSON array, got {type(payload).__name__}"
            )
        return payload

    def _download(self, outcome: Dict[str, Any]) -> bytes:
        """Read the full response body, publishing the response for cancellation."""
        try:
            response = requests.get(
                self.feed_url,
                params={'limit': self.limit},
                timeout=self.timeout,
                stream=True
            )
            outcome['response'] = response
            try:
                response.raise_for_status()
                return response.content
            finally:
                response.close()
        except requests.RequestException as e:
            raise FeedUnreachable(str(e)) from e
