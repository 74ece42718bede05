"""Local fallback dataset used when the live feed is unavailable."""
import json
import logging
from typing import Any, Dict, List, Optional, Tuple

import boto3
from bs4 import BeautifulSoup
from botocore.exceptions import BotoCoreError, ClientError

from processor.exceptions import FallbackUnavailable

logger = logging.getLogger(__name__)


def parse_s3_uri(uri: str) -> Tuple[str, str]:
    """
    Split an ``s3://bucket/key`` URI.

    Args:
        uri: S3 URI

    Returns:
        Tuple of (bucket, key)

    Raises:
        ValueError: If the URI is not a valid S3 object URI
    """
    if not uri.startswith('s3://'):
        raise ValueError(f"Not an S3 URI: {uri}")
    bucket, _, key = uri[len('s3://'):].partition('/')
    if not bucket or not key:
        raise ValueError(f"S3 URI must name a bucket and key: {uri}")
    return bucket, key


def parse_viewentries_xml(xml_content: str) -> List[Dict[str, Any]]:
    """
    Parse the legacy ``viewentries`` XML export into raw records.

    Each ``viewentry`` becomes one record keyed by its ``entrydata`` names.
    Plain ``text`` values are joined with a single space; ``textlist``
    values are kept as lists.

    Args:
        xml_content: XML document text

    Returns:
        List of record dicts
    """
    soup = BeautifulSoup(xml_content, 'html.parser')
    if soup.find('viewentries') is None:
        raise ValueError("Missing viewentries root element")

    records = []
    for entry in soup.find_all('viewentry'):
        record = {}
        for data in entry.find_all('entrydata'):
            name = data.get('name')
            if not name:
                continue
            textlist = data.find('textlist')
            if textlist is not None:
                value = [text.get_text() for text in textlist.find_all('text')]
            else:
                value = ' '.join(
                    text.get_text() for text in data.find_all('text', recursive=False)
                )
            record[name] = value
        records.append(record)
    return records


class FallbackDataset:
    """Loader for the bundled (or S3-hosted) fallback event dataset."""

    def __init__(self, path: str, s3_uri: Optional[str] = None):
        """
        Initialize the fallback loader.

        Args:
            path: Local dataset file (.json array or legacy .xml export)
            s3_uri: Optional s3://bucket/key read instead of the local file
        """
        self.path = path
        self.s3_uri = s3_uri

    def load(self) -> List[Any]:
        """
        Load fallback records.

        Returns:
            List of raw records, or an empty list if the dataset is unavailable
        """
        try:
            records = self._load_records()
        except FallbackUnavailable as e:
            logger.error(f"Fallback dataset unavailable, serving no events: {e}")
            return []

        logger.info(f"Loaded {len(records)} records from fallback dataset")
        return records

    def _load_records(self) -> List[Any]:
        source = self.s3_uri or self.path
        # Read raw content from S3 or disk
        try:
            if self.s3_uri:
                content = self._read_s3(self.s3_uri)
            else:
                with open(self.path, encoding='utf-8') as handle:
                    content = handle.read()
        except (OSError, ValueError, BotoCoreError, ClientError) as e:
            raise FallbackUnavailable(f"Cannot read {source}: {e}") from e

        # Decode by extension
        try:
            if source.lower().endswith('.xml'):
                return parse_viewentries_xml(content)
            records = json.loads(content)
        except ValueError as e:
            raise FallbackUnavailable(f"Cannot parse {source}: {e}") from e

        if not isinstance(records, list):
            raise FallbackUnavailable(f"{source} does not contain a JSON array")
        return records

    def _read_s3(self, uri: str) -> str:
        bucket, key = parse_s3_uri(uri)
        logger.info(f"Reading fallback dataset from s3://{bucket}/{key}")
        response = boto3.client('s3').get_object(Bucket=bucket, Key=key)
        return response['Body'].read().decode('utf-8')
