"""Unit tests for FallbackDataset."""
import json

import boto3
import pytest
from moto import mock_aws

from scraper.fallback_dataset import (
    FallbackDataset,
    parse_s3_uri,
    parse_viewentries_xml,
)


LEGACY_XML = """<?xml version="1.0" encoding="UTF-8"?>
<viewentries toplevelentries="2">
  <viewentry position="1">
    <entrydata name="EventName"><text>Canada Day Fireworks</text></entrydata>
    <entrydata name="LongDesc"><text>Fireworks over the harbour.</text><text>Starts at dusk.</text></entrydata>
    <entrydata name="CategoryList"><textlist><text>Festivals</text><text>Family</text></textlist></entrydata>
    <entrydata name="Area"><text>Waterfront</text></entrydata>
    <entrydata name="DateBeginShow"><text>07/01/2025</text></entrydata>
  </viewentry>
  <viewentry position="2">
    <entrydata name="EventName"><text>Book Fair</text></entrydata>
    <entrydata name="CategoryList"><text>Literary</text></entrydata>
  </viewentry>
</viewentries>
"""


@pytest.fixture
def s3_bucket(monkeypatch):
    """Create a mock S3 bucket for testing."""
    monkeypatch.setenv('AWS_DEFAULT_REGION', 'us-east-1')
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    with mock_aws():
        s3 = boto3.client('s3', region_name='us-east-1')
        s3.create_bucket(Bucket='events-fallback')
        yield s3


class TestParseViewentriesXml:
    """Test cases for the legacy XML export parser."""

    def test_parse_records(self):
        """Test that each viewentry becomes a record."""
        records = parse_viewentries_xml(LEGACY_XML)

        assert len(records) == 2
        assert records[0]['EventName'] == 'Canada Day Fireworks'
        assert records[0]['LongDesc'] == 'Fireworks over the harbour. Starts at dusk.'
        assert records[0]['CategoryList'] == ['Festivals', 'Family']
        assert records[0]['Area'] == 'Waterfront'
        assert records[1]['CategoryList'] == 'Literary'

    def test_missing_root_raises(self):
        """Test that a document without viewentries is rejected."""
        with pytest.raises(ValueError):
            parse_viewentries_xml('<events><event/></events>')


class TestParseS3Uri:
    """Test cases for parse_s3_uri."""

    def test_valid_uri(self):
        assert parse_s3_uri('s3://bucket/path/to/events.json') == (
            'bucket', 'path/to/events.json'
        )

    @pytest.mark.parametrize('uri', ['http://bucket/key', 's3://bucket', 's3:///key'])
    def test_invalid_uri(self, uri):
        with pytest.raises(ValueError):
            parse_s3_uri(uri)


class TestFallbackDataset:
    """Test cases for FallbackDataset class."""

    def test_load_json(self, tmp_path):
        """Test loading a JSON array file."""
        path = tmp_path / 'events.json'
        path.write_text(json.dumps([{'eventName': 'A'}, {'eventName': 'B'}]))

        records = FallbackDataset(str(path)).load()

        assert records == [{'eventName': 'A'}, {'eventName': 'B'}]

    def test_load_xml(self, tmp_path):
        """Test loading the legacy XML export."""
        path = tmp_path / 'events.xml'
        path.write_text(LEGACY_XML)

        records = FallbackDataset(str(path)).load()

        assert [record['EventName'] for record in records] == [
            'Canada Day Fireworks', 'Book Fair'
        ]

    def test_missing_file_returns_empty(self, tmp_path):
        """Test that a missing file degrades to no records."""
        records = FallbackDataset(str(tmp_path / 'missing.json')).load()

        assert records == []

    def test_corrupt_json_returns_empty(self, tmp_path):
        """Test that a corrupt file degrades to no records."""
        path = tmp_path / 'events.json'
        path.write_text('{not json')

        assert FallbackDataset(str(path)).load() == []

    def test_non_array_json_returns_empty(self, tmp_path):
        """Test that a JSON object is rejected."""
        path = tmp_path / 'events.json'
        path.write_text(json.dumps({'events': []}))

        assert FallbackDataset(str(path)).load() == []

    def test_bundled_dataset_loads(self):
        """Test that the bundled fallback dataset is a valid JSON array."""
        from service.config import DEFAULT_FALLBACK_PATH

        records = FallbackDataset(DEFAULT_FALLBACK_PATH).load()

        assert len(records) == 5
        assert all('calEvent' in record for record in records)

    def test_load_from_s3(self, s3_bucket, tmp_path):
        """Test loading the dataset from an S3 object."""
        s3_bucket.put_object(
            Bucket='events-fallback',
            Key='fallback/events.json',
            Body=json.dumps([{'eventName': 'From S3'}]).encode('utf-8')
        )

        dataset = FallbackDataset(
            str(tmp_path / 'unused.json'),
            s3_uri='s3://events-fallback/fallback/events.json'
        )

        assert dataset.load() == [{'eventName': 'From S3'}]

    def test_missing_s3_object_returns_empty(self, s3_bucket, tmp_path):
        """Test that a missing S3 object degrades to no records."""
        dataset = FallbackDataset(
            str(tmp_path / 'unused.json'),
            s3_uri='s3://events-fallback/missing.json'
        )

        assert dataset.load() == []
