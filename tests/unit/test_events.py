"""
Unit tests for the batch event wrappers.
"""

import json
from decimal import Decimal

import boto3
import pytest
from botocore.exceptions import ClientError
from moto import mock_aws

from lambda_router.events import DynamoDBRecord, Event, Record, S3Record

STREAM_ARN = "arn:aws:dynamodb:us-east-1:123456789012:table/Users/stream/2025-01-01T00:00:00.000"


@pytest.fixture
def dynamodb_stream_event():
    """A DynamoDB stream event with an INSERT and a MODIFY record."""
    return {
        "Records": [
            {
                "eventID": "1",
                "eventName": "INSERT",
                "eventSource": "aws:dynamodb",
                "awsRegion": "us-east-1",
                "eventSourceARN": STREAM_ARN,
                "dynamodb": {
                    "Keys": {"id": {"S": "user-123"}},
                    "NewImage": {
                        "id": {"S": "user-123"},
                        "name": {"S": "Alice"},
                        "age": {"N": "30"},
                        "active": {"BOOL": True},
                        "tags": {"L": [{"S": "premium"}, {"S": "verified"}]},
                    },
                    "SequenceNumber": "111",
                    "StreamViewType": "NEW_AND_OLD_IMAGES",
                },
            },
            {
                "eventID": "2",
                "eventName": "MODIFY",
                "eventSource": "aws:dynamodb",
                "awsRegion": "us-east-1",
                "eventSourceARN": STREAM_ARN,
                "dynamodb": {
                    "Keys": {"id": {"S": "user-456"}},
                    "OldImage": {"id": {"S": "user-456"}, "active": {"BOOL": True}},
                    "NewImage": {"id": {"S": "user-456"}, "active": {"BOOL": False}},
                    "SequenceNumber": "222",
                    "StreamViewType": "NEW_AND_OLD_IMAGES",
                },
            },
        ]
    }


def s3_record(key, bucket="uploads", size=10):
    return {
        "eventVersion": "2.1",
        "eventSource": "aws:s3",
        "awsRegion": "us-east-1",
        "eventName": "ObjectCreated:Put",
        "s3": {
            "bucket": {"name": bucket, "arn": f"arn:aws:s3:::{bucket}"},
            "object": {"key": key, "size": size, "eTag": "etag123"},
        },
    }


@pytest.fixture
def s3_bucket():
    """A mocked S3 bucket holding JSON, CSV and text objects."""
    with mock_aws():
        client = boto3.client("s3", region_name="us-east-1")
        client.create_bucket(Bucket="uploads")
        client.put_object(Bucket="uploads", Key="data/items.json", Body=json.dumps([{"id": 1}]))
        client.put_object(Bucket="uploads", Key="data/items.csv", Body="id,name\n1,lamp\n2,desk\n")
        client.put_object(Bucket="uploads", Key="logs/app log.txt", Body="line one\nline two\n")
        yield client


class TestEvent:
    """Test cases for the Event wrapper."""

    def test_records_are_typed_by_source(self, dynamodb_stream_event):
        """Test that records are wrapped according to their event source."""
        event = Event({"Records": [
            dynamodb_stream_event["Records"][0],
            s3_record("a.json"),
            {"messageId": "m-1", "eventSource": "aws:sqs", "body": "{}"},
        ]})

        records = event.records

        assert [type(r) for r in records] == [DynamoDBRecord, S3Record, Record]
        assert records[2].id == "m-1"
        assert records[2].event_source == "aws:sqs"

    def test_empty_event(self):
        """Test an event without records."""
        assert Event({}).records == []


class TestDynamoDBRecord:
    """Test cases for DynamoDB stream records."""

    def test_insert_record(self, dynamodb_stream_event):
        """Test reading an INSERT record with its image deserialized."""
        record = Event(dynamodb_stream_event).records[0]

        assert record.id == "1"
        assert record.event_name == "INSERT"
        assert record.table_name == "Users"
        assert record.primary_key == {"id": "user-123"}
        assert record.new_image == {
            "id": "user-123",
            "name": "Alice",
            "age": Decimal("30"),
            "active": True,
            "tags": ["premium", "verified"],
        }
        assert record.old_image is None
        assert record.sequence_number == "111"

    def test_modify_record(self, dynamodb_stream_event):
        """Test reading both images of a MODIFY record."""
        record = DynamoDBRecord(dynamodb_stream_event["Records"][1])

        assert record.old_image == {"id": "user-456", "active": True}
        assert record.new_image == {"id": "user-456", "active": False}
        assert record.stream_view_type == "NEW_AND_OLD_IMAGES"

    def test_missing_arn(self):
        """Test the table name of a record without a source ARN."""
        assert DynamoDBRecord({"eventSource": "aws:dynamodb"}).table_name is None


class TestS3Record:
    """Test cases for S3 notification records."""

    def test_properties(self):
        """Test reading record fields; keys arrive URL encoded."""
        record = S3Record(s3_record("logs/app+log%282%29.txt", size=42))

        assert record.bucket == "uploads"
        assert record.key == "logs/app log(2).txt"
        assert record.size == 42
        assert record.etag == "etag123"
        assert record.extension == "txt"
        assert record.event_name == "ObjectCreated:Put"

    def test_get_json_object(self, s3_bucket):
        """Test fetching and decoding a JSON object."""
        record = S3Record(s3_record("data/items.json"), client=s3_bucket)

        assert record.get_object() == [{"id": 1}]

    def test_get_csv_object(self, s3_bucket):
        """Test fetching a CSV object as dict rows."""
        record = S3Record(s3_record("data/items.csv"), client=s3_bucket)

        assert record.get_object() == [{"id": "1", "name": "lamp"}, {"id": "2", "name": "desk"}]
        assert record.csv(header=False) == [["id", "name"], ["1", "lamp"], ["2", "desk"]]

    def test_get_text_object(self, s3_bucket):
        """Test fetching a text object with an encoded key."""
        record = S3Record(s3_record("logs/app+log.txt"), client=s3_bucket)

        assert record.get_object() == "line one\nline two\n"

    def test_default_client(self, s3_bucket):
        """Test that a client is created when none is given."""
        record = Event({"Records": [s3_record("data/items.json")]}).records[0]

        assert record.get_object() == [{"id": 1}]

    def test_missing_object(self, s3_bucket):
        """Test that fetch failures propagate."""
        record = S3Record(s3_record("data/missing.json"), client=s3_bucket)

        with pytest.raises(ClientError):
            record.get_object()
