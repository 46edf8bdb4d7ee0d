"""
Typed wrappers for non-HTTP Lambda events.

``Event`` wraps any ``Records``-style event (DynamoDB Streams, S3, SQS,
SNS...) and yields one typed record per entry. Records whose source has no
dedicated wrapper are exposed as plain ``Record`` objects.
"""

from lambda_router.events.event import Event
from lambda_router.events.records import DynamoDBRecord, Record, S3Record

__all__ = [
    "Event",
    "Record",
    "DynamoDBRecord",
    "S3Record",
]
