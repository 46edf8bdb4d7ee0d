"""
Record wrappers built on AWS Lambda Powertools data classes.
"""

import csv
import io
import json
from typing import Any, Dict, List, Optional
from urllib.parse import unquote_plus

import boto3
from aws_lambda_powertools.utilities.data_classes.common import DictWrapper
from boto3.dynamodb.types import TypeDeserializer
from botocore.exceptions import ClientError

from lambda_router.utils.observability import logger

_deserializer = TypeDeserializer()


class Record(DictWrapper):
    """A single entry of a ``Records`` list."""

    @property
    def id(self) -> Optional[str]:
        return self.get('eventID') or self.get('messageId') or self.get('EventSubscriptionArn')

    @property
    def event_source(self) -> Optional[str]:
        return self.get('eventSource') or self.get('EventSource')

    @property
    def event_name(self) -> Optional[str]:
        return self.get('eventName')

    @property
    def aws_region(self) -> Optional[str]:
        return self.get('awsRegion')

    @property
    def event_source_arn(self) -> Optional[str]:
        return self.get('eventSourceARN')


class DynamoDBRecord(Record):
    """DynamoDB Streams record with images converted to plain Python values."""

    @property
    def _stream(self) -> Dict[str, Any]:
        return self.get('dynamodb') or {}

    @property
    def table_name(self) -> Optional[str]:
        """Table name parsed from ``arn:aws:dynamodb:<region>:<account>:table/<name>/stream/<label>``."""
        arn = self.event_source_arn
        if not arn or ':table/' not in arn:
            return None
        return arn.split(':table/', 1)[1].split('/', 1)[0]

    @staticmethod
    def _deserialize(image: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        if not image:
            return None
        return {name: _deserializer.deserialize(value) for name, value in image.items()}

    @property
    def primary_key(self) -> Optional[Dict[str, Any]]:
        return self._deserialize(self._stream.get('Keys'))

    @property
    def new_image(self) -> Optional[Dict[str, Any]]:
        return self._deserialize(self._stream.get('NewImage'))

    @property
    def old_image(self) -> Optional[Dict[str, Any]]:
        return self._deserialize(self._stream.get('OldImage'))

    @property
    def sequence_number(self) -> Optional[str]:
        return self._stream.get('SequenceNumber')

    @property
    def stream_view_type(self) -> Optional[str]:
        return self._stream.get('StreamViewType')


class S3Record(Record):
    """S3 event notification record that can fetch and parse its object."""

    def __init__(self, data: Dict[str, Any], client: Any = None) -> None:
        super().__init__(data)
        self._client = client

    @property
    def _s3(self) -> Dict[str, Any]:
        return self.get('s3') or {}

    @property
    def bucket(self) -> str:
        return self._s3.get('bucket', {}).get('name', '')

    @property
    def key(self) -> str:
        # Object keys arrive URL encoded with spaces as '+'
        return unquote_plus(self._s3.get('object', {}).get('key', ''))

    @property
    def size(self) -> int:
        return int(self._s3.get('object', {}).get('size', 0))

    @property
    def etag(self) -> Optional[str]:
        return self._s3.get('object', {}).get('eTag')

    @property
    def extension(self) -> str:
        name = self.key.rsplit('/', 1)[-1]
        return name.rsplit('.', 1)[-1].lower() if '.' in name else ''

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client('s3', region_name=self.aws_region)
        return self._client

    def read(self) -> bytes:
        """
        Download the object body.

        Raises:
            ClientError: If the object cannot be fetched
        """
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=self.key)
        except ClientError as exc:
            logger.error("Failed to fetch S3 object", extra={
                "bucket": self.bucket,
                "key": self.key,
                "error_code": exc.response.get('Error', {}).get('Code'),
            })
            raise
        return response['Body'].read()

    def text(self, encoding: str = 'utf-8') -> str:
        return self.read().decode(encoding)

    def json(self) -> Any:
        return json.loads(self.text())

    def csv(self, header: bool = True) -> List[Any]:
        """Parse the object as CSV; rows are dicts when ``header`` is set, lists otherwise."""
        buffer = io.StringIO(self.text())
        if header:
            return [row for row in csv.DictReader(buffer) if any(row.values())]
        return [row for row in csv.reader(buffer) if row]

    def get_object(self) -> Any:
        """
        Fetch the object and parse it by extension.

        ``.json`` is decoded to Python values, ``.csv`` to a list of dict rows,
        anything else is returned as text.
        """
        extension = self.extension
        logger.debug("Reading S3 object", extra={"bucket": self.bucket, "key": self.key, "extension": extension})
        if extension == 'json':
            return self.json()
        if extension == 'csv':
            return self.csv()
        return self.text()
