"""
Wrapper for ``Records``-style Lambda events.
"""

from typing import Any, Dict, List, Type

from aws_lambda_powertools.utilities.data_classes.common import DictWrapper

from lambda_router.events.records import DynamoDBRecord, Record, S3Record

RECORD_TYPES: Dict[str, Type[Record]] = {
    'aws:dynamodb': DynamoDBRecord,
    'aws:s3': S3Record,
}


class Event(DictWrapper):
    """
    A batch event such as a DynamoDB stream or S3 notification.

    ``records`` holds one typed wrapper per entry::

        for record in Event(event).records:
            if record.event_name == 'INSERT':
                handle(record.new_image)
    """

    @property
    def raw_records(self) -> List[Dict[str, Any]]:
        return self.get('Records') or []

    @property
    def records(self) -> List[Record]:
        return [self.wrap(record) for record in self.raw_records]

    @staticmethod
    def wrap(record: Dict[str, Any]) -> Record:
        source = record.get('eventSource') or record.get('EventSource')
        return RECORD_TYPES.get(source, Record)(record)
