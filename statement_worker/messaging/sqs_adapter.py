import json
from collections.abc import Mapping

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from statement_worker.messaging.base import BaseWorkQueue
from statement_worker.messaging.exceptions import WorkQueueError
from statement_worker.messaging.models import QueueMessage

_SQS_MAX_BATCH = 10
_SQS_MAX_WAIT_SECONDS = 20


class SqsWorkQueue(BaseWorkQueue):
    """Work queue backed by Amazon SQS."""

    def __init__(self, *, region: str | None = None, endpoint_url: str | None = None) -> None:
        session = boto3.session.Session(region_name=region or None)
        self._client = session.client("sqs", endpoint_url=endpoint_url or None)

    def enqueue(
        self,
        queue_url: str,
        payload: Mapping[str, object],
        attributes: Mapping[str, str] | None = None,
    ) -> str:
        message_attributes = {
            name: {"DataType": "String", "StringValue": value}
            for name, value in (attributes or {}).items()
        }
        try:
            response = self._client.send_message(
                QueueUrl=queue_url,
                MessageBody=json.dumps(dict(payload)),
                MessageAttributes=message_attributes,
            )
        except (ClientError, BotoCoreError) as exc:
            raise WorkQueueError(f"SQS send to {queue_url} failed: {exc}") from exc
        return str(response["MessageId"])

    def receive(
        self, queue_url: str, max_messages: int, wait_seconds: int
    ) -> list[QueueMessage]:
        try:
            response = self._client.receive_message(
                QueueUrl=queue_url,
                MaxNumberOfMessages=max(1, min(max_messages, _SQS_MAX_BATCH)),
                WaitTimeSeconds=max(0, min(wait_seconds, _SQS_MAX_WAIT_SECONDS)),
                MessageAttributeNames=["All"],
            )
        except (ClientError, BotoCoreError) as exc:
            raise WorkQueueError(f"SQS receive from {queue_url} failed: {exc}") from exc

        return [
            QueueMessage(
                body=raw["Body"],
                receipt_handle=raw["ReceiptHandle"],
                queue_url=queue_url,
                attributes={
                    name: attr.get("StringValue", "")
                    for name, attr in raw.get("MessageAttributes", {}).items()
                },
            )
            for raw in response.get("Messages", [])
        ]

    def delete(self, queue_url: str, receipt_handle: str) -> None:
        try:
            self._client.delete_message(QueueUrl=queue_url, ReceiptHandle=receipt_handle)
        except (ClientError, BotoCoreError) as exc:
            raise WorkQueueError(f"SQS delete on {queue_url} failed: {exc}") from exc
