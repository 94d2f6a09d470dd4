import json

from statement_worker.messaging.models import QueueMessage
from statement_worker.orchestrator.events import (
    Event,
    ParserCompleted,
    ParserFailed,
    event_from_payload,
)
from statement_worker.orchestrator.exceptions import InvalidMessageError


class EventReader:
    """Turns a queue delivery into a typed event based on the queue it came from."""

    def __init__(self, *, completed_queue_url: str, failed_queue_url: str) -> None:
        self._completed_queue_url = completed_queue_url
        self._failed_queue_url = failed_queue_url

    def read(self, message: QueueMessage) -> Event:
        """Raises InvalidMessageError for undecodable lifecycle events."""
        if message.queue_url == self._completed_queue_url:
            return ParserCompleted(message=message)
        if message.queue_url == self._failed_queue_url:
            return ParserFailed(message=message)

        try:
            payload = json.loads(message.body)
        except json.JSONDecodeError as exc:
            raise InvalidMessageError(f"Lifecycle event is not JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise InvalidMessageError("Lifecycle event must be a JSON object")
        return event_from_payload(payload)

    def is_parser_message(self, message: QueueMessage) -> bool:
        return message.queue_url in (self._completed_queue_url, self._failed_queue_url)
