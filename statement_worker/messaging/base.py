from abc import ABC, abstractmethod
from collections.abc import Mapping

from statement_worker.messaging.models import QueueMessage


class BaseWorkQueue(ABC):
    """Contract for the at-least-once channel to and from the parsing pipeline."""

    @abstractmethod
    def enqueue(
        self,
        queue_url: str,
        payload: Mapping[str, object],
        attributes: Mapping[str, str] | None = None,
    ) -> str:
        """Send a JSON payload; returns the transport message id."""

    @abstractmethod
    def receive(
        self, queue_url: str, max_messages: int, wait_seconds: int
    ) -> list[QueueMessage]:
        """Receive up to max_messages deliveries. Empty list when idle."""

    @abstractmethod
    def delete(self, queue_url: str, receipt_handle: str) -> None:
        """Acknowledge a delivery so it is not redelivered."""
