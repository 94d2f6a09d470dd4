from statement_worker.logging.logger import Log
from statement_worker.messaging.base import BaseWorkQueue
from statement_worker.messaging.models import QueueMessage
from statement_worker.orchestrator.dispatcher import Dispatcher
from statement_worker.orchestrator.events import Event


class EventRunner:
    """Dispatch one event, catch exceptions, and acknowledge on success."""

    def __init__(self, dispatcher: Dispatcher, work_queue: BaseWorkQueue) -> None:
        self._dispatcher = dispatcher
        self._work_queue = work_queue

    def run(self, event: Event, ack: QueueMessage | None = None) -> bool:
        """Handle an event. Returns True when the handler finished without raising.

        ``ack`` is deleted only after a successful dispatch; an unacknowledged
        message is redelivered by the queue.
        """
        Log.info(f"Running {event.trigger.value} ({event.submission_key})")
        try:
            self._dispatcher.dispatch(event)
        except Exception as exc:
            Log.exception(f"{event.trigger.value} for {event.submission_key} failed: {exc}")
            return False

        if ack is not None:
            try:
                self._work_queue.delete(ack.queue_url, ack.receipt_handle)
            except Exception as exc:
                Log.warning(f"Could not acknowledge {event.trigger.value} message: {exc}")
        return True
