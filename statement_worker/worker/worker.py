import threading
import time
from concurrent.futures import FIRST_COMPLETED, Executor, Future, wait

from statement_worker.config.settings import Settings
from statement_worker.logging.logger import Log
from statement_worker.messaging.base import BaseWorkQueue
from statement_worker.messaging.exceptions import WorkQueueError
from statement_worker.messaging.models import QueueMessage
from statement_worker.orchestrator.exceptions import InvalidMessageError
from statement_worker.worker.event_reader import EventReader
from statement_worker.worker.event_runner import EventRunner


class Worker:
    """Poll loop: receive -> decode -> hand off to the event pool."""

    def __init__(
        self,
        work_queue: BaseWorkQueue,
        reader: EventReader,
        runner: EventRunner,
        executor: Executor,
        settings: Settings,
    ) -> None:
        self._work_queue = work_queue
        self._reader = reader
        self._runner = runner
        self._executor = executor
        self._settings = settings
        self._in_flight: set[Future[bool]] = set()
        self._in_flight_lock = threading.Lock()
        self._queue_urls = [
            url
            for url in (
                settings.events_queue_url,
                settings.parser_completed_queue_url,
                settings.parser_failed_queue_url,
            )
            if url
        ]

    def run(self, max_polls: int | None = None) -> None:
        """Main poll loop. Runs forever until interrupted.

        If max_polls is set, stop after that many polling rounds (for testing).
        In-flight events are always finished before returning.
        """
        Log.info(f"Worker started, polling {len(self._queue_urls)} queues")
        polls = 0
        try:
            while max_polls is None or polls < max_polls:
                polls += 1
                if self._poll_once() == 0:
                    Log.debug("No messages available, sleeping")
                    time.sleep(self._settings.poll_interval_seconds)
        except KeyboardInterrupt:
            Log.info("Worker shutting down gracefully")
        finally:
            self._executor.shutdown(wait=True)

    def _poll_once(self) -> int:
        received = 0
        for queue_url in self._queue_urls:
            self._wait_for_capacity()
            for message in self._try_receive(queue_url):
                received += 1
                self._submit(message)
        return received

    def _try_receive(self, queue_url: str) -> list[QueueMessage]:
        """Receive a batch from one queue. Gracefully handle queue errors."""
        try:
            return self._work_queue.receive(
                queue_url,
                self._settings.queue_batch_size,
                self._settings.queue_wait_seconds,
            )
        except WorkQueueError as exc:
            Log.warning(f"Queue error, will retry: {exc}")
            return []

    def _submit(self, message: QueueMessage) -> None:
        try:
            event = self._reader.read(message)
        except InvalidMessageError as exc:
            Log.error(f"Dropping undecodable message from {message.queue_url}: {exc}")
            self._try_delete(message)
            return

        # Parser handlers acknowledge their own messages.
        ack = None if self._reader.is_parser_message(message) else message
        future = self._executor.submit(self._runner.run, event, ack)
        with self._in_flight_lock:
            self._in_flight.add(future)
        future.add_done_callback(self._release)

    def _release(self, future: Future[bool]) -> None:
        with self._in_flight_lock:
            self._in_flight.discard(future)

    def _wait_for_capacity(self) -> None:
        while True:
            with self._in_flight_lock:
                if len(self._in_flight) < self._settings.worker_threads:
                    return
                in_flight = set(self._in_flight)
            done, _ = wait(in_flight, return_when=FIRST_COMPLETED)
            with self._in_flight_lock:
                self._in_flight.difference_update(done)

    def _try_delete(self, message: QueueMessage) -> None:
        try:
            self._work_queue.delete(message.queue_url, message.receipt_handle)
        except WorkQueueError as exc:
            Log.warning(f"Could not delete message: {exc}")
