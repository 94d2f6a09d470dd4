from collections.abc import Callable, Mapping
from typing import Any

from statement_worker.logging.logger import Log
from statement_worker.orchestrator.events import Event, Trigger
from statement_worker.orchestrator.exceptions import UnknownTriggerError
from statement_worker.orchestrator.locks import KeyedLock
from statement_worker.orchestrator.orchestrator import SubmissionOrchestrator

Handler = Callable[[Any], None]


def build_routes(orchestrator: SubmissionOrchestrator) -> dict[Trigger, Handler]:
    """Routing table from trigger name to handler."""
    return {
        Trigger.TRANSFORM_FINANCIAL_STATEMENT: orchestrator.handle_transform,
        Trigger.PROCESS_FINANCIAL_STATEMENT: orchestrator.handle_process,
        Trigger.FINANCIAL_STATEMENT_PARSER_COMPLETED: orchestrator.handle_parser_completed,
        Trigger.FINANCIAL_STATEMENT_PARSER_FAILED: orchestrator.handle_parser_failed,
    }


class Dispatcher:
    """Routes events to handlers, one event at a time per submission.

    Events for different submissions run concurrently on the caller's threads.
    Events whose submission cannot be determined run unlocked.

    A contended event blocks its pool thread while it waits for the
    submission lock. A burst of messages for one submission can therefore
    occupy every worker thread and delay other submissions, and a message
    that waits longer than the queue's visibility timeout is delivered again.
    Size ``worker_threads`` and the visibility timeout with that in mind.
    """

    def __init__(self, routes: Mapping[Trigger, Handler], locks: KeyedLock | None = None) -> None:
        self._routes = dict(routes)
        self._locks = locks if locks is not None else KeyedLock()

    def dispatch(self, event: Event) -> None:
        handler = self._routes.get(event.trigger)
        if handler is None:
            raise UnknownTriggerError(f"No handler routed for {event.trigger.value}")

        key = event.submission_key
        if key is None:
            Log.debug(f"Dispatching {event.trigger.value} without submission lock")
            handler(event)
            return

        with self._locks.hold(key):
            Log.debug(f"Dispatching {event.trigger.value} for {key}")
            handler(event)
