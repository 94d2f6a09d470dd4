import threading
from collections.abc import Callable
from concurrent.futures import Executor, Future, wait
from typing import Any

from statement_worker.logging.logger import Log


class BackgroundWriter:
    """Runs best-effort side effects without blocking or failing the caller.

    Failures are logged when the work finishes; nothing is re-raised. Work may
    be tagged with a group (a submission) so that a later handler can wait for
    just that group's writes with ``flush(group=...)``.
    """

    def __init__(self, executor: Executor) -> None:
        self._executor = executor
        self._pending: dict[Future[Any], str | None] = {}
        self._lock = threading.Lock()

    def submit(
        self,
        description: str,
        fn: Callable[..., Any],
        *args: Any,
        group: str | None = None,
        **kwargs: Any,
    ) -> Future[Any] | None:
        try:
            future = self._executor.submit(fn, *args, **kwargs)
        except RuntimeError as exc:
            Log.warning(f"Could not schedule {description}: {exc}")
            return None

        with self._lock:
            self._pending[future] = group
        future.add_done_callback(lambda done: self._on_done(description, done))
        return future

    def flush(self, timeout: float | None = None, group: str | None = None) -> None:
        """Block until work submitted so far has finished.

        With ``group`` only that group's work is awaited.
        """
        with self._lock:
            pending = [
                future
                for future, tag in self._pending.items()
                if group is None or tag == group
            ]
        if pending:
            wait(pending, timeout=timeout)

    def shutdown(self) -> None:
        self.flush()
        self._executor.shutdown(wait=True)

    def _on_done(self, description: str, future: Future[Any]) -> None:
        with self._lock:
            self._pending.pop(future, None)
        if future.cancelled():
            Log.warning(f"Background {description} was cancelled")
            return
        exc = future.exception()
        if exc is not None:
            Log.warning(f"Background {description} failed: {exc}")
        else:
            Log.debug(f"Background {description} finished")
