from concurrent.futures import ThreadPoolExecutor

from statement_worker.config.settings import Settings
from statement_worker.database.connection import close_pool, init_pool
from statement_worker.database.repositories.submission_repository import SubmissionRepository
from statement_worker.logging.logger import Log
from statement_worker.messaging.sqs_adapter import SqsWorkQueue
from statement_worker.orchestrator.dispatcher import Dispatcher, build_routes
from statement_worker.orchestrator.orchestrator import build_orchestrator
from statement_worker.worker.event_reader import EventReader
from statement_worker.worker.event_runner import EventRunner
from statement_worker.worker.worker import Worker


def main() -> None:
    """Entry point: initialize pool -> build dependencies -> start worker loop."""
    settings = Settings()
    Log.configure(settings.log_level)
    init_pool(settings)

    try:
        repo = SubmissionRepository(settings.db_table)
        repo.ensure_schema()
        work_queue = SqsWorkQueue(
            region=settings.aws_region, endpoint_url=settings.aws_endpoint_url
        )
        orchestrator = build_orchestrator(settings, repo=repo, work_queue=work_queue)
        dispatcher = Dispatcher(build_routes(orchestrator))
        reader = EventReader(
            completed_queue_url=settings.parser_completed_queue_url,
            failed_queue_url=settings.parser_failed_queue_url,
        )
        runner = EventRunner(dispatcher, work_queue)
        executor = ThreadPoolExecutor(
            max_workers=settings.worker_threads, thread_name_prefix="event"
        )
        worker = Worker(work_queue, reader, runner, executor, settings)
        try:
            worker.run()
        finally:
            orchestrator.shutdown()
    finally:
        close_pool()


if __name__ == "__main__":
    main()
