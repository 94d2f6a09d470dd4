import json
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import PurePosixPath

from statement_worker.config.settings import Settings
from statement_worker.database.keys import CompositeKey, document_key, result_key
from statement_worker.database.models import (
    DocumentRecord,
    FileRecord,
    ProfileRecord,
    ResultRecord,
    Status,
)
from statement_worker.database.repositories.submission_repository import SubmissionRepository
from statement_worker.logging.logger import Log
from statement_worker.messaging.base import BaseWorkQueue
from statement_worker.orchestrator.background import BackgroundWriter
from statement_worker.orchestrator.events import (
    ParserCompleted,
    ParserFailed,
    ProcessRequested,
    TransformRequested,
    decode_parser_notice,
)
from statement_worker.orchestrator.exceptions import SubmissionFileNotFoundError
from statement_worker.orchestrator.paths import (
    aggregated_result_path,
    processed_marker_path,
    submission_from_key,
    transformed_output_path,
)
from statement_worker.pdf.base import BasePageCounter
from statement_worker.pdf.factory import PageCounterFactory
from statement_worker.services.callback_notifier import CallbackNotifier
from statement_worker.services.template_publisher import (
    BaseTemplatePublisher,
    HttpTemplatePublisher,
)
from statement_worker.services.transformer import BaseTransformer, HttpTransformer
from statement_worker.storage.base import BaseObjectStore
from statement_worker.storage.factory import ObjectStoreFactory

SUCCESS_CODE = "0"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _submission_group(org_id: str, submission_id: str) -> str:
    return f"{org_id}/{submission_id}"


class SubmissionOrchestrator:
    """Drives a financial statement submission through its lifecycle.

    Each handler reads the submission's records, talks to the object store,
    work queue and HTTP services, and writes statuses back. Handlers keep no
    state between invocations; serialization per submission is the
    dispatcher's job.
    """

    def __init__(
        self,
        *,
        repo: SubmissionRepository,
        object_store: BaseObjectStore,
        work_queue: BaseWorkQueue,
        page_counter: BasePageCounter,
        transformer: BaseTransformer,
        publisher: BaseTemplatePublisher,
        notifier: CallbackNotifier,
        background: BackgroundWriter,
        parser_request_queue_url: str,
        publish_on_failure: bool = True,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._repo = repo
        self._object_store = object_store
        self._work_queue = work_queue
        self._page_counter = page_counter
        self._transformer = transformer
        self._publisher = publisher
        self._notifier = notifier
        self._background = background
        self._parser_request_queue_url = parser_request_queue_url
        self._publish_on_failure = publish_on_failure
        self._clock = clock

    def handle_transform(self, event: TransformRequested) -> None:
        """Produce the transformed artifact and record its path.

        Failures are logged and swallowed; the Document status is never touched.
        """
        Log.info(f"Transforming submission {event.org_id}/{event.submission_id}")
        try:
            document = self._repo.get_document(event.org_id, event.submission_id)
            path = self._transformer.transform(document)
            self._repo.update_document(document.key, transformed_path=path)
            Log.info(f"Submission {event.submission_id} transformed to {path}")
        except Exception as exc:
            Log.error(f"Transform of submission {event.submission_id} failed: {exc}")

    def handle_process(self, event: ProcessRequested) -> None:
        """Register Results for in-review Files and hand each File to the parser."""
        Log.info(f"Processing submission {event.org_id}/{event.submission_id}")
        document = self._repo.get_document(event.org_id, event.submission_id)
        profile = self._repo.get_profile(event.org_id, event.submission_id)
        files = self._repo.list_files(event.org_id, event.submission_id, Status.IN_REVIEW)
        if not files:
            Log.warning(f"Submission {event.submission_id} has no files in review")
            return

        try:
            for file in files:
                self._background.submit(
                    f"result creation for file {file.identifier}",
                    self._repo.create_result,
                    ResultRecord(
                        org_id=file.org_id,
                        submission_id=file.submission_id,
                        identifier=file.identifier,
                        status=Status.PROCESSING,
                    ),
                    group=_submission_group(file.org_id, file.submission_id),
                )

            total_pages = 0
            for file in files:
                total_pages += self._dispatch_file(document, profile, file, total_pages, len(files))
        except Exception as exc:
            Log.error(f"Processing of submission {event.submission_id} failed: {exc}")
            self._mark_document_failed(document.key)

    def handle_parser_completed(self, event: ParserCompleted) -> None:
        """Fold one parser completion into the Result, File and Document.

        The message is acknowledged whatever happens. The publish/marker tail
        runs afterwards even for a FAILED submission unless publish_on_failure
        is off.
        """
        message = event.message
        submission: tuple[str, str] | None = None
        final_status: Status | None = None
        failed = False
        try:
            notice = decode_parser_notice(message.body)
            submission = submission_from_key(notice.key)
            org_id, submission_id = submission
            Log.info(f"Parser completed {notice.key}")
            self._await_result_writes(org_id, submission_id)

            document = self._repo.get_document(org_id, submission_id)
            profile = self._repo.get_profile(org_id, submission_id)
            file = self._find_file_in_review(org_id, submission_id, notice.key)

            result_path = aggregated_result_path(notice.key)
            code = self._read_result_code(result_path)
            duration = self._elapsed_seconds(document)

            final_status = Status.IN_REVIEW if code == SUCCESS_CODE else Status.FAILED
            transformed_path = (
                "" if final_status is Status.FAILED
                else transformed_output_path(org_id, submission_id)
            )

            self._repo.update_result(
                result_key(org_id, submission_id, file.identifier),
                status=final_status,
                duration_in_seconds=duration,
                result_path=result_path,
            )
            self._repo.update_file_status(file.key, final_status)
            self._repo.update_document(
                document.key, status=final_status, transformed_path=transformed_path
            )
            Log.info(
                f"File {file.identifier} of submission {submission_id} is {final_status.value} "
                f"(code {code}, {duration}s)"
            )

            if profile.callback_url:
                self._background.submit(
                    f"callback for submission {submission_id}",
                    self._notifier.notify,
                    profile.callback_url,
                    {"submissionId": submission_id, "status": final_status.value},
                )
        except Exception as exc:
            failed = True
            Log.error(f"Handling parser completion failed: {exc}")
            if submission is not None:
                self._mark_document_failed(document_key(*submission))
        finally:
            self._work_queue.delete(message.queue_url, message.receipt_handle)

        if submission is None:
            Log.warning("Parser completion had no readable key, skipping publish")
            return
        if not self._publish_on_failure and (failed or final_status is Status.FAILED):
            Log.info(f"Submission {submission[1]} failed, skipping publish")
            return
        self._publish_extractions(*submission)

    def handle_parser_failed(self, event: ParserFailed) -> None:
        """Mark the failed file's Result FAILED, then acknowledge the message.

        Errors propagate and leave the message unacknowledged for redelivery.
        """
        message = event.message
        notice = decode_parser_notice(message.body)
        org_id, submission_id = submission_from_key(notice.key)
        Log.warning(f"Parser failed on {notice.key}")
        self._await_result_writes(org_id, submission_id)

        document = self._repo.get_document(org_id, submission_id)
        file = self._find_file_in_review(document.org_id, document.submission_id, notice.key)
        self._repo.update_result(
            result_key(document.org_id, document.submission_id, file.identifier),
            status=Status.FAILED,
        )
        self._work_queue.delete(message.queue_url, message.receipt_handle)
        Log.info(f"Result {file.identifier} of submission {submission_id} marked failed")

    def shutdown(self) -> None:
        """Finish pending background writes and release HTTP connections."""
        self._background.shutdown()
        self._notifier.close()
        self._transformer.close()
        self._publisher.close()

    def _dispatch_file(
        self,
        document: DocumentRecord,
        profile: ProfileRecord,
        file: FileRecord,
        pages_so_far: int,
        file_count: int,
    ) -> int:
        content = self._object_store.read(file.file_path)
        page_count = self._page_counter.count_pages(content)

        self._repo.update_document(
            document.key,
            status=Status.PROCESSING,
            document_name=PurePosixPath(file.file_path).name,
            total_pages=pages_so_far + page_count,
            total_documents=file_count,
        )
        self._repo.update_profile_status(profile.key, Status.PENDING)
        self._work_queue.enqueue(
            self._parser_request_queue_url,
            {
                "objectKey": file.file_path,
                "bucketName": self._object_store.bucket_name,
                "totalPageCount": page_count,
            },
            attributes={"orgId": file.org_id, "submissionId": file.submission_id},
        )
        Log.info(f"Queued {file.file_path} for parsing ({page_count} pages)")
        return page_count

    def _await_result_writes(self, org_id: str, submission_id: str) -> None:
        # Result creation from process-begin runs in the background and can
        # still be queued when the parser answers.
        self._background.flush(group=_submission_group(org_id, submission_id))

    def _find_file_in_review(self, org_id: str, submission_id: str, key: str) -> FileRecord:
        files = self._repo.list_files(org_id, submission_id, Status.IN_REVIEW)
        for file in files:
            if file.file_path == key:
                return file
        raise SubmissionFileNotFoundError(
            f"No file in review with path '{key}' in submission {submission_id}"
        )

    def _read_result_code(self, result_path: str) -> str:
        raw = self._object_store.read(result_path)
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError(f"Aggregated result {result_path} is not a JSON object")
        return str(data.get("code"))

    def _elapsed_seconds(self, document: DocumentRecord) -> int:
        if document.updated_at is None:
            return 0
        return max(0, int((self._clock() - document.updated_at).total_seconds()))

    def _publish_extractions(self, org_id: str, submission_id: str) -> None:
        results = self._repo.list_results(org_id, submission_id)
        for result in results:
            self._publisher.publish(result)
        self._object_store.write(processed_marker_path(org_id, submission_id), b"")
        Log.info(f"Published {len(results)} results of submission {submission_id}")

    def _mark_document_failed(self, key: CompositeKey) -> None:
        try:
            self._repo.update_document(key, status=Status.FAILED)
        except Exception as exc:
            Log.error(f"Could not mark document {key.partition_key} failed: {exc}")
        else:
            Log.warning(f"Document {key.partition_key} marked as failed")


def build_orchestrator(
    settings: Settings,
    *,
    repo: SubmissionRepository,
    work_queue: BaseWorkQueue,
) -> SubmissionOrchestrator:
    """Build a SubmissionOrchestrator with all required adapters."""
    return SubmissionOrchestrator(
        repo=repo,
        object_store=ObjectStoreFactory.create(settings),
        work_queue=work_queue,
        page_counter=PageCounterFactory.create(settings),
        transformer=HttpTransformer(
            base_url=settings.transform_service_url,
            timeout_seconds=settings.http_timeout_seconds,
        ),
        publisher=HttpTemplatePublisher(
            base_url=settings.template_service_url,
            timeout_seconds=settings.http_timeout_seconds,
        ),
        notifier=CallbackNotifier(timeout_seconds=settings.http_timeout_seconds),
        background=BackgroundWriter(
            ThreadPoolExecutor(max_workers=2, thread_name_prefix="background")
        ),
        parser_request_queue_url=settings.parser_request_queue_url,
        publish_on_failure=settings.publish_on_failure,
    )
