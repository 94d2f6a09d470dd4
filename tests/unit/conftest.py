from collections.abc import Generator
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from statement_worker.database.exceptions import RecordNotFoundError
from statement_worker.database.keys import (
    CompositeKey,
    document_key,
    profile_key,
    submission_partition_key,
)
from statement_worker.database.models import (
    DocumentRecord,
    FileRecord,
    ProfileRecord,
    ResultRecord,
    Status,
)
from statement_worker.messaging.base import BaseWorkQueue
from statement_worker.orchestrator.background import BackgroundWriter
from statement_worker.orchestrator.orchestrator import SubmissionOrchestrator
from statement_worker.pdf.base import BasePageCounter
from statement_worker.services.callback_notifier import CallbackNotifier
from statement_worker.services.template_publisher import BaseTemplatePublisher
from statement_worker.services.transformer import BaseTransformer
from statement_worker.storage.local_adapter import LocalObjectStore

NOW = datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
PARSER_REQUEST_QUEUE = "https://sqs.test/parser-requests"
COMPLETED_QUEUE = "https://sqs.test/parser-completed"
FAILED_QUEUE = "https://sqs.test/parser-failed"


class InMemorySubmissionRepository:
    """Dict-backed stand-in for SubmissionRepository with the same operations."""

    def __init__(self, clock: Any) -> None:
        self._clock = clock
        self.records: dict[CompositeKey, Any] = {}
        self.create_result_calls = 0

    def get_document(self, org_id: str, submission_id: str) -> DocumentRecord:
        return replace(self._get(document_key(org_id, submission_id)))

    def get_profile(self, org_id: str, submission_id: str) -> ProfileRecord:
        return replace(self._get(profile_key(org_id, submission_id)))

    def list_files(
        self, org_id: str, submission_id: str, status: Status | None = None
    ) -> list[FileRecord]:
        return self._list(org_id, submission_id, FileRecord, status)

    def list_results(
        self, org_id: str, submission_id: str, status: Status | None = None
    ) -> list[ResultRecord]:
        return self._list(org_id, submission_id, ResultRecord, status)

    def create_document(self, document: DocumentRecord) -> None:
        self.records[document.key] = replace(document, updated_at=self._clock())

    def create_profile(self, profile: ProfileRecord) -> None:
        self.records[profile.key] = replace(profile)

    def create_file(self, file: FileRecord) -> None:
        self.records[file.key] = replace(file)

    def create_result(self, result: ResultRecord) -> None:
        self.create_result_calls += 1
        self.records[result.key] = replace(result)

    def update_document(
        self, key: CompositeKey, *, status: Status | None = None, **attributes: Any
    ) -> None:
        record = self._get(key)
        if status is not None:
            attributes["status"] = status
        self.records[key] = replace(record, updated_at=self._clock(), **attributes)

    def update_profile_status(self, key: CompositeKey, status: Status) -> None:
        self.records[key] = replace(self._get(key), status=status)

    def update_file_status(self, key: CompositeKey, status: Status) -> None:
        self.records[key] = replace(self._get(key), status=status)

    def update_result(
        self,
        key: CompositeKey,
        *,
        status: Status,
        duration_in_seconds: int | None = None,
        result_path: str | None = None,
    ) -> None:
        record = self._get(key)
        changes: dict[str, Any] = {"status": status}
        if duration_in_seconds is not None:
            changes["duration_in_seconds"] = duration_in_seconds
        if result_path is not None:
            changes["result_path"] = result_path
        self.records[key] = replace(record, **changes)

    def _get(self, key: CompositeKey) -> Any:
        if key not in self.records:
            raise RecordNotFoundError(f"Record {key.partition_key}/{key.sort_key} not found")
        return self.records[key]

    def _list(self, org_id: str, submission_id: str, kind: type, status: Status | None) -> list:
        partition = submission_partition_key(org_id, submission_id)
        return sorted(
            (
                replace(record)
                for key, record in self.records.items()
                if key.partition_key == partition
                and isinstance(record, kind)
                and (status is None or record.status is status)
            ),
            key=lambda record: record.identifier,
        )


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@dataclass
class OrchestratorHarness:
    orchestrator: SubmissionOrchestrator
    repo: InMemorySubmissionRepository
    object_store: LocalObjectStore
    work_queue: MagicMock
    page_counter: MagicMock
    transformer: MagicMock
    publisher: MagicMock
    notifier: MagicMock
    background: BackgroundWriter
    clock: FakeClock

    def register_submission(
        self,
        org_id: str = "org1",
        submission_id: str = "sub1",
        file_names: tuple[str, ...] = ("a.pdf",),
        callback_url: str | None = "https://caller.test/hook",
    ) -> None:
        self.repo.create_document(
            DocumentRecord(
                org_id=org_id,
                submission_id=submission_id,
                created_by="analyst@example.com",
                status=Status.PENDING,
            )
        )
        self.repo.create_profile(
            ProfileRecord(
                org_id=org_id,
                submission_id=submission_id,
                created_by="analyst@example.com",
                status=Status.PENDING,
                callback_url=callback_url,
            )
        )
        for name in file_names:
            file_path = f"{org_id}/{submission_id}/{name}"
            self.repo.create_file(
                FileRecord(
                    org_id=org_id,
                    submission_id=submission_id,
                    identifier=name,
                    file_path=file_path,
                    status=Status.IN_REVIEW,
                )
            )
            self.object_store.write(file_path, b"%PDF-fake")

    def document(self, org_id: str = "org1", submission_id: str = "sub1") -> DocumentRecord:
        return self.repo.get_document(org_id, submission_id)

    def profile(self, org_id: str = "org1", submission_id: str = "sub1") -> ProfileRecord:
        return self.repo.get_profile(org_id, submission_id)

    def file(self, name: str = "a.pdf") -> FileRecord:
        return next(f for f in self.repo.list_files("org1", "sub1") if f.identifier == name)

    def result(self, name: str = "a.pdf") -> ResultRecord:
        return next(r for r in self.repo.list_results("org1", "sub1") if r.identifier == name)


@pytest.fixture
def harness(tmp_path: Path) -> Generator[OrchestratorHarness, None, None]:
    clock = FakeClock(NOW)
    repo = InMemorySubmissionRepository(clock)
    object_store = LocalObjectStore(root=tmp_path / "bucket")
    work_queue = MagicMock(spec=BaseWorkQueue)
    page_counter = MagicMock(spec=BasePageCounter)
    page_counter.count_pages.return_value = 3
    transformer = MagicMock(spec=BaseTransformer)
    publisher = MagicMock(spec=BaseTemplatePublisher)
    notifier = MagicMock(spec=CallbackNotifier)
    background = BackgroundWriter(ThreadPoolExecutor(max_workers=1))

    orchestrator = SubmissionOrchestrator(
        repo=repo,  # type: ignore[arg-type]
        object_store=object_store,
        work_queue=work_queue,
        page_counter=page_counter,
        transformer=transformer,
        publisher=publisher,
        notifier=notifier,
        background=background,
        parser_request_queue_url=PARSER_REQUEST_QUEUE,
        clock=clock,
    )
    yield OrchestratorHarness(
        orchestrator=orchestrator,
        repo=repo,
        object_store=object_store,
        work_queue=work_queue,
        page_counter=page_counter,
        transformer=transformer,
        publisher=publisher,
        notifier=notifier,
        background=background,
        clock=clock,
    )
    background.shutdown()
