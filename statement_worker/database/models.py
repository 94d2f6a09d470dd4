from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from statement_worker.database.keys import (
    CompositeKey,
    document_key,
    file_key,
    profile_key,
    result_key,
)


class Status(str, Enum):
    """Lifecycle status shared by every submission record."""

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    IN_REVIEW = "IN_REVIEW"
    FAILED = "FAILED"


@dataclass
class DocumentRecord:
    """Submission-level aggregate: overall status and transformed output."""

    org_id: str
    submission_id: str
    created_by: str
    status: Status
    document_name: str = ""
    total_pages: int = 0
    total_documents: int = 0
    transformed_path: str = ""
    updated_at: datetime | None = None

    @property
    def key(self) -> CompositeKey:
        return document_key(self.org_id, self.submission_id)


@dataclass
class ProfileRecord:
    """Caller metadata for a submission."""

    org_id: str
    submission_id: str
    created_by: str
    status: Status
    callback_url: str | None = None

    @property
    def key(self) -> CompositeKey:
        return profile_key(self.org_id, self.submission_id)


@dataclass
class FileRecord:
    """One physical input file; file_path is its object-store key."""

    org_id: str
    submission_id: str
    identifier: str
    file_path: str
    status: Status

    @property
    def key(self) -> CompositeKey:
        return file_key(self.org_id, self.submission_id, self.identifier)


@dataclass
class ResultRecord:
    """Per-file parsing outcome; shares its identifier with the File."""

    org_id: str
    submission_id: str
    identifier: str
    status: Status
    duration_in_seconds: int = 0
    result_path: str = ""

    @property
    def key(self) -> CompositeKey:
        return result_key(self.org_id, self.submission_id, self.identifier)
