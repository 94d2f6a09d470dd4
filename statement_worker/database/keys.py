from dataclasses import dataclass

DOCUMENT_SORT_KEY = "DOCUMENT"
PROFILE_SORT_KEY = "PROFILE"
FILE_PREFIX = "FILE#"
RESULT_PREFIX = "RESULT#"


@dataclass(frozen=True)
class CompositeKey:
    """Address of one record in the submission store."""

    partition_key: str
    sort_key: str


def submission_partition_key(org_id: str, submission_id: str) -> str:
    """Build the partition key shared by every record of one submission."""
    return f"ORG#{org_id}#SUB#{submission_id}"


def document_key(org_id: str, submission_id: str) -> CompositeKey:
    return CompositeKey(submission_partition_key(org_id, submission_id), DOCUMENT_SORT_KEY)


def profile_key(org_id: str, submission_id: str) -> CompositeKey:
    return CompositeKey(submission_partition_key(org_id, submission_id), PROFILE_SORT_KEY)


def file_key(org_id: str, submission_id: str, identifier: str) -> CompositeKey:
    return CompositeKey(
        submission_partition_key(org_id, submission_id), f"{FILE_PREFIX}{identifier}"
    )


def result_key(org_id: str, submission_id: str, identifier: str) -> CompositeKey:
    return CompositeKey(
        submission_partition_key(org_id, submission_id), f"{RESULT_PREFIX}{identifier}"
    )
