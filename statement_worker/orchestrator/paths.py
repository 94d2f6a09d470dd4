"""Object-store path conventions shared with the parsing pipeline."""

from pathlib import PurePosixPath

from statement_worker.orchestrator.exceptions import InvalidMessageError

AGGREGATED_RESULT_NAME = "aggregated.json"
TRANSFORMED_OUTPUT_NAME = "financial_statement.json"
PROCESSED_MARKER_NAME = ".marker"


def submission_from_key(key: str) -> tuple[str, str]:
    """Split ``<orgId>/<submissionId>/...`` into (org_id, submission_id)."""
    parts = key.split("/")
    if len(parts) < 3 or not parts[0] or not parts[1]:
        raise InvalidMessageError(f"Object key '{key}' is not <orgId>/<submissionId>/<file>")
    return parts[0], parts[1]


def aggregated_result_path(completed_key: str) -> str:
    """org1/sub1/a.pdf -> org1/sub1/a/aggregated.json"""
    return str(PurePosixPath(completed_key).with_suffix("") / AGGREGATED_RESULT_NAME)


def transformed_output_path(org_id: str, submission_id: str) -> str:
    return f"{org_id}/{submission_id}/transformed/{TRANSFORMED_OUTPUT_NAME}"


def processed_marker_path(org_id: str, submission_id: str) -> str:
    return f"{org_id}/{submission_id}/processed/{PROCESSED_MARKER_NAME}"
