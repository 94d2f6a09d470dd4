import json
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar

from statement_worker.messaging.models import QueueMessage
from statement_worker.orchestrator.exceptions import InvalidMessageError
from statement_worker.orchestrator.paths import submission_from_key


class Trigger(str, Enum):
    """Names of the lifecycle triggers the orchestrator reacts to."""

    TRANSFORM_FINANCIAL_STATEMENT = "TRANSFORM_FINANCIAL_STATEMENT"
    PROCESS_FINANCIAL_STATEMENT = "PROCESS_FINANCIAL_STATEMENT"
    FINANCIAL_STATEMENT_PARSER_COMPLETED = "FINANCIAL_STATEMENT_PARSER_COMPLETED"
    FINANCIAL_STATEMENT_PARSER_FAILED = "FINANCIAL_STATEMENT_PARSER_FAILED"


@dataclass(frozen=True)
class ParserNotice:
    """Decoded body of a parser completion or failure message."""

    key: str
    extra: dict[str, Any]


def decode_parser_notice(body: str) -> ParserNotice:
    """Decode a parser message body of the form ``{"key": "<org>/<sub>/...", ...}``."""
    try:
        data = json.loads(body)
    except json.JSONDecodeError as exc:
        raise InvalidMessageError(f"Parser message is not JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise InvalidMessageError("Parser message must be a JSON object")
    key = data.get("key")
    if not key or not isinstance(key, str):
        raise InvalidMessageError("Parser message has no 'key'")
    return ParserNotice(key=key, extra={k: v for k, v in data.items() if k != "key"})


@dataclass(frozen=True)
class TransformRequested:
    org_id: str
    submission_id: str

    trigger: ClassVar[Trigger] = Trigger.TRANSFORM_FINANCIAL_STATEMENT

    @property
    def submission_key(self) -> str | None:
        return f"{self.org_id}/{self.submission_id}"


@dataclass(frozen=True)
class ProcessRequested:
    org_id: str
    submission_id: str

    trigger: ClassVar[Trigger] = Trigger.PROCESS_FINANCIAL_STATEMENT

    @property
    def submission_key(self) -> str | None:
        return f"{self.org_id}/{self.submission_id}"


@dataclass(frozen=True)
class _ParserEvent:
    message: QueueMessage

    @property
    def submission_key(self) -> str | None:
        """Submission the message belongs to, or None when the body is unreadable."""
        try:
            org_id, submission_id = submission_from_key(decode_parser_notice(self.message.body).key)
        except InvalidMessageError:
            return None
        return f"{org_id}/{submission_id}"


@dataclass(frozen=True)
class ParserCompleted(_ParserEvent):
    trigger: ClassVar[Trigger] = Trigger.FINANCIAL_STATEMENT_PARSER_COMPLETED


@dataclass(frozen=True)
class ParserFailed(_ParserEvent):
    trigger: ClassVar[Trigger] = Trigger.FINANCIAL_STATEMENT_PARSER_FAILED


Event = TransformRequested | ProcessRequested | ParserCompleted | ParserFailed


def event_from_payload(payload: Mapping[str, Any]) -> TransformRequested | ProcessRequested:
    """Build a lifecycle event from ``{"type": ..., "orgId": ..., "submissionId": ...}``."""
    event_type = payload.get("type")
    org_id = payload.get("orgId")
    submission_id = payload.get("submissionId")
    if not isinstance(org_id, str) or not org_id:
        raise InvalidMessageError("Lifecycle event has no 'orgId'")
    if not isinstance(submission_id, str) or not submission_id:
        raise InvalidMessageError("Lifecycle event has no 'submissionId'")

    if event_type == Trigger.TRANSFORM_FINANCIAL_STATEMENT.value:
        return TransformRequested(org_id=org_id, submission_id=submission_id)
    if event_type == Trigger.PROCESS_FINANCIAL_STATEMENT.value:
        return ProcessRequested(org_id=org_id, submission_id=submission_id)
    raise InvalidMessageError(f"Unknown lifecycle event type '{event_type}'")
