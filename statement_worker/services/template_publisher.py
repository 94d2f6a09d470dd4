from abc import ABC, abstractmethod

import httpx

from statement_worker.database.models import ResultRecord
from statement_worker.logging.logger import Log
from statement_worker.services.exceptions import TemplatePublishError


class BaseTemplatePublisher(ABC):
    """Contract for publishing a parsed extraction into the statement template."""

    @abstractmethod
    def publish(self, result: ResultRecord) -> None:
        """Publish one Result's extraction."""

    def close(self) -> None:
        """Release connections held by the publisher."""


class HttpTemplatePublisher(BaseTemplatePublisher):
    """Publishes extractions to the template service over HTTP."""

    def __init__(
        self,
        *,
        base_url: str,
        timeout_seconds: int,
        client: httpx.Client | None = None,
    ) -> None:
        self._base_url = base_url
        self._client = client if client is not None else httpx.Client(timeout=timeout_seconds)

    def publish(self, result: ResultRecord) -> None:
        if not self._base_url:
            raise TemplatePublishError("template_service_url is not configured")
        payload = {
            "orgId": result.org_id,
            "submissionId": result.submission_id,
            "identifier": result.identifier,
            "status": result.status.value,
            "resultPath": result.result_path,
        }
        try:
            response = self._client.post(self._base_url, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise TemplatePublishError(
                f"Publishing result {result.identifier} failed: {exc}"
            ) from exc
        Log.debug(f"Published result {result.identifier} of submission {result.submission_id}")

    def close(self) -> None:
        self._client.close()
