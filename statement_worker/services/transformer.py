from abc import ABC, abstractmethod

import httpx

from statement_worker.database.models import DocumentRecord
from statement_worker.services.exceptions import TransformError


class BaseTransformer(ABC):
    """Contract for the external document transformation function."""

    @abstractmethod
    def transform(self, document: DocumentRecord) -> str:
        """Transform a submission's document and return the artifact path."""

    def close(self) -> None:
        """Release connections held by the transformer."""


class HttpTransformer(BaseTransformer):
    """Calls the transformation service over HTTP.

    The service answers ``{"path": "<object key>"}`` for the artifact it wrote.
    """

    def __init__(
        self,
        *,
        base_url: str,
        timeout_seconds: int,
        client: httpx.Client | None = None,
    ) -> None:
        self._base_url = base_url
        self._client = client if client is not None else httpx.Client(timeout=timeout_seconds)

    def transform(self, document: DocumentRecord) -> str:
        if not self._base_url:
            raise TransformError("transform_service_url is not configured")
        try:
            response = self._client.post(
                self._base_url,
                json={"orgId": document.org_id, "submissionId": document.submission_id},
            )
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPError as exc:
            raise TransformError(f"Transformation service call failed: {exc}") from exc
        except ValueError as exc:
            raise TransformError(f"Transformation service returned invalid JSON: {exc}") from exc

        path = body.get("path") if isinstance(body, dict) else None
        if not path or not isinstance(path, str):
            raise TransformError("Transformation service response has no 'path'")
        return path

    def close(self) -> None:
        self._client.close()
