from collections.abc import Mapping

import httpx

from statement_worker.logging.logger import Log
from statement_worker.services.exceptions import CallbackDeliveryError


class CallbackNotifier:
    """Delivers submission status payloads to caller-supplied URLs."""

    def __init__(self, *, timeout_seconds: int, client: httpx.Client | None = None) -> None:
        self._client = client if client is not None else httpx.Client(timeout=timeout_seconds)

    def notify(self, url: str, payload: Mapping[str, object]) -> None:
        """POST the payload as JSON.

        Raises:
            CallbackDeliveryError: on transport errors or a non-2xx answer.
        """
        try:
            response = self._client.post(url, json=dict(payload))
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise CallbackDeliveryError(f"Callback to {url} failed: {exc}") from exc
        Log.info(f"Callback delivered to {url} ({response.status_code})")

    def close(self) -> None:
        self._client.close()
