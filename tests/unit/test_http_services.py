import json

import httpx
import pytest

from statement_worker.database.models import DocumentRecord, ResultRecord, Status
from statement_worker.services.callback_notifier import CallbackNotifier
from statement_worker.services.exceptions import (
    CallbackDeliveryError,
    TemplatePublishError,
    TransformError,
)
from statement_worker.services.template_publisher import HttpTemplatePublisher
from statement_worker.services.transformer import HttpTransformer


def _client(status: int = 200, body: object = None, seen: list | None = None) -> httpx.Client:
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status, json=body if body is not None else {})

    return httpx.Client(transport=httpx.MockTransport(handler))


def _document() -> DocumentRecord:
    return DocumentRecord(
        org_id="org1", submission_id="sub1", created_by="analyst", status=Status.PENDING
    )


class TestCallbackNotifier:
    def test_posts_payload(self) -> None:
        seen: list[httpx.Request] = []
        notifier = CallbackNotifier(timeout_seconds=5, client=_client(seen=seen))

        notifier.notify("https://caller.test/hook", {"submissionId": "sub1", "status": "IN_REVIEW"})

        assert seen[0].method == "POST"
        assert str(seen[0].url) == "https://caller.test/hook"
        assert json.loads(seen[0].content) == {"submissionId": "sub1", "status": "IN_REVIEW"}

    def test_raises_on_error_status(self) -> None:
        notifier = CallbackNotifier(timeout_seconds=5, client=_client(status=500))

        with pytest.raises(CallbackDeliveryError):
            notifier.notify("https://caller.test/hook", {"submissionId": "sub1"})

    def test_raises_on_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        notifier = CallbackNotifier(
            timeout_seconds=5, client=httpx.Client(transport=httpx.MockTransport(handler))
        )

        with pytest.raises(CallbackDeliveryError, match="refused"):
            notifier.notify("https://caller.test/hook", {"submissionId": "sub1"})


class TestHttpTransformer:
    def test_returns_path_from_response(self) -> None:
        seen: list[httpx.Request] = []
        transformer = HttpTransformer(
            base_url="https://transform.test/run",
            timeout_seconds=5,
            client=_client(body={"path": "org1/sub1/transformed/source.json"}, seen=seen),
        )

        assert transformer.transform(_document()) == "org1/sub1/transformed/source.json"
        assert json.loads(seen[0].content) == {"orgId": "org1", "submissionId": "sub1"}

    def test_raises_without_path(self) -> None:
        transformer = HttpTransformer(
            base_url="https://transform.test/run", timeout_seconds=5, client=_client(body={})
        )

        with pytest.raises(TransformError, match="no 'path'"):
            transformer.transform(_document())

    def test_raises_when_not_configured(self) -> None:
        transformer = HttpTransformer(base_url="", timeout_seconds=5, client=_client())

        with pytest.raises(TransformError, match="not configured"):
            transformer.transform(_document())

    def test_close_releases_client(self) -> None:
        client = _client()
        transformer = HttpTransformer(
            base_url="https://transform.test/run", timeout_seconds=5, client=client
        )

        transformer.close()

        assert client.is_closed


class TestHttpTemplatePublisher:
    def test_posts_result(self) -> None:
        seen: list[httpx.Request] = []
        publisher = HttpTemplatePublisher(
            base_url="https://templates.test/publish", timeout_seconds=5, client=_client(seen=seen)
        )
        result = ResultRecord(
            org_id="org1",
            submission_id="sub1",
            identifier="a.pdf",
            status=Status.IN_REVIEW,
            duration_in_seconds=12,
            result_path="org1/sub1/a/aggregated.json",
        )

        publisher.publish(result)

        assert json.loads(seen[0].content) == {
            "orgId": "org1",
            "submissionId": "sub1",
            "identifier": "a.pdf",
            "status": "IN_REVIEW",
            "resultPath": "org1/sub1/a/aggregated.json",
        }

    def test_raises_on_error_status(self) -> None:
        publisher = HttpTemplatePublisher(
            base_url="https://templates.test/publish", timeout_seconds=5, client=_client(status=502)
        )

        with pytest.raises(TemplatePublishError):
            publisher.publish(
                ResultRecord(org_id="org1", submission_id="sub1", identifier="a.pdf", status=Status.FAILED)
            )

    def test_close_releases_client(self) -> None:
        client = _client()
        publisher = HttpTemplatePublisher(
            base_url="https://templates.test/publish", timeout_seconds=5, client=client
        )

        publisher.close()

        assert client.is_closed
