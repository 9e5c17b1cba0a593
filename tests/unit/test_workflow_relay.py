import json

import httpx
import pytest

from roofcheck.config import WorkflowRelayConfig
from roofcheck.services.workflow_relay import UnknownWorkflowError, WorkflowRelay, sign_body


@pytest.fixture
def config():
    return WorkflowRelayConfig(webhook_base="http://automation.test/webhook/", secret="s3cret")


def _relay(config, handler) -> WorkflowRelay:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return WorkflowRelay(config, client=client)


async def test_trigger_signs_body_and_passes_response_through(config):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = request.content
        seen["headers"] = request.headers
        return httpx.Response(202, text="queued", headers={"content-type": "text/plain"})

    relay = _relay(config, handler)
    result = await relay.trigger("deficiency_alerts", {"inspection_id": "i1", "score": 92})

    assert seen["url"] == "http://automation.test/webhook/roof-deficiency-alerts"
    assert json.loads(seen["body"]) == {"inspection_id": "i1", "score": 92}
    assert seen["headers"]["x-origin"] == "roofcheck"
    assert seen["headers"]["x-signature"] == sign_body(seen["body"], "s3cret")
    assert relay.verify_signature(seen["body"], seen["headers"]["x-signature"]) is True

    assert result.status_code == 202
    assert result.body == "queued"
    assert result.content_type.startswith("text/plain")
    assert result.ok is True


async def test_upstream_error_status_returned_verbatim(config):
    relay = _relay(config, lambda r: httpx.Response(500, json={"error": "workflow crashed"}))
    result = await relay.trigger("inspection_review", {})
    assert result.status_code == 500
    assert json.loads(result.body) == {"error": "workflow crashed"}
    assert result.ok is False


async def test_unknown_workflow(config):
    relay = _relay(config, lambda r: httpx.Response(200))
    with pytest.raises(UnknownWorkflowError):
        await relay.trigger("not_a_workflow", {})


def test_verify_signature_rejects_tampering(config):
    relay = WorkflowRelay(config)
    body = b'{"a":1}'
    assert relay.verify_signature(body, relay.sign(body)) is True
    assert relay.verify_signature(b'{"a":2}', relay.sign(body)) is False
    assert relay.verify_signature(body, "") is False


async def test_fan_out_reports_partial_failure(config):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("roof-inspection-review"):
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json={"ok": True})

    relay = _relay(config, handler)
    status, results = await relay.fan_out({"id": "i1"}, ["deficiency_alerts", "inspection_review"])

    assert status == 207
    assert [r.status_code for r in results] == [200, 502]


async def test_fan_out_all_ok(config):
    relay = _relay(config, lambda r: httpx.Response(200, json={"ok": True}))
    status, results = await relay.fan_out({}, ["deficiency_alerts", "inspection_complete"])
    assert status == 200
    assert len(results) == 2


async def test_fan_out_unknown_workflow_sends_nothing(config):
    sent = []

    def handler(request: httpx.Request) -> httpx.Response:
        sent.append(request.url.path)
        return httpx.Response(200, json={"ok": True})

    relay = _relay(config, handler)
    with pytest.raises(UnknownWorkflowError):
        await relay.fan_out({"x": 1}, ["deficiency_alerts", "nope"])
    assert sent == []
