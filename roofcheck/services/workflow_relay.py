"""Relay workflow payloads to the external automation service.

Each named workflow maps to a webhook path under ``webhook_base``. The JSON body
is signed with HMAC-SHA256 using the shared secret; the hex digest goes in the
``x-signature`` header so the receiver can verify it against the raw body.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
from typing import Any, Iterable

import httpx

from roofcheck.config import WorkflowRelayConfig
from roofcheck.schemas import RelayResponse

logger = logging.getLogger(__name__)


class UnknownWorkflowError(KeyError):
    """Raised when a workflow name has no configured webhook."""


def encode_payload(payload: dict[str, Any]) -> bytes:
    return json.dumps(payload, separators=(",", ":"), default=str).encode("utf-8")


def sign_body(body: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


class WorkflowRelay:
    def __init__(self, config: WorkflowRelayConfig | None = None, client: httpx.AsyncClient | None = None):
        self.config = config or WorkflowRelayConfig()
        self._client = client

    def url_for(self, workflow: str) -> str:
        path = self.config.workflows.get(workflow)
        if path is None:
            raise UnknownWorkflowError(workflow)
        return f"{self.config.webhook_base.rstrip('/')}/{path.lstrip('/')}"

    def sign(self, body: bytes) -> str:
        return sign_body(body, self.config.secret)

    def verify_signature(self, body: bytes, signature: str) -> bool:
        return hmac.compare_digest(self.sign(body), signature or "")

    async def trigger(self, workflow: str, payload: dict[str, Any]) -> RelayResponse:
        """POST the signed payload and hand back the upstream status and body verbatim.

        Transport errors (connection refused, timeout) propagate as httpx errors.
        """
        url = self.url_for(workflow)
        body = encode_payload(payload)
        if not self.config.secret:
            logger.warning("WORKFLOW_RELAY_SECRET not set, signing %s payload with an empty key", workflow)
        headers = {
            "content-type": "application/json",
            "x-origin": self.config.origin,
            "x-signature": self.sign(body),
        }

        if self._client is not None:
            resp = await self._client.post(url, content=body, headers=headers, timeout=self.config.timeout)
        else:
            async with httpx.AsyncClient() as client:
                resp = await client.post(url, content=body, headers=headers, timeout=self.config.timeout)

        logger.info("Workflow %s relayed to %s: HTTP %d", workflow, url, resp.status_code)
        return RelayResponse(
            workflow=workflow,
            status_code=resp.status_code,
            body=resp.text,
            content_type=resp.headers.get("content-type", "application/json"),
        )

    async def fan_out(self, payload: dict[str, Any], workflows: Iterable[str]) -> tuple[int, list[RelayResponse]]:
        """Trigger several workflows with the same payload, one after another.

        Returns 200 when every workflow succeeded, 207 otherwise. Every name is
        resolved before the first request, so an unknown workflow raises
        ``UnknownWorkflowError`` without anything being sent.
        """
        workflows = list(workflows)
        for workflow in workflows:
            self.url_for(workflow)

        results: list[RelayResponse] = []
        for workflow in workflows:
            try:
                results.append(await self.trigger(workflow, payload))
            except httpx.HTTPError as e:
                logger.error("Workflow %s relay failed: %s", workflow, e)
                results.append(RelayResponse(workflow=workflow, status_code=502, body=str(e), content_type="text/plain"))
        status = 200 if results and all(r.ok for r in results) else 207
        return status, results
