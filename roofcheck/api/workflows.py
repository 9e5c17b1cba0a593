from __future__ import annotations

import logging

import httpx
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse, Response

from roofcheck.dependencies import get_relay
from roofcheck.schemas import FanOutResult, WorkflowFanOut, WorkflowTrigger
from roofcheck.services.workflow_relay import UnknownWorkflowError, WorkflowRelay

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/workflows", tags=["workflows"])


@router.post("/trigger")
async def trigger_workflow(
    body: WorkflowTrigger,
    relay: WorkflowRelay = Depends(get_relay),
):
    """Relay the payload and pass the upstream status code and body straight through."""
    try:
        result = await relay.trigger(body.workflow, body.payload)
    except UnknownWorkflowError:
        raise HTTPException(400, f"Unknown workflow: {body.workflow}")
    except httpx.HTTPError as e:
        logger.error("Workflow %s relay failed: %s", body.workflow, e)
        raise HTTPException(502, "Workflow service unreachable")
    return Response(content=result.body, status_code=result.status_code, media_type=result.content_type)


@router.post("/fan-out", response_model=FanOutResult)
async def fan_out_workflows(
    body: WorkflowFanOut,
    relay: WorkflowRelay = Depends(get_relay),
):
    """Send one payload to several workflows. 200 if all succeeded, 207 otherwise."""
    try:
        status, results = await relay.fan_out(body.payload, body.workflows)
    except UnknownWorkflowError as e:
        raise HTTPException(400, f"Unknown workflow: {e.args[0]}")

    successful = sum(1 for r in results if r.ok)
    result = FanOutResult(
        success=status == 200,
        results=results,
        total_workflows=len(results),
        successful_workflows=successful,
        failed_workflows=len(results) - successful,
    )
    return JSONResponse(status_code=status, content=result.model_dump(mode="json"))
