from __future__ import annotations
from typing import Any
from pydantic import BaseModel


class WorkflowTrigger(BaseModel):
    workflow: str  # deficiency_alerts | inspection_review | inspection_complete | campaign
    payload: dict[str, Any] = {}


class RelayResponse(BaseModel):
    workflow: str
    status_code: int
    body: str = ""
    content_type: str = "application/json"

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class WorkflowFanOut(BaseModel):
    payload: dict[str, Any] = {}
    # Completing an inspection fires the alert and review workflows together
    workflows: list[str] = ["deficiency_alerts", "inspection_review"]


class FanOutResult(BaseModel):
    success: bool
    results: list[RelayResponse] = []
    total_workflows: int
    successful_workflows: int
    failed_workflows: int
