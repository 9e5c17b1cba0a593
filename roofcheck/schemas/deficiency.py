from __future__ import annotations
from datetime import datetime
from typing import Literal
from pydantic import BaseModel

Severity = Literal["low", "medium", "high"]


class DeficiencyIn(BaseModel):
    id: str = ""
    type: str = ""
    category: str = ""
    location: str = ""
    description: str = ""
    severity: Severity | None = None
    estimated_cost: float = 0.0
    status: str = "identified"  # identified | in_progress | resolved | documented
    photos: list[str] = []

    # Written by the criticality scorer
    is_immediate_repair: bool = False
    needs_supervisor_alert: bool = False
    criticality_score: int | None = None
    detection_timestamp: datetime | None = None


class Deficiency(DeficiencyIn):
    inspection_id: str = ""
