from __future__ import annotations
from pydantic import BaseModel

from roofcheck.schemas.deficiency import DeficiencyIn
from roofcheck.schemas.inspection import InspectionSyncData


class ValidationResult(BaseModel):
    is_valid: bool
    errors: list[str] = []
    warnings: list[str] | None = None
    summary: str


class ValidationRequest(BaseModel):
    inspection: InspectionSyncData
    deficiencies: list[DeficiencyIn] = []
    total_photos: int = 0
