from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from roofcheck.db.store import RecordNotFoundError, RecordStore
from roofcheck.dependencies import get_scorer, get_store, get_validator
from roofcheck.schemas import (
    InspectionCriticalAnalysis, InspectionFilters, InspectionStatusUpdate,
    InspectionSyncData, ValidationRequest, ValidationResult,
)
from roofcheck.services.criticality import CriticalityScorer
from roofcheck.services.event_bus import EventKind, InspectionDeleted, InspectionStatusChanged, event_bus
from roofcheck.services.validation import InspectionValidator

router = APIRouter(prefix="/api/inspections", tags=["inspections"])

_STATUSES = {"scheduled", "in_progress", "completed", "cancelled"}


@router.get("", response_model=list[InspectionSyncData])
async def list_inspections(
    property_id: str | None = Query(default=None),
    inspector_id: str | None = Query(default=None),
    status: str | None = Query(default=None),
    store: RecordStore = Depends(get_store),
):
    filters = InspectionFilters(property_id=property_id, inspector_id=inspector_id, status=status)
    return await store.fetch_inspections(filters)


@router.post("/validate", response_model=ValidationResult)
async def validate_bundle(
    body: ValidationRequest,
    validator: InspectionValidator = Depends(get_validator),
):
    return validator.validate_inspection_sync(body.inspection, body.deficiencies, body.total_photos)


@router.get("/{inspection_id}/validation", response_model=ValidationResult)
async def validate_inspection(
    inspection_id: str,
    validator: InspectionValidator = Depends(get_validator),
):
    return await validator.validate_inspection(inspection_id)


@router.get("/{inspection_id}/criticality", response_model=InspectionCriticalAnalysis)
async def inspection_criticality(
    inspection_id: str,
    store: RecordStore = Depends(get_store),
    scorer: CriticalityScorer = Depends(get_scorer),
):
    if await store.get_inspection(inspection_id) is None:
        raise HTTPException(404, "Inspection not found")
    deficiencies = await store.list_deficiencies(inspection_id)
    return scorer.analyze_inspection(deficiencies)


@router.put("/{inspection_id}/status", response_model=InspectionSyncData)
async def update_status(
    inspection_id: str,
    body: InspectionStatusUpdate,
    store: RecordStore = Depends(get_store),
):
    if body.status not in _STATUSES:
        raise HTTPException(400, f"Invalid status: {body.status}")
    current = await store.get_inspection(inspection_id)
    if current is None:
        raise HTTPException(404, "Inspection not found")
    try:
        updated = await store.update_inspection(inspection_id, {"status": body.status})
    except RecordNotFoundError:
        raise HTTPException(404, "Inspection not found")

    event_bus.publish(EventKind.INSPECTION_STATUS_CHANGED, InspectionStatusChanged(
        inspection_id=inspection_id,
        new_status=body.status,
        previous_status=current.status,
        source="api",
    ))
    return updated


@router.delete("/{inspection_id}")
async def delete_inspection(
    inspection_id: str,
    store: RecordStore = Depends(get_store),
):
    try:
        await store.delete_inspection(inspection_id)
    except RecordNotFoundError:
        raise HTTPException(404, "Inspection not found")

    event_bus.publish(EventKind.INSPECTION_DELETED, InspectionDeleted(inspection_id=inspection_id, source="api"))
    return {"ok": True, "id": inspection_id}
