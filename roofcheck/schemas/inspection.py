from __future__ import annotations
from datetime import datetime
from pydantic import BaseModel


class PropertyRef(BaseModel):
    property_name: str = ""
    address: str = ""
    city: str = ""
    state: str = ""

    model_config = {"from_attributes": True}


class InspectorRef(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    email: str = ""

    model_config = {"from_attributes": True}


class InspectionFilters(BaseModel):
    property_id: str | None = None
    inspector_id: str | None = None
    status: str | None = None


class InspectionSyncData(BaseModel):
    id: str
    status: str | None = None  # scheduled | in_progress | completed | cancelled
    inspection_status: str | None = None
    scheduled_date: datetime | None = None
    completed_date: datetime | None = None
    inspection_type: str | None = None
    priority: str | None = None
    notes: str | None = None
    weather_conditions: str | None = None
    property_id: str | None = None
    inspector_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    property: PropertyRef | None = None
    inspector: InspectorRef | None = None

    model_config = {"from_attributes": True}


class InspectionCreate(BaseModel):
    property_id: str | None = None
    inspector_id: str | None = None
    scheduled_date: datetime | None = None
    status: str = "scheduled"
    inspection_type: str | None = None
    priority: str | None = None
    notes: str | None = None


class InspectionStatusUpdate(BaseModel):
    status: str
