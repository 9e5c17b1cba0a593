"""Records store used by the validator, sync coordinator and autosave.

The services only depend on the ``RecordStore`` protocol; ``SqlRecordStore`` is
the SQLAlchemy implementation backed by an async session factory.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from roofcheck.db import crud
from roofcheck.models import Deficiency as DeficiencyRow, Inspection, InspectionSession
from roofcheck.schemas import (
    DeficiencyIn, Deficiency, InspectionFilters, InspectionSyncData,
)

SESSION_TTL = timedelta(hours=48)

# Autosave session status -> inspection_status shown alongside the inspection
_SESSION_STATUS_MAP = {"active": "in_progress", "completed": "completed"}

_INSPECTION_FIELDS = {
    "property_id", "inspector_id", "scheduled_date", "completed_date", "status",
    "inspection_type", "priority", "notes", "weather_conditions", "ready_to_send",
}


class RecordNotFoundError(LookupError):
    """Raised when a write targets a record that does not exist."""


class RecordStore(Protocol):
    async def fetch_inspections(self, filters: InspectionFilters | None = None) -> list[InspectionSyncData]: ...

    async def get_inspection(self, inspection_id: str) -> InspectionSyncData | None: ...

    async def list_deficiencies(self, inspection_id: str) -> list[Deficiency]: ...

    async def count_photos(self, inspection_id: str) -> int: ...

    async def insert_inspection(self, data: dict[str, Any]) -> InspectionSyncData: ...

    async def update_inspection(self, inspection_id: str, updates: dict[str, Any]) -> InspectionSyncData: ...

    async def delete_inspection(self, inspection_id: str) -> None: ...

    async def save_deficiencies(self, inspection_id: str, deficiencies: list[DeficiencyIn]) -> list[Deficiency]: ...

    async def save_session(
        self, property_id: str, inspector_id: str, session_data: dict,
        status: str = "active", session_id: str | None = None,
    ) -> str: ...


def to_sync_data(inspection: Inspection, session_status: str | None = None) -> InspectionSyncData:
    data = InspectionSyncData.model_validate(inspection)
    data.inspection_status = _SESSION_STATUS_MAP.get(session_status or "", inspection.status)
    return data


def to_deficiency(row: DeficiencyRow) -> Deficiency:
    return Deficiency(
        id=row.id,
        inspection_id=row.inspection_id,
        type=row.type or "",
        category=row.category or "",
        location=row.location or "",
        description=row.description or "",
        severity=row.severity,
        estimated_cost=row.estimated_cost or 0.0,
        status=row.status,
        photos=[p.id for p in row.photos],
        is_immediate_repair=row.is_immediate_repair,
        needs_supervisor_alert=row.needs_supervisor_alert,
        criticality_score=row.criticality_score,
        detection_timestamp=row.detection_timestamp,
    )


class SqlRecordStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def fetch_inspections(self, filters: InspectionFilters | None = None) -> list[InspectionSyncData]:
        filters = filters or InspectionFilters()
        async with self._session_factory() as db:
            rows = await crud.list_inspections(
                db,
                property_id=filters.property_id,
                inspector_id=filters.inspector_id,
                status=filters.status,
            )
            property_ids = sorted({r.property_id for r in rows if r.property_id})
            sessions = await crud.latest_session_status_by_property(db, property_ids)
            return [to_sync_data(r, sessions.get(r.property_id or "")) for r in rows]

    async def get_inspection(self, inspection_id: str) -> InspectionSyncData | None:
        async with self._session_factory() as db:
            row = await crud.get_inspection(db, inspection_id)
            if row is None:
                return None
            sessions = await crud.latest_session_status_by_property(db, [row.property_id] if row.property_id else [])
            return to_sync_data(row, sessions.get(row.property_id or ""))

    async def list_deficiencies(self, inspection_id: str) -> list[Deficiency]:
        async with self._session_factory() as db:
            rows = await crud.list_deficiencies_for_inspection(db, inspection_id)
            return [to_deficiency(r) for r in rows]

    async def count_photos(self, inspection_id: str) -> int:
        async with self._session_factory() as db:
            return await crud.count_photos_for_inspection(db, inspection_id)

    async def insert_inspection(self, data: dict[str, Any]) -> InspectionSyncData:
        fields = {k: v for k, v in data.items() if k in _INSPECTION_FIELDS}
        async with self._session_factory() as db:
            row = await crud.create_inspection(db, **fields)
            return to_sync_data(row)

    async def update_inspection(self, inspection_id: str, updates: dict[str, Any]) -> InspectionSyncData:
        fields = {k: v for k, v in updates.items() if k in _INSPECTION_FIELDS}
        async with self._session_factory() as db:
            row = await crud.get_inspection(db, inspection_id)
            if row is None:
                raise RecordNotFoundError(f"Inspection {inspection_id} not found")
            if fields.get("status") == "completed" and row.completed_date is None:
                fields.setdefault("completed_date", datetime.now(timezone.utc))
            row = await crud.update_inspection(db, row, **fields)
            return to_sync_data(row)

    async def delete_inspection(self, inspection_id: str) -> None:
        async with self._session_factory() as db:
            row = await crud.get_inspection(db, inspection_id)
            if row is None:
                raise RecordNotFoundError(f"Inspection {inspection_id} not found")
            await crud.delete_inspection(db, row)

    async def save_deficiencies(self, inspection_id: str, deficiencies: list[DeficiencyIn]) -> list[Deficiency]:
        """Insert new deficiencies and update existing ones (matched by id)."""
        saved: list[Deficiency] = []
        async with self._session_factory() as db:
            if await crud.get_inspection(db, inspection_id) is None:
                raise RecordNotFoundError(f"Inspection {inspection_id} not found")
            for d in deficiencies:
                values = d.model_dump(exclude={"id", "photos", "inspection_id"})
                row = await crud.get_deficiency(db, d.id) if d.id else None
                if row is None:
                    row = await crud.create_deficiency(db, inspection_id, **values)
                else:
                    row = await crud.update_deficiency(db, row, **values)
                saved.append(to_deficiency(row))
        return saved

    async def save_session(
        self, property_id: str, inspector_id: str, session_data: dict,
        status: str = "active", session_id: str | None = None,
    ) -> str:
        """Upsert an autosave session and return its id.

        Reuses ``session_id`` when given, else the newest active session for the
        property + inspector; otherwise stale active sessions are abandoned and
        a fresh one is created.
        """
        async with self._session_factory() as db:
            sess: InspectionSession | None = None
            if session_id:
                sess = await crud.get_inspection_session(db, session_id)
            if sess is None:
                sess = await crud.find_active_session(db, property_id, inspector_id)
            if sess is not None:
                sess = await crud.update_inspection_session(db, sess, session_data, status)
                return sess.id

            await crud.abandon_active_sessions(db, property_id, inspector_id)
            sess = await crud.create_inspection_session(
                db, property_id, inspector_id, session_data, status,
                expires_at=datetime.now(timezone.utc) + SESSION_TTL,
            )
            return sess.id
