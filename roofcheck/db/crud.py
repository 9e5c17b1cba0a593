"""CRUD operations for the inspection records store."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from roofcheck.models import (
    Property, User, Inspection, Deficiency, Photo, InspectionSession,
)


# ── Property ─────────────────────────────────────────────

async def create_property(
    db: AsyncSession, property_name: str, address: str = "", city: str = "", state: str = "",
) -> Property:
    prop = Property(property_name=property_name, address=address, city=city, state=state)
    db.add(prop)
    await db.commit()
    await db.refresh(prop)
    return prop


async def get_property(db: AsyncSession, property_id: str) -> Property | None:
    return await db.get(Property, property_id)


async def list_properties(db: AsyncSession) -> list[Property]:
    result = await db.execute(select(Property).order_by(Property.created_at.desc()))
    return list(result.scalars().all())


# ── User ─────────────────────────────────────────────────

async def create_user(
    db: AsyncSession, email: str, first_name: str = "", last_name: str = "", role: str = "inspector",
) -> User:
    user = User(email=email, first_name=first_name, last_name=last_name, role=role)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


# ── Inspection ───────────────────────────────────────────

async def create_inspection(db: AsyncSession, **fields) -> Inspection:
    inspection = Inspection(**fields)
    db.add(inspection)
    await db.commit()
    await db.refresh(inspection)
    return inspection


async def get_inspection(db: AsyncSession, inspection_id: str) -> Inspection | None:
    return await db.get(Inspection, inspection_id)


async def list_inspections(
    db: AsyncSession,
    property_id: str | None = None,
    inspector_id: str | None = None,
    status: str | None = None,
) -> list[Inspection]:
    query = select(Inspection)
    if property_id:
        query = query.where(Inspection.property_id == property_id)
    if inspector_id:
        query = query.where(Inspection.inspector_id == inspector_id)
    if status:
        query = query.where(Inspection.status == status)
    query = query.order_by(Inspection.scheduled_date.desc().nulls_last(), Inspection.id)
    result = await db.execute(query)
    return list(result.scalars().all())


async def update_inspection(db: AsyncSession, inspection: Inspection, **kwargs) -> Inspection:
    for k, v in kwargs.items():
        if v is not None:
            setattr(inspection, k, v)
    await db.commit()
    await db.refresh(inspection)
    return inspection


async def delete_inspection(db: AsyncSession, inspection: Inspection) -> None:
    """Delete an inspection with its deficiencies and photos."""
    await db.delete(inspection)
    await db.commit()


# ── Deficiency ───────────────────────────────────────────

async def create_deficiency(db: AsyncSession, inspection_id: str, **fields) -> Deficiency:
    deficiency = Deficiency(inspection_id=inspection_id, **fields)
    db.add(deficiency)
    await db.commit()
    await db.refresh(deficiency)
    return deficiency


async def get_deficiency(db: AsyncSession, deficiency_id: str) -> Deficiency | None:
    return await db.get(Deficiency, deficiency_id)


async def list_deficiencies_for_inspection(db: AsyncSession, inspection_id: str) -> list[Deficiency]:
    result = await db.execute(
        select(Deficiency)
        .where(Deficiency.inspection_id == inspection_id)
        .order_by(Deficiency.created_at, Deficiency.id)
    )
    return list(result.scalars().all())


async def update_deficiency(db: AsyncSession, deficiency: Deficiency, **kwargs) -> Deficiency:
    for k, v in kwargs.items():
        if v is not None:
            setattr(deficiency, k, v)
    await db.commit()
    await db.refresh(deficiency)
    return deficiency


# ── Photo ────────────────────────────────────────────────

async def create_photo(
    db: AsyncSession, inspection_id: str, file_path: str = "",
    kind: str = "overview", deficiency_id: str | None = None,
) -> Photo:
    photo = Photo(inspection_id=inspection_id, file_path=file_path, kind=kind, deficiency_id=deficiency_id)
    db.add(photo)
    await db.commit()
    await db.refresh(photo)
    return photo


async def count_photos_for_inspection(db: AsyncSession, inspection_id: str) -> int:
    result = await db.execute(
        select(func.count()).select_from(Photo).where(Photo.inspection_id == inspection_id)
    )
    return result.scalar_one()


# ── InspectionSession ────────────────────────────────────

async def create_inspection_session(
    db: AsyncSession, property_id: str, inspector_id: str,
    session_data: dict, status: str = "active", expires_at: datetime | None = None,
) -> InspectionSession:
    sess = InspectionSession(
        property_id=property_id, inspector_id=inspector_id,
        session_data=session_data, status=status, expires_at=expires_at,
    )
    db.add(sess)
    await db.commit()
    await db.refresh(sess)
    return sess


async def get_inspection_session(db: AsyncSession, session_id: str) -> InspectionSession | None:
    return await db.get(InspectionSession, session_id)


async def find_active_session(
    db: AsyncSession, property_id: str, inspector_id: str,
) -> InspectionSession | None:
    """Newest active session for this property + inspector, if any."""
    result = await db.execute(
        select(InspectionSession)
        .where(
            InspectionSession.property_id == property_id,
            InspectionSession.inspector_id == inspector_id,
            InspectionSession.status == "active",
        )
        .order_by(InspectionSession.last_updated.desc())
        .limit(1)
    )
    return result.scalars().first()


async def update_inspection_session(
    db: AsyncSession, sess: InspectionSession, session_data: dict, status: str,
) -> InspectionSession:
    sess.session_data = session_data
    sess.status = status
    sess.last_updated = datetime.now(timezone.utc)
    await db.commit()
    await db.refresh(sess)
    return sess


async def abandon_active_sessions(db: AsyncSession, property_id: str, inspector_id: str) -> None:
    await db.execute(
        update(InspectionSession)
        .where(
            InspectionSession.property_id == property_id,
            InspectionSession.inspector_id == inspector_id,
            InspectionSession.status == "active",
        )
        .values(status="abandoned")
    )
    await db.commit()


async def latest_session_status_by_property(db: AsyncSession, property_ids: list[str]) -> dict[str, str]:
    """Map property_id -> status of its most recently updated inspection session."""
    if not property_ids:
        return {}
    result = await db.execute(
        select(InspectionSession)
        .where(InspectionSession.property_id.in_(property_ids))
        .order_by(InspectionSession.last_updated)
    )
    latest: dict[str, str] = {}
    for sess in result.scalars().all():
        latest[sess.property_id] = sess.status
    return latest
