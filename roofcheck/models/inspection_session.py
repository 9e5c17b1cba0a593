"""InspectionSession model: autosaved in-progress inspection state."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import String, JSON, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from roofcheck.models.base import Base, ULIDMixin, utcnow


class InspectionSession(Base, ULIDMixin):
    __tablename__ = "inspection_sessions"

    property_id: Mapped[str] = mapped_column(String(26), ForeignKey("properties.id"))
    inspector_id: Mapped[str] = mapped_column(String(26), ForeignKey("users.id"))
    session_data: Mapped[dict] = mapped_column(JSON, default=dict)
    status: Mapped[str] = mapped_column(String(20), default="active")  # active | completed | abandoned
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_updated: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
