"""Inspection model: one scheduled or completed roof inspection."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import String, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from roofcheck.models.base import Base, ULIDMixin, utcnow


class Inspection(Base, ULIDMixin):
    __tablename__ = "inspections"

    property_id: Mapped[str | None] = mapped_column(String(26), ForeignKey("properties.id"), nullable=True)
    inspector_id: Mapped[str | None] = mapped_column(String(26), ForeignKey("users.id"), nullable=True)
    scheduled_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[str] = mapped_column(String(30), default="scheduled")  # scheduled | in_progress | completed | cancelled
    inspection_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    priority: Mapped[str | None] = mapped_column(String(20), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    weather_conditions: Mapped[str | None] = mapped_column(String(200), nullable=True)
    ready_to_send: Mapped[bool] = mapped_column(Boolean, default=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow,
    )

    property = relationship("Property", back_populates="inspections", lazy="selectin")
    inspector = relationship("User", lazy="selectin")
    deficiencies = relationship("Deficiency", back_populates="inspection", lazy="selectin",
                                cascade="all, delete-orphan")
    photos = relationship("Photo", back_populates="inspection", cascade="all, delete-orphan")
