"""Deficiency model: a defect recorded during an inspection."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import String, Text, Float, Integer, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from roofcheck.models.base import Base, ULIDMixin


class Deficiency(Base, ULIDMixin):
    __tablename__ = "deficiencies"

    inspection_id: Mapped[str] = mapped_column(String(26), ForeignKey("inspections.id"))
    type: Mapped[str] = mapped_column(String(100), default="")
    category: Mapped[str] = mapped_column(String(100), default="")
    location: Mapped[str] = mapped_column(String(255), default="")
    description: Mapped[str] = mapped_column(Text, default="")
    severity: Mapped[str | None] = mapped_column(String(10), nullable=True)  # low | medium | high
    estimated_cost: Mapped[float] = mapped_column(Float, default=0.0)
    status: Mapped[str] = mapped_column(String(20), default="identified")

    # Set once by the criticality scorer
    is_immediate_repair: Mapped[bool] = mapped_column(Boolean, default=False)
    needs_supervisor_alert: Mapped[bool] = mapped_column(Boolean, default=False)
    criticality_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    detection_timestamp: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    inspection = relationship("Inspection", back_populates="deficiencies")
    photos = relationship("Photo", back_populates="deficiency", lazy="selectin")
