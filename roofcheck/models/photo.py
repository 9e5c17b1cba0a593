from __future__ import annotations

from sqlalchemy import String, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from roofcheck.models.base import Base, ULIDMixin


class Photo(Base, ULIDMixin):
    __tablename__ = "photos"

    inspection_id: Mapped[str] = mapped_column(String(26), ForeignKey("inspections.id"))
    deficiency_id: Mapped[str | None] = mapped_column(String(26), ForeignKey("deficiencies.id"), nullable=True)
    kind: Mapped[str] = mapped_column(String(20), default="overview")  # overview | deficiency
    file_path: Mapped[str] = mapped_column(String(500), default="")

    inspection = relationship("Inspection", back_populates="photos")
    deficiency = relationship("Deficiency", back_populates="photos")
