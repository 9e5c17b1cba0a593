"""SQLAlchemy ORM models for the inspection records store."""

from roofcheck.models.base import Base
from roofcheck.models.property import Property
from roofcheck.models.user import User
from roofcheck.models.inspection import Inspection
from roofcheck.models.deficiency import Deficiency
from roofcheck.models.photo import Photo
from roofcheck.models.inspection_session import InspectionSession

__all__ = [
    "Base", "Property", "User", "Inspection",
    "Deficiency", "Photo", "InspectionSession",
]
