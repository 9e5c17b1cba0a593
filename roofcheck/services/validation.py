"""Completeness checks run before an inspection is handed to report automation."""

from __future__ import annotations

import logging
from typing import Sequence

from roofcheck.config import ValidationCriteria
from roofcheck.db.store import RecordStore
from roofcheck.schemas import DeficiencyIn, InspectionSyncData, ValidationResult

logger = logging.getLogger(__name__)


def _is_blank(value) -> bool:
    if isinstance(value, str):
        return not value.strip()
    return not value


class InspectionValidator:
    def __init__(self, criteria: ValidationCriteria | None = None, store: RecordStore | None = None):
        self._criteria = criteria.model_copy(deep=True) if criteria else ValidationCriteria()
        self._store = store

    @property
    def criteria(self) -> ValidationCriteria:
        return self._criteria.model_copy(deep=True)

    def update_criteria(self, **overrides) -> None:
        self._criteria = self._criteria.model_copy(update=overrides, deep=True)

    async def validate_inspection(self, inspection_id: str) -> ValidationResult:
        """Load the inspection with its deficiencies and photos, then validate.

        Lookup failures come back as a failed result rather than an exception.
        """
        if self._store is None:
            raise RuntimeError("InspectionValidator has no record store configured")
        try:
            inspection = await self._store.get_inspection(inspection_id)
            if inspection is None:
                return ValidationResult(
                    is_valid=False,
                    errors=["Inspection not found"],
                    summary="Inspection validation failed - inspection not found",
                )
            deficiencies = await self._store.list_deficiencies(inspection_id)
            total_photos = await self._store.count_photos(inspection_id)
        except Exception as e:
            logger.exception("Validation of inspection %s failed", inspection_id)
            return ValidationResult(
                is_valid=False,
                errors=[f"Validation process failed: {str(e) or 'Unknown error'}"],
                summary="Inspection validation failed due to system error",
            )
        return self.validate_inspection_sync(inspection, deficiencies, total_photos)

    def validate_inspection_sync(
        self,
        inspection: InspectionSyncData,
        deficiencies: Sequence[DeficiencyIn],
        total_photos: int,
    ) -> ValidationResult:
        errors: list[str] = []
        warnings: list[str] = []

        if inspection.status != "completed":
            errors.append(f"Inspection status must be 'completed', currently: '{inspection.status}'")

        self._check_inspection_fields(inspection, errors)
        self._check_deficiencies(deficiencies, errors, warnings)
        self._check_photos(total_photos, errors, warnings)

        is_valid = not errors
        return ValidationResult(
            is_valid=is_valid,
            errors=errors,
            warnings=warnings or None,
            summary=self._summary(inspection, len(deficiencies), total_photos, is_valid),
        )

    def _check_inspection_fields(self, inspection: InspectionSyncData, errors: list[str]) -> None:
        for name in self._criteria.required_inspection_fields:
            if _is_blank(getattr(inspection, name, None)):
                errors.append(f"Inspection field '{name}' is required but empty")

    def _check_deficiencies(
        self, deficiencies: Sequence[DeficiencyIn], errors: list[str], warnings: list[str],
    ) -> None:
        minimum = self._criteria.minimum_deficiencies
        if len(deficiencies) < minimum:
            errors.append(f"At least {minimum} deficiency required, found {len(deficiencies)}")
            return

        for i, deficiency in enumerate(deficiencies, start=1):
            for name in self._criteria.required_deficiency_fields:
                if _is_blank(getattr(deficiency, name, None)):
                    errors.append(f"Deficiency {i}: field '{name}' is required but empty")
            if not deficiency.photos:
                warnings.append(f"Deficiency {i} has no photos - consider adding visual evidence")

    def _check_photos(self, total_photos: int, errors: list[str], warnings: list[str]) -> None:
        minimum = self._criteria.minimum_photos
        if total_photos < minimum:
            errors.append(f"At least {minimum} photos required, found {total_photos}")
        elif total_photos < minimum + 2:
            warnings.append(f"Only {total_photos} photos found - consider adding more for comprehensive documentation")

    def _summary(self, inspection: InspectionSyncData, deficiency_count: int, photo_count: int, is_valid: bool) -> str:
        property_name = (inspection.property.property_name if inspection.property else "") or "Unknown Property"
        inspector_name = "Unknown Inspector"
        if inspection.inspector:
            full = f"{inspection.inspector.first_name or ''} {inspection.inspector.last_name or ''}".strip()
            inspector_name = full or inspector_name

        if is_valid:
            return (
                f"✅ Inspection for {property_name} by {inspector_name} passed validation "
                f"with {deficiency_count} deficiencies and {photo_count} photos."
            )
        return (
            f"❌ Inspection for {property_name} by {inspector_name} failed validation "
            f"with {deficiency_count} deficiencies and {photo_count} photos. "
            "Review requirements and complete missing items."
        )
