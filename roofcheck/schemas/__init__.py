"""Pydantic request/response schemas."""

from roofcheck.schemas.deficiency import Deficiency, DeficiencyIn, Severity
from roofcheck.schemas.inspection import (
    InspectionCreate, InspectionFilters, InspectionStatusUpdate, InspectionSyncData,
    InspectorRef, PropertyRef,
)
from roofcheck.schemas.criticality import (
    CriticalIssueAlert, CriticalityAnalysis, InspectionCriticalAnalysis, RiskFactors, UrgencyLevel,
)
from roofcheck.schemas.validation import ValidationRequest, ValidationResult
from roofcheck.schemas.workflow import FanOutResult, RelayResponse, WorkflowFanOut, WorkflowTrigger
from roofcheck.schemas.ws_messages import WSMessage

__all__ = [
    "Deficiency", "DeficiencyIn", "Severity",
    "InspectionCreate", "InspectionFilters", "InspectionStatusUpdate", "InspectionSyncData",
    "InspectorRef", "PropertyRef",
    "CriticalIssueAlert", "CriticalityAnalysis", "InspectionCriticalAnalysis",
    "RiskFactors", "UrgencyLevel",
    "ValidationRequest", "ValidationResult",
    "FanOutResult", "RelayResponse", "WorkflowFanOut", "WorkflowTrigger",
    "WSMessage",
]
