from __future__ import annotations
from datetime import datetime
from typing import Literal
from pydantic import BaseModel

from roofcheck.schemas.deficiency import DeficiencyIn

UrgencyLevel = Literal["low", "medium", "high", "critical", "emergency"]


class RiskFactors(BaseModel):
    structural: bool = False
    safety: bool = False
    weather_exposure: bool = False
    electrical: bool = False


class CriticalityAnalysis(BaseModel):
    score: int
    is_immediate_repair: bool
    needs_supervisor_alert: bool
    is_emergency: bool
    urgency_level: UrgencyLevel
    triggered_keywords: list[str] = []
    risk_factors: RiskFactors = RiskFactors()
    recommended_actions: list[str] = []
    confidence_level: int = 0  # keyword/description heuristic, not a probability


class InspectionCriticalAnalysis(BaseModel):
    has_critical_issues: bool
    critical_issue_count: int
    highest_criticality_score: int
    emergency_issue_count: int
    total_risk_score: int
    recommended_inspection_actions: list[str] = []
    requires_immediate_response: bool


class CriticalIssueAlert(BaseModel):
    deficiency: DeficiencyIn
    analysis: CriticalityAnalysis
    timestamp: datetime
