"""Keyword-weighted criticality scoring for inspection deficiencies.

Each deficiency gets a 0-100 score built from a severity base, fixed bonuses for
each keyword family that matches its text, and type/severity multipliers. The
score drives the escalation flags (supervisor alert, immediate repair,
emergency), an urgency bucket and a list of recommended actions.

The scorer is deterministic for a given configuration and never raises on
missing text; empty fields simply score on severity alone.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable

from roofcheck.config import CriticalityConfig
from roofcheck.schemas.criticality import (
    CriticalityAnalysis,
    InspectionCriticalAnalysis,
    RiskFactors,
    UrgencyLevel,
)
from roofcheck.schemas.deficiency import DeficiencyIn

BASE_SEVERITY_SCORES = {"high": 40, "medium": 20, "low": 10}

CRITICAL_BONUS = 30
HIGH_PRIORITY_BONUS = 15
EMERGENCY_BONUS = 25
STRUCTURAL_BONUS = 20
SAFETY_BONUS = 20

WEATHER_KEYWORDS = ("leak", "water", "rain", "snow", "wind", "storm", "weather", "exposure")
ELECTRICAL_KEYWORDS = ("electrical", "electric", "wire", "cable", "power", "voltage", "shock")


@dataclass
class KeywordMatches:
    score: int = 0
    matched: list[str] = field(default_factory=list)
    match_count: int = 0
    emergency: bool = False
    structural: bool = False
    safety: bool = False


def _normalize(text: str | None) -> str:
    return (text or "").lower().strip()


def _find_keywords(text: str, keywords: Iterable[str]) -> list[str]:
    return [kw for kw in keywords if kw.lower() in text]


class CriticalityScorer:
    """Scores deficiencies against a CriticalityConfig.

    The config passed in is copied, so tuning one scorer (e.g. per client) never
    leaks into another.
    """

    def __init__(self, config: CriticalityConfig | None = None):
        self._config = config.model_copy(deep=True) if config else CriticalityConfig()

    @property
    def config(self) -> CriticalityConfig:
        return self._config.model_copy(deep=True)

    def update_config(self, **overrides) -> None:
        """Replace individual config fields, e.g. ``update_config(emergency_threshold=95)``."""
        self._config = self._config.model_copy(update=overrides, deep=True)

    # ── Single deficiency ────────────────────────────────────

    def analyze_deficiency(self, deficiency: DeficiencyIn) -> CriticalityAnalysis:
        cfg = self._config
        description = _normalize(deficiency.description)
        location = _normalize(deficiency.location)
        dtype = _normalize(deficiency.type or deficiency.category)
        combined = f"{description} {location} {dtype}"

        keywords = self._match_keywords(combined)

        score = float(BASE_SEVERITY_SCORES.get(deficiency.severity or "", 0))
        score += keywords.score
        score *= self._type_multiplier(dtype)
        score *= self._severity_multiplier(deficiency.severity)
        final = max(0, min(100, math.floor(score + 0.5)))

        risk = RiskFactors(
            structural=keywords.structural,
            safety=keywords.safety,
            weather_exposure=any(kw in combined for kw in WEATHER_KEYWORDS),
            electrical=any(kw in combined for kw in ELECTRICAL_KEYWORDS),
        )

        return CriticalityAnalysis(
            score=final,
            is_immediate_repair=final >= cfg.immediate_repair_threshold,
            needs_supervisor_alert=final >= cfg.supervisor_alert_threshold,
            is_emergency=final >= cfg.emergency_threshold,
            urgency_level=self._urgency_level(final, keywords.emergency),
            triggered_keywords=keywords.matched,
            risk_factors=risk,
            recommended_actions=self._recommended_actions(final, risk),
            confidence_level=self._confidence(keywords.match_count, len(description)),
        )

    def enhance_deficiency(self, deficiency: DeficiencyIn, force: bool = False) -> DeficiencyIn:
        """Return a copy with the derived criticality fields filled in.

        A deficiency that already carries a criticality_score is returned as-is
        unless ``force`` is set.
        """
        if deficiency.criticality_score is not None and not force:
            return deficiency.model_copy()
        return self.apply_analysis(deficiency, self.analyze_deficiency(deficiency))

    def apply_analysis(self, deficiency: DeficiencyIn, analysis: CriticalityAnalysis) -> DeficiencyIn:
        return deficiency.model_copy(update={
            "is_immediate_repair": analysis.is_immediate_repair,
            "needs_supervisor_alert": analysis.needs_supervisor_alert,
            "criticality_score": analysis.score,
            "detection_timestamp": datetime.now(timezone.utc),
        })

    def enhance_deficiencies(self, deficiencies: Iterable[DeficiencyIn], force: bool = False) -> list[DeficiencyIn]:
        return [self.enhance_deficiency(d, force=force) for d in deficiencies]

    # ── Inspection rollup ────────────────────────────────────

    def analyze_inspection(self, deficiencies: Iterable[DeficiencyIn]) -> InspectionCriticalAnalysis:
        analyses = [self.analyze_deficiency(d) for d in deficiencies]
        critical = [a for a in analyses if a.is_immediate_repair or a.needs_supervisor_alert]
        emergency = [a for a in analyses if a.is_emergency]

        recommendations: list[str] = []
        if emergency:
            recommendations.append("URGENT: This inspection contains emergency issues requiring immediate response")
            recommendations.append("Contact emergency repair team and supervisor immediately")
            recommendations.append(f"{len(emergency)} emergency-level issues require immediate action")
        elif critical:
            recommendations.append("This inspection contains critical issues requiring supervisor attention")
            recommendations.append(f"{len(critical)} critical issues identified")

        return InspectionCriticalAnalysis(
            has_critical_issues=bool(critical),
            critical_issue_count=len(critical),
            highest_criticality_score=max((a.score for a in analyses), default=0),
            emergency_issue_count=len(emergency),
            total_risk_score=sum(a.score for a in analyses),
            recommended_inspection_actions=recommendations,
            requires_immediate_response=bool(emergency),
        )

    # ── Helpers ──────────────────────────────────────────────

    def _match_keywords(self, text: str) -> KeywordMatches:
        cfg = self._config
        result = KeywordMatches()
        hits: list[str] = []

        families = (
            (cfg.critical_keywords, CRITICAL_BONUS, None),
            (cfg.high_priority_keywords, HIGH_PRIORITY_BONUS, None),
            (cfg.emergency_keywords, EMERGENCY_BONUS, "emergency"),
            (cfg.structural_keywords, STRUCTURAL_BONUS, "structural"),
            (cfg.safety_keywords, SAFETY_BONUS, "safety"),
        )
        for keywords, bonus, flag in families:
            found = _find_keywords(text, keywords)
            if not found:
                continue
            result.score += bonus
            hits.extend(found)
            if flag:
                setattr(result, flag, True)

        result.match_count = len(hits)
        result.matched = list(dict.fromkeys(hits))
        return result

    def _type_multiplier(self, dtype: str) -> float:
        for key, multiplier in self._config.type_multipliers.items():
            if key.lower() in dtype:
                return multiplier
        return 1.0

    def _severity_multiplier(self, severity: str | None) -> float:
        if severity is None:
            return 1.0
        return getattr(self._config.severity_multipliers, severity, 1.0)

    def _urgency_level(self, score: int, has_emergency_keywords: bool) -> UrgencyLevel:
        if score >= 90 or has_emergency_keywords:
            return "emergency"
        if score >= 80:
            return "critical"
        if score >= 60:
            return "high"
        if score >= 30:
            return "medium"
        return "low"

    def _recommended_actions(self, score: int, risk: RiskFactors) -> list[str]:
        actions: list[str] = []
        if score >= 90:
            actions += [
                "EMERGENCY: Contact supervisor immediately",
                "Evacuate area if necessary",
                "Document with photos and detailed notes",
            ]
        elif score >= 80:
            actions += [
                "Schedule immediate repair within 24 hours",
                "Notify supervisor and property manager",
                "Monitor for worsening conditions",
            ]
        elif score >= 60:
            actions += [
                "Alert supervisor for review and prioritization",
                "Schedule repair within 1 week",
            ]

        if risk.safety:
            actions.append("Implement safety barriers or warnings")
        if risk.structural:
            actions.append("Restrict access to affected area and schedule structural engineer review")
        if risk.weather_exposure:
            actions.append("Implement temporary weather protection")
        if risk.electrical:
            actions.append("Isolate power and engage a licensed electrician")
        return actions

    def _confidence(self, match_count: int, description_length: int) -> int:
        return math.floor(min(100, match_count * 20 + min(description_length / 10, 40)) + 0.5)
