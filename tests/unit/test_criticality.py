import pytest

from roofcheck.config import CriticalityConfig
from roofcheck.schemas import DeficiencyIn
from roofcheck.services.criticality import CriticalityScorer


@pytest.fixture
def scorer():
    return CriticalityScorer()


def test_high_severity_without_keywords_scores_80(scorer):
    analysis = scorer.analyze_deficiency(DeficiencyIn(severity="high"))
    assert analysis.score == 80
    assert analysis.is_immediate_repair is True
    assert analysis.needs_supervisor_alert is True
    assert analysis.is_emergency is False
    assert analysis.urgency_level == "critical"
    assert analysis.triggered_keywords == []
    assert analysis.confidence_level == 0
    assert analysis.recommended_actions == [
        "Schedule immediate repair within 24 hours",
        "Notify supervisor and property manager",
        "Monitor for worsening conditions",
    ]


def test_low_severity_scores_low(scorer):
    analysis = scorer.analyze_deficiency(DeficiencyIn(severity="low"))
    assert analysis.score == 10
    assert analysis.urgency_level == "low"
    assert analysis.needs_supervisor_alert is False
    assert analysis.recommended_actions == []


def test_missing_severity_scores_zero(scorer):
    analysis = scorer.analyze_deficiency(DeficiencyIn())
    assert analysis.score == 0
    assert analysis.urgency_level == "low"


def test_type_and_severity_multipliers(scorer):
    # 20 base * 1.5 membrane * 1.5 medium
    analysis = scorer.analyze_deficiency(DeficiencyIn(type="Membrane", severity="medium"))
    assert analysis.score == 45
    assert analysis.urgency_level == "medium"


def test_category_used_when_type_missing(scorer):
    analysis = scorer.analyze_deficiency(DeficiencyIn(category="membrane", severity="medium"))
    assert analysis.score == 45


def test_structural_damage_is_emergency(scorer):
    deficiency = DeficiencyIn(type="structural", severity="high", description="Structural damage")
    analysis = scorer.analyze_deficiency(deficiency)

    assert analysis.score == 100
    assert analysis.is_immediate_repair is True
    assert analysis.is_emergency is True
    assert analysis.urgency_level == "emergency"
    assert analysis.risk_factors.structural is True
    assert analysis.triggered_keywords == ["structural damage", "structural"]
    assert analysis.confidence_level == 42
    assert analysis.recommended_actions[0] == "EMERGENCY: Contact supervisor immediately"
    assert analysis.recommended_actions[-1] == (
        "Restrict access to affected area and schedule structural engineer review"
    )


def test_emergency_keyword_forces_emergency_urgency(scorer):
    analysis = scorer.analyze_deficiency(DeficiencyIn(severity="low", description="urgent"))
    assert analysis.score == 35
    assert analysis.urgency_level == "emergency"
    assert analysis.is_emergency is False


def test_score_rounds_half_up(scorer):
    # (20 + 15) * 1.5 = 52.5
    analysis = scorer.analyze_deficiency(DeficiencyIn(severity="medium", description="leak"))
    assert analysis.score == 53
    assert analysis.risk_factors.weather_exposure is True
    assert analysis.recommended_actions == ["Implement temporary weather protection"]
    assert analysis.confidence_level == 20


def test_electrical_risk_factor(scorer):
    analysis = scorer.analyze_deficiency(DeficiencyIn(severity="low", description="frayed cable"))
    assert analysis.risk_factors.electrical is True
    assert "Isolate power and engage a licensed electrician" in analysis.recommended_actions


def test_enhance_fills_derived_fields(scorer):
    enhanced = scorer.enhance_deficiency(DeficiencyIn(id="d1", severity="high"))
    assert enhanced.criticality_score == 80
    assert enhanced.is_immediate_repair is True
    assert enhanced.needs_supervisor_alert is True
    assert enhanced.detection_timestamp is not None
    assert enhanced.id == "d1"


def test_enhance_does_not_rescore(scorer):
    first = scorer.enhance_deficiency(DeficiencyIn(severity="high"))
    scorer.update_config(immediate_repair_threshold=95)

    second = scorer.enhance_deficiency(first)
    assert second.criticality_score == 80
    assert second.is_immediate_repair is True
    assert second.detection_timestamp == first.detection_timestamp

    forced = scorer.enhance_deficiency(first, force=True)
    assert forced.is_immediate_repair is False


def test_enhance_leaves_input_untouched(scorer):
    original = DeficiencyIn(severity="high")
    scorer.enhance_deficiency(original)
    assert original.criticality_score is None
    assert original.detection_timestamp is None


def test_config_changes_are_isolated():
    config = CriticalityConfig()
    a = CriticalityScorer(config)
    b = CriticalityScorer(config)

    a.update_config(immediate_repair_threshold=85)
    assert a.config.immediate_repair_threshold == 85
    assert b.config.immediate_repair_threshold == 80
    assert config.immediate_repair_threshold == 80

    exposed = b.config
    exposed.critical_keywords.append("made up")
    assert "made up" not in b.config.critical_keywords


def test_analyze_inspection_with_critical_issue(scorer):
    result = scorer.analyze_inspection([
        DeficiencyIn(severity="high"),
        DeficiencyIn(severity="low"),
    ])
    assert result.has_critical_issues is True
    assert result.critical_issue_count == 1
    assert result.emergency_issue_count == 0
    assert result.highest_criticality_score == 80
    assert result.total_risk_score == 90
    assert result.requires_immediate_response is False
    assert result.recommended_inspection_actions == [
        "This inspection contains critical issues requiring supervisor attention",
        "1 critical issues identified",
    ]


def test_analyze_inspection_with_emergency(scorer):
    result = scorer.analyze_inspection([
        DeficiencyIn(type="structural", severity="high", description="Structural damage"),
        DeficiencyIn(severity="high"),
    ])
    assert result.emergency_issue_count == 1
    assert result.critical_issue_count == 2
    assert result.requires_immediate_response is True
    assert result.recommended_inspection_actions[0].startswith("URGENT")
    assert result.recommended_inspection_actions[-1] == "1 emergency-level issues require immediate action"


def test_analyze_inspection_empty(scorer):
    result = scorer.analyze_inspection([])
    assert result.has_critical_issues is False
    assert result.highest_criticality_score == 0
    assert result.total_risk_score == 0
    assert result.recommended_inspection_actions == []
