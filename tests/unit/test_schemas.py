import pytest
from pydantic import ValidationError

from roofcheck.schemas import (
    DeficiencyIn,
    InspectionStatusUpdate,
    RelayResponse,
    ValidationRequest,
    WorkflowTrigger,
    WSMessage,
)


def test_deficiency_defaults():
    d = DeficiencyIn()
    assert d.severity is None
    assert d.status == "identified"
    assert d.photos == []
    assert d.criticality_score is None
    assert d.is_immediate_repair is False


def test_deficiency_rejects_unknown_severity():
    with pytest.raises(ValidationError):
        DeficiencyIn(severity="extreme")


def test_status_update_valid():
    body = InspectionStatusUpdate(status="completed")
    assert body.status == "completed"


def test_validation_request_nested():
    req = ValidationRequest(
        inspection={"id": "i1", "status": "completed", "property": {"property_name": "Harbor Plaza"}},
        deficiencies=[{"type": "membrane", "severity": "low"}],
        total_photos=4,
    )
    assert req.inspection.property.property_name == "Harbor Plaza"
    assert req.deficiencies[0].severity == "low"


def test_workflow_trigger_defaults():
    trigger = WorkflowTrigger(workflow="campaign")
    assert trigger.payload == {}


def test_relay_response_ok():
    assert RelayResponse(workflow="campaign", status_code=204).ok is True
    assert RelayResponse(workflow="campaign", status_code=409).ok is False


def test_ws_message_construction():
    msg = WSMessage(event="toast", title="Sync Error", variant="destructive")
    assert msg.event == "toast"
    assert msg.data == {}
