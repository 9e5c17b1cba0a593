"""Application configuration loaded from config.yaml + environment variables."""

from __future__ import annotations

import yaml
from pathlib import Path
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.yaml"


def _load_yaml() -> dict:
    if _CONFIG_PATH.exists():
        with open(_CONFIG_PATH) as f:
            return yaml.safe_load(f) or {}
    return {}


_yaml = _load_yaml()


class SeverityMultipliers(BaseModel):
    low: float = 1.0
    medium: float = 1.5
    high: float = 2.0


class CriticalityConfig(BaseSettings):
    critical_keywords: list[str] = Field(default_factory=lambda: [
        "roof failure", "membrane failure", "structural damage", "structural failure",
        "collapse", "falling", "dangerous", "unsafe", "emergency", "immediate",
        "leak severe", "water intrusion", "mold", "electrical hazard",
        "safety hazard", "injury risk", "slip hazard", "fall hazard",
        "imminent failure", "catastrophic", "life threatening", "urgent repair",
    ])
    high_priority_keywords: list[str] = Field(default_factory=lambda: [
        "leak", "water damage", "ponding", "cracking", "separation",
        "deterioration", "wear", "aging", "maintenance needed", "damaged",
        "broken", "missing", "loose", "corroded", "rusted",
    ])
    structural_keywords: list[str] = Field(default_factory=lambda: [
        "beam", "joist", "deck", "support", "foundation", "wall",
        "structural", "load bearing", "stability", "deflection",
    ])
    safety_keywords: list[str] = Field(default_factory=lambda: [
        "trip", "slip", "fall", "sharp", "exposed", "hazard",
        "dangerous", "unsafe", "accident", "injury",
    ])
    emergency_keywords: list[str] = Field(default_factory=lambda: [
        "emergency", "immediate", "urgent", "asap", "now",
        "critical", "severe", "major", "catastrophic",
    ])

    immediate_repair_threshold: int = 80
    supervisor_alert_threshold: int = 60
    emergency_threshold: int = 90

    severity_multipliers: SeverityMultipliers = Field(default_factory=SeverityMultipliers)
    # Checked in order; the first key contained in the deficiency type wins.
    type_multipliers: dict[str, float] = Field(default_factory=lambda: {
        "structural": 2.0,
        "safety": 1.8,
        "membrane": 1.5,
        "flashing": 1.3,
        "drainage": 1.2,
        "penetration": 1.1,
        "accessory": 1.0,
    })


class ValidationCriteria(BaseSettings):
    minimum_deficiencies: int = 1
    minimum_photos: int = 3
    required_deficiency_fields: list[str] = Field(default_factory=lambda: [
        "type", "severity", "description",
    ])
    required_inspection_fields: list[str] = Field(default_factory=lambda: [
        "notes", "status",
    ])


class SyncConfig(BaseSettings):
    auto_refresh: bool = True
    refresh_interval: float = 30.0  # seconds
    enable_real_time_sync: bool = True
    debounce_window: float = 0.5  # seconds


class WorkflowRelayConfig(BaseSettings):
    webhook_base: str = "http://localhost:5678/webhook"
    secret: str = ""
    origin: str = "roofcheck"
    timeout: float = 30.0
    workflows: dict[str, str] = Field(default_factory=lambda: {
        "deficiency_alerts": "roof-deficiency-alerts",
        "inspection_review": "roof-inspection-review",
        "inspection_complete": "roof-inspection-complete",
        "campaign": "roof-inspection-campaign",
    })

    model_config = {"env_prefix": "WORKFLOW_RELAY_"}


class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///data/roofcheck.db"
    criticality: CriticalityConfig = Field(default_factory=CriticalityConfig)
    validation: ValidationCriteria = Field(default_factory=ValidationCriteria)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    workflow_relay: WorkflowRelayConfig = Field(default_factory=WorkflowRelayConfig)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


def get_settings() -> Settings:
    """Build Settings by merging YAML defaults with env overrides."""
    y = _yaml
    crit = CriticalityConfig(**y.get("criticality", {}))
    val = ValidationCriteria(**y.get("validation", {}))
    sync = SyncConfig(**y.get("sync", {}))
    relay = WorkflowRelayConfig(**y.get("workflow_relay", {}))
    db_url = y.get("database", {}).get("url", "sqlite+aiosqlite:///data/roofcheck.db")
    return Settings(
        database_url=db_url,
        criticality=crit,
        validation=val,
        sync=sync,
        workflow_relay=relay,
    )
