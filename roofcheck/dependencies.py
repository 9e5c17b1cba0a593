"""FastAPI dependency providers for settings, the records store and services."""

from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from roofcheck.config import Settings, get_settings
from roofcheck.db.engine import async_session_factory
from roofcheck.db.store import RecordStore, SqlRecordStore
from roofcheck.services.criticality import CriticalityScorer
from roofcheck.services.validation import InspectionValidator
from roofcheck.services.workflow_relay import WorkflowRelay


@lru_cache
def get_settings_dep() -> Settings:
    return get_settings()


def get_store() -> RecordStore:
    return SqlRecordStore(async_session_factory)


def get_scorer(settings: Settings = Depends(get_settings_dep)) -> CriticalityScorer:
    return CriticalityScorer(settings.criticality)


def get_validator(
    settings: Settings = Depends(get_settings_dep),
    store: RecordStore = Depends(get_store),
) -> InspectionValidator:
    return InspectionValidator(settings.validation, store=store)


def get_relay(settings: Settings = Depends(get_settings_dep)) -> WorkflowRelay:
    return WorkflowRelay(settings.workflow_relay)
