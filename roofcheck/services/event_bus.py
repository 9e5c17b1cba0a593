"""Typed in-process publish/subscribe bus for inspection domain events.

Each ``EventKind`` has exactly one payload model; ``publish`` rejects a payload
of the wrong type so listeners can rely on the shape they receive.
"""

from __future__ import annotations

import enum
import itertools
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

from pydantic import BaseModel

from roofcheck.schemas import CriticalIssueAlert, InspectionFilters, InspectionSyncData

logger = logging.getLogger(__name__)

MAX_HISTORY = 100


class EventKind(str, enum.Enum):
    INSPECTION_CREATED = "inspectionCreated"
    INSPECTION_UPDATED = "inspectionUpdated"
    INSPECTION_DELETED = "inspectionDeleted"
    INSPECTION_STATUS_CHANGED = "inspectionStatusChanged"
    DATA_REFRESH = "dataRefresh"
    DATA_STALE = "dataStale"
    DATA_SYNC = "dataSync"
    DATA_ERROR = "dataError"
    CRITICAL_ISSUE_DETECTED = "criticalIssueDetected"


class InspectionCreated(BaseModel):
    inspection: InspectionSyncData
    source: str = ""


class InspectionUpdated(BaseModel):
    inspection: InspectionSyncData
    updates: dict[str, Any] = {}
    source: str = ""


class InspectionDeleted(BaseModel):
    inspection_id: str
    source: str = ""


class InspectionStatusChanged(BaseModel):
    inspection_id: str
    new_status: str
    previous_status: str | None = None
    source: str = ""


class DataRefresh(BaseModel):
    source: str = ""
    filters: InspectionFilters | None = None


class DataStale(BaseModel):
    reason: str = ""
    source: str = ""


class DataSync(BaseModel):
    inspections: list[InspectionSyncData] = []
    sync_time: datetime
    filters: InspectionFilters | None = None
    source: str = ""


class DataError(BaseModel):
    error: str
    filters: InspectionFilters | None = None
    source: str = ""


class CriticalIssueDetected(BaseModel):
    alert: CriticalIssueAlert
    source: str = ""


PAYLOAD_TYPES: dict[EventKind, type[BaseModel]] = {
    EventKind.INSPECTION_CREATED: InspectionCreated,
    EventKind.INSPECTION_UPDATED: InspectionUpdated,
    EventKind.INSPECTION_DELETED: InspectionDeleted,
    EventKind.INSPECTION_STATUS_CHANGED: InspectionStatusChanged,
    EventKind.DATA_REFRESH: DataRefresh,
    EventKind.DATA_STALE: DataStale,
    EventKind.DATA_SYNC: DataSync,
    EventKind.DATA_ERROR: DataError,
    EventKind.CRITICAL_ISSUE_DETECTED: CriticalIssueDetected,
}


@dataclass(frozen=True)
class Event:
    kind: EventKind
    payload: BaseModel
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def source(self) -> str:
        return getattr(self.payload, "source", "")


Listener = Callable[[Event], None]


@dataclass
class _Subscription:
    id: int
    callback: Listener
    once: bool = False


class EventBus:
    def __init__(self, max_history: int = MAX_HISTORY):
        self._listeners: dict[EventKind, list[_Subscription]] = {}
        self._history: deque[Event] = deque(maxlen=max_history)
        self._ids = itertools.count(1)

    def subscribe(self, kind: EventKind, callback: Listener, once: bool = False) -> Callable[[], None]:
        """Register a listener; returns a callable that unsubscribes it."""
        sub = _Subscription(id=next(self._ids), callback=callback, once=once)
        self._listeners.setdefault(kind, []).append(sub)
        return lambda: self._remove(kind, sub.id)

    def once(self, kind: EventKind, callback: Listener) -> Callable[[], None]:
        return self.subscribe(kind, callback, once=True)

    def unsubscribe_all(self, kind: EventKind) -> None:
        self._listeners.pop(kind, None)

    def publish(self, kind: EventKind, payload: BaseModel) -> Event:
        expected = PAYLOAD_TYPES[kind]
        if not isinstance(payload, expected):
            raise TypeError(f"{kind.value} expects {expected.__name__}, got {type(payload).__name__}")

        event = Event(kind=kind, payload=payload)
        self._history.append(event)

        # Snapshot so listeners may unsubscribe while being called
        for sub in list(self._listeners.get(kind, [])):
            if sub.once:
                self._remove(kind, sub.id)
            try:
                sub.callback(event)
            except Exception:
                logger.exception("Event listener failed for %s", kind.value)
        return event

    def history(self, kind: EventKind | None = None) -> list[Event]:
        if kind is None:
            return list(self._history)
        return [e for e in self._history if e.kind == kind]

    def clear_history(self) -> None:
        self._history.clear()

    def active_listeners(self) -> dict[EventKind, int]:
        return {kind: len(subs) for kind, subs in self._listeners.items() if subs}

    def _remove(self, kind: EventKind, sub_id: int) -> None:
        subs = self._listeners.get(kind)
        if not subs:
            return
        self._listeners[kind] = [s for s in subs if s.id != sub_id]


event_bus = EventBus()
