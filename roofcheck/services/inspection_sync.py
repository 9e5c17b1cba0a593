"""Keeps a filtered, locally cached inspection list in step with the records store.

The cache is refreshed three ways: an initial fetch on ``start()``, a fixed
interval poll, and a debounced refetch whenever a create/update/delete/refresh
event arrives on the event bus. A status change published by any writer is
patched into the cached row in place, without a refetch. Fetches never
overlap: a trigger that arrives while one is in flight is dropped, not queued.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

from roofcheck.config import SyncConfig
from roofcheck.db.store import RecordStore
from roofcheck.schemas import InspectionFilters, InspectionSyncData
from roofcheck.services.debounce import Debouncer
from roofcheck.services.event_bus import (
    DataError,
    DataRefresh,
    DataSync,
    Event,
    EventBus,
    EventKind,
    InspectionCreated,
    InspectionDeleted,
    InspectionStatusChanged,
    InspectionUpdated,
    event_bus,
)
from roofcheck.services.ws_manager import ws_manager

logger = logging.getLogger(__name__)

SOURCE = "inspection_sync"

Notifier = Callable[[str, str, str], Awaitable[None]]

_REFETCH_EVENTS = (
    EventKind.INSPECTION_CREATED,
    EventKind.INSPECTION_UPDATED,
    EventKind.INSPECTION_DELETED,
    EventKind.DATA_REFRESH,
)


class SyncStatus(str, enum.Enum):
    IDLE = "idle"
    SYNCING = "syncing"
    ERROR = "error"
    STALE = "stale"


@dataclass(frozen=True)
class InspectionCounts:
    total: int
    scheduled: int
    completed: int
    in_progress: int
    past_due: int


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; they are stored as UTC
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _fingerprint(rows: list[InspectionSyncData]) -> list[tuple]:
    return [(r.id, r.status, r.updated_at) for r in rows]


class InspectionSyncCoordinator:
    def __init__(
        self,
        store: RecordStore,
        bus: EventBus | None = None,
        filters: InspectionFilters | None = None,
        options: SyncConfig | None = None,
        notify: Notifier | None = None,
    ):
        self._store = store
        self._bus = bus or event_bus
        self.filters = filters or InspectionFilters()
        self.options = options or SyncConfig()
        self._notify = notify or ws_manager.toast

        self._inspections: list[InspectionSyncData] = []
        self.status = SyncStatus.IDLE
        self.error: str | None = None
        self.last_sync_time: datetime | None = None
        self.fetch_count = 0

        self._in_flight = False
        self._closed = False
        self._poll_task: asyncio.Task | None = None
        self._unsubscribers: list[Callable[[], None]] = []
        self._debouncer = Debouncer(self._debounced_refresh, window=self.options.debounce_window)

    # ── Lifecycle ────────────────────────────────────────────

    async def start(self) -> None:
        if self.options.enable_real_time_sync:
            for kind in _REFETCH_EVENTS:
                self._unsubscribers.append(self._bus.subscribe(kind, self._on_refetch_event))
            self._unsubscribers.append(self._bus.subscribe(EventKind.DATA_STALE, self._on_stale))
            self._unsubscribers.append(
                self._bus.subscribe(EventKind.INSPECTION_STATUS_CHANGED, self._on_status_changed)
            )

        await self._fetch()

        if self.options.auto_refresh and self.options.refresh_interval > 0:
            self._poll_task = asyncio.create_task(self._poll_loop())

    async def close(self) -> None:
        """Stop polling, drop the pending debounce and unsubscribe.

        A debounced fetch in flight is cancelled. A fetch started by a direct
        ``refresh()`` call is left to finish and its result is ignored.
        """
        self._closed = True
        await self._debouncer.shutdown()
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        if self._poll_task is not None:
            self._poll_task.cancel()
            try:
                await self._poll_task
            except asyncio.CancelledError:
                pass
            self._poll_task = None

    async def __aenter__(self) -> InspectionSyncCoordinator:
        await self.start()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    # ── Read side ────────────────────────────────────────────

    @property
    def inspections(self) -> list[InspectionSyncData]:
        return list(self._inspections)

    @property
    def is_syncing(self) -> bool:
        return self.status == SyncStatus.SYNCING

    @property
    def is_stale(self) -> bool:
        return self.status == SyncStatus.STALE

    @property
    def has_error(self) -> bool:
        return self.status == SyncStatus.ERROR

    @property
    def debounce_pending(self) -> bool:
        return self._debouncer.pending

    def cancel_pending_refresh(self) -> None:
        self._debouncer.cancel()

    def counts(self, now: datetime | None = None) -> InspectionCounts:
        now = now or datetime.now(timezone.utc)
        rows = self._inspections
        return InspectionCounts(
            total=len(rows),
            scheduled=sum(1 for r in rows if r.status == "scheduled"),
            completed=sum(1 for r in rows if r.status == "completed"),
            in_progress=sum(1 for r in rows if r.status == "in_progress"),
            past_due=sum(
                1 for r in rows
                if r.status == "scheduled" and r.scheduled_date and _as_utc(r.scheduled_date) < now
            ),
        )

    # ── Refresh triggers ─────────────────────────────────────

    async def refresh(self) -> bool:
        """Fetch right away. Returns True if the cached list changed."""
        return await self._fetch()

    def force_sync(self) -> None:
        """Ask every coordinator on the bus (this one included) to refetch."""
        self._bus.publish(EventKind.DATA_REFRESH, DataRefresh(source=SOURCE, filters=self.filters))

    def mark_stale(self) -> None:
        self.status = SyncStatus.STALE

    def _on_refetch_event(self, event: Event) -> None:
        if self._closed:
            return
        self._debouncer.trigger()

    def _on_stale(self, event: Event) -> None:
        self.mark_stale()

    def _on_status_changed(self, event: Event) -> None:
        payload: InspectionStatusChanged = event.payload
        row = self._find(payload.inspection_id)
        if row is None or self._closed:
            return
        self._replace(row.model_copy(update={
            "status": payload.new_status, "inspection_status": payload.new_status,
        }))

    async def _debounced_refresh(self) -> None:
        await self._fetch()

    async def _poll_loop(self) -> None:
        while not self._closed:
            await asyncio.sleep(self.options.refresh_interval)
            await self._fetch()

    async def _fetch(self) -> bool:
        if self._closed:
            return False
        if self._in_flight:
            logger.debug("Fetch already in flight, coalescing trigger")
            return False

        self._in_flight = True
        self.status = SyncStatus.SYNCING
        self.error = None
        self.fetch_count += 1
        try:
            rows = await self._store.fetch_inspections(self.filters)
        except asyncio.CancelledError:
            self.status = SyncStatus.IDLE
            raise
        except Exception as e:
            if self._closed:
                return False
            message = str(e) or "Failed to fetch inspections"
            logger.error("Error fetching inspections: %s", message)
            self.error = message
            self.status = SyncStatus.ERROR
            self._bus.publish(EventKind.DATA_ERROR, DataError(error=message, filters=self.filters, source=SOURCE))
            await self._send_notification("Sync Error", message, "destructive")
            return False
        finally:
            self._in_flight = False

        if self._closed:
            return False

        self.last_sync_time = datetime.now(timezone.utc)
        self.status = SyncStatus.IDLE
        if _fingerprint(rows) == _fingerprint(self._inspections):
            return False

        self._inspections = rows
        self._bus.publish(EventKind.DATA_SYNC, DataSync(
            inspections=rows, sync_time=self.last_sync_time, filters=self.filters, source=SOURCE,
        ))
        return True

    async def _send_notification(self, title: str, description: str, variant: str = "default") -> None:
        try:
            await self._notify(title, description, variant)
        except Exception:
            logger.exception("Failed to deliver notification %r", title)

    # ── Writes ───────────────────────────────────────────────

    async def create_inspection(self, data: dict[str, Any]) -> InspectionSyncData:
        created = await self._store.insert_inspection(data)
        self._bus.publish(EventKind.INSPECTION_CREATED, InspectionCreated(inspection=created, source=SOURCE))
        return created

    async def update_inspection(self, inspection_id: str, updates: dict[str, Any]) -> InspectionSyncData:
        updated = await self._store.update_inspection(inspection_id, updates)
        self._bus.publish(EventKind.INSPECTION_UPDATED, InspectionUpdated(
            inspection=updated, updates=updates, source=SOURCE,
        ))
        return updated

    async def delete_inspection(self, inspection_id: str) -> None:
        await self._store.delete_inspection(inspection_id)
        self._inspections = [r for r in self._inspections if r.id != inspection_id]
        self._bus.publish(EventKind.INSPECTION_DELETED, InspectionDeleted(inspection_id=inspection_id, source=SOURCE))

    async def update_inspection_status(self, inspection_id: str, new_status: str) -> InspectionSyncData:
        """Patch the cache optimistically, then write to the store.

        If the write fails the cached row is restored and the error re-raised.
        """
        snapshot = self._find(inspection_id)
        previous_status = snapshot.status if snapshot else None
        if snapshot is not None:
            self._replace(snapshot.model_copy(update={"status": new_status, "inspection_status": new_status}))

        try:
            updated = await self._store.update_inspection(inspection_id, {"status": new_status})
        except Exception:
            logger.error("Error updating status of inspection %s to %s", inspection_id, new_status)
            if snapshot is not None:
                self._replace(snapshot)
            raise

        if self._find(inspection_id) is not None:
            self._replace(updated.model_copy(update={"inspection_status": new_status}))
        self._bus.publish(EventKind.INSPECTION_STATUS_CHANGED, InspectionStatusChanged(
            inspection_id=inspection_id,
            new_status=new_status,
            previous_status=previous_status,
            source=SOURCE,
        ))
        return updated

    def _find(self, inspection_id: str) -> InspectionSyncData | None:
        return next((r for r in self._inspections if r.id == inspection_id), None)

    def _replace(self, row: InspectionSyncData) -> None:
        self._inspections = [row if r.id == row.id else r for r in self._inspections]
