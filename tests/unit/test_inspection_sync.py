import asyncio
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from roofcheck.config import SyncConfig
from roofcheck.schemas import InspectionSyncData
from roofcheck.services.event_bus import (
    DataRefresh,
    DataStale,
    EventBus,
    EventKind,
    InspectionDeleted,
    InspectionStatusChanged,
    InspectionUpdated,
)
from roofcheck.services.inspection_sync import InspectionSyncCoordinator, SyncStatus


def _row(id: str, status: str = "scheduled", **extra) -> InspectionSyncData:
    return InspectionSyncData(id=id, status=status, updated_at=datetime(2026, 1, 1, tzinfo=timezone.utc), **extra)


class FakeStore:
    def __init__(self, rows=None):
        self.rows = list(rows or [])
        self.fetches = 0
        self.fail_fetch: Exception | None = None
        self.fail_update: Exception | None = None
        self.gate: asyncio.Event | None = None

    async def fetch_inspections(self, filters=None):
        self.fetches += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_fetch:
            raise self.fail_fetch
        return list(self.rows)

    async def update_inspection(self, inspection_id, updates):
        if self.fail_update:
            raise self.fail_update
        for i, row in enumerate(self.rows):
            if row.id == inspection_id:
                self.rows[i] = row.model_copy(update=updates)
                return self.rows[i]
        raise LookupError(inspection_id)

    async def insert_inspection(self, data):
        row = _row(f"new-{len(self.rows)}", **data)
        self.rows.append(row)
        return row

    async def delete_inspection(self, inspection_id):
        before = len(self.rows)
        self.rows = [r for r in self.rows if r.id != inspection_id]
        if len(self.rows) == before:
            raise LookupError(inspection_id)


class Notifications:
    def __init__(self):
        self.sent = []

    async def __call__(self, title, description, variant="default"):
        self.sent.append((title, description, variant))


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def store():
    return FakeStore([_row("a"), _row("b", "completed")])


@pytest.fixture
def notify():
    return Notifications()


@pytest_asyncio.fixture
async def coordinator(store, bus, notify):
    options = SyncConfig(auto_refresh=False, debounce_window=0.05)
    coord = InspectionSyncCoordinator(store, bus=bus, options=options, notify=notify)
    await coord.start()
    yield coord
    await coord.close()


async def test_start_fetches_once(coordinator, store, bus):
    assert store.fetches == 1
    assert [r.id for r in coordinator.inspections] == ["a", "b"]
    assert coordinator.status == SyncStatus.IDLE
    assert coordinator.last_sync_time is not None
    assert len(bus.history(EventKind.DATA_SYNC)) == 1


async def test_event_burst_triggers_one_fetch(coordinator, store, bus):
    for _ in range(3):
        bus.publish(EventKind.DATA_REFRESH, DataRefresh(source="test"))
    bus.publish(EventKind.INSPECTION_DELETED, InspectionDeleted(inspection_id="a"))
    bus.publish(EventKind.INSPECTION_DELETED, InspectionDeleted(inspection_id="b"))
    assert coordinator.debounce_pending is True

    await asyncio.sleep(0.2)
    assert store.fetches == 2
    assert coordinator.debounce_pending is False


async def test_unchanged_data_does_not_publish_sync(coordinator, store, bus):
    changed = await coordinator.refresh()
    assert changed is False
    assert len(bus.history(EventKind.DATA_SYNC)) == 1

    store.rows.append(_row("c"))
    changed = await coordinator.refresh()
    assert changed is True
    assert len(bus.history(EventKind.DATA_SYNC)) == 2
    assert [r.id for r in coordinator.inspections] == ["a", "b", "c"]


async def test_fetch_error_sets_error_state(coordinator, store, bus, notify):
    store.fail_fetch = RuntimeError("database unavailable")
    await coordinator.refresh()

    assert coordinator.has_error is True
    assert coordinator.error == "database unavailable"
    errors = bus.history(EventKind.DATA_ERROR)
    assert len(errors) == 1
    assert errors[0].payload.error == "database unavailable"
    assert notify.sent == [("Sync Error", "database unavailable", "destructive")]
    # previous data is kept
    assert len(coordinator.inspections) == 2


async def test_overlapping_fetches_are_dropped(coordinator, store):
    store.gate = asyncio.Event()
    first = asyncio.create_task(coordinator.refresh())
    await asyncio.sleep(0)
    assert coordinator.is_syncing is True

    second = await coordinator.refresh()
    assert second is False
    assert store.fetches == 2

    store.gate.set()
    await first
    assert coordinator.is_syncing is False


async def test_stale_event_marks_stale(coordinator, bus):
    bus.publish(EventKind.DATA_STALE, DataStale(reason="manual"))
    assert coordinator.is_stale is True


async def test_force_sync_publishes_refresh(coordinator, store, bus):
    coordinator.force_sync()
    refreshes = bus.history(EventKind.DATA_REFRESH)
    assert len(refreshes) == 1
    assert refreshes[0].source == "inspection_sync"

    await asyncio.sleep(0.2)
    assert store.fetches == 2


async def test_optimistic_status_update(coordinator, bus):
    updated = await coordinator.update_inspection_status("a", "in_progress")
    assert updated.status == "in_progress"
    assert coordinator.inspections[0].status == "in_progress"

    changes = bus.history(EventKind.INSPECTION_STATUS_CHANGED)
    assert len(changes) == 1
    assert changes[0].payload.previous_status == "scheduled"
    assert changes[0].payload.new_status == "in_progress"


async def test_failed_status_update_rolls_back(coordinator, store, bus):
    store.fail_update = RuntimeError("write rejected")
    with pytest.raises(RuntimeError):
        await coordinator.update_inspection_status("a", "completed")

    assert coordinator.inspections[0].status == "scheduled"
    assert bus.history(EventKind.INSPECTION_STATUS_CHANGED) == []


async def test_close_stops_listening(store, bus, notify):
    options = SyncConfig(auto_refresh=False, debounce_window=0.05)
    coord = InspectionSyncCoordinator(store, bus=bus, options=options, notify=notify)
    await coord.start()
    bus.publish(EventKind.DATA_REFRESH, DataRefresh())
    await coord.close()

    assert coord.debounce_pending is False
    assert bus.active_listeners() == {}
    await asyncio.sleep(0.1)
    assert store.fetches == 1


async def test_late_fetch_result_ignored_after_close(store, bus, notify):
    options = SyncConfig(auto_refresh=False, debounce_window=0.05)
    coord = InspectionSyncCoordinator(store, bus=bus, options=options, notify=notify)
    await coord.start()

    store.rows.append(_row("c"))
    store.gate = asyncio.Event()
    pending = asyncio.create_task(coord.refresh())
    await asyncio.sleep(0)
    await coord.close()
    store.gate.set()

    assert await pending is False
    assert len(coord.inspections) == 2


async def test_polling(store, bus, notify):
    options = SyncConfig(auto_refresh=True, refresh_interval=0.05, debounce_window=0.05)
    async with InspectionSyncCoordinator(store, bus=bus, options=options, notify=notify):
        await asyncio.sleep(0.18)
    assert store.fetches >= 3


async def test_counts(store, bus, notify):
    now = datetime(2026, 6, 1, tzinfo=timezone.utc)
    store.rows = [
        _row("a", scheduled_date=now - timedelta(days=1)),
        _row("b", scheduled_date=now + timedelta(days=1)),
        _row("c", "in_progress", scheduled_date=now - timedelta(days=3)),
        _row("d", "completed"),
        _row("e", scheduled_date=datetime(2026, 5, 1)),
    ]
    options = SyncConfig(auto_refresh=False)
    coord = InspectionSyncCoordinator(store, bus=bus, options=options, notify=notify)
    await coord.refresh()

    counts = coord.counts(now=now)
    assert counts.total == 5
    assert counts.scheduled == 3
    assert counts.in_progress == 1
    assert counts.completed == 1
    assert counts.past_due == 2


async def test_update_burst_with_default_window_triggers_one_fetch(store, bus, notify):
    coord = InspectionSyncCoordinator(store, bus=bus, options=SyncConfig(auto_refresh=False), notify=notify)
    await coord.start()
    try:
        for _ in range(5):
            bus.publish(EventKind.INSPECTION_UPDATED, InspectionUpdated(inspection=_row("a")))
            await asyncio.sleep(0.02)
        assert store.fetches == 1

        await asyncio.sleep(0.7)
        assert store.fetches == 2
    finally:
        await coord.close()


async def test_status_change_from_other_coordinator_patches_cache(store, bus, notify):
    options = SyncConfig(auto_refresh=False, debounce_window=0.05)
    async with InspectionSyncCoordinator(store, bus=bus, options=options, notify=notify) as first, \
            InspectionSyncCoordinator(store, bus=bus, options=options, notify=notify) as second:
        fetches = store.fetches
        await first.update_inspection_status("a", "completed")

        row = next(r for r in second.inspections if r.id == "a")
        assert row.status == "completed"
        assert row.inspection_status == "completed"
        assert store.fetches == fetches
        assert second.counts().completed == 2


async def test_status_change_published_by_api_patches_cache(coordinator, bus):
    bus.publish(EventKind.INSPECTION_STATUS_CHANGED, InspectionStatusChanged(
        inspection_id="a", new_status="in_progress", previous_status="scheduled", source="api",
    ))
    assert coordinator.inspections[0].status == "in_progress"

    # rows outside the cached list are ignored
    bus.publish(EventKind.INSPECTION_STATUS_CHANGED, InspectionStatusChanged(
        inspection_id="zzz", new_status="completed", source="api",
    ))
    assert [r.id for r in coordinator.inspections] == ["a", "b"]


async def test_create_inspection_publishes_created(coordinator, store, bus):
    created = await coordinator.create_inspection({"notes": "roof walk"})
    assert created.notes == "roof walk"
    assert created in store.rows

    events = bus.history(EventKind.INSPECTION_CREATED)
    assert len(events) == 1
    assert events[0].payload.inspection.id == created.id
    assert events[0].payload.source == "inspection_sync"
    assert coordinator.debounce_pending is True


async def test_update_inspection_publishes_updated(coordinator, bus):
    updated = await coordinator.update_inspection("b", {"notes": "resealed"})
    assert updated.notes == "resealed"

    events = bus.history(EventKind.INSPECTION_UPDATED)
    assert len(events) == 1
    assert events[0].payload.updates == {"notes": "resealed"}
    assert events[0].payload.inspection.id == "b"


async def test_delete_inspection_drops_row(coordinator, store, bus):
    await coordinator.delete_inspection("a")

    assert [r.id for r in coordinator.inspections] == ["b"]
    assert [r.id for r in store.rows] == ["b"]
    events = bus.history(EventKind.INSPECTION_DELETED)
    assert [e.payload.inspection_id for e in events] == ["a"]


async def test_failed_delete_keeps_row(coordinator, bus):
    with pytest.raises(LookupError):
        await coordinator.delete_inspection("zzz")
    assert len(coordinator.inspections) == 2
    assert bus.history(EventKind.INSPECTION_DELETED) == []


async def test_close_cancels_debounced_fetch_in_flight(store, bus, notify):
    options = SyncConfig(auto_refresh=False, debounce_window=0.01)
    coord = InspectionSyncCoordinator(store, bus=bus, options=options, notify=notify)
    await coord.start()

    store.gate = asyncio.Event()
    store.rows.append(_row("c"))
    bus.publish(EventKind.DATA_REFRESH, DataRefresh())
    await asyncio.sleep(0.05)
    assert coord.is_syncing is True

    await coord.close()
    assert coord.is_syncing is False
    store.gate.set()
    await asyncio.sleep(0)
    assert len(coord.inspections) == 2
    assert len(bus.history(EventKind.DATA_SYNC)) == 1
