"""FastAPI application entry point."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from roofcheck.api.router import api_router
from roofcheck.config import get_settings
from roofcheck.db.engine import async_session_factory, create_tables, engine
from roofcheck.db.store import SqlRecordStore
from roofcheck.schemas import WSMessage
from roofcheck.services.event_bus import Event, EventKind, event_bus
from roofcheck.services.inspection_sync import InspectionSyncCoordinator
from roofcheck.services.ws_manager import INSPECTIONS_CHANNEL, ws_manager

logger = logging.getLogger(__name__)

# Strong references to in-flight broadcasts until they finish
_broadcast_tasks: set[asyncio.Task] = set()


def _on_broadcast_done(task: asyncio.Task) -> None:
    _broadcast_tasks.discard(task)
    if not task.cancelled() and task.exception() is not None:
        logger.error("Dashboard broadcast failed: %s", task.exception())


def _broadcast(message: WSMessage) -> None:
    try:
        task = asyncio.get_running_loop().create_task(ws_manager.broadcast(INSPECTIONS_CHANNEL, message))
    except RuntimeError:
        logger.warning("No running loop, %s message not broadcast", message.event)
        return
    _broadcast_tasks.add(task)
    task.add_done_callback(_on_broadcast_done)


def _forward_critical_issue(event: Event) -> None:
    """Push critical issue alerts to dashboard clients."""
    alert = event.payload.alert
    _broadcast(WSMessage(
        event="critical_issue",
        title=f"Critical issue: {alert.analysis.urgency_level}",
        description=alert.deficiency.description,
        variant="destructive",
        data=alert.model_dump(mode="json"),
    ))


def _forward_data_sync(event: Event) -> None:
    _broadcast(WSMessage(
        event="data_sync",
        data={
            "inspections": [i.model_dump(mode="json") for i in event.payload.inspections],
            "sync_time": event.payload.sync_time.isoformat(),
        },
    ))


def _forward_data_error(event: Event) -> None:
    _broadcast(WSMessage(event="error", title="Sync Error", description=event.payload.error, variant="destructive"))


_FORWARDERS = {
    EventKind.CRITICAL_ISSUE_DETECTED: _forward_critical_issue,
    EventKind.DATA_SYNC: _forward_data_sync,
    EventKind.DATA_ERROR: _forward_data_error,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_tables()
    unsubscribers = [event_bus.subscribe(kind, fn) for kind, fn in _FORWARDERS.items()]

    # Dashboard-wide inspection list, kept fresh for websocket clients
    sync = InspectionSyncCoordinator(SqlRecordStore(async_session_factory), options=get_settings().sync)
    await sync.start()
    app.state.inspection_sync = sync
    yield
    await sync.close()
    for unsubscribe in unsubscribers:
        unsubscribe()
    for task in list(_broadcast_tasks):
        task.cancel()
    await engine.dispose()


app = FastAPI(
    title="RoofCheck",
    description="Roof inspection deficiency scoring, completeness validation and dashboard sync.",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(api_router)
