"""Autosave for in-progress inspections, with critical issue detection on save."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable

from roofcheck.db.store import RecordStore
from roofcheck.schemas import CriticalIssueAlert, CriticalityAnalysis, Deficiency, DeficiencyIn
from roofcheck.services.criticality import CriticalityScorer
from roofcheck.services.event_bus import CriticalIssueDetected, EventBus, EventKind, event_bus

logger = logging.getLogger(__name__)

SOURCE = "inspection_autosave"

CriticalCallback = Callable[[DeficiencyIn, CriticalityAnalysis], None]


class InspectionAutosave:
    """Persists the working state of one inspector's inspection of one property.

    Deficiencies without a criticality score are scored on every save; the
    score is then carried in the saved data, so later saves leave it alone.
    """

    def __init__(
        self,
        store: RecordStore,
        property_id: str,
        inspector_id: str,
        scorer: CriticalityScorer | None = None,
        bus: EventBus | None = None,
        on_critical: CriticalCallback | None = None,
        enable_critical_detection: bool = True,
        max_retries: int = 3,
        retry_delay: float = 0.1,
    ):
        self._store = store
        self.property_id = property_id
        self.inspector_id = inspector_id
        self._scorer = scorer or CriticalityScorer()
        self._bus = bus or event_bus
        self._on_critical = on_critical
        self.enable_critical_detection = enable_critical_detection
        self.max_retries = max_retries
        self.retry_delay = retry_delay

        self.session_id: str | None = None
        self.alerts: list[CriticalIssueAlert] = []
        self._last_data: dict[str, Any] = {}

    def analyze_critical_issues(self, raw: list[Any]) -> list[DeficiencyIn]:
        """Score unscored deficiencies; record an alert for each critical one."""
        enhanced: list[DeficiencyIn] = []
        new_alerts: list[CriticalIssueAlert] = []
        for item in raw:
            deficiency = DeficiencyIn.model_validate(item)
            if deficiency.criticality_score is not None:
                enhanced.append(deficiency)
                continue

            analysis = self._scorer.analyze_deficiency(deficiency)
            deficiency = self._scorer.apply_analysis(deficiency, analysis)
            enhanced.append(deficiency)

            if analysis.needs_supervisor_alert or analysis.is_immediate_repair:
                alert = CriticalIssueAlert(
                    deficiency=deficiency, analysis=analysis, timestamp=datetime.now(timezone.utc),
                )
                new_alerts.append(alert)

        if new_alerts:
            self.alerts.extend(new_alerts)
            logger.warning(
                "%d critical issue(s) detected for property %s: %s",
                len(new_alerts), self.property_id,
                [(a.deficiency.description, a.analysis.score, a.analysis.urgency_level) for a in new_alerts],
            )
            self._notify(new_alerts)
        return enhanced

    def _notify(self, alerts: list[CriticalIssueAlert]) -> None:
        # Runs after scoring, so callback errors never reach save()
        for alert in alerts:
            self._bus.publish(EventKind.CRITICAL_ISSUE_DETECTED, CriticalIssueDetected(alert=alert, source=SOURCE))
            if self._on_critical is None:
                continue
            try:
                self._on_critical(alert.deficiency, alert.analysis)
            except Exception:
                logger.exception("on_critical callback failed for %r", alert.deficiency.description)

    async def save(self, data: dict[str, Any], status: str = "active") -> str:
        """Save the session and return its id. Store errors are retried, then raised."""
        data = dict(data)
        if self.enable_critical_detection and data.get("deficiencies"):
            try:
                enhanced = self.analyze_critical_issues(data["deficiencies"])
                data["deficiencies"] = [d.model_dump(mode="json") for d in enhanced]
            except Exception:
                logger.exception("Critical issue detection failed, saving without it")
        self._last_data = data

        attempt = 0
        while True:
            attempt += 1
            try:
                self.session_id = await self._store.save_session(
                    self.property_id, self.inspector_id, data, status, self.session_id,
                )
                return self.session_id
            except Exception as e:
                if attempt >= self.max_retries:
                    raise
                logger.warning("Autosave attempt %d/%d failed: %s", attempt, self.max_retries, e)
                await asyncio.sleep(self.retry_delay * attempt)

    async def complete(self, inspection_id: str) -> list[Deficiency]:
        """Write the scored deficiencies to the inspection and close the session."""
        raw = self._last_data.get("deficiencies", [])
        deficiencies = self._scorer.enhance_deficiencies(DeficiencyIn.model_validate(d) for d in raw)
        saved = await self._store.save_deficiencies(inspection_id, deficiencies)
        await self.save(self._last_data, status="completed")
        return saved
