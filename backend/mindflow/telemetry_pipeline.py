"""Copies study milestones from the telemetry stream into ``persistence_audit_events``.

Only events that change what a learner sees later are kept: new or regenerated
plans, mood adaptations, finished tasks and finished study sessions. Events
without a username are never written.
"""

from __future__ import annotations

import logging
from typing import FrozenSet

from .db.session import session_scope
from .repositories.progress import progress_records
from .telemetry import TelemetryEvent, register_listener

logger = logging.getLogger(__name__)

AUDITED_EVENTS: FrozenSet[str] = frozenset(
    {
        "plan_generated",
        "plan_regenerated",
        "plan_adapted",
        "task_completed",
        "session_completed",
    }
)


def record_study_event(event: TelemetryEvent) -> None:
    if event.name not in AUDITED_EVENTS:
        return
    learner = event.payload.get("username")
    if not isinstance(learner, str) or not learner.strip():
        return
    try:
        with session_scope() as session:
            progress_records.record_telemetry_event(session, learner, event.name, event.payload)
    except Exception:  # noqa: BLE001
        logger.exception("Could not write %s to the audit trail for learner %s", event.name, learner)


register_listener(record_study_event)

__all__ = ["AUDITED_EVENTS", "record_study_event"]
