"""Developer utilities for inspecting telemetry and the persistence audit trail."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Query

from .db.session import session_scope
from .errors import MindFlowError, as_http_exception
from .repositories.progress import progress_records
from .telemetry import recent_events

router = APIRouter(prefix="/api/developer", tags=["developer"])


@router.get("/telemetry")
def developer_telemetry(name: Optional[str] = Query(default=None)) -> List[Dict[str, Any]]:
    return [
        {"event": event.name, "emitted_at": event.emitted_at.isoformat(), "payload": event.payload}
        for event in recent_events(name)
    ]


@router.get("/audit")
def developer_audit(
    username: str = Query(..., min_length=1),
    limit: int = Query(default=50, ge=1, le=500),
) -> List[Dict[str, Any]]:
    try:
        with session_scope(commit=False) as session:
            rows = progress_records.recent_audit_events(session, username, limit=limit)
            return [
                {
                    "event_type": row.event_type,
                    "actor": row.actor,
                    "payload": row.payload,
                    "created_at": row.created_at.isoformat() if row.created_at else None,
                }
                for row in rows
            ]
    except MindFlowError as exc:
        raise as_http_exception(exc) from exc


__all__ = ["router"]
