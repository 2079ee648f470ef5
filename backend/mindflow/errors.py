"""Error taxonomy shared by the planner services and HTTP routes."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class MindFlowError(RuntimeError):
    """Base class for errors the service layer raises on purpose."""


class InputValidationError(MindFlowError, ValueError):
    """User-fixable input problem, reported against a single field."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message

    def to_detail(self) -> Dict[str, Any]:
        return {"field": self.field, "message": self.message}


class ProviderError(MindFlowError):
    """The plan generation provider failed, timed out, or returned unusable output."""

    def __init__(self, message: str, *, reason: Optional[str] = None) -> None:
        super().__init__(message)
        self.reason = reason or "provider_error"


class NotFoundError(MindFlowError, LookupError):
    """A plan, task or other entity does not exist for the requesting user."""


class ConcurrencyError(MindFlowError):
    """A concurrent writer claimed the same ledger slot or row first."""


def as_http_exception(exc: MindFlowError) -> HTTPException:
    """Translate a service error into the HTTP error the API reports."""
    if isinstance(exc, InputValidationError):
        return HTTPException(status_code=422, detail=exc.to_detail())
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, ConcurrencyError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Another update for this user landed first. Please retry.",
        )
    if isinstance(exc, ProviderError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


__all__ = [
    "ConcurrencyError",
    "InputValidationError",
    "MindFlowError",
    "NotFoundError",
    "ProviderError",
    "as_http_exception",
]
