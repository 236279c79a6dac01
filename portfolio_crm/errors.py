"""Structured error helpers and the engine's error kinds."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse


def build_error_payload(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    payload = {"error": {"code": code, "message": message}}
    if details is not None:
        payload["error"]["details"] = details
    return payload


class AppError(Exception):
    """Application-scoped error for standardized API responses."""

    def __init__(self, status_code: int, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = build_error_payload(code, message, details)


class EngineError(Exception):
    """Base class for resolution/dedup/research errors raised to the immediate caller."""

    code = "engine_error"
    status_code = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_payload(self) -> Dict[str, Any]:
        return build_error_payload(self.code, self.message, self.details)


class ValidationError(EngineError):
    """Malformed candidate input (missing name, unparseable value). Never retried."""

    code = "validation_error"
    status_code = 422


class DuplicateError(EngineError):
    """An organization write collided with an existing record of the same kind."""

    code = "duplicate_organization"
    status_code = 409


class NotFoundError(EngineError):
    """A referenced parent or linked record does not exist."""

    code = "not_found"
    status_code = 404


class EnrichmentFailure(EngineError):
    """The research provider errored or returned an invalid structure."""

    code = "enrichment_failed"
    status_code = 502


async def app_error_handler(_: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.payload)


async def engine_error_handler(_: Request, exc: EngineError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


def raise_app_error(status_code: int, code: str, message: str, details: Optional[Dict[str, Any]] = None) -> None:
    """Raise an AppError with a standardized error shape."""
    raise AppError(status_code, code, message, details)
