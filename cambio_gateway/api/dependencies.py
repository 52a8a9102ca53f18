"""Dependency injection for FastAPI endpoints"""

import logging
from fastapi import HTTPException, Request
from cambio_gateway.domain.exceptions import (
    BackofficeAPIError,
    DomainException,
    InvalidOpeningError,
    InvalidTransitionError,
    ReconciliationIncompleteError,
    SnapshotPersistenceError,
    WindowNotOpenError,
)
from cambio_gateway.workstation import Workstation


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_workstation(request: Request) -> Workstation:
    """Provide the app-owned workstation"""
    return request.app.state.workstation


def to_http_exception(error: DomainException, request_id: str) -> HTTPException:
    """Map a domain failure to the status code the operator sees"""
    if isinstance(error, BackofficeAPIError):
        logging.error(f"Back-office API error: {error}", extra={"request_id": request_id})
        return HTTPException(status_code=503 if error.timeout else 502, detail=str(error))

    if isinstance(error, InvalidTransitionError):
        logging.warning(f"Rejected transition: {error}", extra={"request_id": request_id})
        return HTTPException(status_code=409, detail=str(error))

    if isinstance(error, WindowNotOpenError):
        return HTTPException(status_code=423, detail=str(error))

    if isinstance(error, (InvalidOpeningError, ReconciliationIncompleteError)):
        return HTTPException(status_code=422, detail=str(error))

    if isinstance(error, SnapshotPersistenceError):
        logging.error(f"Local session storage failed: {error}", extra={"request_id": request_id})
        return HTTPException(status_code=500, detail=str(error))

    logging.error(f"Unexpected domain error: {error}", extra={"request_id": request_id})
    return HTTPException(status_code=400, detail=str(error))
