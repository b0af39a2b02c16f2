from fastapi import HTTPException
from fastapi.responses import JSONResponse

from clubevents.services.exceptions import (
    ConflictError,
    DependencyError,
    NotFoundError,
    PermissionDeniedError,
    ServiceError,
    UnauthenticatedError,
    ValidationError,
)


def http_error_from_service(err: ServiceError) -> HTTPException:
    headers = None
    if isinstance(err, NotFoundError):
        status = 404
    elif isinstance(err, UnauthenticatedError):
        status = 401
        headers = {"WWW-Authenticate": "Bearer"}
    elif isinstance(err, PermissionDeniedError):
        status = 403
    elif isinstance(err, ConflictError):
        status = 409
    elif isinstance(err, ValidationError):
        status = 422
    elif isinstance(err, DependencyError):
        status = 502
    else:
        status = 500

    return HTTPException(
        status_code=status,
        detail={"code": err.code, "message": err.message},
        headers=headers,
    )


_CALLABLE_STATUS: tuple[tuple[type[ServiceError], str, int], ...] = (
    (UnauthenticatedError, "unauthenticated", 401),
    (PermissionDeniedError, "permission-denied", 403),
    (ValidationError, "invalid-argument", 400),
    (NotFoundError, "not-found", 404),
)


def callable_error_from_service(err: ServiceError) -> JSONResponse:
    """Error body for callable functions: ``{"error": {"status", "message"}}``."""
    for error_type, status, http_status in _CALLABLE_STATUS:
        if isinstance(err, error_type):
            return JSONResponse(
                status_code=http_status,
                content={"error": {"status": status, "message": err.message, "code": err.code}},
            )
    return JSONResponse(
        status_code=500,
        content={"error": {"status": "internal", "message": err.message, "code": err.code}},
    )
