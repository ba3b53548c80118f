"""
Exception handlers that turn domain exceptions into JSON error responses.

Services and the lifecycle state machine raise DomainException subclasses
without knowing about HTTP; the status code is chosen here from the most
specific base class in _STATUS_CODES.
"""
import logging
from typing import List, Tuple, Type

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

from app.core.exceptions import (
    AuthenticationError,
    ConflictError,
    DomainException,
    NotFoundError,
    OperationError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Checked in order; the first matching base class wins
_STATUS_CODES: List[Tuple[Type[DomainException], int]] = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (ConflictError, status.HTTP_409_CONFLICT),
    (AuthenticationError, status.HTTP_401_UNAUTHORIZED),
    (OperationError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def status_code_for(exc: DomainException) -> int:
    for exc_type, status_code in _STATUS_CODES:
        if isinstance(exc, exc_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def jsonable_errors(exc: RequestValidationError) -> list:
    # pydantic puts the offending exception object in ctx for some errors
    errors = []
    for error in exc.errors():
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {key: str(value) for key, value in error["ctx"].items()}
        errors.append(error)
    return errors


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Log request validation errors and answer 422."""
    logger.warning(f"Validation error on {request.method} {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": jsonable_errors(exc)},
    )


async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    """
    Map a domain exception to its HTTP status code.

    Body: ``{"detail", "message", "error_type", **details}``.
    """
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error(
            f"{exc.__class__.__name__} on {request.method} {request.url.path}: {exc.message}",
            extra={"details": exc.details},
        )
    else:
        logger.info(f"{exc.__class__.__name__} on {request.method} {request.url.path}: {exc.message}")

    return JSONResponse(
        status_code=status_code,
        content={
            "detail": exc.message,
            "message": exc.message,
            "error_type": exc.__class__.__name__,
            **exc.details,
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register the domain and validation handlers on ``app``."""
    # DomainException catches every subclass
    app.add_exception_handler(DomainException, domain_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
