"""
Typed errors raised by the back office core.

The crud layer raises these; ``main`` registers ``backoffice_exception_handler``
so every error reaches the client as ``{"detail": ..., "error_code": ...}``
with the matching HTTP status.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

__all__ = [
    "BackOfficeError",
    "NotFoundError",
    "ConflictError",
    "InvalidTransitionError",
    "ValidationError",
    "UnprocessableError",
    "backoffice_exception_handler",
]


class BackOfficeError(Exception):
    """Base exception for the back office."""

    status_code = 500
    error_code = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class NotFoundError(BackOfficeError):
    """Payment, reference document or party does not exist."""

    status_code = 404
    error_code = "NOT_FOUND"


class ConflictError(BackOfficeError):
    """Operation not allowed in the current state (re-cancel, re-reconcile, re-clear...)."""

    status_code = 409
    error_code = "CONFLICT"


class InvalidTransitionError(ConflictError):
    error_code = "INVALID_TRANSITION"

    def __init__(self, entity: str, source, target):
        self.entity = entity
        self.source = getattr(source, "value", source)
        self.target = getattr(target, "value", target)
        super().__init__(
            f"Cannot transition {entity} from {self.source} to {self.target}",
            {"entity": entity, "from": self.source, "to": self.target},
        )


class ValidationError(BackOfficeError):
    """Bad input: non-positive amount, refund above original, missing cheque number."""

    status_code = 400
    error_code = "VALIDATION_ERROR"


class UnprocessableError(BackOfficeError):
    """Amount does not fit the referenced document's totals."""

    status_code = 422
    error_code = "UNPROCESSABLE"


async def backoffice_exception_handler(request: Request, exc: BackOfficeError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}")
    content = {"detail": exc.message, "error_code": exc.error_code}
    if exc.details:
        content["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=content)
