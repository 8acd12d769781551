"""
Error taxonomy raised by the appraisal services.

Every business-rule failure is one of the four subclasses below. The FastAPI
handlers registered by `register_exception_handlers` turn them into JSON
responses with the matching status code.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger("appraisal.errors")


class AppraisalError(Exception):
    """Base class for all business-rule failures."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_detail(self) -> str | dict[str, Any]:
        if not self.details:
            return self.message
        return {"message": self.message, **self.details}

    def __str__(self) -> str:
        return f"{self.__class__.__name__}: {self.message}"


class ValidationError(AppraisalError):
    """Malformed or inconsistent input, including unresolved references."""

    status_code = status.HTTP_400_BAD_REQUEST


class ForbiddenError(AppraisalError):
    """The acting principal has no scope over the target resource."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(AppraisalError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(AppraisalError):
    """A state invariant would be violated."""

    status_code = status.HTTP_409_CONFLICT


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppraisalError)
    async def _appraisal_error(request: Request, exc: AppraisalError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_detail()})

    @app.exception_handler(SQLAlchemyError)
    async def _storage_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.error(
            "Storage failure on %s %s", request.method, request.url.path, exc_info=exc
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )
