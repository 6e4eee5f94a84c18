"""
Domain exceptions and global exception handlers.

Services raise the domain exceptions below; the handlers turn them into
JSON responses and keep stack traces away from clients.
"""

from __future__ import annotations

import logging
from datetime import date

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

logger = logging.getLogger(__name__)


# ── Domain exceptions ───────────────────────────────────────────────
class LedgerError(Exception):
    """Base class for time & absence ledger rule violations."""


class ValidationError(LedgerError):
    """Input breaks a ledger rule; the user can edit and retry."""


class MonthValidationFailed(ValidationError):
    """At least one day of the month has validation errors.

    Carries every error at once so the client can flag all offending days.
    """

    def __init__(self, per_day_errors: dict[int, list[str]], messages: list[str]):
        super().__init__("; ".join(messages))
        self.per_day_errors = per_day_errors
        self.messages = messages


class DayLocked(ValidationError):
    """The requested edit is not allowed on this day (weekend or future)."""


class SourceNotCopyable(ValidationError):
    """The day picked as range-copy source has nothing valid to copy."""


class DuplicateRequest(LedgerError):
    def __init__(self, owner_id: int, on: date):
        super().__init__(f"a vacation request already exists for {on.isoformat()}")
        self.owner_id = owner_id
        self.date = on


class QuotaExceeded(LedgerError):
    def __init__(self, owner_id: int, on: date):
        super().__init__(f"no vacation days left for {on.isoformat()}")
        self.owner_id = owner_id
        self.date = on


class InvalidTransition(LedgerError):
    """Vacation request status change that the state machine forbids."""


class NotFound(LedgerError):
    pass


class PersistenceFailure(LedgerError):
    """Storage or transaction failure; the pre-failure state is kept."""


# ── Handlers ────────────────────────────────────────────────────────
def _error(status_code: int, detail: str, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": detail, "success": False, **extra},
    )


async def _http_exception_handler(_request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "success": False},
        headers=getattr(exc, "headers", None),
    )


async def _month_validation_handler(_request: Request, exc: MonthValidationFailed) -> JSONResponse:
    return _error(
        422,
        "The month has invalid days and was not saved",
        errors=exc.messages,
        perDayErrors={str(day): errs for day, errs in exc.per_day_errors.items()},
    )


async def _validation_handler(_request: Request, exc: ValidationError) -> JSONResponse:
    return _error(422, str(exc))


async def _conflict_handler(_request: Request, exc: LedgerError) -> JSONResponse:
    return _error(409, str(exc))


async def _not_found_handler(_request: Request, exc: NotFound) -> JSONResponse:
    return _error(404, str(exc))


async def _persistence_handler(_request: Request, exc: PersistenceFailure) -> JSONResponse:
    logger.error("Persistence failure: %s", exc)
    return _error(503, "Storage is unavailable, nothing was changed")


async def _integrity_error_handler(_request: Request, exc: IntegrityError) -> JSONResponse:
    logger.error("Database integrity error: %s", exc, exc_info=True)
    return _error(409, "Database constraint violation")


async def _sqlalchemy_error_handler(_request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error: %s", exc, exc_info=True)
    return _error(500, "Internal database error")


async def _generic_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception: %s", exc)
    return _error(500, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all exception handlers to the FastAPI app."""
    app.add_exception_handler(HTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(MonthValidationFailed, _month_validation_handler)  # type: ignore[arg-type]
    app.add_exception_handler(ValidationError, _validation_handler)  # type: ignore[arg-type]
    app.add_exception_handler(DuplicateRequest, _conflict_handler)  # type: ignore[arg-type]
    app.add_exception_handler(QuotaExceeded, _conflict_handler)  # type: ignore[arg-type]
    app.add_exception_handler(InvalidTransition, _conflict_handler)  # type: ignore[arg-type]
    app.add_exception_handler(NotFound, _not_found_handler)  # type: ignore[arg-type]
    app.add_exception_handler(PersistenceFailure, _persistence_handler)  # type: ignore[arg-type]
    app.add_exception_handler(IntegrityError, _integrity_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, _sqlalchemy_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _generic_exception_handler)
