"""Ledger exceptions and RFC 7807 Problem Detail error handlers."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

BASE_ERROR_URI = "https://leave-ledger.local/errors"


# ── Exception hierarchy ─────────────────────────────────────────────

class AppException(Exception):
    """Base for all application exceptions → RFC 7807 JSON."""

    def __init__(
        self,
        status_code: int,
        error_type: str,
        title: str,
        detail: str,
        errors: Optional[dict[str, Any]] = None,
    ) -> None:
        self.status_code = status_code
        self.error_type = error_type
        self.title = title
        self.detail = detail
        self.errors = errors
        super().__init__(detail)


class NotFound(AppException):
    """404 — entity not found."""

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(
            status_code=404,
            error_type="not-found",
            title=f"{entity_type} Not Found",
            detail=f"{entity_type} with id '{entity_id}' does not exist.",
        )


class MissingFields(AppException):
    """422 — required request fields absent."""

    def __init__(self, fields: list[str], detail: Optional[str] = None) -> None:
        super().__init__(
            status_code=422,
            error_type="missing-fields",
            title="Missing Fields",
            detail=detail or "Missing required fields.",
            errors={f: ["This field is required."] for f in fields},
        )


class InvalidRange(AppException):
    """422 — start date after end date."""

    def __init__(self, start: Any, end: Any) -> None:
        super().__init__(
            status_code=422,
            error_type="invalid-range",
            title="Invalid Date Range",
            detail=f"Start date {start} cannot be after end date {end}.",
        )


class InsufficientBalance(AppException):
    """422 — not enough days left for the leave type."""

    def __init__(self, leave_type: str, available: int, requested: int) -> None:
        super().__init__(
            status_code=422,
            error_type="insufficient-balance",
            title="Insufficient Balance",
            detail=(
                f"Insufficient {leave_type} balance. "
                f"Available: {available}, Requested: {requested}."
            ),
            errors={"balance": [f"{leave_type}: {available} < {requested}"]},
        )


class OutOfRange(AppException):
    """422 — balance would leave its declared bounds."""

    def __init__(self, leave_type: str, detail: str) -> None:
        super().__init__(
            status_code=422,
            error_type="out-of-range",
            title="Balance Out Of Range",
            detail=detail,
            errors={"balance": [leave_type]},
        )


class OverlapConflict(AppException):
    """409 — dates overlap an approved request."""

    def __init__(self, conflicting_id: Any = None) -> None:
        super().__init__(
            status_code=409,
            error_type="overlap-conflict",
            title="Overlapping Leave",
            detail="An approved leave request already overlaps these dates.",
            errors={"conflicting_request_id": [str(conflicting_id)]} if conflicting_id else None,
        )


class DuplicatePending(AppException):
    """409 — dates overlap another pending request (edit only)."""

    def __init__(self, conflicting_id: Any = None) -> None:
        super().__init__(
            status_code=409,
            error_type="duplicate-pending",
            title="Duplicate Pending Request",
            detail="A pending leave request already exists for these dates.",
            errors={"conflicting_request_id": [str(conflicting_id)]} if conflicting_id else None,
        )


class NotEditable(AppException):
    """409 — only pending requests can be edited."""

    def __init__(self, status: str) -> None:
        super().__init__(
            status_code=409,
            error_type="not-editable",
            title="Not Editable",
            detail=f"Only pending leave requests can be edited (current: {status}).",
        )


class NotCancellable(AppException):
    """409 — only pending or approved requests can be cancelled."""

    def __init__(self, status: str) -> None:
        super().__init__(
            status_code=409,
            error_type="not-cancellable",
            title="Not Cancellable",
            detail=(
                "Only pending or approved leave requests can be cancelled "
                f"(current: {status})."
            ),
        )


class Forbidden(AppException):
    """403 — insufficient permissions."""

    def __init__(
        self,
        detail: str = "You do not have permission to perform this action.",
    ) -> None:
        super().__init__(
            status_code=403,
            error_type="forbidden",
            title="Forbidden",
            detail=detail,
        )


class SelfApprovalForbidden(Forbidden):
    """403 — a reviewer acting on their own request."""

    def __init__(self) -> None:
        super().__init__("You cannot review your own leave request.")
        self.error_type = "self-approval-forbidden"
        self.title = "Self Approval Forbidden"


class HRLocked(Forbidden):
    """403 — manager attempting to change an HR-overridden request."""

    def __init__(self) -> None:
        super().__init__("This leave request was overridden by HR and is locked for managers.")
        self.error_type = "hr-locked"
        self.title = "HR Locked"


class ConcurrentModification(AppException):
    """409 — the target changed underneath the operation."""

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(
            status_code=409,
            error_type="concurrent-modification",
            title="Concurrent Modification",
            detail=(
                f"{entity_type} '{entity_id}' was modified concurrently. "
                "Reload and try again."
            ),
        )


class DuplicateEmail(AppException):
    """409 — another user already has this email address."""

    def __init__(self, email: str) -> None:
        super().__init__(
            status_code=409,
            error_type="duplicate-email",
            title="Duplicate Email",
            detail=f"A user with email '{email}' already exists.",
        )


# ── RFC 7807 builder ────────────────────────────────────────────────

def _build_problem_detail(exc: AppException, request: Request) -> dict[str, Any]:
    body: dict[str, Any] = {
        "type": f"{BASE_ERROR_URI}/{exc.error_type}",
        "title": exc.title,
        "status": exc.status_code,
        "detail": exc.detail,
        "instance": str(request.url.path),
    }
    if exc.errors:
        body["errors"] = exc.errors
    return body


# ── FastAPI handlers ────────────────────────────────────────────────

async def _handle_app_exception(
    request: Request,
    exc: AppException,
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_build_problem_detail(exc, request),
        media_type="application/problem+json",
    )


async def _handle_validation_error(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    field_errors: dict[str, list[str]] = {}
    for err in exc.errors():
        loc = err.get("loc", ())
        name = (
            ".".join(str(p) for p in loc[1:])
            if len(loc) > 1
            else str(loc[0]) if loc else "unknown"
        )
        field_errors.setdefault(name, []).append(err.get("msg", "Invalid value"))

    return JSONResponse(
        status_code=422,
        content={
            "type": f"{BASE_ERROR_URI}/validation-error",
            "title": "Validation Error",
            "status": 422,
            "detail": "Request validation failed.",
            "instance": str(request.url.path),
            "errors": field_errors,
        },
        media_type="application/problem+json",
    )


# ── Registration helper (called from main.py) ──────────────────────

def register_exception_handlers(app: FastAPI) -> None:
    """Attach all custom exception handlers to the FastAPI app."""
    app.add_exception_handler(AppException, _handle_app_exception)          # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _handle_validation_error)  # type: ignore[arg-type]
