"""Error taxonomy for asset operations and the JSON envelope they render to.

Domain code raises the ``AssetError`` subclasses below; the handlers at the
bottom turn them (and FastAPI's own request errors) into
``{"code", "message", "details"}`` responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException


class AssetError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "asset_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def details(self) -> dict[str, Any] | None:
        return None


class ValidationError(AssetError):
    """A candidate record (or request) is malformed; names every bad field."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"

    def __init__(self, fields: Iterable[str], message: str) -> None:
        super().__init__(message)
        self.fields = list(dict.fromkeys(fields))

    @property
    def details(self) -> dict[str, Any]:
        return {"fields": self.fields}


class NotFoundError(AssetError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"

    def __init__(self, asset_id: str) -> None:
        super().__init__(f"Asset {asset_id} not found")
        self.asset_id = asset_id

    @property
    def details(self) -> dict[str, Any]:
        return {"id": self.asset_id}


class TransitionDeniedError(AssetError):
    """A status-only update asked for a move the transition policy forbids."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "transition_denied"

    def __init__(self, reason: str, message: str, *, current: str, target: str) -> None:
        super().__init__(message)
        self.reason = reason
        self.current = current
        self.target = target

    @property
    def details(self) -> dict[str, Any]:
        return {"reason": self.reason, "current": self.current, "target": self.target}


class StoreError(AssetError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "store_error"


@dataclass(frozen=True)
class BatchRowError:
    """One failed import row. Collected into the batch summary, never raised."""

    row: int
    message: str

    def __str__(self) -> str:
        return f"Row {self.row}: {self.message}"


class ErrorEnvelope(JSONResponse):
    def __init__(
        self,
        *,
        status_code: int,
        code: str,
        message: str,
        details: Any | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        payload: dict[str, Any] = {"code": code, "message": message}
        if details is not None:
            payload["details"] = details
        super().__init__(payload, status_code=status_code, headers=headers)


async def asset_error_handler(request: Request, exc: AssetError):
    return ErrorEnvelope(
        status_code=exc.status_code,
        code=exc.code,
        message=exc.message,
        details=exc.details,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    message = detail if isinstance(detail, str) else "Error"
    details = detail if isinstance(detail, dict) else None
    return ErrorEnvelope(status_code=exc.status_code, code="http_error", message=message, details=details)


def _field_name(loc: tuple[Any, ...]) -> str:
    # Body errors are located as ("body", "macAddress"); drop the prefix.
    parts = [str(part) for part in loc if part not in ("body", "query", "path")]
    return ".".join(parts) or "body"


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    fields = [_field_name(tuple(err.get("loc", ()))) for err in errors]
    message = "; ".join(f"{field}: {err.get('msg', 'invalid')}" for field, err in zip(fields, errors))
    return ErrorEnvelope(
        status_code=status.HTTP_400_BAD_REQUEST,
        code="validation_error",
        message=message or "Validation failed",
        details={"fields": list(dict.fromkeys(fields))},
    )
