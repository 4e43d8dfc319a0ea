from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse

from blogchain.runtime.errors import (
    ALREADY_EXISTS,
    INVALID_ARGUMENT,
    INVALID_PAYLOAD,
    INVALID_STATE,
    NOT_FOUND,
    TX_UNIMPLEMENTED,
    UNAUTHORIZED,
    ApplyError,
)

# ApplyError / executor error code -> HTTP status
_STATUS_BY_CODE: Dict[str, int] = {
    NOT_FOUND: 404,
    INVALID_ARGUMENT: 400,
    INVALID_PAYLOAD: 400,
    UNAUTHORIZED: 403,
    INVALID_STATE: 409,
    ALREADY_EXISTS: 409,
    TX_UNIMPLEMENTED: 400,
}


@dataclass
class ApiError(Exception):
    status_code: int
    code: str
    message: str
    details: Dict[str, Any]

    @staticmethod
    def forbidden(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(403, code, message, details or {})

    @staticmethod
    def internal(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(500, code, message, details or {})

    @staticmethod
    def from_code(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        c = str(code or "error")
        return ApiError(_STATUS_BY_CODE.get(c, 400), c, str(message), dict(details or {}))

    @staticmethod
    def from_apply_error(e: ApplyError) -> "ApiError":
        details = e.details if isinstance(e.details, dict) else {"details": e.details}
        return ApiError.from_code(e.code, e.reason, details)

    def to_json(self) -> Dict[str, Any]:
        return {"ok": False, "error": {"code": self.code, "message": self.message, "details": self.details}}


async def api_error_handler(_request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_json())


async def apply_error_handler(request: Request, exc: ApplyError) -> JSONResponse:
    return await api_error_handler(request, ApiError.from_apply_error(exc))
