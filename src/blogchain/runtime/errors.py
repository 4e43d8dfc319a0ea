from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

NOT_FOUND = "not_found"
INVALID_ARGUMENT = "invalid_argument"
UNAUTHORIZED = "unauthorized"
INVALID_STATE = "invalid_state"
ALREADY_EXISTS = "already_exists"

# Dispatcher-level codes (envelope shape, routing).
INVALID_PAYLOAD = "invalid_payload"
TX_UNIMPLEMENTED = "tx_unimplemented"


@dataclass
class ApplyError(Exception):
    """Canonical error type for domain apply and dispatch failures.

    `reason` is a human readable description of the violated precondition.
    Raising one aborts the enclosing transaction; none of these are fatal to
    the host process.
    """

    code: str
    reason: str
    details: Any | None = None

    def __str__(self) -> str:  # pragma: no cover
        if self.details is None:
            return f"{self.code}:{self.reason}"
        return f"{self.code}:{self.reason}:{self.details}"

    @staticmethod
    def not_found(reason: str, details: Optional[dict[str, Any]] = None) -> "ApplyError":
        return ApplyError(NOT_FOUND, reason, details or {})

    @staticmethod
    def invalid_argument(reason: str, details: Optional[dict[str, Any]] = None) -> "ApplyError":
        return ApplyError(INVALID_ARGUMENT, reason, details or {})

    @staticmethod
    def unauthorized(reason: str, details: Optional[dict[str, Any]] = None) -> "ApplyError":
        return ApplyError(UNAUTHORIZED, reason, details or {})

    @staticmethod
    def invalid_state(reason: str, details: Optional[dict[str, Any]] = None) -> "ApplyError":
        return ApplyError(INVALID_STATE, reason, details or {})

    @staticmethod
    def already_exists(reason: str, details: Optional[dict[str, Any]] = None) -> "ApplyError":
        return ApplyError(ALREADY_EXISTS, reason, details or {})
