from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from fastapi import Request

from blogchain.api.errors import ApiError
from blogchain.ledger.state import BlogState
from blogchain.runtime.pagination import PageRequest

Json = Dict[str, Any]


def _executor(request: Request):
    ex = getattr(request.app.state, "executor", None)
    if ex is None:
        raise ApiError.internal("not_ready", "executor not attached to app.state", {})
    return ex


@contextmanager
def _state(request: Request) -> Iterator[BlogState]:
    """One consistent snapshot of the executor's committed state."""
    with _executor(request).read_state() as st:
        yield st


def _int_param(v: Any, default: int) -> int:
    """Parse an int-ish query param safely."""
    if v is None:
        return int(default)
    try:
        s = str(v).strip()
        if s == "":
            return int(default)
        return int(s)
    except ValueError:
        return int(default)


def _page(limit: Any = None, offset: Any = None, key: Optional[str] = None) -> PageRequest:
    return PageRequest.build(_int_param(limit, 0), _int_param(offset, 0), key)
