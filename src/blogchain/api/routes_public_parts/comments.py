from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request

from blogchain.api.routes_public_parts.common import _state
from blogchain.runtime import queries

router = APIRouter()

Json = Dict[str, Any]


@router.get("/comments/{comment_id}")
def comments_get(request: Request, comment_id: int) -> Json:
    with _state(request) as st:
        return {"ok": True, "comment": queries.get_comment(st, comment_id)}


@router.get("/comments/{comment_id}/thread")
def comments_thread(request: Request, comment_id: int, max_depth: int = 0) -> Json:
    """Comment plus live replies, nested. max_depth=0 uses the server default."""
    with _state(request) as st:
        return {"ok": True, "thread": queries.comment_thread(st, comment_id, max_depth)}
