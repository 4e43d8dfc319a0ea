from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Request

from blogchain.api.routes_public_parts.common import _page, _state
from blogchain.runtime import queries

router = APIRouter()

Json = Dict[str, Any]


@router.get("/posts")
def posts_list(
    request: Request, limit: Optional[int] = None, offset: Optional[int] = None, key: Optional[str] = None
) -> Json:
    """Active (not deleted) posts in id order."""
    with _state(request) as st:
        page = queries.list_active_posts(st, _page(limit, offset, key))
    return {"ok": True, **page}


@router.get("/posts/{post_id}")
def posts_get(request: Request, post_id: int) -> Json:
    # Deleted posts are still returned; clients check `deleted`.
    with _state(request) as st:
        return {"ok": True, "post": queries.get_post(st, post_id)}


@router.get("/posts/{post_id}/likes/{liker}")
def posts_liked(request: Request, post_id: int, liker: str) -> Json:
    with _state(request) as st:
        return {"ok": True, **queries.has_user_liked_post(st, post_id, liker)}


@router.get("/posts/{post_id}/comments")
def posts_comments(
    request: Request,
    post_id: int,
    parent_id: int = 0,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
    key: Optional[str] = None,
) -> Json:
    """Live top-level comments (parent_id=0) or live replies to parent_id."""
    with _state(request) as st:
        page = queries.list_comments(st, post_id, parent_id, _page(limit, offset, key))
    return {"ok": True, **page}
