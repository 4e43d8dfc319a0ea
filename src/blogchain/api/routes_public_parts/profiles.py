from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Request

from blogchain.api.routes_public_parts.common import _page, _state
from blogchain.runtime import queries

router = APIRouter()

Json = Dict[str, Any]


@router.get("/profiles")
def profiles_list(
    request: Request, limit: Optional[int] = None, offset: Optional[int] = None, key: Optional[str] = None
) -> Json:
    with _state(request) as st:
        page = queries.list_profiles(st, _page(limit, offset, key))
    return {"ok": True, **page}


# Registered before /profiles/{address} so "by-username" is not taken as an address.
@router.get("/profiles/by-username/{username}")
def profiles_by_username(request: Request, username: str) -> Json:
    with _state(request) as st:
        return {"ok": True, "profile": queries.get_profile_by_username(st, username)}


@router.get("/profiles/{address}")
def profiles_get(request: Request, address: str) -> Json:
    with _state(request) as st:
        return {"ok": True, "profile": queries.get_profile(st, address)}


@router.get("/profiles/{address}/followers")
def profiles_followers(request: Request, address: str) -> Json:
    with _state(request) as st:
        items = queries.get_followers(st, address)
    return {"ok": True, "address": address, "items": items, "total": len(items)}


@router.get("/profiles/{address}/following")
def profiles_following(request: Request, address: str) -> Json:
    with _state(request) as st:
        items = queries.get_following(st, address)
    return {"ok": True, "address": address, "items": items, "total": len(items)}


@router.get("/profiles/{address}/following/{target}")
def profiles_is_following(request: Request, address: str, target: str) -> Json:
    with _state(request) as st:
        return {"ok": True, **queries.is_following(st, address, target)}
