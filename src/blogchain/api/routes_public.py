# src/blogchain/api/routes_public.py
from __future__ import annotations

from fastapi import APIRouter

from blogchain.api.routes_public_parts.comments import router as comments_router
from blogchain.api.routes_public_parts.health import router as health_router
from blogchain.api.routes_public_parts.posts import router as posts_router
from blogchain.api.routes_public_parts.profiles import router as profiles_router
from blogchain.api.routes_public_parts.tx import router as tx_router

public_router = APIRouter()

# Versioned API surface
public_router.include_router(health_router, prefix="/v1", tags=["health"])
public_router.include_router(tx_router, prefix="/v1", tags=["tx"])
public_router.include_router(posts_router, prefix="/v1", tags=["posts"])
public_router.include_router(comments_router, prefix="/v1", tags=["comments"])
public_router.include_router(profiles_router, prefix="/v1", tags=["profiles"])
