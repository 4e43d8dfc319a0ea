from __future__ import annotations

import time
from typing import Any, Dict

from fastapi import APIRouter, Request

router = APIRouter()


def _now_ms() -> int:
    return int(time.time() * 1000)


@router.get("/health")
def health(request: Request) -> Dict[str, Any]:
    """Liveness plus a few cheap executor facts. Never raises."""
    ex = getattr(request.app.state, "executor", None)
    return {
        "ok": True,
        "ts_ms": _now_ms(),
        "ready": ex is not None,
        "chain_id": str(getattr(ex, "chain_id", "") or ""),
        "node_id": str(getattr(ex, "node_id", "") or ""),
        "height": int(getattr(ex, "height", 0) or 0),
    }
