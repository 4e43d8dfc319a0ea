from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request

from blogchain.api.errors import ApiError
from blogchain.api.routes_public_parts.common import _executor
from blogchain.api.schemas import TxSubmitRequest

router = APIRouter()

Json = Dict[str, Any]


@router.post("/tx/submit")
def tx_submit(request: Request, body: TxSubmitRequest) -> Json:
    """Apply a user tx envelope and return its receipt.

    Rejections come back as {"ok": false, "error": {code, message, details}}
    with the status code of the domain error (404/400/403/409).
    """
    ex = _executor(request)

    # System txs are never accepted over public HTTP.
    if body.system:
        raise ApiError.forbidden(
            "system_tx_forbidden",
            "system-only txs cannot be submitted through the public tx endpoint",
            {"tx_type": body.tx_type, "signer": body.signer},
        )

    meta = ex.submit_tx(body.envelope(), block_time=body.block_time)
    if not isinstance(meta, dict) or not meta.get("ok"):
        if not isinstance(meta, dict):
            raise ApiError.internal("submit_failed", "tx rejected", {"meta": str(meta)})
        raise ApiError.from_code(
            str(meta.get("error") or "submit_failed"),
            str(meta.get("reason") or "tx rejected"),
            meta.get("details") if isinstance(meta.get("details"), dict) else {},
        )

    return meta
