from __future__ import annotations

"""Pydantic request schemas for the public API.

These exist only for HTTP input validation. The tx payload fields are
checked again, authoritatively, by the domain handlers at apply time.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class TxSubmitRequest(BaseModel):
    tx_type: str = Field(..., min_length=1, description="e.g. BLOG_POST_CREATE")
    signer: str = Field(..., description="Signer address, e.g. blog1alice000")
    nonce: int = Field(default=0, ge=0)
    payload: Dict[str, Any] = Field(default_factory=dict)
    sig: str = Field(default="", description="Signature (verified by the host, not here)")
    parent: Optional[str] = Field(default=None)
    system: bool = Field(default=False)

    # Host-supplied block time override (unix seconds); mostly for tooling/tests.
    block_time: Optional[int] = Field(default=None, ge=0)

    model_config = {"extra": "ignore"}

    def envelope(self) -> Dict[str, Any]:
        return {
            "tx_type": self.tx_type,
            "signer": self.signer,
            "nonce": self.nonce,
            "payload": self.payload,
            "sig": self.sig,
            "parent": self.parent,
            "system": self.system,
        }
