from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from blogchain.runtime.addresses import AddressCodec
from blogchain.runtime.events import EventManager


@dataclass(frozen=True)
class TxEnvelope:
    tx_type: str
    signer: str
    nonce: int
    payload: Dict[str, Any]
    sig: str = ""
    parent: Optional[str] = None
    system: bool = False

    @staticmethod
    def from_json(j: Any) -> "TxEnvelope":
        if isinstance(j, TxEnvelope):
            return j
        if not isinstance(j, dict):
            j = dict(j)  # type: ignore[arg-type]
        return TxEnvelope(
            tx_type=str(j.get("tx_type", "")),
            signer=str(j.get("signer", "")),
            nonce=int(j.get("nonce", 0) or 0),
            payload=dict(j.get("payload", {}) or {}),
            sig=str(j.get("sig", "") or ""),
            parent=(None if j.get("parent") is None else str(j.get("parent"))),
            system=bool(j.get("system", False)),
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "tx_type": self.tx_type,
            "signer": self.signer,
            "nonce": self.nonce,
            "payload": self.payload,
            "sig": self.sig,
            "parent": self.parent,
            "system": self.system,
        }


@dataclass
class TxContext:
    """Execution context supplied by the host for one tx.

    block_time is unix seconds and is the only clock services read.
    """

    block_time: int = 0
    height: int = 0
    addresses: AddressCodec = field(default_factory=AddressCodec)
    events: EventManager = field(default_factory=EventManager)
