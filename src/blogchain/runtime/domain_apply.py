# src/blogchain/runtime/domain_apply.py
# ---------------------------------------------------------------------------
# Public, stable import path for applying tx envelopes.
# ---------------------------------------------------------------------------

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from blogchain.ledger.state import BlogState
from blogchain.runtime.domain_dispatch import apply_tx
from blogchain.runtime.errors import ApplyError
from blogchain.runtime.kv_store import KVStore, StagedKVStore
from blogchain.runtime.tx_admission_types import TxContext, TxEnvelope

Json = Dict[str, Any]


@dataclass
class TxReceipt:
    tx_type: str
    signer: str
    height: int
    block_time: int
    meta: Json = field(default_factory=dict)
    events: List[Json] = field(default_factory=list)
    writes: int = 0

    def to_json(self) -> Json:
        return {
            "ok": True,
            "tx_type": self.tx_type,
            "signer": self.signer,
            "height": int(self.height),
            "block_time": int(self.block_time),
            "meta": dict(self.meta),
            "events": list(self.events),
            "writes": int(self.writes),
        }


def apply_tx_atomic(store: KVStore, env: Any, ctx: TxContext) -> TxReceipt:
    """Apply a tx with fail-atomic semantics.

    All reads and writes go through a StagedKVStore over `store`. Reads come
    from one store.read_scope() held until the commit, so the tx sees a single
    committed state.

    On success:
      - staged writes are committed in one batch and buffered events are
        published into the receipt.

    On ApplyError:
      - the staged writes and buffered events are dropped, `store` is left
        untouched (including id sequences) and the error is re-raised.
    """

    env_norm: Any = env
    if isinstance(env, dict):
        env_norm = TxEnvelope.from_json(env)

    with store.read_scope() as view:
        staged = StagedKVStore(store, reader=view)
        st = BlogState(staged)
        try:
            meta = apply_tx(st, env_norm, ctx)
        except ApplyError:
            staged.discard()
            ctx.events.events = []
            raise

        writes = staged.commit()
    events = ctx.events.flush(tx_type=str(env_norm.tx_type), signer=str(env_norm.signer))
    return TxReceipt(
        tx_type=str(meta.get("applied") or env_norm.tx_type),
        signer=str(env_norm.signer),
        height=int(ctx.height),
        block_time=int(ctx.block_time),
        meta=meta,
        events=events,
        writes=writes,
    )


__all__ = ["ApplyError", "TxReceipt", "apply_tx", "apply_tx_atomic", "Json"]
