from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from blogchain.ledger.state import BlogState
from blogchain.runtime.addresses import DEFAULT_ADDRESS_PREFIX, AddressCodec
from blogchain.runtime.chain_config import load_chain_config
from blogchain.runtime.domain_apply import apply_tx_atomic
from blogchain.runtime.errors import INVALID_PAYLOAD, ApplyError
from blogchain.runtime.kv_store import KVStore, MemoryKVStore
from blogchain.runtime.runtime_logging import log_event
from blogchain.runtime.sqlite_db import SqliteDB, SqliteKVStore
from blogchain.runtime.supported_txs import is_supported_tx_type
from blogchain.runtime.tx_admission_types import TxContext, TxEnvelope

Json = Dict[str, Any]

MEMORY_DB_PATH = ":memory:"

_log = logging.getLogger("blogchain.executor")


def _safe_int(v: Any, default: int) -> int:
    try:
        return int(v)
    except (TypeError, ValueError):
        return int(default)


class ExecutorError(RuntimeError):
    pass


class BlogExecutor:
    """Single-writer executor over the blog KV state.

    Every submitted tx is applied atomically (see domain_apply.apply_tx_atomic)
    and advances the height by one. Applies are serialized with a lock. Reads
    use read_state(), which pins one committed snapshot for its whole scope.
    """

    def __init__(
        self,
        *,
        db_path: str,
        node_id: str,
        chain_id: str,
        address_prefix: str = DEFAULT_ADDRESS_PREFIX,
    ) -> None:
        self.node_id = str(node_id)
        self.chain_id = str(chain_id)
        self.db_path = str(db_path)
        self.addresses = AddressCodec(prefix=str(address_prefix))

        self._lock = threading.Lock()
        self._db: Optional[SqliteDB] = None

        if self.db_path == MEMORY_DB_PATH:
            self._store: KVStore = MemoryKVStore()
            self.height = 0
            return

        self._db = SqliteDB(path=self.db_path)
        self._db.init_schema()
        self._store = SqliteKVStore(db=self._db)

        # Fail-closed on chain_id mismatch once the DB has one.
        db_chain_id = (self._db.get_meta("chain_id") or "").strip()
        if db_chain_id and db_chain_id != self.chain_id:
            raise ExecutorError(
                f"chain_id mismatch: db={db_chain_id!r} executor={self.chain_id!r}. Refuse to start."
            )
        if not db_chain_id:
            self._db.set_meta("chain_id", self.chain_id)

        self.height = _safe_int(self._db.get_meta("height"), 0)

    @classmethod
    def in_memory(cls, *, chain_id: str = "blogchain-test", node_id: str = "local-node") -> "BlogExecutor":
        return cls(db_path=MEMORY_DB_PATH, node_id=node_id, chain_id=chain_id)

    @classmethod
    def from_env(cls) -> "BlogExecutor":
        cfg = load_chain_config()
        return cls(
            db_path=cfg.db_path,
            node_id=cfg.node_id,
            chain_id=cfg.chain_id,
            address_prefix=cfg.address_prefix,
        )

    # ----------------------------
    # Public accessors
    # ----------------------------

    @property
    def store(self) -> KVStore:
        return self._store

    @property
    def db(self) -> Optional[SqliteDB]:
        return self._db

    @contextmanager
    def read_state(self) -> Iterator[BlogState]:
        """Read view over one committed snapshot. Callers must not write through it.

        A tx commits either wholly before or wholly after the snapshot, so
        counters and the records they count always agree inside one scope.
        """
        with self._store.read_scope() as view:
            yield BlogState(view)

    # ----------------------------
    # Tx submission
    # ----------------------------

    def submit_tx(self, env: Json, *, block_time: Optional[int] = None) -> Json:
        """Apply one tx envelope.

        Returns the receipt json ({"ok": True, ...}) or
        {"ok": False, "error": code, "reason": ..., "details": ...}.
        """
        if not isinstance(env, dict):
            return {"ok": False, "error": "bad_env:not_object", "reason": "tx envelope must be an object", "details": {}}

        tx_type = str(env.get("tx_type") or "").strip().upper()
        if not is_supported_tx_type(tx_type):
            return {
                "ok": False,
                "error": "tx_unimplemented",
                "reason": "tx_type_not_implemented",
                "details": {"tx_type": tx_type},
            }

        try:
            tx = TxEnvelope.from_json(env)
            bt = int(block_time) if block_time is not None else int(time.time())
        except (TypeError, ValueError, OverflowError) as e:
            log_event(_log, "tx_rejected", tx_type=tx_type, code=INVALID_PAYLOAD, reason="bad_env")
            return {"ok": False, "error": INVALID_PAYLOAD, "reason": "bad_env", "details": {"error": str(e)}}

        with self._lock:
            ctx = TxContext(block_time=bt, height=self.height + 1, addresses=self.addresses)
            try:
                receipt = apply_tx_atomic(self._store, tx, ctx)
            except ApplyError as e:
                log_event(_log, "tx_rejected", tx_type=tx_type, code=e.code, reason=e.reason)
                return {"ok": False, "error": e.code, "reason": e.reason, "details": e.details or {}}

            self.height = ctx.height
            if self._db is not None:
                self._db.set_meta("height", str(self.height))

        log_event(_log, "tx_applied", tx_type=receipt.tx_type, height=receipt.height, writes=receipt.writes)
        return receipt.to_json()
