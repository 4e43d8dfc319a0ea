from __future__ import annotations

import struct

from blogchain.runtime.kv_store import KVStore

_U64 = struct.Struct(">Q")


class Sequence:
    """Monotonic id counter persisted in the transactional store.

    next() returns the current value and stores value+1, so ids are never
    reused even after deletes. The advance is an ordinary write: if the
    enclosing transaction aborts, the advance is discarded with it.
    """

    def __init__(self, store: KVStore, key: bytes, name: str, *, start: int = 0) -> None:
        if int(start) < 0:
            raise ValueError("sequence start must be >= 0")
        self.store = store
        self.key = bytes(key)
        self.name = name
        self.start = int(start)

    def peek(self) -> int:
        raw = self.store.get(self.key)
        if raw is None:
            return self.start
        return _U64.unpack(raw)[0]

    def next(self) -> int:
        cur = self.peek()
        self.store.set(self.key, _U64.pack(cur + 1))
        return cur
