# src/blogchain/runtime/kv_store.py
from __future__ import annotations

"""
Ordered byte-keyed storage.

Every collection of the blog state lives in its own key prefix inside one
KVStore. Iteration is always ascending by raw key bytes, which is what makes
big-endian integer keys come back in numeric order.

Backends:
- MemoryKVStore: sorted in-process store (tests, tools)
- SqliteKVStore: durable store (see sqlite_db.py)

StagedKVStore is the transaction scope: it buffers writes over a parent
store and either commits them as one batch or drops them.

read_scope() hands out a view in which every read sees the same committed
state; a batch is either wholly visible in it or not at all.
"""

import bisect
import threading
from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

KV = Tuple[bytes, bytes]


def prefix_end(prefix: bytes) -> Optional[bytes]:
    """Smallest key greater than every key starting with `prefix`.

    Returns None when no such key exists (empty prefix, or all 0xff bytes),
    meaning "iterate to the end".
    """
    b = bytearray(prefix)
    while b:
        if b[-1] < 0xFF:
            b[-1] += 1
            return bytes(b)
        b.pop()
    return None


class KVStore:
    """Minimal ordered key-value contract consumed by the blog state."""

    def get(self, key: bytes) -> Optional[bytes]:
        raise NotImplementedError

    def has(self, key: bytes) -> bool:
        return self.get(key) is not None

    def set(self, key: bytes, value: bytes) -> None:
        raise NotImplementedError

    def delete(self, key: bytes) -> None:
        raise NotImplementedError

    def iterate(self, start: bytes = b"", end: Optional[bytes] = None) -> Iterator[KV]:
        """Yield (key, value) with start <= key < end, ascending."""
        raise NotImplementedError

    def iterate_prefix(self, prefix: bytes) -> Iterator[KV]:
        return self.iterate(prefix, prefix_end(prefix))

    def write_batch(self, ops: Iterable[Tuple[bytes, Optional[bytes]]]) -> None:
        """Apply (key, value|None) pairs; None deletes. Backends override to make this atomic."""
        for k, v in ops:
            if v is None:
                self.delete(k)
            else:
                self.set(k, v)

    @contextmanager
    def read_scope(self) -> Iterator["KVStore"]:
        """Consistent read view. Backends without concurrent writers return themselves."""
        yield self


def _check_key(key: bytes) -> bytes:
    if not isinstance(key, (bytes, bytearray)):
        raise TypeError(f"kv key must be bytes, got {type(key).__name__}")
    return bytes(key)


def _check_value(value: bytes) -> bytes:
    if not isinstance(value, (bytes, bytearray)):
        raise TypeError(f"kv value must be bytes, got {type(value).__name__}")
    return bytes(value)


class MemoryKVStore(KVStore):
    """Sorted in-process store.

    One reentrant lock guards the data. write_batch() holds it for the whole
    batch and read_scope() holds it for the whole read, so a reader never sees
    part of a batch.
    """

    def __init__(self) -> None:
        self._data: Dict[bytes, bytes] = {}
        self._keys: List[bytes] = []
        self._mu = threading.RLock()

    def __len__(self) -> int:
        return len(self._data)

    def get(self, key: bytes) -> Optional[bytes]:
        k = _check_key(key)
        with self._mu:
            return self._data.get(k)

    def set(self, key: bytes, value: bytes) -> None:
        k, v = _check_key(key), _check_value(value)
        with self._mu:
            self._put(k, v)

    def delete(self, key: bytes) -> None:
        k = _check_key(key)
        with self._mu:
            self._remove(k)

    def _put(self, k: bytes, v: bytes) -> None:
        if k not in self._data:
            bisect.insort(self._keys, k)
        self._data[k] = v

    def _remove(self, k: bytes) -> None:
        if k not in self._data:
            return
        del self._data[k]
        i = bisect.bisect_left(self._keys, k)
        if i < len(self._keys) and self._keys[i] == k:
            self._keys.pop(i)

    def write_batch(self, ops: Iterable[Tuple[bytes, Optional[bytes]]]) -> None:
        checked = [(_check_key(k), None if v is None else _check_value(v)) for k, v in ops]
        with self._mu:
            for k, v in checked:
                if v is None:
                    self._remove(k)
                else:
                    self._put(k, v)

    def iterate(self, start: bytes = b"", end: Optional[bytes] = None) -> Iterator[KV]:
        # Materialize the range so callers may write while iterating.
        with self._mu:
            lo = bisect.bisect_left(self._keys, start)
            hi = len(self._keys) if end is None else bisect.bisect_left(self._keys, end)
            out: List[KV] = [(k, self._data[k]) for k in self._keys[lo:hi]]
        return iter(out)

    @contextmanager
    def read_scope(self) -> Iterator[KVStore]:
        with self._mu:
            yield self


class StagedKVStore(KVStore):
    """Write-buffering overlay over a parent store.

    Reads see staged writes first, then `reader` (the parent by default).
    Nothing reaches the parent until commit().
    """

    def __init__(self, parent: KVStore, *, reader: Optional[KVStore] = None) -> None:
        self._parent = parent
        self._reader = reader if reader is not None else parent
        self._writes: Dict[bytes, Optional[bytes]] = {}
        self._closed = False

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("staged store already committed or discarded")

    def get(self, key: bytes) -> Optional[bytes]:
        self._ensure_open()
        k = _check_key(key)
        if k in self._writes:
            return self._writes[k]
        return self._reader.get(k)

    def set(self, key: bytes, value: bytes) -> None:
        self._ensure_open()
        self._writes[_check_key(key)] = _check_value(value)

    def delete(self, key: bytes) -> None:
        self._ensure_open()
        self._writes[_check_key(key)] = None

    def iterate(self, start: bytes = b"", end: Optional[bytes] = None) -> Iterator[KV]:
        self._ensure_open()
        staged = sorted(k for k in self._writes if k >= start and (end is None or k < end))
        parent_it = iter(list(self._reader.iterate(start, end)))

        i = 0
        nxt = next(parent_it, None)
        while nxt is not None or i < len(staged):
            sk = staged[i] if i < len(staged) else None
            if nxt is not None and (sk is None or nxt[0] < sk):
                yield nxt
                nxt = next(parent_it, None)
                continue
            # staged key wins (either smaller, or shadows the parent key)
            if nxt is not None and sk == nxt[0]:
                nxt = next(parent_it, None)
            v = self._writes.get(sk)  # type: ignore[arg-type]
            if v is not None:
                yield sk, v  # type: ignore[misc]
            i += 1

    def commit(self) -> int:
        """Flush staged writes to the parent as one batch. Returns the op count."""
        self._ensure_open()
        ops = sorted(self._writes.items())
        if ops:
            self._parent.write_batch(ops)
        self._writes = {}
        self._closed = True
        return len(ops)

    def discard(self) -> None:
        self._writes = {}
        self._closed = True
