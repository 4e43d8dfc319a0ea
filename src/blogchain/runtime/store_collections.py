# src/blogchain/runtime/store_collections.py
from __future__ import annotations

"""
Typed collections over a prefixed KVStore namespace.

Key layout:
- uint64 components are 8-byte big-endian (iteration order == numeric order)
- string components are UTF-8; when a string is the first half of a pair it
  is NUL-terminated so a prefix scan on it cannot bleed into longer strings

Values are canonical JSON (sorted keys, compact separators). Non-JSON types
are never coerced, so a bad record fails loudly instead of persisting
something nondeterministic.
"""

import json
import struct
from typing import Any, Callable, Dict, Generic, Iterator, Optional, Tuple, TypeVar

from blogchain.runtime.kv_store import KVStore, prefix_end

Json = Dict[str, Any]
K = TypeVar("K")
V = TypeVar("V")

_U64 = struct.Struct(">Q")
_U64_MAX = (1 << 64) - 1


def canon_json(obj: Any) -> str:
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


# ---------------------------------------------------------------------------
# Key codecs
# ---------------------------------------------------------------------------


class KeyCodec(Generic[K]):
    def encode(self, key: K) -> bytes:
        raise NotImplementedError

    def encode_non_terminal(self, key: K) -> bytes:
        return self.encode(key)

    def decode(self, raw: bytes) -> Tuple[K, int]:
        """Decode a key from the start of `raw`; return (key, bytes consumed)."""
        raise NotImplementedError

    def decode_non_terminal(self, raw: bytes) -> Tuple[K, int]:
        return self.decode(raw)


class Uint64KeyCodec(KeyCodec[int]):
    def encode(self, key: int) -> bytes:
        k = int(key)
        if k < 0 or k > _U64_MAX:
            raise ValueError(f"uint64 key out of range: {key}")
        return _U64.pack(k)

    def decode(self, raw: bytes) -> Tuple[int, int]:
        if len(raw) < 8:
            raise ValueError("uint64 key needs 8 bytes")
        return _U64.unpack(raw[:8])[0], 8


class StringKeyCodec(KeyCodec[str]):
    def encode(self, key: str) -> bytes:
        return str(key).encode("utf-8")

    def encode_non_terminal(self, key: str) -> bytes:
        b = self.encode(key)
        if b"\x00" in b:
            raise ValueError("string key must not contain NUL")
        return b + b"\x00"

    def decode(self, raw: bytes) -> Tuple[str, int]:
        return raw.decode("utf-8"), len(raw)

    def decode_non_terminal(self, raw: bytes) -> Tuple[str, int]:
        i = raw.find(b"\x00")
        if i < 0:
            raise ValueError("non-terminal string key missing NUL terminator")
        return raw[:i].decode("utf-8"), i + 1


class PairKeyCodec(KeyCodec[Tuple[Any, Any]]):
    def __init__(self, k1: KeyCodec[Any], k2: KeyCodec[Any]) -> None:
        self.k1 = k1
        self.k2 = k2

    def encode(self, key: Tuple[Any, Any]) -> bytes:
        a, b = key
        return self.k1.encode_non_terminal(a) + self.k2.encode(b)

    def prefix(self, first: Any) -> bytes:
        return self.k1.encode_non_terminal(first)

    def decode(self, raw: bytes) -> Tuple[Tuple[Any, Any], int]:
        a, n = self.k1.decode_non_terminal(raw)
        b, m = self.k2.decode(raw[n:])
        return (a, b), n + m


Uint64Key = Uint64KeyCodec()
StringKey = StringKeyCodec()


# ---------------------------------------------------------------------------
# Collections
# ---------------------------------------------------------------------------


class _Prefixed:
    def __init__(self, store: KVStore, prefix: bytes, name: str) -> None:
        if not prefix:
            raise ValueError(f"collection {name!r} needs a non-empty prefix")
        self.store = store
        self.prefix = bytes(prefix)
        self.name = name


class Map(_Prefixed, Generic[K, V]):
    """Primary keyed records (JSON values)."""

    def __init__(
        self,
        store: KVStore,
        prefix: bytes,
        name: str,
        key_codec: KeyCodec[K],
        *,
        to_json: Callable[[V], Json],
        from_json: Callable[[Json], V],
    ) -> None:
        super().__init__(store, prefix, name)
        self.key_codec = key_codec
        self._to_json = to_json
        self._from_json = from_json

    def _key(self, key: K) -> bytes:
        return self.prefix + self.key_codec.encode(key)

    def get(self, key: K) -> Optional[V]:
        raw = self.store.get(self._key(key))
        if raw is None:
            return None
        obj = json.loads(raw.decode("utf-8"))
        if not isinstance(obj, dict):
            raise ValueError(f"{self.name}: stored value is not a JSON object")
        return self._from_json(obj)

    def has(self, key: K) -> bool:
        return self.store.has(self._key(key))

    def set(self, key: K, value: V) -> None:
        self.store.set(self._key(key), canon_json(self._to_json(value)).encode("utf-8"))

    def remove(self, key: K) -> None:
        self.store.delete(self._key(key))

    def iterate(self) -> Iterator[Tuple[bytes, K, V]]:
        """Yield (raw_key, key, value) in key order."""
        plen = len(self.prefix)
        for raw_key, raw in self.store.iterate_prefix(self.prefix):
            key, _ = self.key_codec.decode(raw_key[plen:])
            yield raw_key, key, self._from_json(json.loads(raw.decode("utf-8")))


class StringMap(_Prefixed):
    """String -> string lookup table (e.g. username -> address)."""

    def _key(self, key: str) -> bytes:
        return self.prefix + StringKey.encode(key)

    def get(self, key: str) -> Optional[str]:
        raw = self.store.get(self._key(key))
        return None if raw is None else raw.decode("utf-8")

    def set(self, key: str, value: str) -> None:
        self.store.set(self._key(key), str(value).encode("utf-8"))

    def remove(self, key: str) -> None:
        self.store.delete(self._key(key))


_PRESENT = b"\x01"


class KeySet(_Prefixed, Generic[K]):
    """Existence-only index. Iteration follows key order."""

    def __init__(self, store: KVStore, prefix: bytes, name: str, key_codec: KeyCodec[K]) -> None:
        super().__init__(store, prefix, name)
        self.key_codec = key_codec

    def _key(self, key: K) -> bytes:
        return self.prefix + self.key_codec.encode(key)

    def has(self, key: K) -> bool:
        return self.store.has(self._key(key))

    def add(self, key: K) -> None:
        self.store.set(self._key(key), _PRESENT)

    def remove(self, key: K) -> None:
        self.store.delete(self._key(key))

    def _scan(self, start: bytes, end: Optional[bytes]) -> Iterator[Tuple[bytes, K]]:
        plen = len(self.prefix)
        for raw_key, _ in self.store.iterate(start, end):
            key, _n = self.key_codec.decode(raw_key[plen:])
            yield raw_key, key

    def iterate(self, start: Optional[bytes] = None) -> Iterator[Tuple[bytes, K]]:
        """Yield (raw_key, key) for the whole set, optionally resuming at a raw key (inclusive)."""
        lo = self.prefix if start is None or bytes(start) < self.prefix else bytes(start)
        return self._scan(lo, prefix_end(self.prefix))

    def iterate_prefixed(self, first: Any, start: Optional[bytes] = None) -> Iterator[Tuple[bytes, K]]:
        """Pair sets only: yield entries whose first component equals `first`."""
        if not isinstance(self.key_codec, PairKeyCodec):
            raise TypeError(f"{self.name}: prefixed iteration needs a pair key")
        p = self.prefix + self.key_codec.prefix(first)
        lo = p if start is None or bytes(start) < p else bytes(start)
        return self._scan(lo, prefix_end(p))

    def count(self) -> int:
        return sum(1 for _ in self.store.iterate_prefix(self.prefix))
