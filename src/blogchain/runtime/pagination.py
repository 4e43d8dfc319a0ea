from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, Iterable, List, Optional, Tuple, TypeVar

from blogchain.runtime.errors import ApplyError

T = TypeVar("T")

DEFAULT_LIMIT = 50
MAX_LIMIT = 100


def _safe_int(x: Any, default: int = 0) -> int:
    try:
        if isinstance(x, bool):
            return int(default)
        return int(x)
    except (TypeError, ValueError):
        return int(default)


def encode_cursor(raw_key: bytes) -> str:
    return base64.urlsafe_b64encode(bytes(raw_key)).decode("ascii")


def decode_cursor(cursor: str) -> bytes:
    try:
        return base64.urlsafe_b64decode(str(cursor).encode("ascii"))
    except (binascii.Error, ValueError, UnicodeEncodeError) as e:
        raise ApplyError.invalid_argument("invalid pagination key", {"key": cursor}) from e


@dataclass(frozen=True)
class PageRequest:
    """Offset or cursor pagination. Out-of-range limits clamp, never error."""

    limit: int = DEFAULT_LIMIT
    offset: int = 0
    key: Optional[str] = None
    count_total: bool = True

    @staticmethod
    def build(
        limit: Any = None, offset: Any = None, key: Optional[str] = None, count_total: bool = True
    ) -> "PageRequest":
        lim = _safe_int(limit, DEFAULT_LIMIT)
        if lim <= 0:
            lim = DEFAULT_LIMIT
        lim = min(lim, MAX_LIMIT)
        off = max(0, _safe_int(offset, 0))
        k = (key or "").strip() or None
        return PageRequest(limit=lim, offset=off, key=k, count_total=bool(count_total))

    def normalized(self) -> "PageRequest":
        return PageRequest.build(self.limit, self.offset, self.key, self.count_total)


@dataclass
class PageResponse(Generic[T]):
    items: List[T] = field(default_factory=list)
    total: int = 0
    next_key: Optional[str] = None

    def to_json(self, item_to_json: Any = None) -> Dict[str, Any]:
        items = [item_to_json(i) for i in self.items] if item_to_json else list(self.items)
        return {"items": items, "total": int(self.total), "next_key": self.next_key}


def paginate(entries: Iterable[Tuple[bytes, T]], page: Optional[PageRequest] = None) -> PageResponse[T]:
    """Page over (raw_key, item) pairs already in index order.

    A cursor key takes precedence over offset. `total` is the number of
    entries in the whole stream, not just the page (0 unless count_total).
    """
    req = (page or PageRequest()).normalized()
    cursor = decode_cursor(req.key) if req.key else None

    out: List[T] = []
    next_key: Optional[str] = None
    total = 0
    skipped = 0

    for raw_key, item in entries:
        total += 1
        if cursor is not None:
            if raw_key < cursor:
                continue
        elif skipped < req.offset:
            skipped += 1
            continue

        if len(out) < req.limit:
            out.append(item)
        elif next_key is None:
            next_key = encode_cursor(raw_key)

    return PageResponse(items=out, total=total if req.count_total else 0, next_key=next_key)
