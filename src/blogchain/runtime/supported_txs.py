# src/blogchain/runtime/supported_txs.py
"""Tx types this build knows how to apply.

Admission uses SUPPORTED_TX_TYPES as a coarse gate; anything outside it is
rejected before touching state. The set is the union of the per-domain
tables so a new handler only needs registering in one place.
"""

from __future__ import annotations

from typing import AbstractSet, FrozenSet

from blogchain.runtime.apply.comments import COMMENT_TX_TYPES
from blogchain.runtime.apply.posts import POST_TX_TYPES
from blogchain.runtime.apply.profiles import PROFILE_TX_TYPES

SUPPORTED_TX_TYPES: FrozenSet[str] = frozenset(POST_TX_TYPES | COMMENT_TX_TYPES | PROFILE_TX_TYPES)


def supported_tx_types() -> AbstractSet[str]:
    return SUPPORTED_TX_TYPES


def is_supported_tx_type(tx_type: str) -> bool:
    return str(tx_type or "").strip().upper() in SUPPORTED_TX_TYPES
