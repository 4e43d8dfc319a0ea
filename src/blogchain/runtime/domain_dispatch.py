# src/blogchain/runtime/domain_dispatch.py

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from blogchain.ledger.state import BlogState
from blogchain.runtime.errors import INVALID_PAYLOAD, TX_UNIMPLEMENTED, ApplyError
from blogchain.runtime.tx_admission_types import TxContext, TxEnvelope

# Domain appliers (each returns Optional[Json]; returning None means "not claimed")
from blogchain.runtime.apply.comments import apply_comments
from blogchain.runtime.apply.posts import apply_posts
from blogchain.runtime.apply.profiles import apply_profiles

Json = Dict[str, Any]
ApplyFn = Callable[[BlogState, TxEnvelope, TxContext], Optional[Json]]


def _get(env: Any, key: str, default: Any = None) -> Any:
    """Read a field from either a TxEnvelope or a raw dict envelope."""

    if isinstance(env, dict):
        return env.get(key, default)
    return getattr(env, key, default)


def _tx_type(env: Any) -> str:
    return str(_get(env, "tx_type", "") or "").strip().upper()


_APPLIERS: tuple[ApplyFn, ...] = (
    apply_posts,
    apply_comments,
    apply_profiles,
)


def apply_tx(st: BlogState, env: Any, ctx: TxContext) -> Json:
    """Dispatch a TxEnvelope to the first domain applier that claims it.

    Unexpected exceptions from a domain are wrapped into ApplyError so the
    caller only ever has to handle one error type.
    """

    env_norm: Any = env
    if isinstance(env, dict):
        env_norm = TxEnvelope.from_json(env)

    t = _tx_type(env_norm)
    if not t:
        raise ApplyError(INVALID_PAYLOAD, "missing_tx_type", {"tx_type": t})
    if env_norm.tx_type != t:
        env_norm = TxEnvelope.from_json({**env_norm.to_json(), "tx_type": t})

    for fn in _APPLIERS:
        try:
            out = fn(st, env_norm, ctx)
        except ApplyError:
            raise
        except (TypeError, ValueError, KeyError, OverflowError) as e:
            raise ApplyError(
                "domain_error",
                type(e).__name__,
                {"tx_type": t, "domain": fn.__name__, "error": str(e)},
            ) from e

        if out is not None:
            return out

    raise ApplyError(TX_UNIMPLEMENTED, "tx_type_not_implemented", {"tx_type": t})


__all__ = ["apply_tx", "ApplyFn", "Json"]
