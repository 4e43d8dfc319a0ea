# src/blogchain/runtime/chain_config.py
from __future__ import annotations

"""
Operator config for one blogchain node.

Sources, first match wins:
- the JSON object at BLOGCHAIN_CHAIN_CONFIG_PATH (missing or blank fields
  take the defaults below)
- default_chain_config()

The loaded config is exported to BLOGCHAIN_* env vars so the executor boot
and the SQLite layer read the same values.
"""

import json
import os
import re
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

Json = Dict[str, Any]

_MODES = ("dev", "testnet", "prod")
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
# Human readable part of blog addresses: "blog" in blog1alice000.
_ADDRESS_PREFIX_RE = re.compile(r"^[a-z]{1,16}$")


@dataclass(frozen=True)
class ChainConfig:
    chain_id: str
    node_id: str
    mode: str  # one of _MODES

    # ":memory:" keeps the blog state in-process.
    db_path: str
    address_prefix: str

    api_host: str
    api_port: int

    log_level: str


def default_chain_config() -> ChainConfig:
    # No config file means prod: FULL sqlite sync, no wildcard CORS, no docs.
    return ChainConfig(
        chain_id="blogchain-dev",
        node_id="local-node",
        mode="prod",
        db_path="./data/blogchain.db",
        address_prefix="blog",
        api_host="0.0.0.0",
        api_port=8000,
        log_level="INFO",
    )


def validate_chain_config(cfg: ChainConfig) -> None:
    for name in ("chain_id", "node_id", "db_path", "api_host"):
        v = getattr(cfg, name)
        if not isinstance(v, str) or not v.strip():
            raise ValueError(f"{name} must be a non-empty string")

    if str(cfg.mode or "").strip().lower() not in _MODES:
        raise ValueError(f"mode must be one of {_MODES}; got: {cfg.mode!r}")

    if not 1 <= int(cfg.api_port) <= 65535:
        raise ValueError(f"api_port must be 1..65535; got: {cfg.api_port}")

    if not _ADDRESS_PREFIX_RE.match(str(cfg.address_prefix or "")):
        raise ValueError(f"address_prefix must be 1..16 lowercase letters; got: {cfg.address_prefix!r}")

    if str(cfg.log_level or "").strip().upper() not in _LOG_LEVELS:
        raise ValueError(f"log_level must be one of {_LOG_LEVELS}; got: {cfg.log_level!r}")


def _field_value(raw: Json, name: str, default: Any) -> Any:
    v = raw.get(name)
    if v is None or (isinstance(v, str) and not v.strip()):
        return default
    if isinstance(default, int):
        try:
            return int(v)
        except (TypeError, ValueError):
            return default
    return str(v)


def read_chain_config_file(path: str) -> ChainConfig:
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError(f"chain config {path} must hold a JSON object")

    d = default_chain_config()
    cfg = ChainConfig(**{f.name: _field_value(raw, f.name, getattr(d, f.name)) for f in fields(ChainConfig)})
    validate_chain_config(cfg)
    return cfg


def load_chain_config(*, config_path: Optional[str] = None) -> ChainConfig:
    path = config_path or os.environ.get("BLOGCHAIN_CHAIN_CONFIG_PATH")
    cfg = read_chain_config_file(path) if path else default_chain_config()
    validate_chain_config(cfg)
    return cfg


_ENV_EXPORTS = {
    "BLOGCHAIN_CHAIN_ID": "chain_id",
    "BLOGCHAIN_NODE_ID": "node_id",
    "BLOGCHAIN_MODE": "mode",  # sqlite_db picks its synchronous pragma from this
    "BLOGCHAIN_DB_PATH": "db_path",
    "BLOGCHAIN_ADDRESS_PREFIX": "address_prefix",
    "BLOGCHAIN_LOG_LEVEL": "log_level",
}


def apply_chain_config_to_env(cfg: ChainConfig) -> None:
    validate_chain_config(cfg)
    for env_key, name in _ENV_EXPORTS.items():
        v = str(getattr(cfg, name))
        os.environ[env_key] = v.strip().lower() if name == "mode" else v
