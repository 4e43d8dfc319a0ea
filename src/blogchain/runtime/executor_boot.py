# src/blogchain/runtime/executor_boot.py

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from blogchain.runtime.addresses import DEFAULT_ADDRESS_PREFIX
from blogchain.runtime.executor import BlogExecutor


@dataclass
class ExecutorBootConfig:
    db_path: str
    node_id: str
    chain_id: str
    address_prefix: str = DEFAULT_ADDRESS_PREFIX


def boot_config_from_env() -> ExecutorBootConfig:
    return ExecutorBootConfig(
        db_path=os.environ.get("BLOGCHAIN_DB_PATH", "./data/blogchain.db"),
        node_id=os.environ.get("BLOGCHAIN_NODE_ID", "local-node"),
        chain_id=os.environ.get("BLOGCHAIN_CHAIN_ID", "blogchain-dev"),
        address_prefix=os.environ.get("BLOGCHAIN_ADDRESS_PREFIX", DEFAULT_ADDRESS_PREFIX),
    )


def build_executor(cfg: Optional[ExecutorBootConfig] = None) -> BlogExecutor:
    """
    Build a BlogExecutor from an explicit boot config or, if omitted,
    from environment variables (see chain_config.apply_chain_config_to_env).
    """
    c = cfg or boot_config_from_env()
    return BlogExecutor(
        db_path=c.db_path,
        node_id=c.node_id,
        chain_id=c.chain_id,
        address_prefix=c.address_prefix,
    )
