from __future__ import annotations

import json
import os
from dataclasses import replace
from pathlib import Path

import pytest

from blogchain.runtime.chain_config import (
    apply_chain_config_to_env,
    default_chain_config,
    load_chain_config,
    validate_chain_config,
)

_ENV_KEYS = (
    "BLOGCHAIN_CHAIN_ID",
    "BLOGCHAIN_NODE_ID",
    "BLOGCHAIN_MODE",
    "BLOGCHAIN_DB_PATH",
    "BLOGCHAIN_ADDRESS_PREFIX",
    "BLOGCHAIN_LOG_LEVEL",
)


def test_defaults_are_prod_and_valid(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("BLOGCHAIN_CHAIN_CONFIG_PATH", raising=False)
    cfg = load_chain_config()
    assert cfg == default_chain_config()
    assert cfg.mode == "prod"
    assert cfg.address_prefix == "blog"


def test_load_from_file_fills_missing_fields(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    p = tmp_path / "chain.json"
    p.write_text(json.dumps({"chain_id": "blog-test", "mode": "dev", "api_port": "9001", "db_path": ""}), encoding="utf-8")
    monkeypatch.setenv("BLOGCHAIN_CHAIN_CONFIG_PATH", str(p))

    cfg = load_chain_config()
    assert cfg.chain_id == "blog-test"
    assert cfg.mode == "dev"
    assert cfg.api_port == 9001
    # Blank strings fall back to defaults.
    assert cfg.db_path == default_chain_config().db_path


def test_non_object_config_is_rejected(tmp_path: Path) -> None:
    p = tmp_path / "chain.json"
    p.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ValueError):
        load_chain_config(config_path=str(p))


@pytest.mark.parametrize(
    "field,value",
    [
        ("chain_id", " "),
        ("node_id", ""),
        ("mode", "staging"),
        ("api_port", 0),
        ("api_port", 70000),
        ("address_prefix", "Blog"),
        ("address_prefix", ""),
        ("api_host", ""),
        ("log_level", "LOUD"),
    ],
)
def test_validate_rejects_bad_values(field: str, value: object) -> None:
    with pytest.raises(ValueError):
        validate_chain_config(replace(default_chain_config(), **{field: value}))


def test_apply_chain_config_to_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for k in _ENV_KEYS:
        monkeypatch.setenv(k, "placeholder")

    cfg = replace(default_chain_config(), chain_id="c1", mode="Dev", address_prefix="post")
    apply_chain_config_to_env(cfg)

    assert os.environ["BLOGCHAIN_CHAIN_ID"] == "c1"
    assert os.environ["BLOGCHAIN_MODE"] == "dev"
    assert os.environ["BLOGCHAIN_ADDRESS_PREFIX"] == "post"
