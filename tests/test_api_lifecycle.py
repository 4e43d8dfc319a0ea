from __future__ import annotations

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

_CONFIG_ENV_KEYS = (
    "BLOGCHAIN_CHAIN_ID",
    "BLOGCHAIN_NODE_ID",
    "BLOGCHAIN_MODE",
    "BLOGCHAIN_DB_PATH",
    "BLOGCHAIN_ADDRESS_PREFIX",
    "BLOGCHAIN_LOG_LEVEL",
)


class _FakeExecutor(SimpleNamespace):
    """Minimal executor stub for API lifecycle tests."""


def test_create_app_boot_runtime_false_does_not_attach_executor() -> None:
    from blogchain.api.app import create_app

    app = create_app(boot_runtime=False)
    assert getattr(app.state, "executor", None) is None

    # App should still be startable for route/middleware tests.
    with TestClient(app) as client:
        r = client.get("/v1/health")
        assert r.status_code == 200
        assert r.json()["ready"] is False


def test_create_app_boot_runtime_true_attaches_executor(monkeypatch: pytest.MonkeyPatch) -> None:
    from blogchain.api import app as api_app

    # create_app exports chain config into os.environ; register the keys so they are restored.
    for k in _CONFIG_ENV_KEYS:
        monkeypatch.setenv(k, "placeholder")
    monkeypatch.delenv("BLOGCHAIN_CHAIN_CONFIG_PATH", raising=False)

    def _fake_build_executor():
        return _FakeExecutor(chain_id="blogchain-test", node_id="n1", height=0)

    monkeypatch.setattr(api_app, "build_executor", _fake_build_executor)

    app = api_app.create_app(boot_runtime=True)
    assert getattr(app.state, "executor", None) is not None
    assert getattr(app.state.executor, "chain_id", "") == "blogchain-test"

    with TestClient(app) as client:
        body = client.get("/v1/health").json()
        assert body["chain_id"] == "blogchain-test"
        assert body["ready"] is True


def test_routes_without_executor_report_not_ready() -> None:
    from blogchain.api.app import create_app

    with TestClient(create_app(boot_runtime=False)) as client:
        r = client.get("/v1/posts")
        assert r.status_code == 500
        assert r.json()["error"]["code"] == "not_ready"


def test_request_id_header_is_echoed() -> None:
    from blogchain.api.app import create_app

    with TestClient(create_app(boot_runtime=False)) as client:
        r = client.get("/v1/health", headers={"x-request-id": "abc123"})
        assert r.headers.get("x-request-id") == "abc123"
