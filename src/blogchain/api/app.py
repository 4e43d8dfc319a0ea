from __future__ import annotations

import os
from typing import List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from blogchain.api.errors import ApiError, api_error_handler, apply_error_handler
from blogchain.api.routes_public import public_router
from blogchain.api.structured_logging import RequestLogMiddleware
from blogchain.runtime.chain_config import apply_chain_config_to_env, load_chain_config
from blogchain.runtime.errors import ApplyError
from blogchain.runtime.executor_boot import build_executor as _build_executor
from blogchain.runtime.runtime_logging import configure_structured_logging


def build_executor():
    """Build a BlogExecutor for API runtime.

    This wrapper exists so tests can monkeypatch `blogchain.api.app.build_executor`
    without reaching into runtime modules.
    """
    return _build_executor()


def _parse_cors_origins() -> List[str]:
    """Parse CORS origins.

    Policy:
      - If BLOGCHAIN_CORS_ORIGINS is unset/empty -> CORS disabled
      - Wildcard "*" is rejected in BLOGCHAIN_MODE=prod
    """
    raw = os.environ.get("BLOGCHAIN_CORS_ORIGINS", "").strip()
    mode = os.environ.get("BLOGCHAIN_MODE", "prod").strip().lower()

    if not raw:
        return []

    origins = [o.strip() for o in raw.split(",") if o.strip()]

    if "*" in origins:
        if mode == "prod":
            raise RuntimeError(
                "Unsafe CORS configuration: wildcard '*' not allowed in production. "
                "Set explicit origins in BLOGCHAIN_CORS_ORIGINS."
            )
        return ["*"]

    return origins


def create_app(*, boot_runtime: bool = True) -> FastAPI:
    """Create the FastAPI application.

    boot_runtime:
      - True (default): load chain config, export it to env, attach executor
      - False: keep lightweight for unit tests / import-time validation
    """
    if boot_runtime:
        apply_chain_config_to_env(load_chain_config())

    configure_structured_logging()
    mode = os.environ.get("BLOGCHAIN_MODE", "prod").strip().lower()

    # Disable docs in production.
    if mode == "prod":
        app = FastAPI(title="Blogchain Node API", docs_url=None, redoc_url=None, openapi_url=None)
    else:
        app = FastAPI(title="Blogchain Node API")

    app.state.executor = build_executor() if boot_runtime else None

    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(ApplyError, apply_error_handler)

    # --- Middleware ---
    app.add_middleware(RequestLogMiddleware)

    cors_origins = _parse_cors_origins()
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=cors_origins != ["*"],
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["Authorization", "Content-Type"],
        )

    # --- Routers ---
    app.include_router(public_router)

    return app
