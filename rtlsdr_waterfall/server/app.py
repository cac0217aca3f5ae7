"""FastAPI application factory for the headless waterfall server."""

from __future__ import annotations

import uuid

from fastapi import FastAPI

from rtlsdr_waterfall.config import WaterfallConfig
from rtlsdr_waterfall.engine import Engine
from rtlsdr_waterfall.server.routes import router


def create_app(engine: Engine | None = None) -> FastAPI:
    app = FastAPI(title="RTL-SDR Waterfall")
    app.state.engine = engine or Engine(WaterfallConfig())
    app.state.session_id = uuid.uuid4()
    app.state.seq = 0
    app.include_router(router)
    return app
