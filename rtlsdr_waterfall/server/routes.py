"""REST endpoints for the waterfall server."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any
import uuid

from fastapi import APIRouter, HTTPException, Request

from rtlsdr_waterfall.engine import Engine
from rtlsdr_waterfall.protocol import (
    EngineErrorFrame,
    engine_error_to_wire,
    engine_status_to_wire,
    engine_sweep_meta_to_wire,
)


router = APIRouter()


def _engine(request: Request) -> Engine:
    return request.app.state.engine


def _session_id(request: Request) -> uuid.UUID:
    return request.app.state.session_id


def _next_seq(request: Request) -> int:
    request.app.state.seq += 1
    return request.app.state.seq


def _serialize_error(request: Request, error: EngineErrorFrame | None) -> dict[str, Any] | None:
    if error is None:
        return None
    return engine_error_to_wire(error, seq=_next_seq(request), session_id=_session_id(request))


@router.get("/api/status")
def get_status(request: Request) -> dict[str, Any]:
    engine = _engine(request)
    status = engine_status_to_wire(
        engine.status(),
        seq=_next_seq(request),
        session_id=_session_id(request),
    )
    sweep = engine.last_sweep
    return {
        "status": status,
        "last_sweep": (
            engine_sweep_meta_to_wire(sweep, seq=_next_seq(request), session_id=_session_id(request))
            if sweep is not None
            else None
        ),
        "error": _serialize_error(request, engine.last_error),
    }


@router.get("/api/config")
def get_config(request: Request) -> dict[str, Any]:
    engine = _engine(request)
    geo = engine.geometry
    return {
        "config": asdict(engine.cfg),
        "geometry": {
            "time_bins": geo.time_bins,
            "total_samples": geo.total_samples,
            "frame_count": geo.frame_count,
            "slow_period_s": geo.slow_period_s,
            "sweep_duration_s": geo.sweep_duration_s,
        },
    }


@router.post("/api/keys/{name}")
def post_key(request: Request, name: str) -> dict[str, Any]:
    engine = _engine(request)
    key = engine.send_key(name)
    if key is None:
        raise HTTPException(status_code=404, detail=f"Unknown key: {name}")
    return {"ok": True, "key": key.value}
