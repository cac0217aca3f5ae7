"""Frame schemas and wire helpers for the waterfall engine.

Engine frames are internal and not wire format. Wire format frames are dict
objects built via helpers and validated against the JSON schema returned by
protocol_json_schema(). Sweep arrays never go on the wire; only their metadata
does.
"""

from __future__ import annotations

from dataclasses import dataclass
import uuid
from typing import Any, Mapping, Optional, Union

import numpy as np

PROTO_VERSION = "1.0"
FRAME_TYPES = {
    "status",
    "sweep_meta",
    "error",
}
STATES = ["running", "paused", "stopped"]


def protocol_json_schema() -> dict[str, Any]:
    """Return the JSON schema for metadata frames."""

    base_fields = {
        "proto_version": {"const": PROTO_VERSION},
        "type": {"enum": sorted(FRAME_TYPES)},
        "ts_monotonic_ns": {"type": "integer", "minimum": 0},
        "seq": {"type": "integer", "minimum": 0},
        "session_id": {"type": "string", "format": "uuid"},
    }
    base_required = ["proto_version", "type", "ts_monotonic_ns", "seq", "session_id"]

    return {
        "$schema": "https://json-schema.org/draft/2020-12/schema",
        "title": "Waterfall Protocol v1.0 Metadata Frames",
        "type": "object",
        "oneOf": [
            {
                "title": "Status Frame",
                "type": "object",
                "properties": {
                    **base_fields,
                    "type": {"const": "status"},
                    "state": {"enum": STATES},
                    "driver": {"type": "string"},
                    "center_hz": {"type": "number"},
                    "sample_rate_hz": {"type": "number"},
                    "gain_db": {"type": "number"},
                    "time_span_s": {"type": "number", "exclusiveMinimum": 0},
                    "freq_bins": {"type": "integer", "minimum": 1},
                    "time_bins": {"type": "integer", "minimum": 1},
                    "frame_size": {"type": "integer", "minimum": 1},
                    "frame_count": {"type": "integer", "minimum": 1},
                    "sweeps": {"type": "integer", "minimum": 0},
                    "frames_with_loss": {"type": "integer", "minimum": 0},
                    "samples_lost": {"type": "integer", "minimum": 0},
                    "frames_late": {"type": "integer", "minimum": 0},
                    "zoom_db": {
                        "type": ["array", "null"],
                        "items": {"type": "number"},
                        "minItems": 2,
                        "maxItems": 2,
                    },
                    "message": {"type": ["string", "null"]},
                },
                "required": base_required
                + [
                    "state",
                    "driver",
                    "center_hz",
                    "sample_rate_hz",
                    "gain_db",
                    "time_span_s",
                    "freq_bins",
                    "time_bins",
                    "frame_size",
                    "frame_count",
                    "sweeps",
                    "frames_with_loss",
                    "samples_lost",
                    "frames_late",
                    "zoom_db",
                ],
                "additionalProperties": False,
            },
            {
                "title": "Sweep Meta Frame",
                "type": "object",
                "properties": {
                    **base_fields,
                    "type": {"const": "sweep_meta"},
                    "sweep_index": {"type": "integer", "minimum": 0},
                    "freq_start_mhz": {"type": "number"},
                    "freq_stop_mhz": {"type": "number"},
                    "time_stop_ms": {"type": "number", "minimum": 0},
                    "n_bins": {"type": "integer", "minimum": 1},
                    "n_time_bins": {"type": "integer", "minimum": 1},
                    "peak_db": {"type": "number"},
                    "zoom_db": {
                        "type": "array",
                        "items": {"type": "number"},
                        "minItems": 2,
                        "maxItems": 2,
                    },
                    "rezoomed": {"type": "boolean"},
                    "lost": {"type": "array", "items": {"type": "integer", "minimum": 0}},
                    "late": {"type": "array", "items": {"type": "integer", "minimum": 0}},
                },
                "required": base_required
                + [
                    "sweep_index",
                    "freq_start_mhz",
                    "freq_stop_mhz",
                    "time_stop_ms",
                    "n_bins",
                    "n_time_bins",
                    "peak_db",
                    "zoom_db",
                    "rezoomed",
                    "lost",
                    "late",
                ],
                "additionalProperties": False,
            },
            {
                "title": "Error Frame",
                "type": "object",
                "properties": {
                    **base_fields,
                    "type": {"const": "error"},
                    "error_code": {"type": "string"},
                    "message": {"type": "string"},
                    "details": {"type": ["object", "null"]},
                    "recoverable": {"type": "boolean"},
                },
                "required": base_required + ["error_code", "message", "recoverable"],
                "additionalProperties": False,
            },
        ],
    }


def make_frame_base(
    *,
    frame_type: str,
    ts_monotonic_ns: int,
    seq: int,
    session_id: uuid.UUID,
) -> dict[str, Any]:
    """Build shared metadata fields for protocol frames."""

    if frame_type not in FRAME_TYPES:
        raise ValueError(f"Unsupported frame type: {frame_type}")
    return {
        "proto_version": PROTO_VERSION,
        "type": frame_type,
        "ts_monotonic_ns": int(ts_monotonic_ns),
        "seq": int(seq),
        "session_id": str(session_id),
    }


@dataclass(frozen=True)
class EngineSweepFrame:
    """One rendered sweep: average spectrum, dB grid, axes and zoom."""

    ts_monotonic_ns: int
    sweep_index: int
    avg_db: np.ndarray
    grid_db: np.ndarray
    freq_axis_mhz: np.ndarray
    time_axis_ms: np.ndarray
    zoom_low_db: float
    zoom_high_db: float
    rezoomed: bool
    lost: np.ndarray
    late: np.ndarray
    final: bool = False

    @property
    def peak_db(self) -> float:
        return float(np.max(self.avg_db))


@dataclass(frozen=True)
class EngineStatusFrame:
    """Internal runtime status."""

    ts_monotonic_ns: int
    state: str
    driver: str
    center_hz: float
    sample_rate_hz: float
    gain_db: float
    time_span_s: float
    freq_bins: int
    time_bins: int
    frame_size: int
    frame_count: int
    sweeps: int
    frames_with_loss: int
    samples_lost: int
    frames_late: int
    zoom_db: Optional[tuple[float, float]] = None
    message: Optional[str] = None


@dataclass(frozen=True)
class EngineErrorFrame:
    """Internal error notifications."""

    ts_monotonic_ns: int
    error_code: str
    message: str
    details: Optional[Mapping[str, Any]] = None
    recoverable: bool = False


EngineFrame = Union[
    EngineStatusFrame,
    EngineSweepFrame,
    EngineErrorFrame,
]


def engine_status_to_wire(
    frame: EngineStatusFrame,
    *,
    seq: int,
    session_id: uuid.UUID,
) -> dict[str, Any]:
    base = make_frame_base(
        frame_type="status",
        ts_monotonic_ns=frame.ts_monotonic_ns,
        seq=seq,
        session_id=session_id,
    )
    base.update(
        {
            "state": frame.state,
            "driver": frame.driver,
            "center_hz": frame.center_hz,
            "sample_rate_hz": frame.sample_rate_hz,
            "gain_db": frame.gain_db,
            "time_span_s": frame.time_span_s,
            "freq_bins": frame.freq_bins,
            "time_bins": frame.time_bins,
            "frame_size": frame.frame_size,
            "frame_count": frame.frame_count,
            "sweeps": frame.sweeps,
            "frames_with_loss": frame.frames_with_loss,
            "samples_lost": frame.samples_lost,
            "frames_late": frame.frames_late,
            "zoom_db": list(frame.zoom_db) if frame.zoom_db is not None else None,
            "message": frame.message,
        }
    )
    return base


def engine_sweep_meta_to_wire(
    frame: EngineSweepFrame,
    *,
    seq: int,
    session_id: uuid.UUID,
) -> dict[str, Any]:
    base = make_frame_base(
        frame_type="sweep_meta",
        ts_monotonic_ns=frame.ts_monotonic_ns,
        seq=seq,
        session_id=session_id,
    )
    base.update(
        {
            "sweep_index": int(frame.sweep_index),
            "freq_start_mhz": float(frame.freq_axis_mhz[0]),
            "freq_stop_mhz": float(frame.freq_axis_mhz[-1]),
            "time_stop_ms": float(frame.time_axis_ms[-1]),
            "n_bins": int(frame.grid_db.shape[0]),
            "n_time_bins": int(frame.grid_db.shape[1]),
            "peak_db": frame.peak_db,
            "zoom_db": [float(frame.zoom_low_db), float(frame.zoom_high_db)],
            "rezoomed": bool(frame.rezoomed),
            "lost": [int(v) for v in frame.lost],
            "late": [int(v) for v in frame.late],
        }
    )
    return base


def engine_error_to_wire(
    frame: EngineErrorFrame,
    *,
    seq: int,
    session_id: uuid.UUID,
) -> dict[str, Any]:
    base = make_frame_base(
        frame_type="error",
        ts_monotonic_ns=frame.ts_monotonic_ns,
        seq=seq,
        session_id=session_id,
    )
    base.update(
        {
            "error_code": frame.error_code,
            "message": frame.message,
            "details": dict(frame.details) if frame.details is not None else None,
            "recoverable": frame.recoverable,
        }
    )
    return base
