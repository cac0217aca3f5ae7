"""Headless engine for receiver lifecycle and sweep streaming."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from rtlsdr_waterfall.config import WaterfallConfig
from rtlsdr_waterfall.display_state import Key, KeySlot, parse_key
from rtlsdr_waterfall.errors import WaterfallError
from rtlsdr_waterfall.geometry import SweepGeometry, derive_geometry
from rtlsdr_waterfall.protocol import (
    EngineErrorFrame,
    EngineFrame,
    EngineStatusFrame,
    EngineSweepFrame,
)
from rtlsdr_waterfall.sdr.base import FrameSource, create_frame_source
from rtlsdr_waterfall.worker import SweepWorker


logger = logging.getLogger(__name__)

FrameCallback = Callable[[EngineFrame], None]


class Engine:
    """Owns the frame source, the sweep worker and frame subscribers."""

    def __init__(
        self,
        cfg: WaterfallConfig,
        source_factory: Callable[[WaterfallConfig], FrameSource] = create_frame_source,
    ):
        self.cfg = cfg
        self.geometry: SweepGeometry = derive_geometry(cfg)
        self._source_factory = source_factory
        self._slot = KeySlot()
        self._worker: Optional[SweepWorker] = None
        self._subscribers: list[FrameCallback] = []
        self._last_error: Optional[EngineErrorFrame] = None
        self._last_sweep: Optional[EngineSweepFrame] = None

    def subscribe(self, callback: FrameCallback) -> None:
        self._subscribers.append(callback)

    def unsubscribe(self, callback: FrameCallback) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    @property
    def last_error(self) -> Optional[EngineErrorFrame]:
        return self._last_error

    @property
    def last_sweep(self) -> Optional[EngineSweepFrame]:
        return self._last_sweep

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.finished

    def start(self) -> bool:
        if self.running:
            return True
        try:
            source = self._source_factory(self.cfg)
        except Exception as exc:
            self._record_error(exc, "source_create_failed")
            return False
        # Keys posted before start() are read by this run.
        self._slot.reopen()
        self._worker = SweepWorker(
            source,
            self.cfg,
            self._slot,
            frame_cb=self._on_sweep,
            error_cb=self._handle_worker_error,
            geometry=self.geometry,
        )
        self._emit(self.status(message="started"))
        self._worker.start()
        logger.info("Engine started with %s driver", self.cfg.driver)
        return True

    def stop(self, timeout: float = 2.0) -> None:
        if self._worker is None:
            return
        self._worker.stop()
        self._worker.join(timeout=timeout)
        if self._worker.is_alive():
            logger.warning("Sweep worker did not stop within %.1f s", timeout)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the sweep loop has ended."""
        if self._worker is None:
            return True
        return self._worker.wait_finished(timeout)

    def send_key(self, name: str) -> Optional[Key]:
        key = parse_key(name)
        if key is None:
            return None
        self._slot.post(key)
        logger.debug("Key %s posted", key.value)
        return key

    def status(self, message: Optional[str] = None) -> EngineStatusFrame:
        geo = self.geometry
        worker = self._worker
        if worker is None or worker.finished:
            state = "stopped"
            zoom = worker.state.zoom if worker is not None else None
        else:
            state = worker.mode.value
            zoom = worker.state.zoom
        counters = worker.counters if worker is not None else None
        return EngineStatusFrame(
            ts_monotonic_ns=self._now_ns(),
            state=state,
            driver=str(self.cfg.driver),
            center_hz=float(self.cfg.center_hz),
            sample_rate_hz=float(self.cfg.sample_rate_hz),
            gain_db=float(self.cfg.gain_db),
            time_span_s=float(self.cfg.time_span_s),
            freq_bins=geo.freq_bins,
            time_bins=geo.time_bins,
            frame_size=geo.frame_size,
            frame_count=geo.frame_count,
            sweeps=counters.sweeps if counters else 0,
            frames_with_loss=counters.frames_with_loss if counters else 0,
            samples_lost=counters.samples_lost if counters else 0,
            frames_late=counters.frames_late if counters else 0,
            zoom_db=(zoom.low_db, zoom.high_db) if zoom is not None else None,
            message=message,
        )

    def _on_sweep(self, frame: EngineSweepFrame) -> None:
        self._last_sweep = frame
        self._emit(frame)

    def _handle_worker_error(self, exc: BaseException) -> None:
        code = exc.error_code if isinstance(exc, WaterfallError) else "worker_error"
        self._record_error(exc, code)

    def _record_error(self, exc: BaseException, code: str) -> None:
        details = None
        frame_index = getattr(exc, "frame_index", None)
        if frame_index is not None:
            details = {"frame_index": int(frame_index)}
        self._last_error = EngineErrorFrame(
            ts_monotonic_ns=self._now_ns(),
            error_code=code,
            message=str(exc) or type(exc).__name__,
            details=details,
            recoverable=False,
        )
        logger.error("%s: %s", code, self._last_error.message)
        self._emit(self._last_error)

    def _emit(self, frame: EngineFrame) -> None:
        for callback in list(self._subscribers):
            try:
                callback(frame)
            except Exception:
                logger.exception("Frame subscriber failed")
                continue

    @staticmethod
    def _now_ns() -> int:
        return int(time.monotonic() * 1e9)
