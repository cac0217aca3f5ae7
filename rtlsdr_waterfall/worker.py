"""Worker thread for acquisition, DSP and display-state checks.

Runs the sweep loop off the UI thread and emits protocol frames. This module
must not import UI classes and only deals with SDR/DSP state.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

import numpy as np

from rtlsdr_waterfall.acquisition import AcquisitionBuffer, DropCounters
from rtlsdr_waterfall.config import WaterfallConfig
from rtlsdr_waterfall.display_state import DisplayState, KeySlot, Mode
from rtlsdr_waterfall.dsp.processor import SpectrogramProcessor
from rtlsdr_waterfall.errors import HardwareAcquisitionFailure
from rtlsdr_waterfall.geometry import SweepGeometry, derive_geometry
from rtlsdr_waterfall.protocol import EngineSweepFrame
from rtlsdr_waterfall.sdr.base import FrameSource


logger = logging.getLogger(__name__)

SweepCallback = Callable[[EngineSweepFrame], None]
ErrorCallback = Callable[[BaseException], None]


class SweepWorker(threading.Thread):
    """
    Single thread of control: acquire, compute, check state, render, repeat.

    The frame source is opened when the loop starts and released exactly once
    when it ends, whatever the reason.
    """

    def __init__(
        self,
        source: FrameSource,
        cfg: WaterfallConfig,
        slot: KeySlot,
        frame_cb: SweepCallback,
        error_cb: Optional[ErrorCallback] = None,
        geometry: Optional[SweepGeometry] = None,
    ):
        super().__init__(daemon=True, name="sweep-worker")
        self.source = source
        self.cfg = cfg
        self.slot = slot
        self.geometry = geometry or derive_geometry(cfg)
        self.proc = SpectrogramProcessor(
            self.geometry.freq_bins, self.geometry.time_bins, cfg.db_floor
        )
        self.state = DisplayState(
            slot,
            pause_poll_s=cfg.pause_poll_s,
            zoom_below_peak_db=cfg.zoom_below_peak_db,
            zoom_above_peak_db=cfg.zoom_above_peak_db,
        )
        self.acquisition: Optional[AcquisitionBuffer] = None
        self.error: Optional[BaseException] = None
        self._frame_cb = frame_cb
        self._error_cb = error_cb
        self._release_lock = threading.Lock()
        self._released = False
        self._finished = threading.Event()

    def stop(self) -> None:
        # Cooperative: a closed slot reads as quit at the next sweep boundary.
        self.slot.close()

    @property
    def counters(self) -> DropCounters:
        if self.acquisition is None:
            return DropCounters()
        return self.acquisition.counters

    @property
    def mode(self) -> Mode:
        return self.state.mode

    @property
    def finished(self) -> bool:
        return self._finished.is_set()

    def wait_finished(self, timeout: Optional[float] = None) -> bool:
        return self._finished.wait(timeout)

    def run(self) -> None:
        try:
            self.run_loop()
        except Exception as exc:
            self.error = exc
            logger.error("Sweep loop failed: %s", exc)
            if self._error_cb is not None:
                self._error_cb(exc)
        finally:
            self._finished.set()

    def run_loop(self) -> None:
        geo = self.geometry
        try:
            try:
                self.source.open()
            except Exception as exc:
                raise HardwareAcquisitionFailure(f"Could not open frame source: {exc}") from exc
            self.acquisition = AcquisitionBuffer(self.source, geo)
            logger.info(
                "Sweep geometry: %d bins x %d time bins, %d frames of %d samples",
                geo.freq_bins,
                geo.time_bins,
                geo.frame_count,
                geo.frame_size,
            )
            sweep_index = 0
            while True:
                sweep = self.acquisition.acquire_sweep()
                grid_db, avg_db = self.proc.compute(sweep.samples)
                decision = self.state.check(float(np.max(avg_db)))
                frame = EngineSweepFrame(
                    ts_monotonic_ns=int(time.monotonic() * 1e9),
                    sweep_index=sweep_index,
                    avg_db=avg_db,
                    grid_db=grid_db,
                    freq_axis_mhz=geo.freq_axis_mhz,
                    time_axis_ms=geo.time_axis_ms,
                    zoom_low_db=decision.zoom.low_db,
                    zoom_high_db=decision.zoom.high_db,
                    rezoomed=decision.rezoomed,
                    lost=sweep.lost,
                    late=sweep.late,
                    final=decision.quit,
                )
                self._frame_cb(frame)
                sweep_index += 1
                if decision.quit:
                    logger.info("Quit after sweep %d", sweep_index)
                    break
        finally:
            self._release_source()

    def _release_source(self) -> None:
        with self._release_lock:
            if self._released:
                return
            self._released = True
        try:
            self.source.close()
        except Exception as exc:
            logger.warning("Frame source close failed: %s", exc)
