"""Pluto SDR frame source.

Encapsulates pyadi-iio Pluto interactions. This module must not import any UI
classes to keep SDR operations headless and testable.
"""

from __future__ import annotations

import logging
from typing import Optional

import adi

from rtlsdr_waterfall.config import WaterfallConfig
from rtlsdr_waterfall.sdr.base import Frame, LatenessTracker, fit_frame


logger = logging.getLogger(__name__)


class PlutoSource:
    """
    Small wrapper around pyadi iio Pluto.

    One RX buffer is one frame, so the buffer size is pinned to the frame size.
    """

    def __init__(self, cfg: WaterfallConfig):
        self.cfg = cfg
        self.frame_size = int(cfg.frame_size)
        self.dev: Optional[adi.Pluto] = None
        self._late = LatenessTracker(self.frame_size / float(cfg.sample_rate_hz))

    def open(self) -> None:
        self.dev = adi.Pluto(uri=self.cfg.uri)
        self.dev.rx_enabled_channels = [0]
        self.dev.rx_buffer_size = self.frame_size
        self.dev.sample_rate = int(self.cfg.sample_rate_hz)
        # RF bandwidth follows the span.
        self.dev.rx_rf_bandwidth = int(self.cfg.sample_rate_hz)
        self.dev.rx_lo = int(self.cfg.center_hz)
        self.dev.gain_control_mode_chan0 = "manual"
        self.dev.rx_hardwaregain_chan0 = self.cfg.gain_db
        self._late.reset()
        logger.info(
            "Pluto %s open: fc=%.0f Hz fs=%.0f sps gain=%.1f dB",
            self.cfg.uri,
            self.cfg.center_hz,
            self.cfg.sample_rate_hz,
            self.cfg.gain_db,
        )

    def read_frame(self) -> Frame:
        if self.dev is None:
            raise RuntimeError("Pluto is not open")
        late = self._late.start()
        x = self.dev.rx()
        self._late.done()
        if isinstance(x, (list, tuple)):
            x = x[0]
        samples, lost = fit_frame(x, self.frame_size)
        return Frame(samples=samples, lost=lost, late=late)

    def close(self) -> None:
        if self.dev is None:
            return
        self.dev.rx_destroy_buffer()
        self.dev = None
        logger.info("Pluto released")
