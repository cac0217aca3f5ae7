"""RTL-SDR frame source.

Wraps pyrtlsdr's synchronous reads. Gain and sample rate are handed to the
driver as given; librtlsdr decides what it accepts.
"""

from __future__ import annotations

import logging
from typing import Optional

from rtlsdr import RtlSdr

from rtlsdr_waterfall.config import WaterfallConfig
from rtlsdr_waterfall.sdr.base import Frame, LatenessTracker, fit_frame


logger = logging.getLogger(__name__)


class RtlSdrSource:
    """
    Small wrapper around pyrtlsdr RtlSdr.

    This isolates SDR specific calls from the sweep loop.
    """

    def __init__(self, cfg: WaterfallConfig):
        self.cfg = cfg
        self.frame_size = int(cfg.frame_size)
        self.dev: Optional[RtlSdr] = None
        self._late = LatenessTracker(self.frame_size / float(cfg.sample_rate_hz))

    def open(self) -> None:
        self.dev = RtlSdr(device_index=int(self.cfg.device_index))
        self.dev.sample_rate = self.cfg.sample_rate_hz
        self.dev.center_freq = self.cfg.center_hz
        # Manual gain, tuner AGC off.
        self.dev.set_manual_gain_enabled(True)
        self.dev.gain = self.cfg.gain_db
        self._late.reset()
        logger.info(
            "RTL-SDR #%d open: fc=%.0f Hz fs=%.0f sps gain=%.1f dB",
            self.cfg.device_index,
            self.dev.center_freq,
            self.dev.sample_rate,
            self.dev.gain,
        )

    def read_frame(self) -> Frame:
        if self.dev is None:
            raise RuntimeError("RTL-SDR is not open")
        late = self._late.start()
        x = self.dev.read_samples(self.frame_size)
        self._late.done()
        samples, lost = fit_frame(x, self.frame_size)
        return Frame(samples=samples, lost=lost, late=late)

    def close(self) -> None:
        if self.dev is None:
            return
        self.dev.close()
        self.dev = None
        logger.info("RTL-SDR released")
