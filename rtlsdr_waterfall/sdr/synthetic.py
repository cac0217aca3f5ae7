"""Synthetic frame source for running without hardware.

Produces a phase-continuous complex tone over Gaussian noise. Used by the demo
driver and as a stand-in receiver in tests.
"""

from __future__ import annotations

import time

import numpy as np

from rtlsdr_waterfall.config import WaterfallConfig
from rtlsdr_waterfall.sdr.base import Frame


class SyntheticSource:
    def __init__(
        self,
        cfg: WaterfallConfig,
        tone_offset_hz: float = 200e3,
        tone_amplitude: float = 0.5,
        noise_rms: float = 0.01,
        seed: int = 0,
        realtime: bool = True,
    ):
        self.cfg = cfg
        self.frame_size = int(cfg.frame_size)
        self.tone_offset_hz = float(tone_offset_hz)
        self.tone_amplitude = float(tone_amplitude)
        self.noise_rms = float(noise_rms)
        self.seed = seed
        self.realtime = realtime
        self.is_open = False
        self._rng = np.random.default_rng(seed)
        self._n = 0

    def open(self) -> None:
        self._rng = np.random.default_rng(self.seed)
        self._n = 0
        self.is_open = True

    def read_frame(self) -> Frame:
        if not self.is_open:
            raise RuntimeError("Synthetic source is not open")
        fs = float(self.cfg.sample_rate_hz)
        idx = np.arange(self._n, self._n + self.frame_size, dtype=np.float64)
        self._n += self.frame_size
        tone = self.tone_amplitude * np.exp(2j * np.pi * self.tone_offset_hz * idx / fs)
        scale = self.noise_rms / np.sqrt(2.0)
        noise = scale * (
            self._rng.standard_normal(self.frame_size)
            + 1j * self._rng.standard_normal(self.frame_size)
        )
        if self.realtime:
            # Pace like a receiver so the UI sees real sweep timing.
            time.sleep(self.frame_size / fs)
        return Frame(samples=(tone + noise).astype(np.complex64))

    def close(self) -> None:
        self.is_open = False
