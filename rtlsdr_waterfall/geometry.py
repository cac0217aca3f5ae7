"""Sweep geometry and axis derivation.

Pure functions of the acquisition parameters. Nothing here touches hardware or
the UI, so the same geometry can be shared by the worker, the window and the
HTTP surface.
"""

from __future__ import annotations

from dataclasses import dataclass
import math

import numpy as np

from rtlsdr_waterfall.config import WaterfallConfig


@dataclass(frozen=True)
class SweepGeometry:
    """Derived counts and axes for one parameter set."""

    center_hz: float
    sample_rate_hz: float
    freq_bins: int
    sample_period_s: float
    slow_period_s: float
    time_bins: int
    total_samples: int
    frame_size: int
    frame_count: int
    freq_axis_mhz: np.ndarray
    time_axis_ms: np.ndarray

    @property
    def buffer_samples(self) -> int:
        # Samples actually read before truncation.
        return self.frame_size * self.frame_count

    @property
    def sweep_duration_s(self) -> float:
        return self.total_samples * self.sample_period_s


def frequency_axis_mhz(freq_bins: int, sample_rate_hz: float, center_hz: float) -> np.ndarray:
    # Same ordering as fftshift: bin freq_bins // 2 sits on the center frequency.
    f = np.fft.fftshift(np.fft.fftfreq(int(freq_bins), d=1.0 / float(sample_rate_hz)))
    return (f + float(center_hz)) / 1e6


def time_axis_ms(time_bins: int, slow_period_s: float) -> np.ndarray:
    return np.arange(time_bins, dtype=np.float64) * float(slow_period_s) * 1000.0


def derive_geometry(cfg: WaterfallConfig) -> SweepGeometry:
    freq_bins = int(cfg.freq_bins)
    if freq_bins < 1:
        raise ValueError("freq_bins must be at least 1")
    if cfg.sample_rate_hz <= 0:
        raise ValueError("sample_rate_hz must be positive")
    if cfg.time_span_s <= 0:
        raise ValueError("time_span_s must be positive")
    frame_size = int(cfg.frame_size)
    if frame_size < 1:
        raise ValueError("frame_size must be at least 1")

    sample_period_s = 1.0 / float(cfg.sample_rate_hz)
    slow_period_s = sample_period_s * freq_bins
    time_bins = int(math.ceil(float(cfg.time_span_s) / slow_period_s))
    total_samples = freq_bins * time_bins
    frame_count = int(math.ceil(total_samples / frame_size))

    return SweepGeometry(
        center_hz=float(cfg.center_hz),
        sample_rate_hz=float(cfg.sample_rate_hz),
        freq_bins=freq_bins,
        sample_period_s=sample_period_s,
        slow_period_s=slow_period_s,
        time_bins=time_bins,
        total_samples=total_samples,
        frame_size=frame_size,
        frame_count=frame_count,
        freq_axis_mhz=frequency_axis_mhz(freq_bins, cfg.sample_rate_hz, cfg.center_hz),
        time_axis_ms=time_axis_ms(time_bins, slow_period_s),
    )
