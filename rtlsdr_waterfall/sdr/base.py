"""Frame source contract shared by the receiver drivers.

A frame source is opened once, yields fixed-size frames of complex samples
together with loss/lateness counters, and is closed once. This module must not
import UI classes, and it imports the hardware bindings only on demand so the
rest of the package stays importable without them.
"""

from __future__ import annotations

from dataclasses import dataclass
import time
from typing import Optional, Protocol

import numpy as np

from rtlsdr_waterfall.config import WaterfallConfig


DRIVERS = ("rtlsdr", "pluto", "synthetic")


@dataclass(frozen=True)
class Frame:
    """One block delivered by the receiver."""

    samples: np.ndarray
    lost: int = 0
    late: int = 0


class FrameSource(Protocol):
    frame_size: int

    def open(self) -> None: ...

    def read_frame(self) -> Frame: ...

    def close(self) -> None: ...


class LatenessTracker:
    """
    Flags reads that started too long after the previous read finished.

    The receiver keeps streaming while the host is busy, so a gap longer than
    one frame duration means the hardware buffer was overrun.
    """

    def __init__(self, frame_duration_s: float, slack_s: float = 0.0):
        self.frame_duration_s = float(frame_duration_s)
        self.slack_s = float(slack_s)
        self._last_done: Optional[float] = None

    def start(self) -> int:
        if self._last_done is None:
            return 0
        gap = time.monotonic() - self._last_done
        return 1 if gap > self.frame_duration_s + self.slack_s else 0

    def done(self) -> None:
        self._last_done = time.monotonic()

    def reset(self) -> None:
        self._last_done = None


def fit_frame(samples: np.ndarray, frame_size: int) -> tuple[np.ndarray, int]:
    """Zero-pad a short read to the frame size and report the shortfall."""

    samples = np.asarray(samples).astype(np.complex64, copy=False).ravel()
    if len(samples) >= frame_size:
        return samples[:frame_size], 0
    pad = np.zeros(frame_size, dtype=np.complex64)
    pad[: len(samples)] = samples
    return pad, frame_size - len(samples)


def create_frame_source(cfg: WaterfallConfig) -> FrameSource:
    """Build the frame source selected by ``cfg.driver`` (not yet opened)."""

    driver = cfg.driver.lower()
    if driver == "rtlsdr":
        from rtlsdr_waterfall.sdr.rtl import RtlSdrSource

        return RtlSdrSource(cfg)
    if driver == "pluto":
        from rtlsdr_waterfall.sdr.pluto import PlutoSource

        return PlutoSource(cfg)
    if driver == "synthetic":
        from rtlsdr_waterfall.sdr.synthetic import SyntheticSource

        return SyntheticSource(cfg)
    raise ValueError(f"Unknown driver: {cfg.driver}")
