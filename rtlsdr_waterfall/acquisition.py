"""Sweep acquisition from a frame source.

Reads a fixed number of frames per sweep into one flat buffer and keeps the
loss/lateness bookkeeping. No samples are carried over between sweeps.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging

import numpy as np

from rtlsdr_waterfall.errors import HardwareAcquisitionFailure
from rtlsdr_waterfall.geometry import SweepGeometry
from rtlsdr_waterfall.sdr.base import FrameSource


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Sweep:
    """Samples for one waterfall, already truncated to the needed length."""

    samples: np.ndarray
    lost: np.ndarray
    late: np.ndarray


@dataclass
class DropCounters:
    """Running totals of non-fatal sample loss since the source was opened."""

    sweeps: int = 0
    frames: int = 0
    frames_with_loss: int = 0
    samples_lost: int = 0
    frames_late: int = 0
    last_sweep_lost: list[int] = field(default_factory=list)
    last_sweep_late: list[int] = field(default_factory=list)

    def record(self, sweep: Sweep) -> None:
        self.sweeps += 1
        self.frames += int(len(sweep.lost))
        self.frames_with_loss += int(np.count_nonzero(sweep.lost))
        self.samples_lost += int(np.sum(sweep.lost))
        self.frames_late += int(np.count_nonzero(sweep.late))
        self.last_sweep_lost = [int(v) for v in sweep.lost]
        self.last_sweep_late = [int(v) for v in sweep.late]


class AcquisitionBuffer:
    def __init__(self, source: FrameSource, geometry: SweepGeometry):
        if int(source.frame_size) != geometry.frame_size:
            raise ValueError("Frame source and geometry disagree on frame size")
        self.source = source
        self.geometry = geometry
        self.counters = DropCounters()

    def acquire_sweep(self) -> Sweep:
        geo = self.geometry
        n = geo.frame_size
        buf = np.zeros(geo.buffer_samples, dtype=np.complex64)
        lost = np.zeros(geo.frame_count, dtype=np.int64)
        late = np.zeros(geo.frame_count, dtype=np.int64)

        for i in range(geo.frame_count):
            try:
                frame = self.source.read_frame()
            except HardwareAcquisitionFailure:
                raise
            except Exception as exc:
                raise HardwareAcquisitionFailure(
                    f"Frame {i + 1}/{geo.frame_count} read failed: {exc}",
                    frame_index=i,
                ) from exc
            if len(frame.samples) != n:
                raise HardwareAcquisitionFailure(
                    f"Frame {i + 1}/{geo.frame_count} has {len(frame.samples)} samples, expected {n}",
                    frame_index=i,
                )
            buf[i * n : (i + 1) * n] = frame.samples
            lost[i] = frame.lost
            late[i] = frame.late
            if frame.lost or frame.late:
                logger.debug("Frame %d: lost=%d late=%d", i, frame.lost, frame.late)

        # Tail of the last frame is not needed for the waterfall.
        sweep = Sweep(samples=buf[: geo.total_samples], lost=lost, late=late)
        self.counters.record(sweep)
        return sweep
