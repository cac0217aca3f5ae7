from typing import Optional

import numpy as np

from rtlsdr_waterfall.config import WaterfallConfig
from rtlsdr_waterfall.sdr.base import Frame


def small_config(**overrides) -> WaterfallConfig:
    # 16 bins x 7 time bins = 112 samples, read as 2 frames of 64.
    values = dict(
        center_hz=100e6,
        sample_rate_hz=1e6,
        gain_db=20.7,
        time_span_s=1e-4,
        freq_bins=16,
        frame_size=64,
        driver="synthetic",
        pause_poll_s=0.02,
    )
    values.update(overrides)
    return WaterfallConfig(**values)


class RampSource:
    """Frame source whose samples count up from zero across frames."""

    def __init__(
        self,
        frame_size: int,
        lost: Optional[list[int]] = None,
        late: Optional[list[int]] = None,
        fail_at: Optional[int] = None,
        short_at: Optional[int] = None,
    ):
        self.frame_size = frame_size
        self.lost = lost or []
        self.late = late or []
        self.fail_at = fail_at
        self.short_at = short_at
        self.reads = 0
        self.open_count = 0
        self.close_count = 0

    def open(self) -> None:
        self.open_count += 1

    def read_frame(self) -> Frame:
        i = self.reads
        if self.fail_at is not None and i == self.fail_at:
            raise OSError("usb transfer timed out")
        self.reads += 1
        n = self.frame_size
        if self.short_at is not None and i == self.short_at:
            n -= 1
        start = i * self.frame_size
        samples = np.arange(start, start + n, dtype=np.float64).astype(np.complex64)
        lost = self.lost[i] if i < len(self.lost) else 0
        late = self.late[i] if i < len(self.late) else 0
        return Frame(samples=samples, lost=lost, late=late)

    def close(self) -> None:
        self.close_count += 1
