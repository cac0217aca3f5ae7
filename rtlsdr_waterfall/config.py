"""Application configuration defaults.

Defines the WaterfallConfig dataclass and default values. This module should not
import UI or SDR classes, and it should stay focused on configuration data only.
"""

from dataclasses import dataclass


# Tuner gains accepted by the R820T. Only used to warn; the driver validates.
RTLSDR_GAINS_DB = (
    0.0, 0.9, 1.4, 2.7, 3.7, 7.7, 8.7, 12.5, 14.4, 15.7, 16.6, 19.7, 20.7, 22.9,
    25.4, 28.0, 29.7, 32.8, 33.8, 36.4, 37.2, 38.6, 40.2, 42.1, 43.4, 43.9,
    44.5, 48.0, 49.6,
)

# RTL2832U accepted sample rate ranges (sps).
RTLSDR_SAMPLE_RATE_RANGES = ((225_001, 300_001), (900_001, 3_200_000))


@dataclass
class WaterfallConfig:
    """
    Configuration for the waterfall viewer.

    Notes
    The five acquisition parameters (center, rate, gain, span, bins) fully
    determine the sweep geometry. Everything else is driver or UI plumbing.
    """

    # Receiver center frequency.
    center_hz: float = 96.9e6

    # Sample rate sets the displayed span.
    sample_rate_hz: float = 2.8e6

    # Manual tuner gain, AGC stays off.
    gain_db: float = 32.8

    # Slow-time span of one sweep and FFT length per column.
    time_span_s: float = 20e-3
    freq_bins: int = 256

    # Samples requested from the driver per read.
    frame_size: int = 8192

    # Driver selection.
    driver: str = "rtlsdr"
    device_index: int = 0
    uri: str = "ip:192.168.2.1"

    # Display behavior.
    db_floor: float = -200.0
    zoom_below_peak_db: float = 40.0
    zoom_above_peak_db: float = 5.0
    pause_poll_s: float = 0.1
    render_timeout_s: float = 2.0

    # Headless HTTP surface.
    http_host: str = "127.0.0.1"
    http_port: int = 8000
