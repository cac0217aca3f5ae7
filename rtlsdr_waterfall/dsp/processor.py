"""DSP primitives for the waterfall.

Reshapes a sweep into fast-time columns, transforms each column and converts
magnitudes to dB. This module must not import UI or SDR classes; it is purely
numerical.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np

from rtlsdr_waterfall.errors import TransformContractViolation


DEFAULT_DB_FLOOR = -200.0


def magnitude_to_db(mag: np.ndarray, floor_db: float = DEFAULT_DB_FLOOR) -> np.ndarray:
    """
    Convert linear magnitude to dB (20*log10).

    Zero magnitude maps to ``floor_db`` instead of -inf; the floor is applied
    in the linear domain so log10 never sees a zero.
    """

    floor_mag = 10.0 ** (float(floor_db) / 20.0)
    mag = np.abs(mag).astype(np.float64, copy=False)
    return 20.0 * np.log10(np.maximum(mag, floor_mag))


def to_grid(samples: np.ndarray, freq_bins: int, time_bins: int) -> np.ndarray:
    """Fill a freq_bins x time_bins grid column by column."""

    if samples.ndim != 1 or samples.size != freq_bins * time_bins:
        raise TransformContractViolation(
            f"Cannot reshape {samples.size} samples into {freq_bins}x{time_bins}"
        )
    return samples.reshape((freq_bins, time_bins), order="F")


def flatten_grid(grid: np.ndarray) -> np.ndarray:
    """Inverse of to_grid."""

    return grid.reshape(-1, order="F")


class SpectrogramProcessor:
    """
    Handles DSP for one sweep geometry.
    Provides the dB spectrogram and the across-time average spectrum.
    """

    def __init__(self, freq_bins: int, time_bins: int, db_floor: float = DEFAULT_DB_FLOOR):
        self.freq_bins = int(freq_bins)
        self.time_bins = int(time_bins)
        self.db_floor = float(db_floor)

    def transform(self, samples: np.ndarray) -> np.ndarray:
        # Columns are fast-time snapshots; FFT and shift along the bin axis only.
        grid = to_grid(np.asarray(samples), self.freq_bins, self.time_bins)
        spectrum = np.fft.fftshift(np.fft.fft(grid, n=self.freq_bins, axis=0), axes=0)
        if spectrum.shape != (self.freq_bins, self.time_bins):
            raise TransformContractViolation(
                f"Transform produced {spectrum.shape}, expected {(self.freq_bins, self.time_bins)}"
            )
        return spectrum

    def average_db(self, spectrum: np.ndarray) -> np.ndarray:
        # Mean of linear magnitude first, then dB. Not the mean of dB values.
        mean_mag = np.sum(np.abs(spectrum), axis=1) / float(self.time_bins)
        return magnitude_to_db(mean_mag, self.db_floor)

    def compute(self, samples: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        spectrum = self.transform(samples)
        grid_db = magnitude_to_db(spectrum, self.db_floor).astype(np.float32)
        avg_db = self.average_db(spectrum).astype(np.float32)
        return grid_db, avg_db
