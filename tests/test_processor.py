import warnings

import numpy as np
import pytest

from rtlsdr_waterfall.dsp.processor import (
    SpectrogramProcessor,
    flatten_grid,
    magnitude_to_db,
    to_grid,
)
from rtlsdr_waterfall.errors import TransformContractViolation


def test_reshape_fills_columns_and_round_trips() -> None:
    samples = np.arange(12, dtype=np.float64) + 0j
    grid = to_grid(samples, 3, 4)
    assert grid.shape == (3, 4)
    assert np.array_equal(grid[:, 0], [0, 1, 2])
    assert np.array_equal(grid[:, 1], [3, 4, 5])
    assert np.array_equal(flatten_grid(grid), samples)


def test_four_bin_two_column_sweep() -> None:
    # Column 0 is an impulse (flat spectrum), column 1 a tone on bin +1.
    samples = np.array([1, 0, 0, 0, 1, 1j, -1, -1j], dtype=np.complex128)
    proc = SpectrogramProcessor(freq_bins=4, time_bins=2)

    grid_db, avg_db = proc.compute(samples)

    tone_db = 20.0 * np.log10(4.0)
    expected_grid = np.array(
        [
            [0.0, -200.0],
            [0.0, -200.0],
            [0.0, -200.0],
            [0.0, tone_db],
        ]
    )
    assert grid_db.shape == (4, 2)
    np.testing.assert_allclose(grid_db, expected_grid, rtol=1e-6, atol=1e-5)

    # Mean magnitudes: 0.5 off the tone, (1 + 4) / 2 on it.
    expected_avg = 20.0 * np.log10(np.array([0.5, 0.5, 0.5, 2.5]))
    np.testing.assert_allclose(avg_db, expected_avg, rtol=1e-6, atol=1e-5)


def test_zero_frequency_is_centered() -> None:
    proc = SpectrogramProcessor(freq_bins=8, time_bins=1)
    grid_db, _ = proc.compute(np.ones(8, dtype=np.complex64))
    assert int(np.argmax(grid_db[:, 0])) == 4


def test_average_then_log_differs_from_log_then_average() -> None:
    rng = np.random.default_rng(7)
    bins, cols = 32, 10
    # Same tone every column with a strongly varying amplitude.
    n = np.arange(bins)
    amps = np.linspace(0.05, 5.0, cols)
    cols_data = [a * np.exp(2j * np.pi * 3 * n / bins) for a in amps]
    samples = np.concatenate(cols_data) + 1e-3 * rng.standard_normal(bins * cols)
    proc = SpectrogramProcessor(bins, cols)

    grid_db, avg_db = proc.compute(samples)

    log_then_avg = grid_db.mean(axis=1)
    spectrum = proc.transform(samples)
    avg_then_log = 20.0 * np.log10(np.abs(spectrum).mean(axis=1))
    np.testing.assert_allclose(avg_db, avg_then_log, rtol=1e-5)
    assert not np.allclose(avg_db, log_then_avg, atol=1e-3)
    # Jensen: the log of the mean is at least the mean of the logs.
    assert np.all(avg_db >= log_then_avg - 1e-4)


def test_zero_magnitude_clamps_to_floor() -> None:
    proc = SpectrogramProcessor(freq_bins=4, time_bins=3)
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        grid_db, avg_db = proc.compute(np.zeros(12, dtype=np.complex64))
    assert np.all(grid_db == -200.0)
    assert np.all(avg_db == -200.0)


def test_custom_floor() -> None:
    assert magnitude_to_db(np.array([0.0]), floor_db=-120.0)[0] == pytest.approx(-120.0)
    assert magnitude_to_db(np.array([10.0]), floor_db=-120.0)[0] == pytest.approx(20.0)


def test_grid_is_recomputed_each_sweep() -> None:
    proc = SpectrogramProcessor(freq_bins=4, time_bins=2)
    loud, _ = proc.compute(np.full(8, 10.0, dtype=np.complex64))
    quiet, _ = proc.compute(np.zeros(8, dtype=np.complex64))
    assert np.all(quiet == -200.0)
    assert not np.shares_memory(loud, quiet)


def test_length_mismatch_is_contract_violation() -> None:
    proc = SpectrogramProcessor(freq_bins=4, time_bins=2)
    with pytest.raises(TransformContractViolation):
        proc.compute(np.zeros(7, dtype=np.complex64))
