import numpy as np
import pytest

from fakes import RampSource
from rtlsdr_waterfall.acquisition import AcquisitionBuffer
from rtlsdr_waterfall.config import WaterfallConfig
from rtlsdr_waterfall.errors import HardwareAcquisitionFailure
from rtlsdr_waterfall.geometry import derive_geometry
from rtlsdr_waterfall.sdr.base import LatenessTracker, fit_frame


def _geometry():
    # 4 bins, 0.01 s / 0.004 s -> 3 time bins, 12 samples from 3 frames of 5.
    cfg = WaterfallConfig(sample_rate_hz=1000.0, time_span_s=0.01, freq_bins=4, frame_size=5)
    geo = derive_geometry(cfg)
    assert (geo.time_bins, geo.total_samples, geo.frame_count) == (3, 12, 3)
    return geo


def test_sweep_concatenates_frames_in_order_and_truncates() -> None:
    geo = _geometry()
    source = RampSource(frame_size=5)
    buf = AcquisitionBuffer(source, geo)

    sweep = buf.acquire_sweep()

    assert source.reads == 3
    assert sweep.samples.shape == (12,)
    assert np.array_equal(sweep.samples.real, np.arange(12))


def test_each_sweep_reads_fresh_frames() -> None:
    geo = _geometry()
    source = RampSource(frame_size=5)
    buf = AcquisitionBuffer(source, geo)
    buf.acquire_sweep()
    second = buf.acquire_sweep()
    assert source.reads == 6
    # Second sweep starts at frame 3 (sample 15); nothing from sweep one.
    assert second.samples[0].real == 15


def test_loss_and_lateness_are_recorded_per_frame() -> None:
    geo = _geometry()
    source = RampSource(frame_size=5, lost=[0, 3, 0], late=[0, 0, 1])
    buf = AcquisitionBuffer(source, geo)

    sweep = buf.acquire_sweep()

    assert list(sweep.lost) == [0, 3, 0]
    assert list(sweep.late) == [0, 0, 1]
    # Drops never shorten the sweep.
    assert sweep.samples.shape == (12,)
    counters = buf.counters
    assert counters.sweeps == 1
    assert counters.frames == 3
    assert counters.frames_with_loss == 1
    assert counters.samples_lost == 3
    assert counters.frames_late == 1
    assert counters.last_sweep_lost == [0, 3, 0]

    buf.acquire_sweep()
    assert buf.counters.sweeps == 2
    assert buf.counters.samples_lost == 3


def test_read_failure_is_fatal_to_the_sweep() -> None:
    geo = _geometry()
    source = RampSource(frame_size=5, fail_at=1)
    buf = AcquisitionBuffer(source, geo)

    with pytest.raises(HardwareAcquisitionFailure) as info:
        buf.acquire_sweep()

    assert info.value.frame_index == 1
    assert isinstance(info.value.__cause__, OSError)
    assert buf.counters.sweeps == 0


def test_short_frame_is_a_hardware_failure() -> None:
    geo = _geometry()
    buf = AcquisitionBuffer(RampSource(frame_size=5, short_at=2), geo)
    with pytest.raises(HardwareAcquisitionFailure):
        buf.acquire_sweep()


def test_frame_size_mismatch_is_rejected() -> None:
    with pytest.raises(ValueError):
        AcquisitionBuffer(RampSource(frame_size=6), _geometry())


def test_fit_frame_pads_short_reads() -> None:
    samples, lost = fit_frame(np.ones(3, dtype=np.complex128), 5)
    assert samples.dtype == np.complex64
    assert list(samples.real) == [1, 1, 1, 0, 0]
    assert lost == 2

    full, lost = fit_frame(np.ones(5), 5)
    assert full.shape == (5,)
    assert lost == 0


def test_lateness_tracker_flags_long_gaps(monkeypatch) -> None:
    now = [100.0]
    monkeypatch.setattr("rtlsdr_waterfall.sdr.base.time.monotonic", lambda: now[0])
    tracker = LatenessTracker(frame_duration_s=0.01)

    assert tracker.start() == 0
    tracker.done()
    now[0] += 0.005
    assert tracker.start() == 0
    tracker.done()
    now[0] += 0.05
    assert tracker.start() == 1
