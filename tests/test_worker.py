import time

import numpy as np

from fakes import RampSource, small_config
from rtlsdr_waterfall.display_state import Key, KeySlot, Mode
from rtlsdr_waterfall.errors import HardwareAcquisitionFailure
from rtlsdr_waterfall.sdr.synthetic import SyntheticSource
from rtlsdr_waterfall.worker import SweepWorker


def _wait_until(predicate, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


class CountingSource(SyntheticSource):
    def __init__(self, cfg):
        super().__init__(cfg, tone_offset_hz=125e3, realtime=False)
        self.reads = 0
        self.close_count = 0

    def read_frame(self):
        self.reads += 1
        return super().read_frame()

    def close(self) -> None:
        self.close_count += 1
        super().close()


def test_quit_renders_current_sweep_then_releases_source() -> None:
    cfg = small_config()
    source = CountingSource(cfg)
    slot = KeySlot()
    rendered = []
    worker = SweepWorker(source, cfg, slot, frame_cb=rendered.append)
    slot.post(Key.QUIT)

    worker.run_loop()

    assert len(rendered) == 1
    frame = rendered[0]
    assert frame.final
    assert frame.grid_db.shape == (16, 7)
    assert frame.avg_db.shape == (16,)
    assert source.reads == worker.geometry.frame_count
    assert source.close_count == 1
    assert not source.is_open


def test_sweep_frame_carries_axes_and_zoom() -> None:
    cfg = small_config()
    slot = KeySlot()
    rendered = []
    worker = SweepWorker(CountingSource(cfg), cfg, slot, frame_cb=rendered.append)
    slot.post(Key.QUIT)
    worker.run_loop()

    frame = rendered[0]
    assert np.array_equal(frame.freq_axis_mhz, worker.geometry.freq_axis_mhz)
    assert np.array_equal(frame.time_axis_ms, worker.geometry.time_axis_ms)
    assert frame.rezoomed
    assert frame.zoom_high_db == frame.peak_db + 5.0
    assert frame.zoom_low_db == frame.peak_db - 40.0
    # 125 kHz tone on a 1 Msps, 16-bin grid lands two bins above center.
    assert int(np.argmax(frame.avg_db)) == 8 + 2


def test_pause_stops_acquisition_until_resumed() -> None:
    cfg = small_config()
    source = CountingSource(cfg)
    slot = KeySlot()
    rendered = []
    worker = SweepWorker(source, cfg, slot, frame_cb=rendered.append)
    slot.post(Key.PAUSE)
    worker.start()

    assert _wait_until(lambda: worker.mode is Mode.PAUSED)
    reads_when_paused = source.reads
    time.sleep(0.2)
    assert source.reads == reads_when_paused
    assert rendered == []

    slot.post(Key.QUIT)
    assert _wait_until(lambda: slot.peek() is None)
    slot.post(Key.PAUSE)
    worker.join(timeout=2.0)

    assert not worker.is_alive()
    assert len(rendered) == 1
    assert rendered[0].final
    assert source.reads == reads_when_paused
    assert source.close_count == 1


def test_stop_ends_loop_at_next_boundary() -> None:
    cfg = small_config()
    source = CountingSource(cfg)
    rendered = []
    worker = SweepWorker(source, cfg, KeySlot(), frame_cb=rendered.append)
    worker.start()
    assert _wait_until(lambda: len(rendered) >= 3)

    worker.stop()
    worker.join(timeout=2.0)

    assert not worker.is_alive()
    assert worker.finished
    assert rendered[-1].final
    assert source.close_count == 1
    # Every read belonged to a complete sweep.
    assert source.reads == len(rendered) * worker.geometry.frame_count


def test_hardware_failure_reports_error_and_releases_source() -> None:
    cfg = small_config()
    source = RampSource(frame_size=cfg.frame_size, fail_at=1)
    errors = []
    rendered = []
    worker = SweepWorker(source, cfg, KeySlot(), frame_cb=rendered.append, error_cb=errors.append)

    worker.run()

    assert rendered == []
    assert len(errors) == 1
    assert isinstance(errors[0], HardwareAcquisitionFailure)
    assert worker.error is errors[0]
    assert source.close_count == 1
    assert worker.finished


def test_source_open_failure_still_attempts_release() -> None:
    cfg = small_config()

    class BrokenOpen(RampSource):
        def open(self) -> None:
            raise OSError("usb_claim_interface error -6")

    source = BrokenOpen(frame_size=cfg.frame_size)
    errors = []
    worker = SweepWorker(source, cfg, KeySlot(), frame_cb=lambda frame: None, error_cb=errors.append)
    worker.run()

    assert isinstance(errors[0], HardwareAcquisitionFailure)
    assert errors[0].frame_index is None
    assert isinstance(errors[0].__cause__, OSError)
    assert source.close_count == 1
