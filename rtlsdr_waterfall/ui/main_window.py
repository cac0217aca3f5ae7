"""Qt UI for the waterfall main window.

Draws the average spectrum and the spectrogram heatmap for each sweep and maps
key presses onto engine keys. This module must not implement DSP algorithms or
direct SDR I/O beyond delegating to the engine.
"""

import logging
import threading
from typing import Optional

import numpy as np
import pyqtgraph as pg
from pyqtgraph.Qt import QtCore, QtWidgets

from rtlsdr_waterfall.config import WaterfallConfig
from rtlsdr_waterfall.engine import Engine
from rtlsdr_waterfall.protocol import EngineErrorFrame, EngineFrame, EngineSweepFrame
from rtlsdr_waterfall.ui.handoff import RenderHandoff


logger = logging.getLogger(__name__)


class WaterfallWindow(QtWidgets.QMainWindow):
    def __init__(self, engine: Engine, cfg: WaterfallConfig):
        super().__init__()
        self.engine = engine
        self.cfg = cfg
        self.setWindowTitle("RTL-SDR Waterfall")

        pg.setConfigOptions(antialias=False)
        pg.setConfigOption("background", (10, 10, 10))
        pg.setConfigOption("foreground", "w")

        # The worker never starts the next sweep while this one is queued.
        self.handoff = RenderHandoff()
        self._error_lock = threading.Lock()
        self._pending_error: Optional[EngineErrorFrame] = None
        self.last_drawn_index: Optional[int] = None

        self._build_ui()
        self.engine.subscribe(self.on_frame)

        self.ui_timer = QtCore.QTimer()
        self.ui_timer.timeout.connect(self.refresh_display)
        self.ui_timer.start(20)

    def _build_ui(self) -> None:
        central = QtWidgets.QWidget()
        layout = QtWidgets.QVBoxLayout(central)
        layout.setContentsMargins(4, 4, 4, 4)
        splitter = QtWidgets.QSplitter(QtCore.Qt.Vertical)
        layout.addWidget(splitter, 1)

        self.plot = pg.PlotWidget(title="Frequency Spectrum and Waterfall")
        self.plot.setLabel("bottom", "Frequency (MHz)")
        self.plot.setLabel("left", "Rel Pwr (dB)")
        self.plot.showGrid(x=True, y=True, alpha=0.2)
        self.plot.setMouseEnabled(x=False, y=False)
        self.curve = self.plot.plot(pen=pg.mkPen("w", width=1))
        splitter.addWidget(self.plot)

        self.spectrogram_plot = pg.PlotWidget()
        self.spectrogram_plot.setLabel("bottom", "Time (ms)")
        self.spectrogram_plot.setLabel("left", "Frequency (MHz)")
        self.spectrogram_plot.setMouseEnabled(x=False, y=False)
        # Rows are frequency bins, columns are slow-time bins.
        self.spectrogram_image = pg.ImageItem(axisOrder="row-major")
        self.spectrogram_image.setColorMap(pg.colormap.get("viridis"))
        self.spectrogram_plot.addItem(self.spectrogram_image)
        splitter.addWidget(self.spectrogram_plot)
        splitter.setStretchFactor(0, 1)
        splitter.setStretchFactor(1, 2)

        self.status_message = QtWidgets.QLabel("P pause/resume   Z rezoom   Q quit")
        layout.addWidget(self.status_message)
        self.setCentralWidget(central)
        self.resize(1000, 800)

    def keyPressEvent(self, event):
        key = self.engine.send_key(event.text())
        if key is None:
            super().keyPressEvent(event)

    def closeEvent(self, event):
        self.handoff.close()
        self.ui_timer.stop()
        self.engine.unsubscribe(self.on_frame)
        self.engine.stop()
        super().closeEvent(event)

    def on_frame(self, frame: EngineFrame) -> None:
        # Runs on the worker thread.
        if isinstance(frame, EngineErrorFrame):
            with self._error_lock:
                self._pending_error = frame
            return
        if not isinstance(frame, EngineSweepFrame):
            return
        if not self.handoff.offer(frame, self.cfg.render_timeout_s) and not self.handoff.closed:
            logger.warning("Sweep %d was not drawn within %.1f s", frame.sweep_index, self.cfg.render_timeout_s)

    def refresh_display(self) -> None:
        frame = self.handoff.take()
        with self._error_lock:
            error = self._pending_error
            self._pending_error = None

        if frame is not None:
            self._draw_sweep(frame)
            self.handoff.mark_drawn(frame)
            if frame.final:
                self.close()
                return

        if error is not None:
            QtWidgets.QMessageBox.critical(
                self,
                "Receiver",
                "\n".join([f"Acquisition stopped: {error.error_code}", error.message]),
            )
            self.close()
            return

        if self.engine.status().state == "paused":
            self.status_message.setText("Paused (P to resume)")

    def _draw_sweep(self, frame: EngineSweepFrame) -> None:
        freqs = frame.freq_axis_mhz
        times = frame.time_axis_ms
        self.curve.setData(freqs, frame.avg_db)
        self.plot.setXRange(float(freqs[0]), float(freqs[-1]), padding=0.0)
        self.plot.setYRange(frame.zoom_low_db, frame.zoom_high_db, padding=0.0)

        grid = frame.grid_db
        self.spectrogram_image.setImage(grid, autoLevels=False)
        lo, hi = np.percentile(grid, [5.0, 99.5])
        if hi <= lo:
            hi = lo + 1.0
        self.spectrogram_image.setLevels((float(lo), float(hi)))
        # Pixel edges: one slow-time period wide, one bin spacing tall.
        dt = float(times[1] - times[0]) if len(times) > 1 else 1.0
        df = float(freqs[1] - freqs[0]) if len(freqs) > 1 else 1.0
        rect = QtCore.QRectF(float(times[0]), float(freqs[0]), dt * len(times), df * len(freqs))
        self.spectrogram_image.setRect(rect)
        self.spectrogram_plot.setXRange(rect.left(), rect.right(), padding=0.0)
        self.spectrogram_plot.setYRange(rect.top(), rect.bottom(), padding=0.0)

        status = self.engine.status()
        self.status_message.setText(
            " ".join(
                [
                    f"Sweep {frame.sweep_index + 1}",
                    f"Fc {self.cfg.center_hz / 1e6:.3f} MHz",
                    f"Fs {self.cfg.sample_rate_hz / 1e6:.3f} Msps",
                    f"Gain {self.cfg.gain_db:.1f} dB",
                    f"Lost {status.samples_lost}",
                    f"Late {status.frames_late}",
                    "| P pause  Z rezoom  Q quit",
                ]
            )
        )
        self.last_drawn_index = frame.sweep_index
