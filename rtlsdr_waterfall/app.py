"""Application entrypoint wiring for the waterfall viewer.

Parses the command line, configures logging, and starts either the Qt window
or the headless HTTP server. This module must not contain UI or SDR logic
beyond orchestration.
"""

import argparse
import logging
import os
import sys
from typing import Optional, Sequence

from rtlsdr_waterfall.config import RTLSDR_GAINS_DB, RTLSDR_SAMPLE_RATE_RANGES, WaterfallConfig
from rtlsdr_waterfall.engine import Engine
from rtlsdr_waterfall.protocol import EngineErrorFrame, EngineFrame, EngineSweepFrame
from rtlsdr_waterfall.sdr.base import DRIVERS


logger = logging.getLogger("rtlsdr_waterfall")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    defaults = WaterfallConfig()
    p = argparse.ArgumentParser(
        description="Live spectrum and waterfall from an RTL-SDR. Keys: p pause, z rezoom, q quit."
    )
    p.add_argument("--freq", type=float, default=defaults.center_hz,
                   help="Center frequency in Hz (default: 96.9e6)")
    p.add_argument("--rate", type=float, default=defaults.sample_rate_hz,
                   help="Sample rate in samples/sec (default: 2.8e6)")
    p.add_argument("--gain", type=float, default=defaults.gain_db,
                   help="Tuner gain in dB (default: 32.8)")
    p.add_argument("--span", type=float, default=defaults.time_span_s,
                   help="Time span of the waterfall in seconds (default: 20e-3)")
    p.add_argument("--bins", type=int, default=defaults.freq_bins,
                   help="Number of frequency bins (default: 256)")
    p.add_argument("--driver", choices=DRIVERS, default=defaults.driver,
                   help="Receiver driver (default: rtlsdr)")
    p.add_argument("--device-index", type=int, default=defaults.device_index,
                   help="RTL-SDR device index (default: 0)")
    p.add_argument("--uri", default=defaults.uri,
                   help="Pluto URI when --driver pluto is used")
    p.add_argument("--headless", action="store_true",
                   help="Run without a window and serve status/keys over HTTP")
    p.add_argument("--host", default=defaults.http_host, help="HTTP host for --headless")
    p.add_argument("--port", type=int, default=defaults.http_port, help="HTTP port for --headless")
    p.add_argument("--log-level", default=os.getenv("WATERFALL_LOG_LEVEL", "WARNING"),
                   help="Logging level (default: WATERFALL_LOG_LEVEL or WARNING)")
    args = p.parse_args(argv)
    if args.bins < 1:
        p.error("--bins must be at least 1")
    if args.span <= 0:
        p.error("--span must be positive")
    if args.rate <= 0:
        p.error("--rate must be positive")
    return args


def config_from_args(args: argparse.Namespace) -> WaterfallConfig:
    return WaterfallConfig(
        center_hz=args.freq,
        sample_rate_hz=args.rate,
        gain_db=args.gain,
        time_span_s=args.span,
        freq_bins=args.bins,
        driver=args.driver,
        device_index=args.device_index,
        uri=args.uri,
        http_host=args.host,
        http_port=args.port,
    )


def configure_logging(level_name: str) -> None:
    level = getattr(logging, str(level_name).upper(), logging.WARNING)
    logging.basicConfig(level=level, format="%(levelname)s: %(name)s: %(message)s")


def _warn_unusual_settings(cfg: WaterfallConfig) -> None:
    # The driver has the final word; these only help spot typos early.
    if cfg.driver != "rtlsdr":
        return
    if cfg.gain_db not in RTLSDR_GAINS_DB:
        logger.warning("Gain %.1f dB is not an R820T gain step; the driver may round it", cfg.gain_db)
    if not any(lo <= cfg.sample_rate_hz <= hi for lo, hi in RTLSDR_SAMPLE_RATE_RANGES):
        logger.warning("Sample rate %.0f sps is outside the RTL2832U ranges", cfg.sample_rate_hz)


def run_gui(engine: Engine, cfg: WaterfallConfig) -> int:
    from pyqtgraph.Qt import QtWidgets

    from rtlsdr_waterfall.ui.main_window import WaterfallWindow

    app = QtWidgets.QApplication(sys.argv)
    window = WaterfallWindow(engine, cfg)
    window.show()
    if not engine.start():
        window.close()
    app.exec()
    engine.stop()
    return 0


def run_headless(engine: Engine, cfg: WaterfallConfig) -> int:
    import uvicorn

    from rtlsdr_waterfall.server.app import create_app

    server = uvicorn.Server(uvicorn.Config(create_app(engine), host=cfg.http_host, port=cfg.http_port))

    def _on_frame(frame: EngineFrame) -> None:
        if isinstance(frame, EngineSweepFrame):
            logger.debug("Sweep %d peak %.1f dB", frame.sweep_index, frame.peak_db)
            if frame.final:
                server.should_exit = True
        elif isinstance(frame, EngineErrorFrame):
            server.should_exit = True

    engine.subscribe(_on_frame)
    if not engine.start():
        return 1
    try:
        server.run()
    finally:
        engine.stop()
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)
    cfg = config_from_args(args)
    _warn_unusual_settings(cfg)

    engine = Engine(cfg)
    geo = engine.geometry
    logger.info(
        "%d bins x %d time bins (%.2f ms per sweep), %d frames of %d samples",
        geo.freq_bins,
        geo.time_bins,
        geo.sweep_duration_s * 1000.0,
        geo.frame_count,
        geo.frame_size,
    )

    if args.headless:
        status = run_headless(engine, cfg)
    else:
        status = run_gui(engine, cfg)

    error = engine.last_error
    if error is not None:
        print(f"rtlsdr-waterfall: {error.error_code}: {error.message}", file=sys.stderr)
        return 1
    return status


if __name__ == "__main__":
    raise SystemExit(main())
