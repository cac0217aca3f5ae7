"""Key handoff and the Running/Paused display state.

The key slot is the only state shared between the UI (or HTTP) thread and the
sweep loop. It holds at most one pending key; a newer key replaces an unread
one. The display state reads it once per sweep boundary.
"""

from __future__ import annotations

from dataclasses import dataclass
import enum
import logging
import threading
from typing import Optional


logger = logging.getLogger(__name__)


class Key(str, enum.Enum):
    PAUSE = "pause"
    REZOOM = "rezoom"
    QUIT = "quit"


# Keyboard letters used by the window.
KEY_BINDINGS = {"p": Key.PAUSE, "z": Key.REZOOM, "q": Key.QUIT}


def parse_key(name: str) -> Optional[Key]:
    name = name.strip().lower()
    if name in KEY_BINDINGS:
        return KEY_BINDINGS[name]
    try:
        return Key(name)
    except ValueError:
        return None


class KeySlot:
    """Single-writer/single-reader handoff cell for key presses."""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._key: Optional[Key] = None
        self._closed = False

    def post(self, key: Key) -> None:
        with self._cond:
            self._key = key
            self._cond.notify_all()

    def peek(self) -> Optional[Key]:
        with self._cond:
            return self._key

    def take(self) -> Optional[Key]:
        """Read and clear in one step."""
        with self._cond:
            key = self._key
            self._key = None
            return key

    def wait_take(self, timeout: float) -> Optional[Key]:
        """Block up to ``timeout`` seconds for a key, then read and clear."""
        with self._cond:
            if self._key is None and not self._closed:
                self._cond.wait(timeout)
            key = self._key
            self._key = None
            return key

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def reopen(self) -> None:
        """Clear the closed flag for a new run; a pending key is kept."""
        with self._cond:
            self._closed = False

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed


class Mode(str, enum.Enum):
    RUNNING = "running"
    PAUSED = "paused"


@dataclass(frozen=True)
class ZoomWindow:
    low_db: float
    high_db: float

    @classmethod
    def around_peak(cls, peak_db: float, below_db: float = 40.0, above_db: float = 5.0) -> "ZoomWindow":
        return cls(low_db=float(peak_db) - below_db, high_db=float(peak_db) + above_db)


@dataclass(frozen=True)
class BoundaryDecision:
    """Outcome of one sweep-boundary check."""

    zoom: ZoomWindow
    rezoomed: bool
    quit: bool


class DisplayState:
    def __init__(
        self,
        slot: KeySlot,
        pause_poll_s: float = 0.1,
        zoom_below_peak_db: float = 40.0,
        zoom_above_peak_db: float = 5.0,
    ):
        self.slot = slot
        self.pause_poll_s = float(pause_poll_s)
        self.zoom_below_peak_db = float(zoom_below_peak_db)
        self.zoom_above_peak_db = float(zoom_above_peak_db)
        self.mode = Mode.RUNNING
        self.zoom: Optional[ZoomWindow] = None
        self._lock = threading.Lock()

    def check(self, peak_db: float) -> BoundaryDecision:
        """
        Consume the pending key and decide how to display this sweep.

        Blocks while paused. Quit or rezoom pressed during a pause are
        applied when the pause ends.
        """
        key = self.slot.take()
        quit_requested = key is Key.QUIT
        rezoom_requested = key is Key.REZOOM

        if key is Key.PAUSE:
            held = self._wait_for_resume()
            quit_requested = quit_requested or Key.QUIT in held
            rezoom_requested = rezoom_requested or Key.REZOOM in held

        if self.slot.closed:
            quit_requested = True

        peak_db = float(peak_db)
        rezoomed = False
        if self.zoom is None or peak_db > self.zoom.high_db or rezoom_requested:
            self.zoom = ZoomWindow.around_peak(
                peak_db, self.zoom_below_peak_db, self.zoom_above_peak_db
            )
            rezoomed = True
            logger.debug("Zoom window [%.1f, %.1f] dB", self.zoom.low_db, self.zoom.high_db)

        return BoundaryDecision(zoom=self.zoom, rezoomed=rezoomed, quit=quit_requested)

    def _wait_for_resume(self) -> set[Key]:
        self._set_mode(Mode.PAUSED)
        logger.info("Paused")
        held: set[Key] = set()
        while True:
            key = self.slot.wait_take(self.pause_poll_s)
            if key is Key.PAUSE:
                break
            if key is not None:
                held.add(key)
            if self.slot.closed:
                held.add(Key.QUIT)
                break
        self._set_mode(Mode.RUNNING)
        logger.info("Resumed")
        return held

    def _set_mode(self, mode: Mode) -> None:
        with self._lock:
            self.mode = mode
