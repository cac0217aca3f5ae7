"""Worker-to-GUI handoff for rendered sweeps.

The worker offers a sweep and waits until that same sweep has been drawn. The
GUI timer takes whatever is pending and marks it drawn afterwards. No Qt
imports here; the window owns one of these.
"""

from __future__ import annotations

import threading
from typing import Optional

from rtlsdr_waterfall.protocol import EngineSweepFrame


class RenderHandoff:
    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._pending: Optional[EngineSweepFrame] = None
        self._last_drawn: Optional[EngineSweepFrame] = None
        self._closed = False

    def offer(self, frame: EngineSweepFrame, timeout: float) -> bool:
        """Queue ``frame`` and block until it is drawn, closed, or ``timeout`` passes."""
        with self._cond:
            if self._closed:
                return False
            self._pending = frame
            self._cond.notify_all()
            return self._cond.wait_for(
                lambda: self._last_drawn is frame or self._closed, timeout
            ) and self._last_drawn is frame

    def take(self) -> Optional[EngineSweepFrame]:
        with self._cond:
            frame = self._pending
            self._pending = None
            return frame

    def mark_drawn(self, frame: EngineSweepFrame) -> None:
        # Only wakes the worker waiting on this exact sweep.
        with self._cond:
            self._last_drawn = frame
            self._cond.notify_all()

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._pending = None
            self._cond.notify_all()

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed
