from __future__ import annotations

"""SimClock: the "now" source for a running planner.

Two modes:
 - ``system``: now is the real time reported by the time provider.
 - ``simulated``: now advances from a chosen instant at ``seconds_per_hour``
   real seconds per simulated hour, and can be paused, sped up or moved.

With loop bounds set, simulated time that reaches the loop end wraps back to
the loop start. A ``tick(now_ms)`` signal fires on every timer interval.
"""

from datetime import datetime, timezone
from typing import Callable, Optional

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from .timeutil import HOUR_MS, to_ms

TimeProvider = Callable[[], datetime]

SYSTEM = "system"
SIMULATED = "simulated"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SimClock(QObject):
    tick = pyqtSignal(object)  # now in epoch ms (exceeds a C++ int)
    mode_changed = pyqtSignal(str)
    state_changed = pyqtSignal(str)  # "playing" | "paused"

    def __init__(
        self,
        mode: str = SYSTEM,
        *,
        seconds_per_hour: float = 60.0,
        start_ms: Optional[int] = None,
        loop_start_ms: Optional[int] = None,
        loop_end_ms: Optional[int] = None,
        interval_ms: int = 1000,
        time_provider: Optional[TimeProvider] = None,
    ) -> None:
        super().__init__()
        if mode not in (SYSTEM, SIMULATED):
            raise ValueError(f"unknown clock mode {mode!r}")
        if seconds_per_hour <= 0:
            raise ValueError("seconds_per_hour must be positive")
        self._time_provider: TimeProvider = time_provider or _utcnow
        self._mode = mode
        self._speed = float(seconds_per_hour)
        self._sim_ms: int = start_ms if start_ms is not None else self._real_ms()
        self._last_real_ms: Optional[int] = None
        self._playing = False
        self._loop: Optional[tuple[int, int]] = None
        if loop_start_ms is not None and loop_end_ms is not None:
            self.set_loop(loop_start_ms, loop_end_ms)

        self._timer = QTimer(self)
        self._timer.setInterval(interval_ms)
        self._timer.timeout.connect(self._on_tick)

    # --- Properties -----------------------------------------------------
    @property
    def mode(self) -> str:
        return self._mode

    @property
    def playing(self) -> bool:
        return self._playing

    @property
    def seconds_per_hour(self) -> float:
        return self._speed

    @property
    def factor(self) -> float:
        """Simulated milliseconds per real millisecond."""
        return HOUR_MS / (self._speed * 1000)

    def now_ms(self) -> int:
        if self._mode == SYSTEM:
            return self._real_ms()
        if self._playing:
            self._advance()
        return self._sim_ms

    # --- Public API -----------------------------------------------------
    def set_mode(self, mode: str) -> None:
        if mode not in (SYSTEM, SIMULATED):
            raise ValueError(f"unknown clock mode {mode!r}")
        if mode == self._mode:
            return
        if mode == SIMULATED:
            self._sim_ms = self._real_ms()
        else:
            self.pause()
        self._mode = mode
        self.mode_changed.emit(mode)
        self.tick.emit(self.now_ms())

    def set_loop(self, start_ms: int, end_ms: int) -> None:
        if end_ms <= start_ms:
            raise ValueError("loop end must be after loop start")
        self._loop = (start_ms, end_ms)
        self._wrap()

    def clear_loop(self) -> None:
        self._loop = None

    def play(self) -> None:
        if self._mode != SIMULATED or self._playing:
            return
        self._last_real_ms = self._real_ms()
        self._playing = True
        self._timer.start()
        self.state_changed.emit("playing")

    def pause(self) -> None:
        if not self._playing:
            return
        self._advance()
        self._playing = False
        self._last_real_ms = None
        self._timer.stop()
        self.state_changed.emit("paused")

    def set_speed(self, seconds_per_hour: float) -> None:
        if seconds_per_hour <= 0:
            raise ValueError("seconds_per_hour must be positive")
        if self._playing:
            self._advance()
        self._speed = float(seconds_per_hour)

    def jump_to(self, value: int | datetime | str) -> int:
        """Move simulated time to ``value``; switches to simulated mode."""
        self._sim_ms = to_ms(value)
        self._wrap()
        if self._playing:
            self._last_real_ms = self._real_ms()
        if self._mode != SIMULATED:
            self._mode = SIMULATED
            self.mode_changed.emit(SIMULATED)
        self.tick.emit(self._sim_ms)
        return self._sim_ms

    def start(self) -> None:
        """Start ticking in system mode (simulated mode ticks while playing)."""
        if self._mode == SYSTEM:
            self._timer.start()

    def stop(self) -> None:
        self.pause()
        self._timer.stop()

    # --- Internal -------------------------------------------------------
    def _real_ms(self) -> int:
        return to_ms(self._time_provider())

    def _advance(self) -> None:
        if self._last_real_ms is None:
            return
        real = self._real_ms()
        dt = real - self._last_real_ms
        self._last_real_ms = real
        self._sim_ms += int(dt * self.factor)
        self._wrap()

    def _wrap(self) -> None:
        if self._loop is None:
            return
        start, end = self._loop
        if self._sim_ms >= end:
            self._sim_ms = start

    def _on_tick(self) -> None:
        if self._mode == SIMULATED and not self._playing:
            return
        self.tick.emit(self.now_ms())


__all__ = ["SimClock", "SYSTEM", "SIMULATED", "TimeProvider"]
