from datetime import datetime, timedelta, timezone

import pytest

from routine_planner.sim_clock import SIMULATED, SYSTEM, SimClock
from routine_planner.timeutil import HOUR_MS, MIN_MS, to_ms


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)

    def __call__(self) -> datetime:
        return self.now


REAL_START = datetime(2025, 9, 8, 12, 0, 0, tzinfo=timezone.utc)
SIM_START = datetime(2025, 9, 8, 7, 0, 0, tzinfo=timezone.utc)


def test_system_mode_follows_time_provider(qtbot):
    clock = FakeClock(REAL_START)
    sim = SimClock(time_provider=clock)
    assert sim.mode == SYSTEM
    assert sim.now_ms() == to_ms(REAL_START)
    clock.advance(90)
    assert sim.now_ms() == to_ms(REAL_START) + 90_000


def test_simulated_time_advances_by_speed_factor(qtbot):
    clock = FakeClock(REAL_START)
    sim = SimClock(SIMULATED, seconds_per_hour=60, start_ms=to_ms(SIM_START), time_provider=clock)
    assert sim.factor == 60
    sim.play()
    clock.advance(1)  # one real second = one simulated minute
    assert sim.now_ms() == to_ms(SIM_START) + MIN_MS
    clock.advance(60)
    assert sim.now_ms() == to_ms(SIM_START) + HOUR_MS + MIN_MS


def test_pause_freezes_simulated_time(qtbot):
    clock = FakeClock(REAL_START)
    sim = SimClock(SIMULATED, seconds_per_hour=60, start_ms=to_ms(SIM_START), time_provider=clock)
    sim.play()
    clock.advance(2)
    with qtbot.waitSignal(sim.state_changed, timeout=1000) as blocker:
        sim.pause()
    assert blocker.args == ["paused"]
    frozen = sim.now_ms()
    clock.advance(100)
    assert sim.now_ms() == frozen == to_ms(SIM_START) + 2 * MIN_MS


def test_speed_change_applies_from_now_on(qtbot):
    clock = FakeClock(REAL_START)
    sim = SimClock(SIMULATED, seconds_per_hour=60, start_ms=to_ms(SIM_START), time_provider=clock)
    sim.play()
    clock.advance(1)
    sim.set_speed(3600)  # real time
    clock.advance(1)
    assert sim.now_ms() == to_ms(SIM_START) + MIN_MS + 1000


def test_loop_wraps_to_start(qtbot):
    clock = FakeClock(REAL_START)
    start = to_ms(SIM_START)
    sim = SimClock(
        SIMULATED,
        seconds_per_hour=60,
        start_ms=start + 59 * MIN_MS,
        loop_start_ms=start,
        loop_end_ms=start + HOUR_MS,
        time_provider=clock,
    )
    sim.play()
    clock.advance(2)
    assert sim.now_ms() == start


def test_jump_to_switches_to_simulated_and_ticks(qtbot):
    sim = SimClock(time_provider=FakeClock(REAL_START))
    with qtbot.waitSignal(sim.tick, timeout=1000) as blocker:
        sim.jump_to("2025-09-08T07:20:00Z")
    assert sim.mode == SIMULATED
    assert blocker.args == [to_ms(datetime(2025, 9, 8, 7, 20, tzinfo=timezone.utc))]
    assert sim.jump_to(SIM_START) == to_ms(SIM_START)


def test_tick_handler_emits_current_time(qtbot):
    clock = FakeClock(REAL_START)
    sim = SimClock(SIMULATED, seconds_per_hour=60, start_ms=to_ms(SIM_START), time_provider=clock)
    with qtbot.assertNotEmitted(sim.tick):
        sim._on_tick()  # paused simulated clocks stay quiet
    sim.play()
    clock.advance(1)
    with qtbot.waitSignal(sim.tick, timeout=1000) as blocker:
        sim._on_tick()
    assert blocker.args == [to_ms(SIM_START) + MIN_MS]
    sim.stop()
    assert not sim.playing


def test_invalid_arguments(qtbot):
    with pytest.raises(ValueError):
        SimClock("warp")
    with pytest.raises(ValueError):
        SimClock(seconds_per_hour=0)
    sim = SimClock(SIMULATED, start_ms=0, time_provider=FakeClock(REAL_START))
    with pytest.raises(ValueError):
        sim.set_loop(10, 10)
    with pytest.raises(ValueError):
        sim.set_speed(-1)
