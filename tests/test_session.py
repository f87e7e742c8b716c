from datetime import date

import pytest

from routine_planner.errors import UnknownEventError
from routine_planner.operations import CalendarOperation, EventDetails, EventQuery
from routine_planner.session import PlannerSession
from routine_planner.timeutil import MIN_MS

MONDAY = date(2025, 9, 8)
TEETH = "leia-teeth-2025-09-08"
BREAKFAST = "leia-breakfast-2025-09-08"
VITAMINS = "leia-vitamins-2025-09-08"


@pytest.fixture()
def session(small_config, qtbot):
    s = PlannerSession(small_config)
    with qtbot.waitSignal(s.day_loaded, timeout=1000) as blocker:
        s.load_day(MONDAY)
    assert blocker.args == ["2025-09-08"]
    return s


def test_effective_events_cover_each_day_for_tracked_people(session, at):
    events = session.effective_events(at("07:00"))
    assert {e.person_id for e in events} == {"leia", "maria"}
    assert any(e.synthetic for e in events)
    leia = sorted((e for e in events if e.person_id == "leia"), key=lambda e: e.start_ms)
    for a, b in zip(leia, leia[1:]):
        assert a.end_ms == b.start_ms


def test_rows_and_visible_window(session, at):
    rows = session.rows(at("07:10"))
    assert len(rows) > 5
    window = session.visible_rows(at("07:10"))
    assert len(window) == 5
    assert any(r.time_ms == at("07:08") for r in window)


def test_mark_done_late_commits_replan(session, qtbot, at):
    with qtbot.waitSignal(session.replanned, timeout=1000) as blocker:
        preview = session.mark_done(TEETH, at("07:20"))
    assert blocker.args == [TEETH, "ok", 4 * MIN_MS]
    assert preview.status == "ok"
    assert session.completed_up_to("leia") == at("07:20")

    events = {e.id: e for e in session.effective_events(at("07:20"))}
    assert (events[BREAKFAST].start_ms, events[BREAKFAST].end_ms) == (at("07:20"), at("07:32"))
    assert events[TEETH].completed_at_ms == at("07:20")
    assert events[TEETH].is_completed(at("07:20"))


def test_mark_done_with_too_little_flex(session, qtbot, at):
    with qtbot.waitSignal(session.insufficient_flex, timeout=1000) as blocker:
        preview = session.mark_done(TEETH, at("07:24"))
    assert blocker.args == [TEETH, 2 * MIN_MS]
    assert preview.status == "insufficient_flex"
    events = {e.id: e for e in session.effective_events(at("07:24"))}
    assert events[VITAMINS].start_ms == at("07:34")


def test_mark_done_on_time_changes_nothing(session, qtbot, at):
    with qtbot.assertNotEmitted(session.replanned):
        session.mark_done(TEETH, at("07:14"))
    assert session.overrides == {}


def test_set_override_and_reload_clears_it(session, qtbot, at):
    with qtbot.waitSignal(session.overrides_changed, timeout=1000):
        session.set_override(VITAMINS, start_ms=at("07:40"))
    events = {e.id: e for e in session.effective_events(at("07:00"))}
    assert events[VITAMINS].start_ms == at("07:40")

    session.load_day(MONDAY)
    assert session.overrides == {}
    with pytest.raises(UnknownEventError):
        session.set_override("nope", start_ms=0)


def test_why_blocked_uses_completion_marks(session, at):
    assert session.why_blocked(BREAKFAST, at("07:02")) == "Waiting for Maria (Wake Leia)"
    session.mark_done("maria-wake-2025-09-08", at("07:03"))
    assert session.why_blocked(BREAKFAST, at("07:04")) is None


def test_filler_cannot_be_completed(session, at):
    filler = next(e for e in session.effective_events(at("07:00")) if e.synthetic)
    with pytest.raises(ValueError):
        session.mark_done(filler.id, at("07:00"))


def test_apply_operation_updates_base_events(session, qtbot, at):
    op = CalendarOperation("CREATE", details=EventDetails(title="Dentist", day=MONDAY, start="10:00"))
    with qtbot.waitSignal(session.events_changed, timeout=1000):
        result = session.apply_operation(op, default_person_id="maria", id_factory=lambda: "dentist")
    assert result is not None
    assert any(e.id == "dentist" for e in session.base_events)
    row_times = [r.time_ms for r in session.rows(at("10:00"))]
    assert at("10:00") in row_times


def test_rejected_operation_emits_error(session, qtbot):
    op = CalendarOperation("DELETE", target=EventQuery(title="does not exist"))
    with qtbot.waitSignal(session.error, timeout=1000) as blocker:
        assert session.apply_operation(op) is None
    assert "no event matches" in blocker.args[0]


def test_delete_drops_overrides_for_removed_event(session, at):
    session.set_override(VITAMINS, start_ms=at("07:40"))
    session.apply_operation(CalendarOperation("DELETE", target=EventQuery(title="vitamins")))
    assert VITAMINS not in session.overrides


def test_fill_follows_loaded_day_not_the_clock(session, at):
    sunday_evening = at("23:30", date(2025, 9, 7))
    events = session.effective_events(sunday_evening)
    fillers = [e for e in events if e.synthetic]
    assert fillers
    assert all(f.day == MONDAY for f in fillers)
    monday_start = at("00:00")
    assert all(f.start_ms >= monday_start for f in fillers)
    for person in ("leia", "maria"):
        own = sorted((e for e in events if e.person_id == person), key=lambda e: e.start_ms)
        assert own[0].start_ms == monday_start
        for a, b in zip(own, own[1:]):
            assert a.end_ms == b.start_ms
