from collections import defaultdict
from datetime import date, timedelta, timezone

import pytest

from routine_planner.errors import ConfigurationError
from routine_planner.expander import (
    event_id_for,
    expand_day,
    expand_profile_for_date,
    resolve_step_minutes,
)
from routine_planner.household import FRITIDS_DAY, OFF_DAY, SCHOOL_DAY
from routine_planner.models import DayProfile, RuleSet, TemplateStep
from routine_planner.timeutil import MIN_MS

MONDAY = date(2025, 9, 8)


def test_small_profile_is_contiguous_per_person(small_config, at):
    result = expand_day(MONDAY, small_config)
    assert result.day_type == "SchoolDay"
    assert result.tomorrow_type == "SchoolDay"
    by_id = {e.id: e for e in result.events}

    teeth = by_id["leia-teeth-2025-09-08"]
    breakfast = by_id["leia-breakfast-2025-09-08"]
    vitamins = by_id["leia-vitamins-2025-09-08"]
    assert (teeth.start_ms, teeth.end_ms) == (at("07:08"), at("07:16"))
    assert (breakfast.start_ms, breakfast.end_ms) == (at("07:16"), at("07:32"))
    # Last event of the day falls back to its best duration.
    assert (vitamins.start_ms, vitamins.end_ms) == (at("07:32"), at("07:33"))
    assert breakfast.min_duration_ms == 10 * MIN_MS
    assert breakfast.depends_on == ("maria-wake-2025-09-08",)
    assert breakfast.day_type == "SchoolDay"
    assert breakfast.template_key == "breakfast"


def test_expansion_is_idempotent(small_config):
    first = expand_day(MONDAY, small_config)
    second = expand_day("2025-09-08", small_config)
    assert first.events == second.events


def test_events_sorted_by_start_then_person(small_config):
    events = expand_day(MONDAY, small_config).events
    keys = [(e.start_ms, e.person_id) for e in events]
    assert keys == sorted(keys)


def test_household_profiles_expand_without_dangling(household):
    for day in (MONDAY, date(2025, 9, 6)):
        result = expand_day(day, household)
        assert result.events
        assert result.dangling == ()


def test_household_each_person_contiguous(household):
    result = expand_day(MONDAY, household)
    per_person = defaultdict(list)
    for e in result.events:
        per_person[e.person_id].append(e)
    for events in per_person.values():
        events.sort(key=lambda e: e.start_ms)
        for a, b in zip(events, events[1:]):
            assert a.end_ms == b.start_ms


def test_saturday_uses_off_day_profile(household, at):
    sat = date(2025, 9, 6)
    result = expand_day(sat, household)
    assert result.day_type == OFF_DAY
    titles = {e.title for e in result.events}
    assert "Skola" not in titles
    assert "Jobb" not in titles
    wake = next(e for e in result.events if e.template_key == "maria-wake")
    # Off-day mornings start an hour later.
    assert wake.start_ms == at("06:30", sat)


def test_evening_step_timed_by_tomorrows_day_type(household, at):
    friday = date(2025, 9, 12)
    result = expand_day(friday, household)
    assert result.tomorrow_type == OFF_DAY
    prep = next(e for e in result.events if e.template_key == "evening-prep-clothes")
    assert prep.start_ms == at("19:20", friday)

    thursday = date(2025, 9, 11)
    prep = next(e for e in expand_day(thursday, household).events if e.template_key == "evening-prep-clothes")
    assert prep.start_ms == at("19:00", thursday)


def test_fritids_day_keeps_gabriel_home(household):
    special = date(2025, 9, 10)
    config = household.__class__(
        people=household.people,
        rules=RuleSet(special_dates=frozenset({special})),
        profiles=household.profiles,
        timezone="UTC",
        fill=household.fill,
        resources=household.resources,
    )
    result = expand_day(special, config)
    assert result.day_type == FRITIDS_DAY
    assert not any(e.template_key == "gabriel-school" for e in result.events)
    lunch = next(e for e in result.events if e.template_key == "lunch-school")
    assert lunch.person_id == "leia"
    assert result.dangling == ()


def test_resolve_step_minutes_precedence():
    step = TemplateStep("x", "p", "X", at="19:00", offset_min=30, at_by_next_day_type={"OffDay": "19:30"},
                        cluster="evening")
    assert resolve_step_minutes(step, "OffDay") == 19 * 60 + 30
    assert resolve_step_minutes(step, "SchoolDay") == 19 * 60
    only_offset = TemplateStep("y", "p", "Y", offset_min=45)
    assert resolve_step_minutes(only_offset, None) == 45
    # The next-day mapping only applies to evening steps.
    morning = TemplateStep("z", "p", "Z", at="07:00", at_by_next_day_type={"OffDay": "08:00"})
    assert resolve_step_minutes(morning, "OffDay") == 7 * 60


def test_unresolvable_step_is_configuration_error():
    with pytest.raises(ConfigurationError):
        resolve_step_minutes(TemplateStep("x", "p", "X"), None)
    with pytest.raises(ConfigurationError):
        resolve_step_minutes(TemplateStep("x", "p", "X", at="7am"), None)


def test_duplicate_key_for_person_is_rejected():
    profile = DayProfile(
        "SchoolDay",
        "dup",
        (
            TemplateStep("a", "p", "A", at="07:00"),
            TemplateStep("a", "p", "A again", at="08:00"),
        ),
    )
    with pytest.raises(ConfigurationError):
        expand_profile_for_date(MONDAY, profile, None, tz=timezone.utc)


def test_two_steps_at_the_same_time_for_one_person_are_rejected():
    profile = DayProfile(
        "SchoolDay",
        "clash",
        (
            TemplateStep("prep", "p", "Prep", at="19:00", at_by_next_day_type={"OffDay": "19:30"},
                         cluster="evening"),
            TemplateStep("melatonin", "p", "Melatonin", at="19:30", cluster="evening"),
            TemplateStep("other", "q", "Other person", at="19:30"),
        ),
    )
    assert len(expand_profile_for_date(MONDAY, profile, "SchoolDay", tz=timezone.utc).events) == 3
    with pytest.raises(ConfigurationError, match="same time"):
        expand_profile_for_date(MONDAY, profile, "OffDay", tz=timezone.utc)


def test_household_weeks_have_no_empty_events(household):
    special = date(2025, 9, 10)
    fritids = household.__class__(
        people=household.people,
        rules=RuleSet(special_dates=frozenset({special})),
        profiles=household.profiles,
        timezone="UTC",
        fill=household.fill,
        resources=household.resources,
    )
    for config in (household, fritids):
        for offset in range(7):
            result = expand_day(MONDAY + timedelta(days=offset), config)
            assert all(e.end_ms > e.start_ms for e in result.events), result.day


def test_dangling_dependency_is_reported_and_logged(caplog):
    profile = DayProfile(
        "SchoolDay",
        "dangling",
        (TemplateStep("a", "p", "A", at="07:00", depends_on_keys=("missing", "a")),),
    )
    with caplog.at_level("WARNING"):
        result = expand_profile_for_date(MONDAY, profile, None, tz=timezone.utc)
    event = result.events[0]
    assert event.depends_on == ()
    missing = {d.missing_key for d in result.dangling}
    assert missing == {"missing", "a"}
    assert "dropping unresolved dependency" in caplog.text


def test_default_duration_for_last_step_without_durations(at):
    profile = DayProfile("SchoolDay", "x", (TemplateStep("a", "p", "A", at="07:00"),))
    result = expand_profile_for_date(MONDAY, profile, None, tz=timezone.utc, default_duration_min=7)
    assert result.events[0].end_ms == at("07:07")


def test_event_ids_are_stable():
    assert event_id_for("leia", "teeth", MONDAY) == "leia-teeth-2025-09-08"
