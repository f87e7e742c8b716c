from __future__ import annotations

"""Planner configuration: household, rule set and day profiles.

The configuration is an explicit object handed to every operation that needs
it; nothing is read from module-level state. ``validate_config`` catches the
mistakes that would otherwise surface in the middle of an expansion
(duplicate step keys, unresolvable times, unknown people or day-types).

``config_from_dict`` / ``load_config`` accept the same structure as JSON, with
snake_case keys mirroring the dataclass fields.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import date, tzinfo
from pathlib import Path
from typing import Any, Mapping

from .errors import ConfigurationError
from .models import (
    BreakRange,
    DayProfile,
    Involvement,
    Person,
    RuleSet,
    TemplateStep,
)
from .timeutil import WEEKDAY_CODES, parse_hhmm, resolve_tz

_log = logging.getLogger(__name__)

DEFAULT_DURATION_MIN = 10


@dataclass(frozen=True, slots=True)
class FillPolicy:
    night_title: str = "Sleeping"
    day_title: str = "Available"
    night_starts_hour: int = 22
    night_ends_hour: int = 6


@dataclass(frozen=True, slots=True)
class PlannerConfig:
    people: tuple[Person, ...]
    rules: RuleSet
    profiles: Mapping[str, DayProfile]
    timezone: str = "UTC"
    default_duration_min: int = DEFAULT_DURATION_MIN
    fill: FillPolicy = field(default_factory=FillPolicy)
    resources: Mapping[str, int] = field(default_factory=dict)
    unbounded_slack_ratio: float = 0.5

    @property
    def tz(self) -> tzinfo:
        return resolve_tz(self.timezone)

    def person(self, person_id: str) -> Person | None:
        return next((p for p in self.people if p.id == person_id), None)

    def profile(self, day_type: str) -> DayProfile:
        try:
            return self.profiles[day_type]
        except KeyError:
            raise ConfigurationError(f"no day profile for day-type {day_type!r}") from None


# --- Validation -------------------------------------------------------------

def _validate_step(profile_id: str, step: TemplateStep, person_ids: set[str]) -> None:
    where = f"{profile_id}/{step.person_id}/{step.key}"
    if step.person_id not in person_ids:
        raise ConfigurationError(f"{where}: unknown person {step.person_id!r}")
    for inv in step.involved:
        if inv.person_id not in person_ids:
            raise ConfigurationError(f"{where}: unknown involved person {inv.person_id!r}")
        if inv.role not in ("required", "helper"):
            raise ConfigurationError(f"{where}: invalid role {inv.role!r}")
    if step.at is None and step.offset_min is None:
        raise ConfigurationError(f"{where}: step has neither a time nor an offset")
    times = [step.at] if step.at is not None else []
    times.extend(step.at_by_next_day_type.values())
    for hhmm in times:
        try:
            parse_hhmm(hhmm)
        except ValueError as e:
            raise ConfigurationError(f"{where}: {e}") from None
    if step.offset_min is not None and step.offset_min < 0:
        raise ConfigurationError(f"{where}: negative offset")
    for value in (step.min_duration_min, step.best_duration_min):
        if value is not None and value < 0:
            raise ConfigurationError(f"{where}: negative duration")


def validate_config(config: PlannerConfig) -> PlannerConfig:
    person_ids = [p.id for p in config.people]
    if len(set(person_ids)) != len(person_ids):
        raise ConfigurationError("duplicate person ids")
    known = set(person_ids)
    for profile_id, profile in config.profiles.items():
        if profile.id != profile_id:
            raise ConfigurationError(f"profile registered as {profile_id!r} has id {profile.id!r}")
        seen: set[tuple[str, str]] = set()
        for step in profile.steps:
            ident = (step.person_id, step.key)
            if ident in seen:
                raise ConfigurationError(
                    f"{profile_id}: duplicate key {step.key!r} for person {step.person_id!r}"
                )
            seen.add(ident)
            _validate_step(profile_id, step, known)

    rules = config.rules
    for code in rules.weekdays_school | rules.weekdays_off:
        if code not in WEEKDAY_CODES:
            raise ConfigurationError(f"unknown weekday code {code!r}")
    if config.profiles:
        referenced = {rules.school_day_type, rules.off_day_type}
        if rules.special_dates:
            referenced.add(rules.special_day_type)
        referenced.update(rules.per_date_overrides.values())
        referenced.update(br.day_type for br in rules.breaks if br.day_type)
        missing = sorted(t for t in referenced if t not in config.profiles)
        if missing:
            raise ConfigurationError(f"rule set references unknown day-types: {missing}")
    for br in rules.breaks:
        if br.end < br.start:
            raise ConfigurationError(f"break range ends before it starts: {br.start}..{br.end}")

    for tag, capacity in config.resources.items():
        if capacity < 1:
            raise ConfigurationError(f"resource {tag!r} needs a capacity of at least 1")
    if not (0.0 <= config.unbounded_slack_ratio <= 1.0):
        raise ConfigurationError("unbounded_slack_ratio must be within 0..1")
    if config.default_duration_min <= 0:
        raise ConfigurationError("default_duration_min must be positive")
    try:
        config.tz
    except Exception as e:  # ZoneInfoNotFoundError, ValueError
        raise ConfigurationError(f"unknown timezone {config.timezone!r}") from e
    return config


# --- Loading ----------------------------------------------------------------

def _step_from_dict(raw: Mapping[str, Any]) -> TemplateStep:
    try:
        return TemplateStep(
            key=raw["key"],
            person_id=raw["person_id"],
            title=raw["title"],
            at=raw.get("at"),
            offset_min=raw.get("offset_min"),
            at_by_next_day_type=dict(raw.get("at_by_next_day_type") or {}),
            min_duration_min=raw.get("min_duration_min"),
            best_duration_min=raw.get("best_duration_min"),
            fixed_start=bool(raw.get("fixed_start", False)),
            involved=tuple(
                Involvement(person_id=i["person_id"], role=i.get("role", "required"))
                for i in raw.get("involved") or []
            ),
            depends_on_keys=tuple(raw.get("depends_on_keys") or ()),
            resource=raw.get("resource"),
            location=raw.get("location"),
            cluster=raw.get("cluster"),
            allow_alone=bool(raw.get("allow_alone", True)),
        )
    except KeyError as e:
        raise ConfigurationError(f"template step missing field {e.args[0]!r}: {dict(raw)}") from None


def _rules_from_dict(raw: Mapping[str, Any]) -> RuleSet:
    defaults = RuleSet()
    return RuleSet(
        weekdays_school=frozenset(raw.get("weekdays_school", defaults.weekdays_school)),
        weekdays_off=frozenset(raw.get("weekdays_off", defaults.weekdays_off)),
        breaks=tuple(
            BreakRange(
                start=date.fromisoformat(b["start"]),
                end=date.fromisoformat(b["end"]),
                day_type=b.get("day_type"),
            )
            for b in raw.get("breaks") or []
        ),
        per_date_overrides={
            date.fromisoformat(k): v for k, v in (raw.get("per_date_overrides") or {}).items()
        },
        special_dates=frozenset(date.fromisoformat(d) for d in raw.get("special_dates") or []),
        school_day_type=raw.get("school_day_type", defaults.school_day_type),
        off_day_type=raw.get("off_day_type", defaults.off_day_type),
        special_day_type=raw.get("special_day_type", defaults.special_day_type),
    )


def config_from_dict(data: Mapping[str, Any]) -> PlannerConfig:
    profiles: dict[str, DayProfile] = {}
    for raw in data.get("profiles") or []:
        profile = DayProfile(
            id=raw["id"],
            label=raw.get("label", raw["id"]),
            steps=tuple(_step_from_dict(s) for s in raw.get("steps") or []),
        )
        if profile.id in profiles:
            raise ConfigurationError(f"duplicate profile {profile.id!r}")
        profiles[profile.id] = profile
    config = PlannerConfig(
        people=tuple(
            Person(id=p["id"], name=p.get("name", p["id"]), color=p.get("color", "#888888"), emoji=p.get("emoji", ""))
            for p in data.get("people") or []
        ),
        rules=_rules_from_dict(data.get("rules") or {}),
        profiles=profiles,
        timezone=data.get("timezone", "UTC"),
        default_duration_min=int(data.get("default_duration_min", DEFAULT_DURATION_MIN)),
        fill=FillPolicy(**(data.get("fill") or {})),
        resources={k: int(v) for k, v in (data.get("resources") or {}).items()},
        unbounded_slack_ratio=float(data.get("unbounded_slack_ratio", 0.5)),
    )
    return validate_config(config)


def load_config(path: Path) -> PlannerConfig:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"{path}: invalid JSON ({e})") from e
    config = config_from_dict(data)
    _log.info(
        "config loaded",
        extra={"_json_path": str(path), "_json_profiles": sorted(config.profiles)},
    )
    return config


__all__ = [
    "DEFAULT_DURATION_MIN",
    "FillPolicy",
    "PlannerConfig",
    "validate_config",
    "config_from_dict",
    "load_config",
]
