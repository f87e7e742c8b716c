from __future__ import annotations

"""Dataclass models for routine templates, rule sets and concrete events."""

from dataclasses import dataclass, field
from datetime import date
from typing import ClassVar, Literal, Mapping, Optional, Union

Role = Literal["required", "helper"]
EventSource = Literal["template", "manual"]


@dataclass(frozen=True, slots=True)
class Person:
    id: str
    name: str
    color: str = "#888888"
    emoji: str = ""


@dataclass(frozen=True, slots=True)
class Involvement:
    person_id: str
    role: Role = "required"


# --- Templates -------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class TemplateStep:
    key: str
    person_id: str
    title: str
    at: Optional[str] = None  # HH:MM
    offset_min: Optional[int] = None
    at_by_next_day_type: Mapping[str, str] = field(default_factory=dict)
    min_duration_min: Optional[int] = None
    best_duration_min: Optional[int] = None
    fixed_start: bool = False
    involved: tuple[Involvement, ...] = ()
    depends_on_keys: tuple[str, ...] = ()
    resource: Optional[str] = None
    location: Optional[str] = None
    cluster: Optional[str] = None
    allow_alone: bool = True


@dataclass(frozen=True, slots=True)
class DayProfile:
    id: str
    label: str
    steps: tuple[TemplateStep, ...]


@dataclass(frozen=True, slots=True)
class BreakRange:
    start: date  # inclusive
    end: date  # exclusive
    day_type: Optional[str] = None


@dataclass(frozen=True, slots=True)
class RuleSet:
    weekdays_school: frozenset[str] = frozenset({"MO", "TU", "WE", "TH", "FR"})
    weekdays_off: frozenset[str] = frozenset({"SA", "SU"})
    breaks: tuple[BreakRange, ...] = ()
    per_date_overrides: Mapping[date, str] = field(default_factory=dict)
    special_dates: frozenset[date] = frozenset()
    school_day_type: str = "SchoolDay"
    off_day_type: str = "OffDay"
    special_day_type: str = "FritidsDay"


# --- Concrete events --------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Event:
    """A real activity on a specific date (template-expanded or manual)."""

    synthetic: ClassVar[bool] = False

    id: str
    person_id: str
    title: str
    day: date
    start_ms: int
    end_ms: int
    min_duration_ms: Optional[int] = None
    best_duration_ms: Optional[int] = None
    fixed_start: bool = False
    depends_on: tuple[str, ...] = ()
    involved: tuple[Involvement, ...] = ()
    resource: Optional[str] = None
    location: Optional[str] = None
    cluster: Optional[str] = None
    completed_at_ms: Optional[int] = None
    image_ref: Optional[str] = None
    source: EventSource = "template"
    template_key: Optional[str] = None
    day_type: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None

    @property
    def duration_ms(self) -> int:
        return self.end_ms - self.start_ms

    def is_completed(self, now_ms: int) -> bool:
        return self.completed_at_ms is not None and self.completed_at_ms <= now_ms


@dataclass(frozen=True, slots=True)
class FillerEvent:
    """Placeholder covering idle time so the grid never shows a blank cell."""

    synthetic: ClassVar[bool] = True

    id: str
    person_id: str
    title: str
    day: date
    start_ms: int
    end_ms: int

    @property
    def duration_ms(self) -> int:
        return self.end_ms - self.start_ms


AnyEvent = Union[Event, FillerEvent]


@dataclass(frozen=True, slots=True)
class Override:
    start_ms: Optional[int] = None
    planned_ms: Optional[int] = None


@dataclass(frozen=True, slots=True)
class DanglingDependency:
    event_id: str
    missing_key: str


def is_ongoing(event: AnyEvent, at_ms: int) -> bool:
    return event.start_ms <= at_ms < event.end_ms


__all__ = [
    "Role",
    "EventSource",
    "Person",
    "Involvement",
    "TemplateStep",
    "DayProfile",
    "BreakRange",
    "RuleSet",
    "Event",
    "FillerEvent",
    "AnyEvent",
    "Override",
    "DanglingDependency",
    "is_ongoing",
]
