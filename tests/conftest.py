from datetime import date, timezone
from pathlib import Path
import os
import sys
import pytest

# Run Qt headless when no display is available
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

# Ensure src/ is on sys.path for direct test invocation without an editable install
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from routine_planner.config import PlannerConfig, validate_config
from routine_planner.household import default_config
from routine_planner.models import DayProfile, Person, RuleSet, TemplateStep
from routine_planner.timeutil import parse_hhmm, wall_clock_ms

MONDAY = date(2025, 9, 8)
SATURDAY = date(2025, 9, 6)


@pytest.fixture()
def at():
    """Epoch ms for an HH:MM wall-clock time (UTC), on MONDAY unless told otherwise."""

    def _at(hhmm: str, day: date = MONDAY) -> int:
        return wall_clock_ms(day, parse_hhmm(hhmm), timezone.utc)

    return _at


@pytest.fixture()
def household() -> PlannerConfig:
    return default_config(timezone="UTC")


@pytest.fixture()
def small_config() -> PlannerConfig:
    """Leia's morning plus one parent; every number chosen so the arithmetic is easy to follow."""
    people = (
        Person(id="leia", name="Leia"),
        Person(id="maria", name="Maria"),
    )
    school = DayProfile(
        "SchoolDay",
        "School day",
        (
            TemplateStep("teeth", "leia", "Brush teeth", at="07:08", min_duration_min=2),
            TemplateStep("breakfast", "leia", "Breakfast", at="07:16", min_duration_min=10,
                         depends_on_keys=("wake",)),
            TemplateStep("vitamins", "leia", "Vitamins", at="07:32", min_duration_min=1, best_duration_min=1),
            TemplateStep("wake", "maria", "Wake Leia", at="07:00", min_duration_min=5),
            TemplateStep("hair", "maria", "Fix Leia's hair", at="07:05", min_duration_min=10,
                         best_duration_min=15),
        ),
    )
    off = DayProfile(
        "OffDay",
        "Off day",
        (TemplateStep("sleep-in", "leia", "Sleep in", at="09:00", min_duration_min=30),),
    )
    return validate_config(
        PlannerConfig(
            people=people,
            rules=RuleSet(),
            profiles={"SchoolDay": school, "OffDay": off},
            timezone="UTC",
        )
    )
