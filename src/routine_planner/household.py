"""Built-in household: people, weekday rules and the three day profiles."""

from dataclasses import replace

from .config import FillPolicy, PlannerConfig, validate_config
from .models import DayProfile, Involvement, Person, RuleSet, TemplateStep
from .timeutil import format_hhmm, parse_hhmm

SCHOOL_DAY = "SchoolDay"
OFF_DAY = "OffDay"
FRITIDS_DAY = "FritidsDay"

PEOPLE = (
    Person(id="maria", name="Maria", color="#C9A7FF", emoji="👩"),
    Person(id="leia", name="Leia", color="#F28CB2", emoji="👧"),
    Person(id="gabriel", name="Gabriel", color="#5B9BFF", emoji="🧒"),
    Person(id="antony", name="Antony", color="#8AE68C", emoji="👨‍🦱"),
)

RESOURCES = {"car": 1, "bathroom": 1}


def _req(*person_ids: str) -> tuple[Involvement, ...]:
    return tuple(Involvement(p, "required") for p in person_ids)


def _helper(person_id: str) -> Involvement:
    return Involvement(person_id, "helper")


SCHOOL_DAY_STEPS: tuple[TemplateStep, ...] = (
    # Evening before: preparations
    TemplateStep("evening-prep-clothes", "maria", "Lägga fram kläder", at="19:00", min_duration_min=10,
                 at_by_next_day_type={OFF_DAY: "19:20"}, cluster="evening", location="home"),
    TemplateStep("evening-snack", "antony", "Kvällsfika", at="19:15", min_duration_min=10,
                 involved=_req("leia", "gabriel"), cluster="evening", location="home", resource="kitchen"),
    TemplateStep("evening-melatonin", "maria", "Melatonin", at="19:30", min_duration_min=2,
                 depends_on_keys=("evening-snack",), involved=_req("leia", "gabriel"),
                 cluster="evening", location="home"),
    TemplateStep("evening-teeth-leia", "maria", "Tandborstning Leia (kväll)", at="20:00",
                 min_duration_min=3, best_duration_min=5, depends_on_keys=("evening-melatonin",),
                 involved=_req("leia"), allow_alone=False, cluster="evening", location="home",
                 resource="bathroom"),
    TemplateStep("evening-teeth-gabriel", "antony", "Tandborstning Gabriel (kväll)", at="20:00",
                 min_duration_min=3, best_duration_min=5, depends_on_keys=("evening-melatonin",),
                 involved=_req("gabriel"), allow_alone=False, cluster="evening", location="home",
                 resource="bathroom"),
    TemplateStep("evening-bedtime-leia", "maria", "Nattning Leia", at="20:15", min_duration_min=10,
                 best_duration_min=15, depends_on_keys=("evening-teeth-leia",), involved=_req("leia"),
                 cluster="evening", location="home"),
    TemplateStep("evening-bedtime-gabriel", "antony", "Nattning Gabriel", at="20:30", min_duration_min=10,
                 best_duration_min=15, depends_on_keys=("evening-teeth-gabriel",), involved=_req("gabriel"),
                 cluster="evening", location="home"),
    # Sleep
    TemplateStep("sleep-antony", "antony", "Sover", at="22:00", min_duration_min=480, cluster="evening",
                 location="home"),
    TemplateStep("sleep-maria", "maria", "Sover", at="22:00", min_duration_min=450, cluster="evening",
                 location="home"),
    TemplateStep("sleep-leia", "leia", "Sover", at="20:30", min_duration_min=600,
                 depends_on_keys=("evening-bedtime-leia",), location="home"),
    TemplateStep("sleep-gabriel", "gabriel", "Sover", at="20:45", min_duration_min=585,
                 depends_on_keys=("evening-bedtime-gabriel",), location="home"),
    # Morning
    TemplateStep("maria-wake", "maria", "Vakna & Gör dig klar", at="05:30", min_duration_min=30,
                 cluster="morning", location="home", resource="bathroom", depends_on_keys=("sleep-maria",)),
    TemplateStep("antony-wake", "antony", "Vakna & Kaffe", at="06:00", min_duration_min=15,
                 cluster="morning", location="home", resource="kitchen", depends_on_keys=("sleep-antony",)),
    TemplateStep("antony-teeth-kitchen", "antony", "Tänder & plocka kök", at="06:15", min_duration_min=15,
                 depends_on_keys=("antony-wake",), cluster="morning", location="home"),
    TemplateStep("gabriel-wake", "antony", "Väck Gabriel", at="06:30", min_duration_min=5,
                 cluster="morning", location="home", involved=_req("gabriel"),
                 depends_on_keys=("sleep-gabriel",)),
    TemplateStep("gabriel-breakfast", "gabriel", "Frukost", at="06:35", min_duration_min=10,
                 best_duration_min=15, depends_on_keys=("gabriel-wake",), cluster="morning",
                 location="home", resource="kitchen"),
    TemplateStep("leia-wake", "maria", "Väck Leia", at="06:45", min_duration_min=5, cluster="morning",
                 location="home", involved=_req("leia"), depends_on_keys=("sleep-leia",)),
    TemplateStep("leia-breakfast", "leia", "Frukost", at="06:50", min_duration_min=15, best_duration_min=20,
                 depends_on_keys=("leia-wake",), cluster="morning", location="home", resource="kitchen"),
    TemplateStep("vitamins-gabriel", "antony", "Vitaminer Gabriel", at="07:00", min_duration_min=2,
                 depends_on_keys=("gabriel-breakfast",), cluster="morning", location="home",
                 involved=_req("gabriel")),
    TemplateStep("vitamins-leia", "antony", "Vitaminer Leia", at="07:10", min_duration_min=2,
                 depends_on_keys=("leia-breakfast",), cluster="morning", location="home",
                 involved=_req("leia")),
    TemplateStep("gabriel-clothes", "gabriel", "Klä på sig", at="07:02", min_duration_min=8,
                 best_duration_min=10, depends_on_keys=("vitamins-gabriel",), cluster="morning",
                 location="home"),
    TemplateStep("leia-clothes", "leia", "Klä på sig", at="07:12", min_duration_min=8, best_duration_min=10,
                 depends_on_keys=("vitamins-leia",), cluster="morning", location="home"),
    TemplateStep("leia-hair", "maria", "Fixa Leias hår", at="07:30", min_duration_min=10, best_duration_min=10,
                 depends_on_keys=("leia-clothes",), involved=_req("leia"), cluster="morning",
                 location="home"),
    TemplateStep("gabriel-teeth", "gabriel", "Borsta tänder", at="07:20", min_duration_min=3,
                 best_duration_min=5, depends_on_keys=("gabriel-clothes",), cluster="morning",
                 location="home", resource="bathroom"),
    TemplateStep("leia-teeth", "leia", "Borsta tänder", at="07:40", min_duration_min=3, best_duration_min=5,
                 depends_on_keys=("leia-hair",), cluster="morning", location="home", resource="bathroom"),
    TemplateStep("gabriel-departure", "gabriel", "Avfärd skola", at="07:40", min_duration_min=10,
                 depends_on_keys=("gabriel-teeth",), cluster="day", location="home"),
    TemplateStep("antony-leia-departure", "antony", "Lämna Leia på skolan", at="07:50", min_duration_min=10,
                 depends_on_keys=("leia-teeth", "gabriel-departure"), involved=_req("leia"),
                 cluster="day", location="home", resource="car"),
    TemplateStep("leia-school-transport", "leia", "Åker till skolan", at="07:50", min_duration_min=10,
                 depends_on_keys=("antony-leia-departure",), involved=_req("antony"), cluster="day",
                 location="home", resource="car"),
    TemplateStep("maria-work-departure", "maria", "Åka till jobbet", at="07:50", min_duration_min=25,
                 depends_on_keys=("leia-hair",), cluster="day", location="home", resource="car"),
    # Daytime
    TemplateStep("gabriel-school", "gabriel", "Skola", at="08:00", min_duration_min=420, fixed_start=True,
                 depends_on_keys=("gabriel-departure",), location="school"),
    TemplateStep("leia-school", "leia", "Skola", at="08:00", min_duration_min=420, fixed_start=True,
                 depends_on_keys=("leia-school-transport",), location="school"),
    TemplateStep("lunch-school", "gabriel", "Lunch (Skolan)", at="12:00", min_duration_min=30,
                 location="school", depends_on_keys=("gabriel-school",), involved=_req("leia")),
    TemplateStep("gabriel-meds-school", "gabriel", "Medicin (Skolan)", at="12:30", min_duration_min=5,
                 location="school", depends_on_keys=("lunch-school",)),
    TemplateStep("fika-school", "gabriel", "Fika (Skolan)", at="15:00", min_duration_min=20,
                 location="school", depends_on_keys=("gabriel-school",), involved=_req("leia")),
    TemplateStep("maria-work", "maria", "Jobb", at="08:15", min_duration_min=480,
                 depends_on_keys=("maria-work-departure",), location="work"),
    TemplateStep("antony-work", "antony", "Jobb (hemma)", at="08:00", min_duration_min=420,
                 depends_on_keys=("antony-leia-departure",), location="home"),
    TemplateStep("leia-pickup", "antony", "Hämta Leia", at="15:00", min_duration_min=30, location="school",
                 resource="car", involved=_req("leia")),
)


def _shift(hhmm: str, hours: int) -> str:
    return format_hhmm(parse_hhmm(hhmm) + hours * 60)


def _is_work_or_school(step: TemplateStep) -> bool:
    title = step.title.lower()
    return "jobb" in title or "skola" in title or step.location == "school"


def off_day_steps() -> tuple[TemplateStep, ...]:
    """School-day routine one hour later, without work and school items.

    ``at_by_next_day_type`` times are kept as they are.
    """
    shifted = tuple(
        replace(step, at=_shift(step.at, 1)) if step.at else step
        for step in SCHOOL_DAY_STEPS
        if not _is_work_or_school(step)
    )
    return shifted + (
        TemplateStep("lunch-home", "antony", "Lunch", at="13:00", min_duration_min=30, location="home",
                     involved=(_helper("maria"),) + _req("gabriel", "leia")),
        TemplateStep("gabriel-meds-12", "maria", "Medicin Gabriel (12:00)", at="13:30", min_duration_min=5,
                     location="home", depends_on_keys=("lunch-home",), involved=_req("antony", "gabriel")),
        TemplateStep("fika-home", "antony", "Fika", at="16:00", min_duration_min=20, location="home",
                     involved=(_helper("maria"),) + _req("gabriel", "leia")),
        TemplateStep("gabriel-meds-15", "antony", "Medicin Gabriel (15:00)", at="16:20", min_duration_min=5,
                     location="home", depends_on_keys=("fika-home",), involved=_req("gabriel")),
    )


def fritids_day_steps() -> tuple[TemplateStep, ...]:
    """School day for Leia while Gabriel stays home."""
    dropped = {"gabriel-school", "gabriel-departure", "gabriel-meds-school"}
    steps: list[TemplateStep] = []
    for step in SCHOOL_DAY_STEPS:
        if step.key in dropped:
            continue
        if step.key in ("lunch-school", "fika-school"):
            step = replace(step, person_id="leia", involved=(), depends_on_keys=("leia-school",))
        elif step.key in ("antony-leia-departure", "leia-school-transport"):
            step = replace(
                step,
                depends_on_keys=tuple(k for k in step.depends_on_keys if k != "gabriel-departure"),
            )
        steps.append(step)
    return tuple(steps) + (
        TemplateStep("lunch-gabriel-home", "antony", "Lunch Gabriel", at="12:00", min_duration_min=30,
                     location="home", involved=_req("gabriel") + (_helper("maria"),)),
        TemplateStep("gabriel-meds-12-fritids", "maria", "Medicin Gabriel (12:00)", at="12:30",
                     min_duration_min=5, location="home", depends_on_keys=("lunch-gabriel-home",),
                     involved=_req("antony", "gabriel")),
        TemplateStep("fika-gabriel-home", "antony", "Fika Gabriel", at="14:30", min_duration_min=20,
                     location="home", involved=_req("gabriel")),
        TemplateStep("gabriel-meds-15-fritids", "antony", "Medicin Gabriel (15:00)", at="14:50",
                     min_duration_min=5, location="home", depends_on_keys=("fika-gabriel-home",),
                     involved=_req("gabriel")),
    )


def default_profiles() -> dict[str, DayProfile]:
    return {
        SCHOOL_DAY: DayProfile(SCHOOL_DAY, "Skoldag", SCHOOL_DAY_STEPS),
        OFF_DAY: DayProfile(OFF_DAY, "Ledig dag", off_day_steps()),
        FRITIDS_DAY: DayProfile(FRITIDS_DAY, "Fritidsdag", fritids_day_steps()),
    }


def default_config(timezone: str = "Europe/Stockholm", rules: RuleSet | None = None) -> PlannerConfig:
    return validate_config(
        PlannerConfig(
            people=PEOPLE,
            rules=rules or RuleSet(),
            profiles=default_profiles(),
            timezone=timezone,
            fill=FillPolicy(night_title="Sover", day_title="Tillgänglig"),
            resources=dict(RESOURCES),
        )
    )


__all__ = [
    "SCHOOL_DAY",
    "OFF_DAY",
    "FRITIDS_DAY",
    "PEOPLE",
    "RESOURCES",
    "SCHOOL_DAY_STEPS",
    "off_day_steps",
    "fritids_day_steps",
    "default_profiles",
    "default_config",
]
