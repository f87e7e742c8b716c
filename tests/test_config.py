import json
from dataclasses import replace
from datetime import date, timezone
from pathlib import Path

import pytest

from routine_planner.config import config_from_dict, load_config, validate_config
from routine_planner.errors import ConfigurationError
from routine_planner.models import DayProfile, Involvement, TemplateStep


def _raw():
    return {
        "timezone": "UTC",
        "people": [{"id": "leia", "name": "Leia"}, {"id": "maria", "name": "Maria"}],
        "rules": {
            "breaks": [{"start": "2025-10-27", "end": "2025-11-03"}],
            "per_date_overrides": {"2025-09-06": "SchoolDay"},
        },
        "resources": {"bathroom": 1},
        "fill": {"night_title": "Sover", "day_title": "Tillgänglig"},
        "profiles": [
            {
                "id": "SchoolDay",
                "steps": [
                    {"key": "teeth", "person_id": "leia", "title": "Teeth", "at": "07:00",
                     "min_duration_min": 2, "resource": "bathroom"},
                    {"key": "hair", "person_id": "maria", "title": "Hair", "at": "07:05",
                     "involved": [{"person_id": "leia"}], "depends_on_keys": ["teeth"]},
                ],
            },
            {"id": "OffDay", "steps": []},
        ],
    }


def test_config_from_dict_roundtrip_fields():
    config = config_from_dict(_raw())
    assert config.tz is timezone.utc
    assert [p.id for p in config.people] == ["leia", "maria"]
    assert config.rules.per_date_overrides == {date(2025, 9, 6): "SchoolDay"}
    assert config.rules.breaks[0].end == date(2025, 11, 3)
    assert config.fill.night_title == "Sover"
    hair = config.profile("SchoolDay").steps[1]
    assert hair.involved[0].role == "required"
    assert hair.depends_on_keys == ("teeth",)


def test_load_config_from_file(tmp_path: Path, caplog):
    path = tmp_path / "planner.json"
    path.write_text(json.dumps(_raw()), encoding="utf-8")
    with caplog.at_level("INFO"):
        config = load_config(path)
    assert set(config.profiles) == {"SchoolDay", "OffDay"}
    assert "config loaded" in caplog.text


def test_invalid_json_is_configuration_error(tmp_path: Path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_config(path)


def test_missing_step_field():
    raw = _raw()
    del raw["profiles"][0]["steps"][0]["title"]
    with pytest.raises(ConfigurationError):
        config_from_dict(raw)


@pytest.mark.parametrize(
    "mutate",
    [
        lambda r: r["people"].append({"id": "leia"}),
        lambda r: r["profiles"][0]["steps"].append({"key": "teeth", "person_id": "leia", "title": "x", "at": "08:00"}),
        lambda r: r["profiles"][0]["steps"].append({"key": "x", "person_id": "ghost", "title": "x", "at": "08:00"}),
        lambda r: r["profiles"][0]["steps"].append({"key": "x", "person_id": "leia", "title": "x"}),
        lambda r: r["profiles"][0]["steps"].append({"key": "x", "person_id": "leia", "title": "x", "at": "25:99"}),
        lambda r: r["profiles"].pop(),
        lambda r: r["rules"].update({"weekdays_school": ["MON"]}),
        lambda r: r.update({"timezone": "Mars/Olympus"}),
        lambda r: r.update({"resources": {"car": 0}}),
        lambda r: r.update({"unbounded_slack_ratio": 1.5}),
    ],
)
def test_validation_rejects_bad_configs(mutate):
    raw = _raw()
    mutate(raw)
    with pytest.raises(ConfigurationError):
        config_from_dict(raw)


def test_missing_profile_lookup(household):
    with pytest.raises(ConfigurationError):
        household.profile("HolidayDay")


def test_household_is_valid(household):
    assert validate_config(household) is household
    assert household.resources == {"car": 1, "bathroom": 1}


def test_profile_id_mismatch(household):
    bad = replace(household, profiles={**household.profiles, "OffDay": DayProfile("Other", "x", ())})
    with pytest.raises(ConfigurationError):
        validate_config(bad)


def test_involved_role_must_be_known(small_config):
    step = TemplateStep("x", "leia", "X", at="09:00", involved=(Involvement("maria", "boss"),))
    profile = small_config.profiles["OffDay"]
    bad = replace(
        small_config,
        profiles={**small_config.profiles, "OffDay": replace(profile, steps=profile.steps + (step,))},
    )
    with pytest.raises(ConfigurationError):
        validate_config(bad)
