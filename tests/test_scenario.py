from pathlib import Path

import pytest

from date_slicer.scenario import Scenario, ScenarioRunner, load_scenario

SCENARIO_DIR = Path(__file__).resolve().parents[1] / "scenarios"


@pytest.fixture
def results():
    return ScenarioRunner(load_scenario(SCENARIO_DIR / "clear_all.json")).run()


def _sel(r):
    return (r.selection["from"][:10], r.selection["to"][:10]) if r.selection else None


def test_replay_matches_expected_rules(results):
    ticks = {r.index: r for r in results if r.action in ("tick", "change")}
    expected = {
        1: ("bounds_changed", True),
        2: ("idle", False),
        3: ("local_change", True),
        4: ("idle", False),
        7: ("external_adopted", False),
        9: ("clear_all", True),
        10: ("idle", False),
        12: ("snapshot_restore", True),
        13: ("idle", False),
    }
    assert {i: (r.rule, r.wrote) for i, r in ticks.items()} == expected


def test_replay_selections(results):
    by_index = {r.index: r for r in results}
    assert _sel(by_index[1]) == ("2024-03-08", "2024-03-15")
    assert _sel(by_index[3]) == ("2024-02-01", "2024-02-10")
    assert _sel(by_index[7]) == ("2024-03-01", "2024-03-05")
    assert _sel(by_index[9]) == ("2024-03-08", "2024-03-15")
    assert _sel(by_index[12]) == ("2024-03-19", "2024-03-19")
    assert by_index[13].phase == "idle"


def test_capture_after_manual_change_has_no_preset(results):
    assert results[4].action == "capture"
    assert results[4].blob == {"presetId": None, "isClearSelection": False}


def test_unknown_action_is_rejected():
    with pytest.raises(ValueError):
        Scenario.model_validate(
            {"min": "2024-01-01", "max": "2024-01-31", "now": "2024-01-15", "steps": [{"action": "explode"}]}
        )


def test_set_preset_and_bounds_steps():
    scenario = Scenario.model_validate(
        {
            "min": "2024-01-01",
            "max": "2024-01-31",
            "now": "2024-01-15T12:00:00",
            "steps": [
                {"action": "tick"},
                {"action": "set_preset", "preset": "today", "ms": 50},
                {"action": "tick"},
                {"action": "set_bounds", "from": "2024-01-10", "to": "2024-01-12", "ms": 1000},
                {"action": "tick"},
            ],
        }
    )
    results = ScenarioRunner(scenario).run()
    assert results[0].rule == "bounds_changed" and not results[0].wrote
    assert results[2].rule == "preset_changed"
    assert _sel(results[2]) == ("2024-01-15", "2024-01-15")
    assert results[4].rule == "bounds_changed"
    assert _sel(results[4]) == ("2024-01-12", "2024-01-12")
