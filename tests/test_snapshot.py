from __future__ import annotations

import json

import pytest

from farmsim.config import SimulationConfig
from farmsim.game_data import default_game_data
from farmsim.runtime.snapshot import (
    SNAPSHOT_SCHEMA_VERSION,
    SnapshotError,
    from_snapshot_dict,
    restore_processes,
    restore_state,
    snapshot_state,
    state_signature,
)
from farmsim.simulation.engine import SimulationEngine
from farmsim.state import Gnome, new_game_state


def _make_state():
    state = new_game_state(seeds={"carrot": 4, "beet": 1}, materials={"wood": 3}, upgrades=["water_tank_1"])
    state.progression.completed_milestones.add("adventure:meadow_path")
    state.inventory.add_item("tool", "pickaxe")
    state.inventory.blueprints.add("blueprint_gnome_hut")
    state.helpers.gnomes["gnome_1"] = Gnome("gnome_1", "Pip", role="waterer")
    state.farm.plots["plot_1"].crop_id = "carrot"
    state.farm.plots["plot_1"].water_level = 42.5
    state.location.screen_history.append("town")
    return state


def test_snapshot_round_trip_restores_an_equal_state():
    state = _make_state()

    payload = snapshot_state(state)
    restored = restore_state(json.loads(json.dumps(payload)))

    assert restored == state
    assert isinstance(restored.progression.unlocked_upgrades, set)
    assert restored.resources.seeds.get("carrot") == 4
    assert restored.inventory.tools["pickaxe"].equipped


def test_signature_is_stable_and_sensitive():
    state = _make_state()
    signature = state_signature(state)

    assert state_signature(_make_state()) == signature
    state.resources.seeds.add("carrot", 1)
    assert state_signature(state) != signature


def test_wrong_schema_is_rejected():
    payload = snapshot_state(_make_state())
    payload["schema_version"] = "something_else"

    with pytest.raises(SnapshotError):
        restore_state(payload)


def test_foreign_types_are_refused():
    with pytest.raises(SnapshotError):
        from_snapshot_dict({"__type__": "os.path.join", "data": {}})


def test_snapshot_schema_marker():
    assert snapshot_state(new_game_state())["schema_version"] == SNAPSHOT_SCHEMA_VERSION


def test_running_processes_and_rolls_survive_a_snapshot():
    game_data = default_game_data()
    engine = SimulationEngine(SimulationConfig(), game_data, state=new_game_state(seeds={"carrot": 2}))
    process = engine.processes.start_process("crop_growth", {"crop": "carrot"}, engine.state, game_data)
    engine.processes.tick(10, engine.state, game_data)
    roll = engine.rolls.get_roll("pine_vale", "Long")

    payload = json.loads(json.dumps(engine.snapshot()))
    resumed = SimulationEngine.from_snapshot(payload, SimulationConfig(), game_data)

    restored = resumed.processes.get(process.process_id)
    assert restored is not None
    assert restored.progress == pytest.approx(10.0)
    assert not resumed.state.processes.is_free(process.slot_ref)
    assert resumed.rolls.get_roll("pine_vale", "Long") == roll
    result = resumed.processes.tick(20, resumed.state, game_data)
    assert [done.process_id for done in result.completed] == [process.process_id]
    assert resumed.state.farm.plots[process.slot_ref].ready


def test_state_only_payload_restores_no_processes():
    assert restore_processes(snapshot_state(new_game_state())) == []
