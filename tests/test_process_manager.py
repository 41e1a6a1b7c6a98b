from __future__ import annotations

import pytest

from farmsim.admin_log import PROCESS_REFUSED, AdminEventLog
from farmsim.game_data import default_game_data
from farmsim.processes.base import ProcessConfig, ProcessKind, ProcessStatus
from farmsim.processes.handlers import CraftingHandler
from farmsim.processes.manager import ProcessManager
from farmsim.runtime.route_rolls import RouteRollCache
from farmsim.state import Gnome, new_game_state


def _make_state(**kwargs):
    kwargs.setdefault("debris_plots", ("weeds",))
    kwargs.setdefault("seeds", {"carrot": 5, "potato": 5})
    return new_game_state(**kwargs)


def _make_manager(**kwargs) -> ProcessManager:
    return ProcessManager(**kwargs)


class BrokenCraftingHandler(CraftingHandler):
    def complete(self, process, state, game_data):
        raise RuntimeError("anvil cracked")


def test_shorter_process_completes_while_longer_keeps_progress():
    manager = _make_manager()
    game_data = default_game_data()
    state = _make_state()

    carrot = manager.start_process(ProcessKind.CROP_GROWTH, {"crop": "carrot"}, state, game_data)
    potato = manager.start_process("crop_growth", {"crop": "potato"}, state, game_data)
    assert carrot is not None and potato is not None
    assert (carrot.slot_ref, potato.slot_ref) == ("plot_1", "plot_2")

    result = manager.tick(30, state, game_data)

    assert result.completed == [carrot]
    assert result.failed == []
    assert carrot.status is ProcessStatus.COMPLETED
    assert manager.get(carrot.process_id) is None
    remaining = manager.get(potato.process_id)
    assert remaining is not None
    assert remaining.progress == pytest.approx(30.0)
    assert remaining.fraction == pytest.approx(0.5)
    assert state.farm.plots["plot_1"].ready
    assert not state.farm.plots["plot_2"].ready
    assert state.processes.is_free("plot_1")
    assert not state.processes.is_free("plot_2")
    assert [event.type for event in result.events] == ["crop_ready"]


def test_zero_elapsed_changes_nothing():
    manager = _make_manager()
    state = _make_state()
    process = manager.start_process("crop_growth", {"crop": "carrot"}, state, default_game_data())

    result = manager.tick(0, state)

    assert result.resolved == 0
    assert process.progress == 0.0


def test_occupied_and_locked_plots_are_refused():
    log = AdminEventLog()
    manager = _make_manager(log=log)
    game_data = default_game_data()
    state = _make_state()
    manager.start_process("crop_growth", {"crop": "carrot", "plot": "plot_1"}, state, game_data)

    occupied = manager.start_process("crop_growth", {"crop": "potato", "plot": "plot_1"}, state, game_data)
    assert occupied is None
    assert "occupied" in manager.last_refusal

    locked = manager.start_process("crop_growth", {"crop": "carrot", "plot": "plot_4"}, state, game_data)
    assert locked is None
    assert "locked" in manager.last_refusal

    assert len(manager) == 1
    refusals = log.get_recent(event_type=PROCESS_REFUSED)
    assert len(refusals) == 2
    assert refusals[-1].payload["kind"] == "crop_growth"


def test_unknown_kind_is_refused():
    manager = _make_manager()
    state = _make_state()

    assert manager.start_process("fishing", {}, state) is None
    assert manager.last_refusal == "unknown process kind fishing"


def test_dry_crop_withers_and_frees_its_slot():
    manager = _make_manager()
    game_data = default_game_data()
    state = _make_state()
    process = manager.start_process("crop_growth", {"crop": "potato"}, state, game_data)
    plot = state.farm.plots[process.slot_ref]
    plot.water_level = 0.0

    result = manager.tick(60, state, game_data)

    assert result.failed == [process]
    assert process.status is ProcessStatus.FAILED
    assert plot.withered
    assert not plot.ready
    assert plot.crop_id == "potato"
    assert result.events[0].type == "crop_withered"
    assert len(manager) == 0
    assert state.processes.occupied == {}


def test_partially_watered_crop_grows_only_while_wet():
    manager = _make_manager()
    game_data = default_game_data()
    state = _make_state()
    process = manager.start_process("crop_growth", {"crop": "potato"}, state, game_data)
    plot = state.farm.plots[process.slot_ref]
    plot.water_level = 10.0

    manager.tick(40, state, game_data)

    # 10 water lasts 20 minutes at 0.5 per minute
    assert process.progress == pytest.approx(20.0)
    assert plot.water_level == 0.0
    assert plot.drought_minutes == pytest.approx(20.0)
    assert process.status is ProcessStatus.RUNNING


def test_waterer_helpers_slow_evaporation():
    manager = _make_manager()
    game_data = default_game_data()
    state = _make_state()
    state.helpers.gnomes["gnome_1"] = Gnome("gnome_1", "Pip", role="waterer")
    process = manager.start_process("crop_growth", {"crop": "potato"}, state, game_data)

    manager.tick(40, state, game_data)

    assert state.farm.plots[process.slot_ref].water_level == pytest.approx(100.0 - 0.375 * 40)


def test_auto_harvest_collects_ready_crops():
    manager = _make_manager()
    game_data = default_game_data()
    state = _make_state(energy=50, upgrades=["auto_harvest"])
    process = manager.start_process("crop_growth", {"crop": "carrot"}, state, game_data)

    result = manager.tick(30, state, game_data)

    assert [event.type for event in result.events] == ["crop_ready", "crop_auto_harvested"]
    plot = state.farm.plots[process.slot_ref]
    assert plot.is_free
    assert state.resources.energy.current == pytest.approx(58.0)
    assert state.resources.gold == pytest.approx(102.0)
    assert state.progression.crops_harvested == 1


def test_crafting_consumes_materials_and_yields_item():
    manager = _make_manager()
    game_data = default_game_data()
    state = _make_state(materials={"iron": 3, "wood": 2})

    process = manager.start_process("crafting", {"item": "iron_pickaxe"}, state, game_data)
    assert process is not None
    assert process.slot_ref == "forge_1"
    assert state.resources.materials.total() == 0
    assert state.resources.energy.current == pytest.approx(90.0)

    result = manager.tick(30, state, game_data)

    assert result.completed == [process]
    assert "iron_pickaxe" in state.inventory.tools
    assert state.forge.heat == pytest.approx(40.0)


def test_cold_forge_crafts_slower():
    manager = _make_manager()
    game_data = default_game_data()
    state = _make_state(materials={"iron": 3, "wood": 2})
    state.forge.heat = 0.0
    process = manager.start_process("crafting", {"item": "iron_pickaxe"}, state, game_data)

    manager.tick(30, state, game_data)

    assert process.progress == pytest.approx(15.0)


def test_crafting_without_materials_is_refused():
    manager = _make_manager()
    state = _make_state(materials={"iron": 1})

    assert manager.start_process("crafting", {"item": "iron_pickaxe"}, state, default_game_data()) is None
    assert manager.last_refusal == "not enough materials"
    assert state.resources.materials.get("iron") == 1


def test_cancelled_craft_refunds_materials():
    manager = _make_manager()
    state = _make_state(materials={"iron": 3, "wood": 2})
    process = manager.start_process("crafting", {"item": "iron_pickaxe"}, state, default_game_data())

    assert manager.cancel_process(process.process_id, state)

    assert state.resources.materials.as_dict() == {"iron": 3, "wood": 2}
    assert process.status is ProcessStatus.CANCELLED
    assert state.processes.is_free("forge_1")
    assert not manager.cancel_process(process.process_id, state)


def test_mining_requires_a_pickaxe_and_credits_materials():
    manager = _make_manager()
    game_data = default_game_data()
    state = _make_state()

    assert manager.start_process("mining", {"duration": 40}, state, game_data) is None
    assert "pickaxe" in manager.last_refusal

    state.inventory.add_item("tool", "pickaxe")
    process = manager.start_process("mining", {"duration": 40}, state, game_data)
    result = manager.tick(40, state, game_data)

    assert result.completed == [process]
    assert state.resources.materials.as_dict() == {"iron": 2, "stone": 9}
    assert state.resources.energy.current == pytest.approx(80.0)
    assert result.events[0].data["reason"] == "finished"


def test_mining_stops_early_when_energy_runs_out():
    manager = _make_manager()
    game_data = default_game_data()
    state = _make_state(energy=15)
    state.inventory.add_item("tool", "pickaxe")
    process = manager.start_process("mining", {"duration": 60}, state, game_data)

    result = manager.tick(60, state, game_data)

    assert result.completed == [process]
    assert process.data["end_reason"] == "out_of_energy"
    assert process.data["depth"] == pytest.approx(30.0)
    assert state.resources.energy.current == pytest.approx(0.0)
    assert result.events[0].data["reason"] == "out_of_energy"
    assert state.resources.materials.as_dict() == {"iron": 1, "stone": 7}


def test_cancelled_adventure_clears_its_roll():
    rolls = RouteRollCache(seed=3)
    manager = _make_manager(rolls=rolls)
    state = _make_state()
    roll = rolls.get_roll("meadow_path", "Short")
    process = manager.start_process(
        "adventure",
        {"route": "meadow_path", "variant": "Short", "roll": roll},
        state,
        default_game_data(),
    )
    assert process is not None
    assert state.resources.energy.current == pytest.approx(90.0)

    assert manager.cancel_process(process.process_id, state)

    assert not rolls.has_active_roll("meadow_path", "Short")
    assert rolls.get_statistics()["cleared_by_reason"]["abandoned"] == 1
    assert state.processes.is_free("adventure")


def test_adventure_victory_rewards_and_clears_roll():
    rolls = RouteRollCache(seed=11)
    manager = _make_manager(rolls=rolls)
    game_data = default_game_data()
    state = _make_state()
    state.progression.hero_level = 10
    roll = rolls.get_roll("meadow_path", "Short")
    process = manager.start_process(
        "adventure",
        {"route": "meadow_path", "variant": "Short", "roll": roll},
        state,
        game_data,
    )
    assert process.duration == pytest.approx(15.0)

    result = manager.tick(15, state, game_data)

    assert result.completed == [process]
    event = result.events[0]
    assert event.data["outcome"] == "victory"
    assert state.resources.gold == pytest.approx(100.0 + roll.total_enemies * 3)
    assert "adventure:meadow_path" in state.progression.completed_milestones
    assert "adventure:meadow_path:Short" in state.progression.completed_milestones
    assert state.progression.adventures_completed == 1
    assert not rolls.has_active_roll("meadow_path", "Short")
    assert rolls.cleared_by_reason["complete"] == 1


def test_adventure_behind_a_milestone_is_refused():
    manager = _make_manager(rolls=RouteRollCache())
    state = _make_state()

    payload = {"route": "pine_vale", "variant": "Short"}
    assert manager.start_process("adventure", payload, state, default_game_data()) is None
    assert "adventure:meadow_path" in manager.last_refusal


def test_stats_report_active_and_capacity():
    manager = _make_manager()
    game_data = default_game_data()
    state = _make_state()
    manager.start_process("crop_growth", {"crop": "carrot"}, state, game_data)
    manager.start_process("crop_growth", {"crop": "potato"}, state, game_data)

    stats = manager.stats(state)

    assert stats["total_registered"] == 4
    assert stats["total_active"] == 2
    assert stats["by_type"]["crop_growth"] == {"active": 2, "max": 50}
    assert stats["by_type"]["crafting"] == {"active": 0, "max": 1}
    assert manager.has_active("crop_growth")
    assert not manager.has_active(ProcessKind.MINING)


def test_resolution_errors_become_failed_processes():
    manager = _make_manager(handlers=[BrokenCraftingHandler(ProcessConfig())])
    state = _make_state(materials={"iron": 3, "wood": 2})
    process = manager.start_process("crafting", {"item": "iron_pickaxe"}, state, default_game_data())

    result = manager.tick(30, state, default_game_data())

    assert result.failed == [process]
    assert process.status is ProcessStatus.FAILED
    assert result.events[0].type == "process_error"
    assert "anvil cracked" in result.events[0].description
    assert state.processes.is_free("forge_1")
    assert len(manager) == 0


def test_restored_processes_keep_running_with_unique_ids():
    game_data = default_game_data()
    state = _make_state()
    first = _make_manager()
    carrot = first.start_process("crop_growth", {"crop": "carrot"}, state, game_data)
    first.tick(10, state, game_data)

    second = _make_manager()
    assert second.restore(first.active_processes(), state) == 1
    potato = second.start_process("crop_growth", {"crop": "potato"}, state, game_data)

    assert potato.process_id != carrot.process_id
    result = second.tick(20, state, game_data)
    assert result.completed == [carrot]
    assert state.farm.plots[carrot.slot_ref].ready


def test_restore_releases_bookings_without_a_process():
    state = _make_state()
    plot = state.farm.plots["plot_1"]
    plot.crop_id = "carrot"
    plot.process_id = "crop_growth_9"
    state.processes.occupy("plot_1", "crop_growth_9")
    state.processes.occupy("forge", "crafting_3")

    assert _make_manager().restore([], state) == 0

    assert state.processes.occupied == {}
    assert plot.process_id is None
    assert plot.crop_id is None
