from __future__ import annotations

import copy

import pytest

from farmsim.actions.base import Action, ActionResult, ActionType
from farmsim.actions.router import ActionRouter
from farmsim.game_data import default_game_data
from farmsim.processes.manager import ProcessManager
from farmsim.runtime.route_rolls import RouteRollCache
from farmsim.state import new_game_state
from farmsim.systems import DomainSystem, SystemServices, default_systems


def _make_router() -> ActionRouter:
    rolls = RouteRollCache(seed=1)
    services = SystemServices(
        game_data=default_game_data(),
        processes=ProcessManager(rolls=rolls),
        rolls=rolls,
    )
    return ActionRouter(default_systems(services))


class ExplodingSystem(DomainSystem):
    name = "exploder"
    handles = frozenset({ActionType.MINE})

    def execute(self, action, state):
        raise RuntimeError("boom")


def test_move_updates_location_and_emits_movement():
    router = _make_router()
    state = new_game_state()

    result = router.route(Action(ActionType.MOVE, target="town", description="Shopping"), state)

    assert result.success
    assert state.location.current_screen == "town"
    assert state.location.previous_screen == "farm"
    assert state.location.time_on_screen == 0.0
    assert state.location.screen_history[-1] == "town"
    assert state.location.navigation_reason == "Shopping"
    assert result.state_changes == {"location.current_screen": "town", "location.time_on_screen": 0.0}
    event = result.events[0]
    assert event.type == "movement"
    assert event.data == {"from": "farm", "to": "town", "reason": "Shopping"}


def test_move_default_reason_names_destination():
    router = _make_router()
    state = new_game_state()

    result = router.route(Action("move", target="forge"), state)

    assert result.events[0].description == "Moved to forge"


def test_move_without_target_fails_without_mutation():
    router = _make_router()
    state = new_game_state()
    state.location.time_on_screen = 12.0
    before = copy.deepcopy(state)

    result = router.route(Action(ActionType.MOVE), state)

    assert not result.success
    assert result.error == "No target screen specified"
    assert result.state_changes == {}
    assert state == before


def test_wait_emits_single_event_without_changes():
    router = _make_router()
    state = new_game_state()
    before = copy.deepcopy(state)

    result = router.route(Action(ActionType.WAIT, duration=15), state)

    assert result.success
    assert len(result.events) == 1
    assert result.events[0].type == "wait"
    assert result.events[0].data == {"duration": 15.0}
    assert result.state_changes == {}
    assert state == before


def test_unknown_action_type_is_refused():
    router = _make_router()
    state = new_game_state()

    result = router.route(Action("dance"), state)

    assert not result.success
    assert result.error == "No system handles action type: dance"


def test_action_without_registered_system_is_refused():
    router = ActionRouter([])
    result = router.route(Action(ActionType.PLANT, target="carrot"), new_game_state())

    assert not result.success
    assert "plant" in result.error


def test_domain_exception_becomes_failed_result():
    router = ActionRouter([ExplodingSystem()])
    state = new_game_state()

    result = router.route(Action(ActionType.MINE), state)

    assert not result.success
    assert result.error.startswith("Execution error")
    assert "boom" in result.error
    assert result.state_changes == {}


def test_routing_table_introspection():
    router = _make_router()

    assert router.system_for_action("plant") == "farm"
    assert router.system_for_action(ActionType.CATCH_SEEDS) == "tower"
    assert router.system_for_action("craft") == "forge"
    assert router.system_for_action("rescue") == "helper"
    assert router.system_for_action("move") is None
    assert router.can_route("move")
    assert router.can_route("wait")
    assert router.can_route("sell_material")
    assert not router.can_route("teleport")
    assert router.actions_for_system("town") == ["build", "purchase", "sell_material", "train"]
    assert router.registered_systems() == ["adventure", "farm", "forge", "helper", "mine", "tower", "town"]

    table = router.routing_table()
    assert table["adventure"] == "adventure"
    assert table["stoke"] == "forge"
    table["adventure"] = "farm"
    assert router.routing_table()["adventure"] == "adventure"


def test_two_systems_cannot_claim_the_same_action():
    class SecondMiner(ExplodingSystem):
        name = "second"

    with pytest.raises(ValueError):
        ActionRouter([ExplodingSystem(), SecondMiner()])


def test_location_is_checked_before_dispatch():
    router = _make_router()
    state = new_game_state(seeds={"carrot": 3})
    state.location.current_screen = "town"

    result = router.route(Action(ActionType.PLANT, target="carrot"), state)

    assert not result.success
    assert result.error == "plant requires being at the farm"
    assert state.resources.seeds.get("carrot") == 3


def test_failed_results_cannot_carry_changes():
    with pytest.raises(ValueError):
        ActionResult(success=False, state_changes={"resources.gold": 1}, error="nope")
    with pytest.raises(ValueError):
        ActionResult(success=False)


def test_action_coerces_types_and_params():
    action = Action("plant", target="carrot")
    assert action.type is ActionType.PLANT

    adventure = Action("adventure", target="pine_vale", params={"variant": "Long"})
    assert adventure.param("variant") == "Long"
    assert adventure.param("missing", 3) == 3

    unknown = Action("juggle")
    assert unknown.type == "juggle"
    assert unknown.type_name == "juggle"


@pytest.mark.parametrize("action_type", list(ActionType))
def test_every_action_type_routes_on_a_bare_state(action_type):
    router = _make_router()

    assert router.can_route(action_type)
    result = router.route(Action(action_type), new_game_state())

    assert isinstance(result, ActionResult)
    assert not (result.error or "").startswith("Execution error")
