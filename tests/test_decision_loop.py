from __future__ import annotations

from farmsim.actions.base import ActionType
from farmsim.ai.decision import DecisionLoop
from farmsim.ai.personas import get_persona
from farmsim.game_data import default_game_data
from farmsim.state import new_game_state


def _make_loop(persona_id: str = "speedrunner") -> DecisionLoop:
    return DecisionLoop(get_persona(persona_id), default_game_data())


def test_pump_comes_first_when_water_is_short():
    loop = _make_loop()
    state = new_game_state(plots=10, debris_plots=(), water=2, seeds={"carrot": 50})

    actions = loop.decide(state)

    assert actions[0].type is ActionType.PUMP
    assert [b.type for b in loop.last_bottlenecks] == ["water"]
    assert len(actions) == 3


def test_moves_are_inserted_before_off_screen_actions():
    loop = _make_loop()
    state = new_game_state(seeds={"carrot": 10})
    state.location.current_screen = "town"
    state.farm.plots["plot_1"].crop_id = "carrot"
    state.farm.plots["plot_1"].ready = True

    actions = loop.decide(state)

    assert actions[0].type is ActionType.MOVE
    assert actions[0].target == "farm"
    assert [a.type for a in actions[1:]] == [ActionType.HARVEST, ActionType.PLANT, ActionType.PLANT]


def test_check_in_interval_is_respected():
    loop = _make_loop("casual")
    state = new_game_state(seeds={"carrot": 10})

    assert loop.decide(state)
    assert loop.decide(state) == []

    state.time.advance(30)
    assert loop.due(state)


def test_persona_caps_actions_per_check_in():
    state = new_game_state(plots=10, debris_plots=(), water=100, seeds={"carrot": 50})

    casual = [a for a in _make_loop("casual").decide(state) if a.type is not ActionType.MOVE]
    weekend = [a for a in _make_loop("weekend_warrior").decide(state) if a.type is not ActionType.MOVE]

    assert len(casual) == 2
    assert len(weekend) == 6


def test_seed_shortage_is_remedied_by_catching_when_frugal():
    loop = _make_loop("casual")
    state = new_game_state(water=100)

    actions = loop.decide(state)

    assert actions[0].type is ActionType.MOVE
    assert actions[0].target == "tower"
    assert actions[1].type is ActionType.CATCH_SEEDS


def test_seed_shortage_is_remedied_by_buying_when_spending_freely():
    loop = _make_loop("speedrunner")
    state = new_game_state(water=100)

    actions = loop.decide(state)
    purchases = [a for a in actions if a.type is ActionType.PURCHASE]

    assert purchases[0].target == "radish_pack"
