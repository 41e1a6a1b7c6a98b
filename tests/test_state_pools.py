from __future__ import annotations

import pytest

from farmsim.state import CountPool, ResourcePool, TimeState, new_game_state


def test_counts_never_go_negative():
    pool = CountPool({"carrot": 2, "beet": -4})

    assert pool.as_dict() == {"carrot": 2}
    assert pool.remove("carrot", 5) == 2
    assert pool.get("carrot") == 0
    assert "carrot" not in pool
    assert pool.adjust("beet", -1) == 0


def test_count_pool_costs():
    pool = CountPool({"wood": 10, "stone": 5})

    assert pool.can_afford({"wood": 10, "stone": 5})
    assert not pool.can_afford({"iron": 1})
    pool.apply_cost({"wood": 4})
    assert pool.get("wood") == 6
    assert pool.total() == 11


def test_count_pool_equality_ignores_insertion_order():
    assert CountPool({"a": 1, "b": 2}) == CountPool({"b": 2, "a": 1})
    assert CountPool({"a": 1}).signature() == CountPool({"a": 1, "b": 0}).signature()


def test_dominant_prefers_count_then_name():
    assert CountPool({"turnip": 5, "beet": 5, "carrot": 1}).dominant() == "beet"
    assert CountPool().dominant() is None


def test_resource_pool_clamps():
    pool = ResourcePool(90.0, 100.0)

    assert pool.add(25) == 10.0
    assert pool.current == 100.0
    assert pool.consume(150) == 100.0
    assert pool.current == 0.0
    assert pool.add(-5) == 0.0
    assert pool.missing == 100.0


def test_time_rolls_over_days():
    clock = TimeState()

    clock.advance(1000)

    assert clock.total_minutes == 1480.0
    assert (clock.day, clock.hour, int(clock.minute)) == (2, 0, 40)
    assert clock.days_passed == 1
    assert clock.label() == "Day 2 00:40"


def test_xp_levels_the_hero():
    state = new_game_state()

    levels = state.progression.gain_xp(250)

    assert levels == 1
    assert state.progression.hero_level == 2
    assert state.progression.hero_xp == pytest.approx(150.0)


def test_gold_spending_is_all_or_nothing():
    state = new_game_state(gold=30)

    assert not state.resources.spend_gold(31)
    assert state.resources.gold == 30.0
    assert state.resources.spend_gold(30)
    assert state.resources.gold == 0.0


def test_new_game_state_layout():
    state = new_game_state()

    assert [plot.plot_id for plot in state.farm.unlocked_plots()] == ["plot_1", "plot_2", "plot_3"]
    assert [plot.debris for plot in state.farm.ordered()[3:]] == ["weeds", "rocks", "stumps"]
    assert state.farm.plot_count == 3
    assert state.location.current_screen == "farm"
    assert state.owned_ids() == set()
