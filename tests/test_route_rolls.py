from __future__ import annotations

import math

import pytest

from farmsim.admin_log import ROLL_CLEARED, AdminEventLog
from farmsim.runtime.route_rolls import (
    ROLL_ACTIVE,
    ROLL_CLEARED_STATUS,
    ROUTE_COMPOSITIONS,
    VARIANT_MULTIPLIERS,
    VARIANTS,
    EnemyGroup,
    RollConfig,
    RouteComposition,
    RouteRollCache,
)


def _make_cache(seed: int = 7, **kwargs) -> RouteRollCache:
    return RouteRollCache(seed=seed, **kwargs)


def test_repeated_requests_return_the_same_roll():
    cache = _make_cache()

    first = cache.get_roll("pine_vale", "Medium", now=10)
    second = cache.get_roll("pine_vale", "Medium", now=500)

    assert second is first
    assert second.created_at == 10
    assert cache.has_active_roll("pine_vale", "Medium")
    assert not cache.has_active_roll("pine_vale", "Short")


def test_rolls_are_deterministic_per_seed():
    a = _make_cache(seed=7).get_roll("crystal_caverns", "Long")
    b = _make_cache(seed=7).get_roll("crystal_caverns", "Long")
    c = _make_cache(seed=8).get_roll("crystal_caverns", "Long")

    assert a == b
    assert a.seed != c.seed


def test_cleared_roll_regenerates_with_the_same_seed_by_default():
    cache = _make_cache()
    first = cache.get_roll("meadow_path", "Short")

    assert cache.clear_roll("meadow_path", "Short", "complete")
    assert not cache.has_active_roll("meadow_path", "Short")

    second = cache.get_roll("meadow_path", "Short")
    assert second is not first
    assert second.seed == first.seed
    assert second.enemies == first.enemies
    assert second.attempt == 1


def test_vary_after_clear_draws_a_fresh_seed():
    cache = _make_cache(config=RollConfig(vary_after_clear=True))
    first = cache.get_roll("meadow_path", "Short")
    cache.clear_roll("meadow_path", "Short", "failed")

    second = cache.get_roll("meadow_path", "Short")

    assert second.seed != first.seed
    assert second.attempt == 1


def test_unknown_route_gets_placeholder_enemies():
    cache = _make_cache()

    for variant, count in (("Short", 3), ("Medium", 5), ("Long", 8)):
        roll = cache.get_roll("mystery_marsh", variant)
        assert roll.enemies == (EnemyGroup("unknown_enemy", count, 100.0),)
        assert roll.boss is None
        assert roll.total_enemies == count


def test_only_long_variant_has_a_boss():
    cache = _make_cache()

    long_roll = cache.get_roll("meadow_path", "Long")
    short_roll = cache.get_roll("meadow_path", "Short")

    assert long_roll.boss == "giant_rabbit"
    assert long_roll.total_enemies == sum(group.count for group in long_roll.enemies) + 1
    assert short_roll.boss is None


@pytest.mark.parametrize("seed", [0, 1, 2, 3, 99])
def test_enemy_counts_stay_within_scaled_bounds(seed):
    cache = _make_cache(seed=seed)
    for route_id, composition in ROUTE_COMPOSITIONS.items():
        for variant in VARIANTS:
            roll = cache.get_roll(route_id, variant)
            multiplier = VARIANT_MULTIPLIERS[variant]
            for group in roll.enemies:
                index = composition.enemy_types.index(group.enemy_type)
                low = math.ceil(composition.min_counts[index] * multiplier)
                high = max(low, math.floor(composition.max_counts[index] * multiplier))
                assert low <= group.count <= high
                assert group.count > 0
            assert sum(group.percentage for group in roll.enemies) == pytest.approx(100.0, abs=0.5)


def test_invalid_variant_and_reason_are_rejected():
    cache = _make_cache()

    with pytest.raises(ValueError):
        cache.get_roll("meadow_path", "Epic")
    cache.get_roll("meadow_path", "Short")
    with pytest.raises(ValueError):
        cache.clear_roll("meadow_path", "Short", "bored")
    assert not cache.clear_roll("pine_vale", "Long")


def test_statistics_track_active_rolls_and_clears():
    log = AdminEventLog()
    cache = _make_cache(log=log)
    cache.get_roll("meadow_path", "Short", now=100)
    cache.get_roll("pine_vale", "Long", now=250)
    cache.get_roll("crystal_caverns", "Long", now=300)
    cache.clear_roll("crystal_caverns", "Long", "failed", now=320)

    stats = cache.get_statistics()

    assert stats["total_active_rolls"] == 2
    assert stats["rolls_by_variant"] == {"Short": 1, "Medium": 0, "Long": 1}
    assert stats["oldest_roll"] == 100
    assert stats["newest_roll"] == 250
    assert stats["cleared_by_reason"]["failed"] == 1
    cleared = log.get_recent(event_type=ROLL_CLEARED)
    assert [event.payload["key"] for event in cleared] == ["crystal_caverns:Long"]


def test_old_rolls_expire():
    cache = _make_cache(config=RollConfig(ttl_minutes=60))
    cache.get_roll("meadow_path", "Short", now=0)
    cache.get_roll("pine_vale", "Short", now=100)

    expired = cache.evict_expired(130)

    assert expired == ["meadow_path:Short"]
    assert cache.has_active_roll("pine_vale", "Short")
    assert cache.cleared_by_reason["expired"] == 1


def test_records_restore_active_rolls():
    cache = _make_cache()
    original = cache.get_roll("pine_vale", "Long", now=42)
    records = cache.to_records()

    restored = _make_cache()
    assert restored.load_records(records) == 1

    assert restored.get_roll("pine_vale", "Long") == original


def test_route_preview_reports_totals():
    cache = _make_cache()

    preview = cache.route_preview("meadow_path")
    assert preview["known"]
    assert preview["waves"] == 3
    assert preview["totals"]["Short"] == (4, 9)
    assert preview["totals"]["Long"] == (9, 19)

    unknown = cache.route_preview("mystery_marsh")
    assert not unknown["known"]
    assert unknown["totals"]["Medium"] == (5, 5)


def test_registered_routes_are_used_for_new_rolls():
    cache = _make_cache()
    cache.register_route(
        "goblin_glen",
        RouteComposition(("goblin",), (100,), (2,), (2,), 1, "goblin_king"),
    )

    roll = cache.get_roll("goblin_glen", "Short")

    assert roll.enemies == (EnemyGroup("goblin", 2, 100.0),)
    with pytest.raises(ValueError):
        cache.register_route("broken", RouteComposition(("a", "b"), (1,), (1,), (1,), 1))


def test_cleared_roll_is_returned_with_cleared_status():
    log = AdminEventLog()
    cache = _make_cache(log=log)
    active = cache.get_roll("pine_vale", "Medium", now=5)
    assert active.status == ROLL_ACTIVE

    cleared = cache.clear_roll("pine_vale", "Medium", "complete", now=60)

    assert cleared.status == ROLL_CLEARED_STATUS
    assert cleared.seed == active.seed
    assert cleared.enemies == active.enemies
    payload = log.get_recent(event_type=ROLL_CLEARED)[0].payload
    assert payload["status"] == ROLL_CLEARED_STATUS
    assert payload["attempt"] == 0
    assert cache.get_roll("pine_vale", "Medium").status == ROLL_ACTIVE


def test_cleared_records_only_advance_the_attempt_counter():
    cache = _make_cache()
    cache.get_roll("meadow_path", "Short")
    cleared = cache.clear_roll("meadow_path", "Short")
    record = cleared.to_record()
    assert record["status"] == "cleared"

    restored = _make_cache()
    assert restored.load_records([record]) == 0

    assert not restored.has_active_roll("meadow_path", "Short")
    assert restored.get_roll("meadow_path", "Short").attempt == 1
