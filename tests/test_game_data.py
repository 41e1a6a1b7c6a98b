from __future__ import annotations

import pytest

from farmsim.game_data import GameData, GameDataError, default_game_data, record_from_mapping


def test_records_parse_costs_prerequisites_and_extras():
    record = record_from_mapping(
        {
            "id": "auto_pump",
            "type": "upgrade",
            "gold_cost": "150",
            "prerequisites": "water_tank_1; better_pump",
            "materials_cost": {"iron": "2"},
            "tier": 2,
        }
    )

    assert record.gold_cost == 150.0
    assert record.prerequisites == ("water_tank_1", "better_pump")
    assert record.materials_cost == {"iron": 2}
    assert record.extra["tier"] == 2
    assert record.name == "auto_pump"


def test_comma_separated_prerequisites():
    record = record_from_mapping({"id": "x", "type": "upgrade", "prerequisites": "a, b,,c"})

    assert record.prerequisites == ("a", "b", "c")


@pytest.mark.parametrize(
    "raw",
    [
        {"type": "upgrade"},
        {"id": "x", "type": "spaceship"},
        {"id": "x", "type": "upgrade", "gold_cost": "lots"},
        {"id": "x", "type": "upgrade", "effects": {"growth_rate": "fast"}},
    ],
)
def test_bad_records_are_rejected(raw):
    with pytest.raises(GameDataError):
        record_from_mapping(raw)


def test_duplicate_ids_are_rejected():
    with pytest.raises(GameDataError):
        GameData.from_records([{"id": "a", "type": "tool"}, {"id": "a", "type": "weapon"}])


def test_prerequisite_checks():
    data = default_game_data()
    auto_plant = data.get("auto_plant")

    assert data.missing_prerequisites(auto_plant, set()) == ["auto_harvest"]
    assert data.prerequisites_met(auto_plant, {"auto_harvest"})


def test_crop_profiles_and_fallbacks():
    data = default_game_data()

    carrot = data.crop_profile("carrot")
    assert (carrot.growth_minutes, carrot.energy, carrot.gold, carrot.reach) == (30.0, 8.0, 2.0, 1)

    unknown = data.crop_profile("dragonfruit")
    assert unknown.growth_minutes == 30.0
    assert unknown.energy == 5.0


def test_crops_for_reach_grows_with_the_tower():
    data = default_game_data()

    assert data.crops_for_reach(1) == ["carrot", "radish"]
    assert data.crops_for_reach(2) == ["carrot", "radish", "turnip"]
    assert data.crops_for_reach(4)[-1] == "potato"


def test_route_profiles_and_sell_prices():
    data = default_game_data()

    vale = data.route_profile("pine_vale")
    assert vale.enemy_strength == 2.0
    assert vale.base_minutes == 20.0
    assert data.route_profile("nowhere").energy_cost == 10.0

    assert data.sell_price("crystal") == 25.0
    assert data.sell_price("lint") == 1.0


def test_catalogue_lookups():
    data = default_game_data()

    assert "carrot_pack" in data
    assert data.get(None) is None
    assert data.get("carrot_pack").extra["crop"] == "carrot"
    assert [item.id for item in data.by_type("weapon", "armor")] == ["leather_armor", "wooden_sword"]
    assert data.get("carrot_pack").repeatable
    assert not data.get("water_tank_1").repeatable
