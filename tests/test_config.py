from __future__ import annotations

import pytest

from farmsim.config import ConfigurationError, SimulationConfig, load_config


def test_defaults_validate():
    cfg = load_config({})

    assert cfg.persona_id == "balanced"
    assert cfg.victory.max_day == 35
    assert cfg.start.seeds["potato"] == 15


def test_nested_mappings_build_component_configs():
    cfg = load_config(
        {
            "persona_id": "casual",
            "start": {"plots": 5, "debris_plots": ["weeds"]},
            "rolls": {"vary_after_clear": True},
            "processes": {"wither_after_minutes": 90},
        }
    )

    assert cfg.start.plots == 5
    assert cfg.start.debris_plots == ("weeds",)
    assert cfg.rolls.vary_after_clear is True
    assert cfg.processes.wither_after_minutes == 90
    assert cfg.start.gold == 100.0


def test_config_instances_pass_through():
    cfg = SimulationConfig(persona_id="speedrunner")

    assert load_config(cfg) is cfg


@pytest.mark.parametrize(
    "raw",
    [
        {"persona_id": "nobody"},
        {"tick_minutes": 0},
        {"duration_minutes": -5},
        {"speed": 5000},
        {"stuck_after_ticks": 0},
        {"start": {"plots": 0}},
        {"start": {"seeds": {"carrot": -1}}},
        {"debug": {"level": "loud"}},
        {"colour": "green"},
        {"victory": {"hero_level": 10, "crown": True}},
        {"start": 3},
        {"speed": "fast"},
    ],
)
def test_invalid_configs_raise(raw):
    with pytest.raises(ConfigurationError):
        load_config(raw)


def test_missing_config_is_rejected():
    with pytest.raises(ConfigurationError):
        load_config(None)
