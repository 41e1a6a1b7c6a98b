"""Run configuration.

Every component owns a small dataclass config; :class:`SimulationConfig`
aggregates them and :func:`load_config` builds one from a plain mapping,
raising :class:`ConfigurationError` before any state exists.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, is_dataclass
from typing import Any, Dict, Mapping

from .ai.bottlenecks import BottleneckConfig
from .ai.decision import DecisionConfig
from .ai.personas import PERSONAS
from .processes.base import ProcessConfig
from .runtime.offline import OfflineConfig
from .runtime.route_rolls import RollConfig
from .runtime.telemetry import DebugConfig
from .systems.base import SystemConfig


class ConfigurationError(ValueError):
    """Raised for an invalid simulation configuration."""


@dataclass(slots=True)
class VictoryConfig:
    hero_level: int = 10
    max_day: int = 35
    required_milestones: tuple[str, ...] = ()


@dataclass(slots=True)
class StartingResources:
    gold: float = 100.0
    energy: float = 100.0
    energy_max: float = 100.0
    energy_regen: float = 0.1
    water: float = 50.0
    water_max: float = 100.0
    plots: int = 3
    debris_plots: tuple[str, ...] = ("weeds", "rocks", "stumps")
    seeds: Dict[str, int] = field(default_factory=lambda: {"turnip": 12, "beet": 8, "carrot": 5, "potato": 15})
    materials: Dict[str, int] = field(default_factory=lambda: {"wood": 25, "stone": 18, "iron": 7, "silver": 2})
    upgrades: tuple[str, ...] = ()


@dataclass(slots=True)
class SimulationConfig:
    persona_id: str = "balanced"
    seed: int = 0
    duration_minutes: float = 35 * 24 * 60.0
    tick_minutes: float = 1.0
    speed: float = 1.0
    stuck_after_ticks: int = 240
    start: StartingResources = field(default_factory=StartingResources)
    victory: VictoryConfig = field(default_factory=VictoryConfig)
    systems: SystemConfig = field(default_factory=SystemConfig)
    processes: ProcessConfig = field(default_factory=ProcessConfig)
    rolls: RollConfig = field(default_factory=RollConfig)
    offline: OfflineConfig = field(default_factory=OfflineConfig)
    bottlenecks: BottleneckConfig = field(default_factory=BottleneckConfig)
    decisions: DecisionConfig = field(default_factory=DecisionConfig)
    debug: DebugConfig = field(default_factory=DebugConfig)

    def validate(self) -> "SimulationConfig":
        if self.persona_id not in PERSONAS:
            raise ConfigurationError(f"Unknown persona {self.persona_id!r}; expected one of {sorted(PERSONAS)}")
        if self.tick_minutes <= 0:
            raise ConfigurationError("tick_minutes must be positive")
        if self.duration_minutes <= 0:
            raise ConfigurationError("duration_minutes must be positive")
        if not MIN_SPEED <= self.speed <= MAX_SPEED:
            raise ConfigurationError(f"speed must be between {MIN_SPEED} and {MAX_SPEED}")
        if self.stuck_after_ticks < 1:
            raise ConfigurationError("stuck_after_ticks must be at least 1")
        if self.start.plots < 1:
            raise ConfigurationError("at least one starting plot is required")
        if self.start.energy_max <= 0 or self.start.water_max <= 0:
            raise ConfigurationError("pool maxima must be positive")
        if any(qty < 0 for qty in self.start.seeds.values()) or any(qty < 0 for qty in self.start.materials.values()):
            raise ConfigurationError("starting counts cannot be negative")
        if self.debug.level not in {"minimal", "standard", "verbose"}:
            raise ConfigurationError(f"Unknown debug level {self.debug.level!r}")
        return self


MIN_SPEED = 0.1
MAX_SPEED = 1000.0


def _build(cls: type, raw: Any, path: str) -> Any:
    if isinstance(raw, cls):
        return raw
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"{path} must be a mapping")
    known = {f.name: f for f in fields(cls)}
    unknown = sorted(set(raw) - set(known))
    if unknown:
        raise ConfigurationError(f"Unknown {path} option(s): {', '.join(unknown)}")
    kwargs: Dict[str, Any] = {}
    for name, value in raw.items():
        default = getattr(cls(), name)
        if is_dataclass(default):
            kwargs[name] = _build(type(default), value, f"{path}.{name}")
        elif isinstance(default, tuple) and isinstance(value, list):
            kwargs[name] = tuple(value)
        else:
            kwargs[name] = value
    try:
        return cls(**kwargs)
    except TypeError as exc:
        raise ConfigurationError(f"Invalid {path}: {exc}") from exc


def load_config(raw: Mapping[str, Any] | SimulationConfig | None) -> SimulationConfig:
    if raw is None:
        raise ConfigurationError("A simulation config is required; pass {} for the defaults")
    config = _build(SimulationConfig, raw, "config")
    try:
        return config.validate()
    except TypeError as exc:
        raise ConfigurationError(f"Invalid config value: {exc}") from exc


__all__ = [
    "ConfigurationError",
    "MAX_SPEED",
    "MIN_SPEED",
    "SimulationConfig",
    "StartingResources",
    "VictoryConfig",
    "load_config",
]
