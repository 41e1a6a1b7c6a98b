"""Domain systems that execute routed actions against the game state."""

from __future__ import annotations

from .adventure import AdventureSystem
from .base import DomainSystem, SCREEN_FOR_ACTION, SystemConfig, SystemServices
from .farm import FarmSystem
from .forge import ForgeSystem
from .helper import HelperSystem
from .mine import MineSystem
from .tower import TowerSystem
from .town import TownSystem


def default_systems(services: SystemServices | None = None) -> list[DomainSystem]:
    services = services or SystemServices()
    return [
        FarmSystem(services),
        TowerSystem(services),
        TownSystem(services),
        AdventureSystem(services),
        MineSystem(services),
        ForgeSystem(services),
        HelperSystem(services),
    ]


__all__ = [
    "AdventureSystem",
    "DomainSystem",
    "FarmSystem",
    "ForgeSystem",
    "HelperSystem",
    "MineSystem",
    "SCREEN_FOR_ACTION",
    "SystemConfig",
    "SystemServices",
    "TowerSystem",
    "TownSystem",
    "default_systems",
]
