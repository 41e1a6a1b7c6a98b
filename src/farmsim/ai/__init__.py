"""Persona-driven decision making."""

from .bottlenecks import Bottleneck, BottleneckConfig, get_bottleneck_priorities
from .decision import DecisionConfig, DecisionLoop
from .personas import PERSONAS, PersonaProfile, get_persona, get_persona_strategy

__all__ = [
    "Bottleneck",
    "BottleneckConfig",
    "DecisionConfig",
    "DecisionLoop",
    "PERSONAS",
    "PersonaProfile",
    "get_bottleneck_priorities",
    "get_persona",
    "get_persona_strategy",
]
