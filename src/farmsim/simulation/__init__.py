"""Engine tick loop and the host-facing control surface."""

from .controller import COMPLETION_REASONS, CompletionPayload, SimulationController
from .engine import SimulationEngine, TickResult, build_initial_state

__all__ = [
    "COMPLETION_REASONS",
    "CompletionPayload",
    "SimulationController",
    "SimulationEngine",
    "TickResult",
    "build_initial_state",
]
