from .offline import OfflineConfig, OfflineProgressionEstimator, OfflineResult, format_duration
from .rng_service import RNGConfig, RNGService, derive_seed
from .route_rolls import RollConfig, RouteRoll, RouteRollCache
from .snapshot import restore_processes, restore_state, snapshot_state, state_signature
from .telemetry import DebugConfig, EventRing, Metrics

__all__ = [
    "DebugConfig",
    "EventRing",
    "Metrics",
    "OfflineConfig",
    "OfflineProgressionEstimator",
    "OfflineResult",
    "RNGConfig",
    "RNGService",
    "RollConfig",
    "RouteRoll",
    "RouteRollCache",
    "derive_seed",
    "format_duration",
    "restore_processes",
    "restore_state",
    "snapshot_state",
    "state_signature",
]
