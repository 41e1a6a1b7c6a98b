from __future__ import annotations

import importlib
import json
from dataclasses import fields, is_dataclass
from enum import Enum
from hashlib import sha256
from typing import TYPE_CHECKING, Any, Iterable, List, Mapping, MutableMapping, Sequence

from ..state import GameState

if TYPE_CHECKING:
    from ..processes.base import Process
    from .route_rolls import RouteRollCache

SNAPSHOT_SCHEMA_VERSION = "farmsim_state_v1"


class SnapshotError(ValueError):
    pass


def _resolve_type(path: str):
    module_path, _, attr = path.rpartition(".")
    if not module_path.startswith("farmsim."):
        raise SnapshotError(f"Refusing to restore type outside farmsim: {path}")
    module = importlib.import_module(module_path)
    return getattr(module, attr)


def to_snapshot_dict(obj: Any) -> Any:
    if is_dataclass(obj) and not isinstance(obj, type):
        payload = {f.name: to_snapshot_dict(getattr(obj, f.name)) for f in fields(obj)}
        return {"__type__": f"{obj.__class__.__module__}.{obj.__class__.__qualname__}", "data": payload}

    if isinstance(obj, (set, frozenset)):
        return {"__set__": [to_snapshot_dict(item) for item in sorted(obj, key=str)]}

    if isinstance(obj, Enum):
        return {"__enum__": f"{obj.__class__.__module__}.{obj.__class__.__qualname__}", "value": obj.value}

    if isinstance(obj, Mapping):
        return {str(k): to_snapshot_dict(v) for k, v in sorted(obj.items(), key=lambda item: str(item[0]))}

    if isinstance(obj, Sequence) and not isinstance(obj, (str, bytes, bytearray)):
        return [to_snapshot_dict(item) for item in obj]

    return obj


def from_snapshot_dict(obj: Any) -> Any:
    if isinstance(obj, Mapping):
        if "__enum__" in obj:
            enum_cls = _resolve_type(obj["__enum__"])
            return enum_cls(obj["value"])

        if "__set__" in obj:
            return set(from_snapshot_dict(item) for item in obj.get("__set__", []))

        if "__type__" in obj and "data" in obj:
            cls = _resolve_type(obj["__type__"])
            if not is_dataclass(cls):
                raise SnapshotError(f"{obj['__type__']} is not a dataclass")
            kwargs: MutableMapping[str, Any] = {}
            for f in fields(cls):
                if f.name in obj["data"]:
                    kwargs[f.name] = from_snapshot_dict(obj["data"][f.name])
            return cls(**kwargs)

        return {key: from_snapshot_dict(value) for key, value in obj.items()}

    if isinstance(obj, list):
        return [from_snapshot_dict(item) for item in obj]

    return obj


def snapshot_state(
    state: GameState,
    *,
    processes: Iterable["Process"] | None = None,
    rolls: "RouteRollCache | None" = None,
) -> dict[str, Any]:
    """Serialise ``state``; running processes and active rolls ride along when given."""
    payload: dict[str, Any] = {"schema_version": SNAPSHOT_SCHEMA_VERSION, "state": to_snapshot_dict(state)}
    if processes is not None:
        payload["processes"] = [to_snapshot_dict(process) for process in processes]
    if rolls is not None:
        payload["rolls"] = rolls.to_records()
    return payload


def restore_state(payload: Mapping[str, Any]) -> GameState:
    version = payload.get("schema_version")
    if version != SNAPSHOT_SCHEMA_VERSION:
        raise SnapshotError(f"Unsupported snapshot schema: {version!r}")
    state = from_snapshot_dict(payload["state"])
    if not isinstance(state, GameState):
        raise SnapshotError("Snapshot does not contain a GameState")
    return state


def restore_processes(payload: Mapping[str, Any]) -> List["Process"]:
    from ..processes.base import Process

    processes = [from_snapshot_dict(item) for item in payload.get("processes", [])]
    for process in processes:
        if not isinstance(process, Process):
            raise SnapshotError("Snapshot process list holds a non-process record")
    return processes


def state_signature(state: GameState) -> str:
    canonical = json.dumps(snapshot_state(state), sort_keys=True, separators=(",", ":"))
    return sha256(canonical.encode("utf-8")).hexdigest()


__all__ = [
    "SNAPSHOT_SCHEMA_VERSION",
    "SnapshotError",
    "from_snapshot_dict",
    "restore_processes",
    "restore_state",
    "snapshot_state",
    "state_signature",
    "to_snapshot_dict",
]
