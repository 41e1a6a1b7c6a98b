"""Deterministic random streams keyed by name and scope.

Nothing in the simulation touches the global ``random`` module; every draw
comes from a ``random.Random`` seeded by a sha256 digest of the base seed,
the stream key, a canonical scope and the draw index.
"""

from __future__ import annotations

import json
import random
from dataclasses import dataclass, field
from hashlib import sha256
from typing import Dict, Mapping, Sequence, TypeVar

T = TypeVar("T")


def _to_jsonable(value: object) -> object:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(item) for item in value]
    if isinstance(value, Mapping):
        return {str(k): _to_jsonable(v) for k, v in value.items()}
    raise TypeError(f"Unsupported scope value type: {type(value)!r}")


def canonical_scope(scope: Mapping[str, object] | None) -> str:
    if not scope:
        return "{}"
    return json.dumps(_to_jsonable(scope), sort_keys=True, separators=(",", ":"))


def derive_seed(salt: str, *parts: object) -> int:
    """Fold ``parts`` into a 64-bit seed."""

    blob = "|".join([salt, *(str(part) for part in parts)])
    digest = sha256(blob.encode()).digest()
    return int.from_bytes(digest[:8], "big", signed=False)


@dataclass(slots=True)
class RNGConfig:
    salt: str = "farmsim-rng-v1"


@dataclass
class RNGService:
    seed: int
    config: RNGConfig = field(default_factory=RNGConfig)
    counters: Dict[str, int] = field(default_factory=dict)

    def _stream_id(self, stream_key: str, scope_json: str) -> str:
        return f"{derive_seed(self.config.salt, self.seed, stream_key, scope_json):016x}"

    def stream(self, stream_key: str, *, scope: Mapping[str, object] | None = None) -> random.Random:
        scope_json = canonical_scope(scope)
        stream_id = self._stream_id(stream_key, scope_json)
        draw_index = self.counters.get(stream_id, 0)
        self.counters[stream_id] = draw_index + 1
        return random.Random(derive_seed(self.config.salt, self.seed, stream_key, scope_json, draw_index))

    def rand(self, stream_key: str, *, scope: Mapping[str, object] | None = None) -> float:
        return self.stream(stream_key, scope=scope).random()

    def randint(self, stream_key: str, a: int, b: int, *, scope: Mapping[str, object] | None = None) -> int:
        return self.stream(stream_key, scope=scope).randint(a, b)

    def choice(self, stream_key: str, seq: Sequence[T], *, scope: Mapping[str, object] | None = None) -> T:
        if not seq:
            raise IndexError("Cannot choose from an empty sequence")
        rng = self.stream(stream_key, scope=scope)
        return seq[rng.randrange(len(seq))]

    def signature(self) -> str:
        payload = json.dumps(sorted(self.counters.items()), separators=(",", ":"))
        return sha256(payload.encode()).hexdigest()[:16]


__all__ = ["RNGConfig", "RNGService", "canonical_scope", "derive_seed"]
