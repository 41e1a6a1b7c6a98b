from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any, Sequence

from farmsim.ai.personas import PERSONAS
from farmsim.config import ConfigurationError, SimulationConfig, load_config
from farmsim.game_data import GameData, GameDataError, default_game_data
from farmsim.runtime.offline import format_duration
from farmsim.simulation.controller import CompletionPayload, SimulationController


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a headless farming balance simulation")
    parser.add_argument("--persona", default="balanced", choices=sorted(PERSONAS), help="Persona id")
    parser.add_argument("--seed", type=int, default=0, help="Base seed for rolls and catches")
    parser.add_argument("--minutes", type=float, default=12 * 60.0, help="Simulated minutes to run")
    parser.add_argument("--tick-minutes", type=float, default=1.0)
    parser.add_argument("--speed", type=float, default=1.0)
    parser.add_argument("--stuck-after", type=int, default=240)
    parser.add_argument("--offline", type=float, default=0.0, help="Apply an offline gap (minutes) before running")
    parser.add_argument("--max-ticks", type=int, help="Optional guard to stop early")
    parser.add_argument("--game-data", type=Path, help="JSON file holding a list of item records")
    parser.add_argument("--debug-level", default="minimal", choices=["minimal", "standard", "verbose"])
    parser.add_argument("--json", action="store_true", help="Print the completion payload as JSON")
    return parser.parse_args(argv)


def _build_config(args: argparse.Namespace) -> SimulationConfig:
    return load_config(
        {
            "persona_id": args.persona,
            "seed": args.seed,
            "duration_minutes": args.minutes,
            "tick_minutes": args.tick_minutes,
            "speed": args.speed,
            "stuck_after_ticks": args.stuck_after,
            "debug": {"level": args.debug_level},
        }
    )


def _load_game_data(path: Path | None) -> GameData:
    if path is None:
        return default_game_data()
    with path.open("r", encoding="utf-8") as handle:
        records = json.load(handle)
    return GameData.from_records(records)


def _print_summary(payload: CompletionPayload, offline: dict[str, Any] | None) -> None:
    stats = payload.stats
    if offline is not None:
        print(offline["summary"])
        print()
    print(payload.summary)
    print(f"persona: {stats.get('persona')} ({stats.get('strategy')})")
    print(f"ticks: {stats.get('tick_count')} days passed: {stats.get('days_passed')}")
    print(f"phase: {stats.get('current_phase')}")
    processes = stats.get("processes", {})
    print(f"active processes: {processes.get('total_active', 0)}")
    rolls = stats.get("rolls", {})
    print(f"active rolls: {rolls.get('total_active_rolls', 0)}")
    if stats.get("bottlenecks"):
        print(f"bottlenecks: {', '.join(stats['bottlenecks'])}")


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    try:
        cfg = _build_config(args)
        game_data = _load_game_data(args.game_data)
    except (ConfigurationError, GameDataError, OSError, json.JSONDecodeError) as exc:
        print(f"error: {exc}")
        return 2

    controller = SimulationController(game_data)
    controller.initialize(cfg)
    offline = None
    if args.offline > 0:
        result = controller.engine.apply_offline(args.offline)
        offline = {"summary": result.summary(), "elapsed": format_duration(args.offline)}

    completion = controller.run(max_ticks=args.max_ticks)
    if completion is None:
        completion = controller.stop()

    if args.json:
        payload = completion.to_dict()
        if offline is not None:
            payload["offline"] = offline
        print(json.dumps(payload, sort_keys=True, default=str))
    else:
        _print_summary(completion, offline)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
