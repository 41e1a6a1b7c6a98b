"""Registry and tick loop for timed activities."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Collection, Dict, Iterable, List, Mapping, Optional

from ..actions.base import GameEvent
from ..admin_log import AdminEventLog
from ..game_data import GameData
from ..runtime.telemetry import Metrics
from ..state import GameState
from .base import Process, ProcessConfig, ProcessHandler, ProcessKind, ProcessStatus, coerce_process_kind
from .handlers import default_handlers
from .registry import ProcessRegistry

if TYPE_CHECKING:
    from ..runtime.route_rolls import RouteRollCache


@dataclass
class ProcessTickResult:
    completed: List[Process] = field(default_factory=list)
    failed: List[Process] = field(default_factory=list)
    events: List[GameEvent] = field(default_factory=list)

    @property
    def resolved(self) -> int:
        return len(self.completed) + len(self.failed)


class ProcessManager:
    """Owns every running process.

    Starting a process never raises for unmet preconditions; ``None`` is
    returned and the reason is kept in ``last_refusal`` and the admin log.
    """

    def __init__(
        self,
        config: ProcessConfig | None = None,
        *,
        rolls: "RouteRollCache | None" = None,
        handlers: Optional[List[ProcessHandler]] = None,
        log: AdminEventLog | None = None,
        metrics: Metrics | None = None,
    ) -> None:
        self.config = config or ProcessConfig()
        if handlers is None:
            handlers = default_handlers(self.config, rolls)
        self.registry = ProcessRegistry(handlers)
        self.log = log
        self.metrics = metrics
        self.last_refusal: Optional[str] = None
        self._processes: Dict[str, Process] = {}
        self._counter = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def _refuse(self, kind: str, reason: str, state: GameState) -> None:
        self.last_refusal = reason
        if self.log is not None:
            self.log.log_refusal(minute=state.time.total_minutes, kind=kind, reason=reason)
        if self.metrics is not None:
            self.metrics.inc(f"processes.refused.{kind}")
        return None

    def start_process(
        self,
        kind: ProcessKind | str,
        payload: Mapping[str, Any],
        state: GameState,
        game_data: GameData | None = None,
    ) -> Optional[Process]:
        self.last_refusal = None
        process_kind = coerce_process_kind(kind)
        handler = self.registry.get(process_kind) if process_kind is not None else None
        if process_kind is None or handler is None:
            return self._refuse(str(kind), f"unknown process kind {kind}", state)
        if len(self.active_processes(process_kind)) >= handler.max_concurrent(state):
            return self._refuse(process_kind.value, "at capacity", state)
        reason = handler.refusal(payload, state, game_data)
        if reason:
            return self._refuse(process_kind.value, reason, state)
        slot_ref = handler.slot_for(payload, state)
        if not state.processes.is_free(slot_ref):
            return self._refuse(process_kind.value, f"slot {slot_ref} is busy", state)
        duration = float(handler.duration_for(payload, state, game_data))
        if duration <= 0:
            return self._refuse(process_kind.value, "duration must be positive", state)

        self._counter += 1
        process = Process(
            process_id=f"{process_kind.value}_{self._counter}",
            kind=process_kind,
            slot_ref=slot_ref,
            start_time=state.time.total_minutes,
            duration=duration,
        )
        handler.initialize(process, payload, state, game_data)
        state.processes.occupy(slot_ref, process.process_id)
        self._processes[process.process_id] = process
        if self.log is not None:
            self.log.log_process(
                minute=state.time.total_minutes,
                process_id=process.process_id,
                kind=process_kind.value,
                outcome="started",
                slot=slot_ref,
            )
        if self.metrics is not None:
            self.metrics.inc(f"processes.started.{process_kind.value}")
        return process

    def tick(
        self,
        elapsed: float,
        state: GameState,
        game_data: GameData | None = None,
        *,
        kinds: Collection[ProcessKind] | None = None,
    ) -> ProcessTickResult:
        result = ProcessTickResult()
        if elapsed <= 0:
            return result
        ordered = [
            process
            for process in self.active_processes()
            if kinds is None or process.kind in kinds
        ]
        # every advancement is computed before any resolution writes land
        planned = []
        for process in ordered:
            handler = self.registry.get(process.kind)
            planned.append((process, handler, handler.advance(process, elapsed, state, game_data)))

        for process, handler, advance in planned:
            handler.commit(process, advance, state)
            if process.is_due:
                self._resolve(process, handler, state, game_data, result, failure=None)
            elif advance.failure:
                self._resolve(process, handler, state, game_data, result, failure=advance.failure)
            elif advance.finished_early:
                process.data["end_reason"] = advance.finished_early
                self._resolve(process, handler, state, game_data, result, failure=None)
        return result

    def _resolve(
        self,
        process: Process,
        handler: ProcessHandler,
        state: GameState,
        game_data: GameData | None,
        result: ProcessTickResult,
        *,
        failure: Optional[str],
    ) -> None:
        try:
            if failure is None:
                events = handler.complete(process, state, game_data)
                process.status = ProcessStatus.COMPLETED
                result.completed.append(process)
            else:
                events = handler.fail(process, failure, state)
                process.status = ProcessStatus.FAILED
                result.failed.append(process)
        except Exception as exc:
            failure = f"error: {exc}"
            process.status = ProcessStatus.FAILED
            result.failed.append(process)
            events = [
                GameEvent(
                    type="process_error",
                    description=f"{process.process_id} failed to resolve: {exc}",
                    data={"process_id": process.process_id, "kind": process.kind.value},
                    timestamp=state.time.total_minutes,
                    importance="high",
                )
            ]
        result.events.extend(events)
        state.processes.release(process.slot_ref)
        self._processes.pop(process.process_id, None)
        outcome = process.status.value if failure is None else f"failed:{failure}"
        if self.log is not None:
            self.log.log_process(
                minute=state.time.total_minutes,
                process_id=process.process_id,
                kind=process.kind.value,
                outcome=outcome,
            )
        if self.metrics is not None:
            self.metrics.inc(f"processes.{process.status.value}.{process.kind.value}")

    def cancel_process(self, process_id: str, state: GameState) -> bool:
        process = self._processes.get(process_id)
        if process is None:
            return False
        handler = self.registry.get(process.kind)
        handler.cancel(process, state)
        process.status = ProcessStatus.CANCELLED
        state.processes.release(process.slot_ref)
        del self._processes[process_id]
        if self.log is not None:
            self.log.log_process(
                minute=state.time.total_minutes,
                process_id=process_id,
                kind=process.kind.value,
                outcome="cancelled",
            )
        return True

    def restore(self, processes: Iterable[Process], state: GameState) -> int:
        """Re-register running processes read back from a snapshot.

        Slots and plots in ``state`` that point at a process this manager
        does not know are released, so nothing stays booked forever.
        """
        restored = 0
        for process in processes:
            if process.status is not ProcessStatus.RUNNING or self.registry.get(process.kind) is None:
                continue
            self._processes[process.process_id] = process
            state.processes.occupy(process.slot_ref, process.process_id)
            suffix = process.process_id.rpartition("_")[2]
            if suffix.isdigit():
                self._counter = max(self._counter, int(suffix))
            restored += 1
        for slot_ref, process_id in sorted(state.processes.occupied.items()):
            if process_id not in self._processes:
                state.processes.release(slot_ref)
        for plot in state.farm.ordered():
            if plot.process_id is not None and plot.process_id not in self._processes:
                plot.clear()
        return restored

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    def get(self, process_id: str) -> Optional[Process]:
        return self._processes.get(process_id)

    def active_processes(self, kind: ProcessKind | str | None = None) -> List[Process]:
        wanted = coerce_process_kind(kind) if kind is not None else None
        processes = [
            process
            for process in self._processes.values()
            if wanted is None or process.kind == wanted
        ]
        return sorted(processes, key=lambda process: (process.start_time, process.process_id))

    def has_active(self, kind: ProcessKind | str) -> bool:
        return bool(self.active_processes(kind))

    def __len__(self) -> int:
        return len(self._processes)

    def stats(self, state: GameState) -> Dict[str, Any]:
        by_type: Dict[str, Dict[str, int]] = {}
        for kind in self.registry.kinds():
            handler = self.registry.get(kind)
            by_type[kind.value] = {
                "active": len(self.active_processes(kind)),
                "max": handler.max_concurrent(state),
            }
        return {
            "total_registered": len(self.registry),
            "total_active": len(self._processes),
            "by_type": by_type,
        }


__all__ = ["ProcessManager", "ProcessTickResult"]
