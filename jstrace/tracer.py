"""Tracer — records immutable snapshots of the runtime state."""

from __future__ import annotations

from typing import Any

from .display import format_console_args, format_value
from .environment import EnvironmentArena
from .trace_types import (
    BindingSnapshot,
    CallFrameSnapshot,
    HeapRecordSnapshot,
    QueueItemSnapshot,
    ScopeSnapshot,
    StepType,
    TraceStep,
    WebApiSnapshot,
)
from .vm_types import RuntimeState


class Tracer:
    """Append-only recorder of ``TraceStep`` snapshots.

    ``add_step`` renders every piece of live state into frozen pydantic
    models on the spot. Nothing in a recorded step refers back to the
    interpreter's mutable structures, so later mutation cannot rewrite
    history.
    """

    def __init__(self, state: RuntimeState, arena: EnvironmentArena):
        self.state = state
        self.arena = arena
        self._steps: list[TraceStep] = []

    @property
    def steps(self) -> list[TraceStep]:
        return list(self._steps)

    def __len__(self) -> int:
        return len(self._steps)

    def add_step(
        self,
        line: int | None,
        step_type: StepType,
        description: str,
        env_id: int | None = None,
    ) -> TraceStep:
        step = TraceStep(
            line=line,
            type=step_type,
            description=description,
            call_stack=self._call_stack(),
            scopes=self._scopes(self.arena.global_id if env_id is None else env_id),
            console_output=tuple(self.state.console_output),
            web_apis=self._web_apis(),
            callback_queue=tuple(
                QueueItemSnapshot(label=item.label) for item in self.state.callback_queue
            ),
            microtask_queue=tuple(
                QueueItemSnapshot(label=item.label) for item in self.state.microtask_queue
            ),
            memory_heap=self._heap(),
            event_loop_phase=self.state.phase,
        )
        self._steps.append(step)
        return step

    def log_console(self, args: list[Any]) -> str:
        text = format_console_args(args)
        self.state.console_output.append(text)
        return text

    def _call_stack(self) -> tuple[CallFrameSnapshot, ...]:
        return tuple(
            CallFrameSnapshot(function_name=frame.function_name, line=frame.line)
            for frame in self.state.call_stack
        )

    def _scopes(self, env_id: int) -> tuple[ScopeSnapshot, ...]:
        return tuple(
            ScopeSnapshot(
                name=env.name,
                kind=env.kind.value,
                bindings=tuple(
                    BindingSnapshot(
                        name=name, kind=binding.kind.value, value=format_value(binding.value)
                    )
                    for name, binding in env.bindings.items()
                ),
            )
            for env in self.arena.chain(env_id)
        )

    def _web_apis(self) -> tuple[WebApiSnapshot, ...]:
        return tuple(
            WebApiSnapshot(
                id=entry.timer_id,
                kind=entry.kind,
                label=entry.label,
                delay_ms=entry.delay_ms,
                registration_order=entry.registration_order,
            )
            for entry in self.state.web_apis
        )

    def _heap(self) -> tuple[HeapRecordSnapshot, ...]:
        return tuple(
            HeapRecordSnapshot(
                id=record.heap_id,
                label=record.label,
                kind=record.kind,
                value=format_value(record.value),
            )
            for record in self.state.heap.values()
        )
