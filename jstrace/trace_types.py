"""Trace data types for step-by-step execution replay.

Every model is frozen and stores sequences as tuples, so a recorded step
cannot be mutated after the tracer appends it. Field names serialize to
camelCase (``consoleOutput``, ``webApis``...) for the playback consumer.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .vm_types import EventLoopPhase


class StepType(str, Enum):
    """Kinds of trace step."""

    START = "start"
    END = "end"
    VARIABLE = "variable"
    ASSIGNMENT = "assignment"
    FUNCTION = "function"
    CALL = "call"
    RETURN = "return"
    RETURNING = "returning"
    NATIVE = "native"
    CONDITIONAL = "conditional"
    LOOP = "loop"
    CONSOLE = "console"
    WEBAPI = "webapi"
    PROMISE = "promise"
    MICROTASK = "microtask"
    EVENTLOOP = "eventloop"
    TRYCATCH = "trycatch"
    THROW = "throw"
    ERROR = "error"
    WARNING = "warning"


class _Snapshot(BaseModel):
    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )


class CallFrameSnapshot(_Snapshot):
    function_name: str
    line: int | None = None


class BindingSnapshot(_Snapshot):
    name: str
    kind: str
    value: str


class ScopeSnapshot(_Snapshot):
    name: str
    kind: str
    bindings: tuple[BindingSnapshot, ...] = ()


class WebApiSnapshot(_Snapshot):
    id: int
    kind: str
    label: str
    delay_ms: int | float
    registration_order: int


class QueueItemSnapshot(_Snapshot):
    label: str


class HeapRecordSnapshot(_Snapshot):
    id: int
    label: str
    kind: str
    value: str


class TraceStep(_Snapshot):
    """One immutable snapshot of the whole runtime at one instant."""

    line: int | None = None
    type: StepType
    description: str
    call_stack: tuple[CallFrameSnapshot, ...] = ()
    scopes: tuple[ScopeSnapshot, ...] = ()
    console_output: tuple[str, ...] = ()
    web_apis: tuple[WebApiSnapshot, ...] = ()
    callback_queue: tuple[QueueItemSnapshot, ...] = ()
    microtask_queue: tuple[QueueItemSnapshot, ...] = ()
    memory_heap: tuple[HeapRecordSnapshot, ...] = ()
    event_loop_phase: EventLoopPhase = EventLoopPhase.EXECUTING


class TraceResult(_Snapshot):
    """Complete outcome of one run: the ordered steps and the terminal error."""

    steps: tuple[TraceStep, ...] = ()
    error: str | None = None

    @property
    def final_step(self) -> TraceStep | None:
        return self.steps[-1] if self.steps else None
