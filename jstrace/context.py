"""Per-run context threaded through interpretation and the event loop."""

from __future__ import annotations

import logging
import random
from typing import Any, Callable

from . import constants
from .environment import EnvironmentArena
from .errors import StackDepthExceeded, StepLimitExceeded
from .run_types import RunConfig, RunStats
from .trace_types import StepType, TraceStep
from .tracer import Tracer
from .vm_types import (
    CallFrame,
    HeapRecord,
    JSArray,
    JSObject,
    PromiseRecord,
    QueueItem,
    RuntimeState,
    WebApiEntry,
)

logger = logging.getLogger(__name__)


class RunContext:
    """Owns every mutable piece of one run.

    Nothing here is module-level, so two runs never share counters,
    queues, environments or the random stream.
    """

    def __init__(self, config: RunConfig, globals_table: dict[str, Any] | None = None):
        self.config = config
        self.state = RuntimeState()
        self.arena = EnvironmentArena(globals_table)
        self.tracer = Tracer(self.state, self.arena)
        self.stats = RunStats()
        self.rng = random.Random(config.random_seed)
        self.step_count = 0
        self._next_heap_id = 1
        self._next_timer_id = 1
        self._next_promise_id = 1
        self._registrations = 0

    # ── Limits ───────────────────────────────────────────────────

    def tick(self) -> None:
        """Count one unit of work; fail once the ceiling is reached."""
        if self.step_count >= self.config.max_steps:
            raise StepLimitExceeded(self.config.max_steps)
        self.step_count += 1

    def push_frame(self, function_name: str, line: int | None) -> None:
        if len(self.state.call_stack) >= self.config.max_call_depth:
            raise StackDepthExceeded(len(self.state.call_stack))
        self.state.call_stack.append(CallFrame(function_name=function_name, line=line))
        self.stats.calls += 1
        self.stats.max_depth = max(self.stats.max_depth, len(self.state.call_stack))

    def pop_frame(self) -> CallFrame:
        return self.state.call_stack.pop()

    # ── Recording ────────────────────────────────────────────────

    def record(
        self,
        line: int | None,
        step_type: StepType,
        description: str,
        env_id: int | None = None,
    ) -> TraceStep:
        return self.tracer.add_step(line, step_type, description, env_id)

    # ── Heap ─────────────────────────────────────────────────────

    def allocate_heap(self, value: Any, label: str) -> None:
        """Give *value* a heap record the first time it is bound to a name."""
        if not isinstance(value, (JSObject, JSArray)) or value.heap_id is not None:
            return
        value.heap_id = self._next_heap_id
        self._next_heap_id += 1
        kind = (
            constants.HEAP_KIND_ARRAY
            if isinstance(value, JSArray)
            else constants.HEAP_KIND_OBJECT
        )
        self.state.heap[value.heap_id] = HeapRecord(
            heap_id=value.heap_id, label=label, kind=kind, value=value
        )

    # ── Async bookkeeping ────────────────────────────────────────

    def new_promise(self) -> PromiseRecord:
        promise = PromiseRecord(promise_id=self._next_promise_id)
        self._next_promise_id += 1
        return promise

    def register_timer(
        self, callback: Any, delay_ms: int | float, args: list[Any], label: str
    ) -> WebApiEntry:
        entry = WebApiEntry(
            timer_id=self._next_timer_id,
            kind=constants.WEB_API_TIMER,
            label=label,
            delay_ms=delay_ms,
            registration_order=self._registrations,
            callback=callback,
            args=list(args),
        )
        self._next_timer_id += 1
        self._registrations += 1
        self.state.web_apis.append(entry)
        logger.debug("Timer %d registered: %s", entry.timer_id, label)
        return entry

    def enqueue_microtask(self, label: str, job: Callable[[], None]) -> None:
        self.state.microtask_queue.append(QueueItem(label=label, job=job))

    def enqueue_macrotask(self, label: str, job: Callable[[], None]) -> None:
        self.state.callback_queue.append(QueueItem(label=label, job=job))

    @property
    def has_async_work(self) -> bool:
        return bool(
            self.state.microtask_queue
            or self.state.callback_queue
            or self.state.web_apis
        )
