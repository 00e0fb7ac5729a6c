"""Event loop simulation run after the synchronous program finishes."""

from __future__ import annotations

import logging

from .trace_types import StepType
from .vm_types import UNDEFINED, EventLoopPhase, WebApiEntry

logger = logging.getLogger(__name__)


class EventLoop:
    """Drains the microtask queue, then releases timers one callback at a time.

    Timers carry no clock: a pending timer is released by registration
    order, so ``setTimeout(f, 100)`` registered before ``setTimeout(g, 0)``
    still runs first. The loop keeps going while any queue or Web API
    entry remains, so timers registered from callbacks are picked up too.
    """

    def __init__(self, interpreter):
        self.interpreter = interpreter
        self.ctx = interpreter.ctx
        self.state = interpreter.ctx.state

    def _set_phase(self, phase: EventLoopPhase) -> None:
        if self.state.phase != phase:
            logger.debug("Event loop phase: %s -> %s", self.state.phase.value, phase.value)
        self.state.phase = phase

    def run(self) -> None:
        if not self.ctx.has_async_work:
            return
        self.ctx.record(
            None,
            StepType.EVENTLOOP,
            "Synchronous code completed — Event Loop checking queues",
        )
        while self.ctx.has_async_work:
            self.drain_microtasks()
            self.release_timers()
            if self.state.callback_queue:
                self.run_macrotask()
        self._set_phase(EventLoopPhase.IDLE)
        self.ctx.record(None, StepType.EVENTLOOP, "Event Loop: All queues processed")

    def drain_microtasks(self) -> None:
        """Run microtasks until the queue is empty, including ones queued meanwhile."""
        while self.state.microtask_queue:
            self.ctx.tick()
            self._set_phase(EventLoopPhase.MICROTASKS)
            item = self.state.microtask_queue.popleft()
            self.ctx.stats.microtasks += 1
            self.ctx.record(
                None,
                StepType.MICROTASK,
                f"Event Loop: Processing microtask — {item.label}",
            )
            item.job()

    def release_timers(self) -> None:
        """Move every pending timer's callback into the callback queue."""
        if not self.state.web_apis:
            return
        self._set_phase(EventLoopPhase.MACROTASKS)
        pending = sorted(self.state.web_apis, key=lambda entry: entry.registration_order)
        self.state.web_apis.clear()
        for entry in pending:
            self.ctx.enqueue_macrotask(entry.label, self._timer_job(entry))
            self.ctx.record(
                None,
                StepType.EVENTLOOP,
                f"Timer done: {entry.label} — callback moved from Web APIs → Callback Queue",
            )

    def _timer_job(self, entry: WebApiEntry):
        global_id = self.interpreter.arena.global_id

        def job() -> None:
            self.interpreter.call_function(
                entry.callback, UNDEFINED, list(entry.args), None, global_id
            )

        return job

    def run_macrotask(self) -> None:
        """Run one callback from the queue, then every microtask it produced."""
        self.ctx.tick()
        self._set_phase(EventLoopPhase.MACROTASKS)
        item = self.state.callback_queue.popleft()
        self.ctx.stats.macrotasks += 1
        self.ctx.record(
            None,
            StepType.EVENTLOOP,
            "Event Loop: Call stack is empty — processing callback from queue",
        )
        item.job()
        self.drain_microtasks()
