"""Promise records, reactions and microtask scheduling."""

from __future__ import annotations

import logging
from typing import Any

from . import constants
from .display import format_value
from .errors import UserThrow
from .properties import make_error
from .trace_types import StepType
from .vm_types import (
    UNDEFINED,
    NativeCall,
    NativeFunction,
    PromiseReaction,
    PromiseRecord,
    PromiseState,
    is_callable,
)

logger = logging.getLogger(__name__)


class PromiseOps:
    """Settles promises and turns reactions into microtasks.

    A promise schedules work only through its reactions: ``then`` on a
    settled promise enqueues at once, ``then`` on a pending promise waits
    until the promise settles. Running a reaction settles the derived
    promise, which in turn releases the next ``then`` in a chain.
    """

    def __init__(self, interpreter):
        self.interpreter = interpreter
        self.ctx = interpreter.ctx

    # ── Creation ─────────────────────────────────────────────────

    def resolved(self, value: Any) -> PromiseRecord:
        if isinstance(value, PromiseRecord):
            return value
        promise = self.ctx.new_promise()
        self.resolve(promise, value, None)
        return promise

    def rejected(self, reason: Any) -> PromiseRecord:
        promise = self.ctx.new_promise()
        self.reject(promise, reason, None)
        return promise

    def construct(self, executor: Any, line: int | None, env_id: int) -> PromiseRecord:
        """``new Promise(executor)``: the executor runs synchronously."""
        promise = self.ctx.new_promise()
        self.ctx.record(
            line, StepType.PROMISE, "new Promise() — executor runs synchronously", env_id
        )
        resolve_fn, reject_fn = self.resolving_functions(promise)
        try:
            self.interpreter.call_function(
                executor, UNDEFINED, [resolve_fn, reject_fn], line, env_id
            )
        except UserThrow as exc:
            self.reject(promise, exc.value, line, env_id)
        return promise

    def resolving_functions(self, promise: PromiseRecord) -> tuple[NativeFunction, NativeFunction]:
        def resolve(call: NativeCall) -> Any:
            self._record_settler(call, "resolve")
            self.resolve(promise, call.arg(0), call.line, call.env_id)
            return UNDEFINED

        def reject(call: NativeCall) -> Any:
            self._record_settler(call, "reject")
            self.reject(promise, call.arg(0), call.line, call.env_id)
            return UNDEFINED

        return (
            NativeFunction(name="resolve", impl=resolve, arity=1, records_own_step=True),
            NativeFunction(name="reject", impl=reject, arity=1, records_own_step=True),
        )

    def _record_settler(self, call: NativeCall, verb: str) -> None:
        self.ctx.record(
            call.line,
            StepType.PROMISE,
            f"{verb}({format_value(call.arg(0))}) called",
            call.env_id,
        )

    # ── Settlement ───────────────────────────────────────────────

    def resolve(
        self, promise: PromiseRecord, value: Any, line: int | None, env_id: int | None = None
    ) -> None:
        if promise.is_settled:
            return
        if value is promise:
            self.reject(
                promise,
                make_error("TypeError", "Chaining cycle detected for promise"),
                line,
                env_id,
            )
            return
        if isinstance(value, PromiseRecord):
            self._subscribe(
                value,
                PromiseReaction(
                    label=constants.ADOPT_LABEL,
                    on_fulfilled=UNDEFINED,
                    on_rejected=UNDEFINED,
                    derived=promise,
                ),
                line,
                env_id,
            )
            return
        self._settle(promise, PromiseState.FULFILLED, value, line, env_id)

    def reject(
        self, promise: PromiseRecord, reason: Any, line: int | None, env_id: int | None = None
    ) -> None:
        if promise.is_settled:
            return
        self._settle(promise, PromiseState.REJECTED, reason, line, env_id)

    def _settle(
        self,
        promise: PromiseRecord,
        state: PromiseState,
        value: Any,
        line: int | None,
        env_id: int | None,
    ) -> None:
        promise.state = state
        promise.value = value
        reactions, promise.reactions = promise.reactions, []
        logger.debug("Promise %d %s with %d reaction(s)", promise.promise_id, state.value, len(reactions))
        for reaction in reactions:
            self._enqueue(promise, reaction, line, env_id)

    # ── Reactions ────────────────────────────────────────────────

    def then(
        self,
        promise: PromiseRecord,
        on_fulfilled: Any,
        on_rejected: Any,
        label: str,
        line: int | None,
        env_id: int,
        is_finally: bool = False,
    ) -> PromiseRecord:
        derived = self.ctx.new_promise()
        reaction = PromiseReaction(
            label=label,
            on_fulfilled=on_fulfilled,
            on_rejected=on_rejected,
            derived=derived,
            is_finally=is_finally,
        )
        self._subscribe(promise, reaction, line, env_id)
        return derived

    def _subscribe(
        self,
        promise: PromiseRecord,
        reaction: PromiseReaction,
        line: int | None,
        env_id: int | None,
    ) -> None:
        if promise.is_settled:
            self._enqueue(promise, reaction, line, env_id)
            return
        promise.reactions.append(reaction)
        self.ctx.record(
            line,
            StepType.PROMISE,
            f"{reaction.label} registered — waiting for pending promise",
            env_id,
        )

    def _enqueue(
        self,
        promise: PromiseRecord,
        reaction: PromiseReaction,
        line: int | None,
        env_id: int | None,
    ) -> None:
        self.ctx.enqueue_microtask(
            reaction.label, lambda: self._run_reaction(promise, reaction)
        )
        self.ctx.record(
            line,
            StepType.MICROTASK,
            f"{reaction.label} added to Microtask Queue",
            env_id,
        )

    def _run_reaction(self, promise: PromiseRecord, reaction: PromiseReaction) -> None:
        fulfilled = promise.state == PromiseState.FULFILLED
        handler = reaction.on_fulfilled if fulfilled else reaction.on_rejected
        derived = reaction.derived
        if not is_callable(handler):
            self._pass_through(promise, derived)
            return
        if reaction.is_finally or promise.value is UNDEFINED:
            args = []
        else:
            args = [promise.value]
        try:
            result = self.interpreter.call_function(
                handler, UNDEFINED, args, None, self.ctx.arena.global_id
            )
        except UserThrow as exc:
            self.reject(derived, exc.value, None)
            return
        if reaction.is_finally:
            self._pass_through(promise, derived)
        else:
            self.resolve(derived, result, None)

    def _pass_through(self, promise: PromiseRecord, derived: PromiseRecord) -> None:
        if promise.state == PromiseState.FULFILLED:
            self.resolve(derived, promise.value, None)
        else:
            self.reject(derived, promise.value, None)
