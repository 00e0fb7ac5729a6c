"""Tests for promises, timers and the event-loop drain order."""

from __future__ import annotations

from jstrace import execute_code
from jstrace.api import console_output
from jstrace.trace_types import StepType
from jstrace.vm_types import EventLoopPhase


def _console(source: str) -> list[str]:
    result = execute_code(source)
    assert result.error is None, result.error
    return console_output(result)


class TestOrdering:
    def test_sync_then_microtask_then_timer(self):
        source = """\
console.log("1");
setTimeout(() => console.log("2"), 0);
Promise.resolve().then(() => console.log("3"));
console.log("4");
"""
        assert _console(source) == ["1", "4", "3", "2"]

    def test_chained_then_runs_inside_microtask_drain(self):
        source = """\
Promise.resolve()
  .then(() => console.log("a"))
  .then(() => console.log("b"));
console.log("c");
"""
        assert _console(source) == ["c", "a", "b"]

    def test_timers_fire_in_registration_order(self):
        source = """\
setTimeout(() => console.log("slow"), 100);
setTimeout(() => console.log("fast"), 0);
"""
        assert _console(source) == ["slow", "fast"]

    def test_microtasks_drain_between_macrotasks(self):
        source = """\
setTimeout(() => {
  console.log("t1");
  Promise.resolve().then(() => console.log("m1"));
  setTimeout(() => console.log("t3"), 0);
}, 0);
setTimeout(() => console.log("t2"), 0);
"""
        assert _console(source) == ["t1", "m1", "t2", "t3"]

    def test_queue_microtask_beats_timers(self):
        source = """\
setTimeout(() => console.log("timeout"), 0);
queueMicrotask(() => console.log("micro"));
console.log("sync");
"""
        assert _console(source) == ["sync", "micro", "timeout"]

    def test_timer_forwards_extra_arguments(self):
        assert _console("setTimeout((a, b) => console.log(a + b), 0, 2, 3);") == ["5"]


class TestPromises:
    def test_executor_runs_synchronously(self):
        source = """\
const p = new Promise((resolve) => {
  console.log("executor");
  setTimeout(() => resolve("done"), 0);
});
p.then((v) => console.log("got", v));
console.log("sync");
"""
        assert _console(source) == ["executor", "sync", "got done"]

    def test_catch_then_continues_chain(self):
        source = """\
Promise.reject(new Error("nope"))
  .catch((e) => console.log("handled", e.message))
  .then(() => console.log("after"));
"""
        assert _console(source) == ["handled nope", "after"]

    def test_returned_promise_is_adopted(self):
        source = """\
Promise.resolve(1)
  .then((v) => Promise.resolve(v + 4))
  .then((v) => console.log(v));
"""
        assert _console(source) == ["5"]

    def test_throwing_handler_rejects_derived_promise(self):
        source = """\
Promise.resolve()
  .then(() => { throw "bad"; })
  .then(() => console.log("skipped"))
  .catch((e) => console.log("caught", e));
"""
        assert _console(source) == ["caught bad"]

    def test_throwing_executor_rejects(self):
        source = """\
new Promise(() => { throw "early"; }).catch((e) => console.log(e));
"""
        assert _console(source) == ["early"]

    def test_finally_passes_value_through(self):
        source = """\
Promise.resolve(7)
  .finally(() => console.log("finally"))
  .then((v) => console.log(v));
"""
        assert _console(source) == ["finally", "7"]

    def test_first_settlement_wins(self):
        source = """\
new Promise((resolve, reject) => {
  resolve("first");
  reject("second");
}).then((v) => console.log(v), (e) => console.log("rejected", e));
"""
        assert _console(source) == ["first"]

    def test_promise_without_new_fails(self):
        result = execute_code("Promise(() => {});")
        assert result.error == (
            "Runtime Error: Promise constructor cannot be invoked without 'new'"
        )


class TestTraceOfEventLoop:
    def test_phases_are_recorded(self):
        result = execute_code(
            'setTimeout(() => console.log("t"), 0);\n'
            'Promise.resolve().then(() => console.log("m"));'
        )
        phases = [step.event_loop_phase for step in result.steps]
        assert EventLoopPhase.MICROTASKS in phases
        assert EventLoopPhase.MACROTASKS in phases
        assert result.steps[-1].event_loop_phase == EventLoopPhase.IDLE
        assert result.steps[-1].description == "Event Loop: All queues processed"

    def test_synchronous_program_has_no_event_loop_steps(self):
        result = execute_code('console.log("only sync");')
        assert all(step.type != StepType.EVENTLOOP for step in result.steps)
        assert result.steps[-1].type == StepType.END
        assert result.steps[-1].event_loop_phase == EventLoopPhase.EXECUTING

    def test_timer_appears_in_web_apis_until_released(self):
        result = execute_code("setTimeout(() => {}, 250);")
        registered = next(step for step in result.steps if step.type == StepType.WEBAPI)
        assert registered.description == "setTimeout(250ms) — added to Web APIs"
        assert [api.label for api in registered.web_apis] == ["setTimeout(250ms)"]
        assert registered.web_apis[0].delay_ms == 250
        released = next(
            step for step in result.steps if step.description.startswith("Timer done")
        )
        assert released.web_apis == ()
        assert [item.label for item in released.callback_queue] == ["setTimeout(250ms)"]

    def test_microtask_queue_snapshot(self):
        result = execute_code("Promise.resolve().then(() => 1);")
        queued = next(step for step in result.steps if step.type == StepType.MICROTASK)
        assert queued.description == ".then() callback added to Microtask Queue"
        assert [item.label for item in queued.microtask_queue] == [".then() callback"]

    def test_uncaught_error_in_timer_ends_run(self):
        result = execute_code('setTimeout(() => { throw new Error("late"); }, 0);')
        assert result.error == "Uncaught Error: late"
        assert result.steps[-1].type == StepType.ERROR
