"""Tests for the recorded trace: immutability, stack balance and snapshots."""

from __future__ import annotations

import pydantic
import pytest

from jstrace import execute_code
from jstrace.trace_types import StepType, TraceResult

PROGRAM = """\
const items = [1, 2];
function total(list) {
  let sum = 0;
  for (const n of list) {
    sum += n;
  }
  return sum;
}
items.push(3);
console.log(total(items));
setTimeout(() => console.log("later"), 0);
"""


def _steps_of(result: TraceResult, step_type: StepType) -> list:
    return [step for step in result.steps if step.type == step_type]


class TestImmutability:
    def test_steps_are_frozen(self):
        step = execute_code(PROGRAM).steps[0]
        with pytest.raises(pydantic.ValidationError):
            step.description = "changed"

    def test_earlier_snapshots_do_not_follow_later_mutation(self):
        result = execute_code(PROGRAM)
        declared = next(
            step for step in result.steps if step.description.startswith("Declared const items")
        )
        heap_values = [record.value for record in declared.memory_heap]
        assert heap_values == ["[1, 2]"]
        final_heap = [record.value for record in result.steps[-1].memory_heap]
        assert "[1, 2, 3]" in final_heap

    def test_console_snapshot_grows_monotonically(self):
        result = execute_code(PROGRAM)
        lengths = [len(step.console_output) for step in result.steps]
        assert lengths == sorted(lengths)
        assert result.steps[-1].console_output == ("6", "later")


class TestCallStack:
    def test_call_and_return_balance(self):
        result = execute_code(PROGRAM)
        calls = _steps_of(result, StepType.CALL)
        returns = _steps_of(result, StepType.RETURN)
        assert len(calls) == len(returns)

    def test_stack_depth_matches_call_steps(self):
        result = execute_code(PROGRAM)
        depth = 0
        for step in result.steps:
            if step.type == StepType.CALL:
                depth += 1
            elif step.type == StepType.RETURN:
                depth -= 1
            assert len(step.call_stack) == depth

    def test_program_body_runs_with_empty_stack(self):
        result = execute_code(PROGRAM)
        assert result.steps[0].type == StepType.START
        assert result.steps[0].call_stack == ()

    def test_frame_names_and_return_description(self):
        result = execute_code(PROGRAM)
        call = next(step for step in _steps_of(result, StepType.CALL) if "total" in step.description)
        assert call.description == "Calling total([1, 2, 3])"
        assert call.call_stack[-1].function_name == "total"
        assert "total() returned 6" in [
            step.description for step in _steps_of(result, StepType.RETURN)
        ]

    def test_thrown_value_unwinds_frames(self):
        source = """\
function inner() { throw "x"; }
function outer() { inner(); }
try {
  outer();
} catch (e) {}
"""
        result = execute_code(source)
        returns = [step.description for step in _steps_of(result, StepType.RETURN)]
        assert returns == ['inner() threw "x"', 'outer() threw "x"']


class TestScopes:
    def test_scope_chain_inside_function(self):
        result = execute_code(PROGRAM)
        step = next(
            step for step in result.steps if step.description == "Declared let sum = 0"
        )
        assert [scope.name for scope in step.scopes] == ["total", "Global"]
        names = [binding.name for binding in step.scopes[0].bindings]
        assert names == ["list", "sum"]

    def test_hoisted_function_step(self):
        result = execute_code(PROGRAM)
        assert _steps_of(result, StepType.FUNCTION)[0].description == (
            "Function total declared (hoisted)"
        )

    def test_native_steps_show_result(self):
        result = execute_code(PROGRAM)
        assert "items.push(3) → 3" in [
            step.description for step in _steps_of(result, StepType.NATIVE)
        ]


class TestDeterminism:
    def test_same_program_same_trace(self):
        source = "const r = Math.random();\nconsole.log(r);\n" + PROGRAM
        first = execute_code(source)
        second = execute_code(source)
        assert first == second

    def test_runs_do_not_share_globals(self):
        execute_code("Math.extra = 1;")
        result = execute_code("console.log(Math.extra);")
        assert result.steps[-1].console_output == ("undefined",)
