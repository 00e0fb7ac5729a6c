"""Tests for the execute_code driver: failure boundary, limits and truncation."""

from __future__ import annotations

from jstrace import RunConfig, execute_code
from jstrace.run import truncate_trace
from jstrace.trace_types import StepType


class TestEmptyAndInvalidInput:
    def test_empty_source_yields_empty_trace(self):
        result = execute_code("")
        assert result.steps == ()
        assert result.error is None

    def test_blank_source_yields_empty_trace(self):
        assert execute_code("   \n\t ").steps == ()

    def test_syntax_error_has_no_steps(self):
        result = execute_code("let = ;")
        assert result.steps == ()
        assert result.error.startswith("Syntax Error on line 1")

    def test_early_error_has_no_steps(self):
        result = execute_code("let a = 1;\nlet a = 2;\nconsole.log(a);")
        assert result.steps == ()
        assert result.error == (
            "Syntax Error on line 2, column 5: Identifier 'a' has already been declared"
        )

    def test_top_level_return_is_rejected(self):
        result = execute_code('console.log("1");\nreturn;\nconsole.log("2");')
        assert result.steps == ()
        assert result.error == "Syntax Error on line 2, column 1: 'return' outside of function"


class TestRuntimeErrors:
    def test_partial_trace_is_kept(self):
        result = execute_code('console.log("before");\nundefinedFunction();')
        assert result.error == "Runtime Error: undefinedFunction is not defined"
        assert result.steps[0].type == StepType.START
        assert result.steps[-1].type == StepType.ERROR
        assert result.steps[-1].console_output == ("before",)

    def test_error_inside_call_keeps_frame(self):
        result = execute_code("function broken() {\n  return nope;\n}\nbroken();")
        assert result.steps[-1].type == StepType.ERROR
        assert [frame.function_name for frame in result.steps[-1].call_stack] == ["broken"]


class TestStepLimit:
    def test_infinite_loop_stops_at_ceiling(self):
        result = execute_code("while (true) {}")
        assert result.error == (
            "Execution limit reached (2000 steps). "
            "Possible infinite loop or code too complex."
        )
        assert result.steps[-1].type == StepType.ERROR

    def test_custom_ceiling(self):
        result = execute_code("for (;;) {}", RunConfig(max_steps=50))
        assert "(50 steps)" in result.error

    def test_event_loop_work_counts_toward_ceiling(self):
        source = "function again() { setTimeout(again, 0); }\nagain();"
        result = execute_code(source, RunConfig(max_steps=100))
        assert result.error.startswith("Execution limit reached (100 steps)")


class TestTruncation:
    def test_truncate_appends_warning(self):
        steps = list(execute_code("let a = 1;\nlet b = 2;\nlet c = 3;").steps)
        truncated = truncate_trace(steps, 2)
        assert len(truncated) == 3
        assert truncated[:2] == steps[:2]
        assert truncated[-1].type == StepType.WARNING
        assert truncated[-1].description.startswith("Trace truncated at 2 steps")

    def test_short_trace_is_untouched(self):
        steps = list(execute_code("let a = 1;").steps)
        assert truncate_trace(steps, 100) == steps

    def test_config_enables_truncation(self):
        source = "for (let i = 0; i < 100; i++) {}"
        result = execute_code(source, RunConfig(max_trace_steps=10))
        assert len(result.steps) == 11
        assert result.steps[-1].type == StepType.WARNING
        assert result.error is None

    def test_error_survives_truncation(self):
        result = execute_code("while (true) {}", RunConfig(max_trace_steps=5))
        assert result.steps[-1].type == StepType.WARNING
        assert result.error.startswith("Execution limit reached")
