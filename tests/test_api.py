"""Tests for the composable API helpers and the command-line entry point."""

from __future__ import annotations

import json

from jstrace.api import console_output, dump_trace, trace_source, trace_to_json
from jstrace.cli import main

SOURCE = 'let greeting = "hi";\nconsole.log(greeting);\n'


class TestTraceSource:
    def test_keyword_config(self):
        result = trace_source("while (true) {}", max_steps=30)
        assert "(30 steps)" in result.error

    def test_truncation_keyword(self):
        result = trace_source("for (let i = 0; i < 50; i++) {}", max_trace_steps=4)
        assert len(result.steps) == 5


class TestRendering:
    def test_json_uses_camel_case(self):
        payload = json.loads(trace_to_json(trace_source(SOURCE)))
        step = payload["steps"][-1]
        assert step["consoleOutput"] == ["hi"]
        assert step["eventLoopPhase"] == "executing"
        assert "callStack" in step and "memoryHeap" in step
        assert payload["error"] is None

    def test_json_handles_escaped_emoji(self):
        source = "const s = '\\uD83D\\uDE00';\nconsole.log(s);"
        payload = json.loads(trace_to_json(trace_source(source)))
        assert payload["steps"][-1]["consoleOutput"] == ["\U0001F600"]

    def test_text_dump_lists_steps_and_console(self):
        text = dump_trace(trace_source(SOURCE))
        assert "Program execution started" in text
        assert 'Declared let greeting = "hi"' in text
        assert "═══ Console ═══\nhi" in text

    def test_text_dump_shows_error(self):
        text = dump_trace(trace_source("nope;"))
        assert text.endswith("Error: Runtime Error: nope is not defined")

    def test_console_output_of_empty_trace(self):
        assert console_output(trace_source("")) == []


class TestCli:
    def test_runs_file(self, tmp_path, capsys):
        program = tmp_path / "hello.js"
        program.write_text(SOURCE)
        assert main([str(program)]) == 0
        out = capsys.readouterr().out
        assert "console.log(\"hi\")" in out

    def test_json_flag(self, tmp_path, capsys):
        program = tmp_path / "hello.js"
        program.write_text(SOURCE)
        main([str(program), "--json"])
        payload = json.loads(capsys.readouterr().out)
        assert payload["steps"][0]["type"] == "start"

    def test_error_exit_code(self, tmp_path, capsys):
        program = tmp_path / "broken.js"
        program.write_text("missing();")
        assert main([str(program)]) == 1
        assert "missing is not defined" in capsys.readouterr().out

    def test_demo_program(self, capsys):
        assert main([]) == 0
        out = capsys.readouterr().out
        assert "Using built-in demo" in out
        assert "factorial: 24" in out
