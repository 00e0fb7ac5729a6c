"""Tests for value rendering in trace snapshots and console output."""

from __future__ import annotations

import math

from jstrace.display import format_console_args, format_value
from jstrace.properties import make_error
from jstrace.vm_types import (
    UNDEFINED,
    JSArray,
    JSObject,
    NativeFunction,
    PromiseRecord,
    PromiseState,
)


def _native(name: str) -> NativeFunction:
    return NativeFunction(name=name, impl=lambda call: UNDEFINED)


class TestPrimitives:
    def test_strings_are_quoted(self):
        assert format_value("hi") == '"hi"'

    def test_numbers_use_js_formatting(self):
        assert format_value(2.0) == "2"
        assert format_value(math.inf) == "Infinity"

    def test_nullish_and_booleans(self):
        assert format_value(UNDEFINED) == "undefined"
        assert format_value(None) == "null"
        assert format_value(False) == "false"


class TestCompound:
    def test_array(self):
        assert format_value(JSArray(elements=[1, "a", None])) == '[1, "a", null]'

    def test_object_shows_three_keys(self):
        obj = JSObject(properties={"a": 1, "b": 2, "c": 3, "d": 4})
        assert format_value(obj) == "{a: 1, b: 2, c: 3, ...}"

    def test_function(self):
        assert format_value(_native("greet")) == "ƒ greet()"

    def test_error(self):
        assert format_value(make_error("TypeError", "bad")) == "TypeError: bad"

    def test_promise_states(self):
        pending = PromiseRecord(promise_id=1)
        fulfilled = PromiseRecord(promise_id=2, state=PromiseState.FULFILLED, value=5)
        assert format_value(pending) == "Promise {<pending>}"
        assert format_value(fulfilled) == "Promise {<fulfilled>: 5}"

    def test_cycle_is_marked(self):
        obj = JSObject()
        obj.set_own("self", obj)
        assert format_value(obj) == "{self: [Circular]}"


class TestConsoleArgs:
    def test_top_level_strings_are_bare(self):
        assert format_console_args(["sum:", 3]) == "sum: 3"

    def test_nested_strings_stay_quoted(self):
        assert format_console_args([JSArray(elements=["x"])]) == '["x"]'
