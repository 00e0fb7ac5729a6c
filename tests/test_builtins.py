"""Tests for the native library: globals and the methods of built-in values."""

from __future__ import annotations

from jstrace import execute_code
from jstrace.api import console_output


def _log(expression: str) -> str:
    """Evaluate one expression through console.log and return the printed line."""
    result = execute_code(f"console.log({expression});")
    assert result.error is None, result.error
    return console_output(result)[0]


class TestArrayMethods:
    def test_push_pop_shift_unshift(self):
        source = """\
const a = [2, 3];
a.push(4);
a.unshift(1);
const last = a.pop();
const first = a.shift();
console.log(a, first, last);
"""
        assert console_output(execute_code(source)) == ["[2, 3] 1 4"]

    def test_default_sort_compares_strings(self):
        assert _log("[10, 9, 1].sort()") == "[1, 10, 9]"

    def test_sort_with_comparator(self):
        assert _log("[10, 9, 1].sort((a, b) => a - b)") == "[1, 9, 10]"

    def test_map_filter_reduce(self):
        assert _log("[1, 2, 3].map(n => n * 10)") == "[10, 20, 30]"
        assert _log("[1, 2, 3, 4].filter(n => n % 2 === 0)") == "[2, 4]"
        assert _log("[1, 2, 3].reduce((acc, n) => acc + n, 0)") == "6"

    def test_search_methods(self):
        assert _log("[1, 2, 3].indexOf(2)") == "1"
        assert _log("[1, 2, 3].includes(5)") == "false"
        assert _log("[5, 12, 8].find(n => n > 6)") == "12"
        assert _log("[5, 12, 8].findIndex(n => n > 100)") == "-1"

    def test_slice_splice_join(self):
        assert _log("[1, 2, 3, 4].slice(1, -1)") == "[2, 3]"
        assert _log("[1, [2, [3]]].flat(Infinity).join('-')") == "1-2-3"

    def test_length_write_truncates(self):
        source = "const a = [1, 2, 3];\na.length = 1;\nconsole.log(a);"
        assert console_output(execute_code(source)) == ["[1]"]

    def test_callbacks_are_traced_calls(self):
        result = execute_code("[1, 2].forEach(function show(n) { return n; });")
        calls = [step.description for step in result.steps if step.type == "call"]
        assert calls == ["Calling show(1, 0, [1, 2])", "Calling show(2, 1, [1, 2])"]


class TestStringMethods:
    def test_case_and_trim(self):
        assert _log("'  Hi  '.trim().toUpperCase()") == "HI"

    def test_split_slice_pad(self):
        assert _log("'a,b,c'.split(',').length") == "3"
        assert _log("'abcdef'.slice(-2)") == "ef"
        assert _log("'7'.padStart(3, '0')") == "007"

    def test_replace_first_and_all(self):
        assert _log("'a-b-c'.replace('-', '+')") == "a+b-c"
        assert _log("'a-b-c'.replaceAll('-', '+')") == "a+b+c"

    def test_indexing_and_length(self):
        assert _log("'hello'[1] + 'hello'.length") == "e5"

    def test_escaped_surrogate_pair_is_one_character(self):
        assert _log("'\\uD83D\\uDE00'") == "\U0001F600"
        assert _log("'\\uD83D\\uDE00'.length") == "1"

    def test_from_char_code_joins_surrogates(self):
        assert _log("String.fromCharCode(0xD83D, 0xDE00)") == "\U0001F600"

    def test_lone_surrogate_is_replaced(self):
        assert _log("'a\\uD800b'") == "a\ufffdb"


class TestNumbersAndMath:
    def test_to_fixed_rounds_half_up(self):
        assert _log("(2.5).toFixed(0)") == "3"
        assert _log("(3.14159).toFixed(2)") == "3.14"

    def test_radix_conversion(self):
        assert _log("(255).toString(16)") == "ff"
        assert _log("parseInt('ff', 16)") == "255"

    def test_parse_helpers(self):
        assert _log("parseInt('42px')") == "42"
        assert _log("parseFloat('3.5kg')") == "3.5"
        assert _log("isNaN('abc')") == "true"
        assert _log("Number.isInteger(5.0)") == "true"

    def test_math(self):
        assert _log("Math.max(1, 5, 3)") == "5"
        assert _log("Math.floor(-2.5)") == "-3"
        assert _log("Math.round(2.5)") == "3"
        assert _log("Math.abs(-4)") == "4"

    def test_random_is_seeded(self):
        first = _log("Math.random()")
        assert first == _log("Math.random()")


class TestObjectsAndJson:
    def test_integer_keys_come_first(self):
        assert _log("Object.keys({ b: 1, 2: 1, 1: 1 })") == '["1", "2", "b"]'
        source = """\
const o = { z: 0, 10: 1, 9: 2 };
const seen = [];
for (const k in o) {
  seen.push(k);
}
console.log(seen.join(","));
"""
        assert console_output(execute_code(source)) == ["9,10,z"]

    def test_object_helpers(self):
        assert _log("Object.keys({ a: 1, b: 2 })") == '["a", "b"]'
        assert _log("Object.entries({ a: 1 })") == '[["a", 1]]'
        assert _log("Object.assign({}, { a: 1 }, { b: 2 })") == "{a: 1, b: 2}"

    def test_freeze_ignores_writes(self):
        source = "const o = Object.freeze({ a: 1 });\no.a = 2;\nconsole.log(o.a);"
        assert console_output(execute_code(source)) == ["1"]

    def test_json_stringify(self):
        assert _log("JSON.stringify({ a: [1, 'x'], b: null })") == '{"a":[1,"x"],"b":null}'
        assert _log("JSON.stringify([1], null, 2)") == "[\n  1\n]"

    def test_json_parse(self):
        assert _log("JSON.parse('{\"n\": 2}').n + 1") == "3"

    def test_json_parse_error_is_catchable(self):
        source = """\
try {
  JSON.parse("{bad");
} catch (e) {
  console.log(e.name);
}
"""
        assert console_output(execute_code(source)) == ["SyntaxError"]

    def test_has_own_property(self):
        assert _log("({ a: 1 }).hasOwnProperty('a')") == "true"

    def test_error_constructors(self):
        assert _log("new RangeError('out of range')") == "RangeError: out of range"
        assert _log("new Error('x') instanceof Error") == "true"
