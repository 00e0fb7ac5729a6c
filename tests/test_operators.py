"""Tests for JavaScript value conversions and the operator table."""

from __future__ import annotations

import math

import pytest

from jstrace.errors import UnsupportedSyntax
from jstrace.vm import (
    Operators,
    js_typeof,
    loose_equals,
    number_to_string,
    strict_equals,
    to_boolean,
    to_int32,
    to_number,
    to_string,
)
from jstrace.vm_types import UNDEFINED, JSArray, JSObject


class TestArithmetic:
    def test_plus_concatenates_with_strings(self):
        assert Operators.eval_binop("+", 1, "2") == "12"
        assert Operators.eval_binop("+", "a", None) == "anull"

    def test_minus_coerces_strings(self):
        assert Operators.eval_binop("-", "5", 2) == 3

    def test_integral_results_are_ints(self):
        assert Operators.eval_binop("/", 4, 2) == 2
        assert isinstance(Operators.eval_binop("/", 4, 2), int)

    def test_division_by_zero(self):
        assert Operators.eval_binop("/", 1, 0) == math.inf
        assert Operators.eval_binop("/", -1, 0) == -math.inf
        assert math.isnan(Operators.eval_binop("/", 0, 0))

    def test_remainder_keeps_dividend_sign(self):
        assert Operators.eval_binop("%", -7, 2) == -1

    def test_exponent(self):
        assert Operators.eval_binop("**", 2, 10) == 1024

    def test_array_plus_number(self):
        assert Operators.eval_binop("+", JSArray(elements=[1, 2]), 3) == "1,23"


class TestComparison:
    def test_string_comparison_is_lexicographic(self):
        assert Operators.eval_binop("<", "apple", "banana")
        assert Operators.eval_binop("<", "10", 9) is False

    def test_nan_compares_false(self):
        assert Operators.eval_binop("<", UNDEFINED, 1) is False
        assert Operators.eval_binop(">=", UNDEFINED, 1) is False

    def test_loose_equality_coerces(self):
        assert loose_equals(None, UNDEFINED)
        assert loose_equals("1", 1)
        assert loose_equals(True, 1)
        assert not loose_equals(None, 0)

    def test_strict_equality(self):
        assert strict_equals(1, 1.0)
        assert not strict_equals("1", 1)
        assert not strict_equals(math.nan, math.nan)
        obj = JSObject()
        assert strict_equals(obj, obj)
        assert not strict_equals(obj, JSObject())


class TestBitwise:
    def test_int32_wraparound(self):
        assert to_int32(2**32 + 5) == 5
        assert to_int32(2**31) == -(2**31)

    def test_shifts(self):
        assert Operators.eval_binop("<<", 1, 33) == 2
        assert Operators.eval_binop(">>", -8, 1) == -4
        assert Operators.eval_binop(">>>", -1, 0) == 4294967295

    def test_bitwise_ops(self):
        assert Operators.eval_binop("&", 6, 3) == 2
        assert Operators.eval_binop("|", 6, 3) == 7
        assert Operators.eval_binop("^", 6, 3) == 5
        assert Operators.eval_unop("~", 5) == -6


class TestUnary:
    def test_typeof(self):
        assert js_typeof(UNDEFINED) == "undefined"
        assert js_typeof(None) == "object"
        assert js_typeof(True) == "boolean"
        assert js_typeof(3) == "number"

    def test_not_and_negate(self):
        assert Operators.eval_unop("!", "") is True
        assert Operators.eval_unop("-", "3") == -3
        assert Operators.eval_unop("void", 1) is UNDEFINED

    def test_unknown_operator_raises(self):
        with pytest.raises(UnsupportedSyntax):
            Operators.eval_binop("<=>", 1, 2)


class TestConversions:
    def test_number_formatting(self):
        assert number_to_string(1.0) == "1"
        assert number_to_string(0.5) == "0.5"
        assert number_to_string(math.nan) == "NaN"
        assert number_to_string(-math.inf) == "-Infinity"
        assert number_to_string(1e21) == "1e+21"
        assert number_to_string(1e-7) == "1e-7"

    def test_to_number(self):
        assert to_number("  42  ") == 42
        assert to_number("") == 0
        assert to_number("0x1f") == 31
        assert math.isnan(to_number("abc"))
        assert to_number(None) == 0
        assert math.isnan(to_number(UNDEFINED))

    def test_to_string(self):
        assert to_string(UNDEFINED) == "undefined"
        assert to_string(JSArray(elements=[1, None, "a"])) == "1,,a"
        assert to_string(JSObject()) == "[object Object]"

    def test_truthiness(self):
        assert not to_boolean(0)
        assert not to_boolean(math.nan)
        assert not to_boolean("")
        assert to_boolean("0")
        assert to_boolean(JSArray())
