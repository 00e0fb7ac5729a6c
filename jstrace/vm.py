"""Value conversions and operator evaluation with JavaScript semantics."""

from __future__ import annotations

import math
import re
from decimal import Decimal
from typing import Any

from . import constants
from .errors import TypeMisuse, UnsupportedSyntax
from .vm_types import (
    UNDEFINED,
    JSArray,
    JSObject,
    NativeFunction,
    PromiseRecord,
    TracedFunction,
    is_array_index,
    is_callable,
)

MAX_EXACT_INT = 2**53

_NUMERIC_LITERAL = re.compile(
    r"^[+-]?(?:\d+\.?\d*(?:e[+-]?\d+)?|\.\d+(?:e[+-]?\d+)?)$", re.IGNORECASE
)
_RADIX_PREFIXES = {"0x": 16, "0o": 8, "0b": 2}


# ── Type predicates ──────────────────────────────────────────────


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_nullish(value: Any) -> bool:
    return value is None or value is UNDEFINED


def js_typeof(value: Any) -> str:
    if value is UNDEFINED:
        return "undefined"
    if isinstance(value, bool):
        return "boolean"
    if is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    if is_callable(value):
        return "function"
    return "object"


def _kind(value: Any) -> str:
    if value is None:
        return "null"
    kind = js_typeof(value)
    return "object" if kind == "function" else kind


# ── Numbers ──────────────────────────────────────────────────────


def normalize_number(value: float | int) -> float | int:
    """Collapse integral floats to ``int`` so ``4 / 2`` displays as ``2``."""
    if isinstance(value, float) and value.is_integer() and abs(value) < MAX_EXACT_INT:
        return int(value)
    if isinstance(value, int) and abs(value) >= MAX_EXACT_INT:
        try:
            return float(value)
        except OverflowError:
            return math.inf if value > 0 else -math.inf
    return value


def number_to_string(value: float | int) -> str:
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    text = repr(value)
    if "e" not in text:
        return text
    mantissa, exponent = text.split("e")
    exp = int(exponent)
    if -7 < exp < 21:
        return format(Decimal(text), "f")
    return f"{mantissa}e{'+' if exp > 0 else '-'}{abs(exp)}"


def string_to_number(text: str) -> float | int:
    stripped = text.strip()
    if not stripped:
        return 0
    if stripped in ("Infinity", "+Infinity"):
        return math.inf
    if stripped == "-Infinity":
        return -math.inf
    radix = _RADIX_PREFIXES.get(stripped[:2].lower())
    if radix:
        try:
            return normalize_number(int(stripped[2:], radix))
        except ValueError:
            return math.nan
    if not _NUMERIC_LITERAL.match(stripped):
        return math.nan
    return normalize_number(float(stripped))


def to_number(value: Any) -> float | int:
    if isinstance(value, bool):
        return int(value)
    if is_number(value):
        return value
    if value is None:
        return 0
    if value is UNDEFINED:
        return math.nan
    if isinstance(value, str):
        return string_to_number(value)
    return to_number(to_primitive(value))


def to_int32(value: Any) -> int:
    number = to_number(value)
    if isinstance(number, float) and (math.isnan(number) or math.isinf(number)):
        return 0
    wrapped = int(math.trunc(number)) & 0xFFFFFFFF
    return wrapped - 2**32 if wrapped >= 2**31 else wrapped


def to_uint32(value: Any) -> int:
    return to_int32(value) & 0xFFFFFFFF


def to_integer(value: Any, default: int = 0) -> int:
    """ToIntegerOrInfinity clamped to Python ints, used for index arguments."""
    if value is UNDEFINED:
        return default
    number = to_number(value)
    if isinstance(number, float):
        if math.isnan(number):
            return 0
        if math.isinf(number):
            return MAX_EXACT_INT if number > 0 else -MAX_EXACT_INT
    return int(math.trunc(number))


# ── Strings and primitives ───────────────────────────────────────


def is_error_object(value: Any) -> bool:
    return isinstance(value, JSObject) and value.class_name in constants.ERROR_CONSTRUCTORS


def error_to_string(value: JSObject) -> str:
    name = to_string(value.get_own("name", value.class_name))
    message = to_string(value.get_own("message", ""))
    return f"{name}: {message}" if message else name


def to_primitive(value: Any) -> Any:
    if isinstance(value, JSArray):
        return ",".join(
            "" if is_nullish(element) else to_string(element)
            for element in value.elements
        )
    if isinstance(value, TracedFunction):
        return f"function {value.name}() {{ [user code] }}"
    if isinstance(value, NativeFunction):
        return f"function {value.name}() {{ [native code] }}"
    if isinstance(value, PromiseRecord):
        return "[object Promise]"
    if is_error_object(value):
        return error_to_string(value)
    if isinstance(value, JSObject):
        return f"[object {value.class_name}]"
    return value


def to_string(value: Any) -> str:
    if isinstance(value, str):
        return value
    if value is UNDEFINED:
        return "undefined"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if is_number(value):
        return number_to_string(value)
    return to_string(to_primitive(value))


def to_property_key(value: Any) -> str:
    if isinstance(value, str):
        return value
    return to_string(value)


def join_surrogates(text: str) -> str:
    """Combine UTF-16 surrogate pairs into code points; lone halves become U+FFFD."""
    if not any("\ud800" <= char <= "\udfff" for char in text):
        return text
    return text.encode("utf-16-le", "surrogatepass").decode("utf-16-le", "replace")


def array_index(key: str) -> int | None:
    """Return *key* as an array index, or ``None`` if it is not one."""
    return int(key) if is_array_index(key) else None


def to_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if is_nullish(value):
        return False
    if is_number(value):
        return not (value == 0 or (isinstance(value, float) and math.isnan(value)))
    if isinstance(value, str):
        return value != ""
    return True


# ── Equality ─────────────────────────────────────────────────────


def strict_equals(lhs: Any, rhs: Any) -> bool:
    kind = _kind(lhs)
    if kind != _kind(rhs):
        return False
    if kind in ("undefined", "null"):
        return True
    if kind == "object":
        return lhs is rhs
    return lhs == rhs


def loose_equals(lhs: Any, rhs: Any) -> bool:
    lkind, rkind = _kind(lhs), _kind(rhs)
    if lkind == rkind:
        return strict_equals(lhs, rhs)
    if is_nullish(lhs) or is_nullish(rhs):
        return is_nullish(lhs) and is_nullish(rhs)
    if lkind == "boolean":
        return loose_equals(int(lhs), rhs)
    if rkind == "boolean":
        return loose_equals(lhs, int(rhs))
    if {lkind, rkind} == {"number", "string"}:
        return to_number(lhs) == to_number(rhs)
    if lkind == "object":
        return loose_equals(to_primitive(lhs), rhs)
    if rkind == "object":
        return loose_equals(lhs, to_primitive(rhs))
    return False


# ── Operators ────────────────────────────────────────────────────


def _arith(fn):
    def apply(lhs: Any, rhs: Any) -> float | int:
        a, b = float(to_number(lhs)), float(to_number(rhs))
        return normalize_number(fn(a, b))

    return apply


def _divide(a: float, b: float) -> float:
    if b == 0:
        if a == 0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b


def _remainder(a: float, b: float) -> float:
    if b == 0 or math.isinf(a) or math.isnan(a) or math.isnan(b):
        return math.nan
    if math.isinf(b):
        return a
    return math.fmod(a, b)


def _power(a: float, b: float) -> float:
    if math.isnan(b) or (abs(a) == 1 and math.isinf(b)):
        return math.nan
    try:
        result = a**b
    except ZeroDivisionError:
        return math.inf
    except OverflowError:
        return math.inf if a > 0 or b % 2 == 0 else -math.inf
    return math.nan if isinstance(result, complex) else result


def _add(lhs: Any, rhs: Any) -> Any:
    a, b = to_primitive(lhs), to_primitive(rhs)
    if isinstance(a, str) or isinstance(b, str):
        return to_string(a) + to_string(b)
    return normalize_number(float(to_number(a)) + float(to_number(b)))


def _compare(predicate):
    def apply(lhs: Any, rhs: Any) -> bool:
        a, b = to_primitive(lhs), to_primitive(rhs)
        if isinstance(a, str) and isinstance(b, str):
            return predicate(a, b)
        x, y = to_number(a), to_number(b)
        if math.isnan(x) or math.isnan(y):
            return False
        return predicate(x, y)

    return apply


def _in(key: Any, target: Any) -> bool:
    name = to_property_key(key)
    if isinstance(target, JSArray):
        index = array_index(name)
        return name == "length" or (index is not None and index < len(target.elements))
    if isinstance(target, JSObject):
        return target.has_own(name)
    if isinstance(target, (TracedFunction, NativeFunction)):
        return name in target.properties or name in ("name", "length")
    raise TypeMisuse(f"Cannot use 'in' operator to search for '{name}' in {to_string(target)}")


def instance_of(value: Any, constructor: Any) -> bool:
    if not is_callable(constructor):
        raise TypeMisuse("Right-hand side of 'instanceof' is not callable")
    if isinstance(constructor, TracedFunction):
        return isinstance(value, JSObject) and value.constructor is constructor
    name = constructor.name
    if name == "Array":
        return isinstance(value, JSArray)
    if name == "Promise":
        return isinstance(value, PromiseRecord)
    if name == "Function":
        return is_callable(value)
    if name == "Object":
        return _kind(value) == "object" and value is not None
    if name == "Error":
        return is_error_object(value)
    if name in constants.ERROR_CONSTRUCTORS:
        return isinstance(value, JSObject) and value.class_name == name
    return False


def _shift(fn):
    def apply(lhs: Any, rhs: Any) -> int:
        return to_int32(fn(lhs, to_uint32(rhs) & 31))

    return apply


class Operators:
    """Binary and unary operator evaluation over JavaScript values."""

    BINOP_TABLE: dict[str, Any] = {
        "+": _add,
        "-": _arith(lambda a, b: a - b),
        "*": _arith(lambda a, b: a * b),
        "/": _arith(_divide),
        "%": _arith(_remainder),
        "**": _arith(_power),
        "==": loose_equals,
        "!=": lambda a, b: not loose_equals(a, b),
        "===": strict_equals,
        "!==": lambda a, b: not strict_equals(a, b),
        "<": _compare(lambda a, b: a < b),
        ">": _compare(lambda a, b: a > b),
        "<=": _compare(lambda a, b: a <= b),
        ">=": _compare(lambda a, b: a >= b),
        "&": lambda a, b: to_int32(to_int32(a) & to_int32(b)),
        "|": lambda a, b: to_int32(to_int32(a) | to_int32(b)),
        "^": lambda a, b: to_int32(to_int32(a) ^ to_int32(b)),
        "<<": _shift(lambda a, n: to_int32(a) << n),
        ">>": _shift(lambda a, n: to_int32(a) >> n),
        ">>>": lambda a, b: to_uint32(a) >> (to_uint32(b) & 31),
        "in": _in,
        "instanceof": instance_of,
    }

    @classmethod
    def eval_binop(cls, op: str, lhs: Any, rhs: Any) -> Any:
        fn = cls.BINOP_TABLE.get(op)
        if fn is None:
            raise UnsupportedSyntax(f"operator '{op}'")
        return fn(lhs, rhs)

    @classmethod
    def eval_unop(cls, op: str, operand: Any) -> Any:
        if op == "!":
            return not to_boolean(operand)
        if op == "-":
            return normalize_number(-float(to_number(operand)))
        if op == "+":
            return to_number(operand)
        if op == "~":
            return to_int32(~to_int32(operand))
        if op == "typeof":
            return js_typeof(operand)
        if op == "void":
            return UNDEFINED
        raise UnsupportedSyntax(f"operator '{op}'")
