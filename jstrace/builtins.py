"""Built-in globals available to every traced program."""

from __future__ import annotations

import json
import math
import re
from typing import Any

from . import constants
from .errors import TypeMisuse
from .properties import (
    get_member,
    iterate,
    make_error,
    native,
    own_keys,
    set_member,
    throw_error,
)
from .vm import (
    Operators,
    is_nullish,
    is_number,
    join_surrogates,
    normalize_number,
    number_to_string,
    to_boolean,
    to_integer,
    to_number,
    to_string,
)
from .vm_types import (
    UNDEFINED,
    JSArray,
    JSObject,
    NativeCall,
    NativeFunction,
    is_callable,
)

_LEADING_FLOAT = re.compile(r"^[+-]?(?:Infinity|\d+\.?\d*(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?)")
_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"
_CONSOLE_METHODS = ("log", "info", "warn", "error", "debug")


# ── Math ─────────────────────────────────────────────────────────


def _math_unary(name: str, fn) -> NativeFunction:
    def impl(call: NativeCall) -> Any:
        x = float(to_number(call.arg(0)))
        if math.isnan(x):
            return math.nan
        try:
            return normalize_number(fn(x))
        except (ValueError, OverflowError):
            return math.nan

    return NativeFunction(name=name, impl=impl, arity=1)


def _round(x: float) -> float:
    if math.isinf(x):
        return x
    return math.floor(x + 0.5)


def _cbrt(x: float) -> float:
    root = math.copysign(abs(x) ** (1 / 3), x)
    nearest = round(root)
    return nearest if nearest**3 == x else root


def _log(fn):
    def apply(x: float) -> float:
        return -math.inf if x == 0 else fn(x)

    return apply


def _whole(fn):
    def apply(x: float) -> float:
        return x if math.isinf(x) else fn(x)

    return apply


def _extremum(name: str, pick, empty: float) -> NativeFunction:
    def impl(call: NativeCall) -> Any:
        values = [to_number(arg) for arg in call.args]
        if any(math.isnan(value) for value in values):
            return math.nan
        return pick(values) if values else empty

    return NativeFunction(name=name, impl=impl, arity=2)


@native("random")
def _math_random(call: NativeCall) -> Any:
    return call.interpreter.ctx.rng.random()


@native("pow", 2)
def _math_pow(call: NativeCall) -> Any:
    return Operators.eval_binop("**", call.arg(0), call.arg(1))


@native("atan2", 2)
def _math_atan2(call: NativeCall) -> Any:
    return normalize_number(math.atan2(float(to_number(call.arg(0))), float(to_number(call.arg(1)))))


@native("hypot", 2)
def _math_hypot(call: NativeCall) -> Any:
    return normalize_number(math.hypot(*(float(to_number(arg)) for arg in call.args)))


def _build_math() -> JSObject:
    functions = [
        _math_unary("abs", abs),
        _math_unary("floor", _whole(math.floor)),
        _math_unary("ceil", _whole(math.ceil)),
        _math_unary("round", _round),
        _math_unary("trunc", _whole(math.trunc)),
        _math_unary("sign", lambda x: (x > 0) - (x < 0)),
        _math_unary("sqrt", math.sqrt),
        _math_unary("cbrt", _cbrt),
        _math_unary("log", _log(math.log)),
        _math_unary("log2", _log(math.log2)),
        _math_unary("log10", _log(math.log10)),
        _math_unary("exp", lambda x: math.exp(x) if x < 710 else math.inf),
        _math_unary("sin", math.sin),
        _math_unary("cos", math.cos),
        _math_unary("tan", math.tan),
        _extremum("min", min, math.inf),
        _extremum("max", max, -math.inf),
        _math_random,
        _math_pow,
        _math_atan2,
        _math_hypot,
    ]
    properties: dict[str, Any] = {fn.name: fn for fn in functions}
    properties["PI"] = math.pi
    properties["E"] = math.e
    return JSObject(properties=properties, class_name="Math")


# ── JSON ─────────────────────────────────────────────────────────


def _indent_unit(value: Any) -> str:
    if is_number(value):
        return " " * min(max(to_integer(value), 0), 10)
    if isinstance(value, str):
        return value[:10]
    return ""


def _stringify(value: Any, unit: str, indent: str, active: list[int]) -> str | None:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if is_number(value):
        finite = not (math.isnan(value) or math.isinf(value))
        return number_to_string(value) if finite else "null"
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    if value is UNDEFINED or is_callable(value):
        return None
    if id(value) in active:
        raise throw_error("TypeError", "Converting circular structure to JSON")
    inner = indent + unit
    active.append(id(value))
    try:
        if isinstance(value, JSArray):
            items = [
                _stringify(element, unit, inner, active) or "null"
                for element in value.elements
            ]
            return _wrap("[", "]", items, unit, indent)
        if isinstance(value, JSObject):
            separator = ": " if unit else ":"
            members = []
            for key in value.own_keys():
                text = _stringify(value.get_own(key), unit, inner, active)
                if text is not None:
                    members.append(json.dumps(key, ensure_ascii=False) + separator + text)
            return _wrap("{", "}", members, unit, indent)
        return "{}"
    finally:
        active.pop()


def _wrap(open_: str, close: str, items: list[str], unit: str, indent: str) -> str:
    if not items:
        return open_ + close
    if not unit:
        return open_ + ",".join(items) + close
    inner = indent + unit
    body = (",\n" + inner).join(items)
    return f"{open_}\n{inner}{body}\n{indent}{close}"


@native("stringify", 3)
def _json_stringify(call: NativeCall) -> Any:
    text = _stringify(call.arg(0), _indent_unit(call.arg(2)), "", [])
    return UNDEFINED if text is None else text


def _from_json(value: Any) -> Any:
    if isinstance(value, dict):
        return JSObject(properties={key: _from_json(item) for key, item in value.items()})
    if isinstance(value, list):
        return JSArray(elements=[_from_json(item) for item in value])
    if is_number(value):
        return normalize_number(value)
    return value


@native("parse", 2)
def _json_parse(call: NativeCall) -> Any:
    text = to_string(call.arg(0))
    try:
        parsed = json.loads(text, parse_constant=_reject_constant)
    except ValueError as exc:
        raise throw_error("SyntaxError", f"JSON.parse: {exc}") from exc
    return _from_json(parsed)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Unexpected token {name}")


# ── Global functions ─────────────────────────────────────────────


@native("parseInt", 2)
def _parse_int(call: NativeCall) -> Any:
    text = to_string(call.arg(0)).strip()
    sign = -1 if text.startswith("-") else 1
    if text and text[0] in "+-":
        text = text[1:]
    radix = to_integer(call.arg(1))
    if radix == 0:
        radix = 10
        if text[:2].lower() == "0x":
            radix, text = 16, text[2:]
    elif radix == 16 and text[:2].lower() == "0x":
        text = text[2:]
    if not 2 <= radix <= 36:
        return math.nan
    valid = _DIGITS[:radix]
    digits = ""
    for char in text:
        if char.lower() not in valid:
            break
        digits += char
    if not digits:
        return math.nan
    return normalize_number(sign * int(digits, radix))


@native("parseFloat", 1)
def _parse_float(call: NativeCall) -> Any:
    match = _LEADING_FLOAT.match(to_string(call.arg(0)).strip())
    if match is None:
        return math.nan
    text = match.group(0)
    if text.lstrip("+-") == "Infinity":
        return -math.inf if text.startswith("-") else math.inf
    return normalize_number(float(text))


@native("isNaN", 1)
def _is_nan(call: NativeCall) -> Any:
    return math.isnan(to_number(call.arg(0)))


@native("isFinite", 1)
def _is_finite(call: NativeCall) -> Any:
    return math.isfinite(to_number(call.arg(0)))


@native("clearTimeout", 1)
def _clear_timer(call: NativeCall) -> Any:
    # Cancellation is not modelled; the timer still fires.
    return UNDEFINED


# ── Wrapper constructors ─────────────────────────────────────────


def _string_ctor(call: NativeCall) -> Any:
    return to_string(call.arg(0)) if call.args else ""


def _number_ctor(call: NativeCall) -> Any:
    return to_number(call.arg(0)) if call.args else 0


def _boolean_ctor(call: NativeCall) -> Any:
    return to_boolean(call.arg(0))


@native("isInteger", 1)
def _number_is_integer(call: NativeCall) -> Any:
    value = call.arg(0)
    return is_number(value) and math.isfinite(value) and float(value).is_integer()


@native("isNaN", 1)
def _number_is_nan(call: NativeCall) -> Any:
    value = call.arg(0)
    return is_number(value) and math.isnan(value)


@native("isFinite", 1)
def _number_is_finite(call: NativeCall) -> Any:
    value = call.arg(0)
    return is_number(value) and math.isfinite(value)


@native("fromCharCode", 1)
def _string_from_char_code(call: NativeCall) -> Any:
    return join_surrogates("".join(chr(to_integer(arg) & 0xFFFF) for arg in call.args))


def _array_ctor(call: NativeCall) -> Any:
    if len(call.args) == 1 and is_number(call.args[0]):
        length = call.args[0]
        if not float(length).is_integer() or length < 0:
            raise throw_error("RangeError", "Invalid array length")
        return JSArray(elements=[UNDEFINED] * int(length))
    return JSArray(elements=list(call.args))


@native("isArray", 1)
def _array_is_array(call: NativeCall) -> Any:
    return isinstance(call.arg(0), JSArray)


@native("of", 1)
def _array_of(call: NativeCall) -> Any:
    return JSArray(elements=list(call.args))


@native("from", 1)
def _array_from(call: NativeCall) -> Any:
    source = call.arg(0)
    if isinstance(source, (JSArray, str)):
        items = list(iterate(source))
    elif isinstance(source, JSObject):
        length = to_integer(source.get_own("length", 0))
        items = [source.get_own(str(index)) for index in range(max(length, 0))]
    else:
        items = []
    mapper = call.arg(1)
    if is_callable(mapper):
        items = [call.invoke(mapper, item, index) for index, item in enumerate(items)]
    return JSArray(elements=items)


def _object_ctor(call: NativeCall) -> Any:
    value = call.arg(0)
    if is_nullish(value):
        return JSObject()
    return value


def _require_object(call: NativeCall) -> Any:
    value = call.arg(0)
    if is_nullish(value):
        raise throw_error(
            "TypeError", f"Cannot convert {to_string(value)} to object"
        )
    return value


@native("keys", 1)
def _object_keys(call: NativeCall) -> Any:
    return JSArray(elements=own_keys(_require_object(call)))


@native("values", 1)
def _object_values(call: NativeCall) -> Any:
    target = _require_object(call)
    return JSArray(elements=[get_member(target, key) for key in own_keys(target)])


@native("entries", 1)
def _object_entries(call: NativeCall) -> Any:
    target = _require_object(call)
    return JSArray(
        elements=[
            JSArray(elements=[key, get_member(target, key)]) for key in own_keys(target)
        ]
    )


@native("assign", 2)
def _object_assign(call: NativeCall) -> Any:
    target = _require_object(call)
    for source in call.args[1:]:
        for key in own_keys(source):
            set_member(target, key, get_member(source, key))
    return target


@native("freeze", 1)
def _object_freeze(call: NativeCall) -> Any:
    value = call.arg(0)
    if isinstance(value, JSObject):
        value.frozen = True
    return value


def _error_ctor(class_name: str) -> NativeFunction:
    def create(call: NativeCall) -> Any:
        message = call.arg(0)
        return make_error(class_name, "" if message is UNDEFINED else to_string(message))

    return NativeFunction(name=class_name, impl=create, construct=create, arity=1)


# ── Async entry points ───────────────────────────────────────────


def _console_method(method: str) -> NativeFunction:
    def impl(call: NativeCall) -> Any:
        return call.interpreter.console_call(method, call.args, call.line, call.env_id)

    return NativeFunction(name=method, impl=impl, records_own_step=True)


def _timer(name: str) -> NativeFunction:
    def impl(call: NativeCall) -> Any:
        return call.interpreter.schedule_timer(name, call.args, call.line, call.env_id)

    return NativeFunction(name=name, impl=impl, arity=2, records_own_step=True)


@native("queueMicrotask", 1, records_own_step=True)
def _queue_microtask(call: NativeCall) -> Any:
    return call.interpreter.queue_microtask(call.arg(0), call.line, call.env_id)


def _promise_static(method: str) -> NativeFunction:
    def impl(call: NativeCall) -> Any:
        return call.interpreter.promise_static(method, call.args, call.line, call.env_id)

    return NativeFunction(name=method, impl=impl, arity=1, records_own_step=True)


def _promise_call(call: NativeCall) -> Any:
    raise TypeMisuse("Promise constructor cannot be invoked without 'new'")


def _promise_construct(call: NativeCall) -> Any:
    return call.interpreter.promises.construct(call.arg(0), call.line, call.env_id)


def _with(fn: NativeFunction, **properties: Any) -> NativeFunction:
    fn.properties.update(properties)
    return fn


class Builtins:
    """Table of built-in globals.

    ``build_globals`` returns fresh objects on every call, so a program
    that mutates ``Math`` or ``console`` cannot leak into the next run.
    """

    @staticmethod
    def build_globals() -> dict[str, Any]:
        console = JSObject(
            properties={method: _console_method(method) for method in _CONSOLE_METHODS},
            class_name="Console",
        )
        table: dict[str, Any] = {
            "undefined": UNDEFINED,
            "NaN": math.nan,
            "Infinity": math.inf,
            "Math": _build_math(),
            "JSON": JSObject(
                properties={"stringify": _json_stringify, "parse": _json_parse},
                class_name="JSON",
            ),
            "parseInt": _parse_int,
            "parseFloat": _parse_float,
            "isNaN": _is_nan,
            "isFinite": _is_finite,
            "String": _with(
                NativeFunction(name="String", impl=_string_ctor, construct=_string_ctor, arity=1),
                fromCharCode=_string_from_char_code,
            ),
            "Number": _with(
                NativeFunction(name="Number", impl=_number_ctor, construct=_number_ctor, arity=1),
                isInteger=_number_is_integer,
                isNaN=_number_is_nan,
                isFinite=_number_is_finite,
                parseInt=_parse_int,
                parseFloat=_parse_float,
                MAX_SAFE_INTEGER=2**53 - 1,
                MIN_SAFE_INTEGER=-(2**53 - 1),
                EPSILON=2.0**-52,
            ),
            "Boolean": NativeFunction(
                name="Boolean", impl=_boolean_ctor, construct=_boolean_ctor, arity=1
            ),
            "Array": _with(
                NativeFunction(name="Array", impl=_array_ctor, construct=_array_ctor, arity=1),
                isArray=_array_is_array,
                of=_array_of,
                **{"from": _array_from},
            ),
            "Object": _with(
                NativeFunction(name="Object", impl=_object_ctor, construct=_object_ctor, arity=1),
                keys=_object_keys,
                values=_object_values,
                entries=_object_entries,
                assign=_object_assign,
                freeze=_object_freeze,
            ),
            "Promise": _with(
                NativeFunction(
                    name=constants.PROMISE_CONSTRUCTOR,
                    impl=_promise_call,
                    construct=_promise_construct,
                    arity=1,
                    records_own_step=True,
                ),
                resolve=_promise_static("resolve"),
                reject=_promise_static("reject"),
            ),
            constants.CONSOLE_OBJECT: console,
            "setTimeout": _timer("setTimeout"),
            "setInterval": _timer("setInterval"),
            "clearTimeout": _clear_timer,
            "clearInterval": _clear_timer,
            "queueMicrotask": _queue_microtask,
        }
        for class_name in constants.ERROR_CONSTRUCTORS:
            table[class_name] = _error_ctor(class_name)
        return table
