"""Property access and the native methods of arrays, strings, numbers and functions."""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from functools import cmp_to_key
from typing import Any, Iterator

from . import constants
from .errors import TypeMisuse, UserThrow
from .vm import (
    array_index,
    is_error_object,
    is_nullish,
    is_number,
    normalize_number,
    number_to_string,
    strict_equals,
    to_boolean,
    to_integer,
    to_number,
    to_property_key,
    to_string,
)
from .vm_types import (
    UNDEFINED,
    JSArray,
    JSObject,
    NativeCall,
    NativeFunction,
    PromiseRecord,
    TracedFunction,
    is_callable,
)

_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def native(name: str, arity: int = 0, records_own_step: bool = False):
    """Decorator turning ``impl(call)`` into a ``NativeFunction``."""

    def wrap(impl) -> NativeFunction:
        return NativeFunction(
            name=name, impl=impl, arity=arity, records_own_step=records_own_step
        )

    return wrap


def make_error(class_name: str, message: str) -> JSObject:
    return JSObject(properties={"message": message}, class_name=class_name)


def throw_error(class_name: str, message: str) -> UserThrow:
    """Build a catchable JS error, e.g. ``raise throw_error("RangeError", ...)``."""
    return UserThrow(make_error(class_name, message))


def function_length(fn: Any) -> int:
    if isinstance(fn, NativeFunction):
        return fn.arity
    count = 0
    for param in fn.params:
        if param.type in ("assignment_pattern", "rest_pattern"):
            break
        count += 1
    return count


# ── Generic access ───────────────────────────────────────────────


def get_member(value: Any, key: str) -> Any:
    """Read ``value[key]``; reads on ``undefined``/``null`` yield ``undefined``."""
    if is_nullish(value):
        return UNDEFINED
    if isinstance(value, str):
        if key == "length":
            return len(value)
        index = array_index(key)
        if index is not None:
            return value[index] if index < len(value) else UNDEFINED
        return STRING_METHODS.get(key, UNDEFINED)
    if isinstance(value, bool):
        return PRIMITIVE_METHODS.get(key, UNDEFINED)
    if is_number(value):
        return NUMBER_METHODS.get(key, UNDEFINED)
    if isinstance(value, JSArray):
        if key == "length":
            return len(value.elements)
        index = array_index(key)
        if index is not None:
            return value.elements[index] if index < len(value.elements) else UNDEFINED
        return ARRAY_METHODS.get(key, OBJECT_METHODS.get(key, UNDEFINED))
    if isinstance(value, PromiseRecord):
        return PROMISE_METHODS.get(key, UNDEFINED)
    if is_callable(value):
        return _function_member(value, key)
    if isinstance(value, JSObject):
        if value.has_own(key):
            return value.get_own(key)
        prototype = _prototype_of(value)
        if prototype is not None and prototype.has_own(key):
            return prototype.get_own(key)
        if key == "name" and is_error_object(value):
            return value.class_name
        return OBJECT_METHODS.get(key, UNDEFINED)
    return UNDEFINED


def _prototype_of(obj: JSObject) -> JSObject | None:
    if isinstance(obj.constructor, TracedFunction):
        prototype = obj.constructor.properties.get("prototype")
        if isinstance(prototype, JSObject):
            return prototype
    return None


def _function_member(fn: Any, key: str) -> Any:
    if key in fn.properties:
        return fn.properties[key]
    if key == "name":
        return fn.name
    if key == "length":
        return function_length(fn)
    if key == "prototype" and isinstance(fn, TracedFunction) and not fn.is_arrow:
        fn.properties["prototype"] = JSObject(properties={"constructor": fn})
        return fn.properties["prototype"]
    return FUNCTION_METHODS.get(key, UNDEFINED)


def set_member(target: Any, key: str, value: Any) -> None:
    if is_nullish(target):
        raise TypeMisuse(
            f"Cannot set properties of {to_string(target)} (setting '{key}')"
        )
    if isinstance(target, JSArray):
        _set_array_member(target, key, value)
    elif isinstance(target, JSObject):
        if not target.frozen:
            target.set_own(key, value)
    elif isinstance(target, TracedFunction):
        target.properties[key] = value


def _set_array_member(target: JSArray, key: str, value: Any) -> None:
    elements = target.elements
    if key == "length":
        length = to_integer(value)
        if length < 0:
            raise throw_error("RangeError", "Invalid array length")
        del elements[length:]
        elements.extend([UNDEFINED] * (length - len(elements)))
        return
    index = array_index(key)
    if index is None:
        return
    if index >= len(elements):
        elements.extend([UNDEFINED] * (index + 1 - len(elements)))
    elements[index] = value


def delete_member(target: Any, key: str) -> bool:
    if isinstance(target, JSObject):
        if target.frozen:
            return False
        target.delete_own(key)
    elif isinstance(target, JSArray):
        index = array_index(key)
        if index is not None and index < len(target.elements):
            target.elements[index] = UNDEFINED
    elif is_callable(target):
        target.properties.pop(key, None)
    return True


def own_keys(value: Any) -> list[str]:
    """Enumerable own keys, in insertion order, as ``for…in`` sees them."""
    if isinstance(value, JSArray):
        return [str(index) for index in range(len(value.elements))]
    if isinstance(value, str):
        return [str(index) for index in range(len(value))]
    if isinstance(value, JSObject):
        return value.own_keys()
    if is_callable(value):
        return list(value.properties)
    return []


def iterate(value: Any) -> Iterator[Any]:
    """Values produced by ``for…of`` and spread; arrays are read live."""
    if isinstance(value, JSArray):
        index = 0
        while index < len(value.elements):
            yield value.elements[index]
            index += 1
    elif isinstance(value, str):
        yield from value
    else:
        raise TypeMisuse(f"{to_string(value)} is not iterable")


# ── Shared helpers ───────────────────────────────────────────────


def _relative(value: Any, length: int, default: int) -> int:
    index = to_integer(value, default)
    if index < 0:
        return max(length + index, 0)
    return min(index, length)


def _same_value_zero(a: Any, b: Any) -> bool:
    if isinstance(a, float) and isinstance(b, float) and math.isnan(a) and math.isnan(b):
        return True
    return strict_equals(a, b)


def _receiver_array(call: NativeCall) -> JSArray:
    if not isinstance(call.this, JSArray):
        raise TypeMisuse(f"Array.prototype.{call.name} called on {to_string(call.this)}")
    return call.this


def _receiver_string(call: NativeCall) -> str:
    if is_nullish(call.this):
        raise TypeMisuse(f"String.prototype.{call.name} called on {to_string(call.this)}")
    return to_string(call.this)


def _each(call: NativeCall):
    """Yield ``(index, element, callback_result)`` over the receiver array."""
    array = _receiver_array(call)
    callback = call.arg(0)
    if not is_callable(callback):
        raise TypeMisuse(f"{to_string(callback)} is not a function")
    index = 0
    while index < len(array.elements):
        element = array.elements[index]
        yield index, element, call.invoke(callback, element, index, array)
        index += 1


def _flatten(elements: list[Any], depth: int) -> list[Any]:
    result: list[Any] = []
    for element in elements:
        if isinstance(element, JSArray) and depth > 0:
            result.extend(_flatten(element.elements, depth - 1))
        else:
            result.append(element)
    return result


# ── Array methods ────────────────────────────────────────────────


@native("push", 1)
def _array_push(call: NativeCall) -> Any:
    array = _receiver_array(call)
    array.elements.extend(call.args)
    return len(array.elements)


@native("pop")
def _array_pop(call: NativeCall) -> Any:
    array = _receiver_array(call)
    return array.elements.pop() if array.elements else UNDEFINED


@native("shift")
def _array_shift(call: NativeCall) -> Any:
    array = _receiver_array(call)
    return array.elements.pop(0) if array.elements else UNDEFINED


@native("unshift", 1)
def _array_unshift(call: NativeCall) -> Any:
    array = _receiver_array(call)
    array.elements[0:0] = call.args
    return len(array.elements)


@native("slice", 2)
def _array_slice(call: NativeCall) -> Any:
    elements = _receiver_array(call).elements
    start = _relative(call.arg(0), len(elements), 0)
    end = _relative(call.arg(1), len(elements), len(elements))
    return JSArray(elements=elements[start:end])


@native("splice", 2)
def _array_splice(call: NativeCall) -> Any:
    elements = _receiver_array(call).elements
    start = _relative(call.arg(0), len(elements), 0)
    if len(call.args) < 2:
        count = len(elements) - start
    else:
        count = max(0, min(to_integer(call.arg(1)), len(elements) - start))
    removed = elements[start : start + count]
    elements[start : start + count] = call.args[2:]
    return JSArray(elements=removed)


@native("concat", 1)
def _array_concat(call: NativeCall) -> Any:
    result = list(_receiver_array(call).elements)
    for arg in call.args:
        if isinstance(arg, JSArray):
            result.extend(arg.elements)
        else:
            result.append(arg)
    return JSArray(elements=result)


@native("join", 1)
def _array_join(call: NativeCall) -> Any:
    separator = call.arg(0)
    separator = "," if separator is UNDEFINED else to_string(separator)
    return separator.join(
        "" if is_nullish(element) else to_string(element)
        for element in _receiver_array(call).elements
    )


@native("indexOf", 1)
def _array_index_of(call: NativeCall) -> Any:
    elements = _receiver_array(call).elements
    start = _relative(call.arg(1), len(elements), 0)
    for index in range(start, len(elements)):
        if strict_equals(elements[index], call.arg(0)):
            return index
    return -1


@native("lastIndexOf", 1)
def _array_last_index_of(call: NativeCall) -> Any:
    elements = _receiver_array(call).elements
    for index in range(len(elements) - 1, -1, -1):
        if strict_equals(elements[index], call.arg(0)):
            return index
    return -1


@native("includes", 1)
def _array_includes(call: NativeCall) -> Any:
    return any(
        _same_value_zero(element, call.arg(0))
        for element in _receiver_array(call).elements
    )


@native("reverse")
def _array_reverse(call: NativeCall) -> Any:
    array = _receiver_array(call)
    array.elements.reverse()
    return array


def _default_compare(a: Any, b: Any) -> int:
    if a is UNDEFINED or b is UNDEFINED:
        return (a is UNDEFINED) - (b is UNDEFINED)
    x, y = to_string(a), to_string(b)
    return (x > y) - (x < y)


@native("sort", 1)
def _array_sort(call: NativeCall) -> Any:
    array = _receiver_array(call)
    comparator = call.arg(0)
    if comparator is UNDEFINED:
        compare = _default_compare
    elif is_callable(comparator):

        def compare(a: Any, b: Any) -> int:
            result = to_number(call.invoke(comparator, a, b))
            if math.isnan(result):
                return 0
            return (result > 0) - (result < 0)

    else:
        raise TypeMisuse("The comparison function must be either a function or undefined")
    array.elements = sorted(array.elements, key=cmp_to_key(compare))
    return array


@native("map", 1)
def _array_map(call: NativeCall) -> Any:
    return JSArray(elements=[result for _, _, result in _each(call)])


@native("filter", 1)
def _array_filter(call: NativeCall) -> Any:
    return JSArray(
        elements=[element for _, element, keep in _each(call) if to_boolean(keep)]
    )


@native("forEach", 1)
def _array_for_each(call: NativeCall) -> Any:
    for _ in _each(call):
        pass
    return UNDEFINED


@native("find", 1)
def _array_find(call: NativeCall) -> Any:
    for _, element, found in _each(call):
        if to_boolean(found):
            return element
    return UNDEFINED


@native("findIndex", 1)
def _array_find_index(call: NativeCall) -> Any:
    for index, _, found in _each(call):
        if to_boolean(found):
            return index
    return -1


@native("some", 1)
def _array_some(call: NativeCall) -> Any:
    return any(to_boolean(result) for _, _, result in _each(call))


@native("every", 1)
def _array_every(call: NativeCall) -> Any:
    return all(to_boolean(result) for _, _, result in _each(call))


def _reduce(call: NativeCall, indices: list[int]) -> Any:
    array = _receiver_array(call)
    callback = call.arg(0)
    if not is_callable(callback):
        raise TypeMisuse(f"{to_string(callback)} is not a function")
    if len(call.args) >= 2:
        accumulator = call.args[1]
    elif indices:
        accumulator = array.elements[indices.pop(0)]
    else:
        raise throw_error("TypeError", "Reduce of empty array with no initial value")
    for index in indices:
        if index < len(array.elements):
            accumulator = call.invoke(
                callback, accumulator, array.elements[index], index, array
            )
    return accumulator


@native("reduce", 1)
def _array_reduce(call: NativeCall) -> Any:
    return _reduce(call, list(range(len(_receiver_array(call).elements))))


@native("reduceRight", 1)
def _array_reduce_right(call: NativeCall) -> Any:
    return _reduce(call, list(range(len(_receiver_array(call).elements) - 1, -1, -1)))


@native("flat")
def _array_flat(call: NativeCall) -> Any:
    depth = to_integer(call.arg(0), 1)
    return JSArray(elements=_flatten(_receiver_array(call).elements, depth))


@native("flatMap", 1)
def _array_flat_map(call: NativeCall) -> Any:
    return JSArray(elements=_flatten([result for _, _, result in _each(call)], 1))


@native("fill", 1)
def _array_fill(call: NativeCall) -> Any:
    array = _receiver_array(call)
    length = len(array.elements)
    start = _relative(call.arg(1), length, 0)
    end = _relative(call.arg(2), length, length)
    for index in range(start, end):
        array.elements[index] = call.arg(0)
    return array


@native("at", 1)
def _array_at(call: NativeCall) -> Any:
    elements = _receiver_array(call).elements
    index = to_integer(call.arg(0))
    if index < 0:
        index += len(elements)
    return elements[index] if 0 <= index < len(elements) else UNDEFINED


@native("toString")
def _to_string(call: NativeCall) -> Any:
    return to_string(call.this)


ARRAY_METHODS: dict[str, NativeFunction] = {
    fn.name: fn
    for fn in (
        _array_push,
        _array_pop,
        _array_shift,
        _array_unshift,
        _array_slice,
        _array_splice,
        _array_concat,
        _array_join,
        _array_index_of,
        _array_last_index_of,
        _array_includes,
        _array_reverse,
        _array_sort,
        _array_map,
        _array_filter,
        _array_for_each,
        _array_find,
        _array_find_index,
        _array_some,
        _array_every,
        _array_reduce,
        _array_reduce_right,
        _array_flat,
        _array_flat_map,
        _array_fill,
        _array_at,
        _to_string,
    )
}


# ── String methods ───────────────────────────────────────────────


@native("charAt", 1)
def _string_char_at(call: NativeCall) -> Any:
    text = _receiver_string(call)
    index = to_integer(call.arg(0))
    return text[index] if 0 <= index < len(text) else ""


@native("charCodeAt", 1)
def _string_char_code_at(call: NativeCall) -> Any:
    text = _receiver_string(call)
    index = to_integer(call.arg(0))
    return ord(text[index]) if 0 <= index < len(text) else math.nan


@native("at", 1)
def _string_at(call: NativeCall) -> Any:
    text = _receiver_string(call)
    index = to_integer(call.arg(0))
    if index < 0:
        index += len(text)
    return text[index] if 0 <= index < len(text) else UNDEFINED


@native("indexOf", 1)
def _string_index_of(call: NativeCall) -> Any:
    text = _receiver_string(call)
    return text.find(to_string(call.arg(0)), max(to_integer(call.arg(1)), 0))


@native("lastIndexOf", 1)
def _string_last_index_of(call: NativeCall) -> Any:
    return _receiver_string(call).rfind(to_string(call.arg(0)))


@native("includes", 1)
def _string_includes(call: NativeCall) -> Any:
    text = _receiver_string(call)
    return to_string(call.arg(0)) in text[max(to_integer(call.arg(1)), 0) :]


@native("startsWith", 1)
def _string_starts_with(call: NativeCall) -> Any:
    text = _receiver_string(call)
    return text.startswith(to_string(call.arg(0)), max(to_integer(call.arg(1)), 0))


@native("endsWith", 1)
def _string_ends_with(call: NativeCall) -> Any:
    text = _receiver_string(call)
    end = _relative(call.arg(1), len(text), len(text))
    return text[:end].endswith(to_string(call.arg(0)))


@native("slice", 2)
def _string_slice(call: NativeCall) -> Any:
    text = _receiver_string(call)
    start = _relative(call.arg(0), len(text), 0)
    end = _relative(call.arg(1), len(text), len(text))
    return text[start:end]


@native("substring", 2)
def _string_substring(call: NativeCall) -> Any:
    text = _receiver_string(call)
    start = min(max(to_integer(call.arg(0)), 0), len(text))
    end = min(max(to_integer(call.arg(1), len(text)), 0), len(text))
    if start > end:
        start, end = end, start
    return text[start:end]


@native("toUpperCase")
def _string_upper(call: NativeCall) -> Any:
    return _receiver_string(call).upper()


@native("toLowerCase")
def _string_lower(call: NativeCall) -> Any:
    return _receiver_string(call).lower()


@native("trim")
def _string_trim(call: NativeCall) -> Any:
    return _receiver_string(call).strip()


@native("trimStart")
def _string_trim_start(call: NativeCall) -> Any:
    return _receiver_string(call).lstrip()


@native("trimEnd")
def _string_trim_end(call: NativeCall) -> Any:
    return _receiver_string(call).rstrip()


@native("split", 2)
def _string_split(call: NativeCall) -> Any:
    text = _receiver_string(call)
    separator = call.arg(0)
    if separator is UNDEFINED:
        parts = [text]
    elif to_string(separator) == "":
        parts = list(text)
    else:
        parts = text.split(to_string(separator))
    if call.arg(1) is not UNDEFINED:
        parts = parts[: max(to_integer(call.arg(1)), 0)]
    return JSArray(elements=parts)


@native("repeat", 1)
def _string_repeat(call: NativeCall) -> Any:
    count = to_integer(call.arg(0))
    if count < 0:
        raise throw_error("RangeError", f"Invalid count value: {count}")
    return _receiver_string(call) * count


def _padding(call: NativeCall) -> str:
    text = _receiver_string(call)
    filler = " " if call.arg(1) is UNDEFINED else to_string(call.arg(1))
    missing = to_integer(call.arg(0)) - len(text)
    if missing <= 0 or not filler:
        return ""
    return (filler * (missing // len(filler) + 1))[:missing]


@native("padStart", 2)
def _string_pad_start(call: NativeCall) -> Any:
    return _padding(call) + _receiver_string(call)


@native("padEnd", 2)
def _string_pad_end(call: NativeCall) -> Any:
    return _receiver_string(call) + _padding(call)


def _replace(call: NativeCall, count: int) -> str:
    text = _receiver_string(call)
    pattern = to_string(call.arg(0))
    replacement = call.arg(1)
    pieces = text.split(pattern, count) if count > 0 else text.split(pattern)
    result = pieces[0]
    position = len(pieces[0])
    for piece in pieces[1:]:
        if is_callable(replacement):
            result += to_string(call.invoke(replacement, pattern, position, text))
        else:
            result += to_string(replacement)
        result += piece
        position += len(pattern) + len(piece)
    return result


@native("replace", 2)
def _string_replace(call: NativeCall) -> Any:
    return _replace(call, 1)


@native("replaceAll", 2)
def _string_replace_all(call: NativeCall) -> Any:
    return _replace(call, 0)


@native("concat", 1)
def _string_concat(call: NativeCall) -> Any:
    return _receiver_string(call) + "".join(to_string(arg) for arg in call.args)


STRING_METHODS: dict[str, NativeFunction] = {
    fn.name: fn
    for fn in (
        _string_char_at,
        _string_char_code_at,
        _string_at,
        _string_index_of,
        _string_last_index_of,
        _string_includes,
        _string_starts_with,
        _string_ends_with,
        _string_slice,
        _string_substring,
        _string_upper,
        _string_lower,
        _string_trim,
        _string_trim_start,
        _string_trim_end,
        _string_split,
        _string_repeat,
        _string_pad_start,
        _string_pad_end,
        _string_replace,
        _string_replace_all,
        _string_concat,
        _to_string,
    )
}


# ── Number, boolean, function and object members ─────────────────


def integer_to_radix(value: int, radix: int) -> str:
    if value == 0:
        return "0"
    digits = []
    magnitude = abs(value)
    while magnitude:
        magnitude, remainder = divmod(magnitude, radix)
        digits.append(_DIGITS[remainder])
    return ("-" if value < 0 else "") + "".join(reversed(digits))


@native("toFixed", 1)
def _number_to_fixed(call: NativeCall) -> Any:
    value = to_number(call.this)
    digits = to_integer(call.arg(0))
    if not 0 <= digits <= 100:
        raise throw_error("RangeError", "toFixed() digits argument must be between 0 and 100")
    if math.isnan(value) or math.isinf(value) or abs(value) >= 1e21:
        return number_to_string(value)
    quantum = Decimal(1).scaleb(-digits)
    return str(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


@native("toString", 1)
def _number_to_string(call: NativeCall) -> Any:
    value = to_number(call.this)
    radix = 10 if call.arg(0) is UNDEFINED else to_integer(call.arg(0))
    if not 2 <= radix <= 36:
        raise throw_error("RangeError", "toString() radix must be between 2 and 36")
    if radix == 10 or not isinstance(normalize_number(value), int):
        return number_to_string(value)
    return integer_to_radix(int(value), radix)


NUMBER_METHODS: dict[str, NativeFunction] = {
    "toFixed": _number_to_fixed,
    "toString": _number_to_string,
}

PRIMITIVE_METHODS: dict[str, NativeFunction] = {"toString": _to_string}


@native("call", 1, records_own_step=True)
def _function_call(call: NativeCall) -> Any:
    return call.interpreter.call_function(
        call.this, call.arg(0), call.args[1:], call.line, call.env_id
    )


@native("apply", 2, records_own_step=True)
def _function_apply(call: NativeCall) -> Any:
    arguments = call.arg(1)
    if is_nullish(arguments):
        args: list[Any] = []
    elif isinstance(arguments, JSArray):
        args = list(arguments.elements)
    else:
        raise TypeMisuse("CreateListFromArrayLike called on non-object")
    return call.interpreter.call_function(
        call.this, call.arg(0), args, call.line, call.env_id
    )


@native("bind", 1)
def _function_bind(call: NativeCall) -> Any:
    target = call.this
    if not is_callable(target):
        raise TypeMisuse("Bind must be called on a function")
    bound_this = call.arg(0)
    bound_args = list(call.args[1:])

    def invoke_bound(inner: NativeCall) -> Any:
        return inner.interpreter.call_function(
            target, bound_this, bound_args + inner.args, inner.line, inner.env_id
        )

    return NativeFunction(
        name=f"bound {target.name}",
        impl=invoke_bound,
        arity=max(function_length(target) - len(bound_args), 0),
        records_own_step=True,
    )


FUNCTION_METHODS: dict[str, NativeFunction] = {
    "call": _function_call,
    "apply": _function_apply,
    "bind": _function_bind,
    "toString": _to_string,
}


@native("hasOwnProperty", 1)
def _object_has_own_property(call: NativeCall) -> Any:
    key = to_property_key(call.arg(0))
    return key in own_keys(call.this)


OBJECT_METHODS: dict[str, NativeFunction] = {
    "hasOwnProperty": _object_has_own_property,
    "toString": _to_string,
}


# ── Promise members ──────────────────────────────────────────────


def _receiver_promise(call: NativeCall) -> PromiseRecord:
    if not isinstance(call.this, PromiseRecord):
        raise TypeMisuse(f"Promise.prototype.{call.name} called on incompatible receiver")
    return call.this


@native("then", 2, records_own_step=True)
def _promise_then(call: NativeCall) -> Any:
    return call.interpreter.promises.then(
        _receiver_promise(call),
        call.arg(0),
        call.arg(1),
        constants.THEN_LABEL,
        call.line,
        call.env_id,
    )


@native("catch", 1, records_own_step=True)
def _promise_catch(call: NativeCall) -> Any:
    return call.interpreter.promises.then(
        _receiver_promise(call),
        UNDEFINED,
        call.arg(0),
        constants.CATCH_LABEL,
        call.line,
        call.env_id,
    )


@native("finally", 1, records_own_step=True)
def _promise_finally(call: NativeCall) -> Any:
    return call.interpreter.promises.then(
        _receiver_promise(call),
        call.arg(0),
        call.arg(0),
        constants.FINALLY_LABEL,
        call.line,
        call.env_id,
        is_finally=True,
    )


PROMISE_METHODS: dict[str, NativeFunction] = {
    "then": _promise_then,
    "catch": _promise_catch,
    "finally": _promise_finally,
}
