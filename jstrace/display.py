"""Human-readable rendering of JavaScript values for trace snapshots."""

from __future__ import annotations

from typing import Any

from . import constants
from .vm import error_to_string, is_error_object, is_number, number_to_string
from .vm_types import (
    UNDEFINED,
    JSArray,
    JSObject,
    NativeFunction,
    PromiseRecord,
    PromiseState,
    TracedFunction,
)


def format_value(value: Any) -> str:
    """Render *value* the way the variable and heap panels show it."""
    return _format(value, depth=0, seen=set())


def format_console_args(args: list[Any]) -> str:
    """Join console arguments with spaces; top-level strings print bare."""
    return " ".join(arg if isinstance(arg, str) else format_value(arg) for arg in args)


def _format(value: Any, depth: int, seen: set[int]) -> str:
    if value is UNDEFINED:
        return "undefined"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if is_number(value):
        return number_to_string(value)
    if isinstance(value, str):
        return f'"{value}"'
    if isinstance(value, (TracedFunction, NativeFunction)):
        return f"ƒ {value.name or constants.ANONYMOUS}()"
    if id(value) in seen:
        return "[Circular]"
    if depth >= constants.DISPLAY_MAX_DEPTH:
        return "[Array]" if isinstance(value, JSArray) else "{...}"
    seen = seen | {id(value)}
    if isinstance(value, PromiseRecord):
        if value.state == PromiseState.PENDING:
            return "Promise {<pending>}"
        return f"Promise {{<{value.state.value}>: {_format(value.value, depth + 1, seen)}}}"
    if isinstance(value, JSArray):
        items = ", ".join(_format(item, depth + 1, seen) for item in value.elements)
        return f"[{items}]"
    if is_error_object(value):
        return error_to_string(value)
    if isinstance(value, JSObject):
        keys = value.own_keys()
        shown = [
            f"{key}: {_format(value.get_own(key), depth + 1, seen)}"
            for key in keys[: constants.DISPLAY_MAX_KEYS]
        ]
        if len(keys) > constants.DISPLAY_MAX_KEYS:
            shown.append("...")
        return "{" + ", ".join(shown) + "}"
    return str(value)
