"""Syntactic classification of call sites into a closed set of shapes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from tree_sitter import Node

from . import constants


class CallKind(str, Enum):
    CONSOLE = "console"
    TIMER = "timer"
    PROMISE_THEN = "promise_then"
    PROMISE_STATIC = "promise_static"
    PROMISE_CTOR = "promise_ctor"
    FUNCTION_INVOKE = "function_invoke"
    METHOD = "method"
    PLAIN = "plain"
    CONSTRUCT = "construct"


@dataclass(frozen=True)
class CallShape:
    """What a call site looks like, decided once from its syntax.

    ``name`` is the callee as written (``setTimeout``, ``console``,
    ``counter.increment``); ``method`` is the property name for member
    calls. The interpreter still checks the runtime receiver before it
    takes a special path, so a shadowed ``console`` behaves normally.
    """

    kind: CallKind
    name: str
    method: str = ""


class CallClassifier:
    """Classifies ``call_expression`` and ``new_expression`` nodes, with a cache."""

    def __init__(self, source: bytes):
        self._source = source
        self._cache: dict[tuple[str, int, int], CallShape] = {}

    def classify(self, node: Node) -> CallShape:
        key = (node.type, node.start_byte, node.end_byte)
        shape = self._cache.get(key)
        if shape is None:
            shape = self._classify(node)
            self._cache[key] = shape
        return shape

    def _text(self, node: Node) -> str:
        return self._source[node.start_byte : node.end_byte].decode("utf-8")

    def _classify(self, node: Node) -> CallShape:
        if node.type == "new_expression":
            ctor = node.child_by_field_name("constructor")
            name = self._text(ctor)
            if ctor.type == "identifier" and name == constants.PROMISE_CONSTRUCTOR:
                return CallShape(CallKind.PROMISE_CTOR, name)
            return CallShape(CallKind.CONSTRUCT, name)

        callee = node.child_by_field_name("function")
        if callee.type == "identifier":
            name = self._text(callee)
            if name in constants.TIMER_FUNCTIONS:
                return CallShape(CallKind.TIMER, name)
            return CallShape(CallKind.PLAIN, name)
        if callee.type != "member_expression":
            return CallShape(CallKind.PLAIN, self._text(callee))

        receiver = callee.child_by_field_name("object")
        method = self._text(callee.child_by_field_name("property"))
        receiver_name = self._text(receiver) if receiver.type == "identifier" else ""
        name = f"{self._text(receiver)}.{method}"
        if receiver_name == constants.CONSOLE_OBJECT:
            return CallShape(CallKind.CONSOLE, name, method)
        if (
            receiver_name == constants.PROMISE_CONSTRUCTOR
            and method in constants.PROMISE_STATIC_METHODS
        ):
            return CallShape(CallKind.PROMISE_STATIC, name, method)
        if method in constants.PROMISE_CHAIN_METHODS:
            return CallShape(CallKind.PROMISE_THEN, name, method)
        if method in constants.FUNCTION_INVOKE_METHODS:
            return CallShape(CallKind.FUNCTION_INVOKE, name, method)
        return CallShape(CallKind.METHOD, name, method)
