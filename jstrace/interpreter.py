"""Tree-walking interpreter over the tree-sitter JavaScript syntax tree."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from . import constants
from .call_shapes import CallClassifier, CallKind, CallShape
from .context import RunContext
from .display import format_value
from .early_errors import binding_identifiers
from .errors import IllegalJump, TypeMisuse, UnsupportedSyntax, UserThrow
from .promises import PromiseOps
from .properties import delete_member, get_member, iterate, own_keys, set_member
from .trace_types import StepType
from .vm import (
    Operators,
    is_nullish,
    join_surrogates,
    normalize_number,
    number_to_string,
    to_boolean,
    to_number,
    to_property_key,
    to_string,
)
from .vm_types import (
    NORMAL,
    UNDEFINED,
    BindingKind,
    JSArray,
    JSObject,
    NativeCall,
    NativeFunction,
    PromiseRecord,
    ScopeKind,
    Signal,
    SignalKind,
    TracedFunction,
    is_callable,
)

logger = logging.getLogger(__name__)

_SCOPE_BOUNDARY_TYPES = constants.FUNCTION_NODE_TYPES | {"class_declaration", "class"}

_UNSUPPORTED: dict[str, str] = {
    "class_declaration": "class",
    "class": "class",
    "await_expression": "await",
    "yield_expression": "yield",
    "generator_function_declaration": "generator function",
    "generator_function": "generator function",
    "regex": "regular expression",
    "import_statement": "import",
    "export_statement": "export",
    "with_statement": "with",
    "meta_property": "new.target",
    "super": "super",
}

_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}

_LOGICAL_OPERATORS = frozenset({"&&", "||", "??"})

_LABEL_TARGETS = constants.LOOP_NODE_TYPES | {"labeled_statement", "switch_statement"}


@dataclass
class Reference:
    """An assignable place: a binding name or an object property."""

    name: str | None = None
    target: Any = None
    key: str | None = None

    @property
    def is_binding(self) -> bool:
        return self.name is not None


class Interpreter:
    """Evaluates one parsed program against a ``RunContext``.

    Statements go through ``_STMT_DISPATCH`` and return a ``Signal``;
    expressions go through ``_EXPR_DISPATCH`` and return a value. A JS
    ``throw`` inside an expression travels as ``UserThrow`` up to the
    nearest statement, which turns it into a THROW signal.
    """

    def __init__(self, source: str, ctx: RunContext):
        self.source = source.encode("utf-8")
        self.ctx = ctx
        self.arena = ctx.arena
        self.promises = PromiseOps(self)
        self.classifier = CallClassifier(self.source)
        self._pending_labels: set[str] = set()
        self._STMT_DISPATCH: dict[str, Callable[[Any, int], Signal]] = {
            "expression_statement": self._exec_expression_statement,
            "lexical_declaration": self._exec_lexical_declaration,
            "variable_declaration": self._exec_variable_declaration,
            "function_declaration": self._exec_function_declaration,
            "return_statement": self._exec_return,
            "if_statement": self._exec_if,
            "statement_block": self._exec_block,
            "empty_statement": self._exec_empty,
            "debugger_statement": self._exec_empty,
            "for_statement": self._exec_for,
            "for_in_statement": self._exec_for_in,
            "while_statement": self._exec_while,
            "do_statement": self._exec_do_while,
            "switch_statement": self._exec_switch,
            "try_statement": self._exec_try,
            "throw_statement": self._exec_throw,
            "break_statement": self._exec_break,
            "continue_statement": self._exec_continue,
            "labeled_statement": self._exec_labeled,
        }
        self._EXPR_DISPATCH: dict[str, Callable[[Any, int], Any]] = {
            "identifier": self._eval_identifier,
            "undefined": lambda node, env_id: UNDEFINED,
            "null": lambda node, env_id: None,
            "true": lambda node, env_id: True,
            "false": lambda node, env_id: False,
            "this": lambda node, env_id: self.arena.lookup_this(env_id),
            "number": self._eval_number,
            "string": self._eval_string,
            "template_string": self._eval_template,
            "parenthesized_expression": self._eval_parenthesized,
            "sequence_expression": self._eval_sequence,
            "array": self._eval_array,
            "object": self._eval_object,
            "member_expression": self._eval_member,
            "subscript_expression": self._eval_subscript,
            "call_expression": self._eval_call,
            "new_expression": self._eval_new,
            "assignment_expression": self._eval_assignment,
            "augmented_assignment_expression": self._eval_augmented_assignment,
            "binary_expression": self._eval_binary,
            "unary_expression": self._eval_unary,
            "update_expression": self._eval_update,
            "ternary_expression": self._eval_ternary,
            "function_expression": self._eval_function,
            "function": self._eval_function,
            "arrow_function": self._eval_function,
        }
        self._CALL_DISPATCH: dict[CallKind, Callable[[Any, CallShape, int], Any]] = {
            CallKind.CONSOLE: self._call_console,
            CallKind.TIMER: self._call_timer,
            CallKind.PROMISE_THEN: self._call_promise_then,
            CallKind.PROMISE_STATIC: self._call_promise_static,
            CallKind.FUNCTION_INVOKE: self._call_function_invoke,
            CallKind.METHOD: self._call_generic,
            CallKind.PLAIN: self._call_generic,
        }

    # ── Helpers ──────────────────────────────────────────────────

    def _text(self, node) -> str:
        return self.source[node.start_byte : node.end_byte].decode("utf-8")

    def _snippet(self, node) -> str:
        text = " ".join(self._text(node).split())
        if len(text) > constants.DESCRIPTION_MAX_SOURCE:
            return text[: constants.DESCRIPTION_MAX_SOURCE - 1] + "…"
        return text

    @staticmethod
    def _line(node) -> int:
        return node.start_point[0] + 1

    @staticmethod
    def _statements(node) -> list:
        return [
            child for child in node.named_children if child.type not in constants.COMMENT_TYPES
        ]

    @staticmethod
    def _unwrap(node):
        """Strip ``expression_statement`` / ``empty_statement`` wrappers from for-heads."""
        if node is None or node.type in ("empty_statement", ";"):
            return None
        if node.type == "expression_statement":
            children = Interpreter._statements(node)
            return children[0] if children else None
        return node

    def _unsupported(self, node) -> UnsupportedSyntax:
        construct = _UNSUPPORTED.get(node.type, node.type.replace("_", " "))
        return UnsupportedSyntax(construct, self._line(node))

    def _builtin(self, name: str) -> Any:
        return self.arena.globals.get(name)

    @staticmethod
    def _format_args(args: list[Any]) -> str:
        return ", ".join(format_value(arg) for arg in args)

    # ── Program ──────────────────────────────────────────────────

    def run_program(self, root) -> None:
        env_id = self.arena.global_id
        self.ctx.record(1, StepType.START, "Program execution started", env_id)
        statements = [
            child for child in self._statements(root) if child.type != "hashbang_line"
        ]
        self._hoist_vars(statements, env_id)
        signal = self.exec_statements(statements, env_id)
        if signal.kind == SignalKind.THROW:
            raise UserThrow(signal.value)
        if signal.kind != SignalKind.NORMAL:
            raise IllegalJump(signal.kind.value)
        self.ctx.record(None, StepType.END, "Program execution completed", env_id)

    # ── Hoisting ─────────────────────────────────────────────────

    def _hoist_vars(self, nodes: list, env_id: int) -> None:
        """Pre-bind every ``var`` name under *nodes*, not entering nested functions."""
        for node in nodes:
            if node.type in _SCOPE_BOUNDARY_TYPES:
                continue
            if node.type == "variable_declaration":
                for declarator in self._statements(node):
                    if declarator.type == "variable_declarator":
                        self._hoist_names(declarator.child_by_field_name("name"), env_id)
            elif node.type == "for_in_statement" and self._for_in_kind(node) == "var":
                self._hoist_names(self._for_in_target(node), env_id)
            self._hoist_vars(node.named_children, env_id)

    def _hoist_names(self, pattern, env_id: int) -> None:
        env = self.arena[env_id]
        for name in self._pattern_names(pattern):
            if name not in env.bindings:
                self.arena.define(env_id, name, UNDEFINED, BindingKind.VAR)

    def _pattern_names(self, pattern) -> list[str]:
        return [self._text(identifier) for identifier in binding_identifiers(pattern)]

    def _hoist_functions(self, statements: list, env_id: int) -> None:
        for statement in statements:
            if statement.type != "function_declaration":
                continue
            fn = self._make_function(statement, env_id)
            self.arena.define(env_id, fn.name, fn, BindingKind.FUNCTION)
            self.ctx.record(
                self._line(statement),
                StepType.FUNCTION,
                f"Function {fn.name} declared (hoisted)",
                env_id,
            )

    # ── Statements ───────────────────────────────────────────────

    def exec_statement(self, node, env_id: int) -> Signal:
        handler = self._STMT_DISPATCH.get(node.type)
        if handler is None:
            if (
                node.type in _UNSUPPORTED
                or node.type.endswith("_statement")
                or node.type.endswith("declaration")
            ):
                raise self._unsupported(node)
            handler = self._exec_expression_statement
        if node.type not in _LABEL_TARGETS:
            self._pending_labels = set()
        self.ctx.tick()
        self.ctx.stats.statements += 1
        try:
            return handler(node, env_id)
        except UserThrow as exc:
            return Signal(SignalKind.THROW, exc.value)

    def exec_statements(self, statements: list, env_id: int) -> Signal:
        self._hoist_functions(statements, env_id)
        for statement in statements:
            signal = self.exec_statement(statement, env_id)
            if signal.kind != SignalKind.NORMAL:
                return signal
        return NORMAL

    def _block_scope(self, statements: list, env_id: int, name: str) -> int:
        """A fresh block environment, but only when the block declares something."""
        declares = any(
            statement.type in ("lexical_declaration", "function_declaration")
            for statement in statements
        )
        if not declares:
            return env_id
        return self.arena.create(name, ScopeKind.BLOCK, env_id).env_id

    def _exec_block(self, node, env_id: int) -> Signal:
        statements = self._statements(node)
        scope_id = self._block_scope(statements, env_id, constants.BLOCK_SCOPE_NAME)
        return self.exec_statements(statements, scope_id)

    def _exec_empty(self, node, env_id: int) -> Signal:
        return NORMAL

    def _exec_expression_statement(self, node, env_id: int) -> Signal:
        expression = node
        if node.type == "expression_statement":
            expression = self._unwrap(node)
            if expression is None:
                return NORMAL
        self.eval_expression(expression, env_id)
        return NORMAL

    def _exec_function_declaration(self, node, env_id: int) -> Signal:
        # Bound when the enclosing block was entered.
        if self._is_async(node):
            raise UnsupportedSyntax("async function", self._line(node))
        return NORMAL

    def _exec_return(self, node, env_id: int) -> Signal:
        children = self._statements(node)
        value = self.eval_expression(children[0], env_id) if children else UNDEFINED
        self.ctx.record(
            self._line(node), StepType.RETURNING, f"Return {format_value(value)}", env_id
        )
        return Signal(SignalKind.RETURN, value)

    def _exec_throw(self, node, env_id: int) -> Signal:
        value = self.eval_expression(self._statements(node)[0], env_id)
        self.ctx.record(
            self._line(node), StepType.THROW, f"throw {format_value(value)}", env_id
        )
        return Signal(SignalKind.THROW, value)

    def _exec_break(self, node, env_id: int) -> Signal:
        label = node.child_by_field_name("label")
        return Signal(SignalKind.BREAK, label=self._text(label) if label else None)

    def _exec_continue(self, node, env_id: int) -> Signal:
        label = node.child_by_field_name("label")
        return Signal(SignalKind.CONTINUE, label=self._text(label) if label else None)

    def _exec_labeled(self, node, env_id: int) -> Signal:
        label = self._text(node.child_by_field_name("label"))
        body = node.child_by_field_name("body")
        self._pending_labels.add(label)
        try:
            signal = self.exec_statement(body, env_id)
        finally:
            self._pending_labels.discard(label)
        if signal.kind == SignalKind.BREAK and signal.label == label:
            return NORMAL
        return signal

    def _take_labels(self) -> set[str]:
        labels, self._pending_labels = self._pending_labels, set()
        return labels

    def _exec_if(self, node, env_id: int) -> Signal:
        condition = node.child_by_field_name("condition")
        test = to_boolean(self.eval_expression(condition, env_id))
        self.ctx.record(
            self._line(node),
            StepType.CONDITIONAL,
            f"if {self._snippet(condition)} → {'true' if test else 'false'}",
            env_id,
        )
        if test:
            return self.exec_statement(node.child_by_field_name("consequence"), env_id)
        alternative = node.child_by_field_name("alternative")
        if alternative is None:
            return NORMAL
        if alternative.type == "else_clause":
            alternative = self._statements(alternative)[0]
        if alternative.type != "if_statement":
            self.ctx.record(
                self._line(alternative), StepType.CONDITIONAL, "Entering else branch", env_id
            )
        return self.exec_statement(alternative, env_id)

    # ── Declarations and patterns ────────────────────────────────

    def _exec_lexical_declaration(self, node, env_id: int) -> Signal:
        kind_node = node.child_by_field_name("kind")
        keyword = self._text(kind_node) if kind_node else self._text(node).split()[0]
        kind = BindingKind.CONST if keyword == "const" else BindingKind.LET
        self._declare(node, kind, env_id)
        return NORMAL

    def _exec_variable_declaration(self, node, env_id: int) -> Signal:
        self._declare(node, BindingKind.VAR, env_id)
        return NORMAL

    def _declare(self, node, kind: BindingKind, env_id: int) -> None:
        for declarator in self._statements(node):
            if declarator.type != "variable_declarator":
                continue
            target = declarator.child_by_field_name("name")
            value_node = declarator.child_by_field_name("value")
            if value_node is None:
                if kind == BindingKind.VAR:
                    continue
                value = UNDEFINED
            else:
                hint = self._text(target) if target.type == "identifier" else None
                value = self._eval_named(value_node, env_id, hint)
            self._bind_pattern(target, value, env_id, kind, self._line(declarator))

    def _bind_pattern(
        self,
        pattern,
        value: Any,
        env_id: int,
        kind: BindingKind | None,
        line: int | None,
        record: bool = True,
    ) -> None:
        """Bind or assign *value* to *pattern*.

        ``kind=None`` means plain assignment to existing places; otherwise
        names are declared with that binding kind.
        """
        kind_of = pattern.type
        if kind_of in ("identifier", "shorthand_property_identifier_pattern", "undefined"):
            self._bind_name(self._text(pattern), value, env_id, kind, line, record)
        elif kind_of == "assignment_pattern":
            left = pattern.child_by_field_name("left")
            if value is UNDEFINED:
                hint = self._text(left) if left.type == "identifier" else None
                value = self._eval_named(pattern.child_by_field_name("right"), env_id, hint)
            self._bind_pattern(left, value, env_id, kind, line, record)
        elif kind_of == "object_pattern":
            self._bind_object_pattern(pattern, value, env_id, kind, line, record)
        elif kind_of == "array_pattern":
            self._bind_array_pattern(pattern, value, env_id, kind, line, record)
        elif kind_of in ("member_expression", "subscript_expression") and kind is None:
            ref = self._reference(pattern, env_id)
            self._write_reference(ref, value, env_id, line)
        elif kind_of == "parenthesized_expression":
            self._bind_pattern(self._statements(pattern)[0], value, env_id, kind, line, record)
        else:
            raise self._unsupported(pattern)

    def _bind_name(
        self,
        name: str,
        value: Any,
        env_id: int,
        kind: BindingKind | None,
        line: int | None,
        record: bool,
    ) -> None:
        if kind is None:
            self.arena.set(env_id, name, value)
            self.ctx.allocate_heap(value, name)
            if record:
                self.ctx.record(
                    line, StepType.ASSIGNMENT, f"{name} = {format_value(value)}", env_id
                )
            return
        target_id = self.arena.function_scope(env_id) if kind == BindingKind.VAR else env_id
        self.arena.define(target_id, name, value, kind)
        self.ctx.allocate_heap(value, name)
        if record:
            self.ctx.record(
                line,
                StepType.VARIABLE,
                f"Declared {kind.value} {name} = {format_value(value)}",
                env_id,
            )

    def _bind_object_pattern(self, pattern, value, env_id, kind, line, record) -> None:
        if is_nullish(value):
            raise TypeMisuse(f"Cannot destructure '{to_string(value)}' as it is {to_string(value)}.")
        used: list[str] = []
        for child in self._statements(pattern):
            if child.type == "shorthand_property_identifier_pattern":
                key = self._text(child)
                used.append(key)
                self._bind_pattern(child, get_member(value, key), env_id, kind, line, record)
            elif child.type == "object_assignment_pattern":
                left = child.child_by_field_name("left")
                key = self._text(left)
                used.append(key)
                item = get_member(value, key)
                if item is UNDEFINED:
                    item = self._eval_named(child.child_by_field_name("right"), env_id, key)
                self._bind_pattern(left, item, env_id, kind, line, record)
            elif child.type == "pair_pattern":
                key = self._property_key(child.child_by_field_name("key"), env_id)
                used.append(key)
                self._bind_pattern(
                    child.child_by_field_name("value"),
                    get_member(value, key),
                    env_id,
                    kind,
                    line,
                    record,
                )
            elif child.type == "rest_pattern":
                rest = JSObject(
                    properties={
                        key: get_member(value, key)
                        for key in own_keys(value)
                        if key not in used
                    }
                )
                self._bind_pattern(
                    self._statements(child)[0], rest, env_id, kind, line, record
                )

    def _bind_array_pattern(self, pattern, value, env_id, kind, line, record) -> None:
        items = list(iterate(value))
        index = 0
        for child in pattern.children:
            if child.type == ",":
                index += 1
            elif not child.is_named or child.type in constants.COMMENT_TYPES:
                continue
            elif child.type == "rest_pattern":
                rest = JSArray(elements=items[index:])
                self._bind_pattern(
                    self._statements(child)[0], rest, env_id, kind, line, record
                )
            else:
                item = items[index] if index < len(items) else UNDEFINED
                self._bind_pattern(child, item, env_id, kind, line, record)

    def _property_key(self, node, env_id: int) -> str:
        if node.type == "computed_property_name":
            return to_property_key(self.eval_expression(self._statements(node)[0], env_id))
        if node.type == "string":
            return self._eval_string(node, env_id)
        if node.type == "number":
            return to_property_key(self._eval_number(node, env_id))
        return self._text(node)

    # ── Loops ────────────────────────────────────────────────────

    @staticmethod
    def _after_body(signal: Signal, labels: set[str]) -> Signal | None:
        """``None`` keeps the loop going; a signal leaves the loop with it."""
        if signal.kind == SignalKind.NORMAL:
            return None
        own = signal.label is None or signal.label in labels
        if signal.kind == SignalKind.CONTINUE and own:
            return None
        if signal.kind == SignalKind.BREAK and own:
            return NORMAL
        return signal

    def _copy_scope(self, env_id: int) -> int:
        """Fresh per-iteration environment holding copies of the loop bindings."""
        source = self.arena[env_id]
        copy = self.arena.create(source.name, source.kind, source.parent_id)
        for name, binding in source.bindings.items():
            self.arena.define(copy.env_id, name, binding.value, binding.kind)
        return copy.env_id

    def _exec_for(self, node, env_id: int) -> Signal:
        labels = self._take_labels()
        line = self._line(node)
        initializer = self._unwrap(node.child_by_field_name("initializer"))
        condition = self._unwrap(node.child_by_field_name("condition"))
        increment = self._unwrap(
            node.child_by_field_name("increment") or node.child_by_field_name("update")
        )
        body = node.child_by_field_name("body")
        self.ctx.record(line, StepType.LOOP, "for loop started", env_id)

        per_iteration = initializer is not None and initializer.type == "lexical_declaration"
        loop_id = env_id
        if per_iteration:
            loop_id = self.arena.create(
                constants.LOOP_SCOPE_NAME, ScopeKind.BLOCK, env_id
            ).env_id
        if initializer is not None:
            if initializer.type in ("lexical_declaration", "variable_declaration"):
                self.exec_statement(initializer, loop_id)
            else:
                self.eval_expression(initializer, loop_id)

        while True:
            self.ctx.tick()
            if condition is not None:
                test = to_boolean(self.eval_expression(condition, loop_id))
                self.ctx.record(
                    line,
                    StepType.LOOP,
                    f"for condition: {self._snippet(condition)} → {'true' if test else 'false'}",
                    loop_id,
                )
                if not test:
                    break
            outcome = self._after_body(self.exec_statement(body, loop_id), labels)
            if outcome is not None:
                return outcome
            if per_iteration:
                loop_id = self._copy_scope(loop_id)
            if increment is not None:
                self.eval_expression(increment, loop_id)
        return NORMAL

    def _exec_while(self, node, env_id: int) -> Signal:
        labels = self._take_labels()
        line = self._line(node)
        condition = node.child_by_field_name("condition")
        body = node.child_by_field_name("body")
        self.ctx.record(line, StepType.LOOP, "while loop started", env_id)
        while True:
            self.ctx.tick()
            test = to_boolean(self.eval_expression(condition, env_id))
            self.ctx.record(
                line,
                StepType.LOOP,
                f"while condition: {self._snippet(condition)} → {'true' if test else 'false'}",
                env_id,
            )
            if not test:
                return NORMAL
            outcome = self._after_body(self.exec_statement(body, env_id), labels)
            if outcome is not None:
                return outcome

    def _exec_do_while(self, node, env_id: int) -> Signal:
        labels = self._take_labels()
        line = self._line(node)
        condition = node.child_by_field_name("condition")
        body = node.child_by_field_name("body")
        self.ctx.record(line, StepType.LOOP, "do-while loop started", env_id)
        while True:
            self.ctx.tick()
            outcome = self._after_body(self.exec_statement(body, env_id), labels)
            if outcome is not None:
                return outcome
            test = to_boolean(self.eval_expression(condition, env_id))
            self.ctx.record(
                line,
                StepType.LOOP,
                f"do-while condition: {self._snippet(condition)} → {'true' if test else 'false'}",
                env_id,
            )
            if not test:
                return NORMAL

    def _for_in_kind(self, node) -> str | None:
        kind = node.child_by_field_name("kind")
        if kind is not None:
            return self._text(kind)
        left = node.child_by_field_name("left")
        if left is not None and left.type in ("lexical_declaration", "variable_declaration"):
            return self._text(left).split()[0]
        return None

    def _for_in_target(self, node):
        left = node.child_by_field_name("left")
        if left.type in ("lexical_declaration", "variable_declaration"):
            declarator = [
                child for child in self._statements(left) if child.type == "variable_declarator"
            ][0]
            return declarator.child_by_field_name("name")
        return left

    def _exec_for_in(self, node, env_id: int) -> Signal:
        labels = self._take_labels()
        line = self._line(node)
        operator = node.child_by_field_name("operator")
        is_of = operator is not None and self._text(operator) == "of"
        keyword = self._for_in_kind(node)
        target = self._for_in_target(node)
        body = node.child_by_field_name("body")
        subject = self.eval_expression(node.child_by_field_name("right"), env_id)
        self.ctx.record(
            line, StepType.LOOP, f"for-{'of' if is_of else 'in'} loop started", env_id
        )
        items = iterate(subject) if is_of else iter(own_keys(subject))
        kind = BindingKind(keyword) if keyword else None
        for item in items:
            self.ctx.tick()
            iteration_id = env_id
            if kind in (BindingKind.LET, BindingKind.CONST):
                iteration_id = self.arena.create(
                    constants.LOOP_SCOPE_NAME, ScopeKind.BLOCK, env_id
                ).env_id
            self._bind_pattern(target, item, iteration_id, kind, line, record=False)
            self.ctx.record(
                line,
                StepType.LOOP,
                f"{self._snippet(target)} = {format_value(item)}",
                iteration_id,
            )
            outcome = self._after_body(self.exec_statement(body, iteration_id), labels)
            if outcome is not None:
                return outcome
        return NORMAL

    # ── switch / try ─────────────────────────────────────────────

    def _exec_switch(self, node, env_id: int) -> Signal:
        labels = self._take_labels()
        discriminant = self.eval_expression(node.child_by_field_name("value"), env_id)
        self.ctx.record(
            self._line(node),
            StepType.CONDITIONAL,
            f"switch ({format_value(discriminant)})",
            env_id,
        )
        cases = [
            child
            for child in self._statements(node.child_by_field_name("body"))
            if child.type in ("switch_case", "switch_default")
        ]
        bodies = [self._case_body(case) for case in cases]
        all_statements = [statement for body in bodies for statement in body]
        scope_id = self._block_scope(all_statements, env_id, constants.SWITCH_SCOPE_NAME)

        start = None
        for index, case in enumerate(cases):
            if case.type != "switch_case":
                continue
            test = self.eval_expression(case.child_by_field_name("value"), scope_id)
            if Operators.eval_binop("===", discriminant, test):
                start = index
                break
        if start is None:
            start = next(
                (index for index, case in enumerate(cases) if case.type == "switch_default"),
                None,
            )
        if start is None:
            return NORMAL
        self.ctx.record(
            self._line(cases[start]),
            StepType.CONDITIONAL,
            f"Matched {self._snippet(cases[start]).split(':')[0]}",
            scope_id,
        )

        self._hoist_functions(all_statements, scope_id)
        for body in bodies[start:]:
            for statement in body:
                signal = self.exec_statement(statement, scope_id)
                if signal.kind == SignalKind.BREAK and (
                    signal.label is None or signal.label in labels
                ):
                    return NORMAL
                if signal.kind != SignalKind.NORMAL:
                    return signal
        return NORMAL

    def _case_body(self, case) -> list:
        value = case.child_by_field_name("value")
        return [
            child
            for child in self._statements(case)
            if value is None or child.start_byte != value.start_byte
        ]

    def _exec_try(self, node, env_id: int) -> Signal:
        line = self._line(node)
        self.ctx.record(line, StepType.TRYCATCH, "Entering try block", env_id)
        signal = self._exec_block(node.child_by_field_name("body"), env_id)

        handler = node.child_by_field_name("handler")
        if signal.kind == SignalKind.THROW and handler is not None:
            catch_id = self.arena.create(
                constants.CATCH_SCOPE_NAME, ScopeKind.BLOCK, env_id
            ).env_id
            parameter = handler.child_by_field_name("parameter")
            if parameter is not None:
                self._bind_pattern(
                    parameter, signal.value, catch_id, BindingKind.LET, None, record=False
                )
            self.ctx.record(
                self._line(handler),
                StepType.TRYCATCH,
                f"Caught error: {format_value(signal.value)}",
                catch_id,
            )
            try:
                signal = self._exec_block(handler.child_by_field_name("body"), catch_id)
            except UserThrow as exc:
                signal = Signal(SignalKind.THROW, exc.value)

        finalizer = node.child_by_field_name("finalizer")
        if finalizer is not None:
            self.ctx.record(
                self._line(finalizer), StepType.TRYCATCH, "Entering finally block", env_id
            )
            final_signal = self._exec_block(finalizer.child_by_field_name("body"), env_id)
            if final_signal.kind != SignalKind.NORMAL:
                return final_signal
        return signal

    # ── Functions ────────────────────────────────────────────────

    def _is_async(self, node) -> bool:
        return any(child.type in ("async", "*") for child in node.children)

    def _make_function(self, node, env_id: int, name_hint: str | None = None) -> TracedFunction:
        if self._is_async(node):
            raise UnsupportedSyntax("async function", self._line(node))
        name_node = node.child_by_field_name("name")
        own_name = self._text(name_node) if name_node is not None else None
        name = own_name or name_hint or constants.ANONYMOUS
        if node.type == "arrow_function" and node.child_by_field_name("parameter") is not None:
            params = (node.child_by_field_name("parameter"),)
        else:
            params_node = node.child_by_field_name("parameters")
            params = tuple(self._statements(params_node)) if params_node is not None else ()
        closure_env = env_id
        if own_name and node.type in ("function_expression", "function"):
            closure_env = self.arena.create(own_name, ScopeKind.BLOCK, env_id).env_id
        fn = TracedFunction(
            name=name,
            params=params,
            body=node.child_by_field_name("body"),
            env_id=closure_env,
            is_arrow=node.type == "arrow_function",
        )
        if closure_env != env_id:
            self.arena.define(closure_env, own_name, fn, BindingKind.CONST)
        return fn

    def _eval_function(self, node, env_id: int) -> Any:
        return self._make_function(node, env_id)

    def _eval_named(self, node, env_id: int, name: str | None) -> Any:
        """Evaluate *node*, naming an anonymous function after its binding."""
        inner = node
        while inner.type == "parenthesized_expression":
            inner = self._statements(inner)[0]
        if name and inner.type in constants.FUNCTION_NODE_TYPES:
            return self._make_function(inner, env_id, name)
        return self.eval_expression(node, env_id)

    def call_function(
        self,
        fn: Any,
        this: Any,
        args: list[Any],
        line: int | None,
        env_id: int,
        display_name: str | None = None,
    ) -> Any:
        """Invoke a user closure or native function through the traced path."""
        if isinstance(fn, TracedFunction):
            return self._invoke(fn, this, args, line, env_id)
        if isinstance(fn, NativeFunction):
            return self._call_native(fn, this, args, line, env_id, display_name)
        raise TypeMisuse(f"{display_name or format_value(fn)} is not a function")

    def _call_native(
        self,
        fn: NativeFunction,
        this: Any,
        args: list[Any],
        line: int | None,
        env_id: int,
        display_name: str | None = None,
        construct: bool = False,
    ) -> Any:
        impl = fn.construct if construct else fn.impl
        call = NativeCall(
            interpreter=self, this=this, args=args, line=line, env_id=env_id, name=fn.name
        )
        label = display_name or fn.name
        try:
            result = impl(call)
        except (ValueError, TypeError, IndexError, KeyError, ZeroDivisionError, OverflowError) as exc:
            raise TypeMisuse(f"Error calling {label}: {exc}") from exc
        if not fn.records_own_step:
            prefix = "new " if construct else ""
            self.ctx.record(
                line,
                StepType.NATIVE,
                f"{prefix}{label}({self._format_args(args)}) → {format_value(result)}",
                env_id,
            )
        return result

    def _invoke(
        self, fn: TracedFunction, this: Any, args: list[Any], line: int | None, env_id: int
    ) -> Any:
        name = fn.name or constants.ANONYMOUS
        self.ctx.tick()
        self.ctx.push_frame(name, line)
        self.ctx.record(
            line, StepType.CALL, f"Calling {name}({self._format_args(args)})", env_id
        )
        if not fn.is_arrow and is_nullish(this):
            this = self.arena.global_this
        scope = self.arena.create(
            name, ScopeKind.FUNCTION, fn.env_id, this_value=this, has_this=not fn.is_arrow
        )
        try:
            self._bind_parameters(fn, args, scope.env_id)
            result = self._run_body(fn, scope.env_id)
        except UserThrow as exc:
            self.ctx.pop_frame()
            self.ctx.record(
                line, StepType.RETURN, f"{name}() threw {format_value(exc.value)}", env_id
            )
            raise
        self.ctx.pop_frame()
        self.ctx.record(
            line, StepType.RETURN, f"{name}() returned {format_value(result)}", env_id
        )
        return result

    def _bind_parameters(self, fn: TracedFunction, args: list[Any], scope_id: int) -> None:
        for index, param in enumerate(fn.params):
            if param.type == "rest_pattern":
                rest = JSArray(elements=list(args[index:]))
                self._bind_pattern(
                    self._statements(param)[0], rest, scope_id, BindingKind.VAR, None, record=False
                )
                break
            value = args[index] if index < len(args) else UNDEFINED
            self._bind_pattern(param, value, scope_id, BindingKind.VAR, None, record=False)

    def _run_body(self, fn: TracedFunction, scope_id: int) -> Any:
        if fn.has_expression_body:
            return self.eval_expression(fn.body, scope_id)
        statements = self._statements(fn.body)
        self._hoist_vars(statements, scope_id)
        signal = self.exec_statements(statements, scope_id)
        if signal.kind == SignalKind.THROW:
            raise UserThrow(signal.value)
        if signal.kind == SignalKind.RETURN:
            return signal.value
        if signal.kind != SignalKind.NORMAL:
            raise IllegalJump(signal.kind.value)
        return UNDEFINED

    def construct(
        self, ctor: Any, args: list[Any], line: int | None, env_id: int, display_name: str
    ) -> Any:
        if isinstance(ctor, NativeFunction) and ctor.construct is not None:
            return self._call_native(ctor, UNDEFINED, args, line, env_id, display_name, construct=True)
        if isinstance(ctor, TracedFunction) and not ctor.is_arrow:
            instance = JSObject(class_name=ctor.name, constructor=ctor)
            result = self._invoke(ctor, instance, args, line, env_id)
            if isinstance(result, (JSObject, JSArray, PromiseRecord)) or is_callable(result):
                return result
            return instance
        raise TypeMisuse(f"{display_name} is not a constructor")

    # ── Async entry points (shared by call shapes and natives) ───

    def console_call(self, method: str, args: list[Any], line: int | None, env_id: int) -> Any:
        self.ctx.tracer.log_console(args)
        self.ctx.record(
            line, StepType.CONSOLE, f"console.{method}({self._format_args(args)})", env_id
        )
        return UNDEFINED

    def schedule_timer(self, name: str, args: list[Any], line: int | None, env_id: int) -> Any:
        callback = args[0] if args else UNDEFINED
        if not is_callable(callback):
            raise TypeMisuse(f"{name} callback must be a function, got {format_value(callback)}")
        delay = to_number(args[1]) if len(args) > 1 else 0
        if delay != delay:
            delay = 0
        delay = normalize_number(delay)
        label = f"{name}({number_to_string(delay)}ms)"
        entry = self.ctx.register_timer(callback, delay, args[2:], label)
        self.ctx.record(line, StepType.WEBAPI, f"{label} — added to Web APIs", env_id)
        return entry.timer_id

    def queue_microtask(self, callback: Any, line: int | None, env_id: int) -> Any:
        if not is_callable(callback):
            raise TypeMisuse(f"queueMicrotask callback must be a function, got {format_value(callback)}")
        global_id = self.arena.global_id
        self.ctx.enqueue_microtask(
            constants.QUEUE_MICROTASK_LABEL,
            lambda: self.call_function(callback, UNDEFINED, [], None, global_id),
        )
        self.ctx.record(
            line,
            StepType.MICROTASK,
            f"{constants.QUEUE_MICROTASK_LABEL} added to Microtask Queue",
            env_id,
        )
        return UNDEFINED

    def promise_static(self, method: str, args: list[Any], line: int | None, env_id: int) -> Any:
        value = args[0] if args else UNDEFINED
        self.ctx.record(
            line, StepType.PROMISE, f"Promise.{method}({self._format_args(args)})", env_id
        )
        if method == "resolve":
            return self.promises.resolved(value)
        return self.promises.rejected(value)

    # ── Calls ────────────────────────────────────────────────────

    def _eval_call(self, node, env_id: int) -> Any:
        arguments = node.child_by_field_name("arguments")
        if arguments is not None and arguments.type == "template_string":
            raise UnsupportedSyntax("tagged template", self._line(node))
        shape = self.classifier.classify(node)
        return self._CALL_DISPATCH[shape.kind](node, shape, env_id)

    def _eval_arguments(self, node, env_id: int) -> list[Any]:
        if node is None:
            return []
        values: list[Any] = []
        for child in self._statements(node):
            if child.type == "spread_element":
                values.extend(iterate(self.eval_expression(self._statements(child)[0], env_id)))
            else:
                values.append(self.eval_expression(child, env_id))
        return values

    def _is_optional(self, node) -> bool:
        return any(child.type == "optional_chain" for child in node.children)

    def _callee(self, node, env_id: int) -> tuple[Any, Any, bool]:
        """Evaluate the callee of a call: ``(function, this, short_circuited)``."""
        callee = node.child_by_field_name("function")
        while callee.type == "parenthesized_expression":
            callee = self._statements(callee)[0]
        if callee.type in ("member_expression", "subscript_expression"):
            receiver = self.eval_expression(callee.child_by_field_name("object"), env_id)
            if is_nullish(receiver) and self._is_optional(callee):
                return UNDEFINED, receiver, True
            key = self._member_key(callee, env_id)
            if is_nullish(receiver):
                raise TypeMisuse(
                    f"Cannot read properties of {to_string(receiver)} (reading '{key}')"
                )
            return get_member(receiver, key), receiver, False
        return self.eval_expression(callee, env_id), UNDEFINED, False

    def _call_generic(self, node, shape: CallShape, env_id: int) -> Any:
        fn, this, short_circuited = self._callee(node, env_id)
        if short_circuited or (is_nullish(fn) and self._is_optional(node)):
            return UNDEFINED
        args = self._eval_arguments(node.child_by_field_name("arguments"), env_id)
        display = self._callee_label(shape, fn)
        if not is_callable(fn):
            raise TypeMisuse(f"{display} is not a function")
        return self.call_function(fn, this, args, self._line(node), env_id, display)

    @staticmethod
    def _callee_label(shape: CallShape, fn: Any) -> str:
        """The callee as written, or its short name when the source text is long."""
        if len(shape.name) <= constants.DESCRIPTION_MAX_SOURCE:
            return shape.name
        if shape.method:
            return shape.method
        if is_callable(fn):
            return fn.name or constants.ANONYMOUS
        return format_value(fn)

    def _call_console(self, node, shape: CallShape, env_id: int) -> Any:
        fn, this, _ = self._callee(node, env_id)
        console = self._builtin(constants.CONSOLE_OBJECT)
        if this is not console or fn is not console.get_own(shape.method, None):
            return self._call_resolved(node, shape, fn, this, env_id)
        args = self._eval_arguments(node.child_by_field_name("arguments"), env_id)
        return self.console_call(shape.method, args, self._line(node), env_id)

    def _call_timer(self, node, shape: CallShape, env_id: int) -> Any:
        fn, this, _ = self._callee(node, env_id)
        if fn is not self._builtin(shape.name):
            return self._call_resolved(node, shape, fn, this, env_id)
        args = self._eval_arguments(node.child_by_field_name("arguments"), env_id)
        return self.schedule_timer(shape.name, args, self._line(node), env_id)

    def _call_promise_then(self, node, shape: CallShape, env_id: int) -> Any:
        fn, receiver, short_circuited = self._callee(node, env_id)
        if short_circuited:
            return UNDEFINED
        if not isinstance(receiver, PromiseRecord):
            return self._call_resolved(node, shape, fn, receiver, env_id)
        args = self._eval_arguments(node.child_by_field_name("arguments"), env_id)
        first = args[0] if args else UNDEFINED
        second = args[1] if len(args) > 1 else UNDEFINED
        line = self._line(node)
        if shape.method == "then":
            return self.promises.then(receiver, first, second, constants.THEN_LABEL, line, env_id)
        if shape.method == "catch":
            return self.promises.then(receiver, UNDEFINED, first, constants.CATCH_LABEL, line, env_id)
        return self.promises.then(
            receiver, first, first, constants.FINALLY_LABEL, line, env_id, is_finally=True
        )

    def _call_promise_static(self, node, shape: CallShape, env_id: int) -> Any:
        fn, receiver, _ = self._callee(node, env_id)
        if receiver is not self._builtin(constants.PROMISE_CONSTRUCTOR):
            return self._call_resolved(node, shape, fn, receiver, env_id)
        args = self._eval_arguments(node.child_by_field_name("arguments"), env_id)
        return self.promise_static(shape.method, args, self._line(node), env_id)

    def _call_function_invoke(self, node, shape: CallShape, env_id: int) -> Any:
        fn, target, short_circuited = self._callee(node, env_id)
        if short_circuited:
            return UNDEFINED
        if not is_callable(target) or not isinstance(fn, NativeFunction):
            return self._call_resolved(node, shape, fn, target, env_id)
        args = self._eval_arguments(node.child_by_field_name("arguments"), env_id)
        this = args[0] if args else UNDEFINED
        if shape.method == "call":
            forwarded = args[1:]
        else:
            spread = args[1] if len(args) > 1 else UNDEFINED
            if is_nullish(spread):
                forwarded = []
            elif isinstance(spread, JSArray):
                forwarded = list(spread.elements)
            else:
                raise TypeMisuse("CreateListFromArrayLike called on non-object")
        return self.call_function(target, this, forwarded, self._line(node), env_id, shape.name)

    def _call_resolved(self, node, shape: CallShape, fn: Any, this: Any, env_id: int) -> Any:
        """Finish a special-shape call whose runtime values turned out ordinary."""
        args = self._eval_arguments(node.child_by_field_name("arguments"), env_id)
        if not is_callable(fn):
            if is_nullish(fn) and self._is_optional(node):
                return UNDEFINED
            raise TypeMisuse(f"{shape.name} is not a function")
        return self.call_function(fn, this, args, self._line(node), env_id, shape.name)

    def _eval_new(self, node, env_id: int) -> Any:
        shape = self.classifier.classify(node)
        ctor = self.eval_expression(node.child_by_field_name("constructor"), env_id)
        args = self._eval_arguments(node.child_by_field_name("arguments"), env_id)
        line = self._line(node)
        if shape.kind == CallKind.PROMISE_CTOR and ctor is self._builtin(constants.PROMISE_CONSTRUCTOR):
            return self.promises.construct(args[0] if args else UNDEFINED, line, env_id)
        return self.construct(ctor, args, line, env_id, shape.name)

    # ── Expressions ──────────────────────────────────────────────

    def eval_expression(self, node, env_id: int) -> Any:
        handler = self._EXPR_DISPATCH.get(node.type)
        if handler is None:
            raise self._unsupported(node)
        return handler(node, env_id)

    def _eval_identifier(self, node, env_id: int) -> Any:
        return self.arena.get(env_id, self._text(node))

    def _eval_number(self, node, env_id: int) -> Any:
        text = self._text(node).replace("_", "")
        if text.endswith("n"):
            raise UnsupportedSyntax("BigInt", self._line(node))
        prefix = text[:2].lower()
        if prefix in ("0x", "0o", "0b"):
            return normalize_number(int(text[2:], {"0x": 16, "0o": 8, "0b": 2}[prefix]))
        if len(text) > 1 and text[0] == "0" and text.isdigit():
            legacy_octal = all(digit in "01234567" for digit in text)
            return int(text, 8 if legacy_octal else 10)
        return normalize_number(float(text))

    def _decode_escape(self, sequence: str) -> str:
        body = sequence[1:]
        if not body or body[0] in "\r\n\u2028\u2029":
            return ""
        if body[0] == "x":
            return chr(int(body[1:3], 16))
        if body[0] == "u":
            digits = body[2:-1] if body[1:2] == "{" else body[1:5]
            return chr(int(digits, 16))
        return _SIMPLE_ESCAPES.get(body[0], body)

    def _literal_text(self, node, env_id: int, substitute: bool) -> str:
        """Decode a string or template literal from its raw source bytes."""
        parts: list[str] = []
        position = node.start_byte + 1
        for child in node.children:
            if child.type == "escape_sequence":
                kind = "escape"
            elif substitute and child.type == "template_substitution":
                kind = "substitution"
            else:
                continue
            parts.append(self.source[position : child.start_byte].decode("utf-8"))
            if kind == "escape":
                parts.append(self._decode_escape(self._text(child)))
            else:
                inner = self._statements(child)[0]
                parts.append(to_string(self.eval_expression(inner, env_id)))
            position = child.end_byte
        parts.append(self.source[position : node.end_byte - 1].decode("utf-8"))
        return join_surrogates("".join(parts))

    def _eval_string(self, node, env_id: int) -> str:
        return self._literal_text(node, env_id, substitute=False)

    def _eval_template(self, node, env_id: int) -> str:
        return self._literal_text(node, env_id, substitute=True)

    def _eval_parenthesized(self, node, env_id: int) -> Any:
        return self.eval_expression(self._statements(node)[0], env_id)

    def _eval_sequence(self, node, env_id: int) -> Any:
        value = UNDEFINED
        for child in self._statements(node):
            value = self.eval_expression(child, env_id)
        return value

    def _eval_array(self, node, env_id: int) -> JSArray:
        elements: list[Any] = []
        after_element = False
        for child in node.children:
            if child.type == ",":
                if not after_element:
                    elements.append(UNDEFINED)
                after_element = False
            elif not child.is_named or child.type in constants.COMMENT_TYPES:
                continue
            elif child.type == "spread_element":
                elements.extend(
                    iterate(self.eval_expression(self._statements(child)[0], env_id))
                )
                after_element = True
            else:
                elements.append(self.eval_expression(child, env_id))
                after_element = True
        return JSArray(elements=elements)

    def _eval_object(self, node, env_id: int) -> JSObject:
        obj = JSObject()
        for child in self._statements(node):
            if child.type == "pair":
                key = self._property_key(child.child_by_field_name("key"), env_id)
                obj.set_own(key, self._eval_named(child.child_by_field_name("value"), env_id, key))
            elif child.type == "shorthand_property_identifier":
                name = self._text(child)
                obj.set_own(name, self.arena.get(env_id, name))
            elif child.type == "method_definition":
                if any(token.type in ("get", "set", "static") for token in child.children):
                    raise UnsupportedSyntax("getter/setter", self._line(child))
                key = self._property_key(child.child_by_field_name("name"), env_id)
                obj.set_own(key, self._make_function(child, env_id, key))
            elif child.type == "spread_element":
                source = self.eval_expression(self._statements(child)[0], env_id)
                for key in own_keys(source):
                    obj.set_own(key, get_member(source, key))
            else:
                raise self._unsupported(child)
        return obj

    def _member_key(self, node, env_id: int) -> str:
        if node.type == "subscript_expression":
            return to_property_key(self.eval_expression(node.child_by_field_name("index"), env_id))
        prop = node.child_by_field_name("property")
        if prop.type == "private_property_identifier":
            raise UnsupportedSyntax("private field", self._line(node))
        return self._text(prop)

    def _eval_member(self, node, env_id: int) -> Any:
        target = self.eval_expression(node.child_by_field_name("object"), env_id)
        key = self._member_key(node, env_id)
        return get_member(target, key)

    def _eval_subscript(self, node, env_id: int) -> Any:
        return self._eval_member(node, env_id)

    # ── Assignment ───────────────────────────────────────────────

    def _reference(self, node, env_id: int) -> Reference:
        while node.type == "parenthesized_expression":
            node = self._statements(node)[0]
        if node.type in ("identifier", "undefined"):
            return Reference(name=self._text(node))
        if node.type in ("member_expression", "subscript_expression"):
            target = self.eval_expression(node.child_by_field_name("object"), env_id)
            return Reference(target=target, key=self._member_key(node, env_id))
        raise UnsupportedSyntax(f"assignment to {self._snippet(node)}", self._line(node))

    def _read_reference(self, ref: Reference, env_id: int) -> Any:
        if ref.is_binding:
            return self.arena.get(env_id, ref.name)
        return get_member(ref.target, ref.key)

    def _write_reference(self, ref: Reference, value: Any, env_id: int, line: int | None) -> None:
        if ref.is_binding:
            self._bind_name(ref.name, value, env_id, None, line, record=True)
            return
        set_member(ref.target, ref.key, value)
        self.ctx.record(
            line,
            StepType.ASSIGNMENT,
            f"Set property {ref.key} = {format_value(value)}",
            env_id,
        )

    def _eval_assignment(self, node, env_id: int) -> Any:
        left = node.child_by_field_name("left")
        right = node.child_by_field_name("right")
        line = self._line(node)
        if left.type in ("object_pattern", "array_pattern"):
            value = self.eval_expression(right, env_id)
            self._bind_pattern(left, value, env_id, None, line)
            return value
        ref = self._reference(left, env_id)
        value = self._eval_named(right, env_id, ref.name or ref.key)
        self._write_reference(ref, value, env_id, line)
        return value

    def _eval_augmented_assignment(self, node, env_id: int) -> Any:
        ref = self._reference(node.child_by_field_name("left"), env_id)
        operator = self._text(node.child_by_field_name("operator"))[:-1]
        current = self._read_reference(ref, env_id)
        right = node.child_by_field_name("right")
        if operator in _LOGICAL_OPERATORS:
            if not self._logical_continues(operator, current):
                return current
            value = self._eval_named(right, env_id, ref.name or ref.key)
        else:
            value = Operators.eval_binop(operator, current, self.eval_expression(right, env_id))
        self._write_reference(ref, value, env_id, self._line(node))
        return value

    def _eval_update(self, node, env_id: int) -> Any:
        ref = self._reference(node.child_by_field_name("argument"), env_id)
        operator = self._text(node.child_by_field_name("operator"))
        prefix = node.children[0].type in ("++", "--")
        old = to_number(self._read_reference(ref, env_id))
        new = normalize_number(float(old) + (1 if operator == "++" else -1))
        self._write_reference(ref, new, env_id, self._line(node))
        return new if prefix else old

    # ── Operators ────────────────────────────────────────────────

    @staticmethod
    def _logical_continues(operator: str, value: Any) -> bool:
        """Whether the right operand of ``&&``/``||``/``??`` must be evaluated."""
        if operator == "&&":
            return to_boolean(value)
        if operator == "||":
            return not to_boolean(value)
        return is_nullish(value)

    def _eval_binary(self, node, env_id: int) -> Any:
        operator = self._text(node.child_by_field_name("operator"))
        left = self.eval_expression(node.child_by_field_name("left"), env_id)
        if operator in _LOGICAL_OPERATORS:
            if not self._logical_continues(operator, left):
                return left
            return self.eval_expression(node.child_by_field_name("right"), env_id)
        right = self.eval_expression(node.child_by_field_name("right"), env_id)
        return Operators.eval_binop(operator, left, right)

    def _eval_unary(self, node, env_id: int) -> Any:
        operator = self._text(node.child_by_field_name("operator"))
        argument = node.child_by_field_name("argument")
        if operator == "typeof" and argument.type == "identifier":
            if not self.arena.has(env_id, self._text(argument)):
                return "undefined"
        if operator == "delete":
            if argument.type not in ("member_expression", "subscript_expression"):
                return True
            ref = self._reference(argument, env_id)
            deleted = delete_member(ref.target, ref.key)
            self.ctx.record(
                self._line(node),
                StepType.ASSIGNMENT,
                f"delete {self._snippet(argument)} → {'true' if deleted else 'false'}",
                env_id,
            )
            return deleted
        return Operators.eval_unop(operator, self.eval_expression(argument, env_id))

    def _eval_ternary(self, node, env_id: int) -> Any:
        test = to_boolean(self.eval_expression(node.child_by_field_name("condition"), env_id))
        branch = "consequence" if test else "alternative"
        return self.eval_expression(node.child_by_field_name(branch), env_id)
