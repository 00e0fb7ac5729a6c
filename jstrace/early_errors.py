"""Early errors: programs tree-sitter accepts but a JavaScript engine refuses to run.

The grammar is deliberately permissive, so a successful parse still admits
duplicate lexical declarations, ``const`` without a value and stray
``return`` / ``break`` / ``continue``. ``EarlyErrorChecker`` walks the tree
once and raises ``JSSyntaxError`` for the first such statement, before any
step is recorded.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from tree_sitter import Node

from . import constants
from .errors import JSSyntaxError

_SCOPE_CONTAINERS = frozenset({"program", "statement_block", "switch_body"})


@dataclass(frozen=True)
class _Context:
    """What encloses the node being visited, reset at every function boundary."""

    in_function: bool = False
    in_loop: bool = False
    in_switch: bool = False
    labels: tuple[tuple[str, bool], ...] = ()

    def has_label(self, name: str, loop_only: bool = False) -> bool:
        return any(
            label == name and (labels_loop or not loop_only)
            for label, labels_loop in self.labels
        )


def named_statements(node: Node) -> list[Node]:
    return [
        child for child in node.named_children if child.type not in constants.COMMENT_TYPES
    ]


def binding_identifiers(pattern: Node | None) -> list[Node]:
    """The identifier nodes a declaration or parameter pattern binds."""
    if pattern is None:
        return []
    if pattern.type in ("identifier", "shorthand_property_identifier_pattern"):
        return [pattern]
    if pattern.type in ("assignment_pattern", "object_assignment_pattern"):
        return binding_identifiers(pattern.child_by_field_name("left"))
    if pattern.type == "pair_pattern":
        return binding_identifiers(pattern.child_by_field_name("value"))
    if pattern.type not in ("object_pattern", "array_pattern", "rest_pattern"):
        return []
    found: list[Node] = []
    for child in named_statements(pattern):
        found.extend(binding_identifiers(child))
    return found


class EarlyErrorChecker:
    def __init__(self, source: bytes):
        self._source = source

    def check(self, root: Node) -> None:
        self._visit(root, _Context())

    def _text(self, node: Node) -> str:
        return self._source[node.start_byte : node.end_byte].decode("utf-8")

    @staticmethod
    def _fail(node: Node, detail: str) -> JSSyntaxError:
        return JSSyntaxError(detail, node.start_point[0] + 1, node.start_point[1] + 1)

    # ── Walk ─────────────────────────────────────────────────────

    def _visit(self, node: Node, context: _Context) -> None:
        kind = node.type
        if kind in constants.FUNCTION_NODE_TYPES:
            context = _Context(in_function=True)
        elif kind in _SCOPE_CONTAINERS:
            self._check_scope(node)
        elif kind == "return_statement":
            if not context.in_function:
                raise self._fail(node, "'return' outside of function")
        elif kind == "break_statement":
            self._check_jump(node, context, "break")
        elif kind == "continue_statement":
            self._check_jump(node, context, "continue")
        elif kind == "lexical_declaration":
            self._check_const(node)

        if kind == "labeled_statement":
            body = node.child_by_field_name("body")
            name = self._text(node.child_by_field_name("label"))
            label = (name, body.type in constants.LOOP_NODE_TYPES)
            self._visit(body, replace(context, labels=context.labels + (label,)))
            return
        if kind in constants.LOOP_NODE_TYPES:
            context = replace(context, in_loop=True)
        elif kind == "switch_statement":
            context = replace(context, in_switch=True)
        for child in node.named_children:
            self._visit(child, context)

    def _check_jump(self, node: Node, context: _Context, keyword: str) -> None:
        label = node.child_by_field_name("label")
        if label is not None:
            allowed = context.has_label(self._text(label), loop_only=keyword == "continue")
        elif keyword == "continue":
            allowed = context.in_loop
        else:
            allowed = context.in_loop or context.in_switch
        if not allowed:
            raise self._fail(node, f"Unsyntactic {keyword}")

    def _check_const(self, node: Node) -> None:
        kind_node = node.child_by_field_name("kind")
        keyword = self._text(kind_node) if kind_node else self._text(node).split()[0]
        if keyword != "const":
            return
        if node.parent is not None and node.parent.type == "for_in_statement":
            return
        for declarator in named_statements(node):
            if declarator.type != "variable_declarator":
                continue
            if declarator.child_by_field_name("value") is None:
                raise self._fail(declarator, "Missing initializer in const declaration")

    # ── Redeclaration ────────────────────────────────────────────

    def _check_scope(self, container: Node) -> None:
        lexical: list[Node] = []
        functions: set[str] = set()
        for statement in self._scope_statements(container):
            if statement.type == "lexical_declaration":
                for declarator in named_statements(statement):
                    if declarator.type == "variable_declarator":
                        lexical.extend(binding_identifiers(declarator.child_by_field_name("name")))
            elif statement.type == "function_declaration":
                name = statement.child_by_field_name("name")
                if name is not None:
                    functions.add(self._text(name))
        if not lexical:
            return
        taken = functions | self._var_names(container) | self._outer_names(container)
        seen: set[str] = set()
        for identifier in lexical:
            name = self._text(identifier)
            if name in seen or name in taken:
                raise self._fail(identifier, f"Identifier '{name}' has already been declared")
            seen.add(name)

    @staticmethod
    def _scope_statements(container: Node) -> list[Node]:
        if container.type != "switch_body":
            return named_statements(container)
        statements: list[Node] = []
        for case in named_statements(container):
            statements.extend(named_statements(case))
        return statements

    def _outer_names(self, container: Node) -> set[str]:
        """Parameter names that share the scope of a function or catch body."""
        parent = container.parent
        if parent is None:
            return set()
        if parent.type == "catch_clause":
            patterns = [parent.child_by_field_name("parameter")]
        elif (
            parent.type in constants.FUNCTION_NODE_TYPES
            and parent.child_by_field_name("body") == container
        ):
            params = parent.child_by_field_name("parameters")
            if params is not None:
                patterns = named_statements(params)
            else:
                patterns = [parent.child_by_field_name("parameter")]
        else:
            return set()
        return {
            self._text(identifier)
            for pattern in patterns
            for identifier in binding_identifiers(pattern)
        }

    def _var_names(self, container: Node) -> set[str]:
        """``var`` names declared anywhere under *container*, outside nested functions."""
        names: set[str] = set()
        pending = list(named_statements(container))
        while pending:
            node = pending.pop()
            if node.type in constants.FUNCTION_NODE_TYPES:
                continue
            if node.type == "variable_declaration":
                for declarator in named_statements(node):
                    if declarator.type == "variable_declarator":
                        target = declarator.child_by_field_name("name")
                        names.update(
                            self._text(identifier) for identifier in binding_identifiers(target)
                        )
            elif node.type == "for_in_statement":
                kind_node = node.child_by_field_name("kind")
                if kind_node is not None and self._text(kind_node) == "var":
                    names.update(
                        self._text(identifier)
                        for identifier in binding_identifiers(node.child_by_field_name("left"))
                    )
            pending.extend(node.named_children)
        return names
