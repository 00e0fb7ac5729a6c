"""Tests for the tree-sitter parsing layer and its syntax diagnostics."""

from __future__ import annotations

import pytest
import tree_sitter_language_pack

from jstrace.errors import JSSyntaxError
from jstrace.parser import Parser, ParserFactory, parse_source


class CountingParserFactory(ParserFactory):
    def __init__(self):
        self.requested: list[str] = []

    def get_parser(self, language: str):
        self.requested.append(language)
        return tree_sitter_language_pack.get_parser(language)


class TestParse:
    def test_valid_program_yields_program_root(self):
        tree = parse_source("let x = 1;\nconsole.log(x);")
        assert tree.root_node.type == "program"
        assert not tree.root_node.has_error

    def test_injected_factory_is_used(self):
        factory = CountingParserFactory()
        tree = parse_source("1 + 2;", Parser(factory))
        assert factory.requested == ["javascript"]
        assert tree.root_node.named_children[0].type == "expression_statement"


class TestSyntaxErrors:
    def test_error_reports_line(self):
        with pytest.raises(JSSyntaxError) as info:
            parse_source("let a = 1;\nlet b = ;")
        assert info.value.line == 2
        assert str(info.value).startswith("Syntax Error on line 2")

    def test_unclosed_block_is_rejected(self):
        with pytest.raises(JSSyntaxError):
            parse_source("function f() {\n  return 1;\n")

    def test_column_is_one_based(self):
        with pytest.raises(JSSyntaxError) as info:
            parse_source("let x = ;")
        assert (info.value.line, info.value.column) == (1, 9)

    def test_let_as_identifier_is_valid_sloppy_code(self):
        tree = parse_source("let = 5;")
        assert not tree.root_node.has_error


def _early_error(source: str) -> JSSyntaxError:
    with pytest.raises(JSSyntaxError) as info:
        parse_source(source)
    return info.value


class TestEarlyErrors:
    def test_duplicate_let_in_same_scope(self):
        error = _early_error("let a = 1;\nlet a = 2;\nconsole.log(a);")
        assert (error.line, error.column) == (2, 5)
        assert error.detail == "Identifier 'a' has already been declared"

    def test_let_conflicts_with_var_in_nested_block(self):
        error = _early_error("let a = 1;\n{\n  var a = 2;\n}")
        assert error.detail == "Identifier 'a' has already been declared"

    def test_let_conflicts_with_parameter(self):
        error = _early_error("function f(n) {\n  let n = 1;\n}")
        assert (error.line, error.column) == (2, 7)

    def test_destructured_duplicate(self):
        error = _early_error("const { a, b } = {};\nlet [c, a] = [];")
        assert error.detail == "Identifier 'a' has already been declared"

    def test_duplicate_across_switch_cases(self):
        source = "switch (1) {\n  case 1:\n    let x = 1;\n  case 2:\n    let x = 2;\n}"
        assert _early_error(source).line == 5

    def test_const_without_initializer(self):
        error = _early_error("const x;")
        assert error.detail == "Missing initializer in const declaration"
        assert (error.line, error.column) == (1, 7)

    def test_return_outside_function(self):
        error = _early_error('console.log("1");\nreturn;\nconsole.log("2");')
        assert error.detail == "'return' outside of function"
        assert (error.line, error.column) == (2, 1)

    def test_break_outside_loop(self):
        assert _early_error("if (true) {\n  break;\n}").detail == "Unsyntactic break"

    def test_continue_in_function_inside_loop(self):
        source = "for (;;) {\n  function f() { continue; }\n}"
        error = _early_error(source)
        assert error.detail == "Unsyntactic continue"
        assert error.line == 2

    def test_continue_inside_switch_needs_a_loop(self):
        assert _early_error("switch (1) {\n  case 1:\n    continue;\n}").line == 3

    def test_unknown_label(self):
        error = _early_error("while (true) {\n  break missing;\n}")
        assert error.detail == "Unsyntactic break"

    def test_continue_to_non_loop_label(self):
        assert _early_error("block: {\n  continue block;\n}").detail == "Unsyntactic continue"


class TestValidPrograms:
    def test_shadowing_in_nested_blocks(self):
        parse_source("let a = 1;\n{\n  let a = 2;\n}\nfunction f(a) {\n  { let a = 3; }\n}")

    def test_loop_heads_and_var_redeclaration(self):
        parse_source(
            "var v = 1;\nvar v = 2;\n"
            "for (const item of [1]) {}\nfor (const key in {}) {}\n"
            "for (let i = 0; i < 1; i++) { let i = 5; }"
        )

    def test_jumps_in_their_targets(self):
        parse_source(
            "outer: for (;;) {\n  for (;;) { continue outer; }\n}\n"
            "switch (1) { case 1: break; }\n"
            "block: { break block; }\n"
            "function f() { return 1; }\nconst g = () => { return 2; };"
        )
