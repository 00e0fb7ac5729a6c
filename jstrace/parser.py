"""Tree-Sitter Parsing Layer."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from tree_sitter import Node, Tree

from . import constants
from .early_errors import EarlyErrorChecker
from .errors import JSSyntaxError

logger = logging.getLogger(__name__)


class ParserFactory(ABC):
    """Abstract factory for obtaining a language parser."""

    @abstractmethod
    def get_parser(self, language: str): ...


class TreeSitterParserFactory(ParserFactory):
    """Concrete factory that delegates to tree-sitter-language-pack."""

    def get_parser(self, language: str):
        import tree_sitter_language_pack as tslp

        return tslp.get_parser(language)


class Parser:
    """Thin wrapper around a parser factory.

    tree-sitter recovers from malformed input instead of failing, so
    ``parse`` checks the finished tree and raises ``JSSyntaxError`` for the
    first error or missing node it finds, then for the first early error
    (see ``early_errors``). A caller therefore gets either a complete tree
    or a diagnostic, never a partially valid tree.
    """

    def __init__(self, parser_factory: ParserFactory):
        self._factory = parser_factory

    def parse(self, source: str, language: str = constants.LANGUAGE) -> Tree:
        parser = self._factory.get_parser(language)
        source_bytes = source.encode("utf-8")
        tree = parser.parse(source_bytes)
        if tree.root_node.has_error:
            raise _syntax_error(tree.root_node, source_bytes)
        EarlyErrorChecker(source_bytes).check(tree.root_node)
        return tree


def parse_source(source: str, parser: Parser | None = None) -> Tree:
    """Parse JavaScript *source* with the default tree-sitter parser."""
    return (parser or Parser(TreeSitterParserFactory())).parse(source)


def _syntax_error(root: Node, source: bytes) -> JSSyntaxError:
    node = _first_error_node(root)
    if node is None:
        node = root
    line = node.start_point[0] + 1
    column = node.start_point[1] + 1
    if node.is_missing:
        detail = f"Missing '{node.type}'"
    else:
        text = _first_token_text(node, source)
        detail = f"Unexpected token '{text}'" if text else "Unexpected end of input"
    logger.info("Syntax error at %d:%d: %s", line, column, detail)
    return JSSyntaxError(detail, line, column)


def _first_error_node(node: Node) -> Node | None:
    """Pre-order search for the earliest ERROR or missing node."""
    if node.type == "ERROR" or node.is_missing:
        return node
    if not node.has_error:
        return None
    for child in node.children:
        found = _first_error_node(child)
        if found is not None:
            return found
    return None


def _first_token_text(node, source: bytes) -> str:
    text = source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")
    token = text.strip().split()[0] if text.strip() else ""
    return token[: constants.SYNTAX_ERROR_MAX_TOKEN]
