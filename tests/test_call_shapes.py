"""Tests for the syntactic call-site classifier."""

from __future__ import annotations

from tree_sitter_language_pack import get_parser

from jstrace.call_shapes import CallClassifier, CallKind, CallShape


def _classify_first(source: str) -> CallShape:
    source_bytes = source.encode("utf-8")
    tree = get_parser("javascript").parse(source_bytes)
    expression = tree.root_node.named_children[0].named_children[0]
    return CallClassifier(source_bytes).classify(expression)


class TestCallShapes:
    def test_console(self):
        shape = _classify_first('console.log("hi");')
        assert shape == CallShape(CallKind.CONSOLE, "console.log", "log")

    def test_timer(self):
        assert _classify_first("setTimeout(f, 0);").kind == CallKind.TIMER
        assert _classify_first("setInterval(f, 10);").kind == CallKind.TIMER

    def test_promise_then_on_any_receiver(self):
        shape = _classify_first("fetchData().then(show);")
        assert shape.kind == CallKind.PROMISE_THEN
        assert shape.method == "then"

    def test_promise_static(self):
        shape = _classify_first("Promise.resolve(1);")
        assert shape == CallShape(CallKind.PROMISE_STATIC, "Promise.resolve", "resolve")

    def test_promise_constructor(self):
        assert _classify_first("new Promise(run);").kind == CallKind.PROMISE_CTOR

    def test_other_constructor(self):
        shape = _classify_first("new Counter(1);")
        assert shape == CallShape(CallKind.CONSTRUCT, "Counter")

    def test_function_invoke(self):
        assert _classify_first("greet.call(obj, 1);").kind == CallKind.FUNCTION_INVOKE
        assert _classify_first("greet.apply(obj, []);").kind == CallKind.FUNCTION_INVOKE

    def test_method_and_plain(self):
        assert _classify_first("items.push(1);").kind == CallKind.METHOD
        assert _classify_first("compute(1);") == CallShape(CallKind.PLAIN, "compute")

    def test_classification_is_cached(self):
        source_bytes = b"compute(1);"
        tree = get_parser("javascript").parse(source_bytes)
        node = tree.root_node.named_children[0].named_children[0]
        classifier = CallClassifier(source_bytes)
        assert classifier.classify(node) is classifier.classify(node)
