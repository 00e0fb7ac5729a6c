"""Error taxonomy for parsing and interpretation failures."""

from __future__ import annotations

from typing import Any

from . import constants


class InterpreterError(Exception):
    """Base class for every failure the tracer can report."""


class JSSyntaxError(InterpreterError):
    """Malformed source, reported before interpretation begins."""

    def __init__(self, detail: str, line: int, column: int):
        self.detail = detail
        self.line = line
        self.column = column
        super().__init__(f"Syntax Error on line {line}, column {column}: {detail}")


class ReferenceNotFound(InterpreterError):
    """Identifier lookup failed in every scope and in the globals table."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"{name} is not defined")


class TypeMisuse(InterpreterError):
    """Calling a non-function or a failing native operation."""


class UnsupportedSyntax(InterpreterError):
    """A construct outside the interpreted subset of JavaScript."""

    def __init__(self, construct: str, line: int | None = None):
        self.construct = construct
        self.line = line
        super().__init__(f"Unsupported syntax: {construct}")


class UserThrow(InterpreterError):
    """A value thrown by interpreted code.

    Only this error is recoverable, by a ``try``/``catch`` inside the
    interpreted program.
    """

    def __init__(self, value: Any):
        self.value = value
        super().__init__("uncaught exception")


class StepLimitExceeded(InterpreterError):
    """The global step counter passed its ceiling."""

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(constants.STEP_LIMIT_MESSAGE.format(limit=limit))


class StackDepthExceeded(InterpreterError):
    """Call depth passed the configured maximum."""

    def __init__(self, depth: int):
        self.depth = depth
        super().__init__(constants.STACK_OVERFLOW_MESSAGE)


class IllegalJump(InterpreterError):
    """A ``break``/``continue``/``return`` completed outside any statement that accepts it."""

    def __init__(self, keyword: str):
        self.keyword = keyword
        super().__init__(f"Illegal {keyword} statement")
