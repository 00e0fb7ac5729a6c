"""Orchestrator — execute_code() entry point."""

from __future__ import annotations

import logging
import sys
import time
from contextlib import contextmanager

from . import constants
from .builtins import Builtins
from .context import RunContext
from .display import format_value
from .errors import InterpreterError, JSSyntaxError, StepLimitExceeded, UserThrow
from .event_loop import EventLoop
from .interpreter import Interpreter
from .parser import Parser, parse_source
from .run_types import RunConfig
from .trace_types import StepType, TraceResult, TraceStep
from .vm import to_string

logger = logging.getLogger(__name__)


@contextmanager
def _recursion_headroom(limit: int):
    """Raise Python's recursion limit for deep tree walks, restoring it afterwards."""
    previous = sys.getrecursionlimit()
    sys.setrecursionlimit(max(previous, limit))
    try:
        yield
    finally:
        sys.setrecursionlimit(previous)


def _uncaught_message(value) -> str:
    if isinstance(value, str):
        return f"Uncaught {to_string(value)}"
    return f"Uncaught {format_value(value)}"


def truncate_trace(steps: list[TraceStep], limit: int) -> list[TraceStep]:
    """Keep the first *limit* steps and append a synthetic warning step."""
    if len(steps) <= limit:
        return list(steps)
    warning = TraceStep(
        line=None,
        type=StepType.WARNING,
        description=constants.TRUNCATION_MESSAGE.format(limit=limit),
    )
    return list(steps[:limit]) + [warning]


def _interpret(interpreter: Interpreter, root, ctx: RunContext) -> None:
    """Run the program and its event loop, recording a terminal error step on failure."""
    try:
        interpreter.run_program(root)
        EventLoop(interpreter).run()
    except StepLimitExceeded as exc:
        logger.info("Step ceiling reached after %d steps", ctx.step_count)
        ctx.record(None, StepType.ERROR, str(exc))
    except UserThrow as exc:
        ctx.record(None, StepType.ERROR, _uncaught_message(exc.value))
    except InterpreterError as exc:
        ctx.record(None, StepType.ERROR, f"Runtime Error: {exc}")
    except RecursionError:
        logger.info("Python recursion limit hit while tracing")
        ctx.record(
            None, StepType.ERROR, f"Runtime Error: {constants.STACK_OVERFLOW_MESSAGE}"
        )
    except Exception as exc:
        logger.exception("Internal error while tracing")
        ctx.record(None, StepType.ERROR, f"Internal Error: {exc}")


def execute_code(
    source: str,
    config: RunConfig = RunConfig(),
    parser: Parser | None = None,
) -> TraceResult:
    """End-to-end: parse → interpret → drain the event loop → trace.

    Never raises: every failure becomes a trailing ``error`` step and the
    ``error`` field, with the steps recorded up to that point kept.

    Args:
        source: JavaScript program text.
        config: Step ceiling, call depth, random seed and truncation.
        parser: Optional pre-built parser for DI/testing.
    """
    if not source or not source.strip():
        return TraceResult()

    start = time.perf_counter()
    with _recursion_headroom(config.recursion_limit):
        try:
            tree = parse_source(source, parser)
        except JSSyntaxError as exc:
            return TraceResult(error=str(exc))

        ctx = RunContext(config, Builtins.build_globals())
        interpreter = Interpreter(source, ctx)
        logger.info("Tracing %d bytes of JavaScript", len(interpreter.source))
        _interpret(interpreter, tree.root_node, ctx)

    steps = ctx.tracer.steps
    error = None
    if steps and steps[-1].type == StepType.ERROR:
        error = steps[-1].description
    if config.max_trace_steps is not None:
        steps = truncate_trace(steps, config.max_trace_steps)

    stats = ctx.stats
    logger.info(
        "Traced %d steps in %.1fms (%d statements, %d calls, max depth %d)",
        len(steps),
        (time.perf_counter() - start) * 1000,
        stats.statements,
        stats.calls,
        stats.max_depth,
    )
    logger.debug(
        "Event loop ran %d microtasks and %d macrotasks",
        stats.microtasks,
        stats.macrotasks,
    )
    return TraceResult(steps=tuple(steps), error=error)
