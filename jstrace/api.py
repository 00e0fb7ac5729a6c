"""Composable API functions for tracing JavaScript programs.

Each function corresponds to a CLI workflow (text dump, --json) but is
callable programmatically without argparse.
"""

from __future__ import annotations

import logging

from . import constants
from .run import execute_code
from .run_types import RunConfig
from .trace_types import StepType, TraceResult, TraceStep

logger = logging.getLogger(__name__)


def trace_source(
    source: str,
    max_steps: int = constants.MAX_STEPS,
    max_trace_steps: int | None = None,
    random_seed: int = 0,
) -> TraceResult:
    """Trace *source* with a config built from keyword arguments.

    Args:
        source: JavaScript program text.
        max_steps: Step ceiling before the run is stopped.
        max_trace_steps: Truncate the trace to this many steps, if set.
        random_seed: Seed for ``Math.random``.
    """
    config = RunConfig(
        max_steps=max_steps,
        max_trace_steps=max_trace_steps,
        random_seed=random_seed,
    )
    return execute_code(source, config)


def _format_step(index: int, step: TraceStep) -> str:
    line = f"L{step.line}" if step.line is not None else "  -"
    stack = " > ".join(frame.function_name for frame in step.call_stack)
    suffix = f"  [{stack}]" if stack else ""
    return f"{index:>4} {line:>5} {step.type.value:<11} {step.description}{suffix}"


def dump_trace(result: TraceResult) -> str:
    """Render a trace as text: one line per step, then output and error."""
    lines = [_format_step(index, step) for index, step in enumerate(result.steps)]
    output = console_output(result)
    if output:
        lines.append("")
        lines.append("═══ Console ═══")
        lines.extend(output)
    if result.error:
        lines.append("")
        lines.append(f"Error: {result.error}")
    return "\n".join(lines)


def trace_to_json(result: TraceResult, indent: int | None = 2) -> str:
    """Serialize a trace with the camelCase field names consumers expect."""
    return result.model_dump_json(by_alias=True, indent=indent)


def console_output(result: TraceResult) -> list[str]:
    """Console lines as of the last step that carries state."""
    for step in reversed(result.steps):
        if step.type != StepType.WARNING:
            return list(step.console_output)
    return []
