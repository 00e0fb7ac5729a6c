"""Run pipeline data types (pure data, no business logic)."""

from __future__ import annotations

from dataclasses import dataclass

from . import constants


@dataclass(frozen=True)
class RunConfig:
    """Groups tracing run configuration."""

    max_steps: int = constants.MAX_STEPS
    max_call_depth: int = constants.MAX_CALL_DEPTH
    random_seed: int = 0
    max_trace_steps: int | None = None
    recursion_limit: int = constants.RECURSION_LIMIT


@dataclass
class RunStats:
    """Counters collected over one run, logged by the driver."""

    statements: int = 0
    calls: int = 0
    max_depth: int = 0
    microtasks: int = 0
    macrotasks: int = 0
