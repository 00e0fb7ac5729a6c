"""JavaScript execution tracer package."""

from .run import execute_code  # noqa: F401
from .run_types import RunConfig  # noqa: F401
from .trace_types import StepType, TraceResult, TraceStep  # noqa: F401
from .api import (  # noqa: F401
    trace_source,
    dump_trace,
    trace_to_json,
    console_output,
)
