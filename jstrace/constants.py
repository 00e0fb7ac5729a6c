"""Named constants — eliminates magic strings across the codebase."""

from __future__ import annotations

LANGUAGE = "javascript"

MAX_STEPS = 2000
MAX_CALL_DEPTH = 1000
RECURSION_LIMIT = 50000
TRUNCATION_LIMIT = 1500

STEP_LIMIT_MESSAGE = (
    "Execution limit reached ({limit} steps). "
    "Possible infinite loop or code too complex."
)
STACK_OVERFLOW_MESSAGE = "Maximum call stack size exceeded"
TRUNCATION_MESSAGE = (
    "Trace truncated at {limit} steps for performance. "
    "Code may be too complex for visualization."
)

GLOBAL_SCOPE_NAME = "Global"
BLOCK_SCOPE_NAME = "block"
LOOP_SCOPE_NAME = "for-block"
CATCH_SCOPE_NAME = "catch"
SWITCH_SCOPE_NAME = "switch"

ANONYMOUS = "anonymous"

HEAP_KIND_OBJECT = "object"
HEAP_KIND_ARRAY = "array"

WEB_API_TIMER = "timer"

THEN_LABEL = ".then() callback"
CATCH_LABEL = ".catch() callback"
FINALLY_LABEL = ".finally() callback"
ADOPT_LABEL = "promise resolution"
QUEUE_MICROTASK_LABEL = "queueMicrotask() callback"

TIMER_FUNCTIONS: frozenset[str] = frozenset({"setTimeout", "setInterval"})
CONSOLE_OBJECT = "console"
PROMISE_CONSTRUCTOR = "Promise"
PROMISE_CHAIN_METHODS: frozenset[str] = frozenset({"then", "catch", "finally"})
PROMISE_STATIC_METHODS: frozenset[str] = frozenset({"resolve", "reject"})
FUNCTION_INVOKE_METHODS: frozenset[str] = frozenset({"call", "apply"})

ERROR_CONSTRUCTORS: tuple[str, ...] = (
    "Error",
    "TypeError",
    "RangeError",
    "ReferenceError",
    "SyntaxError",
)

DISPLAY_MAX_KEYS = 3
DISPLAY_MAX_DEPTH = 4
DESCRIPTION_MAX_SOURCE = 40
SYNTAX_ERROR_MAX_TOKEN = 20

COMMENT_TYPES: frozenset[str] = frozenset({"comment", "html_comment"})

FUNCTION_NODE_TYPES: frozenset[str] = frozenset(
    {
        "function_declaration",
        "function_expression",
        "function",
        "arrow_function",
        "method_definition",
        "generator_function",
        "generator_function_declaration",
    }
)

LOOP_NODE_TYPES: frozenset[str] = frozenset(
    {"for_statement", "for_in_statement", "while_statement", "do_statement"}
)
