"""Runtime data types (pure data, no business logic)."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable


# ── Values ───────────────────────────────────────────────────────


class _Undefined:
    """The JavaScript ``undefined`` value; ``None`` stands for ``null``."""

    _instance: _Undefined | None = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "undefined"

    def __bool__(self) -> bool:
        return False

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self


UNDEFINED = _Undefined()

_MAX_ARRAY_INDEX = 2**32 - 2


def is_array_index(key: str) -> bool:
    """True for canonical non-negative integer keys such as ``"0"`` or ``"42"``."""
    if not (key.isascii() and key.isdigit()) or (len(key) > 1 and key[0] == "0"):
        return False
    return int(key) <= _MAX_ARRAY_INDEX


@dataclass(eq=False)
class JSObject:
    properties: dict[str, Any] = field(default_factory=dict)
    class_name: str = "Object"
    constructor: Any = None
    heap_id: int | None = None
    frozen: bool = False

    def get_own(self, key: str, default: Any = UNDEFINED) -> Any:
        return self.properties.get(key, default)

    def set_own(self, key: str, value: Any) -> None:
        self.properties[key] = value

    def has_own(self, key: str) -> bool:
        return key in self.properties

    def delete_own(self, key: str) -> None:
        self.properties.pop(key, None)

    def own_keys(self) -> list[str]:
        """Integer-like keys ascending, then the rest in insertion order."""
        indices = sorted((key for key in self.properties if is_array_index(key)), key=int)
        named = [key for key in self.properties if not is_array_index(key)]
        return indices + named


@dataclass(eq=False)
class JSArray:
    elements: list[Any] = field(default_factory=list)
    heap_id: int | None = None


@dataclass(eq=False)
class TracedFunction:
    """A user closure: a function node paired with its defining environment."""

    name: str
    params: tuple[Any, ...]
    body: Any
    env_id: int
    is_arrow: bool = False
    properties: dict[str, Any] = field(default_factory=dict)

    @property
    def has_expression_body(self) -> bool:
        return self.body.type != "statement_block"


@dataclass(eq=False)
class NativeFunction:
    """An interpreter-supplied function implemented in Python."""

    name: str
    impl: Callable[[NativeCall], Any]
    construct: Callable[[NativeCall], Any] | None = None
    properties: dict[str, Any] = field(default_factory=dict)
    arity: int = 0
    records_own_step: bool = False


class PromiseState(str, Enum):
    PENDING = "pending"
    FULFILLED = "fulfilled"
    REJECTED = "rejected"


@dataclass(eq=False)
class PromiseReaction:
    label: str
    on_fulfilled: Any
    on_rejected: Any
    derived: PromiseRecord
    is_finally: bool = False


@dataclass(eq=False)
class PromiseRecord:
    promise_id: int
    state: PromiseState = PromiseState.PENDING
    value: Any = UNDEFINED
    reactions: list[PromiseReaction] = field(default_factory=list)

    @property
    def is_settled(self) -> bool:
        return self.state != PromiseState.PENDING


@dataclass
class NativeCall:
    """Arguments and call-site context handed to a native implementation."""

    interpreter: Any
    this: Any
    args: list[Any]
    line: int | None
    env_id: int
    name: str = ""

    def arg(self, index: int, default: Any = UNDEFINED) -> Any:
        return self.args[index] if index < len(self.args) else default

    def invoke(self, fn: Any, *args: Any, this: Any = UNDEFINED) -> Any:
        """Call *fn* back through the traced call path."""
        return self.interpreter.call_function(
            fn, this, list(args), self.line, self.env_id
        )


def is_callable(value: Any) -> bool:
    return isinstance(value, (TracedFunction, NativeFunction))


# ── Environments ─────────────────────────────────────────────────


class BindingKind(str, Enum):
    VAR = "var"
    LET = "let"
    CONST = "const"
    FUNCTION = "function"


class ScopeKind(str, Enum):
    GLOBAL = "global"
    FUNCTION = "function"
    BLOCK = "block"


@dataclass
class Binding:
    value: Any
    kind: BindingKind


@dataclass
class Environment:
    """One scope frame; parents are referenced by arena id, not by object."""

    env_id: int
    name: str
    kind: ScopeKind
    parent_id: int | None = None
    bindings: dict[str, Binding] = field(default_factory=dict)
    this_value: Any = None
    has_this: bool = False


# ── Runtime state ────────────────────────────────────────────────


@dataclass
class CallFrame:
    function_name: str
    line: int | None


@dataclass
class HeapRecord:
    heap_id: int
    label: str
    kind: str
    value: Any


@dataclass
class WebApiEntry:
    timer_id: int
    kind: str
    label: str
    delay_ms: Any
    registration_order: int
    callback: Any = None
    args: list[Any] = field(default_factory=list)


@dataclass
class QueueItem:
    label: str
    job: Callable[[], None]


class EventLoopPhase(str, Enum):
    EXECUTING = "executing"
    MICROTASKS = "microtasks"
    MACROTASKS = "macrotasks"
    IDLE = "idle"


@dataclass
class RuntimeState:
    """Everything a trace step snapshots."""

    call_stack: list[CallFrame] = field(default_factory=list)
    console_output: list[str] = field(default_factory=list)
    web_apis: list[WebApiEntry] = field(default_factory=list)
    callback_queue: deque[QueueItem] = field(default_factory=deque)
    microtask_queue: deque[QueueItem] = field(default_factory=deque)
    heap: dict[int, HeapRecord] = field(default_factory=dict)
    phase: EventLoopPhase = EventLoopPhase.EXECUTING


# ── Control flow ─────────────────────────────────────────────────


class SignalKind(str, Enum):
    NORMAL = "normal"
    RETURN = "return"
    BREAK = "break"
    CONTINUE = "continue"
    THROW = "throw"


@dataclass(frozen=True)
class Signal:
    """Completion of one statement, checked by every caller."""

    kind: SignalKind
    value: Any = UNDEFINED
    label: str | None = None


NORMAL = Signal(SignalKind.NORMAL)
