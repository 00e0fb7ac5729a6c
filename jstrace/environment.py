"""Lexical environments stored in an arena and referenced by integer id."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from . import constants
from .errors import ReferenceNotFound, TypeMisuse
from .vm_types import (
    UNDEFINED,
    Binding,
    BindingKind,
    Environment,
    JSObject,
    ScopeKind,
)

logger = logging.getLogger(__name__)


class EnvironmentArena:
    """Owns every environment created during one run.

    Closures hold an ``env_id`` rather than an ``Environment`` so a binding
    that refers back to its own closure never forms an ownership cycle.
    Nothing is ever evicted: an environment lives as long as the run.
    """

    def __init__(self, globals_table: dict[str, Any] | None = None):
        self._envs: dict[int, Environment] = {}
        self.globals: dict[str, Any] = globals_table if globals_table is not None else {}
        self.global_this = GlobalObject(arena=self)
        self.global_id = self.create(
            constants.GLOBAL_SCOPE_NAME,
            ScopeKind.GLOBAL,
            None,
            this_value=self.global_this,
            has_this=True,
        ).env_id

    def create(
        self,
        name: str,
        kind: ScopeKind,
        parent_id: int | None,
        this_value: Any = None,
        has_this: bool = False,
    ) -> Environment:
        env = Environment(
            env_id=len(self._envs),
            name=name,
            kind=kind,
            parent_id=parent_id,
            this_value=this_value,
            has_this=has_this,
        )
        self._envs[env.env_id] = env
        return env

    def __getitem__(self, env_id: int) -> Environment:
        return self._envs[env_id]

    def __len__(self) -> int:
        return len(self._envs)

    def define(self, env_id: int, name: str, value: Any, kind: BindingKind) -> None:
        """Create or overwrite *name* in the given frame only."""
        self._envs[env_id].bindings[name] = Binding(value=value, kind=kind)

    def lookup(self, env_id: int, name: str) -> Environment | None:
        """Return the nearest environment on the chain that binds *name*."""
        current: int | None = env_id
        while current is not None:
            env = self._envs[current]
            if name in env.bindings:
                return env
            current = env.parent_id
        return None

    def has(self, env_id: int, name: str) -> bool:
        return self.lookup(env_id, name) is not None or name in self.globals

    def get(self, env_id: int, name: str) -> Any:
        env = self.lookup(env_id, name)
        if env is not None:
            return env.bindings[name].value
        if name in self.globals:
            return self.globals[name]
        raise ReferenceNotFound(name)

    def set(self, env_id: int, name: str, value: Any) -> None:
        """Mutate the nearest binding, or leak a new global if none exists."""
        env = self.lookup(env_id, name)
        if env is None:
            logger.debug("Implicit global created for %s", name)
            self.define(self.global_id, name, value, BindingKind.VAR)
            return
        binding = env.bindings[name]
        if binding.kind == BindingKind.CONST:
            raise TypeMisuse("Assignment to constant variable.")
        binding.value = value

    def chain(self, env_id: int) -> list[Environment]:
        """Environments from *env_id* outwards, ending at the global frame."""
        result = []
        current: int | None = env_id
        while current is not None:
            env = self._envs[current]
            result.append(env)
            current = env.parent_id
        return result

    def function_scope(self, env_id: int) -> int:
        """Id of the nearest function or global environment, where ``var`` lives."""
        for env in self.chain(env_id):
            if env.kind != ScopeKind.BLOCK:
                return env.env_id
        return self.global_id

    def lookup_this(self, env_id: int) -> Any:
        for env in self.chain(env_id):
            if env.has_this:
                return env.this_value
        return self.global_this


@dataclass(eq=False)
class GlobalObject(JSObject):
    """Proxy exposing the global environment's bindings as an object.

    Stands in for ``this`` inside plain (non-method) calls, the way sloppy
    mode binds ``this`` to the global object.
    """

    class_name: str = "Window"
    arena: EnvironmentArena | None = None

    def _bindings(self) -> dict[str, Binding]:
        return self.arena[self.arena.global_id].bindings

    def get_own(self, key: str, default: Any = UNDEFINED) -> Any:
        binding = self._bindings().get(key)
        return binding.value if binding is not None else default

    def set_own(self, key: str, value: Any) -> None:
        self.arena.set(self.arena.global_id, key, value)

    def has_own(self, key: str) -> bool:
        return key in self._bindings()

    def delete_own(self, key: str) -> None:
        self._bindings().pop(key, None)

    def own_keys(self) -> list[str]:
        return list(self._bindings())
