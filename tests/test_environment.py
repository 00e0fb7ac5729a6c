"""Tests for the environment arena: scoping, const bindings and global leaks."""

from __future__ import annotations

import pytest

from jstrace.environment import EnvironmentArena
from jstrace.errors import ReferenceNotFound, TypeMisuse
from jstrace.vm_types import BindingKind, ScopeKind


def _arena_with_function_scope() -> tuple[EnvironmentArena, int, int]:
    arena = EnvironmentArena({"Math": "math-object"})
    fn_scope = arena.create("outer", ScopeKind.FUNCTION, arena.global_id).env_id
    block = arena.create("block", ScopeKind.BLOCK, fn_scope).env_id
    return arena, fn_scope, block


class TestLookup:
    def test_inner_scope_sees_outer_binding(self):
        arena, fn_scope, block = _arena_with_function_scope()
        arena.define(fn_scope, "x", 1, BindingKind.LET)
        assert arena.get(block, "x") == 1

    def test_shadowing_prefers_nearest(self):
        arena, fn_scope, block = _arena_with_function_scope()
        arena.define(fn_scope, "x", 1, BindingKind.LET)
        arena.define(block, "x", 2, BindingKind.LET)
        assert arena.get(block, "x") == 2
        assert arena.get(fn_scope, "x") == 1

    def test_globals_table_is_last_resort(self):
        arena, _, block = _arena_with_function_scope()
        assert arena.get(block, "Math") == "math-object"

    def test_missing_name_raises(self):
        arena, _, block = _arena_with_function_scope()
        with pytest.raises(ReferenceNotFound, match="y is not defined"):
            arena.get(block, "y")

    def test_has_covers_globals(self):
        arena, _, block = _arena_with_function_scope()
        assert arena.has(block, "Math")
        assert not arena.has(block, "nope")


class TestAssignment:
    def test_set_updates_nearest_binding(self):
        arena, fn_scope, block = _arena_with_function_scope()
        arena.define(fn_scope, "count", 0, BindingKind.VAR)
        arena.set(block, "count", 5)
        assert arena[fn_scope].bindings["count"].value == 5

    def test_const_reassignment_raises(self):
        arena, fn_scope, _ = _arena_with_function_scope()
        arena.define(fn_scope, "limit", 3, BindingKind.CONST)
        with pytest.raises(TypeMisuse, match="Assignment to constant variable."):
            arena.set(fn_scope, "limit", 4)

    def test_undeclared_assignment_leaks_to_global(self):
        arena, _, block = _arena_with_function_scope()
        arena.set(block, "leaked", "oops")
        binding = arena[arena.global_id].bindings["leaked"]
        assert binding.value == "oops"
        assert binding.kind == BindingKind.VAR


class TestScopes:
    def test_function_scope_skips_blocks(self):
        arena, fn_scope, block = _arena_with_function_scope()
        inner = arena.create("inner", ScopeKind.BLOCK, block).env_id
        assert arena.function_scope(inner) == fn_scope

    def test_chain_runs_outwards_to_global(self):
        arena, fn_scope, block = _arena_with_function_scope()
        assert [env.env_id for env in arena.chain(block)] == [
            block,
            fn_scope,
            arena.global_id,
        ]

    def test_this_defaults_to_global_object(self):
        arena, _, block = _arena_with_function_scope()
        assert arena.lookup_this(block) is arena.global_this

    def test_this_comes_from_nearest_function(self):
        arena = EnvironmentArena()
        marker = object()
        fn_scope = arena.create(
            "method", ScopeKind.FUNCTION, arena.global_id, this_value=marker, has_this=True
        ).env_id
        block = arena.create("block", ScopeKind.BLOCK, fn_scope).env_id
        assert arena.lookup_this(block) is marker


class TestGlobalObject:
    def test_global_object_reflects_bindings(self):
        arena = EnvironmentArena()
        arena.define(arena.global_id, "total", 10, BindingKind.VAR)
        assert arena.global_this.get_own("total") == 10
        arena.global_this.set_own("total", 11)
        assert arena.get(arena.global_id, "total") == 11
        assert "total" in arena.global_this.own_keys()
