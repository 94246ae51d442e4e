"""Binary operation tests: temporaries, result types and shape broadcasting."""

import pytest

from solrange.analyzer import Analyzer
from solrange.bin_op import op_exprs
from solrange.concrete import Concrete
from solrange.context import (
    KillKind,
    create_function_context,
    declare,
    evaled_range_max,
    evaled_range_min,
    kill,
)
from solrange.elem import ConcreteElem, RangeOp
from solrange.errors import ErrorKind, ExprErr, SourceLocation, UnimplementedCombination
from solrange.expr_ret import NULL, CtxKilled, Multi, Single
from solrange.graph import EdgeKind
from solrange.literal import number_literal
from solrange.range import Range, RangeArena
from solrange.types import BOOL, UINT256, VarType

LOC = SourceLocation(0, 0)


def setup():
    analyzer = Analyzer()
    return analyzer, RangeArena(), create_function_context(analyzer, "fn")


def lit(analyzer, arena, ctx, value: str):
    number_literal(analyzer, arena, ctx, LOC, value, "", False)
    return ctx.pop_expr()


def ranged(analyzer, ctx, name, lo, hi, ty=UINT256):
    rng = Range(ConcreteElem(Concrete.uint(lo, 256)), ConcreteElem(Concrete.uint(hi, 256)))
    return declare(analyzer, ctx, name, ty, LOC, rng=rng)


class TestTemporaries:

    def test_add_builds_symbolic_tmp(self):
        analyzer, arena, ctx = setup()
        x = ranged(analyzer, ctx, "x", 2, 10)
        op_exprs(analyzer, arena, ctx, LOC, Single(x.idx), lit(analyzer, arena, ctx, "1"), "+")

        tmp = analyzer.var(ctx.pop_expr().expect_single())
        assert tmp.is_tmp
        assert tmp.display_name == "(x + 1)"
        assert tmp.name.startswith("tmp.")
        assert tmp.ty == UINT256
        assert tmp.tmp_of.lhs == x.idx and tmp.tmp_of.op == "+"
        assert evaled_range_min(analyzer, arena, tmp).maybe_concrete().value == 3
        assert evaled_range_max(analyzer, arena, tmp).maybe_concrete().value == 11

    def test_dependency_edges(self):
        analyzer, arena, ctx = setup()
        x = ranged(analyzer, ctx, "x", 0, 1)
        y = ranged(analyzer, ctx, "y", 0, 1)
        op_exprs(analyzer, arena, ctx, LOC, Single(x.idx), Single(y.idx), RangeOp.MUL)

        tmp = analyzer.var(ctx.pop_expr().expect_single())
        deps = [dst for dst, _ in analyzer.graph.edges_from(tmp.idx, EdgeKind.DEPENDENCY)]
        assert deps == [x.idx, y.idx]
        assert tmp.dep_on == [x.idx, y.idx]
        assert x.referenced and y.referenced

    def test_comparison_is_bool(self):
        analyzer, arena, ctx = setup()
        x = ranged(analyzer, ctx, "x", 0, 10)
        op_exprs(analyzer, arena, ctx, LOC, Single(x.idx), lit(analyzer, arena, ctx, "5"), "<")

        tmp = analyzer.var(ctx.pop_expr().expect_single())
        assert tmp.ty == BOOL
        assert evaled_range_max(analyzer, arena, tmp).maybe_concrete() == Concrete.bool_(True)
        assert evaled_range_min(analyzer, arena, tmp).maybe_concrete() == Concrete.bool_(False)

    def test_literal_adopts_other_operand_type(self):
        analyzer, arena, ctx = setup()
        u8 = VarType.uint(8)
        x = ranged(analyzer, ctx, "x", 1, 1, ty=u8)
        op_exprs(analyzer, arena, ctx, LOC, lit(analyzer, arena, ctx, "2"), Single(x.idx), "-")

        tmp = analyzer.var(ctx.pop_expr().expect_single())
        assert tmp.ty == u8


class TestShapes:

    def test_scalar_broadcasts_over_tuple(self):
        analyzer, arena, ctx = setup()
        x = ranged(analyzer, ctx, "x", 1, 1)
        rhs = Multi(lit(analyzer, arena, ctx, "2"), lit(analyzer, arena, ctx, "3"))
        op_exprs(analyzer, arena, ctx, LOC, Single(x.idx), rhs, "+")

        ret = ctx.pop_expr()
        assert isinstance(ret, Multi) and len(ret) == 2
        values = [evaled_range_max(analyzer, arena, analyzer.var(r.idx)).maybe_concrete().value
                  for r in ret.items]
        assert values == [3, 4]

    def test_mismatched_tuples_are_unimplemented(self):
        analyzer, arena, ctx = setup()
        x = ranged(analyzer, ctx, "x", 1, 1)
        with pytest.raises(UnimplementedCombination):
            op_exprs(analyzer, arena, ctx, LOC,
                     Multi(Single(x.idx)), Multi(Single(x.idx), Single(x.idx)), "+")

    def test_null_operand(self):
        analyzer, arena, ctx = setup()
        x = ranged(analyzer, ctx, "x", 1, 1)
        with pytest.raises(ExprErr) as exc:
            op_exprs(analyzer, arena, ctx, LOC, Single(x.idx), NULL, "+")
        assert exc.value.kind == ErrorKind.PARSE_ERROR
        assert ctx.expr_ret_stack == []

    def test_killed_operand_kills_context(self):
        analyzer, arena, ctx = setup()
        x = ranged(analyzer, ctx, "x", 1, 1)
        op_exprs(analyzer, arena, ctx, LOC, CtxKilled(KillKind.UNREACHABLE), Single(x.idx), "+")
        assert ctx.is_killed()
        assert ctx.kill_reason == KillKind.UNREACHABLE

    def test_killed_context_builds_no_temporary(self):
        analyzer, arena, ctx = setup()
        x = ranged(analyzer, ctx, "x", 1, 1)
        one = lit(analyzer, arena, ctx, "1")
        kill(analyzer, ctx, LOC, KillKind.REVERT)
        size = len(analyzer.graph)

        op_exprs(analyzer, arena, ctx, LOC, Single(x.idx), one, "+")

        assert len(analyzer.graph) == size
        assert not x.referenced
        assert ctx.expr_ret_stack == []
