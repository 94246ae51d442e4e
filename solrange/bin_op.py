"""Binary operations over expression results.

``a op b`` becomes a temporary variable whose range is the symbolic bound
``[a op b, a op b]`` over references to the operands' current versions; its
concrete extent is worked out lazily when the bound is evaluated.
"""

from __future__ import annotations

import logging
from typing import Union

from solrange.analyzer import Analyzer
from solrange.context import (
    Context,
    ContextVar,
    TmpConstruction,
    kill,
    latest_version_or_inherited_in_ctx,
)
from solrange.elem import RangeOp
from solrange.errors import ExprErr, SourceLocation, UnimplementedCombination, parse_error
from solrange.expr_ret import CtxKilled, ExprRet, Multi, Null, Single, SingleLiteral
from solrange.graph import Edge, EdgeKind
from solrange.range import Range, RangeArena
from solrange.types import BOOL

logger = logging.getLogger(__name__)

_BOOLEAN_OPS = frozenset({RangeOp.AND, RangeOp.OR})


def op_exprs(analyzer: Analyzer, arena: RangeArena, ctx: Context,
             loc: SourceLocation, lhs: ExprRet, rhs: ExprRet,
             op: Union[RangeOp, str]) -> None:
    """Evaluate ``lhs op rhs`` and push the result onto ``ctx``'s stack."""
    if ctx.is_terminal():
        return
    if isinstance(op, str):
        op = RangeOp.from_symbol(op)
    ctx.push_expr(_op_match(analyzer, arena, ctx, loc, lhs, rhs, op))


def _op_match(analyzer: Analyzer, arena: RangeArena, ctx: Context,
              loc: SourceLocation, lhs: ExprRet, rhs: ExprRet,
              op: RangeOp) -> ExprRet:
    for side in (lhs, rhs):
        if isinstance(side, CtxKilled):
            kill(analyzer, ctx, loc, side.kind)
            return side
    if isinstance(lhs, Null) or isinstance(rhs, Null):
        raise ExprErr(parse_error(
            f"operand of '{op.value}' has no value", loc))

    scalar = (Single, SingleLiteral)
    if isinstance(lhs, scalar) and isinstance(rhs, scalar):
        tmp = _tmp_for(analyzer, ctx, loc, analyzer.var(lhs.idx),
                       analyzer.var(rhs.idx), op)
        return Single(tmp.idx)
    if isinstance(lhs, scalar) and isinstance(rhs, Multi):
        return Multi([_op_match(analyzer, arena, ctx, loc, lhs, r, op) for r in rhs.items])
    if isinstance(lhs, Multi) and isinstance(rhs, scalar):
        return Multi([_op_match(analyzer, arena, ctx, loc, l, rhs, op) for l in lhs.items])
    if isinstance(lhs, Multi) and isinstance(rhs, Multi) and len(lhs) == len(rhs):
        return Multi([_op_match(analyzer, arena, ctx, loc, l, r, op)
                      for l, r in zip(lhs.items, rhs.items)])
    raise UnimplementedCombination(lhs, rhs)


def _tmp_for(analyzer: Analyzer, ctx: Context, loc: SourceLocation,
             lhs: ContextVar, rhs: ContextVar, op: RangeOp) -> ContextVar:
    lhs = latest_version_or_inherited_in_ctx(analyzer, lhs, ctx)
    rhs = latest_version_or_inherited_in_ctx(analyzer, rhs, ctx)

    bound = analyzer.reference(lhs).apply(op, analyzer.reference(rhs))

    if op.is_comparison() or op in _BOOLEAN_OPS:
        ty = BOOL
    elif lhs.is_literal and not rhs.is_literal:
        # a literal operand adopts the other side's type
        ty = rhs.ty
    else:
        ty = lhs.ty

    tmp = ContextVar(
        name="",
        display_name=f"({lhs.display_name} {op.value} {rhs.display_name})",
        ty=ty,
        loc=loc,
        ctx=ctx.idx,
        range=Range(bound, bound),
        is_tmp=True,
        tmp_of=TmpConstruction(lhs.idx, op.value, rhs.idx),
        dep_on=[lhs.idx, rhs.idx],
    )
    analyzer.add_node(tmp)
    tmp.name = f"tmp.{tmp.idx}"
    ctx.local_vars[tmp.name] = tmp.idx
    analyzer.add_edge(tmp.idx, ctx.idx, Edge(EdgeKind.VARIABLE))
    analyzer.add_edge(tmp.idx, lhs.idx, Edge(EdgeKind.DEPENDENCY))
    analyzer.add_edge(tmp.idx, rhs.idx, Edge(EdgeKind.DEPENDENCY))
    analyzer.bump_epoch()
    logger.debug("tmp %s = %s", tmp.name, tmp.display_name)
    return tmp
