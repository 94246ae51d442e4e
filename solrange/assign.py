"""The assignment engine.

``match_assign_sides`` destructures the evaluated left and right sides of an
assignment and calls ``assign`` once per scalar pair. ``assign`` is the one
place a variable's range changes because of a program statement:

    x = y        x_1 := [y_0, y_0]
    x = x + 1    tmp := [x_0 + 1, x_0 + 1]; x_1 := [tmp, tmp]

The new version's bounds are references, not values, so later refinements of
the right operand flow into the left on evaluation. A bound that would refer
back to the version being replaced forces a fresh version so the range never
refers to itself.
"""

from __future__ import annotations

import logging
from typing import List, Tuple

from solrange.analyzer import Analyzer
from solrange.context import (
    Context,
    ContextVar,
    advance_var_in_ctx,
    advance_var_in_ctx_forcible,
    effective_range,
    kill,
    latest_version_or_inherited_in_ctx,
    path,
    struct_to_fields,
    try_set_range_exclusions,
    try_set_range_max,
    try_set_range_min,
)
from solrange.elem import ConcreteElem, Elem
from solrange.errors import (
    ExprErr,
    SourceLocation,
    UnimplementedCombination,
    bad_range,
    detached_variable,
    mismatched_struct,
    parse_error,
)
from solrange.expr_ret import CtxKilled, ExprRet, Multi, Null, Single, SingleLiteral
from solrange.graph import Edge, EdgeKind
from solrange.range import Range, RangeArena

logger = logging.getLogger(__name__)


def match_assign_sides(analyzer: Analyzer, arena: RangeArena, ctx: Context,
                       loc: SourceLocation, lhs: ExprRet, rhs: ExprRet) -> None:
    """Match the shapes of both sides and assign each scalar pair."""
    if ctx.is_terminal():
        return
    if isinstance(lhs, Null) or isinstance(rhs, Null):
        return
    if isinstance(lhs, CtxKilled):
        kill(analyzer, ctx, loc, lhs.kind)
        return
    if isinstance(rhs, CtxKilled):
        kill(analyzer, ctx, loc, rhs.kind)
        return

    if isinstance(lhs, Single) and isinstance(rhs, (Single, SingleLiteral)):
        # uint x = 5; uint x = y;
        lhs_var = latest_version_or_inherited_in_ctx(analyzer, analyzer.var(lhs.idx), ctx)
        rhs_var = latest_version_or_inherited_in_ctx(analyzer, analyzer.var(rhs.idx), ctx)
        ctx.push_expr(assign(analyzer, arena, loc, lhs_var, rhs_var, ctx))
    elif isinstance(lhs, Single) and isinstance(rhs, Multi):
        for item in rhs.items:
            match_assign_sides(analyzer, arena, ctx, loc, lhs, item)
    elif isinstance(lhs, Multi) and isinstance(rhs, (Single, SingleLiteral)):
        for item in lhs.items:
            match_assign_sides(analyzer, arena, ctx, loc, item, rhs)
    elif isinstance(lhs, Multi) and isinstance(rhs, Multi):
        if len(lhs) == len(rhs):
            # (x, y) = (a, b)
            for l_item, r_item in zip(lhs.items, rhs.items):
                match_assign_sides(analyzer, arena, ctx, loc, l_item, r_item)
        else:
            arity_mismatch_fallback(analyzer, arena, ctx, loc, lhs, rhs)
    else:
        raise UnimplementedCombination(lhs, rhs)


def arity_mismatch_fallback(analyzer: Analyzer, arena: RangeArena, ctx: Context,
                            loc: SourceLocation, lhs: Multi, rhs: Multi) -> None:
    """``(x, y) = (a, b, c)``: assign the whole left tuple from each right item.

    The language rejects such statements, so reaching this means the front
    end let one through. The result over-approximates: every left variable
    ends up with the range of the last right item it was matched with.
    """
    logger.warning("tuple arity mismatch at %s: %d targets, %d values",
                   loc, len(lhs), len(rhs))
    for item in rhs.items:
        match_assign_sides(analyzer, arena, ctx, loc, lhs, item)


def _field_name(var: ContextVar) -> str:
    if "." not in var.name:
        raise ExprErr(parse_error(
            f"Incorrectly named field: {var.name} - no '.' delimiter", var.loc))
    return var.name.rsplit(".", 1)[-1]


def _match_struct_fields(analyzer: Analyzer, loc: SourceLocation, lhs: ContextVar,
                         rhs: ContextVar, ctx: Context) -> List[Tuple[ContextVar, ContextVar]]:
    rhs_fields = {_field_name(f): f for f in struct_to_fields(analyzer, rhs, ctx)}
    pairs = []
    for lhs_field in struct_to_fields(analyzer, lhs, ctx):
        name = _field_name(lhs_field)
        if name not in rhs_fields:
            raise ExprErr(mismatched_struct(name, loc))
        pairs.append((lhs_field, rhs_fields[name]))
    return pairs


def cast_from(analyzer: Analyzer, arena: RangeArena, rhs: ContextVar,
              lhs: ContextVar, ctx: Context) -> None:
    """Reinterpret ``rhs`` in ``lhs``'s declared type.

    Only a version owned by ``ctx`` is retyped in place; anything owned by an
    ancestor keeps its type and is cast when the left side's bounds are set.
    """
    if rhs.ty == lhs.ty or rhs.ctx != ctx.idx:
        return
    target = lhs.ty.zero()
    if target is None or rhs.ty.zero() is None:
        return
    rng = effective_range(analyzer, rhs)
    if rng is not None:
        rhs.range = Range(_cast_elem(rng.min, target), _cast_elem(rng.max, target),
                          rng.exclusions)
        analyzer.bump_epoch()
    rhs.ty = lhs.ty


def _cast_elem(elem: Elem, target) -> Elem:
    c = elem.maybe_concrete()
    if c is not None:
        return ConcreteElem(c.cast_from(target))
    return elem.cast(ConcreteElem(target))


def assign(analyzer: Analyzer, arena: RangeArena, loc: SourceLocation,
           lhs: ContextVar, rhs: ContextVar, ctx: Context) -> ExprRet:
    logger.debug("assigning: %s to %s", rhs.display_name, lhs.display_name)

    if lhs.is_struct() and rhs.is_struct():
        # every field is matched before any is assigned
        for lhs_field, rhs_field in _match_struct_fields(analyzer, loc, lhs, rhs, ctx):
            assign(analyzer, arena, loc,
                   latest_version_or_inherited_in_ctx(analyzer, lhs_field, ctx),
                   latest_version_or_inherited_in_ctx(analyzer, rhs_field, ctx),
                   ctx)
        return Single(lhs.idx)

    cast_from(analyzer, arena, rhs, lhs, ctx)

    rhs_latest = latest_version_or_inherited_in_ctx(analyzer, rhs, ctx)
    new_lower = analyzer.reference(rhs_latest)
    new_upper = analyzer.reference(rhs_latest)

    lhs_latest = latest_version_or_inherited_in_ctx(analyzer, lhs, ctx)
    needs_forcible = (new_lower.depends_on(lhs.idx, set(), analyzer)
                      or new_upper.depends_on(lhs.idx, set(), analyzer))
    if needs_forcible:
        new_lhs = advance_var_in_ctx_forcible(analyzer, lhs_latest, loc, ctx, True)
    else:
        new_lhs = advance_var_in_ctx(analyzer, lhs_latest, loc, ctx)

    new_lhs.tmp_of = rhs.tmp_of
    if new_lhs.dep_on is not None:
        new_lhs.dep_on.append(rhs.idx)
    else:
        new_lhs.dep_on = [rhs.idx]

    if lhs.is_storage:
        analyzer.add_edge(new_lhs.idx, rhs.idx, Edge(EdgeKind.STORAGE_WRITE))

    if rhs.is_return:
        if rhs.ctx is None:
            raise ExprErr(detached_variable(rhs.display_name, rhs.idx,
                                            path(analyzer, ctx), loc))
        external = analyzer.context(rhs.ctx).is_ext_fn_call()
        analyzer.add_edge(rhs.idx, new_lhs.idx,
                          Edge(EdgeKind.RETURN_ASSIGN, external=external))

    if lhs.ty != rhs.ty:
        lhs_range = effective_range(analyzer, lhs)
        if lhs_range is None:
            raise ExprErr(bad_range(
                f"No range during cast of {rhs.display_name} ({rhs.ty}) "
                f"to {lhs.display_name} ({lhs.ty})", loc))
        try_set_range_min(analyzer, arena, new_lhs, new_lower.cast(lhs_range.min))
        try_set_range_max(analyzer, arena, new_lhs, new_upper.cast(lhs_range.max))
    else:
        try_set_range_min(analyzer, arena, new_lhs, new_lower)
        try_set_range_max(analyzer, arena, new_lhs, new_upper)

    rhs_range = effective_range(analyzer, rhs)
    if rhs_range is not None:
        try_set_range_exclusions(analyzer, new_lhs, rhs_range.exclusions)

    # move the right operand on so nothing later aliases the version just read
    advance_var_in_ctx_forcible(
        analyzer, latest_version_or_inherited_in_ctx(analyzer, rhs, ctx), loc, ctx, True)
    return Single(new_lhs.idx)
