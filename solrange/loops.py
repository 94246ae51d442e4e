"""Loop abstraction.

Loops are not iterated to a fixpoint. The body runs once in a LOOP child
context; afterwards every pre-existing variable the body touched is widened
to the full domain of its declared type, and a return-successor context is
opened so the statements after the loop only ever see the widened versions.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Optional

from solrange.analyzer import Analyzer
from solrange.context import (
    Context,
    KillKind,
    SubContextKind,
    apply_to_edges,
    advance_var_in_ctx,
    effective_range,
    fork,
    kill,
    live_leaves,
    parent_of,
    var_by_name,
    try_set_range_exclusions,
    try_set_range_max,
    try_set_range_min,
)
from solrange.errors import ExprErr, SourceLocation
from solrange.range import RangeArena

logger = logging.getLogger(__name__)

Body = Callable[[Analyzer, RangeArena, Context], None]


def _run_body(analyzer: Analyzer, arena: RangeArena, ctx: Context,
              loc: SourceLocation, body: Body) -> None:
    try:
        body(analyzer, arena, ctx)
    except ExprErr as e:
        analyzer.add_if_err(e)
        kill(analyzer, ctx, loc, KillKind.PARSE_ERROR)


def _touched_in_loop(analyzer: Analyzer, loop_ctx: Context,
                     leaf: Context) -> Dict[str, int]:
    """Names owned by any context from ``leaf`` up to and including ``loop_ctx``."""
    names: Dict[str, int] = {}
    cur: Optional[Context] = leaf
    while cur is not None:
        for name, var_idx in cur.local_vars.items():
            names.setdefault(name, var_idx)
        if cur is loop_ctx:
            break
        cur = parent_of(analyzer, cur)
    return names


def reset_vars(analyzer: Analyzer, arena: RangeArena, loc: SourceLocation,
               ctx: Context, body: Body) -> None:
    loop_ctx = fork(analyzer, ctx, SubContextKind.LOOP, loc)
    _run_body(analyzer, arena, loop_ctx, loc, body)

    def widen(analyzer: Analyzer, arena: RangeArena, leaf: Context,
              loc: SourceLocation) -> None:
        for name, var_idx in _touched_in_loop(analyzer, loop_ctx, leaf).items():
            var = analyzer.var(var_idx)
            if var.is_tmp or var.is_literal:
                continue
            # only variables that outlive the loop
            if var_by_name(analyzer, ctx, name) is None:
                continue
            inheritor = var_by_name(analyzer, leaf, name)
            if inheritor is None:
                continue
            rng = var.ty.default_range()
            if rng is None:
                continue
            widened = advance_var_in_ctx(analyzer, inheritor, loc, leaf)
            try_set_range_min(analyzer, arena, widened, rng.min)
            try_set_range_max(analyzer, arena, widened, rng.max)
            current = effective_range(analyzer, widened)
            if current is not None and current.exclusions:
                try_set_range_exclusions(analyzer, widened, ())
            logger.debug("widened %s to %s in %s", name, var.ty, leaf.name)

        fork(analyzer, leaf, SubContextKind.FN_RETURN, loc)

    apply_to_edges(analyzer, loop_ctx, loc, arena, widen)


def while_loop(analyzer: Analyzer, arena: RangeArena, loc: SourceLocation,
               ctx: Context, limiter: Optional[Body], body: Body) -> None:
    """``while (limiter) body``; the condition does not refine anything."""
    apply_to_edges(analyzer, ctx, loc, arena,
                   lambda analyzer, arena, leaf, loc:
                   reset_vars(analyzer, arena, loc, leaf, body))


def for_loop(analyzer: Analyzer, arena: RangeArena, loc: SourceLocation,
             ctx: Context, init: Optional[Body], cond: Optional[Body],
             update: Optional[Body], body: Body) -> None:
    """``for (init; cond; update) body``.

    The initializer runs in every live leaf first; the update runs at the
    end of the single body pass.
    """
    if init is not None:
        for leaf in live_leaves(analyzer, ctx):
            _run_body(analyzer, arena, leaf, loc, init)

    def body_then_update(analyzer: Analyzer, arena: RangeArena, loop_ctx: Context) -> None:
        body(analyzer, arena, loop_ctx)
        if update is not None:
            update(analyzer, arena, loop_ctx)

    while_loop(analyzer, arena, loc, ctx, cond, body_then_update)
