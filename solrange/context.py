"""Execution-path contexts and versioned variables.

Every mutation of a variable creates a new ``ContextVar`` version linked to
the one it supersedes, so the full history of a variable along one path is a
chain of graph nodes:

    x_0 --next--> x_1 --next--> x_2            (same context)
    x_0 <--inherited_from-- x_0'               (copy in a child context)

A superseded version is immutable. A child context never mutates a variable
owned by an ancestor; advancing it creates an inherited copy in the child.

All functions take the ``Analyzer`` explicitly. Nothing in this module keeps
state of its own.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, TYPE_CHECKING

from solrange.elem import Elem
from solrange.errors import (
    ExprErr,
    SourceLocation,
    bad_range,
    graph_error,
)
from solrange.graph import Edge, EdgeKind
from solrange.range import Range, RangeArena
from solrange.types import VarType

if TYPE_CHECKING:
    from solrange.analyzer import Analyzer
    from solrange.expr_ret import ExprRet

logger = logging.getLogger(__name__)


class SubContextKind(Enum):
    FUNCTION = "function"
    INTERNAL_CALL = "internal_call"
    EXTERNAL_CALL = "external_call"
    LOOP = "loop"
    BRANCH = "branch"
    FN_RETURN = "fn_return"


class ContextState(Enum):
    ACTIVE = "active"
    RETURNED = "returned"
    REVERTED = "reverted"
    KILLED = "killed"


class KillKind(Enum):
    ENDED = "ended"
    UNREACHABLE = "unreachable"
    REVERT = "revert"
    PARSE_ERROR = "parse_error"
    ABORT = "abort"


@dataclass(frozen=True)
class TmpConstruction:
    """How a temporary was built: ``lhs op rhs`` over version indices."""
    lhs: int
    op: str
    rhs: Optional[int] = None


@dataclass(eq=False)
class ContextVar:
    name: str
    display_name: str
    ty: VarType
    loc: SourceLocation
    ctx: Optional[int] = None
    range: Optional[Range] = None
    is_tmp: bool = False
    is_literal: bool = False
    is_storage: bool = False
    is_return: bool = False
    is_struct_field: bool = False
    tmp_of: Optional[TmpConstruction] = None
    dep_on: Optional[List[int]] = None
    prev: Optional[int] = None
    next: Optional[int] = None
    inherited_from: Optional[int] = None
    # set once any Elem has been built referencing this version
    referenced: bool = False
    idx: int = -1

    def is_struct(self) -> bool:
        return self.ty.is_struct()

    def is_superseded(self) -> bool:
        return self.next is not None

    def __repr__(self) -> str:
        return f"ContextVar({self.display_name}#{self.idx}: {self.ty})"


@dataclass(eq=False)
class Context:
    name: str
    loc: SourceLocation
    kind: SubContextKind = SubContextKind.FUNCTION
    parent: Optional[int] = None
    depth: int = 0
    # name -> index of the first version of that name owned by this context
    local_vars: Dict[str, int] = field(default_factory=dict)
    expr_ret_stack: List[Any] = field(default_factory=list)
    children: List[int] = field(default_factory=list)
    state: ContextState = ContextState.ACTIVE
    kill_reason: Optional[KillKind] = None
    kill_loc: Optional[SourceLocation] = None
    idx: int = -1

    def is_active(self) -> bool:
        return self.state == ContextState.ACTIVE

    def is_terminal(self) -> bool:
        return self.state != ContextState.ACTIVE

    def is_killed(self) -> bool:
        return self.state == ContextState.KILLED

    def is_ext_fn_call(self) -> bool:
        return self.kind == SubContextKind.EXTERNAL_CALL

    def push_expr(self, ret: ExprRet) -> None:
        if self.is_terminal():
            logger.debug("dropping %r pushed onto terminated context %s", ret, self.name)
            return
        self.expr_ret_stack.append(ret)

    def pop_expr(self) -> Optional[ExprRet]:
        if not self.expr_ret_stack:
            return None
        return self.expr_ret_stack.pop()

    def __repr__(self) -> str:
        return f"Context({self.name}#{self.idx}, {self.state.value})"


# ---------------------------------------------------------------------------
# Context tree
# ---------------------------------------------------------------------------

def create_function_context(analyzer: Analyzer, name: str,
                            loc: Optional[SourceLocation] = None) -> Context:
    ctx = Context(name=name, loc=loc or SourceLocation())
    analyzer.add_node(ctx)
    return ctx


def fork(analyzer: Analyzer, parent: Context, kind: SubContextKind,
         loc: SourceLocation, name: Optional[str] = None) -> Context:
    if parent.is_terminal():
        raise ExprErr(graph_error(
            f"cannot fork terminated context {parent.name}", loc))
    child = Context(
        name=name or f"{parent.name}.{kind.value}{len(parent.children)}",
        loc=loc,
        kind=kind,
        parent=parent.idx,
        depth=parent.depth + 1,
    )
    analyzer.add_node(child)
    parent.children.append(child.idx)
    edge = EdgeKind.LOOP if kind == SubContextKind.LOOP else EdgeKind.SUBCONTEXT
    analyzer.add_edge(child.idx, parent.idx, Edge(edge))
    return child


def parent_of(analyzer: Analyzer, ctx: Context) -> Optional[Context]:
    if ctx.parent is None:
        return None
    return analyzer.context(ctx.parent)


def path(analyzer: Analyzer, ctx: Context) -> str:
    parts = []
    cur: Optional[Context] = ctx
    while cur is not None:
        parts.append(cur.name.rsplit(".", 1)[-1])
        cur = parent_of(analyzer, cur)
    return ".".join(reversed(parts))


def kill(analyzer: Analyzer, ctx: Context, loc: SourceLocation,
         reason: KillKind) -> None:
    """Terminate ``ctx`` and every still-active descendant.

    Siblings and ancestors are left alone.
    """
    if ctx.is_active():
        ctx.state = ContextState.KILLED
        ctx.kill_reason = reason
        ctx.kill_loc = loc
        logger.debug("killed %s (%s)", ctx.name, reason.value)
    for child_idx in ctx.children:
        kill(analyzer, analyzer.context(child_idx), loc, reason)


def _terminate(ctx: Context, state: ContextState) -> None:
    if ctx.is_terminal():
        raise ExprErr(graph_error(
            f"context {ctx.name} is already {ctx.state.value}", ctx.loc))
    ctx.state = state


def mark_returned(ctx: Context) -> None:
    _terminate(ctx, ContextState.RETURNED)


def mark_reverted(ctx: Context) -> None:
    _terminate(ctx, ContextState.REVERTED)


def live_leaves(analyzer: Analyzer, ctx: Context) -> List[Context]:
    if not ctx.is_active():
        return []
    if not ctx.children:
        return [ctx]
    leaves: List[Context] = []
    for child_idx in ctx.children:
        leaves.extend(live_leaves(analyzer, analyzer.context(child_idx)))
    return leaves


def apply_to_edges(analyzer: Analyzer, ctx: Context, loc: SourceLocation,
                   arena: RangeArena,
                   fn: Callable[[Analyzer, RangeArena, Context, SourceLocation], None]) -> None:
    """Run ``fn`` once in each live leaf below ``ctx``."""
    for leaf in live_leaves(analyzer, ctx):
        fn(analyzer, arena, leaf, loc)


def ready_to_merge(analyzer: Analyzer, ctx: Context) -> bool:
    def ok(c: Context, below_terminal: bool) -> bool:
        if below_terminal and c.is_active():
            return False
        nested = below_terminal or c.is_terminal()
        return all(ok(analyzer.context(i), nested) for i in c.children)

    return ok(ctx, False)


# ---------------------------------------------------------------------------
# Variables
# ---------------------------------------------------------------------------

def declare(analyzer: Analyzer, ctx: Context, name: str, ty: VarType,
            loc: SourceLocation, rng: Optional[Range] = None,
            is_storage: bool = False, is_return: bool = False,
            is_tmp: bool = False, display_name: Optional[str] = None) -> ContextVar:
    var = ContextVar(
        name=name,
        display_name=display_name or name,
        ty=ty,
        loc=loc,
        ctx=ctx.idx,
        range=rng,
        is_storage=is_storage,
        is_return=is_return,
        is_tmp=is_tmp,
    )
    analyzer.add_node(var)
    ctx.local_vars[name] = var.idx
    analyzer.add_edge(var.idx, ctx.idx, Edge(EdgeKind.VARIABLE))
    if rng is not None:
        analyzer.bump_epoch()
    return var


def declare_struct(analyzer: Analyzer, ctx: Context, name: str, ty: VarType,
                   loc: SourceLocation, is_storage: bool = False) -> ContextVar:
    """Declare a struct variable plus one ``name.field`` variable per field."""
    struct_var = declare(analyzer, ctx, name, ty, loc, is_storage=is_storage)
    for field_name, field_ty in ty.fields:
        full = f"{name}.{field_name}"
        if field_ty.is_struct():
            member = declare_struct(analyzer, ctx, full, field_ty, loc, is_storage)
        else:
            member = declare(analyzer, ctx, full, field_ty, loc,
                             rng=field_ty.default_range(), is_storage=is_storage)
        member.is_struct_field = True
        analyzer.add_edge(member.idx, struct_var.idx, Edge(EdgeKind.STRUCT_FIELD))
    return struct_var


def first_version(analyzer: Analyzer, var: ContextVar) -> ContextVar:
    while var.prev is not None:
        var = analyzer.var(var.prev)
    return var


def root_version(analyzer: Analyzer, var: ContextVar) -> ContextVar:
    """The first declaration, following prev and inherited_from links."""
    while True:
        var = first_version(analyzer, var)
        if var.inherited_from is None:
            return var
        var = analyzer.var(var.inherited_from)


def latest_version(analyzer: Analyzer, var: ContextVar) -> ContextVar:
    while var.next is not None:
        var = analyzer.var(var.next)
    return var


def version_number(analyzer: Analyzer, var: ContextVar) -> int:
    n = 0
    while var.prev is not None:
        var = analyzer.var(var.prev)
        n += 1
    return n


def var_by_name(analyzer: Analyzer, ctx: Context, name: str) -> Optional[ContextVar]:
    """Latest version of ``name`` visible from ``ctx`` (local, then ancestors)."""
    cur: Optional[Context] = ctx
    while cur is not None:
        idx = cur.local_vars.get(name)
        if idx is not None:
            return latest_version(analyzer, analyzer.var(idx))
        cur = parent_of(analyzer, cur)
    return None


def latest_version_or_inherited_in_ctx(analyzer: Analyzer, var: ContextVar,
                                       ctx: Context) -> ContextVar:
    found = var_by_name(analyzer, ctx, var.name)
    if found is not None:
        return found
    return latest_version(analyzer, var)


def struct_to_fields(analyzer: Analyzer, var: ContextVar,
                     ctx: Context) -> List[ContextVar]:
    root = root_version(analyzer, var)
    fields = [analyzer.var(src)
              for src, _ in analyzer.graph.edges_to(root.idx, EdgeKind.STRUCT_FIELD)]
    return [latest_version_or_inherited_in_ctx(analyzer, f, ctx) for f in fields]


def _new_version(var: ContextVar, loc: SourceLocation, ctx: Context) -> ContextVar:
    return ContextVar(
        name=var.name,
        display_name=var.display_name,
        ty=var.ty,
        loc=loc,
        ctx=ctx.idx,
        is_tmp=var.is_tmp,
        is_literal=var.is_literal,
        is_storage=var.is_storage,
        is_return=var.is_return,
        is_struct_field=var.is_struct_field,
        tmp_of=var.tmp_of,
        dep_on=list(var.dep_on) if var.dep_on is not None else None,
    )


def advance_var_in_ctx_forcible(analyzer: Analyzer, var: ContextVar,
                                loc: SourceLocation, ctx: Context,
                                force: bool) -> ContextVar:
    """Create the next version of ``var`` as seen from ``ctx``.

    A version owned by ``ctx`` with no range of its own that nothing has
    referenced yet is reused unless ``force`` is set. A variable owned
    elsewhere gets an inherited copy in ``ctx``.
    """
    if var.is_superseded():
        raise ExprErr(graph_error(
            f"cannot advance superseded version of '{var.display_name}'", loc))

    if var.ctx == ctx.idx:
        if not force and var.range is None and not var.referenced:
            return var
        new = _new_version(var, loc, ctx)
        new.prev = var.idx
        analyzer.add_node(new)
        var.next = new.idx
        analyzer.add_edge(new.idx, var.idx, Edge(EdgeKind.PREV))
        analyzer.add_edge(new.idx, ctx.idx, Edge(EdgeKind.VARIABLE))
    else:
        new = _new_version(var, loc, ctx)
        new.inherited_from = var.idx
        analyzer.add_node(new)
        ctx.local_vars[var.name] = new.idx
        analyzer.add_edge(new.idx, var.idx, Edge(EdgeKind.INHERITED_VARIABLE))
        analyzer.add_edge(new.idx, ctx.idx, Edge(EdgeKind.VARIABLE))

    logger.debug("advanced %s to #%d in %s", var.display_name, new.idx, ctx.name)
    return new


def advance_var_in_ctx(analyzer: Analyzer, var: ContextVar,
                       loc: SourceLocation, ctx: Context) -> ContextVar:
    return advance_var_in_ctx_forcible(analyzer, var, loc, ctx, False)


# ---------------------------------------------------------------------------
# Ranges
# ---------------------------------------------------------------------------

def effective_range(analyzer: Analyzer, var: ContextVar) -> Optional[Range]:
    """The version's own range, else the nearest predecessor's."""
    cur: Optional[ContextVar] = var
    while cur is not None:
        if cur.range is not None:
            return cur.range
        back = cur.prev if cur.prev is not None else cur.inherited_from
        cur = analyzer.var(back) if back is not None else None
    return None


def _writable_base(analyzer: Analyzer, var: ContextVar, elem: Elem,
                   loc: SourceLocation) -> Range:
    if var.is_superseded():
        raise ExprErr(graph_error(
            f"cannot set the range of superseded version of '{var.display_name}'", loc))
    if elem.depends_on(var.idx, set(), analyzer):
        raise ExprErr(bad_range(
            f"range bound for '{var.display_name}' references itself", loc))
    base = effective_range(analyzer, var)
    return base if base is not None else Range(elem, elem)


def set_range_min(analyzer: Analyzer, arena: RangeArena, var: ContextVar,
                  elem: Elem) -> None:
    base = _writable_base(analyzer, var, elem, var.loc)
    var.range = base.with_min(elem)
    arena.idx_or_upsert(elem)
    analyzer.bump_epoch()


def set_range_max(analyzer: Analyzer, arena: RangeArena, var: ContextVar,
                  elem: Elem) -> None:
    base = _writable_base(analyzer, var, elem, var.loc)
    var.range = base.with_max(elem)
    arena.idx_or_upsert(elem)
    analyzer.bump_epoch()


def set_range_exclusions(analyzer: Analyzer, var: ContextVar,
                         exclusions: tuple) -> None:
    if var.is_superseded():
        raise ExprErr(graph_error(
            f"cannot set the range of superseded version of '{var.display_name}'", var.loc))
    base = effective_range(analyzer, var)
    if base is None:
        raise ExprErr(bad_range(
            f"'{var.display_name}' has no range to exclude values from", var.loc))
    var.range = base.with_exclusions(exclusions)
    analyzer.bump_epoch()


def set_range(analyzer: Analyzer, arena: RangeArena, var: ContextVar,
              rng: Range) -> None:
    set_range_min(analyzer, arena, var, rng.min)
    set_range_max(analyzer, arena, var, rng.max)
    if rng.exclusions:
        set_range_exclusions(analyzer, var, rng.exclusions)


def try_set_range_min(analyzer: Analyzer, arena: RangeArena, var: ContextVar,
                      elem: Elem) -> bool:
    try:
        set_range_min(analyzer, arena, var, elem)
    except ExprErr as e:
        analyzer.add_if_err(e)
        return False
    return True


def try_set_range_max(analyzer: Analyzer, arena: RangeArena, var: ContextVar,
                      elem: Elem) -> bool:
    try:
        set_range_max(analyzer, arena, var, elem)
    except ExprErr as e:
        analyzer.add_if_err(e)
        return False
    return True


def try_set_range_exclusions(analyzer: Analyzer, var: ContextVar,
                             exclusions: tuple) -> bool:
    try:
        set_range_exclusions(analyzer, var, exclusions)
    except ExprErr as e:
        analyzer.add_if_err(e)
        return False
    return True


def evaled_range_min(analyzer: Analyzer, arena: RangeArena,
                     var: ContextVar) -> Optional[Elem]:
    rng = effective_range(analyzer, var)
    return rng.evaled_min(analyzer, arena) if rng is not None else None


def evaled_range_max(analyzer: Analyzer, arena: RangeArena,
                     var: ContextVar) -> Optional[Elem]:
    rng = effective_range(analyzer, var)
    return rng.evaled_max(analyzer, arena) if rng is not None else None


def is_const(analyzer: Analyzer, arena: RangeArena, var: ContextVar) -> bool:
    rng = effective_range(analyzer, var)
    return rng is not None and rng.is_const(analyzer, arena)
