"""Bound history reports.

Read-only: walks a variable's version chain and records every point where
its own range changed. Nothing here mutates the graph.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from solrange.analyzer import Analyzer
from solrange.context import Context, ContextVar, parent_of
from solrange.errors import ExprErr, SourceLocation, graph_error
from solrange.range import Range, RangeArena
from solrange.solver import DEFAULT_TIMEOUT_MS, range_is_satisfiable


@dataclass(frozen=True)
class ReportConfig:
    eval_bounds: bool = True
    show_tmps: bool = False
    solver_timeout_ms: int = DEFAULT_TIMEOUT_MS


@dataclass
class BoundChange:
    loc: SourceLocation
    range: Range
    var_idx: int
    # None when the range does not concretize or z3 gave up
    satisfiable: Optional[bool] = None


@dataclass
class BoundAnalysis:
    var_name: str
    var_def: Tuple[SourceLocation, Optional[Range]]
    bound_changes: List[BoundChange] = field(default_factory=list)
    report_config: ReportConfig = field(default_factory=ReportConfig)

    def _bounds(self, analyzer: Analyzer, arena: RangeArena, rng: Range,
                evaluate: bool) -> Tuple[str, str]:
        if evaluate:
            return (rng.evaled_min(analyzer, arena).display(analyzer),
                    rng.evaled_max(analyzer, arena).display(analyzer))
        return rng.min.display(analyzer), rng.max.display(analyzer)

    def labels(self, analyzer: Analyzer, arena: RangeArena) -> List[str]:
        out = []
        init = self.var_def[1]
        if init is not None:
            lo, hi = self._bounds(analyzer, arena, init, False)
            out.append(f"\"{self.var_name}\" ∈ {{{lo}, {hi}}}")
        for change in self.bound_changes:
            lo, hi = self._bounds(analyzer, arena, change.range,
                                  self.report_config.eval_bounds)
            out.append(f"\"{self.var_name}\" ∈ {{{lo}, {hi}}}")
        return out

    def to_dict(self, analyzer: Analyzer, arena: RangeArena) -> Dict[str, Any]:
        loc, init = self.var_def
        d: Dict[str, Any] = {
            "var": self.var_name,
            "defined_at": str(loc),
            "initial": None,
            "changes": [],
        }
        if init is not None:
            lo, hi = self._bounds(analyzer, arena, init, False)
            d["initial"] = {"min": lo, "max": hi}
        for change in self.bound_changes:
            lo, hi = self._bounds(analyzer, arena, change.range,
                                  self.report_config.eval_bounds)
            d["changes"].append({
                "at": str(change.loc),
                "min": lo,
                "max": hi,
                "satisfiable": change.satisfiable,
            })
        return d


@dataclass
class FunctionVarsBoundAnalysis:
    ctx_loc: SourceLocation
    vars: Dict[str, BoundAnalysis] = field(default_factory=dict)

    def labels(self, analyzer: Analyzer, arena: RangeArena) -> List[str]:
        out: List[str] = []
        for name in sorted(self.vars):
            out.extend(self.vars[name].labels(analyzer, arena))
        return out

    def to_dict(self, analyzer: Analyzer, arena: RangeArena) -> Dict[str, Any]:
        return {
            "context": str(self.ctx_loc),
            "vars": [self.vars[name].to_dict(analyzer, arena) for name in sorted(self.vars)],
        }


def _first_declared(analyzer: Analyzer, ctx: Context, name: str) -> Optional[ContextVar]:
    cur: Optional[Context] = ctx
    while cur is not None:
        idx = cur.local_vars.get(name)
        if idx is not None:
            return analyzer.var(idx)
        cur = parent_of(analyzer, cur)
    return None


def bounds_for_var(analyzer: Analyzer, arena: RangeArena, ctx: Context,
                   var_name: str, report_config: Optional[ReportConfig] = None) -> BoundAnalysis:
    var = _first_declared(analyzer, ctx, var_name)
    if var is None:
        raise ExprErr(graph_error(f"No variable in context with name: {var_name}", ctx.loc))
    return bounds_for_var_node(analyzer, arena, var_name, var, report_config)


def bounds_for_var_node(analyzer: Analyzer, arena: RangeArena, var_name: str,
                        var: ContextVar,
                        report_config: Optional[ReportConfig] = None) -> BoundAnalysis:
    report_config = report_config or analyzer.config.report_config()
    ba = BoundAnalysis(var_name=var_name, var_def=(var.loc, var.range),
                       report_config=report_config)

    last = var.range
    cur = var
    while cur.next is not None:
        cur = analyzer.var(cur.next)
        if cur.range is None:
            continue
        if cur.range != last:
            ba.bound_changes.append(BoundChange(
                loc=cur.loc,
                range=cur.range,
                var_idx=cur.idx,
                satisfiable=range_is_satisfiable(analyzer, arena, cur.range,
                                                 report_config.solver_timeout_ms),
            ))
        last = cur.range
    return ba


def bounds_for_all(analyzer: Analyzer, arena: RangeArena, ctx: Context,
                   report_config: Optional[ReportConfig] = None) -> FunctionVarsBoundAnalysis:
    report_config = report_config or analyzer.config.report_config()
    analyses: Dict[str, BoundAnalysis] = {}
    # nearest scope first, so a shadowing declaration hides the outer one
    cur: Optional[Context] = ctx
    while cur is not None:
        for name, idx in cur.local_vars.items():
            var = analyzer.var(idx)
            if name in analyses or ((var.is_tmp or var.is_literal) and not report_config.show_tmps):
                continue
            analyses[name] = bounds_for_var_node(analyzer, arena, var.display_name,
                                                 var, report_config)
        cur = parent_of(analyzer, cur)
    return FunctionVarsBoundAnalysis(ctx_loc=ctx.loc, vars=analyses)
