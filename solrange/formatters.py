"""Output formatters for bound reports.

    pretty   colored, one block per variable (default)
    json     machine-readable
"""

from __future__ import annotations

import json
import os
import sys
from typing import Any, Dict, List, Union

from solrange.analyzer import Analyzer
from solrange.bounds import BoundAnalysis, FunctionVarsBoundAnalysis
from solrange.range import RangeArena


# ── ANSI color helpers ───────────────────────────────────────────────────

_NO_COLOR = os.environ.get("NO_COLOR") is not None or not sys.stdout.isatty()


def _c(code: str, text: str) -> str:
    if _NO_COLOR:
        return text
    return f"\033[{code}m{text}\033[0m"


def red(t: str) -> str:
    return _c("31", t)


def yellow(t: str) -> str:
    return _c("33", t)


def cyan(t: str) -> str:
    return _c("36", t)


def bold(t: str) -> str:
    return _c("1", t)


def dim(t: str) -> str:
    return _c("2", t)


def magenta(t: str) -> str:
    return _c("35", t)


ICON_ERROR = red("✖")
ICON_UNSAT = yellow("▲")


def build_report(analyzer: Analyzer, arena: RangeArena,
                 analysis: Union[BoundAnalysis, FunctionVarsBoundAnalysis]) -> Dict[str, Any]:
    """Bounds plus every error the analyzer recorded, as plain data."""
    if isinstance(analysis, BoundAnalysis):
        bounds = {"context": str(analysis.var_def[0]),
                  "vars": [analysis.to_dict(analyzer, arena)]}
    else:
        bounds = analysis.to_dict(analyzer, arena)
    return {
        "bounds": bounds,
        "errors": [e.to_dict() for e in analyzer.errors],
    }


# ── Pretty formatter (default) ──────────────────────────────────────────

def format_pretty(report: Dict[str, Any]) -> str:
    lines: List[str] = []
    bounds = report.get("bounds", {})
    lines.append(f"\n {bold('Bounds for context')} {dim(bounds.get('context', ''))}")

    for var in bounds.get("vars", []):
        name = var["var"]
        lines.append(f"   {bold(name)}  {dim(var.get('defined_at', ''))}")
        init = var.get("initial")
        if init:
            label = f"\"{name}\" ∈ {{{init['min']}, {init['max']}}}"
            lines.append(f"      {magenta(label)}")
        for change in var.get("changes", []):
            label = f"\"{name}\" ∈ {{{change['min']}, {change['max']}}}"
            line = f"      {cyan(label)}  {dim(change['at'])}"
            if change.get("satisfiable") is False:
                line += f"  {ICON_UNSAT} {yellow('unsatisfiable')}"
            lines.append(line)

    errors = report.get("errors", [])
    for err in errors:
        loc = err.get("location")
        where = f"{loc['file']}:{loc['start']}-{loc['end']}: " if loc else ""
        lines.append(f"   {ICON_ERROR}  {dim(where)}{red(err.get('message', 'Unknown error'))}")
    if errors:
        lines.append(f"\n   {red(str(len(errors)) + (' error' if len(errors) == 1 else ' errors'))}\n")

    return "\n".join(lines)


# ── Dispatcher ──────────────────────────────────────────────────────────

def format_result(report: Dict[str, Any], fmt: str = "pretty") -> str:
    """Dispatch to the appropriate formatter; unknown formats fall back to pretty."""
    if fmt == "json":
        return json.dumps(report, indent=2)
    return format_pretty(report)
