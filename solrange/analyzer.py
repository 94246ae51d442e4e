"""The analyzer: one object carrying the graph, the error sink and the epoch.

Every engine entry point takes an ``Analyzer`` and a ``RangeArena``. The
analyzer doubles as the range evaluator used by ``Elem.maximize`` and
``Elem.minimize`` (see ``solrange.elem``).
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from solrange.config import SolrangeConfig
from solrange.context import Context, ContextVar, effective_range
from solrange.elem import Reference
from solrange.errors import AnalysisError, ExprErr, graph_error
from solrange.graph import Edge, Graph
from solrange.range import Range

logger = logging.getLogger(__name__)


class Analyzer:

    def __init__(self, config: Optional[SolrangeConfig] = None):
        self.graph = Graph()
        self.errors: List[AnalysisError] = []
        self.range_epoch = 0
        self.config = config or SolrangeConfig()

    # -- graph ---------------------------------------------------------------

    def add_node(self, node: Any) -> int:
        return self.graph.add_node(node)

    def add_edge(self, src: int, dst: int, edge: Edge) -> None:
        self.graph.add_edge(src, dst, edge)

    def var(self, idx: int) -> ContextVar:
        node = self.graph.node(idx)
        if not isinstance(node, ContextVar):
            raise ExprErr(graph_error(f"node {idx} is not a variable"))
        return node

    def context(self, idx: int) -> Context:
        node = self.graph.node(idx)
        if not isinstance(node, Context):
            raise ExprErr(graph_error(f"node {idx} is not a context"))
        return node

    def reference(self, var: ContextVar) -> Reference:
        """Build a bound referencing ``var``; marks it as referenced."""
        var.referenced = True
        return Reference(var.idx)

    # -- evaluator protocol --------------------------------------------------

    def var_range(self, idx: int) -> Optional[Range]:
        return effective_range(self, self.var(idx))

    def var_name(self, idx: int) -> str:
        return self.var(idx).display_name

    def bump_epoch(self) -> None:
        self.range_epoch += 1

    # -- errors --------------------------------------------------------------

    def add_if_err(self, err: Any) -> None:
        """Record a recoverable error; ``None`` is ignored."""
        if err is None:
            return
        if isinstance(err, ExprErr):
            err = err.error
        logger.warning("%s", err)
        self.errors.append(err)

    def has_errors(self) -> bool:
        return bool(self.errors)
