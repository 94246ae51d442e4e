"""Typed node/edge storage.

The analysis only needs three things from its storage layer: insert a node
and get its index back, link two nodes with a typed edge, and ask for a
node's neighbors along edges of a given kind. Node indices are stable for
the life of the graph; nothing is ever removed.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from solrange.errors import ExprErr, graph_error


class EdgeKind(Enum):
    VARIABLE = "variable"
    INHERITED_VARIABLE = "inherited_variable"
    PREV = "prev"
    SUBCONTEXT = "subcontext"
    LOOP = "loop"
    STORAGE_WRITE = "storage_write"
    RETURN_ASSIGN = "return_assign"
    STRUCT_FIELD = "struct_field"
    DEPENDENCY = "dependency"


@dataclass(frozen=True)
class Edge:
    kind: EdgeKind
    # RETURN_ASSIGN only: whether the value came back from an external call
    external: bool = False

    def __str__(self) -> str:
        if self.kind == EdgeKind.RETURN_ASSIGN:
            return f"{self.kind.value}(external={self.external})"
        return self.kind.value


class Graph:
    """Append-only directed multigraph with typed edges."""

    def __init__(self) -> None:
        self.nodes: List[Any] = []
        self._out: Dict[int, List[Tuple[int, Edge]]] = defaultdict(list)
        self._in: Dict[int, List[Tuple[int, Edge]]] = defaultdict(list)

    def add_node(self, node: Any) -> int:
        idx = len(self.nodes)
        self.nodes.append(node)
        if hasattr(node, "idx"):
            node.idx = idx
        return idx

    def node(self, idx: int) -> Any:
        if not 0 <= idx < len(self.nodes):
            raise ExprErr(graph_error(f"no node with index {idx}"))
        return self.nodes[idx]

    def add_edge(self, src: int, dst: int, edge: Edge) -> None:
        self.node(src)
        self.node(dst)
        self._out[src].append((dst, edge))
        self._in[dst].append((src, edge))

    def edges_from(self, idx: int, kind: Optional[EdgeKind] = None) -> List[Tuple[int, Edge]]:
        return [(dst, e) for dst, e in self._out.get(idx, ()) if kind is None or e.kind == kind]

    def edges_to(self, idx: int, kind: Optional[EdgeKind] = None) -> List[Tuple[int, Edge]]:
        return [(src, e) for src, e in self._in.get(idx, ()) if kind is None or e.kind == kind]

    def neighbors(self, idx: int, kind: Optional[EdgeKind] = None) -> List[int]:
        seen: List[int] = []
        for other, _ in self.edges_from(idx, kind) + self.edges_to(idx, kind):
            if other not in seen:
                seen.append(other)
        return seen

    def __len__(self) -> int:
        return len(self.nodes)
