"""Transient results of evaluating one expression.

    Single(idx)          one variable version
    SingleLiteral(idx)   one read-only literal version
    Multi(items)         an ordered tuple of results
    Null                 no value (e.g. a call returning nothing)
    CtxKilled(kind)      evaluation ended the path
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from solrange.context import KillKind
from solrange.errors import ExprErr, graph_error


class ExprRet:

    def expect_single(self) -> int:
        if isinstance(self, (Single, SingleLiteral)):
            return self.idx
        raise ExprErr(graph_error(f"expected a single value, got {self!r}"))


@dataclass(frozen=True)
class Single(ExprRet):
    idx: int


@dataclass(frozen=True)
class SingleLiteral(ExprRet):
    idx: int


@dataclass(frozen=True)
class Multi(ExprRet):
    items: Tuple[ExprRet, ...]

    def __init__(self, *items: ExprRet):
        if len(items) == 1 and isinstance(items[0], (list, tuple)):
            items = tuple(items[0])
        object.__setattr__(self, "items", tuple(items))

    def __len__(self) -> int:
        return len(self.items)


@dataclass(frozen=True)
class Null(ExprRet):
    pass


@dataclass(frozen=True)
class CtxKilled(ExprRet):
    kind: KillKind


NULL = Null()
