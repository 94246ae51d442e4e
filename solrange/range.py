"""Ranges and the evaluation arena.

A ``Range`` is the sound (min, max, exclusions) over-approximation of one
variable version's possible values. ``RangeArena`` interns bound elements by
structural identity and memoizes their evaluations for one analysis run; it
is append-only and is always passed explicitly by the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple

from solrange.concrete import Concrete
from solrange.elem import Elem, to_elem


@dataclass(frozen=True)
class Range:
    min: Elem
    max: Elem
    exclusions: Tuple[Concrete, ...] = ()

    @staticmethod
    def exact(value: Any) -> Range:
        elem = to_elem(value)
        return Range(elem, elem)

    def with_min(self, elem: Elem) -> Range:
        return replace(self, min=elem)

    def with_max(self, elem: Elem) -> Range:
        return replace(self, max=elem)

    def with_exclusions(self, exclusions: Tuple[Concrete, ...]) -> Range:
        return replace(self, exclusions=tuple(exclusions))

    def evaled_min(self, ev: Any, arena: RangeArena) -> Elem:
        return self.min.minimize(ev, arena)

    def evaled_max(self, ev: Any, arena: RangeArena) -> Elem:
        return self.max.maximize(ev, arena)

    def concretize(self, ev: Any, arena: RangeArena) -> Optional[Tuple[Concrete, Concrete]]:
        """Both bounds as concrete values, or None if either is unresolved."""
        lo = self.evaled_min(ev, arena).maybe_concrete()
        hi = self.evaled_max(ev, arena).maybe_concrete()
        if lo is None or hi is None:
            return None
        return lo, hi

    def is_const(self, ev: Any, arena: RangeArena) -> bool:
        bounds = self.concretize(ev, arena)
        if bounds is None:
            return False
        lo, hi = bounds
        if lo.is_int_like() and hi.is_int_like():
            return lo.int_val() == hi.int_val()
        return lo == hi

    def depends_on(self, var_idx: int, ev: Any) -> bool:
        return (self.min.depends_on(var_idx, set(), ev)
                or self.max.depends_on(var_idx, set(), ev))

    def display(self, ev: Any) -> str:
        return f"[{self.min.display(ev)}, {self.max.display(ev)}]"


@dataclass
class RangeArena:
    """Append-only store of interned bounds and memoized evaluations.

    Memo entries are keyed by the bound's structure, the direction of the
    evaluation and the evaluator's range epoch, so a result computed before
    a range write is never served after it.
    """
    elems: List[Elem] = field(default_factory=list)
    _index: Dict[Elem, int] = field(default_factory=dict)
    _memo: Dict[Tuple[int, bool, int], Elem] = field(default_factory=dict)
    hits: int = 0

    def idx_or_upsert(self, elem: Elem) -> int:
        idx = self._index.get(elem)
        if idx is None:
            idx = len(self.elems)
            self.elems.append(elem)
            self._index[elem] = idx
        return idx

    def memoized(self, elem: Elem, maximize: bool, epoch: int) -> Optional[Elem]:
        idx = self._index.get(elem)
        if idx is None:
            return None
        res = self._memo.get((idx, maximize, epoch))
        if res is not None:
            self.hits += 1
        return res

    def memoize(self, elem: Elem, maximize: bool, epoch: int, result: Elem) -> None:
        idx = self.idx_or_upsert(elem)
        self.idx_or_upsert(result)
        self._memo[(idx, maximize, epoch)] = result

    def __len__(self) -> int:
        return len(self.elems)
