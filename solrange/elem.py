"""Symbolic range bounds.

An ``Elem`` is an immutable expression tree whose leaves are ``Concrete``
values or references to a specific variable version. It is how a bound that
cannot be resolved yet is written down:

    x_1.max = Reference(tmp_3)               tmp_3.max = Reference(x_0) + 1

Evaluation (``maximize`` / ``minimize``) follows the interval semantics of
Cousot & Cousot (1977): every operator is evaluated on the corners of its
operands' intervals and the extreme result is kept. References resolve
through the evaluator to the referenced version's current range. A bound
that cannot be resolved (no range, division by zero, a reference cycle cut
by the visited guard) is returned symbolically and ``maybe_concrete()`` is
None.

The evaluator is any object providing:

    var_range(idx)  -> Optional[Range]    effective range of a version
    var_name(idx)   -> str                display name of a version
    range_epoch     -> int                bumped on every range write
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set, TYPE_CHECKING

from solrange.concrete import Concrete, numeric_bounds

if TYPE_CHECKING:
    from solrange.range import RangeArena


class RangeOp(Enum):
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    MOD = "%"
    EXP = "**"
    MIN = "min"
    MAX = "max"
    BIT_AND = "&"
    BIT_OR = "|"
    BIT_XOR = "^"
    BIT_NOT = "~"
    SHL = "<<"
    SHR = ">>"
    EQ = "=="
    NEQ = "!="
    LT = "<"
    LTE = "<="
    GT = ">"
    GTE = ">="
    AND = "&&"
    OR = "||"
    NOT = "!"
    CAST = "cast"

    @staticmethod
    def from_symbol(symbol: str) -> RangeOp:
        for op in RangeOp:
            if op.value == symbol:
                return op
        raise ValueError(f"unknown range operator '{symbol}'")

    def is_comparison(self) -> bool:
        return self in _COMPARISONS

    def is_unary(self) -> bool:
        return self in (RangeOp.BIT_NOT, RangeOp.NOT)


_COMPARISONS = frozenset({
    RangeOp.EQ, RangeOp.NEQ, RangeOp.LT, RangeOp.LTE, RangeOp.GT, RangeOp.GTE,
})


# ---------------------------------------------------------------------------
# Elem hierarchy
# ---------------------------------------------------------------------------

class Elem(ABC):
    """A symbolic bound."""

    @abstractmethod
    def _eval(self, ev: Any, arena: RangeArena, maximize: bool,
              visited: Set[int]) -> Elem:
        ...

    @abstractmethod
    def depends_on(self, var_idx: int, visited: Set[int], ev: Any) -> bool:
        """True if this bound transitively references version ``var_idx``."""
        ...

    @abstractmethod
    def display(self, ev: Any) -> str:
        ...

    def maximize(self, ev: Any, arena: RangeArena) -> Elem:
        return self._eval(ev, arena, True, set())

    def minimize(self, ev: Any, arena: RangeArena) -> Elem:
        return self._eval(ev, arena, False, set())

    def maybe_concrete(self) -> Optional[Concrete]:
        return None

    # -- builders ------------------------------------------------------------

    def _bin(self, op: RangeOp, other: Any) -> RangeExpr:
        return RangeExpr(self, op, to_elem(other))

    def __add__(self, other: Any) -> RangeExpr:
        return self._bin(RangeOp.ADD, other)

    def __sub__(self, other: Any) -> RangeExpr:
        return self._bin(RangeOp.SUB, other)

    def __mul__(self, other: Any) -> RangeExpr:
        return self._bin(RangeOp.MUL, other)

    def __truediv__(self, other: Any) -> RangeExpr:
        return self._bin(RangeOp.DIV, other)

    def __mod__(self, other: Any) -> RangeExpr:
        return self._bin(RangeOp.MOD, other)

    def __pow__(self, other: Any) -> RangeExpr:
        return self._bin(RangeOp.EXP, other)

    def __and__(self, other: Any) -> RangeExpr:
        return self._bin(RangeOp.BIT_AND, other)

    def __or__(self, other: Any) -> RangeExpr:
        return self._bin(RangeOp.BIT_OR, other)

    def __xor__(self, other: Any) -> RangeExpr:
        return self._bin(RangeOp.BIT_XOR, other)

    def __lshift__(self, other: Any) -> RangeExpr:
        return self._bin(RangeOp.SHL, other)

    def __rshift__(self, other: Any) -> RangeExpr:
        return self._bin(RangeOp.SHR, other)

    def __invert__(self) -> RangeExpr:
        return RangeExpr(self, RangeOp.BIT_NOT, NULL_ELEM)

    def min(self, other: Any) -> RangeExpr:
        return self._bin(RangeOp.MIN, other)

    def max(self, other: Any) -> RangeExpr:
        return self._bin(RangeOp.MAX, other)

    def apply(self, op: RangeOp, other: Any = None) -> RangeExpr:
        if op.is_unary():
            return RangeExpr(self, op, NULL_ELEM)
        return self._bin(op, other)

    def cast(self, target: Any) -> RangeExpr:
        """Cast to the type of ``target``'s value at evaluation time."""
        return self._bin(RangeOp.CAST, target)

    def cast_to(self, width: int, signed: bool) -> RangeExpr:
        zero = Concrete.int_(0, width) if signed else Concrete.uint(0, width)
        return self.cast(ConcreteElem(zero))


@dataclass(frozen=True)
class ConcreteElem(Elem):
    value: Concrete

    def _eval(self, ev, arena, maximize, visited) -> Elem:
        return self

    def depends_on(self, var_idx, visited, ev) -> bool:
        return False

    def maybe_concrete(self) -> Optional[Concrete]:
        return self.value

    def display(self, ev) -> str:
        return str(self.value)

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class Reference(Elem):
    """A reference to one specific variable version."""
    idx: int

    def _eval(self, ev, arena, maximize, visited) -> Elem:
        if self.idx in visited:
            return self
        rng = ev.var_range(self.idx)
        if rng is None:
            return self
        bound = rng.max if maximize else rng.min
        visited.add(self.idx)
        try:
            res = bound._eval(ev, arena, maximize, visited)
        finally:
            visited.discard(self.idx)
        if res.maybe_concrete() is None:
            return self
        return res

    def depends_on(self, var_idx, visited, ev) -> bool:
        if self.idx == var_idx:
            return True
        if self.idx in visited:
            return False
        visited.add(self.idx)
        rng = ev.var_range(self.idx)
        if rng is None:
            return False
        return (rng.min.depends_on(var_idx, visited, ev)
                or rng.max.depends_on(var_idx, visited, ev))

    def display(self, ev) -> str:
        return ev.var_name(self.idx)

    def __str__(self) -> str:
        return f"var#{self.idx}"


@dataclass(frozen=True)
class NullElem(Elem):
    """Placeholder operand of unary expressions."""

    def _eval(self, ev, arena, maximize, visited) -> Elem:
        return self

    def depends_on(self, var_idx, visited, ev) -> bool:
        return False

    def display(self, ev) -> str:
        return "null"


NULL_ELEM = NullElem()


@dataclass(frozen=True)
class RangeExpr(Elem):
    lhs: Elem
    op: RangeOp
    rhs: Elem

    def _eval(self, ev, arena, maximize, visited) -> Elem:
        cached = arena.memoized(self, maximize, ev.range_epoch)
        if cached is not None:
            return cached

        lmin = self.lhs._eval(ev, arena, False, visited).maybe_concrete()
        lmax = self.lhs._eval(ev, arena, True, visited).maybe_concrete()
        if lmin is None or lmax is None:
            return self

        if self.op.is_unary():
            res = _eval_unary(self.op, lmin, lmax, maximize)
        else:
            rmin = self.rhs._eval(ev, arena, False, visited).maybe_concrete()
            rmax = self.rhs._eval(ev, arena, True, visited).maybe_concrete()
            if rmin is None or rmax is None:
                return self
            res = _eval_binary(self.op, lmin, lmax, rmin, rmax, maximize)

        if res is None:
            return self
        out = ConcreteElem(res)
        arena.memoize(self, maximize, ev.range_epoch, out)
        return out

    def depends_on(self, var_idx, visited, ev) -> bool:
        return (self.lhs.depends_on(var_idx, visited, ev)
                or self.rhs.depends_on(var_idx, visited, ev))

    def display(self, ev) -> str:
        if self.op.is_unary():
            return f"{self.op.value}({self.lhs.display(ev)})"
        if self.op in (RangeOp.MIN, RangeOp.MAX):
            return f"{self.op.value}({self.lhs.display(ev)}, {self.rhs.display(ev)})"
        if self.op == RangeOp.CAST:
            target = self.rhs.maybe_concrete()
            name = target.type_name() if target is not None else self.rhs.display(ev)
            return f"{name}({self.lhs.display(ev)})"
        return f"({self.lhs.display(ev)} {self.op.value} {self.rhs.display(ev)})"

    def __str__(self) -> str:
        return f"({self.lhs} {self.op.value} {self.rhs})"


def to_elem(value: Any) -> Elem:
    if isinstance(value, Elem):
        return value
    if isinstance(value, Concrete):
        return ConcreteElem(value)
    if isinstance(value, bool):
        return ConcreteElem(Concrete.bool_(value))
    if isinstance(value, int):
        if value < 0:
            return ConcreteElem(Concrete.int_(value))
        return ConcreteElem(Concrete.uint(value))
    raise TypeError(f"cannot build a range element from {type(value).__name__}")


# ---------------------------------------------------------------------------
# Corner evaluation
# ---------------------------------------------------------------------------

def _pick(values: List[int], maximize: bool) -> int:
    return max(values) if maximize else min(values)


def _safe_div(a: int, b: int) -> int:
    # truncating division, as the EVM does
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b >= 0) else -q


def _safe_mod(a: int, b: int) -> int:
    r = abs(a) % abs(b)
    return r if a >= 0 else -r


def _shift_left(a: int, b: int) -> int:
    return 0 if b >= 256 else a << b


def _shift_right(a: int, b: int) -> int:
    if b >= 256:
        return 0 if a >= 0 else -1
    return a >> b


_ARITH: Dict[RangeOp, Callable[[int, int], int]] = {
    RangeOp.ADD: lambda a, b: a + b,
    RangeOp.SUB: lambda a, b: a - b,
    RangeOp.MUL: lambda a, b: a * b,
    RangeOp.DIV: _safe_div,
    RangeOp.MOD: _safe_mod,
    RangeOp.MIN: min,
    RangeOp.MAX: max,
    RangeOp.SHL: _shift_left,
    RangeOp.SHR: _shift_right,
}


def _eval_binary(op: RangeOp, lmin: Concrete, lmax: Concrete,
                 rmin: Concrete, rmax: Concrete, maximize: bool) -> Optional[Concrete]:
    if op == RangeOp.CAST:
        return _eval_cast(lmin, lmax, rmin, maximize)

    a_lo, a_hi, b_lo, b_hi = (c.int_val() for c in (lmin, lmax, rmin, rmax))
    if None in (a_lo, a_hi, b_lo, b_hi):
        if op in (RangeOp.EQ, RangeOp.NEQ):
            return _eval_eq_opaque(op, lmin, lmax, rmin, rmax, maximize)
        return None

    if op.is_comparison():
        return Concrete.bool_(_eval_comparison(op, a_lo, a_hi, b_lo, b_hi, maximize))

    if op in (RangeOp.AND, RangeOp.OR):
        if op == RangeOp.AND:
            res = (a_hi and b_hi) if maximize else (a_lo and b_lo)
        else:
            res = (a_hi or b_hi) if maximize else (a_lo or b_lo)
        return Concrete.bool_(bool(res))

    if op in (RangeOp.DIV, RangeOp.MOD) and b_lo <= 0 <= b_hi:
        return None

    if op in (RangeOp.SHL, RangeOp.SHR, RangeOp.EXP) and b_lo < 0:
        return None

    if op == RangeOp.EXP:
        if a_lo < 0 or b_hi > 256 and a_hi > 1:
            return None
        corners = [a ** b for a in (a_lo, a_hi) for b in (b_lo, b_hi)]
        return lmax.with_int(_pick(corners, maximize))

    if op in (RangeOp.BIT_AND, RangeOp.BIT_OR, RangeOp.BIT_XOR):
        return _eval_bitwise(op, lmax, a_lo, a_hi, b_lo, b_hi, maximize)

    fn = _ARITH[op]
    corners = [fn(a, b) for a in (a_lo, a_hi) for b in (b_lo, b_hi)]
    template = lmax if lmax.is_numeric() or not rmax.is_numeric() else rmax
    if rmax.is_signed() and not template.is_signed():
        template = rmax
    return template.with_int(_pick(corners, maximize))


def _eval_comparison(op: RangeOp, a_lo: int, a_hi: int, b_lo: int, b_hi: int,
                     maximize: bool) -> bool:
    """Maximizing asks "can it be true", minimizing asks "must it be true"."""
    if op == RangeOp.EQ:
        if maximize:
            return a_lo <= b_hi and b_lo <= a_hi
        return a_lo == a_hi == b_lo == b_hi
    if op == RangeOp.NEQ:
        if maximize:
            return not (a_lo == a_hi == b_lo == b_hi)
        return a_hi < b_lo or b_hi < a_lo
    if op == RangeOp.LT:
        return a_lo < b_hi if maximize else a_hi < b_lo
    if op == RangeOp.LTE:
        return a_lo <= b_hi if maximize else a_hi <= b_lo
    if op == RangeOp.GT:
        return a_hi > b_lo if maximize else a_lo > b_hi
    # GTE
    return a_hi >= b_lo if maximize else a_lo >= b_hi


def _eval_eq_opaque(op: RangeOp, lmin: Concrete, lmax: Concrete,
                    rmin: Concrete, rmax: Concrete, maximize: bool) -> Optional[Concrete]:
    if lmin != lmax or rmin != rmax:
        return Concrete.bool_(maximize)
    same = lmin == rmin
    return Concrete.bool_(same if op == RangeOp.EQ else not same)


def _eval_bitwise(op: RangeOp, template: Concrete, a_lo: int, a_hi: int,
                  b_lo: int, b_hi: int, maximize: bool) -> Optional[Concrete]:
    if min(a_lo, b_lo) < 0:
        return None
    if a_lo == a_hi and b_lo == b_hi:
        fn = {RangeOp.BIT_AND: lambda x, y: x & y,
              RangeOp.BIT_OR: lambda x, y: x | y,
              RangeOp.BIT_XOR: lambda x, y: x ^ y}[op]
        return template.with_int(fn(a_lo, b_lo))
    if op == RangeOp.BIT_AND:
        return template.with_int(min(a_hi, b_hi) if maximize else 0)
    ceiling = (1 << max(a_hi, b_hi).bit_length()) - 1
    if op == RangeOp.BIT_OR:
        return template.with_int(ceiling if maximize else max(a_lo, b_lo))
    return template.with_int(ceiling if maximize else 0)


def _eval_unary(op: RangeOp, lmin: Concrete, lmax: Concrete,
                maximize: bool) -> Optional[Concrete]:
    lo, hi = lmin.int_val(), lmax.int_val()
    if lo is None or hi is None:
        return None
    if op == RangeOp.NOT:
        return Concrete.bool_(not lo if maximize else not hi)
    # BIT_NOT is order reversing within the operand's width
    if lmax.is_numeric():
        width = lmax.width
        if lmax.is_signed():
            res = ~lo if maximize else ~hi
            return Concrete.int_(res, width)
        mask = (1 << width) - 1
        res = (mask ^ lo) if maximize else (mask ^ hi)
        return Concrete.uint(res, width)
    return None


def _eval_cast(lmin: Concrete, lmax: Concrete, target: Concrete,
               maximize: bool) -> Optional[Concrete]:
    if lmin == lmax:
        return lmax.cast_from(target)
    if not target.is_numeric():
        return (lmax if maximize else lmin).cast_from(target)
    lo_v, hi_v = lmin.int_val(), lmax.int_val()
    if lo_v is None or hi_v is None:
        return None
    t_lo, t_hi = numeric_bounds(target.width, target.is_signed())
    if t_lo <= lo_v and hi_v <= t_hi:
        return (lmax if maximize else lmin).cast_from(target)
    # the interval wraps somewhere inside: the whole target domain is reachable
    kind_val = t_hi if maximize else t_lo
    if target.is_signed():
        return Concrete.int_(kind_val, target.width)
    return Concrete.uint(kind_val, target.width)
