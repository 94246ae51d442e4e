"""Property-based tests for the range lattice.

Soundness of corner evaluation (Cousot & Cousot 1977): for every concrete
operand pair drawn from the operand ranges, the concrete result lies within
[minimize, maximize] of the symbolic bound. Casts follow two's-complement
wraparound exactly.
"""

from __future__ import annotations

from hypothesis import given, settings
from hypothesis import strategies as st

from solrange.analyzer import Analyzer
from solrange.concrete import Concrete, wrap
from solrange.context import create_function_context, declare
from solrange.elem import ConcreteElem, Reference
from solrange.errors import SourceLocation
from solrange.range import Range, RangeArena
from solrange.types import VarType

LOC = SourceLocation(0, 0)

small = st.integers(min_value=0, max_value=2 ** 64)
widths = st.sampled_from(list(range(8, 257, 8)))


@st.composite
def interval(draw):
    a, b = draw(small), draw(small)
    return (a, b) if a <= b else (b, a)


def build(lo_hi_x, lo_hi_y):
    analyzer = Analyzer()
    ctx = create_function_context(analyzer, "fn")
    vs = []
    for name, (lo, hi) in (("x", lo_hi_x), ("y", lo_hi_y)):
        rng = Range(ConcreteElem(Concrete.uint(lo, 256)), ConcreteElem(Concrete.uint(hi, 256)))
        vs.append(declare(analyzer, ctx, name, VarType.uint(256), LOC, rng=rng))
    return analyzer, RangeArena(), Reference(vs[0].idx), Reference(vs[1].idx)


class TestCornerSoundness:

    @given(interval(), interval(), st.data())
    @settings(max_examples=150)
    def test_add_contains_samples(self, ix, iy, data):
        analyzer, arena, x, y = build(ix, iy)
        expr = x + y
        lo = expr.minimize(analyzer, arena).maybe_concrete().int_val()
        hi = expr.maximize(analyzer, arena).maybe_concrete().int_val()
        a = data.draw(st.integers(*ix))
        b = data.draw(st.integers(*iy))
        assert lo <= a + b <= hi

    @given(interval(), interval(), st.data())
    @settings(max_examples=150)
    def test_sub_contains_samples(self, ix, iy, data):
        analyzer, arena, x, y = build(ix, iy)
        expr = x - y
        lo = expr.minimize(analyzer, arena).maybe_concrete().int_val()
        hi = expr.maximize(analyzer, arena).maybe_concrete().int_val()
        a = data.draw(st.integers(*ix))
        b = data.draw(st.integers(*iy))
        assert lo <= a - b <= hi

    @given(interval(), interval(), st.data())
    @settings(max_examples=150)
    def test_mul_contains_samples(self, ix, iy, data):
        analyzer, arena, x, y = build(ix, iy)
        expr = x * y
        lo = expr.minimize(analyzer, arena).maybe_concrete().int_val()
        hi = expr.maximize(analyzer, arena).maybe_concrete().int_val()
        a = data.draw(st.integers(*ix))
        b = data.draw(st.integers(*iy))
        assert lo <= a * b <= hi

    @given(interval(), interval())
    @settings(max_examples=150)
    def test_minimize_never_exceeds_maximize(self, ix, iy):
        analyzer, arena, x, y = build(ix, iy)
        for expr in (x + y, x - y, x * y, x.min(y), x.max(y)):
            lo = expr.minimize(analyzer, arena).maybe_concrete().int_val()
            hi = expr.maximize(analyzer, arena).maybe_concrete().int_val()
            assert lo <= hi

    @given(interval(), small)
    @settings(max_examples=100)
    def test_div_by_range_with_zero_is_unresolved(self, ix, top):
        analyzer, arena, x, y = build(ix, (0, top))
        assert (x / y).maximize(analyzer, arena).maybe_concrete() is None


class TestCastLaws:

    @given(st.integers(min_value=0, max_value=2 ** 256 - 1), widths)
    @settings(max_examples=200)
    def test_unsigned_cast_is_modular(self, v, width):
        assert Concrete.uint(v, 256).cast(width, False).value == v % (1 << width)

    @given(st.integers(min_value=-(2 ** 255), max_value=2 ** 255 - 1), widths)
    @settings(max_examples=200)
    def test_signed_cast_round_trips_through_wrap(self, v, width):
        casted = Concrete.int_(v, 256).cast(width, True)
        lo, hi = -(1 << (width - 1)), (1 << (width - 1)) - 1
        assert lo <= casted.value <= hi
        assert (casted.value - v) % (1 << width) == 0

    @given(st.integers(min_value=-(2 ** 300), max_value=2 ** 300), widths, st.booleans())
    @settings(max_examples=200)
    def test_wrap_is_idempotent(self, v, width, signed):
        once = wrap(v, width, signed)
        assert wrap(once, width, signed) == once

    @given(st.integers(min_value=0, max_value=2 ** 256 - 1))
    @settings(max_examples=200)
    def test_fit_size_is_minimal(self, v):
        c = Concrete.uint(v, 256).fit_size()
        assert c.width % 8 == 0 and 8 <= c.width <= 256
        assert v < (1 << c.width)
        if c.width > 8:
            assert v >= (1 << (c.width - 8))
