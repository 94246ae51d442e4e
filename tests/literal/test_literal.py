"""Literal ingestion tests: every literal syntax class, good and bad."""

import pytest

from solrange.analyzer import Analyzer
from solrange.concrete import Concrete, ConcreteKind
from solrange.context import KillKind, create_function_context, evaled_range_min, is_const, kill
from solrange.errors import ErrorKind, ExprErr, SourceLocation
from solrange.expr_ret import SingleLiteral
from solrange.literal import (
    address_literal,
    bool_literal,
    concrete_number_from_str,
    hex_literals,
    hex_num_literal,
    number_literal,
    rational_number_literal,
    string_literal,
    unit_to_uint,
)
from solrange.range import RangeArena

LOC = SourceLocation(0, 0)

TWO_256 = "115792089237316195423570985008687907853269984665640564039457584007913129639936"
TWO_255 = "57896044618658097711785492504343953926634992332820282019728792003956564819968"
TWO_255_PLUS_1 = "57896044618658097711785492504343953926634992332820282019728792003956564819969"


def ingest(fn, *args) -> Concrete:
    """Run one literal constructor on a fresh context and return its value."""
    analyzer = Analyzer()
    arena = RangeArena()
    ctx = create_function_context(analyzer, "test_fn")

    fn(analyzer, arena, ctx, LOC, *args)

    assert len(ctx.expr_ret_stack) == 1
    ret = ctx.expr_ret_stack[0]
    assert isinstance(ret, SingleLiteral)
    var = analyzer.var(ret.expect_single())
    assert var.is_literal
    assert var.ctx == ctx.idx
    assert is_const(analyzer, arena, var)
    return evaled_range_min(analyzer, arena, var).maybe_concrete()


class TestNumberLiteral:

    def test_positive(self):
        assert ingest(number_literal, "123", "", False) == Concrete.uint(123, 8)

    def test_positive_overflow(self):
        with pytest.raises(ExprErr) as exc:
            ingest(number_literal, TWO_256, "", False)
        assert exc.value.kind == ErrorKind.PARSE_ERROR

    def test_positive_with_exponent(self):
        assert ingest(number_literal, "123", "10", False) == Concrete.uint(1230000000000, 48)

    def test_positive_with_zero_exponent(self):
        assert ingest(number_literal, "123", "0", False) == Concrete.uint(123, 8)

    def test_zero_exponent_and_unit(self):
        expected = Concrete.uint(123000000000000000000, 72)
        assert ingest(number_literal, "123", "0", False, "ether") == expected

    def test_unit(self):
        expected = Concrete.uint(123000000000000000000, 72)
        assert ingest(number_literal, "123", "", False, "ether") == expected

    def test_negative(self):
        assert ingest(number_literal, "123", "", True) == Concrete.int_(-123, 8)

    def test_negative_zero(self):
        value = ingest(number_literal, "0", "", True)
        assert value == Concrete.int_(0, 8)
        assert value.kind == ConcreteKind.INT

    def test_most_negative_int256(self):
        expected = Concrete.int_(-(2 ** 255), 256)
        assert ingest(number_literal, TWO_255, "", True) == expected

    def test_negative_too_large(self):
        with pytest.raises(ExprErr):
            ingest(number_literal, TWO_255_PLUS_1, "", True)

    def test_exponent_overflow(self):
        with pytest.raises(ExprErr):
            ingest(number_literal, "1", "78", False)

    def test_huge_exponent_fails_fast(self):
        with pytest.raises(ExprErr) as exc:
            ingest(number_literal, "1", "100000000", False)
        assert exc.value.kind == ErrorKind.PARSE_ERROR

    def test_zero_with_huge_exponent(self):
        assert ingest(number_literal, "0", "100000000", False) == Concrete.uint(0, 8)

    def test_malformed(self):
        with pytest.raises(ExprErr) as exc:
            ingest(number_literal, "12a", "", False)
        assert exc.value.kind == ErrorKind.PARSE_ERROR


class TestUnits:

    @pytest.mark.parametrize("unit,factor", [
        ("wei", 1),
        ("gwei", 10 ** 9),
        ("ether", 10 ** 18),
        ("seconds", 1),
        ("minutes", 60),
        ("hours", 3600),
        ("days", 86400),
        ("weeks", 604800),
    ])
    def test_known_units(self, unit, factor):
        assert unit_to_uint(unit) == factor

    def test_unknown_unit_is_one(self):
        assert unit_to_uint("fortnights") == 1
        assert unit_to_uint(None) == 1

    def test_days(self):
        assert concrete_number_from_str(LOC, "2", "", False, "days") == Concrete.uint(172800)


class TestRationalLiteral:

    def test_positive(self):
        expected = Concrete.uint(1000010000000000000, 64)
        assert ingest(rational_number_literal, "1", "00001", "18", False) == expected

    def test_positive_fraction(self):
        assert ingest(rational_number_literal, "23", "5", "5", False) == Concrete.uint(2350000, 24)

    def test_negative(self):
        assert ingest(rational_number_literal, "23", "5", "5", True) == Concrete.int_(-2350000, 24)

    def test_with_unit(self):
        expected = Concrete.uint(1500000000000000000, 64)
        assert ingest(rational_number_literal, "1", "5", "0", False, "ether") == expected

    def test_over_precise_fraction_fails(self):
        with pytest.raises(ExprErr) as exc:
            ingest(rational_number_literal, "1", "0001", "2", False)
        assert exc.value.kind == ErrorKind.PARSE_ERROR

    def test_fraction_without_exponent_fails(self):
        with pytest.raises(ExprErr):
            ingest(rational_number_literal, "0", "5", "", False)

    def test_trailing_zero_fraction_is_exact(self):
        assert ingest(rational_number_literal, "2", "50", "1", False) == Concrete.uint(25, 8)

    def test_huge_exponent_fails_fast(self):
        with pytest.raises(ExprErr) as exc:
            ingest(rational_number_literal, "1", "5", "100000000", False)
        assert exc.value.kind == ErrorKind.PARSE_ERROR

    def test_zero_with_huge_exponent(self):
        assert ingest(rational_number_literal, "0", "0", "100000000", False) == Concrete.uint(0, 8)


class TestHexNumLiteral:

    def test_positive(self):
        assert ingest(hex_num_literal, "7B", False) == Concrete.uint(123, 8)

    def test_prefixed(self):
        assert ingest(hex_num_literal, "0x7B", False) == Concrete.uint(123, 8)

    def test_negative(self):
        assert ingest(hex_num_literal, "7B", True) == Concrete.int_(-123, 8)

    def test_uint256_max(self):
        assert ingest(hex_num_literal, "F" * 64, False) == Concrete.uint(2 ** 256 - 1, 256)

    def test_large_negative(self):
        expected = Concrete.int_(-(2 ** 255 - 1), 256)
        assert ingest(hex_num_literal, "7" + "F" * 63, True) == expected

    def test_too_large_negative(self):
        with pytest.raises(ExprErr):
            ingest(hex_num_literal, "F" * 64, True)

    def test_top_bit_negative_rejected(self):
        with pytest.raises(ExprErr):
            ingest(hex_num_literal, "8" + "0" * 63, True)

    def test_zero(self):
        assert ingest(hex_num_literal, "0", False) == Concrete.uint(0, 8)

    def test_min_positive(self):
        assert ingest(hex_num_literal, "1", False) == Concrete.uint(1, 8)

    def test_min_negative(self):
        assert ingest(hex_num_literal, "1", True) == Concrete.int_(-1, 8)

    def test_just_below_max(self):
        expected = Concrete.uint(2 ** 256 - 2, 256)
        assert ingest(hex_num_literal, "F" * 63 + "E", False) == expected

    def test_negative_just_above_min(self):
        expected = Concrete.int_(-(2 ** 255 - 2), 256)
        assert ingest(hex_num_literal, "7" + "F" * 62 + "E", True) == expected

    def test_malformed(self):
        with pytest.raises(ExprErr):
            ingest(hex_num_literal, "0xZZ", False)


class TestHexLiterals:

    def test_single(self):
        assert ingest(hex_literals, "7B") == Concrete.fixed_bytes(b"\x7b", 1)

    def test_multiple_parts(self):
        value = ingest(hex_literals, "7B" + "FF")
        assert value == Concrete.fixed_bytes(b"\x7b\xff", 2)
        assert value.value[2:] == b"\x00" * 30

    def test_empty(self):
        assert ingest(hex_literals, "") == Concrete.fixed_bytes(b"", 0)

    def test_zero_byte_has_no_length(self):
        value = ingest(hex_literals, "00")
        assert value.width == 0
        assert value.value == b"\x00" * 32

    def test_trailing_zero_not_counted(self):
        assert ingest(hex_literals, "7B00").width == 1

    def test_full_word(self):
        assert ingest(hex_literals, "FF" * 32) == Concrete.fixed_bytes(b"\xff" * 32, 32)

    def test_longer_than_a_word_is_dynamic(self):
        value = ingest(hex_literals, "AB" * 33)
        assert value.kind == ConcreteKind.DYN_BYTES
        assert value.value == b"\xab" * 33

    def test_undecodable(self):
        with pytest.raises(ExprErr) as exc:
            ingest(hex_literals, "zz")
        assert exc.value.kind == ErrorKind.PARSE_ERROR


class TestAddressLiteral:

    def test_valid(self):
        addr = "0x0000000000000000000000000000000000000001"
        assert ingest(address_literal, addr) == Concrete.address(b"\x00" * 19 + b"\x01")

    def test_zero(self):
        addr = "0x0000000000000000000000000000000000000000"
        assert ingest(address_literal, addr) == Concrete.address(b"\x00" * 20)

    def test_max(self):
        addr = "0x" + "FF" * 20
        assert ingest(address_literal, addr) == Concrete.address(b"\xff" * 20)

    def test_without_prefix(self):
        assert ingest(address_literal, "11" * 20) == Concrete.address(b"\x11" * 20)

    def test_too_large(self):
        with pytest.raises(ExprErr):
            ingest(address_literal, "0x" + "FF" * 21)

    def test_not_hex(self):
        with pytest.raises(ExprErr):
            ingest(address_literal, "0x" + "GG" * 20)


class TestStringAndBoolLiterals:

    @pytest.mark.parametrize("s", [
        "",
        "hello",
        "a" * 256,
        r"""!@#$%^&*()_+-=[]{}|;':,.<>/?""",
        "🔥🔫",
    ])
    def test_string_verbatim(self, s):
        assert ingest(string_literal, s) == Concrete.string(s)

    @pytest.mark.parametrize("b", [True, False])
    def test_bool(self, b):
        assert ingest(bool_literal, b) == Concrete.bool_(b)


class TestLiteralVariables:

    def test_each_literal_is_its_own_variable(self):
        analyzer = Analyzer()
        arena = RangeArena()
        ctx = create_function_context(analyzer, "test_fn")
        number_literal(analyzer, arena, ctx, LOC, "1", "", False)
        number_literal(analyzer, arena, ctx, LOC, "1", "", False)
        a, b = (r.expect_single() for r in ctx.expr_ret_stack)
        assert a != b
        assert analyzer.var(a).name != analyzer.var(b).name

    def test_failed_literal_pushes_nothing(self):
        analyzer = Analyzer()
        arena = RangeArena()
        ctx = create_function_context(analyzer, "test_fn")
        with pytest.raises(ExprErr):
            number_literal(analyzer, arena, ctx, LOC, TWO_256, "", False)
        assert ctx.expr_ret_stack == []

    def test_killed_context_ignores_literals(self):
        analyzer = Analyzer()
        arena = RangeArena()
        ctx = create_function_context(analyzer, "test_fn")
        kill(analyzer, ctx, LOC, KillKind.REVERT)
        size = len(analyzer.graph)

        number_literal(analyzer, arena, ctx, LOC, "1", "", False)
        bool_literal(analyzer, arena, ctx, LOC, True)
        string_literal(analyzer, arena, ctx, LOC, "a")

        assert len(analyzer.graph) == size
        assert ctx.expr_ret_stack == []
        assert list(ctx.local_vars) == []
