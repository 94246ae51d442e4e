"""Literal ingestion.

Each entry point turns one literal token into a ``Concrete``, wraps it in a
read-only variable owned by ``ctx`` and pushes ``SingleLiteral`` onto the
context's expression stack. Malformed or unrepresentable literals raise
``ExprErr`` with kind PARSE_ERROR; nothing is pushed in that case. A killed
or returned context ignores literals entirely.
"""

from __future__ import annotations

import binascii
import logging
from typing import Optional

from solrange.analyzer import Analyzer
from solrange.concrete import INT_MAX, UINT_MAX, Concrete
from solrange.context import Context, ContextVar
from solrange.errors import ExprErr, SourceLocation, parse_error
from solrange.expr_ret import SingleLiteral
from solrange.graph import Edge, EdgeKind
from solrange.range import Range, RangeArena
from solrange.types import VarType

logger = logging.getLogger(__name__)

_UNITS = {
    "wei": 1,
    "gwei": 10 ** 9,
    "ether": 10 ** 18,
    "seconds": 1,
    "minutes": 60,
    "hours": 3600,
    "days": 86400,
    "weeks": 604800,
}

# magnitude of the most negative int256
_NEG_LIMIT = INT_MAX + 1

# 10 ** 78 > UINT_MAX, so any non-zero mantissa with a larger exponent overflows
_MAX_EXPONENT = 77


def unit_to_uint(unit: Optional[str]) -> int:
    """Multiplier for a denomination suffix; unknown suffixes count as 1."""
    if unit is None:
        return 1
    return _UNITS.get(unit, 1)


def _parse_decimal(text: str, what: str, loc: SourceLocation) -> int:
    if not (text.isascii() and text.isdigit()):
        raise ExprErr(parse_error(f"invalid {what} '{text}'", loc))
    return int(text)


def concrete_number_from_str(loc: SourceLocation, integer: str, exponent: str,
                             negative: bool, unit: Optional[str] = None) -> Concrete:
    magnitude = _parse_decimal(integer, "integer", loc)
    if magnitude > UINT_MAX:
        raise ExprErr(parse_error(
            f"{integer} is too large, it does not fit into a uint256", loc))
    exp = _parse_decimal(exponent, "exponent", loc) if exponent else 0
    if magnitude:
        if exp > _MAX_EXPONENT:
            raise ExprErr(parse_error(
                f"{integer}e{exponent} is too large, it does not fit into a uint256", loc))
        magnitude *= 10 ** exp
    magnitude *= unit_to_uint(unit)
    if magnitude > UINT_MAX:
        raise ExprErr(parse_error(
            f"{integer}e{exponent or 0} is too large, it does not fit into a uint256", loc))

    if negative:
        if magnitude > _NEG_LIMIT:
            raise ExprErr(parse_error("Negative value cannot fit into int256", loc))
        return Concrete.int_(-magnitude)
    return Concrete.uint(magnitude)


def _push_literal(analyzer: Analyzer, ctx: Context, loc: SourceLocation,
                  value: Concrete) -> ContextVar:
    var = ContextVar(
        name="",
        display_name=str(value),
        ty=VarType.from_concrete(value),
        loc=loc,
        ctx=ctx.idx,
        range=Range.exact(value),
        is_literal=True,
    )
    analyzer.add_node(var)
    var.name = f"literal.{var.idx}"
    ctx.local_vars[var.name] = var.idx
    analyzer.add_edge(var.idx, ctx.idx, Edge(EdgeKind.VARIABLE))
    analyzer.bump_epoch()
    ctx.push_expr(SingleLiteral(var.idx))
    return var


def number_literal(analyzer: Analyzer, arena: RangeArena, ctx: Context,
                   loc: SourceLocation, integer: str, exponent: str,
                   negative: bool, unit: Optional[str] = None) -> None:
    """``123``, ``1e18``, ``5 ether``."""
    if ctx.is_terminal():
        return
    value = concrete_number_from_str(loc, integer, exponent, negative, unit)
    _push_literal(analyzer, ctx, loc, value)


def rational_number_literal(analyzer: Analyzer, arena: RangeArena, ctx: Context,
                            loc: SourceLocation, integer: str, fraction: str,
                            exponent: str, negative: bool,
                            unit: Optional[str] = None) -> None:
    """``1.0001e18``, ``1.5 ether``.

    The value must come out as an exact integer; a fraction with more
    precision than the exponent and unit provide is rejected, never rounded.
    """
    if ctx.is_terminal():
        return
    whole = _parse_decimal(integer or "0", "integer", loc)
    frac = _parse_decimal(fraction or "0", "fraction", loc)
    exp = _parse_decimal(exponent, "exponent", loc) if exponent else 0
    if (whole or frac) and exp > _MAX_EXPONENT + len(fraction):
        raise ExprErr(parse_error(
            f"{integer}.{fraction}e{exponent} is too large, it does not fit into a uint256", loc))
    denom = 10 ** len(fraction)
    scale = 10 ** exp * unit_to_uint(unit) if (whole or frac) else 0

    numerator = (whole * denom + frac) * scale
    if numerator % denom:
        raise ExprErr(parse_error(
            f"Invalid rational number: fraction part ({fraction}) has more precision "
            f"than exponent ({exp}) and unit provide ({unit_to_uint(unit)})", loc))
    magnitude = numerator // denom
    if magnitude > UINT_MAX:
        raise ExprErr(parse_error(
            f"{integer}.{fraction} is too large, it does not fit into a uint256", loc))

    if negative:
        if magnitude > _NEG_LIMIT:
            raise ExprErr(parse_error("Negative value cannot fit into int256", loc))
        value = Concrete.int_(-magnitude)
    else:
        value = Concrete.uint(magnitude)
    _push_literal(analyzer, ctx, loc, value)


def hex_num_literal(analyzer: Analyzer, arena: RangeArena, ctx: Context,
                    loc: SourceLocation, integer: str, negative: bool) -> None:
    """``0x7B``."""
    if ctx.is_terminal():
        return
    digits = integer[2:] if integer.lower().startswith("0x") else integer
    try:
        magnitude = int(digits, 16)
    except ValueError:
        raise ExprErr(parse_error(f"invalid hex number '{integer}'", loc))
    if magnitude > UINT_MAX:
        raise ExprErr(parse_error(
            f"{integer} is too large, it does not fit into a uint256", loc))

    if negative:
        # top bit of the 256-bit representation must be clear
        if magnitude > INT_MAX:
            raise ExprErr(parse_error("Negative value cannot fit into int256", loc))
        value = Concrete.int_(-magnitude)
    else:
        value = Concrete.uint(magnitude)
    _push_literal(analyzer, ctx, loc, value)


def hex_literals(analyzer: Analyzer, arena: RangeArena, ctx: Context,
                 loc: SourceLocation, hex_str: str) -> None:
    """``hex"7bff"``; adjacent hex string parts arrive concatenated."""
    if ctx.is_terminal():
        return
    try:
        data = binascii.unhexlify(hex_str)
    except (binascii.Error, ValueError):
        raise ExprErr(parse_error(f"invalid hex literal '{hex_str}'", loc))

    if len(data) <= 32:
        length = 0
        for i, byte in enumerate(data):
            if byte:
                length = i + 1
        value = Concrete.fixed_bytes(data, length)
    else:
        value = Concrete.dyn_bytes(data)
    _push_literal(analyzer, ctx, loc, value)


def address_literal(analyzer: Analyzer, arena: RangeArena, ctx: Context,
                    loc: SourceLocation, addr: str) -> None:
    if ctx.is_terminal():
        return
    digits = addr[2:] if addr.lower().startswith("0x") else addr
    if len(digits) != 40:
        raise ExprErr(parse_error(f"invalid address length for '{addr}'", loc))
    try:
        data = binascii.unhexlify(digits)
    except (binascii.Error, ValueError):
        raise ExprErr(parse_error(f"invalid address '{addr}'", loc))
    _push_literal(analyzer, ctx, loc, Concrete.address(data))


def string_literal(analyzer: Analyzer, arena: RangeArena, ctx: Context,
                   loc: SourceLocation, s: str) -> None:
    if ctx.is_terminal():
        return
    _push_literal(analyzer, ctx, loc, Concrete.string(s))


def bool_literal(analyzer: Analyzer, arena: RangeArena, ctx: Context,
                 loc: SourceLocation, b: bool) -> None:
    if ctx.is_terminal():
        return
    _push_literal(analyzer, ctx, loc, Concrete.bool_(b))
