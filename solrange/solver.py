"""Range feasibility via z3.

A concretized range ``[lo, hi]`` minus its excluded values is feasible when
some integer lies in it.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

import z3

from solrange.concrete import Concrete
from solrange.range import Range, RangeArena

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 2000


def bounds_are_satisfiable(lo: Concrete, hi: Concrete,
                           exclusions: Iterable[Concrete] = (),
                           timeout_ms: int = DEFAULT_TIMEOUT_MS) -> Optional[bool]:
    """True if an integer in ``[lo, hi]`` avoids every exclusion.

    Returns None for values with no integer ordering or when z3 gives up.
    """
    lo_v, hi_v = lo.int_val(), hi.int_val()
    if lo_v is None or hi_v is None:
        return None

    x = z3.Int("x")
    solver = z3.Solver()
    solver.set("timeout", timeout_ms)
    solver.add(x >= z3.IntVal(lo_v), x <= z3.IntVal(hi_v))
    for excluded in exclusions:
        v = excluded.int_val()
        if v is not None:
            solver.add(x != z3.IntVal(v))

    result = solver.check()
    if result == z3.sat:
        return True
    if result == z3.unsat:
        return False
    logger.debug("z3 returned unknown for [%s, %s]", lo, hi)
    return None


def range_is_satisfiable(ev: Any, arena: RangeArena, rng: Range,
                         timeout_ms: int = DEFAULT_TIMEOUT_MS) -> Optional[bool]:
    """Concretize ``rng`` and check it; None when it does not concretize."""
    bounds = rng.concretize(ev, arena)
    if bounds is None:
        return None
    lo, hi = bounds
    return bounds_are_satisfiable(lo, hi, rng.exclusions, timeout_ms)
