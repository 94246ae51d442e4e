"""Structured error objects for the solrange analyzer.

Every error is machine-readable. Errors raised while evaluating one
expression are wrapped in ``ExprErr`` so the caller can record them and keep
going with sibling expressions; ``UnimplementedCombination`` is the one
failure that is never recorded and always aborts the run.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class ErrorKind(Enum):
    PARSE_ERROR = "parse_error"
    BAD_RANGE = "bad_range"
    GRAPH_ERROR = "graph_error"
    INTERNAL_ERROR = "internal_error"


@dataclass(frozen=True)
class SourceLocation:
    """A source span: byte offsets into ``file``."""
    start: int = 0
    end: int = 0
    file: str = "<stdin>"

    def __str__(self) -> str:
        return f"{self.file}:{self.start}-{self.end}"


@dataclass
class AnalysisError:
    kind: ErrorKind
    message: str
    location: Optional[SourceLocation] = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "kind": self.kind.value,
            "message": self.message,
        }
        if self.location:
            d["location"] = {
                "file": self.location.file,
                "start": self.location.start,
                "end": self.location.end,
            }
        if self.details:
            d["details"] = self.details
        return d

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def __str__(self) -> str:
        loc = f" at {self.location}" if self.location else ""
        return f"[{self.kind.value}]{loc}: {self.message}"


def parse_error(
    message: str,
    location: Optional[SourceLocation] = None,
) -> AnalysisError:
    return AnalysisError(
        kind=ErrorKind.PARSE_ERROR,
        message=message,
        location=location,
    )


def mismatched_struct(
    field_name: str,
    location: Optional[SourceLocation] = None,
) -> AnalysisError:
    return AnalysisError(
        kind=ErrorKind.PARSE_ERROR,
        message=f"Struct types mismatched - could not find field: {field_name}",
        location=location,
        details={"field": field_name},
    )


def bad_range(
    message: str,
    location: Optional[SourceLocation] = None,
) -> AnalysisError:
    return AnalysisError(
        kind=ErrorKind.BAD_RANGE,
        message=message,
        location=location,
    )


def graph_error(
    message: str,
    location: Optional[SourceLocation] = None,
) -> AnalysisError:
    return AnalysisError(
        kind=ErrorKind.GRAPH_ERROR,
        message=message,
        location=location,
    )


def detached_variable(
    variable: str,
    node_idx: int,
    ctx_path: str,
    location: Optional[SourceLocation] = None,
) -> AnalysisError:
    return AnalysisError(
        kind=ErrorKind.GRAPH_ERROR,
        message=f"Detached variable: no context for variable: {variable}, node idx: {node_idx}",
        location=location,
        details={
            "variable": variable,
            "node_idx": node_idx,
            "current_context": ctx_path,
        },
    )


class ExprErr(Exception):
    """Exception wrapping a single AnalysisError."""

    def __init__(self, error: AnalysisError):
        self.error = error
        super().__init__(str(error))

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind

    def to_json(self, indent: int = 2) -> str:
        return self.error.to_json(indent=indent)


class UnimplementedCombination(Exception):
    """An ExprRet pairing the assignment engine has no rule for."""

    def __init__(self, lhs: Any, rhs: Any):
        self.lhs = lhs
        self.rhs = rhs
        super().__init__(f"unimplemented assignment combination: {lhs!r} = {rhs!r}")
