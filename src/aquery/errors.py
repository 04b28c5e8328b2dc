"""Analysis errors — structured outcomes of the soft type check.

A semantic violation is a record, not an exception: the checker returns every
error it finds, in traversal order, and the caller decides what to do.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from .ast import Pos
from .types import tag_name


@dataclass
class AnalysisError:
    """Base for all analysis errors."""

    kind: ClassVar[str] = "error"

    pos: Pos

    def message(self) -> str:
        raise NotImplementedError

    def __str__(self) -> str:
        return (
            "error:"
            + str(self.pos.line)
            + ":"
            + str(self.pos.col)
            + ": ["
            + self.kind
            + "] "
            + self.message()
        )


@dataclass
class TypeMismatch(AnalysisError):
    kind: ClassVar[str] = "type-mismatch"

    expected: str
    found: str

    def message(self) -> str:
        return "expected " + tag_name(self.expected) + ", found " + tag_name(self.found)


@dataclass
class BadCall(AnalysisError):
    """Resolvable function called with arguments no signature accepts."""

    kind: ClassVar[str] = "bad-call"

    name: str

    def message(self) -> str:
        return "bad call to '" + self.name + "': no signature accepts these arguments"


@dataclass
class IllegalExpr(AnalysisError):
    kind: ClassVar[str] = "illegal-expression"

    text: str

    def message(self) -> str:
        return "illegal expression '" + self.text + "' in this context"


@dataclass
class AmbiguousColumnAccess(AnalysisError):
    kind: ClassVar[str] = "ambiguous-column"

    name: str

    def message(self) -> str:
        return "ambiguous column access '" + self.name + "'"


@dataclass
class UnknownCorrelationName(AnalysisError):
    kind: ClassVar[str] = "unknown-correlation"

    name: str

    def message(self) -> str:
        return "unknown correlation name in '" + self.name + "'"


@dataclass
class DuplicateTableName(AnalysisError):
    """Two table bindings that collide; `pos` is the first binding's."""

    kind: ClassVar[str] = "duplicate-table"

    first: str
    second: str
    second_pos: Pos

    def message(self) -> str:
        return (
            "duplicate table name: '"
            + self.first
            + "' and '"
            + self.second
            + "' (line "
            + str(self.second_pos.line)
            + " col "
            + str(self.second_pos.col)
            + ")"
        )
