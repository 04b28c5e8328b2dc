"""AQuery AST — node definitions produced by the parser and read by the checker.

The three families (expressions, relational-algebra operators, top-level
constructs) are closed: every pass dispatches over them with isinstance and
treats anything else as a programming error.
"""

from __future__ import annotations

from dataclasses import dataclass


# ============================================================
# POSITION
# ============================================================


@dataclass
class Pos:
    """Source position, 1-indexed."""

    line: int
    col: int


NO_POS: Pos = Pos(0, 0)


# ============================================================
# OPERATORS
# ============================================================

OP_AND: str = "and"
OP_OR: str = "or"
OP_LT: str = "<"
OP_LE: str = "<="
OP_GT: str = ">"
OP_GE: str = ">="
OP_EQ: str = "="
OP_NEQ: str = "!="
OP_PLUS: str = "+"
OP_MINUS: str = "-"
OP_TIMES: str = "*"
OP_DIV: str = "/"
OP_EXP: str = "^"

LOGICAL_OPS: tuple[str, ...] = (OP_AND, OP_OR)
ORDERING_OPS: tuple[str, ...] = (OP_LT, OP_LE, OP_GT, OP_GE)
EQUALITY_OPS: tuple[str, ...] = (OP_EQ, OP_NEQ)
ARITH_OPS: tuple[str, ...] = (OP_PLUS, OP_MINUS, OP_TIMES, OP_DIV, OP_EXP)
BINARY_OPS: tuple[str, ...] = LOGICAL_OPS + ORDERING_OPS + EQUALITY_OPS + ARITH_OPS

OP_NOT: str = "not"
OP_NEG: str = "-"
UNARY_OPS: tuple[str, ...] = (OP_NOT, OP_NEG)


# ============================================================
# EXPRESSIONS
# ============================================================


@dataclass
class Expr:
    """Base for all expressions."""

    pos: Pos


@dataclass
class BinExpr(Expr):
    """left op right."""

    op: str
    left: Expr
    right: Expr


@dataclass
class UnExpr(Expr):
    """not x, -x."""

    op: str
    operand: Expr


@dataclass
class FunCall(Expr):
    """f(args...)."""

    name: str
    args: list[Expr]


@dataclass
class ArrayIndex(Expr):
    """array[index]."""

    array: Expr
    index: Expr


@dataclass
class When:
    """when cond then result."""

    pos: Pos
    cond: Expr
    then: Expr


@dataclass
class Case(Expr):
    """case [cond] when ... then ... [else ...] end."""

    cond: Expr | None
    when: list[When]
    otherwise: Expr | None


@dataclass
class Lit(Expr):
    """Base for literals."""


@dataclass
class IntLit(Lit):
    value: int


@dataclass
class FloatLit(Lit):
    value: float


@dataclass
class StringLit(Lit):
    value: str


@dataclass
class BoolLit(Lit):
    value: bool


@dataclass
class DateLit(Lit):
    """Date literal, kept as written."""

    value: str


@dataclass
class TimestampLit(Lit):
    """Timestamp literal, kept as written."""

    value: str


@dataclass
class Id(Expr):
    """Bare identifier: a column, a local or a UDF parameter."""

    name: str


@dataclass
class ColumnAccess(Expr):
    """Qualified column access t.c."""

    table: str
    column: str


@dataclass
class WildCard(Expr):
    """*."""


@dataclass
class RowId(Expr):
    """ROWID pseudo-column."""


@dataclass
class Each(Expr):
    """Apply-to-each wrapper around an expression."""

    expr: Expr


def expr_children(expr: Expr) -> list[Expr]:
    """Direct sub-expressions of `expr`, in source order."""
    if isinstance(expr, BinExpr):
        return [expr.left, expr.right]
    if isinstance(expr, UnExpr):
        return [expr.operand]
    if isinstance(expr, FunCall):
        return list(expr.args)
    if isinstance(expr, ArrayIndex):
        return [expr.array, expr.index]
    if isinstance(expr, Case):
        result: list[Expr] = []
        if expr.cond is not None:
            result.append(expr.cond)
        for w in expr.when:
            result.append(w.cond)
            result.append(w.then)
        if expr.otherwise is not None:
            result.append(expr.otherwise)
        return result
    if isinstance(expr, Each):
        return [expr.expr]
    if isinstance(expr, (Lit, Id, ColumnAccess, WildCard, RowId)):
        return []
    raise TypeError("unhandled expression type: " + type(expr).__name__)


# ============================================================
# RELATIONAL ALGEBRA
# ============================================================


@dataclass
class SortKey:
    """asc/desc key in an ordering clause."""

    direction: str
    expr: Expr


@dataclass
class Projection:
    """Projected expression with optional output name."""

    expr: Expr
    alias: str | None


@dataclass
class RelAlg:
    """Base for all relational-algebra operators."""

    pos: Pos


@dataclass
class Table(RelAlg):
    """Table scan, optionally bound to a correlation name."""

    name: str
    alias: str | None


@dataclass
class Project(RelAlg):
    src: RelAlg
    items: list[Projection]


@dataclass
class Filter(RelAlg):
    src: RelAlg
    preds: list[Expr]


@dataclass
class GroupBy(RelAlg):
    src: RelAlg
    groups: list[Expr]
    having: list[Expr]


@dataclass
class Join(RelAlg):
    """kind is e.g. inner, cross, left, full; cond may be empty."""

    kind: str
    left: RelAlg
    right: RelAlg
    cond: list[Expr]


@dataclass
class SortBy(RelAlg):
    src: RelAlg
    order: list[SortKey]


def rel_exprs(r: RelAlg) -> list[Expr]:
    """Expressions carried directly by an operator node."""
    if isinstance(r, Table):
        return []
    if isinstance(r, Project):
        return [p.expr for p in r.items]
    if isinstance(r, Filter):
        return list(r.preds)
    if isinstance(r, GroupBy):
        return list(r.groups) + list(r.having)
    if isinstance(r, Join):
        return list(r.cond)
    if isinstance(r, SortBy):
        return [k.expr for k in r.order]
    raise TypeError("unhandled relational operator: " + type(r).__name__)


def rel_children(r: RelAlg) -> list[RelAlg]:
    """Direct operator inputs of `r`."""
    if isinstance(r, Table):
        return []
    if isinstance(r, (Project, Filter, GroupBy, SortBy)):
        return [r.src]
    if isinstance(r, Join):
        return [r.left, r.right]
    raise TypeError("unhandled relational operator: " + type(r).__name__)


# ============================================================
# TOP-LEVEL CONSTRUCTS
# ============================================================


@dataclass
class TopLevel:
    """Base for all top-level program constructs."""

    pos: Pos


@dataclass
class LocalQuery:
    """WITH name(columns) AS (query)."""

    pos: Pos
    name: str
    columns: list[str]
    query: RelAlg


@dataclass
class Query(TopLevel):
    local: list[LocalQuery]
    main: RelAlg


@dataclass
class ColumnUpdate:
    """SET column = value."""

    column: str
    value: Expr


@dataclass
class Update(TopLevel):
    table: str
    updates: list[ColumnUpdate]
    order: list[SortKey]
    where: list[Expr]
    groups: list[Expr]
    having: list[Expr]


@dataclass
class Delete(TopLevel):
    """DELETE columns FROM t, or DELETE FROM t WHERE ... when `where` is set."""

    table: str
    columns: list[str]
    where: list[Expr] | None
    order: list[SortKey]
    groups: list[Expr]
    having: list[Expr]


@dataclass
class ColumnDef:
    name: str
    type_name: str


@dataclass
class Create(TopLevel):
    """CREATE TABLE from a schema or from a query."""

    table: str
    source: list[ColumnDef] | Query


@dataclass
class Insert(TopLevel):
    """INSERT INTO t [order] [columns] VALUES (...) or from a query."""

    table: str
    order: list[SortKey]
    columns: list[str]
    source: list[Expr] | Query


@dataclass
class Assignment:
    """name := expr inside a function body."""

    pos: Pos
    name: str
    expr: Expr


@dataclass
class UDF(TopLevel):
    name: str
    params: list[str]
    body: list[Expr | Assignment]


@dataclass
class Verbatim(TopLevel):
    """Target-language code passed through untouched."""

    code: str


@dataclass
class Program:
    """Top-level program — constructs in source order."""

    items: list[TopLevel]


def modification_exprs(q: Update | Delete) -> list[Expr]:
    """Every expression carried by an update or delete."""
    result: list[Expr] = []
    if isinstance(q, Update):
        for u in q.updates:
            result.append(u.value)
        for k in q.order:
            result.append(k.expr)
        result.extend(q.where)
    else:
        for k in q.order:
            result.append(k.expr)
        if q.where is not None:
            result.extend(q.where)
    result.extend(q.groups)
    result.extend(q.having)
    return result
