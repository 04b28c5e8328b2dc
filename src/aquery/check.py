"""AQuery soft type checker — catches the errors already knowable at translation time.

Most values only get a concrete type at runtime, so the check is "soft": it
infers tags where it can, lets Unknown through everywhere, and reports only
violations that are certain. UDFs are checked for call arity only.
"""

from __future__ import annotations

from .ast import (
    ARITH_OPS,
    EQUALITY_OPS,
    LOGICAL_OPS,
    OP_NEG,
    OP_NOT,
    ORDERING_OPS,
    ArrayIndex,
    Assignment,
    BinExpr,
    BoolLit,
    Case,
    ColumnAccess,
    Create,
    DateLit,
    Delete,
    Each,
    Expr,
    Filter,
    FloatLit,
    FunCall,
    GroupBy,
    Id,
    Insert,
    IntLit,
    Join,
    Lit,
    Program,
    Query,
    RelAlg,
    RowId,
    SortBy,
    SortKey,
    StringLit,
    Table,
    TimestampLit,
    TopLevel,
    UDF,
    UnExpr,
    Update,
    Verbatim,
    WildCard,
    expr_children,
    modification_exprs,
    rel_children,
    rel_exprs,
)
from .emit import render_expr, render_table
from .errors import (
    AmbiguousColumnAccess,
    AnalysisError,
    BadCall,
    DuplicateTableName,
    IllegalExpr,
    TypeMismatch,
    UnknownCorrelationName,
)
from .functions import FunctionEnv, build_env
from .types import (
    BOOL,
    NUM,
    NUM_AND_BOOL,
    TY_BOOLEAN,
    TY_NUMERIC,
    TY_STRING,
    TY_UNIT,
    TY_UNKNOWN,
    tag_matches,
)


# ============================================================
# CHECKER
# ============================================================


class TypeChecker:
    """Soft checker over a fixed, read-only function environment.

    Every method returns its errors; the checker holds no state besides `env`,
    so checking the same AST twice yields the same list.
    """

    def __init__(self, env: FunctionEnv) -> None:
        self.env: FunctionEnv = env

    # ── Expressions ───────────────────────────────────────────

    def check_tag(self, expected: tuple[str, ...], expr: Expr) -> list[AnalysisError]:
        """Errors inside `expr`, then a mismatch if its tag fails `expected`."""
        tag, errors = self.check_expr(expr)
        if not tag_matches(expected, tag):
            # report the first option only
            errors.append(TypeMismatch(expr.pos, expected[0], tag))
        return errors

    def check_expr(self, expr: Expr) -> tuple[str, list[AnalysisError]]:
        """Infer the tag of `expr` and collect the errors inside it."""
        if isinstance(expr, BinExpr):
            return self.check_bin_expr(expr)
        if isinstance(expr, UnExpr):
            return self.check_unary_expr(expr)
        if isinstance(expr, FunCall):
            return self.check_call(expr)
        if isinstance(expr, ArrayIndex):
            return self.check_array_index(expr)
        if isinstance(expr, Case):
            return self.check_case(expr)
        if isinstance(expr, Lit):
            return self.check_lit(expr), []
        if isinstance(expr, RowId):
            return TY_NUMERIC, []
        if isinstance(expr, (Id, ColumnAccess, WildCard)):
            return TY_UNKNOWN, []
        if isinstance(expr, Each):
            return self.check_expr(expr.expr)
        raise TypeError("unhandled expression type: " + type(expr).__name__)

    def check_bin_expr(self, expr: BinExpr) -> tuple[str, list[AnalysisError]]:
        # and/or are boolean only; min/max cover the numeric case
        if expr.op in LOGICAL_OPS:
            return TY_BOOLEAN, self.check_tag(BOOL, expr.left) + self.check_tag(BOOL, expr.right)
        if expr.op in ORDERING_OPS:
            return TY_BOOLEAN, self.check_tag(NUM, expr.left) + self.check_tag(NUM, expr.right)
        if expr.op in EQUALITY_OPS:
            # left decides, right must agree
            left_tag, errors = self.check_expr(expr.left)
            return TY_BOOLEAN, errors + self.check_tag((left_tag,), expr.right)
        if expr.op in ARITH_OPS:
            return TY_NUMERIC, self.check_tag(NUM_AND_BOOL, expr.left) + self.check_tag(NUM_AND_BOOL, expr.right)
        raise ValueError("unknown binary operator: " + expr.op)

    def check_unary_expr(self, expr: UnExpr) -> tuple[str, list[AnalysisError]]:
        if expr.op == OP_NOT:
            return TY_BOOLEAN, self.check_tag(BOOL, expr.operand)
        if expr.op == OP_NEG:
            return TY_NUMERIC, self.check_tag(NUM, expr.operand)
        raise ValueError("unknown unary operator: " + expr.op)

    def check_call(self, expr: FunCall) -> tuple[str, list[AnalysisError]]:
        """Builtins: argument tags against the overload table. UDFs: arity only.

        A name the environment doesn't know is not an error; its arguments
        are still checked.
        """
        arg_tags: list[str] = []
        arg_errors: list[AnalysisError] = []
        for a in expr.args:
            tag, errs = self.check_expr(a)
            arg_tags.append(tag)
            arg_errors.extend(errs)
        signature = self.env.lookup(expr.name)
        if signature is None:
            return TY_UNKNOWN, arg_errors
        ret = signature.apply(arg_tags)
        if ret is None:
            bad: list[AnalysisError] = [BadCall(expr.pos, expr.name)]
            return TY_UNKNOWN, bad + arg_errors
        return ret, arg_errors

    def check_array_index(self, expr: ArrayIndex) -> tuple[str, list[AnalysisError]]:
        # the index is never validated, neither its type nor its range
        _, errors = self.check_expr(expr.array)
        return TY_UNKNOWN, errors

    def check_case(self, expr: Case) -> tuple[str, list[AnalysisError]]:
        """Conditions match the discriminant (boolean without one); results match the first."""
        cond_tag = TY_BOOLEAN
        errors: list[AnalysisError] = []
        if expr.cond is not None:
            cond_tag, errors = self.check_expr(expr.cond)
        for w in expr.when:
            errors.extend(self.check_tag((cond_tag,), w.cond))
        if len(expr.when) == 0:
            # the parser never produces this
            result_tag = TY_UNKNOWN
            errors.append(TypeMismatch(expr.pos, TY_BOOLEAN, TY_UNIT))
        else:
            result_tag, then_errors = self.check_expr(expr.when[0].then)
            errors.extend(then_errors)
            for w in expr.when[1:]:
                errors.extend(self.check_tag((result_tag,), w.then))
        if expr.otherwise is not None:
            errors.extend(self.check_tag((result_tag,), expr.otherwise))
        return result_tag, errors

    def check_lit(self, expr: Lit) -> str:
        # dates and timestamps compare as numbers at runtime
        if isinstance(expr, (IntLit, FloatLit, DateLit, TimestampLit)):
            return TY_NUMERIC
        if isinstance(expr, StringLit):
            return TY_STRING
        if isinstance(expr, BoolLit):
            return TY_BOOLEAN
        raise TypeError("unhandled literal type: " + type(expr).__name__)

    def check_prohibited(self, expr: Expr) -> list[AnalysisError]:
        """Wildcards, column accesses and ROWID only make sense inside a query."""
        errors: list[AnalysisError] = []
        if isinstance(expr, (WildCard, ColumnAccess, RowId)):
            errors.append(IllegalExpr(expr.pos, render_expr(expr)))
        for child in expr_children(expr):
            errors.extend(self.check_prohibited(child))
        return errors

    # ── Relational algebra ────────────────────────────────────

    def check_sort_exprs(self, exprs: list[Expr]) -> list[AnalysisError]:
        """Sort keys must be plain columns or t.c accesses."""
        errors: list[AnalysisError] = []
        for e in exprs:
            if not isinstance(e, (Id, ColumnAccess)):
                errors.append(IllegalExpr(e.pos, render_expr(e)))
        return errors

    def check_rel_exprs(self, r: RelAlg) -> list[AnalysisError]:
        """Expression errors for `r`, then for its inputs, recursively."""
        exprs = rel_exprs(r)
        errors: list[AnalysisError] = []
        if isinstance(r, (Filter, Join)):
            for e in exprs:
                errors.extend(self.check_tag(BOOL, e))
        elif isinstance(r, GroupBy):
            # having is checked a second time below along with the groups
            for e in r.having:
                errors.extend(self.check_tag(BOOL, e))
            for e in exprs:
                errors.extend(self.check_expr(e)[1])
        elif isinstance(r, SortBy):
            errors.extend(self.check_sort_exprs(exprs))
        else:
            for e in exprs:
                errors.extend(self.check_expr(e)[1])
        for child in rel_children(r):
            errors.extend(self.check_rel_exprs(child))
        return errors

    def check_rel_alg(self, r: RelAlg) -> list[AnalysisError]:
        """Check a query tree: expressions, duplicate tables, qualified column accesses."""
        errors = self.check_rel_exprs(r)
        tables = all_tables(r)
        aliased: list[Table] = []
        for t in tables:
            if t.alias is not None:
                aliased.append(t)
        by_alias = _group_by_alias(aliased)
        errors.extend(_check_duplicates(by_alias))
        # same name under different aliases is fine; a pair already reported by alias is skipped
        reported: set[tuple[int, int]] = set()
        for group in by_alias:
            if len(group) > 1:
                reported.add(_pair_key(group))
        identity_groups: list[list[Table]] = []
        for group in _group_by_identity(tables):
            if len(group) > 1 and _pair_key(group) in reported:
                continue
            identity_groups.append(group)
        errors.extend(_check_duplicates(identity_groups))
        # an aliased table can only be referred to by its alias
        names: list[str] = []
        for t in tables:
            names.append(t.alias if t.alias is not None else t.name)
        errors.extend(check_col_accesses(names, all_col_accesses_rel(r)))
        return errors

    # ── Top-level constructs ──────────────────────────────────

    def check_query(self, q: Query) -> list[AnalysisError]:
        errors: list[AnalysisError] = []
        for lq in q.local:
            errors.extend(self.check_rel_alg(lq.query))
        errors.extend(self.check_rel_alg(q.main))
        return errors

    def check_modification(self, q: Update | Delete) -> list[AnalysisError]:
        """Update and delete: same clause rules as queries, scoped to one table."""
        errors: list[AnalysisError] = []
        if isinstance(q, Update):
            for u in q.updates:
                errors.extend(self.check_expr(u.value)[1])
            errors.extend(self.check_sort_exprs(_sort_exprs(q.order)))
            for e in q.where:
                errors.extend(self.check_tag(BOOL, e))
        else:
            if q.where is not None:
                for e in q.where:
                    errors.extend(self.check_tag(BOOL, e))
            errors.extend(self.check_sort_exprs(_sort_exprs(q.order)))
        for e in q.groups:
            errors.extend(self.check_expr(e)[1])
        for e in q.having:
            errors.extend(self.check_tag(BOOL, e))
        errors.extend(check_col_accesses([q.table], _distinct_col_accesses(modification_exprs(q))))
        return errors

    def check_table_modification(self, m: Create | Insert) -> list[AnalysisError]:
        """Create and insert. Inserted values are not checked against column types."""
        if isinstance(m, Create):
            if isinstance(m.source, Query):
                return self.check_query(m.source)
            return []
        if isinstance(m.source, Query):
            return self.check_query(m.source) + self.check_sort_exprs(_sort_exprs(m.order))
        errors: list[AnalysisError] = []
        for e in m.source:
            errors.extend(self.check_expr(e)[1])
        errors.extend(self.check_sort_exprs(_sort_exprs(m.order)))
        for e in m.source:
            errors.extend(self.check_prohibited(e))
        return errors

    def check_udf(self, f: UDF) -> list[AnalysisError]:
        errors: list[AnalysisError] = []
        for stmt in f.body:
            e = stmt.expr if isinstance(stmt, Assignment) else stmt
            errors.extend(self.check_expr(e)[1])
            errors.extend(self.check_prohibited(e))
        return errors

    def check_top_level(self, item: TopLevel) -> list[AnalysisError]:
        if isinstance(item, Query):
            return self.check_query(item)
        if isinstance(item, (Update, Delete)):
            return self.check_modification(item)
        if isinstance(item, (Create, Insert)):
            return self.check_table_modification(item)
        if isinstance(item, UDF):
            return self.check_udf(item)
        if isinstance(item, Verbatim):
            return []
        raise TypeError("unhandled top-level construct: " + type(item).__name__)

    def check_program(self, program: Program) -> list[AnalysisError]:
        errors: list[AnalysisError] = []
        for item in program.items:
            errors.extend(self.check_top_level(item))
        return errors


# ============================================================
# SCOPE HELPERS
# ============================================================


def all_tables(r: RelAlg) -> list[Table]:
    """Table scans reachable from `r`, left to right."""
    if isinstance(r, Table):
        return [r]
    result: list[Table] = []
    for child in rel_children(r):
        result.extend(all_tables(child))
    return result


def all_col_accesses(expr: Expr) -> list[ColumnAccess]:
    """Qualified column accesses in `expr`, in traversal order (repeats kept)."""
    if isinstance(expr, ColumnAccess):
        return [expr]
    result: list[ColumnAccess] = []
    for child in expr_children(expr):
        result.extend(all_col_accesses(child))
    return result


def all_col_accesses_rel(r: RelAlg) -> list[ColumnAccess]:
    """Distinct qualified column accesses anywhere in the tree rooted at `r`."""
    return _distinct_col_accesses(_tree_exprs(r))


def check_col_accesses(names: list[str], accesses: list[ColumnAccess]) -> list[AnalysisError]:
    """Resolve each t.c against the names in scope."""
    counts: dict[str, int] = {}
    for n in names:
        counts[n] = counts.get(n, 0) + 1
    errors: list[AnalysisError] = []
    for ca in accesses:
        qualified = ca.table + "." + ca.column
        if counts.get(ca.table, 0) > 1:
            errors.append(AmbiguousColumnAccess(ca.pos, qualified))
        elif ca.table not in counts:
            errors.append(UnknownCorrelationName(ca.pos, qualified))
    return errors


def _tree_exprs(r: RelAlg) -> list[Expr]:
    result = list(rel_exprs(r))
    for child in rel_children(r):
        result.extend(_tree_exprs(child))
    return result


def _distinct_col_accesses(exprs: list[Expr]) -> list[ColumnAccess]:
    # first occurrence of each t.c wins
    seen: dict[tuple[str, str], ColumnAccess] = {}
    for e in exprs:
        for ca in all_col_accesses(e):
            key = (ca.table, ca.column)
            if key not in seen:
                seen[key] = ca
    return list(seen.values())


def _sort_exprs(order: list[SortKey]) -> list[Expr]:
    return [k.expr for k in order]


def _group_by_alias(tables: list[Table]) -> list[list[Table]]:
    groups: dict[str | None, list[Table]] = {}
    for t in tables:
        groups.setdefault(t.alias, []).append(t)
    return list(groups.values())


def _group_by_identity(tables: list[Table]) -> list[list[Table]]:
    groups: dict[tuple[str, str | None], list[Table]] = {}
    for t in tables:
        groups.setdefault((t.name, t.alias), []).append(t)
    return list(groups.values())


def _pair_key(group: list[Table]) -> tuple[int, int]:
    # node identity of the first two members, the pair a duplicate error names
    return (id(group[0]), id(group[1]))


def _check_duplicates(groups: list[list[Table]]) -> list[AnalysisError]:
    """One error per group with more than one member, naming its first two."""
    errors: list[AnalysisError] = []
    for group in groups:
        if len(group) > 1:
            t1 = group[0]
            t2 = group[1]
            errors.append(DuplicateTableName(t1.pos, render_table(t1), render_table(t2), t2.pos))
    return errors


# ============================================================
# PUBLIC API
# ============================================================


def check(program: Program, env: FunctionEnv | None = None) -> list[AnalysisError]:
    """Type-check a parsed program. Returns a list of errors (empty = ok).

    UDF arities are registered on top of `env` (the builtins by default)
    before anything is checked.
    """
    checker = TypeChecker(build_env(program, env))
    return checker.check_program(program)
