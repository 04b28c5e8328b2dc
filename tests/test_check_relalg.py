"""Tests for relational-algebra checking and query scoping."""

from aquery.ast import LocalQuery, Pos
from aquery.check import TypeChecker, all_tables, check, check_col_accesses
from aquery.errors import (
    AmbiguousColumnAccess,
    DuplicateTableName,
    IllegalExpr,
    TypeMismatch,
    UnknownCorrelationName,
)
from aquery.functions import builtin_env
from aquery.types import TY_BOOLEAN, TY_NUMERIC, TY_STRING

from builders import (
    binop,
    call,
    col,
    group,
    ident,
    join,
    num,
    p,
    program,
    project,
    query,
    sort,
    table,
    text,
    true,
    where,
)


def _check_rel(r):
    return TypeChecker(builtin_env()).check_rel_alg(r)


# ── Per-operator constraints ──


def test_filter_requires_boolean():
    r = where(table("t"), binop("<", ident("c"), num(1)), num(1, line=3))
    assert _check_rel(r) == [TypeMismatch(Pos(3, 1), TY_BOOLEAN, TY_NUMERIC)]


def test_join_condition_requires_boolean():
    r = join(table("t"), table("u"), text("x", line=2))
    assert _check_rel(r) == [TypeMismatch(Pos(2, 1), TY_BOOLEAN, TY_STRING)]


def test_join_without_condition():
    assert _check_rel(join(table("t"), table("u"), kind="cross")) == []


def test_having_requires_boolean():
    r = group(table("t"), [ident("g")], [num(1, line=4)])
    assert _check_rel(r) == [TypeMismatch(Pos(4, 1), TY_BOOLEAN, TY_NUMERIC)]


def test_having_internal_errors_reported_twice():
    bad = binop("<", text("a", line=5), num(1))
    r = group(table("t"), [ident("g")], [bad])
    err = TypeMismatch(Pos(5, 1), TY_NUMERIC, TY_STRING)
    assert _check_rel(r) == [err, err]


def test_group_expressions_checked():
    r = group(table("t"), [binop("+", ident("g"), text("a", line=2))], [])
    assert _check_rel(r) == [TypeMismatch(Pos(2, 1), TY_NUMERIC, TY_STRING)]


def test_projection_internal_errors():
    r = project(table("t"), ident("a"), call("sqrt", text("x"), line=6))
    errors = _check_rel(r)
    assert len(errors) == 1
    assert errors[0].kind == "bad-call"
    assert errors[0].pos == Pos(6, 1)


def test_sort_keys_must_be_columns():
    r = sort(table("t"), binop("+", ident("col1"), ident("col2"), line=2))
    assert _check_rel(r) == [IllegalExpr(Pos(2, 1), "col1 + col2")]


def test_sort_keys_plain_and_qualified_ok():
    r = sort(table("t"), col("t", "col1"), ident("col1"))
    assert _check_rel(r) == []


def test_parent_errors_precede_child_errors():
    inner = where(table("t"), num(1, line=2))
    outer = where(inner, num(2, line=1))
    assert _check_rel(outer) == [
        TypeMismatch(Pos(1, 1), TY_BOOLEAN, TY_NUMERIC),
        TypeMismatch(Pos(2, 1), TY_BOOLEAN, TY_NUMERIC),
    ]


# ── Table collection and duplicates ──


def test_all_tables_left_to_right():
    r = project(join(where(table("a"), true()), join(table("b"), table("c"))), ident("x"))
    assert [t.name for t in all_tables(r)] == ["a", "b", "c"]


def test_same_alias_twice_is_one_duplicate():
    r = join(table("T", "A", line=1), table("T", "A", line=2))
    assert _check_rel(r) == [DuplicateTableName(Pos(1, 1), "T as A", "T as A", Pos(2, 1))]


def test_same_table_different_aliases_ok():
    assert _check_rel(join(table("T", "A"), table("T", "B"))) == []


def test_same_table_unaliased_twice():
    r = join(table("T", line=1), table("T", line=2))
    assert _check_rel(r) == [DuplicateTableName(Pos(1, 1), "T", "T", Pos(2, 1))]


def test_different_tables_same_alias():
    r = join(table("T", "A", line=1), table("U", "A", line=2))
    assert _check_rel(r) == [DuplicateTableName(Pos(1, 1), "T as A", "U as A", Pos(2, 1))]


def test_same_alias_repeated_after_other_table():
    r = join(join(table("T", "A", line=1), table("U", "A", line=2)), table("T", "A", line=3))
    assert _check_rel(r) == [
        DuplicateTableName(Pos(1, 1), "T as A", "U as A", Pos(2, 1)),
        DuplicateTableName(Pos(1, 1), "T as A", "T as A", Pos(3, 1)),
    ]


def test_duplicate_names_first_two_of_group():
    r = join(join(table("T", line=1), table("T", line=2)), table("T", line=3))
    assert _check_rel(r) == [DuplicateTableName(Pos(1, 1), "T", "T", Pos(2, 1))]


# ── Qualified column accesses ──


def test_column_access_resolved():
    r = where(join(table("T", "A"), table("U")), binop("=", col("A", "c"), col("U", "d")))
    assert _check_rel(r) == []


def test_column_access_unknown_correlation_name():
    r = where(table("T"), binop("=", col("B", "c", line=3), num(1)))
    assert _check_rel(r) == [UnknownCorrelationName(Pos(3, 1), "B.c")]


def test_aliased_table_not_addressable_by_name():
    r = project(table("T", "A"), col("T", "c", line=2))
    assert _check_rel(r) == [UnknownCorrelationName(Pos(2, 1), "T.c")]


def test_column_access_ambiguous():
    r = project(join(table("A", line=1), table("T", "A", line=2)), col("A", "c", line=3))
    assert _check_rel(r) == [AmbiguousColumnAccess(Pos(3, 1), "A.c")]


def test_column_access_deduplicated():
    r = where(project(table("T"), col("X", "c", line=2)), binop("=", col("X", "c", line=5), num(1)))
    # the filter is visited before its input
    assert _check_rel(r) == [UnknownCorrelationName(Pos(5, 1), "X.c")]


def test_column_access_found_deep_in_tree():
    inner = where(table("T"), binop("=", col("Z", "c", line=4), num(1)))
    r = sort(project(inner, ident("c")), ident("c"))
    assert _check_rel(r) == [UnknownCorrelationName(Pos(4, 1), "Z.c")]


def test_check_col_accesses_directly():
    accesses = [col("A", "x", line=1), col("B", "y", line=2), col("C", "z", line=3)]
    assert check_col_accesses(["A", "B", "B"], accesses) == [
        AmbiguousColumnAccess(Pos(2, 1), "B.y"),
        UnknownCorrelationName(Pos(3, 1), "C.z"),
    ]


def test_error_order_expressions_then_scope():
    r = where(join(table("T", line=1), table("T", line=2)), num(1, line=3), binop("=", col("Q", "c", line=4), num(1)))
    errors = _check_rel(r)
    assert [e.kind for e in errors] == ["type-mismatch", "duplicate-table", "unknown-correlation"]


# ── Queries ──


def test_local_queries_checked_before_main():
    local = LocalQuery(p(), "tmp", [], where(table("t"), num(1, line=1)))
    q = query(where(table("tmp"), num(2, line=2)), local=[local])
    errors = check(program(q))
    assert errors == [
        TypeMismatch(Pos(1, 1), TY_BOOLEAN, TY_NUMERIC),
        TypeMismatch(Pos(2, 1), TY_BOOLEAN, TY_NUMERIC),
    ]


def test_scope_is_per_query_tree():
    # tables of a local query don't leak into the main query
    local = LocalQuery(p(), "tmp", [], project(table("T", "A"), col("A", "c")))
    q = query(project(table("tmp"), col("A", "c", line=7)), local=[local])
    assert check(program(q)) == [UnknownCorrelationName(Pos(7, 1), "A.c")]


def test_check_is_idempotent():
    r = where(
        join(table("T", "A", line=1), table("T", "A", line=2)),
        num(1),
        binop("=", col("B", "c"), text("a")),
    )
    prog = program(query(sort(r, binop("*", ident("a"), ident("b")))))
    first = check(prog)
    second = check(prog)
    assert first == second
    assert [str(e) for e in first] == [str(e) for e in second]
    assert len(first) == 4
