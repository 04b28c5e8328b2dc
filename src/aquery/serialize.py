"""Conversion between JSON-compatible dicts and AST nodes / analysis errors.

Nodes are dicts tagged with "_type"; positions are optional [line, col] pairs
under "pos". A whole program is {"_type": "Program", "items": [...]} or a
bare list of top-level constructs.
"""

from __future__ import annotations

from .ast import (
    NO_POS,
    UDF,
    ArrayIndex,
    Assignment,
    BinExpr,
    BINARY_OPS,
    BoolLit,
    Case,
    ColumnAccess,
    ColumnDef,
    ColumnUpdate,
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
    LocalQuery,
    Pos,
    Program,
    Project,
    Projection,
    Query,
    RelAlg,
    RowId,
    SortBy,
    SortKey,
    StringLit,
    Table,
    TimestampLit,
    TopLevel,
    UNARY_OPS,
    UnExpr,
    Update,
    Verbatim,
    When,
    WildCard,
)
from .errors import (
    AmbiguousColumnAccess,
    AnalysisError,
    BadCall,
    DuplicateTableName,
    IllegalExpr,
    TypeMismatch,
    UnknownCorrelationName,
)


class AstFormatError(ValueError):
    """Serialized AST that doesn't describe a valid node."""

    def __init__(self, msg: str, path: str):
        self.msg: str = msg
        self.path: str = path
        super().__init__(msg + " at " + path)


# ============================================================
# FIELD ACCESS
# ============================================================


def _node(obj: object, path: str) -> dict[str, object]:
    if not isinstance(obj, dict):
        raise AstFormatError("expected an object", path)
    return obj


def _type_of(d: dict[str, object], path: str) -> str:
    t = d.get("_type")
    if not isinstance(t, str):
        raise AstFormatError("missing _type", path)
    return t


def _req(d: dict[str, object], key: str, path: str) -> object:
    if key not in d:
        raise AstFormatError("missing field '" + key + "'", path)
    return d[key]


def _str(d: dict[str, object], key: str, path: str) -> str:
    v = _req(d, key, path)
    if not isinstance(v, str):
        raise AstFormatError("field '" + key + "' must be a string", path)
    return v


def _opt_str(d: dict[str, object], key: str, path: str) -> str | None:
    v = d.get(key)
    if v is None:
        return None
    if not isinstance(v, str):
        raise AstFormatError("field '" + key + "' must be a string", path)
    return v


def _list(d: dict[str, object], key: str, path: str, required: bool = False) -> list[object]:
    if key not in d or d[key] is None:
        if required:
            raise AstFormatError("missing field '" + key + "'", path)
        return []
    v = d[key]
    if not isinstance(v, list):
        raise AstFormatError("field '" + key + "' must be a list", path)
    return v


def _str_list(d: dict[str, object], key: str, path: str) -> list[str]:
    result: list[str] = []
    for i, v in enumerate(_list(d, key, path)):
        if not isinstance(v, str):
            raise AstFormatError("expected a string", path + "." + key + "[" + str(i) + "]")
        result.append(v)
    return result


def _pos(d: dict[str, object], path: str) -> Pos:
    v = d.get("pos")
    if v is None:
        return NO_POS
    if (
        not isinstance(v, list)
        or len(v) != 2
        or not isinstance(v[0], int)
        or isinstance(v[0], bool)
        or not isinstance(v[1], int)
        or isinstance(v[1], bool)
    ):
        raise AstFormatError("pos must be [line, col]", path)
    return Pos(v[0], v[1])


def _exprs(d: dict[str, object], key: str, path: str, required: bool = False) -> list[Expr]:
    result: list[Expr] = []
    for i, v in enumerate(_list(d, key, path, required)):
        result.append(expr_from_dict(v, path + "." + key + "[" + str(i) + "]"))
    return result


def _opt_expr(d: dict[str, object], key: str, path: str) -> Expr | None:
    if d.get(key) is None:
        return None
    return expr_from_dict(d[key], path + "." + key)


def _order(d: dict[str, object], path: str) -> list[SortKey]:
    result: list[SortKey] = []
    for i, v in enumerate(_list(d, "order", path)):
        p = path + ".order[" + str(i) + "]"
        k = _node(v, p)
        direction = _opt_str(k, "dir", p)
        result.append(SortKey(direction if direction is not None else "asc", expr_from_dict(_req(k, "expr", p), p + ".expr")))
    return result


# ============================================================
# EXPRESSIONS
# ============================================================


def expr_from_dict(obj: object, path: str = "$") -> Expr:
    """Build an expression node from its dict form."""
    d = _node(obj, path)
    t = _type_of(d, path)
    pos = _pos(d, path)
    if t == "BinExpr":
        op = _str(d, "op", path)
        if op not in BINARY_OPS:
            raise AstFormatError("unknown binary operator '" + op + "'", path)
        left = expr_from_dict(_req(d, "left", path), path + ".left")
        right = expr_from_dict(_req(d, "right", path), path + ".right")
        return BinExpr(pos, op, left, right)
    if t == "UnExpr":
        op2 = _str(d, "op", path)
        if op2 not in UNARY_OPS:
            raise AstFormatError("unknown unary operator '" + op2 + "'", path)
        return UnExpr(pos, op2, expr_from_dict(_req(d, "operand", path), path + ".operand"))
    if t == "FunCall":
        return FunCall(pos, _str(d, "name", path), _exprs(d, "args", path))
    if t == "ArrayIndex":
        array = expr_from_dict(_req(d, "array", path), path + ".array")
        index = expr_from_dict(_req(d, "index", path), path + ".index")
        return ArrayIndex(pos, array, index)
    if t == "Case":
        when: list[When] = []
        for i, v in enumerate(_list(d, "when", path)):
            p = path + ".when[" + str(i) + "]"
            w = _node(v, p)
            cond = expr_from_dict(_req(w, "cond", p), p + ".cond")
            then = expr_from_dict(_req(w, "then", p), p + ".then")
            when.append(When(_pos(w, p), cond, then))
        return Case(pos, _opt_expr(d, "cond", path), when, _opt_expr(d, "else", path))
    if t == "IntLit":
        v2 = _req(d, "value", path)
        if not isinstance(v2, int) or isinstance(v2, bool):
            raise AstFormatError("IntLit value must be an integer", path)
        return IntLit(pos, v2)
    if t == "FloatLit":
        v3 = _req(d, "value", path)
        if not isinstance(v3, (int, float)) or isinstance(v3, bool):
            raise AstFormatError("FloatLit value must be a number", path)
        return FloatLit(pos, float(v3))
    if t == "StringLit":
        return StringLit(pos, _str(d, "value", path))
    if t == "BoolLit":
        v4 = _req(d, "value", path)
        if not isinstance(v4, bool):
            raise AstFormatError("BoolLit value must be a boolean", path)
        return BoolLit(pos, v4)
    if t == "DateLit":
        return DateLit(pos, _str(d, "value", path))
    if t == "TimestampLit":
        return TimestampLit(pos, _str(d, "value", path))
    if t == "Id":
        return Id(pos, _str(d, "name", path))
    if t == "ColumnAccess":
        return ColumnAccess(pos, _str(d, "table", path), _str(d, "column", path))
    if t == "WildCard":
        return WildCard(pos)
    if t == "RowId":
        return RowId(pos)
    if t == "Each":
        return Each(pos, expr_from_dict(_req(d, "expr", path), path + ".expr"))
    raise AstFormatError("unknown expression type '" + t + "'", path)


# ============================================================
# RELATIONAL ALGEBRA
# ============================================================


def rel_from_dict(obj: object, path: str = "$") -> RelAlg:
    """Build a relational-algebra operator from its dict form."""
    d = _node(obj, path)
    t = _type_of(d, path)
    pos = _pos(d, path)
    if t == "Table":
        return Table(pos, _str(d, "name", path), _opt_str(d, "alias", path))
    if t == "Join":
        left = rel_from_dict(_req(d, "left", path), path + ".left")
        right = rel_from_dict(_req(d, "right", path), path + ".right")
        kind = _opt_str(d, "kind", path)
        return Join(pos, kind if kind is not None else "inner", left, right, _exprs(d, "cond", path))
    src = rel_from_dict(_req(d, "src", path), path + ".src")
    if t == "Project":
        items: list[Projection] = []
        for i, v in enumerate(_list(d, "items", path, required=True)):
            p = path + ".items[" + str(i) + "]"
            item = _node(v, p)
            items.append(Projection(expr_from_dict(_req(item, "expr", p), p + ".expr"), _opt_str(item, "alias", p)))
        return Project(pos, src, items)
    if t == "Filter":
        return Filter(pos, src, _exprs(d, "preds", path, required=True))
    if t == "GroupBy":
        return GroupBy(pos, src, _exprs(d, "groups", path, required=True), _exprs(d, "having", path))
    if t == "SortBy":
        return SortBy(pos, src, _order(d, path))
    raise AstFormatError("unknown relational operator '" + t + "'", path)


# ============================================================
# TOP-LEVEL CONSTRUCTS
# ============================================================


def _query_from_dict(d: dict[str, object], pos: Pos, path: str) -> Query:
    local: list[LocalQuery] = []
    for i, v in enumerate(_list(d, "local", path)):
        p = path + ".local[" + str(i) + "]"
        lq = _node(v, p)
        local.append(
            LocalQuery(
                _pos(lq, p),
                _str(lq, "name", p),
                _str_list(lq, "columns", p),
                rel_from_dict(_req(lq, "query", p), p + ".query"),
            )
        )
    return Query(pos, local, rel_from_dict(_req(d, "main", path), path + ".main"))


def top_level_from_dict(obj: object, path: str = "$") -> TopLevel:
    """Build a top-level construct from its dict form."""
    d = _node(obj, path)
    t = _type_of(d, path)
    pos = _pos(d, path)
    if t == "Query":
        return _query_from_dict(d, pos, path)
    if t == "Update":
        updates: list[ColumnUpdate] = []
        for i, v in enumerate(_list(d, "updates", path, required=True)):
            p = path + ".updates[" + str(i) + "]"
            u = _node(v, p)
            updates.append(ColumnUpdate(_str(u, "column", p), expr_from_dict(_req(u, "value", p), p + ".value")))
        return Update(
            pos,
            _str(d, "table", path),
            updates,
            _order(d, path),
            _exprs(d, "where", path),
            _exprs(d, "groups", path),
            _exprs(d, "having", path),
        )
    if t == "Delete":
        where: list[Expr] | None = None
        if d.get("where") is not None:
            where = _exprs(d, "where", path)
        return Delete(
            pos,
            _str(d, "table", path),
            _str_list(d, "columns", path),
            where,
            _order(d, path),
            _exprs(d, "groups", path),
            _exprs(d, "having", path),
        )
    if t == "Create":
        table = _str(d, "table", path)
        if d.get("query") is not None:
            q = _node(d["query"], path + ".query")
            return Create(pos, table, _query_from_dict(q, _pos(q, path + ".query"), path + ".query"))
        schema: list[ColumnDef] = []
        for i, v in enumerate(_list(d, "schema", path, required=True)):
            p = path + ".schema[" + str(i) + "]"
            c = _node(v, p)
            schema.append(ColumnDef(_str(c, "name", p), _str(c, "type", p)))
        return Create(pos, table, schema)
    if t == "Insert":
        table2 = _str(d, "table", path)
        order = _order(d, path)
        columns = _str_list(d, "columns", path)
        if d.get("query") is not None:
            q2 = _node(d["query"], path + ".query")
            return Insert(pos, table2, order, columns, _query_from_dict(q2, _pos(q2, path + ".query"), path + ".query"))
        return Insert(pos, table2, order, columns, _exprs(d, "values", path, required=True))
    if t == "UDF":
        body: list[Expr | Assignment] = []
        for i, v in enumerate(_list(d, "body", path)):
            p = path + ".body[" + str(i) + "]"
            s = _node(v, p)
            if _type_of(s, p) == "Assignment":
                body.append(Assignment(_pos(s, p), _str(s, "name", p), expr_from_dict(_req(s, "expr", p), p + ".expr")))
            else:
                body.append(expr_from_dict(s, p))
        return UDF(pos, _str(d, "name", path), _str_list(d, "params", path), body)
    if t == "Verbatim":
        return Verbatim(pos, _str(d, "code", path))
    raise AstFormatError("unknown top-level construct '" + t + "'", path)


def program_from_dict(obj: object) -> Program:
    """Build a Program from {"_type": "Program", "items": [...]} or a bare list."""
    if isinstance(obj, list):
        raw = obj
        base = "$"
    else:
        d = _node(obj, "$")
        if _type_of(d, "$") != "Program":
            raise AstFormatError("expected a Program", "$")
        raw = _list(d, "items", "$", required=True)
        base = "$.items"
    items: list[TopLevel] = []
    for i, v in enumerate(raw):
        items.append(top_level_from_dict(v, base + "[" + str(i) + "]"))
    return Program(items)


# ============================================================
# ERRORS
# ============================================================


def error_to_dict(err: AnalysisError) -> dict[str, object]:
    """Serialize an analysis error, payload included."""
    d: dict[str, object] = {
        "kind": err.kind,
        "pos": [err.pos.line, err.pos.col],
        "message": err.message(),
    }
    if isinstance(err, TypeMismatch):
        d["expected"] = err.expected
        d["found"] = err.found
    elif isinstance(err, BadCall):
        d["name"] = err.name
    elif isinstance(err, IllegalExpr):
        d["text"] = err.text
    elif isinstance(err, (AmbiguousColumnAccess, UnknownCorrelationName)):
        d["name"] = err.name
    elif isinstance(err, DuplicateTableName):
        d["first"] = err.first
        d["second"] = err.second
        d["second_pos"] = [err.second_pos.line, err.second_pos.col]
    return d


def errors_to_dict(errors: list[AnalysisError]) -> dict[str, object]:
    return {
        "ok": len(errors) == 0,
        "errors": [error_to_dict(e) for e in errors],
    }
