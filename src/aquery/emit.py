"""AQuery emitter — renders expressions and table bindings back to source text.

Used for illegal-expression payloads and table descriptions in diagnostics.
Total over the expression family in `aquery/ast.py`.
"""

from __future__ import annotations

from .ast import (
    ArrayIndex,
    BinExpr,
    BoolLit,
    Case,
    ColumnAccess,
    DateLit,
    Each,
    Expr,
    FloatLit,
    FunCall,
    Id,
    IntLit,
    RowId,
    StringLit,
    Table,
    TimestampLit,
    UnExpr,
    WildCard,
)


def render_expr(expr: Expr) -> str:
    """Render an expression as AQuery source text."""
    return _Emitter().render(expr, _Emitter._PREC_LOWEST)


def render_table(t: Table) -> str:
    """`name` or `name as alias`."""
    if t.alias is None:
        return t.name
    return t.name + " as " + t.alias


class _Emitter:
    # Expression precedence (higher binds tighter)
    _PREC_LOWEST: int = 0
    _PREC_OR: int = 1
    _PREC_AND: int = 2
    _PREC_NOT: int = 3
    _PREC_COMPARE: int = 4
    _PREC_SUM: int = 5
    _PREC_PRODUCT: int = 6
    _PREC_EXP: int = 7
    _PREC_NEG: int = 8
    _PREC_POSTFIX: int = 9
    _PREC_PRIMARY: int = 10

    _BIN_PREC: dict[str, int] = {
        "or": _PREC_OR,
        "and": _PREC_AND,
        "=": _PREC_COMPARE,
        "!=": _PREC_COMPARE,
        "<": _PREC_COMPARE,
        "<=": _PREC_COMPARE,
        ">": _PREC_COMPARE,
        ">=": _PREC_COMPARE,
        "+": _PREC_SUM,
        "-": _PREC_SUM,
        "*": _PREC_PRODUCT,
        "/": _PREC_PRODUCT,
        "^": _PREC_EXP,
    }

    def _prec(self, expr: Expr) -> int:
        if isinstance(expr, BinExpr):
            if expr.op not in self._BIN_PREC:
                raise ValueError(f"unknown binary operator: {expr.op}")
            return self._BIN_PREC[expr.op]
        if isinstance(expr, UnExpr):
            return self._PREC_NOT if expr.op == "not" else self._PREC_NEG
        if isinstance(expr, ArrayIndex):
            return self._PREC_POSTFIX
        return self._PREC_PRIMARY

    def render(self, expr: Expr, parent_prec: int, side: str = "") -> str:
        prec = self._prec(expr)
        text = self._render_inner(expr)
        need_parens = False
        if prec < parent_prec:
            need_parens = True
        elif prec == parent_prec and side == "right" and prec in (self._PREC_SUM, self._PREC_PRODUCT):
            need_parens = True
        elif prec == parent_prec and side != "" and prec in (self._PREC_COMPARE, self._PREC_EXP):
            need_parens = True
        if need_parens:
            return f"({text})"
        return text

    def _render_inner(self, expr: Expr) -> str:
        if isinstance(expr, IntLit):
            return str(expr.value)
        if isinstance(expr, FloatLit):
            return repr(expr.value)
        if isinstance(expr, StringLit):
            return self._quote_string(expr.value)
        if isinstance(expr, BoolLit):
            return "TRUE" if expr.value else "FALSE"
        if isinstance(expr, (DateLit, TimestampLit)):
            return expr.value
        if isinstance(expr, Id):
            return expr.name
        if isinstance(expr, ColumnAccess):
            return f"{expr.table}.{expr.column}"
        if isinstance(expr, WildCard):
            return "*"
        if isinstance(expr, RowId):
            return "ROWID"
        if isinstance(expr, BinExpr):
            op_prec = self._BIN_PREC[expr.op]
            left = self.render(expr.left, op_prec, "left")
            right = self.render(expr.right, op_prec, "right")
            return f"{left} {expr.op} {right}"
        if isinstance(expr, UnExpr):
            if expr.op == "not":
                return "not " + self.render(expr.operand, self._PREC_NOT, "right")
            operand = self.render(expr.operand, self._PREC_NEG, "right")
            # a doubled minus would read as a comment marker
            if operand.startswith("-"):
                operand = f"({operand})"
            return "-" + operand
        if isinstance(expr, FunCall):
            args: list[str] = []
            for a in expr.args:
                args.append(self.render(a, self._PREC_LOWEST))
            return f"{expr.name}({', '.join(args)})"
        if isinstance(expr, ArrayIndex):
            arr = self.render(expr.array, self._PREC_POSTFIX, "left")
            idx = self.render(expr.index, self._PREC_LOWEST)
            return f"{arr}[{idx}]"
        if isinstance(expr, Each):
            return f"each({self.render(expr.expr, self._PREC_LOWEST)})"
        if isinstance(expr, Case):
            parts: list[str] = ["case"]
            if expr.cond is not None:
                parts.append(self.render(expr.cond, self._PREC_LOWEST))
            for w in expr.when:
                parts.append("when " + self.render(w.cond, self._PREC_LOWEST))
                parts.append("then " + self.render(w.then, self._PREC_LOWEST))
            if expr.otherwise is not None:
                parts.append("else " + self.render(expr.otherwise, self._PREC_LOWEST))
            parts.append("end")
            return " ".join(parts)
        raise TypeError("unhandled expression type: " + type(expr).__name__)

    def _quote_string(self, value: str) -> str:
        out: list[str] = ['"']
        for ch in value:
            if ch == '"':
                out.append('\\"')
            elif ch == "\\":
                out.append("\\\\")
            elif ch == "\n":
                out.append("\\n")
            elif ch == "\t":
                out.append("\\t")
            else:
                out.append(ch)
        out.append('"')
        return "".join(out)
