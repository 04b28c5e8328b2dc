"""Function environment — call signatures for builtins and user-defined functions."""

from __future__ import annotations

from dataclasses import dataclass

from .ast import UDF, Program
from .types import (
    TY_BOOLEAN,
    TY_NUMERIC,
    TY_STRING,
    TY_UNKNOWN,
    tag_matches,
)


# ============================================================
# SIGNATURES
# ============================================================


@dataclass(frozen=True)
class Overload:
    """One accepted argument-tag list and the tag it returns."""

    params: tuple[str, ...]
    ret: str


@dataclass(frozen=True)
class BuiltinSignature:
    """Finite overload table; an argument list no overload accepts is a bad call."""

    name: str
    overloads: tuple[Overload, ...]

    def apply(self, args: list[str]) -> str | None:
        rets: list[str] = []
        for ov in self.overloads:
            if len(ov.params) != len(args):
                continue
            ok = True
            i = 0
            while i < len(args):
                if not tag_matches((ov.params[i],), args[i]):
                    ok = False
                    break
                i += 1
            if ok and ov.ret not in rets:
                rets.append(ov.ret)
        if len(rets) == 0:
            return None
        # Unknown arguments can select overloads that disagree on the result
        if len(rets) > 1:
            return TY_UNKNOWN
        return rets[0]


@dataclass(frozen=True)
class UDFSignature:
    """Arity-only signature: any argument types, always Unknown."""

    name: str
    arity: int

    def apply(self, args: list[str]) -> str | None:
        if len(args) == self.arity:
            return TY_UNKNOWN
        return None


CallSignature = BuiltinSignature | UDFSignature


# ============================================================
# ENVIRONMENT
# ============================================================


class FunctionEnv:
    """Immutable name → signature mapping. `register` returns a new environment."""

    def __init__(self, signatures: dict[str, CallSignature] | None = None) -> None:
        self._signatures: dict[str, CallSignature] = dict(signatures) if signatures is not None else {}

    def lookup(self, name: str) -> CallSignature | None:
        return self._signatures.get(name)

    def register(self, name: str, signature: CallSignature) -> FunctionEnv:
        updated = dict(self._signatures)
        updated[name] = signature
        return FunctionEnv(updated)


# ============================================================
# BUILTINS
# ============================================================

_N: str = TY_NUMERIC
_B: str = TY_BOOLEAN
_S: str = TY_STRING
_U: str = TY_UNKNOWN


def _sig(name: str, *overloads: tuple[tuple[str, ...], str]) -> BuiltinSignature:
    return BuiltinSignature(name, tuple(Overload(params, ret) for params, ret in overloads))


BUILTINS: dict[str, BuiltinSignature] = {}

for _s in (
    # Scalar math
    _sig("abs", ((_N,), _N)),
    _sig("sqrt", ((_N,), _N)),
    _sig("exp", ((_N,), _N)),
    _sig("log", ((_N,), _N)),
    _sig("mod", ((_N, _N), _N)),
    # Aggregates
    _sig("avg", ((_N,), _N), ((_B,), _N)),
    _sig("sum", ((_N,), _N), ((_B,), _N)),
    _sig("prd", ((_N,), _N)),
    _sig("stddev", ((_N,), _N)),
    _sig("count", ((_U,), _N)),
    _sig("max", ((_N,), _N), ((_S,), _S)),
    _sig("min", ((_N,), _N), ((_S,), _S)),
    _sig("first", ((_U,), _U), ((_N, _U), _U)),
    _sig("last", ((_U,), _U), ((_N, _U), _U)),
    # Running and moving-window variants: f(x) or f(window, x)
    _sig("avgs", ((_N,), _N), ((_N, _N), _N)),
    _sig("sums", ((_N,), _N), ((_N, _N), _N), ((_B,), _N), ((_N, _B), _N)),
    _sig("prds", ((_N,), _N), ((_N, _N), _N)),
    _sig("maxs", ((_N,), _N), ((_N, _N), _N)),
    _sig("mins", ((_N,), _N), ((_N, _N), _N)),
    _sig("deltas", ((_N,), _N)),
    _sig("ratios", ((_N,), _N)),
    # Order-dependent
    _sig("prev", ((_U,), _U)),
    _sig("next", ((_U,), _U)),
    _sig("fills", ((_U,), _U)),
    _sig("reverse", ((_U,), _U)),
    _sig("distinct", ((_U,), _U)),
    # Predicates
    _sig("between", ((_N, _N, _N), _B)),
    _sig("like", ((_S, _S), _B)),
):
    BUILTINS[_s.name] = _s


def builtin_env() -> FunctionEnv:
    """Environment holding only the builtin signatures."""
    return FunctionEnv(dict(BUILTINS))


# ============================================================
# ENVIRONMENT BUILDER
# ============================================================


def build_env(program: Program, base: FunctionEnv | None = None) -> FunctionEnv:
    """Register an arity-only signature for every UDF in `program`.

    Runs before any checking so that forward and mutual references between
    UDFs resolve. A UDF shadows a builtin of the same name.
    """
    env = base if base is not None else builtin_env()
    for item in program.items:
        if isinstance(item, UDF):
            env = env.register(item.name, UDFSignature(item.name, len(item.params)))
    return env
