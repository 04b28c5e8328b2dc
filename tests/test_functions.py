"""Tests for call signatures, the function environment and its builder."""

from aquery.ast import UDF, Verbatim
from aquery.functions import (
    BUILTINS,
    BuiltinSignature,
    FunctionEnv,
    Overload,
    UDFSignature,
    build_env,
    builtin_env,
)
from aquery.types import TY_BOOLEAN, TY_NUMERIC, TY_STRING, TY_UNKNOWN

from builders import p, program


def test_builtin_signature_match():
    sig = BUILTINS["sqrt"]
    assert sig.apply([TY_NUMERIC]) == TY_NUMERIC
    assert sig.apply([TY_UNKNOWN]) == TY_NUMERIC


def test_builtin_signature_rejects_types_and_arity():
    sig = BUILTINS["sqrt"]
    assert sig.apply([TY_STRING]) is None
    assert sig.apply([]) is None
    assert sig.apply([TY_NUMERIC, TY_NUMERIC]) is None


def test_builtin_overloads_by_arity():
    sig = BUILTINS["avgs"]
    assert sig.apply([TY_NUMERIC]) == TY_NUMERIC
    assert sig.apply([TY_NUMERIC, TY_NUMERIC]) == TY_NUMERIC
    assert sig.apply([TY_NUMERIC, TY_NUMERIC, TY_NUMERIC]) is None


def test_unknown_argument_with_disagreeing_overloads_is_unknown():
    sig = BUILTINS["max"]
    assert sig.apply([TY_STRING]) == TY_STRING
    assert sig.apply([TY_NUMERIC]) == TY_NUMERIC
    assert sig.apply([TY_UNKNOWN]) == TY_UNKNOWN


def test_unknown_argument_with_agreeing_overloads():
    assert BUILTINS["sum"].apply([TY_UNKNOWN]) == TY_NUMERIC


def test_any_parameter():
    sig = BUILTINS["count"]
    assert sig.apply([TY_STRING]) == TY_NUMERIC
    assert sig.apply([TY_BOOLEAN]) == TY_NUMERIC


def test_custom_builtin_signature():
    sig = BuiltinSignature("f", (Overload((TY_STRING, TY_NUMERIC), TY_BOOLEAN),))
    assert sig.apply([TY_STRING, TY_NUMERIC]) == TY_BOOLEAN
    assert sig.apply([TY_NUMERIC, TY_STRING]) is None


def test_udf_signature_is_arity_only():
    sig = UDFSignature("f", 2)
    assert sig.apply([TY_STRING, TY_BOOLEAN]) == TY_UNKNOWN
    assert sig.apply([TY_NUMERIC]) is None
    assert sig.apply([TY_NUMERIC, TY_NUMERIC, TY_NUMERIC]) is None


def test_register_returns_new_env():
    env = FunctionEnv()
    env2 = env.register("f", UDFSignature("f", 1))
    assert env.lookup("f") is None
    assert env2.lookup("f") == UDFSignature("f", 1)
    assert env2.lookup("g") is None
    assert env.lookup("g") is None


def test_builtin_env():
    env = builtin_env()
    assert env.lookup("sqrt") is BUILTINS["sqrt"]
    assert env.lookup("nope") is None
    for name, sig in BUILTINS.items():
        assert env.lookup(name) is sig


def test_build_env_registers_udfs():
    prog = program(
        UDF(p(), "f", ["a", "b"], []),
        Verbatim(p(), "show 1"),
        UDF(p(), "g", [], []),
    )
    env = build_env(prog)
    assert env.lookup("f") == UDFSignature("f", 2)
    assert env.lookup("g") == UDFSignature("g", 0)
    assert env.lookup("sqrt") is BUILTINS["sqrt"]


def test_build_env_udf_shadows_builtin():
    base = builtin_env()
    env = build_env(program(UDF(p(), "sqrt", ["x", "y"], [])), base)
    assert env.lookup("sqrt") == UDFSignature("sqrt", 2)
    assert base.lookup("sqrt") is BUILTINS["sqrt"]


def test_build_env_on_empty_base():
    env = build_env(program(UDF(p(), "f", ["x"], [])), FunctionEnv())
    assert env.lookup("f") == UDFSignature("f", 1)
    assert env.lookup("sqrt") is None
