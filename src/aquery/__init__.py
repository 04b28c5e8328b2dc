"""AQuery soft type checker — public API."""

from __future__ import annotations

from .ast import Program
from .check import TypeChecker as TypeChecker, check as check_program
from .errors import AnalysisError as AnalysisError
from .functions import (
    FunctionEnv as FunctionEnv,
    build_env as build_env,
    builtin_env as builtin_env,
)
from .serialize import AstFormatError as AstFormatError, program_from_dict


def check(program: Program, env: FunctionEnv | None = None) -> list[AnalysisError]:
    """Type-check a parsed program. Returns list of errors (empty = ok)."""
    return check_program(program, env)


def check_dict(obj: object, env: FunctionEnv | None = None) -> list[AnalysisError]:
    """Load a program from its JSON-compatible dict form and type-check it."""
    return check_program(program_from_dict(obj), env)
