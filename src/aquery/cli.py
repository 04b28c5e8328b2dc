"""aquery-check CLI — run the soft type check over a JSON-encoded program AST."""

from __future__ import annotations

import json
import sys

from .check import check
from .functions import FunctionEnv
from .serialize import AstFormatError, errors_to_dict, program_from_dict


USAGE: str = """\
aquery-check [OPTIONS] FILE

Type-check an AQuery program given as a JSON AST ('-' reads stdin).

Options:
  --json         Print the result as JSON on stdout
  --no-builtins  Check without the builtin function signatures
  --help         Show this help message
"""


def main(argv: list[str] | None = None) -> int:
    args = argv if argv is not None else sys.argv[1:]
    filepath: str = ""
    as_json = False
    no_builtins = False
    i = 0
    while i < len(args):
        arg = args[i]
        if arg == "--help" or arg == "-h":
            print(USAGE, end="")
            return 0
        elif arg == "--json":
            as_json = True
            i += 1
        elif arg == "--no-builtins":
            no_builtins = True
            i += 1
        elif arg.startswith("-") and arg != "-":
            print("aquery-check: unknown flag '" + arg + "'", file=sys.stderr)
            return 2
        elif filepath == "":
            filepath = arg
            i += 1
        else:
            print("aquery-check: unexpected argument '" + arg + "'", file=sys.stderr)
            return 2
    if filepath == "":
        print("aquery-check: missing file argument", file=sys.stderr)
        return 2

    try:
        if filepath == "-":
            raw = sys.stdin.read()
        else:
            with open(filepath, encoding="utf-8") as f:
                raw = f.read()
    except FileNotFoundError:
        print("aquery-check: " + filepath + ": No such file or directory", file=sys.stderr)
        return 1
    except OSError as e:
        print("aquery-check: " + filepath + ": " + str(e), file=sys.stderr)
        return 1
    except ValueError:
        print("aquery-check: " + filepath + ": invalid utf-8", file=sys.stderr)
        return 1

    try:
        program = program_from_dict(json.loads(raw))
    except json.JSONDecodeError as e:
        print("aquery-check: invalid JSON: " + str(e), file=sys.stderr)
        return 1
    except AstFormatError as e:
        print("aquery-check: malformed AST: " + str(e), file=sys.stderr)
        return 1

    env = FunctionEnv() if no_builtins else None
    errors = check(program, env)

    if as_json:
        print(json.dumps(errors_to_dict(errors), indent=2))
    else:
        for err in errors:
            print(str(err), file=sys.stderr)
    return 1 if len(errors) > 0 else 0


if __name__ == "__main__":
    sys.exit(main())
