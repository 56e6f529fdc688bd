"""CLI entry point for the Rubric interpreter.

Usage:
    python -m rubric [-v|-vv|-vvv] [--debug-file PATH] <program_file>
    python -m rubric --tokens <program_file>
    python -m rubric --emit-ast <program_file>

Options:
  -v            Increase debug verbosity (can be repeated)
  --debug-file  Where the debug trace is written (default: debug.txt)
  --tokens      Print the token stream of the program instead of running it
  --emit-ast    Parse the program and write an AST JSON file next to it

Debug information is written to the debug file only when verbosity is
greater than zero. Parse diagnostics and runtime errors are reported on
stderr and exit with status 1.
"""

import argparse
import json
import sys
from pathlib import Path

from .ast_json import ast_to_obj
from .errors import RubricRuntimeError, RubricSyntaxError
from .interpreter import run_program
from .lexer import Lexer
from .parser import parse_program


def read_source(program_file: Path) -> str:
    if not program_file.exists():
        print(f"Error: file {program_file} not found", file=sys.stderr)
        sys.exit(1)
    with open(program_file, 'r', encoding='utf-8') as f:
        return f.read()


def report_parse_errors(errors) -> None:
    print("Parser errors:", file=sys.stderr)
    for err in errors:
        print(f"  {err}", file=sys.stderr)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog='rubric', description="Rubric language interpreter")
    parser.add_argument('-v', action='count', default=0, help='increase debug verbosity (can be repeated)')
    parser.add_argument('--debug-file', default='debug.txt', help='file that receives the debug trace')
    group = parser.add_mutually_exclusive_group()
    group.add_argument('--tokens', action='store_true', help='print the token stream and exit')
    group.add_argument('--emit-ast', action='store_true', help='write <program>.ast.json and exit')
    parser.add_argument('program', help='Rubric program file (.rl)')
    args = parser.parse_args(argv)

    program_file = Path(args.program)
    source = read_source(program_file)

    # Token dump mode
    if args.tokens:
        for tok in Lexer(source):
            print(tok)
        return

    # Emit AST mode
    if args.emit_ast:
        ast_program, errors = parse_program(source)
        if errors:
            report_parse_errors(errors)
            sys.exit(1)
        out_path = program_file.with_name(program_file.name + '.ast.json')
        with open(out_path, 'w', encoding='utf-8') as out:
            json.dump(ast_to_obj(ast_program), out, ensure_ascii=False, indent=2)
        print(str(out_path))
        return

    # Default: execute source file
    try:
        run_program(source, debug_level=args.v, debug_file=args.debug_file)
    except RubricSyntaxError as e:
        report_parse_errors(e.diagnostics)
        sys.exit(1)
    except RubricRuntimeError as e:
        print(f"Runtime error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
