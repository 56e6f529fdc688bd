from pathlib import Path

from rubric.parser import parse_program
from rubric.interpreter import Interpreter

EXAMPLES = Path(__file__).resolve().parent.parent / 'examples'


def test_program_8_strings_and_truthiness(capsys):
    with open(EXAMPLES / 'program_8.rl', 'r', encoding='utf-8') as f:
        source = f.read()
    ast, errors = parse_program(source)
    assert errors == []
    Interpreter().run(ast)
    out_lines = capsys.readouterr().out.strip().split('\n')
    assert out_lines == [
        'Hello, Rubric!',
        'true true true true',
        'true true true',
        'null',
        'false true',
    ]
