from pathlib import Path

from rubric.parser import parse_program
from rubric.interpreter import Interpreter

EXAMPLES = Path(__file__).resolve().parent.parent / 'examples'


def test_program_6_closures(capsys):
    """Test program 6: closures and higher-order functions.

    The counter keeps its state in the scope captured by the returned
    function literal, `apply` takes a function-typed parameter and
    `scale` promotes its int argument to float.
    """
    with open(EXAMPLES / 'program_6.rl', 'r', encoding='utf-8') as f:
        source = f.read()
    ast, errors = parse_program(source)
    assert errors == []
    Interpreter().run(ast)
    out_lines = capsys.readouterr().out.strip().split('\n')
    assert out_lines == [
        'counter 3',
        'apply 42',
        'scale 3',
        'curried 7',
        'positive',
    ]
