# Rubric language package
# This package provides a tokenizer, parser and tree-walking interpreter for Rubric.
from .environment import Environment
from .errors import RubricError, RubricRuntimeError, RubricSyntaxError
from .interpreter import Interpreter, evaluate, run_file, run_program
from .lexer import Lexer, tokenize
from .parser import Parser, parse_program

__all__ = [
    'Environment',
    'Interpreter',
    'Lexer',
    'Parser',
    'RubricError',
    'RubricRuntimeError',
    'RubricSyntaxError',
    'evaluate',
    'parse_program',
    'run_file',
    'run_program',
    'tokenize',
]
