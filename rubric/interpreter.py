"""Tree-walking evaluator for Rubric.

`Interpreter.evaluate` interprets one AST node against one environment
and returns a runtime value. Runtime failures and `return` are not
raised: they travel as `ErrorSignal` and `ReturnSignal` values, and every
routine that evaluates a sub-node checks for them before continuing.
Function application is the only place that intercepts anything (it
unwraps `ReturnSignal`).

When `debug_level` is above zero the interpreter writes a trace to
`debug_file`:

  1  program start and final value
  2  declarations, function definitions and calls
  3  branch conditions and loop iterations
"""

from __future__ import annotations

import math
import sys
from typing import IO, List, Optional

from .ast import (
    AssignmentExpression, BlockStatement, BooleanLiteral, CallExpression,
    ConstStatement, DisplayStatement, DoWhileStatement, ExpressionStatement,
    FloatLiteral, ForStatement, FunctionDeclaration, FunctionLiteral,
    Identifier, IfStatement, InfixExpression, IntegerLiteral, Node,
    PostfixExpression, PrefixExpression, Program, ReturnStatement,
    StringLiteral, TernaryExpression, VarStatement, WhileStatement,
)
from .environment import Environment
from .errors import RubricRuntimeError, RubricSyntaxError
from .parser import parse_program
from .types import (
    NULL, BooleanValue, ErrorSignal, FloatValue, FunctionValue, IntegerValue,
    NullValue, ReturnSignal, StringValue, Value, is_number, is_truthy,
    native_bool, type_name,
)


# host frame limit while a program runs; one Rubric call uses about 7 frames
RECURSION_LIMIT = 10000


class Interpreter:
    """Core interpreter that executes a Rubric AST."""
    def __init__(self, debug_level: int = 0, debug_file: str = 'debug.txt', stdout: Optional[IO[str]] = None):
        self.debug_level = debug_level
        self.debug_file = debug_file
        self.debug_fp: Optional[IO[str]] = None
        self.stdout = stdout

    def debug(self, msg: str):
        if self.debug_fp:
            self.debug_fp.write(msg + '\n')
            self.debug_fp.flush()

    # Public API
    def run(self, program: Program, env: Optional[Environment] = None) -> Value:
        if env is None:
            env = Environment()
        if self.debug_level > 0:
            self.debug_fp = open(self.debug_file, 'w', encoding='utf-8')
        old_limit = sys.getrecursionlimit()
        sys.setrecursionlimit(max(old_limit, RECURSION_LIMIT))
        try:
            if self.debug_level >= 1:
                self.debug(f"run program ({len(program.statements)} statements)")
            result = self.evaluate(program, env)
            if self.debug_level >= 1:
                self.debug(f"result: {result.inspect()}")
            return result
        finally:
            sys.setrecursionlimit(old_limit)
            if self.debug_fp:
                self.debug_fp.close()
                self.debug_fp = None

    def evaluate(self, node: Optional[Node], env: Environment) -> Value:
        if node is None:
            return NULL

        # Statements
        if isinstance(node, Program):
            result = self.eval_statements(node.statements, env)
            if isinstance(result, ReturnSignal):
                return result.value
            return result
        if isinstance(node, BlockStatement):
            return self.eval_statements(node.statements, env.extend())
        if isinstance(node, ExpressionStatement):
            return self.evaluate(node.expression, env)
        if isinstance(node, VarStatement):
            return self.eval_declaration(node.name.value, node.value, env, is_constant=False)
        if isinstance(node, ConstStatement):
            return self.eval_declaration(node.name.value, node.value, env, is_constant=True)
        if isinstance(node, FunctionDeclaration):
            func = FunctionValue(node.parameters, node.body, env, node.return_type, node.name.value)
            # functions are const
            defined = env.define(node.name.value, func, is_constant=True)
            if isinstance(defined, ErrorSignal):
                return defined
            if self.debug_level >= 2:
                self.debug(f"define function {node.name.value}: {func.signature()}")
            return NULL
        if isinstance(node, ReturnStatement):
            value = self.evaluate(node.return_value, env)
            if isinstance(value, ErrorSignal):
                return value
            return ReturnSignal(value)
        if isinstance(node, IfStatement):
            return self.eval_if(node, env)
        if isinstance(node, WhileStatement):
            return self.eval_while(node, env)
        if isinstance(node, DoWhileStatement):
            return self.eval_do_while(node, env)
        if isinstance(node, ForStatement):
            return self.eval_for(node, env)
        if isinstance(node, DisplayStatement):
            return self.eval_display(node, env)

        # Expressions
        if isinstance(node, IntegerLiteral):
            return IntegerValue(node.value)
        if isinstance(node, FloatLiteral):
            return FloatValue(node.value)
        if isinstance(node, StringLiteral):
            return StringValue(node.value)
        if isinstance(node, BooleanLiteral):
            return native_bool(node.value)
        if isinstance(node, Identifier):
            value = env.get(node.value)
            if value is None:
                return ErrorSignal(f"identifier not found: {node.value}")
            return value
        if isinstance(node, PrefixExpression):
            if node.operator in ('++', '--'):
                return self.eval_update(node.operator, node.right, env, prefix=True)
            right = self.evaluate(node.right, env)
            if isinstance(right, ErrorSignal):
                return right
            return eval_prefix_operator(node.operator, right)
        if isinstance(node, PostfixExpression):
            return self.eval_update(node.operator, node.left, env, prefix=False)
        if isinstance(node, InfixExpression):
            return self.eval_infix(node, env)
        if isinstance(node, TernaryExpression):
            condition = self.evaluate(node.condition, env)
            if isinstance(condition, ErrorSignal):
                return condition
            if is_truthy(condition):
                return self.evaluate(node.consequence, env)
            return self.evaluate(node.alternative, env)
        if isinstance(node, AssignmentExpression):
            value = self.evaluate(node.value, env)
            if isinstance(value, ErrorSignal):
                return value
            return env.set(node.name.value, value)
        if isinstance(node, FunctionLiteral):
            return FunctionValue(node.parameters, node.body, env, node.return_type)
        if isinstance(node, CallExpression):
            return self.eval_call(node, env)

        return ErrorSignal(f"Unsupported AST node type: {type(node).__name__}")

    def eval_statements(self, statements: List[Node], env: Environment) -> Value:
        result: Value = NULL
        for stmt in statements:
            result = self.evaluate(stmt, env)
            if isinstance(result, (ReturnSignal, ErrorSignal)):
                return result
        return result

    def eval_declaration(self, name: str, init: Optional[Node], env: Environment, is_constant: bool) -> Value:
        value = self.evaluate(init, env)
        if isinstance(value, ErrorSignal):
            return value
        defined = env.define(name, value, is_constant)
        if isinstance(defined, ErrorSignal):
            return defined
        if self.debug_level >= 2:
            kind = 'const' if is_constant else 'var'
            self.debug(f"declare {kind} {name}: {type_name(value)} = {value.inspect()}")
        return NULL

    def eval_if(self, node: IfStatement, env: Environment) -> Value:
        condition = self.evaluate(node.condition, env)
        if isinstance(condition, ErrorSignal):
            return condition
        truthy = is_truthy(condition)
        if self.debug_level >= 3:
            self.debug(f"if condition {condition.inspect()} -> {truthy}")
        if truthy:
            return self.evaluate(node.consequence, env)
        if node.alternative is not None:
            return self.evaluate(node.alternative, env)
        return NULL

    def eval_while(self, node: WhileStatement, env: Environment) -> Value:
        iteration = 0
        while True:
            condition = self.evaluate(node.condition, env)
            if isinstance(condition, ErrorSignal):
                return condition
            if not is_truthy(condition):
                break
            iteration += 1
            if self.debug_level >= 3:
                self.debug(f"while iteration {iteration}")
            result = self.evaluate(node.body, env)
            if isinstance(result, (ReturnSignal, ErrorSignal)):
                return result
        return NULL

    def eval_do_while(self, node: DoWhileStatement, env: Environment) -> Value:
        iteration = 0
        while True:
            iteration += 1
            if self.debug_level >= 3:
                self.debug(f"do-while iteration {iteration}")
            result = self.evaluate(node.body, env)
            if isinstance(result, (ReturnSignal, ErrorSignal)):
                return result
            condition = self.evaluate(node.condition, env)
            if isinstance(condition, ErrorSignal):
                return condition
            if not is_truthy(condition):
                break
        return NULL

    def eval_for(self, node: ForStatement, env: Environment) -> Value:
        # one scope for the loop variable; the body block nests inside it
        loop_env = env.extend()
        init = self.evaluate(node.init, loop_env)
        if isinstance(init, ErrorSignal):
            return init
        iteration = 0
        while True:
            if node.condition is not None:
                condition = self.evaluate(node.condition, loop_env)
                if isinstance(condition, ErrorSignal):
                    return condition
                if not is_truthy(condition):
                    break
            iteration += 1
            if self.debug_level >= 3:
                self.debug(f"for iteration {iteration}")
            result = self.evaluate(node.body, loop_env)
            if isinstance(result, (ReturnSignal, ErrorSignal)):
                return result
            update = self.evaluate(node.update, loop_env)
            if isinstance(update, ErrorSignal):
                return update
        return NULL

    def eval_display(self, node: DisplayStatement, env: Environment) -> Value:
        parts = []
        for arg in node.arguments:
            value = self.evaluate(arg, env)
            if isinstance(value, ErrorSignal):
                return value
            parts.append(value.inspect())
        print(' '.join(parts), file=self.stdout or sys.stdout)
        return NULL

    def eval_update(self, operator: str, target: Node, env: Environment, prefix: bool) -> Value:
        """Evaluate `++`/`--` in prefix or postfix position."""
        if not isinstance(target, Identifier):
            return ErrorSignal(f"Operator '{operator}' requires an identifier operand, got {type(target).__name__}.")
        current = env.get(target.value)
        if current is None:
            return ErrorSignal(f"identifier not found: {target.value}")
        delta = 1 if operator == '++' else -1
        if isinstance(current, IntegerValue):
            updated: Value = IntegerValue(current.value + delta)
        elif isinstance(current, FloatValue):
            updated = FloatValue(current.value + delta)
        else:
            return ErrorSignal(f"Operator '{operator}' requires a numeric operand, got '{type_name(current)}'.")
        stored = env.set(target.value, updated)
        if isinstance(stored, ErrorSignal):
            return stored
        return updated if prefix else current

    def eval_infix(self, node: InfixExpression, env: Environment) -> Value:
        left = self.evaluate(node.left, env)
        if isinstance(left, ErrorSignal):
            return left
        # && and || only look at the right operand when they have to
        if node.operator == '&&':
            if not is_truthy(left):
                return native_bool(False)
            right = self.evaluate(node.right, env)
            if isinstance(right, ErrorSignal):
                return right
            return native_bool(is_truthy(right))
        if node.operator == '||':
            if is_truthy(left):
                return native_bool(True)
            right = self.evaluate(node.right, env)
            if isinstance(right, ErrorSignal):
                return right
            return native_bool(is_truthy(right))
        right = self.evaluate(node.right, env)
        if isinstance(right, ErrorSignal):
            return right
        return apply_binary_op(node.operator, left, right)

    def eval_call(self, node: CallExpression, env: Environment) -> Value:
        callee = self.evaluate(node.function, env)
        if isinstance(callee, ErrorSignal):
            return callee
        if not isinstance(callee, FunctionValue):
            return ErrorSignal(f"Cannot call non-function type: {callee.type().value}")
        args: List[Value] = []
        for arg in node.arguments:
            value = self.evaluate(arg, env)
            if isinstance(value, ErrorSignal):
                return value
            args.append(value)
        return self.apply_function(callee, args)

    def apply_function(self, func: FunctionValue, args: List[Value]) -> Value:
        name = func.display_name()
        if len(args) != len(func.parameters):
            return ErrorSignal(
                f"Function '{name}' expects {len(func.parameters)} arguments, got {len(args)}."
            )
        # call scope is a child of the captured scope, not of the caller's
        call_env = Environment(outer=func.env)
        for param, arg in zip(func.parameters, args):
            bound = check_argument(name, param.name.value, param.type_annotation.name, arg)
            if isinstance(bound, ErrorSignal):
                return bound
            call_env.define(param.name.value, bound)
        if self.debug_level >= 2:
            rendered = ', '.join(a.inspect() for a in args)
            self.debug(f"call {name}({rendered})")
        try:
            result = self.eval_statements(func.body.statements, call_env)
        except RecursionError:
            return ErrorSignal(f"Maximum recursion depth exceeded in function '{name}'.")
        if isinstance(result, ReturnSignal):
            result = result.value
        if self.debug_level >= 2:
            self.debug(f"return from {name}: {result.inspect()}")
        return result


def check_argument(func_name: str, param_name: str, declared: str, arg: Value) -> Value:
    """Check one argument against its parameter's declared type.

    Returns the value to bind (an Integer passed to a `float` parameter is
    promoted) or an ErrorSignal describing the mismatch.
    """
    if declared in ('any', 'object'):
        return arg
    if declared == 'float' and isinstance(arg, IntegerValue):
        return FloatValue(float(arg.value))
    if declared.startswith('fn(') and isinstance(arg, FunctionValue):
        actual = arg.signature()
    else:
        actual = type_name(arg)
    if actual != declared:
        return ErrorSignal(
            f"Type mismatch for parameter '{param_name}' of function '{func_name}': "
            f"expected '{declared}', got '{actual}'."
        )
    return arg


def eval_prefix_operator(operator: str, right: Value) -> Value:
    if operator == '!':
        return native_bool(not is_truthy(right))
    if operator == '-':
        if isinstance(right, IntegerValue):
            return IntegerValue(-right.value)
        if isinstance(right, FloatValue):
            return FloatValue(-right.value)
        return ErrorSignal(f"Unsupported operand type for unary '-': '{type_name(right)}'.")
    return ErrorSignal(f"Unknown operator: {operator}{type_name(right)}")


def truncated_divmod(a: int, b: int):
    """Integer division truncating toward zero, with the matching remainder."""
    q = abs(a) // abs(b)
    if (a < 0) != (b < 0):
        q = -q
    return q, a - b * q


def apply_binary_op(op: str, a: Value, b: Value) -> Value:
    # String concatenation
    if op == '+' and (isinstance(a, StringValue) or isinstance(b, StringValue)):
        return StringValue(a.inspect() + b.inspect())
    if op in ('==', '!='):
        eq = equal_values(a, b)
        return native_bool(eq if op == '==' else not eq)
    if is_number(a) and is_number(b):
        if isinstance(a, IntegerValue) and isinstance(b, IntegerValue):
            return integer_op(op, a.value, b.value)
        return float_op(op, float(a.value), float(b.value))
    if op in ('<', '>', '<=', '>=') and isinstance(a, StringValue) and isinstance(b, StringValue):
        return native_bool(compare(op, a.value, b.value))
    if op in ('+', '-', '*', '/', '%', '<', '>', '<=', '>='):
        return ErrorSignal(
            f"Unsupported operand types for '{op}': '{type_name(a)}' and '{type_name(b)}'."
        )
    return ErrorSignal(f"Unknown operator: {op}")


def integer_op(op: str, x: int, y: int) -> Value:
    if op == '+':
        return IntegerValue(x + y)
    if op == '-':
        return IntegerValue(x - y)
    if op == '*':
        return IntegerValue(x * y)
    if op == '/':
        if y == 0:
            return ErrorSignal('Division by zero.')
        return IntegerValue(truncated_divmod(x, y)[0])
    if op == '%':
        if y == 0:
            return ErrorSignal('Modulo by zero.')
        return IntegerValue(truncated_divmod(x, y)[1])
    if op in ('<', '>', '<=', '>='):
        return native_bool(compare(op, x, y))
    return ErrorSignal(f"Unknown operator: int {op} int")


def float_op(op: str, x: float, y: float) -> Value:
    if op == '+':
        return FloatValue(x + y)
    if op == '-':
        return FloatValue(x - y)
    if op == '*':
        return FloatValue(x * y)
    if op == '/':
        if y == 0.0:
            return ErrorSignal('Division by zero.')
        return FloatValue(x / y)
    if op == '%':
        if y == 0.0:
            return ErrorSignal('Modulo by zero.')
        # sign follows the dividend, like integer %
        return FloatValue(math.fmod(x, y))
    if op in ('<', '>', '<=', '>='):
        return native_bool(compare(op, x, y))
    return ErrorSignal(f"Unknown operator: float {op} float")


def compare(op: str, x, y) -> bool:
    if op == '<':
        return x < y
    if op == '>':
        return x > y
    if op == '<=':
        return x <= y
    return x >= y


def equal_values(a: Value, b: Value) -> bool:
    if is_number(a) and is_number(b):
        return a.value == b.value
    if isinstance(a, (BooleanValue, StringValue)) and type(a) is type(b):
        return a.value == b.value
    if isinstance(a, NullValue) and isinstance(b, NullValue):
        return True
    if isinstance(a, FunctionValue) and isinstance(b, FunctionValue):
        return a is b
    # mixed kinds compare by their rendering, so "5" == 5
    return a.inspect() == b.inspect()


def evaluate(node: Optional[Node], env: Environment) -> Value:
    """Evaluate a node with a default interpreter (no tracing, stdout output)."""
    return Interpreter().evaluate(node, env)


def run_program(source: str, debug_level: int = 0, debug_file: str = 'debug.txt') -> Value:
    """Convenience function to parse and run a Rubric program from a source string.

    Raises RubricSyntaxError when parsing reports diagnostics and
    RubricRuntimeError when the program ends with an error signal.
    """
    program, errors = parse_program(source)
    if errors:
        raise RubricSyntaxError(errors)
    interpreter = Interpreter(debug_level=debug_level, debug_file=debug_file)
    result = interpreter.run(program)
    if isinstance(result, ErrorSignal):
        raise RubricRuntimeError(result)
    return result


def run_file(file_path: str, debug_level: int = 0, debug_file: str = 'debug.txt') -> Value:
    """Parse and run a Rubric source file, returning the program's final value."""
    with open(file_path, 'r', encoding='utf-8') as f:
        source = f.read()
    return run_program(source, debug_level=debug_level, debug_file=debug_file)
