import io
import sys

import pytest

from rubric.ast import Parameter, TypeNode
from rubric.environment import Environment
from rubric.errors import RubricRuntimeError, RubricSyntaxError
from rubric.interpreter import Interpreter, evaluate, run_program
from rubric.parser import parse_program
from rubric.tokens import Token, TokenType
from rubric.types import (
    NULL, BooleanValue, ErrorSignal, FloatValue, FunctionValue, IntegerValue,
    StringValue,
)


def run(source, stdout=None):
    program, errors = parse_program(source)
    assert errors == []
    return Interpreter(stdout=stdout).run(program)


def assert_error(result, *fragments):
    assert isinstance(result, ErrorSignal), f"expected an error, got {result.inspect()}"
    for fragment in fragments:
        assert fragment in result.message


@pytest.mark.parametrize('source,expected', [
    ('10 / 3;', 3),
    ('10 % 3;', 1),
    ('-7 / 2;', -3),
    ('-7 % 2;', -1),
    ('7 % -3;', 1),
    ('2 + 3 * 4;', 14),
    ('(2 + 3) * 4;', 20),
    ('-(4 - 10);', 6),
])
def test_integer_arithmetic(source, expected):
    result = run(source)
    assert isinstance(result, IntegerValue)
    assert result.value == expected


@pytest.mark.parametrize('source,expected', [
    ('5 + 5.0;', 10.0),
    ('2.5 * 4;', 10.0),
    ('7.5 / 2;', 3.75),
    ('1 - 0.5;', 0.5),
    ('7.5 % 2;', 1.5),
])
def test_mixed_arithmetic_promotes_to_float(source, expected):
    result = run(source)
    assert isinstance(result, FloatValue)
    assert result.value == pytest.approx(expected)


def test_integral_float_renders_without_fraction():
    assert run('5 + 5.0;').inspect() == '10'
    assert run('0.1 + 0.2;').inspect() == '0.30000000000000004'


@pytest.mark.parametrize('source,message', [
    ('1 / 0;', 'Division by zero.'),
    ('1 % 0;', 'Modulo by zero.'),
    ('1.5 / 0;', 'Division by zero.'),
    ('1 % 0.0;', 'Modulo by zero.'),
])
def test_division_by_zero_is_an_error(source, message):
    result = run(source)
    assert_error(result)
    assert result.message == message


def test_short_circuit_logic():
    assert run('false && (1 / 0);') is not None
    assert run('false && (1 / 0);').value is False
    assert run('true || (1 / 0);').value is True


def test_logical_results_are_booleans():
    result = run('1 && "yes";')
    assert isinstance(result, BooleanValue) and result.value is True
    assert run('0 || "";').value is False


def test_logical_right_operand_errors_propagate():
    assert_error(run('true && missing;'), 'identifier not found: missing')


def test_block_scoping():
    result = run('var x = 10; { var x = 5; } x;')
    assert result.value == 10


def test_block_can_update_outer_binding():
    result = run('var x = 10; { x = 5; } x;')
    assert result.value == 5


def test_constant_assignment_is_an_error():
    assert_error(run('const c = 1; c = 2;'), "Assignment to constant variable 'c'.")


def test_redeclaration_is_an_error():
    assert_error(run('var a = 1; var a = 2;'), "Identifier 'a' has already been declared in this scope.")


def test_function_declarations_are_constant():
    assert_error(run('fn f(): void { } f = 1;'), "Assignment to constant variable 'f'.")


def test_assignment_to_undeclared_name():
    assert_error(run('ghost = 1;'), "Identifier 'ghost' not found for assignment.")


def test_assignment_yields_value():
    assert run('var a = 1; var b = 2; a = b = 7; a + b;').value == 14


def test_undefined_identifier():
    assert_error(run('y;'), 'identifier not found: y')


def test_function_call():
    result = run('fn add(a: int, b: int): int { return a + b; } add(5, 10);')
    assert isinstance(result, IntegerValue)
    assert result.value == 15


def test_recursive_factorial():
    source = '''
    fn factorial(n: int): int {
        if (n == 0) { return 1; }
        return n * factorial(n - 1);
    }
    factorial(5);
    '''
    assert run(source).value == 120


def test_parameter_type_mismatch():
    result = run('fn add(a: int, b: int): int { return a + b; } add("x", 1);')
    assert_error(result, "'a'", "'add'", "'int'", "'string'")


def test_arity_mismatch():
    result = run('fn add(a: int, b: int): int { return a + b; } add(1);')
    assert_error(result, "Function 'add' expects 2 arguments, got 1.")


def test_anonymous_function_arity_mismatch():
    assert_error(run('var f = fn(x: int): int { return x; }; f();'), "Function 'anonymous' expects 1 arguments, got 0.")


def test_float_parameter_promotes_int_argument():
    result = run('fn half(x: float): float { return x / 2; } half(5);')
    assert isinstance(result, FloatValue)
    assert result.value == 2.5


def test_int_parameter_rejects_float_argument():
    result = run('fn f(x: int): int { return x; } f(2.5);')
    assert_error(result, "expected 'int', got 'float'")


def test_any_parameter_accepts_everything():
    assert run('fn id(x: any): any { return x; } id("s");').value == 's'
    assert run('fn id(x: object): any { return x; } id(true);').value is True


def test_function_typed_parameter_checks_signature():
    source = '''
    fn apply(f: fn(int) => int, x: int): int { return f(x); }
    var wrong = fn(s: string): int { return 1; };
    apply(wrong, 1);
    '''
    assert_error(run(source), "expected 'fn(int) => int', got 'fn(string) => int'")


def test_calling_a_non_function():
    assert_error(run('var x = 5; x();'), 'Cannot call non-function type: INTEGER')


def test_implicit_return_of_last_value():
    assert run('fn f(): int { 42; } f();').value == 42
    assert run('fn g(): void { } g();') is NULL


def test_return_from_inside_loop():
    source = '''
    fn find(): int {
        for (var i = 0; i < 10; i++) {
            if (i == 3) { return i; }
        }
        return -1;
    }
    find();
    '''
    assert run(source).value == 3


def test_closures_capture_defining_scope():
    source = '''
    fn makeCounter(): fn() => int {
        var count = 0;
        return fn(): int { count = count + 1; return count; };
    }
    var c = makeCounter();
    c();
    c();
    c();
    '''
    assert run(source).value == 3


def test_calls_use_lexical_not_dynamic_scope():
    source = '''
    var x = 1;
    fn getX(): int { return x; }
    fn shadow(): int { var x = 2; return getX(); }
    shadow();
    '''
    assert run(source).value == 1


def test_parameters_cannot_be_redeclared_in_body():
    result = run('fn f(a: int): int { var a = 2; return a; } f(1);')
    assert_error(result, "Identifier 'a' has already been declared")


def test_for_loop_variable_does_not_leak():
    assert_error(run('for (var i = 0; i < 2; i++) { } i;'), 'identifier not found: i')


def test_for_body_declarations_are_fresh_each_iteration():
    result = run('var sum = 0; for (var i = 0; i < 3; i++) { var t = i * 2; sum = sum + t; } sum;')
    assert result.value == 6


def test_loops_evaluate_to_null():
    assert run('var i = 0; while (i < 3) { i++; }') is NULL


def test_do_while_runs_at_least_once():
    assert run('var n = 0; do { n++; } while (false); n;').value == 1


def test_loop_condition_error_propagates():
    assert_error(run('while (missing) { }'), 'identifier not found: missing')


def test_loop_body_error_stops_loop():
    out = io.StringIO()
    result = run('var i = 0; while (true) { i++; display(i); if (i == 2) { oops; } }', stdout=out)
    assert_error(result, 'identifier not found: oops')
    assert out.getvalue() == '1\n2\n'


def test_if_without_taken_branch_is_null():
    assert run('if (false) { 1; }') is NULL


def test_if_yields_branch_value():
    assert run('if (0) { 1; } else if ("") { 2; } else { 3; }').value == 3


@pytest.mark.parametrize('source,expected', [
    ('!0;', True),
    ('!1;', False),
    ('!0.0;', True),
    ('!"";', True),
    ('!"a";', False),
    ('!true;', False),
    ('fn f(): void { } !f;', False),
    ('var n: int; !n;', True),
])
def test_truthiness(source, expected):
    assert run(source).value is expected


def test_unary_minus_requires_number():
    assert_error(run('-"a";'), "Unsupported operand type for unary '-': 'string'.")


def test_increment_and_decrement():
    assert run('var a = 5; var b = a++; b;').value == 5
    assert run('var a = 5; a++; a;').value == 6
    assert run('var a = 5; ++a;').value == 6
    assert run('var a = 5; --a;').value == 4
    result = run('var f = 1.5; f--; f;')
    assert isinstance(result, FloatValue)
    assert result.value == 0.5


def test_increment_errors():
    assert_error(run('var s = "x"; s++;'), "Operator '++' requires a numeric operand, got 'string'.")
    assert_error(run('const k = 1; k++;'), "Assignment to constant variable 'k'.")
    assert_error(run('nope++;'), 'identifier not found: nope')
    assert_error(run('5++;'), "Operator '++' requires an identifier operand")


@pytest.mark.parametrize('source,expected', [
    ('"a" + 1;', 'a1'),
    ('1 + "a";', '1a'),
    ('"x" + 2.0;', 'x2'),
    ('"v" + true;', 'vtrue'),
    ('"a" + "b";', 'ab'),
])
def test_string_concatenation(source, expected):
    result = run(source)
    assert isinstance(result, StringValue)
    assert result.value == expected


@pytest.mark.parametrize('source,expected', [
    ('"5" == 5;', True),
    ('5 == 5.0;', True),
    ('5 != 5.0;', False),
    ('"a" == "b";', False),
    ('"a" != "b";', True),
    ('true == 1;', False),
    ('true == true;', True),
    ('var n: int; var m: string; n == m;', True),
    ('"apple" < "banana";', True),
    ('2 >= 2.0;', True),
    ('1 < 0.5;', False),
])
def test_comparisons(source, expected):
    result = run(source)
    assert isinstance(result, BooleanValue)
    assert result.value is expected


def test_functions_compare_by_identity():
    assert run('fn f(): void { } var g = f; f == g;').value is True
    assert run('var a = fn(): void { }; var b = fn(): void { }; a == b;').value is False


def test_operator_type_errors():
    assert_error(run('"a" < 1;'), "Unsupported operand types for '<': 'string' and 'int'.")
    assert_error(run('true * 2;'), "Unsupported operand types for '*'")
    assert_error(run('"a" - "b";'), "Unsupported operand types for '-'")


def test_ternary_evaluates_one_branch():
    assert run('true ? 1 : (1 / 0);').value == 1
    assert run('false ? (1 / 0) : 2;').value == 2


def test_display_writes_one_line():
    out = io.StringIO()
    result = run('display(1, 2.5, "three", true, fn(a: int, b: int): int { return a; });', stdout=out)
    assert result is NULL
    assert out.getvalue() == '1 2.5 three true fn(a, b) { ... }\n'


def test_display_aborts_on_first_error():
    out = io.StringIO()
    result = run('display(1, missing, 3);', stdout=out)
    assert_error(result, 'identifier not found: missing')
    assert out.getvalue() == ''


def test_declarations_evaluate_to_null():
    assert run('var a = 1;') is NULL
    assert run('const b = 1;') is NULL
    assert run('fn f(): void { }') is NULL


def test_unsupported_node_kind():
    tok = Token(TokenType.IDENT, 'x', 1, 1)
    node = Parameter(tok, None, TypeNode(tok, 'int'))
    result = Interpreter().evaluate(node, Environment())
    assert_error(result, 'Unsupported AST node type: Parameter')


def test_evaluate_none_is_null():
    assert evaluate(None, Environment()) is NULL


def test_module_level_evaluate_uses_given_environment():
    env = Environment()
    program, _ = parse_program('var answer = 42;')
    evaluate(program, env)
    assert env.get('answer').value == 42


def test_runaway_recursion_becomes_error():
    result = run('fn down(n: int): int { return down(n + 1); } down(0);')
    assert_error(result, "Maximum recursion depth exceeded in function 'down'.")


@pytest.mark.parametrize('depth', [150, 500, 1000])
def test_deep_recursion_completes(depth):
    source = (
        'fn total(n: int): int { if (n == 0) { return 0; } return n + total(n - 1); } '
        f'total({depth});'
    )
    result = run(source)
    assert isinstance(result, IntegerValue)
    assert result.value == depth * (depth + 1) // 2


def test_recursion_limit_is_restored_after_run():
    before = sys.getrecursionlimit()
    run('fn down(n: int): int { return down(n + 1); } down(0);')
    assert sys.getrecursionlimit() == before


def test_function_value_rendering():
    result = run('fn add(a: int, b: int): int { return a + b; } add;')
    assert isinstance(result, FunctionValue)
    assert result.inspect() == 'fn(a, b) { ... }'
    assert result.signature() == 'fn(int, int) => int'


def test_run_program_raises_on_diagnostics():
    with pytest.raises(RubricSyntaxError) as exc:
        run_program('var = 1;')
    assert exc.value.diagnostics


def test_run_program_raises_on_runtime_error():
    with pytest.raises(RubricRuntimeError) as exc:
        run_program('const c = 1; c = 2;')
    assert str(exc.value) == "Assignment to constant variable 'c'."
    assert isinstance(exc.value.err, ErrorSignal)


def test_run_program_returns_final_value():
    assert run_program('var x = 2; x * 21;').value == 42


def test_debug_trace(tmp_path):
    trace = tmp_path / 'trace.txt'
    program, _ = parse_program('''
    fn twice(n: int): int { return n * 2; }
    var total = 0;
    for (var i = 0; i < 2; i++) {
        if (i > 0) { total = total + twice(i); }
    }
    total;
    ''')
    interp = Interpreter(debug_level=3, debug_file=str(trace))
    assert interp.run(program).value == 2
    text = trace.read_text(encoding='utf-8')
    assert 'run program (4 statements)' in text
    assert 'define function twice: fn(int) => int' in text
    assert 'declare var total: int = 0' in text
    assert 'for iteration 2' in text
    assert 'if condition true -> True' in text
    assert 'call twice(1)' in text
    assert 'result: 2' in text


def test_debug_level_zero_writes_nothing(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    run_program('var x = 1;')
    assert not (tmp_path / 'debug.txt').exists()


def test_debug_file_is_only_opened_by_run(tmp_path):
    trace = tmp_path / 'trace.txt'
    interp = Interpreter(debug_level=2, debug_file=str(trace))
    assert interp.debug_fp is None
    assert evaluate(parse_program('1 + 1;')[0], Environment()).value == 2
    assert interp.evaluate(parse_program('var a = 1; a;')[0], Environment()).value == 1
    assert not trace.exists()
    interp.run(parse_program('var b = 2;')[0])
    assert interp.debug_fp is None
    assert 'declare var b: int = 2' in trace.read_text(encoding='utf-8')
