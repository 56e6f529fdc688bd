"""Runtime value model for Rubric.

Every value the evaluator produces is one of the classes below. They
share two accessors: `type()` returns the `ObjectType` tag and
`inspect()` returns the debug string used by `display`, string
concatenation and loose equality.

`ReturnSignal` and `ErrorSignal` are values too. They never escape into
user-visible bindings; the evaluator propagates them outward until a
function call unwraps a return, or the driver reports an error.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, List, Optional
import math

if TYPE_CHECKING:
    from .ast import BlockStatement, Parameter, TypeNode
    from .environment import Environment


class ObjectType(str, Enum):
    INTEGER = 'INTEGER'
    FLOAT = 'FLOAT'
    BOOLEAN = 'BOOLEAN'
    STRING = 'STRING'
    NULL = 'NULL'
    FUNCTION = 'FUNCTION'
    RETURN_VALUE = 'RETURN_VALUE'
    ERROR = 'ERROR'


class Value:
    """Base class for all runtime values."""

    def type(self) -> ObjectType:
        raise NotImplementedError

    def inspect(self) -> str:
        raise NotImplementedError

    def __str__(self) -> str:
        return self.inspect()


@dataclass(eq=False)
class IntegerValue(Value):
    value: int

    def type(self) -> ObjectType:
        return ObjectType.INTEGER

    def inspect(self) -> str:
        return str(self.value)


@dataclass(eq=False)
class FloatValue(Value):
    value: float

    def type(self) -> ObjectType:
        return ObjectType.FLOAT

    def inspect(self) -> str:
        return format_float(self.value)


@dataclass(eq=False)
class BooleanValue(Value):
    value: bool

    def type(self) -> ObjectType:
        return ObjectType.BOOLEAN

    def inspect(self) -> str:
        return 'true' if self.value else 'false'


@dataclass(eq=False)
class StringValue(Value):
    value: str

    def type(self) -> ObjectType:
        return ObjectType.STRING

    def inspect(self) -> str:
        return self.value


class NullValue(Value):
    """Marker object for the Rubric `null` value."""

    def type(self) -> ObjectType:
        return ObjectType.NULL

    def inspect(self) -> str:
        return 'null'

    def __repr__(self) -> str:
        return 'NullValue()'


NULL = NullValue()
TRUE = BooleanValue(True)
FALSE = BooleanValue(False)


def native_bool(value: bool) -> BooleanValue:
    return TRUE if value else FALSE


class FunctionValue(Value):
    """A user-defined function together with the scope it was created in.

    Named functions come from `fn name(...)` declarations; function
    literals leave `name` unset. `env` is the defining environment, which
    stays alive for as long as the function value is reachable.
    """

    def __init__(self, parameters: List['Parameter'], body: 'BlockStatement', env: 'Environment',
                 return_type: 'TypeNode', name: Optional[str] = None):
        self.parameters = parameters
        self.body = body
        self.env = env
        self.return_type = return_type
        self.name = name

    def type(self) -> ObjectType:
        return ObjectType.FUNCTION

    def display_name(self) -> str:
        return self.name or 'anonymous'

    def signature(self) -> str:
        params = ', '.join(p.type_annotation.name for p in self.parameters)
        return f'fn({params}) => {self.return_type.name}'

    def inspect(self) -> str:
        params = ', '.join(p.name.value for p in self.parameters)
        return f'fn({params}) {{ ... }}'

    def __repr__(self) -> str:
        return f"<function {self.display_name()}>"


@dataclass(eq=False)
class ReturnSignal(Value):
    """Wraps the value of a `return` while it unwinds to the call site."""
    value: Value

    def type(self) -> ObjectType:
        return ObjectType.RETURN_VALUE

    def inspect(self) -> str:
        return self.value.inspect()


@dataclass(eq=False)
class ErrorSignal(Value):
    """A runtime error travelling outward through the evaluator.

    Errors are not first-class: the language has no way to catch them, so
    an ErrorSignal always ends the program unless the host inspects it.
    """
    message: str

    def type(self) -> ObjectType:
        return ObjectType.ERROR

    def inspect(self) -> str:
        return f'ERROR: {self.message}'


def format_float(x: float) -> str:
    """Render a float the way Rubric prints numbers.

    Integral floats drop their fractional part (`10.0` prints as `10`),
    so a Float and an Integer holding the same number look identical.
    """
    if math.isnan(x):
        return 'NaN'
    if math.isinf(x):
        return 'Infinity' if x > 0 else '-Infinity'
    if x.is_integer() and abs(x) < 1e21:
        return str(int(x))
    return repr(x)


_TYPE_NAMES = {
    ObjectType.INTEGER: 'int',
    ObjectType.FLOAT: 'float',
    ObjectType.STRING: 'string',
    ObjectType.BOOLEAN: 'boolean',
    ObjectType.NULL: 'null',
    ObjectType.FUNCTION: 'function',
    ObjectType.ERROR: 'error',
    ObjectType.RETURN_VALUE: 'return',
}


def type_name(value: Value) -> str:
    """Return the Rubric type name of a runtime value, as written in annotations."""
    return _TYPE_NAMES[value.type()]


def is_truthy(value: Value) -> bool:
    # Truthiness rules: null and signals are falsy, functions always truthy
    if isinstance(value, BooleanValue):
        return value.value
    if isinstance(value, (IntegerValue, FloatValue)):
        return value.value != 0
    if isinstance(value, StringValue):
        return len(value.value) > 0
    if isinstance(value, FunctionValue):
        return True
    return False


def is_error(value: Any) -> bool:
    return isinstance(value, ErrorSignal)


def is_number(value: Value) -> bool:
    return isinstance(value, (IntegerValue, FloatValue))
