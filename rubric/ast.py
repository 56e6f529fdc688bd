"""Abstract Syntax Tree (AST) definitions for Rubric.

Every node keeps the token that introduced it so diagnostics and traces
can point back at the source. `str(node)` renders a canonical,
fully parenthesised form of the node: parsing that text again yields a
tree that prints identically, which is what the parser tests rely on.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Union

from .tokens import Token


@dataclass
class Node:
    """Base class for all AST nodes."""
    token: Token

    def token_literal(self) -> str:
        return self.token.literal

    @property
    def line(self) -> int:
        return self.token.line


class Expression(Node):
    pass


class Statement(Node):
    pass


@dataclass
class TypeNode(Node):
    # 'int', 'float', 'string', 'boolean', 'void', a user name, or a
    # function signature such as 'fn(int, int) => int'
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass
class Program(Node):
    statements: List[Statement] = field(default_factory=list)

    def __str__(self) -> str:
        return '\n'.join(str(s) for s in self.statements)


# Expressions

@dataclass
class Identifier(Expression):
    value: str

    def __str__(self) -> str:
        return self.value


@dataclass
class IntegerLiteral(Expression):
    value: int

    def __str__(self) -> str:
        return self.token.literal


@dataclass
class FloatLiteral(Expression):
    value: float

    def __str__(self) -> str:
        return self.token.literal


@dataclass
class StringLiteral(Expression):
    value: str

    def __str__(self) -> str:
        if '"' in self.value:
            return f"'{self.value}'"
        return f'"{self.value}"'


@dataclass
class BooleanLiteral(Expression):
    value: bool

    def __str__(self) -> str:
        return 'true' if self.value else 'false'


@dataclass
class PrefixExpression(Expression):
    operator: str
    right: Expression

    def __str__(self) -> str:
        return f'({self.operator}{self.right})'


@dataclass
class PostfixExpression(Expression):
    left: Expression
    operator: str

    def __str__(self) -> str:
        return f'({self.left}{self.operator})'


@dataclass
class InfixExpression(Expression):
    left: Expression
    operator: str
    right: Expression

    def __str__(self) -> str:
        return f'({self.left} {self.operator} {self.right})'


@dataclass
class TernaryExpression(Expression):
    condition: Expression
    consequence: Expression
    alternative: Expression

    def __str__(self) -> str:
        return f'({self.condition} ? {self.consequence} : {self.alternative})'


@dataclass
class AssignmentExpression(Expression):
    name: Identifier
    value: Expression

    def __str__(self) -> str:
        return f'({self.name} = {self.value})'


@dataclass
class CallExpression(Expression):
    function: Expression
    arguments: List[Expression] = field(default_factory=list)

    def __str__(self) -> str:
        args = ', '.join(str(a) for a in self.arguments)
        return f'{self.function}({args})'


@dataclass
class Parameter(Node):
    name: Identifier
    type_annotation: TypeNode

    def __str__(self) -> str:
        return f'{self.name}: {self.type_annotation}'


@dataclass
class FunctionLiteral(Expression):
    parameters: List[Parameter]
    return_type: TypeNode
    body: 'BlockStatement'

    def __str__(self) -> str:
        params = ', '.join(str(p) for p in self.parameters)
        return f'fn({params}): {self.return_type} {self.body}'


# Statements

@dataclass
class VarStatement(Statement):
    name: Identifier
    type_annotation: Optional[TypeNode]
    value: Optional[Expression]

    def __str__(self) -> str:
        out = f'var {self.name}'
        if self.type_annotation is not None:
            out += f': {self.type_annotation}'
        if self.value is not None:
            out += f' = {self.value}'
        return out + ';'


@dataclass
class ConstStatement(Statement):
    name: Identifier
    type_annotation: Optional[TypeNode]
    value: Expression

    def __str__(self) -> str:
        out = f'const {self.name}'
        if self.type_annotation is not None:
            out += f': {self.type_annotation}'
        return out + f' = {self.value};'


@dataclass
class ReturnStatement(Statement):
    return_value: Optional[Expression]

    def __str__(self) -> str:
        if self.return_value is None:
            return 'return;'
        return f'return {self.return_value};'


@dataclass
class ExpressionStatement(Statement):
    expression: Expression

    def __str__(self) -> str:
        return f'{self.expression};'


@dataclass
class BlockStatement(Statement):
    statements: List[Statement] = field(default_factory=list)

    def __str__(self) -> str:
        if not self.statements:
            return '{ }'
        return '{ ' + ' '.join(str(s) for s in self.statements) + ' }'


@dataclass
class IfStatement(Statement):
    condition: Expression
    consequence: BlockStatement
    alternative: Optional[Union[BlockStatement, 'IfStatement']] = None

    def __str__(self) -> str:
        out = f'if ({self.condition}) {self.consequence}'
        if self.alternative is not None:
            out += f' else {self.alternative}'
        return out


@dataclass
class ForStatement(Statement):
    init: Optional[Statement]
    condition: Optional[Expression]
    update: Optional[Expression]
    body: BlockStatement

    def __str__(self) -> str:
        init = str(self.init) if self.init is not None else ';'
        cond = f' {self.condition};' if self.condition is not None else ';'
        update = f' {self.update}' if self.update is not None else ''
        return f'for ({init}{cond}{update}) {self.body}'


@dataclass
class WhileStatement(Statement):
    condition: Expression
    body: BlockStatement

    def __str__(self) -> str:
        return f'while ({self.condition}) {self.body}'


@dataclass
class DoWhileStatement(Statement):
    body: BlockStatement
    condition: Expression

    def __str__(self) -> str:
        return f'do {self.body} while ({self.condition});'


@dataclass
class FunctionDeclaration(Statement):
    name: Identifier
    parameters: List[Parameter]
    return_type: TypeNode
    body: BlockStatement

    def __str__(self) -> str:
        params = ', '.join(str(p) for p in self.parameters)
        return f'fn {self.name}({params}): {self.return_type} {self.body}'


@dataclass
class DisplayStatement(Statement):
    arguments: List[Expression] = field(default_factory=list)

    def __str__(self) -> str:
        args = ', '.join(str(a) for a in self.arguments)
        return f'display({args});'
