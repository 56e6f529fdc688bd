"""Parser for the Rubric language.

Expressions are parsed with a Pratt (precedence climbing) parser: each
token kind may register a prefix handler and an infix handler, and the
main loop keeps folding infix operators into the left operand while the
upcoming operator binds tighter than the caller's threshold. Statements
are parsed by one routine per leading keyword.

The parser never raises on malformed input. Problems are appended to
`Parser.errors` and the offending construct is dropped; the caller
decides whether the program may be evaluated. Every statement routine
leaves the cursor on the statement's last token (`;` or `}`) and the
statement loops step past it.

Declarations get a light, local type check: literal initializers are
inferred and must agree with an explicit annotation, and function
parameters must be annotated.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Callable, Dict, List, Optional, Tuple, Union

from .ast import (
    AssignmentExpression, BlockStatement, BooleanLiteral, CallExpression,
    ConstStatement, DisplayStatement, DoWhileStatement, Expression,
    ExpressionStatement, FloatLiteral, ForStatement, FunctionDeclaration,
    FunctionLiteral, Identifier, IfStatement, InfixExpression, IntegerLiteral,
    Parameter, PostfixExpression, PrefixExpression, Program, ReturnStatement,
    Statement, StringLiteral, TernaryExpression, TypeNode, VarStatement,
    WhileStatement,
)
from .lexer import Lexer
from .tokens import TYPE_TOKENS, Token, TokenType


class Precedence(IntEnum):
    LOWEST = 1
    ASSIGN = 2
    TERNARY = 3
    LOGICAL = 4
    EQUALS = 5
    LESSGREATER = 6
    SUM = 7
    PRODUCT = 8
    PREFIX = 9
    POSTFIX = 10
    CALL = 11


PRECEDENCES: Dict[TokenType, Precedence] = {
    TokenType.ASSIGN: Precedence.ASSIGN,
    TokenType.QUESTION: Precedence.TERNARY,
    TokenType.AND: Precedence.LOGICAL,
    TokenType.OR: Precedence.LOGICAL,
    TokenType.EQ: Precedence.EQUALS,
    TokenType.NOT_EQ: Precedence.EQUALS,
    TokenType.LT: Precedence.LESSGREATER,
    TokenType.GT: Precedence.LESSGREATER,
    TokenType.LT_EQ: Precedence.LESSGREATER,
    TokenType.GT_EQ: Precedence.LESSGREATER,
    TokenType.PLUS: Precedence.SUM,
    TokenType.MINUS: Precedence.SUM,
    TokenType.ASTERISK: Precedence.PRODUCT,
    TokenType.SLASH: Precedence.PRODUCT,
    TokenType.PERCENT: Precedence.PRODUCT,
    TokenType.INCREMENT: Precedence.POSTFIX,
    TokenType.DECREMENT: Precedence.POSTFIX,
    TokenType.LPAREN: Precedence.CALL,
}

BINARY_OPERATORS = (
    TokenType.PLUS, TokenType.MINUS, TokenType.ASTERISK, TokenType.SLASH,
    TokenType.PERCENT, TokenType.EQ, TokenType.NOT_EQ, TokenType.LT,
    TokenType.GT, TokenType.LT_EQ, TokenType.GT_EQ, TokenType.AND, TokenType.OR,
)

PrefixFn = Callable[[], Optional[Expression]]
InfixFn = Callable[[Expression], Optional[Expression]]


class Parser:
    def __init__(self, lexer):
        self.lexer = lexer
        self.errors: List[str] = []
        self.in_function = False
        self.cur_token: Token = lexer.next_token()
        self.peek_token: Token = lexer.next_token()

        self.prefix_fns: Dict[TokenType, PrefixFn] = {
            TokenType.IDENT: self.parse_identifier,
            TokenType.INT: self.parse_integer_literal,
            TokenType.FLOAT: self.parse_float_literal,
            TokenType.STRING: self.parse_string_literal,
            TokenType.BOOLEAN: self.parse_boolean_literal,
            TokenType.BANG: self.parse_prefix_expression,
            TokenType.MINUS: self.parse_prefix_expression,
            TokenType.INCREMENT: self.parse_prefix_expression,
            TokenType.DECREMENT: self.parse_prefix_expression,
            TokenType.LPAREN: self.parse_grouped_expression,
            TokenType.FUNCTION: self.parse_function_literal,
        }
        self.infix_fns: Dict[TokenType, InfixFn] = {
            op: self.parse_infix_expression for op in BINARY_OPERATORS
        }
        self.infix_fns[TokenType.ASSIGN] = self.parse_assignment_expression
        self.infix_fns[TokenType.QUESTION] = self.parse_ternary_expression
        self.infix_fns[TokenType.INCREMENT] = self.parse_postfix_expression
        self.infix_fns[TokenType.DECREMENT] = self.parse_postfix_expression
        self.infix_fns[TokenType.LPAREN] = self.parse_call_expression

    # Token helpers

    def next_token(self) -> None:
        self.cur_token = self.peek_token
        self.peek_token = self.lexer.next_token()

    def cur_token_is(self, kind: TokenType) -> bool:
        return self.cur_token.type == kind

    def peek_token_is(self, kind: TokenType) -> bool:
        return self.peek_token.type == kind

    def expect_peek(self, kind: TokenType) -> bool:
        if self.peek_token_is(kind):
            self.next_token()
            return True
        self.peek_error(kind)
        return False

    def peek_error(self, kind: TokenType) -> None:
        self.errors.append(
            f"Expected next token to be {kind.name}, got {self.peek_token.type.name} "
            f"at line {self.peek_token.line}"
        )

    def peek_precedence(self) -> Precedence:
        return PRECEDENCES.get(self.peek_token.type, Precedence.LOWEST)

    def cur_precedence(self) -> Precedence:
        return PRECEDENCES.get(self.cur_token.type, Precedence.LOWEST)

    # Program and statements

    def parse_program(self) -> Program:
        program = Program(self.cur_token)
        while not self.cur_token_is(TokenType.EOF):
            stmt = self.parse_statement()
            if stmt is not None:
                program.statements.append(stmt)
            self.next_token()
        return program

    def parse_statement(self) -> Optional[Statement]:
        kind = self.cur_token.type
        if kind == TokenType.SEMICOLON:
            # stray semicolons are empty statements
            return None
        if kind == TokenType.VAR:
            return self.parse_var_statement()
        if kind == TokenType.CONST:
            return self.parse_const_statement()
        if kind == TokenType.IF:
            return self.parse_if_statement()
        if kind == TokenType.FOR:
            return self.parse_for_statement()
        if kind == TokenType.WHILE:
            return self.parse_while_statement()
        if kind == TokenType.DO:
            return self.parse_do_while_statement()
        if kind == TokenType.FUNCTION and self.peek_token_is(TokenType.IDENT):
            return self.parse_function_declaration()
        if kind == TokenType.RETURN:
            return self.parse_return_statement()
        if kind == TokenType.DISPLAY:
            return self.parse_display_statement()
        if kind == TokenType.LBRACE:
            return self.parse_block_statement()
        return self.parse_expression_statement()

    def parse_block_statement(self) -> Optional[BlockStatement]:
        block = BlockStatement(self.cur_token)
        self.next_token()
        while not self.cur_token_is(TokenType.RBRACE):
            if self.cur_token_is(TokenType.EOF):
                self.errors.append(
                    f"Unterminated block starting at line {block.token.line}: expected '}}' before end of input"
                )
                return None
            stmt = self.parse_statement()
            if stmt is not None:
                block.statements.append(stmt)
            self.next_token()
        return block

    def expect_block(self) -> Optional[BlockStatement]:
        if not self.expect_peek(TokenType.LBRACE):
            return None
        return self.parse_block_statement()

    def parse_var_statement(self) -> Optional[VarStatement]:
        token = self.cur_token
        if not self.expect_peek(TokenType.IDENT):
            return None
        name = Identifier(self.cur_token, self.cur_token.literal)

        annotation: Optional[TypeNode] = None
        if self.peek_token_is(TokenType.COLON):
            annotation = self.parse_type_annotation()
            if annotation is None:
                return None

        value: Optional[Expression] = None
        if self.peek_token_is(TokenType.ASSIGN):
            self.next_token()
            self.next_token()
            value = self.parse_expression(Precedence.LOWEST)
            if value is None:
                return None
        elif annotation is None:
            self.errors.append(
                f"Variable '{name.value}' at line {name.line} must have a type annotation or an initializer."
            )
            return None

        if value is not None:
            annotation = self.check_declared_type('variable', name, annotation, value)
            if annotation is False:
                return None

        if not self.expect_peek(TokenType.SEMICOLON):
            return None
        return VarStatement(token, name, annotation, value)

    def parse_const_statement(self) -> Optional[ConstStatement]:
        token = self.cur_token
        if not self.expect_peek(TokenType.IDENT):
            return None
        name = Identifier(self.cur_token, self.cur_token.literal)

        annotation: Optional[TypeNode] = None
        if self.peek_token_is(TokenType.COLON):
            annotation = self.parse_type_annotation()
            if annotation is None:
                return None

        if not self.peek_token_is(TokenType.ASSIGN):
            self.errors.append(
                f"Expected '=' after const identifier '{name.value}' at line {name.line}. "
                f"Constants must be initialized."
            )
            return None
        self.next_token()
        self.next_token()
        value = self.parse_expression(Precedence.LOWEST)
        if value is None:
            return None

        annotation = self.check_declared_type('constant', name, annotation, value)
        if annotation is False:
            return None

        if not self.expect_peek(TokenType.SEMICOLON):
            return None
        return ConstStatement(token, name, annotation, value)

    def check_declared_type(self, what: str, name: Identifier, annotation: Optional[TypeNode],
                            value: Expression) -> Union[TypeNode, None, bool]:
        """Reconcile an explicit annotation with the type inferred from `value`.

        Returns the annotation to store (the inferred one when none was
        written, possibly None for dynamically typed declarations) or False
        after reporting a mismatch.
        """
        inferred = infer_type(value)
        if annotation is None:
            return inferred
        if inferred is not None and inferred.name != annotation.name:
            self.errors.append(
                f"Type mismatch for {what} '{name.value}' at line {name.line}. "
                f"Explicitly typed as '{annotation.name}' but initializer is of inferred type '{inferred.name}'."
            )
            return False
        return annotation

    def parse_type_annotation(self) -> Optional[TypeNode]:
        """Parse `: type`, starting with the colon as the peek token."""
        if not self.expect_peek(TokenType.COLON):
            return None
        return self.parse_type()

    def parse_type(self) -> Optional[TypeNode]:
        peek = self.peek_token
        if peek.type == TokenType.FUNCTION:
            self.next_token()
            return self.parse_function_type()
        if peek.type not in TYPE_TOKENS:
            self.errors.append(
                f"Invalid token for type annotation: '{peek.literal}' ({peek.type.name}) at line {peek.line}. "
                f"Expected a built-in type (int, float, string, boolean, void), "
                f"a function type or an identifier for the type name."
            )
            return None
        self.next_token()
        return TypeNode(self.cur_token, self.cur_token.literal)

    def parse_function_type(self) -> Optional[TypeNode]:
        # fn(int, string) => boolean
        token = self.cur_token
        if not self.expect_peek(TokenType.LPAREN):
            return None
        params: List[str] = []
        if self.peek_token_is(TokenType.RPAREN):
            self.next_token()
        else:
            while True:
                param = self.parse_type()
                if param is None:
                    return None
                params.append(param.name)
                if not self.peek_token_is(TokenType.COMMA):
                    break
                self.next_token()
            if not self.expect_peek(TokenType.RPAREN):
                return None
        if not self.expect_peek(TokenType.ARROW):
            return None
        result = self.parse_type()
        if result is None:
            return None
        return TypeNode(token, f"fn({', '.join(params)}) => {result.name}")

    def parse_if_statement(self) -> Optional[IfStatement]:
        token = self.cur_token
        if not self.expect_peek(TokenType.LPAREN):
            return None
        self.next_token()
        condition = self.parse_expression(Precedence.LOWEST)
        if condition is None:
            return None
        if not self.expect_peek(TokenType.RPAREN):
            return None
        consequence = self.expect_block()
        if consequence is None:
            return None

        alternative = None
        if self.peek_token_is(TokenType.ELSE):
            self.next_token()
            if self.peek_token_is(TokenType.IF):
                self.next_token()
                alternative = self.parse_if_statement()
            elif self.peek_token_is(TokenType.LBRACE):
                self.next_token()
                alternative = self.parse_block_statement()
            else:
                self.errors.append(
                    f"Expected 'if' or '{{' after 'else', got {self.peek_token.type.name} "
                    f"at line {self.peek_token.line}"
                )
                return None
            if alternative is None:
                return None
        return IfStatement(token, condition, consequence, alternative)

    def parse_while_statement(self) -> Optional[WhileStatement]:
        token = self.cur_token
        if not self.expect_peek(TokenType.LPAREN):
            return None
        self.next_token()
        condition = self.parse_expression(Precedence.LOWEST)
        if condition is None:
            return None
        if not self.expect_peek(TokenType.RPAREN):
            return None
        body = self.expect_block()
        if body is None:
            return None
        return WhileStatement(token, condition, body)

    def parse_do_while_statement(self) -> Optional[DoWhileStatement]:
        token = self.cur_token
        body = self.expect_block()
        if body is None:
            return None
        if not self.expect_peek(TokenType.WHILE):
            return None
        if not self.expect_peek(TokenType.LPAREN):
            return None
        self.next_token()
        condition = self.parse_expression(Precedence.LOWEST)
        if condition is None:
            return None
        if not self.expect_peek(TokenType.RPAREN):
            return None
        if not self.expect_peek(TokenType.SEMICOLON):
            return None
        return DoWhileStatement(token, body, condition)

    def parse_for_statement(self) -> Optional[ForStatement]:
        token = self.cur_token
        if not self.expect_peek(TokenType.LPAREN):
            return None
        self.next_token()

        # initializer: a var declaration, an expression statement or nothing
        init: Optional[Statement] = None
        if not self.cur_token_is(TokenType.SEMICOLON):
            if self.cur_token_is(TokenType.VAR):
                init = self.parse_var_statement()
            else:
                init = self.parse_expression_statement()
            if init is None:
                return None

        condition: Optional[Expression] = None
        if self.peek_token_is(TokenType.SEMICOLON):
            self.next_token()
        else:
            self.next_token()
            condition = self.parse_expression(Precedence.LOWEST)
            if condition is None:
                return None
            if not self.expect_peek(TokenType.SEMICOLON):
                return None

        update: Optional[Expression] = None
        if not self.peek_token_is(TokenType.RPAREN):
            self.next_token()
            update = self.parse_expression(Precedence.LOWEST)
            if update is None:
                return None
        if not self.expect_peek(TokenType.RPAREN):
            return None

        body = self.expect_block()
        if body is None:
            return None
        return ForStatement(token, init, condition, update, body)

    def parse_parameters(self) -> Optional[List[Parameter]]:
        """Parse `(name: type, ...)`, starting with the opening paren as current token."""
        params: List[Parameter] = []
        if self.peek_token_is(TokenType.RPAREN):
            self.next_token()
            return params
        while True:
            if not self.expect_peek(TokenType.IDENT):
                return None
            name = Identifier(self.cur_token, self.cur_token.literal)
            if not self.peek_token_is(TokenType.COLON):
                self.errors.append(
                    f"Parameter '{name.value}' at line {name.line} must have a type annotation."
                )
                return None
            annotation = self.parse_type_annotation()
            if annotation is None:
                return None
            params.append(Parameter(name.token, name, annotation))
            if not self.peek_token_is(TokenType.COMMA):
                break
            self.next_token()
        if not self.expect_peek(TokenType.RPAREN):
            return None
        return params

    def parse_function_signature(self, token: Token) -> Optional[Tuple[List[Parameter], TypeNode, BlockStatement]]:
        if not self.expect_peek(TokenType.LPAREN):
            return None
        params = self.parse_parameters()
        if params is None:
            return None
        if self.peek_token_is(TokenType.COLON):
            return_type = self.parse_type_annotation()
            if return_type is None:
                return None
        else:
            return_type = TypeNode(Token(TokenType.TYPE_VOID, 'void', token.line, token.column), 'void')
        if not self.expect_peek(TokenType.LBRACE):
            return None

        was_in_function = self.in_function
        self.in_function = True
        try:
            body = self.parse_block_statement()
        finally:
            self.in_function = was_in_function
        if body is None:
            return None
        return params, return_type, body

    def parse_function_declaration(self) -> Optional[FunctionDeclaration]:
        token = self.cur_token
        self.next_token()
        name = Identifier(self.cur_token, self.cur_token.literal)
        signature = self.parse_function_signature(token)
        if signature is None:
            return None
        params, return_type, body = signature
        return FunctionDeclaration(token, name, params, return_type, body)

    def parse_return_statement(self) -> Optional[ReturnStatement]:
        token = self.cur_token
        if not self.in_function:
            self.errors.append(
                f"Return statement is not allowed outside of a function body at line {token.line}"
            )
            return None
        if self.peek_token_is(TokenType.SEMICOLON):
            self.next_token()
            return ReturnStatement(token, None)
        self.next_token()
        value = self.parse_expression(Precedence.LOWEST)
        if value is None:
            return None
        if not self.expect_peek(TokenType.SEMICOLON):
            return None
        return ReturnStatement(token, value)

    def parse_display_statement(self) -> Optional[DisplayStatement]:
        token = self.cur_token
        if not self.expect_peek(TokenType.LPAREN):
            return None
        args = self.parse_expression_list(TokenType.RPAREN)
        if args is None:
            return None
        if not self.expect_peek(TokenType.SEMICOLON):
            return None
        return DisplayStatement(token, args)

    def parse_expression_statement(self) -> Optional[ExpressionStatement]:
        token = self.cur_token
        expression = self.parse_expression(Precedence.LOWEST)
        if expression is None:
            return None
        if not self.expect_peek(TokenType.SEMICOLON):
            return None
        return ExpressionStatement(token, expression)

    # Expressions

    def parse_expression(self, precedence: Precedence) -> Optional[Expression]:
        prefix = self.prefix_fns.get(self.cur_token.type)
        if prefix is None:
            self.errors.append(
                f"No prefix parse function found for token {self.cur_token.type.name} "
                f"('{self.cur_token.literal}') at line {self.cur_token.line}"
            )
            return None
        left = prefix()

        while left is not None and not self.peek_token_is(TokenType.SEMICOLON) \
                and precedence < self.peek_precedence():
            infix = self.infix_fns.get(self.peek_token.type)
            if infix is None:
                break
            self.next_token()
            left = infix(left)
        return left

    def parse_expression_list(self, end: TokenType) -> Optional[List[Expression]]:
        args: List[Expression] = []
        if self.peek_token_is(end):
            self.next_token()
            return args
        self.next_token()
        arg = self.parse_expression(Precedence.LOWEST)
        if arg is None:
            return None
        args.append(arg)
        while self.peek_token_is(TokenType.COMMA):
            self.next_token()
            self.next_token()
            arg = self.parse_expression(Precedence.LOWEST)
            if arg is None:
                return None
            args.append(arg)
        if not self.expect_peek(end):
            return None
        return args

    def parse_identifier(self) -> Expression:
        return Identifier(self.cur_token, self.cur_token.literal)

    def parse_integer_literal(self) -> Expression:
        return IntegerLiteral(self.cur_token, int(self.cur_token.literal))

    def parse_float_literal(self) -> Expression:
        return FloatLiteral(self.cur_token, float(self.cur_token.literal))

    def parse_string_literal(self) -> Expression:
        return StringLiteral(self.cur_token, self.cur_token.literal)

    def parse_boolean_literal(self) -> Expression:
        return BooleanLiteral(self.cur_token, self.cur_token.literal == 'true')

    def parse_grouped_expression(self) -> Optional[Expression]:
        self.next_token()
        expression = self.parse_expression(Precedence.LOWEST)
        if expression is None:
            return None
        if not self.expect_peek(TokenType.RPAREN):
            return None
        return expression

    def parse_prefix_expression(self) -> Optional[Expression]:
        token = self.cur_token
        self.next_token()
        right = self.parse_expression(Precedence.PREFIX)
        if right is None:
            return None
        return PrefixExpression(token, token.literal, right)

    def parse_infix_expression(self, left: Expression) -> Optional[Expression]:
        token = self.cur_token
        precedence = self.cur_precedence()
        self.next_token()
        right = self.parse_expression(precedence)
        if right is None:
            return None
        return InfixExpression(token, left, token.literal, right)

    def parse_postfix_expression(self, left: Expression) -> Expression:
        return PostfixExpression(self.cur_token, left, self.cur_token.literal)

    def parse_assignment_expression(self, left: Expression) -> Optional[Expression]:
        token = self.cur_token
        if not isinstance(left, Identifier):
            self.errors.append(
                f"Invalid assignment target at line {token.line}. "
                f"Expected an identifier, got {type(left).__name__}."
            )
            return None
        self.next_token()
        # right associative: a = b = c is a = (b = c)
        value = self.parse_expression(Precedence(Precedence.ASSIGN - 1))
        if value is None:
            return None
        return AssignmentExpression(token, left, value)

    def parse_ternary_expression(self, condition: Expression) -> Optional[Expression]:
        token = self.cur_token
        self.next_token()
        consequence = self.parse_expression(Precedence.LOWEST)
        if consequence is None:
            return None
        if not self.expect_peek(TokenType.COLON):
            return None
        self.next_token()
        alternative = self.parse_expression(Precedence.LOWEST)
        if alternative is None:
            return None
        return TernaryExpression(token, condition, consequence, alternative)

    def parse_call_expression(self, function: Expression) -> Optional[Expression]:
        token = self.cur_token
        args = self.parse_expression_list(TokenType.RPAREN)
        if args is None:
            return None
        return CallExpression(token, function, args)

    def parse_function_literal(self) -> Optional[Expression]:
        token = self.cur_token
        signature = self.parse_function_signature(token)
        if signature is None:
            return None
        params, return_type, body = signature
        return FunctionLiteral(token, params, return_type, body)


def infer_type(expression: Expression) -> Optional[TypeNode]:
    """Infer a declaration type from the literal shape of an initializer.

    Only literals (optionally negated numbers) and function literals have
    an inferable type; anything else yields None.
    """
    if isinstance(expression, PrefixExpression) and expression.operator == '-' \
            and isinstance(expression.right, (IntegerLiteral, FloatLiteral)):
        return infer_type(expression.right)
    if isinstance(expression, IntegerLiteral):
        name = 'int'
    elif isinstance(expression, FloatLiteral):
        name = 'float'
    elif isinstance(expression, StringLiteral):
        name = 'string'
    elif isinstance(expression, BooleanLiteral):
        name = 'boolean'
    elif isinstance(expression, FunctionLiteral):
        params = ', '.join(p.type_annotation.name for p in expression.parameters)
        name = f'fn({params}) => {expression.return_type.name}'
    else:
        return None
    tok = expression.token
    return TypeNode(Token(TokenType.IDENT, name, tok.line, tok.column), name)


def parse_program(source: Union[str, Lexer]) -> Tuple[Program, List[str]]:
    """Parse source text (or any token source) into a program and its diagnostics."""
    lexer = Lexer(source) if isinstance(source, str) else source
    parser = Parser(lexer)
    program = parser.parse_program()
    return program, parser.errors
