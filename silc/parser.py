"""Recursive-descent parser for Sil.

One method per grammar production; the current token is the only
lookahead and nothing is ever backtracked. The first mismatch raises and
no partial tree is returned.

    root        := (fnDecl | externDecl)* EOF
    externDecl  := "extern" fnProto ";"
    fnDecl      := fnProto block
    fnProto     := "fn" IDENT "(" (pattern ("," pattern)*)? ")" ("->" typeName)?
    pattern     := IDENT ":" typeName
    typeName    := "*" typeName | primitive
    block       := "{" statement* "}"
    statement   := "return" expression ";" | ifExpr | expression ";"
    expression  := term (("+" | "-") term)*
    term        := primary (("*" | "/") primary)*
    primary     := NUMBER | STRING | IDENT "(" args? ")" | IDENT
                 | "(" expression ")" | ifExpr
    ifExpr      := "if" expression block ("else" (ifExpr | block))?
"""
import re
from typing import List

from .ast import (
    PRIMITIVES, Block, Expression, ExpressionFunction, ExpressionIdentifier,
    ExpressionIf, ExpressionNumber, ExpressionString, ExternFn, Fn, FnProto,
    InfixOperator, OperatorKind, Pattern, Primitive, Root, Statement,
    StatementExpression, StatementReturn, TypeName,
)
from .diagnostics import LexError, SilSyntaxError, Source, UnknownTypeError
from .lexer import EOF, Token, describe, tokenize

ADDITIVE = {"PLUS": OperatorKind.ADD, "MINUS": OperatorKind.SUB}
MULTIPLICATIVE = {"TIMES": OperatorKind.MUL, "DIVIDE": OperatorKind.DIV}

ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "0": "\0", "\\": "\\", "\"": "\""}
ESCAPE_RE = re.compile(r"\\(x[0-9A-Fa-f]{2}|.)")


class Parser:
    def __init__(self, src: Source, tokens: List[Token]):
        if not tokens or tokens[-1].kind != EOF:
            raise ValueError("token sequence must end with an EOF token")
        self.src = src
        self.tokens = tokens
        self.index = 0

    # ---- token cursor

    @property
    def current(self) -> Token:
        return self.tokens[self.index]

    def advance(self) -> Token:
        tok = self.tokens[self.index]
        if tok.kind != EOF:
            self.index += 1
        return tok

    def at(self, kind: str) -> bool:
        return self.current.kind == kind

    def expect(self, kind: str, what: str = None) -> Token:
        tok = self.current
        if tok.kind != kind:
            raise self.error(what or describe(kind))
        return self.advance()

    def error(self, expected: str) -> SilSyntaxError:
        tok = self.current
        return SilSyntaxError(expected, self._describe_token(tok), self.src, tok.start)

    def _describe_token(self, tok: Token) -> str:
        if tok.kind in ("NAME", "NUMBER"):
            return f"{describe(tok.kind)} '{tok.text(self.src)}'"
        return describe(tok.kind)

    # ---- declarations

    def parse_root(self) -> Root:
        root = Root()
        while True:
            k = self.current.kind
            if k == "FN":
                root.declarations.append(self.parse_fn())
            elif k == "EXTERN":
                root.declarations.append(self.parse_extern_fn())
            elif k == EOF:
                return root
            else:
                raise self.error("function declaration")

    def parse_extern_fn(self) -> ExternFn:
        pos = self.expect("EXTERN").start
        proto = self.parse_fn_proto()
        self.expect("SEMICOLON")
        return ExternFn(pos, proto)

    def parse_fn(self) -> Fn:
        proto = self.parse_fn_proto()
        body = self.parse_block()
        return Fn(proto.pos, proto, body)

    def parse_fn_proto(self) -> FnProto:
        pos = self.expect("FN").start
        name = self.expect("NAME", "function name").text(self.src)
        self.expect("LPAREN")

        params: List[Pattern] = []
        if not self.at("RPAREN"):
            params.append(self.parse_pattern())
            while self.at("COMMA"):
                self.advance()
                params.append(self.parse_pattern())
        self.expect("RPAREN", "',' or ')'")

        if self.at("ARROW"):
            self.advance()
            ret = self.parse_type_name()
        else:
            # omitted return type means void, never unreachable
            ret = TypeName(self.current.start, Primitive.VOID)
        return FnProto(pos, name, params, ret)

    def parse_pattern(self) -> Pattern:
        tok = self.expect("NAME", "parameter name")
        self.expect("COLON")
        return Pattern(tok.start, tok.text(self.src), self.parse_type_name())

    def parse_type_name(self) -> TypeName:
        if self.at("TIMES"):
            pos = self.advance().start
            return TypeName(pos, child=self.parse_type_name())

        tok = self.expect("NAME", "type name")
        name = tok.text(self.src)
        prim = PRIMITIVES.get(name)
        if prim is None:
            raise UnknownTypeError(name, self.src, tok.start)
        return TypeName(tok.start, prim)

    # ---- statements

    def parse_block(self) -> Block:
        pos = self.expect("LBRACE").start
        block = Block(pos)
        while not self.at("RBRACE"):
            block.statements.append(self.parse_statement())
        self.advance()
        return block

    def parse_statement(self) -> Statement:
        tok = self.current
        if tok.kind == "RETURN":
            self.advance()
            expr = self.parse_expression()
            self.expect("SEMICOLON")
            return StatementReturn(tok.start, expr)
        if tok.kind == "IF":
            return self.parse_if()
        expr = self.parse_expression()
        self.expect("SEMICOLON")
        return StatementExpression(tok.start, expr)

    # ---- expressions

    def parse_expression(self) -> Expression:
        left = self.parse_term()
        while self.current.kind in ADDITIVE:
            tok = self.advance()
            left = InfixOperator(tok.start, ADDITIVE[tok.kind], left, self.parse_term())
        return left

    def parse_term(self) -> Expression:
        left = self.parse_primary()
        while self.current.kind in MULTIPLICATIVE:
            tok = self.advance()
            left = InfixOperator(tok.start, MULTIPLICATIVE[tok.kind], left, self.parse_primary())
        return left

    def parse_primary(self) -> Expression:
        tok = self.current
        k = tok.kind
        if k == "NUMBER":
            self.advance()
            return ExpressionNumber(tok.start, tok.text(self.src))
        if k == "STRING":
            self.advance()
            return ExpressionString(tok.start, self._string_value(tok))
        if k == "NAME":
            self.advance()
            name = tok.text(self.src)
            if self.at("LPAREN"):
                return ExpressionFunction(tok.start, name, self.parse_arguments())
            return ExpressionIdentifier(tok.start, name)
        if k == "LPAREN":
            self.advance()
            expr = self.parse_expression()
            self.expect("RPAREN")
            return expr
        if k == "IF":
            return self.parse_if()
        raise self.error("expression")

    def _string_value(self, tok: Token) -> str:
        # only backslash escapes are rewritten; every other character is kept as written
        raw = tok.text(self.src)[1:-1]
        body = tok.start + 1

        def unescape(m):
            esc = m.group(1)
            if esc[0] == "x" and len(esc) == 3:
                code = int(esc[1:], 16)
                if code < 0x80:
                    return chr(code)
            elif esc in ESCAPES:
                return ESCAPES[esc]
            raise LexError(f"invalid escape sequence '\\{esc}' in string literal", self.src,
                           body + m.start(),
                           hint="supported escapes are \\n \\t \\r \\0 \\\\ \\\" and \\x00-\\x7F")

        return ESCAPE_RE.sub(unescape, raw)

    def parse_arguments(self) -> List[Expression]:
        self.expect("LPAREN")
        args: List[Expression] = []
        if not self.at("RPAREN"):
            args.append(self.parse_expression())
            while self.at("COMMA"):
                self.advance()
                args.append(self.parse_expression())
        self.expect("RPAREN", "',' or ')'")
        return args

    def parse_if(self) -> ExpressionIf:
        pos = self.expect("IF").start
        cond = self.parse_expression()
        then = self.parse_block()
        other = None
        if self.at("ELSE"):
            self.advance()
            other = self.parse_if() if self.at("IF") else self.parse_block()
        return ExpressionIf(pos, cond, then, other)


def parse(src: Source, tokens: List[Token]) -> Root:
    return Parser(src, tokens).parse_root()


def parse_source(src: Source) -> Root:
    return parse(src, tokenize(src))
