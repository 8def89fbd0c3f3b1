"""
Parser tests: AST shapes for every production and the syntax error paths.
"""

import pytest

from silc.ast import (
    Block, ExpressionFunction, ExpressionIdentifier, ExpressionIf,
    ExpressionNumber, ExpressionString, ExternFn, Fn, InfixOperator,
    OperatorKind, Primitive, StatementExpression, StatementReturn,
)
from silc.diagnostics import LexError, SilSyntaxError, Source, UnknownTypeError
from silc.lexer import Token
from silc.parser import Parser, parse_source


def parse_text(text):
    return parse_source(Source.from_text(text, "test.sil"))


def first_expr(body_text):
    root = parse_text("fn f(x: i32) { %s; }" % body_text)
    return root.declarations[0].body.statements[0].expression


class TestDeclarations:

    def test_empty_root(self):
        assert parse_text("").declarations == []

    def test_function(self):
        root = parse_text("fn add(a: i32, b: i32) -> i32 { return a + b; }")
        assert len(root.declarations) == 1
        fn = root.declarations[0]
        assert isinstance(fn, Fn)
        proto = fn.prototype
        assert proto.name == "add"
        assert [p.name for p in proto.parameters] == ["a", "b"]
        assert all(p.type.primitive is Primitive.I32 for p in proto.parameters)
        assert proto.return_type.primitive is Primitive.I32

        (stmt,) = fn.body.statements
        assert isinstance(stmt, StatementReturn)
        expr = stmt.expression
        assert isinstance(expr, InfixOperator)
        assert expr.op is OperatorKind.ADD
        assert isinstance(expr.left, ExpressionIdentifier) and expr.left.name == "a"
        assert isinstance(expr.right, ExpressionIdentifier) and expr.right.name == "b"

    def test_extern(self):
        root = parse_text("extern fn write(fd: i32, buf: *u8, n: i32) -> i32;")
        decl = root.declarations[0]
        assert isinstance(decl, ExternFn)
        assert decl.name == "write"
        buf = decl.prototype.parameters[1].type
        assert buf.is_pointer
        assert buf.child.primitive is Primitive.U8

    def test_return_type_defaults_to_void(self):
        root = parse_text("fn main() { }")
        assert root.declarations[0].prototype.return_type.primitive is Primitive.VOID

    def test_explicit_void_and_unreachable(self):
        root = parse_text("extern fn a() -> void; extern fn b() -> unreachable;")
        assert root.declarations[0].prototype.return_type.primitive is Primitive.VOID
        assert root.declarations[1].prototype.return_type.primitive is Primitive.UNREACHABLE

    def test_declaration_order_preserved(self):
        root = parse_text("fn b() {} extern fn a(); fn c() {}")
        assert [d.name for d in root.declarations] == ["b", "a", "c"]

    def test_nested_pointer_type(self):
        root = parse_text("extern fn f(p: **i32);")
        ty = root.declarations[0].prototype.parameters[0].type
        assert ty.depth == 2
        assert ty.child.is_pointer
        assert ty.child.child.primitive is Primitive.I32
        assert str(ty) == "**i32"

    def test_i8_is_a_primitive(self):
        root = parse_text("extern fn f(c: i8);")
        assert root.declarations[0].prototype.parameters[0].type.primitive is Primitive.I8


class TestExpressions:

    def test_multiplication_binds_tighter(self):
        e = first_expr("1 + 2 * 3")
        assert e.op is OperatorKind.ADD
        assert isinstance(e.left, ExpressionNumber) and e.left.value == "1"
        assert e.right.op is OperatorKind.MUL

    def test_left_associative(self):
        e = first_expr("10 - 2 - 3")
        assert e.op is OperatorKind.SUB
        assert e.left.op is OperatorKind.SUB
        assert e.right.value == "3"

    def test_division_left_associative(self):
        e = first_expr("8 / 4 / 2")
        assert e.op is OperatorKind.DIV
        assert e.left.op is OperatorKind.DIV

    def test_parentheses(self):
        e = first_expr("(1 + 2) * 3")
        assert e.op is OperatorKind.MUL
        assert e.left.op is OperatorKind.ADD

    def test_call_with_arguments(self):
        e = first_expr('g(1, "s", h(), x * 2)')
        assert isinstance(e, ExpressionFunction)
        assert e.name == "g"
        assert len(e.arguments) == 4
        assert isinstance(e.arguments[1], ExpressionString)
        assert isinstance(e.arguments[2], ExpressionFunction) and e.arguments[2].arguments == []
        assert isinstance(e.arguments[3], InfixOperator)

    def test_string_escapes_decoded(self):
        e = first_expr('"a\\tb\\n"')
        assert e.value == "a\tb\n"

    def test_string_keeps_non_ascii_characters(self):
        e = first_expr('"hé → \\x41\\"q\\\\"')
        assert e.value == "h\u00e9 \u2192 A\"q\\"

    @pytest.mark.parametrize("escape", ["\\x", "\\N", "\\xff", "\\q"])
    def test_invalid_escape(self, escape):
        with pytest.raises(LexError) as exc:
            first_expr('"ab%s"' % escape)
        assert "invalid escape sequence" in exc.value.msg
        # the error points at the backslash
        assert exc.value.location == (1, 19)

    def test_if_statement_needs_no_semicolon(self):
        root = parse_text("fn f(x: i32) { if x { g(); } else { h(); } g(); }")
        stmts = root.declarations[0].body.statements
        assert isinstance(stmts[0], ExpressionIf)
        assert isinstance(stmts[0].then_block, Block)
        assert isinstance(stmts[0].else_block, Block)
        assert isinstance(stmts[1], StatementExpression)

    def test_else_if_chain(self):
        root = parse_text("fn f(x: i32) { if x { } else if x { } }")
        stmt = root.declarations[0].body.statements[0]
        assert isinstance(stmt.else_block, ExpressionIf)
        assert stmt.else_block.else_block is None


class TestSyntaxErrors:

    def test_missing_semicolon(self):
        with pytest.raises(SilSyntaxError) as exc:
            parse_text("fn main() {\n    foo()\n}")
        err = exc.value
        assert err.expected == "';'"
        assert err.got == "'}'"
        assert err.location == (3, 1)
        assert "test.sil:3:1" in str(err)

    def test_top_level_statement(self):
        with pytest.raises(SilSyntaxError) as exc:
            parse_text("return 1;")
        assert exc.value.expected == "function declaration"

    def test_missing_comma_between_parameters(self):
        with pytest.raises(SilSyntaxError) as exc:
            parse_text("fn f(a: i32 b: i32) {}")
        assert exc.value.got == "identifier 'b'"

    def test_extern_requires_semicolon(self):
        with pytest.raises(SilSyntaxError):
            parse_text("extern fn f() fn g() {}")

    def test_unterminated_block(self):
        with pytest.raises(SilSyntaxError) as exc:
            parse_text("fn f() { g();")
        assert exc.value.got == "end of input"

    def test_unknown_primitive(self):
        with pytest.raises(UnknownTypeError) as exc:
            parse_text("fn f(x: f32) {}")
        assert exc.value.name == "f32"
        assert exc.value.location == (1, 9)

    def test_token_stream_must_end_with_eof(self):
        with pytest.raises(ValueError):
            Parser(Source.from_text("fn"), [Token("FN", 0, 2, 1, 1)])
