import logging
from typing import Dict, List, Optional, Tuple

from llvmlite import ir

from .ast import (
    Block, ExpressionFunction, ExpressionIdentifier, ExpressionIf,
    ExpressionNumber, ExpressionString, ExternFn, Fn, FnProto, InfixOperator,
    OperatorKind, Primitive, StatementExpression, StatementReturn, TypeName,
)
from .diagnostics import (
    ArityMismatchError, InternalInvariantError, MissingReturnError, Source,
    TypeMismatchError, UndefinedFunctionError, UndefinedVariableError,
    UnknownTypeError, UnreachableCodeError, UnsupportedConstructError,
)
from .functable import FunctionTable

logger = logging.getLogger(__name__)

I8 = ir.IntType(8)
I32 = ir.IntType(32)

PRIMITIVE_IR = {
    Primitive.I8: I8,
    Primitive.U8: I8,
    Primitive.I32: I32,
    Primitive.VOID: ir.VoidType(),
    Primitive.UNREACHABLE: ir.VoidType(),
}


class CodeGen:
    def __init__(self, table: FunctionTable, src: Optional[Source] = None,
                 module_name: str = "sil_module"):
        self.table = table
        self.src = src if src is not None else table.src
        self.module = ir.Module(name=module_name)
        # name -> (function type, function); filled before any body is lowered
        self.signatures: Dict[str, Tuple[ir.FunctionType, ir.Function]] = {}
        self.const_strings: Dict[str, ir.GlobalVariable] = {}
        self.builder: Optional[ir.IRBuilder] = None
        self.params: Dict[str, ir.Argument] = {}

    # ----- LLVM type mapping
    def ty_to_ir(self, ty: TypeName) -> ir.Type:
        if ty.child is not None:
            base_ir = self.ty_to_ir(ty.child)
            # Can't create pointer to void in LLVM, use i8* instead
            if isinstance(base_ir, ir.VoidType):
                return I8.as_pointer()
            return base_ir.as_pointer()
        irty = PRIMITIVE_IR.get(ty.primitive)
        if irty is None:
            raise UnknownTypeError(str(ty.primitive), self.src, ty.pos)
        return irty

    # ----- compile
    def build(self) -> ir.Module:
        # declare externs & defined functions, then emit bodies
        for name, decl in self.table.items():
            if isinstance(decl, ExternFn):
                self._declare_extern(decl)
            elif isinstance(decl, Fn):
                self._declare_function(decl.prototype)
            else:
                raise InternalInvariantError(
                    f"unexpected node {type(decl).__name__} in function table", self.src,
                    getattr(decl, "pos", None))
        for name, decl in self.table.items():
            if isinstance(decl, Fn):
                self._define_function(decl)
        logger.debug("lowered %d functions into module %s", len(self.signatures), self.module.name)
        return self.module

    def _declare_function(self, proto: FnProto) -> ir.Function:
        ret = self.ty_to_ir(proto.return_type)
        args = [self.ty_to_ir(p.type) for p in proto.parameters]
        for p, t in zip(proto.parameters, args):
            if isinstance(t, ir.VoidType):
                raise TypeMismatchError(
                    f"parameter '{p.name}' of '{proto.name}' cannot have type {p.type}",
                    self.src, p.pos)

        func_ty = ir.FunctionType(ret, args)
        func = ir.Function(self.module, func_ty, name=proto.name)
        for i, p in enumerate(proto.parameters):
            func.args[i].name = p.name

        self.signatures[proto.name] = (func_ty, func)
        return func

    def _declare_extern(self, decl: ExternFn) -> ir.Function:
        func = self._declare_function(decl.prototype)
        func.linkage = "external"
        func.calling_convention = "ccc"
        logger.debug("declared extern %s: %s", decl.name, func.function_type)
        return func

    # ----- function body
    def _define_function(self, fn: Fn):
        _, func = self.signatures[fn.name]
        entry = func.append_basic_block("entry")
        self.builder = ir.IRBuilder(entry)
        self.params = {p.name: func.args[i] for i, p in enumerate(fn.prototype.parameters)}
        try:
            self._emit_block(fn.body)
            if not self.builder.block.is_terminated:
                self._fall_off_end(fn)
        finally:
            self.builder = None
            self.params = {}
        logger.debug("defined %s", fn.name)

    def _fall_off_end(self, fn: Fn):
        prim = fn.prototype.return_type.primitive
        if prim is Primitive.VOID:
            self.builder.ret_void()
        elif prim is Primitive.UNREACHABLE:
            self.builder.unreachable()
        else:
            raise MissingReturnError(
                f"function '{fn.name}' returns {fn.prototype.return_type} but its body can end "
                f"without a return", self.src, fn.pos,
                hint="add a 'return' statement at the end of the body")

    def _emit_block(self, block: Block):
        for stmt in block.statements:
            if self.builder.block.is_terminated:
                raise UnreachableCodeError("statement after return is unreachable", self.src, stmt.pos)
            self._emit_statement(stmt)

    def _emit_statement(self, stmt):
        if isinstance(stmt, StatementReturn):
            self.builder.ret(self.emit_expr(stmt.expression))
        elif isinstance(stmt, StatementExpression):
            self.emit_expr(stmt.expression)
        elif isinstance(stmt, ExpressionIf):
            self.emit_expr(stmt)
        else:
            raise InternalInvariantError(
                f"expected statement, found {type(stmt).__name__}", self.src, getattr(stmt, "pos", None))

    # ----- expressions
    def emit_expr(self, e) -> ir.Value:
        if isinstance(e, ExpressionFunction):
            return self._emit_call(e)
        if isinstance(e, ExpressionString):
            gv = self._global_string(e.value)
            return self.builder.bitcast(gv, I8.as_pointer())
        if isinstance(e, ExpressionNumber):
            # literals are always i32; wider text wraps like LLVMConstIntOfString
            v = int(e.value, 10) & 0xFFFFFFFF
            if v >= 1 << 31:
                v -= 1 << 32
            return ir.Constant(I32, v)
        if isinstance(e, ExpressionIdentifier):
            arg = self.params.get(e.name)
            if arg is None:
                raise UndefinedVariableError(e.name, self.src, e.pos)
            return arg
        if isinstance(e, InfixOperator):
            return self._emit_binop(e)
        if isinstance(e, ExpressionIf):
            raise UnsupportedConstructError("'if' expressions cannot be compiled yet", self.src, e.pos)
        raise InternalInvariantError(f"invalid expression {type(e).__name__}", self.src, getattr(e, "pos", None))

    def _emit_binop(self, e: InfixOperator) -> ir.Value:
        lv = self.emit_expr(e.left)
        rv = self.emit_expr(e.right)
        if lv.type != rv.type:
            raise TypeMismatchError(
                f"operands of '{e.op.value}' have different types: {lv.type} and {rv.type}",
                self.src, e.pos)
        if not isinstance(lv.type, ir.IntType):
            raise TypeMismatchError(
                f"operator '{e.op.value}' needs integer operands, got {lv.type}", self.src, e.pos)
        if e.op is OperatorKind.ADD:
            return self.builder.add(lv, rv)
        if e.op is OperatorKind.SUB:
            return self.builder.sub(lv, rv)
        if e.op is OperatorKind.MUL:
            return self.builder.mul(lv, rv)
        if e.op is OperatorKind.DIV:
            return self.builder.sdiv(lv, rv)
        raise InternalInvariantError(f"unhandled infix operator {e.op}", self.src, e.pos)

    def _emit_call(self, e: ExpressionFunction) -> ir.Value:
        decl = self.table.get(e.name)
        if decl is None:
            raise UndefinedFunctionError(e.name, self.src, e.pos)

        params = decl.prototype.parameters
        if len(e.arguments) != len(params):
            raise ArityMismatchError(e.name, len(params), len(e.arguments), self.src, e.pos)

        sig = self.signatures.get(e.name)
        if sig is None:
            raise InternalInvariantError(f"function '{e.name}' was never declared", self.src, e.pos)
        func_ty, func = sig

        args: List[ir.Value] = []
        for i, (arg, expected) in enumerate(zip(e.arguments, func_ty.args)):
            v = self.emit_expr(arg)
            if v.type != expected:
                raise TypeMismatchError(
                    f"argument {i + 1} of '{e.name}' has type {v.type}, expected {expected}",
                    self.src, arg.pos)
            args.append(v)

        return self.builder.call(func, args)

    def _global_string(self, s: str) -> ir.GlobalVariable:
        gv = self.const_strings.get(s)
        if gv is None:
            arr = bytearray(s.encode("utf-8") + b"\0")
            ty_arr = ir.ArrayType(I8, len(arr))
            gv = ir.GlobalVariable(self.module, ty_arr, name=f".str.{len(self.const_strings)}")
            gv.global_constant = True
            gv.linkage = "internal"
            gv.initializer = ir.Constant(ty_arr, arr)
            self.const_strings[s] = gv
        return gv


def generate(table: FunctionTable, src: Optional[Source] = None, module_name: str = "sil_module") -> ir.Module:
    return CodeGen(table, src, module_name).build()
