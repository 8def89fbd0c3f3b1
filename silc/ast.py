from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union

# ============================================================
# Types
# ============================================================

class Primitive(Enum):
    I8 = "i8"
    U8 = "u8"
    I32 = "i32"
    VOID = "void"
    UNREACHABLE = "unreachable"


# the one list of primitive spellings both the parser and codegen accept
PRIMITIVES = {p.value: p for p in Primitive}


@dataclass
class TypeName:
    pos: int
    primitive: Optional[Primitive] = None
    child: Optional["TypeName"] = None  # set for pointers

    @property
    def is_pointer(self) -> bool:
        return self.child is not None

    @property
    def depth(self) -> int:
        n, t = 0, self
        while t.child is not None:
            n, t = n + 1, t.child
        return n

    def __str__(self):
        if self.child is not None:
            return f"*{self.child}"
        return self.primitive.value

# ============================================================
# Expressions
# ============================================================

class OperatorKind(Enum):
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"


@dataclass
class ExpressionNumber:
    pos: int
    value: str  # decimal digits, as written


@dataclass
class ExpressionString:
    pos: int
    value: str  # escapes already decoded


@dataclass
class ExpressionIdentifier:
    pos: int
    name: str


@dataclass
class ExpressionFunction:
    pos: int
    name: str
    arguments: List["Expression"] = field(default_factory=list)


@dataclass
class InfixOperator:
    pos: int
    op: OperatorKind
    left: "Expression"
    right: "Expression"


@dataclass
class ExpressionIf:
    pos: int
    condition: "Expression"
    then_block: "Block"
    else_block: Optional[Union["Block", "ExpressionIf"]] = None


Expression = Union[
    ExpressionNumber, ExpressionString, ExpressionIdentifier,
    ExpressionFunction, InfixOperator, ExpressionIf,
]

# ============================================================
# Statements
# ============================================================

@dataclass
class StatementReturn:
    pos: int
    expression: Expression


@dataclass
class StatementExpression:
    pos: int
    expression: Expression


# `if` is folded into a block's statements as a bare expression
Statement = Union[StatementReturn, StatementExpression, ExpressionIf]


@dataclass
class Block:
    pos: int
    statements: List[Statement] = field(default_factory=list)

# ============================================================
# Declarations
# ============================================================

@dataclass
class Pattern:
    pos: int
    name: str
    type: TypeName


@dataclass
class FnProto:
    pos: int
    name: str
    parameters: List[Pattern]
    return_type: TypeName


@dataclass
class Fn:
    pos: int
    prototype: FnProto
    body: Block

    @property
    def name(self) -> str:
        return self.prototype.name


@dataclass
class ExternFn:
    pos: int
    prototype: FnProto

    @property
    def name(self) -> str:
        return self.prototype.name


Declaration = Union[Fn, ExternFn]


@dataclass
class Root:
    declarations: List[Declaration] = field(default_factory=list)
