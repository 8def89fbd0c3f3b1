from .compiler import CompileResult, CompilerOptions, compile_file, compile_source, verify_module
from .diagnostics import (
    ArityMismatchError, CompileError, DuplicateDefinitionError,
    InternalInvariantError, LexError, MissingReturnError, SilSyntaxError,
    Source, TypeMismatchError, UndefinedFunctionError, UndefinedVariableError,
    UnknownTypeError, UnreachableCodeError, UnsupportedConstructError,
    VerificationError,
)

__version__ = "0.1.0"
