import os
from dataclasses import dataclass
from typing import List, Optional, Tuple

# ============================================================
# Source text
# ============================================================

@dataclass
class Source:
    path: str
    text: str
    lines: List[str]

    @staticmethod
    def from_path(path: str) -> "Source":
        with open(path, "r", encoding="utf-8") as f:
            txt = f.read()
        return Source(path=os.path.abspath(path), text=txt, lines=txt.splitlines())

    @staticmethod
    def from_text(text: str, path: str = "<input>") -> "Source":
        return Source(path=path, text=text, lines=text.splitlines())

    def line_col(self, lexpos: int) -> Tuple[int, int]:
        # compute (line, col) from absolute index
        line = self.text.count("\n", 0, lexpos) + 1
        bol = self.text.rfind("\n", 0, lexpos)
        if bol < 0: bol = -1
        col = lexpos - bol
        return line, col

    def span(self, start: int, end: int) -> str:
        return self.text[start:end]

# ============================================================
# Errors
# ============================================================

class CompileError(Exception):
    """Base class for every diagnostic the compiler raises.

    Compilation stops at the first one; nothing is aggregated.
    """

    kind = "error"

    def __init__(self, msg: str, src: Optional[Source] = None, lexpos: Optional[int] = None,
                 hint: Optional[str] = None):
        self.msg = msg
        self.src = src
        self.lexpos = lexpos
        self.hint = hint
        super().__init__(self._short())

    @property
    def location(self) -> Optional[Tuple[int, int]]:
        if self.src is None or self.lexpos is None:
            return None
        return self.src.line_col(self.lexpos)

    def _short(self) -> str:
        loc = self.location
        if loc is None:
            return self.msg
        return f"{self.src.path}:{loc[0]}:{loc[1]}: {self.msg}"

    def format(self, use_color: bool = True) -> str:
        if use_color:
            RESET, BOLD, RED, BLUE, CYAN = "\033[0m", "\033[1m", "\033[31m", "\033[34m", "\033[36m"
        else:
            RESET = BOLD = RED = BLUE = CYAN = ""

        header = f"{BOLD}{RED}{self.kind}{RESET}{BOLD}: {self.msg}{RESET}"
        loc = self.location
        if loc is None:
            result = header
            if self.hint:
                result += f"\n{BOLD}{CYAN}help:{RESET} {self.hint}"
            return result

        line, col = loc
        code = self.src.lines[line - 1] if 1 <= line <= len(self.src.lines) else ""
        location = f"{BOLD}{BLUE}-->{RESET} {self.src.path}:{line}:{col}"

        line_num_width = len(str(line))
        line_prefix = f"{BOLD}{BLUE}{line:>{line_num_width}} |{RESET} "
        empty_prefix = f"{BOLD}{BLUE}{' ' * line_num_width} |{RESET}"
        caret = " " * (col - 1) + f"{BOLD}{RED}^~~~{RESET}"

        result = f"{header}\n{location}\n{empty_prefix}\n{line_prefix}{code}\n{empty_prefix} {caret}"
        if self.hint:
            result += f"\n{empty_prefix}\n{empty_prefix} {BOLD}{CYAN}help:{RESET} {self.hint}"
        return result


class LexError(CompileError):
    pass


class SilSyntaxError(CompileError):
    """Unexpected token. Carries the expected and actual token descriptions."""

    def __init__(self, expected: str, got: str, src: Optional[Source] = None,
                 lexpos: Optional[int] = None, hint: Optional[str] = None):
        self.expected = expected
        self.got = got
        super().__init__(f"expected {expected}, got {got}", src, lexpos, hint)


class UnknownTypeError(CompileError):
    def __init__(self, name: str, src: Optional[Source] = None, lexpos: Optional[int] = None):
        self.name = name
        super().__init__(f"unknown primitive type '{name}'", src, lexpos,
                         hint="primitive types are i8, u8, i32, void and unreachable")


class DuplicateDefinitionError(CompileError):
    def __init__(self, name: str, src: Optional[Source] = None, lexpos: Optional[int] = None,
                 first_pos: Optional[int] = None):
        self.name = name
        self.first_pos = first_pos
        hint = None
        if src is not None and first_pos is not None:
            line, col = src.line_col(first_pos)
            hint = f"'{name}' was first defined at {line}:{col}"
        super().__init__(f"multiple definitions of function '{name}'", src, lexpos, hint)


class UndefinedFunctionError(CompileError):
    def __init__(self, name: str, src: Optional[Source] = None, lexpos: Optional[int] = None):
        self.name = name
        super().__init__(f"function '{name}' is not defined", src, lexpos,
                         hint="declare it with 'fn' or 'extern fn'")


class UndefinedVariableError(CompileError):
    def __init__(self, name: str, src: Optional[Source] = None, lexpos: Optional[int] = None):
        self.name = name
        super().__init__(f"'{name}' is not a parameter of the enclosing function", src, lexpos)


class ArityMismatchError(CompileError):
    def __init__(self, name: str, expected: int, got: int, src: Optional[Source] = None,
                 lexpos: Optional[int] = None):
        self.name = name
        self.expected = expected
        self.got = got
        plural = "" if expected == 1 else "s"
        super().__init__(f"wrong number of arguments to '{name}': "
                         f"expected {expected} argument{plural}, got {got}", src, lexpos)


class TypeMismatchError(CompileError):
    pass


class MissingReturnError(CompileError):
    pass


class UnreachableCodeError(CompileError):
    pass


class UnsupportedConstructError(CompileError):
    pass


class VerificationError(CompileError):
    pass


class InternalInvariantError(CompileError):
    kind = "internal error"
