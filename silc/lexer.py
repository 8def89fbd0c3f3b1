from dataclasses import dataclass
from typing import List, Optional

from ply.lex import lex

from .diagnostics import LexError, Source

# ============================================================
# Tokens
# ============================================================

@dataclass(frozen=True)
class Token:
    kind: str
    start: int
    end: int
    line: int
    column: int

    def text(self, src: Source) -> str:
        return src.text[self.start:self.end]


EOF = "EOF"

reserved = {
    "fn": "FN",
    "extern": "EXTERN",
    "return": "RETURN",
    "if": "IF",
    "else": "ELSE",
}

tokens = (
    # literals & ids
    "NUMBER", "NAME", "STRING",

    # punctuation
    "LPAREN", "RPAREN", "LBRACE", "RBRACE",
    "COMMA", "COLON", "SEMICOLON", "ARROW",

    # operators
    "PLUS", "MINUS", "TIMES", "DIVIDE",

    # keywords
    "FN", "EXTERN", "RETURN", "IF", "ELSE",
)

# human-readable names used in diagnostics
TOKEN_NAMES = {
    "NUMBER": "integer literal",
    "NAME": "identifier",
    "STRING": "string literal",
    "LPAREN": "'('",
    "RPAREN": "')'",
    "LBRACE": "'{'",
    "RBRACE": "'}'",
    "COMMA": "','",
    "COLON": "':'",
    "SEMICOLON": "';'",
    "ARROW": "'->'",
    "PLUS": "'+'",
    "MINUS": "'-'",
    "TIMES": "'*'",
    "DIVIDE": "'/'",
    "FN": "'fn'",
    "EXTERN": "'extern'",
    "RETURN": "'return'",
    "IF": "'if'",
    "ELSE": "'else'",
    EOF: "end of input",
}


def describe(kind: str) -> str:
    return TOKEN_NAMES.get(kind, kind)

# ============================================================
# Lexer rules (PLY)
# ============================================================

t_ignore = " \t\r"

def t_ARROW(t):
    r'->'
    return t

def t_comment(t):
    r'//[^\n]*'
    pass

t_LPAREN   = r"\("
t_RPAREN   = r"\)"
t_LBRACE   = r"\{"
t_RBRACE   = r"\}"
t_COMMA    = r","
t_COLON    = r":"
t_SEMICOLON= r";"
t_PLUS     = r"\+"
t_MINUS    = r"-"
t_TIMES    = r"\*"
t_DIVIDE   = r"/"

def t_STRING(t):
    r'"([^"\\\n]|\\.)*"'
    return t

def t_NUMBER(t):
    r'\d+'
    return t

def t_NAME(t):
    r'[A-Za-z_][A-Za-z0-9_]*'
    t.type = reserved.get(t.value, "NAME")
    return t

def t_newline(t):
    r'\n+'
    t.lexer.lineno += len(t.value)

def t_error(t):
    src = t.lexer.source
    raise LexError(f"unexpected character {t.value[0]!r}", src, t.lexpos)


_master: Optional[object] = None

def _lexer():
    global _master
    if _master is None:
        _master = lex()
    return _master.clone()


def tokenize(src: Source) -> List[Token]:
    """Produce the complete token sequence for `src`, terminated by an EOF token."""
    lexer = _lexer()
    lexer.source = src
    lexer.lineno = 1
    lexer.input(src.text)

    out: List[Token] = []
    while True:
        tok = lexer.token()
        if tok is None:
            break
        start = tok.lexpos
        end = start + len(tok.value)
        _, col = src.line_col(start)
        out.append(Token(tok.type, start, end, tok.lineno, col))

    end = len(src.text)
    line, col = src.line_col(end)
    out.append(Token(EOF, end, end, line, col))
    return out
