"""
Lexer: turns IDL source text into a stream of tokens.

Tokens are produced lazily by ``Lexer.next()``; ``tokenize()`` collects the
whole stream for tests and tools that want a list.
"""

from dataclasses import dataclass
from typing import List

from .errors import LexError

# Token kinds.
TOK_KEYWORD = "KEYWORD"
TOK_IDENT   = "IDENT"
TOK_NUMBER  = "NUMBER"
TOK_STRING  = "STRING"
TOK_CHAR    = "CHAR"
TOK_SYMBOL  = "SYMBOL"    # { } ( ) [ ] ; : , and ::
TOK_OP      = "OPERATOR"
TOK_PREPROC = "PREPROCESSOR"
TOK_EOF     = "EOF"

# Reserved words the parser dispatches on.
KEYWORDS = {
    "module", "interface", "struct", "enum", "typedef", "union", "switch",
    "case", "default", "const", "exception", "attribute", "readonly",
    "oneway", "in", "out", "inout", "raises", "sequence", "unsigned",
    "short", "long", "float", "double", "boolean", "char", "wchar", "octet",
    "any", "string", "wstring", "void",
}

SYMBOL_CHARS = "{}()[];:,"
OPERATOR_CHARS = "+-*/=<>!%&|^~"


@dataclass
class Token:
    kind: str
    value: str
    line: int
    column: int
    filename: str = "<input>"

    def describe(self) -> str:
        """Human-readable form used in diagnostics."""
        if self.kind == TOK_EOF:
            return "end of input"
        return f"{self.kind} {self.value!r}"


def _is_ident_start(c: str) -> bool:
    return ("a" <= c <= "z") or ("A" <= c <= "Z") or c == "_"


def _is_digit(c: str) -> bool:
    return "0" <= c <= "9"


def _is_ident_char(c: str) -> bool:
    return _is_ident_start(c) or _is_digit(c)


class Lexer:
    """
    Pull-based tokenizer.

    Skips whitespace, ``//`` line comments and ``/* ... */`` block comments.
    Lines are 1-based, columns 0-based.  Calling ``next()`` after the end of
    input keeps returning the EOF token.
    """

    def __init__(self, text: str, filename: str = "<input>"):
        self.text = text
        self.filename = filename
        self.pos = 0
        self.line = 1
        self.line_start = 0

    # ── Position helpers ─────────────────────────────────────────────

    @property
    def column(self) -> int:
        return self.pos - self.line_start

    def _error(self, message: str, line: int, column: int) -> LexError:
        return LexError(message, self.filename, line, column)

    def _token(self, kind: str, value: str, line: int, column: int) -> Token:
        return Token(kind, value, line, column, self.filename)

    def _newline(self):
        self.line += 1
        self.line_start = self.pos + 1

    # ── Skipping ─────────────────────────────────────────────────────

    def _skip_trivia(self):
        text, n = self.text, len(self.text)
        while self.pos < n:
            c = text[self.pos]
            if c == "\n":
                self._newline()
                self.pos += 1
            elif c in " \t\r\f\v":
                self.pos += 1
            elif text.startswith("//", self.pos):
                while self.pos < n and text[self.pos] != "\n":
                    self.pos += 1
            elif text.startswith("/*", self.pos):
                line, column = self.line, self.column
                end = text.find("*/", self.pos + 2)
                if end == -1:
                    raise self._error("unterminated block comment", line, column)
                while self.pos < end + 2:
                    if text[self.pos] == "\n":
                        self._newline()
                    self.pos += 1
            else:
                return

    # ── Tokens ───────────────────────────────────────────────────────

    def next(self) -> Token:
        self._skip_trivia()
        text, n = self.text, len(self.text)
        line, column = self.line, self.column

        if self.pos >= n:
            return self._token(TOK_EOF, "", line, column)

        c = text[self.pos]

        if c == ":" and text.startswith("::", self.pos):
            self.pos += 2
            return self._token(TOK_SYMBOL, "::", line, column)

        if c in SYMBOL_CHARS:
            self.pos += 1
            return self._token(TOK_SYMBOL, c, line, column)

        if c == "#":
            end = text.find("\n", self.pos)
            if end == -1:
                end = n
            value = text[self.pos:end].rstrip("\r")
            self.pos = end
            return self._token(TOK_PREPROC, value, line, column)

        if _is_ident_start(c):
            j = self.pos
            while j < n and _is_ident_char(text[j]):
                j += 1
            word = text[self.pos:j]
            self.pos = j
            kind = TOK_KEYWORD if word in KEYWORDS else TOK_IDENT
            return self._token(kind, word, line, column)

        if _is_digit(c):
            j = self.pos
            while j < n and _is_digit(text[j]):
                j += 1
            if j < n and text[j] == ".":
                j += 1
                while j < n and _is_digit(text[j]):
                    j += 1
            value = text[self.pos:j]
            self.pos = j
            return self._token(TOK_NUMBER, value, line, column)

        if c == '"':
            return self._token(TOK_STRING, self._read_quoted('"', "string"),
                               line, column)

        if c == "'":
            return self._token(TOK_CHAR, self._read_quoted("'", "character"),
                               line, column)

        if c in OPERATOR_CHARS:
            j = self.pos + 1
            if j < n and text[j] in OPERATOR_CHARS:
                j += 1
            value = text[self.pos:j]
            self.pos = j
            return self._token(TOK_OP, value, line, column)

        raise self._error(f"unexpected character {c!r}", line, column)

    def _read_quoted(self, quote: str, what: str) -> str:
        """Read a quoted literal; escapes are kept verbatim, not interpreted."""
        text, n = self.text, len(self.text)
        line, column = self.line, self.column
        j = self.pos + 1
        while j < n and text[j] != quote:
            if text[j] == "\n":
                break
            if text[j] == "\\":
                j += 1
                if j >= n or text[j] == "\n":
                    break
            j += 1
        if j >= n or text[j] != quote:
            raise self._error(f"unterminated {what} literal", line, column)
        value = text[self.pos + 1:j]
        self.pos = j + 1
        return value

    def __iter__(self):
        while True:
            tok = self.next()
            yield tok
            if tok.kind == TOK_EOF:
                return


def tokenize(text: str, filename: str = "<input>") -> List[Token]:
    """
    Convert IDL source text into a list of tokens ending with EOF.

    Raises LexError on unterminated constructs or unexpected characters.
    """
    return list(Lexer(text, filename))
