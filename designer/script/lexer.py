"""
Tokenizer for widget scripts.
"""

from dataclasses import dataclass
from typing import Any, List

from designer.script.errors import ScriptSyntaxError

KEYWORDS = frozenset({
    "var", "let", "const", "return", "if", "else", "for", "of", "while",
    "break", "continue", "true", "false", "null", "undefined", "typeof", "new",
})

DECLARATION_KEYWORDS = frozenset({"var", "let", "const"})

# longest first
PUNCTUATORS = (
    "===", "!==", "**=", "...",
    "==", "!=", "<=", ">=", "&&", "||", "??", "?.", "=>", "++", "--",
    "+=", "-=", "*=", "/=", "%=", "**",
    "+", "-", "*", "/", "%", "<", ">", "=", "!", "?", ":", ".", ",", ";",
    "(", ")", "[", "]", "{", "}",
)

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "b": "\b", "f": "\f", "v": "\v", "0": "\0"}


@dataclass(frozen=True)
class Token:
    type: str  # NUM, STR, TEMPLATE, IDENT, KEYWORD, PUNCT, EOF
    value: Any
    line: int
    column: int

    def is_punct(self, *values: str) -> bool:
        return self.type == "PUNCT" and self.value in values

    def is_keyword(self, *values: str) -> bool:
        return self.type == "KEYWORD" and self.value in values


def _is_ident_start(ch: str) -> bool:
    return ch.isalpha() or ch in "_$"


def _is_ident_part(ch: str) -> bool:
    return ch.isalnum() or ch in "_$"


class Lexer:
    def __init__(self, source: str):
        self.source = source
        self.pos = 0
        self.line = 1
        self.col = 1

    def error(self, message: str) -> ScriptSyntaxError:
        return ScriptSyntaxError(message, self.line, self.col)

    def _peek(self, offset: int = 0) -> str:
        i = self.pos + offset
        return self.source[i] if i < len(self.source) else ""

    def _advance(self, n: int = 1) -> str:
        chunk = self.source[self.pos:self.pos + n]
        for ch in chunk:
            if ch == "\n":
                self.line += 1
                self.col = 1
            else:
                self.col += 1
        self.pos += n
        return chunk

    def tokenize(self) -> List[Token]:
        tokens: List[Token] = []
        while True:
            self._skip_trivia()
            if self.pos >= len(self.source):
                tokens.append(Token("EOF", None, self.line, self.col))
                return tokens
            tokens.append(self._next_token())

    def _skip_trivia(self) -> None:
        while self.pos < len(self.source):
            ch = self._peek()
            if ch.isspace():
                self._advance()
            elif ch == "/" and self._peek(1) == "/":
                while self.pos < len(self.source) and self._peek() != "\n":
                    self._advance()
            elif ch == "/" and self._peek(1) == "*":
                end = self.source.find("*/", self.pos + 2)
                if end < 0:
                    raise self.error("Unterminated comment")
                self._advance(end + 2 - self.pos)
            else:
                return

    def _next_token(self) -> Token:
        line, col = self.line, self.col
        ch = self._peek()

        if ch.isdigit() or (ch == "." and self._peek(1).isdigit()):
            return Token("NUM", self._read_number(), line, col)
        if ch in "'\"":
            return Token("STR", self._read_string(ch), line, col)
        if ch == "`":
            return Token("TEMPLATE", self._read_template(), line, col)
        if _is_ident_start(ch):
            start = self.pos
            while self.pos < len(self.source) and _is_ident_part(self._peek()):
                self._advance()
            word = self.source[start:self.pos]
            return Token("KEYWORD" if word in KEYWORDS else "IDENT", word, line, col)

        for punct in PUNCTUATORS:
            if self.source.startswith(punct, self.pos):
                # a?.5:1 is a conditional, not optional chaining
                if punct == "?." and self._peek(2).isdigit():
                    continue
                self._advance(len(punct))
                return Token("PUNCT", punct, line, col)

        raise self.error(f"Unexpected character '{ch}'")

    def _read_number(self):
        start = self.pos
        if self._peek() == "0" and self._peek(1) in "xX":
            self._advance(2)
            while self._peek() and self._peek() in "0123456789abcdefABCDEF":
                self._advance()
            text = self.source[start + 2:self.pos]
            if not text:
                raise self.error("Invalid hexadecimal number")
            return int(text, 16)

        is_float = False
        while self._peek().isdigit():
            self._advance()
        if self._peek() == "." and self._peek(1).isdigit() or (self._peek() == "." and start == self.pos):
            is_float = True
            self._advance()
            while self._peek().isdigit():
                self._advance()
        elif self._peek() == "." and not _is_ident_start(self._peek(1)):
            # "1." is a complete number literal
            is_float = True
            self._advance()
        if self._peek() in ("e", "E") and (self._peek(1).isdigit() or (self._peek(1) in "+-" and self._peek(2).isdigit())):
            is_float = True
            self._advance(2)
            while self._peek().isdigit():
                self._advance()
        if _is_ident_start(self._peek()):
            raise self.error("Invalid or unexpected token")

        text = self.source[start:self.pos]
        return float(text) if is_float else int(text)

    def _read_escape(self) -> str:
        self._advance()  # backslash
        ch = self._advance()
        if ch == "":
            raise self.error("Invalid or unexpected token")
        if ch in _ESCAPES:
            return _ESCAPES[ch]
        if ch == "\n":
            return ""
        if ch in ("u", "x"):
            width = 4 if ch == "u" else 2
            digits = self.source[self.pos:self.pos + width]
            try:
                code = int(digits, 16)
            except ValueError:
                raise self.error("Invalid escape sequence") from None
            if len(digits) != width:
                raise self.error("Invalid escape sequence")
            self._advance(width)
            return chr(code)
        return ch

    def _read_string(self, quote: str) -> str:
        self._advance()
        parts = []
        while True:
            ch = self._peek()
            if ch == "" or ch == "\n":
                raise self.error("Unterminated string literal")
            if ch == quote:
                self._advance()
                return "".join(parts)
            if ch == "\\":
                parts.append(self._read_escape())
            else:
                parts.append(self._advance())

    def _read_template(self) -> list:
        """Returns [("str", text) | ("expr", source, line, column), ...]."""
        self._advance()
        parts: list = []
        buf: List[str] = []
        while True:
            ch = self._peek()
            if ch == "":
                raise self.error("Unterminated template literal")
            if ch == "`":
                self._advance()
                parts.append(("str", "".join(buf)))
                return parts
            if ch == "\\":
                buf.append(self._read_escape())
            elif ch == "$" and self._peek(1) == "{":
                parts.append(("str", "".join(buf)))
                buf = []
                self._advance(2)
                line, col = self.line, self.col
                start = self.pos
                depth = 1
                while depth:
                    c = self._peek()
                    if c == "":
                        raise self.error("Unterminated template literal")
                    if c == "{":
                        depth += 1
                    elif c == "}":
                        depth -= 1
                    if depth:
                        self._advance()
                parts.append(("expr", self.source[start:self.pos], line, col))
                self._advance()  # closing brace
            else:
                buf.append(self._advance())


def tokenize(source: str) -> List[Token]:
    return Lexer(source).tokenize()
