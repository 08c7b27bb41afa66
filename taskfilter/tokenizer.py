"""Tokenizer for filter text."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto


class TokenType(Enum):
    """Token types for the filter parser."""

    WORD = auto()  # Field name, word operator or bare value
    STRING = auto()  # Quoted value
    OPERATOR = auto()  # =, !=, >, >=, <, <=
    AND = auto()  # &&
    OR = auto()  # ||
    LPAREN = auto()  # (
    RPAREN = auto()  # )
    LBRACKET = auto()  # [
    RBRACKET = auto()  # ]
    COMMA = auto()  # ,
    EOF = auto()  # End of input


@dataclass(frozen=True)
class Token:
    """A token from the filter string."""

    type: TokenType
    value: str
    pos: int  # Offset in the original text, for error messages


class FilterSyntaxError(ValueError):
    """Malformed filter text at a known offset."""

    def __init__(self, message: str, position: int) -> None:
        super().__init__(message)
        self.message = message
        self.position = position


_WHITESPACE = " \t\n\r"
_STOP_CHARS = '()[],=!<>&|"\''
_PUNCTUATION = {
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "[": TokenType.LBRACKET,
    "]": TokenType.RBRACKET,
    ",": TokenType.COMMA,
}
_ESCAPES = {"n": "\n", "t": "\t", "r": "\r"}


class Tokenizer:
    """Tokenizer for filter strings."""

    def __init__(self, text: str):
        self.text = text
        self.pos = 0
        self.length = len(text)

    def _peek(self, offset: int = 0) -> str:
        index = self.pos + offset
        return self.text[index] if index < self.length else ""

    def _skip_whitespace(self) -> None:
        while self.pos < self.length and self.text[self.pos] in _WHITESPACE:
            self.pos += 1

    def _read_quoted_string(self) -> str:
        """Read a single- or double-quoted string, handling escapes."""
        quote = self.text[self.pos]
        start_pos = self.pos
        self.pos += 1  # Skip opening quote
        result: list[str] = []

        while self.pos < self.length:
            ch = self.text[self.pos]
            if ch == quote:
                self.pos += 1  # Skip closing quote
                return "".join(result)
            if ch == "\\":
                self.pos += 1
                if self.pos >= self.length:
                    raise FilterSyntaxError("Unexpected end of text after backslash", self.pos)
                escaped = self.text[self.pos]
                result.append(_ESCAPES.get(escaped, escaped))
            else:
                result.append(ch)
            self.pos += 1

        raise FilterSyntaxError(
            f"Unterminated quoted string starting at position {start_pos}", start_pos
        )

    def _read_word(self) -> str:
        start = self.pos
        while self.pos < self.length:
            ch = self.text[self.pos]
            if ch in _STOP_CHARS or ch in _WHITESPACE:
                break
            self.pos += 1
        return self.text[start : self.pos]

    def _read_symbol(self) -> Token:
        """Read a comparison or logical operator starting at the current position."""
        start_pos = self.pos
        ch = self._peek()
        nxt = self._peek(1)

        if ch in "&|":
            token_type = TokenType.AND if ch == "&" else TokenType.OR
            if nxt != ch:
                raise FilterSyntaxError(
                    f"Unexpected '{ch}' at position {start_pos}. "
                    f"Hint: Use '{ch * 2}' to join conditions",
                    start_pos,
                )
            self.pos += 2
            return Token(token_type, ch * 2, start_pos)

        if ch == "!":
            if nxt != "=":
                raise FilterSyntaxError(
                    f"Unexpected '!' at position {start_pos}. "
                    "Hint: Negation is not supported; use '!=' or 'not in'",
                    start_pos,
                )
            self.pos += 2
            return Token(TokenType.OPERATOR, "!=", start_pos)

        if ch == "=":
            if nxt == "=":
                raise FilterSyntaxError(
                    f"Unexpected '==' at position {start_pos}. "
                    "Hint: Use single '=' for equality, not '=='",
                    start_pos,
                )
            self.pos += 1
            return Token(TokenType.OPERATOR, "=", start_pos)

        # < or >
        if nxt == "=":
            self.pos += 2
            return Token(TokenType.OPERATOR, ch + "=", start_pos)
        self.pos += 1
        return Token(TokenType.OPERATOR, ch, start_pos)

    def tokenize(self) -> list[Token]:
        """Tokenize the entire filter string."""
        tokens: list[Token] = []

        while True:
            self._skip_whitespace()

            if self.pos >= self.length:
                tokens.append(Token(TokenType.EOF, "", self.pos))
                break

            ch = self.text[self.pos]
            start_pos = self.pos

            if ch in _PUNCTUATION:
                tokens.append(Token(_PUNCTUATION[ch], ch, start_pos))
                self.pos += 1
            elif ch in "&|!=<>":
                tokens.append(self._read_symbol())
            elif ch in "\"'":
                tokens.append(Token(TokenType.STRING, self._read_quoted_string(), start_pos))
            else:
                tokens.append(Token(TokenType.WORD, self._read_word(), start_pos))

        return tokens
