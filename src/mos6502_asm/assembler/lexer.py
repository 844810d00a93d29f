"""
MOS 6502 Assembly Language Lexer
================================

This module implements a lexer (tokenizer) for 6502 assembly language.
It converts source text into a stream of tokens that the parser consumes
one line at a time.

Token Types
-----------
- SYMBOL: Labels, mnemonics, register names, defined names
- DIRECTIVE: Pragma names written with a leading dot (.org, .byte)
- NUMBER: Binary, octal, decimal and hexadecimal literals
- STRING: Double-quoted strings ("hello")
- Delimiters: , : # < > ( )
- NEWLINE: End of line
- EOF: End of file

Number Formats
--------------
| Format      | Prefix        | Example   | Value |
|-------------|---------------|-----------|-------|
| Binary      | %             | %00101010 | 42    |
| Octal       | 0 (leading)   | 052       | 42    |
| Decimal     | (none)        | 42        | 42    |
| Hexadecimal | $             | $2a, $2A  | 42    |

Comments
--------
A semicolon starts a comment that runs to the end of the line.

Example
-------
>>> from mos6502_asm.assembler.lexer import Lexer
>>> for token in Lexer("start: lda #$2a ; load").tokenize():
...     print(token)
Token(SYMBOL, 'start', 1:1)
Token(COLON, ':', 1:6)
Token(SYMBOL, 'lda', 1:8)
Token(HASH, '#', 1:12)
Token(NUMBER, $2A, 1:13)
Token(EOF, 1:23)
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator
import string

from mos6502_asm.errors import AssemblySyntaxError, SourceLocation


# =============================================================================
# Token Type Enumeration
# =============================================================================

class TokenType(Enum):
    """Token types for 6502 assembly language."""

    # Structural tokens
    NEWLINE = auto()
    EOF = auto()

    # Values
    SYMBOL = auto()
    DIRECTIVE = auto()
    NUMBER = auto()
    STRING = auto()

    # Delimiters
    COMMA = auto()       # ,
    COLON = auto()       # :
    HASH = auto()        # # (immediate mode indicator)
    LT = auto()          # < (low byte)
    GT = auto()          # > (high byte)
    LPAREN = auto()      # (
    RPAREN = auto()      # )


# =============================================================================
# Token Data Class
# =============================================================================

@dataclass(frozen=True)
class Token:
    """
    A single token from the source code.

    Attributes:
        type: The TokenType classification
        value: String for symbols/directives/strings, int for numbers
        line: Line number in source (1-indexed)
        column: Column number in source (1-indexed)
        filename: Name of the source file
    """
    type: TokenType
    value: str | int | None
    line: int
    column: int
    filename: str

    def __repr__(self) -> str:
        if self.value is not None:
            if isinstance(self.value, int):
                return f"Token({self.type.name}, ${self.value:X}, {self.line}:{self.column})"
            return f"Token({self.type.name}, {self.value!r}, {self.line}:{self.column})"
        return f"Token({self.type.name}, {self.line}:{self.column})"

    @property
    def location(self) -> SourceLocation:
        """Return a SourceLocation for error reporting."""
        return SourceLocation(self.filename, self.line, self.column)


# =============================================================================
# Lexer Implementation
# =============================================================================

class Lexer:
    """
    Tokenizes 6502 assembly source code.

    Usage:
        lexer = Lexer(source_text, filename)
        tokens = list(lexer.tokenize())

    Attributes:
        source: The source code being tokenized
        filename: Name of the source file (for error reporting)
    """

    IDENT_START = string.ascii_letters + "_"
    IDENT_CHARS = string.ascii_letters + string.digits + "_"

    SINGLE_CHAR_TOKENS = {
        ",": TokenType.COMMA,
        ":": TokenType.COLON,
        "#": TokenType.HASH,
        "<": TokenType.LT,
        ">": TokenType.GT,
        "(": TokenType.LPAREN,
        ")": TokenType.RPAREN,
    }

    ESCAPE_SEQUENCES = {
        "n": "\n",
        "r": "\r",
        "t": "\t",
        "\\": "\\",
        '"': '"',
        "0": "\0",
    }

    def __init__(self, source: str, filename: str = "<input>", line_number: int = 1):
        """
        Initialize the lexer with source code.

        Args:
            source: The assembly source code to tokenize
            filename: Name of the source file (for error messages)
            line_number: Starting line number
        """
        self.source = source
        self.filename = filename

        self._pos = 0
        self._line = line_number
        self._column = 1
        self._line_start_pos = 0

    def tokenize(self) -> Iterator[Token]:
        """
        Generate tokens from the source code.

        Yields:
            Token objects, always terminated by a single EOF token

        Raises:
            AssemblySyntaxError: On an unrecognized character or malformed literal
        """
        while not self._at_end():
            if self._skip_whitespace():
                continue

            if self._skip_comment():
                continue

            yield self._scan_token()

        yield self._make_token(TokenType.EOF, None, self._line, self._column)

    # =========================================================================
    # Character Access Methods
    # =========================================================================

    def _at_end(self) -> bool:
        return self._pos >= len(self.source)

    def _peek(self, offset: int = 0) -> str:
        """Look ahead without advancing; empty string past the end."""
        pos = self._pos + offset
        if pos >= len(self.source):
            return ""
        return self.source[pos]

    def _advance(self) -> str:
        """Consume and return the current character, tracking line/column."""
        if self._at_end():
            return ""

        char = self.source[self._pos]
        self._pos += 1

        if char == "\n":
            self._line += 1
            self._column = 1
            self._line_start_pos = self._pos
        else:
            self._column += 1

        return char

    # =========================================================================
    # Token Creation
    # =========================================================================

    def _make_token(
        self,
        token_type: TokenType,
        value: str | int | None,
        start_line: int,
        start_column: int,
    ) -> Token:
        return Token(
            type=token_type,
            value=value,
            line=start_line,
            column=start_column,
            filename=self.filename,
        )

    def _error(self, message: str) -> AssemblySyntaxError:
        """Create a syntax error tagged with the current position."""
        location = SourceLocation(self.filename, self._line, self._column)
        return AssemblySyntaxError(message, location, source_line=self.get_current_line())

    # =========================================================================
    # Whitespace and Comment Handling
    # =========================================================================

    def _skip_whitespace(self) -> bool:
        skipped = False
        # '' in ' \t\r' is True, so guard against end of input
        while self._peek() and self._peek() in " \t\r":
            self._advance()
            skipped = True
        return skipped

    def _skip_comment(self) -> bool:
        if self._peek() == ";":
            while not self._at_end() and self._peek() != "\n":
                self._advance()
            return True
        return False

    # =========================================================================
    # Token Scanning
    # =========================================================================

    def _scan_token(self) -> Token:
        start_line = self._line
        start_column = self._column

        char = self._peek()

        if char == "\n":
            self._advance()
            return self._make_token(TokenType.NEWLINE, None, start_line, start_column)

        if char in self.IDENT_START:
            return self._make_token(
                TokenType.SYMBOL, self._scan_name(), start_line, start_column
            )

        if char == ".":
            self._advance()
            if not (self._peek() and self._peek() in self.IDENT_START):
                raise self._error("expected pragma name after '.'")
            return self._make_token(
                TokenType.DIRECTIVE, self._scan_name().lower(), start_line, start_column
            )

        if char.isdigit():
            return self._scan_number(start_line, start_column)

        if char == "$":
            self._advance()
            value = self._scan_digits(string.hexdigits, 16, "hexadecimal")
            return self._make_token(TokenType.NUMBER, value, start_line, start_column)

        if char == "%":
            self._advance()
            value = self._scan_digits("01", 2, "binary")
            return self._make_token(TokenType.NUMBER, value, start_line, start_column)

        if char == '"':
            return self._scan_string(start_line, start_column)

        if char in self.SINGLE_CHAR_TOKENS:
            self._advance()
            return self._make_token(
                self.SINGLE_CHAR_TOKENS[char], char, start_line, start_column
            )

        raise self._error(f"unexpected character '{char}'")

    def _scan_name(self) -> str:
        chars = []
        while self._peek() and self._peek() in self.IDENT_CHARS:
            chars.append(self._advance())
        return "".join(chars)

    def _scan_number(self, start_line: int, start_column: int) -> Token:
        """
        Scan a decimal number, or an octal one when it has a leading zero.

        A lone "0" is decimal zero.
        """
        if self._peek() == "0" and self._peek(1).isdigit():
            self._advance()  # consume leading 0
            value = self._scan_digits("01234567", 8, "octal")
        else:
            value = self._scan_digits(string.digits, 10, "decimal")
        return self._make_token(TokenType.NUMBER, value, start_line, start_column)

    def _scan_digits(self, digits: str, base: int, kind: str) -> int:
        chars = []
        while self._peek() and self._peek() in digits:
            chars.append(self._advance())

        if not chars:
            raise self._error(f"expected {kind} digits")

        # Reject things like "09", "%102" or "12ab" rather than splitting them
        if self._peek() and self._peek() in self.IDENT_CHARS:
            raise self._error(f"malformed {kind} literal")

        return int("".join(chars), base)

    def _scan_string(self, start_line: int, start_column: int) -> Token:
        """Scan a double-quoted string literal with simple escapes."""
        self._advance()  # consume opening "

        chars = []
        while not self._at_end():
            char = self._peek()

            if char == '"':
                self._advance()
                return self._make_token(
                    TokenType.STRING, "".join(chars), start_line, start_column
                )

            if char == "\n":
                break

            if char == "\\":
                self._advance()
                escaped = self._advance()
                chars.append(self.ESCAPE_SEQUENCES.get(escaped, escaped))
            else:
                chars.append(self._advance())

        raise self._error("unterminated string literal")

    # =========================================================================
    # Utility Methods
    # =========================================================================

    def get_current_line(self) -> str:
        """Get the current line of source text."""
        line_end = self.source.find("\n", self._line_start_pos)
        if line_end == -1:
            line_end = len(self.source)
        return self.source[self._line_start_pos:line_end]
