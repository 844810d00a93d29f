"""
MOS 6502 Assembly Language Parser
=================================

This module turns the token stream from the lexer into ParsedLine
records, one source line at a time. It also defines the data model the
two assembler passes consume.

Line Structure
--------------
```asm
label:                  ; label only
label:  lda #$2a        ; label and instruction
        sta $10         ; instruction only
        .org $1234      ; pragma
```

Addressing Mode Detection
-------------------------
| Syntax        | Mode            | Example        |
|---------------|-----------------|----------------|
| (none)        | Implied         | rts            |
| a             | Accumulator     | asl a          |
| #value        | Immediate       | #$2a, #<label  |
| value         | ZeroPage        | $10            |
| value         | Absolute        | $1234, label   |
| value,x / ,y  | ZeroPage/Abs XY | $20,x          |
| (value)       | Indirect        | ($fffc)        |
| (value,x)     | IndirectX       | ($20,x)        |
| (value),y     | IndirectY       | ($20),y        |
| label         | Relative        | bne loop       |

Literal operands below 256 select the zero-page form. Label operands
are parsed as absolute; the first pass narrows them once their value is
known.

Pragmas
-------
.byte n | .bytes n, "text", ... | .word addr | .org addr
.define NAME addr | .include "file"
"""

from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar, Iterator, Optional, Union
import logging

from mos6502_asm.errors import (
    AssemblySyntaxError,
    IncludeError,
    OperandOverflowError,
    SourceLocation,
)
from mos6502_asm.assembler.lexer import Lexer, Token, TokenType
from mos6502_asm.cpu import ModeKind, BRANCH_INSTRUCTIONS, ACCUMULATOR_INSTRUCTIONS


logger = logging.getLogger(__name__)


# =============================================================================
# Operand Values
# =============================================================================

@dataclass(frozen=True)
class Literal:
    """A 16-bit literal address."""
    value: int


@dataclass(frozen=True)
class Label:
    """A reference to a named symbol."""
    name: str


Address = Union[Literal, Label]


@dataclass(frozen=True)
class ImmediateLiteral:
    """An 8-bit literal immediate operand (#$2a)."""
    value: int


@dataclass(frozen=True)
class ImmediateLabel:
    """A full label in an immediate operand (#label); must resolve to <= $FF."""
    name: str


@dataclass(frozen=True)
class LowByte:
    """Low byte of a label (#<label)."""
    name: str


@dataclass(frozen=True)
class HighByte:
    """High byte of a label (#>label)."""
    name: str


ImmediateValue = Union[ImmediateLiteral, ImmediateLabel, LowByte, HighByte]


# =============================================================================
# Addressing Modes
# =============================================================================
# Each variant carries its operand and a class-level `kind` so the encoder
# can look up bbb bits without caring about the operand.
# =============================================================================

@dataclass(frozen=True)
class Implied:
    kind: ClassVar[ModeKind] = ModeKind.IMPLIED


@dataclass(frozen=True)
class Accumulator:
    kind: ClassVar[ModeKind] = ModeKind.ACCUMULATOR


@dataclass(frozen=True)
class Immediate:
    value: ImmediateValue
    kind: ClassVar[ModeKind] = ModeKind.IMMEDIATE


@dataclass(frozen=True)
class ZeroPage:
    addr: Address
    kind: ClassVar[ModeKind] = ModeKind.ZERO_PAGE


@dataclass(frozen=True)
class ZeroPageX:
    addr: Address
    kind: ClassVar[ModeKind] = ModeKind.ZERO_PAGE_X


@dataclass(frozen=True)
class ZeroPageY:
    addr: Address
    kind: ClassVar[ModeKind] = ModeKind.ZERO_PAGE_Y


@dataclass(frozen=True)
class Absolute:
    addr: Address
    kind: ClassVar[ModeKind] = ModeKind.ABSOLUTE


@dataclass(frozen=True)
class AbsoluteX:
    addr: Address
    kind: ClassVar[ModeKind] = ModeKind.ABSOLUTE_X


@dataclass(frozen=True)
class AbsoluteY:
    addr: Address
    kind: ClassVar[ModeKind] = ModeKind.ABSOLUTE_Y


@dataclass(frozen=True)
class Indirect:
    addr: Address
    kind: ClassVar[ModeKind] = ModeKind.INDIRECT


@dataclass(frozen=True)
class IndirectX:
    addr: Address
    kind: ClassVar[ModeKind] = ModeKind.INDIRECT_X


@dataclass(frozen=True)
class IndirectY:
    addr: Address
    kind: ClassVar[ModeKind] = ModeKind.INDIRECT_Y


@dataclass(frozen=True)
class Relative:
    addr: Address
    kind: ClassVar[ModeKind] = ModeKind.RELATIVE


AddressingMode = Union[
    Implied, Accumulator, Immediate,
    ZeroPage, ZeroPageX, ZeroPageY,
    Absolute, AbsoluteX, AbsoluteY,
    Indirect, IndirectX, IndirectY,
    Relative,
]

# Variants that carry an Address, keyed by kind
ADDRESS_MODES: dict[ModeKind, type] = {
    cls.kind: cls
    for cls in (ZeroPage, ZeroPageX, ZeroPageY, Absolute, AbsoluteX,
                AbsoluteY, Indirect, IndirectX, IndirectY, Relative)
}


def with_kind(mode: AddressingMode, kind: ModeKind) -> AddressingMode:
    """Rebuild an address-carrying mode as another kind with the same operand."""
    return ADDRESS_MODES[kind](mode.addr)


# =============================================================================
# Line Records
# =============================================================================

@dataclass(frozen=True)
class ParsedInstruction:
    """
    A machine instruction.

    Attributes:
        mnemonic: Lowercased mnemonic text
        addr_mode: Addressing mode carrying the operand
    """
    mnemonic: str
    addr_mode: AddressingMode


@dataclass(frozen=True)
class Byte:
    value: int


@dataclass(frozen=True)
class Bytes:
    values: tuple[int, ...]


@dataclass(frozen=True)
class Word:
    addr: Address


@dataclass(frozen=True)
class Origin:
    addr: Address


@dataclass(frozen=True)
class Define:
    name: str
    addr: Address


@dataclass(frozen=True)
class Include:
    path: str


Pragma = Union[Byte, Bytes, Word, Origin, Define, Include]

LineValue = Union[ParsedInstruction, Pragma, None]


@dataclass(frozen=True)
class ParsedLine:
    """
    One parsed source line.

    Attributes:
        label: Label defined on this line, if any (case-sensitive)
        value: Instruction, pragma, or None for label-only lines
        location: Position of the first token on the line
    """
    label: Optional[str]
    value: LineValue
    location: SourceLocation


# =============================================================================
# Helpers
# =============================================================================

def check_overflow(parser: "Parser", n: int, location: Optional[SourceLocation] = None) -> int:
    """
    Ensure a literal fits in 8 bits.

    Args:
        parser: Parser whose current position tags the error
        n: The value to check
        location: Explicit location overriding the parser position

    Returns:
        n unchanged

    Raises:
        OperandOverflowError: If n is outside 0..255
    """
    if not 0 <= n <= 0xFF:
        loc = location or parser.location()
        raise OperandOverflowError(n, loc, source_line=parser.source_line(loc))
    return n


# =============================================================================
# Parser Implementation
# =============================================================================

PRAGMAS = frozenset({"byte", "bytes", "word", "org", "define", "include"})


def read_source(filepath: Path) -> str:
    """
    Read a source file as UTF-8.

    Raises:
        AssemblySyntaxError: Located at the first byte that is not valid UTF-8
    """
    data = filepath.read_bytes()
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        before = data[:e.start].decode("utf-8")
        line = before.count("\n") + 1
        column = len(before) - before.rfind("\n")
        text = data.decode("utf-8", errors="replace").splitlines()
        raise AssemblySyntaxError(
            f"source is not valid UTF-8 (byte ${data[e.start]:02X})",
            SourceLocation(str(filepath), line, column),
            hint="save the file as UTF-8 or plain ASCII",
            source_line=text[line - 1] if line <= len(text) else None,
        ) from e


class Parser:
    """
    Stateful line producer for 6502 assembly.

    Each call to next_line() consumes one source line and returns its
    ParsedLine, or None at end of input. Iterating the parser yields
    every remaining line.

    Usage:
        parser = Parser(source, "prog.s")
        for line in parser:
            ...

    Includes are resolved relative to the including file's directory,
    then the configured include paths. A parser built from a string has
    no directory, so it can only include through include_paths.
    """

    def __init__(
        self,
        source: str,
        filename: str = "<input>",
        include_paths: Optional[list[str | Path]] = None,
        base_dir: Optional[Path] = None,
        _active: frozenset[Path] = frozenset(),
        _sources: Optional[dict[str, list[str]]] = None,
    ):
        """
        Initialize the parser.

        Args:
            source: Assembly source text
            filename: Source filename for error reporting
            include_paths: Directories searched by .include
            base_dir: Directory of the source file, searched first by .include
        """
        self.filename = filename
        self._tokens = Lexer(source, filename).tokenize()
        self._lookahead: deque[Token] = deque()
        self._include_paths = [Path(p) for p in include_paths or []]
        self._base_dir = base_dir
        self._active = _active

        # Shared with included parsers so listings can show any file's text
        self.sources: dict[str, list[str]] = _sources if _sources is not None else {}
        self.sources[filename] = source.splitlines()

    @classmethod
    def from_file(
        cls,
        filepath: str | Path,
        include_paths: Optional[list[str | Path]] = None,
    ) -> "Parser":
        """Create a parser reading a UTF-8 source file."""
        filepath = Path(filepath)
        return cls(
            read_source(filepath),
            str(filepath),
            include_paths=include_paths,
            base_dir=filepath.parent,
            _active=frozenset({filepath.resolve()}),
        )

    def __iter__(self) -> Iterator[ParsedLine]:
        while (line := self.next_line()) is not None:
            yield line

    # =========================================================================
    # Token Navigation
    # =========================================================================

    def _peek(self, offset: int = 0) -> Token:
        """Look ahead at a token without consuming it."""
        while len(self._lookahead) <= offset:
            token = next(self._tokens, None)
            if token is None:
                # Keep returning the EOF token once the lexer is exhausted
                token = self._lookahead[-1]
            self._lookahead.append(token)
        return self._lookahead[offset]

    def _advance(self) -> Token:
        token = self._peek()
        if token.type != TokenType.EOF:
            self._lookahead.popleft()
        return token

    def _check(self, *types: TokenType) -> bool:
        return self._peek().type in types

    def _match(self, *types: TokenType) -> Optional[Token]:
        if self._check(*types):
            return self._advance()
        return None

    def _expect(self, token_type: TokenType, message: str) -> Token:
        if not self._check(token_type):
            raise self.error(message)
        return self._advance()

    def _at_line_end(self) -> bool:
        return self._check(TokenType.NEWLINE, TokenType.EOF)

    def _is_register(self, name: str) -> bool:
        return self._check(TokenType.SYMBOL) and self._peek().value.lower() == name

    # =========================================================================
    # Error Reporting
    # =========================================================================

    def location(self) -> SourceLocation:
        """Current lexer position."""
        return self._peek().location

    def source_line(self, location: SourceLocation) -> Optional[str]:
        """Source text of the line at a location, if known."""
        lines = self.sources.get(location.filename, [])
        if 1 <= location.line <= len(lines):
            return lines[location.line - 1]
        return None

    def error(self, message: str, location: Optional[SourceLocation] = None) -> AssemblySyntaxError:
        """Create a syntax error tagged with the current (or given) position."""
        loc = location or self.location()
        return AssemblySyntaxError(message, loc, source_line=self.source_line(loc))

    # =========================================================================
    # Line Parsing
    # =========================================================================

    def next_line(self) -> Optional[ParsedLine]:
        """
        Parse the next non-blank line.

        Returns:
            The ParsedLine, or None at end of input

        Raises:
            AssemblySyntaxError: On malformed input
            OperandOverflowError: On an 8-bit literal above $FF
        """
        while self._match(TokenType.NEWLINE):
            pass

        if self._check(TokenType.EOF):
            return None

        location = self.location()
        label = None

        if self._check(TokenType.SYMBOL) and self._peek(1).type == TokenType.COLON:
            label = self._advance().value
            self._advance()  # consume colon

        value: LineValue = None
        if self._check(TokenType.SYMBOL):
            value = self._parse_instruction()
        elif self._check(TokenType.DIRECTIVE):
            value = self._parse_pragma()

        if not self._at_line_end():
            raise self.error(f"unexpected {self._describe(self._peek())}")
        self._match(TokenType.NEWLINE)

        line = ParsedLine(label=label, value=value, location=location)
        logger.debug(f"{location}: {line.label or ''} {line.value}")
        return line

    @staticmethod
    def _describe(token: Token) -> str:
        if token.value is None:
            return token.type.name.lower()
        if isinstance(token.value, int):
            return f"number ${token.value:X}"
        return f"'{token.value}'"

    # =========================================================================
    # Instruction Parsing
    # =========================================================================

    def _parse_instruction(self) -> ParsedInstruction:
        mnemonic = self._advance().value.lower()

        if mnemonic in BRANCH_INSTRUCTIONS:
            return ParsedInstruction(mnemonic, Relative(self._parse_address()))

        return ParsedInstruction(mnemonic, self._parse_operand(mnemonic))

    def _parse_operand(self, mnemonic: str) -> AddressingMode:
        if self._at_line_end():
            return Implied()

        if (mnemonic in ACCUMULATOR_INSTRUCTIONS and self._is_register("a")
                and self._peek(1).type in (TokenType.NEWLINE, TokenType.EOF)):
            self._advance()
            return Accumulator()

        if self._match(TokenType.HASH):
            return Immediate(self._parse_immediate())

        if self._match(TokenType.LPAREN):
            return self._parse_indirect()

        addr = self._parse_address()
        if self._match(TokenType.COMMA):
            if self._is_register("x"):
                self._advance()
                return ZeroPageX(addr) if self._is_zero_page(addr) else AbsoluteX(addr)
            if self._is_register("y"):
                self._advance()
                return ZeroPageY(addr) if self._is_zero_page(addr) else AbsoluteY(addr)
            raise self.error("expected 'x' or 'y' after ','")

        return ZeroPage(addr) if self._is_zero_page(addr) else Absolute(addr)

    def _parse_immediate(self) -> ImmediateValue:
        if self._match(TokenType.LT):
            return LowByte(self._expect(TokenType.SYMBOL, "expected label after '<'").value)
        if self._match(TokenType.GT):
            return HighByte(self._expect(TokenType.SYMBOL, "expected label after '>'").value)
        if self._check(TokenType.NUMBER):
            token = self._advance()
            return ImmediateLiteral(check_overflow(self, token.value, token.location))
        if self._check(TokenType.SYMBOL):
            return ImmediateLabel(self._advance().value)
        raise self.error("expected immediate value after '#'")

    def _parse_indirect(self) -> AddressingMode:
        addr = self._parse_address()

        if self._match(TokenType.COMMA):
            if not self._is_register("x"):
                raise self.error("expected 'x' in (addr,x)")
            self._advance()
            self._expect(TokenType.RPAREN, "expected ')' after (addr,x")
            return IndirectX(addr)

        self._expect(TokenType.RPAREN, "expected ')'")

        if self._match(TokenType.COMMA):
            if not self._is_register("y"):
                raise self.error("expected 'y' in (addr),y")
            self._advance()
            return IndirectY(addr)

        return Indirect(addr)

    def _parse_address(self) -> Address:
        if self._check(TokenType.NUMBER):
            token = self._advance()
            if token.value > 0xFFFF:
                raise self.error(
                    f"address ${token.value:X} does not fit in 16 bits", token.location
                )
            return Literal(token.value)
        if self._check(TokenType.SYMBOL):
            return Label(self._advance().value)
        raise self.error("expected address or label")

    @staticmethod
    def _is_zero_page(addr: Address) -> bool:
        return isinstance(addr, Literal) and addr.value <= 0xFF

    # =========================================================================
    # Pragma Parsing
    # =========================================================================

    def _parse_pragma(self) -> Pragma:
        token = self._advance()
        name = token.value

        if name not in PRAGMAS:
            raise self.error(f"unknown pragma '.{name}'", token.location)

        if name == "byte":
            return Byte(self._parse_byte_value())

        if name == "bytes":
            values = list(self._parse_byte_item())
            while self._match(TokenType.COMMA):
                values.extend(self._parse_byte_item())
            return Bytes(tuple(values))

        if name == "word":
            return Word(self._parse_address())

        if name == "org":
            return Origin(self._parse_address())

        if name == "define":
            symbol = self._expect(TokenType.SYMBOL, "expected name after .define").value
            return Define(symbol, self._parse_address())

        path = self._expect(TokenType.STRING, "expected quoted path after .include").value
        return Include(path)

    def _parse_byte_value(self) -> int:
        if not self._check(TokenType.NUMBER):
            raise self.error("expected byte value")
        token = self._advance()
        return check_overflow(self, token.value, token.location)

    def _parse_byte_item(self) -> tuple[int, ...]:
        if self._check(TokenType.STRING):
            token = self._advance()
            try:
                return tuple(token.value.encode("ascii"))
            except UnicodeEncodeError:
                raise self.error("string contains non-ASCII characters", token.location)
        return (self._parse_byte_value(),)

    # =========================================================================
    # Includes
    # =========================================================================

    def include(self, path: str, location: Optional[SourceLocation] = None) -> "Parser":
        """
        Open an included file as a child parser.

        Args:
            path: Path as written in the .include pragma
            location: Location of the pragma, for error reporting

        Returns:
            A Parser over the included file sharing this parser's settings

        Raises:
            IncludeError: If includes are unavailable, the file is missing
                          or not UTF-8, or the include is circular
        """
        search_dirs = ([self._base_dir] if self._base_dir is not None else []) + self._include_paths
        if not search_dirs:
            raise IncludeError(
                path, "includes are not supported for in-memory source", location
            )

        for directory in search_dirs:
            candidate = directory / path
            if not candidate.is_file():
                continue

            resolved = candidate.resolve()
            if resolved in self._active:
                raise IncludeError(path, "circular include", location)

            try:
                source = read_source(candidate)
            except AssemblySyntaxError as e:
                raise IncludeError(
                    path, f"{e.location} is not valid UTF-8", location
                ) from e

            logger.debug(f"Including {candidate}")
            return Parser(
                source,
                str(candidate),
                include_paths=self._include_paths,
                base_dir=candidate.parent,
                _active=self._active | {resolved},
                _sources=self.sources,
            )

        raise IncludeError(
            path, "file not found", location,
            search_paths=[str(d) for d in search_dirs],
        )


def parse_source(source: str, filename: str = "<input>") -> list[ParsedLine]:
    """Parse a whole source string into a list of lines."""
    return list(Parser(source, filename))
