"""
MOS 6502 Assembler Error Hierarchy
==================================

This module defines the exception hierarchy for the assembler. All
exceptions inherit from Mos6502Error, allowing callers to catch every
assembler failure with a single except clause if desired.

Exception Hierarchy
-------------------
Mos6502Error (base)
└── AssemblerError (assembler-related)
    ├── AssemblySyntaxError - lexical or syntactic errors in source
    ├── InvalidMnemonicError - mnemonic not in the instruction table
    ├── AddressingModeError - addressing mode not legal for the mnemonic
    ├── OperandOverflowError - literal does not fit its operand slot
    ├── UndefinedSymbolError - reference to an undefined label
    ├── DuplicateSymbolError - label bound more than once
    ├── ByteSlotWidthError - wide label placed in a byte operand
    ├── BranchRangeError - branch target too far
    ├── AddressOverflowError - location counter or label value past $FFFF
    └── DirectiveError - pragma that parses but cannot be carried out
        └── IncludeError - error including a file

Error messages follow this format:
    filename:line:column: error: description
    source_line_text
        ^ (pointer to error location)
    hint: suggestion for fixing (when available)
"""

from dataclasses import dataclass
from typing import Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class Mos6502Error(Exception):
    """
    Base exception for all assembler package errors.

        try:
            assemble_file("program.s")
        except Mos6502Error as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Source Location Tracking
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    A position in source code, used for error reporting and listings.

    Attributes:
        filename: Name of the source file (or "<input>" for string input)
        line: Line number (1-indexed)
        column: Column number (1-indexed)
    """
    filename: str
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.filename}:{self.line}:{self.column}"


# =============================================================================
# Assembler Exceptions
# =============================================================================

class AssemblerError(Mos6502Error):
    """
    Base exception for all assembler-related errors.

    Attributes:
        message: The error description
        location: Where in the source the error occurred (optional)
        hint: A suggestion for fixing the error (optional)
        source_line: The actual source text at the error location (optional)
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
    ):
        self.message = message
        self.location = location
        self.hint = hint
        self.source_line = source_line
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """
        Format the error message with location, source context, and hint.

        Example output:
            prog.s:3:5: error: undefined symbol 'lopp'
                bne lopp
                    ^
            hint: did you mean 'loop'?
        """
        parts = []

        if self.location:
            parts.append(f"{self.location}: error: {self.message}")
        else:
            parts.append(f"error: {self.message}")

        if self.source_line is not None and self.location is not None:
            parts.append(f"    {self.source_line}")
            if self.location.column > 0:
                padding = " " * (4 + self.location.column - 1)
                parts.append(f"{padding}^")

        if self.hint:
            parts.append(f"hint: {self.hint}")

        return "\n".join(parts)


class AssemblySyntaxError(AssemblerError):
    """
    Lexical or syntactic error in assembly source.

    Raised by the lexer for unrecognized characters and malformed
    literals, and by the parser for malformed line structure.
    """
    pass


class InvalidMnemonicError(AssemblerError):
    """Mnemonic not present in the instruction table."""

    def __init__(
        self,
        mnemonic: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.mnemonic = mnemonic
        super().__init__(
            f"Invalid opcode '{mnemonic}'",
            location=location,
            source_line=source_line,
        )


class AddressingModeError(AssemblerError):
    """
    Invalid addressing mode for instruction.

    Raised when a known mnemonic is used with an addressing mode it
    doesn't support, for example `bit #$41` or `stx $1234,x`.
    """

    def __init__(
        self,
        mnemonic: str,
        mode: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
        valid_modes: Optional[list[str]] = None,
    ):
        self.mnemonic = mnemonic
        self.mode = mode
        self.valid_modes = valid_modes or []

        hint = None
        if self.valid_modes:
            hint = f"{mnemonic} supports: {', '.join(self.valid_modes)}"

        super().__init__(
            f"Invalid argument for opcode '{mnemonic}' ({mode} addressing)",
            location=location,
            hint=hint,
            source_line=source_line,
        )


class OperandOverflowError(AssemblerError):
    """A literal operand does not fit in its 8-bit slot."""

    def __init__(
        self,
        value: int,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.value = value
        super().__init__(
            f"overflow: value ${value:X} does not fit in 8 bits",
            location=location,
            source_line=source_line,
        )


class UndefinedSymbolError(AssemblerError):
    """
    Reference to an undefined label.

    Raised in the first pass when `.org`, `.word` or `.define` names a
    label that is not yet bound, and in the second pass when an operand
    label cannot be resolved. Similarly-named symbols are suggested to
    help catch typos.
    """

    def __init__(
        self,
        symbol: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
        similar_symbols: Optional[list[str]] = None,
    ):
        self.symbol = symbol
        self.similar_symbols = similar_symbols or []

        if not hint and self.similar_symbols:
            suggestions = ", ".join(f"'{s}'" for s in self.similar_symbols[:3])
            hint = f"did you mean {suggestions}?"

        super().__init__(
            f"undefined label '{symbol}'",
            location=location,
            hint=hint,
            source_line=source_line,
        )


class DuplicateSymbolError(AssemblerError):
    """Label bound more than once."""

    def __init__(
        self,
        symbol: str,
        location: Optional[SourceLocation] = None,
        original_location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.symbol = symbol
        self.original_location = original_location

        hint = None
        if original_location:
            hint = f"'{symbol}' was first defined at {original_location}"

        super().__init__(
            f"duplicate label '{symbol}'",
            location=location,
            hint=hint,
            source_line=source_line,
        )


class ByteSlotWidthError(AssemblerError):
    """
    A label resolved to a value above $FF sits in a byte operand.

    Byte slots (zero-page operands, indirect pointers, `#label`) only
    accept labels whose value fits in 8 bits. Use `#<label` or `#>label`
    to pick one half of a 16-bit address explicitly.
    """

    def __init__(
        self,
        symbol: str,
        value: int,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.symbol = symbol
        self.value = value
        super().__init__(
            f"label '{symbol}' (${value:04X}) does not fit in a byte operand",
            location=location,
            hint=f"use <{symbol} or >{symbol} to select the low or high byte",
            source_line=source_line,
        )


class BranchRangeError(AssemblerError):
    """
    Branch target is out of range.

    6502 branches use a signed 8-bit displacement measured from the
    instruction following the branch, limiting the range to -128..+127.
    """

    def __init__(
        self,
        target: str,
        offset: int,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.target = target
        self.offset = offset

        direction = "forward" if offset > 0 else "backward"
        hint = (
            f"branch offset is {offset}, but range is -128 to +127; "
            f"consider an inverted branch over a JMP for {direction} references"
        )

        super().__init__(
            f"branch target '{target}' is out of range (offset: {offset})",
            location=location,
            hint=hint,
            source_line=source_line,
        )


class AddressOverflowError(AssemblerError):
    """The location counter or a label value lies outside the 16-bit address space."""
    pass


class DirectiveError(AssemblerError):
    """
    Base class for failures while carrying out an assembler pragma.

    Malformed pragmas (`.byte $100`, `.define` without a name) are
    reported by the parser as AssemblySyntaxError or OperandOverflowError.
    This class covers pragmas that parse but cannot be performed, which
    is currently only `.include` through IncludeError.
    """
    pass


class IncludeError(DirectiveError):
    """
    Error including a file.

    Raised when:
    - Include file not found
    - Circular include detected
    - Includes are not available for the current source
    """

    def __init__(
        self,
        filename: str,
        reason: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
        search_paths: Optional[list[str]] = None,
    ):
        self.included_filename = filename
        self.reason = reason
        self.search_paths = search_paths or []

        hint = None
        if self.search_paths:
            hint = f"searched in: {', '.join(self.search_paths)}"

        super().__init__(
            f"cannot include '{filename}': {reason}",
            location=location,
            hint=hint,
            source_line=source_line,
        )
