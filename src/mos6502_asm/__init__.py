"""
mos6502-asm - Two-Pass Assembler for the MOS 6502
=================================================

This package assembles 6502 source text into raw machine code.

Main Components
---------------
- **assembler**: Lexer, parser, instruction encoder and the two passes
- **cpu**: 6502 instruction tables (opcode fields, legal modes)
- **cli**: The `asm6502` command-line tool

Quick Start
-----------
    >>> from mos6502_asm import Assembler
    >>> asm = Assembler()
    >>> asm.assemble_string("lda #$2a\\nsta $10\\n").hex(" ")
    'a9 2a 85 10'

Or from the shell:
    $ asm6502 prog.s -o prog.bin -l prog.lst
"""

__version__ = "1.0.0"

# =============================================================================
# Public API Exports
# =============================================================================

from mos6502_asm.assembler import Assembler, assemble, assemble_file
from mos6502_asm.errors import (
    Mos6502Error,
    SourceLocation,
    AssemblerError,
    AssemblySyntaxError,
    InvalidMnemonicError,
    AddressingModeError,
    OperandOverflowError,
    UndefinedSymbolError,
    DuplicateSymbolError,
    ByteSlotWidthError,
    BranchRangeError,
    AddressOverflowError,
    DirectiveError,
    IncludeError,
)

__all__ = [
    "__version__",
    "Assembler",
    "assemble",
    "assemble_file",
    "Mos6502Error",
    "SourceLocation",
    "AssemblerError",
    "AssemblySyntaxError",
    "InvalidMnemonicError",
    "AddressingModeError",
    "OperandOverflowError",
    "UndefinedSymbolError",
    "DuplicateSymbolError",
    "ByteSlotWidthError",
    "BranchRangeError",
    "AddressOverflowError",
    "DirectiveError",
    "IncludeError",
]
