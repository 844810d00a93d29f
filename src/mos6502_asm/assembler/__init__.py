"""
MOS 6502 Assembler
==================

A two-pass assembler for the MOS 6502 microprocessor.

Main Components
---------------
- **Assembler**: Main assembler class that orchestrates the assembly process
- **Lexer**: Tokenizes assembly source into tokens
- **Parser**: Produces one ParsedLine per source line
- **encode**: Maps a mnemonic and addressing mode to opcode, operand and size
- **first_pass / second_pass**: Symbol collection and operand resolution

Assembly Process
----------------
1. **Parsing (Lexer + Parser)**: source text becomes ParsedLine records,
   pulled lazily by the first pass so `.include` can splice in files.

2. **Pass 1 (first_pass)**: the location counter is advanced, labels are
   bound, and every instruction is encoded with a placeholder for any
   operand that names a label.

3. **Pass 2 (second_pass)**: placeholders are resolved against the
   finished symbol table and the byte stream is concatenated.

Example Usage
-------------
>>> from mos6502_asm.assembler import assemble
>>> assemble(".define PORT $2000\\nsta PORT\\n").hex(" ")
'8d 00 20'
"""

from mos6502_asm.assembler.assembler import Assembler, assemble, assemble_file
from mos6502_asm.assembler.lexer import Lexer, Token, TokenType
from mos6502_asm.assembler.parser import Parser, ParsedLine, ParsedInstruction, check_overflow
from mos6502_asm.assembler.encoder import Encoding, encode
from mos6502_asm.assembler.codegen import (
    AnnotatedLine,
    FirstPassResult,
    build_image,
    first_pass,
    resolve_lines,
    second_pass,
)

__all__ = [
    "Assembler",
    "assemble",
    "assemble_file",
    "Lexer",
    "Token",
    "TokenType",
    "Parser",
    "ParsedLine",
    "ParsedInstruction",
    "check_overflow",
    "Encoding",
    "encode",
    "AnnotatedLine",
    "FirstPassResult",
    "build_image",
    "first_pass",
    "resolve_lines",
    "second_pass",
]
