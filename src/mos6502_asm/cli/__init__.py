"""
mos6502-asm Command-Line Interface
==================================

- **asm6502**: 6502 assembler

The tool is a Click-based CLI application with help text and
consistent exit codes (see `mos6502_asm.cli.errors`).
"""

__all__ = ["asm6502"]
