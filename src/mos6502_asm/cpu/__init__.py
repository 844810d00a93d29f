"""
MOS 6502 CPU Package
====================

CPU architecture definitions used by the assembler: addressing mode
kinds, the aaa_bbb_cc instruction table, and lookup helpers.

Usage:
    from mos6502_asm.cpu import (
        ModeKind,
        INSTRUCTION_TABLE,
        get_opcode,
    )
"""

# =============================================================================
# Public API Exports
# =============================================================================

from mos6502_asm.cpu.mos6502 import (
    # Core types
    ModeKind,
    InstructionInfo,
    # Encoding tables
    INSTRUCTION_TABLE,
    BBB_CC01,
    BBB_CC10,
    BBB_CC00,
    BBB_TABLES,
    IMPLIED_OPCODES,
    JSR_OPCODE,
    BRANCH_CONDITIONS,
    ZERO_PAGE_TO_ABSOLUTE,
    ABSOLUTE_TO_ZERO_PAGE,
    # Instruction set reference lists
    MNEMONICS,
    BRANCH_INSTRUCTIONS,
    ACCUMULATOR_INSTRUCTIONS,
    # Lookup functions
    branch_opcode,
    get_opcode,
    get_valid_modes,
    is_valid_instruction,
    is_branch_instruction,
)

__all__ = [
    "ModeKind",
    "InstructionInfo",
    "INSTRUCTION_TABLE",
    "BBB_CC01",
    "BBB_CC10",
    "BBB_CC00",
    "BBB_TABLES",
    "IMPLIED_OPCODES",
    "JSR_OPCODE",
    "BRANCH_CONDITIONS",
    "ZERO_PAGE_TO_ABSOLUTE",
    "ABSOLUTE_TO_ZERO_PAGE",
    "MNEMONICS",
    "BRANCH_INSTRUCTIONS",
    "ACCUMULATOR_INSTRUCTIONS",
    "branch_opcode",
    "get_opcode",
    "get_valid_modes",
    "is_valid_instruction",
    "is_branch_instruction",
]
