"""
MOS 6502 Instruction Set Definition
===================================

This module describes the documented 6502 instruction set as data. Most
opcodes follow the `aaa_bbb_cc` bit layout:

    7 6 5 | 4 3 2 | 1 0
     aaa  |  bbb  |  cc

`cc` selects an instruction group, `aaa` selects the operation inside
the group and `bbb` selects the addressing mode. The opcode byte is
`(aaa << 5) | (bbb << 2) | cc`.

Groups
------
- **cc=01**: ORA AND EOR ADC STA LDA CMP SBC (fully systematic)
- **cc=10**: ASL ROL LSR ROR STX LDX DEC INC
- **cc=00**: BIT JMP JMP() STY LDY CPY CPX

Instructions outside the scheme (single-byte implied opcodes, JSR and
the conditional branches) are kept in small fixed tables. Branches are
themselves regular (`xxy10000`: flag `xx`, compared value `y`), so they
are computed rather than listed.

Reference
---------
- http://www.6502.org/tutorials/6502opcodes.html
- http://www.llx.com/Neil/a2/opcodes.html
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional


# =============================================================================
# Addressing Mode Kinds
# =============================================================================

class ModeKind(Enum):
    """
    6502 addressing modes, without operands.

    The parser's AddressingMode variants each carry one of these as
    their `kind`; the encoder works purely in terms of kinds.
    """
    IMPLIED = auto()
    ACCUMULATOR = auto()
    IMMEDIATE = auto()
    ZERO_PAGE = auto()
    ZERO_PAGE_X = auto()
    ZERO_PAGE_Y = auto()
    ABSOLUTE = auto()
    ABSOLUTE_X = auto()
    ABSOLUTE_Y = auto()
    INDIRECT = auto()
    INDIRECT_X = auto()
    INDIRECT_Y = auto()
    RELATIVE = auto()

    def __str__(self) -> str:
        """Return human-readable name for error messages."""
        return _MODE_NAMES[self]

    @property
    def operand_size(self) -> int:
        """Number of operand bytes following the opcode."""
        return _OPERAND_SIZES[self]


_MODE_NAMES = {
    ModeKind.IMPLIED: "implied",
    ModeKind.ACCUMULATOR: "accumulator",
    ModeKind.IMMEDIATE: "immediate",
    ModeKind.ZERO_PAGE: "zero-page",
    ModeKind.ZERO_PAGE_X: "zero-page,X",
    ModeKind.ZERO_PAGE_Y: "zero-page,Y",
    ModeKind.ABSOLUTE: "absolute",
    ModeKind.ABSOLUTE_X: "absolute,X",
    ModeKind.ABSOLUTE_Y: "absolute,Y",
    ModeKind.INDIRECT: "indirect",
    ModeKind.INDIRECT_X: "(indirect,X)",
    ModeKind.INDIRECT_Y: "(indirect),Y",
    ModeKind.RELATIVE: "relative",
}

_OPERAND_SIZES = {
    ModeKind.IMPLIED: 0,
    ModeKind.ACCUMULATOR: 0,
    ModeKind.IMMEDIATE: 1,
    ModeKind.ZERO_PAGE: 1,
    ModeKind.ZERO_PAGE_X: 1,
    ModeKind.ZERO_PAGE_Y: 1,
    ModeKind.ABSOLUTE: 2,
    ModeKind.ABSOLUTE_X: 2,
    ModeKind.ABSOLUTE_Y: 2,
    ModeKind.INDIRECT: 2,
    ModeKind.INDIRECT_X: 1,
    ModeKind.INDIRECT_Y: 1,
    ModeKind.RELATIVE: 1,
}

# Zero-page kinds and the absolute kinds they widen to
ZERO_PAGE_TO_ABSOLUTE: dict[ModeKind, ModeKind] = {
    ModeKind.ZERO_PAGE: ModeKind.ABSOLUTE,
    ModeKind.ZERO_PAGE_X: ModeKind.ABSOLUTE_X,
    ModeKind.ZERO_PAGE_Y: ModeKind.ABSOLUTE_Y,
}

ABSOLUTE_TO_ZERO_PAGE: dict[ModeKind, ModeKind] = {
    absolute: zero_page for zero_page, absolute in ZERO_PAGE_TO_ABSOLUTE.items()
}


# =============================================================================
# bbb Tables
# =============================================================================
# Key: addressing mode kind; value: the 3-bit bbb field for that group.
# Group cc=10 uses bbb=101/111 for the ,Y forms of STX/LDX, which is why
# both the X and Y variants map to the same bits there.
# =============================================================================

BBB_CC01: dict[ModeKind, int] = {
    ModeKind.INDIRECT_X: 0b000,
    ModeKind.ZERO_PAGE: 0b001,
    ModeKind.IMMEDIATE: 0b010,
    ModeKind.ABSOLUTE: 0b011,
    ModeKind.INDIRECT_Y: 0b100,
    ModeKind.ZERO_PAGE_X: 0b101,
    ModeKind.ABSOLUTE_Y: 0b110,
    ModeKind.ABSOLUTE_X: 0b111,
}

BBB_CC10: dict[ModeKind, int] = {
    ModeKind.IMMEDIATE: 0b000,
    ModeKind.ZERO_PAGE: 0b001,
    ModeKind.ACCUMULATOR: 0b010,
    ModeKind.ABSOLUTE: 0b011,
    ModeKind.ZERO_PAGE_X: 0b101,
    ModeKind.ZERO_PAGE_Y: 0b101,
    ModeKind.ABSOLUTE_X: 0b111,
    ModeKind.ABSOLUTE_Y: 0b111,
}

BBB_CC00: dict[ModeKind, int] = {
    ModeKind.IMMEDIATE: 0b000,
    ModeKind.ZERO_PAGE: 0b001,
    ModeKind.ABSOLUTE: 0b011,
    ModeKind.INDIRECT: 0b011,
    ModeKind.ZERO_PAGE_X: 0b101,
    ModeKind.ABSOLUTE_X: 0b111,
}

BBB_TABLES: dict[int, dict[ModeKind, int]] = {
    0b01: BBB_CC01,
    0b10: BBB_CC10,
    0b00: BBB_CC00,
}


# =============================================================================
# Instruction Information
# =============================================================================

@dataclass(frozen=True)
class InstructionInfo:
    """
    A mnemonic that encodes through the aaa_bbb_cc scheme.

    Attributes:
        mnemonic: Lowercase mnemonic
        aaa: Operation bits within the group
        cc: Group bits
        modes: Addressing mode kinds legal for this mnemonic
        aaa_overrides: Per-mode aaa values (only JMP indirect needs one)
    """
    mnemonic: str
    aaa: int
    cc: int
    modes: frozenset[ModeKind]
    aaa_overrides: dict[ModeKind, int] = field(default_factory=dict, hash=False)

    def opcode(self, kind: ModeKind) -> int:
        """Compose the opcode byte for a legal mode kind."""
        aaa = self.aaa_overrides.get(kind, self.aaa)
        bbb = BBB_TABLES[self.cc][kind]
        return (aaa << 5) | (bbb << 2) | self.cc

    def __repr__(self) -> str:
        return f"InstructionInfo({self.mnemonic}, aaa={self.aaa:03b}, cc={self.cc:02b})"


_ALL_CC01 = frozenset(BBB_CC01)
_SHIFT_MODES = frozenset({
    ModeKind.ZERO_PAGE, ModeKind.ACCUMULATOR, ModeKind.ABSOLUTE,
    ModeKind.ZERO_PAGE_X, ModeKind.ABSOLUTE_X,
})
_MEMORY_MODES = frozenset({
    ModeKind.ZERO_PAGE, ModeKind.ABSOLUTE,
    ModeKind.ZERO_PAGE_X, ModeKind.ABSOLUTE_X,
})
_COMPARE_INDEX_MODES = frozenset({
    ModeKind.IMMEDIATE, ModeKind.ZERO_PAGE, ModeKind.ABSOLUTE,
})


def _group(cc: int, entries: list[tuple[str, int, frozenset[ModeKind]]]) -> dict[str, InstructionInfo]:
    return {name: InstructionInfo(name, aaa, cc, modes) for name, aaa, modes in entries}


# Master table of aaa_bbb_cc instructions, keyed by mnemonic
INSTRUCTION_TABLE: dict[str, InstructionInfo] = {
    # cc=01: accumulator ALU/load/store family
    **_group(0b01, [
        ("ora", 0b000, _ALL_CC01),
        ("and", 0b001, _ALL_CC01),
        ("eor", 0b010, _ALL_CC01),
        ("adc", 0b011, _ALL_CC01),
        ("sta", 0b100, _ALL_CC01),
        ("lda", 0b101, _ALL_CC01),
        ("cmp", 0b110, _ALL_CC01),
        ("sbc", 0b111, _ALL_CC01),
    ]),
    # cc=10: shifts, X register loads/stores, memory increment/decrement
    **_group(0b10, [
        ("asl", 0b000, _SHIFT_MODES),
        ("rol", 0b001, _SHIFT_MODES),
        ("lsr", 0b010, _SHIFT_MODES),
        ("ror", 0b011, _SHIFT_MODES),
        ("stx", 0b100, frozenset({
            ModeKind.ZERO_PAGE, ModeKind.ABSOLUTE, ModeKind.ZERO_PAGE_Y,
        })),
        ("ldx", 0b101, frozenset({
            ModeKind.IMMEDIATE, ModeKind.ZERO_PAGE, ModeKind.ABSOLUTE,
            ModeKind.ZERO_PAGE_Y, ModeKind.ABSOLUTE_Y,
        })),
        ("dec", 0b110, _MEMORY_MODES),
        ("inc", 0b111, _MEMORY_MODES),
    ]),
    # cc=00: BIT, JMP, Y register loads/stores, index compares
    **_group(0b00, [
        ("bit", 0b001, frozenset({ModeKind.ZERO_PAGE, ModeKind.ABSOLUTE})),
        ("sty", 0b100, frozenset({
            ModeKind.ZERO_PAGE, ModeKind.ABSOLUTE, ModeKind.ZERO_PAGE_X,
        })),
        ("ldy", 0b101, _COMPARE_INDEX_MODES | _MEMORY_MODES),
        ("cpy", 0b110, _COMPARE_INDEX_MODES),
        ("cpx", 0b111, _COMPARE_INDEX_MODES),
    ]),
    "jmp": InstructionInfo(
        "jmp", 0b010, 0b00,
        frozenset({ModeKind.ABSOLUTE, ModeKind.INDIRECT}),
        aaa_overrides={ModeKind.INDIRECT: 0b011},
    ),
}


# =============================================================================
# Irregular Instructions
# =============================================================================

# Single-byte instructions with no operand
IMPLIED_OPCODES: dict[str, int] = {
    "brk": 0x00, "php": 0x08, "clc": 0x18, "plp": 0x28,
    "sec": 0x38, "rti": 0x40, "pha": 0x48, "cli": 0x58,
    "rts": 0x60, "pla": 0x68, "sei": 0x78, "dey": 0x88,
    "txa": 0x8A, "tya": 0x98, "txs": 0x9A, "tay": 0xA8,
    "tax": 0xAA, "clv": 0xB8, "tsx": 0xBA, "iny": 0xC8,
    "dex": 0xCA, "cld": 0xD8, "inx": 0xE8, "nop": 0xEA,
    "sed": 0xF8,
}

JSR_OPCODE = 0x20

# Branches: mnemonic -> (flag xx, compared value y); opcode is xxy10000
#   xx: 00=N, 01=V, 10=C, 11=Z
BRANCH_CONDITIONS: dict[str, tuple[int, int]] = {
    "bpl": (0b00, 0), "bmi": (0b00, 1),
    "bvc": (0b01, 0), "bvs": (0b01, 1),
    "bcc": (0b10, 0), "bcs": (0b10, 1),
    "bne": (0b11, 0), "beq": (0b11, 1),
}


def branch_opcode(mnemonic: str) -> int:
    """Compute the opcode of a conditional branch from its condition bits."""
    flag, value = BRANCH_CONDITIONS[mnemonic]
    return (flag << 6) | (value << 5) | 0b10000


# =============================================================================
# Instruction Set Reference Lists
# =============================================================================

BRANCH_INSTRUCTIONS: frozenset[str] = frozenset(BRANCH_CONDITIONS)

# Mnemonics whose bare form (no operand) means accumulator mode
ACCUMULATOR_INSTRUCTIONS: frozenset[str] = frozenset({
    name for name, info in INSTRUCTION_TABLE.items()
    if ModeKind.ACCUMULATOR in info.modes
})

MNEMONICS: frozenset[str] = frozenset(
    set(INSTRUCTION_TABLE) | set(IMPLIED_OPCODES) | BRANCH_INSTRUCTIONS | {"jsr"}
)


# =============================================================================
# Lookup Functions
# =============================================================================

def get_valid_modes(mnemonic: str) -> list[ModeKind]:
    """
    Get all valid addressing mode kinds for a mnemonic.

    Returns:
        Legal kinds in declaration order (empty for unknown mnemonics)
    """
    mnemonic = mnemonic.lower()
    if mnemonic in INSTRUCTION_TABLE:
        legal = INSTRUCTION_TABLE[mnemonic].modes
        return [kind for kind in ModeKind if kind in legal]
    if mnemonic in IMPLIED_OPCODES:
        return [ModeKind.IMPLIED]
    if mnemonic in BRANCH_INSTRUCTIONS:
        return [ModeKind.RELATIVE]
    if mnemonic == "jsr":
        return [ModeKind.ABSOLUTE]
    return []


def get_opcode(mnemonic: str, kind: ModeKind) -> Optional[int]:
    """
    Look up the opcode byte for a mnemonic and addressing mode kind.

    Returns:
        The opcode, or None if the combination is not legal
    """
    mnemonic = mnemonic.lower()
    info = INSTRUCTION_TABLE.get(mnemonic)
    if info is not None:
        return info.opcode(kind) if kind in info.modes else None
    if mnemonic in IMPLIED_OPCODES:
        return IMPLIED_OPCODES[mnemonic] if kind is ModeKind.IMPLIED else None
    if mnemonic in BRANCH_INSTRUCTIONS:
        return branch_opcode(mnemonic) if kind is ModeKind.RELATIVE else None
    if mnemonic == "jsr":
        return JSR_OPCODE if kind is ModeKind.ABSOLUTE else None
    return None


def is_valid_instruction(mnemonic: str) -> bool:
    """Check if a mnemonic is a documented 6502 instruction."""
    return mnemonic.lower() in MNEMONICS


def is_branch_instruction(mnemonic: str) -> bool:
    """Check if an instruction is a branch (uses relative addressing)."""
    return mnemonic.lower() in BRANCH_INSTRUCTIONS
