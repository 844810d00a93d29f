"""
MOS 6502 Instruction Encoder
============================

Maps a (mnemonic, addressing mode) pair to an opcode byte, an operand
placeholder and the instruction size. The placeholder (InstructionArg)
is what the first pass records; label-carrying placeholders are patched
by the second pass once every symbol is known.

Opcode Composition
------------------
For table-driven mnemonics the opcode is composed from bit fields:

    opcode = (aaa << 5) | (bbb << 2) | cc

where `aaa` and `cc` come from the mnemonic and `bbb` from the
addressing mode. Implied instructions, JSR and branches use fixed
opcodes from `mos6502_asm.cpu`.

Operand Translation
-------------------
| Slot   | Literal                    | Label          |
|--------|----------------------------|----------------|
| byte   | ByteLiteral (range checked)| ByteLabel      |
| word   | WordLiteral                | WordLabel      |
| branch | ByteLiteral (displacement) | RelativeLabel  |

Immediate operands map Literal -> ByteLiteral, Label -> ByteLabel,
LowByte -> ByteLabelLow, HighByte -> ByteLabelHigh.
"""

from dataclasses import dataclass
from typing import ClassVar, Optional, Union

from mos6502_asm.errors import (
    AddressingModeError,
    BranchRangeError,
    InvalidMnemonicError,
    OperandOverflowError,
    SourceLocation,
)
from mos6502_asm.assembler.parser import (
    Address,
    AddressingMode,
    Accumulator,
    HighByte,
    Immediate,
    ImmediateLabel,
    ImmediateLiteral,
    ImmediateValue,
    Implied,
    Label,
    LowByte,
    with_kind,
)
from mos6502_asm.cpu import (
    ACCUMULATOR_INSTRUCTIONS,
    ZERO_PAGE_TO_ABSOLUTE,
    ModeKind,
    get_opcode,
    get_valid_modes,
    is_valid_instruction,
)


# =============================================================================
# Operand Placeholders
# =============================================================================

@dataclass(frozen=True)
class NoArgs:
    size: ClassVar[int] = 0


@dataclass(frozen=True)
class ByteLiteral:
    value: int
    size: ClassVar[int] = 1


@dataclass(frozen=True)
class ByteLabel:
    name: str
    size: ClassVar[int] = 1


@dataclass(frozen=True)
class ByteLabelLow:
    name: str
    size: ClassVar[int] = 1


@dataclass(frozen=True)
class ByteLabelHigh:
    name: str
    size: ClassVar[int] = 1


@dataclass(frozen=True)
class WordLiteral:
    value: int
    size: ClassVar[int] = 2


@dataclass(frozen=True)
class WordLabel:
    name: str
    size: ClassVar[int] = 2


@dataclass(frozen=True)
class RelativeLabel:
    """Branch target resolved against the branch's own address in pass two."""
    name: str
    size: ClassVar[int] = 1


InstructionArg = Union[
    NoArgs, ByteLiteral, ByteLabel, ByteLabelLow, ByteLabelHigh,
    WordLiteral, WordLabel, RelativeLabel,
]


@dataclass(frozen=True)
class Encoding:
    """
    Result of encoding one instruction.

    Attributes:
        opcode: The opcode byte
        arg: Operand placeholder
        size: Total instruction size in bytes (opcode + operand)
    """
    opcode: int
    arg: InstructionArg
    size: int


# =============================================================================
# Encoder
# =============================================================================

def encode(
    mnemonic: str,
    addr_mode: AddressingMode,
    addr: int = 0,
    location: Optional[SourceLocation] = None,
) -> Encoding:
    """
    Encode one instruction.

    Args:
        mnemonic: Instruction mnemonic (case-insensitive)
        addr_mode: Parsed addressing mode with operand
        addr: Address the instruction will be placed at (for branches)
        location: Source location for error reporting

    Returns:
        Encoding with opcode, operand placeholder and size

    Raises:
        InvalidMnemonicError: Unknown mnemonic
        AddressingModeError: Mode not legal for the mnemonic
        OperandOverflowError: Literal does not fit an 8-bit slot
        BranchRangeError: Literal branch target too far
    """
    mnemonic = mnemonic.lower()
    if not is_valid_instruction(mnemonic):
        raise InvalidMnemonicError(mnemonic, location)

    addr_mode = _adapt_mode(mnemonic, addr_mode)
    kind = addr_mode.kind

    opcode = get_opcode(mnemonic, kind)
    if opcode is None:
        raise AddressingModeError(
            mnemonic, str(kind), location,
            valid_modes=[str(m) for m in get_valid_modes(mnemonic)],
        )

    arg = _translate_operand(addr_mode, addr, location)
    return Encoding(opcode, arg, 1 + kind.operand_size)


def _adapt_mode(mnemonic: str, addr_mode: AddressingMode) -> AddressingMode:
    """
    Pick the form of a mode the mnemonic actually has.

    A bare shift (`asl`) means accumulator mode, and a zero-page operand
    widens to absolute when only the absolute form exists (`jmp $10`,
    `lda $10,y`).
    """
    kind = addr_mode.kind
    legal = get_valid_modes(mnemonic)

    if kind is ModeKind.IMPLIED and mnemonic in ACCUMULATOR_INSTRUCTIONS:
        return Accumulator()

    absolute = ZERO_PAGE_TO_ABSOLUTE.get(kind)
    if absolute is not None and kind not in legal and absolute in legal:
        return with_kind(addr_mode, absolute)

    return addr_mode


def _translate_operand(
    addr_mode: AddressingMode,
    addr: int,
    location: Optional[SourceLocation],
) -> InstructionArg:
    kind = addr_mode.kind

    if isinstance(addr_mode, (Implied, Accumulator)):
        return NoArgs()

    if isinstance(addr_mode, Immediate):
        return translate_immediate(addr_mode.value, location)

    if kind is ModeKind.RELATIVE:
        return translate_branch(addr_mode.addr, addr, location)

    if kind.operand_size == 1:
        return translate_byte(addr_mode.addr, location)

    return translate_word(addr_mode.addr)


def translate_byte(address: Address, location: Optional[SourceLocation] = None) -> InstructionArg:
    """Translate an address for a 1-byte operand slot."""
    if isinstance(address, Label):
        return ByteLabel(address.name)
    if not 0 <= address.value <= 0xFF:
        raise OperandOverflowError(address.value, location)
    return ByteLiteral(address.value)


def translate_word(address: Address) -> InstructionArg:
    """Translate an address for a 2-byte operand slot."""
    if isinstance(address, Label):
        return WordLabel(address.name)
    return WordLiteral(address.value)


def translate_immediate(value: ImmediateValue, location: Optional[SourceLocation] = None) -> InstructionArg:
    """Translate an ImmediateValue into its placeholder."""
    if isinstance(value, ImmediateLiteral):
        if not 0 <= value.value <= 0xFF:
            raise OperandOverflowError(value.value, location)
        return ByteLiteral(value.value)
    if isinstance(value, ImmediateLabel):
        return ByteLabel(value.name)
    if isinstance(value, LowByte):
        return ByteLabelLow(value.name)
    if isinstance(value, HighByte):
        return ByteLabelHigh(value.name)
    raise TypeError(f"not an immediate value: {value!r}")


def translate_branch(
    target: Address,
    addr: int,
    location: Optional[SourceLocation] = None,
) -> InstructionArg:
    """Translate a branch target; literal targets become displacements now."""
    if isinstance(target, Label):
        return RelativeLabel(target.name)
    return ByteLiteral(branch_displacement(f"${target.value:04X}", target.value, addr, location))


def branch_displacement(
    name: str,
    target: int,
    addr: int,
    location: Optional[SourceLocation] = None,
) -> int:
    """
    Compute the displacement byte for a branch at `addr`.

    Returns:
        The displacement as an unsigned byte (two's complement)

    Raises:
        BranchRangeError: If the target is outside -128..+127
    """
    offset = target - (addr + 2)
    if not -128 <= offset <= 127:
        raise BranchRangeError(name, offset, location)
    return offset & 0xFF
