"""
MOS 6502 Code Generator
=======================

This module implements the two assembly passes.

Pass 1 (first_pass)
-------------------
- Walk parsed lines in order with a 16-bit location counter starting at 0
- Bind labels to the counter, and `.define` names to their values
- Encode instructions, recording an AnnotatedLine per instruction or data
  byte with an operand placeholder for anything that names a label
- Resolve `.org`, `.word` and `.define` operands immediately; the labels
  they name must already be bound

Pass 2 (second_pass)
--------------------
- Walk the annotated lines in emission order
- Patch label placeholders from the symbol table
- Produce the byte stream (or, via build_image, an address-placed image)

Both passes raise on the first error. Neither writes partial output.

Example
-------
>>> from mos6502_asm.assembler.parser import Parser
>>> result = first_pass(Parser("lda #$2a\\nsta $10\\n"))
>>> second_pass(result.lines, result.symbol_table).hex(" ")
'a9 2a 85 10'
"""

from dataclasses import dataclass, field
from difflib import get_close_matches
from typing import Iterable, Iterator, Optional
import logging

from mos6502_asm.errors import (
    AddressOverflowError,
    ByteSlotWidthError,
    DuplicateSymbolError,
    IncludeError,
    SourceLocation,
    UndefinedSymbolError,
)
from mos6502_asm.assembler.encoder import (
    ByteLabel,
    ByteLabelHigh,
    ByteLabelLow,
    ByteLiteral,
    InstructionArg,
    NoArgs,
    RelativeLabel,
    WordLabel,
    WordLiteral,
    branch_displacement,
    encode,
)
from mos6502_asm.assembler.parser import (
    Address,
    Byte,
    Bytes,
    Define,
    Include,
    Label,
    Origin,
    ParsedInstruction,
    ParsedLine,
    Word,
    with_kind,
)
from mos6502_asm.cpu import ABSOLUTE_TO_ZERO_PAGE, get_valid_modes


logger = logging.getLogger(__name__)

ADDRESS_SPACE = 0x10000


# =============================================================================
# Pass Records
# =============================================================================

@dataclass(frozen=True)
class AnnotatedLine:
    """
    One emitted unit: a data byte or an instruction awaiting its operand.

    Attributes:
        addr: Final address of the first byte
        opcode: Opcode byte (or the data byte for NoArgs lines)
        arg: Operand placeholder resolved in pass two
        location: Source line that produced it
    """
    addr: int
    opcode: int
    arg: InstructionArg = NoArgs()
    location: Optional[SourceLocation] = field(default=None, compare=False)

    @property
    def size(self) -> int:
        """Number of bytes this line occupies."""
        return 1 + self.arg.size


@dataclass
class FirstPassResult:
    """Annotated lines in emission order plus the finished symbol table."""
    lines: list[AnnotatedLine]
    symbol_table: dict[str, int]


def _undefined(name: str, symbols: dict[str, int], location: Optional[SourceLocation]) -> UndefinedSymbolError:
    return UndefinedSymbolError(
        name, location,
        similar_symbols=get_close_matches(name, list(symbols), n=3),
    )


# =============================================================================
# Pass 1: Symbol Collection
# =============================================================================

class FirstPass:
    """
    First-pass walker state.

    The walker is the only owner of the location counter and the symbol
    table while it runs. Use first_pass() rather than driving it directly.
    """

    def __init__(self, symbols: Optional[dict[str, int]] = None):
        self.lines: list[AnnotatedLine] = []
        self.symbol_table: dict[str, int] = {}
        self.counter = 0
        self._symbol_locations: dict[str, Optional[SourceLocation]] = {}

        # Predefined symbols have no source location
        for name, value in (symbols or {}).items():
            self._bind(name, value, None)

    def run(self, parser: Iterable[ParsedLine]) -> FirstPassResult:
        self._walk(parser)
        logger.debug(
            f"Pass 1 complete: {len(self.lines)} lines, "
            f"{len(self.symbol_table)} symbols, counter ${self.counter:04X}"
        )
        return FirstPassResult(self.lines, self.symbol_table)

    def _walk(self, parser: Iterable[ParsedLine]) -> None:
        for line in parser:
            self._process(line, parser)

    def _process(self, line: ParsedLine, parser: Iterable[ParsedLine]) -> None:
        location = line.location

        # A label and a value on the same line are independent: the label
        # takes the address before the value is emitted.
        if line.label:
            self._bind(line.label, self.counter, location)

        value = line.value

        if isinstance(value, ParsedInstruction):
            self._instruction(value, location)

        elif isinstance(value, Byte):
            self._emit(value.value, NoArgs(), location)

        elif isinstance(value, Bytes):
            for byte in value.values:
                self._emit(byte, NoArgs(), location)

        elif isinstance(value, Word):
            word = self._resolve(value.addr, location)
            self._emit(word & 0xFF, NoArgs(), location)
            self._emit(word >> 8, NoArgs(), location)

        elif isinstance(value, Origin):
            self.counter = self._resolve(value.addr, location)
            logger.debug(f"{location}: origin set to ${self.counter:04X}")

        elif isinstance(value, Define):
            self._bind(value.name, self._resolve(value.addr, location), location)

        elif isinstance(value, Include):
            include = getattr(parser, "include", None)
            if include is None:
                raise IncludeError(value.path, "not yet supported by this line source", location)
            self._walk(include(value.path, location))

    def _instruction(self, instr: ParsedInstruction, location: SourceLocation) -> None:
        mode = instr.addr_mode

        # A label already bound to a zero-page value gets the short form,
        # matching what the same operand written as a literal would get.
        zero_page = ABSOLUTE_TO_ZERO_PAGE.get(mode.kind)
        if (zero_page is not None and isinstance(mode.addr, Label)
                and self.symbol_table.get(mode.addr.name, ADDRESS_SPACE) <= 0xFF
                and zero_page in get_valid_modes(instr.mnemonic)):
            mode = with_kind(mode, zero_page)

        encoding = encode(instr.mnemonic, mode, self.counter, location)
        self._emit(encoding.opcode, encoding.arg, location)

    def _emit(self, opcode: int, arg: InstructionArg, location: SourceLocation) -> None:
        line = AnnotatedLine(self.counter, opcode, arg, location)
        if self.counter + line.size > ADDRESS_SPACE:
            raise AddressOverflowError(
                f"location counter ${self.counter:04X} overflows the 16-bit address space",
                location,
            )
        self.lines.append(line)
        self.counter += line.size

    def _bind(self, name: str, value: int, location: Optional[SourceLocation]) -> None:
        if name in self.symbol_table:
            raise DuplicateSymbolError(
                name,
                location=location,
                original_location=self._symbol_locations.get(name),
            )
        if not 0 <= value < ADDRESS_SPACE:
            raise AddressOverflowError(
                f"label '{name}' = {value:#x} lies outside the 16-bit address space", location
            )
        self.symbol_table[name] = value
        self._symbol_locations[name] = location
        logger.debug(f"{location or '<predefined>'}: {name} = ${value:04X}")

    def _resolve(self, address: Address, location: SourceLocation) -> int:
        """Resolve an address now; labels must already be bound."""
        if isinstance(address, Label):
            if address.name not in self.symbol_table:
                raise _undefined(address.name, self.symbol_table, location)
            return self.symbol_table[address.name]
        return address.value


def first_pass(
    parser: Iterable[ParsedLine],
    symbols: Optional[dict[str, int]] = None,
) -> FirstPassResult:
    """
    Run the first pass over a line source.

    Args:
        parser: A Parser, or any iterable of ParsedLine
        symbols: Predefined symbols to seed the table with

    Returns:
        FirstPassResult with annotated lines and symbol table

    Raises:
        AssemblerError: On the first error encountered
    """
    return FirstPass(symbols).run(parser)


# =============================================================================
# Pass 2: Resolution
# =============================================================================

def _lookup(name: str, symbols: dict[str, int], line: AnnotatedLine) -> int:
    if name not in symbols:
        raise _undefined(name, symbols, line.location)
    return symbols[name]


def _resolve_arg(line: AnnotatedLine, symbols: dict[str, int]) -> bytes:
    arg = line.arg

    if isinstance(arg, NoArgs):
        return b""

    if isinstance(arg, ByteLiteral):
        return bytes([arg.value])

    if isinstance(arg, ByteLabel):
        value = _lookup(arg.name, symbols, line)
        if value > 0xFF:
            raise ByteSlotWidthError(arg.name, value, line.location)
        return bytes([value])

    if isinstance(arg, ByteLabelLow):
        return bytes([_lookup(arg.name, symbols, line) & 0xFF])

    if isinstance(arg, ByteLabelHigh):
        return bytes([_lookup(arg.name, symbols, line) >> 8])

    if isinstance(arg, WordLiteral):
        return arg.value.to_bytes(2, "little")

    if isinstance(arg, WordLabel):
        return _lookup(arg.name, symbols, line).to_bytes(2, "little")

    if isinstance(arg, RelativeLabel):
        target = _lookup(arg.name, symbols, line)
        return bytes([branch_displacement(arg.name, target, line.addr, line.location)])

    raise TypeError(f"unknown operand placeholder: {arg!r}")


def resolve_lines(
    lines: Iterable[AnnotatedLine],
    symbol_table: dict[str, int],
) -> Iterator[tuple[AnnotatedLine, bytes]]:
    """
    Resolve each annotated line to its final bytes.

    Yields:
        (line, bytes) pairs in emission order

    Raises:
        UndefinedSymbolError: Label not in the symbol table
        ByteSlotWidthError: Label above $FF in a byte slot
        BranchRangeError: Branch target too far
    """
    for line in lines:
        yield line, bytes([line.opcode]) + _resolve_arg(line, symbol_table)


def second_pass(lines: Iterable[AnnotatedLine], symbol_table: dict[str, int]) -> bytes:
    """
    Run the second pass, concatenating bytes in emission order.

    Returns:
        The complete byte stream (nothing is returned on error)
    """
    code = bytearray()
    for _, data in resolve_lines(lines, symbol_table):
        code += data
    logger.debug(f"Pass 2 complete: {len(code)} bytes")
    return bytes(code)


def build_image(
    lines: Iterable[AnnotatedLine],
    symbol_table: dict[str, int],
    fill: int = 0x00,
) -> tuple[int, bytes]:
    """
    Place every line at its address in a 64 KiB image.

    Gaps between written regions are filled with `fill`. When `.org`
    moves backwards and a later line overwrites an earlier one, the later
    write wins and a warning is logged.

    Returns:
        (start address, bytes from the lowest to the highest written address)
    """
    image = bytearray([fill]) * ADDRESS_SPACE
    written = bytearray(ADDRESS_SPACE)
    low, high = ADDRESS_SPACE, -1

    for line, data in resolve_lines(lines, symbol_table):
        end = line.addr + len(data)
        if any(written[line.addr:end]):
            logger.warning(f"{line.location}: overwriting bytes at ${line.addr:04X}")
        image[line.addr:end] = data
        written[line.addr:end] = b"\x01" * len(data)
        low = min(low, line.addr)
        high = max(high, end - 1)

    if high < 0:
        return 0, b""
    return low, bytes(image[low:high + 1])


# =============================================================================
# Listing and Symbol Output
# =============================================================================

def format_listing(
    lines: Iterable[AnnotatedLine],
    symbol_table: dict[str, int],
    sources: Optional[dict[str, list[str]]] = None,
) -> str:
    """
    Format an assembly listing: address, bytes, line number and source.

    Consecutive annotated lines from the same source line (for example
    the bytes of a `.bytes` pragma) are listed together.
    """
    sources = sources or {}
    rows: list[tuple[int, bytearray, Optional[SourceLocation]]] = []

    for line, data in resolve_lines(lines, symbol_table):
        if rows and line.location is not None and rows[-1][2] == line.location:
            rows[-1][1].extend(data)
        else:
            rows.append((line.addr, bytearray(data), line.location))

    out = [
        "6502 Assembler Listing",
        "=" * 60,
        "",
        "Addr   Code          Line  Source",
        "-" * 60,
    ]
    for addr, data, location in rows:
        hex_str = " ".join(f"{b:02X}" for b in data)
        line_no, text = 0, ""
        if location is not None:
            line_no = location.line
            file_lines = sources.get(location.filename, [])
            if 1 <= line_no <= len(file_lines):
                text = file_lines[line_no - 1].strip()
        out.append(f"${addr:04X}  {hex_str:12s}  {line_no:4d}  {text}")

    out.append("")
    out.append("Symbol Table")
    out.append("-" * 30)
    for name, value in sorted(symbol_table.items()):
        out.append(f"{name:20s} = ${value:04X}")
    return "\n".join(out) + "\n"


def format_symbols(symbol_table: dict[str, int]) -> str:
    """Format the symbol table, one `name $ADDR` entry per line."""
    out = ["# Symbol table", "# Generated by asm6502"]
    for name, value in sorted(symbol_table.items()):
        out.append(f"{name} ${value:04X}")
    return "\n".join(out) + "\n"
