"""
MOS 6502 Assembler - Main Interface
===================================

This module provides the Assembler class, the primary interface for
assembling 6502 source code. It coordinates the parser and the two code
generation passes, and writes the output files.

Example Usage
-------------
>>> from mos6502_asm.assembler import Assembler
>>> asm = Assembler()
>>> asm.assemble_string('''
... start:  lda #$2a
...         sta $10
... ''').hex(" ")
'a9 2a 85 10'
>>> asm.get_symbols()
{'start': 0}

Command-Line Usage
------------------
    $ asm6502 prog.s -o prog.bin -l prog.lst -s prog.sym
"""

from pathlib import Path
import logging

from mos6502_asm.assembler.codegen import (
    AnnotatedLine,
    build_image,
    first_pass,
    format_listing,
    format_symbols,
    second_pass,
)
from mos6502_asm.assembler.parser import Parser


logger = logging.getLogger(__name__)


class Assembler:
    """
    Main 6502 assembler class.

    Each assemble_* call runs both passes from scratch; results of the
    last successful run are available through the get_* and write_*
    methods. A failed run raises and leaves no results behind.

    Attributes:
        verbose: If True, log progress at INFO level
    """

    def __init__(self, verbose: bool = False,
                 include_paths: list[str | Path] | None = None,
                 defines: dict[str, int] | None = None):
        """
        Initialize the assembler.

        Args:
            verbose: Log progress messages at INFO instead of DEBUG
            include_paths: Directories to search for .include files
            defines: Pre-defined symbols (like -D on the command line)
        """
        self._verbose = verbose
        self._include_paths: list[Path] = []
        self._defines: dict[str, int] = {}

        self._lines: list[AnnotatedLine] = []
        self._symbols: dict[str, int] = {}
        self._sources: dict[str, list[str]] = {}
        self._code = b""

        if include_paths:
            for path in include_paths:
                self.add_include_path(path)

        if defines:
            for name, value in defines.items():
                self.define_symbol(name, value)

    def _log(self, message: str) -> None:
        logger.log(logging.INFO if self._verbose else logging.DEBUG, message)

    # =========================================================================
    # Configuration
    # =========================================================================

    def add_include_path(self, path: str | Path) -> None:
        """Add a directory to search for include files."""
        path = Path(path)
        if path.is_dir():
            self._include_paths.append(path)
        else:
            logger.warning(f"include path '{path}' is not a directory")

    def define_symbol(self, name: str, value: int) -> None:
        """Pre-define a symbol before assembly."""
        if not 0 <= value <= 0xFFFF:
            raise ValueError(f"value for {name} does not fit in 16 bits: {value}")
        self._defines[name] = value

    # =========================================================================
    # Assembly Methods
    # =========================================================================

    def assemble_string(self, source: str, filename: str = "<input>") -> bytes:
        """
        Assemble source code from a string.

        Returns:
            The byte stream in emission order

        Raises:
            AssemblerError: If assembly fails
        """
        self._log(f"Assembling {filename}...")
        return self._assemble(Parser(source, filename, include_paths=self._include_paths))

    def assemble_file(self, filepath: str | Path) -> bytes:
        """
        Assemble source code from a file.

        Raises:
            AssemblerError: If assembly fails
            FileNotFoundError: If source file not found
        """
        filepath = Path(filepath)
        self._log(f"Assembling {filepath}...")
        return self._assemble(Parser.from_file(filepath, include_paths=self._include_paths))

    def _assemble(self, parser: Parser) -> bytes:
        self._lines, self._symbols, self._sources, self._code = [], {}, {}, b""

        result = first_pass(parser, symbols=self._defines)
        self._log(
            f"Pass 1: {len(result.lines)} lines, {len(result.symbol_table)} symbols"
        )

        code = second_pass(result.lines, result.symbol_table)
        self._log(f"Pass 2: generated {len(code)} bytes")

        self._lines = result.lines
        self._symbols = result.symbol_table
        self._sources = parser.sources
        self._code = code
        return code

    # =========================================================================
    # Output Methods
    # =========================================================================

    def get_code(self) -> bytes:
        """Get the byte stream in emission order."""
        return self._code

    def get_image(self, fill: int = 0x00) -> tuple[int, bytes]:
        """
        Get the address-placed image.

        Returns:
            (start address, bytes up to the highest written address)
        """
        return build_image(self._lines, self._symbols, fill)

    def get_lines(self) -> list[AnnotatedLine]:
        """Get the annotated lines from the first pass."""
        return list(self._lines)

    def get_symbols(self) -> dict[str, int]:
        """Get the symbol table."""
        return dict(self._symbols)

    def get_listing(self) -> str:
        """Get the assembly listing as a string."""
        return format_listing(self._lines, self._symbols, self._sources)

    def write_binary(self, filepath: str | Path) -> None:
        """Write the raw byte stream."""
        Path(filepath).write_bytes(self._code)
        self._log(f"Wrote {len(self._code)} bytes to {filepath}")

    def write_image(self, filepath: str | Path, fill: int = 0x00) -> int:
        """
        Write the address-placed image.

        Returns:
            The load address of the first byte written
        """
        start, data = self.get_image(fill)
        Path(filepath).write_bytes(data)
        self._log(f"Wrote {len(data)} bytes at ${start:04X} to {filepath}")
        return start

    def write_listing(self, filepath: str | Path) -> None:
        """Write the assembly listing file."""
        Path(filepath).write_text(self.get_listing())
        self._log(f"Wrote listing to {filepath}")

    def write_symbols(self, filepath: str | Path) -> None:
        """Write the symbol table file."""
        Path(filepath).write_text(format_symbols(self._symbols))
        self._log(f"Wrote symbols to {filepath}")


# =============================================================================
# Convenience Functions
# =============================================================================

def assemble(source: str, filename: str = "<input>") -> bytes:
    """
    Assemble source code into a byte stream.

    Raises:
        AssemblerError: If assembly fails
    """
    return Assembler().assemble_string(source, filename)


def assemble_file(filepath: str | Path) -> bytes:
    """
    Assemble a source file into a byte stream.

    Raises:
        AssemblerError: If assembly fails
    """
    return Assembler().assemble_file(filepath)
