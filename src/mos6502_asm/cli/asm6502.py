"""
asm6502 - MOS 6502 Assembler Command-Line Interface
===================================================

This module implements the command-line interface for the 6502 assembler.

Usage Examples
--------------
Basic assembly (writes prog.bin):
    $ asm6502 prog.s

With output file:
    $ asm6502 prog.s -o prog.rom

Address-placed image with gaps filled with $FF:
    $ asm6502 prog.s --format image --fill 255

Generate all output files:
    $ asm6502 prog.s -o prog.bin -l prog.lst -s prog.sym

With include path and defines:
    $ asm6502 -I ./include -D PORT=$2000 prog.s

Verbose mode:
    $ asm6502 -v prog.s
"""

from pathlib import Path
from typing import Optional
import logging

import click

from mos6502_asm import __version__
from mos6502_asm.assembler import Assembler
from mos6502_asm.cli.errors import handle_cli_exception


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s" if verbose else "%(message)s",
    )


def parse_define(defn: str) -> tuple[str, int]:
    """
    Parse a -D argument.

    Accepts NAME=VALUE with VALUE in $hex, 0x hex or decimal. A bare
    NAME defaults to 1.

    Raises:
        click.BadParameter: If the value is not a number
    """
    if "=" not in defn:
        return defn.strip(), 1

    name, value_str = defn.split("=", 1)
    value_str = value_str.strip()
    try:
        if value_str.startswith("$"):
            value = int(value_str[1:], 16)
        elif value_str.startswith("0x") or value_str.startswith("0X"):
            value = int(value_str[2:], 16)
        else:
            value = int(value_str)
    except ValueError:
        raise click.BadParameter(f"invalid value in -D {defn}")

    if not 0 <= value <= 0xFFFF:
        raise click.BadParameter(f"value in -D {defn} does not fit in 16 bits")
    return name.strip(), value


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument(
    "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output binary file (default: input.bin)",
)
@click.option(
    "-f", "--format", "output_format",
    type=click.Choice(["stream", "image"], case_sensitive=False),
    default="stream",
    show_default=True,
    help="stream: bytes in emission order. image: bytes placed at their "
         "addresses from the lowest to the highest written address.",
)
@click.option(
    "--fill",
    type=click.IntRange(0, 0xFF),
    default=0,
    show_default=True,
    help="Byte used for gaps in image output",
)
@click.option(
    "-l", "--listing",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Generate listing file",
)
@click.option(
    "-s", "--symbols",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Generate symbol file",
)
@click.option(
    "-I", "--include",
    multiple=True,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Add include search path (can be repeated)",
)
@click.option(
    "-D", "--define",
    multiple=True,
    help="Define symbol (format: NAME=VALUE)",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="asm6502")
def main(
    input_file: Path,
    output: Optional[Path],
    output_format: str,
    fill: int,
    listing: Optional[Path],
    symbols: Optional[Path],
    include: tuple[Path, ...],
    define: tuple[str, ...],
    verbose: bool,
) -> None:
    """
    Assemble MOS 6502 source code.

    INPUT_FILE is the assembly source file to assemble.

    \b
    Examples:
        asm6502 prog.s                 # Outputs prog.bin
        asm6502 prog.s -o out.bin      # Specify output file
        asm6502 -I inc/ prog.s         # Add include path
        asm6502 -D PORT=$2000 prog.s   # Define symbol
    """
    setup_logging(verbose)

    output_file = output if output is not None else input_file.with_suffix(".bin")

    try:
        asm = Assembler(verbose=verbose, include_paths=list(include))
        for defn in define:
            asm.define_symbol(*parse_define(defn))

        code = asm.assemble_file(input_file)

        # Nothing is written unless both passes succeeded
        if output_format.lower() == "image":
            asm.write_image(output_file, fill)
        else:
            asm.write_binary(output_file)

        if listing:
            asm.write_listing(listing)

        if symbols:
            asm.write_symbols(symbols)

        if verbose:
            click.echo(f"Assembly complete: {len(code)} bytes")
            click.echo(f"Defined {len(asm.get_symbols())} symbols")

    except Exception as e:
        handle_cli_exception(e, verbose=verbose, error_type="Assembly")


if __name__ == "__main__":
    main()
