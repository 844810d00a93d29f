# =============================================================================
# test_cli.py - asm6502 Command-Line Tests
# =============================================================================
# Tests for the asm6502 CLI tool, run through click's CliRunner.
#
# Test coverage includes:
#   - Help and version output
#   - Default and explicit output files
#   - Stream and image output formats
#   - Listing, symbol, include and define options
#   - Exit codes for assembly errors and bad arguments
# =============================================================================

import logging

import click
import pytest
from click.testing import CliRunner

from mos6502_asm.cli.asm6502 import main, parse_define
from mos6502_asm.cli.errors import ExitCode


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def source(tmp_path):
    """A small program on disk."""
    path = tmp_path / "prog.s"
    path.write_text("start: lda #$2a\n       sta $10\n")
    return path


# =============================================================================
# Basic Invocation Tests
# =============================================================================

class TestBasicInvocation:
    """Tests for help, version and the default output."""

    def test_cli_help(self, runner):
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "Assemble MOS 6502 source code" in result.output

    def test_cli_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "1.0.0" in result.output

    def test_default_output(self, runner, source):
        """Output goes next to the input with a .bin suffix."""
        result = runner.invoke(main, [str(source)])
        assert result.exit_code == ExitCode.SUCCESS
        assert source.with_suffix(".bin").read_bytes() == bytes([0xA9, 0x2A, 0x85, 0x10])

    def test_explicit_output(self, runner, source, tmp_path):
        out = tmp_path / "out.rom"
        result = runner.invoke(main, [str(source), "-o", str(out)])
        assert result.exit_code == 0
        assert out.read_bytes() == bytes([0xA9, 0x2A, 0x85, 0x10])

    def test_verbose_summary(self, runner, source):
        result = runner.invoke(main, [str(source), "-v"])
        assert result.exit_code == 0
        assert "Assembly complete: 4 bytes" in result.output

    def test_verbose_reports_each_file_once(self, runner, source, tmp_path, caplog):
        """Written files are reported through logging only."""
        caplog.set_level(logging.INFO)
        lst = tmp_path / "prog.lst"

        result = runner.invoke(main, [str(source), "-v", "-l", str(lst)])
        assert result.exit_code == 0
        assert caplog.text.count("Wrote 4 bytes to") == 1
        assert caplog.text.count("Wrote listing to") == 1
        assert "Wrote" not in result.output

    def test_setup_logging_without_verbose(self, runner, source, monkeypatch):
        """Logging is configured at INFO when -v is not given."""
        calls = []
        monkeypatch.setattr("mos6502_asm.cli.asm6502.setup_logging", calls.append)

        result = runner.invoke(main, [str(source)])
        assert result.exit_code == 0
        assert calls == [False]


# =============================================================================
# Output Option Tests
# =============================================================================

class TestOutputOptions:
    """Tests for output formats and auxiliary files."""

    def test_image_format(self, runner, tmp_path):
        src = tmp_path / "prog.s"
        src.write_text(".org $0200\nnop\n.org $0202\nrts\n")
        out = tmp_path / "prog.img"

        result = runner.invoke(main, [str(src), "-o", str(out), "--format", "image", "--fill", "255"])
        assert result.exit_code == 0
        assert out.read_bytes() == bytes([0xEA, 0xFF, 0x60])

    def test_fill_out_of_range(self, runner, source):
        result = runner.invoke(main, [str(source), "--fill", "256"])
        assert result.exit_code == 2

    def test_listing_and_symbols(self, runner, source, tmp_path):
        lst = tmp_path / "prog.lst"
        sym = tmp_path / "prog.sym"

        result = runner.invoke(main, [str(source), "-l", str(lst), "-s", str(sym)])
        assert result.exit_code == 0
        assert "$0000  A9 2A" in lst.read_text()
        assert "start $0000" in sym.read_text().splitlines()

    def test_include_path(self, runner, tmp_path):
        inc = tmp_path / "inc"
        inc.mkdir()
        (inc / "defs.s").write_text(".define PORT $2000\n")
        src = tmp_path / "prog.s"
        src.write_text('.include "defs.s"\nsta PORT\n')

        result = runner.invoke(main, [str(src), "-I", str(inc)])
        assert result.exit_code == 0
        assert src.with_suffix(".bin").read_bytes() == bytes([0x8D, 0x00, 0x20])

    def test_define(self, runner, tmp_path):
        src = tmp_path / "prog.s"
        src.write_text("sta PORT\n")

        result = runner.invoke(main, [str(src), "-D", "PORT=$2000"])
        assert result.exit_code == 0
        assert src.with_suffix(".bin").read_bytes() == bytes([0x8D, 0x00, 0x20])


# =============================================================================
# Error Handling Tests
# =============================================================================

class TestErrors:
    """Tests for exit codes and error messages."""

    def test_assembly_error(self, runner, tmp_path):
        src = tmp_path / "bad.s"
        src.write_text("nop\nfoo #1\n")

        result = runner.invoke(main, [str(src)])
        assert result.exit_code == ExitCode.BUILD_ERROR
        assert "Assembly error:" in result.output
        assert "Invalid opcode 'foo'" in result.output

    def test_no_output_on_error(self, runner, tmp_path):
        """Nothing is written when assembly fails."""
        src = tmp_path / "bad.s"
        src.write_text("jmp nowhere\n")

        result = runner.invoke(main, [str(src)])
        assert result.exit_code == 1
        assert not src.with_suffix(".bin").exists()

    def test_source_not_utf8(self, runner, tmp_path):
        """Undecodable source is an assembly error, not an internal one."""
        src = tmp_path / "bad.s"
        src.write_bytes(b"lda #1 ; \xff\xfe\n")

        result = runner.invoke(main, [str(src)])
        assert result.exit_code == ExitCode.BUILD_ERROR
        assert "Assembly error:" in result.output
        assert "bad.s:1:10: error: source is not valid UTF-8" in result.output
        assert not src.with_suffix(".bin").exists()

    def test_include_not_utf8(self, runner, tmp_path):
        (tmp_path / "defs.s").write_bytes(b"\xff\n")
        src = tmp_path / "prog.s"
        src.write_text('.include "defs.s"\n')

        result = runner.invoke(main, [str(src)])
        assert result.exit_code == ExitCode.BUILD_ERROR
        assert "cannot include 'defs.s'" in result.output

    def test_missing_input(self, runner, tmp_path):
        result = runner.invoke(main, [str(tmp_path / "missing.s")])
        assert result.exit_code == ExitCode.INVALID_ARGS

    def test_bad_define_value(self, runner, source):
        result = runner.invoke(main, [str(source), "-D", "PORT=zz"])
        assert result.exit_code == ExitCode.INVALID_ARGS
        assert "invalid value in -D PORT=zz" in result.output


# =============================================================================
# Define Parsing Tests
# =============================================================================

class TestParseDefine:
    """Tests for -D value parsing."""

    @pytest.mark.parametrize("text, expected", [
        ("PORT=$2000", ("PORT", 0x2000)),
        ("PORT=0x2000", ("PORT", 0x2000)),
        ("COUNT=10", ("COUNT", 10)),
        (" DEBUG ", ("DEBUG", 1)),
    ])
    def test_values(self, text, expected):
        assert parse_define(text) == expected

    def test_invalid_value(self):
        with pytest.raises(click.BadParameter):
            parse_define("PORT=$zz")

    def test_value_too_wide(self):
        with pytest.raises(click.BadParameter):
            parse_define("PORT=$10000")
