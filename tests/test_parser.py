# =============================================================================
# test_parser.py - Parser Unit Tests
# =============================================================================
# Tests for the 6502 assembler parser.
#
# Test coverage includes:
#   - Line structure (labels, instructions, pragmas, blank lines)
#   - Addressing mode detection for every operand syntax
#   - Immediate operand forms (#n, #label, #<label, #>label)
#   - Pragma parsing
#   - The line-producer contract (next_line, error, check_overflow)
#   - Include resolution
#   - Error conditions
# =============================================================================

import pytest

from mos6502_asm.assembler.parser import (
    Absolute,
    AbsoluteX,
    AbsoluteY,
    Accumulator,
    Byte,
    Bytes,
    Define,
    HighByte,
    Immediate,
    ImmediateLabel,
    ImmediateLiteral,
    Implied,
    Include,
    Indirect,
    IndirectX,
    IndirectY,
    Label,
    Literal,
    LowByte,
    Origin,
    ParsedInstruction,
    Parser,
    Relative,
    Word,
    ZeroPage,
    ZeroPageX,
    ZeroPageY,
    check_overflow,
    parse_source,
    with_kind,
)
from mos6502_asm.cpu import ModeKind
from mos6502_asm.errors import (
    AssemblySyntaxError,
    IncludeError,
    OperandOverflowError,
    SourceLocation,
)


def parse_one(source: str):
    """Parse a single-line source and return its value."""
    lines = parse_source(source)
    assert len(lines) == 1
    return lines[0].value


def mode_of(source: str):
    value = parse_one(source)
    assert isinstance(value, ParsedInstruction)
    return value.addr_mode


# =============================================================================
# Line Structure Tests
# =============================================================================

class TestLineStructure:
    """Test how source lines map to ParsedLine records."""

    def test_instruction_only(self):
        lines = parse_source("nop")
        assert lines[0].label is None
        assert lines[0].value == ParsedInstruction("nop", Implied())

    def test_label_only(self):
        lines = parse_source("start:")
        assert lines[0].label == "start"
        assert lines[0].value is None

    def test_label_with_instruction(self):
        """A label may share its line with an instruction."""
        lines = parse_source("loop: dex")
        assert lines[0].label == "loop"
        assert lines[0].value == ParsedInstruction("dex", Implied())

    def test_label_with_pragma(self):
        lines = parse_source("table: .byte 1")
        assert lines[0].label == "table"
        assert lines[0].value == Byte(1)

    def test_labels_are_case_sensitive(self):
        lines = parse_source("Start:\nstart:")
        assert [line.label for line in lines] == ["Start", "start"]

    def test_mnemonic_lowercased(self):
        assert parse_one("LDA #1").mnemonic == "lda"

    def test_blank_and_comment_lines_skipped(self):
        """Blank and comment-only lines produce nothing."""
        lines = parse_source("\n; comment\n\n  nop\n\n")
        assert len(lines) == 1
        assert lines[0].location.line == 4
        assert lines[0].location.column == 3

    def test_empty_source(self):
        assert parse_source("") == []

    def test_trailing_tokens_rejected(self):
        with pytest.raises(AssemblySyntaxError, match="unexpected number"):
            parse_source("lda $10 $20")


# =============================================================================
# Addressing Mode Tests
# =============================================================================

class TestAddressingModes:
    """Test operand syntax to addressing mode mapping."""

    def test_implied(self):
        assert mode_of("rts") == Implied()

    def test_bare_shift_is_implied(self):
        """The encoder decides what a bare shift means."""
        assert mode_of("asl") == Implied()

    def test_accumulator(self):
        assert mode_of("asl a") == Accumulator()
        assert mode_of("ROR A") == Accumulator()

    def test_a_as_label_for_other_mnemonics(self):
        """Only shift mnemonics treat `a` as the accumulator."""
        assert mode_of("lda a") == Absolute(Label("a"))

    def test_zero_page_literal(self):
        assert mode_of("lda $10") == ZeroPage(Literal(0x10))

    def test_absolute_literal(self):
        assert mode_of("lda $1234") == Absolute(Literal(0x1234))

    def test_zero_page_boundary(self):
        """Literals below 256 select zero page, 256 and up absolute."""
        assert mode_of("lda 255") == ZeroPage(Literal(255))
        assert mode_of("lda 256") == Absolute(Literal(256))

    def test_label_is_absolute(self):
        assert mode_of("sta PORT") == Absolute(Label("PORT"))

    def test_indexed_x(self):
        assert mode_of("lda $20,x") == ZeroPageX(Literal(0x20))
        assert mode_of("lda $1234,X") == AbsoluteX(Literal(0x1234))

    def test_indexed_y(self):
        assert mode_of("ldx $20,y") == ZeroPageY(Literal(0x20))
        assert mode_of("lda table,y") == AbsoluteY(Label("table"))

    def test_indirect(self):
        assert mode_of("jmp ($fffc)") == Indirect(Literal(0xFFFC))

    def test_indexed_indirect(self):
        assert mode_of("lda ($20,x)") == IndirectX(Literal(0x20))

    def test_indirect_indexed(self):
        assert mode_of("lda ($20),y") == IndirectY(Literal(0x20))

    def test_branch_label(self):
        assert mode_of("bne loop") == Relative(Label("loop"))

    def test_branch_literal(self):
        """Branch operands are relative even when they look like zero page."""
        assert mode_of("beq $10") == Relative(Literal(0x10))

    def test_mode_kinds(self):
        assert mode_of("lda ($20),y").kind is ModeKind.INDIRECT_Y
        assert mode_of("nop").kind is ModeKind.IMPLIED

    def test_with_kind(self):
        """with_kind keeps the operand and swaps the mode."""
        mode = with_kind(ZeroPageX(Label("p")), ModeKind.ABSOLUTE_X)
        assert mode == AbsoluteX(Label("p"))

    def test_bad_index_register(self):
        with pytest.raises(AssemblySyntaxError, match="expected 'x' or 'y' after ','"):
            parse_source("lda $20,z")

    def test_indirect_x_needs_x(self):
        with pytest.raises(AssemblySyntaxError, match="expected 'x'"):
            parse_source("lda ($20,y)")

    def test_missing_close_paren(self):
        with pytest.raises(AssemblySyntaxError, match="expected '\\)'"):
            parse_source("jmp ($fffc")

    def test_address_too_wide(self):
        with pytest.raises(AssemblySyntaxError, match="does not fit in 16 bits"):
            parse_source("lda $10000")

    def test_missing_address(self):
        with pytest.raises(AssemblySyntaxError, match="expected address or label"):
            parse_source("lda ,x")


# =============================================================================
# Immediate Operand Tests
# =============================================================================

class TestImmediate:
    """Test immediate operand forms."""

    def test_literal(self):
        assert mode_of("lda #$2a") == Immediate(ImmediateLiteral(0x2A))

    def test_label(self):
        assert mode_of("ldx #count") == Immediate(ImmediateLabel("count"))

    def test_low_byte(self):
        assert mode_of("lda #<target") == Immediate(LowByte("target"))

    def test_high_byte(self):
        assert mode_of("lda #>target") == Immediate(HighByte("target"))

    def test_literal_overflow(self):
        """Immediate literals must fit in 8 bits."""
        with pytest.raises(OperandOverflowError, match="overflow"):
            parse_source("lda #$100")

    def test_missing_value(self):
        with pytest.raises(AssemblySyntaxError, match="expected immediate value after '#'"):
            parse_source("lda #")

    def test_low_byte_needs_label(self):
        with pytest.raises(AssemblySyntaxError, match="expected label after '<'"):
            parse_source("lda #<$1234")


# =============================================================================
# Pragma Tests
# =============================================================================

class TestPragmas:
    """Test pragma parsing."""

    def test_byte(self):
        assert parse_one(".byte $ff") == Byte(0xFF)

    def test_byte_overflow(self):
        with pytest.raises(OperandOverflowError):
            parse_source(".byte 256")

    def test_byte_rejects_label(self):
        with pytest.raises(AssemblySyntaxError, match="expected byte value"):
            parse_source(".byte foo")

    def test_bytes_list(self):
        assert parse_one(".bytes 1, 2, 3") == Bytes((1, 2, 3))

    def test_bytes_with_string(self):
        """Strings in .bytes expand to their ASCII codes."""
        assert parse_one('.bytes "AB", 0') == Bytes((0x41, 0x42, 0x00))

    def test_bytes_non_ascii(self):
        with pytest.raises(AssemblySyntaxError, match="non-ASCII"):
            parse_source('.bytes "café"')

    def test_word_literal(self):
        assert parse_one(".word $1234") == Word(Literal(0x1234))

    def test_word_label(self):
        assert parse_one(".word handler") == Word(Label("handler"))

    def test_org(self):
        assert parse_one(".org $c000") == Origin(Literal(0xC000))

    def test_org_case_insensitive(self):
        assert parse_one(".ORG $c000") == Origin(Literal(0xC000))

    def test_define(self):
        assert parse_one(".define PORT $2000") == Define("PORT", Literal(0x2000))

    def test_define_needs_name(self):
        with pytest.raises(AssemblySyntaxError, match="expected name after .define"):
            parse_source(".define $2000")

    def test_include(self):
        assert parse_one('.include "defs.s"') == Include("defs.s")

    def test_include_needs_string(self):
        with pytest.raises(AssemblySyntaxError, match="expected quoted path"):
            parse_source(".include defs.s")

    def test_unknown_pragma(self):
        with pytest.raises(AssemblySyntaxError, match="unknown pragma '.fill'"):
            parse_source(".fill 10")


# =============================================================================
# Parser Contract Tests
# =============================================================================

class TestParserContract:
    """Test the interface the first pass relies on."""

    def test_next_line_until_none(self):
        parser = Parser("nop\nrts\n")
        assert parser.next_line().value.mnemonic == "nop"
        assert parser.next_line().value.mnemonic == "rts"
        assert parser.next_line() is None
        assert parser.next_line() is None

    def test_iteration(self):
        parser = Parser("nop\nrts")
        assert [line.value.mnemonic for line in parser] == ["nop", "rts"]

    def test_error_tagged_with_position(self):
        """error() builds a syntax error at the current token."""
        parser = Parser("nop\n  rts", "prog.s")
        parser.next_line()
        error = parser.error("something is wrong")
        assert isinstance(error, AssemblySyntaxError)
        assert str(error.location) == "prog.s:2:3"
        assert error.source_line == "  rts"

    def test_check_overflow_passes_bytes(self):
        parser = Parser("")
        assert check_overflow(parser, 0) == 0
        assert check_overflow(parser, 0xFF) == 0xFF

    def test_check_overflow_rejects_wide_values(self):
        parser = Parser("")
        with pytest.raises(OperandOverflowError) as exc_info:
            check_overflow(parser, 0x100)
        assert exc_info.value.value == 0x100
        assert "overflow" in str(exc_info.value)

    def test_sources_recorded(self):
        """The parser keeps source text for listings and error context."""
        parser = Parser("nop\nrts", "prog.s")
        assert parser.sources["prog.s"] == ["nop", "rts"]


# =============================================================================
# Include Tests
# =============================================================================

class TestInclude:
    """Test include file resolution."""

    def test_in_memory_source_cannot_include(self):
        parser = Parser('.include "defs.s"')
        with pytest.raises(IncludeError, match="in-memory"):
            parser.include("defs.s")

    def test_include_relative_to_file(self, tmp_path):
        (tmp_path / "defs.s").write_text("nop\n")
        main = tmp_path / "main.s"
        main.write_text('.include "defs.s"\n')

        child = Parser.from_file(main).include("defs.s")
        assert child.filename == str(tmp_path / "defs.s")

    def test_include_from_search_path(self, tmp_path):
        inc = tmp_path / "inc"
        inc.mkdir()
        (inc / "defs.s").write_text(".define PORT $2000\n")

        parser = Parser('.include "defs.s"', include_paths=[inc])
        lines = list(parser.include("defs.s"))
        assert lines[0].value == Define("PORT", Literal(0x2000))

    def test_included_source_shared(self, tmp_path):
        """Included files register their text with the parent parser."""
        (tmp_path / "defs.s").write_text("nop\n")
        main = tmp_path / "main.s"
        main.write_text('.include "defs.s"\n')

        parser = Parser.from_file(main)
        parser.include("defs.s")
        assert parser.sources[str(tmp_path / "defs.s")] == ["nop"]

    def test_missing_include(self, tmp_path):
        main = tmp_path / "main.s"
        main.write_text('.include "nope.s"\n')
        with pytest.raises(IncludeError) as exc_info:
            Parser.from_file(main).include("nope.s")
        assert "file not found" in str(exc_info.value)
        assert str(tmp_path) in exc_info.value.hint

    def test_circular_include(self, tmp_path):
        main = tmp_path / "main.s"
        main.write_text('.include "main.s"\n')
        with pytest.raises(IncludeError, match="circular include"):
            Parser.from_file(main).include("main.s")

    def test_include_not_utf8(self, tmp_path):
        (tmp_path / "defs.s").write_bytes(b"nop ; \xff\n")
        main = tmp_path / "main.s"
        main.write_text('.include "defs.s"\n')
        with pytest.raises(IncludeError) as exc_info:
            Parser.from_file(main).include("defs.s")
        assert "cannot include 'defs.s'" in str(exc_info.value)
        assert "defs.s:1:7 is not valid UTF-8" in str(exc_info.value)


# =============================================================================
# Source File Tests
# =============================================================================

class TestSourceFiles:
    """Test reading source files from disk."""

    def test_utf8_comment_accepted(self, tmp_path):
        path = tmp_path / "prog.s"
        path.write_bytes("nop ; café\n".encode("utf-8"))
        assert len(list(Parser.from_file(path))) == 1

    def test_not_utf8(self, tmp_path):
        """Undecodable bytes are reported at their line and column."""
        path = tmp_path / "prog.s"
        path.write_bytes(b"nop\nlda #1 ; \xff\xfe\n")
        with pytest.raises(AssemblySyntaxError) as exc_info:
            Parser.from_file(path)
        error = exc_info.value
        assert error.location == SourceLocation(str(path), 2, 10)
        assert "source is not valid UTF-8 (byte $FF)" in str(error)
