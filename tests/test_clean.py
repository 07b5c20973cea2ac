"""Tests for the RTF cleaning stage."""

import logging

import pytest

from ehrreport.pipeline.stage_clean import (
    CP1252_TABLE,
    RtfCleaner,
    clean_text,
    decode_hex_escapes,
    normalize_whitespace,
    remove_destination_groups,
)


class TestCodepageTable:
    """Tests for the 0x80-0xFF decoding table."""

    def test_table_covers_upper_half(self):
        """Table has one slot per byte from 0x80 to 0xFF."""
        assert len(CP1252_TABLE) == 128

    def test_windows_1252_punctuation(self):
        """C1 range maps to Windows-1252 punctuation, not control codes."""
        assert CP1252_TABLE[0x80 - 0x80] == "€"
        assert CP1252_TABLE[0x93 - 0x80] == "“"
        assert CP1252_TABLE[0x96 - 0x80] == "–"

    def test_latin1_range(self):
        assert CP1252_TABLE[0xE9 - 0x80] == "é"
        assert CP1252_TABLE[0xC7 - 0x80] == "Ç"

    def test_undefined_slots(self):
        for code in (0x81, 0x8D, 0x8F, 0x90, 0x9D):
            assert CP1252_TABLE[code - 0x80] is None


class TestDecodeHexEscapes:
    """Tests for \\'XX decoding."""

    def test_decodes_accents(self):
        assert decode_hex_escapes(r"Jo\'e3o Ara\'fajo") == "João Araújo"

    def test_decodes_c1_range(self):
        assert decode_hex_escapes(r"\'93aspas\'94") == "“aspas”"
        assert decode_hex_escapes(r"\'85") == "…"

    def test_unmapped_code_falls_back_to_raw_code_point(self):
        assert decode_hex_escapes(r"\'81") == "\x81"

    def test_ascii_code(self):
        assert decode_hex_escapes(r"\'41") == "A"


class TestDestinationGroups:
    """Tests for brace-balanced group removal."""

    def test_nested_font_table(self):
        text = r"{\fonttbl{\f0 Arial;}{\f1 Symbol;}}Texto"
        assert remove_destination_groups(text) == "Texto"

    def test_star_group(self):
        assert remove_destination_groups(r"A{\*\generator Riched20;}B") == "AB"

    def test_escaped_brace_inside_group(self):
        assert remove_destination_groups(r"{\info{\title a\}b}}Fim") == "Fim"

    def test_unbalanced_group_drops_opener_only(self, caplog):
        """An unclosed group is reported and only its opener is removed."""
        with caplog.at_level(logging.WARNING):
            result = remove_destination_groups(r"{\fonttbl Texto")
        assert result == " Texto"
        assert "Unbalanced" in caplog.text


class TestCleanText:
    """Tests for the full cleaning pass."""

    def test_font_table_and_hex_escape(self):
        """Font table vanishes and the 0xE9 escape decodes to é."""
        assert clean_text("{\\fonttbl{\\f0 Arial;}}Hello\\'e9 World") == "Helloé World"

    def test_empty_input(self):
        assert clean_text("") == ""

    def test_whitespace_only_input(self):
        assert clean_text("   \n\t  \r\n ") == ""

    def test_literal_escapes_become_line_breaks(self):
        assert clean_text(r"Linha 1\r\nLinha 2\nLinha 3") == "Linha 1\nLinha 2\nLinha 3"

    def test_literal_tab_becomes_space(self):
        assert clean_text(r"Coluna A\tColuna B") == "Coluna A Coluna B"

    def test_control_words_starting_with_escape_letters_survive(self):
        """\\tab and \\nowidctlpar are control words, not literal escapes."""
        assert clean_text(r"A\tab B \nowidctlpar C") == "A B C"

    def test_unlisted_control_words_not_read_as_escapes(self):
        assert clean_text(r"A \nonshppict B \nowrap C \nosectexpand D") == "A B C D"
        assert clean_text(r"A \nofpages3 B \rsidroot12 C \tsrowd\cell D") == "A B C D"

    def test_literal_newline_before_lowercase_text(self):
        assert clean_text(r"Linha\nobs: ok") == "Linha\nobs: ok"

    def test_full_rtf_document(self, sample_rtf):
        assert clean_text(sample_rtf) == (
            "Nome: João Araújo\nData de Nascimento: 1948-11-30\nPSA 12/05/21 3,2"
        )

    def test_control_word_run(self):
        assert clean_text(r"\loch\af0\dbch\af0\hich\f0 Texto do laudo") == "Texto do laudo"

    def test_font_markers_removed(self):
        assert clean_text("ARIAL;Texto do laudo") == "Texto do laudo"

    def test_empty_lines_dropped_and_lines_trimmed(self):
        assert clean_text("  a  \n\n\n\n   b   c  \n") == "a\nb c"

    def test_nfkc_normalization(self):
        """Compatibility characters fold to their canonical composed form."""
        assert clean_text("ﬁm de linha") == "fim de linha"

    def test_control_characters_removed(self):
        assert clean_text("abc\x00\x07def") == "abcdef"

    def test_unmapped_escape_dropped_as_control(self):
        assert clean_text(r"a\'81b") == "ab"

    def test_stray_backslash_reported(self, caplog):
        """Unrecognized escapes are logged as a quality signal and removed."""
        with caplog.at_level(logging.WARNING):
            result = clean_text(r"Valor \~ fim")
        assert result == "Valor ~ fim"
        assert "unrecognized RTF escape" in caplog.text

    def test_decoded_braces_dropped(self):
        assert clean_text(r"a\'7bb\'7dc") == "abc"

    def test_fullwidth_forms_folded_then_stripped(self):
        """NFKC output is cleaned like literal input."""
        assert clean_text("\uff21\uff32\uff29\uff21\uff2c Texto \uff5bx\uff5d") == "Texto x"

    def test_cleaner_class_matches_function(self, sample_rtf):
        assert RtfCleaner().clean(sample_rtf) == clean_text(sample_rtf)


class TestCleanProperties:
    """Idempotence and determinism."""

    @pytest.mark.parametrize(
        "raw",
        [
            "",
            "Texto simples",
            "{\\fonttbl{\\f0 Arial;}}Hello\\'e9 World",
            r"Linha 1\r\nLinha 2\n\n\n\nLinha 3",
            r"{\rtf1\ansi\f0\fs20 Paciente\par\par\par Est\'e1vel}",
            "a\\\\b {c} \\'85 ﬁ \x07",
            r"{\fonttbl Texto sem fechamento",
            "ARIAL Times New Roman; Symbol Wingdings",
            "\\'7bx\\'7d \uff3c\uff50\uff41\uff52 \uff5by\uff5d",
            "\uff21\uff32\uff29\uff21\uff2c Texto",
            "Times  New Roman",
            "Times\tNew Roman",
            "Times New ARIAL Roman",
            r"ARI\{AL texto longo",
        ],
    )
    def test_idempotent(self, raw):
        once = clean_text(raw)
        assert clean_text(once) == once

    def test_deterministic(self, sample_record, sample_rtf):
        for raw in (sample_record, sample_rtf):
            assert clean_text(raw) == clean_text(raw)

    def test_plain_record_unchanged(self, sample_record):
        """Already clean text only loses its trailing newline."""
        assert clean_text(sample_record) == sample_record.strip()


class TestNormalizeWhitespace:
    """Tests for whitespace collapsing."""

    def test_crlf(self):
        assert normalize_whitespace("a\r\nb\rc") == "a\nb\nc"

    def test_horizontal_runs(self):
        assert normalize_whitespace("a \t  b") == "a b"
