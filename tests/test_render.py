"""Tests for HTML rendering stage."""

import pytest

from ehrreport.models import (
    BlockKind,
    IpssEntry,
    IpssSet,
    KeyValueRow,
    PagedBlock,
    PatientHeader,
    ReportBlock,
)
from ehrreport.pipeline.stage_paginate import compose_pages
from ehrreport.pipeline.stage_render import (
    SAFE_PAGE_BODY_HEIGHT,
    TextMetricsMeasurer,
    render_block_html,
    render_paged_blocks,
    render_report_html,
)


class TestRenderBlockHtml:
    """Tests for card markup."""

    def test_text_block_paragraphs(self):
        block = ReportBlock(title="Notas", kind=BlockKind.TEXT, text="um\n\ndois")
        html = render_block_html(block)
        assert "<h2>Notas</h2>" in html
        assert html.count('<p class="note">') == 2
        assert 'class="card card-text"' in html

    def test_escapes_content(self):
        block = ReportBlock(title="A & B", kind=BlockKind.TEXT, text="x < y")
        html = render_block_html(block)
        assert "A &amp; B" in html
        assert "x &lt; y" in html

    def test_key_value_rows(self):
        block = ReportBlock(
            title="Ficha",
            kind=BlockKind.KEY_VALUE,
            rows=[KeyValueRow(key="Nome", value="Ana")],
        )
        html = render_block_html(block)
        assert "<tr><th>Nome</th><td>Ana</td></tr>" in html

    def test_ipss_rows_and_quality_of_life(self):
        ipss = IpssSet(
            entries=[IpssEntry(question_number=1, question_text="Esvaziamento", score=2)],
            quality_of_life="QUALIDADE DE VIDA: 3",
        )
        html = render_block_html(ReportBlock(title="IPSS", kind=BlockKind.IPSS, ipss=ipss))
        assert "1- Esvaziamento" in html
        assert "width:40%" in html
        assert '<p class="qol">QUALIDADE DE VIDA: 3</p>' in html

    def test_continued_marker(self):
        block = ReportBlock(title="Notas", kind=BlockKind.TEXT, text="um")
        assert "card-continued" in render_block_html(block, continued=True)
        assert "card-continued" not in render_block_html(block)


class TestRenderReportHtml:
    """Tests for the printable report document."""

    def test_pages_and_header(self):
        block = ReportBlock(title="Notas", kind=BlockKind.TEXT, text="um")
        paged = [
            PagedBlock(block=block, source_index=0, measured_height=400),
            PagedBlock(block=block, source_index=1, measured_height=400),
        ]
        pages = compose_pages(paged, SAFE_PAGE_BODY_HEIGHT, gap=16)
        html = render_report_html(pages, PatientHeader(name="João da Silva"))

        assert "Relatório de João da Silva" in html
        assert html.count('class="page"') == 2
        assert "Página 2 de 2" in html
        # card markup is embedded, not escaped
        assert "<h2>Notas</h2>" in html

    def test_anonymous_patient(self):
        html = render_report_html([], PatientHeader())
        assert "Relatório de Paciente" in html

    def test_render_paged_blocks(self):
        block = ReportBlock(title="Notas", kind=BlockKind.TEXT, text="um")
        paged = [
            PagedBlock(block=block, source_index=0, measured_height=10),
            PagedBlock(block=block, source_index=0, part=1, measured_height=10),
        ]
        markup = render_paged_blocks(paged)
        assert len(markup) == 2
        assert "card-continued" in markup[1]


class TestTextMetricsMeasurer:
    """Tests for the text-length layout estimate."""

    def test_safe_page_body_height(self):
        assert SAFE_PAGE_BODY_HEIGHT == 812

    def test_line_count(self):
        measure = TextMetricsMeasurer(chars_per_line=10, line_height=20, block_padding=0)
        assert measure.line_count("<p>abc</p><p>" + "x" * 25 + "</p>") == 4
        assert measure("<p>abc</p>") == 20

    def test_padding(self):
        measure = TextMetricsMeasurer(chars_per_line=10, line_height=20, block_padding=48)
        assert measure("") == 48

    def test_monotonic_in_content(self):
        measure = TextMetricsMeasurer(chars_per_line=12)
        heights = []
        for n in range(0, 60, 5):
            block = ReportBlock(title="Notas", kind=BlockKind.TEXT, text="palavra " * n)
            heights.append(measure(render_block_html(block)))
        assert heights == sorted(heights)

    @pytest.mark.parametrize("chars,line", [(0, 20), (10, 0), (-1, 20)])
    def test_rejects_non_positive(self, chars, line):
        with pytest.raises(ValueError):
            TextMetricsMeasurer(chars_per_line=chars, line_height=line)
