"""HTML Rendering Stage - Card markup and printable report documents.

Uses jinja2 templates shipped in `ehrreport/templates`. Block markup is
what the pagination engine measures, so the same template renders both
measurement candidates and the final report.

Also provides TextMetricsMeasurer, a deterministic stand-in for a layout
engine that estimates rendered height from text length.
"""

import math
import re

from jinja2 import Environment, PackageLoader, select_autoescape
from markupsafe import Markup

from ehrreport.models import PagedBlock, PatientHeader, ReportBlock, ReportPage

# A4 at 96 dpi
A4_WIDTH_PX = 794
A4_HEIGHT_PX = 1122
PRINT_MARGIN_PX = 45
# Space reserved on each page for the page header
PAGE_HEADER_PX = 220
SAFE_PAGE_BODY_HEIGHT = A4_HEIGHT_PX - PRINT_MARGIN_PX * 2 - PAGE_HEADER_PX

_ENV = Environment(
    loader=PackageLoader("ehrreport", "templates"),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)

# Closing tags that end a rendered line box
LINE_BREAKING_TAGS = re.compile(r"</(?:p|tr|h[1-6]|li|div)>|<br\s*/?>", re.IGNORECASE)


def render_block_html(block: ReportBlock, continued: bool = False) -> str:
    """Render one report block as a card.

    Args:
        block: Block (or block slice) to render.
        continued: Mark the card as a continuation of a previous card.

    Returns:
        Card markup.
    """
    template = _ENV.get_template("block.html")
    return template.render(block=block, kind=block.kind.value, continued=continued)


def render_report_html(
    pages: list[ReportPage],
    header: PatientHeader,
    page_margin: int = PRINT_MARGIN_PX,
) -> str:
    """Render paginated pages into a complete printable HTML document."""
    template = _ENV.get_template("report.html")
    page_context = [
        {
            "number": page.number,
            "markup": [
                Markup(render_block_html(b.block, continued=b.is_continuation))
                for b in page.blocks
            ],
        }
        for page in pages
    ]
    return template.render(
        pages=page_context,
        patient_name=header.name or "Paciente",
        page_width=A4_WIDTH_PX,
        page_height=A4_HEIGHT_PX,
        page_margin=page_margin,
    )


def render_paged_blocks(paged: list[PagedBlock]) -> list[str]:
    """Render each paged block to card markup, in order."""
    return [render_block_html(b.block, continued=b.is_continuation) for b in paged]


class TextMetricsMeasurer:
    """Estimates the rendered height of card markup from its text.

    Every line box (paragraph, table row, heading) takes
    ceil(characters / chars_per_line) lines of `line_height` pixels, plus a
    fixed `block_padding` per card. Adding content never lowers the
    estimate, so it satisfies the pagination engine's monotonicity
    requirement.
    """

    def __init__(
        self,
        chars_per_line: int = 90,
        line_height: float = 20.0,
        block_padding: float = 48.0,
    ):
        if chars_per_line <= 0 or line_height <= 0:
            raise ValueError("chars_per_line and line_height must be positive")
        self.chars_per_line = chars_per_line
        self.line_height = line_height
        self.block_padding = block_padding

    def line_count(self, markup: str) -> int:
        """Number of rendered lines in the markup."""
        lines = 0
        for segment in LINE_BREAKING_TAGS.split(markup):
            text = Markup(segment).striptags()
            if text:
                lines += math.ceil(len(text) / self.chars_per_line)
        return lines

    def __call__(self, markup: str) -> float:
        return self.block_padding + self.line_count(markup) * self.line_height
