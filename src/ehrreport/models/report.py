"""Report block IR models produced for rendering and pagination."""

from typing import Optional

from pydantic import Field

from .base import BaseIRModel, BlockKind
from .clinical import Evolution, IpssSet, PsaSeries
from .patient import PatientHeader
from .section import CanonicalDocument


PARAGRAPH_SEPARATOR = "\n\n"


class KeyValueRow(BaseIRModel):
    """Single key/value row of a table block."""

    key: str
    value: str


class ReportBlock(BaseIRModel):
    """
    Atomic renderable card.

    Content depends on `kind`: TEXT blocks carry `text` (paragraphs separated
    by blank lines), KEY_VALUE blocks carry `rows`, IPSS blocks carry `ipss`.
    """

    title: str
    kind: BlockKind
    text: str = ""
    rows: list[KeyValueRow] = Field(default_factory=list)
    ipss: Optional[IpssSet] = None

    @property
    def paragraphs(self) -> list[str]:
        """Blank-line delimited paragraphs of a TEXT block."""
        return [p for p in self.text.split(PARAGRAPH_SEPARATOR) if p]

    @property
    def unit_count(self) -> int:
        """Number of splittable units (paragraphs, rows or IPSS lines)."""
        if self.kind == BlockKind.TEXT:
            return len(self.paragraphs)
        if self.kind == BlockKind.KEY_VALUE:
            return len(self.rows)
        if self.ipss is None:
            return 0
        return len(self.ipss.entries) + (1 if self.ipss.quality_of_life else 0)


class PagedBlock(BaseIRModel):
    """
    A report block, or a contiguous slice of one, that fits a page body.

    `measured_height` is at most the page-body budget used to produce it.
    `continues_paragraph` is set when this slice starts in the middle of a
    paragraph that was cut at a character offset.
    """

    block: ReportBlock
    source_index: int = Field(..., ge=0, description="Index of the source block")
    part: int = Field(default=0, ge=0, description="0 for the first slice")
    measured_height: float = Field(..., ge=0)
    continues_paragraph: bool = False

    @property
    def is_continuation(self) -> bool:
        return self.part > 0


class ReportPage(BaseIRModel):
    """Printable page holding consecutive paged blocks."""

    number: int = Field(..., ge=1)
    blocks: list[PagedBlock] = Field(default_factory=list)

    @property
    def used_height(self) -> float:
        return sum(b.measured_height for b in self.blocks)


class ProcessedRecord(BaseIRModel):
    """Structured output of one raw record run through the pipeline."""

    cleaned_text: str
    document: CanonicalDocument
    header: PatientHeader
    psa: PsaSeries
    evolutions: list[Evolution] = Field(default_factory=list)
    blocks: list[ReportBlock] = Field(default_factory=list)
