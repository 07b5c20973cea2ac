"""Pagination Stage - Split report blocks so each fits a page body.

For every block:
1. Measure the whole card; emit it unchanged when it fits
2. Otherwise greedily pack its units (paragraphs, table rows, IPSS lines)
   into sub-blocks, closing a sub-block when the next unit would overflow;
   sub-blocks after the first get a "(continuação)" title
3. A single paragraph that overflows on its own is cut at the largest
   character offset that still fits (binary search), preferring the last
   space before that offset; the remainder goes back to step 2

Height comes from an injected `measure(markup) -> height` callable, which
must be monotonic: adding content never lowers the height. Results are
cached per `paginate` call only, since layout can change between runs.
"""

import logging
from collections import deque
from typing import Callable, Optional, Protocol, Union

from ehrreport.models import (
    PARAGRAPH_SEPARATOR,
    BlockKind,
    IpssEntry,
    IpssSet,
    KeyValueRow,
    PagedBlock,
    ReportBlock,
    ReportPage,
)

from .stage_render import render_block_html

logger = logging.getLogger(__name__)


CONTINUATION_SUFFIX = " (continuação)"

Unit = Union[str, KeyValueRow, IpssEntry]


class Measurer(Protocol):
    """Measures the rendered height of card markup."""

    def __call__(self, markup: str) -> float: ...


class PageBudgetError(ValueError):
    """A block cannot be made to fit the page body height.

    Raised when a single character, table row or IPSS line is taller than
    the budget on its own. This is a configuration error (budget too
    small), not a content problem.
    """


class _CachedMeasure:
    """Memoizes measurements of identical markup within one run."""

    def __init__(self, measure: Measurer):
        self._measure = measure
        self._cache: dict[str, float] = {}
        self.calls = 0

    def __call__(self, markup: str) -> float:
        height = self._cache.get(markup)
        if height is None:
            self.calls += 1
            height = self._cache[markup] = float(self._measure(markup))
        return height


def block_units(block: ReportBlock) -> list[Unit]:
    """Splittable units of a block, in display order."""
    if block.kind == BlockKind.TEXT:
        return list(block.paragraphs)
    if block.kind == BlockKind.KEY_VALUE:
        return list(block.rows)
    if block.ipss is None:
        return []
    units: list[Unit] = list(block.ipss.entries)
    if block.ipss.quality_of_life:
        units.append(block.ipss.quality_of_life)
    return units


def slice_block(block: ReportBlock, units: list[Unit], part: int) -> ReportBlock:
    """Build the sub-block holding `units`, titled for its part number."""
    title = block.title + (CONTINUATION_SUFFIX if part > 0 else "")
    if block.kind == BlockKind.TEXT:
        return ReportBlock(title=title, kind=block.kind, text=PARAGRAPH_SEPARATOR.join(units))
    if block.kind == BlockKind.KEY_VALUE:
        return ReportBlock(title=title, kind=block.kind, rows=units)
    entries = [u for u in units if isinstance(u, IpssEntry)]
    quality = next((u for u in units if isinstance(u, str)), None)
    ipss = IpssSet(
        entries=entries,
        quality_of_life=quality,
        missing=block.ipss.missing if block.ipss else [],
    )
    return ReportBlock(title=title, kind=block.kind, ipss=ipss)


class Paginator:
    """Splits report blocks so every emitted block fits the page body.

    Args:
        measure: Height of rendered card markup; must be monotonic.
        page_body_height: Height budget B of one page body.
        render: Block-to-markup renderer used for measuring.
    """

    def __init__(
        self,
        measure: Measurer,
        page_body_height: float,
        render: Callable[..., str] = render_block_html,
    ):
        if page_body_height <= 0:
            raise ValueError(f"page_body_height must be positive, got {page_body_height}")
        self.measure = measure
        self.page_body_height = page_body_height
        self.render = render

    def paginate(self, blocks: list[ReportBlock]) -> list[PagedBlock]:
        """Paginate a block sequence.

        Args:
            blocks: Report blocks in display order.

        Returns:
            Paged blocks, each with measured height within the budget.

        Raises:
            PageBudgetError: If some unit cannot fit the budget on its own.
        """
        measure = _CachedMeasure(self.measure)
        paged: list[PagedBlock] = []
        for index, block in enumerate(blocks):
            paged.extend(self._paginate_block(index, block, measure))
        logger.debug(
            f"Paginated {len(blocks)} block(s) into {len(paged)} "
            f"({measure.calls} measurement(s))"
        )
        return paged

    def _height(self, block: ReportBlock, part: int, measure: _CachedMeasure) -> float:
        return measure(self.render(block, continued=part > 0))

    def _paginate_block(
        self, index: int, block: ReportBlock, measure: _CachedMeasure
    ) -> list[PagedBlock]:
        height = self._height(block, 0, measure)
        if height <= self.page_body_height:
            return [PagedBlock(block=block, source_index=index, measured_height=height)]

        units = block_units(block)
        if not units:
            raise PageBudgetError(
                f"Block {block.title!r} has no content to split but measures "
                f"{height} > {self.page_body_height}"
            )

        logger.info(f"Splitting block {block.title!r} ({height} > {self.page_body_height})")
        parts: list[PagedBlock] = []
        pending: deque[Unit] = deque(units)
        current: list[Unit] = []
        current_height = 0.0
        continues = False

        def close(sub_units: list[Unit], sub_height: float, mid_paragraph: bool) -> None:
            parts.append(
                PagedBlock(
                    block=slice_block(block, sub_units, len(parts)),
                    source_index=index,
                    part=len(parts),
                    measured_height=sub_height,
                    continues_paragraph=mid_paragraph,
                )
            )

        while pending:
            part = len(parts)
            candidate = current + [pending[0]]
            candidate_height = self._height(slice_block(block, candidate, part), part, measure)
            if candidate_height <= self.page_body_height:
                current = candidate
                current_height = candidate_height
                pending.popleft()
                continue

            if current:
                close(current, current_height, continues)
                current, continues = [], False
                continue

            unit = pending[0]
            if not isinstance(unit, str) or block.kind != BlockKind.TEXT:
                raise PageBudgetError(
                    f"A single row of block {block.title!r} measures "
                    f"{candidate_height} > {self.page_body_height}"
                )
            head, tail, head_height = self._split_paragraph(block, unit, part, measure)
            close([head], head_height, continues)
            pending[0] = tail
            continues = True

        if current:
            close(current, current_height, continues)
        return parts

    def _split_paragraph(
        self, block: ReportBlock, text: str, part: int, measure: _CachedMeasure
    ) -> tuple[str, str, float]:
        """Cut an oversize paragraph at the largest prefix that still fits."""
        best: Optional[int] = None
        lo, hi = 1, len(text) - 1
        while lo <= hi:
            mid = (lo + hi) // 2
            height = self._height(slice_block(block, [text[:mid]], part), part, measure)
            if height <= self.page_body_height:
                best = mid
                lo = mid + 1
            else:
                hi = mid - 1

        if best is None:
            raise PageBudgetError(
                f"Not even one character of block {block.title!r} fits "
                f"page body height {self.page_body_height}"
            )

        space = text.rfind(" ", 0, best)
        if space > 0:
            best = space + 1

        head, tail = text[:best], text[best:]
        head_height = self._height(slice_block(block, [head], part), part, measure)
        return head, tail, head_height


def paginate_blocks(
    blocks: list[ReportBlock],
    measure: Measurer,
    page_body_height: float,
) -> list[PagedBlock]:
    """Paginate blocks with a default Paginator."""
    return Paginator(measure, page_body_height).paginate(blocks)


def compose_pages(
    paged: list[PagedBlock],
    page_body_height: float,
    gap: float = 0.0,
) -> list[ReportPage]:
    """Pack paged blocks onto pages in order without exceeding the budget.

    Args:
        paged: Output of the pagination engine.
        page_body_height: Page body budget used for pagination.
        gap: Vertical space between consecutive cards.

    Returns:
        Pages numbered from 1.
    """
    pages: list[list[PagedBlock]] = []
    used = 0.0
    for item in paged:
        needed = item.measured_height + (gap if pages and pages[-1] else 0.0)
        if not pages or used + needed > page_body_height:
            pages.append([item])
            used = item.measured_height
        else:
            pages[-1].append(item)
            used += needed
    return [ReportPage(number=i, blocks=blocks) for i, blocks in enumerate(pages, start=1)]


def reassemble_text(paged: list[PagedBlock]) -> dict[int, str]:
    """Rebuild the text of every split TEXT block from its slices.

    Returns:
        Mapping of source block index to reconstructed text.
    """
    texts: dict[int, str] = {}
    for item in paged:
        if item.block.kind != BlockKind.TEXT:
            continue
        if item.source_index not in texts:
            texts[item.source_index] = item.block.text
            continue
        separator = "" if item.continues_paragraph else PARAGRAPH_SEPARATOR
        texts[item.source_index] += separator + item.block.text
    return texts
