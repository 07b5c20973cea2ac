"""Pipeline orchestration - Run the stages end to end for one record.

Both entry points are pure: they read nothing but their arguments and keep
no state, so independent records can be processed in parallel processes.
"""

import logging

from ehrreport.models import PagedBlock, ProcessedRecord, SectionName

from .stage_blocks import build_blocks
from .stage_clean import clean_text
from .stage_evolutions import extract_evolutions
from .stage_paginate import Measurer, Paginator
from .stage_patient import extract_patient_header
from .stage_psa import DEFAULT_YEAR_PIVOT, extract_psa_series
from .stage_sections import structure_text

logger = logging.getLogger(__name__)


def process_record(raw: str, pivot: int = DEFAULT_YEAR_PIVOT) -> ProcessedRecord:
    """Clean, structure and extract one raw record.

    Args:
        raw: Raw record text, RTF or plain.
        pivot: Two-digit year pivot for PSA dates.

    Returns:
        ProcessedRecord with report blocks ready for pagination.
    """
    cleaned = clean_text(raw)
    document = structure_text(cleaned)

    header = extract_patient_header(document.section_text(SectionName.HEADER))
    psa = extract_psa_series(document.section_text(SectionName.PSA), pivot=pivot)
    evolutions = extract_evolutions(document)
    blocks = build_blocks(document, header, psa, evolutions)

    logger.debug(
        f"Processed record: {len(document.sections)} section(s), "
        f"{len(psa.measurements)} PSA value(s), {len(evolutions)} evolution(s), "
        f"{len(blocks)} block(s)"
    )
    return ProcessedRecord(
        cleaned_text=cleaned,
        document=document,
        header=header,
        psa=psa,
        evolutions=evolutions,
        blocks=blocks,
    )


def paginate_record(
    record: ProcessedRecord,
    measure: Measurer,
    page_body_height: float,
) -> list[PagedBlock]:
    """Paginate a processed record's blocks against a page body budget."""
    return Paginator(measure, page_body_height).paginate(record.blocks)
