"""Pipeline stages for EHR report generation.

Deterministic Stages:
1. stage_clean - RTF control stripping and CP1252 decoding
2. stage_sections - Canonical section structuring
3. stage_patient - Patient header extraction
4. stage_psa - PSA series extraction
5. stage_ipss - IPSS questionnaire extraction
6. stage_evolutions - Evolution extraction and deduplication
7. stage_blocks - Report block building
8. stage_render - Card and report HTML rendering
9. stage_paginate - Block splitting against a page body budget

Each stage is independent and can be run separately or
orchestrated through `process_record` / `paginate_record`.
"""

from .orchestrator import paginate_record, process_record
from .stage_blocks import build_blocks
from .stage_clean import CP1252_TABLE, RtfCleaner, clean_text, decode_hex_escapes
from .stage_evolutions import extract_evolutions
from .stage_ipss import extract_ipss
from .stage_paginate import (
    Measurer,
    PageBudgetError,
    Paginator,
    compose_pages,
    paginate_blocks,
    reassemble_text,
)
from .stage_patient import extract_patient_header, normalize_birth_date
from .stage_psa import expand_year, extract_psa_series
from .stage_render import TextMetricsMeasurer, render_block_html, render_report_html
from .stage_sections import SectionStructurer, classify_line, structure_text

__all__ = [
    # Orchestration
    "process_record",
    "paginate_record",
    # Clean
    "CP1252_TABLE",
    "RtfCleaner",
    "clean_text",
    "decode_hex_escapes",
    # Sections
    "SectionStructurer",
    "classify_line",
    "structure_text",
    # Extractors
    "extract_patient_header",
    "normalize_birth_date",
    "expand_year",
    "extract_psa_series",
    "extract_ipss",
    "extract_evolutions",
    # Blocks
    "build_blocks",
    # Render
    "TextMetricsMeasurer",
    "render_block_html",
    "render_report_html",
    # Pagination
    "Measurer",
    "PageBudgetError",
    "Paginator",
    "compose_pages",
    "paginate_blocks",
    "reassemble_text",
]
