"""IR (Intermediate Representation) models for the EHR report pipeline.

This module defines the Pydantic models that represent data flowing through
the pipeline stages. All models support JSON serialization and are immutable
once created.

Model Hierarchy:
- RawText → CleanedText → CanonicalDocument → Sections
- CanonicalDocument → PatientHeader, PsaSeries, Evolutions → IpssSet
- ReportBlocks → PagedBlocks → ReportPages
"""

from .base import (
    SECTION_ORDER,
    BaseIRModel,
    BlockKind,
    SectionName,
)
from .clinical import (
    Evolution,
    IpssEntry,
    IpssSet,
    PsaMeasurement,
    PsaSeries,
)
from .patient import (
    IDENTITY_FIELDS,
    PatientHeader,
)
from .report import (
    PARAGRAPH_SEPARATOR,
    KeyValueRow,
    PagedBlock,
    ProcessedRecord,
    ReportBlock,
    ReportPage,
)
from .section import (
    SECTION_TITLES,
    CanonicalDocument,
    Section,
)

__all__ = [
    # Base types
    "BaseIRModel",
    "BlockKind",
    "SectionName",
    "SECTION_ORDER",
    # Sections
    "CanonicalDocument",
    "Section",
    "SECTION_TITLES",
    # Patient
    "PatientHeader",
    "IDENTITY_FIELDS",
    # Clinical
    "Evolution",
    "IpssEntry",
    "IpssSet",
    "PsaMeasurement",
    "PsaSeries",
    # Report
    "KeyValueRow",
    "PagedBlock",
    "PARAGRAPH_SEPARATOR",
    "ProcessedRecord",
    "ReportBlock",
    "ReportPage",
]
