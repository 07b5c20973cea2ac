"""Base models and common types for the EHR report pipeline."""

from enum import Enum

from pydantic import BaseModel


class SectionName(str, Enum):
    """Canonical clinical sections, in their fixed output order."""

    HEADER = "header"
    PSA = "psa"
    BIOPSY = "biopsy"
    IMAGING = "imaging"
    EVOLUTIONS = "evolutions"
    OTHER = "other"


SECTION_ORDER: tuple[SectionName, ...] = tuple(SectionName)


class BlockKind(str, Enum):
    """Types of renderable report blocks."""

    TEXT = "text"
    KEY_VALUE = "key_value"
    IPSS = "ipss"


class BaseIRModel(BaseModel):
    """Base class for all IR models.

    IR models are immutable once built. No random ids or timestamps are
    attached so that every stage stays byte-deterministic.
    """

    class Config:
        from_attributes = True
        frozen = True
