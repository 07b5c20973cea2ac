"""Clinical sub-record IR models: PSA series, IPSS questionnaires, evolutions."""

import re
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import Field

from .base import BaseIRModel


class PsaMeasurement(BaseIRModel):
    """Single dated PSA lab value in ng/mL."""

    date: date
    value: Decimal = Field(..., gt=0, le=1000)


class PsaSeries(BaseIRModel):
    """PSA history, deduplicated on (date, value) and sorted by date."""

    measurements: list[PsaMeasurement] = Field(default_factory=list)
    missing: list[str] = Field(default_factory=list)

    @property
    def latest(self) -> Optional[PsaMeasurement]:
        return self.measurements[-1] if self.measurements else None

    @property
    def trend(self) -> Optional[str]:
        """Compare first and last values: rising, falling or stable."""
        if len(self.measurements) < 2:
            return None
        first = self.measurements[0].value
        last = self.measurements[-1].value
        if last > first:
            return "rising"
        if last < first:
            return "falling"
        return "stable"


class IpssEntry(BaseIRModel):
    """One answered IPSS question."""

    question_number: int = Field(..., ge=1, le=7)
    question_text: str
    score: int = Field(..., ge=0, le=5)


class IpssSet(BaseIRModel):
    """
    IPSS questionnaire answers attached to a single evolution.

    `quality_of_life` keeps the quality-of-life line verbatim. `missing`
    names questions (question_1..question_7) and quality_of_life that
    were not found.
    """

    entries: list[IpssEntry] = Field(default_factory=list)
    quality_of_life: Optional[str] = None
    missing: list[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.entries and self.quality_of_life is None

    @property
    def total(self) -> int:
        return sum(e.score for e in self.entries)

    @property
    def quality_of_life_score(self) -> Optional[int]:
        """Trailing 0-6 score of the quality-of-life line, when present."""
        if not self.quality_of_life:
            return None
        match = re.search(r"([0-6])\s*$", self.quality_of_life)
        return int(match.group(1)) if match else None


class Evolution(BaseIRModel):
    """Dated clinical progress note."""

    timestamp: datetime
    raw_body: str = ""
    ipss: Optional[IpssSet] = None

    @property
    def timestamp_label(self) -> str:
        """Timestamp in the marker format YYYY-MM-DD HH:MM:SS."""
        return self.timestamp.strftime("%Y-%m-%d %H:%M:%S")
