"""Patient identity IR models."""

from datetime import date
from typing import Optional

from pydantic import Field

from .base import BaseIRModel


IDENTITY_FIELDS = ("fullName", "birthDate")


class PatientHeader(BaseIRModel):
    """
    Patient identification fields found in the record header.

    Every field is optional. `missing` lists the expected fields that could
    not be found, using their external names (code, fullName, birthDate,
    phone), so callers can decide whether the record is usable.
    """

    code: Optional[str] = Field(None, description="Clinic patient code (digits)")
    name: Optional[str] = None
    birth_date: Optional[str] = Field(None, description="ISO date YYYY-MM-DD")
    phone: Optional[str] = Field(None, description="Phone digits only")
    missing: list[str] = Field(default_factory=list)

    @property
    def identity_missing(self) -> list[str]:
        """Identity fields (full name, birth date) that could not be found."""
        return [f for f in IDENTITY_FIELDS if f in self.missing]

    @property
    def is_identifiable(self) -> bool:
        """Whether both full name and birth date are present."""
        return not self.identity_missing

    def age_on(self, on: date) -> Optional[int]:
        """Age in whole years on the given date."""
        if not self.birth_date:
            return None
        born = date.fromisoformat(self.birth_date)
        years = on.year - born.year - ((on.month, on.day) < (born.month, born.day))
        return years if years >= 0 else None
