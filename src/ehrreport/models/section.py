"""Canonical document IR models."""

from typing import Optional

from pydantic import Field, field_validator

from .base import SECTION_ORDER, BaseIRModel, SectionName


BANNER = "=" * 50

SECTION_TITLES = {
    SectionName.HEADER: "FICHA DO PACIENTE",
    SectionName.PSA: "HISTÓRICO DE PSA",
    SectionName.BIOPSY: "RESULTADOS DE BIÓPSIA",
    SectionName.IMAGING: "EXAMES DE IMAGEM",
    SectionName.EVOLUTIONS: "EVOLUÇÃO CLÍNICA",
    SectionName.OTHER: "INFORMAÇÕES ADICIONAIS",
}


class Section(BaseIRModel):
    """A named run of cleaned lines belonging to one canonical section."""

    name: SectionName
    lines: list[str] = Field(default_factory=list)

    @property
    def text(self) -> str:
        """Section lines joined with newlines."""
        return "\n".join(self.lines)

    @property
    def is_empty(self) -> bool:
        return not self.lines


class CanonicalDocument(BaseIRModel):
    """
    Cleaned text reorganized into canonical sections.

    Sections always appear in the order Header, Psa, Biopsy, Imaging,
    Evolutions, Other. A section absent from the input is omitted.
    """

    sections: list[Section] = Field(default_factory=list)

    @field_validator("sections")
    @classmethod
    def _check_order(cls, sections: list[Section]) -> list[Section]:
        positions = [SECTION_ORDER.index(s.name) for s in sections]
        if positions != sorted(set(positions)):
            raise ValueError("sections must be unique and in canonical order")
        if any(s.is_empty for s in sections):
            raise ValueError("empty sections must be omitted")
        return sections

    @property
    def section_names(self) -> list[SectionName]:
        return [s.name for s in self.sections]

    def section(self, name: SectionName) -> Optional[Section]:
        """Get a section by name, or None when absent."""
        for section in self.sections:
            if section.name == name:
                return section
        return None

    def section_text(self, name: SectionName) -> str:
        """Get a section's text, or an empty string when absent."""
        section = self.section(name)
        return section.text if section else ""

    def to_text(self) -> str:
        """Render the banner-delimited canonical text of the document."""
        out: list[str] = []
        for section in self.sections:
            out.extend([BANNER, SECTION_TITLES[section.name], BANNER])
            out.extend(section.lines)
            if section.name == SectionName.HEADER:
                out.append(BANNER)
        return "\n".join(out)
