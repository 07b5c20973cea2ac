"""Report Block Building - Map structured records to renderable cards.

Block order mirrors the canonical document:
Header, PSA (text, then series table), Biopsy, Imaging, one block per
evolution in ascending time (followed by its IPSS block when present),
then additional information. Empty sections produce no block.
"""

from decimal import Decimal

from ehrreport.models import (
    PARAGRAPH_SEPARATOR,
    BlockKind,
    CanonicalDocument,
    Evolution,
    KeyValueRow,
    PatientHeader,
    PsaSeries,
    ReportBlock,
    SectionName,
)


MISSING_VALUE = "-"

TEXT_SECTION_TITLES = {
    SectionName.PSA: "Histórico de PSA",
    SectionName.BIOPSY: "Resultados de Biópsia",
    SectionName.IMAGING: "Exames de Imagem",
    SectionName.OTHER: "Informações Adicionais",
}


def format_psa_value(value: Decimal) -> str:
    """Format a PSA value the Brazilian way: two decimals, comma separator."""
    return f"{value:.2f}".replace(".", ",") + " ng/mL"


def header_block(header: PatientHeader) -> ReportBlock:
    rows = [
        KeyValueRow(key="Código", value=header.code or MISSING_VALUE),
        KeyValueRow(key="Nome", value=header.name or MISSING_VALUE),
        KeyValueRow(key="Data de Nascimento", value=header.birth_date or MISSING_VALUE),
        KeyValueRow(key="Telefone", value=header.phone or MISSING_VALUE),
    ]
    return ReportBlock(title="Ficha do Paciente", kind=BlockKind.KEY_VALUE, rows=rows)


def text_block(title: str, lines: list[str]) -> ReportBlock:
    """Text block with one paragraph per source line."""
    return ReportBlock(
        title=title,
        kind=BlockKind.TEXT,
        text=PARAGRAPH_SEPARATOR.join(lines),
    )


def psa_series_block(series: PsaSeries) -> ReportBlock:
    rows = [
        KeyValueRow(key=m.date.strftime("%d/%m/%Y"), value=format_psa_value(m.value))
        for m in series.measurements
    ]
    return ReportBlock(title="Série de PSA", kind=BlockKind.KEY_VALUE, rows=rows)


def evolution_blocks(evolution: Evolution) -> list[ReportBlock]:
    """Dated Text card for one evolution, followed by its IPSS card if any.

    The Text card is kept even when the body is empty (for instance when its
    only line was a PSA result moved to the PSA history), so every visit
    date stays on the report.
    """
    label = evolution.timestamp_label
    lines = [line for line in evolution.raw_body.split("\n") if line.strip()]
    blocks = [text_block(f"Evolução em {label}", lines)]
    if evolution.ipss is not None:
        blocks.append(
            ReportBlock(title=f"IPSS ({label})", kind=BlockKind.IPSS, ipss=evolution.ipss)
        )
    return blocks


def build_blocks(
    document: CanonicalDocument,
    header: PatientHeader,
    psa: PsaSeries,
    evolutions: list[Evolution],
) -> list[ReportBlock]:
    """Build the ordered report block sequence.

    Args:
        document: Structured document.
        header: Extracted patient header.
        psa: Extracted PSA series.
        evolutions: Extracted evolutions.

    Returns:
        Report blocks in canonical order.
    """
    blocks: list[ReportBlock] = []

    if document.section(SectionName.HEADER) is not None:
        blocks.append(header_block(header))

    for name in (SectionName.PSA, SectionName.BIOPSY, SectionName.IMAGING):
        section = document.section(name)
        if section is not None:
            blocks.append(text_block(TEXT_SECTION_TITLES[name], section.lines))
        if name == SectionName.PSA and psa.measurements:
            blocks.append(psa_series_block(psa))

    for evolution in sorted(evolutions, key=lambda e: e.timestamp):
        blocks.extend(evolution_blocks(evolution))

    other = document.section(SectionName.OTHER)
    if other is not None:
        blocks.append(text_block(TEXT_SECTION_TITLES[SectionName.OTHER], other.lines))

    return blocks
