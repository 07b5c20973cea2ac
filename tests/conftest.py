"""Pytest configuration and fixtures."""

import re

import pytest


SAMPLE_RECORD = """\
Código: 4521 Nome: João da Silva Data de Nascimento: 12/03/1950 Telefone: (85) 98888-7777
Antecedentes: hipertensão arterial controlada
PSA total: 01/02/2020 4,5 - 15/08/2021 6,2 - 03/2022 7,1
Biópsia de próstata em 2021: adenocarcinoma Gleason 3+4
Ressonância magnética: PI-RADS 4 em zona periférica
--- Evolução em 2024-01-10 10:00:00 ---
Paciente refere melhora do jato urinário.
**IPSS**
1- Esvaziamento incompleto > 2
2- Frequência > 3
3- Intermitência > 1
4- Urgência > 0
5- Jato fraco > 4
6- Esforço para urinar > 1
7- Noctúria > 2
QUALIDADE DE VIDA: 3
**CONDUTA**
Manter tansulosina.
--- Evolução em 2023-06-01 08:30:00 ---
Primeira consulta urológica.
--- Evolução em 2023-06-01 08:30:00 ---
Primeira consulta urológica.
"""

SAMPLE_RTF = (
    r"{\rtf1\ansi{\fonttbl{\f0\fswiss Arial;}{\f1 Wingdings;}}"
    r"{\colortbl;\red0\green0\blue0;}{\*\generator Riched20;}"
    r"\f0\fs20 Nome: Jo\'e3o Ara\'fajo\par "
    r"Data de Nascimento: 1948-11-30\par "
    r"PSA 12/05/21 3,2\par}"
)


class LineCountMeasurer:
    """Fake layout engine: a fixed height per paragraph or table row.

    Records how many times it was called.
    """

    def __init__(self, unit_height: float = 10.0):
        self.unit_height = unit_height
        self.calls = 0

    def __call__(self, markup: str) -> float:
        self.calls += 1
        units = markup.count("<p ") + markup.count("<tr>")
        return units * self.unit_height


class CharCountMeasurer:
    """Fake layout engine: height equals the paragraph character count."""

    def __call__(self, markup: str) -> float:
        return float(sum(len(p) for p in re.findall(r'<p class="note">(.*?)</p>', markup, re.S)))


@pytest.fixture
def sample_record():
    """Plain-text record covering every canonical section."""
    return SAMPLE_RECORD


@pytest.fixture
def sample_rtf():
    """RTF record with a font table, color table and hex escapes."""
    return SAMPLE_RTF


@pytest.fixture
def record_file(tmp_path):
    """Write the sample record to a temporary UTF-8 file."""
    path = tmp_path / "record.txt"
    path.write_text(SAMPLE_RECORD, encoding="utf-8")
    return path


@pytest.fixture
def line_measurer():
    return LineCountMeasurer()


@pytest.fixture
def char_measurer():
    return CharCountMeasurer()


@pytest.fixture
def output_dir(tmp_path):
    """Create a temporary output directory."""
    out_dir = tmp_path / "output"
    out_dir.mkdir()
    return out_dir
