"""IPSS Extraction - Questionnaire scores inside an evolution body.

The source EHR writes the questionnaire as a marked block:

    **IPSS**
    1- Esvaziamento incompleto > 2
    2- Frequência > 3
    ...
    QUALIDADE DE VIDA: 3

The block runs until the next **...** marker line or the end of the body.
"""

import re

from ehrreport.models import IpssEntry, IpssSet


IPSS_MARKER = re.compile(r"\*\*\s*IPSS\s*\*\*", re.IGNORECASE)
BLOCK_MARKER = re.compile(r"^\*\*[^*]+\*\*")
QUESTION_LINE = re.compile(r"^(\d)\s*-\s*(.+?)\s*>\s*(\d+)\s*$")
QUALITY_OF_LIFE = re.compile(r"QUALIDADE DE VIDA", re.IGNORECASE)

QUESTION_NUMBERS = range(1, 8)


def _ipss_lines(body: str) -> list[str]:
    lines = [line.strip() for line in body.split("\n")]
    for index, line in enumerate(lines):
        marker = IPSS_MARKER.search(line)
        if marker is None:
            continue
        block = []
        rest = line[marker.end():].strip()
        if rest:
            block.append(rest)
        for following in lines[index + 1:]:
            if BLOCK_MARKER.match(following):
                break
            if following:
                block.append(following)
        return block
    return []


def extract_ipss(body: str) -> IpssSet:
    """Extract IPSS answers from one evolution body.

    Lines that do not parse, question numbers outside 1-7 and scores
    outside 0-5 are skipped; the first answer for a question wins.

    Args:
        body: Evolution body text.

    Returns:
        IpssSet, empty when the body has no IPSS block.
    """
    entries: dict[int, IpssEntry] = {}
    quality_of_life = None

    for line in _ipss_lines(body):
        if QUALITY_OF_LIFE.search(line):
            if quality_of_life is None:
                quality_of_life = line
            continue
        match = QUESTION_LINE.match(line)
        if match is None:
            continue
        number, text, score = int(match.group(1)), match.group(2), int(match.group(3))
        if number not in QUESTION_NUMBERS or not 0 <= score <= 5 or number in entries:
            continue
        entries[number] = IpssEntry(question_number=number, question_text=text, score=score)

    missing = [f"question_{n}" for n in QUESTION_NUMBERS if n not in entries]
    if quality_of_life is None:
        missing.append("quality_of_life")

    return IpssSet(
        entries=[entries[n] for n in sorted(entries)],
        quality_of_life=quality_of_life,
        missing=missing,
    )
