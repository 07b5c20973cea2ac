"""Section Structuring Stage - Partition cleaned text into canonical sections.

A single forward pass over the cleaned lines drives a small state machine.
Each line is classified into a LineKind; the TRANSITIONS table decides
where the line is routed and which section becomes current:

- Header fields (Código, Nome, Data de Nascimento, Telefone) always go to
  Header and never move the cursor
- PSA, biopsy and imaging vocabulary switches the cursor to that section
- "--- Evolução em YYYY-MM-DD HH:MM:SS ---" opens an evolution bucket
- Any other line follows the cursor (Other until a section is entered)

The output order is fixed regardless of input order.
"""

import logging
import re
from enum import Enum
from typing import NamedTuple, Optional

from ehrreport.models import SECTION_ORDER, CanonicalDocument, Section, SectionName

logger = logging.getLogger(__name__)


HEADER_LABELS = r"Código|Nome|Data de Nascimento|Telefone"

# Header labels glued to the previous field on the same line
INLINE_HEADER_FIELD = re.compile(rf"\s+({HEADER_LABELS}):", re.IGNORECASE)
HEADER_FIELD = re.compile(rf"^({HEADER_LABELS}):", re.IGNORECASE)

PSA_TRIGGER = re.compile(r"\bPSA\b|Antígeno Prostático", re.IGNORECASE)
BIOPSY_TRIGGER = re.compile(r"Biópsia|Biopsia|Biopsy|Gleason", re.IGNORECASE)
IMAGING_TRIGGER = re.compile(
    r"Ressonância|Ultrassom|Tomografia|\bPET\b|RM de Próstata", re.IGNORECASE
)

EVOLUTION_MARKER = re.compile(
    r"^---\s*Evolução em (\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2})\s*---$", re.IGNORECASE
)

SEPARATOR_LINE = re.compile(r"^[=\-\s]+$")
MIN_OTHER_LINE_LENGTH = 10


class LineKind(str, Enum):
    """Classification of a single cleaned line."""

    HEADER_FIELD = "header_field"
    PSA_TRIGGER = "psa_trigger"
    BIOPSY_TRIGGER = "biopsy_trigger"
    IMAGING_TRIGGER = "imaging_trigger"
    EVOLUTION_MARKER = "evolution_marker"
    CONTENT = "content"


class Transition(NamedTuple):
    """Where a line goes and which section is current afterwards.

    None means "the current section" for `route` and "unchanged" for
    `next_state`.
    """

    route: Optional[SectionName]
    next_state: Optional[SectionName]


TRANSITIONS: dict[LineKind, Transition] = {
    LineKind.HEADER_FIELD: Transition(SectionName.HEADER, None),
    LineKind.PSA_TRIGGER: Transition(SectionName.PSA, SectionName.PSA),
    LineKind.BIOPSY_TRIGGER: Transition(SectionName.BIOPSY, SectionName.BIOPSY),
    LineKind.IMAGING_TRIGGER: Transition(SectionName.IMAGING, SectionName.IMAGING),
    LineKind.EVOLUTION_MARKER: Transition(SectionName.EVOLUTIONS, SectionName.EVOLUTIONS),
    LineKind.CONTENT: Transition(None, None),
}

# Checked in this order; the first match wins
_CLASSIFIERS = [
    (LineKind.HEADER_FIELD, HEADER_FIELD),
    (LineKind.PSA_TRIGGER, PSA_TRIGGER),
    (LineKind.BIOPSY_TRIGGER, BIOPSY_TRIGGER),
    (LineKind.IMAGING_TRIGGER, IMAGING_TRIGGER),
    (LineKind.EVOLUTION_MARKER, EVOLUTION_MARKER),
]


def classify_line(line: str) -> LineKind:
    """Classify a trimmed line."""
    for kind, pattern in _CLASSIFIERS:
        if pattern.search(line):
            return kind
    return LineKind.CONTENT


def split_inline_header_fields(text: str) -> str:
    """Put every header label glued to preceding text on its own line."""
    return INLINE_HEADER_FIELD.sub(r"\n\1:", text)


def evolution_marker(timestamp: str) -> str:
    """Format the marker line for an evolution timestamp."""
    return f"--- Evolução em {timestamp} ---"


def is_meaningful_other(line: str) -> bool:
    """Other-section lines worth keeping: long enough and not separators."""
    return len(line) > MIN_OTHER_LINE_LENGTH and not SEPARATOR_LINE.match(line)


class _EvolutionBucket:
    """Entries sharing one evolution timestamp, in arrival order."""

    def __init__(self, timestamp: str):
        self.timestamp = timestamp
        self.entries: list[list[str]] = []

    def open_entry(self) -> None:
        self.entries.append([])

    def append(self, line: str) -> None:
        self.entries[-1].append(line)

    def unique_entries(self) -> list[list[str]]:
        """Entries with identical bodies collapsed to the first one."""
        seen: set[tuple[str, ...]] = set()
        unique = []
        for entry in self.entries:
            key = tuple(entry)
            if key in seen:
                continue
            seen.add(key)
            unique.append(entry)
        return unique


class SectionStructurer:
    """Builds a CanonicalDocument from cleaned text.

    Holds no state between calls; each `structure` call runs its own pass.
    """

    def structure(self, cleaned: str) -> CanonicalDocument:
        """Partition cleaned text into canonical sections.

        Args:
            cleaned: Output of the cleaning stage.

        Returns:
            CanonicalDocument with non-empty sections in canonical order.
        """
        static: dict[SectionName, list[str]] = {
            name: [] for name in SECTION_ORDER if name != SectionName.EVOLUTIONS
        }
        buckets: dict[str, _EvolutionBucket] = {}
        current = SectionName.OTHER
        current_bucket: Optional[_EvolutionBucket] = None

        for raw_line in split_inline_header_fields(cleaned).split("\n"):
            line = raw_line.strip()
            if not line:
                continue

            kind = classify_line(line)
            transition = TRANSITIONS[kind]
            if transition.next_state is not None:
                current = transition.next_state

            if kind == LineKind.EVOLUTION_MARKER:
                timestamp = EVOLUTION_MARKER.match(line).group(1)
                current_bucket = buckets.get(timestamp)
                if current_bucket is None:
                    current_bucket = buckets[timestamp] = _EvolutionBucket(timestamp)
                current_bucket.open_entry()
                continue

            target = transition.route or current
            if target == SectionName.EVOLUTIONS:
                current_bucket.append(line)
            else:
                static[target].append(line)

        sections = []
        for name in SECTION_ORDER:
            if name == SectionName.EVOLUTIONS:
                lines = self._evolution_lines(buckets)
            elif name == SectionName.OTHER:
                lines = [line for line in static[name] if is_meaningful_other(line)]
                dropped = len(static[name]) - len(lines)
                if dropped:
                    logger.debug(f"Dropped {dropped} short or separator line(s) from Other")
            else:
                lines = static[name]
            if lines:
                sections.append(Section(name=name, lines=lines))

        logger.debug(
            f"Structured {len(sections)} section(s), {len(buckets)} evolution date(s)"
        )
        return CanonicalDocument(sections=sections)

    @staticmethod
    def _evolution_lines(buckets: dict[str, _EvolutionBucket]) -> list[str]:
        lines: list[str] = []
        for timestamp in sorted(buckets):
            for entry in buckets[timestamp].unique_entries():
                lines.append(evolution_marker(timestamp))
                lines.extend(entry)
        return lines


def structure_text(cleaned: str) -> CanonicalDocument:
    """Structure cleaned text with a default SectionStructurer."""
    return SectionStructurer().structure(cleaned)
