"""Evolution Extraction - Dated progress notes from the Evolutions section."""

import logging
import re
from datetime import datetime

from ehrreport.models import CanonicalDocument, Evolution, SectionName

from .stage_ipss import extract_ipss
from .stage_sections import EVOLUTION_MARKER

logger = logging.getLogger(__name__)


TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def normalize_body(text: str) -> str:
    """Collapse whitespace so bodies differing only in spacing compare equal."""
    return re.sub(r"\s+", " ", text).strip()


def split_evolution_entries(lines: list[str]) -> list[tuple[str, list[str]]]:
    """Group Evolutions section lines into (timestamp, body lines) entries."""
    entries: list[tuple[str, list[str]]] = []
    for line in lines:
        match = EVOLUTION_MARKER.match(line)
        if match:
            entries.append((match.group(1), []))
        elif entries:
            entries[-1][1].append(line)
    return entries


def extract_evolutions(document: CanonicalDocument) -> list[Evolution]:
    """Extract evolutions, deduplicated and sorted by timestamp.

    Entries with the same timestamp and normalized body collapse to one.
    Each evolution gets its own IPSS set, or None when its body holds no
    IPSS data.

    Args:
        document: Structured document.

    Returns:
        Evolutions in ascending timestamp order.
    """
    section = document.section(SectionName.EVOLUTIONS)
    if section is None:
        return []

    seen: set[tuple[datetime, str]] = set()
    evolutions: list[Evolution] = []
    for timestamp, body_lines in split_evolution_entries(section.lines):
        try:
            when = datetime.strptime(timestamp, TIMESTAMP_FORMAT)
        except ValueError:
            logger.warning(f"Skipping evolution with invalid timestamp {timestamp!r}")
            continue

        body = "\n".join(body_lines)
        key = (when, normalize_body(body))
        if key in seen:
            logger.debug(f"Collapsed duplicate evolution at {timestamp}")
            continue
        seen.add(key)

        ipss = extract_ipss(body)
        evolutions.append(
            Evolution(timestamp=when, raw_body=body, ipss=None if ipss.is_empty else ipss)
        )

    evolutions.sort(key=lambda e: e.timestamp)
    return evolutions
