"""PSA Series Extraction - Date/value pairs from the PSA section.

Recognized tokens, optionally preceded by "PSA":
- DD/MM/YY or DD/MM/YYYY followed by a value ("12/03/21 4,5")
- MM/YY or MM/YYYY followed by a value ("10/22 4,50"), dated on the
  first day of the month

Two-digit years use a fixed pivot: YY >= pivot is 19YY, otherwise 20YY.
Values outside (0, 1000] are extraction noise and are discarded.
"""

import logging
import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Optional

from ehrreport.models import PsaMeasurement, PsaSeries

logger = logging.getLogger(__name__)


DEFAULT_YEAR_PIVOT = 50
MAX_PSA_VALUE = Decimal("1000")

PSA_TOKEN = re.compile(
    r"(?<![\d/])"
    r"(\d{1,2})/(\d{1,2}|\d{4})(?:/(\d{4}|\d{2}))?"
    r"\s+"
    r"(\d+(?:[.,]\d+)?)"
    r"(?![\d/])"
)


def expand_year(year: str, pivot: int = DEFAULT_YEAR_PIVOT) -> int:
    """Expand a 2-digit year around a fixed pivot; 4-digit years pass through."""
    value = int(year)
    if len(year) == 4:
        return value
    return 1900 + value if value >= pivot else 2000 + value


def _parse_date(
    first: str, second: str, third: Optional[str], pivot: int
) -> Optional[date]:
    if third is not None:
        day, month, year = int(first), int(second), expand_year(third, pivot)
    elif len(second) in (2, 4):
        day, month, year = 1, int(first), expand_year(second, pivot)
    else:
        return None
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _parse_value(raw: str) -> Optional[Decimal]:
    try:
        return Decimal(raw.replace(",", "."))
    except InvalidOperation:
        return None


def extract_psa_series(text: str, pivot: int = DEFAULT_YEAR_PIVOT) -> PsaSeries:
    """Extract the PSA history from PSA section text.

    Args:
        text: PSA section text.
        pivot: Two-digit year pivot.

    Returns:
        PsaSeries deduplicated on (date, value) and sorted by date.
    """
    found: set[tuple[date, Decimal]] = set()
    discarded = 0

    for match in PSA_TOKEN.finditer(text):
        first, second, third, raw_value = match.groups()
        measured_on = _parse_date(first, second, third, pivot)
        value = _parse_value(raw_value)
        if measured_on is None or value is None or not 0 < value <= MAX_PSA_VALUE:
            discarded += 1
            continue
        found.add((measured_on, value))

    if discarded:
        logger.debug(f"Discarded {discarded} PSA token(s) as noise")

    measurements = [
        PsaMeasurement(date=measured_on, value=value)
        for measured_on, value in sorted(found)
    ]
    return PsaSeries(
        measurements=measurements,
        missing=[] if measurements else ["measurements"],
    )
