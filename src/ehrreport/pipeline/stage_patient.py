"""Patient Header Extraction - Pull identity fields from the header section."""

import logging
import re
from datetime import date
from typing import Optional

from ehrreport.models import PatientHeader

logger = logging.getLogger(__name__)


DATE_SEPARATOR = r"[/\-. \u2010-\u2015\u2212]"
DATE_TOKEN = (
    rf"\d{{4}}{DATE_SEPARATOR}\d{{1,2}}{DATE_SEPARATOR}\d{{1,2}}"
    rf"|\d{{1,2}}{DATE_SEPARATOR}\d{{1,2}}{DATE_SEPARATOR}\d{{4}}"
    r"|\d{8}"
)

CODE_PATTERN = re.compile(r"Código[ \t]*:?[ \t]*(\d+)", re.IGNORECASE)
NAME_PATTERN = re.compile(
    r"Nome[ \t]*:[ \t]*(.+?)\s*(?:Data\s+de\s+Nascimento\s*:|Telefone\s*:|$)",
    re.IGNORECASE | re.MULTILINE,
)
BIRTH_DATE_PATTERN = re.compile(
    rf"Data\s+de\s+Nascimento[ \t]*:?[ \t]*({DATE_TOKEN})", re.IGNORECASE
)
PHONE_PATTERN = re.compile(r"Telefone[ \t]*:?[ \t]*([\d ().\-]*\d)", re.IGNORECASE)


def _valid_iso(year: str, month: str, day: str) -> Optional[str]:
    try:
        return date(int(year), int(month), int(day)).isoformat()
    except ValueError:
        return None


def normalize_birth_date(raw: Optional[str]) -> Optional[str]:
    """Normalize a birth date token to YYYY-MM-DD.

    Accepts YYYY-MM-DD, YYYY/MM/DD, DD/MM/YYYY, DD-MM-YYYY and DDMMYYYY,
    with any dash, dot, slash or space as separator. Calendar-invalid
    dates yield None.
    """
    if not raw:
        return None
    token = re.sub(r"[\u2010-\u2015\u2212./\s]", "-", raw.strip())
    token = re.sub(r"-+", "-", token)

    match = re.fullmatch(r"(\d{4})-(\d{1,2})-(\d{1,2})", token)
    if match:
        year, month, day = match.groups()
        return _valid_iso(year, month, day)

    if re.fullmatch(r"\d{8}", token):
        return _valid_iso(token[4:8], token[2:4], token[0:2])

    match = re.fullmatch(r"(\d{1,2})-(\d{1,2})-(\d{4})", token)
    if match:
        day, month, year = match.groups()
        return _valid_iso(year, month, day)

    return None


def _clean_name(raw: str) -> Optional[str]:
    name = re.sub(r"[^\w\s'.-]|\d|_", " ", raw)
    name = re.sub(r"\s+", " ", name).strip(" .-")
    return name or None


def extract_patient_header(text: str) -> PatientHeader:
    """Extract code, name, birth date and phone from header text.

    Each field is searched independently; a field that cannot be found is
    left empty and listed in `missing`.

    Args:
        text: Header section text (or any text holding the header fields).

    Returns:
        PatientHeader with whatever fields were found.
    """
    missing: list[str] = []

    match = CODE_PATTERN.search(text)
    code = match.group(1) if match else None
    if code is None:
        missing.append("code")

    match = NAME_PATTERN.search(text)
    name = _clean_name(match.group(1)) if match else None
    if name is None:
        missing.append("fullName")

    match = BIRTH_DATE_PATTERN.search(text)
    birth_date = normalize_birth_date(match.group(1)) if match else None
    if birth_date is None:
        missing.append("birthDate")

    match = PHONE_PATTERN.search(text)
    phone = re.sub(r"\D", "", match.group(1)) if match else None
    if not phone:
        phone = None
        missing.append("phone")

    header = PatientHeader(
        code=code,
        name=name,
        birth_date=birth_date,
        phone=phone,
        missing=missing,
    )
    if not header.is_identifiable:
        logger.warning(f"Patient identity incomplete; missing: {header.identity_missing}")
    return header
